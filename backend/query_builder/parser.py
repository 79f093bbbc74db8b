"""
SQL Decompiler - Rebuilds a QueryModel from SQL text using sqlglot.

Reads the builder's own grammar off the sqlglot AST: one FROM table, equality
ON joins, an AND-only WHERE chain, GROUP BY, ORDER BY and LIMIT/OFFSET.
Anything else is left out of the model and reported through DecompileResult
instead of raising. Always lossy:

  - SELECT items other than plain columns and stars (functions, arithmetic)
  - column aliases and DISTINCT
"""

import logging
from typing import Dict, Iterator, List, Optional

import sqlglot
from sqlglot import exp
from sqlglot.errors import SqlglotError
from pydantic import BaseModel, Field

from config import SQL_DIALECT
from .errors import AliasCollisionError, DuplicateTableError, QueryBuilderError
from .generator import is_numeric
from .model_types import ConditionSpec, JoinSpec
from .query_model import QueryModel
from .schema_types import SchemaCatalog
from .validator import detect_statement_kind, is_column_equality, unsupported_constructs

logger = logging.getLogger(__name__)

COMPARISON_OPERATORS = {
    exp.EQ: '=',
    exp.NEQ: '!=',
    exp.GT: '>',
    exp.LT: '<',
    exp.GTE: '>=',
    exp.LTE: '<=',
    exp.Like: 'LIKE',
}

SUPPORTED_JOIN_TYPES = ('INNER', 'LEFT', 'RIGHT')


class DecompileResult(BaseModel):
    """Best-effort model plus what could not be carried over."""
    model: QueryModel
    statement_kind: str = 'SELECT'
    complete: bool = True
    warnings: List[str] = Field(default_factory=list)
    unsupported_features: List[str] = Field(default_factory=list)
    unresolved_tables: List[str] = Field(default_factory=list)


def decompile_sql(
    sql: str,
    catalog: Optional[SchemaCatalog] = None,
    dialect: Optional[str] = None,
) -> DecompileResult:
    """
    Parse SQL text into a QueryModel.

    Never raises for unrecognised syntax: fragments that don't fit the
    builder's grammar are omitted and listed in ``warnings``, and the
    constructs sqlglot finds outside that grammar are listed in
    ``unsupported_features``. ``complete`` is True only when neither list
    has entries.

    Non-SELECT statements are not decomposed; the result carries an empty
    model and the detected statement kind. Text sqlglot cannot parse gives
    an empty model reported as "Unparseable SQL".
    """
    dialect = dialect or SQL_DIALECT
    kind = detect_statement_kind(sql, dialect=dialect)
    if kind != 'SELECT':
        logger.info(f"[decompile] Not decomposing {kind} statement")
        return DecompileResult(
            model=QueryModel(catalog=catalog),
            statement_kind=kind,
            complete=False,
            warnings=[f"{kind} statements are not decomposed into a query model"],
        )

    try:
        statements = sqlglot.parse(sql, read=dialect)
    except SqlglotError as e:
        logger.info(f"[decompile] sqlglot could not parse statement: {e}")
        return DecompileResult(
            model=QueryModel(catalog=catalog),
            statement_kind=kind,
            complete=False,
            warnings=[f"SQL could not be parsed: {e}"],
            unsupported_features=["Unparseable SQL"],
        )

    ast = statements[0] if statements else None
    reader = _SelectReader(catalog, dialect)
    if ast is None:
        reader.warn("No statement found")
        unsupported: List[str] = []
    else:
        reader.read(ast)
        unsupported = unsupported_constructs(ast)

    complete = not reader.warnings and not unsupported
    if not complete:
        logger.info(
            f"[decompile] Partial parse: {len(reader.warnings)} warnings, "
            f"unsupported={unsupported}"
        )

    return DecompileResult(
        model=reader.model,
        statement_kind=kind,
        complete=complete,
        warnings=reader.warnings,
        unsupported_features=unsupported,
        unresolved_tables=reader.unresolved_tables,
    )


def conjuncts(node: exp.Expression) -> Iterator[exp.Expression]:
    """Yield the operands of a (possibly parenthesized) AND chain."""
    node = node.unnest()
    if isinstance(node, exp.And):
        for part in node.flatten():
            yield from conjuncts(part)
    else:
        yield node


def _from_clause(select_node: exp.Select) -> Optional[exp.From]:
    # Matched by type so the arg key spelling doesn't matter
    for value in select_node.args.values():
        if isinstance(value, exp.From):
            return value
    return None


class _SelectReader:
    """Fills a QueryModel from one SELECT node."""

    def __init__(self, catalog: Optional[SchemaCatalog], dialect: str):
        self.catalog = catalog
        self.dialect = dialect
        self.model = QueryModel(catalog=catalog)
        self.warnings: List[str] = []
        self.unresolved_tables: List[str] = []
        # lower-cased name a table is visible under in the SQL -> model key
        self.keys: Dict[str, str] = {}

    def warn(self, message: str) -> None:
        logger.debug(f"[decompile] {message}")
        self.warnings.append(message)

    def text(self, node: exp.Expression) -> str:
        return node.sql(dialect=self.dialect)

    def read(self, ast: exp.Expression) -> None:
        select_node = ast if isinstance(ast, exp.Select) else ast.find(exp.Select)
        if select_node is None:
            self.warn("No SELECT statement found")
            return

        self.read_from(select_node)
        if not self.model.tables:
            return

        self.read_select(select_node)

        where = select_node.args.get("where")
        if where:
            self.read_where(where)
        group = select_node.args.get("group")
        if group:
            self.read_group_by(group)
        having = select_node.args.get("having")
        if having:
            self.warn(f"HAVING clause dropped: {self.text(having.this)}")
        order = select_node.args.get("order")
        if order:
            self.read_order_by(order)
        self.read_limit(select_node)

    # ------------------------------------------------------------------
    # Tables
    # ------------------------------------------------------------------

    def resolve_table_name(self, source: exp.Table) -> str:
        name = source.name
        if source.db:
            self.warn(f"Database qualifier dropped from {self.text(source)}")

        if self.catalog is not None:
            table = self.catalog.find_table(name)
            if table:
                return table.name
        if name not in self.unresolved_tables:
            self.unresolved_tables.append(name)
        return name

    def register_table(self, source: exp.Table) -> str:
        name = self.resolve_table_name(source)
        alias = source.alias or None

        try:
            table = self.model.add_table(name)
        except DuplicateTableError:
            table = self.model.add_table(name, force_self_join=True)
            if not alias:
                self.warn(f"Table {name} repeated without an alias; using {table.key}")

        if alias and alias != table.key:
            try:
                table = self.model.set_alias(table.key, alias)
            except AliasCollisionError:
                self.warn(f"Alias {alias} clashes with another table; using {table.key}")

        # Once aliased, a table is only reachable through its alias
        self.keys.setdefault(source.alias_or_name.lower(), table.key)
        return table.key

    def key_for(self, column: exp.Column) -> Optional[str]:
        return self.keys.get(column.table.lower()) if column.table else None

    def read_from(self, select_node: exp.Select) -> None:
        from_clause = _from_clause(select_node)
        if from_clause is None:
            self.warn("No FROM clause found")
            return

        source = from_clause.this
        if not isinstance(source, exp.Table):
            self.warn(f"Unrecognised table source dropped: {self.text(source)}")
            return
        self.register_table(source)

        for join_node in select_node.args.get("joins") or []:
            self.read_join(join_node)

    def read_join(self, join_node: exp.Join) -> None:
        source = join_node.this
        on_clause = join_node.args.get("on")
        if not isinstance(source, exp.Table):
            self.warn(f"JOIN source is not a table: {self.text(join_node)}")
            return
        if on_clause is None:
            self.warn(f"JOIN without ON condition dropped: {self.text(join_node)}")
            return

        # An un-aliased JOIN on a name already visible adds a predicate only
        key = None if source.alias else self.keys.get(source.name.lower())
        if key is None:
            key = self.register_table(source)

        join_type = join_node.side or join_node.kind or 'INNER'
        if join_type not in SUPPORTED_JOIN_TYPES:
            self.warn(f"{join_type} JOIN on {key} dropped")
            return

        equality = None
        for predicate in conjuncts(on_clause):
            if equality is None and is_column_equality(predicate):
                equality = predicate
            else:
                self.warn(f"Extra join predicate dropped: {self.text(predicate)}")
        if equality is None:
            return

        left_key = self.key_for(equality.left)
        right_key = self.key_for(equality.right)
        if left_key is None or right_key is None:
            self.warn(f"Join condition references unknown table: {self.text(equality)}")
            return

        try:
            self.model.add_join(JoinSpec(
                type=join_type,
                left_table=left_key,
                left_column=self.resolve_column(left_key, equality.left.name),
                right_table=right_key,
                right_column=self.resolve_column(right_key, equality.right.name),
            ))
        except QueryBuilderError as e:
            self.warn(f"Join dropped: {e}")

    # ------------------------------------------------------------------
    # Columns
    # ------------------------------------------------------------------

    def resolve_column(self, key: str, column: str) -> str:
        table = self.model.get_table(key)
        if table is None or self.catalog is None:
            return column
        return self.catalog.resolve_column(table.name, column) or column

    def qualified_ref(self, column: exp.Column, keep_unknown_qualifier: bool) -> str:
        """
        Normalise a column reference: known qualifiers map onto model keys,
        unknown ones are kept verbatim or dropped.
        """
        if not column.table:
            return column.name
        key = self.key_for(column)
        if key:
            return f"{key}.{self.resolve_column(key, column.name)}"
        if keep_unknown_qualifier:
            self.warn(f"Unknown table qualifier in {self.text(column)}")
            return f"{column.table}.{column.name}"
        return column.name

    def read_select(self, select_node: exp.Select) -> None:
        if select_node.args.get("distinct"):
            self.warn("DISTINCT dropped")

        first_key = self.model.tables[0].key
        assigned: Dict[str, Optional[List[str]]] = {}
        first_seen: Dict[str, int] = {}

        for position, item in enumerate(select_node.expressions):
            node = item
            if isinstance(node, exp.Alias):
                self.warn(f"Column alias dropped: {self.text(item)}")
                node = node.this

            if isinstance(node, exp.Star):
                for key in self.model.table_keys():
                    assigned[key] = None
                    first_seen.setdefault(key, position)
                continue

            if not isinstance(node, exp.Column):
                self.warn(f"Expression dropped from SELECT: {self.text(node)}")
                continue

            if node.table:
                key = self.key_for(node)
                if key is None:
                    self.warn(f"Unknown table in SELECT: {self.text(node)}")
                    continue
            else:
                key = first_key

            first_seen.setdefault(key, position)
            if isinstance(node.this, exp.Star):
                assigned[key] = None
                continue
            if key in assigned and assigned[key] is None:
                continue
            column = self.resolve_column(key, node.name)
            selection = assigned.setdefault(key, [])
            if column not in selection:
                selection.append(column)

        for key, selection in assigned.items():
            self.model.set_columns(key, selection)

        self.restore_table_order(first_seen)

    def restore_table_order(self, first_seen: Dict[str, int]) -> None:
        """Order joined tables by first SELECT appearance; FROM stays first."""
        keys = self.model.table_keys()
        if len(keys) < 3:
            return
        source_order = {key: i for i, key in enumerate(keys)}
        unseen = len(keys)
        rest = sorted(
            keys[1:],
            key=lambda k: (first_seen.get(k, unseen), source_order[k]),
        )
        self.model.reorder_tables([keys[0]] + rest)

    # ------------------------------------------------------------------
    # WHERE / GROUP BY / ORDER BY / LIMIT
    # ------------------------------------------------------------------

    def read_where(self, where: exp.Where) -> None:
        for predicate in conjuncts(where.this):
            if isinstance(predicate, exp.Or):
                self.warn(f"OR condition dropped: {self.text(predicate)}")
                continue
            condition = self.parse_condition(predicate)
            if condition is None:
                self.warn(f"Condition not recognised: {self.text(predicate)}")
                continue
            self.model.add_condition(condition)

    def parse_condition(self, predicate: exp.Expression) -> Optional[ConditionSpec]:
        negated = isinstance(predicate, exp.Not)
        node = predicate.this.unnest() if negated else predicate

        if not isinstance(node.this, exp.Column):
            return None

        if isinstance(node, exp.Is):
            if not isinstance(node.expression, exp.Null):
                return None
            operator = 'IS NOT NULL' if negated else 'IS NULL'
            value = ''
        elif isinstance(node, exp.In):
            if node.args.get("query") or not node.expressions:
                return None
            operator = 'NOT IN' if negated else 'IN'
            value = ', '.join(self.text(item) for item in node.expressions)
        elif isinstance(node, exp.Between):
            operator = 'NOT BETWEEN' if negated else 'BETWEEN'
            value = self.range_value(node.args["low"], node.args["high"])
        elif negated:
            if not isinstance(node, exp.Like):
                return None
            operator = 'NOT LIKE'
            value = self.literal_value(node.expression, predicate)
        elif type(node) in COMPARISON_OPERATORS:
            operator = COMPARISON_OPERATORS[type(node)]
            value = self.literal_value(node.expression, predicate)
        else:
            return None

        column = self.qualified_ref(node.this, keep_unknown_qualifier=True)
        return ConditionSpec(column=column, operator=operator, value=value, connector='AND')

    def literal_value(self, node: exp.Expression, predicate: exp.Expression) -> str:
        if isinstance(node, exp.Literal):
            return node.this
        value = self.text(node)
        if not is_numeric(value):
            self.warn(f"Value treated as string literal: {self.text(predicate)}")
        return value

    def range_value(self, low: exp.Expression, high: exp.Expression) -> str:
        """
        BETWEEN bounds as "low, high" when both are literals; "low AND high"
        otherwise so recompiling doesn't quote expressions.
        """
        bounds = (low, high)
        if all(isinstance(b, exp.Literal) for b in bounds) and not any(',' in b.this for b in bounds):
            return f"{low.this}, {high.this}"
        return f"{self.text(low)} AND {self.text(high)}"

    def read_group_by(self, group: exp.Group) -> None:
        for item in group.expressions:
            if not isinstance(item, exp.Column):
                self.warn(f"GROUP BY expression dropped: {self.text(item)}")
                continue
            self.model.add_group(self.qualified_ref(item, keep_unknown_qualifier=False))

    def read_order_by(self, order: exp.Order) -> None:
        for item in order.expressions:
            column = item.this if isinstance(item, exp.Ordered) else item
            if not isinstance(column, exp.Column):
                self.warn(f"ORDER BY expression dropped: {self.text(item)}")
                continue
            direction = 'DESC' if item.args.get("desc") else 'ASC'
            self.model.add_order(self.qualified_ref(column, keep_unknown_qualifier=False), direction)

    def read_limit(self, select_node: exp.Select) -> None:
        limit_clause = select_node.args.get("limit")
        offset_clause = select_node.args.get("offset")

        if limit_clause is not None:
            # MySQL "LIMIT offset, count" may leave the offset on the Limit node
            embedded_offset = limit_clause.args.get("offset")
            if embedded_offset is not None and offset_clause is None:
                self.set_number(self.model.set_offset, embedded_offset, "OFFSET")
            self.set_number(self.model.set_limit, limit_clause.expression, "LIMIT")
        if offset_clause is not None:
            self.set_number(self.model.set_offset, offset_clause.expression, "OFFSET")

    def set_number(self, setter, node: Optional[exp.Expression], clause: str) -> None:
        if isinstance(node, exp.Literal) and node.is_int:
            setter(int(node.this))
        else:
            shown = self.text(node) if node is not None else ""
            self.warn(f"{clause} value not recognised: {shown}")
