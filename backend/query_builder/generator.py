"""
SQL Generator - Compiles a QueryModel into SQL text.

Identifiers are emitted exactly as they appear in the model; nothing here
escapes them. Callers accepting untrusted identifiers must validate upstream.
"""

import logging
import re
from typing import List, Optional, Set, Tuple

import sqlglot
from sqlglot.errors import TokenError
from sqlglot.tokens import TokenType

from config import SQL_DIALECT
from .model_types import (
    ConditionSpec,
    JoinSpec,
    LIST_OPERATORS,
    NULL_OPERATORS,
    RANGE_OPERATORS,
    TableRef,
)
from .query_model import QueryModel

logger = logging.getLogger(__name__)

# Placeholder shown while no table has been picked
NO_TABLES_SQL = "SELECT * FROM table_name;"

_NUMBER_RE = re.compile(r'^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$')
_RANGE_AND_RE = re.compile(r'\s+AND\s+', re.IGNORECASE)


def compile_sql(model: QueryModel) -> str:
    """
    Convert a QueryModel to a SQL string.

    Clauses are separated by newlines and the statement is terminated with
    ``;``. An empty model compiles to NO_TABLES_SQL.
    """
    if not model.tables:
        return NO_TABLES_SQL

    parts = ["SELECT " + generate_select_clause(model)]
    parts.append("FROM " + table_source(model.tables[0]))
    parts.extend(generate_join_clauses(model))

    where = generate_where_clause(model.conditions)
    if where:
        parts.append("WHERE " + where)

    group_cols = [col for col in model.group_by if col]
    if group_cols:
        parts.append("GROUP BY " + ", ".join(group_cols))

    order_parts = [f"{o.column} {o.direction}" for o in model.order_by if o.column]
    if order_parts:
        parts.append("ORDER BY " + ", ".join(order_parts))

    if model.limit is not None:
        limit = f"LIMIT {model.limit}"
        if model.offset is not None:
            limit += f" OFFSET {model.offset}"
        parts.append(limit)

    return "\n".join(parts) + ";"


def generate_select_clause(model: QueryModel) -> str:
    """Generate the SELECT column list, tables in insertion order."""
    cols = []
    for table in model.tables:
        selection = model.columns.get(table.key)
        if not selection:
            cols.append(f"{table.key}.*")
        else:
            cols.extend(f"{table.key}.{col}" for col in selection)
    return ", ".join(cols)


def table_source(table: TableRef) -> str:
    """Table name with its alias, as written after FROM / JOIN."""
    if table.alias:
        return f"{table.name} AS {table.alias}"
    return table.name


def generate_join_clauses(model: QueryModel) -> List[str]:
    """
    Generate JOIN clauses in insertion order.

    Each join introduces whichever side isn't in scope yet. When both sides are
    already introduced the join becomes an extra predicate clause, which is how
    composite-key joins are expressed as several JoinSpecs.
    """
    introduced: Set[str] = {model.tables[0].key}
    clauses = []

    for join in model.joins:
        if not join.is_complete:
            continue

        left = model.get_table(join.left_table)
        right = model.get_table(join.right_table)
        if left is None or right is None:
            logger.debug(f"[compile] Skipping join with unknown table: {join}")
            continue

        on = join_predicate(join)
        if right.key not in introduced:
            clauses.append(f"{join.type} JOIN {table_source(right)} ON {on}")
            introduced.add(right.key)
        elif left.key not in introduced:
            clauses.append(f"{join.type} JOIN {table_source(left)} ON {on}")
            introduced.add(left.key)
        else:
            clauses.append(f"{join.type} JOIN {right.key} ON {on}")

    return clauses


def join_predicate(join: JoinSpec) -> str:
    return f"{join.left_table}.{join.left_column} = {join.right_table}.{join.right_column}"


def generate_where_clause(conditions: List[ConditionSpec]) -> str:
    """Join the conditions that have a column, ignoring the first connector."""
    parts = []
    for cond in conditions:
        if not cond.column:
            continue
        if parts:
            parts.append(cond.connector)
        parts.append(generate_condition(cond))
    return " ".join(parts)


def generate_condition(cond: ConditionSpec) -> str:
    """Generate a single predicate with operator-specific value formatting."""
    if cond.operator in NULL_OPERATORS:
        return f"{cond.column} {cond.operator}"

    if cond.operator in LIST_OPERATORS:
        # Value is a pre-formatted list
        return f"{cond.column} {cond.operator} ({cond.value})"

    if cond.operator in RANGE_OPERATORS:
        return f"{cond.column} {cond.operator} {format_range(cond.value)}"

    return f"{cond.column} {cond.operator} {format_value(cond.value)}"


def format_range(value: str) -> str:
    """
    Format a BETWEEN operand.

    "min AND max" is emitted verbatim; "min, max" has each bound formatted
    like any other value.
    """
    if _RANGE_AND_RE.search(value):
        return value.strip()

    bounds = split_range(value)
    if bounds:
        low, high = bounds
        return f"{format_value(strip_quotes(low))} AND {format_value(strip_quotes(high))}"

    logger.debug(f"[compile] BETWEEN value without two bounds: {value!r}")
    return format_value(value)


def split_range(value: str) -> Optional[Tuple[str, str]]:
    """Split "min, max" at the first comma outside quotes and parentheses."""
    try:
        tokens = sqlglot.tokenize(value, read=SQL_DIALECT)
    except TokenError:
        # Unbalanced quotes, e.g. a bare O'Brien
        if ',' not in value:
            return None
        low, high = value.split(',', 1)
        return low, high

    depth = 0
    for token in tokens:
        if token.token_type == TokenType.L_PAREN:
            depth += 1
        elif token.token_type == TokenType.R_PAREN:
            depth -= 1
        elif token.token_type == TokenType.COMMA and depth == 0:
            return value[:token.start], value[token.start + 1:]
    return None


def format_value(value: str) -> str:
    """
    Format a value for SQL: bare if it reads as a number, else a quoted string.

    The number check is a heuristic; "007" or "1e3" are emitted bare even when
    the column is textual.
    """
    stripped = value.strip()
    if is_numeric(stripped):
        return stripped
    escaped = value.replace("'", "''")
    return f"'{escaped}'"


def is_numeric(value: Optional[str]) -> bool:
    return bool(value) and bool(_NUMBER_RE.match(value))


def strip_quotes(value: str) -> str:
    """Remove one pair of matching surrounding quotes, unescaping doubled ones."""
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        quote = value[0]
        return value[1:-1].replace(quote * 2, quote)
    return value
