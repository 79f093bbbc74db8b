"""Statement classification, unsupported-construct detection and round-trip checks.

The decompiler reads the builder's grammar off the sqlglot AST; this module
names the constructs on that same AST that fall outside it, so callers know
whether a decompiled model is complete.
"""

import logging
from typing import List, Optional, Set

import sqlglot
from sqlglot import exp
from sqlglot.errors import TokenError
from sqlglot.tokens import TokenType
from pydantic import BaseModel

from config import SQL_DIALECT
from .query_model import QueryModel

logger = logging.getLogger(__name__)

STATEMENT_KINDS = (
    'SELECT', 'INSERT', 'UPDATE', 'DELETE', 'REPLACE',
    'CREATE', 'ALTER', 'DROP', 'TRUNCATE', 'RENAME',
    'SHOW', 'DESCRIBE', 'DESC', 'EXPLAIN', 'WITH', 'USE', 'SET',
)

_SKIPPED_LEADING_TOKENS = (TokenType.L_PAREN, TokenType.SEMICOLON)


def detect_statement_kind(sql: str, dialect: Optional[str] = None) -> str:
    """
    Classify a statement by its leading keyword.

    Returns one of STATEMENT_KINDS (DESC is reported as DESCRIBE), 'EMPTY' for
    blank or comment-only input, or 'OTHER'.
    """
    try:
        tokens = sqlglot.tokenize(sql or "", read=dialect or SQL_DIALECT)
    except TokenError as e:
        logger.debug(f"[validator] sqlglot could not tokenize statement: {e}")
        return 'OTHER'

    for token in tokens:
        if token.token_type in _SKIPPED_LEADING_TOKENS:
            continue
        keyword = token.text.upper()
        if keyword == 'DESC':
            return 'DESCRIBE'
        return keyword if keyword in STATEMENT_KINDS else 'OTHER'
    return 'EMPTY'


def find_unsupported_constructs(sql: str, dialect: Optional[str] = None) -> List[str]:
    """
    List constructs outside the builder's grammar (sorted, human readable).

    The builder understands a single FROM table, equality ON joins, a flat
    WHERE chain without parentheses, GROUP BY, ORDER BY and LIMIT/OFFSET.
    """
    dialect = dialect or SQL_DIALECT
    try:
        ast = sqlglot.parse_one(sql, read=dialect)
    except Exception as e:
        logger.debug(f"[validator] sqlglot could not parse statement: {e}")
        return ["Unparseable SQL"]

    return unsupported_constructs(ast)


def unsupported_constructs(ast: exp.Expression) -> List[str]:
    """find_unsupported_constructs for an already parsed statement."""
    unsupported: Set[str] = set()

    for node in ast.walk():
        if isinstance(node, exp.Subquery):
            unsupported.add("Subqueries")
        elif isinstance(node, exp.CTE):
            unsupported.add("WITH clauses (CTEs)")
        elif isinstance(node, exp.Intersect):
            unsupported.add("INTERSECT")
        elif isinstance(node, exp.Except):
            unsupported.add("EXCEPT")
        elif isinstance(node, exp.Union):
            unsupported.add("UNION")
        elif isinstance(node, exp.Window):
            unsupported.add("Window functions")
        elif isinstance(node, exp.Case):
            unsupported.add("CASE expressions")

    select_node = ast if isinstance(ast, exp.Select) else ast.find(exp.Select)
    if select_node is None:
        unsupported.add("Not a SELECT statement")
        return sorted(unsupported)

    where_clause = select_node.args.get("where")
    if where_clause:
        if where_clause.find(exp.Or):
            unsupported.add("OR conditions")
        if where_clause.find(exp.Paren):
            unsupported.add("Parenthesized conditions")

    if select_node.args.get("having"):
        unsupported.add("HAVING")

    for join_node in select_node.args.get("joins") or []:
        on_clause = join_node.args.get("on")
        if join_node.args.get("using"):
            unsupported.add("JOIN ... USING")
        elif on_clause is None:
            unsupported.add("JOIN without ON condition")
        elif not is_column_equality(on_clause):
            unsupported.add("Non-equality join conditions")

        if join_node.side == "FULL":
            unsupported.add("FULL JOIN")

    return sorted(unsupported)


def is_column_equality(node: exp.Expression) -> bool:
    return (
        isinstance(node, exp.EQ)
        and isinstance(node.left, exp.Column)
        and isinstance(node.right, exp.Column)
    )


class SQLComparisonResult(BaseModel):
    """Result of SQL comparison."""
    equivalent: bool
    differences: List[str] = []
    original_normalized: Optional[str] = None
    regenerated_normalized: Optional[str] = None


def compare_sql(sql1: str, sql2: str, dialect: Optional[str] = None) -> SQLComparisonResult:
    """
    Compare two SQL statements structurally using sqlglot ASTs.

    Formatting differences (whitespace, keyword case, trailing semicolon) do
    not count as differences.
    """
    dialect = dialect or SQL_DIALECT
    try:
        ast1 = sqlglot.parse_one(sql1, read=dialect)
        ast2 = sqlglot.parse_one(sql2, read=dialect)
    except Exception as e:
        return SQLComparisonResult(
            equivalent=False,
            differences=[f"Parse error: {str(e)}"]
        )

    norm1 = ast1.sql(dialect=dialect, normalize=True)
    norm2 = ast2.sql(dialect=dialect, normalize=True)

    if ast1 == ast2 or norm1.lower() == norm2.lower():
        return SQLComparisonResult(
            equivalent=True,
            original_normalized=norm1,
            regenerated_normalized=norm2
        )

    differences = _find_ast_differences(ast1, ast2)
    return SQLComparisonResult(
        equivalent=False,
        differences=differences if differences else ["SQL statements differ"],
        original_normalized=norm1,
        regenerated_normalized=norm2
    )


def _find_ast_differences(ast1: exp.Expression, ast2: exp.Expression) -> List[str]:
    """Name the clauses that differ between two ASTs."""
    differences = []

    select1 = ast1.find(exp.Select)
    select2 = ast2.find(exp.Select)
    if select1 and select2:
        if len(select1.expressions) != len(select2.expressions):
            differences.append(
                f"SELECT column count differs: {len(select1.expressions)} vs {len(select2.expressions)}"
            )
        joins1 = select1.args.get("joins") or []
        joins2 = select2.args.get("joins") or []
        if len(joins1) != len(joins2):
            differences.append(f"JOIN count differs: {len(joins1)} vs {len(joins2)}")

    for node_type, label in (
        (exp.From, "FROM clause"),
        (exp.Where, "WHERE clause"),
        (exp.Group, "GROUP BY clause"),
        (exp.Order, "ORDER BY clause"),
        (exp.Limit, "LIMIT clause"),
        (exp.Offset, "OFFSET clause"),
    ):
        node1 = ast1.find(node_type)
        node2 = ast2.find(node_type)
        if (node1 is None) != (node2 is None):
            differences.append(f"{label} presence differs")
        elif node1 is not None and node1.sql() != node2.sql():
            differences.append(f"{label} differs")

    return differences


class RoundTripResult(BaseModel):
    """Outcome of compile -> decompile -> compile for one model."""
    equivalent: bool
    original_sql: str
    regenerated_sql: str
    differences: List[str] = []


def check_round_trip(model: QueryModel, dialect: Optional[str] = None) -> RoundTripResult:
    """
    Compile the model, decompile the SQL against the model's catalog and
    compile again. Equivalent when both SQL texts match, or failing that when
    their ASTs do.
    """
    # Import here to avoid circular imports
    from .generator import compile_sql
    from .parser import decompile_sql

    original_sql = compile_sql(model)
    result = decompile_sql(original_sql, model.catalog, dialect=dialect)
    regenerated_sql = compile_sql(result.model)

    if original_sql == regenerated_sql:
        return RoundTripResult(
            equivalent=True,
            original_sql=original_sql,
            regenerated_sql=regenerated_sql,
        )

    comparison = compare_sql(original_sql, regenerated_sql, dialect=dialect)
    return RoundTripResult(
        equivalent=comparison.equivalent,
        original_sql=original_sql,
        regenerated_sql=regenerated_sql,
        differences=comparison.differences + result.warnings,
    )
