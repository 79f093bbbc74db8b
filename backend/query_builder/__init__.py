"""Visual SELECT query builder: query model, SQL compiler/decompiler and join suggestions."""

from .errors import (
    QueryBuilderError,
    DuplicateTableError,
    AliasCollisionError,
    UnknownTableError,
    InvalidMutationError,
)
from .schema_types import SchemaCatalog, TableInfo, ColumnInfo, ForeignKeyRef
from .model_types import TableRef, JoinSpec, ConditionSpec, OrderSpec, OPERATORS
from .query_model import QueryModel
from .generator import compile_sql, NO_TABLES_SQL
from .parser import decompile_sql, DecompileResult
from .suggestions import suggest_joins
from .validator import (
    detect_statement_kind,
    find_unsupported_constructs,
    compare_sql,
    check_round_trip,
    SQLComparisonResult,
    RoundTripResult,
)
from .actions import Action, apply_action, parse_actions, replay, ReplayResult

__all__ = [
    "QueryBuilderError",
    "DuplicateTableError",
    "AliasCollisionError",
    "UnknownTableError",
    "InvalidMutationError",
    "SchemaCatalog",
    "TableInfo",
    "ColumnInfo",
    "ForeignKeyRef",
    "TableRef",
    "JoinSpec",
    "ConditionSpec",
    "OrderSpec",
    "OPERATORS",
    "QueryModel",
    "compile_sql",
    "NO_TABLES_SQL",
    "decompile_sql",
    "DecompileResult",
    "suggest_joins",
    "detect_statement_kind",
    "find_unsupported_constructs",
    "compare_sql",
    "check_round_trip",
    "SQLComparisonResult",
    "RoundTripResult",
    "Action",
    "apply_action",
    "parse_actions",
    "replay",
    "ReplayResult",
]
