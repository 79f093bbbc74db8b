"""Pydantic models for the pieces of a SELECT query held by QueryModel."""

from pydantic import BaseModel, field_validator
from typing import Any, Literal, Optional, get_args


JoinType = Literal['INNER', 'LEFT', 'RIGHT']
Connector = Literal['AND', 'OR']
Direction = Literal['ASC', 'DESC']
OperatorKind = Literal[
    '=', '!=', '>', '<', '>=', '<=',
    'LIKE', 'NOT LIKE',
    'IN', 'NOT IN',
    'BETWEEN', 'NOT BETWEEN',
    'IS NULL', 'IS NOT NULL',
]

OPERATORS = get_args(OperatorKind)
NULL_OPERATORS = ('IS NULL', 'IS NOT NULL')
LIST_OPERATORS = ('IN', 'NOT IN')
RANGE_OPERATORS = ('BETWEEN', 'NOT BETWEEN')


def _upper(value: Any) -> Any:
    if isinstance(value, str):
        return ' '.join(value.split()).upper()
    return value


class TableRef(BaseModel):
    """A table added to the query, optionally aliased."""
    name: str
    alias: Optional[str] = None
    ordinal: int = 0  # creation order, UI identity only

    @property
    def key(self) -> str:
        """Identifier used to reference this table everywhere else in the query."""
        return self.alias or self.name


class JoinSpec(BaseModel):
    """Equality join between two table keys."""
    type: JoinType = 'INNER'
    left_table: str
    left_column: str = ""
    right_table: str
    right_column: str = ""

    @field_validator('type', mode='before')
    @classmethod
    def normalize_type(cls, value: Any) -> Any:
        return _upper(value)

    @property
    def is_complete(self) -> bool:
        return bool(self.left_column and self.right_column)

    def references(self, key: str) -> bool:
        return key in (self.left_table, self.right_table)


class ConditionSpec(BaseModel):
    """One WHERE predicate, joined to the previous one by connector."""
    column: str = ""  # "tableKey.column" or "column"
    operator: OperatorKind = '='
    value: str = ""
    connector: Connector = 'AND'

    @field_validator('operator', 'connector', mode='before')
    @classmethod
    def normalize_keywords(cls, value: Any) -> Any:
        return _upper(value)

    @field_validator('value', mode='before')
    @classmethod
    def coerce_value(cls, value: Any) -> Any:
        if value is None:
            return ""
        if isinstance(value, bool):
            return "1" if value else "0"
        if isinstance(value, (int, float)):
            return str(value)
        return value


class OrderSpec(BaseModel):
    """ORDER BY entry."""
    column: str = ""
    direction: Direction = 'ASC'

    @field_validator('direction', mode='before')
    @classmethod
    def normalize_direction(cls, value: Any) -> Any:
        return _upper(value)


def qualifier_of(column_ref: str) -> Optional[str]:
    """Table key prefix of a "key.column" reference, if any."""
    if '.' not in column_ref:
        return None
    return column_ref.rsplit('.', 1)[0]


def references_table(column_ref: str, key: str) -> bool:
    return column_ref.startswith(key + '.')


def requalify(column_ref: str, old_key: str, new_key: str) -> str:
    """Swap the old_key prefix of a column reference for new_key."""
    if references_table(column_ref, old_key):
        return new_key + column_ref[len(old_key):]
    return column_ref
