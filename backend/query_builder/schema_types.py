"""Pydantic models for the database schema catalog consumed by the query builder."""

from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Any, Dict, List, Optional


class ForeignKeyRef(BaseModel):
    """Target of a foreign key column."""
    table: str
    column: str

    @model_validator(mode='before')
    @classmethod
    def accept_relationship_rows(cls, data: Any) -> Any:
        # information_schema relationship rows use to_table / to_column
        if isinstance(data, dict) and 'table' not in data and 'to_table' in data:
            return {'table': data['to_table'], 'column': data.get('to_column')}
        return data


class ColumnInfo(BaseModel):
    """A single column of a table."""
    name: str
    data_type: str = ""
    nullable: bool = True
    key_type: Optional[str] = None  # PRI, UNI, MUL or empty
    foreign_key: Optional[ForeignKeyRef] = None

    @field_validator('nullable', mode='before')
    @classmethod
    def parse_nullable(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().upper() in ('YES', 'TRUE', '1')
        return value

    @field_validator('key_type', mode='before')
    @classmethod
    def normalize_key_type(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().upper() or None
        return value

    @property
    def is_primary_key(self) -> bool:
        return self.key_type == 'PRI'


class TableInfo(BaseModel):
    """A table with its ordered columns."""
    name: str
    columns: List[ColumnInfo] = Field(default_factory=list)
    primary_key: List[str] = Field(default_factory=list)

    def column_names(self) -> List[str]:
        return [col.name for col in self.columns]

    def find_column(self, name: str) -> Optional[ColumnInfo]:
        """Case-insensitive column lookup."""
        lowered = name.lower()
        for col in self.columns:
            if col.name.lower() == lowered:
                return col
        return None

    def primary_key_columns(self) -> List[str]:
        """Primary key columns, falling back to key_type markers."""
        if self.primary_key:
            return list(self.primary_key)
        return [col.name for col in self.columns if col.is_primary_key]

    def foreign_keys_to(self, table_name: str) -> List[ColumnInfo]:
        """Columns of this table whose foreign key targets table_name."""
        lowered = table_name.lower()
        return [
            col for col in self.columns
            if col.foreign_key and col.foreign_key.table.lower() == lowered
        ]


class SchemaCatalog(BaseModel):
    """Read-only catalog: tables -> columns, primary keys and foreign keys."""
    database: Optional[str] = None
    tables: List[TableInfo] = Field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "SchemaCatalog":
        """
        Build a catalog from a schema endpoint payload.

        Accepts either the bare schema object or the ``{"data": {...}}``
        envelope. Rows from a top-level ``relationships`` list are attached to
        columns that don't already carry a ``foreign_key``.
        """
        if 'tables' not in payload and isinstance(payload.get('data'), dict):
            payload = payload['data']

        catalog = cls.model_validate(payload)

        for rel in payload.get('relationships') or []:
            table = catalog.find_table(rel.get('from_table', ''))
            if not table:
                continue
            column = table.find_column(rel.get('from_column', ''))
            if column and column.foreign_key is None and rel.get('to_table'):
                column.foreign_key = ForeignKeyRef(table=rel['to_table'], column=rel.get('to_column', ''))

        return catalog

    def table_names(self) -> List[str]:
        return [table.name for table in self.tables]

    def find_table(self, name: str) -> Optional[TableInfo]:
        """Case-insensitive table lookup."""
        if not name:
            return None
        lowered = name.lower()
        for table in self.tables:
            if table.name.lower() == lowered:
                return table
        return None

    def column_names(self, table_name: str) -> List[str]:
        table = self.find_table(table_name)
        return table.column_names() if table else []

    def resolve_column(self, table_name: str, column: str) -> Optional[str]:
        """Canonical spelling of table_name.column, or None if unknown."""
        table = self.find_table(table_name)
        if not table:
            return None
        col = table.find_column(column)
        return col.name if col else None
