"""
Mutable in-memory representation of one SELECT query.

All mutators are synchronous, validate before touching state and either apply
completely or raise a QueryBuilderError leaving the model unchanged. Removing a
table cascades to everything that references its key, so dangling references
cannot exist.
"""

import logging
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, PrivateAttr, ValidationError

from .errors import (
    AliasCollisionError,
    DuplicateTableError,
    InvalidMutationError,
    UnknownTableError,
)
from .model_types import (
    ConditionSpec,
    Direction,
    JoinSpec,
    OrderSpec,
    TableRef,
    references_table,
    requalify,
)
from .schema_types import SchemaCatalog

logger = logging.getLogger(__name__)


class QueryModel(BaseModel):
    """
    Structured SELECT query: tables, column selections, joins, conditions,
    grouping, ordering and pagination.

    Column selection is tri-state per table key:
      - None: all columns, not explicitly configured (default after add_table)
      - []: explicitly empty
      - [..]: explicit columns in SELECT order

    The pydantic field set doubles as the persisted query state.
    """

    tables: List[TableRef] = Field(default_factory=list)
    columns: Dict[str, Optional[List[str]]] = Field(default_factory=dict)
    joins: List[JoinSpec] = Field(default_factory=list)
    conditions: List[ConditionSpec] = Field(default_factory=list)
    order_by: List[OrderSpec] = Field(default_factory=list)
    group_by: List[str] = Field(default_factory=list)
    limit: Optional[int] = Field(default=None, ge=0)
    offset: Optional[int] = Field(default=None, ge=0)

    _catalog: Optional[SchemaCatalog] = PrivateAttr(default=None)
    _next_ordinal: int = PrivateAttr(default=0)

    def __init__(self, catalog: Optional[SchemaCatalog] = None, **data: Any):
        super().__init__(**data)
        self._catalog = catalog

    def model_post_init(self, __context: Any) -> None:
        self._next_ordinal = max((t.ordinal for t in self.tables), default=-1) + 1

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def to_state(self) -> Dict[str, Any]:
        """Serializable query state (what saved queries store)."""
        return self.model_dump(mode='json')

    @classmethod
    def from_state(cls, state: Dict[str, Any], catalog: Optional[SchemaCatalog] = None) -> "QueryModel":
        model = cls.model_validate(state)
        model._catalog = catalog
        return model

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    @property
    def catalog(self) -> Optional[SchemaCatalog]:
        return self._catalog

    def attach_catalog(self, catalog: Optional[SchemaCatalog]) -> None:
        self._catalog = catalog

    def table_keys(self) -> List[str]:
        return [table.key for table in self.tables]

    def get_table(self, key: str) -> Optional[TableRef]:
        for table in self.tables:
            if table.key == key:
                return table
        return None

    def has_table(self, key: str) -> bool:
        return self.get_table(key) is not None

    def _require_table(self, key: str) -> TableRef:
        table = self.get_table(key)
        if table is None:
            raise UnknownTableError(f"Table '{key}' is not part of the query", key)
        return table

    def _schema_columns(self, table_name: str) -> List[str]:
        if self._catalog is None:
            return []
        return self._catalog.column_names(table_name)

    def resolved_columns(self, key: str) -> List[str]:
        """Columns the table contributes, expanding the "all columns" default."""
        table = self._require_table(key)
        selection = self.columns.get(key)
        if selection is None:
            return self._schema_columns(table.name)
        return list(selection)

    def all_column_refs(self) -> List[str]:
        """Every "key.column" reference offered for conditions, ordering and grouping."""
        refs = []
        for table in self.tables:
            selection = self.columns.get(table.key)
            cols = selection or self._schema_columns(table.name)
            refs.extend(f"{table.key}.{col}" for col in cols)
        return refs

    # ------------------------------------------------------------------
    # Tables
    # ------------------------------------------------------------------

    def _self_join_alias(self, name: str) -> str:
        count = sum(1 for table in self.tables if table.name == name)
        taken = set(self.table_keys())
        n = count + 1
        while f"{name}_{n}" in taken:
            n += 1
        return f"{name}_{n}"

    def add_table(self, name: str, force_self_join: bool = False) -> TableRef:
        """
        Add a table to the query with every column selected.

        Adding a name that is already present raises DuplicateTableError unless
        force_self_join is set, in which case the new entry is aliased
        ``<name>_<n>`` with n = number of existing entries for that name + 1.
        """
        name = (name or "").strip()
        if not name:
            raise InvalidMutationError("Table name is required")

        if self._catalog is not None:
            schema_table = self._catalog.find_table(name)
            if schema_table:
                name = schema_table.name

        alias = None
        duplicate = name in self.table_keys() or any(t.name == name for t in self.tables)
        if duplicate:
            if not force_self_join:
                raise DuplicateTableError(f"Table '{name}' is already in the query", name)
            alias = self._self_join_alias(name)

        table = TableRef(name=name, alias=alias, ordinal=self._next_ordinal)
        self._next_ordinal += 1
        self.tables.append(table)
        self.columns[table.key] = None

        logger.debug(f"[QueryModel] Added table {name} as {table.key}")
        return table

    def remove_table(self, key: str) -> None:
        """Remove a table and everything that references its key."""
        self._require_table(key)

        self.tables = [t for t in self.tables if t.key != key]
        self.columns.pop(key, None)
        self.joins = [j for j in self.joins if not j.references(key)]
        self.conditions = [c for c in self.conditions if not references_table(c.column, key)]
        self.order_by = [o for o in self.order_by if not references_table(o.column, key)]
        self.group_by = [g for g in self.group_by if not references_table(g, key)]

        logger.debug(f"[QueryModel] Removed table {key}")

    def set_alias(self, key: str, new_alias: Optional[str]) -> TableRef:
        """
        Rename a table's key. An empty alias reverts the key to the table name.

        Column selections, joins and every "key." prefix in conditions, order
        and group entries are rewritten together.
        """
        table = self._require_table(key)
        new_alias = (new_alias or "").strip() or None
        new_key = new_alias or table.name

        if new_key == key:
            table.alias = new_alias
            return table

        if new_key in self.table_keys():
            raise AliasCollisionError(f"Alias '{new_key}' is already used by another table", new_key)

        tables = [
            t.model_copy(update={'alias': new_alias}) if t.key == key else t
            for t in self.tables
        ]
        columns = {(new_key if k == key else k): v for k, v in self.columns.items()}
        joins = []
        for join in self.joins:
            updates = {}
            if join.left_table == key:
                updates['left_table'] = new_key
            if join.right_table == key:
                updates['right_table'] = new_key
            joins.append(join.model_copy(update=updates) if updates else join)
        conditions = [
            c.model_copy(update={'column': requalify(c.column, key, new_key)})
            for c in self.conditions
        ]
        order_by = [
            o.model_copy(update={'column': requalify(o.column, key, new_key)})
            for o in self.order_by
        ]
        group_by = [requalify(g, key, new_key) for g in self.group_by]

        self.tables = tables
        self.columns = columns
        self.joins = joins
        self.conditions = conditions
        self.order_by = order_by
        self.group_by = group_by

        logger.debug(f"[QueryModel] Renamed {key} -> {new_key}")
        return self.get_table(new_key)

    # ------------------------------------------------------------------
    # Columns
    # ------------------------------------------------------------------

    def toggle_column(self, key: str, column: str) -> bool:
        """
        Select or deselect one column. Returns True if the column is now selected.

        A key that isn't in the query but names a catalog table is added first.
        """
        if not self.has_table(key):
            if self._catalog is not None and self._catalog.find_table(key):
                key = self.add_table(key).key
            else:
                raise UnknownTableError(f"Table '{key}' is not part of the query", key)

        selection = self.resolved_columns(key)
        if column in selection:
            selection.remove(column)
            selected = False
        else:
            selection.append(column)
            selected = True

        self.columns[key] = selection
        return selected

    def set_columns(self, key: str, columns: Optional[List[str]]) -> None:
        """Replace a table's selection; None restores the all-columns default."""
        self._require_table(key)
        if columns is None:
            self.columns[key] = None
            return
        deduped: List[str] = []
        for col in columns:
            if col not in deduped:
                deduped.append(col)
        self.columns[key] = deduped

    def reorder_tables(self, keys: List[str]) -> None:
        """
        Put the tables in the given key order. Only a permutation of the current
        keys is accepted; the first key becomes the FROM table.
        """
        if sorted(keys) != sorted(self.table_keys()):
            raise InvalidMutationError("Table order must list every table key exactly once")
        by_key = {table.key: table for table in self.tables}
        self.tables = [by_key[key] for key in keys]

    def select_all(self) -> None:
        for table in self.tables:
            self.columns[table.key] = None

    def select_none(self) -> None:
        for table in self.tables:
            self.columns[table.key] = []

    # ------------------------------------------------------------------
    # Joins
    # ------------------------------------------------------------------

    def add_join(self, spec: JoinSpec) -> JoinSpec:
        self._require_table(spec.left_table)
        self._require_table(spec.right_table)
        self.joins.append(spec)
        return spec

    def update_join(self, index: int, **changes: Any) -> JoinSpec:
        current = self._item_at(self.joins, index, "join")
        updated = self._revalidate(JoinSpec, current, changes)
        self._require_table(updated.left_table)
        self._require_table(updated.right_table)
        self.joins[index] = updated
        return updated

    def remove_join(self, index: int) -> JoinSpec:
        self._item_at(self.joins, index, "join")
        return self.joins.pop(index)

    # ------------------------------------------------------------------
    # Conditions
    # ------------------------------------------------------------------

    def add_condition(self, spec: ConditionSpec) -> ConditionSpec:
        self.conditions.append(spec)
        return spec

    def update_condition(self, index: int, **changes: Any) -> ConditionSpec:
        current = self._item_at(self.conditions, index, "condition")
        updated = self._revalidate(ConditionSpec, current, changes)
        self.conditions[index] = updated
        return updated

    def remove_condition(self, index: int) -> ConditionSpec:
        self._item_at(self.conditions, index, "condition")
        return self.conditions.pop(index)

    # ------------------------------------------------------------------
    # Ordering and grouping
    # ------------------------------------------------------------------

    def _find_order(self, column: str) -> Optional[OrderSpec]:
        for order in self.order_by:
            if order.column == column:
                return order
        return None

    def add_order(self, column: str, direction: Direction = 'ASC') -> OrderSpec:
        existing = self._find_order(column)
        if existing:
            return existing
        order = OrderSpec(column=column, direction=direction)
        self.order_by.append(order)
        return order

    def remove_order(self, column: str) -> None:
        self.order_by = [o for o in self.order_by if o.column != column]

    def toggle_direction(self, column: str) -> OrderSpec:
        order = self._find_order(column)
        if order is None:
            raise InvalidMutationError(f"Column '{column}' is not in ORDER BY")
        order.direction = 'DESC' if order.direction == 'ASC' else 'ASC'
        return order

    def add_group(self, column: str) -> None:
        if column not in self.group_by:
            self.group_by.append(column)

    def remove_group(self, column: str) -> None:
        self.group_by = [g for g in self.group_by if g != column]

    # ------------------------------------------------------------------
    # Pagination
    # ------------------------------------------------------------------

    def set_limit(self, limit: Optional[int]) -> None:
        self.limit = self._non_negative(limit, "LIMIT")

    def set_offset(self, offset: Optional[int]) -> None:
        self.offset = self._non_negative(offset, "OFFSET")

    def clear(self) -> None:
        """Reset to an empty query (ordinals keep counting)."""
        self.tables = []
        self.columns = {}
        self.joins = []
        self.conditions = []
        self.order_by = []
        self.group_by = []
        self.limit = None
        self.offset = None

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _item_at(items: list, index: int, what: str):
        if not 0 <= index < len(items):
            raise InvalidMutationError(f"No {what} at index {index}")
        return items[index]

    @staticmethod
    def _revalidate(spec_type, current: BaseModel, changes: Dict[str, Any]):
        unknown = set(changes) - set(spec_type.model_fields)
        if unknown:
            raise InvalidMutationError(f"Unknown field(s): {', '.join(sorted(unknown))}")
        try:
            return spec_type.model_validate({**current.model_dump(), **changes})
        except ValidationError as e:
            raise InvalidMutationError(f"Invalid {spec_type.__name__} update: {e.errors()[0]['msg']}")

    @staticmethod
    def _non_negative(value: Optional[int], label: str) -> Optional[int]:
        if value is None:
            return None
        try:
            value = int(value)
        except (TypeError, ValueError):
            raise InvalidMutationError(f"{label} must be an integer")
        if value < 0:
            raise InvalidMutationError(f"{label} must be non-negative")
        return value
