"""
Join suggestions from schema foreign keys and naming conventions.

Suggestions are candidates only; applying one is an explicit add_join call.
"""

import logging
from itertools import combinations
from typing import FrozenSet, List, Optional, Set, Tuple

from .model_types import JoinSpec, TableRef
from .query_model import QueryModel
from .schema_types import SchemaCatalog, TableInfo

logger = logging.getLogger(__name__)

JoinKey = FrozenSet[Tuple[str, str]]


def join_key(join: JoinSpec) -> JoinKey:
    """Orientation-independent identity of a join's two (table, column) ends."""
    return frozenset((
        (join.left_table, join.left_column.lower()),
        (join.right_table, join.right_column.lower()),
    ))


def suggest_joins(model: QueryModel, catalog: Optional[SchemaCatalog] = None) -> List[JoinSpec]:
    """
    Candidate INNER joins between every pair of tables in the model.

    For each pair (A, B) in table order:
      1. foreign keys on A pointing at B,
      2. foreign keys on B pointing at A,
      3. a column in B named ``<A.name>_<pk>`` for A's single-column primary
         key (then the same with A and B swapped).

    Anything already joined, or already suggested in this pass, is skipped.
    Without a catalog there is nothing to suggest.
    """
    catalog = catalog or model.catalog
    if catalog is None:
        return []

    seen: Set[JoinKey] = {join_key(j) for j in model.joins}
    suggestions: List[JoinSpec] = []

    def offer(spec: JoinSpec) -> None:
        key = join_key(spec)
        if key in seen:
            return
        seen.add(key)
        suggestions.append(spec)

    for a, b in combinations(model.tables, 2):
        info_a = catalog.find_table(a.name)
        info_b = catalog.find_table(b.name)
        if info_a is None or info_b is None:
            continue

        for spec in _foreign_key_joins(a, info_a, b, info_b):
            offer(spec)
        for spec in _foreign_key_joins(b, info_b, a, info_a):
            offer(spec)

        for spec in _naming_joins(a, info_a, b, info_b):
            offer(spec)
        for spec in _naming_joins(b, info_b, a, info_a):
            offer(spec)

    logger.debug(f"[suggest] {len(suggestions)} join suggestion(s) for {model.table_keys()}")
    return suggestions


def _foreign_key_joins(
    source: TableRef, source_info: TableInfo, target: TableRef, target_info: TableInfo
) -> List[JoinSpec]:
    """source.fk_column = target.referenced_column for each FK from source to target."""
    specs = []
    for col in source_info.foreign_keys_to(target_info.name):
        target_col = target_info.find_column(col.foreign_key.column)
        specs.append(JoinSpec(
            type='INNER',
            left_table=source.key,
            left_column=col.name,
            right_table=target.key,
            right_column=target_col.name if target_col else col.foreign_key.column,
        ))
    return specs


def _naming_joins(
    owner: TableRef, owner_info: TableInfo, other: TableRef, other_info: TableInfo
) -> List[JoinSpec]:
    """other.<owner>_<pk> = owner.pk when owner has a single-column primary key."""
    pk = owner_info.primary_key_columns()
    if len(pk) != 1:
        return []

    candidate = other_info.find_column(f"{owner_info.name}_{pk[0]}")
    if candidate is None:
        return []

    return [JoinSpec(
        type='INNER',
        left_table=other.key,
        left_column=candidate.name,
        right_table=owner.key,
        right_column=pk[0],
    )]
