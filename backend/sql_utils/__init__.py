"""SQL text utilities that don't depend on the query model."""

from .formatter import format_sql, truncate_sql

__all__ = ["format_sql", "truncate_sql"]
