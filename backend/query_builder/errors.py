"""
Custom exceptions for query model mutations.
"""


class QueryBuilderError(Exception):
    """Base exception for rejected query model mutations."""
    pass


class DuplicateTableError(QueryBuilderError):
    """Table is already part of the query; retry with force_self_join=True."""
    def __init__(self, message: str, table: str):
        super().__init__(message)
        self.table = table


class AliasCollisionError(QueryBuilderError):
    """New alias would clash with another table key."""
    def __init__(self, message: str, alias: str):
        super().__init__(message)
        self.alias = alias


class UnknownTableError(QueryBuilderError):
    """Referenced table key is not part of the query."""
    def __init__(self, message: str, key: str):
        super().__init__(message)
        self.key = key


class InvalidMutationError(QueryBuilderError):
    """Mutation arguments are out of range or malformed."""
    pass
