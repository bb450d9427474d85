from typing import Any


class QueryError(Exception):
    """Base class for every error raised while building a query."""


class InvalidArgumentError(QueryError):
    """A bound, direction, identifier or request shape was rejected."""


class UnsupportedOperatorError(QueryError):
    def __init__(self, field: str, operator: Any):
        self.field = field
        self.operator = operator
        super().__init__(f"unsupported operator {operator!r} for field {field!r}")
