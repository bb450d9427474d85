# src/sql/operators.py
from enum import Enum

from src.core.errors import InvalidArgumentError

# Maps operator keys from request filters to SQL comparison symbols.
# For example, `{"age": {"gte": 18}}` renders as `age >= @p0`.
OPERATOR_MAP = {
    'eq': '=',       # Equal
    'ne': '!=',      # Not Equal
    'gt': '>',       # Greater Than
    'gte': '>=',     # Greater Than or Equal
    'lt': '<',       # Less Than
    'lte': '<=',     # Less Than or Equal
    'like': 'LIKE',  # Pattern match, wildcards supplied by the caller
}

# Symbols accepted in place of the keys above.
SYMBOL_ALIASES = {symbol: symbol for symbol in OPERATOR_MAP.values()}
SYMBOL_ALIASES['<>'] = '!='
SYMBOL_ALIASES['=='] = '='

# Every key a structured filter condition may carry.
FILTER_OPERATORS = (
    'eq', 'ne', 'gt', 'gte', 'lt', 'lte', 'in', 'between', 'like', 'search', 'isNull',
)

# Modifier keys that may accompany an operator key.
MODIFIERS = {'search': {'exact'}}


def resolve_operator(operator: str):
    """Return the SQL symbol for an operator key or symbol, or None if unknown."""
    if not isinstance(operator, str):
        return None
    token = operator.strip()
    if token.lower() in OPERATOR_MAP:
        return OPERATOR_MAP[token.lower()]
    return SYMBOL_ALIASES.get(token.upper())


class ParamStyle(str, Enum):
    AT = "at"              # @p0 (Spanner, BigQuery, SQL Server)
    NAMED = "named"        # :p0 (sqlite3, oracle)
    PYFORMAT = "pyformat"  # %(p0)s (psycopg)

    def placeholder(self, name: str) -> str:
        if self is ParamStyle.NAMED:
            return f":{name}"
        if self is ParamStyle.PYFORMAT:
            return f"%({name})s"
        return f"@{name}"


class SortDirection(str, Enum):
    ASC = "ASC"
    DESC = "DESC"

    @classmethod
    def parse(cls, value) -> "SortDirection":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            token = value.strip().upper()
            if token in cls.__members__:
                return cls[token]
        raise InvalidArgumentError(f"sort direction must be ASC or DESC, got {value!r}")
