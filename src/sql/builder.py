import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace
from typing import Any, Dict, FrozenSet, Optional, Tuple

from src.core.errors import InvalidArgumentError, UnsupportedOperatorError
from src.core.logger import get_logger
from src.dsl.schema import Between, Comparison, Condition, In, IsNull, Like, Search
from src.sql.operators import ParamStyle, SortDirection, resolve_operator

logger = get_logger(__name__)

IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)?$")

# Rendered in place of an IN list with no members; never true.
ALWAYS_FALSE = "1=0"


class _Binder:
    """Hands out sequential placeholder names while a query is rendered."""

    def __init__(self, style: ParamStyle):
        self.style = style
        self.params: Dict[str, Any] = {}

    def __call__(self, value: Any) -> str:
        name = f"p{len(self.params)}"
        self.params[name] = value
        return self.style.placeholder(name)


@dataclass(frozen=True)
class _Compare:
    field: str
    symbol: str
    value: Any

    def render(self, bind: _Binder) -> str:
        return f"{self.field} {self.symbol} {bind(self.value)}"


@dataclass(frozen=True)
class _InList:
    field: str
    values: Tuple[Any, ...]

    def render(self, bind: _Binder) -> str:
        if not self.values:
            return ALWAYS_FALSE
        return f"{self.field} IN ({', '.join(bind(v) for v in self.values)})"


@dataclass(frozen=True)
class _Between:
    field: str
    low: Any
    high: Any

    def render(self, bind: _Binder) -> str:
        low = bind(self.low)
        return f"{self.field} BETWEEN {low} AND {bind(self.high)}"


@dataclass(frozen=True)
class _NullCheck:
    field: str
    negated: bool = False

    def render(self, bind: _Binder) -> str:
        return f"{self.field} IS NOT NULL" if self.negated else f"{self.field} IS NULL"


@dataclass(frozen=True)
class _AnyOf:
    terms: Tuple[_Compare, ...]

    def render(self, bind: _Binder) -> str:
        return "(" + " OR ".join(term.render(bind) for term in self.terms) + ")"


@dataclass(frozen=True)
class _OrderTerm:
    field: str
    direction: SortDirection
    nulls_first: Optional[bool] = None

    def render(self) -> str:
        sql = f"{self.field} {self.direction.value}"
        if self.nulls_first is None:
            return sql
        return sql + (" NULLS FIRST" if self.nulls_first else " NULLS LAST")


@dataclass(frozen=True)
class CompiledQuery:
    sql: str
    bindings: Tuple[Tuple[str, Any], ...] = ()
    style: ParamStyle = ParamStyle.AT

    @property
    def params(self) -> Dict[str, Any]:
        return dict(self.bindings)

    def __iter__(self):
        # sql, params = builder.build()
        yield self.sql
        yield self.params

    def to_dict(self) -> Dict[str, Any]:
        return {"sql": self.sql, "params": self.params}


def _check_int(value: Any, name: str, minimum: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidArgumentError(f"{name} must be an integer, got {value!r}")
    if value < minimum:
        raise InvalidArgumentError(f"{name} must be >= {minimum}, got {value}")
    return value


def _is_blank(term: Optional[str]) -> bool:
    return term is None or not str(term).strip()


@dataclass(frozen=True)
class QueryBuilder:
    """Immutable SQL SELECT builder.

    Every method returns a new builder, so a partially built query can be
    shared and extended from several places. Values are never written into
    the SQL text; they are bound as ``p0, p1, ...`` in the order predicates
    were added. Table and column names are written verbatim and must be
    plain identifiers; pass ``columns`` to restrict them to a known set.
    """

    table: str
    columns: Optional[FrozenSet[str]] = None
    fields: Tuple[str, ...] = ()
    predicates: Tuple[Any, ...] = ()
    ordering: Tuple[_OrderTerm, ...] = ()
    limit_value: Optional[int] = None
    offset_value: Optional[int] = None

    def __post_init__(self):
        if not isinstance(self.table, str) or not IDENTIFIER.match(self.table):
            raise InvalidArgumentError(f"invalid table name: {self.table!r}")
        if self.columns is not None and not isinstance(self.columns, frozenset):
            object.__setattr__(self, "columns", frozenset(self.columns))

    def _column(self, name: str) -> str:
        if not isinstance(name, str) or not IDENTIFIER.match(name):
            raise InvalidArgumentError(f"invalid column name: {name!r}")
        if self.columns is not None and name not in self.columns:
            raise InvalidArgumentError(f"unknown column {name!r} for table {self.table!r}")
        return name

    def _add(self, predicate) -> "QueryBuilder":
        return replace(self, predicates=self.predicates + (predicate,))

    # projection

    def select(self, *fields: str) -> "QueryBuilder":
        return replace(self, fields=tuple(self._column(f) for f in fields))

    # predicates

    def where(self, field: str, operator: str, value: Any) -> "QueryBuilder":
        symbol = resolve_operator(operator)
        if symbol is None:
            raise UnsupportedOperatorError(field, operator)
        return self._add(_Compare(self._column(field), symbol, value))

    def where_equals(self, field: str, value: Any) -> "QueryBuilder":
        return self.where(field, "eq", value)

    def where_in(self, field: str, values: Iterable[Any]) -> "QueryBuilder":
        if isinstance(values, (str, bytes, Mapping)) or not isinstance(values, Iterable):
            raise InvalidArgumentError(f"where_in on {field!r} expects a list, got {values!r}")
        return self._add(_InList(self._column(field), tuple(values)))

    def where_between(self, field: str, low: Any, high: Any) -> "QueryBuilder":
        return self._add(_Between(self._column(field), low, high))

    def where_null(self, field: str) -> "QueryBuilder":
        return self._add(_NullCheck(self._column(field)))

    def where_not_null(self, field: str) -> "QueryBuilder":
        return self._add(_NullCheck(self._column(field), negated=True))

    def full_text_search(self, field: str, term: Optional[str], exact: bool = False) -> "QueryBuilder":
        if _is_blank(term):
            return self
        if exact:
            return self._add(_Compare(self._column(field), "=", term))
        return self._add(_Compare(self._column(field), "LIKE", f"%{term}%"))

    def multi_field_search(self, fields: Iterable[str], term: Optional[str]) -> "QueryBuilder":
        if isinstance(fields, (str, bytes, Mapping)):
            raise InvalidArgumentError(f"multi_field_search expects a list of fields, got {fields!r}")
        fields = list(fields or ())
        if not fields or _is_blank(term):
            return self
        pattern = f"%{term}%"
        return self._add(_AnyOf(tuple(_Compare(self._column(f), "LIKE", pattern) for f in fields)))

    def where_condition(self, field: str, condition: Condition) -> "QueryBuilder":
        if isinstance(condition, Comparison):
            return self.where(field, condition.op, condition.value)
        if isinstance(condition, In):
            return self.where_in(field, condition.values)
        if isinstance(condition, Between):
            return self.where_between(field, condition.low, condition.high)
        if isinstance(condition, Like):
            return self.where(field, "like", condition.pattern)
        if isinstance(condition, Search):
            return self.full_text_search(field, condition.term, condition.exact)
        if isinstance(condition, IsNull):
            return self.where_null(field) if condition.is_null else self.where_not_null(field)
        raise UnsupportedOperatorError(field, type(condition).__name__)

    # ordering

    def order_by(self, field: str, direction="ASC") -> "QueryBuilder":
        term = _OrderTerm(self._column(field), SortDirection.parse(direction))
        return replace(self, ordering=self.ordering + (term,))

    def order_by_asc(self, field: str) -> "QueryBuilder":
        return self.order_by(field, SortDirection.ASC)

    def order_by_desc(self, field: str) -> "QueryBuilder":
        return self.order_by(field, SortDirection.DESC)

    def order_by_multiple(self, sort_fields: Mapping[str, Any]) -> "QueryBuilder":
        builder = self
        for f, direction in (sort_fields or {}).items():
            builder = builder.order_by(f, direction)
        return builder

    def nulls(self, nulls_first: bool = True) -> "QueryBuilder":
        if not self.ordering:
            raise InvalidArgumentError("nulls() needs a preceding order_by()")
        last = replace(self.ordering[-1], nulls_first=bool(nulls_first))
        return replace(self, ordering=self.ordering[:-1] + (last,))

    # window

    def limit(self, n: int) -> "QueryBuilder":
        return replace(self, limit_value=_check_int(n, "limit", 1))

    def offset(self, n: int) -> "QueryBuilder":
        return replace(self, offset_value=_check_int(n, "offset", 0))

    def paginate(self, page: int, page_size: int) -> "QueryBuilder":
        _check_int(page, "page", 1)
        _check_int(page_size, "page_size", 1)
        return self.limit(page_size).offset((page - 1) * page_size)

    # terminal

    def _where_clause(self, bind: _Binder) -> str:
        if not self.predicates:
            return ""
        return " WHERE " + " AND ".join(p.render(bind) for p in self.predicates)

    def build(self, style=ParamStyle.AT) -> CompiledQuery:
        if self.offset_value is not None and self.limit_value is None:
            raise InvalidArgumentError("offset() needs a limit()")
        bind = _Binder(_style(style))
        sql = f"SELECT {', '.join(self.fields) or '*'} FROM {self.table}"
        sql += self._where_clause(bind)
        if self.ordering:
            sql += " ORDER BY " + ", ".join(term.render() for term in self.ordering)
        if self.limit_value is not None:
            sql += f" LIMIT {self.limit_value}"
        if self.offset_value is not None:
            sql += f" OFFSET {self.offset_value}"
        logger.debug("compiled %s (%d params)", sql, len(bind.params))
        return CompiledQuery(sql, tuple(bind.params.items()), bind.style)

    def build_query(self, style=ParamStyle.AT) -> str:
        return self.build(style).sql

    def get_parameters(self) -> Dict[str, Any]:
        return self.build().params

    def count_query(self, style=ParamStyle.AT) -> CompiledQuery:
        """Same predicates and parameters, without projection, ordering or window."""
        bind = _Binder(_style(style))
        sql = f"SELECT COUNT(1) AS count FROM {self.table}" + self._where_clause(bind)
        return CompiledQuery(sql, tuple(bind.params.items()), bind.style)


def _style(style) -> ParamStyle:
    try:
        return ParamStyle(style)
    except ValueError:
        raise InvalidArgumentError(f"unknown placeholder style: {style!r}") from None
