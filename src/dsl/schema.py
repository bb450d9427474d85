from collections.abc import Mapping
from typing import Any, ClassVar, Dict, List, Optional, Tuple, Union

from dateutil.parser import isoparse
from pydantic import BaseModel, ConfigDict, field_validator, model_validator
from pydantic.alias_generators import to_camel

from src.core.errors import InvalidArgumentError, UnsupportedOperatorError
from src.sql.operators import FILTER_OPERATORS, MODIFIERS, SortDirection


class _Model(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


# Filter conditions. One class per operator key; a request filter resolves
# to exactly one of them.

class Comparison(_Model):
    op: ClassVar[str]
    value: Any


class Eq(Comparison):
    op: ClassVar[str] = "eq"


class Ne(Comparison):
    op: ClassVar[str] = "ne"


class Gt(Comparison):
    op: ClassVar[str] = "gt"


class Gte(Comparison):
    op: ClassVar[str] = "gte"


class Lt(Comparison):
    op: ClassVar[str] = "lt"


class Lte(Comparison):
    op: ClassVar[str] = "lte"


class In(_Model):
    values: List[Any]


class Between(_Model):
    low: Any
    high: Any


class Like(_Model):
    pattern: str


class Search(_Model):
    term: str
    exact: bool = False


class IsNull(_Model):
    is_null: bool = True


Condition = Union[Eq, Ne, Gt, Gte, Lt, Lte, In, Between, Like, Search, IsNull]

COMPARISONS = {cls.op: cls for cls in (Eq, Ne, Gt, Gte, Lt, Lte)}
_CONDITION_TYPES = (Comparison, In, Between, Like, Search, IsNull)
_ALL_MODIFIERS = set().union(*MODIFIERS.values())


def parse_condition(field: str, raw: Any) -> Condition:
    """Turn a raw filter value into a typed condition.

    A plain value means equality. A mapping must carry exactly one operator
    key, optionally with the modifiers that operator allows
    (``{"search": "x", "exact": True}``).
    """
    if isinstance(raw, _CONDITION_TYPES):
        return raw
    if not isinstance(raw, Mapping):
        return Eq(value=raw)

    for key in raw:
        if key not in FILTER_OPERATORS and key not in _ALL_MODIFIERS:
            raise UnsupportedOperatorError(field, key)

    ops = [key for key in raw if key in FILTER_OPERATORS]
    if len(ops) != 1:
        raise InvalidArgumentError(
            f"filter on {field!r} must carry exactly one operator, got {ops or 'none'}"
        )
    op = ops[0]
    stray = set(raw) - {op} - MODIFIERS.get(op, set())
    if stray:
        raise InvalidArgumentError(f"filter on {field!r}: {sorted(stray)} not allowed with {op!r}")

    value = raw[op]
    if op == "in":
        if not isinstance(value, (list, tuple)):
            raise InvalidArgumentError(f"filter on {field!r}: 'in' expects a list, got {value!r}")
        return In(values=list(value))
    if op == "between":
        if not isinstance(value, (list, tuple)) or len(value) != 2:
            raise InvalidArgumentError(f"filter on {field!r}: 'between' expects [low, high], got {value!r}")
        return Between(low=value[0], high=value[1])
    if op in ("like", "search") and not isinstance(value, str):
        raise InvalidArgumentError(f"filter on {field!r}: {op!r} expects a string, got {value!r}")
    if op == "like":
        return Like(pattern=value)
    if op == "search":
        exact = raw.get("exact", False)
        if not isinstance(exact, bool):
            raise InvalidArgumentError(f"filter on {field!r}: 'exact' must be a boolean, got {exact!r}")
        return Search(term=value, exact=exact)
    if op == "isNull":
        if not isinstance(value, bool):
            raise InvalidArgumentError(f"filter on {field!r}: 'isNull' must be a boolean, got {value!r}")
        return IsNull(is_null=value)
    return COMPARISONS[op](value=value)


class SearchCriteria(_Model):
    fields: List[str] = []
    field: Optional[str] = None
    term: Optional[str] = None
    exact: bool = False


class SortTerm(_Model):
    field: str
    direction: SortDirection = SortDirection.ASC
    nulls_first: Optional[bool] = None

    @field_validator("direction", mode="before")
    @classmethod
    def parse_direction(cls, v):
        return SortDirection.parse(v)


class Pagination(_Model):
    page: Optional[int] = None
    page_size: Optional[int] = None
    offset: Optional[int] = None
    limit: Optional[int] = None

    @field_validator("page", "page_size", "offset", "limit", mode="before")
    @classmethod
    def no_booleans(cls, v, info):
        if isinstance(v, bool):
            raise InvalidArgumentError(f"{info.field_name} must be an integer, got {v!r}")
        return v

    @model_validator(mode="after")
    def check_bounds(self):
        page_based = self.page is not None or self.page_size is not None
        if page_based:
            if self.offset is not None or self.limit is not None:
                raise InvalidArgumentError("pagination takes page/pageSize or offset/limit, not both")
            if self.page is None or self.page_size is None:
                raise InvalidArgumentError("page and pageSize must be given together")
            if self.page < 1:
                raise InvalidArgumentError(f"page must be >= 1, got {self.page}")
            if self.page_size < 1:
                raise InvalidArgumentError(f"pageSize must be >= 1, got {self.page_size}")
        else:
            if self.offset is not None and self.limit is None:
                raise InvalidArgumentError("offset needs a limit")
            if self.limit is not None and self.limit < 1:
                raise InvalidArgumentError(f"limit must be >= 1, got {self.limit}")
            if self.offset is not None and self.offset < 0:
                raise InvalidArgumentError(f"offset must be >= 0, got {self.offset}")
        return self

    def window(self) -> Tuple[Optional[int], Optional[int]]:
        """Return ``(offset, limit)``."""
        if self.page is not None:
            return (self.page - 1) * self.page_size, self.page_size
        return self.offset, self.limit


class QueryRequest(_Model):
    model_config = ConfigDict(extra="forbid")

    fields: List[str] = []
    filters: Dict[str, Condition] = {}
    search: Optional[SearchCriteria] = None
    sort: List[SortTerm] = []
    pagination: Optional[Pagination] = None

    @field_validator("filters", mode="before")
    @classmethod
    def parse_filters(cls, v):
        if v is None:
            return {}
        if not isinstance(v, Mapping):
            raise InvalidArgumentError(f"filters must be a mapping, got {type(v).__name__}")
        return {field: parse_condition(field, raw) for field, raw in v.items()}

    @field_validator("sort", mode="before")
    @classmethod
    def parse_sort(cls, v):
        if v is None:
            return []
        if isinstance(v, Mapping):
            return [{"field": field, "direction": direction} for field, direction in v.items()]
        return v


class TableSchema(BaseModel):
    name: str
    columns: List[str]
    temporal_columns: List[str] = []

    @model_validator(mode="after")
    def temporal_subset(self):
        unknown = set(self.temporal_columns) - set(self.columns)
        if unknown:
            raise ValueError(f"temporal columns not in schema: {sorted(unknown)}")
        return self

    def coerce(self, field: str, condition: Condition) -> Condition:
        """Parse ISO-8601 strings bound against temporal columns into datetimes."""
        if field not in self.temporal_columns:
            return condition
        if isinstance(condition, Comparison):
            return condition.model_copy(update={"value": _to_datetime(field, condition.value)})
        if isinstance(condition, In):
            return condition.model_copy(update={"values": [_to_datetime(field, v) for v in condition.values]})
        if isinstance(condition, Between):
            return condition.model_copy(update={
                "low": _to_datetime(field, condition.low),
                "high": _to_datetime(field, condition.high),
            })
        return condition


def _to_datetime(field: str, value: Any) -> Any:
    if not isinstance(value, str):
        return value
    try:
        return isoparse(value)
    except ValueError:
        raise InvalidArgumentError(f"{field!r} expects an ISO-8601 timestamp, got {value!r}") from None
