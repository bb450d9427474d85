from typing import Any, Mapping, Optional, Sequence

from src.config import get_settings
from src.core.errors import InvalidArgumentError
from src.dsl.schema import QueryRequest

# Keys with a fixed meaning; anything else is an equality filter.
RESERVED = {"search", "sortBy", "sortDirection", "page", "pageSize"}


def _to_int(name: str, raw: Any) -> int:
    try:
        return int(str(raw).strip())
    except ValueError:
        raise InvalidArgumentError(f"{name} must be an integer, got {raw!r}") from None


def parse_query_params(params: Mapping[str, Any], search_fields: Sequence[str] = (),
                       default_page_size: Optional[int] = None) -> QueryRequest:
    """Build a request from flat query-string parameters.

    ``?status=active&search=ann&sortBy=name&sortDirection=desc&page=2``
    """
    filters = {k: v for k, v in params.items() if k not in RESERVED}

    search = None
    term = (params.get("search") or "").strip()
    if term and search_fields:
        search = {"fields": list(search_fields), "term": term}

    sort = []
    sort_by = (params.get("sortBy") or "").strip()
    if sort_by:
        sort.append({"field": sort_by, "direction": params.get("sortDirection") or "asc"})

    if default_page_size is None:
        default_page_size = get_settings().default_page_size
    page = _to_int("page", params.get("page", 1))
    page_size = _to_int("pageSize", params.get("pageSize", default_page_size))

    return QueryRequest(
        filters=filters,
        search=search,
        sort=sort,
        pagination={"page": page, "page_size": page_size},
    )
