import math
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from src.core.errors import InvalidArgumentError


class PageInfo(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    total_count: int
    current_page: int
    page_size: Optional[int] = None
    total_pages: int
    has_more: bool


class PagedResult(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    data: List[Dict[str, Any]]
    pagination: PageInfo

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


def total_pages(total_count: int, page_size: int) -> int:
    return math.ceil(total_count / page_size)


def page_info(total_count: int, offset: Optional[int] = None, limit: Optional[int] = None) -> PageInfo:
    """Derive page metadata from a row window.

    With a limit, ``current_page = offset // limit + 1`` and
    ``has_more = current_page < total_pages``. Without one the whole result
    is a single page.
    """
    if total_count < 0:
        raise InvalidArgumentError(f"total_count must be >= 0, got {total_count}")
    offset = offset or 0
    if offset < 0:
        raise InvalidArgumentError(f"offset must be >= 0, got {offset}")

    if limit is None:
        pages = 1 if total_count else 0
        return PageInfo(total_count=total_count, current_page=1, page_size=None,
                        total_pages=pages, has_more=False)
    if limit < 1:
        raise InvalidArgumentError(f"limit must be >= 1, got {limit}")

    current = offset // limit + 1
    pages = total_pages(total_count, limit)
    return PageInfo(total_count=total_count, current_page=current, page_size=limit,
                    total_pages=pages, has_more=current < pages)
