from typing import Dict, Iterable, Optional

from src.config import Settings, get_settings
from src.core.errors import InvalidArgumentError
from src.core.logger import get_logger
from src.dsl.schema import QueryRequest, TableSchema
from src.sql.builder import QueryBuilder
from src.sql.executor import Executor
from src.sql.paging import PagedResult, page_info

logger = get_logger(__name__)


class QueryService:
    """Turns query requests into builders and runs them through an executor.

    ``execute_query`` issues the count and the page as two separate
    statements. Nothing ties them to one snapshot, so under concurrent writes
    ``totalCount`` and the returned rows may disagree.
    """

    def __init__(self, executor: Optional[Executor] = None,
                 schemas: Iterable[TableSchema] = (), settings: Optional[Settings] = None):
        self.executor = executor
        self.schemas: Dict[str, TableSchema] = {s.name: s for s in schemas}
        self.settings = settings or get_settings()

    def create_query_builder(self, table: str) -> QueryBuilder:
        schema = self.schemas.get(table)
        return QueryBuilder(table, columns=schema.columns if schema else None)

    def create_from_request(self, table: str, request: Optional[QueryRequest]) -> QueryBuilder:
        builder = self.create_query_builder(table)
        if request is None:
            return builder
        schema = self.schemas.get(table)

        if request.fields:
            builder = builder.select(*request.fields)

        for field, condition in request.filters.items():
            if schema is not None:
                condition = schema.coerce(field, condition)
            builder = builder.where_condition(field, condition)

        search = request.search
        if search is not None:
            if search.fields:
                builder = builder.multi_field_search(search.fields, search.term)
            elif search.field:
                builder = builder.full_text_search(search.field, search.term, search.exact)

        for term in request.sort:
            builder = builder.order_by(term.field, term.direction)
            if term.nulls_first is not None:
                builder = builder.nulls(term.nulls_first)

        if request.pagination is not None:
            offset, limit = request.pagination.window()
            if limit is not None and limit > self.settings.max_page_size:
                raise InvalidArgumentError(
                    f"page size {limit} exceeds the maximum of {self.settings.max_page_size}"
                )
            if limit is not None:
                builder = builder.limit(limit)
            if offset is not None:
                builder = builder.offset(offset)

        return builder

    def execute_query(self, table: str, request: Optional[QueryRequest]) -> PagedResult:
        if self.executor is None:
            raise RuntimeError("QueryService was created without an executor")
        builder = self.create_from_request(table, request)
        style = getattr(self.executor, "style", self.settings.param_style)

        total = self.executor.fetch_scalar(builder.count_query(style)) or 0
        rows = self.executor.fetch_all(builder.build(style))
        logger.info("%s: %d of %d rows", table, len(rows), total)

        return PagedResult(data=rows, pagination=page_info(total, builder.offset_value, builder.limit_value))
