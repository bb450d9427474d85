import pandas as pd
import pytest

from src.config import Settings
from src.core.errors import InvalidArgumentError
from src.dsl.schema import QueryRequest, TableSchema
from src.sql.executor import SqliteExecutor
from src.sql.operators import ParamStyle
from src.sql.service import QueryService

USERS = TableSchema(
    name='users',
    columns=['id', 'name', 'email', 'status', 'age', 'created_at'],
    temporal_columns=['created_at'],
)


@pytest.fixture
def service():
    df = pd.DataFrame({
        'id': range(1, 13),
        'name': ['Ann', 'Bob', 'Cloe', 'Dan', 'Eve', 'Fay', 'Gus', 'Hal', 'Ivy', 'Jon', 'Kim', 'Lou'],
        'email': ['a@x', 'b@x', None, 'd@x', 'e@x', None, 'g@x', 'h@x', 'i@x', 'j@x', 'k@x', 'l@x'],
        'status': ['active', 'pending', 'active', 'inactive'] * 3,
        'age': [34, 27, 45, 19, 52, 31, 23, 38, 61, 29, 41, 26],
        'created_at': pd.date_range('2023-01-01', periods=12, freq='MS'),
    })
    executor = SqliteExecutor()
    executor.load_frame('users', df)
    return QueryService(executor, [USERS], Settings(max_page_size=50))


def test_operator_coverage_scenario():
    svc = QueryService(settings=Settings())
    req = QueryRequest.model_validate({
        'filters': {'age': {'gte': 21}, 'status': {'in': ['active', 'pending']}},
        'sort': [{'field': 'created_at', 'direction': 'DESC'}],
        'pagination': {'page': 2, 'pageSize': 10},
    })
    q = svc.create_from_request('users', req).build()
    assert 'age >= @p0' in q.sql
    assert 'status IN (@p1, @p2)' in q.sql
    assert 'ORDER BY created_at DESC' in q.sql
    assert 'LIMIT 10' in q.sql and 'OFFSET 10' in q.sql
    assert q.params == {'p0': 21, 'p1': 'active', 'p2': 'pending'}


def test_request_order_of_clauses():
    svc = QueryService(settings=Settings())
    req = QueryRequest.model_validate({
        'fields': ['id'],
        'filters': {'status': 'active', 'email': {'isNull': False}},
        'search': {'field': 'name', 'term': 'an'},
        'sort': {'age': 'asc'},
        'pagination': {'offset': 3, 'limit': 4},
    })
    assert svc.create_from_request('users', req).build_query() == (
        'SELECT id FROM users WHERE status = @p0 AND email IS NOT NULL AND name LIKE @p1 '
        'ORDER BY age ASC LIMIT 4 OFFSET 3'
    )


def test_unknown_column_rejected(service):
    req = QueryRequest.model_validate({'filters': {'password': 'x'}})
    with pytest.raises(InvalidArgumentError):
        service.create_from_request('users', req)


def test_page_size_cap(service):
    req = QueryRequest.model_validate({'pagination': {'page': 1, 'pageSize': 51}})
    with pytest.raises(InvalidArgumentError):
        service.create_from_request('users', req)


def test_execute_paged(service):
    req = QueryRequest.model_validate({
        'fields': ['id', 'name'],
        'filters': {'status': {'in': ['active', 'pending']}},
        'sort': [{'field': 'id', 'direction': 'asc'}],
        'pagination': {'page': 2, 'pageSize': 4},
    })
    result = service.execute_query('users', req)
    assert [r['id'] for r in result.data] == [6, 7, 9, 10]
    assert result.pagination.total_count == 9
    assert result.pagination.current_page == 2
    assert result.pagination.total_pages == 3
    assert result.pagination.has_more is True


def test_execute_search_and_nulls(service):
    req = QueryRequest.model_validate({
        'filters': {'email': {'isNull': True}},
        'sort': [{'field': 'id', 'direction': 'DESC'}],
    })
    result = service.execute_query('users', req)
    assert [r['name'] for r in result.data] == ['Fay', 'Cloe']
    assert result.data[0]['email'] is None
    assert result.pagination.total_pages == 1

    req = QueryRequest.model_validate({'search': {'fields': ['name', 'email'], 'term': 'o'}})
    names = {r['name'] for r in service.execute_query('users', req).data}
    assert names == {'Bob', 'Cloe', 'Jon', 'Lou'}


def test_execute_temporal_between(service):
    req = QueryRequest.model_validate({
        'fields': ['id'],
        'filters': {'created_at': {'between': ['2023-03-01', '2023-05-01']}},
    })
    assert [r['id'] for r in service.execute_query('users', req).data] == [3, 4, 5]


def test_empty_in_list_returns_nothing(service):
    req = QueryRequest.model_validate({'filters': {'status': {'in': []}}})
    result = service.execute_query('users', req)
    assert result.data == []
    assert result.pagination.total_count == 0


def test_injection_attempt_is_just_a_value(service):
    req = QueryRequest.model_validate({'filters': {'name': "x' OR '1'='1"}})
    assert service.execute_query('users', req).pagination.total_count == 0


def test_executor_requires_named_style(service):
    q = service.create_query_builder('users').build(ParamStyle.AT)
    with pytest.raises(InvalidArgumentError):
        service.executor.fetch_all(q)


def test_execute_without_executor():
    with pytest.raises(RuntimeError):
        QueryService(settings=Settings()).execute_query('users', None)


def test_offset_without_limit_rejected(service):
    with pytest.raises(InvalidArgumentError):
        service.execute_query('users', QueryRequest.model_validate({'pagination': {'offset': 1}}))
    req = QueryRequest.model_validate({'pagination': {'offset': 10, 'limit': 5}, 'sort': {'id': 'asc'}})
    assert [r['id'] for r in service.execute_query('users', req).data] == [11, 12]
