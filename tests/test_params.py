import pytest

from src.config import get_settings
from src.core.errors import InvalidArgumentError
from src.dsl.params import parse_query_params
from src.dsl.schema import Eq
from src.sql.operators import SortDirection


def test_parse_query_params():
    req = parse_query_params(
        {'status': 'active', 'search': ' ann ', 'sortBy': 'name', 'sortDirection': 'desc',
         'page': '2', 'pageSize': '5'},
        search_fields=['name', 'email'],
    )
    assert req.filters == {'status': Eq(value='active')}
    assert req.search.fields == ['name', 'email'] and req.search.term == 'ann'
    assert req.sort[0].field == 'name' and req.sort[0].direction is SortDirection.DESC
    assert req.pagination.window() == (5, 5)


def test_defaults():
    req = parse_query_params({}, default_page_size=20)
    assert req.filters == {} and req.search is None and req.sort == []
    assert req.pagination.window() == (0, 20)


def test_search_ignored_without_fields():
    assert parse_query_params({'search': 'ann'}).search is None


def test_non_numeric_page():
    with pytest.raises(InvalidArgumentError):
        parse_query_params({'page': 'two'})


def test_default_page_size_from_settings(monkeypatch):
    monkeypatch.setenv('QUERYKIT_DEFAULT_PAGE_SIZE', '7')
    get_settings.cache_clear()
    try:
        assert parse_query_params({'page': '3'}).pagination.window() == (14, 7)
    finally:
        get_settings.cache_clear()
