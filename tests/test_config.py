from src.config import Settings
from src.sql.builder import QueryBuilder


def test_env_overrides(monkeypatch):
    monkeypatch.setenv('QUERYKIT_PARAM_STYLE', 'named')
    monkeypatch.setenv('QUERYKIT_MAX_PAGE_SIZE', '25')
    s = Settings()
    assert s.param_style == 'named'
    assert s.max_page_size == 25
    assert QueryBuilder('t').where_equals('a', 1).build_query(s.param_style) == 'SELECT * FROM t WHERE a = :p0'


def test_defaults(monkeypatch):
    monkeypatch.delenv('QUERYKIT_PARAM_STYLE', raising=False)
    assert Settings().param_style == 'at'
