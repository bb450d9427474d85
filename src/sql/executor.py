import sqlite3
from datetime import datetime
from typing import Any, Dict, List, Protocol

import pandas as pd

from src.core.errors import InvalidArgumentError
from src.core.logger import get_logger
from src.sql.builder import CompiledQuery
from src.sql.operators import ParamStyle

logger = get_logger(__name__)

# Same text form pandas writes for datetime columns, so bound timestamps
# compare correctly against stored ones.
sqlite3.register_adapter(datetime, lambda d: d.isoformat(" "))


class Executor(Protocol):
    """Runs a compiled statement. The builder never talks to a database itself."""

    def fetch_all(self, query: CompiledQuery) -> List[Dict[str, Any]]: ...

    def fetch_scalar(self, query: CompiledQuery) -> Any: ...


class SqliteExecutor:
    """sqlite3-backed executor; queries must be compiled with the named style."""

    style = ParamStyle.NAMED

    def __init__(self, conn: sqlite3.Connection = None):
        self.conn = conn or sqlite3.connect(":memory:")

    def load_frame(self, table: str, df: pd.DataFrame) -> int:
        df.to_sql(table, self.conn, if_exists="replace", index=False)
        logger.info("loaded %d rows into %s", len(df), table)
        return len(df)

    def load_csv(self, table: str, path: str, **read_csv_kwargs) -> int:
        return self.load_frame(table, pd.read_csv(path, **read_csv_kwargs))

    def _frame(self, query: CompiledQuery) -> pd.DataFrame:
        if query.style is not self.style:
            raise InvalidArgumentError(f"sqlite needs {self.style.value!r} placeholders, got {query.style.value!r}")
        return pd.read_sql_query(query.sql, self.conn, params=query.params)

    def fetch_all(self, query: CompiledQuery) -> List[Dict[str, Any]]:
        df = self._frame(query)
        # NaN -> None so rows serialize the way they were stored
        df = df.astype(object).where(df.notna(), None)
        return df.to_dict(orient="records")

    def fetch_scalar(self, query: CompiledQuery) -> Any:
        df = self._frame(query)
        if df.empty:
            return None
        value = df.iat[0, 0]
        return value.item() if hasattr(value, "item") else value
