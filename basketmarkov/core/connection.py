from __future__ import annotations
import logging
from pathlib import Path
from typing import Iterator, Optional, Tuple, Union

import duckdb
import pyarrow as pa

logger = logging.getLogger(__name__)


class DuckDBConnection:
    """Holds the DuckDB session that stores raw order rows."""

    def __init__(
        self,
        database: Union[str, Path] = ":memory:",
        memory_limit: Optional[str] = None,
        threads: Optional[int] = None,
    ):
        self._database = str(database)
        self.conn = duckdb.connect(self._database)
        logger.debug("Opened DuckDB database %s", self._database)

        if memory_limit:
            self.conn.execute(f"SET memory_limit='{memory_limit}'")
        if threads:
            self.conn.execute(f"SET threads={threads}")

    def execute(self, query: str, params: Optional[Union[list, dict]] = None) -> duckdb.DuckDBPyConnection:
        return self.conn.execute(query, params)

    def query(self, query: str, params: Optional[Union[list, dict]] = None) -> pa.Table:
        res = self.execute(query, params)
        table = res.arrow()
        # newer duckdb releases hand back a RecordBatchReader
        if hasattr(table, "read_all"):
            return table.read_all()
        return table

    def iter_rows(self, query: str, params: Optional[Union[list, dict]] = None, batch_size: int = 1024) -> Iterator[Tuple]:
        """Yield result rows lazily, ``batch_size`` rows per round trip."""
        cursor = self.conn.cursor()
        try:
            cursor.execute(query, params)
            while True:
                rows = cursor.fetchmany(batch_size)
                if not rows:
                    break
                yield from rows
        finally:
            cursor.close()

    def table_exists(self, table_name: str) -> bool:
        try:
            self.conn.execute(f"SELECT 1 FROM {table_name} LIMIT 0")
            return True
        except duckdb.Error:
            return False

    def column_exists(self, table_name: str, column_name: str) -> bool:
        try:
            self.conn.execute(f"SELECT {column_name} FROM {table_name} LIMIT 0")
            return True
        except duckdb.Error:
            return False

    def register(self, name: str, df) -> None:
        self.conn.register(name, df)

    def close(self):
        self.conn.close()

    def __enter__(self):
        return self

    def __exit__(self, *_):
        self.close()

    def __repr__(self) -> str:
        return f"DuckDBConnection(database={self._database!r})"
