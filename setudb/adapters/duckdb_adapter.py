"""
DuckDB Adapter for SetuDB

DuckDB is an embedded analytical database, perfect for:
- Local development and demos
- Testing without infrastructure
- Small to medium datasets (up to ~100GB)

Connection modes:
- In-memory (default): Fast, ephemeral
- File-based: Persistent, shareable
"""

import logging
from typing import Any, Dict, List, Optional, Union

import duckdb

from setudb.adapters.base import BaseAdapter, Connection, ConnectionError, Row, RowFn

logger = logging.getLogger(__name__)


class DuckDBAdapter(BaseAdapter):
    """
    Adapter for DuckDB embedded database.

    DuckDB cursors are separate connections with their own transactions, so
    statements run directly on the shared connection, lent out under a
    re-entrant lock like SQLite's.

    Config options:
        database: Path to database file, or ":memory:" (default)
        read_only: Open in read-only mode (default: False)

    Example:
        adapter = DuckDBAdapter({"database": ":memory:"})
        with adapter.connection() as conn:
            one(conn, Query(select=("1 + 1 AS answer",)))
    """

    ENGINE = "duckdb"
    PLACEHOLDER = "?"  # DuckDB uses ? natively

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        """Initialize DuckDB adapter."""
        super().__init__(config or {})

        self.database = str(self.config.get("database", ":memory:"))
        self.read_only = self.config.get("read_only", False)

    def connect(self) -> None:
        """Connect to DuckDB database."""
        with self._lock:
            if self._connected:
                return

            try:
                self._connection = duckdb.connect(
                    database=self.database,
                    read_only=self.read_only
                )
                self._connected = True
                logger.info(f"DuckDB connected: {self.database}")
            except duckdb.Error as e:
                raise ConnectionError(
                    f"Failed to connect to DuckDB: {e}",
                    engine=self.ENGINE,
                    original_error=e
                )

    def disconnect(self) -> None:
        """Close DuckDB connection."""
        with self._lock:
            if self._connection:
                try:
                    self._connection.close()
                except duckdb.Error as e:
                    logger.warning(f"Error closing DuckDB connection: {e}")
                finally:
                    self._connection = None
            self._connected = False

    def _get_connection(self):
        self._lock.acquire()
        return self._connection

    def _release_connection(self, raw) -> None:
        self._lock.release()

    def query_rows(self, conn: Connection, sql: str, params: List[Any], row_fn: RowFn) -> List[Any]:
        result = conn.raw.execute(sql, list(params))
        return [row_fn(row) for row in self._fetch_dicts(result)]

    def execute_write(
        self,
        conn: Connection,
        sql: str,
        params: List[Any],
        return_keys: bool = False
    ) -> Union[int, List[Row]]:
        """
        Execute an insert, update or delete.

        DuckDB reports the affected row count as a one-row result set.
        """
        result = conn.raw.execute(sql, list(params))
        if return_keys:
            return self._fetch_dicts(result)
        count = result.fetchone()
        return count[0] if count else 0

    def _autocommit(self, conn: Connection) -> None:
        # DuckDB commits every statement outside an explicit transaction
        pass

    def begin(self, conn: Connection) -> None:
        conn.raw.begin()

    def execute_script(self, script: str) -> None:
        """
        Execute multiple SQL statements (for setup/seeding).

        Useful for creating tables and inserting fixture data.
        """
        with self.connection() as conn:
            conn.raw.execute(script)
