"""
Base Adapter Interface for SetuDB

All database adapters must implement this interface to ensure consistent
behavior across different database engines.

DESIGN PRINCIPLES:
-----------------
1. Connection pooling handled by adapter (not caller)
2. Query parameters use ? placeholders (adapter converts as needed)
3. Rows returned as dicts (engine-agnostic)
4. Driver errors propagate unchanged; only setup failures become AdapterError
5. Connections are lent out through `connection()` and always given back
"""

import logging
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple, Union

from setudb.domain.query.builder import SQLBuilder

logger = logging.getLogger(__name__)

Row = Dict[str, Any]
RowFn = Callable[[Row], Any]


class AdapterError(Exception):
    """Base exception for adapter errors."""

    def __init__(self, message: str, engine: str, original_error: Optional[Exception] = None):
        super().__init__(message)
        self.engine = engine
        self.original_error = original_error


class ConnectionError(AdapterError):
    """Failed to connect to database."""
    pass


class Connection:
    """
    Handle for one pooled connection.

    Wraps the raw DB-API connection together with the adapter that lent it
    out, so the execution engine can render and execute through the right
    dialect. Handles are opaque to callers and passed through unchanged.

    Attributes:
        adapter: Adapter that owns the raw connection
        raw: Underlying DB-API connection
        in_transaction: True while a transaction is open on this connection
        rollback_only: Set by `setudb.rollback()`; the transaction is rolled
            back instead of committed when it ends
    """

    def __init__(self, adapter: "BaseAdapter", raw: Any):
        self.adapter = adapter
        self.raw = raw
        self.in_transaction = False
        self.rollback_only = False

    def render(self, query) -> Tuple[str, List[Any]]:
        return self.adapter.builder.render(query)

    def query_rows(self, sql: str, params: List[Any], row_fn: RowFn) -> List[Any]:
        return self.adapter.query_rows(self, sql, params, row_fn)

    def execute_write(self, sql: str, params: List[Any], return_keys: bool = False) -> Union[int, List[Row]]:
        return self.adapter.execute_write(self, sql, params, return_keys)

    def begin(self) -> None:
        self.adapter.begin(self)
        self.in_transaction = True
        self.rollback_only = False

    def commit(self) -> None:
        try:
            self.adapter.commit(self)
        finally:
            self.in_transaction = False

    def rollback(self) -> None:
        try:
            self.adapter.rollback(self)
        finally:
            self.in_transaction = False

    def set_rollback_only(self) -> None:
        self.rollback_only = True

    def __repr__(self):
        return f"<Connection engine={self.adapter.ENGINE} in_transaction={self.in_transaction}>"


class BaseAdapter(ABC):
    """
    Abstract base class for database adapters.

    Each adapter must implement:
    - connect(): Establish database connection or pool
    - disconnect(): Close connection(s)
    - _get_connection() / _release_connection(): Lend and return raw connections

    Adapters whose driver deviates from DB-API 2.0 cursors override the
    execution primitives `query_rows()` and `execute_write()`.

    Usage:
        adapter = SQLiteAdapter({"database": ":memory:"})
        adapter.connect()

        with adapter.connection() as conn:
            rows = conn.query_rows('SELECT * FROM "users" WHERE "id" = ?', [1], dict)

        adapter.disconnect()
    """

    # Engine identifier (e.g., "sqlite", "postgres", "duckdb")
    ENGINE: str = "base"

    # Placeholder format used by this engine
    PLACEHOLDER: str = "?"

    def __init__(self, config: Dict[str, Any]):
        """
        Initialize adapter with connection configuration.

        Args:
            config: Database-specific configuration dict
                    (host, port, user, password, database, etc.)
        """
        self.config = config
        self.builder = SQLBuilder(dialect=self.ENGINE)
        self._connection = None
        self._connected = False
        self._last_used = None
        self._lock = threading.RLock()

    @abstractmethod
    def connect(self) -> None:
        """
        Establish connection to database.

        Raises:
            ConnectionError: If connection fails
        """
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """
        Close database connection.

        Should be safe to call even if not connected.
        """
        pass

    @abstractmethod
    def _get_connection(self) -> Any:
        """Take a raw connection from the pool."""
        pass

    @abstractmethod
    def _release_connection(self, raw: Any) -> None:
        """Return a raw connection to the pool."""
        pass

    # -------------------------------------------------------------------------
    # Pool
    # -------------------------------------------------------------------------

    @contextmanager
    def connection(self) -> Iterator[Connection]:
        """
        Lend a connection for the duration of the block.

            with adapter.connection() as conn:
                all_rows(conn, "users")

        The connection goes back to the pool on every exit path. Inside a
        transaction on this adapter, the transaction's connection is lent
        instead, so writes never commit it early.
        """
        from setudb.context import current_connection

        active = current_connection(self)
        if active is not None:
            yield active
            return

        if not self._connected:
            self.connect()

        raw = self._get_connection()
        self._update_last_used()
        try:
            yield Connection(self, raw)
        finally:
            self._release_connection(raw)

    # -------------------------------------------------------------------------
    # Execution primitives
    # -------------------------------------------------------------------------

    def query_rows(self, conn: Connection, sql: str, params: List[Any], row_fn: RowFn) -> List[Any]:
        """
        Execute a row-returning statement.

        Returns:
            List of rows as dicts, each passed through row_fn
        """
        sql, params = self.convert_placeholders(sql, params)
        cursor = conn.raw.cursor()
        try:
            cursor.execute(sql, params)
            return [row_fn(row) for row in self._fetch_dicts(cursor)]
        finally:
            cursor.close()

    def execute_write(
        self,
        conn: Connection,
        sql: str,
        params: List[Any],
        return_keys: bool = False
    ) -> Union[int, List[Row]]:
        """
        Execute an insert, update or delete.

        Returns:
            The rows produced by RETURNING when return_keys is set,
            otherwise the affected row count
        """
        sql, params = self.convert_placeholders(sql, params)
        cursor = conn.raw.cursor()
        try:
            cursor.execute(sql, params)
            if return_keys:
                result = self._fetch_dicts(cursor)
            else:
                result = cursor.rowcount
        finally:
            cursor.close()

        if not conn.in_transaction:
            self._autocommit(conn)
        return result

    def _fetch_dicts(self, cursor) -> List[Row]:
        if not cursor.description:
            return []
        columns = [desc[0] for desc in cursor.description]
        return [dict(zip(columns, row)) for row in cursor.fetchall()]

    def _autocommit(self, conn: Connection) -> None:
        """Commit a write issued outside a transaction."""
        conn.raw.commit()

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    def begin(self, conn: Connection) -> None:
        """Open a transaction. DB-API drivers begin implicitly."""
        pass

    def commit(self, conn: Connection) -> None:
        conn.raw.commit()

    def rollback(self, conn: Connection) -> None:
        conn.raw.rollback()

    # -------------------------------------------------------------------------
    # Misc
    # -------------------------------------------------------------------------

    def convert_placeholders(self, sql: str, params: Optional[List[Any]] = None) -> Tuple[str, List[Any]]:
        """
        Convert ? placeholders to engine-specific format.

        Default implementation returns sql unchanged.
        Override in adapters that need different placeholder formats:
        - PostgreSQL: %s

        Args:
            sql: SQL with ? placeholders
            params: Parameter values

        Returns:
            (converted_sql, params)
        """
        return sql, list(params or [])

    def health_check(self) -> bool:
        """
        Check if connection is alive and usable.

        Returns:
            True if connection is healthy, False otherwise
        """
        if not self._connected:
            return False

        try:
            with self.connection() as conn:
                conn.query_rows("SELECT 1", [], dict)
            return True
        except Exception as e:
            logger.debug(f"{self.ENGINE} health check failed: {e}")
            return False

    def is_connected(self) -> bool:
        """Check if adapter has an active connection."""
        return self._connected

    def get_engine_info(self) -> Dict[str, Any]:
        """Get information about this adapter/engine."""
        return {
            "engine": self.ENGINE,
            "dialect": self.builder.target_dialect,
            "connected": self._connected,
            "placeholder": self.PLACEHOLDER,
            "last_used": self._last_used.isoformat() if self._last_used else None
        }

    def _update_last_used(self):
        """Update last used timestamp."""
        self._last_used = datetime.now(timezone.utc)

    def __enter__(self):
        """Context manager support."""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager cleanup."""
        self.disconnect()
        return False
