"""
Bound API

`Database` closes every CRUD operation over a connection pool and a
configuration, so callers never pass a connection:

    db = Database(DatabaseConfig(engine="sqlite", options={"database": "app.db"}))

    user = db.insert("users", {"name": "John"})
    db.get("users", user["id"])

    with db.transaction():
        db.update("users", {"id": user["id"], "name": "Jane"})
        db.delete_all("sessions", by({"user_id": user["id"]}))

Each bound call uses the connection of the database's active transaction when
there is one, and otherwise borrows a pooled connection for the duration of the call.
The configured `row_fn` and `long_running_threshold` apply to every call
unless overridden by a keyword option.
"""

import functools
import logging
import threading
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, Optional

from setudb import context
from setudb.adapters.base import BaseAdapter, Connection
from setudb.adapters.factory import get_adapter
from setudb.core.config import DatabaseConfig, settings
from setudb.domain.query import engine, operations

logger = logging.getLogger(__name__)


def _bound(operation: Callable) -> Callable:
    """Bind `operation` to the database's pool and configuration."""

    @functools.wraps(operation)
    def method(self: "Database", *args, **kwargs):
        with self._defaults(), self._connection() as conn:
            return operation(conn, *args, **kwargs)

    return method


class Database:
    """
    Connection pool plus configuration, with every operation bound to them.

    The adapter (and its pool) is created on first use.
    """

    def __init__(self, config: Optional[DatabaseConfig] = None, adapter: Optional[BaseAdapter] = None):
        self.config = config or DatabaseConfig()
        self._adapter = adapter
        self._lock = threading.Lock()

    @property
    def adapter(self) -> BaseAdapter:
        """Adapter owning the connection pool, created lazily."""
        if self._adapter is None:
            with self._lock:
                if self._adapter is None:
                    self._adapter = get_adapter(self.config.engine, self.config.options)
                    logger.info(f"Database bound to {self.config.engine} adapter")
        return self._adapter

    @property
    def long_running_threshold(self) -> float:
        if self.config.long_running_threshold is not None:
            return self.config.long_running_threshold
        return settings.long_running_threshold

    def _defaults(self):
        return context.query_defaults(
            row_fn=self.config.row_fn,
            long_running_threshold=self.long_running_threshold,
        )

    def _connection(self):
        # Joins a transaction only when it was opened on this database's adapter
        return self.adapter.connection()

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    execute = _bound(engine.execute)
    all_rows = _bound(operations.all_rows)
    one = _bound(operations.one)
    one_or_raise = _bound(operations.one_or_raise)
    get = _bound(operations.get)
    get_or_raise = _bound(operations.get_or_raise)
    get_by = _bound(operations.get_by)
    get_by_or_raise = _bound(operations.get_by_or_raise)
    aggregate = _bound(operations.aggregate)
    exists = _bound(operations.exists)
    insert = _bound(operations.insert)
    insert_all = _bound(operations.insert_all)
    update = _bound(operations.update)
    delete = _bound(operations.delete)
    delete_all = _bound(operations.delete_all)

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    @contextmanager
    def transaction(self) -> Iterator[Connection]:
        """
        Execute the block within a transaction.

        Reuses the active transaction of this database if there is one,
        otherwise begins a new one on a pooled connection. Transactions of
        other databases are left alone.
        """
        with context.transaction(self.adapter) as conn:
            yield conn

    def in_transaction(self) -> bool:
        return context.in_transaction(self.adapter)

    def rollback(self) -> None:
        """Mark the active transaction of this database for rollback."""
        context.rollback(self.adapter)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def health_check(self) -> bool:
        return self.adapter.health_check()

    def close(self) -> None:
        """Close the connection pool; it is reopened on next use."""
        if self._adapter is not None:
            self._adapter.disconnect()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def __repr__(self):
        return f"<Database engine={self.config.engine}>"

    def info(self) -> Dict[str, Any]:
        """Adapter and configuration summary."""
        return {
            **self.adapter.get_engine_info(),
            "long_running_threshold": self.long_running_threshold,
        }
