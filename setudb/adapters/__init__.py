"""
Database Adapters for SetuDB

This package provides the connection pool and execution primitives consumed by
the query engine. Each adapter handles:
- Connection management (pooling, lending, release)
- Row-returning and write execution
- Transactions
- Parameter placeholder conversion

Supported Engines:
- SQLite (built-in, zero dependencies)
- DuckDB (embedded)
- PostgreSQL / TimescaleDB / CockroachDB (psycopg2)
"""

from setudb.adapters.base import AdapterError, BaseAdapter, Connection, ConnectionError
from setudb.adapters.factory import (
    get_adapter,
    register_adapter,
    list_adapters,
    is_engine_supported
)

__all__ = [
    "AdapterError",
    "BaseAdapter",
    "Connection",
    "ConnectionError",
    "get_adapter",
    "register_adapter",
    "list_adapters",
    "is_engine_supported"
]
