"""
Adapter Factory for SetuDB

Provides a unified interface for creating database adapters by engine name.

Usage:
    from setudb.adapters import get_adapter

    adapter = get_adapter("sqlite", {"database": ":memory:"})
"""

import logging
from typing import Any, Dict, List, Optional, Type

from setudb.adapters.base import BaseAdapter, ConnectionError

logger = logging.getLogger(__name__)


# =============================================================================
# ADAPTER REGISTRY
# =============================================================================

# Map of engine name -> adapter class
_ADAPTER_REGISTRY: Dict[str, Type[BaseAdapter]] = {}


def register_adapter(engine: str, adapter_class: Type[BaseAdapter]) -> None:
    """
    Register an adapter class for an engine.

    Args:
        engine: Engine identifier (e.g., "sqlite", "postgres")
        adapter_class: Adapter class to use for this engine
    """
    _ADAPTER_REGISTRY[engine.lower()] = adapter_class
    logger.info(f"Registered adapter for engine: {engine}")


def list_adapters() -> List[str]:
    """Get list of registered adapter engines."""
    return list(_ADAPTER_REGISTRY.keys())


def is_engine_supported(engine: str) -> bool:
    """Check if an engine has a registered adapter."""
    return engine.lower() in _ADAPTER_REGISTRY


# =============================================================================
# ADAPTER FACTORY
# =============================================================================

def get_adapter(
    engine: str,
    config: Optional[Dict[str, Any]] = None,
    connect: bool = False
) -> BaseAdapter:
    """
    Create an adapter instance for the specified engine.

    Adapters connect lazily on first use unless `connect` is set.

    Args:
        engine: Database engine name (e.g., "sqlite", "postgres", "duckdb")
        config: Connection configuration dict
        connect: Connect immediately instead of on first use

    Returns:
        Adapter instance

    Raises:
        ConnectionError: If engine not supported or connection fails

    Example:
        adapter = get_adapter("postgres", {
            "host": "localhost",
            "database": "app",
            "user": "app",
            "password": "***",
            "pool_size": 10
        })
    """
    engine_lower = engine.lower()

    # Check if engine is supported
    if engine_lower not in _ADAPTER_REGISTRY:
        available = ", ".join(list_adapters())
        raise ConnectionError(
            f"Unsupported engine: {engine}. Available: {available}",
            engine=engine
        )

    adapter_class = _ADAPTER_REGISTRY[engine_lower]
    adapter = adapter_class(dict(config or {}))

    if connect:
        adapter.connect()

    return adapter


# =============================================================================
# AUTO-REGISTER BUILT-IN ADAPTERS
# =============================================================================

def _register_builtin_adapters():
    """Register all built-in adapters."""
    from setudb.adapters.duckdb_adapter import DuckDBAdapter
    from setudb.adapters.postgres_adapter import PostgresAdapter
    from setudb.adapters.sqlite_adapter import SQLiteAdapter

    # SQLite (built-in, no dependencies)
    register_adapter("sqlite", SQLiteAdapter)
    register_adapter("sqlite3", SQLiteAdapter)  # Alias

    # DuckDB
    register_adapter("duckdb", DuckDBAdapter)

    # PostgreSQL (psycopg2 checked when the adapter is created)
    register_adapter("postgres", PostgresAdapter)
    register_adapter("postgresql", PostgresAdapter)  # Alias
    register_adapter("timescaledb", PostgresAdapter)  # PostgreSQL extension
    register_adapter("cockroachdb", PostgresAdapter)  # PostgreSQL wire protocol


# Register on module load
_register_builtin_adapters()
