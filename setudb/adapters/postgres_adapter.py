"""
PostgreSQL Adapter for SetuDB

PostgreSQL is ideal for:
- Transactional workloads
- Multi-process applications sharing one database
- Existing Postgres deployments (also TimescaleDB, CockroachDB)

Features:
- Connection pooling (psycopg2 ThreadedConnectionPool)
- SSL support
- Autocommit outside transactions, explicit transactions inside
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

try:
    import psycopg2
    import psycopg2.pool
    PSYCOPG2_AVAILABLE = True
except ImportError:
    PSYCOPG2_AVAILABLE = False
    psycopg2 = None

from setudb.adapters.base import BaseAdapter, Connection, ConnectionError

logger = logging.getLogger(__name__)


class PostgresAdapter(BaseAdapter):
    """
    Adapter for PostgreSQL database.

    Config options:
        host: Database host (required)
        port: Database port (default: 5432)
        database: Database name (required)
        user: Username (required)
        password: Password (required)
        sslmode: SSL mode (default: prefer)
        connect_timeout: Connection timeout in seconds (default: 10)
        min_pool_size: Connections opened up front (default: 1)
        pool_size: Maximum pool size (default: 5)

    Example:
        adapter = PostgresAdapter({
            "host": "localhost",
            "database": "app",
            "user": "app",
            "password": "secret"
        })
        with adapter.connection() as conn:
            all_rows(conn, "users")
    """

    ENGINE = "postgres"
    PLACEHOLDER = "%s"  # PostgreSQL uses %s for parameters

    def __init__(self, config: Dict[str, Any]):
        """Initialize PostgreSQL adapter."""
        super().__init__(config)

        if not PSYCOPG2_AVAILABLE:
            raise ConnectionError(
                "psycopg2 not installed. Run: pip install psycopg2-binary",
                engine=self.ENGINE
            )

        # Validate required config
        required = ["host", "database", "user", "password"]
        missing = [k for k in required if k not in config]
        if missing:
            raise ConnectionError(
                f"Missing required config: {', '.join(missing)}",
                engine=self.ENGINE
            )

        self.host = config["host"]
        self.port = config.get("port", 5432)
        self.database = config["database"]
        self.user = config["user"]
        self.password = config["password"]
        self.sslmode = config.get("sslmode", "prefer")
        self.connect_timeout = config.get("connect_timeout", 10)
        self.min_pool_size = config.get("min_pool_size", 1)
        self.pool_size = config.get("pool_size", 5)

        self._pool = None

    def connect(self) -> None:
        """Create the PostgreSQL connection pool."""
        with self._lock:
            if self._connected:
                return

            try:
                self._pool = psycopg2.pool.ThreadedConnectionPool(
                    minconn=self.min_pool_size,
                    maxconn=self.pool_size,
                    host=self.host,
                    port=self.port,
                    dbname=self.database,
                    user=self.user,
                    password=self.password,
                    sslmode=self.sslmode,
                    connect_timeout=self.connect_timeout
                )
                self._connected = True
                logger.info(f"PostgreSQL connected: {self.host}:{self.port}/{self.database}")

            except psycopg2.Error as e:
                raise ConnectionError(
                    f"Failed to connect to PostgreSQL: {e}",
                    engine=self.ENGINE,
                    original_error=e
                )

    def disconnect(self) -> None:
        """Close every pooled connection."""
        with self._lock:
            try:
                if self._pool:
                    self._pool.closeall()
                    self._pool = None
            except psycopg2.Error as e:
                logger.warning(f"Error closing PostgreSQL connection: {e}")
            finally:
                self._connected = False

    def _get_connection(self):
        """Get a connection from the pool in autocommit mode."""
        raw = self._pool.getconn()
        raw.autocommit = True
        return raw

    def _release_connection(self, raw) -> None:
        """Return connection to pool."""
        self._pool.putconn(raw)

    def convert_placeholders(self, sql: str, params: Optional[List[Any]] = None) -> Tuple[str, List[Any]]:
        """Convert ? placeholders to PostgreSQL %s format."""
        # Replace ? with %s
        converted_sql = sql.replace("?", "%s")
        return converted_sql, list(params or [])

    def _autocommit(self, conn: Connection) -> None:
        # Pooled connections run in autocommit mode outside transactions
        pass

    def begin(self, conn: Connection) -> None:
        conn.raw.autocommit = False

    def commit(self, conn: Connection) -> None:
        try:
            conn.raw.commit()
        finally:
            conn.raw.autocommit = True

    def rollback(self, conn: Connection) -> None:
        try:
            conn.raw.rollback()
        finally:
            conn.raw.autocommit = True
