"""
SQLite Adapter for SetuDB

SQLite is ideal for:
- Local development and testing
- Single-file embedded databases
- Desktop applications and quick prototyping

Features:
- Zero configuration (built into Python)
- In-memory databases
- Read-only mode
- WAL mode for concurrent reads

Requirements:
    None - sqlite3 is included in Python standard library
"""

import os
import logging
import sqlite3
from typing import Any, Dict
from pathlib import Path

from setudb.adapters.base import BaseAdapter, Connection, ConnectionError

logger = logging.getLogger(__name__)


class SQLiteAdapter(BaseAdapter):
    """
    Adapter for SQLite databases.

    SQLite allows a single writer, so the adapter keeps one shared connection
    and lends it out under a re-entrant lock: concurrent call chains are
    serialized, nested acquisitions in the same thread reuse it.

    Config options:
        database: Path to SQLite file or ':memory:' (required)
        create: Create the file if it does not exist (default: True)
        read_only: Open in read-only mode (default: False)
        timeout: Connection timeout in seconds (default: 30)
        isolation_level: Transaction isolation (default: None for autocommit)
        check_same_thread: Restrict use to the creating thread (default: False)
        journal_mode: WAL, DELETE, TRUNCATE, etc. (default: WAL for files)
        foreign_keys: Enable foreign key constraints (default: True)

    Example (In-Memory):
        adapter = SQLiteAdapter({
            "database": ":memory:"
        })

    Example (Read-Only File):
        adapter = SQLiteAdapter({
            "database": "/path/to/data.db",
            "read_only": True
        })
    """

    ENGINE = "sqlite"
    PLACEHOLDER = "?"  # SQLite uses ? for parameters

    def __init__(self, config: Dict[str, Any]):
        """Initialize SQLite adapter."""
        super().__init__(config)

        # Validate required config
        if "database" not in config:
            raise ConnectionError(
                "Missing required config: database",
                engine=self.ENGINE
            )

        # Database path
        self.database = str(config["database"])
        self.is_memory = self.database == ":memory:"

        # Validate file exists (unless in-memory or creating new)
        if not self.is_memory and not config.get("create", True):
            if not os.path.exists(self.database):
                raise ConnectionError(
                    f"Database file not found: {self.database}",
                    engine=self.ENGINE
                )

        # Connection options
        self.read_only = config.get("read_only", False)
        self.timeout = config.get("timeout", 30.0)
        self.isolation_level = config.get("isolation_level", None)
        self.check_same_thread = config.get("check_same_thread", False)

        # Performance options
        self.journal_mode = config.get("journal_mode", "WAL" if not self.is_memory else None)
        self.foreign_keys = config.get("foreign_keys", True)

    def _get_uri(self) -> str:
        """Build SQLite URI for a read-only connection."""
        path = Path(self.database).absolute()
        return f"file:{path}?mode=ro"

    def connect(self) -> None:
        """Connect to SQLite database."""
        with self._lock:
            if self._connected:
                return

            try:
                if self.read_only and not self.is_memory:
                    # Use URI for read-only mode
                    self._connection = sqlite3.connect(
                        self._get_uri(),
                        uri=True,
                        timeout=self.timeout,
                        isolation_level=self.isolation_level,
                        check_same_thread=self.check_same_thread,
                    )
                else:
                    self._connection = sqlite3.connect(
                        self.database,
                        timeout=self.timeout,
                        isolation_level=self.isolation_level,
                        check_same_thread=self.check_same_thread,
                    )

                cursor = self._connection.cursor()

                # Set journal mode (for file-based DBs)
                if self.journal_mode and not self.is_memory and not self.read_only:
                    cursor.execute(f"PRAGMA journal_mode = {self.journal_mode}")

                # Enable foreign keys
                if self.foreign_keys:
                    cursor.execute("PRAGMA foreign_keys = ON")

                cursor.close()

                self._connected = True
                logger.info(f"SQLite connected: {self.database}")

            except sqlite3.Error as e:
                raise ConnectionError(
                    f"Failed to connect to SQLite: {e}",
                    engine=self.ENGINE,
                    original_error=e
                )

    def disconnect(self) -> None:
        """Close SQLite connection."""
        with self._lock:
            try:
                if self._connection:
                    self._connection.close()
                    self._connection = None
            except sqlite3.Error as e:
                logger.warning(f"Error closing SQLite connection: {e}")
            finally:
                self._connected = False

    def _get_connection(self):
        """Lend the shared connection; held until released."""
        self._lock.acquire()
        return self._connection

    def _release_connection(self, raw) -> None:
        self._lock.release()

    def begin(self, conn: Connection) -> None:
        """Open an explicit transaction on the shared connection."""
        conn.raw.execute("BEGIN")

    def execute_script(self, script: str) -> None:
        """
        Execute multiple SQL statements (for setup/seeding).

        Useful for creating tables and inserting fixture data.
        """
        with self.connection() as conn:
            conn.raw.executescript(script)
