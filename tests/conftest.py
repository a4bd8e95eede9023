"""
Pytest configuration and shared fixtures for SetuDB tests.
"""

import pytest

from setudb.adapters import get_adapter
from setudb.adapters.base import BaseAdapter
from setudb.core.config import DatabaseConfig
from setudb.database import Database


SQLITE_SCHEMA = """
CREATE TABLE users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT,
    username TEXT,
    age INTEGER
);
"""

DUCKDB_SCHEMA = """
CREATE SEQUENCE user_ids START 1;
CREATE TABLE users (
    id INTEGER PRIMARY KEY DEFAULT nextval('user_ids'),
    name VARCHAR,
    username VARCHAR,
    age INTEGER
);
"""

SAMPLE_USERS = [
    {"name": "John", "username": "jdoe", "age": 34},
    {"name": "Jane", "username": "jane", "age": 29},
    {"name": "John", "username": "jsmith", "age": 51},
]


class RecordingAdapter(BaseAdapter):
    """
    In-memory adapter that records every primitive call.

    Reads return `rows`, writes return `rows` (with return_keys) or `count`.
    Set `error` to make primitive calls raise it, or `commit_error` to make
    commits raise it.
    """

    ENGINE = "sqlite"

    def __init__(self, config=None):
        super().__init__(config or {})
        self.calls = []
        self.events = []
        self.rows = []
        self.count = 0
        self.error = None
        self.commit_error = None

    def connect(self):
        self._connected = True

    def disconnect(self):
        self._connected = False

    def _get_connection(self):
        self.events.append("acquire")
        return object()

    def _release_connection(self, raw):
        self.events.append("release")

    def query_rows(self, conn, sql, params, row_fn):
        self.calls.append(("query", sql, list(params)))
        if self.error is not None:
            raise self.error
        return [row_fn(row) for row in self.rows]

    def execute_write(self, conn, sql, params, return_keys=False):
        self.calls.append(("write", sql, list(params), return_keys))
        if self.error is not None:
            raise self.error
        return list(self.rows) if return_keys else self.count

    def begin(self, conn):
        self.events.append("begin")

    def commit(self, conn):
        self.events.append("commit")
        if self.commit_error is not None:
            raise self.commit_error

    def rollback(self, conn):
        self.events.append("rollback")

    @property
    def last_sql(self):
        return self.calls[-1][1]

    @property
    def last_params(self):
        return self.calls[-1][2]


@pytest.fixture
def adapter():
    """Recording adapter with no canned results."""
    return RecordingAdapter()


@pytest.fixture
def other_adapter():
    """A second recording adapter, independent of `adapter`."""
    return RecordingAdapter()


@pytest.fixture
def conn(adapter):
    """Connection lent by the recording adapter."""
    with adapter.connection() as conn:
        yield conn


@pytest.fixture
def sqlite_adapter():
    """In-memory SQLite database with an empty users table."""
    adapter = get_adapter("sqlite", {"database": ":memory:"})
    adapter.execute_script(SQLITE_SCHEMA)
    yield adapter
    adapter.disconnect()


@pytest.fixture
def other_sqlite_adapter():
    """A second, independent in-memory SQLite database with a users table."""
    adapter = get_adapter("sqlite", {"database": ":memory:"})
    adapter.execute_script(SQLITE_SCHEMA)
    yield adapter
    adapter.disconnect()


@pytest.fixture
def duckdb_adapter():
    """In-memory DuckDB database with an empty users table."""
    adapter = get_adapter("duckdb", {"database": ":memory:"})
    adapter.execute_script(DUCKDB_SCHEMA)
    yield adapter
    adapter.disconnect()


@pytest.fixture(params=["sqlite", "duckdb"])
def db_adapter(request):
    """Each real embedded engine in turn, with an empty users table."""
    return request.getfixturevalue(f"{request.param}_adapter")


@pytest.fixture
def db(sqlite_adapter):
    """Bound database over the SQLite fixture."""
    database = Database(DatabaseConfig(engine="sqlite"), adapter=sqlite_adapter)
    yield database
    database.close()


@pytest.fixture
def sample_users():
    """Return user records for seeding."""
    return [dict(user) for user in SAMPLE_USERS]
