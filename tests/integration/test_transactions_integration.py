"""
Transactions against real embedded databases.
"""

import sqlite3

import pytest

from setudb.context import in_transaction, rollback, transaction
from setudb.domain.query.operations import all_rows, insert


TEAMS_SCHEMA = """
CREATE TABLE teams (id INTEGER PRIMARY KEY);
CREATE TABLE members (
    id INTEGER PRIMARY KEY,
    team_id INTEGER REFERENCES teams(id) DEFERRABLE INITIALLY DEFERRED
);
"""


def count_rows(adapter, table="users"):
    with adapter.connection() as conn:
        return len(all_rows(conn, table))


class TestTransactions:
    """Tests for commit and rollback on SQLite and DuckDB."""

    def test_commit(self, db_adapter):
        """Test that writes in a successful block are committed."""
        with transaction(db_adapter) as conn:
            insert(conn, "users", {"name": "John"})
            insert(conn, "users", {"name": "Jane"})

        assert count_rows(db_adapter) == 2

    def test_exception_rolls_back(self, db_adapter):
        """Test that an exception discards the block's writes."""
        with pytest.raises(RuntimeError):
            with transaction(db_adapter) as conn:
                insert(conn, "users", {"name": "John"})
                raise RuntimeError("abort")

        assert count_rows(db_adapter) == 0

    def test_rollback_discards_writes(self, db_adapter):
        """Test that rollback() discards the block's writes."""
        with transaction(db_adapter) as conn:
            insert(conn, "users", {"name": "John"})
            rollback()

        assert count_rows(db_adapter) == 0
        assert not in_transaction()

    def test_nested_transaction_is_one_unit(self, db_adapter):
        """Test that a rollback in a nested block discards the outer writes too."""
        with transaction(db_adapter) as outer:
            insert(outer, "users", {"name": "John"})
            with transaction(db_adapter) as inner:
                assert inner is outer
                insert(inner, "users", {"name": "Jane"})
                rollback()

        assert count_rows(db_adapter) == 0

    def test_writes_visible_inside_transaction(self, db_adapter):
        """Test that uncommitted writes are visible on the transaction's connection."""
        with transaction(db_adapter) as conn:
            insert(conn, "users", {"name": "John"})
            assert len(all_rows(conn, "users")) == 1
            rollback()

    def test_lent_connection_does_not_commit_early(self, db_adapter):
        """Test that writes through a connection lent inside a transaction stay in it."""
        with transaction(db_adapter) as conn:
            insert(conn, "users", {"name": "John"})
            with db_adapter.connection() as lent:
                assert lent is conn
                insert(lent, "users", {"name": "Jane"})
            rollback()

        assert count_rows(db_adapter) == 0


class TestFailedCommit:
    """Tests for commits rejected by the database."""

    def test_deferred_constraint_failure_rolls_back(self, sqlite_adapter):
        """Test that a failed commit leaves the connection usable for new transactions."""
        sqlite_adapter.execute_script(TEAMS_SCHEMA)

        with pytest.raises(sqlite3.IntegrityError):
            with transaction(sqlite_adapter) as conn:
                insert(conn, "users", {"name": "John"})
                insert(conn, "members", {"team_id": 99})

        assert not in_transaction()
        assert count_rows(sqlite_adapter, "members") == 0
        assert count_rows(sqlite_adapter) == 0

        with transaction(sqlite_adapter) as conn:
            insert(conn, "users", {"name": "Jane"})

        assert count_rows(sqlite_adapter) == 1
