"""
Tests for the bound Database API.
"""

import logging

import pytest

from setudb.core.config import DatabaseConfig
from setudb.database import Database
from setudb.domain.query import engine
from setudb.domain.query.clauses import by
from setudb.errors import NoActiveTransaction, NotFound


class TestBoundOperations:
    """Tests for operations bound to a pool and configuration."""

    def test_crud(self, db):
        """Test insert, read, update and delete through the bound API."""
        user = db.insert("users", {"name": "John", "username": "jdoe"})
        assert db.get("users", user["id"]) == user

        db.update("users", {"id": user["id"], "age": 35})
        assert db.get_by("users", {"username": "jdoe"})["age"] == 35

        assert db.aggregate("users", "count", "id") == 1
        assert db.exists(by("users", {"name": "John"}))

        assert db.delete("users", user["id"]) == 1
        assert db.all_rows("users") == []

    def test_insert_all_and_delete_all(self, db, sample_users):
        """Test bulk insert and filtered bulk delete."""
        assert db.insert_all("users", sample_users) == 3
        assert db.delete_all("users", by({"name": "John"})) == 2
        assert [u["username"] for u in db.all_rows("users")] == ["jane"]

    def test_raising_variants(self, db):
        """Test that the raising variants raise NotFound on no match."""
        with pytest.raises(NotFound):
            db.get_or_raise("users", 1)
        with pytest.raises(NotFound):
            db.one_or_raise(by("users", {"name": "Nobody"}))

    def test_execute(self, db):
        """Test the bound execute response."""
        db.insert("users", {"name": "John"})
        response = db.execute("users")
        assert response.sql == 'SELECT * FROM "users"'
        assert len(response.result) == 1

    def test_bound_methods_keep_names(self):
        """Test that bound methods keep the operation's name and docstring."""
        assert Database.get_by.__name__ == "get_by"
        assert Database.insert_all.__doc__.startswith("\n    Insert `records`")


class TestConfiguration:
    """Tests for configured defaults."""

    def test_configured_row_fn(self, sqlite_adapter):
        """Test that the configured row_fn applies unless overridden."""
        config = DatabaseConfig(engine="sqlite", row_fn=lambda row: row["name"])
        db = Database(config, adapter=sqlite_adapter)
        db.insert_all("users", [{"name": "John"}, {"name": "Jane"}])

        assert db.all_rows("users") == ["John", "Jane"]
        assert db.all_rows("users", row_fn=lambda row: row["id"]) == [1, 2]

    def test_configured_threshold(self, sqlite_adapter, monkeypatch, caplog):
        """Test that the configured threshold triggers the slow query warning."""
        caplog.set_level(logging.DEBUG, logger="setudb.domain.query.engine")
        ticks = iter([0.0, 0.06])
        monkeypatch.setattr(engine, "_now", lambda: next(ticks))

        db = Database(DatabaseConfig(engine="sqlite", long_running_threshold=50), adapter=sqlite_adapter)
        db.all_rows("users")

        assert [r for r in caplog.records if r.levelno == logging.WARNING]

    def test_lazy_adapter(self):
        """Test that the adapter is created on first use and closed on close()."""
        db = Database(DatabaseConfig(engine="sqlite", options={"database": ":memory:"}))
        assert db._adapter is None

        assert db.all_rows(lambda: "sqlite_master") == []
        assert db.adapter.is_connected()
        db.close()
        assert not db.adapter.is_connected()


class TestBoundTransactions:
    """Tests for transactions through the bound API."""

    def test_commit(self, db):
        """Test that bound writes in a transaction are committed together."""
        with db.transaction():
            assert db.in_transaction()
            db.insert("users", {"name": "John"})
            db.insert("users", {"name": "Jane"})

        assert not db.in_transaction()
        assert len(db.all_rows("users")) == 2

    def test_rollback(self, db):
        """Test that db.rollback() discards the transaction's writes."""
        with db.transaction():
            db.insert("users", {"name": "John"})
            db.rollback()

        assert db.all_rows("users") == []

    def test_calls_reuse_transaction_connection(self, db):
        """Test that bound calls inside a transaction use its connection."""
        with db.transaction() as conn:
            with db.transaction() as inner:
                assert inner is conn
            db.insert("users", {"name": "John"})
            assert db.aggregate("users", "count", "id") == 1
            db.rollback()

        assert db.aggregate("users", "count", "id") == 0

    def test_rollback_outside_transaction(self, db):
        """Test that db.rollback() outside a transaction raises."""
        with pytest.raises(NoActiveTransaction):
            db.rollback()

    def test_other_database_not_joined(self, db, other_sqlite_adapter):
        """Test that a transaction on one database leaves another database's writes alone."""
        other = Database(DatabaseConfig(engine="sqlite"), adapter=other_sqlite_adapter)

        with db.transaction():
            other.insert("users", {"name": "Jane"})
            assert not other.in_transaction()
            db.insert("users", {"name": "John"})
            db.rollback()

        assert [u["name"] for u in other.all_rows("users")] == ["Jane"]
        assert db.all_rows("users") == []
