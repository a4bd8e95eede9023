"""
Tests for the instrumented execution pipeline.
"""

import logging

import pytest

from setudb.context import query_defaults
from setudb.domain.query import engine
from setudb.domain.query.engine import DEFAULT_LONG_RUNNING_THRESHOLD, execute
from setudb.domain.query.model import Query

ENGINE_LOGGER = "setudb.domain.query.engine"


@pytest.fixture
def clock(monkeypatch):
    """Freeze the engine clock so the next query takes `ms` milliseconds."""
    def set_elapsed(ms):
        ticks = iter([10.0, 10.0 + ms / 1000.0])
        monkeypatch.setattr(engine, "_now", lambda: next(ticks))
    return set_elapsed


def warnings_in(caplog):
    return [r for r in caplog.records if r.name == ENGINE_LOGGER and r.levelno == logging.WARNING]


class TestExecute:
    """Tests for read and write execution."""

    def test_read_returns_rows(self, adapter, conn):
        """Test that a read returns the adapter rows with the SQL."""
        adapter.rows = [{"id": 1, "name": "John"}]
        response = execute(conn, "users")

        assert response.result == [{"id": 1, "name": "John"}]
        assert response.sql == 'SELECT * FROM "users"'
        assert response.query == Query(from_=("users",), select=("*",))
        assert adapter.calls == [("query", 'SELECT * FROM "users"', [])]

    def test_row_fn_applied_per_row(self, adapter, conn):
        """Test that row_fn is applied to each row."""
        adapter.rows = [{"id": 1}, {"id": 2}]
        response = execute(conn, "users", row_fn=lambda row: row["id"])
        assert response.result == [1, 2]

    def test_result_set_fn_applied_to_rows(self, adapter, conn):
        """Test that result_set_fn is applied to the row list."""
        adapter.rows = [{"id": 1}, {"id": 2}]
        response = execute(conn, "users", result_set_fn=len)
        assert response.result == 2

    def test_write_returns_count(self, adapter, conn):
        """Test that a write returns the affected row count."""
        adapter.count = 3
        response = execute(conn, Query(delete_from="users"))

        assert response.result == 3
        assert adapter.calls == [("write", 'DELETE FROM "users"', [], False)]

    def test_return_keys_adds_returning(self, adapter, conn):
        """Test that return_keys adds RETURNING to the write."""
        adapter.rows = [{"id": 1, "name": "John"}]
        query = Query(insert_into="users", columns=("name",), values=(("John",),))
        response = execute(conn, query, return_keys=True)

        assert response.query.returning == ("*",)
        assert response.result == [{"id": 1, "name": "John"}]
        assert adapter.last_sql.endswith("RETURNING *")
        assert adapter.calls[-1][3] is True

    def test_row_fn_ignored_for_writes(self, adapter, conn):
        """Test that row_fn is not applied to write results."""
        adapter.count = 1
        response = execute(conn, Query(delete_from="users"), row_fn=lambda row: 1 / 0)
        assert response.result == 1

    def test_elapsed_is_reported(self, adapter, conn, clock):
        """Test that the elapsed time is reported in milliseconds."""
        clock(12.5)
        assert execute(conn, "users").ms == pytest.approx(12.5)


class TestLogging:
    """Tests for query instrumentation."""

    def test_completed_query_logged_at_debug(self, conn, clock, caplog):
        """Test that a completed query is logged at DEBUG."""
        caplog.set_level(logging.DEBUG, logger=ENGINE_LOGGER)
        clock(3)
        execute(conn, "users")

        debug = [r for r in caplog.records if r.levelno == logging.DEBUG]
        assert len(debug) == 1
        assert "3.00ms" in debug[0].getMessage()
        assert 'SELECT * FROM "users"' in debug[0].getMessage()

    @pytest.mark.parametrize("elapsed, threshold, warned", [
        (499.9, 500, False),
        (500.0, 500, False),
        (500.1, 500, True),
        (44.9, 45, False),
        (45.1, 45, True),
    ])
    def test_warning_only_above_threshold(self, conn, clock, caplog, elapsed, threshold, warned):
        """Test that the slow query warning fires only above the threshold."""
        caplog.set_level(logging.DEBUG, logger=ENGINE_LOGGER)
        clock(elapsed)
        execute(conn, "users", long_running_threshold=threshold)
        assert bool(warnings_in(caplog)) is warned

    def test_default_threshold(self, conn, clock, caplog):
        """Test the default slow query threshold."""
        caplog.set_level(logging.DEBUG, logger=ENGINE_LOGGER)
        clock(DEFAULT_LONG_RUNNING_THRESHOLD + 1)
        execute(conn, "users")

        [warning] = warnings_in(caplog)
        message = warning.getMessage()
        assert "501.00ms" in message
        assert "500ms" in message
        assert 'SELECT * FROM "users"' in message

    def test_ambient_threshold(self, conn, clock, caplog):
        """Test that an ambient threshold is used."""
        caplog.set_level(logging.DEBUG, logger=ENGINE_LOGGER)
        clock(60)
        with query_defaults(long_running_threshold=50):
            execute(conn, "users")
        assert warnings_in(caplog)

    def test_per_call_threshold_overrides_ambient(self, conn, clock, caplog):
        """Test that a per-call threshold wins over the ambient one."""
        caplog.set_level(logging.DEBUG, logger=ENGINE_LOGGER)
        clock(60)
        with query_defaults(long_running_threshold=50):
            execute(conn, "users", long_running_threshold=100)
        assert not warnings_in(caplog)

    def test_ambient_row_fn(self, adapter, conn):
        """Test that an ambient row_fn is used."""
        adapter.rows = [{"id": 1}]
        with query_defaults(row_fn=lambda row: row["id"]):
            assert execute(conn, "users").result == [1]
            assert execute(conn, "users", row_fn=dict).result == [{"id": 1}]


class TestFailures:
    """Tests for driver failures."""

    def test_exception_logged_and_reraised_unchanged(self, adapter, conn, clock, caplog):
        """Test that a failing query is logged at ERROR and re-raised unchanged."""
        caplog.set_level(logging.DEBUG, logger=ENGINE_LOGGER)
        error = RuntimeError("connection reset")
        adapter.error = error
        clock(7)

        with pytest.raises(RuntimeError) as excinfo:
            execute(conn, "users")

        assert excinfo.value is error
        [record] = [r for r in caplog.records if r.levelno == logging.ERROR]
        assert "7.00ms" in record.getMessage()
        assert 'SELECT * FROM "users"' in record.getMessage()
        assert record.exc_info[1] is error
        assert not [r for r in caplog.records if r.levelno == logging.DEBUG]

    def test_write_failure_reraised(self, adapter, conn):
        """Test that a failing write is re-raised unchanged."""
        error = ValueError("constraint violated")
        adapter.error = error
        with pytest.raises(ValueError) as excinfo:
            execute(conn, Query(delete_from="users"))
        assert excinfo.value is error
