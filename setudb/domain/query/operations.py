"""
CRUD operations built on `execute`.

Every function takes a connection first, expands abbreviated query forms and
makes exactly one execution call. All accept the shared execution options as
keyword arguments:

    row_fn                  applied to every returned row
    long_running_threshold  milliseconds after which a warning is logged
    result_set_fn           applied to the complete row list of a read

Examples:

    all_rows(conn, "users")
    all_rows(conn, "users", long_running_threshold=100)
    one(conn, Query(from_=("users",), where=("=", "username", "jdoe")))
    get(conn, "users", 2)
    get(conn, "users", 2, primary_key="user_id")
    get_by(conn, "users", {"name": "John", "username": "jdoe"})
    aggregate(conn, "users", "count", "id")
    insert(conn, "users", {"name": "John", "username": "jdoe"})
    update(conn, "users", {"id": 1, "name": "Jane"})
    delete(conn, "users", 1)
    delete_all(conn, "users", Query(where=(">", "id", 15)))
    exists(conn, by("users", {"name": "John"}))
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

from setudb.adapters.base import Connection
from setudb.domain.query.clauses import (
    DEFAULT_PRIMARY_KEY,
    aggregate_selector,
    by,
    by_primary_key,
    delete_all_query,
    delete_query,
    insert_all_query,
    insert_query,
    limit,
    select,
    update_query,
)
from setudb.domain.query.engine import ExecutionResult, execute
from setudb.domain.query.shorthand import QueryLike, expand
from setudb.errors import multiple_results, not_found

logger = logging.getLogger(__name__)

Row = Dict[str, Any]


def all_rows(conn: Connection, query: QueryLike, **opts) -> List[Any]:
    """Fetch all records matching `query`."""
    return execute(conn, query, **opts).result


def _one(conn: Connection, query: QueryLike, opts: Dict[str, Any]) -> ExecutionResult:
    response = execute(conn, expand(query), **opts)
    rows = response.result
    if len(rows) > 1:
        raise multiple_results(response.query, response.sql, len(rows))
    return response


def one(conn: Connection, query: QueryLike, **opts) -> Optional[Any]:
    """
    Fetch the single record matching `query`.

    Returns None if nothing matches; use `one_or_raise` to fail instead.

    Raises:
        MultipleResults: If more than one record matches
    """
    rows = _one(conn, query, opts).result
    return rows[0] if rows else None


def one_or_raise(conn: Connection, query: QueryLike, **opts) -> Any:
    """
    Fetch the single record matching `query`.

    Raises:
        MultipleResults: If more than one record matches
        NotFound: If no record matches
    """
    response = _one(conn, query, opts)
    if not response.result:
        raise not_found(response.query, response.sql)
    return response.result[0]


def get(
    conn: Connection,
    table: QueryLike,
    id_or_record: Any,
    primary_key: str = DEFAULT_PRIMARY_KEY,
    **opts
) -> Optional[Any]:
    """Fetch the record of `table` with the given primary key, or None."""
    return one(conn, by_primary_key(table, id_or_record, primary_key), **opts)


def get_or_raise(
    conn: Connection,
    table: QueryLike,
    id_or_record: Any,
    primary_key: str = DEFAULT_PRIMARY_KEY,
    **opts
) -> Any:
    """Fetch the record of `table` with the given primary key; NotFound if absent."""
    return one_or_raise(conn, by_primary_key(table, id_or_record, primary_key), **opts)


def get_by(conn: Connection, table: QueryLike, predicates: Mapping[str, Any], **opts) -> Optional[Any]:
    """Fetch the single record where every column in `predicates` equals its value."""
    return one(conn, by(table, predicates), **opts)


def get_by_or_raise(conn: Connection, table: QueryLike, predicates: Mapping[str, Any], **opts) -> Any:
    """Like `get_by`, but raises NotFound when nothing matches."""
    return one_or_raise(conn, by(table, predicates), **opts)


def aggregate(conn: Connection, query: QueryLike, kind: str, column: str, **opts) -> Any:
    """
    Execute the aggregate function `kind` on `column` of `query`.

    Supported aggregate functions: avg, count, max, min, sum.

        aggregate(conn, "users", "count", "id")

    Raises:
        UnsupportedAggregate: Before any query is sent, for other kinds
    """
    selector = aggregate_selector(kind, column)
    row = one(conn, select(query, selector), **opts)
    if row is None:
        return None
    return row.get(kind) if isinstance(row, Mapping) else row[0]


def exists(conn: Connection, query: QueryLike, **opts) -> bool:
    """
    Whether any record matches `query`.

    The query is limited to one row so no more than one is materialized.
    """
    return one(conn, limit(query, 1), **opts) is not None


def insert(conn: Connection, table: str, record: Mapping[str, Any], **opts) -> Optional[Row]:
    """
    Insert `record` into `table` and return the resulting record.

    Each key/value pair of `record` is a column name and its value. The
    returned record includes generated values such as the primary key.
    """
    opts.setdefault("return_keys", True)
    result = execute(conn, insert_query(table, record), **opts).result
    if isinstance(result, list):
        return result[0] if result else None
    return result


def _affected_rows(result: Any) -> int:
    # Rows come back instead of a count when return_keys is passed
    if isinstance(result, list):
        return len(result)
    return result


def insert_all(
    conn: Connection,
    table: str,
    records: Sequence[Mapping[str, Any]],
    columns: Optional[Sequence[str]] = None,
    **opts
) -> int:
    """
    Insert `records` into `table` and return the affected row count.

    Columns are the distinct keys of all records in first-seen order unless
    `columns` is given; values missing from a record are inserted as NULL.
    """
    if not records:
        logger.debug(f"insert_all called without records for table {table}")
        return 0
    return _affected_rows(execute(conn, insert_all_query(table, records, columns), **opts).result)


def update(
    conn: Connection,
    table: str,
    record: Mapping[str, Any],
    primary_key: str = DEFAULT_PRIMARY_KEY,
    **opts
) -> Optional[Row]:
    """
    Update `record` in `table` and return the updated record.

    Every column of `record` except the primary key is set; columns absent
    from `record` are left untouched. Returns None when no row matched.

    Raises:
        MissingPrimaryKey: Before executing, if the record has no key value
    """
    query = update_query(table, record, primary_key)
    opts.setdefault("return_keys", True)
    result = execute(conn, query, **opts).result
    if isinstance(result, list):
        return result[0] if result else None
    return result


def delete(
    conn: Connection,
    table: str,
    id_or_record: Any,
    primary_key: str = DEFAULT_PRIMARY_KEY,
    **opts
) -> int:
    """Delete the record of `table` with the given primary key; returns the affected row count."""
    return _affected_rows(execute(conn, delete_query(table, id_or_record, primary_key), **opts).result)


def delete_all(conn: Connection, table: str, query: QueryLike = None, **opts) -> int:
    """Delete the records of `table` matching `query`; returns the affected row count."""
    return _affected_rows(execute(conn, delete_all_query(table, query), **opts).result)
