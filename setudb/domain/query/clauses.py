"""
Query clause helpers.

Every helper expands its query argument first, so abbreviated forms may be
used anywhere a query is expected:

    # all users named John
    by("users", {"name": "John"})

    # user with id 2
    by_primary_key("users", 2)

    # user with user_id 2, given a record
    by_primary_key("users", {"user_id": 2, "name": "John"}, primary_key="user_id")
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from setudb.domain.query.model import AGGREGATE_KINDS, Aggregate, Predicate, Query, normalize_predicate
from setudb.domain.query.shorthand import QueryLike, expand
from setudb.errors import missing_primary_key, unsupported_aggregate

DEFAULT_PRIMARY_KEY = "id"


# =============================================================================
# WHERE
# =============================================================================

def merge_where(query: QueryLike, predicate: Predicate) -> Query:
    """
    Add `predicate` to the where clause of `query` conjunctively.

    An existing predicate is never replaced: an existing AND node is extended,
    anything else is combined with the new predicate under a new AND node.
    """
    query = expand(query)
    predicate = normalize_predicate(predicate)
    existing = query.where

    if existing is None:
        where = predicate
    elif existing[0] == "and":
        where = existing + (predicate,)
    else:
        where = ("and", existing, predicate)

    return query.merge(where=where)


def by(query: QueryLike, predicates: Optional[Mapping[str, Any]] = None) -> Query:
    """
    Create or update a query with a where clause built from `predicates`.

    Each key/value pair adds a `column = value` condition, in insertion order.
    With a single mapping argument, builds a where-only query:

        by({"name": "John"})  ->  Query(where=("=", "name", "John"))
    """
    if predicates is None and isinstance(query, Mapping):
        query, predicates = None, query

    result = expand(query)
    for column, value in (predicates or {}).items():
        result = merge_where(result, ("=", column, value))
    return result


def primary_key_value(id_or_record: Any, primary_key: str = DEFAULT_PRIMARY_KEY) -> Any:
    """Resolve the primary key value from a record, or return the id itself."""
    if isinstance(id_or_record, Mapping):
        return id_or_record.get(primary_key)
    return id_or_record


def by_primary_key(
    query: QueryLike,
    id_or_record: Any,
    primary_key: str = DEFAULT_PRIMARY_KEY
) -> Query:
    """
    Filter `query` on its primary key.

    Raises:
        MissingPrimaryKey: If the key value is absent or None
    """
    value = primary_key_value(id_or_record, primary_key)
    if value is None:
        raise missing_primary_key(primary_key, id_or_record)
    return by(query, {primary_key: value})


# =============================================================================
# SELECT / PAGING
# =============================================================================

def aggregate_selector(kind: str, column: str) -> Aggregate:
    """
    Build the selector for `kind(column)`.

    Raises:
        UnsupportedAggregate: If kind is not one of avg, count, max, min, sum
    """
    if kind not in AGGREGATE_KINDS:
        raise unsupported_aggregate(kind, AGGREGATE_KINDS)
    return Aggregate(kind, column)


def select(query: QueryLike, *selectors: Any) -> Query:
    """Replace the selector list of `query`."""
    return expand(query).merge(select=tuple(selectors))


def limit(query: QueryLike, n: int) -> Query:
    return expand(query).merge(limit=n)


def offset(query: QueryLike, n: int) -> Query:
    return expand(query).merge(offset=n)


def order_by(query: QueryLike, column: str, direction: str = "asc") -> Query:
    """Append an ORDER BY term to `query`."""
    direction = direction.lower()
    if direction not in ("asc", "desc"):
        raise ValueError(f"Invalid sort direction: {direction}")
    query = expand(query)
    return query.merge(order_by=(query.order_by or ()) + ((column, direction),))


# =============================================================================
# WRITES
# =============================================================================

def insert_query(table: str, record: Mapping[str, Any]) -> Query:
    """Single-row insert; columns follow the record's key order."""
    items = list(record.items())
    return Query(
        insert_into=table,
        columns=tuple(column for column, _ in items),
        values=(tuple(value for _, value in items),),
    )


def all_columns(records: Iterable[Mapping[str, Any]]) -> List[str]:
    """Distinct union of record keys in first-seen order."""
    columns: Dict[str, None] = {}
    for record in records:
        for column in record:
            columns.setdefault(column, None)
    return list(columns)


def insert_all_query(
    table: str,
    records: Sequence[Mapping[str, Any]],
    columns: Optional[Sequence[str]] = None
) -> Query:
    """Multi-row insert; columns missing from a record are inserted as NULL."""
    columns = list(columns) if columns is not None else all_columns(records)
    return Query(
        insert_into=table,
        columns=tuple(columns),
        values=tuple(tuple(record.get(column) for column in columns) for record in records),
    )


def update_query(
    table: str,
    record: Mapping[str, Any],
    primary_key: str = DEFAULT_PRIMARY_KEY
) -> Query:
    """
    Update every column of `record` except the primary key.

    Raises:
        MissingPrimaryKey: If the record has no value for the primary key
    """
    key = primary_key_value(record, primary_key)
    if key is None:
        raise missing_primary_key(primary_key, record)

    return Query(
        update=table,
        set=tuple((column, value) for column, value in record.items() if column != primary_key),
        where=("=", primary_key, key),
    )


def delete_query(
    table: str,
    id_or_record: Any,
    primary_key: str = DEFAULT_PRIMARY_KEY
) -> Query:
    """Delete a single row by primary key."""
    return by_primary_key(Query(delete_from=table), id_or_record, primary_key)


def delete_all_query(table: str, query: QueryLike = None) -> Query:
    """Delete every row of `table` matching the where clause of `query`."""
    return Query(delete_from=table, where=expand(query).where)
