"""
Query Domain

Canonical query model, shorthand expansion, clause helpers and SQL rendering.

The execution engine and CRUD operations live in `engine` and `operations`
and are imported from there, since they depend on the adapters.
"""

from setudb.domain.query.model import Aggregate, EMPTY_QUERY, Predicate, Query
from setudb.domain.query.shorthand import Empty, Explicit, Generator, TableRef, expand, to_shorthand
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
    merge_where,
    offset,
    order_by,
    select,
    update_query,
)
from setudb.domain.query.builder import SQLBuilder

__all__ = [
    "Aggregate",
    "EMPTY_QUERY",
    "Predicate",
    "Query",
    "Empty",
    "Explicit",
    "Generator",
    "TableRef",
    "expand",
    "to_shorthand",
    "DEFAULT_PRIMARY_KEY",
    "aggregate_selector",
    "by",
    "by_primary_key",
    "delete_all_query",
    "delete_query",
    "insert_all_query",
    "insert_query",
    "limit",
    "merge_where",
    "offset",
    "order_by",
    "select",
    "update_query",
    "SQLBuilder",
]
