"""
SetuDB - data access on top of raw SQL

Structured queries, shorthand expansion, instrumented execution, CRUD helpers,
call-chain scoped transactions and a bound API.

    from setudb import Database, DatabaseConfig

    db = Database(DatabaseConfig(engine="sqlite", options={"database": ":memory:"}))
    db.insert("users", {"name": "John"})
    db.all_rows("users")
"""

import logging

from setudb.errors import (
    ErrorCode,
    InvalidPredicate,
    InvalidQueryShape,
    MissingPrimaryKey,
    MultipleResults,
    NoActiveTransaction,
    NotFound,
    SetuDBError,
    UnsupportedAggregate,
)
from setudb.domain.query import (
    Aggregate,
    EMPTY_QUERY,
    Empty,
    Explicit,
    Generator,
    Query,
    SQLBuilder,
    TableRef,
    aggregate_selector,
    by,
    by_primary_key,
    delete_all_query,
    delete_query,
    expand,
    insert_all_query,
    insert_query,
    limit,
    merge_where,
    offset,
    order_by,
    select,
    to_shorthand,
    update_query,
)
from setudb.adapters import AdapterError, BaseAdapter, Connection, get_adapter, register_adapter
from setudb.context import current_connection, in_transaction, query_defaults, rollback, transaction
from setudb.domain.query.engine import ExecutionResult, execute
from setudb.domain.query.operations import (
    aggregate,
    all_rows,
    delete,
    delete_all,
    exists,
    get,
    get_by,
    get_by_or_raise,
    get_or_raise,
    insert,
    insert_all,
    one,
    one_or_raise,
    update,
)
from setudb.core.config import DatabaseConfig, Settings, configure_logging, settings
from setudb.database import Database

__version__ = "1.0.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    # Errors
    "ErrorCode",
    "SetuDBError",
    "InvalidQueryShape",
    "InvalidPredicate",
    "UnsupportedAggregate",
    "MissingPrimaryKey",
    "MultipleResults",
    "NotFound",
    "NoActiveTransaction",
    "AdapterError",
    # Query model
    "Query",
    "Aggregate",
    "EMPTY_QUERY",
    "Empty",
    "TableRef",
    "Generator",
    "Explicit",
    "expand",
    "to_shorthand",
    "by",
    "by_primary_key",
    "merge_where",
    "aggregate_selector",
    "select",
    "limit",
    "offset",
    "order_by",
    "insert_query",
    "insert_all_query",
    "update_query",
    "delete_query",
    "delete_all_query",
    "SQLBuilder",
    # Execution
    "execute",
    "ExecutionResult",
    "all_rows",
    "one",
    "one_or_raise",
    "get",
    "get_or_raise",
    "get_by",
    "get_by_or_raise",
    "aggregate",
    "exists",
    "insert",
    "insert_all",
    "update",
    "delete",
    "delete_all",
    # Transactions
    "transaction",
    "in_transaction",
    "rollback",
    "current_connection",
    "query_defaults",
    # Adapters
    "BaseAdapter",
    "Connection",
    "get_adapter",
    "register_adapter",
    # Bound API
    "Database",
    "DatabaseConfig",
    "Settings",
    "settings",
    "configure_logging",
]
