"""
Call-chain scoped execution context.

Two pieces of ambient state live here, both in `contextvars.ContextVar`s so
they are scoped to the current thread or asyncio task and never leak between
independent call chains:

- the connections of the active transactions, at most one per adapter
- default execution options (`row_fn`, `long_running_threshold`) applied by a
  bound `Database`

Both are restored to their previous value when the owning block exits, on
every path.

    with transaction(adapter) as conn:
        insert(conn, "users", {"name": "John"})
        with transaction(adapter) as inner:   # same connection, no new transaction
            assert inner is conn
        with adapter.connection() as lent:    # joins the transaction too
            assert lent is conn
        if something_went_wrong:
            rollback()                        # rolled back when the outer block ends
"""

import logging
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Callable, Iterator, Optional, Tuple, Union

from setudb.adapters.base import BaseAdapter, Connection
from setudb.errors import no_active_transaction

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QueryDefaults:
    """Ambient execution defaults, overridden by per-call options."""
    row_fn: Optional[Callable] = None
    long_running_threshold: Optional[float] = None


# Innermost transaction last
_tx_conns: ContextVar[Tuple[Connection, ...]] = ContextVar("setudb_tx_conns", default=())
_query_defaults: ContextVar[QueryDefaults] = ContextVar("setudb_query_defaults", default=QueryDefaults())


# =============================================================================
# TRANSACTIONS
# =============================================================================

def current_connection(adapter: Optional[BaseAdapter] = None) -> Optional[Connection]:
    """
    The connection of the active transaction, or None.

    With `adapter`, only a transaction opened on that adapter counts;
    without, the innermost active transaction is returned.
    """
    for conn in reversed(_tx_conns.get()):
        if adapter is None or conn.adapter is adapter:
            return conn
    return None


def in_transaction(adapter: Optional[BaseAdapter] = None) -> bool:
    """Indicates whether current execution is inside a transaction."""
    return current_connection(adapter) is not None


def rollback(adapter: Optional[BaseAdapter] = None) -> None:
    """
    Mark the active transaction for rollback.

    The transaction is rolled back instead of committed when the outermost
    transaction block exits.

    Raises:
        NoActiveTransaction: If called outside a transaction block
    """
    conn = current_connection(adapter)
    if conn is None:
        raise no_active_transaction()
    conn.set_rollback_only()
    logger.debug("Transaction marked for rollback")


@contextmanager
def transaction(source: Union[BaseAdapter, Connection]) -> Iterator[Connection]:
    """
    Execute the block within a transaction.

    If a transaction is already active on the same adapter in this call chain,
    its connection is yielded unchanged and nothing is begun, committed or
    rolled back. Otherwise a transaction is begun on `source` (a connection,
    or an adapter to lend one from), committed when the block succeeds, and
    rolled back when the block raises, the commit fails or `rollback()` was
    called.
    """
    adapter = source if isinstance(source, BaseAdapter) else source.adapter
    active = current_connection(adapter)
    if active is not None:
        yield active
        return

    if isinstance(source, BaseAdapter):
        with source.connection() as conn:
            with _begin(conn) as tx_conn:
                yield tx_conn
    else:
        with _begin(source) as tx_conn:
            yield tx_conn


@contextmanager
def _begin(conn: Connection) -> Iterator[Connection]:
    conn.begin()
    token = _tx_conns.set(_tx_conns.get() + (conn,))
    try:
        yield conn
    except BaseException:
        conn.rollback()
        logger.debug("Transaction rolled back after exception")
        raise
    else:
        if conn.rollback_only:
            conn.rollback()
            logger.debug("Transaction rolled back")
        else:
            _commit(conn)
    finally:
        _tx_conns.reset(token)


def _commit(conn: Connection) -> None:
    try:
        conn.commit()
    except BaseException:
        # A failed COMMIT can leave the transaction open on the connection
        try:
            conn.rollback()
            logger.debug("Transaction rolled back after failed commit")
        except Exception as e:
            logger.warning(f"Error rolling back after failed commit: {e}")
        raise
    logger.debug("Transaction committed")


# =============================================================================
# QUERY DEFAULTS
# =============================================================================

def current_defaults() -> QueryDefaults:
    return _query_defaults.get()


@contextmanager
def query_defaults(
    row_fn: Optional[Callable] = None,
    long_running_threshold: Optional[float] = None
) -> Iterator[QueryDefaults]:
    """Set ambient execution defaults for the duration of the block."""
    token = _query_defaults.set(QueryDefaults(row_fn, long_running_threshold))
    try:
        yield _query_defaults.get()
    finally:
        _query_defaults.reset(token)
