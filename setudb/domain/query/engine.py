"""
Query execution engine.

`execute` is the single path every operation takes to the database:

    expand -> render -> classify -> time -> run primitive -> log -> result

Completed queries are logged at DEBUG with their run time. Queries exceeding
the long-running threshold (500ms unless configured) are logged at WARNING.
Failed queries are logged at ERROR with the elapsed time and the SQL, and the
driver's exception is re-raised unchanged.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, List, Optional

from setudb.adapters.base import Connection
from setudb.context import current_defaults
from setudb.domain.query.model import Query
from setudb.domain.query.shorthand import QueryLike, expand

logger = logging.getLogger(__name__)

DEFAULT_LONG_RUNNING_THRESHOLD = 500


@dataclass(frozen=True)
class ExecutionResult:
    """
    Outcome of one `execute` call.

    Attributes:
        query: The expanded query that was executed
        sql: Rendered SQL text
        params: Bound parameter values
        ms: Elapsed wall-clock time in milliseconds
        result: Rows for reads; affected row count or returned rows for writes
    """
    query: Query
    sql: str
    params: List[Any]
    ms: float
    result: Any


def _identity(row):
    return row


def _now() -> float:
    return time.perf_counter()


def _elapsed_ms(start: float, stop: float) -> float:
    return (stop - start) * 1000.0


def execute(
    conn: Connection,
    query: QueryLike,
    *,
    row_fn: Optional[Callable] = None,
    long_running_threshold: Optional[float] = None,
    return_keys: bool = False,
    result_set_fn: Optional[Callable] = None,
) -> ExecutionResult:
    """
    Execute the specified query.

    Args:
        conn: Connection handle lent by an adapter
        query: Query or abbreviated form (see `expand`)
        row_fn: Applied to every returned row
        long_running_threshold: Milliseconds after which a warning is logged
        return_keys: Return the rows written (RETURNING *) instead of a count
        result_set_fn: Applied to the complete list of rows of a read

    Per-call options override the ambient defaults of a bound `Database`,
    which override the built-in defaults (identity, 500ms).

    Raises:
        Whatever the driver raises, unchanged, after logging it
    """
    defaults = current_defaults()
    if row_fn is None:
        row_fn = defaults.row_fn or _identity
    if long_running_threshold is None:
        long_running_threshold = defaults.long_running_threshold
    if long_running_threshold is None:
        long_running_threshold = DEFAULT_LONG_RUNNING_THRESHOLD

    query = expand(query)
    if return_keys and query.is_write and not query.returning:
        query = query.merge(returning=("*",))

    sql, params = conn.render(query)

    start = _now()
    try:
        if query.is_write:
            result = conn.execute_write(sql, params, return_keys=bool(query.returning))
        else:
            result = conn.query_rows(sql, params, row_fn)
            if result_set_fn is not None:
                result = result_set_fn(result)
    except Exception:
        elapsed = _elapsed_ms(start, _now())
        logger.exception(f"Query threw exception after {elapsed:.2f}ms\n{sql}")
        raise

    elapsed = _elapsed_ms(start, _now())
    logger.debug(f"Query completed in {elapsed:.2f}ms\n{sql}")
    if elapsed > long_running_threshold:
        logger.warning(
            f"Query completed in {elapsed:.2f}ms, exceeding long-running threshold "
            f"of {long_running_threshold}ms\n{sql}"
        )

    return ExecutionResult(query=query, sql=sql, params=params, ms=elapsed, result=result)
