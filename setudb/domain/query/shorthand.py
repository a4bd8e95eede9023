"""
Query Shorthand

Abbreviated query forms and their expansion into a canonical `Query`.

    Empty         -> Query()
    TableRef(t)   -> Query(from_=(t,), select=("*",))
    Generator(f)  -> f(), expanded once more
    Explicit(q)   -> q

Plain Python values are lifted by `to_shorthand`, so callers can write
`expand("users")`, `expand(None)` or `expand(lambda: Query(...))`.
"""

from dataclasses import dataclass
from typing import Any, Callable, Union

from setudb.domain.query.model import EMPTY_QUERY, Query
from setudb.errors import InvalidQueryShape, invalid_query_shape


@dataclass(frozen=True)
class Empty:
    """Absent query."""


@dataclass(frozen=True)
class TableRef:
    """Select-all query on a single table."""
    table: str


@dataclass(frozen=True)
class Generator:
    """Zero-argument function producing a query, invoked at expansion time."""
    fn: Callable[[], Any]


@dataclass(frozen=True)
class Explicit:
    """Already canonical query, passed through unchanged."""
    query: Query


Shorthand = Union[Empty, TableRef, Generator, Explicit]

QueryLike = Union[Shorthand, Query, str, Callable[[], Any], None]


def to_shorthand(value: QueryLike) -> Shorthand:
    """Lift a plain value into its shorthand variant."""
    if isinstance(value, (Empty, TableRef, Generator, Explicit)):
        return value
    if value is None:
        return Empty()
    if isinstance(value, Query):
        return Explicit(value)
    if isinstance(value, str):
        return TableRef(value)
    if callable(value):
        return Generator(value)
    raise invalid_query_shape(value)


def _expand_direct(shorthand: Shorthand) -> Query:
    if isinstance(shorthand, Explicit):
        return shorthand.query
    if isinstance(shorthand, TableRef):
        return Query(from_=(shorthand.table,), select=("*",))
    return EMPTY_QUERY


def expand(value: QueryLike) -> Query:
    """
    Expand a query from an abbreviated form into a canonical `Query`.

    Raises:
        InvalidQueryShape: If the value is not a recognized query form, or a
            generator produces another generator
    """
    shorthand = to_shorthand(value)

    if isinstance(shorthand, Generator):
        produced = to_shorthand(shorthand.fn())
        if isinstance(produced, Generator):
            raise InvalidQueryShape(
                message="Query generator returned another generator",
                details={"generator": shorthand.fn, "result": produced.fn}
            )
        return _expand_direct(produced)

    return _expand_direct(shorthand)
