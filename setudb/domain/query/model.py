"""
Canonical Query Model

A `Query` is the fully structured, renderer-ready description of one SQL
statement. Queries are immutable values: every helper in
`setudb.domain.query.clauses` returns a new `Query` derived from its input.

A query is either a read query (select/from) or a write query (exactly one of
insert_into, update, delete_from). The two shapes are mutually exclusive.

Predicates are tuples in prefix form, e.g.:

    ("=", "id", 1)
    ("and", ("=", "name", "John"), (">", "age", 30))
    ("in", "status", ["active", "pending"])
"""

from dataclasses import dataclass, replace
from typing import Any, Optional, Tuple

from setudb.errors import InvalidQueryShape, invalid_predicate, unsupported_aggregate

Predicate = Tuple[Any, ...]

# Aggregate functions supported by `aggregate_selector`
AGGREGATE_KINDS = frozenset({"avg", "count", "max", "min", "sum"})

# Operator -> number of operands after the operator token
COMPARISON_OPERATORS = {
    "=": 2,
    "<>": 2,
    "!=": 2,
    "<": 2,
    "<=": 2,
    ">": 2,
    ">=": 2,
    "like": 2,
    "in": 2,
    "not in": 2,
    "between": 3,
    "is null": 1,
    "is not null": 1,
}

LOGICAL_OPERATORS = frozenset({"and", "or", "not"})


@dataclass(frozen=True)
class Aggregate:
    """Aggregate selector, rendered as `KIND(column) AS kind`."""
    kind: str
    column: str

    def __post_init__(self):
        if self.kind not in AGGREGATE_KINDS:
            raise unsupported_aggregate(self.kind, AGGREGATE_KINDS)


@dataclass(frozen=True)
class Query:
    """
    Canonical query representation.

    Attributes:
        from_: Table names to select from
        select: Selectors ("*", column names, raw expressions, Aggregate)
        where: Predicate tree
        order_by: (column, "asc"|"desc") pairs
        limit: Maximum number of rows
        offset: Number of rows to skip
        insert_into: Target table of an insert
        columns: Insert column names
        values: Insert rows, one tuple per row
        update: Target table of an update
        set: (column, value) assignments of an update
        delete_from: Target table of a delete
        returning: Selectors returned by a write statement
    """
    from_: Optional[Tuple[str, ...]] = None
    select: Optional[Tuple[Any, ...]] = None
    where: Optional[Predicate] = None
    order_by: Optional[Tuple[Tuple[str, str], ...]] = None
    limit: Optional[int] = None
    offset: Optional[int] = None
    insert_into: Optional[str] = None
    columns: Optional[Tuple[str, ...]] = None
    values: Optional[Tuple[Tuple[Any, ...], ...]] = None
    update: Optional[str] = None
    set: Optional[Tuple[Tuple[str, Any], ...]] = None
    delete_from: Optional[str] = None
    returning: Optional[Tuple[Any, ...]] = None

    def __post_init__(self):
        # Frozen: normalize through object.__setattr__
        if isinstance(self.from_, str):
            object.__setattr__(self, "from_", (self.from_,))
        if self.where is not None:
            object.__setattr__(self, "where", normalize_predicate(self.where))

        targets = [t for t in (self.insert_into, self.update, self.delete_from) if t is not None]
        if len(targets) > 1:
            raise InvalidQueryShape(
                message="A query may only have one of insert_into, update or delete_from",
                details={"query": self}
            )
        if targets and self.select is not None:
            raise InvalidQueryShape(
                message="A write query cannot have a select clause",
                details={"query": self}
            )
        if self.where is not None:
            validate_predicate(self.where)

    @property
    def is_write(self) -> bool:
        """True for insert, update and delete queries."""
        return (
            self.insert_into is not None
            or self.update is not None
            or self.delete_from is not None
        )

    @property
    def is_empty(self) -> bool:
        return self == EMPTY_QUERY

    def merge(self, **changes) -> "Query":
        """Return a copy of this query with the given fields replaced."""
        return replace(self, **changes)


EMPTY_QUERY = Query()


def normalize_predicate(predicate: Any) -> Any:
    """Turn list-based predicate nodes into tuples; operand values are kept as-is."""
    if isinstance(predicate, list):
        predicate = tuple(predicate)
    if isinstance(predicate, tuple) and predicate and isinstance(predicate[0], str):
        if predicate[0].lower() in LOGICAL_OPERATORS:
            return (predicate[0].lower(),) + tuple(normalize_predicate(p) for p in predicate[1:])
    return predicate


def validate_predicate(predicate: Any) -> None:
    """Check the operator and arity of every node of a predicate tree."""
    if not isinstance(predicate, tuple) or not predicate:
        raise invalid_predicate(predicate, "predicates must be non-empty tuples")

    op = predicate[0]
    if not isinstance(op, str):
        raise invalid_predicate(predicate, "the first element must be an operator")

    op = op.lower()
    operands = predicate[1:]

    if op in LOGICAL_OPERATORS:
        if op == "not" and len(operands) != 1:
            raise invalid_predicate(predicate, "'not' takes exactly one predicate")
        if not operands:
            raise invalid_predicate(predicate, f"'{op}' needs at least one predicate")
        for operand in operands:
            validate_predicate(operand)
        return

    arity = COMPARISON_OPERATORS.get(op)
    if arity is None:
        raise invalid_predicate(predicate, f"unknown operator '{op}'")
    if len(operands) != arity:
        raise invalid_predicate(predicate, f"'{op}' takes {arity} operand(s)")
