"""
SetuDB - Structured Error Handling

Every failure raised by SetuDB itself carries enough context to diagnose it
without going back to the logs for the rendered SQL.

ERROR DESIGN PRINCIPLES:
------------------------
1. Every error has a unique code for log searching
2. Messages are human-readable and actionable
3. Details carry the offending query, value or record
4. Suggestions guide callers to fix the issue
5. Driver errors are never wrapped; they reach the caller unchanged

ERROR DICT FORMAT:
------------------
{
    "error": {
        "code": "ERR_2001",
        "message": "No primary key found in column 'id'",
        "details": {"primary_key": "id", "record": {"name": "John"}},
        "suggestion": "Pass the id directly or include 'id' in the record"
    }
}
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Dict, Optional


# =============================================================================
# ERROR CODES
# =============================================================================

class ErrorCode(str, Enum):
    """Unique error codes for every error type."""

    # Query shape (1xxx)
    ERR_INVALID_QUERY_SHAPE = "ERR_1001"
    ERR_UNSUPPORTED_AGGREGATE = "ERR_1002"
    ERR_INVALID_PREDICATE = "ERR_1003"

    # Records (2xxx)
    ERR_MISSING_PRIMARY_KEY = "ERR_2001"

    # Result cardinality (3xxx)
    ERR_MULTIPLE_RESULTS = "ERR_3001"
    ERR_NOT_FOUND = "ERR_3002"

    # Transactions (4xxx)
    ERR_NO_ACTIVE_TRANSACTION = "ERR_4001"

    # Internal (9xxx)
    ERR_INTERNAL = "ERR_9001"


# =============================================================================
# BASE ERROR
# =============================================================================

@dataclass
class SetuDBError(Exception):
    """
    Structured error with all context needed for debugging.

    Attributes:
        message: Human-readable error message
        details: Additional context (offending query, value, SQL)
        suggestion: How to fix the issue
    """
    message: str
    details: Dict[str, Any] = field(default_factory=dict)
    suggestion: Optional[str] = None

    code: ClassVar[ErrorCode] = ErrorCode.ERR_INTERNAL

    def __post_init__(self):
        super().__init__(self.message)

    def __str__(self):
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a serializable error payload."""
        error_dict = {
            "code": self.code.value,
            "message": self.message,
        }

        if self.details:
            error_dict["details"] = {k: repr(v) for k, v in self.details.items()}

        if self.suggestion:
            error_dict["suggestion"] = self.suggestion

        return {"error": error_dict}


class InvalidQueryShape(SetuDBError):
    """A value could not be expanded into, or rendered as, a query."""
    code = ErrorCode.ERR_INVALID_QUERY_SHAPE


class UnsupportedAggregate(SetuDBError):
    """Aggregate function outside the supported set."""
    code = ErrorCode.ERR_UNSUPPORTED_AGGREGATE


class InvalidPredicate(SetuDBError):
    """Predicate tree node with an unknown operator or arity."""
    code = ErrorCode.ERR_INVALID_PREDICATE


class MissingPrimaryKey(SetuDBError):
    """No primary key value could be resolved for a by-key operation."""
    code = ErrorCode.ERR_MISSING_PRIMARY_KEY


class MultipleResults(SetuDBError):
    """A single-result query matched more than one row."""
    code = ErrorCode.ERR_MULTIPLE_RESULTS


class NotFound(SetuDBError):
    """A must-exist single-result query matched no rows."""
    code = ErrorCode.ERR_NOT_FOUND


class NoActiveTransaction(SetuDBError):
    """A transaction-only operation was requested outside a transaction."""
    code = ErrorCode.ERR_NO_ACTIVE_TRANSACTION


# =============================================================================
# ERROR FACTORY FUNCTIONS
# =============================================================================

def invalid_query_shape(value: Any) -> InvalidQueryShape:
    """Create an error for a value that is not a recognized query form."""
    return InvalidQueryShape(
        message=f"Unknown query type: {type(value).__name__}",
        details={"query": value, "type": type(value).__name__},
        suggestion="Use None, a table name, a zero-argument query generator or a Query"
    )


def unsupported_aggregate(kind: Any, supported) -> UnsupportedAggregate:
    """Create an error for an aggregate function outside the supported set."""
    return UnsupportedAggregate(
        message=f"Unsupported aggregate function: {kind}",
        details={"aggregate": kind, "supported": sorted(supported)},
        suggestion=f"Use one of: {', '.join(sorted(supported))}"
    )


def invalid_predicate(predicate: Any, reason: str) -> InvalidPredicate:
    """Create an error for a malformed predicate tree node."""
    return InvalidPredicate(
        message=f"Invalid predicate {predicate!r}: {reason}",
        details={"predicate": predicate}
    )


def missing_primary_key(primary_key: str, id_or_record: Any) -> MissingPrimaryKey:
    """Create an error for a missing or null primary key value."""
    if isinstance(id_or_record, dict):
        suggestion = f"Include '{primary_key}' in the record or pass primary_key=<column>"
    else:
        suggestion = "Pass a non-null id value"

    return MissingPrimaryKey(
        message=f"No primary key found in column '{primary_key}'",
        details={"primary_key": primary_key, "record": id_or_record},
        suggestion=suggestion
    )


def multiple_results(query: Any, sql: str, count: int) -> MultipleResults:
    """Create an error for a single-result query matching several rows."""
    return MultipleResults(
        message=f"More than one result found for query: {sql}",
        details={"query": query, "sql": sql, "count": count},
        suggestion="Narrow the query or use all_rows() to fetch every match"
    )


def not_found(query: Any, sql: str) -> NotFound:
    """Create an error for a must-exist query matching no rows."""
    return NotFound(
        message=f"No results found for query: {sql}",
        details={"query": query, "sql": sql}
    )


def no_active_transaction() -> NoActiveTransaction:
    """Create an error for a rollback requested outside a transaction."""
    return NoActiveTransaction(
        message="Rollback is only applicable inside a transaction",
        suggestion="Call rollback() inside a `with transaction(...)` block"
    )
