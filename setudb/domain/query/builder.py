"""
SQL Builder using SQLGlot

Renders a canonical `Query` into dialect SQL text plus positional parameters.
Replaces manual string concatenation with programmatic SQL building.

Usage:
    builder = SQLBuilder(dialect="postgres")
    sql, params = builder.render(
        Query(from_=("users",), select=("*",), where=("=", "name", "John"))
    )
    # SELECT * FROM "users" WHERE "name" = ?    ["John"]

Values never appear in the SQL text; every value becomes a `?` placeholder and
is appended to the parameter list in the order it appears in the statement.
Adapters convert `?` to their engine-specific placeholder.
"""

import logging
import re
from typing import Any, List, Optional, Tuple

import sqlglot
from sqlglot import expressions as exp
from sqlglot.errors import ParseError

from setudb.domain.query.model import Aggregate, Query
from setudb.errors import InvalidQueryShape, invalid_predicate

logger = logging.getLogger(__name__)

# Plain or table-qualified identifier, e.g. `name` or `users.name`
_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_$]*(\.[A-Za-z_][A-Za-z0-9_$]*)?$")


class SQLBuilder:
    """
    Dialect-aware SQL renderer using SQLGlot.

    Rendering is deterministic: the same query always produces the same SQL
    text and parameter list.
    """

    # Map of engine names to SQLGlot dialects
    DIALECT_MAP = {
        "postgres": "postgres",
        "postgresql": "postgres",
        "mysql": "mysql",
        "mariadb": "mysql",
        "snowflake": "snowflake",
        "bigquery": "bigquery",
        "redshift": "redshift",
        "duckdb": "duckdb",
        "trino": "trino",
        "sqlserver": "tsql",
        "mssql": "tsql",
        "oracle": "oracle",
        "sqlite": "sqlite",
        "sqlite3": "sqlite",
        "timescaledb": "postgres",  # TimescaleDB uses PostgreSQL syntax
        "cockroachdb": "postgres",  # CockroachDB uses PostgreSQL syntax
    }

    # Aggregate kind -> SQLGlot function
    AGGREGATE_MAP = {
        "avg": exp.Avg,
        "count": exp.Count,
        "max": exp.Max,
        "min": exp.Min,
        "sum": exp.Sum,
    }

    # Binary comparison operator -> SQLGlot expression
    COMPARISON_MAP = {
        "=": exp.EQ,
        "<>": exp.NEQ,
        "!=": exp.NEQ,
        "<": exp.LT,
        "<=": exp.LTE,
        ">": exp.GT,
        ">=": exp.GTE,
        "like": exp.Like,
    }

    def __init__(self, dialect: str = "postgres"):
        """
        Initialize SQL builder with target dialect.

        Args:
            dialect: Target SQL dialect (e.g., "postgres", "sqlite", "duckdb")
        """
        self.dialect = self._normalize_dialect(dialect)
        self.target_dialect = self.DIALECT_MAP.get(self.dialect, "postgres")

    def _normalize_dialect(self, dialect: str) -> str:
        """Normalize dialect name to standard form."""
        return dialect.lower().replace("_", "").replace("-", "")

    def render(self, query: Query) -> Tuple[str, List[Any]]:
        """
        Render a canonical query.

        Returns:
            Tuple of (SQL string, parameter values)

        Raises:
            InvalidQueryShape: If the query has nothing to render
        """
        params: List[Any] = []

        if query.insert_into is not None:
            statement = self._build_insert(query, params)
        elif query.update is not None:
            statement = self._build_update(query, params)
        elif query.delete_from is not None:
            statement = self._build_delete(query, params)
        else:
            statement = self._build_select(query, params)

        sql = statement.sql(dialect=self.target_dialect, pretty=False)
        return sql, params

    # -------------------------------------------------------------------------
    # Statements
    # -------------------------------------------------------------------------

    def _build_select(self, query: Query, params: List[Any]) -> exp.Select:
        if not query.select and not query.from_:
            raise InvalidQueryShape(
                message="Cannot render a query without select or from",
                details={"query": query}
            )

        select_exprs = [self._parse_selector(s) for s in (query.select or ("*",))]
        statement = exp.Select().select(*select_exprs)

        if query.from_:
            statement = statement.from_(self._parse_table(query.from_[0]))
            for table in query.from_[1:]:
                statement = statement.join(self._parse_table(table), join_type="cross")

        if query.where is not None:
            statement = statement.where(self._build_predicate(query.where, params))

        if query.order_by:
            order_exprs = [
                exp.Ordered(this=self._parse_column(column), desc=(direction == "desc"))
                for column, direction in query.order_by
            ]
            statement = statement.order_by(*order_exprs)

        if query.limit is not None:
            statement = statement.limit(query.limit)

        if query.offset is not None:
            statement = statement.offset(query.offset)

        return statement

    def _build_insert(self, query: Query, params: List[Any]) -> exp.Insert:
        columns = [exp.Identifier(this=c, quoted=True) for c in (query.columns or ())]
        rows = []
        for row in query.values or ():
            params.extend(row)
            rows.append(exp.Tuple(expressions=[exp.Placeholder() for _ in row]))

        if not rows:
            raise InvalidQueryShape(
                message="Cannot render an insert without values",
                details={"query": query}
            )

        return exp.Insert(
            this=exp.Schema(this=self._parse_table(query.insert_into), expressions=columns),
            expression=exp.Values(expressions=rows),
            returning=self._build_returning(query),
        )

    def _build_update(self, query: Query, params: List[Any]) -> exp.Update:
        if not query.set:
            raise InvalidQueryShape(
                message="Cannot render an update without assignments",
                details={"query": query}
            )

        # SET placeholders precede WHERE placeholders in the statement
        assignments = []
        for column, value in query.set:
            params.append(value)
            assignments.append(exp.EQ(this=self._parse_column(column), expression=exp.Placeholder()))

        where = None
        if query.where is not None:
            where = exp.Where(this=self._build_predicate(query.where, params))

        return exp.Update(
            this=self._parse_table(query.update),
            expressions=assignments,
            where=where,
            returning=self._build_returning(query),
        )

    def _build_delete(self, query: Query, params: List[Any]) -> exp.Delete:
        where = None
        if query.where is not None:
            where = exp.Where(this=self._build_predicate(query.where, params))

        return exp.Delete(
            this=self._parse_table(query.delete_from),
            where=where,
            returning=self._build_returning(query),
        )

    def _build_returning(self, query: Query) -> Optional[exp.Returning]:
        if not query.returning:
            return None
        return exp.Returning(expressions=[self._parse_selector(s) for s in query.returning])

    # -------------------------------------------------------------------------
    # Predicates
    # -------------------------------------------------------------------------

    def _build_predicate(self, predicate: tuple, params: List[Any]) -> exp.Expression:
        """
        Build a WHERE expression from a predicate tree.

        Supports:
        1. Comparisons: ("=", col, v), ("<>", col, v), ("like", col, v), ...
        2. Sets and ranges: ("in", col, [..]), ("between", col, lo, hi)
        3. Nulls: ("is null", col), ("=", col, None)
        4. Logic: ("and", p, ...), ("or", p, ...), ("not", p)
        """
        op = predicate[0].lower()
        operands = predicate[1:]

        if op == "and":
            return exp.and_(*[self._build_predicate(p, params) for p in operands])

        if op == "or":
            return exp.or_(*[self._build_predicate(p, params) for p in operands])

        if op == "not":
            return exp.not_(self._build_predicate(operands[0], params))

        col = self._parse_column(operands[0])

        if op in ("=", "<>", "!=") and operands[1] is None:
            is_null = exp.Is(this=col, expression=exp.Null())
            return is_null if op == "=" else exp.not_(is_null)

        if op in self.COMPARISON_MAP:
            params.append(operands[1])
            return self.COMPARISON_MAP[op](this=col, expression=exp.Placeholder())

        if op in ("in", "not in"):
            values = list(operands[1])
            if not values:
                # Empty IN matches nothing, empty NOT IN matches everything
                return exp.false() if op == "in" else exp.true()
            params.extend(values)
            in_expr = exp.In(this=col, expressions=[exp.Placeholder() for _ in values])
            return in_expr if op == "in" else exp.not_(in_expr)

        if op == "between":
            params.extend([operands[1], operands[2]])
            return exp.Between(this=col, low=exp.Placeholder(), high=exp.Placeholder())

        if op == "is null":
            return exp.Is(this=col, expression=exp.Null())

        if op == "is not null":
            return exp.not_(exp.Is(this=col, expression=exp.Null()))

        raise invalid_predicate(predicate, f"unknown operator '{op}'")

    # -------------------------------------------------------------------------
    # Identifiers and selectors
    # -------------------------------------------------------------------------

    def _parse_table(self, table_name: str) -> exp.Table:
        """Parse table name (supports schema.table format)."""
        parts = table_name.split(".", 1)
        if len(parts) == 2:
            return exp.Table(
                this=exp.Identifier(this=parts[1], quoted=True),
                db=exp.Identifier(this=parts[0], quoted=True)
            )
        return exp.Table(this=exp.Identifier(this=table_name, quoted=True))

    def _parse_column(self, column_name: str) -> exp.Column:
        """Parse column name (supports table.column format)."""
        parts = column_name.split(".", 1)
        if len(parts) == 2:
            return exp.Column(
                this=exp.Identifier(this=parts[1], quoted=True),
                table=exp.Identifier(this=parts[0], quoted=True)
            )
        return exp.Column(this=exp.Identifier(this=column_name, quoted=True))

    def _parse_selector(self, selector: Any) -> exp.Expression:
        """Parse a selector: "*", a column, an Aggregate or a SQL expression."""
        if isinstance(selector, Aggregate):
            fn = self.AGGREGATE_MAP[selector.kind]
            arg = exp.Star() if selector.column == "*" else self._parse_column(selector.column)
            return exp.alias_(fn(this=arg), selector.kind, quoted=True)

        if selector == "*":
            return exp.Star()

        if _IDENTIFIER.match(selector):
            return self._parse_column(selector)

        return self._parse_expression(selector)

    def _parse_expression(self, expression: str) -> exp.Expression:
        """Parse SQL expression (e.g., "COUNT(*)", "price * qty AS total")."""
        try:
            return sqlglot.parse_one(expression, read=self.target_dialect)
        except ParseError:
            # If parsing fails, treat as column reference
            logger.debug(f"Selector is not a SQL expression, using as column: {expression}")
            return self._parse_column(expression)
