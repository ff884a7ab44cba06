"""Row-returning statement builders: SELECT, set operations, WITH and EXPLAIN."""

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any, Optional, Union

from sqlglot import exp
from typing_extensions import Self

from sqlbridge.builder._base import Statement, StatementBuilder
from sqlbridge.builder._expressions import ExplainStatement
from sqlbridge.builder._parsing import (
    parse_column_expression,
    parse_condition_expression,
    parse_order_expression,
    parse_table_expression,
)
from sqlbridge.builder.mixins import WhereClauseMixin
from sqlbridge.dispatch import OperationKind
from sqlbridge.exceptions import SQLBuilderError

if TYPE_CHECKING:
    from sqlbridge.context import ConnectionContext

__all__ = (
    "ExplainBuilder",
    "SelectBuilder",
    "SetOperationBuilder",
    "WithBuilder",
    "except_",
    "explain",
    "intersect",
    "select",
    "union",
    "with_",
)

Query = Union[StatementBuilder, Statement, exp.Expression]


class SelectBuilder(WhereClauseMixin, StatementBuilder):
    """Builder for SELECT statements."""

    operation_kind = OperationKind.SELECT

    def _create_base_expression(self) -> exp.Expression:
        return exp.Select()

    def columns(self, *columns: "Union[str, exp.Expression]") -> Self:
        """Add columns or expressions to the select list."""
        parsed = [parse_column_expression(column, self.dialect) for column in columns]
        self.expression.select(*parsed, copy=False)
        return self

    def from_(self, table: "Union[str, Query]", alias: Optional[str] = None) -> Self:
        """Set the FROM clause to a table or, with ``alias``, to a subquery."""
        if isinstance(table, (StatementBuilder, Statement, exp.Query)):
            source = self._expression_of(table).subquery(alias)
        else:
            source = parse_table_expression(table, self.dialect)
            if alias:
                source.set("alias", exp.TableAlias(this=exp.to_identifier(alias)))
        self.expression.from_(source, copy=False)
        return self

    def join(
        self,
        table: "Union[str, exp.Expression]",
        on: "Optional[Union[str, exp.Expression]]" = None,
        join_type: str = "inner",
        using: "Optional[Sequence[str]]" = None,
    ) -> Self:
        """Add a join; ``join_type`` is ``inner``, ``left``, ``right``, ``full`` or ``cross``."""
        self.expression.join(
            parse_table_expression(table, self.dialect),
            on=parse_condition_expression(on, self.dialect) if on is not None else None,
            using=list(using) if using else None,
            join_type=join_type,
            copy=False,
        )
        return self

    def group_by(self, *columns: "Union[str, exp.Expression]") -> Self:
        self.expression.group_by(*[parse_column_expression(column, self.dialect) for column in columns], copy=False)
        return self

    def having(self, condition: "Union[str, exp.Expression]", **parameters: Any) -> Self:
        """Add a HAVING condition; ``:name`` placeholders are bound from ``parameters``."""
        self.expression.having(parse_condition_expression(condition, self.dialect), copy=False)
        return self.bind(**parameters)

    def order_by(self, *terms: "Union[str, exp.Expression]") -> Self:
        """Add ORDER BY terms such as ``"name"`` or ``"created-at DESC"``."""
        self.expression.order_by(*[parse_order_expression(term, self.dialect) for term in terms], copy=False)
        return self

    def limit(self, count: int) -> Self:
        self.expression.limit(count, copy=False)
        return self

    def offset(self, count: int) -> Self:
        self.expression.offset(count, copy=False)
        return self

    def distinct(self) -> Self:
        self.expression.distinct(copy=False)
        return self


class SetOperationBuilder(StatementBuilder):
    """Builder combining queries with UNION, INTERSECT or EXCEPT."""

    operation_kind = OperationKind.UNION

    _OPERATIONS: "dict[OperationKind, type[exp.Expression]]" = {
        OperationKind.UNION: exp.Union,
        OperationKind.INTERSECT: exp.Intersect,
        OperationKind.EXCEPT: exp.Except,
    }

    def combine(self, kind: OperationKind, queries: "Sequence[Query]", all_: bool = False) -> Self:
        """Fold ``queries`` left to right with the set operation ``kind``.

        Raises:
            SQLBuilderError: Fewer than two queries were given.
        """
        if len(queries) < 2:  # noqa: PLR2004
            msg = f"{kind.value.upper()} needs at least two queries."
            raise SQLBuilderError(msg)
        operation = self._OPERATIONS[kind]
        combined = self._expression_of(queries[0])
        for query in queries[1:]:
            combined = operation(this=combined, expression=self._expression_of(query), distinct=not all_)
        self.operation_kind = kind  # type: ignore[misc]
        self._expression = combined
        return self

    def order_by(self, *terms: "Union[str, exp.Expression]") -> Self:
        self.expression.order_by(*[parse_order_expression(term, self.dialect) for term in terms], copy=False)
        return self

    def limit(self, count: int) -> Self:
        self.expression.limit(count, copy=False)
        return self


class WithBuilder(StatementBuilder):
    """Builder for ``WITH alias AS (query), ... <query>``."""

    operation_kind = OperationKind.WITH

    def query(self, ctes: "Union[Mapping[str, Query], Sequence[tuple[str, Query]]]", body: Query) -> Self:
        """Attach the common table expressions ``ctes`` to ``body``.

        Raises:
            SQLBuilderError: ``body`` is not a query (SELECT or set operation).
        """
        items = list(ctes.items()) if isinstance(ctes, Mapping) else list(ctes)
        if not items:
            msg = "WITH needs at least one common table expression."
            raise SQLBuilderError(msg)
        cte_expressions = [(alias, self._expression_of(cte)) for alias, cte in items]
        body_expression = self._expression_of(body)
        if not isinstance(body_expression, exp.Query):
            msg = f"WITH can only wrap a query, got {type(body_expression).__name__}"
            raise SQLBuilderError(msg)
        for alias, cte in cte_expressions:
            body_expression = body_expression.with_(alias, as_=cte, copy=False)
        self._expression = body_expression
        return self


class ExplainBuilder(StatementBuilder):
    """Builder for ``EXPLAIN [QUERY PLAN] [ANALYZE] <statement>``."""

    operation_kind = OperationKind.EXPLAIN

    def statement(self, query: Query, analyze: bool = False, query_plan: bool = False) -> Self:
        self._expression = ExplainStatement(this=self._expression_of(query), analyze=analyze, query_plan=query_plan)
        return self


def _context_of(queries: "Sequence[Any]", context: "Optional[ConnectionContext]") -> "ConnectionContext":
    if context is not None:
        return context
    for query in queries:
        if isinstance(query, (StatementBuilder, Statement)):
            return query.context
    msg = "No connection context: pass context= or combine builders or statements."
    raise SQLBuilderError(msg)


def select(ctx: "ConnectionContext", *columns: "Union[str, exp.Expression]") -> SelectBuilder:
    """Start a SELECT statement; with no columns the select list stays empty until :meth:`~SelectBuilder.columns`."""
    builder = SelectBuilder(ctx)
    return builder.columns(*columns) if columns else builder


def union(*queries: Query, all_: bool = False, context: "Optional[ConnectionContext]" = None) -> SetOperationBuilder:
    """Combine queries with ``UNION`` (``UNION ALL`` when ``all_``)."""
    return SetOperationBuilder(_context_of(queries, context)).combine(OperationKind.UNION, queries, all_)


def intersect(*queries: Query, all_: bool = False, context: "Optional[ConnectionContext]" = None) -> SetOperationBuilder:
    """Combine queries with ``INTERSECT``."""
    return SetOperationBuilder(_context_of(queries, context)).combine(OperationKind.INTERSECT, queries, all_)


def except_(*queries: Query, all_: bool = False, context: "Optional[ConnectionContext]" = None) -> SetOperationBuilder:
    """Combine queries with ``EXCEPT``."""
    return SetOperationBuilder(_context_of(queries, context)).combine(OperationKind.EXCEPT, queries, all_)


def with_(
    ctes: "Union[Mapping[str, Query], Sequence[tuple[str, Query]]]",
    body: Query,
    context: "Optional[ConnectionContext]" = None,
) -> WithBuilder:
    """Build ``WITH <ctes> <body>``; ``ctes`` maps aliases to queries."""
    queries = [body, *(ctes.values() if isinstance(ctes, Mapping) else [cte for _, cte in ctes])]
    return WithBuilder(_context_of(queries, context)).query(ctes, body)


def explain(
    query: Query, analyze: bool = False, query_plan: bool = False, context: "Optional[ConnectionContext]" = None
) -> ExplainBuilder:
    """Build ``EXPLAIN <query>``; ``query_plan`` emits SQLite's ``EXPLAIN QUERY PLAN``."""
    return ExplainBuilder(_context_of([query], context)).statement(query, analyze, query_plan)
