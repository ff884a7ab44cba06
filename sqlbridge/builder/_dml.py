"""Data-modifying statement builders: INSERT, UPDATE and DELETE.

These run as row-returning queries when they carry a RETURNING clause and as
side-effecting executes otherwise.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Optional, Union

from sqlglot import exp
from typing_extensions import Self

from sqlbridge.builder._base import StatementBuilder
from sqlbridge.builder._parsing import parse_column_expression, parse_table_expression
from sqlbridge.builder.mixins import ReturningClauseMixin, WhereClauseMixin
from sqlbridge.dispatch import OperationKind
from sqlbridge.exceptions import SQLBuilderError
from sqlbridge.utils.text import sql_name

if TYPE_CHECKING:
    from sqlbridge.builder._select import Query
    from sqlbridge.context import ConnectionContext

__all__ = ("DeleteBuilder", "InsertBuilder", "UpdateBuilder", "delete", "insert", "update")

MIN_SET_ARGS = 2


@dataclass
class InsertBuilder(ReturningClauseMixin, StatementBuilder):
    """Builder for ``INSERT INTO table [(columns)] VALUES ... | SELECT ...``."""

    operation_kind = OperationKind.INSERT
    _table: Optional[exp.Expression] = field(default=None, init=False, repr=False, compare=False, hash=False)
    _columns: "list[str]" = field(default_factory=list, init=False, repr=False, compare=False, hash=False)

    def _create_base_expression(self) -> exp.Expression:
        return exp.Insert()

    def _sync_target(self) -> None:
        if self._table is None:
            return
        if self._columns:
            target: exp.Expression = exp.Schema(
                this=self._table.copy(), expressions=[exp.to_identifier(column) for column in self._columns]
            )
        else:
            target = self._table.copy()
        self.expression.set("this", target)

    def into(self, table: "Union[str, exp.Expression]") -> Self:
        """Set the target table."""
        self._table = parse_table_expression(table, self.dialect)
        self._sync_target()
        return self

    def columns(self, *columns: str) -> Self:
        """Set the target columns; names are converted with :func:`~sqlbridge.utils.text.sql_name`."""
        if self.expression.args.get("expression") is not None and self._columns:
            msg = "Cannot change INSERT columns after values were added."
            raise SQLBuilderError(msg)
        self._columns = [sql_name(column) for column in columns]
        self._sync_target()
        return self

    def values(self, *rows: "Union[Mapping[str, Any], Sequence[Any]]") -> Self:
        """Add rows, each a mapping of column to value or a sequence in column order.

        The first mapping row sets the columns when none were declared; every
        later mapping row must have the same keys.

        Raises:
            SQLBuilderError: A row does not match the columns, or the INSERT already selects from a query.
        """
        existing = self.expression.args.get("expression")
        if existing is not None and not isinstance(existing, exp.Values):
            msg = "Cannot add VALUES to an INSERT ... SELECT statement."
            raise SQLBuilderError(msg)
        tuples = list(existing.expressions) if existing is not None else []
        for row in rows:
            tuples.append(exp.Tuple(expressions=[self._placeholder(value) for value in self._row_values(row)]))
        if tuples:
            self.expression.set("expression", exp.Values(expressions=tuples))
        return self

    def _row_values(self, row: "Union[Mapping[str, Any], Sequence[Any]]") -> "list[Any]":
        if isinstance(row, Mapping):
            keys = [sql_name(key) for key in row]
            if not self._columns:
                self.columns(*keys)
            elif set(keys) != set(self._columns):
                msg = f"Row columns {sorted(keys)} do not match INSERT columns {sorted(self._columns)}"
                raise SQLBuilderError(msg)
            by_name = dict(zip(keys, row.values()))
            return [by_name[column] for column in self._columns]
        values = list(row)
        if self._columns and len(values) != len(self._columns):
            msg = f"Row has {len(values)} values but the INSERT names {len(self._columns)} columns"
            raise SQLBuilderError(msg)
        return values

    def select(self, query: "Query") -> Self:
        """Insert the rows of ``query`` (``INSERT ... SELECT``)."""
        self.expression.set("expression", self._expression_of(query))
        return self

    def _validate(self) -> None:
        if self._table is None:
            self._raise_sql_builder_error("INSERT requires a target table.")
        if self.expression.args.get("expression") is None:
            self._raise_sql_builder_error("INSERT requires values or a query.")


class UpdateBuilder(WhereClauseMixin, ReturningClauseMixin, StatementBuilder):
    """Builder for ``UPDATE table SET ... [WHERE ...] [RETURNING ...]``."""

    operation_kind = OperationKind.UPDATE

    def _create_base_expression(self) -> exp.Expression:
        return exp.Update()

    def table(self, table: "Union[str, exp.Expression]") -> Self:
        self.expression.set("this", parse_table_expression(table, self.dialect))
        return self

    def set(self, *args: Any, **kwargs: Any) -> Self:
        """Add assignments.

        Supports ``set(column, value)``, ``set(mapping)``, ``set(**kwargs)`` and
        ``set(mapping, **kwargs)``. Values that are sqlglot expressions are used
        verbatim; anything else is bound.

        Raises:
            SQLBuilderError: The arguments match none of the supported forms.

        Returns:
            The builder.
        """
        if len(args) == MIN_SET_ARGS and not kwargs:
            column, value = args
            pairs = [(column, value)]
        elif (len(args) == 1 and isinstance(args[0], Mapping)) or (not args and kwargs):
            pairs = list({**(args[0] if args else {}), **kwargs}.items())
        else:
            msg = "Invalid arguments for set(): use (column, value), mapping, or kwargs."
            raise SQLBuilderError(msg)
        assignments = list(self.expression.expressions)
        for column, value in pairs:
            assignments.append(
                exp.EQ(this=parse_column_expression(column, self.dialect), expression=self._placeholder(value))
            )
        self.expression.set("expressions", assignments)
        return self

    def _validate(self) -> None:
        if self.expression.this is None:
            self._raise_sql_builder_error("UPDATE requires a table.")
        if not self.expression.expressions:
            self._raise_sql_builder_error("UPDATE requires at least one SET assignment.")


class DeleteBuilder(WhereClauseMixin, ReturningClauseMixin, StatementBuilder):
    """Builder for ``DELETE FROM table [WHERE ...] [RETURNING ...]``."""

    operation_kind = OperationKind.DELETE

    def _create_base_expression(self) -> exp.Expression:
        return exp.Delete()

    def from_(self, table: "Union[str, exp.Expression]") -> Self:
        self.expression.set("this", parse_table_expression(table, self.dialect))
        return self

    def _validate(self) -> None:
        if self.expression.this is None:
            self._raise_sql_builder_error("DELETE requires a table.")


def insert(
    ctx: "ConnectionContext", table: "Union[str, exp.Expression]", columns: "Optional[Sequence[str]]" = None
) -> InsertBuilder:
    """Start an INSERT into ``table``."""
    builder = InsertBuilder(ctx).into(table)
    return builder.columns(*columns) if columns else builder


def update(
    ctx: "ConnectionContext", table: "Union[str, exp.Expression]", set_map: "Optional[Mapping[str, Any]]" = None
) -> UpdateBuilder:
    """Start an UPDATE of ``table``, optionally with its assignments."""
    builder = UpdateBuilder(ctx).table(table)
    return builder.set(set_map) if set_map else builder


def delete(ctx: "ConnectionContext", table: "Union[str, exp.Expression]") -> DeleteBuilder:
    """Start a DELETE from ``table``."""
    return DeleteBuilder(ctx).from_(table)
