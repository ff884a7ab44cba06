from typing import Union

from sqlglot import exp
from typing_extensions import Self

from sqlbridge.builder._parsing import parse_column_expression
from sqlbridge.exceptions import SQLBuilderError

__all__ = ("ReturningClauseMixin",)


class ReturningClauseMixin:
    """Mixin providing the RETURNING clause for INSERT, UPDATE and DELETE builders.

    A statement with a RETURNING clause is evaluated as a row-returning query.
    """

    def returning(self, *columns: "Union[str, exp.Expression]") -> Self:
        """Add columns to the RETURNING clause (``"*"`` for every column).

        Raises:
            SQLBuilderError: The statement is not INSERT, UPDATE or DELETE, or no column was given.

        Returns:
            The builder.
        """
        expression = self.expression  # type: ignore[attr-defined]
        if not isinstance(expression, (exp.Insert, exp.Update, exp.Delete)):
            msg = "RETURNING is only supported for INSERT, UPDATE and DELETE statements."
            raise SQLBuilderError(msg)
        if not columns:
            msg = "RETURNING needs at least one column."
            raise SQLBuilderError(msg)
        existing = expression.args.get("returning")
        returned = list(existing.expressions) if existing is not None else []
        returned.extend(parse_column_expression(column, self.dialect) for column in columns)  # type: ignore[attr-defined]
        expression.set("returning", exp.Returning(expressions=returned))
        return self
