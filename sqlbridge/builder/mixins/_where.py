from collections.abc import Mapping
from typing import Any, Union

from sqlglot import exp
from typing_extensions import Self

from sqlbridge.builder._parsing import parse_column_expression, parse_condition_expression
from sqlbridge.exceptions import SQLBuilderError

__all__ = ("WhereClauseMixin",)

_COMPARISONS: "dict[str, type[exp.Expression]]" = {
    "=": exp.EQ,
    "!=": exp.NEQ,
    "<>": exp.NEQ,
    "<": exp.LT,
    "<=": exp.LTE,
    ">": exp.GT,
    ">=": exp.GTE,
    "like": exp.Like,
}

Condition = Union[str, exp.Expression, "tuple[Any, ...]", "Mapping[str, Any]"]


class WhereClauseMixin:
    """Mixin providing WHERE clause methods for SELECT, UPDATE and DELETE builders."""

    def where(self, condition: Condition, **parameters: Any) -> Self:
        """Add a condition to the WHERE clause; repeated calls are joined with AND.

        Args:
            condition: One of:

                - a string such as ``"price > :min_price"``, its ``:name``
                  placeholders bound from ``parameters``;
                - a sqlglot expression;
                - ``(column, value)``: equality, ``IS NULL`` for ``None`` and
                  ``IN`` for a list, tuple or set;
                - ``(column, operator, value)`` with one of ``= != <> < <= > >= like``;
                - a mapping of column to value, each entry as ``(column, value)``.
            **parameters: Values of the named placeholders in a string condition.

        Raises:
            SQLBuilderError: The statement has no WHERE clause or the condition is malformed.

        Returns:
            The builder.
        """
        expression = self.expression  # type: ignore[attr-defined]
        if not isinstance(expression, (exp.Select, exp.Update, exp.Delete)):
            msg = f"Cannot add WHERE clause to unsupported expression type: {type(expression).__name__}."
            raise SQLBuilderError(msg)

        if isinstance(condition, Mapping):
            terms = [self._comparison(column, "=", value) for column, value in condition.items()]
            if not terms:
                return self
            condition_expr = exp.and_(*terms)
        elif isinstance(condition, tuple):
            condition_expr = self._tuple_condition(condition)
        else:
            condition_expr = parse_condition_expression(condition, self.dialect)  # type: ignore[attr-defined]
        if parameters:
            self.bind(**parameters)  # type: ignore[attr-defined]

        existing = expression.args.get("where")
        if existing is not None:
            condition_expr = exp.and_(existing.this, condition_expr)
        expression.set("where", exp.Where(this=condition_expr))
        return self

    def _tuple_condition(self, condition: "tuple[Any, ...]") -> exp.Expression:
        if len(condition) == 2:  # noqa: PLR2004
            column, value = condition
            return self._comparison(column, "=", value)
        if len(condition) == 3:  # noqa: PLR2004
            column, operator, value = condition
            return self._comparison(column, str(operator).lower(), value)
        msg = f"Expected (column, value) or (column, operator, value), got {condition!r}"
        raise SQLBuilderError(msg)

    def _comparison(self, column: "Union[str, exp.Expression]", operator: str, value: Any) -> exp.Expression:
        column_expr = parse_column_expression(column, self.dialect)  # type: ignore[attr-defined]
        if operator not in _COMPARISONS:
            msg = f"Unsupported comparison operator {operator!r}"
            raise SQLBuilderError(msg)
        if value is None and operator in {"=", "!=", "<>"}:
            null_check = exp.Is(this=column_expr, expression=exp.null())
            return null_check if operator == "=" else exp.not_(null_check)
        if isinstance(value, (list, tuple, set, frozenset)) and operator in {"=", "!=", "<>"}:
            in_expr = column_expr.isin(*[self._placeholder(item, "where") for item in value])  # type: ignore[attr-defined]
            return in_expr if operator == "=" else exp.not_(in_expr)
        return _COMPARISONS[operator](this=column_expr, expression=self._placeholder(value, "where"))  # type: ignore[attr-defined]
