"""Render sqlglot expressions to SQL text plus ordered positional parameters.

Builders bind values to named ``exp.Placeholder`` nodes. Rendering goes through
a per-dialect generator subclass that emits an indexed marker for every
placeholder; the markers are then numbered in the order they appear in the
text, so the returned parameter list lines up with the SQL whatever order
sqlglot generates clauses in (CTEs are generated after the query body).
"""

import re
import uuid
from collections.abc import Mapping, Sequence
from functools import lru_cache
from typing import Any, Optional, Union

from sqlglot import exp
from sqlglot.dialects.dialect import Dialect
from sqlglot.generator import Generator

from sqlbridge.builder._expressions import TRANSFORMS
from sqlbridge.exceptions import SQLBuilderError
from sqlbridge.parameters import ParameterStyle, placeholder
from sqlbridge.utils.logging import get_logger

__all__ = ("binding_generator_class", "placeholder_name", "render_expression")

logger = get_logger("builder.render")

# Markers are printable: sqlglot strips trailing whitespace and control characters.
_MARKER_RE = re.compile(r"__sqlbridge_([0-9a-f]{12})_(\d+)__")


class _BindingGeneratorMixin:
    """Records placeholders while generating and leaves an indexed marker in their place."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.bound_names: list[Optional[str]] = []
        self.marker_token = uuid.uuid4().hex[:12]

    def placeholder_sql(self, expression: exp.Placeholder) -> str:
        self.bound_names.append(placeholder_name(expression))
        return f"__sqlbridge_{self.marker_token}_{len(self.bound_names) - 1}__"


def placeholder_name(expression: exp.Placeholder) -> Optional[str]:
    """Return the name of a ``:name`` placeholder, ``None`` for an anonymous ``?``."""
    name = expression.args.get("this")
    if isinstance(name, exp.Expression):
        name = name.name
    return str(name) if name else None


def _placeholder_transform(generator: Any, expression: exp.Placeholder) -> str:
    return generator.placeholder_sql(expression)


@lru_cache(maxsize=32)
def binding_generator_class(dialect: Optional[str] = None) -> "type[Generator]":
    """Return the binding generator class for ``dialect`` (cached per dialect name).

    Raises:
        SQLBuilderError: ``dialect`` is not a sqlglot dialect.
    """
    try:
        base = Dialect.get_or_raise(dialect).generator_class
    except ValueError as e:
        msg = f"Unknown SQL dialect {dialect!r}"
        raise SQLBuilderError(msg) from e
    transforms = {**base.TRANSFORMS, **TRANSFORMS, exp.Placeholder: _placeholder_transform}
    return type(f"Binding{base.__name__}", (_BindingGeneratorMixin, base), {"TRANSFORMS": transforms})


def render_expression(
    expression: exp.Expression,
    *,
    dialect: Optional[str] = None,
    identify: bool = False,
    parameter_style: "Union[ParameterStyle, str]" = ParameterStyle.QMARK,
    parameters: "Optional[Mapping[str, Any]]" = None,
    positional: "Sequence[Any]" = (),
) -> "tuple[str, list[Any]]":
    """Render ``expression`` and collect its bind values in placeholder order.

    Named placeholders take their value from ``parameters``; anonymous ``?``
    placeholders consume ``positional`` in order. When the expression holds no
    placeholder at all (SQL sqlglot keeps as an opaque command), ``positional``
    is passed through unchanged.

    Args:
        expression: Expression to render; it is not modified.
        dialect: sqlglot dialect name.
        identify: Quote every identifier.
        parameter_style: Positional placeholder style of the driver.
        parameters: Values of named placeholders.
        positional: Values of anonymous placeholders.

    Raises:
        SQLBuilderError: A placeholder has no value, or positional values are
            left over.

    Returns:
        ``(sql_text, bind_params)``.
    """
    style = ParameterStyle.coerce(parameter_style)
    generator = binding_generator_class(dialect)(dialect=dialect, identify=identify)
    marked = generator.generate(expression, copy=True)

    ordered: list[Optional[str]] = []

    def _number(match: "re.Match[str]") -> str:
        if match.group(1) != generator.marker_token:
            return match.group(0)
        ordered.append(generator.bound_names[int(match.group(2))])
        return placeholder(style, len(ordered))

    sql = _MARKER_RE.sub(_number, marked)
    named = parameters or {}
    remaining = list(positional)
    values: list[Any] = []
    for name in ordered:
        if name is None:
            if not remaining:
                msg = f"Not enough positional values for the placeholders of: {sql}"
                raise SQLBuilderError(msg)
            values.append(remaining.pop(0))
        elif name in named:
            values.append(named[name])
        else:
            msg = f"No value bound for placeholder :{name}"
            raise SQLBuilderError(msg)
    if remaining:
        if ordered:
            msg = f"{len(remaining)} positional value(s) have no placeholder in: {sql}"
            raise SQLBuilderError(msg)
        values.extend(remaining)
    logger.debug("Rendered statement", extra={"extra_fields": {"sql": sql, "parameter_count": len(values)}})
    return sql, values
