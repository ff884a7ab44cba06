"""Parsing helpers for values builders accept as strings.

Plain identifiers are taken as lisp-cased names and converted to SQL names
(``created-at`` -> ``created_at``); anything else is parsed by sqlglot.
"""

import re
from typing import TYPE_CHECKING, Any, Optional, Union

from sqlglot import exp
from sqlglot.errors import ParseError

from sqlbridge.exceptions import SQLBuilderError
from sqlbridge.utils.text import sql_name

if TYPE_CHECKING:
    from sqlglot.dialects.dialect import DialectType

__all__ = (
    "literal_or_expression",
    "parse_column_expression",
    "parse_condition_expression",
    "parse_order_expression",
    "parse_table_expression",
)

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][\w-]*(\.[A-Za-z_][\w-]*){0,2}$")
# "orders o" / "orders AS o"
_ALIASED_TABLE_RE = re.compile(
    r"^(?P<name>[A-Za-z_][\w-]*(?:\.[A-Za-z_][\w-]*){0,2})\s+(?:AS\s+)?(?P<alias>[A-Za-z_][\w-]*)$", re.IGNORECASE
)


def _parse(sql: str, dialect: "DialectType", into: "Optional[type[exp.Expression]]" = None) -> exp.Expression:
    try:
        return exp.maybe_parse(sql, dialect=dialect, into=into)  # type: ignore[arg-type]
    except ParseError as e:
        msg = f"Could not parse {sql!r}: {e}"
        raise SQLBuilderError(msg) from e


def parse_column_expression(column: "Union[str, exp.Expression]", dialect: "DialectType" = None) -> exp.Expression:
    """Parse a column, ``*``, ``table.column`` or a full expression such as ``COUNT(*) AS n``."""
    if isinstance(column, exp.Expression):
        return column
    column = column.strip()
    if column == "*":
        return exp.Star()
    if _IDENTIFIER_RE.match(column):
        *qualifiers, name = sql_name(column).split(".")
        return exp.column(name, table=qualifiers[-1] if qualifiers else None)
    return _parse(column, dialect)


def parse_table_expression(table: "Union[str, exp.Expression]", dialect: "DialectType" = None) -> exp.Expression:
    """Parse a table name (``products``, ``shop.products``) or a table expression with alias."""
    if isinstance(table, exp.Expression):
        return table
    table = table.strip()
    if _IDENTIFIER_RE.match(table):
        return exp.to_table(sql_name(table))
    match = _ALIASED_TABLE_RE.match(table)
    if match:
        table_expr = exp.to_table(sql_name(match.group("name")))
        table_expr.set("alias", exp.TableAlias(this=exp.to_identifier(sql_name(match.group("alias")))))
        return table_expr
    return _parse(table, dialect, into=exp.Table)


def parse_condition_expression(condition: "Union[str, exp.Expression]", dialect: "DialectType" = None) -> exp.Expression:
    """Parse a boolean condition; ``:name`` placeholders stay named placeholders."""
    if isinstance(condition, exp.Expression):
        return condition
    try:
        return exp.condition(condition, dialect=dialect)
    except ParseError as e:
        msg = f"Could not parse condition {condition!r}: {e}"
        raise SQLBuilderError(msg) from e


def parse_order_expression(order: "Union[str, exp.Expression]", dialect: "DialectType" = None) -> exp.Expression:
    """Parse an ORDER BY term such as ``name`` or ``created-at DESC``."""
    if isinstance(order, exp.Expression):
        return order
    term, _, direction = order.strip().rpartition(" ")
    if not term or direction.upper() not in {"ASC", "DESC"}:
        term, direction = order.strip(), ""
    column_sql = parse_column_expression(term, dialect).sql(dialect=dialect)
    return _parse(f"{column_sql} {direction}".strip(), dialect, into=exp.Ordered)


def literal_or_expression(value: Any) -> exp.Expression:
    """Return ``value`` when it is an expression, else its SQL literal."""
    if isinstance(value, exp.Expression):
        return value
    return exp.convert(value)
