"""Statements from hand-written SQL."""

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Optional, Union

import sqlglot
from sqlglot import exp
from sqlglot.errors import ParseError

from sqlbridge.builder._base import Statement
from sqlbridge.builder._expressions import (
    CopyStatement,
    DropRelations,
    ExplainStatement,
    RefreshMaterializedView,
    TruncateTables,
)
from sqlbridge.dispatch import OperationKind
from sqlbridge.exceptions import SQLBuilderError
from sqlbridge.utils.logging import get_logger

if TYPE_CHECKING:
    from sqlbridge.context import ConnectionContext

__all__ = ("classify_expression", "raw")

logger = get_logger("builder.raw")

_EXPRESSION_KINDS: "dict[type[exp.Expression], OperationKind]" = {
    exp.Insert: OperationKind.INSERT,
    exp.Update: OperationKind.UPDATE,
    exp.Delete: OperationKind.DELETE,
    ExplainStatement: OperationKind.EXPLAIN,
    TruncateTables: OperationKind.TRUNCATE,
    CopyStatement: OperationKind.COPY,
    RefreshMaterializedView: OperationKind.REFRESH_MATERIALIZED_VIEW,
}

# Expression classes only some sqlglot releases define, matched by name.
_EXPRESSION_NAME_KINDS: "dict[str, OperationKind]" = {
    "TruncateTable": OperationKind.TRUNCATE,
    "Copy": OperationKind.COPY,
}

_COMMAND_KINDS: "dict[str, OperationKind]" = {
    "EXPLAIN": OperationKind.EXPLAIN,
    "TRUNCATE": OperationKind.TRUNCATE,
    "COPY": OperationKind.COPY,
}


def classify_expression(expression: exp.Expression) -> "Union[OperationKind, str]":
    """Return the operation kind of a parsed statement.

    Statements outside the known kinds classify as their lower-cased SQL
    keyword (``"pragma"``, ``"alter"``...), which the dispatcher rejects.
    """
    if isinstance(expression, exp.Select):
        return OperationKind.WITH if expression.ctes else OperationKind.SELECT
    # Intersect and Except derive from Union in some sqlglot releases.
    if isinstance(expression, exp.Intersect):
        return OperationKind.INTERSECT
    if isinstance(expression, exp.Except):
        return OperationKind.EXCEPT
    if isinstance(expression, exp.Union):
        return OperationKind.UNION
    for expression_type, kind in _EXPRESSION_KINDS.items():
        if isinstance(expression, expression_type):
            return kind
    if isinstance(expression, exp.Create):
        create_kind = str(expression.args.get("kind") or "").upper()
        return OperationKind.CREATE_TABLE if create_kind == "TABLE" else f"create_{create_kind.lower()}"
    if isinstance(expression, exp.Drop):
        drop_kind = str(expression.args.get("kind") or "").upper()
        if drop_kind == "TABLE":
            return OperationKind.DROP_TABLE
        if drop_kind == "VIEW" and expression.args.get("materialized"):
            return OperationKind.DROP_MATERIALIZED_VIEW
        return f"drop_{drop_kind.lower().replace(' ', '_')}"
    if isinstance(expression, DropRelations):
        return OperationKind.DROP_TABLE if expression.kind == "TABLE" else OperationKind.DROP_MATERIALIZED_VIEW
    if isinstance(expression, exp.Command):
        keyword = expression.name.upper()
        if keyword == "REFRESH" and expression.text("expression").strip().upper().startswith("MATERIALIZED VIEW"):
            return OperationKind.REFRESH_MATERIALIZED_VIEW
        return _COMMAND_KINDS.get(keyword, keyword.lower())
    return _EXPRESSION_NAME_KINDS.get(type(expression).__name__, type(expression).__name__.lower())


def raw(
    ctx: "ConnectionContext",
    sql: str,
    *positional: Any,
    parameters: "Optional[Mapping[str, Any]]" = None,
    operation_kind: "Optional[Union[OperationKind, str]]" = None,
    returning: Optional[bool] = None,
) -> Statement:
    """Build a statement from SQL text.

    The text is parsed with the context's dialect, so it is re-rendered with the
    context's parameter style: ``?`` placeholders take ``positional`` in order,
    ``:name`` placeholders take ``parameters[name]``. The operation kind and
    RETURNING flag are read from the parsed statement unless given.

    Raises:
        SQLBuilderError: The text does not hold exactly one parseable statement.

    Returns:
        The statement.
    """
    try:
        expressions = [expression for expression in sqlglot.parse(sql, read=ctx.dialect) if expression is not None]
    except ParseError as e:
        msg = f"Could not parse SQL: {e}"
        raise SQLBuilderError(msg) from e
    if len(expressions) != 1:
        msg = f"Expected exactly one SQL statement, found {len(expressions)}"
        raise SQLBuilderError(msg)
    expression = expressions[0]
    kind = operation_kind if operation_kind is not None else classify_expression(expression)
    logger.debug("Classified raw SQL", extra={"extra_fields": {"operation_kind": getattr(kind, "value", kind)}})
    return Statement(
        operation_kind=kind,
        expression=expression,
        context=ctx,
        parameters=parameters or {},
        positional=positional,
        returning=bool(expression.args.get("returning")) if returning is None else returning,
    )
