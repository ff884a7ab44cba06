"""Statement dispatch: route a built statement to the query or execute path."""

from enum import Enum
from typing import TYPE_CHECKING, Any, Union

from sqlbridge import delegates
from sqlbridge.exceptions import UnsupportedOperationError
from sqlbridge.utils.logging import get_logger

if TYPE_CHECKING:
    from sqlbridge.context import ConnectionContext
    from sqlbridge.protocols import StatementProtocol

__all__ = (
    "EXECUTE_KINDS",
    "QUERY_KINDS",
    "RETURNING_KINDS",
    "ExecutionPath",
    "OperationKind",
    "coerce_operation_kind",
    "evaluate",
    "merged_query_options",
    "resolve_path",
)

logger = get_logger("dispatch")


class OperationKind(str, Enum):
    """Closed set of statement kinds the dispatcher knows how to run."""

    SELECT = "select"
    INTERSECT = "intersect"
    EXCEPT = "except"
    UNION = "union"
    WITH = "with"
    EXPLAIN = "explain"
    INSERT = "insert"
    DELETE = "delete"
    UPDATE = "update"
    COPY = "copy"
    CREATE_TABLE = "create_table"
    DROP_TABLE = "drop_table"
    DROP_MATERIALIZED_VIEW = "drop_materialized_view"
    REFRESH_MATERIALIZED_VIEW = "refresh_materialized_view"
    TRUNCATE = "truncate"


class ExecutionPath(str, Enum):
    """How a statement is run against the access layer."""

    QUERY = "query"
    EXECUTE = "execute"


QUERY_KINDS = frozenset({
    OperationKind.SELECT,
    OperationKind.INTERSECT,
    OperationKind.EXCEPT,
    OperationKind.UNION,
    OperationKind.WITH,
    OperationKind.EXPLAIN,
})
RETURNING_KINDS = frozenset({OperationKind.INSERT, OperationKind.DELETE, OperationKind.UPDATE})
EXECUTE_KINDS = frozenset({
    OperationKind.COPY,
    OperationKind.CREATE_TABLE,
    OperationKind.DROP_TABLE,
    OperationKind.DROP_MATERIALIZED_VIEW,
    OperationKind.REFRESH_MATERIALIZED_VIEW,
    OperationKind.TRUNCATE,
})


def coerce_operation_kind(kind: "Union[OperationKind, str, Any]") -> OperationKind:
    """Return the :class:`OperationKind` for ``kind``.

    Strings are matched case-insensitively, with ``-`` read as ``_`` so
    ``"create-table"`` and ``"create_table"`` name the same kind.

    Raises:
        UnsupportedOperationError: ``kind`` names no known operation kind.
    """
    if isinstance(kind, OperationKind):
        return kind
    if isinstance(kind, str):
        try:
            return OperationKind(kind.strip().lower().replace("-", "_"))
        except ValueError as e:
            raise UnsupportedOperationError(kind) from e
    raise UnsupportedOperationError(kind)


def resolve_path(kind: "Union[OperationKind, str]", returning: bool) -> ExecutionPath:
    """Decide whether a statement of ``kind`` is run as a query or an execute.

    Raises:
        UnsupportedOperationError: ``kind`` names no known operation kind.
    """
    operation_kind = coerce_operation_kind(kind)
    if operation_kind in QUERY_KINDS:
        return ExecutionPath.QUERY
    if operation_kind in RETURNING_KINDS:
        return ExecutionPath.QUERY if returning else ExecutionPath.EXECUTE
    if operation_kind in EXECUTE_KINDS:
        return ExecutionPath.EXECUTE
    raise UnsupportedOperationError(kind)


def merged_query_options(ctx: "ConnectionContext") -> "dict[str, Any]":
    """Options for a row-returning call: the context's query options plus its identifier transform."""
    return {**ctx.query_options, "identifiers": ctx.identifier_transform}


def evaluate(statement: "StatementProtocol") -> Any:
    """Run a built statement and return its rows or its execute result.

    Row-returning statements go through the ``query`` delegate with the
    context's merged query options, so every returned column name passes
    through the identifier transform. Everything else goes through the
    ``execute`` delegate and returns the affected-row count.

    Raises:
        UnsupportedOperationError: The statement's kind is unknown. Nothing is
            rendered or executed in that case.

    Returns:
        A list of rows for the query path, the access layer's execute result
        otherwise.
    """
    kind = coerce_operation_kind(statement.operation_kind)
    path = resolve_path(kind, bool(statement.returning))
    ctx = statement.context
    sql, parameters = statement.render()
    sql_params = [sql, *parameters]
    logger.debug(
        "Dispatching statement",
        extra={"extra_fields": {"operation_kind": kind.value, "path": path.value}},
    )
    if path is ExecutionPath.QUERY:
        return delegates.query(ctx, sql_params, merged_query_options(ctx))
    return delegates.execute(ctx, sql_params)
