"""sqlbridge: evaluate sqlglot-built statements through a DB-API access layer."""

from sqlbridge import builder, dbapi, delegates, exceptions, typing, utils
from sqlbridge.__metadata__ import __version__
from sqlbridge.builder import (
    Statement,
    copy,
    create_table,
    delete,
    drop_materialized_view,
    drop_table,
    except_,
    explain,
    insert,
    intersect,
    raw,
    refresh_materialized_view,
    select,
    truncate,
    union,
    update,
    with_,
)
from sqlbridge.context import ConnectionContext, ContextOptions, add_connection, open_db, raw_handle, with_handle
from sqlbridge.dbapi import DatabaseSpec, IsolationLevel, dbapi_spec, from_url, sqlite_spec
from sqlbridge.dispatch import ExecutionPath, OperationKind, evaluate, resolve_path
from sqlbridge.exceptions import (
    ImproperConfigurationError,
    InvalidContextError,
    MissingDependencyError,
    NoConnectionError,
    QueryError,
    ScopeTeardownError,
    SQLBridgeError,
    SQLBuilderError,
    TransactionError,
    UnsupportedOperationError,
)
from sqlbridge.parameters import ParameterStyle
from sqlbridge.protocols import StatementProtocol
from sqlbridge.scope import (
    clear_rollback_only,
    connection_scope,
    is_rollback_only,
    metadata_scope,
    set_rollback_only,
    transaction_scope,
    with_connection,
    with_metadata,
    with_transaction,
)
from sqlbridge.utils.text import camelize, lisp_case, snake_case

__all__ = (
    "ConnectionContext",
    "ContextOptions",
    "DatabaseSpec",
    "ExecutionPath",
    "ImproperConfigurationError",
    "InvalidContextError",
    "IsolationLevel",
    "MissingDependencyError",
    "NoConnectionError",
    "OperationKind",
    "ParameterStyle",
    "QueryError",
    "SQLBridgeError",
    "SQLBuilderError",
    "ScopeTeardownError",
    "Statement",
    "StatementProtocol",
    "TransactionError",
    "UnsupportedOperationError",
    "__version__",
    "add_connection",
    "builder",
    "camelize",
    "clear_rollback_only",
    "connection_scope",
    "copy",
    "create_table",
    "dbapi",
    "dbapi_spec",
    "delegates",
    "delete",
    "drop_materialized_view",
    "drop_table",
    "evaluate",
    "except_",
    "exceptions",
    "explain",
    "from_url",
    "insert",
    "intersect",
    "is_rollback_only",
    "lisp_case",
    "metadata_scope",
    "open_db",
    "raw",
    "raw_handle",
    "refresh_materialized_view",
    "resolve_path",
    "select",
    "set_rollback_only",
    "snake_case",
    "sqlite_spec",
    "transaction_scope",
    "truncate",
    "typing",
    "union",
    "update",
    "utils",
    "with_",
    "with_connection",
    "with_handle",
    "with_metadata",
    "with_transaction",
)
