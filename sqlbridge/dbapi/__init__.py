"""Functional access layer over DB-API 2.0 drivers.

Every primitive that touches the database takes a :class:`DatabaseSpec` (or a
database URL) as its first argument; scopes derive new specs with a live
connection attached instead of mutating the original.
"""

from sqlbridge.dbapi.core import (
    IsolationLevel,
    TransactionOptions,
    db_connection,
    db_find_connection,
    db_is_rollback_only,
    db_set_rollback_only,
    db_transaction,
    db_unset_rollback_only,
    get_connection,
    managed_connection,
    release_connection,
    releasing,
    run_teardown,
    transaction,
)
from sqlbridge.dbapi.execute import (
    ExecuteOptions,
    db_do_commands,
    db_do_prepared,
    db_do_prepared_return_keys,
    delete,
    execute,
    insert,
    insert_multi,
    update,
)
from sqlbridge.dbapi.metadata import DatabaseMetadata, get_columns, get_tables
from sqlbridge.dbapi.query import (
    QueryOptions,
    db_query_with_resultset,
    find_by_keys,
    get_by_id,
    make_cols_unique,
    query,
    result_set_seq,
)
from sqlbridge.dbapi.spec import (
    DatabaseSpec,
    RollbackFlag,
    SqliteConnectionParams,
    add_connection,
    as_spec,
    dbapi_spec,
    from_url,
    sqlite_spec,
)

__all__ = (
    "DatabaseMetadata",
    "DatabaseSpec",
    "ExecuteOptions",
    "IsolationLevel",
    "QueryOptions",
    "RollbackFlag",
    "SqliteConnectionParams",
    "TransactionOptions",
    "add_connection",
    "as_spec",
    "db_connection",
    "db_do_commands",
    "db_do_prepared",
    "db_do_prepared_return_keys",
    "db_find_connection",
    "db_is_rollback_only",
    "db_query_with_resultset",
    "db_set_rollback_only",
    "db_transaction",
    "db_unset_rollback_only",
    "dbapi_spec",
    "delete",
    "execute",
    "find_by_keys",
    "from_url",
    "get_by_id",
    "get_columns",
    "get_connection",
    "get_tables",
    "insert",
    "insert_multi",
    "make_cols_unique",
    "managed_connection",
    "query",
    "release_connection",
    "releasing",
    "result_set_seq",
    "run_teardown",
    "sqlite_spec",
    "transaction",
    "update",
)
