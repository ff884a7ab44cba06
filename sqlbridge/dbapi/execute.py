"""Side-effecting primitives of the DB-API access layer."""

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any, Callable, Optional, TypeVar, Union

from typing_extensions import NotRequired, TypedDict

from sqlbridge.dbapi.core import db_transaction, managed_connection
from sqlbridge.dbapi.query import _identity, normalize_sql_params
from sqlbridge.dbapi.spec import DatabaseSpec, add_connection, as_spec
from sqlbridge.exceptions import QueryError
from sqlbridge.parameters import placeholder
from sqlbridge.utils.logging import get_logger

if TYPE_CHECKING:
    from sqlbridge.typing import SQLParams

__all__ = (
    "ExecuteOptions",
    "db_do_commands",
    "db_do_prepared",
    "db_do_prepared_return_keys",
    "delete",
    "execute",
    "insert",
    "insert_multi",
    "update",
)

logger = get_logger("dbapi.execute")

T = TypeVar("T")


class ExecuteOptions(TypedDict, total=False):
    """Options accepted by :func:`execute` and the table helpers."""

    transaction: NotRequired[bool]
    multi: NotRequired[bool]
    return_keys: NotRequired[bool]
    entities: "NotRequired[Callable[[str], str]]"


def _run(db: DatabaseSpec, use_transaction: bool, func: "Callable[[DatabaseSpec], T]") -> T:
    """Run ``func`` on a spec with a live connection, optionally inside a transaction."""
    if use_transaction:
        return db_transaction(db, func)
    with managed_connection(db) as connection:
        return func(add_connection(db, connection))


def _rowcount(cursor: Any) -> int:
    # DB-API reports -1 when the count is unknown (DDL, some drivers).
    return max(cursor.rowcount, 0)


def _prepared(db: DatabaseSpec, sql_params: "SQLParams", multi: bool, return_keys: bool) -> Any:
    sql, parameters = normalize_sql_params(sql_params)
    logger.debug("Execute: %s", sql, extra={"extra_fields": {"multi": multi, "return_keys": return_keys}})
    cursor = db.connection.cursor()
    try:
        if multi:
            cursor.executemany(sql, parameters)
        else:
            cursor.execute(sql, parameters)
        if return_keys:
            return cursor.lastrowid
        return _rowcount(cursor)
    finally:
        cursor.close()


def db_do_prepared(
    db: "Union[DatabaseSpec, str]", sql_params: "SQLParams", options: "Optional[Mapping[str, Any]]" = None
) -> int:
    """Execute one prepared statement; ``multi`` runs it once per parameter group.

    Returns:
        The affected-row count.
    """
    opts = options or {}
    return _run(
        as_spec(db),
        opts.get("transaction", True),
        lambda conn_db: _prepared(conn_db, sql_params, opts.get("multi", False), False),
    )


def db_do_prepared_return_keys(
    db: "Union[DatabaseSpec, str]", sql_params: "SQLParams", options: "Optional[Mapping[str, Any]]" = None
) -> Any:
    """Execute one prepared statement and return the generated key (``cursor.lastrowid``)."""
    opts = options or {}
    return _run(
        as_spec(db),
        opts.get("transaction", True),
        lambda conn_db: _prepared(conn_db, sql_params, False, True),
    )


def db_do_commands(
    db: "Union[DatabaseSpec, str]",
    commands: "Union[str, Sequence[str]]",
    options: "Optional[Mapping[str, Any]]" = None,
) -> "list[int]":
    """Execute parameterless commands (DDL and the like) in order.

    Returns:
        The affected-row count of each command.
    """
    opts = options or {}
    command_list = [commands] if isinstance(commands, str) else list(commands)

    def _do(conn_db: DatabaseSpec) -> "list[int]":
        return [_prepared(conn_db, command, False, False) for command in command_list]

    return _run(as_spec(db), opts.get("transaction", True), _do)


def execute(
    db: "Union[DatabaseSpec, str]", sql_params: "SQLParams", options: "Optional[Mapping[str, Any]]" = None
) -> Any:
    """Run a side-effecting statement.

    Args:
        db: Database spec or URL.
        sql_params: ``[sql, *params]``; with ``multi`` the tail is one parameter group per run.
        options: :class:`ExecuteOptions`. ``transaction`` defaults to ``True``.

    Returns:
        The affected-row count, or the generated key when ``return_keys`` is set.
    """
    opts = options or {}
    if opts.get("return_keys"):
        return db_do_prepared_return_keys(db, sql_params, opts)
    return db_do_prepared(db, sql_params, opts)


def _columns_and_placeholders(db: DatabaseSpec, row: "Mapping[str, Any]", entities: "Callable[[str], str]") -> str:
    columns = ", ".join(entities(column) for column in row)
    placeholders = ", ".join(placeholder(db.paramstyle, position) for position in range(1, len(row) + 1))
    return f"({columns}) VALUES ({placeholders})"


def insert(
    db: "Union[DatabaseSpec, str]",
    table: str,
    row: "Mapping[str, Any]",
    options: "Optional[Mapping[str, Any]]" = None,
) -> Any:
    """Insert one row and return its generated key."""
    db = as_spec(db)
    opts = options or {}
    if not row:
        msg = f"Cannot insert an empty row into {table!r}"
        raise QueryError(msg)
    entities = opts.get("entities", _identity)
    sql = f"INSERT INTO {entities(table)} {_columns_and_placeholders(db, row, entities)}"
    return db_do_prepared_return_keys(db, [sql, *row.values()], opts)


def insert_multi(
    db: "Union[DatabaseSpec, str]",
    table: str,
    rows: "Sequence[Mapping[str, Any]]",
    options: "Optional[Mapping[str, Any]]" = None,
) -> "list[Any]":
    """Insert several rows in one transaction and return their generated keys."""
    opts = dict(options or {})
    use_transaction = opts.pop("transaction", True)

    def _insert_all(conn_db: DatabaseSpec) -> "list[Any]":
        return [insert(conn_db, table, row, {**opts, "transaction": False}) for row in rows]

    return _run(as_spec(db), use_transaction, _insert_all)


def update(
    db: "Union[DatabaseSpec, str]",
    table: str,
    set_map: "Mapping[str, Any]",
    where_clause: "SQLParams",
    options: "Optional[Mapping[str, Any]]" = None,
) -> int:
    """Update the rows matching ``where_clause`` and return the affected-row count.

    ``where_clause`` is ``[condition, *params]`` using the driver's placeholder
    style; its parameters are bound after the ``SET`` values.
    """
    db = as_spec(db)
    opts = options or {}
    entities = opts.get("entities", _identity)
    condition, where_parameters = normalize_sql_params(where_clause)
    assignments = ", ".join(
        f"{entities(column)} = {placeholder(db.paramstyle, position)}"
        for position, column in enumerate(set_map, start=1)
    )
    sql = f"UPDATE {entities(table)} SET {assignments} WHERE {condition}"
    return db_do_prepared(db, [sql, *set_map.values(), *where_parameters], opts)


def delete(
    db: "Union[DatabaseSpec, str]",
    table: str,
    where_clause: "SQLParams",
    options: "Optional[Mapping[str, Any]]" = None,
) -> int:
    """Delete the rows matching ``where_clause`` and return the affected-row count."""
    db = as_spec(db)
    opts = options or {}
    entities = opts.get("entities", _identity)
    condition, where_parameters = normalize_sql_params(where_clause)
    sql = f"DELETE FROM {entities(table)} WHERE {condition}"
    return db_do_prepared(db, [sql, *where_parameters], opts)
