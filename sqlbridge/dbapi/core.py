"""Connection and transaction primitives of the DB-API access layer."""

from contextlib import contextmanager
from dataclasses import replace
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Optional, TypeVar, Union

from typing_extensions import NotRequired, TypedDict

from sqlbridge.dbapi.spec import DatabaseSpec, RollbackFlag, add_connection, as_spec
from sqlbridge.exceptions import ImproperConfigurationError, NoConnectionError, ScopeTeardownError, TransactionError
from sqlbridge.utils.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Generator, Iterator

__all__ = (
    "IsolationLevel",
    "TransactionOptions",
    "db_connection",
    "db_find_connection",
    "db_is_rollback_only",
    "db_set_rollback_only",
    "db_transaction",
    "db_unset_rollback_only",
    "get_connection",
    "managed_connection",
    "release_connection",
    "releasing",
    "run_teardown",
    "transaction",
)

logger = get_logger("dbapi.core")

T = TypeVar("T")


class IsolationLevel(str, Enum):
    """Transaction isolation levels."""

    READ_UNCOMMITTED = "read_uncommitted"
    READ_COMMITTED = "read_committed"
    REPEATABLE_READ = "repeatable_read"
    SERIALIZABLE = "serializable"

    @property
    def sql(self) -> str:
        return self.value.replace("_", " ").upper()


class TransactionOptions(TypedDict, total=False):
    """Options accepted by :func:`transaction` and :func:`db_transaction`."""

    isolation: "NotRequired[Union[IsolationLevel, str, None]]"
    read_only: NotRequired[bool]


def run_teardown(action: "Callable[[], Any]", *, original: Optional[BaseException], description: str) -> None:
    """Run a teardown step without letting it hide an in-flight failure.

    Args:
        action: The release/rollback/restore step.
        original: The failure currently propagating, if any.
        description: Human readable name of the step for error messages.

    Raises:
        ScopeTeardownError: ``action`` failed while ``original`` was propagating.
    """
    if original is None:
        action()
        return
    try:
        action()
    except Exception as teardown_error:
        logger.debug("%s failed while handling %r", description, original)
        msg = f"{description} failed"
        raise ScopeTeardownError(msg, original_error=original, teardown_error=teardown_error) from original


def get_connection(db: "Union[DatabaseSpec, str]") -> Any:
    """Open a new physical connection from the spec's factory."""
    db = as_spec(db)
    connection = db.connect()
    logger.debug("Opened connection", extra={"extra_fields": {"dialect": db.dialect}})
    return connection


def release_connection(connection: Any) -> None:
    """Close a physical connection obtained from :func:`get_connection`."""
    connection.close()
    logger.debug("Released connection")


@contextmanager
def releasing(connection: Any) -> "Iterator[Any]":
    """Release ``connection`` exactly once when the block exits, whichever way it exits."""
    try:
        yield connection
    except BaseException as exc:
        run_teardown(lambda: release_connection(connection), original=exc, description="Connection release")
        raise
    release_connection(connection)


@contextmanager
def _autocommitting(connection: Any) -> "Iterator[Any]":
    try:
        yield connection
    except BaseException as exc:
        run_teardown(connection.rollback, original=exc, description="Rollback")
        raise
    connection.commit()


@contextmanager
def managed_connection(db: DatabaseSpec) -> "Generator[Any, None, None]":
    """Yield the connection a primitive should run on.

    Inside a transaction this is the transaction's connection, left untouched.
    Outside one, work is committed on success and rolled back on failure
    (auto-commit semantics); a connection is opened and released for the call
    unless the spec already carries one.
    """
    if db.connection is not None and db.in_transaction:
        yield db.connection
        return
    if db.connection is not None:
        with _autocommitting(db.connection) as connection:
            yield connection
        return
    with releasing(get_connection(db)) as connection, _autocommitting(connection):
        yield connection


def db_find_connection(db: "Union[DatabaseSpec, str]") -> Optional[Any]:
    """Return the connection attached to ``db``, if any."""
    return as_spec(db).connection


def db_connection(db: "Union[DatabaseSpec, str]") -> Any:
    """Return the connection attached to ``db``.

    Raises:
        NoConnectionError: No connection is attached.
    """
    connection = db_find_connection(db)
    if connection is None:
        msg = "No current database connection; use a connection or transaction scope."
        raise NoConnectionError(msg)
    return connection


def db_set_rollback_only(db: DatabaseSpec) -> None:
    """Mark the current transaction so it rolls back instead of committing.

    Raises:
        TransactionError: ``db`` is not inside a transaction.
    """
    if db.rollback is None:
        msg = "Cannot set rollback-only outside of a transaction."
        raise TransactionError(msg)
    db.rollback.set(True)


def db_unset_rollback_only(db: DatabaseSpec) -> None:
    """Clear the rollback-only mark of the current transaction.

    Raises:
        TransactionError: ``db`` is not inside a transaction.
    """
    if db.rollback is None:
        msg = "Cannot unset rollback-only outside of a transaction."
        raise TransactionError(msg)
    db.rollback.set(False)


def db_is_rollback_only(db: DatabaseSpec) -> bool:
    """Return whether the current transaction will roll back; ``False`` outside transactions."""
    return db.rollback is not None and db.rollback.get()


def _coerce_isolation(isolation: "Union[IsolationLevel, str, None]") -> Optional[IsolationLevel]:
    if isolation is None or isinstance(isolation, IsolationLevel):
        return isolation
    try:
        return IsolationLevel(str(isolation).lower().replace(" ", "_").replace("-", "_"))
    except ValueError as e:
        msg = f"Unknown isolation level {isolation!r}"
        raise ImproperConfigurationError(msg) from e


def _apply_transaction_options(
    db: DatabaseSpec, isolation: Optional[IsolationLevel], read_only: bool
) -> "Callable[[], None]":
    """Apply isolation/read-only settings; return the callable restoring them."""
    connection = db.connection
    if db.dialect == "sqlite":
        restore: list[str] = []
        if isolation is IsolationLevel.READ_UNCOMMITTED:
            connection.execute("PRAGMA read_uncommitted = 1")
            restore.append("PRAGMA read_uncommitted = 0")
        elif isolation is not None and isolation is not IsolationLevel.SERIALIZABLE:
            logger.debug("SQLite transactions are serializable; ignoring isolation %s", isolation.value)
        if read_only:
            connection.execute("PRAGMA query_only = ON")
            restore.append("PRAGMA query_only = OFF")

        # sqlite3's implicit transactions only open before DML; BEGIN explicitly so DDL is covered too.
        previous_isolation_level = connection.isolation_level
        connection.isolation_level = None
        connection.execute("BEGIN")

        def _restore() -> None:
            for statement in restore:
                connection.execute(statement)
            connection.isolation_level = previous_isolation_level

        return _restore

    if isolation is not None or read_only:
        cursor = connection.cursor()
        try:
            if isolation is not None:
                cursor.execute(f"SET TRANSACTION ISOLATION LEVEL {isolation.sql}")
            if read_only:
                cursor.execute("SET TRANSACTION READ ONLY")
        finally:
            cursor.close()
    return lambda: None


@contextmanager
def transaction(
    db: "Union[DatabaseSpec, str]",
    isolation: "Union[IsolationLevel, str, None]" = None,
    read_only: bool = False,
) -> "Generator[DatabaseSpec, None, None]":
    """Run the block inside a transaction and yield the transaction's spec.

    The outermost transaction commits when the block exits normally unless the
    rollback-only flag was set, and rolls back otherwise. A transaction opened
    on a spec that is already inside one joins it: same connection, same
    rollback-only flag, no commit of its own. When the spec carries no
    connection, one is opened for the transaction and released afterwards.

    Args:
        db: Database spec or URL.
        isolation: Isolation level of the outermost transaction.
        read_only: Make the outermost transaction read-only.

    Yields:
        The spec to run the transaction's statements against.
    """
    db = as_spec(db)
    isolation_level = _coerce_isolation(isolation)

    if db.connection is None:
        with releasing(get_connection(db)) as connection, transaction(
            add_connection(db, connection), isolation_level, read_only
        ) as tx:
            yield tx
        return

    if db.in_transaction:
        if isolation_level is not None or read_only:
            logger.debug("Nested transaction joins the outer one; isolation/read-only options are ignored")
        yield replace(db, level=db.level + 1)
        return

    connection = db.connection
    restore = _apply_transaction_options(db, isolation_level, read_only)
    tx = replace(db, level=1, rollback=RollbackFlag())
    logger.debug(
        "Transaction started",
        extra={"extra_fields": {"isolation": isolation_level and isolation_level.value, "read_only": read_only}},
    )
    try:
        yield tx
    except BaseException as exc:
        logger.debug("Transaction rolled back after %s", type(exc).__name__)
        run_teardown(connection.rollback, original=exc, description="Transaction rollback")
        run_teardown(restore, original=exc, description="Transaction settings restore")
        raise

    try:
        if db_is_rollback_only(tx):
            connection.rollback()
            logger.debug("Transaction rolled back (rollback-only)")
        else:
            connection.commit()
            logger.debug("Transaction committed")
    except Exception as exc:
        run_teardown(restore, original=exc, description="Transaction settings restore")
        raise
    restore()


def db_transaction(
    db: "Union[DatabaseSpec, str]",
    func: "Callable[[DatabaseSpec], T]",
    isolation: "Union[IsolationLevel, str, None]" = None,
    read_only: bool = False,
) -> T:
    """Call ``func`` with a transaction spec and return its result.

    Functional form of :func:`transaction`.
    """
    with transaction(db, isolation, read_only) as tx:
        return func(tx)
