"""Connection and transaction scopes over a connection context.

Each scope derives a new :class:`~sqlbridge.context.ConnectionContext` whose
handle is backed by the scope's connection (and, for transactions, its
rollback-only flag). The derived context is only meant to be used inside the
scope; the context the scope was opened with is never modified.
"""

from collections.abc import Mapping
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Callable, Optional, TypeVar, Union

from sqlbridge import dbapi, delegates
from sqlbridge.context import ConnectionContext, add_connection, raw_handle, with_handle
from sqlbridge.dbapi import DatabaseMetadata, IsolationLevel, release_connection, run_teardown
from sqlbridge.delegates import make_delegate
from sqlbridge.exceptions import ImproperConfigurationError
from sqlbridge.utils.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Generator

    from sqlbridge.dbapi import TransactionOptions

__all__ = (
    "clear_rollback_only",
    "connection_scope",
    "is_rollback_only",
    "metadata_scope",
    "set_rollback_only",
    "transaction_scope",
    "with_connection",
    "with_metadata",
    "with_transaction",
)

logger = get_logger("scope")

T = TypeVar("T")

TRANSACTION_OPTION_KEYS = frozenset({"isolation", "read_only"})


@contextmanager
def connection_scope(ctx: ConnectionContext) -> "Generator[ConnectionContext, None, None]":
    """Acquire one physical connection for the block.

    Yields:
        A context whose handle carries the acquired connection.

    The connection is released exactly once on every exit path. When release
    fails while the block's own failure is propagating, a
    :class:`~sqlbridge.exceptions.ScopeTeardownError` carrying both is raised.
    """
    connection = delegates.get_connection(ctx)
    logger.debug("Connection scope entered")
    try:
        yield add_connection(ctx, connection)
    except BaseException as exc:
        logger.debug("Connection scope exited with %s", type(exc).__name__)
        run_teardown(lambda: release_connection(connection), original=exc, description="Connection release")
        raise
    release_connection(connection)
    logger.debug("Connection scope exited")


def with_connection(ctx: ConnectionContext, body: "Callable[[ConnectionContext], T]") -> T:
    """Run ``body`` with a context holding a freshly acquired connection.

    Args:
        ctx: The context to acquire the connection from.
        body: Called with the derived context.

    Returns:
        Whatever ``body`` returns.
    """
    with connection_scope(ctx) as scoped:
        return body(scoped)


def _transaction_arguments(tx_options: "Optional[Mapping[str, Any]]") -> "TransactionOptions":
    options = dict(tx_options or {})
    unknown = sorted(set(options) - TRANSACTION_OPTION_KEYS)
    if unknown:
        msg = f"Unknown transaction option(s): {', '.join(unknown)}"
        raise ImproperConfigurationError(msg)
    return {"isolation": options.get("isolation"), "read_only": bool(options.get("read_only", False))}


@contextmanager
def transaction_scope(
    ctx: ConnectionContext,
    isolation: "Union[IsolationLevel, str, None]" = None,
    read_only: bool = False,
) -> "Generator[ConnectionContext, None, None]":
    """Run the block inside a transaction.

    Commits when the block exits normally and the rollback-only flag is unset;
    rolls back otherwise. Opened inside a connection scope the transaction uses
    that scope's connection; opened inside another transaction it joins it.

    Yields:
        A context whose handle is the transaction's handle.
    """
    with delegates.transaction(ctx, isolation, read_only) as tx_handle:
        logger.debug("Transaction scope entered", extra={"extra_fields": {"level": getattr(tx_handle, "level", None)}})
        yield with_handle(ctx, tx_handle)


def with_transaction(
    ctx: ConnectionContext,
    body: "Callable[[ConnectionContext], T]",
    tx_options: "Optional[Union[TransactionOptions, Mapping[str, Any]]]" = None,
) -> T:
    """Run ``body`` inside a transaction and return its result.

    Args:
        ctx: The context to open the transaction on.
        body: Called with a context bound to the transaction's handle.
        tx_options: ``isolation`` (:class:`~sqlbridge.dbapi.IsolationLevel`
            or its value) and ``read_only``.

    Raises:
        ImproperConfigurationError: ``tx_options`` holds an unknown key.

    Returns:
        Whatever ``body`` returns.
    """
    options = _transaction_arguments(tx_options)

    def _body(tx_handle: Any) -> T:
        return body(with_handle(ctx, tx_handle))

    return delegates.db_transaction(ctx, _body, options["isolation"], options["read_only"])


@contextmanager
def metadata_scope(ctx: ConnectionContext) -> "Generator[DatabaseMetadata, None, None]":
    """Open a connection scope and yield a catalog reader bound to it."""
    with connection_scope(ctx) as scoped:
        yield DatabaseMetadata(raw_handle(scoped))


def with_metadata(ctx: ConnectionContext, body: "Callable[[DatabaseMetadata], T]") -> T:
    """Run ``body`` with a :class:`~sqlbridge.dbapi.DatabaseMetadata` reader on one connection."""
    with metadata_scope(ctx) as metadata:
        return body(metadata)


set_rollback_only = make_delegate(dbapi.db_set_rollback_only, [("ctx",)], "set_rollback_only")
clear_rollback_only = make_delegate(dbapi.db_unset_rollback_only, [("ctx",)], "clear_rollback_only")
is_rollback_only = make_delegate(dbapi.db_is_rollback_only, [("ctx",)], "is_rollback_only")
