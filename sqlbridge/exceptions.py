from typing import Any, Optional

__all__ = (
    "ImproperConfigurationError",
    "InvalidContextError",
    "MissingDependencyError",
    "NoConnectionError",
    "QueryError",
    "SQLBridgeError",
    "SQLBuilderError",
    "ScopeTeardownError",
    "TransactionError",
    "UnsupportedOperationError",
)


class SQLBridgeError(Exception):
    """Base exception class from which all sqlbridge exceptions inherit."""

    detail: str

    def __init__(self, *args: Any, detail: str = "") -> None:
        """Initialize ``SQLBridgeError``.

        Args:
            *args: args are converted to :class:`str` before passing to :class:`Exception`
            detail: detail of the exception.
        """
        str_args = [str(arg) for arg in args if arg]
        if not detail:
            if str_args:
                detail, *str_args = str_args
            elif hasattr(self, "detail"):
                detail = self.detail
        self.detail = detail
        super().__init__(*str_args)

    def __repr__(self) -> str:
        if self.detail:
            return f"{self.__class__.__name__} - {self.detail}"
        return self.__class__.__name__

    def __str__(self) -> str:
        return " ".join((*self.args, self.detail)).strip()


class MissingDependencyError(SQLBridgeError, ImportError):
    """Missing optional dependency.

    Raised when a database URL names a driver module that is not installed.
    """

    def __init__(self, package: str, install_package: Optional[str] = None) -> None:
        super().__init__(
            f"Package {package!r} is not installed but required. You can install it by running "
            f"'pip install sqlbridge[{install_package or package}]' to install sqlbridge with the required extra "
            f"or 'pip install {install_package or package}' to install the package separately",
        )


class ImproperConfigurationError(SQLBridgeError):
    """Improper Configuration error.

    Raised for unknown option keys, unsupported URL schemes or parameter styles.
    """


class InvalidContextError(SQLBridgeError):
    """A value used as a connection context is malformed."""

    def __init__(self, message: Optional[str] = None) -> None:
        if message is None:
            message = "Expected a ConnectionContext with a database handle."
        super().__init__(message)


class UnsupportedOperationError(SQLBridgeError):
    """A statement declared an operation kind the dispatcher does not know."""

    operation_kind: Any

    def __init__(self, operation_kind: Any) -> None:
        super().__init__(f"Unsupported statement operation kind: {operation_kind!r}")
        self.operation_kind = operation_kind


class SQLBuilderError(SQLBridgeError):
    """Issues Building or Rendering SQL statements."""

    def __init__(self, message: Optional[str] = None) -> None:
        if message is None:
            message = "Issues building SQL statement."
        super().__init__(message)


class QueryError(SQLBridgeError):
    """Malformed SQL/parameter vector handed to the access layer."""


class TransactionError(SQLBridgeError):
    """Transaction state was manipulated outside of a transaction."""


class NoConnectionError(SQLBridgeError):
    """A live connection was required but none is attached to the database spec."""


class ScopeTeardownError(SQLBridgeError):
    """Releasing a scope failed while another failure was already propagating.

    Both failures stay observable: ``original_error`` (also the ``__cause__``) is
    what the scope body raised and ``teardown_error`` is what the release,
    rollback or settings restore raised afterwards.
    """

    original_error: BaseException
    teardown_error: BaseException

    def __init__(self, message: str, *, original_error: BaseException, teardown_error: BaseException) -> None:
        super().__init__(f"{message}: {teardown_error!r} (while handling {original_error!r})")
        self.original_error = original_error
        self.teardown_error = teardown_error
