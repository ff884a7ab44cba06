"""Database specs: the handle every access-layer primitive takes first.

A :class:`DatabaseSpec` is a connection factory plus optional live state (an
attached connection, the transaction nesting level and the rollback-only flag
shared by one transaction). Specs are immutable; attaching a connection or
entering a transaction derives a new spec.
"""

import functools
import sqlite3
import uuid
from dataclasses import dataclass, replace
from types import ModuleType
from typing import TYPE_CHECKING, Any, Callable, Optional, Union
from urllib.parse import unquote, urlsplit

from mypy_extensions import mypyc_attr
from typing_extensions import NotRequired, TypedDict

from sqlbridge.exceptions import ImproperConfigurationError
from sqlbridge.utils.logging import get_logger
from sqlbridge.utils.module_loader import import_driver

if TYPE_CHECKING:
    from collections.abc import Mapping

__all__ = (
    "DatabaseSpec",
    "RollbackFlag",
    "SqliteConnectionParams",
    "add_connection",
    "as_spec",
    "dbapi_spec",
    "from_url",
    "sqlite_spec",
)

logger = get_logger("dbapi.spec")

# scheme -> (driver module, sqlglot dialect, pip extra)
_URL_DRIVERS: "Mapping[str, tuple[str, str, str]]" = {
    "postgresql": ("psycopg", "postgres", "postgres"),
    "postgres": ("psycopg", "postgres", "postgres"),
}


@mypyc_attr(allow_interpreted_subclasses=False)
class RollbackFlag:
    """Mutable rollback-only marker shared by every spec derived inside one transaction."""

    __slots__ = ("_value",)

    def __init__(self, value: bool = False) -> None:
        self._value = value

    def set(self, value: bool) -> None:
        self._value = value

    def get(self) -> bool:
        return self._value

    def __repr__(self) -> str:
        return f"RollbackFlag({self._value!r})"


@dataclass(frozen=True)
class DatabaseSpec:
    """Connection factory plus the live state of the current scope."""

    connect: "Callable[[], Any]"
    dialect: Optional[str] = None
    paramstyle: str = "qmark"
    connection: Optional[Any] = None
    level: int = 0
    rollback: Optional[RollbackFlag] = None

    @property
    def in_transaction(self) -> bool:
        return self.level > 0

    def __repr__(self) -> str:
        return (
            f"DatabaseSpec(dialect={self.dialect!r}, paramstyle={self.paramstyle!r}, "
            f"connected={self.connection is not None}, level={self.level})"
        )


class SqliteConnectionParams(TypedDict, total=False):
    """SQLite connection parameters."""

    database: NotRequired[str]
    timeout: NotRequired[float]
    detect_types: NotRequired[int]
    isolation_level: "NotRequired[Optional[str]]"
    check_same_thread: NotRequired[bool]
    cached_statements: NotRequired[int]
    uri: NotRequired[bool]


def add_connection(db: DatabaseSpec, connection: Any) -> DatabaseSpec:
    """Return a copy of ``db`` with ``connection`` attached."""
    return replace(db, connection=connection)


def sqlite_spec(database: str = ":memory:", **connect_params: Any) -> DatabaseSpec:
    """Build a spec for the standard library ``sqlite3`` driver.

    ``:memory:`` is rewritten to a uniquely named shared-cache URI so every
    connection opened from the spec sees the same database for as long as one
    of them stays open.

    Args:
        database: File path, ``file:`` URI or ``:memory:``.
        **connect_params: Extra :func:`sqlite3.connect` keyword arguments.

    Returns:
        The database spec.
    """
    params: SqliteConnectionParams = {"database": database, **connect_params}  # type: ignore[typeddict-item]
    if database == ":memory:":
        params["database"] = f"file:memory_{uuid.uuid4().hex}?mode=memory&cache=shared"
        params["uri"] = True
    elif database.startswith("file:") and not params.get("uri"):
        logger.debug(
            "Database URI detected (%s) but uri=True not set. "
            "Auto-enabling URI mode to prevent physical file creation.",
            database,
        )
        params["uri"] = True

    return DatabaseSpec(
        connect=functools.partial(sqlite3.connect, **params),
        dialect="sqlite",
        paramstyle=sqlite3.paramstyle,
    )


def dbapi_spec(
    driver: "Union[str, ModuleType]", *args: Any, dialect: Optional[str] = None, **kwargs: Any
) -> DatabaseSpec:
    """Build a spec from any DB-API 2.0 driver module.

    Args:
        driver: The driver module or its importable name.
        *args: Positional arguments for ``driver.connect``.
        dialect: sqlglot dialect name of the target database.
        **kwargs: Keyword arguments for ``driver.connect``.

    Returns:
        The database spec.
    """
    module = import_driver(driver) if isinstance(driver, str) else driver
    if module is sqlite3 and not args and "database" in kwargs:
        return sqlite_spec(**kwargs)
    return DatabaseSpec(
        connect=functools.partial(module.connect, *args, **kwargs),
        dialect=dialect,
        paramstyle=getattr(module, "paramstyle", "qmark"),
    )


def from_url(url: str) -> DatabaseSpec:
    """Build a spec from a database URL.

    ``sqlite:///relative.db``, ``sqlite:////abs/path.db`` and ``sqlite://`` (in
    memory) use :mod:`sqlite3`; ``postgresql://`` URLs are handed to ``psycopg``.

    Raises:
        ImproperConfigurationError: The URL scheme is not supported.
    """
    parts = urlsplit(url)
    scheme = parts.scheme.lower()
    if scheme in {"sqlite", "sqlite3"}:
        path = unquote(parts.path)
        if path.startswith("/"):
            path = path[1:]
        return sqlite_spec(path or ":memory:")
    if scheme in _URL_DRIVERS:
        module_name, dialect, extra = _URL_DRIVERS[scheme]
        module = import_driver(module_name, extra)
        return dbapi_spec(module, url, dialect=dialect)
    msg = f"Unsupported database URL scheme {parts.scheme!r} in {url!r}"
    raise ImproperConfigurationError(msg)


def as_spec(value: "Union[DatabaseSpec, str]") -> DatabaseSpec:
    """Coerce a spec or database URL to a :class:`DatabaseSpec`."""
    if isinstance(value, DatabaseSpec):
        return value
    if isinstance(value, str):
        return from_url(value)
    msg = f"Expected a DatabaseSpec or a database URL, got {type(value).__name__}"
    raise ImproperConfigurationError(msg)
