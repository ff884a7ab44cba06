"""Immutable connection context shared by statements, scopes and delegates."""

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Callable, Optional, Union

from typing_extensions import NotRequired, TypedDict

from sqlbridge.dbapi import spec as dbapi_spec
from sqlbridge.exceptions import ImproperConfigurationError, InvalidContextError
from sqlbridge.parameters import ParameterStyle
from sqlbridge.utils.logging import get_logger
from sqlbridge.utils.text import lisp_case

if TYPE_CHECKING:
    from sqlbridge.typing import Handle, IdentifierTransform

__all__ = (
    "ConnectionContext",
    "ContextOptions",
    "add_connection",
    "open_db",
    "raw_handle",
    "with_handle",
)

logger = get_logger("context")


class ContextOptions(TypedDict, total=False):
    """Options recognized by :func:`open_db`."""

    identifier_transform: "NotRequired[IdentifierTransform]"
    query_options: "NotRequired[Mapping[str, Any]]"
    dialect: "NotRequired[Optional[str]]"
    identify: NotRequired[bool]
    parameter_style: "NotRequired[Union[ParameterStyle, str]]"
    evaluator: "NotRequired[Optional[Callable[[Any], Any]]]"


CONTEXT_OPTION_KEYS = frozenset(ContextOptions.__annotations__)


def _empty_options() -> "Mapping[str, Any]":
    return MappingProxyType({})


@dataclass(frozen=True)
class ConnectionContext:
    """A database handle plus the bridge configuration used to run statements.

    The context references the handle but never owns a physical connection.
    Attaching a connection or entering a transaction derives a new context.
    """

    handle: "Handle"
    identifier_transform: "IdentifierTransform" = lisp_case
    query_options: "Mapping[str, Any]" = field(default_factory=_empty_options)
    dialect: Optional[str] = None
    identify: bool = False
    parameter_style: ParameterStyle = ParameterStyle.QMARK
    evaluator: "Optional[Callable[[Any], Any]]" = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if self.handle is None:
            msg = "A ConnectionContext requires a database handle."
            raise InvalidContextError(msg)
        if not callable(self.identifier_transform):
            msg = f"identifier_transform must be callable, got {self.identifier_transform!r}"
            raise ImproperConfigurationError(msg)
        object.__setattr__(self, "query_options", MappingProxyType(dict(self.query_options)))
        object.__setattr__(self, "parameter_style", ParameterStyle.coerce(self.parameter_style))

    def __repr__(self) -> str:
        return (
            f"ConnectionContext(handle={self.handle!r}, dialect={self.dialect!r}, "
            f"parameter_style={self.parameter_style.value!r})"
        )


def open_db(
    spec: "Union[dbapi_spec.DatabaseSpec, str, Any]",
    options: "Optional[Union[ContextOptions, Mapping[str, Any]]]" = None,
    **overrides: Any,
) -> ConnectionContext:
    """Create the base connection context for a database.

    Result column names pass through ``identifier_transform``, which defaults
    to :func:`~sqlbridge.utils.text.lisp_case` (``unit_price`` ->
    ``unit-price``). :func:`~sqlbridge.utils.text.camelize` (``unitPrice``),
    :func:`~sqlbridge.utils.text.snake_case` and any ``str -> str`` callable
    such as ``str.upper`` can be passed instead::

        ctx = open_db("sqlite:///app.db", identifier_transform=camelize)

    Args:
        spec: Access-layer handle; a string is read as a database URL.
        options: :class:`ContextOptions`; unset keys take their defaults.
        **overrides: Same keys as ``options``, taking precedence over it.

    Raises:
        InvalidContextError: ``spec`` is ``None``.
        ImproperConfigurationError: An option key is not recognized.

    Returns:
        The connection context.
    """
    if spec is None:
        raise InvalidContextError
    settings = {**(options or {}), **overrides}
    unknown = sorted(set(settings) - CONTEXT_OPTION_KEYS)
    if unknown:
        msg = f"Unknown connection context option(s): {', '.join(unknown)}"
        raise ImproperConfigurationError(msg)

    handle = dbapi_spec.as_spec(spec) if isinstance(spec, str) else spec
    settings.setdefault("dialect", getattr(handle, "dialect", None))
    settings.setdefault("parameter_style", getattr(handle, "paramstyle", None) or ParameterStyle.QMARK)
    if settings.get("identifier_transform") is None:
        settings["identifier_transform"] = lisp_case
    if settings.get("query_options") is None:
        settings["query_options"] = {}

    ctx = ConnectionContext(handle=handle, **settings)
    logger.debug("Opened connection context", extra={"extra_fields": {"dialect": ctx.dialect}})
    return ctx


def raw_handle(ctx: ConnectionContext) -> "Handle":
    """Return the access-layer handle of ``ctx``.

    Raises:
        InvalidContextError: ``ctx`` is not a well-formed connection context.
    """
    if not isinstance(ctx, ConnectionContext):
        msg = f"Expected a ConnectionContext, got {type(ctx).__name__}"
        raise InvalidContextError(msg)
    if ctx.handle is None:
        raise InvalidContextError
    return ctx.handle


def with_handle(ctx: ConnectionContext, new_handle: "Handle") -> ConnectionContext:
    """Return a copy of ``ctx`` whose handle is ``new_handle``."""
    raw_handle(ctx)
    return replace(ctx, handle=new_handle)


def add_connection(ctx: ConnectionContext, connection: Any) -> ConnectionContext:
    """Return a copy of ``ctx`` whose handle has ``connection`` attached."""
    return with_handle(ctx, dbapi_spec.add_connection(raw_handle(ctx), connection))
