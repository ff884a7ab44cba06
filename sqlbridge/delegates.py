"""Bridge functions generated from access-layer primitive declarations.

Every access-layer primitive takes a database spec first. Each entry of
:data:`ACCESS_LAYER_PRIMITIVES` declares a primitive's name and the parameter
shapes it accepts; :func:`generate_delegates` turns the table into
same-named functions taking a :class:`~sqlbridge.context.ConnectionContext`
first, unwrapping it with :func:`~sqlbridge.context.raw_handle` and forwarding
every other argument unchanged.
"""

import functools
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from types import ModuleType
from typing import Any, Callable, Optional

from mypy_extensions import mypyc_attr

from sqlbridge import dbapi
from sqlbridge.context import raw_handle
from sqlbridge.exceptions import ImproperConfigurationError

__all__ = (
    "ACCESS_LAYER_PRIMITIVES",
    "ParameterShape",
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
    "delete",
    "execute",
    "find_by_keys",
    "generate_delegates",
    "get_by_id",
    "get_columns",
    "get_connection",
    "get_tables",
    "insert",
    "insert_multi",
    "make_delegate",
    "query",
    "transaction",
    "update",
)


@mypyc_attr(allow_interpreted_subclasses=False)
@dataclass(frozen=True)
class ParameterShape:
    """One accepted parameter list: required names plus an optional variadic tail."""

    required: "tuple[str, ...]"
    variadic: Optional[str] = None

    @classmethod
    def parse(cls, names: "Sequence[str]") -> "ParameterShape":
        """Build a shape from names such as ``("db", "sql_params", "*options")``.

        Raises:
            ImproperConfigurationError: The variadic name is not last, or the
                shape has no leading context parameter.
        """
        required = tuple(names)
        variadic = None
        if required and required[-1].startswith("*"):
            variadic = required[-1][1:]
            required = required[:-1]
        if any(name.startswith("*") for name in required):
            msg = f"Only the last parameter of a shape may be variadic: {tuple(names)!r}"
            raise ImproperConfigurationError(msg)
        if not required:
            msg = "A delegate shape needs at least the context parameter."
            raise ImproperConfigurationError(msg)
        return cls(required, variadic)

    def accepts(self, positional: int, keywords: "Mapping[str, Any]") -> bool:
        """Return whether a call with ``positional`` arguments and ``keywords`` fits this shape."""
        if any(name not in keywords for name in self.required[positional:]):
            return False
        return positional <= len(self.required) or self.variadic is not None

    def describe(self) -> str:
        count = len(self.required)
        return f"{count}+" if self.variadic is not None else str(count)


def _describe_arities(shapes: "Sequence[ParameterShape]") -> str:
    arities = list(dict.fromkeys(shape.describe() for shape in shapes))
    if len(arities) == 1:
        return arities[0]
    return f"{', '.join(arities[:-1])} or {arities[-1]}"


def make_delegate(
    primitive: "Callable[..., Any]",
    shapes: "Sequence[Sequence[str]]",
    name: Optional[str] = None,
) -> "Callable[..., Any]":
    """Build the bridge function for one access-layer primitive.

    Args:
        primitive: Access-layer callable taking a database handle first.
        shapes: Accepted parameter lists; see :meth:`ParameterShape.parse`.
        name: Name of the generated function. Defaults to the primitive's name.

    Raises:
        ImproperConfigurationError: No shape was declared.

    Returns:
        A function taking a connection context first and returning whatever
        the primitive returns.
    """
    parsed = tuple(ParameterShape.parse(shape) for shape in shapes)
    if not parsed:
        msg = f"No parameter shapes declared for {name or primitive.__name__!r}"
        raise ImproperConfigurationError(msg)
    delegate_name = name or primitive.__name__

    @functools.wraps(primitive)
    def delegate(*args: Any, **kwargs: Any) -> Any:
        if not any(shape.accepts(len(args), kwargs) for shape in parsed):
            msg = (
                f"{delegate_name}() takes {_describe_arities(parsed)} positional arguments "
                f"but {len(args)} were given"
            )
            raise TypeError(msg)
        if args:
            ctx, *rest = args
        else:
            ctx, rest = kwargs.pop(parsed[0].required[0]), []
        return primitive(raw_handle(ctx), *rest, **kwargs)

    delegate.__name__ = delegate_name
    delegate.__qualname__ = delegate_name
    delegate.__module__ = "sqlbridge.delegates"
    delegate.shapes = parsed  # type: ignore[attr-defined]
    return delegate


def generate_delegates(
    module: ModuleType, table: "Sequence[tuple[str, Sequence[Sequence[str]]]]"
) -> "dict[str, Callable[..., Any]]":
    """Build one delegate per ``(name, shapes)`` entry, looking primitives up on ``module``.

    Raises:
        ImproperConfigurationError: ``module`` has no primitive of a declared name.
    """
    delegates: dict[str, Callable[..., Any]] = {}
    for name, shapes in table:
        primitive = getattr(module, name, None)
        if primitive is None:
            msg = f"{module.__name__} has no primitive named {name!r}"
            raise ImproperConfigurationError(msg)
        delegates[name] = make_delegate(primitive, shapes, name)
    return delegates


ACCESS_LAYER_PRIMITIVES: "tuple[tuple[str, tuple[tuple[str, ...], ...]], ...]" = (
    ("get_connection", (("db",),)),
    ("db_find_connection", (("db",),)),
    ("db_connection", (("db",),)),
    ("db_set_rollback_only", (("db",),)),
    ("db_unset_rollback_only", (("db",),)),
    ("db_is_rollback_only", (("db",),)),
    ("db_transaction", (("db", "func", "*options"),)),
    ("transaction", (("db", "*options"),)),
    ("db_do_commands", (("db", "commands", "*options"),)),
    ("db_do_prepared_return_keys", (("db", "sql_params", "*options"),)),
    ("db_do_prepared", (("db", "sql_params", "*options"),)),
    ("db_query_with_resultset", (("db", "sql_params", "func", "*options"),)),
    ("query", (("db", "sql_params"), ("db", "sql_params", "options"))),
    ("find_by_keys", (("db", "table", "columns"), ("db", "table", "columns", "options"))),
    ("get_by_id", (("db", "table", "pk_value", "*options"),)),
    ("execute", (("db", "sql_params"), ("db", "sql_params", "options"))),
    ("delete", (("db", "table", "where_clause", "*options"),)),
    ("insert", (("db", "table", "row", "*options"),)),
    ("insert_multi", (("db", "table", "rows", "*options"),)),
    ("update", (("db", "table", "set_map", "where_clause", "*options"),)),
    ("get_tables", (("db", "*types"),)),
    ("get_columns", (("db", "table"),)),
)

_DELEGATES = generate_delegates(dbapi, ACCESS_LAYER_PRIMITIVES)

get_connection = _DELEGATES["get_connection"]
db_find_connection = _DELEGATES["db_find_connection"]
db_connection = _DELEGATES["db_connection"]
db_set_rollback_only = _DELEGATES["db_set_rollback_only"]
db_unset_rollback_only = _DELEGATES["db_unset_rollback_only"]
db_is_rollback_only = _DELEGATES["db_is_rollback_only"]
db_transaction = _DELEGATES["db_transaction"]
transaction = _DELEGATES["transaction"]
db_do_commands = _DELEGATES["db_do_commands"]
db_do_prepared_return_keys = _DELEGATES["db_do_prepared_return_keys"]
db_do_prepared = _DELEGATES["db_do_prepared"]
db_query_with_resultset = _DELEGATES["db_query_with_resultset"]
query = _DELEGATES["query"]
find_by_keys = _DELEGATES["find_by_keys"]
get_by_id = _DELEGATES["get_by_id"]
execute = _DELEGATES["execute"]
delete = _DELEGATES["delete"]
insert = _DELEGATES["insert"]
insert_multi = _DELEGATES["insert_multi"]
update = _DELEGATES["update"]
get_tables = _DELEGATES["get_tables"]
get_columns = _DELEGATES["get_columns"]
