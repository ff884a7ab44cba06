from collections.abc import Callable, Sequence
from typing import Any, Union

from typing_extensions import TypeAlias

__all__ = (
    "DictRow",
    "Handle",
    "IdentifierTransform",
    "RowFn",
    "SQLParams",
)

Handle: TypeAlias = Any
"""Opaque access-layer handle carried by a ConnectionContext."""
IdentifierTransform: TypeAlias = Callable[[str], str]
"""Function applied to every column name of a returned row."""
DictRow: TypeAlias = dict[str, Any]
RowFn: TypeAlias = Callable[[Any], Any]
SQLParams: TypeAlias = Union[str, Sequence[Any]]
"""Either a bare SQL string or ``[sql, param1, param2, ...]``."""
