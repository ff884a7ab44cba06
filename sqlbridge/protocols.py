"""Runtime-checkable protocols for the values the bridge consumes.

The dispatcher depends on these rather than on the builder's classes, so any
statement implementation exposing the same attributes can be evaluated.
"""

from typing import TYPE_CHECKING, Any, Protocol, Union, runtime_checkable

if TYPE_CHECKING:
    from sqlbridge.context import ConnectionContext

__all__ = ("StatementProtocol",)


@runtime_checkable
class StatementProtocol(Protocol):
    """Protocol for built statements the dispatcher can evaluate."""

    @property
    def operation_kind(self) -> "Union[str, Any]":
        """The statement's operation kind (an ``OperationKind`` or its value)."""
        ...

    @property
    def returning(self) -> bool:
        """Whether the statement declares a RETURNING clause."""
        ...

    @property
    def context(self) -> "ConnectionContext":
        """The connection context the statement was built against."""
        ...

    def render(self) -> "tuple[str, list[Any]]":
        """Render to ``(sql_text, bind_params)``."""
        ...
