"""Statement builder base class and the immutable built statement.

Builders are fluent and mutable, in the manner of sqlglot's own builders:
every clause method updates the builder and returns it. :meth:`build`
snapshots the builder into a frozen :class:`Statement`, the value the
dispatcher evaluates.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, ClassVar, NoReturn, Optional, Union

from sqlglot import exp
from typing_extensions import Self

from sqlbridge import dispatch
from sqlbridge.builder._render import placeholder_name, render_expression
from sqlbridge.dispatch import OperationKind
from sqlbridge.exceptions import SQLBuilderError
from sqlbridge.utils.logging import get_logger

if TYPE_CHECKING:
    from sqlbridge.context import ConnectionContext

__all__ = ("Statement", "StatementBuilder", "to_statement")

logger = get_logger("builder")


def _empty_parameters() -> "Mapping[str, Any]":
    return MappingProxyType({})


@dataclass(frozen=True)
class Statement:
    """A built statement: what to run, against which context, with which values.

    Implements :class:`~sqlbridge.protocols.StatementProtocol`.
    """

    operation_kind: "Union[OperationKind, str]"
    expression: exp.Expression = field(repr=False)
    context: "ConnectionContext" = field(repr=False)
    parameters: "Mapping[str, Any]" = field(default_factory=_empty_parameters)
    positional: "tuple[Any, ...]" = ()
    returning: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "parameters", MappingProxyType(dict(self.parameters)))
        object.__setattr__(self, "positional", tuple(self.positional))

    def render(self) -> "tuple[str, list[Any]]":
        """Render to ``(sql_text, bind_params)`` using the context's dialect and parameter style."""
        return render_expression(
            self.expression,
            dialect=self.context.dialect,
            identify=self.context.identify,
            parameter_style=self.context.parameter_style,
            parameters=self.parameters,
            positional=self.positional,
        )

    def sql(self) -> str:
        """Return the rendered SQL text."""
        return self.render()[0]

    def evaluate(self) -> Any:
        """Run the statement through the context's evaluator (default :func:`sqlbridge.dispatch.evaluate`)."""
        evaluator = self.context.evaluator or dispatch.evaluate
        return evaluator(self)

    def __str__(self) -> str:
        return self.sql()


@dataclass
class StatementBuilder:
    """Base class for statement builders.

    Subclasses set :attr:`operation_kind` and create their root expression in
    :meth:`_create_base_expression`.
    """

    context: "ConnectionContext"
    operation_kind: ClassVar["Union[OperationKind, str]"] = OperationKind.SELECT
    _expression: Optional[exp.Expression] = field(default=None, init=False, repr=False, compare=False, hash=False)
    _parameters: "dict[str, Any]" = field(default_factory=dict, init=False, repr=False, compare=False, hash=False)
    _parameter_counter: int = field(default=0, init=False, repr=False, compare=False, hash=False)

    def __post_init__(self) -> None:
        self._expression = self._create_base_expression()

    def _create_base_expression(self) -> Optional[exp.Expression]:
        return None

    @property
    def dialect(self) -> Optional[str]:
        return self.context.dialect

    @staticmethod
    def _raise_sql_builder_error(message: str, cause: Optional[BaseException] = None) -> NoReturn:
        """Raise :class:`SQLBuilderError`, chained to ``cause`` when given.

        Raises:
            SQLBuilderError: Always.
        """
        raise SQLBuilderError(message) from cause

    def _add_parameter(self, value: Any, context: Optional[str] = None) -> str:
        """Add a bind value and return the name of its placeholder."""
        self._parameter_counter += 1
        param_name = f"{context}_param_{self._parameter_counter}" if context else f"param_{self._parameter_counter}"
        param_name = self._generate_unique_parameter_name(param_name)
        self._parameters[param_name] = value
        return param_name

    def _placeholder(self, value: Any, context: Optional[str] = None) -> exp.Expression:
        """Return the expression for ``value``: expressions verbatim, anything else bound."""
        if isinstance(value, exp.Expression):
            return value
        return exp.Placeholder(this=self._add_parameter(value, context))

    def add_parameter(self, value: Any, name: Optional[str] = None) -> "tuple[Self, str]":
        """Explicitly add a bind value, e.g. for a ``:name`` written in a string condition.

        Returns:
            The builder and the placeholder name.
        """
        if name is None:
            return self, self._add_parameter(value)
        if name in self._parameters:
            self._raise_sql_builder_error(f"Parameter name '{name}' already exists.")
        self._parameters[name] = value
        return self, name

    def bind(self, **parameters: Any) -> Self:
        """Bind values to named ``:placeholders`` used in string clauses."""
        for name, value in parameters.items():
            self.add_parameter(value, name)
        return self

    def _generate_unique_parameter_name(self, base_name: str) -> str:
        if base_name not in self._parameters:
            return base_name
        i = 1
        while True:
            name = f"{base_name}_{i}"
            if name not in self._parameters:
                return name
            i += 1

    def _merge_parameters(self, expression: exp.Expression, parameters: "Mapping[str, Any]") -> exp.Expression:
        """Adopt another statement's bind values, renaming its placeholders on collision.

        Returns:
            A copy of ``expression`` whose placeholders match the merged names.
        """
        merged = expression.copy()
        taken = set(self._parameters) | set(parameters)
        renames: dict[str, str] = {}
        for name, value in parameters.items():
            if name in self._parameters and self._parameters[name] is not value:
                i = 1
                while f"{name}_{i}" in taken:
                    i += 1
                renames[name] = f"{name}_{i}"
                taken.add(renames[name])
                self._parameters[renames[name]] = value
            else:
                self._parameters[name] = value
        if renames:
            for node in merged.find_all(exp.Placeholder):
                bound = placeholder_name(node)
                if bound in renames:
                    node.set("this", renames[bound])
        return merged

    def _expression_of(self, query: Any) -> exp.Expression:
        """Return the expression of a builder, statement or expression, adopting its bind values."""
        if isinstance(query, StatementBuilder):
            return self._merge_parameters(query.expression, query._parameters)
        if isinstance(query, Statement):
            if query.positional:
                self._raise_sql_builder_error("Statements with positional values cannot be embedded.")
            return self._merge_parameters(query.expression, query.parameters)
        if isinstance(query, exp.Expression):
            return query.copy()
        self._raise_sql_builder_error(f"Expected a builder, statement or expression, got {type(query).__name__}")

    @property
    def expression(self) -> exp.Expression:
        if self._expression is None:
            self._raise_sql_builder_error("Builder expression not initialized.")
        return self._expression

    @property
    def parameters(self) -> "dict[str, Any]":
        """Return a copy of the bind values."""
        return self._parameters.copy()

    def _has_returning(self) -> bool:
        return bool(self.expression.args.get("returning"))

    def _validate(self) -> None:
        """Check the builder is complete before building; subclasses raise SQLBuilderError."""

    def build(self) -> Statement:
        """Snapshot the builder into an immutable :class:`Statement`."""
        self._validate()
        statement = Statement(
            operation_kind=self.operation_kind,
            expression=self.expression.copy(),
            context=self.context,
            parameters=self._parameters,
            returning=self._has_returning(),
        )
        logger.debug(
            "Built %s statement",
            type(self).__name__,
            extra={"extra_fields": {"parameter_count": len(self._parameters)}},
        )
        return statement

    def render(self) -> "tuple[str, list[Any]]":
        return self.build().render()

    def sql(self) -> str:
        return self.build().sql()

    def evaluate(self) -> Any:
        """Build and run the statement."""
        return self.build().evaluate()

    def __str__(self) -> str:
        return self.sql()


def to_statement(value: "Union[StatementBuilder, Statement]") -> Statement:
    """Return ``value`` as a built :class:`Statement`."""
    if isinstance(value, StatementBuilder):
        return value.build()
    if isinstance(value, Statement):
        return value
    msg = f"Expected a statement builder or statement, got {type(value).__name__}"
    raise SQLBuilderError(msg)
