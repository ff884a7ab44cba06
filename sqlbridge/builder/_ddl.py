"""Side-effecting statement builders: DDL, TRUNCATE, COPY and materialized views."""

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any, Optional, Union

from sqlglot import exp
from sqlglot.errors import ParseError
from typing_extensions import Self

from sqlbridge.builder._base import StatementBuilder
from sqlbridge.builder._expressions import CopyStatement, DropRelations, RefreshMaterializedView, TruncateTables
from sqlbridge.builder._parsing import literal_or_expression, parse_table_expression
from sqlbridge.dispatch import OperationKind
from sqlbridge.exceptions import SQLBuilderError
from sqlbridge.utils.text import sql_name

if TYPE_CHECKING:
    from sqlbridge.context import ConnectionContext

__all__ = (
    "CopyBuilder",
    "CreateTableBuilder",
    "DropBuilder",
    "RefreshMaterializedViewBuilder",
    "TruncateBuilder",
    "copy",
    "create_table",
    "drop_materialized_view",
    "drop_table",
    "refresh_materialized_view",
    "truncate",
)

_COPY_ENDPOINTS = frozenset({"STDIN", "STDOUT"})


class CreateTableBuilder(StatementBuilder):
    """Builder for ``CREATE [TEMPORARY] TABLE [IF NOT EXISTS] name (columns, constraints)``."""

    operation_kind = OperationKind.CREATE_TABLE

    def _create_base_expression(self) -> exp.Expression:
        return exp.Create(kind="TABLE", this=exp.Schema(expressions=[]))

    @property
    def _schema(self) -> exp.Schema:
        return self.expression.this  # type: ignore[no-any-return]

    def table(self, table: "Union[str, exp.Expression]", if_not_exists: bool = False, temporary: bool = False) -> Self:
        self._schema.set("this", parse_table_expression(table, self.dialect))
        if if_not_exists:
            self.expression.set("exists", True)
        if temporary:
            self.expression.set("properties", exp.Properties(expressions=[exp.TemporaryProperty()]))
        return self

    def column(
        self,
        name: str,
        data_type: "Union[str, exp.DataType]",
        *,
        primary_key: bool = False,
        not_null: bool = False,
        unique: bool = False,
        default: Any = None,
    ) -> Self:
        """Add a column definition.

        ``data_type`` is parsed for the context's dialect; names sqlglot does not
        know are kept as user-defined types. ``default`` is rendered as a literal.
        """
        constraints: list[exp.ColumnConstraint] = []
        if primary_key:
            constraints.append(exp.ColumnConstraint(kind=exp.PrimaryKeyColumnConstraint()))
        if not_null:
            constraints.append(exp.ColumnConstraint(kind=exp.NotNullColumnConstraint()))
        if unique:
            constraints.append(exp.ColumnConstraint(kind=exp.UniqueColumnConstraint()))
        if default is not None:
            constraints.append(
                exp.ColumnConstraint(kind=exp.DefaultColumnConstraint(this=literal_or_expression(default)))
            )
        column_def = exp.ColumnDef(
            this=exp.to_identifier(sql_name(name)),
            kind=self._data_type(data_type),
            constraints=constraints,
        )
        self._schema.append("expressions", column_def)
        return self

    def primary_key(self, *columns: str) -> Self:
        """Add a table-level ``PRIMARY KEY (columns)`` constraint."""
        self._schema.append(
            "expressions", exp.PrimaryKey(expressions=[exp.to_identifier(sql_name(column)) for column in columns])
        )
        return self

    def _data_type(self, data_type: "Union[str, exp.DataType]") -> exp.DataType:
        if isinstance(data_type, exp.DataType):
            return data_type
        try:
            return exp.DataType.build(data_type, dialect=self.dialect, udt=True)
        except ParseError as e:
            self._raise_sql_builder_error(f"Invalid column type {data_type!r}", e)

    def _validate(self) -> None:
        if self._schema.this is None:
            self._raise_sql_builder_error("CREATE TABLE requires a table name.")
        if not self._schema.expressions:
            self._raise_sql_builder_error("CREATE TABLE requires at least one column.")


class DropBuilder(StatementBuilder):
    """Builder for ``DROP TABLE`` and ``DROP MATERIALIZED VIEW``."""

    operation_kind = OperationKind.DROP_TABLE

    _KEYWORDS: "dict[OperationKind, str]" = {
        OperationKind.DROP_TABLE: "TABLE",
        OperationKind.DROP_MATERIALIZED_VIEW: "MATERIALIZED VIEW",
    }

    def relations(
        self,
        kind: OperationKind,
        names: "Sequence[Union[str, exp.Expression]]",
        if_exists: bool = False,
        cascade: bool = False,
    ) -> Self:
        if not names:
            self._raise_sql_builder_error(f"DROP {self._KEYWORDS[kind]} needs at least one name.")
        self.operation_kind = kind  # type: ignore[misc]
        self._expression = DropRelations(
            expressions=[parse_table_expression(name, self.dialect) for name in names],
            kind=self._KEYWORDS[kind],
            exists=if_exists,
            cascade=cascade,
        )
        return self


class TruncateBuilder(StatementBuilder):
    """Builder for ``TRUNCATE TABLE``."""

    operation_kind = OperationKind.TRUNCATE

    def tables(
        self, names: "Sequence[Union[str, exp.Expression]]", restart_identity: bool = False, cascade: bool = False
    ) -> Self:
        if not names:
            self._raise_sql_builder_error("TRUNCATE needs at least one table.")
        self._expression = TruncateTables(
            expressions=[parse_table_expression(name, self.dialect) for name in names],
            restart_identity=restart_identity,
            cascade=cascade,
        )
        return self


class RefreshMaterializedViewBuilder(StatementBuilder):
    """Builder for ``REFRESH MATERIALIZED VIEW``."""

    operation_kind = OperationKind.REFRESH_MATERIALIZED_VIEW

    def view(
        self, name: "Union[str, exp.Expression]", concurrently: bool = False, with_data: Optional[bool] = None
    ) -> Self:
        self._expression = RefreshMaterializedView(
            this=parse_table_expression(name, self.dialect), concurrently=concurrently, with_data=with_data
        )
        return self


class CopyBuilder(StatementBuilder):
    """Builder for PostgreSQL ``COPY table [(columns)] FROM|TO source [WITH (options)]``."""

    operation_kind = OperationKind.COPY

    def table(
        self,
        table: "Union[str, exp.Expression]",
        source: str,
        columns: "Sequence[str]" = (),
        direction: str = "FROM",
        options: "Optional[Mapping[str, Any]]" = None,
    ) -> Self:
        """Set what is copied.

        Args:
            table: Table to copy into (``FROM``) or out of (``TO``).
            source: ``STDIN``/``STDOUT`` or a file path (rendered as a string literal).
            columns: Column list.
            direction: ``FROM`` or ``TO``.
            options: ``WITH (...)`` options, e.g. ``{"format": "csv", "header": True}``.
        """
        direction = direction.upper()
        if direction not in {"FROM", "TO"}:
            self._raise_sql_builder_error(f"COPY direction must be FROM or TO, got {direction!r}")
        source_expr: exp.Expression = (
            exp.var(source.upper()) if source.upper() in _COPY_ENDPOINTS else exp.Literal.string(source)
        )
        self._expression = CopyStatement(
            this=parse_table_expression(table, self.dialect),
            columns=[exp.to_identifier(sql_name(column)) for column in columns],
            source=source_expr,
            direction=direction,
            options=[_copy_option(name, value) for name, value in (options or {}).items()],
        )
        return self


def _copy_option(name: str, value: Any) -> exp.Expression:
    if isinstance(value, bool):
        rendered = "TRUE" if value else "FALSE"
    elif isinstance(value, str) and value.isidentifier():
        rendered = value
    else:
        rendered = exp.convert(value).sql()
    return exp.var(f"{sql_name(name).upper()} {rendered}")


def create_table(
    ctx: "ConnectionContext",
    table: "Union[str, exp.Expression]",
    if_not_exists: bool = False,
    temporary: bool = False,
) -> CreateTableBuilder:
    """Start a CREATE TABLE; add columns with :meth:`CreateTableBuilder.column`."""
    return CreateTableBuilder(ctx).table(table, if_not_exists=if_not_exists, temporary=temporary)


def drop_table(
    ctx: "ConnectionContext", *tables: "Union[str, exp.Expression]", if_exists: bool = False, cascade: bool = False
) -> DropBuilder:
    """Build ``DROP TABLE [IF EXISTS] tables [CASCADE]``."""
    return DropBuilder(ctx).relations(OperationKind.DROP_TABLE, tables, if_exists, cascade)


def drop_materialized_view(
    ctx: "ConnectionContext", *views: "Union[str, exp.Expression]", if_exists: bool = False, cascade: bool = False
) -> DropBuilder:
    """Build ``DROP MATERIALIZED VIEW [IF EXISTS] views [CASCADE]``."""
    return DropBuilder(ctx).relations(OperationKind.DROP_MATERIALIZED_VIEW, views, if_exists, cascade)


def truncate(
    ctx: "ConnectionContext",
    *tables: "Union[str, exp.Expression]",
    restart_identity: bool = False,
    cascade: bool = False,
) -> TruncateBuilder:
    """Build ``TRUNCATE TABLE tables [RESTART IDENTITY] [CASCADE]``."""
    return TruncateBuilder(ctx).tables(tables, restart_identity, cascade)


def refresh_materialized_view(
    ctx: "ConnectionContext",
    view: "Union[str, exp.Expression]",
    concurrently: bool = False,
    with_data: Optional[bool] = None,
) -> RefreshMaterializedViewBuilder:
    """Build ``REFRESH MATERIALIZED VIEW [CONCURRENTLY] view [WITH [NO] DATA]``."""
    return RefreshMaterializedViewBuilder(ctx).view(view, concurrently, with_data)


def copy(
    ctx: "ConnectionContext",
    table: "Union[str, exp.Expression]",
    source: str,
    columns: "Sequence[str]" = (),
    direction: str = "FROM",
    options: "Optional[Mapping[str, Any]]" = None,
) -> CopyBuilder:
    """Build a PostgreSQL ``COPY`` statement."""
    return CopyBuilder(ctx).table(table, source, columns, direction, options)
