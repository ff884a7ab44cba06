"""Custom SQLGlot expressions for statements sqlglot does not model uniformly.

Each expression ships a generator function; :data:`TRANSFORMS` maps the
expression classes to them and is merged into the binding generators built by
:mod:`sqlbridge.builder._render`.
"""

from typing import TYPE_CHECKING, Any, Callable

from sqlglot import exp

if TYPE_CHECKING:
    from sqlglot.generator import Generator

__all__ = (
    "TRANSFORMS",
    "CopyStatement",
    "DropRelations",
    "ExplainStatement",
    "RefreshMaterializedView",
    "TruncateTables",
)


class ExplainStatement(exp.Expression):
    """``EXPLAIN [QUERY PLAN] [ANALYZE] <statement>``."""

    arg_types = {"this": True, "analyze": False, "query_plan": False}


class DropRelations(exp.Expression):
    """``DROP <kind> [IF EXISTS] a, b [CASCADE]`` for tables and materialized views.

    ``kind`` is stored as the raw keyword string (``TABLE``, ``MATERIALIZED VIEW``).
    """

    arg_types = {"expressions": True, "kind": True, "exists": False, "cascade": False}

    @property
    def kind(self) -> str:
        return str(self.args.get("kind") or "TABLE").upper()


class TruncateTables(exp.Expression):
    """``TRUNCATE TABLE a, b [RESTART IDENTITY] [CASCADE]``."""

    arg_types = {"expressions": True, "restart_identity": False, "cascade": False}


class CopyStatement(exp.Expression):
    """``COPY table [(columns)] FROM|TO source [WITH (options)]``."""

    arg_types = {"this": True, "columns": False, "source": True, "direction": False, "options": False}

    @property
    def direction(self) -> str:
        return str(self.args.get("direction") or "FROM").upper()


class RefreshMaterializedView(exp.Expression):
    """``REFRESH MATERIALIZED VIEW [CONCURRENTLY] name [WITH [NO] DATA]``."""

    arg_types = {"this": True, "concurrently": False, "with_data": False}


def _csv(generator: "Generator", expressions: "list[exp.Expression]") -> str:
    return ", ".join(generator.sql(expression) for expression in expressions)


def explain_statement_sql(generator: "Generator", expression: ExplainStatement) -> str:
    parts = ["EXPLAIN"]
    if expression.args.get("query_plan"):
        parts.append("QUERY PLAN")
    if expression.args.get("analyze"):
        parts.append("ANALYZE")
    parts.append(generator.sql(expression, "this"))
    return " ".join(parts)


def drop_relations_sql(generator: "Generator", expression: DropRelations) -> str:
    exists = " IF EXISTS" if expression.args.get("exists") else ""
    cascade = " CASCADE" if expression.args.get("cascade") else ""
    return f"DROP {expression.kind}{exists} {_csv(generator, expression.expressions)}{cascade}"


def truncate_tables_sql(generator: "Generator", expression: TruncateTables) -> str:
    restart = " RESTART IDENTITY" if expression.args.get("restart_identity") else ""
    cascade = " CASCADE" if expression.args.get("cascade") else ""
    return f"TRUNCATE TABLE {_csv(generator, expression.expressions)}{restart}{cascade}"


def copy_statement_sql(generator: "Generator", expression: CopyStatement) -> str:
    columns = expression.args.get("columns") or []
    column_sql = f" ({_csv(generator, columns)})" if columns else ""
    options = expression.args.get("options") or []
    options_sql = f" WITH ({_csv(generator, options)})" if options else ""
    return (
        f"COPY {generator.sql(expression, 'this')}{column_sql} {expression.direction} "
        f"{generator.sql(expression, 'source')}{options_sql}"
    )


def refresh_materialized_view_sql(generator: "Generator", expression: RefreshMaterializedView) -> str:
    concurrently = " CONCURRENTLY" if expression.args.get("concurrently") else ""
    with_data = expression.args.get("with_data")
    data = "" if with_data is None else (" WITH DATA" if with_data else " WITH NO DATA")
    return f"REFRESH MATERIALIZED VIEW{concurrently} {generator.sql(expression, 'this')}{data}"


TRANSFORMS: "dict[type[exp.Expression], Callable[..., Any]]" = {
    ExplainStatement: explain_statement_sql,
    DropRelations: drop_relations_sql,
    TruncateTables: truncate_tables_sql,
    CopyStatement: copy_statement_sql,
    RefreshMaterializedView: refresh_materialized_view_sql,
}
