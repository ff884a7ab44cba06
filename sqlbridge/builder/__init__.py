"""sqlglot-backed statement builders.

Every builder takes a :class:`~sqlbridge.context.ConnectionContext` and builds
an immutable :class:`Statement` whose ``evaluate()`` runs it through the
dispatcher::

    rows = select(ctx, "id", "name").from_("products").where(("active", True)).evaluate()
"""

from sqlbridge.builder._base import Statement, StatementBuilder, to_statement
from sqlbridge.builder._ddl import (
    CopyBuilder,
    CreateTableBuilder,
    DropBuilder,
    RefreshMaterializedViewBuilder,
    TruncateBuilder,
    copy,
    create_table,
    drop_materialized_view,
    drop_table,
    refresh_materialized_view,
    truncate,
)
from sqlbridge.builder._dml import DeleteBuilder, InsertBuilder, UpdateBuilder, delete, insert, update
from sqlbridge.builder._expressions import (
    CopyStatement,
    DropRelations,
    ExplainStatement,
    RefreshMaterializedView,
    TruncateTables,
)
from sqlbridge.builder._raw import classify_expression, raw
from sqlbridge.builder._render import render_expression
from sqlbridge.builder._select import (
    ExplainBuilder,
    SelectBuilder,
    SetOperationBuilder,
    WithBuilder,
    except_,
    explain,
    intersect,
    select,
    union,
    with_,
)

__all__ = (
    "CopyBuilder",
    "CopyStatement",
    "CreateTableBuilder",
    "DeleteBuilder",
    "DropBuilder",
    "DropRelations",
    "ExplainBuilder",
    "ExplainStatement",
    "InsertBuilder",
    "RefreshMaterializedView",
    "RefreshMaterializedViewBuilder",
    "SelectBuilder",
    "SetOperationBuilder",
    "Statement",
    "StatementBuilder",
    "TruncateBuilder",
    "TruncateTables",
    "UpdateBuilder",
    "WithBuilder",
    "classify_expression",
    "copy",
    "create_table",
    "delete",
    "drop_materialized_view",
    "drop_table",
    "except_",
    "explain",
    "insert",
    "intersect",
    "raw",
    "refresh_materialized_view",
    "render_expression",
    "select",
    "to_statement",
    "truncate",
    "union",
    "update",
    "with_",
)
