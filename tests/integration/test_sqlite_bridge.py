"""Integration tests running built statements against SQLite."""

import sqlite3
from collections.abc import Generator

import pytest

from sqlbridge import (
    ConnectionContext,
    DatabaseSpec,
    camelize,
    connection_scope,
    create_table,
    delegates,
    delete,
    drop_table,
    explain,
    insert,
    is_rollback_only,
    open_db,
    raw,
    select,
    set_rollback_only,
    transaction_scope,
    union,
    update,
    with_,
    with_connection,
    with_metadata,
    with_transaction,
)

pytestmark = pytest.mark.integration


@pytest.fixture
def products_ctx(sqlite_ctx: ConnectionContext) -> Generator[ConnectionContext, None, None]:
    create_table(sqlite_ctx, "products").column("id", "INTEGER", primary_key=True).column(
        "product-name", "TEXT", not_null=True
    ).column("unit-price", "REAL").evaluate()
    insert(sqlite_ctx, "products").values(
        {"id": 1, "product-name": "Widget", "unit-price": 9.5},
        {"id": 2, "product-name": "Gadget", "unit-price": 20.0},
    ).evaluate()
    yield sqlite_ctx


def _names(ctx: ConnectionContext) -> "list[str]":
    return [row["product-name"] for row in select(ctx, "product-name").from_("products").order_by("id").evaluate()]


def test_select_returns_lisp_cased_rows(products_ctx: ConnectionContext) -> None:
    rows = select(products_ctx, "id", "product-name", "unit-price").from_("products").order_by("id").evaluate()

    assert rows == [
        {"id": 1, "product-name": "Widget", "unit-price": 9.5},
        {"id": 2, "product-name": "Gadget", "unit-price": 20.0},
    ]


def test_select_with_no_rows_returns_empty_list(products_ctx: ConnectionContext) -> None:
    assert select(products_ctx, "id").from_("products").where(("id", 99)).evaluate() == []


def test_insert_update_delete_return_affected_rows(products_ctx: ConnectionContext) -> None:
    assert insert(products_ctx, "products").values({"id": 3, "product-name": "Gizmo"}).evaluate() == 1
    assert update(products_ctx, "products", {"unit-price": 1.0}).where(("id", ">=", 2)).evaluate() == 2
    assert delete(products_ctx, "products").where(("id", 1)).evaluate() == 1
    assert _names(products_ctx) == ["Gadget", "Gizmo"]


def test_custom_identifier_transform(sqlite_db: DatabaseSpec, products_ctx: ConnectionContext) -> None:
    upper = open_db(sqlite_db, identifier_transform=str.upper)
    assert select(upper, "product-name").from_("products").where(("id", 1)).evaluate() == [{"PRODUCT_NAME": "Widget"}]


def test_query_options_reach_the_access_layer(sqlite_db: DatabaseSpec, products_ctx: ConnectionContext) -> None:
    arrays = open_db(sqlite_db, query_options={"as_arrays": True})
    rows = select(arrays, "id", "product-name").from_("products").order_by("id").evaluate()

    assert rows == [["id", "product-name"], (1, "Widget"), (2, "Gadget")]


def test_union_and_with(products_ctx: ConnectionContext) -> None:
    combined = union(
        select(products_ctx, "id").from_("products").where(("id", 1)),
        select(products_ctx, "id").from_("products").where(("id", 2)),
    )
    cheap = select(products_ctx, "id").from_("products").where(("unit-price", "<", 10))
    wrapped = with_({"cheap": cheap}, select(products_ctx, "id").from_("cheap").where(("id", ">", 0)))

    assert sorted(row["id"] for row in combined.evaluate()) == [1, 2]
    assert wrapped.evaluate() == [{"id": 1}]


def test_explain_query_plan_returns_rows(products_ctx: ConnectionContext) -> None:
    rows = explain(select(products_ctx, "id").from_("products"), query_plan=True).evaluate()

    assert isinstance(rows, list)
    assert rows
    assert "detail" in rows[0]


def test_raw_statements(products_ctx: ConnectionContext) -> None:
    assert raw(products_ctx, "SELECT product_name FROM products WHERE id = ?", 2).evaluate() == [
        {"product-name": "Gadget"}
    ]
    assert raw(products_ctx, "UPDATE products SET unit_price = :price", parameters={"price": 5.0}).evaluate() == 2


def test_transaction_scope_commits(products_ctx: ConnectionContext) -> None:
    with transaction_scope(products_ctx) as tx:
        insert(tx, "products").values({"id": 3, "product-name": "Gizmo"}).evaluate()
        update(tx, "products", {"product-name": "Widget 2"}).where(("id", 1)).evaluate()

    assert _names(products_ctx) == ["Widget 2", "Gadget", "Gizmo"]


def test_transaction_scope_rolls_back_on_error(products_ctx: ConnectionContext) -> None:
    with pytest.raises(RuntimeError, match="abort"):
        with transaction_scope(products_ctx) as tx:
            delete(tx, "products").evaluate()
            assert _names(tx) == []
            raise RuntimeError("abort")

    assert _names(products_ctx) == ["Widget", "Gadget"]


def test_rollback_only_discards_work(products_ctx: ConnectionContext) -> None:
    def _body(tx: ConnectionContext) -> str:
        delete(tx, "products").where(("id", 1)).evaluate()
        set_rollback_only(tx)
        return "done"

    assert with_transaction(products_ctx, _body) == "done"
    assert _names(products_ctx) == ["Widget", "Gadget"]


def test_nested_transaction_shares_rollback_only(products_ctx: ConnectionContext) -> None:
    with transaction_scope(products_ctx) as outer:
        delete(outer, "products").where(("id", 2)).evaluate()
        with transaction_scope(outer) as inner:
            delete(inner, "products").where(("id", 1)).evaluate()
            set_rollback_only(inner)
        assert is_rollback_only(outer)

    assert _names(products_ctx) == ["Widget", "Gadget"]


def test_connection_scope_runs_statements_on_one_connection(products_ctx: ConnectionContext) -> None:
    with connection_scope(products_ctx) as scoped:
        connection = delegates.db_connection(scoped)
        insert(scoped, "products").values({"id": 3, "product-name": "Gizmo"}).evaluate()
        with transaction_scope(scoped) as tx:
            assert delegates.db_connection(tx) is connection
            update(tx, "products", {"unit-price": 2.5}).where(("id", 3)).evaluate()

    assert select(products_ctx, "unit-price").from_("products").where(("id", 3)).evaluate() == [{"unit-price": 2.5}]


def test_with_connection_returns_body_result(products_ctx: ConnectionContext) -> None:
    assert with_connection(products_ctx, _names) == ["Widget", "Gadget"]


def test_metadata(products_ctx: ConnectionContext) -> None:
    assert with_metadata(products_ctx, lambda metadata: metadata.table_names()) == ["products"]
    columns = delegates.get_columns(products_ctx, "products")
    assert [column["column_name"] for column in columns] == ["id", "product_name", "unit_price"]
    assert [row["table_name"] for row in delegates.get_tables(products_ctx, ["TABLE"])] == ["products"]


def test_access_layer_delegates(products_ctx: ConnectionContext) -> None:
    assert delegates.get_by_id(products_ctx, "products", 1)["product_name"] == "Widget"
    assert delegates.query(products_ctx, ["SELECT COUNT(*) AS n FROM products"]) == [{"n": 2}]
    assert delegates.execute(products_ctx, ["DELETE FROM products WHERE id = ?", 2]) == 1
    assert delegates.insert(products_ctx, "products", {"product_name": "Gizmo"}) == 2


def test_drop_table(products_ctx: ConnectionContext) -> None:
    drop_table(products_ctx, "products", if_exists=True).evaluate()
    assert with_metadata(products_ctx, lambda metadata: metadata.table_names()) == []


def test_camelize_identifier_transform(sqlite_db: DatabaseSpec, products_ctx: ConnectionContext) -> None:
    camel = open_db(sqlite_db, identifier_transform=camelize)
    rows = select(camel, "id", "product-name", "unit-price").from_("products").where(("id", 1)).evaluate()

    assert rows == [{"id": 1, "productName": "Widget", "unitPrice": 9.5}]


def test_rolled_back_transaction_discards_created_table(products_ctx: ConnectionContext) -> None:
    def _body(tx: ConnectionContext) -> None:
        create_table(tx, "ghost").column("id", "INTEGER").evaluate()
        insert(tx, "ghost").values({"id": 1}).evaluate()
        set_rollback_only(tx)

    with_transaction(products_ctx, _body)

    assert with_metadata(products_ctx, lambda metadata: metadata.table_names()) == ["products"]


def test_failed_transaction_scope_discards_created_table(products_ctx: ConnectionContext) -> None:
    with pytest.raises(RuntimeError, match="abort"):
        with transaction_scope(products_ctx) as tx:
            create_table(tx, "ghost").column("id", "INTEGER").evaluate()
            raise RuntimeError("abort")

    assert with_metadata(products_ctx, lambda metadata: metadata.table_names()) == ["products"]


requires_returning = pytest.mark.skipif(
    sqlite3.sqlite_version_info < (3, 35, 0), reason="RETURNING needs SQLite 3.35 or newer"
)


@pytest.fixture
def events_ctx(sqlite_ctx: ConnectionContext) -> ConnectionContext:
    create_table(sqlite_ctx, "events").column("id", "INTEGER", primary_key=True).column("created-at", "TEXT").evaluate()
    return sqlite_ctx


@requires_returning
def test_insert_returning_transforms_column_names(events_ctx: ConnectionContext) -> None:
    statement = insert(events_ctx, "events").values({"id": 1, "created-at": "2024-01-01"}).returning("id", "CREATED_AT")

    assert statement.evaluate() == [{"id": 1, "created-at": "2024-01-01"}]
    assert select(events_ctx, "created-at").from_("events").evaluate() == [{"created-at": "2024-01-01"}]


@requires_returning
def test_update_and_delete_returning(events_ctx: ConnectionContext) -> None:
    insert(events_ctx, "events").values({"id": 1, "created-at": "2024-01-01"}).evaluate()

    updated = update(events_ctx, "events", {"created-at": "2024-02-02"}).where(("id", 1)).returning("created-at")
    assert updated.evaluate() == [{"created-at": "2024-02-02"}]
    assert delete(events_ctx, "events").where(("id", 1)).returning("id").evaluate() == [{"id": 1}]
    assert delete(events_ctx, "events").where(("id", 1)).returning("id").evaluate() == []
    assert select(events_ctx, "id").from_("events").evaluate() == []
