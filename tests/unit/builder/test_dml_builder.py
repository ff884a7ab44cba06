"""Unit tests for INSERT, UPDATE and DELETE builders."""

from unittest.mock import patch

import pytest
from sqlglot import exp

from sqlbridge import ConnectionContext, OperationKind, SQLBuilderError
from sqlbridge.builder import delete, insert, select, update


def test_insert_mapping_row(ctx: ConnectionContext) -> None:
    query = insert(ctx, "products").values({"id": 1, "name": "Widget"})

    assert query.render() == ("INSERT INTO products (id, name) VALUES (?, ?)", [1, "Widget"])
    assert query.build().operation_kind is OperationKind.INSERT
    assert query.build().returning is False


def test_insert_several_rows(ctx: ConnectionContext) -> None:
    query = insert(ctx, "products").values({"id": 1, "name": "a"}, {"name": "b", "id": 2})

    assert query.render() == ("INSERT INTO products (id, name) VALUES (?, ?), (?, ?)", [1, "a", 2, "b"])


def test_insert_sequence_rows_with_declared_columns(ctx: ConnectionContext) -> None:
    query = insert(ctx, "products", ["id", "unit-price"]).values((1, 9.5)).values([2, 3.0])

    assert query.render() == ("INSERT INTO products (id, unit_price) VALUES (?, ?), (?, ?)", [1, 9.5, 2, 3.0])


def test_insert_row_mismatch(ctx: ConnectionContext) -> None:
    builder = insert(ctx, "products").values({"id": 1, "name": "a"})

    with pytest.raises(SQLBuilderError):
        builder.values({"id": 2})
    with pytest.raises(SQLBuilderError):
        insert(ctx, "products", ["id", "name"]).values((1,))


def test_insert_select(ctx: ConnectionContext) -> None:
    source = select(ctx, "id").from_("products").where(("id", ">", 5))
    query = insert(ctx, "archive", ["id"]).select(source)

    assert query.render() == ("INSERT INTO archive (id) SELECT id FROM products WHERE id > ?", [5])
    with pytest.raises(SQLBuilderError):
        query.values((1,))


def test_insert_requires_values(ctx: ConnectionContext) -> None:
    with pytest.raises(SQLBuilderError):
        insert(ctx, "products").build()


def test_insert_returning(ctx: ConnectionContext) -> None:
    statement = insert(ctx, "products").values({"name": "Widget"}).returning("id", "created-at").build()

    assert statement.returning is True
    assert statement.render() == ("INSERT INTO products (name) VALUES (?) RETURNING id, created_at", ["Widget"])


def test_returning_requires_columns(ctx: ConnectionContext) -> None:
    with pytest.raises(SQLBuilderError):
        insert(ctx, "products").returning()


def test_update(ctx: ConnectionContext) -> None:
    query = update(ctx, "products", {"name": "New"}).where(("id", 1))

    assert query.render() == ("UPDATE products SET name = ? WHERE id = ?", ["New", 1])
    assert query.build().operation_kind is OperationKind.UPDATE


def test_update_set_forms(ctx: ConnectionContext) -> None:
    query = update(ctx, "products").set("name", "x").set({"price": 2}, stock=3)

    assert query.render() == ("UPDATE products SET name = ?, price = ?, stock = ?", ["x", 2, 3])


def test_update_set_expression_is_not_bound(ctx: ConnectionContext) -> None:
    query = update(ctx, "products").set("stock", exp.column("stock") - 1).where(("id", 7))

    assert query.render() == ("UPDATE products SET stock = stock - 1 WHERE id = ?", [7])


def test_update_rejects_bad_set_arguments(ctx: ConnectionContext) -> None:
    with pytest.raises(SQLBuilderError):
        update(ctx, "products").set("name")


def test_update_requires_assignments(ctx: ConnectionContext) -> None:
    with pytest.raises(SQLBuilderError):
        update(ctx, "products").build()


def test_update_returning(ctx: ConnectionContext) -> None:
    statement = update(ctx, "products", {"name": "New"}).where(("id", 1)).returning("*").build()

    assert statement.returning is True
    assert statement.sql().endswith("RETURNING *")


def test_delete(ctx: ConnectionContext) -> None:
    query = delete(ctx, "products").where(("id", 1))

    assert query.render() == ("DELETE FROM products WHERE id = ?", [1])
    assert delete(ctx, "products").sql() == "DELETE FROM products"
    assert query.build().operation_kind is OperationKind.DELETE


def test_delete_without_returning_executes(ctx: ConnectionContext) -> None:
    with patch("sqlbridge.delegates.execute", return_value=3) as execute, patch("sqlbridge.delegates.query") as query:
        assert delete(ctx, "products").where(("id", "<", 10)).evaluate() == 3

    execute.assert_called_once_with(ctx, ["DELETE FROM products WHERE id < ?", 10])
    query.assert_not_called()


def test_delete_with_returning_queries(ctx: ConnectionContext) -> None:
    with patch("sqlbridge.delegates.query", return_value=[{"id": 1}]) as query, patch(
        "sqlbridge.delegates.execute"
    ) as execute:
        rows = delete(ctx, "products").where(("id", 1)).returning("id").evaluate()

    assert rows == [{"id": 1}]
    query.assert_called_once()
    assert query.call_args.args[1] == ["DELETE FROM products WHERE id = ? RETURNING id", 1]
    execute.assert_not_called()
