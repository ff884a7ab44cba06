"""Unit tests for the row-returning access-layer primitives."""

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from sqlbridge import DatabaseSpec, QueryError, lisp_case, sqlite_spec
from sqlbridge.dbapi import (
    db_do_commands,
    find_by_keys,
    get_by_id,
    insert,
    insert_multi,
    make_cols_unique,
    query,
    result_set_seq,
)
from sqlbridge.dbapi.query import normalize_sql_params


def _cursor(columns: "list[str]", rows: "list[tuple]") -> MagicMock:
    cursor = MagicMock()
    cursor.description = [(column, None, None, None, None, None, None) for column in columns]
    cursor.fetchall.return_value = rows
    cursor.fetchmany.side_effect = lambda size: rows[:size]
    return cursor


@pytest.fixture
def products_db(tmp_path: Path) -> DatabaseSpec:
    db = sqlite_spec(str(tmp_path / "products.db"))
    db_do_commands(db, "CREATE TABLE products (id INTEGER PRIMARY KEY, product_name TEXT, category TEXT)")
    insert_multi(
        db,
        "products",
        [
            {"product_name": "Widget", "category": "tools"},
            {"product_name": "Gadget", "category": None},
        ],
    )
    return db


@pytest.mark.parametrize(
    ("sql_params", "expected"),
    [
        ("SELECT 1", ("SELECT 1", [])),
        (["SELECT ?", 1], ("SELECT ?", [1])),
        (("SELECT ?, ?", 1, 2), ("SELECT ?, ?", [1, 2])),
    ],
)
def test_normalize_sql_params(sql_params: object, expected: object) -> None:
    assert normalize_sql_params(sql_params) == expected  # type: ignore[arg-type]


@pytest.mark.parametrize("sql_params", [[], [1, "SELECT 1"], None])
def test_normalize_sql_params_rejects_malformed(sql_params: object) -> None:
    with pytest.raises(QueryError):
        normalize_sql_params(sql_params)  # type: ignore[arg-type]


def test_make_cols_unique() -> None:
    assert make_cols_unique(["id", "id", "name"]) == ["id", "id_2", "name"]
    assert make_cols_unique(["a", "a", "a_2"]) == ["a", "a_2", "a_2_2"]


def test_result_set_seq_applies_identifier_transform() -> None:
    cursor = _cursor(["ID", "CREATED_AT"], [(1, "today")])
    assert result_set_seq(cursor, identifiers=lisp_case) == [{"id": 1, "created-at": "today"}]


def test_result_set_seq_mixed_case_columns() -> None:
    assert result_set_seq(_cursor(["Id", "Created_At"], [(1, "today")]), identifiers=lisp_case) == [
        {"id": 1, "created-at": "today"}
    ]
    assert result_set_seq(_cursor(["Id"], [(1,)]), identifiers=str.lower) == [{"id": 1}]


def test_result_set_seq_as_arrays() -> None:
    cursor = _cursor(["ID", "NAME"], [(1, "a"), (2, "b")])
    assert result_set_seq(cursor, as_arrays=True) == [["id", "name"], (1, "a"), (2, "b")]


def test_result_set_seq_row_fn_and_max_rows() -> None:
    cursor = _cursor(["id"], [(1,), (2,), (3,)])
    assert result_set_seq(cursor, row_fn=lambda row: row["id"], max_rows=2) == [1, 2]


def test_result_set_seq_without_result_set() -> None:
    cursor = MagicMock(description=None)
    assert result_set_seq(cursor) == []
    cursor.fetchall.assert_not_called()


def test_query_default_lowercases_columns(products_db: DatabaseSpec) -> None:
    rows = query(products_db, ["SELECT id AS ID, product_name AS Product_Name FROM products WHERE id = ?", 1])
    assert rows == [{"id": 1, "product_name": "Widget"}]


def test_query_result_set_fn(products_db: DatabaseSpec) -> None:
    count = query(products_db, "SELECT id FROM products", {"result_set_fn": len})
    assert count == 2


def test_find_by_keys(products_db: DatabaseSpec) -> None:
    assert [row["product_name"] for row in find_by_keys(products_db, "products", {"category": "tools"})] == ["Widget"]
    assert [row["product_name"] for row in find_by_keys(products_db, "products", {"category": None})] == ["Gadget"]


def test_get_by_id(products_db: DatabaseSpec) -> None:
    assert get_by_id(products_db, "products", 2)["product_name"] == "Gadget"
    assert get_by_id(products_db, "products", 99) is None


def test_insert_returns_generated_key(products_db: DatabaseSpec) -> None:
    assert insert(products_db, "products", {"product_name": "Gizmo"}) == 3


def test_insert_rejects_empty_row(products_db: DatabaseSpec) -> None:
    with pytest.raises(QueryError):
        insert(products_db, "products", {})
