"""Unit tests for statements built from SQL text."""

from unittest.mock import patch

import pytest
import sqlglot

from sqlbridge import ConnectionContext, OperationKind, SQLBuilderError, UnsupportedOperationError
from sqlbridge.builder import classify_expression, raw


@pytest.mark.parametrize(
    ("sql", "expected"),
    [
        ("SELECT * FROM t", OperationKind.SELECT),
        ("WITH x AS (SELECT 1 AS a) SELECT a FROM x", OperationKind.WITH),
        ("SELECT 1 UNION SELECT 2", OperationKind.UNION),
        ("SELECT 1 INTERSECT SELECT 2", OperationKind.INTERSECT),
        ("SELECT 1 EXCEPT SELECT 2", OperationKind.EXCEPT),
        ("INSERT INTO t (a) VALUES (1)", OperationKind.INSERT),
        ("UPDATE t SET a = 1", OperationKind.UPDATE),
        ("DELETE FROM t WHERE a = 1", OperationKind.DELETE),
        ("CREATE TABLE t (a INT)", OperationKind.CREATE_TABLE),
        ("DROP TABLE t", OperationKind.DROP_TABLE),
        ("TRUNCATE TABLE t", OperationKind.TRUNCATE),
    ],
)
def test_classify_expression(sql: str, expected: OperationKind) -> None:
    assert classify_expression(sqlglot.parse_one(sql)) is expected


def test_raw_positional_values(ctx: ConnectionContext) -> None:
    statement = raw(ctx, "SELECT id FROM products WHERE id = ? AND name = ?", 1, "Widget")

    assert statement.operation_kind is OperationKind.SELECT
    assert statement.render() == ("SELECT id FROM products WHERE id = ? AND name = ?", [1, "Widget"])


def test_raw_named_values(ctx: ConnectionContext) -> None:
    statement = raw(ctx, "SELECT id FROM products WHERE id = :id", parameters={"id": 3})
    assert statement.render() == ("SELECT id FROM products WHERE id = ?", [3])


def test_raw_detects_returning(ctx: ConnectionContext) -> None:
    assert raw(ctx, "INSERT INTO t (a) VALUES (?) RETURNING id", 1).returning is True
    assert raw(ctx, "UPDATE t SET a = 1").returning is False


def test_raw_explicit_kind_and_returning(ctx: ConnectionContext) -> None:
    statement = raw(ctx, "SELECT 1", operation_kind="explain", returning=True)

    assert statement.operation_kind == "explain"
    assert statement.returning is True


def test_raw_requires_single_statement(ctx: ConnectionContext) -> None:
    with pytest.raises(SQLBuilderError, match="exactly one"):
        raw(ctx, "SELECT 1; SELECT 2")


def test_raw_rejects_unparseable_sql(ctx: ConnectionContext) -> None:
    with pytest.raises(SQLBuilderError):
        raw(ctx, "SELECT * FROM (")


def test_raw_unknown_kind_is_rejected_on_evaluate(ctx: ConnectionContext) -> None:
    statement = raw(ctx, "PRAGMA user_version")

    assert not isinstance(statement.operation_kind, OperationKind)
    with patch("sqlbridge.delegates.query") as query, patch("sqlbridge.delegates.execute") as execute:
        with pytest.raises(UnsupportedOperationError):
            statement.evaluate()
    query.assert_not_called()
    execute.assert_not_called()
