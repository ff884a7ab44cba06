"""Unit tests for rendering expressions to positional SQL."""

import pytest
from sqlglot import exp

from sqlbridge import ConnectionContext, SQLBuilderError, select
from sqlbridge.builder import render_expression
from sqlbridge.builder._render import placeholder_name
from sqlbridge.parameters import ParameterStyle


def test_named_and_anonymous_placeholders_in_text_order() -> None:
    condition = exp.condition("a = :x AND b = ? AND c = :y")

    sql, params = render_expression(condition, parameters={"y": 3, "x": 1}, positional=[2])

    assert sql == "a = ? AND b = ? AND c = ?"
    assert params == [1, 2, 3]


@pytest.mark.parametrize(
    ("style", "expected"),
    [
        (ParameterStyle.QMARK, "a = ? AND b = ?"),
        (ParameterStyle.NUMERIC, "a = :1 AND b = :2"),
        (ParameterStyle.FORMAT, "a = %s AND b = %s"),
        ("pyformat", "a = %s AND b = %s"),
    ],
)
def test_parameter_styles(style: "ParameterStyle | str", expected: str) -> None:
    condition = exp.condition("a = :x AND b = :y")
    sql, params = render_expression(condition, parameter_style=style, parameters={"x": 1, "y": 2})

    assert sql == expected
    assert params == [1, 2]


def test_missing_named_value() -> None:
    with pytest.raises(SQLBuilderError, match="x"):
        render_expression(exp.condition("a = :x"))


def test_missing_positional_value() -> None:
    with pytest.raises(SQLBuilderError):
        render_expression(exp.condition("a = ? AND b = ?"), positional=[1])


def test_leftover_positional_values() -> None:
    with pytest.raises(SQLBuilderError):
        render_expression(exp.condition("a = ?"), positional=[1, 2])


def test_positional_values_pass_through_without_placeholders() -> None:
    sql, params = render_expression(exp.Command(this="VACUUM", expression="main"), positional=[1])

    assert sql.startswith("VACUUM")
    assert params == [1]


def test_expression_is_not_modified() -> None:
    condition = exp.condition("a = :x")
    render_expression(condition, parameters={"x": 1})
    assert condition.sql() == "a = :x"


def test_unknown_dialect() -> None:
    with pytest.raises(SQLBuilderError, match="not-a-dialect"):
        render_expression(exp.condition("a = 1"), dialect="not-a-dialect")


def test_identify_quotes_identifiers() -> None:
    sql, _ = render_expression(exp.select("id").from_("products"), identify=True)
    assert sql == 'SELECT "id" FROM "products"'


def test_trailing_named_placeholder_is_bound() -> None:
    assert render_expression(exp.condition("a = :x"), parameters={"x": 7}) == ("a = ?", [7])


def test_trailing_anonymous_placeholder_is_bound() -> None:
    assert render_expression(exp.condition("a = ?"), positional=[5]) == ("a = ?", [5])


def test_select_ending_in_bound_value(ctx: ConnectionContext) -> None:
    rendered = select(ctx, "id").from_("t").where(("id", 7)).render()

    assert rendered == ("SELECT id FROM t WHERE id = ?", [7])


def test_placeholder_name() -> None:
    assert placeholder_name(exp.Placeholder()) is None
    assert placeholder_name(exp.Placeholder(this="price")) == "price"


def test_marker_lookalike_in_literal_is_left_alone() -> None:
    sql, params = render_expression(exp.condition("a = '__sqlbridge_000000000000_0__' AND b = :x"), parameters={"x": 1})

    assert sql == "a = '__sqlbridge_000000000000_0__' AND b = ?"
    assert params == [1]
