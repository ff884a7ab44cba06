"""Unit tests for identifier transforms and placeholder styles."""

import pytest

from sqlbridge import ImproperConfigurationError, ParameterStyle
from sqlbridge.parameters import placeholder
from sqlbridge.utils.text import camelize, lisp_case, snake_case, sql_name


@pytest.mark.parametrize(
    ("identifier", "expected"),
    [("CREATED_AT", "created-at"), ("Id", "id"), ("unit_price", "unit-price"), ("name", "name")],
)
def test_lisp_case(identifier: str, expected: str) -> None:
    assert lisp_case(identifier) == expected


def test_sql_name() -> None:
    assert sql_name("created-at") == "created_at"
    assert sql_name(lisp_case("ORDER_ID")) == "order_id"


def test_camelize() -> None:
    assert camelize("created_at") == "createdAt"
    assert camelize("ID") == "id"


@pytest.mark.parametrize(
    ("identifier", "expected"),
    [("HTTPRequest", "http_request"), ("createdAt", "created_at"), ("unit price", "unit_price"), ("", "")],
)
def test_snake_case(identifier: str, expected: str) -> None:
    assert snake_case(identifier) == expected


@pytest.mark.parametrize(
    ("style", "position", "expected"),
    [
        (ParameterStyle.QMARK, 1, "?"),
        (ParameterStyle.NUMERIC, 2, ":2"),
        (ParameterStyle.FORMAT, 3, "%s"),
        ("pyformat", 1, "%s"),
    ],
)
def test_placeholder(style: "ParameterStyle | str", position: int, expected: str) -> None:
    assert placeholder(style, position) == expected


def test_parameter_style_coerce() -> None:
    assert ParameterStyle.coerce("QMARK") is ParameterStyle.QMARK
    assert str(ParameterStyle.NUMERIC) == "numeric"
    with pytest.raises(ImproperConfigurationError, match="named"):
        ParameterStyle.coerce("named")
