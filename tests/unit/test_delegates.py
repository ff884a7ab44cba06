"""Unit tests for delegate generation."""

import types
from typing import Any

import pytest

from sqlbridge import ConnectionContext, ImproperConfigurationError, InvalidContextError, dbapi, delegates, sqlite_spec
from sqlbridge.delegates import ACCESS_LAYER_PRIMITIVES, ParameterShape, generate_delegates, make_delegate


def _recording_primitive() -> "tuple[Any, list[tuple[Any, tuple[Any, ...], dict[str, Any]]]]":
    calls: list[tuple[Any, tuple[Any, ...], dict[str, Any]]] = []

    def primitive(db: Any, *args: Any, **kwargs: Any) -> str:
        """Recorded primitive."""
        calls.append((db, args, kwargs))
        return "result"

    return primitive, calls


def test_every_primitive_has_a_module_level_delegate() -> None:
    for name, _shapes in ACCESS_LAYER_PRIMITIVES:
        delegate = getattr(delegates, name)
        assert callable(delegate)
        assert delegate.__name__ == name
        assert delegate.__wrapped__ is getattr(dbapi, name)


def test_delegate_replaces_context_with_handle() -> None:
    primitive, calls = _recording_primitive()
    delegate = make_delegate(primitive, [("db", "sql_params"), ("db", "sql_params", "options")])
    spec = sqlite_spec()
    ctx = ConnectionContext(handle=spec)

    assert delegate(ctx, ["SELECT 1"]) == "result"
    assert delegate(ctx, ["SELECT 1"], {"max_rows": 1}) == "result"
    assert calls == [(spec, (["SELECT 1"],), {}), (spec, (["SELECT 1"], {"max_rows": 1}), {})]


def test_delegate_keeps_primitive_metadata() -> None:
    primitive, _ = _recording_primitive()
    delegate = make_delegate(primitive, [("db",)], name="renamed")

    assert delegate.__name__ == "renamed"
    assert delegate.__doc__ == "Recorded primitive."
    assert delegate.shapes == (ParameterShape(("db",)),)


def test_delegate_rejects_wrong_arity() -> None:
    primitive, calls = _recording_primitive()
    delegate = make_delegate(primitive, [("db", "sql_params"), ("db", "sql_params", "options")], name="query")
    ctx = ConnectionContext(handle=sqlite_spec())

    with pytest.raises(TypeError, match=r"query\(\) takes 2 or 3 positional arguments but 1 were given"):
        delegate(ctx)
    with pytest.raises(TypeError):
        delegate(ctx, "a", "b", "c")
    assert calls == []


def test_variadic_shape_accepts_any_tail() -> None:
    primitive, calls = _recording_primitive()
    delegate = make_delegate(primitive, [("db", "*types")])
    ctx = ConnectionContext(handle=sqlite_spec())

    delegate(ctx)
    delegate(ctx, "TABLE", "VIEW")

    assert [args for _, args, _ in calls] == [(), ("TABLE", "VIEW")]


def test_delegate_accepts_keyword_arguments() -> None:
    primitive, calls = _recording_primitive()
    delegate = make_delegate(primitive, [("db", "sql_params")])
    spec = sqlite_spec()

    delegate(ConnectionContext(handle=spec), sql_params=["SELECT 1"])
    delegate(db=ConnectionContext(handle=spec), sql_params=["SELECT 2"])

    assert calls == [(spec, (), {"sql_params": ["SELECT 1"]}), (spec, (), {"sql_params": ["SELECT 2"]})]


def test_delegate_requires_context() -> None:
    primitive, calls = _recording_primitive()
    delegate = make_delegate(primitive, [("db",)])

    with pytest.raises(InvalidContextError):
        delegate(sqlite_spec())
    assert calls == []


def test_shape_parse() -> None:
    assert ParameterShape.parse(("db", "table")) == ParameterShape(("db", "table"))
    assert ParameterShape.parse(("db", "*options")) == ParameterShape(("db",), "options")
    assert ParameterShape.parse(("db", "*options")).describe() == "1+"


@pytest.mark.parametrize("names", [(), ("*db",), ("db", "*options", "extra")])
def test_shape_parse_rejects_malformed(names: "tuple[str, ...]") -> None:
    with pytest.raises(ImproperConfigurationError):
        ParameterShape.parse(names)


def test_make_delegate_requires_shapes() -> None:
    primitive, _ = _recording_primitive()
    with pytest.raises(ImproperConfigurationError):
        make_delegate(primitive, [])


def test_generate_delegates_from_module() -> None:
    primitive, calls = _recording_primitive()
    module = types.ModuleType("fake_access_layer")
    module.fetch = primitive  # type: ignore[attr-defined]
    spec = sqlite_spec()

    generated = generate_delegates(module, [("fetch", [("db", "key")])])
    generated["fetch"](ConnectionContext(handle=spec), 1)

    assert list(generated) == ["fetch"]
    assert calls == [(spec, (1,), {})]


def test_generate_delegates_missing_primitive() -> None:
    module = types.ModuleType("fake_access_layer")
    with pytest.raises(ImproperConfigurationError, match="missing"):
        generate_delegates(module, [("missing", [("db",)])])
