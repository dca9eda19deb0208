import logging

import pytest

from app.sql.hooks import FieldHooks, identity_hook, resolve_fields
from app.sql.values import DROP, RawValue, WrappedValue, to_bound_value


class TestBoundValues:
    def test_plain_value_becomes_raw(self):
        assert to_bound_value(5) == RawValue(5)

    def test_bound_values_pass_through(self):
        wrapped = WrappedValue(1, before="ABS(", after=")")

        assert to_bound_value(wrapped) is wrapped
        assert to_bound_value(RawValue("x")) == RawValue("x")

    def test_none_is_a_value(self):
        assert to_bound_value(None) == RawValue(None)

    def test_drop_repr(self):
        assert repr(DROP) == "DROP"


class TestResolveFields:
    @pytest.mark.anyio
    async def test_no_hook_is_identity(self):
        resolved = await resolve_fields(None, "users", {"a": 1, "b": "x"})

        assert resolved == [("a", RawValue(1)), ("b", RawValue("x"))]

    @pytest.mark.anyio
    async def test_order_is_preserved(self):
        fields = {"z": 1, "a": 2, "m": 3}

        resolved = await resolve_fields(identity_hook, "t", fields)

        assert [key for key, _ in resolved] == ["z", "a", "m"]

    @pytest.mark.anyio
    async def test_drop_omits_field(self, caplog):
        def hook(schema, key, value):
            return DROP if key == "secret" else value

        with caplog.at_level(logging.DEBUG, logger="app.sql.hooks"):
            resolved = await resolve_fields(hook, "users", {"name": "a", "secret": "s"})

        assert resolved == [("name", RawValue("a"))]
        assert any("dropped" in record.getMessage() for record in caplog.records)

    @pytest.mark.anyio
    async def test_async_hook(self):
        async def hook(schema, key, value):
            return RawValue(value * 2)

        resolved = await resolve_fields(hook, "t", {"n": 21})

        assert resolved == [("n", RawValue(42))]

    @pytest.mark.anyio
    async def test_hook_error_propagates(self):
        def hook(schema, key, value):
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            await resolve_fields(hook, "t", {"n": 1})


class TestFieldHooks:
    def test_defaults_to_no_hooks(self):
        hooks = FieldHooks()

        assert hooks.insert_field is None
        assert hooks.list_where_field is None

    def test_is_immutable(self):
        hooks = FieldHooks()

        with pytest.raises(AttributeError):
            hooks.insert_field = identity_hook  # type: ignore[misc]
