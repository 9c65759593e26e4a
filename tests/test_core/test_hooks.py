"""Unit tests for the hook bus (stackgen.core.hooks)."""

from __future__ import annotations

import pytest

from stackgen.core.hooks import HookBus, HookError
from stackgen.core.plugin import HookType

pytestmark = pytest.mark.unit


class TestRun:
    @pytest.mark.asyncio
    async def test_no_handlers_returns_initial(self, hook_bus):
        payload = {"a": 1}
        assert await hook_bus.run("nothingRegistered", payload) is payload

    @pytest.mark.asyncio
    async def test_none_initial_becomes_empty_dict(self, hook_bus):
        assert await hook_bus.run(HookType.PRE_GENERATE) == {}

    @pytest.mark.asyncio
    async def test_handlers_fold_left_to_right(self, hook_bus):
        hook_bus.register("transform", lambda value: value + ["first"])
        hook_bus.register("transform", lambda value: value + ["second"])

        assert await hook_bus.run("transform", []) == ["first", "second"]

    @pytest.mark.asyncio
    async def test_async_and_sync_handlers_mix(self, hook_bus):
        async def double(value):
            return value * 2

        hook_bus.register("math", double)
        hook_bus.register("math", lambda value: value + 1)

        assert await hook_bus.run("math", 5) == 11

    @pytest.mark.asyncio
    async def test_none_return_passes_value_through(self, hook_bus):
        seen = []

        def observer(payload):
            payload["observed"] = True
            seen.append(payload)

        hook_bus.register(HookType.POST_GENERATE, observer)
        hook_bus.register(HookType.POST_GENERATE, lambda payload: {**payload, "next": 1})

        result = await hook_bus.run(HookType.POST_GENERATE, {"x": 0})

        assert result == {"x": 0, "observed": True, "next": 1}
        assert len(seen) == 1

    @pytest.mark.asyncio
    async def test_enum_and_string_names_are_the_same_hook(self, hook_bus):
        hook_bus.register(HookType.PRE_GENERATE, lambda payload: "via enum")
        assert await hook_bus.run("preGenerate", {}) == "via enum"

    @pytest.mark.asyncio
    async def test_failure_raises_hook_error_and_stops(self, hook_bus):
        calls = []

        def broken(payload):
            raise ValueError("bad payload")

        hook_bus.register("validateConfig", broken, owner="Auth")
        hook_bus.register("validateConfig", lambda payload: calls.append("later"))

        with pytest.raises(HookError) as exc_info:
            await hook_bus.run("validateConfig", {})

        err = exc_info.value
        assert err.hook_name == "validateConfig"
        assert err.plugin_name == "Auth"
        assert isinstance(err.original, ValueError)
        assert isinstance(err.__cause__, ValueError)
        assert "Hook 'validateConfig' in plugin 'Auth' failed: bad payload" == str(err)
        assert calls == []

    @pytest.mark.asyncio
    async def test_error_without_owner_omits_plugin(self, hook_bus):
        hook_bus.register("h", lambda payload: 1 / 0)
        with pytest.raises(HookError, match=r"^Hook 'h' failed"):
            await hook_bus.run("h")


class TestRegistrationBookkeeping:
    def test_count_per_hook_and_total(self, hook_bus):
        hook_bus.register("a", lambda v: v)
        hook_bus.register("a", lambda v: v)
        hook_bus.register("b", lambda v: v)

        assert hook_bus.count("a") == 2
        assert hook_bus.count("missing") == 0
        assert hook_bus.count() == 3
        assert hook_bus.hook_names() == ["a", "b"]

    def test_unregister_owner_removes_only_that_owner(self, hook_bus):
        hook_bus.register("a", lambda v: v, owner="One")
        hook_bus.register("a", lambda v: v, owner="Two")
        hook_bus.register("b", lambda v: v, owner="One")

        assert hook_bus.unregister_owner("One") == 2
        assert hook_bus.count() == 1
        assert hook_bus.hook_names() == ["a"]

    def test_unregister_unknown_owner_is_noop(self, hook_bus):
        hook_bus.register("a", lambda v: v, owner="One")
        assert hook_bus.unregister_owner("Nobody") == 0
        assert hook_bus.count() == 1

    @pytest.mark.asyncio
    async def test_handler_added_during_run_is_not_invoked(self, hook_bus):
        def add_another(value):
            hook_bus.register("grow", lambda v: v + ["late"])
            return value + ["first"]

        hook_bus.register("grow", add_another)

        assert await hook_bus.run("grow", []) == ["first"]
        assert hook_bus.count("grow") == 2

    def test_hook_error_is_constructible_without_plugin(self):
        err = HookError("x", None, RuntimeError("boom"))
        assert err.plugin_name is None
        assert str(err) == "Hook 'x' failed: boom"


def test_separate_buses_are_isolated():
    first, second = HookBus(), HookBus()
    first.register("a", lambda v: v)
    assert second.count() == 0
