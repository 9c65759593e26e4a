"""Unit tests for the plugin registry (stackgen.core.registry).

Tests cover:
- Registration errors (invalid, duplicate, missing dependency, cycles)
- Execution order (priority, dependency precedence, stability)
- Applicability filtering and fail-open execution
- The dependencies_must_be_applicable policy
- unregister / cleanup / statistics
"""

from __future__ import annotations

import pytest

from stackgen.core.plugin import GenerationContext, HookType
from stackgen.core.registry import (
    CircularDependencyError,
    DuplicatePluginError,
    InvalidPluginError,
    MissingDependencyError,
    PluginError,
    PluginNotFoundError,
    PluginRegistry,
)

pytestmark = pytest.mark.unit


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------


class TestRegistration:
    def test_register_and_lookup(self, registry, make_plugin):
        plugin = make_plugin("A")
        registry.register(plugin)

        assert registry.get_plugin("A") is plugin
        assert registry.get_all_plugins() == [plugin]
        assert "A" in registry
        assert len(registry) == 1

    def test_unknown_plugin_lookup_returns_none(self, registry):
        assert registry.get_plugin("missing") is None

    def test_rejects_non_plugin(self, registry):
        with pytest.raises(InvalidPluginError):
            registry.register(object())  # type: ignore[arg-type]

    def test_duplicate_name_rejected(self, registry, make_plugin):
        registry.register(make_plugin("A"))
        registry.register(make_plugin("B"))

        with pytest.raises(DuplicatePluginError, match="'A' is already registered"):
            registry.register(make_plugin("A", priority=99))

        assert registry.get_execution_order() == ["A", "B"]

    def test_missing_dependency_rejected_before_hooks_are_wired(self, registry, make_plugin):
        plugin = make_plugin("Auth", dependencies=["Db"])
        plugin.register_hook(HookType.PRE_GENERATE, lambda payload: payload)

        with pytest.raises(MissingDependencyError) as exc_info:
            registry.register(plugin)

        assert exc_info.value.plugin_name == "Auth"
        assert exc_info.value.dependency == "Db"
        assert registry.hooks.count() == 0
        assert "Auth" not in registry

    def test_dependency_registered_first_is_accepted(self, registry, make_plugin):
        registry.register(make_plugin("Db"))
        registry.register(make_plugin("Auth", dependencies=["Db"]))
        assert registry.get_execution_order() == ["Db", "Auth"]

    def test_register_plugins_registers_in_order(self, registry, make_plugin):
        registry.register_plugins([make_plugin("Db"), make_plugin("Auth", dependencies=["Db"])])
        assert [p.name for p in registry.get_all_plugins()] == ["Db", "Auth"]

    def test_hooks_are_wired_with_owner(self, registry, make_plugin):
        plugin = make_plugin("A")
        plugin.register_hook(HookType.PRE_GENERATE, lambda payload: payload)
        plugin.register_hook(HookType.POST_GENERATE, lambda payload: payload)
        registry.register(plugin)

        assert registry.hooks.count() == 2
        assert registry.hooks.count(HookType.PRE_GENERATE) == 1


class TestLenientDependencies:
    def test_missing_dependency_only_warns(self, lenient_registry, make_plugin):
        lenient_registry.register(make_plugin("Auth", dependencies=["Db"]))

        assert "Auth" in lenient_registry
        assert len(lenient_registry.warnings) == 1
        assert "'Db'" in lenient_registry.warnings[0]

    def test_late_dependency_still_orders_first(self, lenient_registry, make_plugin):
        lenient_registry.register(make_plugin("Auth", priority=1, dependencies=["Db"]))
        lenient_registry.register(make_plugin("Db", priority=50))

        assert lenient_registry.get_execution_order() == ["Db", "Auth"]

    def test_two_plugin_cycle_detected(self, lenient_registry, make_plugin):
        lenient_registry.register(make_plugin("A", dependencies=["B"]))

        with pytest.raises(CircularDependencyError) as exc_info:
            lenient_registry.register(make_plugin("B", dependencies=["A"]))

        assert exc_info.value.plugin_name in {"A", "B"}
        assert set(exc_info.value.cycle) == {"A", "B"}

    def test_cycle_registration_is_rolled_back(self, lenient_registry, make_plugin):
        lenient_registry.register(make_plugin("A", dependencies=["B"]))
        offender = make_plugin("B", dependencies=["A"])
        offender.register_hook(HookType.POST_GENERATE, lambda payload: payload)

        with pytest.raises(CircularDependencyError):
            lenient_registry.register(offender)

        assert "B" not in lenient_registry
        assert lenient_registry.hooks.count() == 0
        assert lenient_registry.get_execution_order() == ["A"]

    def test_self_dependency_is_a_cycle(self, lenient_registry, make_plugin):
        with pytest.raises(CircularDependencyError, match="'Loop'"):
            lenient_registry.register(make_plugin("Loop", dependencies=["Loop"]))

    def test_three_plugin_cycle_names_full_path(self, lenient_registry, make_plugin):
        lenient_registry.register(make_plugin("A", dependencies=["B"]))
        lenient_registry.register(make_plugin("B", dependencies=["C"]))

        with pytest.raises(CircularDependencyError) as exc_info:
            lenient_registry.register(make_plugin("C", dependencies=["A"]))

        cycle = exc_info.value.cycle
        assert cycle[0] == cycle[-1]
        assert set(cycle) == {"A", "B", "C"}


# ---------------------------------------------------------------------------
# Ordering
# ---------------------------------------------------------------------------


class TestExecutionOrder:
    def test_priority_orders_independent_plugins(self, registry, make_plugin):
        registry.register(make_plugin("Late", priority=30))
        registry.register(make_plugin("Early", priority=1))
        registry.register(make_plugin("Middle", priority=10))

        assert registry.get_execution_order() == ["Early", "Middle", "Late"]

    def test_equal_priority_keeps_registration_order(self, registry, make_plugin):
        for name in ("X", "Y", "Z"):
            registry.register(make_plugin(name, priority=5))
        assert registry.get_execution_order() == ["X", "Y", "Z"]

    def test_dependency_beats_priority(self, registry, make_plugin):
        registry.register(make_plugin("A", priority=10))
        registry.register(make_plugin("B", priority=5))
        registry.register(make_plugin("C", priority=1, dependencies=["A"]))

        order = registry.get_execution_order()
        assert order.index("A") < order.index("C")
        assert sorted(order) == ["A", "B", "C"]
        assert order == ["A", "C", "B"]

    def test_diamond_dependencies_visit_each_plugin_once(self, registry, make_plugin):
        registry.register(make_plugin("Base", priority=100))
        registry.register(make_plugin("Left", priority=1, dependencies=["Base"]))
        registry.register(make_plugin("Right", priority=2, dependencies=["Base"]))
        registry.register(make_plugin("Top", priority=0, dependencies=["Left", "Right"]))

        order = registry.get_execution_order()
        assert len(order) == 4
        assert order.index("Base") < order.index("Left") < order.index("Top")
        assert order.index("Right") < order.index("Top")

    def test_long_dependency_chain_does_not_recurse(self, registry, make_plugin):
        registry.register(make_plugin("p0"))
        for i in range(1, 1500):
            registry.register(make_plugin(f"p{i}", priority=-i, dependencies=[f"p{i - 1}"]))

        order = registry.get_execution_order()
        assert order[0] == "p0"
        assert order[-1] == "p1499"

    def test_order_recomputed_after_unregister(self, registry, make_plugin):
        registry.register(make_plugin("A", priority=1))
        registry.register(make_plugin("B", priority=2))
        registry.unregister("A")
        assert registry.get_execution_order() == ["B"]


# ---------------------------------------------------------------------------
# Execution
# ---------------------------------------------------------------------------


class TestExecutePlugins:
    def test_applicable_plugins_subset(self, registry, make_plugin):
        registry.register(make_plugin("Yes"))
        registry.register(make_plugin("No", applicable=False))
        registry.register(make_plugin("Maybe", applicable=lambda cfg: cfg["flag"]))

        names = [p.name for p in registry.get_applicable_plugins({"flag": True})]
        assert names == ["Yes", "Maybe"]

    @pytest.mark.asyncio
    async def test_inapplicable_plugins_are_never_executed(self, registry, make_plugin, journal):
        registry.register(make_plugin("Yes"))
        registry.register(make_plugin("No", applicable=False))

        results = await registry.execute_plugins({}, GenerationContext())

        assert "execute:No" not in journal
        assert "init:No" not in journal
        assert [e["plugin"] for e in results["success"]] == ["Yes"]
        assert results["skipped"] == [{"plugin": "No", "reason": "not applicable"}]

    @pytest.mark.asyncio
    async def test_initialize_runs_before_execute(self, registry, make_plugin, journal):
        registry.register(make_plugin("A"))
        await registry.execute_plugins({}, GenerationContext())
        assert journal == ["init:A", "execute:A"]

    @pytest.mark.asyncio
    async def test_failure_is_recorded_and_pass_continues(self, registry, make_plugin, journal):
        registry.register(make_plugin("First", priority=1))
        registry.register(make_plugin("Broken", priority=2, error=RuntimeError("disk full")))
        registry.register(make_plugin("Last", priority=3))

        results = await registry.execute_plugins({}, GenerationContext())

        assert results["failed"] == [{"plugin": "Broken", "error": "disk full"}]
        assert [e["plugin"] for e in results["success"]] == ["First", "Last"]
        assert journal[-1] == "execute:Last"

    @pytest.mark.asyncio
    async def test_success_entries_carry_results(self, registry, make_plugin):
        registry.register(make_plugin("A", result={"files": 3}))
        results = await registry.execute_plugins({}, GenerationContext())
        assert results["success"] == [{"plugin": "A", "result": {"files": 3}}]

    @pytest.mark.asyncio
    async def test_context_is_shared_by_reference(self, registry, make_plugin):
        writer = make_plugin("Writer", priority=1)
        reader = make_plugin("Reader", priority=2)

        async def write(config, context):
            context.data["resolved"] = "yes"
            return None

        async def read(config, context):
            return context.data.get("resolved")

        writer.execute = write  # type: ignore[method-assign]
        reader.execute = read  # type: ignore[method-assign]
        registry.register(writer)
        registry.register(reader)

        context = GenerationContext()
        results = await registry.execute_plugins({}, context)

        assert results["success"][1] == {"plugin": "Reader", "result": "yes"}
        assert reader.initialized_with is context

    @pytest.mark.asyncio
    async def test_context_created_when_omitted(self, registry, make_plugin):
        plugin = make_plugin("A")
        registry.register(plugin)
        await registry.execute_plugins({"k": 1})
        assert plugin.initialized_with is not None
        assert plugin.initialized_with.config == {"k": 1}

    @pytest.mark.asyncio
    async def test_inapplicable_dependency_is_ordering_hint_by_default(self, registry, make_plugin):
        registry.register(make_plugin("Db", applicable=False))
        registry.register(make_plugin("Auth", dependencies=["Db"]))

        results = await registry.execute_plugins({}, GenerationContext())

        assert [e["plugin"] for e in results["success"]] == ["Auth"]
        assert results["warnings"] == []

    @pytest.mark.asyncio
    async def test_dependencies_must_be_applicable_skips_dependent(self, make_plugin, journal):
        registry = PluginRegistry(dependencies_must_be_applicable=True)
        registry.register(make_plugin("Db", applicable=False))
        registry.register(make_plugin("Auth", dependencies=["Db"]))
        registry.register(make_plugin("Readme"))

        results = await registry.execute_plugins({}, GenerationContext())

        assert [e["plugin"] for e in results["success"]] == ["Readme"]
        assert "execute:Auth" not in journal
        assert any("Auth" in w and "Db" in w for w in results["warnings"])
        skipped = {e["plugin"]: e["reason"] for e in results["skipped"]}
        assert skipped["Auth"].startswith("dependency not applicable")


# ---------------------------------------------------------------------------
# Unregister / cleanup / stats
# ---------------------------------------------------------------------------


class TestLifecycle:
    def test_unregister_unknown_raises(self, registry):
        with pytest.raises(PluginNotFoundError):
            registry.unregister("ghost")

    def test_unregister_removes_hooks(self, registry, make_plugin):
        plugin = make_plugin("A")
        plugin.register_hook(HookType.PRE_GENERATE, lambda payload: payload)
        registry.register(plugin)

        registry.unregister("A")

        assert registry.hooks.count() == 0
        assert registry.get_plugin("A") is None

    def test_unregister_refuses_when_depended_on(self, registry, make_plugin):
        registry.register(make_plugin("Db"))
        registry.register(make_plugin("Auth", dependencies=["Db"]))

        with pytest.raises(PluginError, match="required by Auth"):
            registry.unregister("Db")

    @pytest.mark.asyncio
    async def test_cleanup_calls_every_plugin_and_collects_errors(self, registry, make_plugin):
        good = make_plugin("Good")
        bad = make_plugin("Bad")

        async def boom():
            raise RuntimeError("socket left open")

        bad.cleanup = boom  # type: ignore[method-assign]
        registry.register(good)
        registry.register(bad)

        errors = await registry.cleanup()

        assert good.cleaned_up is True
        assert errors == ["Plugin 'Bad' cleanup failed: socket left open"]

    def test_stats(self, registry, make_plugin):
        a = make_plugin("A", priority=2)
        a.register_hook(HookType.POST_GENERATE, lambda payload: payload)
        registry.register(a)
        registry.register(make_plugin("B", priority=1))

        stats = registry.get_stats()

        assert stats["total_plugins"] == 2
        assert stats["total_hooks"] == 1
        assert stats["execution_order"] == ["B", "A"]
        assert stats["plugins"][0]["name"] == "A"
        assert stats["plugins"][0]["hooks"] == ["postGenerate"]
