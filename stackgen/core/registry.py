"""Plugin registry: admission control, dependency ordering, execution.

The registry owns the registered plugins, wires their hook contributions
into a :class:`~stackgen.core.hooks.HookBus`, and keeps a derived
``execution_order`` that is recomputed on every register/unregister.

Ordering rules:

* plugins are first sorted by ascending ``priority`` (stable, so ties keep
  registration order);
* a depth-first walk then emits every plugin after its dependencies, so a
  dependency edge always wins over priority;
* a back edge during the walk is a dependency cycle and is rejected at
  registration time, never at run time.

Execution is fail-open: a plugin that raises is recorded under ``failed``
and the pass continues with the next plugin.
"""

from __future__ import annotations

from typing import Any, Optional

from stackgen.core.hooks import HookBus
from stackgen.core.plugin import GenerationContext, GeneratorPlugin, HookType
from stackgen.utils import console, print_error, print_success, print_warning

# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class PluginError(Exception):
    """Base class for registry errors."""


class InvalidPluginError(PluginError):
    """Raised when something that is not a ``GeneratorPlugin`` is registered."""


class DuplicatePluginError(PluginError):
    def __init__(self, plugin_name: str) -> None:
        self.plugin_name = plugin_name
        super().__init__(f"Plugin with name '{plugin_name}' is already registered")


class MissingDependencyError(PluginError):
    def __init__(self, plugin_name: str, dependency: str) -> None:
        self.plugin_name = plugin_name
        self.dependency = dependency
        super().__init__(
            f"Plugin '{plugin_name}' requires dependency '{dependency}' which is not registered"
        )


class CircularDependencyError(PluginError):
    def __init__(self, plugin_name: str, cycle: list[str]) -> None:
        self.plugin_name = plugin_name
        self.cycle = cycle
        super().__init__(
            f"Circular dependency detected involving plugin '{plugin_name}': "
            + " -> ".join(cycle)
        )


class PluginNotFoundError(PluginError):
    def __init__(self, plugin_name: str) -> None:
        self.plugin_name = plugin_name
        super().__init__(f"Plugin '{plugin_name}' is not registered")


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

_UNVISITED, _VISITING, _VISITED = 0, 1, 2


class PluginRegistry:
    """Owns a set of plugins and runs the applicable ones in dependency order.

    Attributes:
        hooks: The hook bus plugin handlers are wired into.
        strict_dependencies: When ``True`` a dependency must already be
            registered; when ``False`` an unresolved name only produces a
            warning and is ignored for ordering until it is registered.
        dependencies_must_be_applicable: When ``True`` an applicable plugin
            whose dependency is inapplicable (or unregistered) is skipped.
        warnings: Registration-time warnings (lenient mode only).
    """

    def __init__(
        self,
        hooks: Optional[HookBus] = None,
        *,
        strict_dependencies: bool = True,
        dependencies_must_be_applicable: bool = False,
        verbose: bool = False,
    ) -> None:
        self.hooks = hooks if hooks is not None else HookBus(verbose=verbose)
        self.strict_dependencies = strict_dependencies
        self.dependencies_must_be_applicable = dependencies_must_be_applicable
        self.verbose = verbose
        self.warnings: list[str] = []
        self._plugins: dict[str, GeneratorPlugin] = {}
        self.execution_order: list[GeneratorPlugin] = []

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, plugin: GeneratorPlugin) -> None:
        """Admit *plugin* into the registry.

        Raises:
            InvalidPluginError: *plugin* is not a ``GeneratorPlugin``.
            DuplicatePluginError: A plugin with the same name exists.
            MissingDependencyError: Strict mode and a dependency is unknown.
            CircularDependencyError: The plugin closes a dependency cycle.
                The registration is rolled back before raising.
        """
        if not isinstance(plugin, GeneratorPlugin):
            raise InvalidPluginError("Plugin must extend GeneratorPlugin")
        if plugin.name in self._plugins:
            raise DuplicatePluginError(plugin.name)

        self._validate_dependencies(plugin)

        self._plugins[plugin.name] = plugin
        for hook_name, handlers in plugin.hooks.items():
            for handler in handlers:
                self.hooks.register(hook_name, handler, owner=plugin.name)

        try:
            self._update_execution_order()
        except CircularDependencyError:
            self.hooks.unregister_owner(plugin.name)
            del self._plugins[plugin.name]
            self._update_execution_order()
            raise

        if self.verbose:
            print_success(f"Plugin '{plugin.name}' v{plugin.version} registered")

    def register_plugins(self, plugins: list[GeneratorPlugin]) -> None:
        for plugin in plugins:
            self.register(plugin)

    def unregister(self, plugin_name: str) -> None:
        """Remove a plugin and every hook handler it contributed.

        Raises:
            PluginNotFoundError: No plugin is registered under that name.
            PluginError: Another registered plugin depends on it.
        """
        if plugin_name not in self._plugins:
            raise PluginNotFoundError(plugin_name)

        dependents = [
            p.name for p in self._plugins.values()
            if plugin_name in p.dependencies and p.name != plugin_name
        ]
        if dependents:
            raise PluginError(
                f"Cannot unregister '{plugin_name}': required by {', '.join(dependents)}"
            )

        self.hooks.unregister_owner(plugin_name)
        del self._plugins[plugin_name]
        self._update_execution_order()

        if self.verbose:
            console.print(f"  [dim]Plugin '{plugin_name}' unregistered[/dim]")

    def _validate_dependencies(self, plugin: GeneratorPlugin) -> None:
        for dependency in plugin.dependencies:
            if dependency in self._plugins:
                continue
            if self.strict_dependencies:
                raise MissingDependencyError(plugin.name, dependency)
            message = (
                f"Plugin '{plugin.name}' depends on '{dependency}' which is not registered"
            )
            self.warnings.append(message)
            if self.verbose:
                print_warning(message)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get_plugin(self, plugin_name: str) -> Optional[GeneratorPlugin]:
        return self._plugins.get(plugin_name)

    def get_all_plugins(self) -> list[GeneratorPlugin]:
        return list(self._plugins.values())

    def get_applicable_plugins(self, config: Any) -> list[GeneratorPlugin]:
        return [plugin for plugin in self._plugins.values() if plugin.can_handle(config)]

    def get_execution_order(self) -> list[str]:
        return [plugin.name for plugin in self.execution_order]

    def __len__(self) -> int:
        return len(self._plugins)

    def __contains__(self, plugin_name: object) -> bool:
        return plugin_name in self._plugins

    # ------------------------------------------------------------------
    # Ordering
    # ------------------------------------------------------------------

    def _update_execution_order(self) -> None:
        """Recompute ``execution_order`` with an iterative three-colour DFS."""
        by_priority = sorted(self._plugins.values(), key=lambda p: p.priority)
        adjacency: dict[str, list[str]] = {
            name: [dep for dep in plugin.dependencies if dep in self._plugins]
            for name, plugin in self._plugins.items()
        }
        colour = {name: _UNVISITED for name in self._plugins}
        ordered: list[GeneratorPlugin] = []

        for root in by_priority:
            if colour[root.name] != _UNVISITED:
                continue
            colour[root.name] = _VISITING
            stack = [(root.name, iter(adjacency[root.name]))]

            while stack:
                name, deps = stack[-1]
                dep = next(deps, None)
                if dep is None:
                    stack.pop()
                    colour[name] = _VISITED
                    ordered.append(self._plugins[name])
                elif colour[dep] == _VISITING:
                    path = [entry[0] for entry in stack]
                    cycle = path[path.index(dep):] + [dep]
                    raise CircularDependencyError(dep, cycle)
                elif colour[dep] == _UNVISITED:
                    colour[dep] = _VISITING
                    stack.append((dep, iter(adjacency[dep])))

        self.execution_order = ordered

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def execute_hook(self, hook_name: HookType | str, context: Any = None) -> Any:
        return await self.hooks.run(hook_name, context)

    async def execute_plugins(
        self, config: Any, context: Optional[GenerationContext] = None
    ) -> dict[str, list[Any]]:
        """Run every applicable plugin once, in execution order.

        Returns:
            ``{"success": [{plugin, result}], "failed": [{plugin, error}],
            "warnings": [str], "skipped": [{plugin, reason}]}``.
        """
        if context is None:
            context = GenerationContext()
        if context.config is None:
            context.config = config

        applicable = {plugin.name for plugin in self.get_applicable_plugins(config)}
        results: dict[str, list[Any]] = {
            "success": [],
            "failed": [],
            "warnings": [],
            "skipped": [],
        }

        for plugin in self.execution_order:
            if plugin.name not in applicable:
                results["skipped"].append({"plugin": plugin.name, "reason": "not applicable"})
                continue

            if self.dependencies_must_be_applicable:
                blocked = [dep for dep in plugin.dependencies if dep not in applicable]
                if blocked:
                    reason = f"dependency not applicable: {', '.join(blocked)}"
                    results["skipped"].append({"plugin": plugin.name, "reason": reason})
                    results["warnings"].append(f"Plugin '{plugin.name}' skipped ({reason})")
                    continue

            if self.verbose:
                console.print(f"  [cyan]Executing plugin:[/cyan] {plugin.name}")
            try:
                await plugin.initialize(context)
                result = await plugin.execute(config, context)
            except Exception as exc:
                if self.verbose:
                    print_error(f"  Plugin '{plugin.name}' execution failed: {exc}")
                results["failed"].append({"plugin": plugin.name, "error": str(exc)})
                continue

            results["success"].append({"plugin": plugin.name, "result": result})

        return results

    # ------------------------------------------------------------------
    # Statistics / teardown
    # ------------------------------------------------------------------

    def get_stats(self) -> dict[str, Any]:
        return {
            "total_plugins": len(self._plugins),
            "total_hooks": self.hooks.count(),
            "execution_order": self.get_execution_order(),
            "plugins": [plugin.get_metadata() for plugin in self._plugins.values()],
        }

    async def cleanup(self) -> list[str]:
        """Call ``cleanup`` on every plugin; return the failure messages."""
        errors: list[str] = []
        for plugin in self._plugins.values():
            try:
                await plugin.cleanup()
            except Exception as exc:
                message = f"Plugin '{plugin.name}' cleanup failed: {exc}"
                errors.append(message)
                if self.verbose:
                    print_error(message)
        return errors
