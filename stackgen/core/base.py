"""Base generator: hooks + plugin registry as a three-phase lifecycle.

``generate`` runs ``preGenerate`` hooks, the applicable plugins in
dependency order, then ``postGenerate`` hooks.  Plugin failures and
warnings are recorded in the results and announced on ``onError`` /
``onWarning`` before ``postGenerate``.  Hook failures are fatal and
propagate to the caller once the run's recorded file operations (if the
context carries a transaction) have been rolled back.
"""

from __future__ import annotations

from typing import Any, Optional

from stackgen.config import GeneratorSettings
from stackgen.core.hooks import HookBus
from stackgen.core.plugin import GenerationContext, GeneratorPlugin, HookType
from stackgen.core.registry import PluginRegistry
from stackgen.utils import print_error


def _empty_results() -> dict[str, list[Any]]:
    return {"success": [], "failed": [], "warnings": [], "skipped": []}


class BaseGenerator:
    """Façade that owns one registry, one hook bus and one context.

    Every generator instance has its own registry; nothing is shared at
    module level, so independent runs (and tests) never see each other's
    plugins.

    Attributes:
        settings: Engine settings (dependency policy, verbosity).
        registry: The plugin registry.
        context: Shared generation context passed to hooks and plugins.
        results: Running totals merged across ``generate`` calls.
    """

    def __init__(self, settings: Optional[GeneratorSettings] = None) -> None:
        self.settings = settings or GeneratorSettings(verbose=False)
        self.registry = PluginRegistry(
            HookBus(verbose=self.settings.verbose),
            strict_dependencies=self.settings.strict_dependencies,
            dependencies_must_be_applicable=self.settings.dependencies_must_be_applicable,
            verbose=self.settings.verbose,
        )
        self.context = GenerationContext(template_dir=self.settings.template_dir)
        self.results = _empty_results()

    # ------------------------------------------------------------------
    # Plugins
    # ------------------------------------------------------------------

    def register_plugin(self, plugin: GeneratorPlugin) -> None:
        self.registry.register(plugin)

    def register_plugins(self, plugins: list[GeneratorPlugin]) -> None:
        for plugin in plugins:
            self.register_plugin(plugin)

    def set_context(self, **fields: Any) -> None:
        self.context.update(**fields)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def execute_pre_generation_hooks(self, config: Any) -> Any:
        return await self.registry.execute_hook(
            HookType.PRE_GENERATE, {"config": config, "context": self.context}
        )

    async def execute_post_generation_hooks(self, config: Any, results: dict[str, Any]) -> Any:
        return await self.registry.execute_hook(
            HookType.POST_GENERATE,
            {"config": config, "results": results, "context": self.context},
        )

    async def execute_validation_hooks(self, config: Any) -> Any:
        return await self.registry.execute_hook(
            HookType.VALIDATE_CONFIG, {"config": config, "context": self.context}
        )

    async def emit_diagnostics(self, config: Any, plugin_results: dict[str, list[Any]]) -> None:
        """Fire ``onError`` per failed plugin and ``onWarning`` per warning."""
        for entry in plugin_results["failed"]:
            await self.registry.execute_hook(
                HookType.ON_ERROR,
                {
                    "config": config,
                    "context": self.context,
                    "plugin": entry["plugin"],
                    "message": entry["error"],
                },
            )
        for warning in plugin_results["warnings"]:
            await self.registry.execute_hook(
                HookType.ON_WARNING,
                {"config": config, "context": self.context, "message": warning},
            )

    async def generate(self, config: Any) -> dict[str, list[Any]]:
        """Run the pre-generate / plugins / post-generate lifecycle.

        Returns:
            The generator's running ``{success, failed, warnings, skipped}``
            totals, with this run's plugin results merged in.

        Raises:
            HookError: A ``preGenerate`` or ``postGenerate`` handler failed.
        """
        if self.context.config is None:
            self.context.config = config

        try:
            await self.execute_pre_generation_hooks(config)
            plugin_results = await self.registry.execute_plugins(config, self.context)
            await self.emit_diagnostics(config, plugin_results)
            await self.execute_post_generation_hooks(config, plugin_results)
        except Exception as exc:
            if self.settings.verbose:
                print_error(f"Generation failed: {exc}")
            await self.rollback()
            raise

        for key in self.results:
            self.results[key] = [*self.results[key], *plugin_results.get(key, [])]
        return self.results

    async def rollback(self) -> Optional[dict[str, Any]]:
        """Undo the context's recorded file operations, if rollback is enabled.

        Returns the rollback summary, or ``None`` when nothing was rolled back.
        """
        transaction = self.context.transaction
        if transaction is None or not self.settings.rollback_on_failure:
            return None
        return await transaction.rollback(verbose=self.settings.verbose)

    async def validate_config(self, config: Any) -> dict[str, Any]:
        """Run ``validateConfig`` hooks; never raises."""
        try:
            validation = await self.execute_validation_hooks(config)
        except Exception as exc:
            return {"is_valid": False, "results": None, "errors": [str(exc)], "warnings": []}
        return {"is_valid": True, "results": validation, "errors": [], "warnings": []}

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def get_results(self) -> dict[str, list[Any]]:
        return self.results

    def get_stats(self) -> dict[str, Any]:
        """Aggregate counters; ``success_rate`` is ``None`` before any run."""
        successes = len(self.results["success"])
        failures = len(self.results["failed"])
        total = successes + failures
        return {
            "total_operations": total,
            "success_count": successes,
            "failure_count": failures,
            "warning_count": len(self.results["warnings"]),
            "success_rate": successes / total * 100 if total else None,
            "plugin_stats": self.registry.get_stats(),
        }

    async def cleanup(self) -> list[str]:
        return await self.registry.cleanup()
