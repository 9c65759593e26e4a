"""Modular generator: a preflight pipeline followed by the plugin pass.

The pipeline handles the steps later work builds on (validation and the
directory skeleton) with fail-closed semantics; the built-in plugins then
produce the files with fail-open semantics.  If a required preflight stage
fails the plugins never run.  Every run records its file operations, and a
fatal failure (preflight or hook) rolls them back; directories that existed
before the run are never removed.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

from stackgen.config import GeneratorSettings, ProjectConfig
from stackgen.core.base import BaseGenerator
from stackgen.core.pipeline import GeneratorPipeline, PipelineResult, PipelineStage, StageAction
from stackgen.generators.stages import create_standard_pipeline
from stackgen.plugins import default_plugins
from stackgen.scaffolder.structure import project_directories
from stackgen.scaffolder.transaction import FileTransaction
from stackgen.utils import console

PREFLIGHT_STAGES = [PipelineStage.VALIDATE_CONFIG, PipelineStage.CREATE_STRUCTURE]


class GenerationError(Exception):
    """Raised when the preflight pipeline rejects a configuration."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = errors
        super().__init__("; ".join(errors) or "Generation failed")


class ModularGenerator(BaseGenerator):
    """Pipeline + plugins, combined into one report.

    Attributes:
        pipeline: The preflight pipeline (customisable through
            ``add_pipeline_stage`` / ``remove_pipeline_stage``).
    """

    def __init__(
        self,
        settings: Optional[GeneratorSettings] = None,
        *,
        pipeline: Optional[GeneratorPipeline] = None,
        register_defaults: bool = True,
    ) -> None:
        super().__init__(settings)
        self.pipeline = pipeline or create_standard_pipeline(self.settings, PREFLIGHT_STAGES)
        self.config: Optional[ProjectConfig] = None
        if register_defaults:
            self.register_plugins(default_plugins())

    async def generate_project(
        self, config: ProjectConfig, *, overwrite: bool = False
    ) -> dict[str, Any]:
        """Run the preflight pipeline, then every applicable plugin.

        Raises:
            GenerationError: A required preflight stage failed.
            HookError: A ``preGenerate``/``postGenerate`` handler failed.
        """
        self.config = config
        project_dir = Path(config.target_dir)
        transaction = FileTransaction()
        transaction.record_dir(project_dir)
        for rel in project_directories(config):
            transaction.record_dir(project_dir / rel)

        self.pipeline.set_context(project_dir=project_dir, overwrite=overwrite)
        self.set_context(project_dir=project_dir, config=config, transaction=transaction)

        if self.settings.verbose:
            console.print(f"  Generating [bold]{config.project_name}[/bold] in {project_dir}")

        pipeline_results = await self.pipeline.execute(config)
        if not pipeline_results.overall.success:
            await self.rollback()
            raise GenerationError(pipeline_results.overall.errors)

        plugin_results = await self.generate(config)
        transaction.commit()
        return self.combine_results(pipeline_results, plugin_results)

    def combine_results(
        self, pipeline_results: PipelineResult, plugin_results: dict[str, list[Any]]
    ) -> dict[str, Any]:
        return {
            "success": pipeline_results.overall.success and not plugin_results["failed"],
            "pipeline": pipeline_results,
            "plugins": plugin_results,
            "stats": {
                "pipeline_stats": self.pipeline.get_stats(),
                "plugin_stats": self.get_stats(),
            },
            "summary": self.generate_summary(pipeline_results, plugin_results),
        }

    def generate_summary(
        self, pipeline_results: PipelineResult, plugin_results: dict[str, list[Any]]
    ) -> dict[str, Any]:
        successful_stages = sum(1 for stage in pipeline_results.stages if stage.success)
        successful_plugins = len(plugin_results["success"])
        failed_plugins = len(plugin_results["failed"])
        units = len(pipeline_results.stages) + successful_plugins + failed_plugins
        return {
            "total_stages": len(pipeline_results.stages),
            "successful_stages": successful_stages,
            "total_plugins": successful_plugins + failed_plugins,
            "successful_plugins": successful_plugins,
            "failed_plugins": failed_plugins,
            "success_rate": (successful_stages + successful_plugins) / units * 100 if units else None,
            "warnings": [*pipeline_results.overall.warnings, *plugin_results["warnings"]],
            "errors": [
                *pipeline_results.overall.errors,
                *(f"{entry['plugin']}: {entry['error']}" for entry in plugin_results["failed"]),
            ],
        }

    # ------------------------------------------------------------------
    # Pipeline customisation
    # ------------------------------------------------------------------

    def add_pipeline_stage(self, name: str, action: StageAction, **options: Any) -> None:
        self.pipeline.add_stage(name, action, **options)

    def remove_pipeline_stage(self, name: str) -> None:
        self.pipeline.remove_stage(name)

    def get_generation_stats(self) -> dict[str, Any]:
        stats = self.get_stats()
        stats["pipeline_stats"] = self.pipeline.get_stats()
        stats["plugin_count"] = len(self.registry)
        stats["applicable_plugins"] = (
            len(self.registry.get_applicable_plugins(self.config)) if self.config else 0
        )
        return stats
