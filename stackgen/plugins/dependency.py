"""Installs dependencies with the selected package manager."""

from __future__ import annotations

from typing import Any

from stackgen.config import ProjectConfig
from stackgen.core.plugin import (
    GenerationContext,
    GeneratorPlugin,
    PluginExecutionError,
    resolve_project_dir,
)
from stackgen.scaffolder.commands import install_dependencies


class DependencyPlugin(GeneratorPlugin):
    def __init__(self) -> None:
        super().__init__("DependencyPlugin", "1.0.0")
        self.priority = 50
        self.dependencies = ["PackageJsonPlugin"]

    def can_handle(self, config: ProjectConfig) -> bool:
        return bool(config.install)

    async def execute(self, config: ProjectConfig, context: GenerationContext) -> dict[str, Any]:
        result = await install_dependencies(
            resolve_project_dir(context, config), config.package_manager
        )
        if not result["success"]:
            raise PluginExecutionError(self.name, "; ".join(result["errors"]))
        return {"installed": True, "package_manager": config.package_manager.value}
