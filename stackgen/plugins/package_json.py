"""Builds and writes the project's package.json."""

from __future__ import annotations

from typing import Any

from stackgen.config import ProjectConfig
from stackgen.core.plugin import GenerationContext, GeneratorPlugin, HookType, resolve_project_dir
from stackgen.scaffolder.manifest import (
    base_package_json,
    build_package_json,
    merge_package_json,
    write_package_json,
)


class PackageJsonPlugin(GeneratorPlugin):
    """Seeds ``context.package_json`` on ``preGenerate`` and writes it in
    ``execute``.  Plugins running earlier may add to the seeded manifest."""

    def __init__(self) -> None:
        super().__init__("PackageJsonPlugin", "1.0.0")
        self.priority = 10
        self.register_hook(HookType.PRE_GENERATE, self.pre_generate)

    async def pre_generate(self, payload: dict[str, Any]) -> dict[str, Any]:
        context: GenerationContext = payload["context"]
        context.package_json = base_package_json(payload["config"])
        return payload

    async def execute(self, config: ProjectConfig, context: GenerationContext) -> dict[str, Any]:
        manifest = build_package_json(config)
        if context.package_json:
            manifest = merge_package_json(context.package_json, manifest)
        context.package_json = manifest

        project_dir = resolve_project_dir(context, config)
        if context.transaction is not None:
            context.transaction.before_write(project_dir / "package.json")
        path = await write_package_json(manifest, project_dir)
        context.file_operations.created.append(str(path))
        return {
            "path": str(path),
            "dependencies": len(manifest.get("dependencies", {})),
            "dev_dependencies": len(manifest.get("devDependencies", {})),
        }
