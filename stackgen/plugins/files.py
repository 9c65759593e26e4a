"""Creates the project directory layout and renders template layers."""

from __future__ import annotations

from typing import Any

from stackgen.config import ProjectConfig
from stackgen.core.plugin import (
    FileOperations,
    GenerationContext,
    GeneratorPlugin,
    HookType,
    resolve_project_dir,
)
from stackgen.scaffolder.structure import create_project_structure, project_directories
from stackgen.scaffolder.templates import TemplateRenderer, template_layers


class FilePlugin(GeneratorPlugin):
    def __init__(self) -> None:
        super().__init__("FilePlugin", "1.0.0")
        self.priority = 20
        self.register_hook(HookType.PRE_GENERATE, self.pre_generate)

    async def pre_generate(self, payload: dict[str, Any]) -> dict[str, Any]:
        payload["context"].file_operations = FileOperations()
        return payload

    async def execute(self, config: ProjectConfig, context: GenerationContext) -> dict[str, Any]:
        project_dir = resolve_project_dir(context, config)
        ops = context.file_operations
        transaction = context.transaction
        if transaction is not None:
            transaction.record_dir(project_dir)
            for rel in project_directories(config):
                transaction.record_dir(project_dir / rel)

        try:
            directories = await create_project_structure(config, project_dir)
        except OSError as exc:
            ops.errors.append(f"Failed to create project structure: {exc}")
            directories = []
        ops.created.extend(str(d) for d in directories)

        renderer = TemplateRenderer(context.template_dir, transaction)
        files = await renderer.render_layers(config, project_dir)
        ops.created.extend(str(f) for f in files)

        missing = [
            prefix for prefix, _ in template_layers(config)
            if not renderer.list_templates(prefix)
        ]
        context.data["missing_template_layers"] = missing

        return {
            "directories_created": len(directories),
            "files_rendered": len(files),
            "errors": len(ops.errors),
        }
