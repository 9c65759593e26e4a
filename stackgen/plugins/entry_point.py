"""Writes a root ``index.js`` when no template layer provided one."""

from __future__ import annotations

from typing import Any

from stackgen.core.plugin import GenerationContext, GeneratorPlugin, HookType, resolve_project_dir
from stackgen.scaffolder.templates import TemplateRenderer, build_template_context


class EntryPointPlugin(GeneratorPlugin):
    def __init__(self) -> None:
        super().__init__("EntryPointPlugin", "1.0.0")
        self.priority = 55
        self.register_hook(HookType.POST_GENERATE, self.post_generate)

    async def execute(self, config: Any, context: GenerationContext) -> dict[str, Any]:
        return {"deferred_to": HookType.POST_GENERATE.value}

    async def post_generate(self, payload: dict[str, Any]) -> dict[str, Any]:
        context: GenerationContext = payload["context"]
        config = payload["config"]
        index_path = resolve_project_dir(context, config) / "index.js"
        if not index_path.exists():
            renderer = TemplateRenderer(context.template_dir, context.transaction)
            await renderer.render_to_file(
                "entry/index.js.j2", index_path, build_template_context(config)
            )
            context.file_operations.created.append(str(index_path))
        return payload
