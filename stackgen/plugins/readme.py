"""Renders README.md once every other plugin has run."""

from __future__ import annotations

from typing import Any

from stackgen.core.plugin import GenerationContext, GeneratorPlugin, HookType, resolve_project_dir
from stackgen.scaffolder.templates import TemplateRenderer, build_template_context


class ReadmePlugin(GeneratorPlugin):
    def __init__(self) -> None:
        super().__init__("ReadmePlugin", "1.0.0")
        self.priority = 60
        self.register_hook(HookType.POST_GENERATE, self.post_generate)

    async def execute(self, config: Any, context: GenerationContext) -> dict[str, Any]:
        return {"deferred_to": HookType.POST_GENERATE.value}

    async def post_generate(self, payload: dict[str, Any]) -> dict[str, Any]:
        context: GenerationContext = payload["context"]
        config = payload["config"]
        out_path = resolve_project_dir(context, config) / "README.md"
        renderer = TemplateRenderer(context.template_dir, context.transaction)
        await renderer.render_to_file("readme/README.md.j2", out_path, build_template_context(config))
        context.file_operations.created.append(str(out_path))
        return payload
