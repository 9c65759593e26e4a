"""Wires backend environment files: ``.env.example`` and a runtime ``.env``."""

from __future__ import annotations

import asyncio
from typing import Any

from stackgen.config import ProjectConfig
from stackgen.core.plugin import GenerationContext, GeneratorPlugin, resolve_project_dir
from stackgen.scaffolder.templates import TemplateRenderer, build_template_context
from stackgen.utils import ensure_dir, write_text

ENV_TEMPLATE = "integration/env.example.j2"


class IntegrationPlugin(GeneratorPlugin):
    """Runs after ``FilePlugin`` so the backend layer is already in place.

    Existing env files are never overwritten; a hand-edited ``.env`` in an
    overwritten project survives regeneration.
    """

    def __init__(self) -> None:
        super().__init__("IntegrationPlugin", "1.0.0")
        self.priority = 25
        self.dependencies = ["FilePlugin"]

    def can_handle(self, config: Any) -> bool:
        return bool(getattr(config, "has_backend", False))

    async def execute(self, config: ProjectConfig, context: GenerationContext) -> dict[str, Any]:
        backend_dir = resolve_project_dir(context, config) / "backend"
        transaction = context.transaction
        if transaction is not None:
            transaction.record_dir(backend_dir)
        ensure_dir(backend_dir)

        written: list[str] = []
        example = backend_dir / ".env.example"
        if not example.exists():
            renderer = TemplateRenderer(context.template_dir, transaction)
            await renderer.render_to_file(ENV_TEMPLATE, example, build_template_context(config))
            written.append(str(example))

        runtime = backend_dir / ".env"
        if not runtime.exists():
            if transaction is not None:
                transaction.before_write(runtime)
            content = example.read_text(encoding="utf-8")
            await asyncio.to_thread(write_text, runtime, content)
            written.append(str(runtime))

        context.file_operations.created.extend(written)
        return {"env_files": written}
