"""Initialises a git repository after every file has been written.

The work happens in the ``postGenerate`` hook, which runs for every
registered plugin, so the hook re-checks ``can_handle`` itself.  Register
this plugin last so its handler runs after the README/entry point writers.
"""

from __future__ import annotations

from typing import Any

from stackgen.config import ProjectConfig
from stackgen.core.plugin import GenerationContext, GeneratorPlugin, HookType, resolve_project_dir
from stackgen.scaffolder.commands import init_git_repo
from stackgen.utils import print_warning


class GitPlugin(GeneratorPlugin):
    def __init__(self) -> None:
        super().__init__("GitPlugin", "1.0.0")
        self.priority = 70
        self.register_hook(HookType.POST_GENERATE, self.post_generate)

    def can_handle(self, config: ProjectConfig) -> bool:
        return bool(config.git)

    async def execute(self, config: ProjectConfig, context: GenerationContext) -> dict[str, Any]:
        return {"deferred_to": HookType.POST_GENERATE.value}

    async def post_generate(self, payload: dict[str, Any]) -> dict[str, Any]:
        config = payload["config"]
        if not self.can_handle(config):
            return payload
        context: GenerationContext = payload["context"]
        result = await init_git_repo(resolve_project_dir(context, config))
        context.data["git"] = result
        if not result["success"]:
            # A repository is a convenience; the project itself is complete.
            print_warning(f"Git initialisation skipped: {'; '.join(result['errors'])}")
        return payload
