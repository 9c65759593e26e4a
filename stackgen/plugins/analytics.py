"""Generation analytics: timing and technology snapshot for one run.

Writes ``generation-report.json`` into the project on ``postGenerate``.
Nothing is sent anywhere; the report stays on disk.
"""

from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Any

from stackgen.core.plugin import GenerationContext, GeneratorPlugin, HookType, resolve_project_dir
from stackgen.utils import save_json

REPORT_FILENAME = "generation-report.json"


class AnalyticsPlugin(GeneratorPlugin):
    def __init__(self) -> None:
        super().__init__("AnalyticsPlugin", "1.0.0")
        self.priority = 1
        self.metrics: dict[str, Any] = _fresh_metrics()
        self.register_hook(HookType.PRE_GENERATE, self.pre_generate)
        self.register_hook(HookType.POST_GENERATE, self.post_generate)
        self.register_hook(HookType.ON_WARNING, self.on_warning)
        self.register_hook(HookType.ON_ERROR, self.on_error)

    async def pre_generate(self, payload: dict[str, Any]) -> dict[str, Any]:
        config = payload["config"]
        # One report per run: nothing carries over from an earlier generate().
        self.metrics = _fresh_metrics()
        self.metrics["start"] = time.monotonic()
        self.metrics["technologies"] = {
            "backend": config.backend.value,
            "frontend": [f.value for f in config.frontend],
            "database": config.database.value,
            "orm": config.orm.value,
            "auth": config.auth.value,
            "addons": [a.value for a in config.addons],
            "package_manager": config.package_manager.value,
            "typescript": config.typescript,
        }
        return payload

    async def execute(self, config: Any, context: GenerationContext) -> dict[str, Any]:
        self.metrics["plugins"].append({"name": self.name, "version": self.version})
        return {"recording": True}

    async def post_generate(self, payload: dict[str, Any]) -> dict[str, Any]:
        duration_ms = (time.monotonic() - self.metrics["start"]) * 1000
        results = payload.get("results") or {}
        report = {
            "summary": {
                "duration_ms": round(duration_ms, 3),
                "technologies": self.metrics["technologies"],
            },
            "plugins": {
                "succeeded": [entry["plugin"] for entry in results.get("success", [])],
                "failed": [entry["plugin"] for entry in results.get("failed", [])],
            },
            "warnings": self.metrics["warnings"],
            "errors": self.metrics["errors"],
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        context: GenerationContext = payload["context"]
        report_path = resolve_project_dir(context, payload["config"]) / REPORT_FILENAME
        if context.transaction is not None:
            context.transaction.before_write(report_path)
        await save_json(report, report_path)
        return payload

    async def on_warning(self, payload: dict[str, Any]) -> dict[str, Any]:
        self.metrics["warnings"].append(payload.get("message", ""))
        return payload

    async def on_error(self, payload: dict[str, Any]) -> dict[str, Any]:
        self.metrics["errors"].append(payload.get("message", ""))
        return payload


def _fresh_metrics() -> dict[str, Any]:
    return {"start": 0.0, "technologies": {}, "plugins": [], "warnings": [], "errors": []}
