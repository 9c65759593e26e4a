"""Shared pytest fixtures for the stackgen test suite.

Provides reusable fixtures for:
- Temporary project directories and configurations
- A configurable in-memory plugin that records what happened to it
- Registries, hook buses and generators with console output disabled
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Optional

import pytest

from stackgen.config import GeneratorSettings, ProjectConfig
from stackgen.core.base import BaseGenerator
from stackgen.core.hooks import HookBus
from stackgen.core.plugin import GenerationContext, GeneratorPlugin
from stackgen.core.registry import PluginRegistry


# ---------------------------------------------------------------------------
# Recording plugin
# ---------------------------------------------------------------------------


class RecordingPlugin(GeneratorPlugin):
    """Test double: records calls into a shared ``journal`` list.

    ``applicable`` may be a bool or a predicate over the config; ``error``
    makes ``execute`` raise; ``result`` is what ``execute`` returns.
    """

    def __init__(
        self,
        name: str,
        *,
        priority: int = 0,
        dependencies: Optional[list[str]] = None,
        applicable: bool | Callable[[Any], bool] = True,
        error: Optional[Exception] = None,
        result: Any = None,
        journal: Optional[list[str]] = None,
    ) -> None:
        super().__init__(name)
        self.priority = priority
        self.dependencies = list(dependencies or [])
        self.applicable = applicable
        self.error = error
        self.result = result if result is not None else {"plugin": name}
        self.journal = journal if journal is not None else []
        self.initialized_with: Optional[GenerationContext] = None
        self.cleaned_up = False

    def can_handle(self, config: Any) -> bool:
        if callable(self.applicable):
            return self.applicable(config)
        return self.applicable

    async def initialize(self, context: GenerationContext) -> None:
        self.initialized_with = context
        self.journal.append(f"init:{self.name}")

    async def execute(self, config: Any, context: GenerationContext) -> Any:
        self.journal.append(f"execute:{self.name}")
        if self.error is not None:
            raise self.error
        return self.result

    async def cleanup(self) -> None:
        self.cleaned_up = True


@pytest.fixture
def journal() -> list[str]:
    return []


@pytest.fixture
def make_plugin(journal: list[str]) -> Callable[..., RecordingPlugin]:
    """Factory for ``RecordingPlugin`` instances sharing one journal."""

    def _make(name: str, **kwargs: Any) -> RecordingPlugin:
        kwargs.setdefault("journal", journal)
        return RecordingPlugin(name, **kwargs)

    return _make


# ---------------------------------------------------------------------------
# Core components
# ---------------------------------------------------------------------------


@pytest.fixture
def hook_bus() -> HookBus:
    return HookBus(verbose=False)


@pytest.fixture
def registry() -> PluginRegistry:
    return PluginRegistry(verbose=False)


@pytest.fixture
def lenient_registry() -> PluginRegistry:
    """Registry that accepts dependencies registered later."""
    return PluginRegistry(strict_dependencies=False, verbose=False)


@pytest.fixture
def quiet_settings(tmp_path: Path) -> GeneratorSettings:
    return GeneratorSettings(verbose=False)


@pytest.fixture
def generator(quiet_settings: GeneratorSettings) -> BaseGenerator:
    return BaseGenerator(quiet_settings)


# ---------------------------------------------------------------------------
# Project configurations
# ---------------------------------------------------------------------------


@pytest.fixture
def tmp_project_dir(tmp_path: Path) -> Path:
    """Target directory for a generated project (not created)."""
    return tmp_path / "my-app"


@pytest.fixture
def project_config(tmp_project_dir: Path) -> ProjectConfig:
    """A typical full-stack selection."""
    return ProjectConfig(
        project_name="my-app",
        project_dir=tmp_project_dir,
        backend="express",
        frontend=["react"],
        database="postgres",
        orm="prisma",
        auth="jwt",
        addons=["eslint", "testing"],
        package_manager="npm",
    )


@pytest.fixture
def minimal_config(tmp_project_dir: Path) -> ProjectConfig:
    """Backend-only project with nothing optional selected."""
    return ProjectConfig(
        project_name="my-app",
        project_dir=tmp_project_dir,
        backend="express",
        frontend=["none"],
    )
