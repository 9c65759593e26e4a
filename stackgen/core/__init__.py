"""stackgen orchestration core.

Key classes:
    GeneratorPlugin    - Contract every generation plugin implements
    HookBus            - Named extension points run as sequential reducers
    PluginRegistry     - Dependency-ordered, applicability-filtered execution
    GeneratorPipeline  - Ordered stages with timeouts and required/optional semantics
    BaseGenerator      - Pre-generate hooks -> plugins -> post-generate hooks
"""

from .base import BaseGenerator
from .hooks import HookBus, HookError
from .pipeline import (
    DuplicateStageError,
    GeneratorPipeline,
    PipelineResult,
    PipelineStage,
    Stage,
    StageResult,
    StageTimeoutError,
)
from .plugin import (
    FileOperations,
    GenerationContext,
    GeneratorPlugin,
    HookType,
    PluginExecutionError,
)
from .registry import (
    CircularDependencyError,
    DuplicatePluginError,
    InvalidPluginError,
    MissingDependencyError,
    PluginError,
    PluginNotFoundError,
    PluginRegistry,
)

__all__ = [
    # Plugin contract
    "GeneratorPlugin",
    "GenerationContext",
    "FileOperations",
    "HookType",
    "PluginExecutionError",
    # Hooks
    "HookBus",
    "HookError",
    # Registry
    "PluginRegistry",
    "PluginError",
    "InvalidPluginError",
    "DuplicatePluginError",
    "MissingDependencyError",
    "CircularDependencyError",
    "PluginNotFoundError",
    # Pipeline
    "GeneratorPipeline",
    "PipelineResult",
    "PipelineStage",
    "Stage",
    "StageResult",
    "StageTimeoutError",
    "DuplicateStageError",
    # Generator
    "BaseGenerator",
]
