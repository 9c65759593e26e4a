"""Ready-made generators built on the orchestration core.

    create_standard_pipeline  - The seven standard stages as one pipeline
    ModularGenerator          - Preflight pipeline followed by the built-in plugins
"""

from .modular import GenerationError, ModularGenerator
from .stages import STANDARD_STAGES, create_standard_pipeline

__all__ = [
    "ModularGenerator",
    "GenerationError",
    "create_standard_pipeline",
    "STANDARD_STAGES",
]
