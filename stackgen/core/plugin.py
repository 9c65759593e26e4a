"""Plugin contract for the generation engine.

Every unit of generation logic subclasses ``GeneratorPlugin``.  A plugin
declares its identity (``name``/``version``), ordering metadata
(``priority``/``dependencies``), a map of hook name to handlers, and the
lifecycle coroutines the registry drives: ``initialize`` -> ``execute`` ->
``cleanup``.  ``can_handle`` decides whether the plugin takes part in a run
for a given configuration.
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional, Union

if TYPE_CHECKING:
    from stackgen.scaffolder.transaction import FileTransaction

HookHandler = Callable[[Any], Union[Any, Awaitable[Any]]]


class HookType(str, Enum):
    """Well-known hook names.  Host applications may use any other string."""

    PRE_GENERATE = "preGenerate"
    PRE_TEMPLATE_PROCESS = "preTemplateProcess"
    PRE_DEPENDENCY_INSTALL = "preDependencyInstall"

    GENERATE_FILES = "generateFiles"
    PROCESS_TEMPLATES = "processTemplates"
    MERGE_PACKAGE_JSON = "mergePackageJson"

    POST_TEMPLATE_PROCESS = "postTemplateProcess"
    POST_DEPENDENCY_INSTALL = "postDependencyInstall"
    POST_GENERATE = "postGenerate"

    VALIDATE_CONFIG = "validateConfig"
    VALIDATE_OUTPUT = "validateOutput"

    ON_ERROR = "onError"
    ON_WARNING = "onWarning"


def hook_key(name: HookType | str) -> str:
    """Normalise a hook name to its plain string form."""
    return name.value if isinstance(name, HookType) else str(name)


@dataclass
class FileOperations:
    """Counters of filesystem work performed during one run."""

    created: list[str] = field(default_factory=list)
    modified: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


@dataclass
class GenerationContext:
    """The single mutable record shared by hooks and plugins for one run.

    It is passed by reference and never copied; later plugins observe what
    earlier ones wrote.  ``data`` holds plugin-defined fields that have no
    dedicated attribute.  ``transaction``, when set, is the run's rollback
    ledger; writers record into it before touching the filesystem.
    """

    project_dir: Optional[Path] = None
    template_dir: Optional[Path] = None
    config: Any = None
    file_operations: FileOperations = field(default_factory=FileOperations)
    package_json: Optional[dict[str, Any]] = None
    transaction: Optional["FileTransaction"] = None
    data: dict[str, Any] = field(default_factory=dict)

    def update(self, **fields: Any) -> "GenerationContext":
        """Merge *fields* into the context.

        Known attributes are assigned directly; anything else lands in
        ``data``.
        """
        for key, value in fields.items():
            if key != "data" and key in self.__dataclass_fields__:
                setattr(self, key, value)
            else:
                self.data[key] = value
        return self


class GeneratorPlugin:
    """Base class all generator plugins extend.

    Subclasses set ``priority``/``dependencies`` in ``__init__`` and call
    ``register_hook`` for every extension point they contribute to.  Lower
    priorities run first among plugins with no dependency relationship.
    """

    def __init__(self, name: str, version: str = "1.0.0") -> None:
        self.name = name
        self.version = version
        self.priority: int = 0
        self.dependencies: list[str] = []
        self.hooks: dict[str, list[HookHandler]] = {}

    def __repr__(self) -> str:
        return f"<{type(self).__name__} name={self.name!r} priority={self.priority}>"

    # -- Lifecycle -------------------------------------------------------

    async def initialize(self, context: GenerationContext) -> None:
        """Prepare the plugin before ``execute``.  Override if needed."""

    async def execute(self, config: Any, context: GenerationContext) -> Any:
        raise NotImplementedError(f"Plugin {self.name} must implement execute")

    async def cleanup(self) -> None:
        """Release plugin resources.  Override if needed."""

    def can_handle(self, config: Any) -> bool:
        """Pure predicate deciding whether this plugin runs for *config*."""
        return True

    # -- Hooks -----------------------------------------------------------

    def register_hook(self, hook_name: HookType | str, handler: HookHandler) -> None:
        self.hooks.setdefault(hook_key(hook_name), []).append(handler)

    def get_hooks(self, hook_name: HookType | str) -> list[HookHandler]:
        return list(self.hooks.get(hook_key(hook_name), []))

    # -- Introspection ---------------------------------------------------

    def validate_config(self, config: Any) -> dict[str, Any]:
        return {"is_valid": True, "errors": [], "warnings": []}

    def get_metadata(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "version": self.version,
            "dependencies": list(self.dependencies),
            "priority": self.priority,
            "hooks": list(self.hooks.keys()),
        }


async def call_maybe_async(fn: Callable[..., Any], *args: Any) -> Any:
    """Call *fn* and await the result if it is awaitable."""
    result = fn(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


class PluginExecutionError(Exception):
    """Raised by a plugin's ``execute`` when its unit of work failed."""

    def __init__(self, plugin_name: str, message: str) -> None:
        self.plugin_name = plugin_name
        super().__init__(message)


def resolve_project_dir(context: GenerationContext, config: Any) -> Path:
    """The directory a run writes into: the context's, else the config's."""
    if context.project_dir is not None:
        return Path(context.project_dir)
    target = getattr(config, "target_dir", None)
    if target is None:
        raise ValueError("No project directory set on the context or the config")
    return Path(target)
