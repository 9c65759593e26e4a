"""Jinja2 template rendering for project scaffolding.

Provides the TemplateRenderer class which loads Jinja2 templates from the
``stackgen/scaffolder/templates/`` directory and renders them with
project-specific context data.  Templates are organised in *layers*: a
``base`` layer every project gets, plus one layer per selected technology
(``backend/express``, ``frontend/react``, ``database/postgres`` ...).
"""

from __future__ import annotations

import asyncio
import re
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, select_autoescape

from stackgen.config import ProjectConfig
from stackgen.scaffolder.commands import run_script_command
from stackgen.scaffolder.transaction import FileTransaction
from stackgen.utils import write_text


# ---------------------------------------------------------------------------
# Template directory discovery
# ---------------------------------------------------------------------------

_DEFAULT_TEMPLATE_DIR = Path(__file__).parent / "templates"


# ---------------------------------------------------------------------------
# TemplateRenderer
# ---------------------------------------------------------------------------


class TemplateRenderer:
    """Renders Jinja2 templates for project scaffolding.

    The renderer discovers ``.j2`` template files under a configurable
    template directory.  Templates are rendered with a context dictionary
    built from the ``ProjectConfig`` (see :func:`build_template_context`).
    When a ``FileTransaction`` is given, every file is recorded in it
    before being written.
    """

    def __init__(
        self,
        template_dir: str | Path | None = None,
        transaction: FileTransaction | None = None,
    ) -> None:
        if template_dir is None:
            template_dir = _DEFAULT_TEMPLATE_DIR
        self.template_dir = Path(template_dir)
        self.transaction = transaction
        self.env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            autoescape=select_autoescape([]),
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.env.filters["slugify"] = _slugify_filter
        self.env.filters["pascal_case"] = _pascal_case_filter
        self.env.filters["camel_case"] = _camel_case_filter

    # -- Single template rendering -----------------------------------------

    def render(self, template_path: str, context: dict[str, Any]) -> str:
        """Render a single template, e.g. ``"readme/README.md.j2"``."""
        template = self.env.get_template(template_path)
        return template.render(**context)

    def render_string(self, template_string: str, context: dict[str, Any]) -> str:
        template = self.env.from_string(template_string)
        return template.render(**context)

    # -- File-based rendering (async) --------------------------------------

    async def render_to_file(
        self,
        template_path: str,
        output_path: str | Path,
        context: dict[str, Any],
    ) -> Path:
        """Render a template and write the result to *output_path*."""
        content = self.render(template_path, context)
        out = Path(output_path)
        if self.transaction is not None:
            self.transaction.before_write(out)
        await asyncio.to_thread(write_text, out, content)
        return out

    async def render_tree(
        self,
        template_prefix: str,
        output_dir: str | Path,
        context: dict[str, Any],
    ) -> list[Path]:
        """Render every ``*.j2`` file under *template_prefix* to *output_dir*.

        The directory structure is preserved and the ``.j2`` suffix is
        dropped: ``backend/express/src/server.js.j2`` rendered with
        ``template_prefix="backend/express"`` into ``/tmp/app/backend``
        writes ``/tmp/app/backend/src/server.js``.

        Returns:
            List of written file paths (empty if the prefix does not exist).
        """
        prefix_path = self.template_dir / template_prefix
        if not prefix_path.is_dir():
            return []

        written: list[Path] = []
        out_base = Path(output_dir)

        for template_file in sorted(prefix_path.rglob("*.j2")):
            rel = template_file.relative_to(prefix_path).as_posix()
            output_file = out_base / rel[: -len(".j2")]
            path = await self.render_to_file(f"{template_prefix}/{rel}", output_file, context)
            written.append(path)

        return written

    async def render_layers(
        self,
        config: ProjectConfig,
        project_dir: str | Path,
        context: dict[str, Any] | None = None,
    ) -> list[Path]:
        """Render every template layer selected by *config* into *project_dir*."""
        context = context if context is not None else build_template_context(config)
        written: list[Path] = []
        for prefix, subdir in template_layers(config):
            target = Path(project_dir) / subdir if subdir else Path(project_dir)
            written.extend(await self.render_tree(prefix, target, context))
        return written

    # -- Utility -----------------------------------------------------------

    def list_templates(self, prefix: str = "") -> list[str]:
        """Return a sorted list of all ``.j2`` template paths under *prefix*."""
        search_dir = self.template_dir / prefix if prefix else self.template_dir
        if not search_dir.is_dir():
            return []
        return sorted(
            p.relative_to(self.template_dir).as_posix()
            for p in search_dir.rglob("*.j2")
        )


# ---------------------------------------------------------------------------
# Layer selection
# ---------------------------------------------------------------------------


def template_layers(config: ProjectConfig) -> list[tuple[str, str]]:
    """Return ``(template_prefix, output_subdir)`` pairs for *config*.

    Layers are rendered in this order, so a later layer overwrites files of
    an earlier one.
    """
    layers: list[tuple[str, str]] = [("base", "")]
    if config.has_backend:
        layers.append((f"backend/{config.backend.value}", "backend"))
    if config.has_frontend:
        for frontend in config.frontend:
            subdir = "frontend" if len(config.frontend) == 1 else f"frontend-{frontend.value}"
            layers.append((f"frontend/{frontend.value}", subdir))
    if config.has_database:
        layers.append((f"database/{config.database.value}", "database"))
    if config.has_auth:
        layers.append((f"auth/{config.auth.value}", "auth"))
    for addon in config.addons:
        layers.append((f"addons/{addon.value}", ""))
    return layers


def build_template_context(config: ProjectConfig) -> dict[str, Any]:
    """Flatten a ``ProjectConfig`` into plain template variables."""
    return {
        "project_name": config.project_name,
        "database": config.database.value,
        "orm": config.orm.value,
        "backend": config.backend.value,
        "frontend": [f.value for f in config.frontend],
        "auth": config.auth.value,
        "addons": [a.value for a in config.addons],
        "package_manager": config.package_manager.value,
        "typescript": config.typescript,
        "has_backend": config.has_backend,
        "has_frontend": config.has_frontend,
        "has_database": config.has_database,
        "has_orm": config.has_orm,
        "has_auth": config.has_auth,
        "scripts": {
            script: run_script_command(config.package_manager, script)
            for script in ("dev", "build", "test")
        },
    }


# ---------------------------------------------------------------------------
# Jinja2 custom filters
# ---------------------------------------------------------------------------

def _slugify_filter(value: str) -> str:
    """Convert a string to a URL/filename-safe slug."""
    slug = re.sub(r"[^a-z0-9]+", "-", value.lower().strip())
    return slug.strip("-")


def _pascal_case_filter(value: str) -> str:
    """Convert ``some-thing`` or ``some_thing`` to ``SomeThing``."""
    parts = re.split(r"[-_\s]+", value)
    return "".join(word.capitalize() for word in parts if word)


def _camel_case_filter(value: str) -> str:
    """Convert ``some-thing`` or ``some_thing`` to ``someThing``."""
    pascal = _pascal_case_filter(value)
    if pascal:
        return pascal[0].lower() + pascal[1:]
    return ""
