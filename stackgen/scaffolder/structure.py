"""Project directory layout for a ``ProjectConfig``."""

from __future__ import annotations

import asyncio
from pathlib import Path

from stackgen.config import Addon, ProjectConfig


def project_directories(config: ProjectConfig) -> list[str]:
    """Relative directories the selected technologies need.

    No empty root-level directories are created for unselected layers.
    """
    directories: list[str] = []
    if config.has_backend:
        directories += [
            "backend",
            "backend/src",
            "backend/src/routes",
            "backend/src/middleware",
            "backend/src/models",
            "backend/src/controllers",
        ]
    if config.has_frontend:
        for frontend in config.frontend:
            root = "frontend" if len(config.frontend) == 1 else f"frontend-{frontend.value}"
            directories += [
                root,
                f"{root}/src",
                f"{root}/src/components",
                f"{root}/src/pages",
                f"{root}/public",
            ]
    if config.has_database:
        directories += ["database", "database/migrations", "database/seeds"]
    if config.has_auth:
        directories += ["auth"]
    if config.has_addon(Addon.TESTING):
        directories += ["tests", "tests/unit", "tests/integration"]
    return directories


async def create_project_structure(config: ProjectConfig, project_dir: str | Path) -> list[Path]:
    """Create the project root and every directory from ``project_directories``."""
    root = Path(project_dir)
    created: list[Path] = []

    def _mkdirs() -> None:
        root.mkdir(parents=True, exist_ok=True)
        for rel in project_directories(config):
            path = root / rel
            path.mkdir(parents=True, exist_ok=True)
            created.append(path)

    await asyncio.to_thread(_mkdirs)
    return created
