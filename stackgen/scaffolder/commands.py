"""External tool collaborators: package-manager install and git init.

Both helpers return a result dict instead of raising, so callers (plugins,
pipeline stages) decide whether a failure matters.
"""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import Any

from stackgen.config import PackageManager
from stackgen.utils import run_command, write_text

GITIGNORE = """\
# Dependencies
node_modules/
.pnp
.pnp.js

# Testing
coverage/

# Production
build/
dist/

# Environment
.env
.env.local

# Logs
npm-debug.log*
yarn-debug.log*
yarn-error.log*

# Editors
.vscode/
.idea/
.DS_Store
"""


def install_command(package_manager: PackageManager | str) -> list[str]:
    """Return the argv that installs dependencies with *package_manager*."""
    manager = PackageManager(package_manager)
    return [manager.value, "install"]


def run_script_command(package_manager: PackageManager | str, script: str) -> str:
    manager = PackageManager(package_manager)
    if manager == PackageManager.NPM:
        return f"npm run {script}"
    return f"{manager.value} {script}"


def is_tool_installed(binary: str) -> bool:
    return shutil.which(binary) is not None


async def install_dependencies(
    project_dir: str | Path,
    package_manager: PackageManager | str,
    timeout: int = 600,
) -> dict[str, Any]:
    """Install the project's dependencies.

    Returns:
        ``{"success", "installed", "errors"}``.
    """
    argv = install_command(package_manager)
    if not is_tool_installed(argv[0]):
        return {
            "success": False,
            "installed": False,
            "errors": [f"Package manager '{argv[0]}' is not installed"],
        }

    code, _stdout, stderr = await run_command(argv, cwd=project_dir, timeout=timeout)
    if code != 0:
        return {
            "success": False,
            "installed": False,
            "errors": [f"Installation failed with exit code {code}: {stderr}".strip()],
        }
    return {"success": True, "installed": True, "errors": []}


FALLBACK_GIT_IDENTITY = {"user.name": "stackgen", "user.email": "stackgen@localhost"}


async def git_identity_args(project_dir: str | Path) -> list[str]:
    """``-c`` overrides for the initial commit.

    Only identity keys git has no value for get the placeholder; whatever
    the user configured is left alone.
    """
    args: list[str] = []
    for key, fallback in FALLBACK_GIT_IDENTITY.items():
        code, stdout, _stderr = await run_command(["git", "config", key], cwd=project_dir, timeout=10)
        if code != 0 or not stdout:
            args += ["-c", f"{key}={fallback}"]
    return args


async def init_git_repo(project_dir: str | Path) -> dict[str, Any]:
    """Initialise a git repository with a ``.gitignore`` and initial commit.

    The user's configured identity is used for the commit; a placeholder is
    supplied only for identity keys that are unset.

    Returns:
        ``{"success", "initialized", "errors"}``.  A missing ``git`` binary
        is reported as a skipped (unsuccessful) initialisation.
    """
    root = Path(project_dir)
    if not is_tool_installed("git"):
        return {"success": False, "initialized": False, "errors": ["git is not installed"]}

    gitignore = root / ".gitignore"
    if not gitignore.exists():
        write_text(gitignore, GITIGNORE)

    for label, argv in (("git init", ["git", "init"]), ("git add", ["git", "add", "."])):
        error = await _git_step(label, argv, root)
        if error:
            return {"success": False, "initialized": False, "errors": [error]}

    identity = await git_identity_args(root)
    commit = ["git", *identity, "-c", "commit.gpgsign=false", "commit", "-m", "Initial commit"]
    error = await _git_step("git commit", commit, root)
    if error:
        return {"success": False, "initialized": False, "errors": [error]}

    return {"success": True, "initialized": True, "errors": []}


async def _git_step(label: str, argv: list[str], root: Path) -> str | None:
    code, _stdout, stderr = await run_command(argv, cwd=root, timeout=60)
    if code != 0:
        return f"'{label}' failed: {stderr}".strip()
    return None
