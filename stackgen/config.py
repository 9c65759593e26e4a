"""stackgen configuration.

Two Pydantic v2 models live here:

* ``ProjectConfig`` describes *what* to generate: the project name, its
  target directory and every technology choice.  It is the ``config`` value
  handed to plugins and pipeline stages.
* ``GeneratorSettings`` holds the knobs of the orchestration engine itself
  (dependency policy, stage timeouts, retry backoff, verbosity).

Both can be validated at construction time and serialised to/from JSON,
YAML preset files or environment variables without boiler-plate.
"""

from __future__ import annotations

import os
from enum import Enum
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field, field_validator


# ---------------------------------------------------------------------------
# Technology options
# ---------------------------------------------------------------------------


class Database(str, Enum):
    NONE = "none"
    SQLITE = "sqlite"
    POSTGRES = "postgres"
    MYSQL = "mysql"
    MONGODB = "mongodb"
    SUPABASE = "supabase"
    PLANETSCALE = "planetscale"


class ORM(str, Enum):
    NONE = "none"
    PRISMA = "prisma"
    SEQUELIZE = "sequelize"
    MONGOOSE = "mongoose"
    TYPEORM = "typeorm"
    DRIZZLE = "drizzle"


class Backend(str, Enum):
    NONE = "none"
    EXPRESS = "express"
    FASTIFY = "fastify"
    KOA = "koa"
    HAPI = "hapi"
    NESTJS = "nestjs"
    TRPC = "trpc"
    HONO = "hono"


class Frontend(str, Enum):
    NONE = "none"
    REACT = "react"
    VUE = "vue"
    ANGULAR = "angular"
    SVELTE = "svelte"
    NEXTJS = "nextjs"
    NUXT = "nuxt"
    REACT_NATIVE = "react-native"
    REMIX = "remix"
    ASTRO = "astro"
    SVELTEKIT = "sveltekit"


class Auth(str, Enum):
    NONE = "none"
    JWT = "jwt"
    PASSPORT = "passport"
    AUTH0 = "auth0"
    OAUTH = "oauth"
    NEXTAUTH = "nextauth"
    SUPABASE = "supabase"
    LUCIA = "lucia"
    BETTER_AUTH = "better-auth"


class Addon(str, Enum):
    ESLINT = "eslint"
    PRETTIER = "prettier"
    HUSKY = "husky"
    DOCKER = "docker"
    GITHUB_ACTIONS = "github-actions"
    TESTING = "testing"
    TAILWIND = "tailwind"
    TYPESCRIPT = "typescript"
    BIOME = "biome"
    VITEST = "vitest"
    JEST = "jest"


class PackageManager(str, Enum):
    NPM = "npm"
    YARN = "yarn"
    PNPM = "pnpm"
    BUN = "bun"


TECHNOLOGY_OPTIONS: dict[str, type[Enum]] = {
    "database": Database,
    "orm": ORM,
    "backend": Backend,
    "frontend": Frontend,
    "auth": Auth,
    "addon": Addon,
    "package_manager": PackageManager,
}


# ---------------------------------------------------------------------------
# Project configuration
# ---------------------------------------------------------------------------


class ProjectConfig(BaseModel):
    """The user's technology choices for one generated project.

    Instances are created once by the CLI (from flags or a preset file) and
    then passed unchanged to every plugin and pipeline stage.
    """

    project_name: str = Field(..., min_length=1)
    project_dir: Optional[Path] = Field(
        default=None, description="Target directory; defaults to ./<project_name>"
    )
    database: Database = Field(default=Database.NONE)
    orm: ORM = Field(default=ORM.NONE)
    backend: Backend = Field(default=Backend.EXPRESS)
    frontend: list[Frontend] = Field(default_factory=lambda: [Frontend.REACT])
    auth: Auth = Field(default=Auth.NONE)
    addons: list[Addon] = Field(default_factory=list)
    package_manager: PackageManager = Field(default=PackageManager.NPM)
    install: bool = Field(default=False, description="Install dependencies after generation")
    git: bool = Field(default=False, description="Initialise a git repository")
    typescript: bool = Field(default=False)

    @field_validator("frontend", mode="before")
    @classmethod
    def _coerce_frontend(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [value]
        return value

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    @property
    def target_dir(self) -> Path:
        """Directory the project is generated into."""
        return self.project_dir or Path.cwd() / self.project_name

    @property
    def has_backend(self) -> bool:
        return self.backend != Backend.NONE

    @property
    def has_frontend(self) -> bool:
        return bool(self.frontend) and Frontend.NONE not in self.frontend

    @property
    def has_database(self) -> bool:
        return self.database != Database.NONE

    @property
    def has_orm(self) -> bool:
        return self.orm != ORM.NONE

    @property
    def has_auth(self) -> bool:
        return self.auth != Auth.NONE

    def has_addon(self, addon: Addon | str) -> bool:
        """Return ``True`` if *addon* was selected."""
        return Addon(addon) in self.addons

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path) -> Path:
        """Persist the configuration to a JSON file."""
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return target

    @classmethod
    def load(cls, path: Path) -> "ProjectConfig":
        """Load a preset from a JSON or YAML file.

        YAML is a superset of JSON, so both formats go through
        ``yaml.safe_load``.
        """
        raw = Path(path).read_text(encoding="utf-8")
        data = yaml.safe_load(raw) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Preset file must contain a mapping: {path}")
        return cls.model_validate(data)


# ---------------------------------------------------------------------------
# Engine settings
# ---------------------------------------------------------------------------


class GeneratorSettings(BaseModel):
    """Tuning knobs for the plugin registry and the stage pipeline."""

    strict_dependencies: bool = Field(
        default=True,
        description="Reject plugins whose dependencies are not registered yet",
    )
    dependencies_must_be_applicable: bool = Field(
        default=False,
        description="Skip a plugin when one of its dependencies is not applicable",
    )
    default_stage_timeout_ms: int = Field(default=30000, ge=1)
    stage_retry_backoff_ms: int = Field(
        default=0, ge=0, description="Delay multiplied by the attempt number between retries"
    )
    rollback_on_failure: bool = Field(
        default=True,
        description="Undo the run's file operations when generation fails fatally",
    )
    template_dir: Optional[Path] = Field(default=None)
    verbose: bool = Field(default=True)

    @classmethod
    def from_env(cls) -> "GeneratorSettings":
        """Build settings from environment variables.

        Recognised variables (all optional):
            STACKGEN_STRICT_DEPENDENCIES, STACKGEN_DEPENDENCIES_MUST_BE_APPLICABLE,
            STACKGEN_STAGE_TIMEOUT_MS, STACKGEN_RETRY_BACKOFF_MS,
            STACKGEN_TEMPLATE_DIR, STACKGEN_VERBOSE,
            STACKGEN_ROLLBACK_ON_FAILURE.
        """
        kwargs: dict[str, Any] = {}
        if os.environ.get("STACKGEN_STRICT_DEPENDENCIES"):
            kwargs["strict_dependencies"] = _env_flag("STACKGEN_STRICT_DEPENDENCIES")
        if os.environ.get("STACKGEN_DEPENDENCIES_MUST_BE_APPLICABLE"):
            kwargs["dependencies_must_be_applicable"] = _env_flag(
                "STACKGEN_DEPENDENCIES_MUST_BE_APPLICABLE"
            )
        if os.environ.get("STACKGEN_STAGE_TIMEOUT_MS"):
            kwargs["default_stage_timeout_ms"] = int(os.environ["STACKGEN_STAGE_TIMEOUT_MS"])
        if os.environ.get("STACKGEN_RETRY_BACKOFF_MS"):
            kwargs["stage_retry_backoff_ms"] = int(os.environ["STACKGEN_RETRY_BACKOFF_MS"])
        if os.environ.get("STACKGEN_TEMPLATE_DIR"):
            kwargs["template_dir"] = Path(os.environ["STACKGEN_TEMPLATE_DIR"])
        if os.environ.get("STACKGEN_ROLLBACK_ON_FAILURE"):
            kwargs["rollback_on_failure"] = _env_flag("STACKGEN_ROLLBACK_ON_FAILURE")
        if os.environ.get("STACKGEN_VERBOSE"):
            kwargs["verbose"] = _env_flag("STACKGEN_VERBOSE")
        return cls(**kwargs)


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in {"1", "true", "yes", "on"}
