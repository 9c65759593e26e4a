"""The standard generation stages and the pipeline that runs them.

Every stage action takes ``(config, context)`` where ``context`` is the
pipeline's context mapping (``project_dir``, ``template_dir``,
``overwrite``).  Actions return a dict; a ``warnings`` list in that dict is
surfaced in the pipeline's overall warnings.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

from stackgen.config import GeneratorSettings, ProjectConfig
from stackgen.core.pipeline import GeneratorPipeline, PipelineStage, StageAction
from stackgen.scaffolder.commands import init_git_repo, install_dependencies
from stackgen.scaffolder.manifest import build_package_json, write_package_json
from stackgen.scaffolder.structure import create_project_structure
from stackgen.scaffolder.templates import TemplateRenderer, template_layers
from stackgen.utils import load_json, sanitize_name

CONFIG_SNAPSHOT = ".stackgen.json"


def _project_dir(config: ProjectConfig, context: dict[str, Any]) -> Path:
    return Path(context.get("project_dir") or config.target_dir)


# ---------------------------------------------------------------------------
# Stage actions
# ---------------------------------------------------------------------------


async def validate_config_stage(config: ProjectConfig, context: dict[str, Any]) -> dict[str, Any]:
    """Reject unusable targets; warn about questionable selections."""
    if not sanitize_name(config.project_name):
        raise ValueError(f"Project name '{config.project_name}' has no usable characters")

    project_dir = _project_dir(config, context)
    if project_dir.exists() and any(project_dir.iterdir()) and not context.get("overwrite"):
        raise FileExistsError(f"Project directory is not empty: {project_dir}")

    warnings: list[str] = []
    if config.has_orm and not config.has_database:
        warnings.append(f"ORM '{config.orm.value}' selected without a database")
    if not config.has_backend and not config.has_frontend:
        warnings.append("Neither a backend nor a frontend was selected")
    return {"validated": True, "warnings": warnings}


async def create_structure_stage(config: ProjectConfig, context: dict[str, Any]) -> dict[str, Any]:
    created = await create_project_structure(config, _project_dir(config, context))
    return {"directories_created": len(created)}


async def process_templates_stage(config: ProjectConfig, context: dict[str, Any]) -> dict[str, Any]:
    renderer = TemplateRenderer(context.get("template_dir"))
    files = await renderer.render_layers(config, _project_dir(config, context))
    warnings = [
        f"No templates for layer '{prefix}'"
        for prefix, _ in template_layers(config)
        if not renderer.list_templates(prefix)
    ]
    return {"files_rendered": len(files), "warnings": warnings}


async def merge_packages_stage(config: ProjectConfig, context: dict[str, Any]) -> dict[str, Any]:
    manifest = build_package_json(config)
    path = await write_package_json(manifest, _project_dir(config, context))
    return {"path": str(path), "dependencies": len(manifest["dependencies"])}


async def install_dependencies_stage(config: ProjectConfig, context: dict[str, Any]) -> dict[str, Any]:
    if not config.install:
        return {"skipped": True}
    result = await install_dependencies(_project_dir(config, context), config.package_manager)
    if not result["success"]:
        raise RuntimeError("; ".join(result["errors"]))
    return {"installed": True}


async def run_health_checks_stage(config: ProjectConfig, context: dict[str, Any]) -> dict[str, Any]:
    """Check that the generated tree holds what the selection promised."""
    project_dir = _project_dir(config, context)
    problems: list[str] = []

    manifest_path = project_dir / "package.json"
    if not manifest_path.exists():
        problems.append("package.json is missing")
    else:
        manifest = load_json(manifest_path)
        if manifest.get("name") != config.project_name:
            problems.append("package.json name does not match the project name")

    if config.has_backend and not (project_dir / "backend").is_dir():
        problems.append("backend directory is missing")
    if config.has_frontend and not any(project_dir.glob("frontend*")):
        problems.append("frontend directory is missing")

    if problems:
        raise RuntimeError("Health check failed: " + ", ".join(problems))
    return {"healthy": True}


async def finalize_stage(config: ProjectConfig, context: dict[str, Any]) -> dict[str, Any]:
    """Write the configuration snapshot and optionally initialise git."""
    project_dir = _project_dir(config, context)
    snapshot = config.save(project_dir / CONFIG_SNAPSHOT)
    result: dict[str, Any] = {"snapshot": str(snapshot), "warnings": []}
    if config.git:
        git = await init_git_repo(project_dir)
        result["git"] = git["initialized"]
        if not git["success"]:
            result["warnings"].append("Git initialisation skipped: " + "; ".join(git["errors"]))
    return result


# ---------------------------------------------------------------------------
# Pipeline factory
# ---------------------------------------------------------------------------

# (stage, action, required, timeout_ms)
STANDARD_STAGES: list[tuple[PipelineStage, StageAction, bool, int]] = [
    (PipelineStage.VALIDATE_CONFIG, validate_config_stage, True, 5000),
    (PipelineStage.CREATE_STRUCTURE, create_structure_stage, True, 10000),
    (PipelineStage.PROCESS_TEMPLATES, process_templates_stage, True, 15000),
    (PipelineStage.MERGE_PACKAGES, merge_packages_stage, True, 5000),
    (PipelineStage.INSTALL_DEPENDENCIES, install_dependencies_stage, False, 300000),
    (PipelineStage.RUN_HEALTH_CHECKS, run_health_checks_stage, False, 10000),
    (PipelineStage.FINALIZE, finalize_stage, True, 60000),
]


def create_standard_pipeline(
    settings: Optional[GeneratorSettings] = None,
    stages: Optional[list[PipelineStage]] = None,
) -> GeneratorPipeline:
    """Build a pipeline with the standard stages (or the given subset).

    Subsets keep the standard relative order regardless of the order of
    *stages*.
    """
    settings = settings or GeneratorSettings(verbose=False)
    pipeline = GeneratorPipeline(
        default_timeout_ms=settings.default_stage_timeout_ms,
        retry_backoff_ms=settings.stage_retry_backoff_ms,
        verbose=settings.verbose,
    )
    if settings.template_dir is not None:
        pipeline.set_context(template_dir=settings.template_dir)

    selected = set(stages) if stages is not None else None
    for stage, action, required, timeout_ms in STANDARD_STAGES:
        if selected is None or stage in selected:
            pipeline.add_stage(stage.value, action, required=required, timeout_ms=timeout_ms)
    return pipeline
