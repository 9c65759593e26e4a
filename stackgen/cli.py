"""Command-line entry point.

Usage::

    stackgen create my-app --backend express --frontend react --database postgres
    stackgen create my-app --preset stack.yaml --mode pipeline
    stackgen list
"""

from __future__ import annotations

import argparse
import asyncio
import sys
import time
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError
from rich.panel import Panel
from rich.table import Table

from stackgen import __version__
from stackgen.config import TECHNOLOGY_OPTIONS, GeneratorSettings, ProjectConfig
from stackgen.core.base import BaseGenerator
from stackgen.core.hooks import HookError
from stackgen.core.pipeline import PipelineResult
from stackgen.core.registry import PluginError
from stackgen.generators.modular import GenerationError, ModularGenerator
from stackgen.generators.stages import create_standard_pipeline
from stackgen.plugins import default_plugins
from stackgen.scaffolder.transaction import FileTransaction
from stackgen.utils import (
    console,
    format_duration,
    print_error,
    print_step_header,
    print_success,
    print_summary_table,
)

MODES = ("modular", "pipeline", "plugins")


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stackgen",
        description="stackgen -- scaffold a JavaScript project from technology choices",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  stackgen create my-app --backend express --frontend react\n"
            "  stackgen create my-app --database postgres --orm prisma --auth jwt\n"
            "  stackgen create my-app --preset stack.yaml --mode pipeline\n"
            "  stackgen list\n"
        ),
    )
    parser.add_argument("--version", action="version", version=f"stackgen {__version__}")
    sub = parser.add_subparsers(dest="command", required=True)

    create = sub.add_parser("create", help="Generate a new project")
    create.add_argument("project_name", help="Name of the project to create")
    create.add_argument("--output", "-o", default=".", help="Parent directory (default: .)")
    create.add_argument("--preset", help="JSON or YAML file with project options")
    create.add_argument("--database", help="Database (see `stackgen list`)")
    create.add_argument("--orm", help="ORM")
    create.add_argument("--backend", help="Backend framework")
    create.add_argument(
        "--frontend", action="append", help="Frontend framework (repeatable)"
    )
    create.add_argument("--auth", help="Authentication provider")
    create.add_argument("--addon", action="append", dest="addons", help="Addon (repeatable)")
    create.add_argument("--package-manager", help="npm, yarn, pnpm or bun")
    create.add_argument("--typescript", action="store_true", default=None)
    create.add_argument(
        "--install", action=argparse.BooleanOptionalAction, default=None,
        help="Install dependencies after generation",
    )
    create.add_argument(
        "--git", action=argparse.BooleanOptionalAction, default=None,
        help="Initialise a git repository",
    )
    create.add_argument("--mode", choices=MODES, default="modular", help="Orchestration mode")
    create.add_argument("--overwrite", action="store_true", help="Allow a non-empty target directory")
    create.add_argument("--quiet", "-q", action="store_true", help="Only print the summary")

    sub.add_parser("list", help="List available technology options")
    return parser


def config_from_args(args: argparse.Namespace) -> ProjectConfig:
    """Merge a preset (if any) with explicit flags; flags win."""
    data: dict[str, Any] = {}
    if args.preset:
        data.update(ProjectConfig.load(Path(args.preset)).model_dump(exclude={"project_dir"}))

    flags = {
        "database": args.database,
        "orm": args.orm,
        "backend": args.backend,
        "frontend": args.frontend,
        "auth": args.auth,
        "addons": args.addons,
        "package_manager": args.package_manager,
        "typescript": args.typescript,
        "install": args.install,
        "git": args.git,
    }
    data.update({key: value for key, value in flags.items() if value is not None})
    data["project_name"] = args.project_name
    data["project_dir"] = Path(args.output) / args.project_name
    return ProjectConfig.model_validate(data)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


async def run_create(
    config: ProjectConfig,
    settings: GeneratorSettings,
    mode: str = "modular",
    overwrite: bool = False,
) -> bool:
    """Generate *config* in the chosen mode; return overall success."""
    start = time.monotonic()
    print_step_header(f"Creating {config.project_name} ({mode})")

    if mode == "pipeline":
        pipeline = create_standard_pipeline(settings)
        pipeline.set_context(project_dir=config.target_dir, overwrite=overwrite)
        result = await pipeline.execute(config)
        _print_pipeline_table(result)
        success = result.overall.success
        errors = result.overall.errors
    elif mode == "plugins":
        generator = BaseGenerator(settings)
        generator.register_plugins(default_plugins())
        transaction = FileTransaction()
        transaction.record_dir(config.target_dir)
        generator.set_context(
            project_dir=config.target_dir, config=config, transaction=transaction
        )
        config.target_dir.mkdir(parents=True, exist_ok=True)
        results = await generator.generate(config)
        await generator.cleanup()
        _print_plugin_table(results)
        success = not results["failed"]
        errors = [f"{e['plugin']}: {e['error']}" for e in results["failed"]]
    else:
        generator = ModularGenerator(settings)
        combined = await generator.generate_project(config, overwrite=overwrite)
        await generator.cleanup()
        _print_pipeline_table(combined["pipeline"])
        _print_plugin_table(combined["plugins"])
        summary = combined["summary"]
        rate = summary["success_rate"]
        print_summary_table(
            {
                "Stages": f"{summary['successful_stages']}/{summary['total_stages']}",
                "Plugins": f"{summary['successful_plugins']}/{summary['total_plugins']}",
                "Success rate": f"{rate:.1f}%" if rate is not None else "n/a",
                "Warnings": str(len(summary["warnings"])),
            }
        )
        success = combined["success"]
        errors = combined["summary"]["errors"]

    elapsed = format_duration(time.monotonic() - start)
    if success:
        console.print(
            Panel(
                f"[bold green]Project created[/bold green] in {elapsed}\n"
                f"Location: {config.target_dir.resolve()}",
                border_style="green",
            )
        )
    else:
        console.print(
            Panel(
                "[bold red]Generation finished with errors[/bold red]\n"
                + "\n".join(f"- {e}" for e in errors),
                border_style="red",
            )
        )
    return success


def run_list() -> None:
    for category, options in TECHNOLOGY_OPTIONS.items():
        table = Table(title=category.replace("_", " ").title(), header_style="bold cyan")
        table.add_column("Value")
        for option in options:
            table.add_row(option.value)
        console.print(table)


def _print_pipeline_table(result: PipelineResult) -> None:
    table = Table(title="Stages", header_style="bold cyan")
    table.add_column("Stage")
    table.add_column("Status")
    table.add_column("Duration", justify="right")
    table.add_column("Detail", style="dim")
    for stage in result.stages:
        status = "[green]ok[/green]" if stage.success else "[red]failed[/red]"
        table.add_row(stage.name, status, f"{stage.duration_ms:.0f}ms", stage.error or "")
    console.print(table)
    for warning in result.overall.warnings:
        console.print(f"  [yellow]warning:[/yellow] {warning}")


def _print_plugin_table(results: dict[str, list[Any]]) -> None:
    table = Table(title="Plugins", header_style="bold cyan")
    table.add_column("Plugin")
    table.add_column("Status")
    table.add_column("Detail", style="dim")
    for entry in results["success"]:
        table.add_row(entry["plugin"], "[green]ok[/green]", "")
    for entry in results["failed"]:
        table.add_row(entry["plugin"], "[red]failed[/red]", entry["error"])
    for entry in results.get("skipped", []):
        table.add_row(entry["plugin"], "[dim]skipped[/dim]", entry["reason"])
    console.print(table)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main(argv: Optional[list[str]] = None) -> None:
    """CLI entry point for ``stackgen`` / ``python -m stackgen``."""
    args = build_parser().parse_args(argv)

    if args.command == "list":
        run_list()
        return

    try:
        config = config_from_args(args)
    except (ValidationError, ValueError, OSError) as exc:
        print_error(f"Invalid configuration: {exc}")
        sys.exit(2)

    settings = GeneratorSettings.from_env()
    if args.quiet:
        settings.verbose = False

    try:
        success = asyncio.run(run_create(config, settings, args.mode, args.overwrite))
    except (GenerationError, HookError, PluginError) as exc:
        print_error(f"Generation failed: {exc}")
        sys.exit(1)

    if success:
        print_success("Done.")
    else:
        sys.exit(1)


if __name__ == "__main__":
    main()
