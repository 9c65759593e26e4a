"""Generator pipeline: ordered named stages with timeouts and retries.

A coarser execution model than plugins.  Stages run strictly in the order
they were added, each bounded by its own timeout:

* a failing *required* stage marks the run failed and stops it; later
  stages never run;
* a failing optional stage is recorded and the run continues;
* warnings from every stage are collected regardless of outcome.

Timeouts use ``asyncio.wait_for``, so a coroutine action that loses the race
is cancelled.  Synchronous actions run in a worker thread, and a thread
cannot be interrupted: after a timeout it keeps running in the background
and its side effects still happen.  Do not rely on the timeout for resource
safety with synchronous actions.
"""

from __future__ import annotations

import asyncio
import inspect
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Union

from pydantic import BaseModel, Field

from stackgen.utils import console, print_error, print_success

StageAction = Callable[[Any, dict[str, Any]], Union[Any, Awaitable[Any]]]

DEFAULT_STAGE_TIMEOUT_MS = 30000

# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class StageTimeoutError(Exception):
    """A stage action did not settle within its timeout."""

    def __init__(self, stage_name: str, timeout_ms: int) -> None:
        self.stage_name = stage_name
        self.timeout_ms = timeout_ms
        super().__init__(f"Stage execution timed out after {timeout_ms}ms")


class DuplicateStageError(Exception):
    def __init__(self, stage_name: str) -> None:
        self.stage_name = stage_name
        super().__init__(f"Stage '{stage_name}' is already part of the pipeline")


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


@dataclass
class Stage:
    """One unit of work in a pipeline."""

    name: str
    action: StageAction
    required: bool = True
    timeout_ms: int = DEFAULT_STAGE_TIMEOUT_MS
    retries: int = 0


class StageResult(BaseModel):
    """Outcome of a single stage."""

    name: str
    success: bool
    result: Any = None
    error: Optional[str] = None
    duration_ms: float = Field(default=0.0, ge=0.0)
    warnings: list[str] = Field(default_factory=list)
    attempts: int = Field(default=1, ge=1)


class OverallResult(BaseModel):
    success: bool = True
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class PipelineResult(BaseModel):
    """Per-stage outcomes plus the overall verdict of one run."""

    stages: list[StageResult] = Field(default_factory=list)
    overall: OverallResult = Field(default_factory=OverallResult)


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


class GeneratorPipeline:
    """Runs a fixed sequence of named stages.

    Attributes:
        stages: Stages in execution order.
        context: Mapping handed to every stage action as its second argument.
        results: The result of the most recent ``execute`` call.
    """

    def __init__(
        self,
        *,
        default_timeout_ms: int = DEFAULT_STAGE_TIMEOUT_MS,
        retry_backoff_ms: int = 0,
        verbose: bool = False,
    ) -> None:
        self.stages: list[Stage] = []
        self.context: dict[str, Any] = {}
        self.default_timeout_ms = default_timeout_ms
        self.retry_backoff_ms = retry_backoff_ms
        self.verbose = verbose
        self.results = PipelineResult()

    # ------------------------------------------------------------------
    # Stage management
    # ------------------------------------------------------------------

    def add_stage(
        self,
        name: str,
        action: StageAction,
        *,
        required: bool = True,
        timeout_ms: Optional[int] = None,
        retries: int = 0,
    ) -> Stage:
        if self.get_stage(name) is not None:
            raise DuplicateStageError(name)
        if retries < 0:
            raise ValueError("retries must be >= 0")
        stage = Stage(
            name=name,
            action=action,
            required=required,
            timeout_ms=timeout_ms if timeout_ms is not None else self.default_timeout_ms,
            retries=retries,
        )
        self.stages.append(stage)
        return stage

    def remove_stage(self, name: str) -> None:
        self.stages = [stage for stage in self.stages if stage.name != name]

    def get_stage(self, name: str) -> Optional[Stage]:
        for stage in self.stages:
            if stage.name == name:
                return stage
        return None

    def set_context(self, **values: Any) -> None:
        self.context.update(values)

    def get_context(self) -> dict[str, Any]:
        return self.context

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def execute(self, config: Any) -> PipelineResult:
        """Run every stage in order and return a fresh ``PipelineResult``."""
        total = len(self.stages)
        if self.verbose:
            console.print(f"  Starting pipeline with {total} stage(s)")

        self.results = PipelineResult()

        for index, stage in enumerate(list(self.stages), start=1):
            stage_result = await self.execute_stage(stage, config, index)
            self.results.stages.append(stage_result)
            self.results.overall.warnings.extend(stage_result.warnings)

            if not stage_result.success and stage.required:
                self.results.overall.success = False
                self.results.overall.errors.append(
                    f"Stage '{stage.name}' failed: {stage_result.error}"
                )
                break

        if self.verbose:
            status = "succeeded" if self.results.overall.success else "failed"
            console.print(f"  Pipeline {status}")
        return self.results

    async def execute_stage(self, stage: Stage, config: Any, stage_number: int) -> StageResult:
        """Run one stage with its timeout, retrying failed attempts."""
        if self.verbose:
            console.print(
                f"  [{stage_number}/{len(self.stages)}] [cyan]Executing stage:[/cyan] {stage.name}"
            )

        start = time.monotonic()
        error: Optional[str] = None
        attempts = 0

        for attempt in range(1, stage.retries + 2):
            attempts = attempt
            if attempt > 1 and self.retry_backoff_ms:
                await asyncio.sleep(self.retry_backoff_ms * (attempt - 1) / 1000)
            try:
                result = await self._run_with_timeout(stage, config)
            except Exception as exc:
                error = str(exc)
                continue

            duration_ms = (time.monotonic() - start) * 1000
            if self.verbose:
                print_success(f"  Stage '{stage.name}' completed in {duration_ms:.0f}ms")
            return StageResult(
                name=stage.name,
                success=True,
                result=result,
                duration_ms=duration_ms,
                warnings=_extract_warnings(result),
                attempts=attempts,
            )

        duration_ms = (time.monotonic() - start) * 1000
        if self.verbose:
            print_error(f"  Stage '{stage.name}' failed after {duration_ms:.0f}ms: {error}")
        return StageResult(
            name=stage.name,
            success=False,
            error=error,
            duration_ms=duration_ms,
            attempts=attempts,
        )

    async def _run_with_timeout(self, stage: Stage, config: Any) -> Any:
        if inspect.iscoroutinefunction(stage.action):
            awaitable = stage.action(config, self.context)
        else:
            awaitable = _call_in_thread(stage.action, config, self.context)
        try:
            return await asyncio.wait_for(awaitable, timeout=stage.timeout_ms / 1000)
        except asyncio.TimeoutError as exc:
            raise StageTimeoutError(stage.name, stage.timeout_ms) from exc

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def get_stats(self) -> dict[str, Any]:
        executed = self.results.stages
        total_duration = sum(stage.duration_ms for stage in executed)
        successful = sum(1 for stage in executed if stage.success)
        return {
            "total_stages": len(self.stages),
            "executed_stages": len(executed),
            "successful_stages": successful,
            "failed_stages": len(executed) - successful,
            "total_duration_ms": total_duration,
            "average_stage_duration_ms": total_duration / len(executed) if executed else 0.0,
            "success_rate": successful / len(executed) * 100 if executed else 0.0,
        }

    def get_stage_results(self) -> list[StageResult]:
        return self.results.stages

    def get_overall_results(self) -> OverallResult:
        return self.results.overall

    def is_successful(self) -> bool:
        return self.results.overall.success

    def get_errors(self) -> list[str]:
        return self.results.overall.errors

    def get_warnings(self) -> list[str]:
        return self.results.overall.warnings


async def _call_in_thread(action: StageAction, config: Any, context: dict[str, Any]) -> Any:
    # A sync action may still hand back an awaitable (e.g. a lambda wrapping a coroutine).
    result = await asyncio.to_thread(action, config, context)
    if inspect.isawaitable(result):
        result = await result
    return result


def _extract_warnings(result: Any) -> list[str]:
    if isinstance(result, dict):
        warnings = result.get("warnings") or []
        return [str(w) for w in warnings]
    return []


# ---------------------------------------------------------------------------
# Standard stages
# ---------------------------------------------------------------------------


class PipelineStage(str, Enum):
    VALIDATE_CONFIG = "validateConfig"
    CREATE_STRUCTURE = "createStructure"
    PROCESS_TEMPLATES = "processTemplates"
    MERGE_PACKAGES = "mergePackages"
    INSTALL_DEPENDENCIES = "installDependencies"
    RUN_HEALTH_CHECKS = "runHealthChecks"
    FINALIZE = "finalize"
