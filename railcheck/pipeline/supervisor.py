"""Build supervisor — runs a fixed sequence of external build commands.

Steps run strictly in order, each with its own timeout. The first step that
exits nonzero, times out, or fails to spawn stops the pipeline; later steps
stay pending and are never started. No retries, no rollback.
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal
import time
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from ..checks.models import ErrorKind

logger = logging.getLogger(__name__)

STDERR_TAIL_CHARS = 500


class StepState(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    PASSED = "passed"
    FAILED = "failed"


@dataclass(frozen=True)
class PipelineStep:
    """One external command in the pipeline."""

    name: str
    command: tuple[str, ...]
    timeout_s: float = 120.0


@dataclass
class StepResult:
    step: PipelineStep
    state: StepState = StepState.PENDING
    exit_code: int | None = None
    duration_ms: int = 0
    error: str | None = None
    kind: ErrorKind | None = None
    stderr_tail: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.step.name,
            "command": list(self.step.command),
            "state": self.state.value,
            "exit_code": self.exit_code,
            "duration_ms": self.duration_ms,
            "error": self.error,
            "error_kind": self.kind.value if self.kind else None,
            "stderr_tail": self.stderr_tail,
        }


@dataclass
class PipelineSummary:
    results: list[StepResult] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return all(r.state == StepState.PASSED for r in self.results)

    @property
    def failed_step(self) -> StepResult | None:
        return next((r for r in self.results if r.state == StepState.FAILED), None)

    def to_dict(self) -> dict[str, Any]:
        return {
            "passed": self.passed,
            "steps": [r.to_dict() for r in self.results],
        }


DEFAULT_STEPS: tuple[PipelineStep, ...] = (
    PipelineStep("Clean build output", ("npm", "run", "clean"), 30),
    PipelineStep("Install dependencies", ("npm", "install"), 120),
    PipelineStep("Build project", ("npm", "run", "build"), 120),
    PipelineStep("Verify build", ("npm", "run", "verify"), 10),
)


class BuildSupervisor:
    """Runs pipeline steps sequentially, short-circuiting on the first failure."""

    def __init__(
        self,
        steps: Iterable[PipelineStep] = DEFAULT_STEPS,
        cwd: Path | None = None,
        env: dict[str, str] | None = None,
    ) -> None:
        self.steps = list(steps)
        self.cwd = cwd or Path.cwd()
        self.env = {**os.environ, "NODE_ENV": "production", **(env or {})}

    async def run(self) -> PipelineSummary:
        summary = PipelineSummary(results=[StepResult(step=s) for s in self.steps])

        for result in summary.results:
            await self._run_step(result)
            if result.state == StepState.FAILED:
                logger.warning(
                    "Pipeline stopped at %r: %s", result.step.name, result.error,
                )
                break

        logger.info("Pipeline %s", "passed" if summary.passed else "failed")
        return summary

    def run_sync(self) -> PipelineSummary:
        return asyncio.run(self.run())

    async def _run_step(self, result: StepResult) -> None:
        step = result.step
        result.state = StepState.RUNNING
        logger.info("Running step %r: %s", step.name, " ".join(step.command))
        t0 = time.perf_counter()

        try:
            proc = await asyncio.create_subprocess_exec(
                *step.command,
                cwd=str(self.cwd),
                env=self.env,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                start_new_session=True,
            )
        except OSError as e:
            result.duration_ms = int((time.perf_counter() - t0) * 1000)
            result.state = StepState.FAILED
            result.kind = ErrorKind.COMMAND_FAILURE
            result.error = f"Failed to start {step.command[0]}: {e}"
            return

        try:
            _, stderr = await asyncio.wait_for(proc.communicate(), timeout=step.timeout_s)
        except asyncio.TimeoutError:
            _kill_group(proc)
            await proc.wait()
            result.duration_ms = int((time.perf_counter() - t0) * 1000)
            result.state = StepState.FAILED
            result.kind = ErrorKind.TIMEOUT
            result.error = f"Timed out after {step.timeout_s:g}s"
            return

        result.duration_ms = int((time.perf_counter() - t0) * 1000)
        result.exit_code = proc.returncode
        if proc.returncode == 0:
            result.state = StepState.PASSED
            return

        result.state = StepState.FAILED
        result.kind = ErrorKind.COMMAND_FAILURE
        result.error = f"Command failed with exit code {proc.returncode}"
        result.stderr_tail = stderr.decode("utf-8", errors="replace")[-STDERR_TAIL_CHARS:]


def _kill_group(proc: asyncio.subprocess.Process) -> None:
    """SIGKILL the step's whole process group, including tools it spawned."""
    try:
        os.killpg(proc.pid, signal.SIGKILL)
    except ProcessLookupError:
        pass  # group already gone
