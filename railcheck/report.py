"""Reporter — renders finished summaries and maps them to exit codes.

Rendering is a pure pass over a completed RunSummary / PipelineSummary; it
never evaluates checks. The exit code is the only machine-readable contract.
"""

from __future__ import annotations

import json
import platform
import sys
from typing import Union

from rich.console import Console
from rich.markup import escape

from .checks.models import CheckResult, ErrorKind, RunSummary
from .config import Settings
from .pipeline.supervisor import PipelineSummary, StepState

BODY_PREVIEW_CHARS = 500

# Raw server output is shown for these so the operator can diagnose by hand
_SHOW_BODY = (ErrorKind.AUTH_FAILURE, ErrorKind.INVALID_RESPONSE)

_STEP_ICON = {
    StepState.PASSED: "✅",
    StepState.FAILED: "❌",
    StepState.RUNNING: "🔄",
    StepState.PENDING: "⏸️ ",
}


def exit_code(summary: Union[RunSummary, PipelineSummary]) -> int:
    if isinstance(summary, PipelineSummary):
        return 0 if summary.passed else 1
    return 0 if summary.all_passed else 1


class Reporter:
    """Console renderer for check runs and build pipelines."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    # ── Check runs ──────────────────────────────────────────────────────

    def render(
        self,
        summary: RunSummary,
        title: str = "Deployment Readiness Check",
        ready_message: str = "Ready for deployment!",
        not_ready_message: str = "Not ready for deployment",
    ) -> int:
        c = self.console
        c.print(f"[bold]🔍 {escape(title)}[/bold]")
        c.rule(style="dim")

        for result in summary.results:
            self._render_result(result)

        c.rule(style="dim")
        c.print(f"Passed: {summary.passed_count}/{len(summary.results)}")
        optional_failures = [r for r in summary.results if not r.passed and not r.check.required]
        if summary.all_passed:
            c.print(f"[bold green]🎉 {escape(ready_message)}[/bold green]")
            if optional_failures:
                c.print(f"[yellow]⚠️  {len(optional_failures)} optional check(s) failed[/yellow]")
        else:
            c.print(f"[bold red]❌ {escape(not_ready_message)}[/bold red]")
            c.print("   Please fix the issues above first")
        return exit_code(summary)

    def _render_result(self, result: CheckResult) -> None:
        c = self.console
        icon = "✅" if result.passed else "❌"
        tag = "" if result.check.required else " [dim](optional)[/dim]"
        c.print(f"{icon} {escape(result.name)}{tag}")

        if result.passed:
            for key, value in (result.details or {}).items():
                c.print(f"   [dim]{escape(str(key))}: {escape(str(value))}[/dim]")
            return

        if result.error and result.error != result.check.remediation:
            kind = f"{result.kind.value}: " if result.kind else ""
            c.print(f"   [red]{escape(kind + result.error)}[/red]")
        if result.check.remediation:
            c.print(f"   💡 Fix: {escape(result.check.remediation)}")
        if result.detail and result.kind in _SHOW_BODY:
            body = result.detail.strip()
            if len(body) > BODY_PREVIEW_CHARS:
                body = body[:BODY_PREVIEW_CHARS] + "..."
            c.print(f"   Response: {escape(body)}")

    # ── Build pipeline ──────────────────────────────────────────────────

    def render_pipeline(self, summary: PipelineSummary, title: str = "Build Pipeline") -> int:
        c = self.console
        c.print(f"[bold]🚂 {escape(title)}[/bold]")
        c.rule(style="dim")

        for r in summary.results:
            command = escape(" ".join(r.step.command))
            if r.state == StepState.PENDING:
                c.print(f"{_STEP_ICON[r.state]} {escape(r.step.name)} [dim]— skipped ({command})[/dim]")
                continue
            c.print(f"{_STEP_ICON[r.state]} {escape(r.step.name)} [dim]({command}, {r.duration_ms}ms)[/dim]")
            if r.state == StepState.FAILED:
                c.print(f"   [red]{escape(r.error or 'failed')}[/red]")
                if r.stderr_tail:
                    c.print(f"   Error output: {escape(r.stderr_tail.strip())}")

        c.rule(style="dim")
        if summary.passed:
            c.print("[bold green]🎉 All steps passed[/bold green]")
        else:
            c.print("[bold red]❌ Pipeline failed[/bold red]")
            c.print("🔧 Fix the failing step and re-run")
        return exit_code(summary)

    # ── Misc ────────────────────────────────────────────────────────────

    def render_environment(self, cfg: Settings) -> None:
        c = self.console
        c.print("\n🌍 Environment:")
        c.print(f"   NODE_ENV: {escape(cfg.node_env or 'not set')}")
        c.print(f"   PORT: {cfg.port}")
        c.print(f"   Platform: {sys.platform}")
        c.print(f"   Python version: {platform.python_version()}")

    def render_json(self, summary: Union[RunSummary, PipelineSummary]) -> int:
        self.console.print_json(json.dumps(summary.to_dict(), default=str))
        return exit_code(summary)
