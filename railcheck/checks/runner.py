"""Check runner — evaluates a registry and produces a RunSummary.

Checks are independent, so they are dispatched concurrently and joined
before reporting. Blocking predicates (filesystem stat, manifest reads) run
in a worker thread; async predicates (remote probes) are awaited directly.
Every outcome, including exceptions, becomes a CheckResult.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from collections.abc import Iterable, Mapping

from .models import Check, CheckError, CheckResult, ErrorKind, RunSummary

logger = logging.getLogger(__name__)


class CheckRunner:
    """Runs checks and collects their results in registry order."""

    def __init__(self, concurrent: bool = True, default_timeout_ms: int | None = None) -> None:
        self.concurrent = concurrent
        self.default_timeout_ms = default_timeout_ms

    async def run(self, checks: Iterable[Check]) -> RunSummary:
        """Evaluate every check and return the aggregate summary."""
        checks = list(checks)
        if self.concurrent:
            results = list(await asyncio.gather(*(self.evaluate(c) for c in checks)))
        else:
            results = [await self.evaluate(c) for c in checks]

        summary = RunSummary(results=results)
        logger.info(
            "Run complete: %d/%d passed (all required passed: %s)",
            summary.passed_count, len(results), summary.all_passed,
        )
        return summary

    def run_sync(self, checks: Iterable[Check]) -> RunSummary:
        """Blocking wrapper for CLI use."""
        return asyncio.run(self.run(checks))

    async def evaluate(self, check: Check) -> CheckResult:
        """Evaluate a single check. Never raises for check failures."""
        timeout_ms = check.timeout_ms or self.default_timeout_ms
        t0 = time.perf_counter()
        try:
            outcome = await self._call(check, timeout_ms)
        except asyncio.TimeoutError:
            result = CheckResult(
                check=check, passed=False,
                error=f"Timed out after {timeout_ms}ms", kind=ErrorKind.TIMEOUT,
            )
        except CheckError as e:
            result = CheckResult(
                check=check, passed=False,
                error=e.message, kind=e.kind, detail=e.detail,
            )
        except Exception as e:
            result = CheckResult(
                check=check, passed=False,
                error=f"{type(e).__name__}: {e}", kind=ErrorKind.UNEXPECTED,
            )
        else:
            if isinstance(outcome, Mapping):
                result = CheckResult(check=check, passed=True, details=dict(outcome))
            elif outcome:
                result = CheckResult(check=check, passed=True)
            else:
                result = CheckResult(check=check, passed=False, error=check.remediation)

        result.latency_ms = round((time.perf_counter() - t0) * 1000, 1)
        logger.debug(
            "Check %r: %s (%.1fms)%s",
            check.name, "pass" if result.passed else "fail", result.latency_ms,
            f" — {result.error}" if result.error else "",
        )
        return result

    async def _call(self, check: Check, timeout_ms: int | None) -> object:
        if timeout_ms is None:
            return await self._invoke(check)
        return await asyncio.wait_for(self._invoke(check), timeout=timeout_ms / 1000)

    @staticmethod
    async def _invoke(check: Check) -> object:
        if inspect.iscoroutinefunction(check.predicate):
            outcome = await check.predicate()
        else:
            outcome = await asyncio.to_thread(check.predicate)
        # Plain callables may still hand back a coroutine (lambdas, wrappers)
        if inspect.isawaitable(outcome):
            outcome = await outcome
        return outcome


def run_checks(checks: Iterable[Check], concurrent: bool = True) -> RunSummary:
    """Run checks to completion from synchronous code."""
    return CheckRunner(concurrent=concurrent).run_sync(checks)
