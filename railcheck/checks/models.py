"""Check models — the Check definition, its result, and the run summary.

A Check is a named predicate plus a remediation hint. The runner turns each
Check into a CheckResult; a RunSummary aggregates them in registry order.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

# A predicate answers "did this check pass?". Returning a mapping means
# "passed" and supplies details for display (file size, service name, ...).
PredicateResult = Union[bool, Mapping[str, Any]]
Predicate = Callable[[], Union[PredicateResult, Awaitable[PredicateResult]]]


# ── Error taxonomy ───────────────────────────────────────────────────────────


class ErrorKind(str, Enum):
    MISSING_ARTIFACT = "MissingArtifact"
    COMMAND_FAILURE = "CommandFailure"
    TIMEOUT = "Timeout"
    NETWORK_ERROR = "NetworkError"
    INVALID_RESPONSE = "InvalidResponse"
    AUTH_FAILURE = "AuthFailure"
    UNEXPECTED = "Unexpected"


class CheckError(Exception):
    """Raised by a predicate to fail its check with a categorized reason.

    ``detail`` carries raw diagnostic output (usually the server response
    body) that the reporter prints verbatim for manual diagnosis.
    """

    kind = ErrorKind.UNEXPECTED

    def __init__(self, message: str, detail: str | None = None) -> None:
        self.message = message
        self.detail = detail
        super().__init__(message)


class MissingArtifact(CheckError):
    kind = ErrorKind.MISSING_ARTIFACT


class CommandFailure(CheckError):
    kind = ErrorKind.COMMAND_FAILURE


class CheckTimeout(CheckError):
    kind = ErrorKind.TIMEOUT


class NetworkError(CheckError):
    kind = ErrorKind.NETWORK_ERROR


class InvalidResponse(CheckError):
    kind = ErrorKind.INVALID_RESPONSE


class AuthFailure(CheckError):
    """HTTP 4xx on an authenticated call."""

    kind = ErrorKind.AUTH_FAILURE

    def __init__(self, status_code: int, detail: str | None = None) -> None:
        self.status_code = status_code
        super().__init__(f"Authentication failed ({status_code})", detail)


# ── Models ───────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Check:
    """A single named pass/fail test with a remediation hint."""

    name: str
    predicate: Predicate = field(compare=False, repr=False)
    remediation: str = ""
    required: bool = True
    timeout_ms: int | None = None
    kind: str = "custom"  # file | dir | manifest | http | custom


@dataclass
class CheckResult:
    """Outcome of evaluating one Check."""

    check: Check
    passed: bool
    error: str | None = None
    kind: ErrorKind | None = None
    detail: str | None = None
    details: dict[str, Any] | None = None
    latency_ms: float = field(default=0.0, compare=False)

    @property
    def name(self) -> str:
        return self.check.name

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.check.name,
            "kind": self.check.kind,
            "required": self.check.required,
            "passed": self.passed,
            "error": self.error,
            "error_kind": self.kind.value if self.kind else None,
            "remediation": self.check.remediation if not self.passed else None,
            "detail": self.detail,
            "details": self.details,
            "latency_ms": self.latency_ms,
        }


@dataclass
class RunSummary:
    """Ordered results of one registry run."""

    results: list[CheckResult] = field(default_factory=list)

    @property
    def all_passed(self) -> bool:
        # Optional checks never flip the verdict
        return all(r.passed for r in self.results if r.check.required)

    @property
    def passed_count(self) -> int:
        return sum(1 for r in self.results if r.passed)

    @property
    def failed_count(self) -> int:
        return len(self.results) - self.passed_count

    @property
    def failed_required(self) -> list[CheckResult]:
        return [r for r in self.results if r.check.required and not r.passed]

    def to_dict(self) -> dict[str, Any]:
        return {
            "all_passed": self.all_passed,
            "passed": self.passed_count,
            "failed": self.failed_count,
            "total": len(self.results),
            "results": [r.to_dict() for r in self.results],
        }
