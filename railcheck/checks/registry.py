"""Check registry — ordered collection of checks, optionally loaded from YAML.

A checks file declares filesystem and HTTP checks plus an optional build
pipeline::

    checks:
      - name: Server build exists
        type: file
        path: server/dist/index.js
        fix: "Run: npm run build:server"
      - name: Health endpoint
        type: http
        path: /health
        required_keys: [status]
    pipeline:
      - name: Install dependencies
        command: npm install
        timeout_s: 120
"""

from __future__ import annotations

import logging
import shlex
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import httpx
import yaml

from ..pipeline.supervisor import PipelineStep
from .files import all_exist, dir_exists, file_exists, manifest_has_script
from .models import Check
from .remote import RemoteProbe

logger = logging.getLogger(__name__)


class CheckRegistry:
    """Ordered, name-unique sequence of checks for one invocation."""

    def __init__(self, checks: Iterable[Check] = ()) -> None:
        self._checks: list[Check] = []
        for c in checks:
            self.add(c)

    def add(self, check: Check) -> None:
        if self.get(check.name):
            raise ValueError(f"Duplicate check name: {check.name!r}")
        self._checks.append(check)

    def get(self, name: str) -> Check | None:
        return next((c for c in self._checks if c.name == name), None)

    @property
    def names(self) -> list[str]:
        return [c.name for c in self._checks]

    def __iter__(self) -> Iterator[Check]:
        return iter(self._checks)

    def __len__(self) -> int:
        return len(self._checks)


# ── Declarative checks file ──────────────────────────────────────────────────


@dataclass
class CheckDef:
    """Definition of a single check from a checks file."""

    name: str
    type: str  # file | files | dir | manifest_script | http
    path: str = ""
    paths: list[str] = field(default_factory=list)
    script: str = "start"
    fix: str = ""
    required: bool = True
    method: str = "GET"
    expected_status: int = 200
    required_keys: list[str] = field(default_factory=list)
    timeout_ms: int = 5_000


@dataclass
class CheckFile:
    checks: list[CheckDef] = field(default_factory=list)
    pipeline: list[PipelineStep] = field(default_factory=list)


def load_check_file(path: Path) -> CheckFile:
    """Parse a checks YAML file. Malformed entries are skipped with a warning."""
    result = CheckFile()
    if not path.exists():
        logger.warning("Checks file not found: %s", path)
        return result

    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        logger.error("Failed to parse %s: %s", path, e)
        return result
    if not isinstance(raw, dict):
        logger.error("Checks file %s must contain a mapping", path)
        return result

    for entry in raw.get("checks") or []:
        try:
            result.checks.append(_parse_check(entry))
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            logger.warning("Skipping malformed check entry: %s", e)

    for entry in raw.get("pipeline") or []:
        try:
            result.pipeline.append(_parse_step(entry))
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            logger.warning("Skipping malformed pipeline step: %s", e)

    logger.info(
        "Loaded %d checks and %d pipeline steps from %s",
        len(result.checks), len(result.pipeline), path,
    )
    return result


# Dispatcher
CHECK_BUILDERS = {
    "file": lambda d, root, url, t: file_exists(root, d.path, d.name, d.fix, d.required),
    "files": lambda d, root, url, t: all_exist(root, d.paths, d.name, d.fix, d.required),
    "dir": lambda d, root, url, t: dir_exists(root, d.path, d.name, d.fix, d.required),
    "manifest_script": lambda d, root, url, t: manifest_has_script(
        root, d.script, d.name, d.fix, d.path or "package.json", d.required,
    ),
    "http": lambda d, root, url, t: _http_check(d, url, t),
}


def build_check(
    defn: CheckDef,
    root: Path,
    base_url: str = "",
    transport: httpx.AsyncBaseTransport | None = None,
) -> Check:
    builder = CHECK_BUILDERS.get(defn.type)
    if not builder:
        raise ValueError(f"Unknown check type: {defn.type}")
    return builder(defn, root, base_url, transport)


def registry_from_file(
    path: Path,
    root: Path,
    base_url: str = "",
    transport: httpx.AsyncBaseTransport | None = None,
) -> CheckRegistry:
    """Build a registry from a checks file; raises when it declares no usable checks."""
    _require_file(path)
    checks = load_check_file(path).checks
    if not checks:
        raise ValueError(f"No valid checks declared in {path}")
    return CheckRegistry(build_check(d, root, base_url, transport) for d in checks)


def pipeline_from_file(path: Path) -> list[PipelineStep]:
    """Pipeline steps declared in a checks file; raises when there are none."""
    _require_file(path)
    steps = load_check_file(path).pipeline
    if not steps:
        raise ValueError(f"No valid pipeline steps declared in {path}")
    return steps


def _require_file(path: Path) -> None:
    if not path.is_file():
        raise FileNotFoundError(f"Checks file not found: {path}")


# ── Parsers ──────────────────────────────────────────────────────────────────

_NEEDS_PATH = ("file", "dir", "http")


def _parse_check(raw: dict[str, Any]) -> CheckDef:
    check_type = raw.get("type", "file")
    if check_type not in CHECK_BUILDERS:
        raise ValueError(f"unknown check type {check_type!r}")
    path = raw.get("path") or ""
    paths = list(raw.get("paths") or [])
    if check_type in _NEEDS_PATH and not path:
        raise ValueError(f"{check_type} check {raw.get('name')!r} has no path")
    if check_type == "files" and not paths:
        raise ValueError(f"files check {raw.get('name')!r} has no paths")
    return CheckDef(
        name=raw["name"],
        type=check_type,
        path=path,
        paths=paths,
        script=raw.get("script", "start"),
        fix=raw.get("fix", ""),
        required=bool(raw.get("required", True)),
        method=raw.get("method", "GET"),
        expected_status=int(raw.get("expected_status", 200)),
        required_keys=list(raw.get("required_keys") or []),
        timeout_ms=int(raw.get("timeout_ms", 5_000)),
    )


def _parse_step(raw: dict[str, Any]) -> PipelineStep:
    command = raw["command"]
    if isinstance(command, str):
        command = shlex.split(command)
    if not command:
        raise ValueError(f"step {raw.get('name')!r} has an empty command")
    return PipelineStep(
        name=raw.get("name", command[0]),
        command=tuple(str(c) for c in command),
        timeout_s=float(raw.get("timeout_s", 120)),
    )


def _http_check(defn: CheckDef, base_url: str, transport: httpx.AsyncBaseTransport | None) -> Check:
    if not base_url:
        raise ValueError(f"HTTP check {defn.name!r} needs a target URL")
    probe = RemoteProbe(
        base_url,
        defn.path or "/",
        method=defn.method,
        timeout_ms=defn.timeout_ms,
        expected_status=defn.expected_status,
        required_keys=tuple(defn.required_keys),
        display_keys=tuple(defn.required_keys),
        transport=transport,
    )
    return probe.as_check(defn.name, defn.fix, defn.required)
