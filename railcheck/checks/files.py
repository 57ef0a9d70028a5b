"""Filesystem checks — build artifacts, config files, manifest scripts.

Each factory binds its paths to an explicit project root so predicates
never depend on the process working directory.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from .models import Check, InvalidResponse, MissingArtifact

logger = logging.getLogger(__name__)


# ── Predicate factories ──────────────────────────────────────────────────────


def file_exists(
    root: Path,
    rel_path: str,
    name: str,
    remediation: str = "",
    required: bool = True,
) -> Check:
    """Check that a file exists; reports its size on success."""
    path = root / rel_path

    def predicate() -> dict[str, Any] | bool:
        if not path.is_file():
            return False
        return {"path": rel_path, "size_kb": round(path.stat().st_size / 1024, 1)}

    return Check(
        name=name,
        predicate=predicate,
        remediation=remediation or f"Missing at {rel_path}",
        required=required,
        kind="file",
    )


def all_exist(
    root: Path,
    rel_paths: list[str],
    name: str,
    remediation: str = "",
    required: bool = True,
) -> Check:
    """Check that every listed path exists (files or directories)."""
    if not rel_paths:
        raise ValueError(f"{name!r} lists no paths to check")
    paths = [(p, root / p) for p in rel_paths]

    def predicate() -> bool:
        missing = [rel for rel, full in paths if not full.exists()]
        if missing:
            logger.debug("%s: missing %s", name, ", ".join(missing))
        return not missing

    return Check(
        name=name,
        predicate=predicate,
        remediation=remediation or f"Missing: {', '.join(rel_paths)}",
        required=required,
        kind="files",
    )


def dir_exists(
    root: Path,
    rel_path: str,
    name: str,
    remediation: str = "",
    required: bool = True,
) -> Check:
    path = root / rel_path
    return Check(
        name=name,
        predicate=path.is_dir,
        remediation=remediation or f"Directory missing: {rel_path}",
        required=required,
        kind="dir",
    )


def read_manifest(path: Path) -> dict[str, Any]:
    """Load a JSON package manifest, raising categorized errors."""
    if not path.is_file():
        raise MissingArtifact(f"{path.name} not found")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise InvalidResponse(f"{path.name} is not valid JSON: {e}")
    if not isinstance(data, dict):
        raise InvalidResponse(f"{path.name} must contain a JSON object")
    return data


def manifest_has_script(
    root: Path,
    script: str = "start",
    name: str = "",
    remediation: str = "",
    manifest: str = "package.json",
    required: bool = True,
) -> Check:
    """Check that the manifest defines a non-empty ``scripts.<script>`` entry."""
    path = root / manifest

    def predicate() -> bool:
        scripts = read_manifest(path).get("scripts")
        return isinstance(scripts, dict) and bool(scripts.get(script))

    return Check(
        name=name or f"{manifest} has {script} script",
        predicate=predicate,
        remediation=remediation or f"Add {script} script to {manifest}",
        required=required,
        kind="manifest",
    )


# ── Built-in registries ──────────────────────────────────────────────────────


def readiness_checks(root: Path) -> list[Check]:
    """Pre-deploy readiness: artifacts built, platform config and start script present."""
    return [
        file_exists(root, "server/dist/index.js", "Server build exists", "Run: npm run build:server"),
        file_exists(root, "client/dist/index.html", "Client build exists", "Run: npm run build:client"),
        all_exist(root, ["railway.toml", "nixpacks.toml"], "Railway config exists", "Railway config files missing"),
        file_exists(root, "server.js", "Server.js exists", "server.js missing"),
        manifest_has_script(
            root, "start",
            name="Package.json has start script",
            remediation="Add start script to package.json",
        ),
    ]


BUILD_ARTIFACTS: list[tuple[str, str]] = [
    ("Server compiled", "server/dist/index.js"),
    ("Client built", "client/dist/index.html"),
    ("Server package.json", "server/package.json"),
    ("Client package.json", "client/package.json"),
    ("Root package.json", "package.json"),
    ("Main server.js", "server.js"),
]

DEPENDENCY_DIRS: list[tuple[str, str]] = [
    ("Server node_modules", "server/node_modules"),
    ("Client node_modules", "client/node_modules"),
]


def build_artifact_checks(root: Path) -> list[Check]:
    """Post-build verification: compiled output and manifests, plus installed deps."""
    checks = [
        file_exists(root, rel, name, f"Missing at {rel} — run: npm run build")
        for name, rel in BUILD_ARTIFACTS
    ]
    # Dependency directories are informational only
    checks.extend(
        dir_exists(root, rel, name, "Run: npm install", required=False)
        for name, rel in DEPENDENCY_DIRS
    )
    return checks
