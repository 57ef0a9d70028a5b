"""Entry point for the `railcheck` console script."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

import httpx
from rich.console import Console
from rich.markup import escape

from railcheck import __version__
from railcheck.checks.auth import auth_checks, sign_token
from railcheck.checks.files import build_artifact_checks, readiness_checks
from railcheck.checks.registry import CheckRegistry, pipeline_from_file, registry_from_file
from railcheck.checks.remote import deployment_checks, health_checks, resolve_target
from railcheck.checks.runner import CheckRunner
from railcheck.config import Settings, settings
from railcheck.pipeline.supervisor import DEFAULT_STEPS, BuildSupervisor
from railcheck.report import Reporter

logger = logging.getLogger(__name__)

console = Console()

# Optional httpx transport handed to every remote probe
Transport = httpx.AsyncBaseTransport | None


def _root(args: argparse.Namespace, cfg: Settings) -> Path:
    return Path(args.root).resolve() if args.root else cfg.project_root


def _finish(reporter: Reporter, args: argparse.Namespace, summary, **render_kwargs) -> int:  # type: ignore[no-untyped-def]
    if args.json:
        return reporter.render_json(summary)
    return reporter.render(summary, **render_kwargs)


# ── Commands ─────────────────────────────────────────────────────────────────


def cmd_ready(
    args: argparse.Namespace, cfg: Settings, reporter: Reporter, transport: Transport = None,
) -> int:
    """Pre-deploy readiness: build output, platform config, start script."""
    registry = CheckRegistry(readiness_checks(_root(args, cfg)))
    summary = CheckRunner().run_sync(registry)
    code = _finish(
        reporter, args, summary,
        title="Railway Deployment Readiness Check",
        ready_message="Ready for Railway deployment!",
    )
    if code == 0 and not args.json:
        reporter.console.print("\n📋 Health check endpoint: /health")
        reporter.console.print('📋 Expected response: {"status":"healthy",...}')
    return code


def cmd_verify_build(
    args: argparse.Namespace, cfg: Settings, reporter: Reporter, transport: Transport = None,
) -> int:
    """Post-build artifact verification."""
    registry = CheckRegistry(build_artifact_checks(_root(args, cfg)))
    summary = CheckRunner().run_sync(registry)
    code = _finish(
        reporter, args, summary,
        title="Build Verification",
        ready_message="All required build artifacts found!",
        not_ready_message="Build verification failed — run: npm run build",
    )
    if not args.json:
        reporter.render_environment(cfg)
    return code


def cmd_build(
    args: argparse.Namespace, cfg: Settings, reporter: Reporter, transport: Transport = None,
) -> int:
    """Clean, install, build and verify in sequence."""
    steps = pipeline_from_file(Path(args.file)) if args.file else list(DEFAULT_STEPS)
    summary = BuildSupervisor(steps, cwd=_root(args, cfg)).run_sync()
    if args.json:
        return reporter.render_json(summary)
    return reporter.render_pipeline(summary, title="Railway Deployment Quick Test")


def cmd_health(
    args: argparse.Namespace, cfg: Settings, reporter: Reporter, transport: Transport = None,
) -> int:
    """Probe / and /health on a running service."""
    base_url = resolve_target(args.target) if args.target else cfg.local_target()
    timeout_ms = args.timeout_ms or cfg.probe_timeout_ms
    logger.info("Health probe target: %s (env=%s)", base_url, cfg.node_env or "unset")
    summary = CheckRunner().run_sync(health_checks(base_url, timeout_ms, transport=transport))
    return _finish(
        reporter, args, summary,
        title=f"Health check: {base_url}",
        ready_message="All health checks passed!",
        not_ready_message="Health check tests failed",
    )


def cmd_verify_deploy(
    args: argparse.Namespace, cfg: Settings, reporter: Reporter, transport: Transport = None,
) -> int:
    """Verify the public endpoints of a deployed app."""
    target = args.target or cfg.railway_url
    base_url = resolve_target(target) if target else cfg.local_target()
    timeout_ms = args.timeout_ms or cfg.deploy_timeout_ms
    summary = CheckRunner().run_sync(deployment_checks(base_url, timeout_ms, transport=transport))
    return _finish(
        reporter, args, summary,
        title=f"Deployment verification: {base_url}",
        ready_message="Deployment is healthy.",
        not_ready_message="Some required checks failed. Deployment may have issues.",
    )


def cmd_auth_probe(
    args: argparse.Namespace, cfg: Settings, reporter: Reporter, transport: Transport = None,
) -> int:
    """Authenticated API smoke test."""
    base_url = resolve_target(args.target) if args.target else cfg.local_target()
    token = args.token
    if not token and args.user_id:
        token = sign_token(cfg.jwt_secret, args.user_id)
    if not token:
        logger.warning("No bearer token supplied — requests are sent unauthenticated")

    checks = auth_checks(
        base_url,
        token=token,
        symbol=args.symbol,
        email=args.email,
        password=args.password,
        timeout_ms=args.timeout_ms or cfg.probe_timeout_ms,
        transport=transport,
    )
    summary = CheckRunner().run_sync(checks)
    return _finish(
        reporter, args, summary,
        title=f"Auth smoke test: {base_url}",
        ready_message="Authenticated API calls succeeded",
        not_ready_message="Authenticated API calls failed",
    )


def cmd_run(
    args: argparse.Namespace, cfg: Settings, reporter: Reporter, transport: Transport = None,
) -> int:
    """Run the checks declared in a YAML file."""
    base_url = resolve_target(args.target) if args.target else cfg.local_target()
    registry = registry_from_file(Path(args.file), _root(args, cfg), base_url, transport)
    summary = CheckRunner(concurrent=not args.sequential).run_sync(registry)
    return _finish(reporter, args, summary, title=f"Checks: {args.file}")


# ── Parser ───────────────────────────────────────────────────────────────────


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="railcheck", description="Deployment readiness checks")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = parser.add_subparsers(dest="command")

    def add(name: str, handler, help_text: str) -> argparse.ArgumentParser:  # type: ignore[no-untyped-def]
        p = sub.add_parser(name, help=help_text)
        p.set_defaults(handler=handler)
        p.add_argument("--json", action="store_true", help="Print machine-readable JSON")
        return p

    p = add("ready", cmd_ready, "Check the project is ready to deploy")
    p.add_argument("--root", help="Project root (default: RAILCHECK_ROOT or CWD)")

    p = add("verify-build", cmd_verify_build, "Verify build artifacts exist")
    p.add_argument("--root", help="Project root (default: RAILCHECK_ROOT or CWD)")

    p = add("build", cmd_build, "Run the clean/install/build/verify pipeline")
    p.add_argument("--root", help="Project root (default: RAILCHECK_ROOT or CWD)")
    p.add_argument("--file", help="Checks file whose pipeline section replaces the default steps")

    for name, handler, help_text in (
        ("health", cmd_health, "Probe / and /health on a running service"),
        ("verify-deploy", cmd_verify_deploy, "Verify a deployed app's public endpoints"),
    ):
        p = add(name, handler, help_text)
        p.add_argument("target", nargs="?", help="Host or URL (default: HOST/PORT)")
        p.add_argument("--timeout-ms", type=int, default=0)

    p = add("auth-probe", cmd_auth_probe, "Smoke-test authenticated API endpoints")
    p.add_argument("target", nargs="?", help="Host or URL (default: HOST/PORT)")
    p.add_argument("--token", default="", help="Bearer token to send")
    p.add_argument("--user-id", default="", help="Sign a token for this user id with JWT_SECRET")
    p.add_argument("--email", default="", help="Also verify login with these credentials")
    p.add_argument("--password", default="")
    p.add_argument("--symbol", default="BTC")
    p.add_argument("--timeout-ms", type=int, default=0)

    p = add("run", cmd_run, "Run checks declared in a YAML file")
    p.add_argument("target", nargs="?", help="Base URL for http checks (default: HOST/PORT)")
    p.add_argument("--file", required=True, help="Checks YAML file")
    p.add_argument("--root", help="Project root for file checks")
    p.add_argument("--sequential", action="store_true", help="Evaluate checks one at a time")

    return parser


def main(
    argv: list[str] | None = None,
    cfg: Settings | None = None,
    transport: Transport = None,
) -> None:
    cfg = cfg or settings
    logging.basicConfig(
        level=getattr(logging, cfg.log_level.upper(), logging.WARNING),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )

    parser = build_parser()
    args = parser.parse_args(argv)
    if not getattr(args, "handler", None):
        parser.print_help()
        sys.exit(1)

    reporter = Reporter(console)
    try:
        code = args.handler(args, cfg, reporter, transport)
    except Exception as e:
        logger.debug("Unhandled error in %s", args.command, exc_info=True)
        console.print(f"[bold red]💥 {escape(f'{type(e).__name__}: {e}')}[/bold red]")
        code = 1
    sys.exit(code)


if __name__ == "__main__":
    main()
