"""Remote probes — checks whose predicate is an HTTP request.

A probe issues one request with its own timeout and validates the status
code and JSON body shape. Transport failures are raised as categorized
CheckErrors so the runner records them as data, never as crashes.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlsplit

import httpx

from .models import AuthFailure, Check, CheckTimeout, InvalidResponse, NetworkError

logger = logging.getLogger(__name__)

USER_AGENT = "Railway-Deployment-Verifier/1.0"
_LOCAL_HOSTS = ("localhost", "127.0.0.1", "0.0.0.0")


def resolve_target(target: str) -> str:
    """Normalize a host or URL into a base URL.

    Bare local hosts get ``http://``, anything else ``https://``; an explicit
    scheme is kept as given.
    """
    target = target.strip().rstrip("/")
    if not target:
        raise ValueError("Empty target")
    if "://" in target:
        return target
    host = urlsplit(f"//{target}").hostname or ""
    scheme = "http" if host in _LOCAL_HOSTS else "https"
    return f"{scheme}://{target}"


@dataclass
class ProbeResponse:
    status_code: int
    body: str
    json: Any = None


@dataclass
class RemoteProbe:
    """One HTTP request plus the rules that decide whether it passed."""

    base_url: str
    path: str = "/"
    method: str = "GET"
    timeout_ms: int = 5_000
    expected_status: int = 200
    required_keys: tuple[str, ...] = ()
    display_keys: tuple[str, ...] = ()
    headers: dict[str, str] = field(default_factory=dict)
    params: dict[str, str] | None = None
    json_body: Any = None
    authenticated: bool = False
    expect_success: bool = False
    summarize: Callable[[dict[str, Any]], dict[str, Any]] | None = field(default=None, repr=False)
    transport: httpx.AsyncBaseTransport | None = field(default=None, repr=False)

    @property
    def url(self) -> str:
        return f"{self.base_url.rstrip('/')}/{self.path.lstrip('/')}"

    async def fetch(self) -> ProbeResponse:
        """Perform the request, mapping transport failures to CheckErrors."""
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_ms / 1000,
                follow_redirects=True,
                transport=self.transport,
                trust_env=self.transport is None,
            ) as client:
                resp = await client.request(
                    self.method,
                    self.url,
                    headers=self.headers,
                    params=self.params,
                    json=self.json_body,
                )
        except httpx.TimeoutException:
            raise CheckTimeout(f"Request timed out ({self.timeout_ms}ms)")
        except httpx.TransportError as e:
            raise NetworkError(f"Connection error: {e}")

        try:
            data = resp.json()
        except ValueError:
            data = None
        logger.debug("%s %s -> %d", self.method, self.url, resp.status_code)
        return ProbeResponse(status_code=resp.status_code, body=resp.text, json=data)

    async def check(self) -> dict[str, Any]:
        """Predicate: fetch and validate, returning display details on success."""
        resp = await self.fetch()

        if self.authenticated and 400 <= resp.status_code < 500:
            raise AuthFailure(resp.status_code, resp.body)
        if resp.status_code != self.expected_status:
            raise InvalidResponse(
                f"Expected {self.expected_status}, got {resp.status_code}", resp.body,
            )
        if resp.json is None:
            raise InvalidResponse("Response is not valid JSON", resp.body)

        body = resp.json if isinstance(resp.json, dict) else {}
        if self.required_keys:
            missing = [k for k in self.required_keys if k not in body]
            if missing:
                raise InvalidResponse(f"Response missing keys: {', '.join(missing)}", resp.body)
        if self.expect_success:
            if body.get("success") is not True:
                raise InvalidResponse("Response success flag is not true", resp.body)
            if "data" not in body:
                raise InvalidResponse("Response has no data payload", resp.body)

        details: dict[str, Any] = {"status_code": resp.status_code}
        details.update({k: body[k] for k in self.display_keys if k in body})
        if self.summarize:
            details.update(self.summarize(body))
        return details

    def as_check(self, name: str, remediation: str = "", required: bool = True) -> Check:
        return Check(
            name=name,
            predicate=self.check,
            remediation=remediation or f"Verify the service is reachable at {self.url}",
            required=required,
            timeout_ms=self.timeout_ms,
            kind="http",
        )


# ── Built-in registries ──────────────────────────────────────────────────────


def health_checks(
    base_url: str,
    timeout_ms: int = 5_000,
    transport: httpx.AsyncBaseTransport | None = None,
) -> list[Check]:
    """Root and /health probes against a running service."""
    root = RemoteProbe(
        base_url, "/", timeout_ms=timeout_ms,
        required_keys=("service", "status", "ready"),
        display_keys=("service", "status", "ready"),
        transport=transport,
    )
    health = RemoteProbe(
        base_url, "/health", timeout_ms=timeout_ms,
        required_keys=("status",),
        display_keys=("status", "env", "ready", "uptime"),
        transport=transport,
    )
    return [
        root.as_check("Root endpoint", "Check the server started and binds HOST/PORT"),
        health.as_check("Health endpoint", "Check server logs — /health must return JSON with a status field"),
    ]


def dashboard_summary(body: dict[str, Any]) -> dict[str, Any]:
    """Asset count and real-data flag from the dashboard payload."""
    data = body.get("data")
    if not isinstance(data, dict):
        data = {}
    return {
        "assets": len(data.get("assets") or []),
        "has_real_data": bool(data.get("hasRealData", False)),
    }


def deployment_checks(
    base_url: str,
    timeout_ms: int = 10_000,
    transport: httpx.AsyncBaseTransport | None = None,
) -> list[Check]:
    """Post-deploy verification of the public endpoints."""
    headers = {"User-Agent": USER_AGENT}

    def probe(path: str, display: tuple[str, ...] = (), summarize=None) -> RemoteProbe:  # type: ignore[no-untyped-def]
        return RemoteProbe(
            base_url, path, timeout_ms=timeout_ms, headers=headers,
            display_keys=display, summarize=summarize, transport=transport,
        )

    return [
        probe("/", ("service", "status", "ready")).as_check(
            "Root Health Check", "Check the deploy logs on the hosting dashboard",
        ),
        probe("/health", ("env", "ready", "uptime")).as_check(
            "Health Endpoint", "Check the platform health check path is /health",
        ),
        probe("/api/dashboard/data", ("success",), dashboard_summary).as_check(
            "Dashboard API", "Check database connectivity and server environment variables",
        ),
        probe("/api/auth/twitter/config-status", ("available",)).as_check(
            "Twitter OAuth Status", "Twitter OAuth credentials are not configured", required=False,
        ),
    ]
