"""Authenticated API smoke checks.

Bearer tokens are either passed in or signed locally from an explicitly
supplied secret; nothing here carries default credentials.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import httpx
import jwt

from .models import Check
from .remote import RemoteProbe

TOKEN_ALGORITHM = "HS256"
TOKEN_EXPIRY_DAYS = 30


def sign_token(secret: str, user_id: str | int, expiry_days: int = TOKEN_EXPIRY_DAYS) -> str:
    """Create a bearer token the way the app server signs its sessions."""
    if not secret:
        raise ValueError("JWT secret is required to sign a token")
    if isinstance(user_id, str) and user_id.isdigit():
        user_id = int(user_id)
    payload = {
        "id": user_id,
        "iat": datetime.now(timezone.utc),
        "exp": datetime.now(timezone.utc) + timedelta(days=expiry_days),
    }
    return jwt.encode(payload, secret, algorithm=TOKEN_ALGORITHM)


def auth_checks(
    base_url: str,
    token: str = "",
    symbol: str = "BTC",
    email: str = "",
    password: str = "",
    timeout_ms: int = 5_000,
    transport: httpx.AsyncBaseTransport | None = None,
) -> list[Check]:
    """Authenticated data endpoints, plus a login round-trip when credentials are given."""
    headers = {"Content-Type": "application/json"}
    if token:
        headers["Authorization"] = f"Bearer {token}"
    symbol = symbol.upper()

    checks: list[Check] = []
    if email and password:
        login = RemoteProbe(
            base_url, "/api/auth/login", method="POST", timeout_ms=timeout_ms,
            json_body={"email": email, "password": password},
            authenticated=True, expect_success=True, transport=transport,
        )
        checks.append(login.as_check("Login", "Verify the account exists and the password is correct"))

    accounts = RemoteProbe(
        base_url, f"/api/social-sentiment/recommended-accounts/{symbol}",
        timeout_ms=timeout_ms, headers=headers,
        authenticated=True, expect_success=True, transport=transport,
    )
    summary = RemoteProbe(
        base_url, f"/api/social-sentiment/sentiment-summary/{symbol}",
        timeout_ms=timeout_ms, headers=headers, params={"timeframe": "24h"},
        authenticated=True, expect_success=True, transport=transport,
    )
    fix = "Supply a valid token (--token) or JWT_SECRET with --user-id"
    checks.append(accounts.as_check(f"Recommended accounts ({symbol})", fix))
    checks.append(summary.as_check(f"Sentiment summary ({symbol})", fix))
    return checks
