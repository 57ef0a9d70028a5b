"""Tests for token signing and the authenticated API smoke checks."""

from __future__ import annotations

from datetime import datetime, timezone

import httpx
import jwt
import pytest

from railcheck.checks.auth import TOKEN_ALGORITHM, auth_checks, sign_token
from railcheck.checks.models import ErrorKind
from railcheck.checks.runner import CheckRunner

BASE_URL = "http://testserver"
SECRET = "test-signing-secret"


# ── Token signing ────────────────────────────────────────────────────────────


class TestSignToken:
    def test_round_trip(self) -> None:
        token = sign_token(SECRET, "42")
        payload = jwt.decode(token, SECRET, algorithms=[TOKEN_ALGORITHM])
        assert payload["id"] == 42

    def test_non_numeric_id_kept_as_string(self) -> None:
        token = sign_token(SECRET, "a1b2")
        assert jwt.decode(token, SECRET, algorithms=[TOKEN_ALGORITHM])["id"] == "a1b2"

    def test_expiry_days(self) -> None:
        token = sign_token(SECRET, 1, expiry_days=30)
        payload = jwt.decode(token, SECRET, algorithms=[TOKEN_ALGORITHM])
        days = (datetime.fromtimestamp(payload["exp"], timezone.utc) - datetime.now(timezone.utc)).days
        assert 29 <= days <= 30

    def test_secret_required(self) -> None:
        with pytest.raises(ValueError, match="secret"):
            sign_token("", "1")

    def test_wrong_secret_rejected(self) -> None:
        token = sign_token("other-secret", "1")
        with pytest.raises(jwt.InvalidSignatureError):
            jwt.decode(token, SECRET, algorithms=[TOKEN_ALGORITHM])


# ── Authenticated endpoints ──────────────────────────────────────────────────


class TestAuthChecks:
    def test_check_names(self) -> None:
        names = [c.name for c in auth_checks(BASE_URL, symbol="eth")]
        assert names == ["Recommended accounts (ETH)", "Sentiment summary (ETH)"]

    def test_login_check_added_with_credentials(self) -> None:
        names = [c.name for c in auth_checks(BASE_URL, email="ops@example.com", password="pa55")]
        assert names[0] == "Login"

    @pytest.mark.asyncio
    async def test_missing_token_is_auth_failure(self, transport: httpx.ASGITransport) -> None:
        summary = await CheckRunner().run(auth_checks(BASE_URL, transport=transport))
        accounts = summary.results[0]

        assert not accounts.passed
        assert accounts.kind == ErrorKind.AUTH_FAILURE
        assert accounts.error == "Authentication failed (401)"
        assert "Not authorized" in accounts.detail
        assert not summary.all_passed

    @pytest.mark.asyncio
    async def test_forged_token_is_auth_failure(self, transport: httpx.ASGITransport) -> None:
        token = sign_token("not-the-server-secret", "1")
        summary = await CheckRunner().run(auth_checks(BASE_URL, token=token, transport=transport))
        assert all(r.kind == ErrorKind.AUTH_FAILURE for r in summary.results)

    @pytest.mark.asyncio
    async def test_valid_token_passes(self, transport: httpx.ASGITransport) -> None:
        token = sign_token(SECRET, "1")
        summary = await CheckRunner().run(auth_checks(BASE_URL, token=token, transport=transport))
        assert summary.all_passed

    @pytest.mark.asyncio
    async def test_summary_sends_timeframe(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"success": True, "data": {}})

        checks = auth_checks(BASE_URL, token="t", transport=httpx.MockTransport(handler))
        summary = await CheckRunner(concurrent=False).run(checks)
        assert summary.all_passed
        assert seen[1].url.params["timeframe"] == "24h"
        assert seen[0].headers["Authorization"] == "Bearer t"

    @pytest.mark.asyncio
    async def test_success_false_is_invalid_response(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"success": False, "message": "Coin not supported"})

        checks = auth_checks(BASE_URL, token="t", transport=httpx.MockTransport(handler))
        summary = await CheckRunner().run(checks)
        result = summary.results[0]
        assert result.kind == ErrorKind.INVALID_RESPONSE
        assert "Coin not supported" in result.detail

    @pytest.mark.asyncio
    async def test_login_round_trip(self, transport: httpx.ASGITransport) -> None:
        checks = auth_checks(
            BASE_URL, token=sign_token(SECRET, "7"),
            email="ops@example.com", password="pa55", transport=transport,
        )
        summary = await CheckRunner().run(checks)
        assert summary.all_passed

    @pytest.mark.asyncio
    async def test_bad_login(self, transport: httpx.ASGITransport) -> None:
        checks = auth_checks(BASE_URL, email="ops@example.com", password="wrong", transport=transport)
        summary = await CheckRunner().run(checks)
        login = summary.results[0]
        assert login.name == "Login"
        assert login.kind == ErrorKind.AUTH_FAILURE
        assert "Invalid credentials" in login.detail
