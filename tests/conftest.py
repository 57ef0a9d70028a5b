"""Shared test fixtures."""

from __future__ import annotations

import asyncio
import json
from io import StringIO
from pathlib import Path

import httpx
import jwt
import pytest
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from rich.console import Console

from railcheck.config import Settings
from railcheck.report import Reporter

TEST_SECRET = "test-signing-secret"
BASE_URL = "http://testserver"


# ── Project tree ─────────────────────────────────────────────────────────────


def write_project(root: Path, scripts: dict[str, str] | None = None) -> Path:
    """Lay out a deployable project: built server + client, platform config, manifests."""
    files = {
        "server/dist/index.js": "module.exports = {};\n",
        "client/dist/index.html": "<!doctype html><div id=root></div>\n",
        "server/package.json": json.dumps({"name": "server", "version": "1.0.0"}),
        "client/package.json": json.dumps({"name": "client", "version": "1.0.0"}),
        "railway.toml": "[deploy]\nhealthcheckPath = \"/health\"\n",
        "nixpacks.toml": "[start]\ncmd = \"npm start\"\n",
        "server.js": "require('./server/dist/index.js');\n",
    }
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")

    manifest = {
        "name": "crypto-intel-engine",
        "version": "1.0.0",
        "scripts": {"start": "node railway-start.js"} if scripts is None else scripts,
    }
    (root / "package.json").write_text(json.dumps(manifest), encoding="utf-8")
    return root


@pytest.fixture
def project_root(tmp_path: Path) -> Path:
    return write_project(tmp_path)


@pytest.fixture
def cfg(tmp_path: Path) -> Settings:
    return Settings(_env_file=None, railcheck_root=str(tmp_path), jwt_secret=TEST_SECRET)


# ── Fake deployed service ────────────────────────────────────────────────────


def create_fake_app() -> FastAPI:
    """Stand-in for the deployed web app, served in-process via ASGITransport."""
    app = FastAPI()
    app.state.health_delay = 0.0
    app.state.twitter_status = 200

    def _authorized(request: Request) -> bool:
        header = request.headers.get("Authorization", "")
        if not header.startswith("Bearer "):
            return False
        try:
            jwt.decode(header[len("Bearer "):], TEST_SECRET, algorithms=["HS256"])
        except jwt.InvalidTokenError:
            return False
        return True

    def _denied() -> JSONResponse:
        return JSONResponse(
            status_code=401,
            content={"success": False, "message": "Not authorized, no token"},
        )

    @app.get("/")
    async def root() -> dict:
        return {"service": "crypto-intel-engine", "status": "running", "ready": True}

    @app.get("/health")
    async def health(request: Request) -> dict:
        await asyncio.sleep(request.app.state.health_delay)
        return {"status": "healthy", "env": "production", "ready": True, "uptime": 42}

    @app.get("/api/dashboard/data")
    async def dashboard() -> dict:
        return {
            "success": True,
            "data": {"assets": [{"symbol": "BTC"}, {"symbol": "ETH"}], "hasRealData": True},
        }

    @app.get("/api/auth/twitter/config-status")
    async def twitter_status(request: Request) -> JSONResponse:
        code = request.app.state.twitter_status
        return JSONResponse(status_code=code, content={"available": code == 200})

    @app.get("/text")
    async def text() -> PlainTextResponse:
        return PlainTextResponse("<html>Application failed to respond</html>")

    @app.post("/api/auth/login")
    async def login(request: Request) -> JSONResponse:
        body = await request.json()
        if body.get("email") == "ops@example.com" and body.get("password") == "pa55":
            token = jwt.encode({"id": 7}, TEST_SECRET, algorithm="HS256")
            return JSONResponse({"success": True, "data": {"token": token}})
        return JSONResponse(status_code=401, content={"success": False, "message": "Invalid credentials"})

    @app.get("/api/social-sentiment/recommended-accounts/{symbol}")
    async def recommended(symbol: str, request: Request) -> JSONResponse:
        if not _authorized(request):
            return _denied()
        return JSONResponse({
            "success": True,
            "data": {"coin": symbol, "accounts": [{"id": 1, "twitterUsername": "example"}]},
        })

    @app.get("/api/social-sentiment/sentiment-summary/{symbol}")
    async def sentiment(symbol: str, request: Request) -> JSONResponse:
        if not _authorized(request):
            return _denied()
        timeframe = request.query_params.get("timeframe")
        return JSONResponse({"success": True, "data": {"coin": symbol, "timeframe": timeframe}})

    return app


@pytest.fixture
def fake_app() -> FastAPI:
    return create_fake_app()


@pytest.fixture
def transport(fake_app: FastAPI) -> httpx.ASGITransport:
    return httpx.ASGITransport(app=fake_app)


# ── Reporter capture ─────────────────────────────────────────────────────────


@pytest.fixture
def output() -> StringIO:
    return StringIO()


@pytest.fixture
def reporter(output: StringIO) -> Reporter:
    return Reporter(Console(file=output, width=200, color_system=None))


@pytest.fixture
def make_project():
    """Factory fixture: ``make_project(root, scripts=...)``."""
    return write_project
