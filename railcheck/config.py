from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Central configuration loaded from environment / .env file."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    # Local service the health probes target when no explicit target is given
    host: str = "0.0.0.0"
    port: int = 5001

    # Environment mode, used for display and logging only
    node_env: str = ""

    # Deployed app (e.g. my-app.up.railway.app) for deployment verification
    railway_url: str = ""

    # Secret used to sign bearer tokens for the auth smoke test.
    # No default: tokens are only signed when this is supplied.
    jwt_secret: str = ""

    # Project checkout the filesystem checks and build pipeline run in
    railcheck_root: str = "."

    # Remote probes
    probe_timeout_ms: int = 5_000
    deploy_timeout_ms: int = 10_000

    # Logging
    log_level: str = "WARNING"

    @property
    def project_root(self) -> Path:
        return Path(self.railcheck_root).resolve()

    def local_target(self) -> str:
        """Base URL of the locally running service built from HOST/PORT."""
        host = "localhost" if self.host in ("0.0.0.0", "") else self.host
        return f"http://{host}:{self.port}"


settings = Settings()
