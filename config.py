"""Config management for readwise-mcp-server.

Everything comes from the process environment. A local .env file, when
present, is loaded first so development setups don't need exported vars.
"""
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


ENV_FILE = Path(".env")

REQUIRED_KEYS = ("READWISE_API_KEY", "OAUTH_CLIENT_ID", "OAUTH_CLIENT_SECRET")

_TRUTHY = {"1", "true", "yes", "on"}


class Config:
    """Configuration container."""

    def __init__(self, data: dict = None):
        self.data = data or {}

    @property
    def readwise_api_key(self) -> Optional[str]:
        return self.data.get("READWISE_API_KEY")

    @property
    def client_id(self) -> Optional[str]:
        return self.data.get("OAUTH_CLIENT_ID")

    @property
    def client_secret(self) -> Optional[str]:
        return self.data.get("OAUTH_CLIENT_SECRET")

    @property
    def host(self) -> str:
        return self.data.get("HOST") or "0.0.0.0"

    @property
    def port(self) -> int:
        return int(self.data.get("PORT") or 3000)

    @property
    def server_url(self) -> str:
        url = self.data.get("SERVER_URL") or f"http://localhost:{self.port}"
        return url.rstrip("/")

    @property
    def log_level(self) -> str:
        return (self.data.get("LOG_LEVEL") or "INFO").upper()

    @property
    def log_json(self) -> bool:
        return (self.data.get("LOG_FORMAT") or "plain").lower() == "json"

    @property
    def upstream_timeout(self) -> float:
        return float(self.data.get("READWISE_TIMEOUT") or 30)

    @property
    def sweep_interval(self) -> float:
        return float(self.data.get("TOKEN_SWEEP_INTERVAL") or 300)

    @property
    def bind_refresh_tokens(self) -> bool:
        return (self.data.get("OAUTH_BIND_REFRESH_TOKENS") or "").lower() in _TRUTHY

    def missing(self) -> list[str]:
        """Names of required settings that are unset or empty."""
        return [key for key in REQUIRED_KEYS if not self.data.get(key)]

    def is_valid(self) -> bool:
        """Check if config has required fields."""
        return not self.missing()


def load_config(env: dict = None) -> Config:
    """Load config from the environment (or from ``env`` when given)."""
    if env is not None:
        return Config(dict(env))

    if ENV_FILE.exists():
        load_dotenv(ENV_FILE)

    return Config(dict(os.environ))
