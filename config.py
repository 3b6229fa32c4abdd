"""Config management for workspace-mcp-server.

Values come from, in increasing precedence: built-in defaults, the JSON
config file, environment variables (a ``.env`` file is honoured), and
explicit overrides such as CLI flags.
"""
import json
import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".workspace-mcp"
CONFIG_FILE = CONFIG_DIR / "config.json"

AUTH_MODES = ("oauth", "static", "none")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

DEFAULTS = {
    "host": "0.0.0.0",
    "port": 9876,
    "workspace_path": ".",
    "public_scheme": "https",
    "auth_mode": "oauth",
    "session_ttl": 600,
    "access_token_ttl": 3600,
    "sweep_interval": 60,
    "log_level": "INFO",
    "log_format": "plain",
}

# Config key -> environment variable
ENV_VARS = {
    "host": "MCP_HOST",
    "port": "MCP_PORT",
    "workspace_path": "WORKSPACE_PATH",
    "public_fqdn": "CLOUDFLARED_TUNNEL_DOMAIN",
    "public_scheme": "PUBLIC_SCHEME",
    "auth_mode": "AUTH_MODE",
    "auth_token": "WORKSPACE_MCP_AUTH_TOKEN",
    "session_ttl": "OAUTH_SESSION_TTL",
    "access_token_ttl": "OAUTH_ACCESS_TOKEN_TTL",
    "sweep_interval": "OAUTH_SWEEP_INTERVAL",
    "log_level": "LOG_LEVEL",
    "log_format": "LOG_FORMAT",
    "log_file": "LOG_FILE",
}


class Config:
    """Configuration container."""

    def __init__(self, data: dict = None):
        self.data = dict(DEFAULTS)
        self.data.update(data or {})

    @property
    def host(self) -> str:
        return self.data["host"]

    @property
    def port(self) -> int:
        return int(self.data["port"])

    @property
    def workspace_path(self) -> str:
        return self.data["workspace_path"]

    @property
    def public_fqdn(self) -> str:
        """Public host (and port) clients reach us on, e.g. a Cloudflare tunnel domain."""
        return self.data.get("public_fqdn") or f"{self.host}:{self.port}"

    @property
    def public_url(self) -> str:
        return f"{self.data['public_scheme']}://{self.public_fqdn}"

    @property
    def auth_mode(self) -> str:
        return str(self.data["auth_mode"]).lower()

    @property
    def auth_token(self) -> Optional[str]:
        return self.data.get("auth_token")

    @property
    def session_ttl(self) -> int:
        return int(self.data["session_ttl"])

    @property
    def access_token_ttl(self) -> int:
        return int(self.data["access_token_ttl"])

    @property
    def sweep_interval(self) -> float:
        return float(self.data["sweep_interval"])

    @property
    def log_level(self) -> str:
        return str(self.data["log_level"]).upper()

    @property
    def log_format(self) -> str:
        return str(self.data["log_format"]).lower()

    @property
    def log_file(self) -> Optional[str]:
        return self.data.get("log_file")

    def is_valid(self) -> bool:
        """Check that the auth and logging settings are usable."""
        if self.log_level not in LOG_LEVELS:
            return False
        if self.auth_mode not in AUTH_MODES:
            return False
        if self.auth_mode == "static" and not self.auth_token:
            return False
        return True


def load_env() -> None:
    """Load environment: .env (local override) or .env.public (bundled defaults)."""
    env_file = Path(".env")
    if env_file.exists():
        load_dotenv(env_file)
        return
    public_env = Path(__file__).parent / ".env.public"
    if public_env.exists():
        load_dotenv(public_env)


def read_config_file(path: Path = CONFIG_FILE) -> dict:
    """Read the JSON config file, returning {} if missing or unreadable."""
    if not path.exists():
        return {}

    try:
        with open(path, "r") as f:
            data = json.load(f)
    except (json.JSONDecodeError, IOError) as e:
        logger.warning(f"[CONFIG] Ignoring unreadable config file {path}: {e}")
        return {}

    if not isinstance(data, dict):
        logger.warning(f"[CONFIG] Ignoring config file {path}: expected a JSON object")
        return {}
    return {key: value for key, value in data.items() if key in ENV_VARS}


def read_env(environ=None) -> dict:
    environ = os.environ if environ is None else environ
    return {key: environ[var] for key, var in ENV_VARS.items() if environ.get(var)}


def load_config(overrides: dict = None, config_file: Path = CONFIG_FILE, environ=None) -> Config:
    """Build the effective config. ``None`` values in ``overrides`` are ignored."""
    if environ is None:
        load_env()

    data = read_config_file(config_file)
    data.update(read_env(environ))
    data.update({key: value for key, value in (overrides or {}).items() if value is not None})
    return Config(data)
