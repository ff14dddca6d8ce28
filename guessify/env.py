"""Environment-variable helpers for local secrets."""

import os
from pathlib import Path

from .config import CLIENT_ID_ENV, CLIENT_SECRET_ENV
from .errors import ConfigurationError


def load_env_file(path: Path = Path(".env")) -> None:
    """Load simple KEY=VALUE pairs from a .env file into process env."""
    if not path.exists():
        return

    with path.open("r", encoding="utf-8") as env_file:
        for raw_line in env_file:
            line = raw_line.strip()
            # Skip comments, blank lines, and malformed rows.
            if not line or line.startswith("#") or "=" not in line:
                continue

            # Split once so values containing '=' are preserved.
            key, value = line.split("=", 1)
            # Real environment wins over the file.
            os.environ.setdefault(key.strip(), value.strip().strip("'\""))


def get_required_env(name: str) -> str:
    """Fetch a required environment variable or raise a clear error."""
    value = os.getenv(name)
    if not value:
        raise ConfigurationError(f"Missing required environment variable: {name}")
    return value


def read_client_credentials() -> tuple[str, str]:
    """Return the Spotify client id and secret from the environment."""
    return get_required_env(CLIENT_ID_ENV), get_required_env(CLIENT_SECRET_ENV)


def credential_presence() -> dict[str, str]:
    """Report which credentials are configured without exposing them."""
    return {
        "clientId": "Present" if os.getenv(CLIENT_ID_ENV) else "Missing",
        "clientSecret": "Present" if os.getenv(CLIENT_SECRET_ENV) else "Missing",
    }
