"""Environment loading helpers for the remote service client."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from .errors import SessionConfigurationError

API_URL_VARS = ("ELEPAD_API_URL", "API_URL")
API_TOKEN_VARS = ("ELEPAD_API_TOKEN", "API_TOKEN")
API_TIMEOUT_VARS = ("ELEPAD_API_TIMEOUT_SEC",)
DEFAULT_TIMEOUT_SEC = 15.0

_DOTENV_LOADED = False


def load_dotenv(path: str | Path = ".env", force: bool = False) -> None:
    """Load environment variables from a .env file without overriding existing values."""
    global _DOTENV_LOADED
    if _DOTENV_LOADED and not force:
        return

    dotenv_path = Path(path)
    if not dotenv_path.exists():
        _DOTENV_LOADED = True
        return

    for raw_line in dotenv_path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[7:].strip()
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip()
        if value.startswith(("'", '"')) and value.endswith(("'", '"')) and len(value) >= 2:
            value = value[1:-1]
        os.environ.setdefault(key, value)

    _DOTENV_LOADED = True


def getenv_any(*names: str, default: str | None = None) -> str | None:
    """Return first defined env var from a list of candidate names."""
    load_dotenv()
    for name in names:
        value = os.getenv(name)
        if value:
            return value
    return default


@dataclass(frozen=True)
class ClientConfig:
    """Connection settings for the remote attempt service."""

    base_url: str
    token: str | None = None
    timeout_sec: float = DEFAULT_TIMEOUT_SEC

    def __post_init__(self) -> None:
        base_url = self.base_url.strip().rstrip("/")
        if not base_url.startswith(("http://", "https://")):
            raise SessionConfigurationError(f"API URL must be http(s): {self.base_url!r}")
        object.__setattr__(self, "base_url", base_url)
        if self.timeout_sec <= 0:
            raise SessionConfigurationError("API timeout must be positive.")

    @classmethod
    def from_env(cls) -> "ClientConfig | None":
        """Build the config from the environment; None means local-only play."""
        base_url = getenv_any(*API_URL_VARS)
        if base_url is None:
            return None
        raw_timeout = getenv_any(*API_TIMEOUT_VARS)
        try:
            timeout_sec = float(raw_timeout) if raw_timeout is not None else DEFAULT_TIMEOUT_SEC
        except ValueError as exc:
            raise SessionConfigurationError(f"Invalid API timeout: {raw_timeout!r}") from exc
        return cls(base_url=base_url, token=getenv_any(*API_TOKEN_VARS), timeout_sec=timeout_sec)
