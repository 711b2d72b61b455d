"""Runtime configuration for the crawl stream client.

Configuration via environment variables (a `.env` file at the project root is
loaded first when present):

- CRAWL_API_BASE_URL (default: http://localhost:8000/api)
- CRAWL_EVENTS_PATH (default: /events)
- CRAWL_RECONNECT_DELAY_MS (default: 5000)
- CRAWL_HTTP_TIMEOUT seconds (default: 30)
- CRAWL_LOG_LEVEL (default: INFO)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional

DEFAULT_BASE_URL = "http://localhost:8000/api"
DEFAULT_EVENTS_PATH = "/events"
DEFAULT_RECONNECT_DELAY_MS = 5000
DEFAULT_HTTP_TIMEOUT = 30.0


@dataclass(frozen=True)
class Settings:
    api_base_url: str
    events_path: str
    reconnect_delay_ms: int
    http_timeout: float
    log_level: str

    @property
    def events_url(self) -> str:
        return self.api_base_url.rstrip("/") + "/" + self.events_path.lstrip("/")

    @property
    def reconnect_delay(self) -> float:
        return self.reconnect_delay_ms / 1000.0


def _load_env_from_file(env_path: Optional[str] = None) -> None:
    """Load KEY=VALUE pairs from a .env file into os.environ.

    Only sets variables that aren't already present in the process environment.
    """
    if env_path is None:
        root_dir = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
        env_path = os.path.join(root_dir, ".env")
    if not os.path.isfile(env_path):
        return
    try:
        with open(env_path, "r", encoding="utf-8") as f:
            for line in f:
                s = line.strip()
                if not s or s.startswith("#") or "=" not in s:
                    continue
                key, val = s.split("=", 1)
                key = key.strip()
                val = val.strip().strip('"').strip("'")
                if key and not os.environ.get(key):
                    os.environ[key] = val
    except OSError:
        # best-effort, like the process environment itself
        logging.getLogger(__name__).warning("Could not read %s", env_path)


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer number of milliseconds, got {raw!r}") from None
    if value < 0:
        raise RuntimeError(f"{name} must not be negative, got {value}")
    return value


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be a number of seconds, got {raw!r}") from None
    if value <= 0:
        raise RuntimeError(f"{name} must be positive, got {value}")
    return value


def get_settings(*, env_path: Optional[str] = None) -> Settings:
    """Read settings from the environment, loading .env if necessary and applying defaults."""
    _load_env_from_file(env_path)
    return Settings(
        api_base_url=os.getenv("CRAWL_API_BASE_URL") or DEFAULT_BASE_URL,
        events_path=os.getenv("CRAWL_EVENTS_PATH") or DEFAULT_EVENTS_PATH,
        reconnect_delay_ms=_int_env("CRAWL_RECONNECT_DELAY_MS", DEFAULT_RECONNECT_DELAY_MS),
        http_timeout=_float_env("CRAWL_HTTP_TIMEOUT", DEFAULT_HTTP_TIMEOUT),
        log_level=(os.getenv("CRAWL_LOG_LEVEL") or "INFO").upper(),
    )


def configure_logging(settings: Optional[Settings] = None) -> None:
    settings = settings or get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
