"""Session and transport configuration.

Defaults match a stock Janus install. Every field can be overridden from the
environment (call load_env() first to pick up a .env file).
"""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass
from pathlib import Path


def _parse_bool(value: object, default: bool = False) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return default
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


def _parse_seconds(value: str | None, default: float | None) -> float | None:
    """Parse a duration; empty, "0" and "none" disable it."""
    if value is None:
        return default
    value = value.strip().lower()
    if value in {"", "none", "off"}:
        return None
    seconds = float(value)
    return seconds if seconds > 0 else None


def _parse_int(value: str | None) -> int | None:
    if value is None or not value.strip():
        return None
    return int(value)


def load_env(env_path: Path | None = None) -> None:
    """Load .env file into os.environ. Handles quoted values and spaces."""
    if env_path is None:
        env_path = Path.cwd() / ".env"

    if not env_path.exists():
        return

    for line in env_path.read_text().splitlines():
        line = line.strip()
        if line and not line.startswith("#") and "=" in line:
            key, val = line.split("=", 1)
            val = val.strip().strip('"').strip("'")
            os.environ[key.strip()] = val


@dataclass(frozen=True)
class SessionOptions:
    verbose: bool = False

    # Per-transaction timeout. None/0 = wait forever.
    timeout_s: float | None = 10.0

    # Quiet period before a keepalive is sent. None/0 = no keepalives.
    keepalive_s: float | None = 30.0

    # Consecutive keepalive failures tolerated before the session is disposed.
    # None/0 = unlimited.
    keepalive_retries: int | None = None

    # Drop (rather than warn about) messages for other sessions on a shared
    # transport.
    multi_session: bool = False

    apisecret: str | None = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class TransportConfig:
    ws_url: str
    http_url: str
    max_events: int
    http_timeout_s: float | None


def get_session_options(**overrides) -> SessionOptions:
    defaults = SessionOptions()
    options = SessionOptions(
        verbose=_parse_bool(os.getenv("JANUS_VERBOSE"), defaults.verbose),
        timeout_s=_parse_seconds(os.getenv("JANUS_TIMEOUT_S"), defaults.timeout_s),
        keepalive_s=_parse_seconds(os.getenv("JANUS_KEEPALIVE_S"), defaults.keepalive_s),
        keepalive_retries=_parse_int(os.getenv("JANUS_KEEPALIVE_RETRIES")),
        multi_session=_parse_bool(os.getenv("JANUS_MULTI_SESSION"), defaults.multi_session),
        apisecret=(os.getenv("JANUS_APISECRET") or "").strip() or None,
    )
    if overrides:
        options = SessionOptions(**{**options.to_dict(), **overrides})
    return options


def get_transport_config() -> TransportConfig:
    ws_url = (os.getenv("JANUS_WS_URL") or "ws://127.0.0.1:8188").strip()
    http_url = (os.getenv("JANUS_HTTP_URL") or "http://127.0.0.1:8088/janus").strip()
    return TransportConfig(
        ws_url=ws_url,
        http_url=http_url.rstrip("/"),
        max_events=max(1, int(os.getenv("JANUS_MAX_EVENTS", "10"))),
        http_timeout_s=_parse_seconds(os.getenv("JANUS_HTTP_TIMEOUT_S"), 60.0),
    )
