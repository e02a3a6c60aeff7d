"""Process-wide settings, resolved once at startup."""

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv

DEFAULT_BACKEND_URL = "http://localhost:8000"
DEFAULT_POLL_INTERVAL_SECONDS = 5.0


@dataclass(frozen=True)
class Settings:
    backend_url: str = DEFAULT_BACKEND_URL
    poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS
    http_timeout_seconds: Optional[float] = None
    log_level: str = "INFO"
    metrics_port: Optional[int] = None
    fluentd_host: Optional[str] = None
    fluentd_port: Optional[int] = None
    fluentd_tag: str = "chargetunis"

    @property
    def fluentd_enabled(self) -> bool:
        return self.fluentd_host is not None


def _optional(name: str, cast):
    raw = os.getenv(name)
    if raw is None or raw == "":
        return None
    try:
        return cast(raw)
    except ValueError:
        raise ValueError(f"Invalid value for {name}: {raw!r}") from None


def _parse_endpoint(endpoint: str) -> tuple[str, int]:
    if ":" not in endpoint:
        raise ValueError("FLUENTD_ENDPOINT must be in host:port format (e.g., localhost:24224)")
    host, port_str = endpoint.rsplit(":", 1)
    if not host:
        raise ValueError("FLUENTD_ENDPOINT host cannot be empty")
    try:
        return host, int(port_str)
    except ValueError:
        raise ValueError(f"Invalid port in FLUENTD_ENDPOINT: {endpoint}") from None


def load_settings() -> Settings:
    """Read settings from the environment (and a ``.env`` file if present)."""
    load_dotenv()

    poll_interval = _optional("POLL_INTERVAL_SECONDS", float)
    if poll_interval is not None and poll_interval <= 0:
        raise ValueError(f"Invalid value for POLL_INTERVAL_SECONDS: {poll_interval!r}")

    fluentd_host = None
    fluentd_port = None
    endpoint = os.getenv("FLUENTD_ENDPOINT")
    if endpoint:
        fluentd_host, fluentd_port = _parse_endpoint(endpoint)

    return Settings(
        backend_url=os.getenv("BACKEND_URL", DEFAULT_BACKEND_URL).rstrip("/"),
        poll_interval_seconds=poll_interval or DEFAULT_POLL_INTERVAL_SECONDS,
        http_timeout_seconds=_optional("HTTP_TIMEOUT_SECONDS", float),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        metrics_port=_optional("METRICS_PORT", int),
        fluentd_host=fluentd_host,
        fluentd_port=fluentd_port,
        fluentd_tag=os.getenv("FLUENTD_TAG", "chargetunis"),
    )


@lru_cache
def get_settings() -> Settings:
    return load_settings()
