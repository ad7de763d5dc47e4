"""
Publisher configuration.

All settings are fixed at construction time. from_env() reads:

    SIDECAR_DIRECTORY:       Watched directory (required)
    SIDECAR_ENDPOINT:        Collection endpoint URL (required)
    SIDECAR_FLUSH_INTERVAL:  Seconds between flush cycles (default 2.0)
    SIDECAR_TIMEOUT:         HTTP request timeout in seconds (default 10.0)
"""

import math
import os
from dataclasses import dataclass
from urllib.parse import urlparse

from .delivery import DEFAULT_TIMEOUT
from .errors import ConfigError

DEFAULT_FLUSH_INTERVAL = 2.0


@dataclass(frozen=True)
class PublisherConfig:
    """Settings for one publisher instance."""

    directory: str
    endpoint: str
    flush_interval: float = DEFAULT_FLUSH_INTERVAL  # Seconds between ticks
    timeout: float = DEFAULT_TIMEOUT  # Bounds each POST and so shutdown latency

    def __post_init__(self):
        if not self.directory:
            raise ConfigError("directory is required")
        parsed = urlparse(self.endpoint or "")
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ConfigError(f"endpoint must be an http(s) URL, got {self.endpoint!r}")
        for name in ("flush_interval", "timeout"):
            value = getattr(self, name)
            if not math.isfinite(value) or value <= 0:
                raise ConfigError(f"{name} must be a positive finite number, got {value}")


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from e


def from_env(
    directory: str | None = None,
    endpoint: str | None = None,
    flush_interval: float | None = None,
    timeout: float | None = None,
) -> PublisherConfig:
    """
    Build a PublisherConfig from environment variables.

    Explicit arguments take precedence over the environment.

    Raises:
        ConfigError: a required value is missing or a value is malformed.
    """
    directory = directory or os.environ.get("SIDECAR_DIRECTORY")
    endpoint = endpoint or os.environ.get("SIDECAR_ENDPOINT")

    if not directory:
        raise ConfigError("directory required or set SIDECAR_DIRECTORY")
    if not endpoint:
        raise ConfigError("endpoint required or set SIDECAR_ENDPOINT")

    if flush_interval is None:
        flush_interval = _env_float("SIDECAR_FLUSH_INTERVAL", DEFAULT_FLUSH_INTERVAL)
    if timeout is None:
        timeout = _env_float("SIDECAR_TIMEOUT", DEFAULT_TIMEOUT)

    return PublisherConfig(
        directory=directory,
        endpoint=endpoint,
        flush_interval=flush_interval,
        timeout=timeout,
    )
