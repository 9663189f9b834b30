"""Configuration for the display client.

Loaded from environment variables, using the same DESKFRAME_* prefix as the
server.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from urllib.parse import urlsplit


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    return float(raw) if raw not in (None, "") else default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    return int(raw) if raw not in (None, "") else default


@dataclass
class Config:
    """Display client configuration.

    Intervals are in seconds.
    """

    # Display
    display_width: int = 128
    display_height: int = 64
    display_scale: int = 4  # pygame pixels per panel pixel
    display_driver: str = "pygame"  # "pygame" or "null"

    # Server
    backend_url: str = "http://localhost:8080"
    api_timeout: float = 5.0

    # Playback
    poll_interval: float = 3.0  # used when a frame carries no duration
    min_poll_interval: float = 0.5
    playback_recheck_interval: float = 30.0
    failure_threshold: int = 3

    # Backoff
    backoff_base: float = 1.0
    backoff_factor: float = 2.0
    backoff_ceiling: float = 30.0

    # Link monitoring
    link_check_interval: float = 5.0
    link_timeout: float = 2.0

    # Beacon
    beacon_interval: float = 0.1

    # Logging
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> Config:
        """Load configuration from environment variables.

        Environment Variables:
            DESKFRAME_BACKEND_URL - Server URL
            DESKFRAME_DISPLAY - Display driver ("pygame" or "null")
            DESKFRAME_DISPLAY_SCALE - Window pixels per panel pixel
            DESKFRAME_API_TIMEOUT - Per-request timeout in seconds
            DESKFRAME_POLL_INTERVAL - Fallback poll interval in seconds
            DESKFRAME_RECHECK_INTERVAL - Seconds between re-checks during local playback
            DESKFRAME_FAILURE_THRESHOLD - Consecutive failures before backing off
            DESKFRAME_BACKOFF_CEILING - Maximum backoff delay in seconds
            DESKFRAME_LINK_CHECK_INTERVAL - Seconds between link checks
            DESKFRAME_LOG_LEVEL - Logging level (DEBUG, INFO, WARNING, ERROR)

        Returns:
            Config instance with values from environment
        """
        backend_url = os.getenv("DESKFRAME_BACKEND_URL", "http://localhost:8080").rstrip("/")

        return cls(
            display_driver=os.getenv("DESKFRAME_DISPLAY", "pygame").lower(),
            display_scale=_env_int("DESKFRAME_DISPLAY_SCALE", 4),
            backend_url=backend_url,
            api_timeout=_env_float("DESKFRAME_API_TIMEOUT", 5.0),
            poll_interval=_env_float("DESKFRAME_POLL_INTERVAL", 3.0),
            playback_recheck_interval=_env_float("DESKFRAME_RECHECK_INTERVAL", 30.0),
            failure_threshold=_env_int("DESKFRAME_FAILURE_THRESHOLD", 3),
            backoff_ceiling=_env_float("DESKFRAME_BACKOFF_CEILING", 30.0),
            link_check_interval=_env_float("DESKFRAME_LINK_CHECK_INTERVAL", 5.0),
            log_level=os.getenv("DESKFRAME_LOG_LEVEL", "INFO").upper(),
        )

    def get_api_endpoint(self, path: str) -> str:
        """Get full API endpoint URL.

        Args:
            path: API path (e.g., "/frame/current")

        Returns:
            Full URL (e.g., "http://localhost:8080/frame/current")
        """
        if not path.startswith("/"):
            path = "/" + path
        return f"{self.backend_url}{path}"

    def backend_address(self) -> tuple[str, int]:
        """Host and TCP port of the backend, used for link checks."""
        parts = urlsplit(self.backend_url)
        host = parts.hostname or "localhost"
        port = parts.port or (443 if parts.scheme == "https" else 80)
        return host, port
