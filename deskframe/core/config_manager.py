"""Configuration management for the deskframe server."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


def parse_env_file(path: Path) -> dict[str, str]:
    """Parse a .env file and return key-value pairs.

    Args:
        path: Path to .env file

    Returns:
        Dictionary of key-value pairs from the .env file.
        Empty dict if file doesn't exist or cannot be read.

    Note:
        - Skips empty lines and comments (lines starting with #)
        - Strips quotes (both single and double) from values
        - Handles KEY=VALUE format with optional whitespace
    """
    if not path.exists():
        return {}

    result: dict[str, str] = {}

    try:
        content = path.read_text(encoding="utf-8")
    except OSError:
        logger.debug("Failed to read .env file (continuing): %s", str(path), exc_info=True)
        return {}

    for raw_line in content.splitlines():
        line = raw_line.strip()

        if not line or line.startswith("#"):
            continue

        if "=" not in line:
            continue

        key, val = line.split("=", 1)
        key = key.strip()
        val = val.strip().strip('"').strip("'")

        if key:
            result[key] = val

    return result


# Defaults shared by the server and the route layer.
DEFAULT_SERVER_PORT = 8080
DEFAULT_REFRESH_MS = 3000
DEFAULT_MAX_UPLOAD_BYTES = 10 * 1024 * 1024
DEFAULT_BULK_FRAME_LIMIT = 20
DEFAULT_UPLOAD_MAX_FRAMES = 10
DEFAULT_ROTATION_INTERVAL_SECONDS = 1.0

# (env var, config key, converter)
_ENV_KEYS: tuple[tuple[str, str, Any], ...] = (
    ("DESKFRAME_HOST", "server_bind", str),
    ("DESKFRAME_PORT", "server_port", int),
    ("DESKFRAME_LOG_LEVEL", "log_level", str),
    ("DESKFRAME_TIMEZONE", "timezone", str),
    ("DESKFRAME_REFRESH_MS", "refresh_ms", int),
    ("DESKFRAME_MAX_UPLOAD_BYTES", "max_upload_bytes", int),
    ("DESKFRAME_BULK_FRAME_LIMIT", "bulk_frame_limit", int),
    ("DESKFRAME_UPLOAD_MAX_FRAMES", "upload_max_frames", int),
    ("DESKFRAME_ROTATION_INTERVAL", "rotation_interval_seconds", float),
)


class ConfigManager:
    """Manages application configuration from environment variables and .env files."""

    def __init__(self, env_file_path: Path | None = None):
        """Initialize configuration manager.

        Args:
            env_file_path: Optional path to .env file (defaults to .env in current directory)
        """
        self.env_file_path = env_file_path or Path.cwd() / ".env"

    def load_env_file(self) -> list[str]:
        """Load .env file and set environment variables.

        Only sets variables that are not already in the environment.

        Returns:
            List of environment variable keys that were loaded from .env file
        """
        if not self.env_file_path.exists():
            logger.debug("No .env file found at %s", self.env_file_path)
            return []

        parsed = parse_env_file(self.env_file_path)

        set_keys = []
        for key, val in parsed.items():
            if key not in os.environ:
                os.environ[key] = val
                set_keys.append(key)

        if set_keys:
            logger.debug("Loaded .env defaults for keys: %s", ", ".join(set_keys))

        return set_keys

    def build_config_from_env(self) -> dict[str, Any]:
        """Build configuration dictionary from environment variables.

        Recognizes:
        - DESKFRAME_HOST -> 'server_bind'
        - DESKFRAME_PORT -> 'server_port' (int)
        - DESKFRAME_LOG_LEVEL -> 'log_level'
        - DESKFRAME_DEBUG -> 'debug_logging' (bool)
        - DESKFRAME_TIMEZONE -> 'timezone' (IANA name for the clock producer)
        - DESKFRAME_REFRESH_MS -> 'refresh_ms' (poll hold handed to devices)
        - DESKFRAME_MAX_UPLOAD_BYTES -> 'max_upload_bytes'
        - DESKFRAME_BULK_FRAME_LIMIT -> 'bulk_frame_limit'
        - DESKFRAME_UPLOAD_MAX_FRAMES -> 'upload_max_frames' (default resample cap)
        - DESKFRAME_ROTATION_INTERVAL -> 'rotation_interval_seconds' (float)

        Invalid numeric values are logged and ignored.

        Returns:
            Configuration dictionary compatible with start_server
        """
        cfg: dict[str, Any] = {}

        for env_name, key, convert in _ENV_KEYS:
            raw = os.environ.get(env_name)
            if raw is None or raw == "":
                continue
            try:
                cfg[key] = convert(raw)
            except ValueError:
                logger.warning("Invalid %s=%r; ignoring", env_name, raw)

        debug_raw = os.environ.get("DESKFRAME_DEBUG", "")
        if debug_raw:
            cfg["debug_logging"] = debug_raw.strip().lower() in ("1", "true", "yes", "on")

        return cfg

    def load_full_config(self) -> dict[str, Any]:
        """Load .env defaults, then build the config dict from the environment.

        Returns:
            Complete configuration dictionary
        """
        self.load_env_file()
        return self.build_config_from_env()


def get_config_value(config: Any, key: str, default: Any = None) -> Any:
    """Read a config value from a dict or an attribute-style object.

    Args:
        config: Configuration dict or object
        key: Configuration key
        default: Value returned when the key is absent or None

    Returns:
        The configured value or the default
    """
    if isinstance(config, dict):
        value = config.get(key, default)
    else:
        value = getattr(config, key, default)
    return default if value is None else value
