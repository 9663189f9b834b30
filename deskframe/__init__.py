"""deskframe - frame server for small monochrome desk displays.

This package compiles uploaded media and generated content into 1-bit frames
and serves them to display clients over a small HTTP protocol. Imports are
kept light so the package can be inspected without aiohttp or Pillow loaded.
"""

__version__ = "0.1.0"

from typing import Optional


def _init_logging(level_name: Optional[str]) -> None:
    """Initialize root logging to stream to console.

    Sets a default formatter and level so that import-time errors and early
    startup messages are visible. Honors DESKFRAME_DEBUG (truthy values:
    "1", "true", "yes", "on") which forces DEBUG verbosity.
    """
    import logging
    import os
    import sys

    debug_env = os.environ.get("DESKFRAME_DEBUG", "")
    if isinstance(debug_env, str) and debug_env.strip().lower() in ("1", "true", "yes", "on"):
        level_name = "DEBUG"

    root = logging.getLogger()
    # Only configure a handler if none is present to avoid duplicate output.
    if not root.handlers:
        handler = logging.StreamHandler(stream=sys.stderr)
        try:
            from colorlog import ColoredFormatter  # type: ignore[import-not-found]

            # HH:MM:SS  LEVEL   logger.name: message (only the level is colorized)
            fmt = "%(asctime)s %(log_color)s%(levelname)-7s%(reset)s %(name)s: %(message)s"
            log_colors = {
                "DEBUG": "cyan",
                "INFO": "green",
                "WARNING": "yellow",
                "ERROR": "red",
                "CRITICAL": "bold_red",
            }
            formatter = ColoredFormatter(fmt, datefmt="%H:%M:%S", log_colors=log_colors)
        except Exception:
            fmt = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"
            formatter = logging.Formatter(fmt, datefmt="%H:%M:%S")

        handler.setFormatter(formatter)
        root.addHandler(handler)

    level = logging.INFO
    if isinstance(level_name, str):
        level = getattr(logging, level_name.upper(), logging.INFO)
        if not isinstance(level, int):
            level = logging.INFO
    root.setLevel(level)
    logging.getLogger(__name__).debug(
        "Logging initialized at level %s", logging.getLevelName(level)
    )


def run_server(args: Optional[object] = None) -> None:
    """Start the deskframe server.

    Args:
        args: Optional command line namespace with --port, --host, --max-upload-mb
            and --timezone overrides.

    Behavior:
    - Initialize console logging early using DESKFRAME_LOG_LEVEL (env) if present.
    - Build configuration from .env and environment variables.
    - Apply command line overrides, then block in start_server() until shutdown.
    """
    import os

    _init_logging(os.environ.get("DESKFRAME_LOG_LEVEL"))

    import importlib
    import logging
    import traceback

    logger = logging.getLogger(__name__)

    try:
        server = importlib.import_module("deskframe.api.server")
    except Exception as exc:
        tb = "".join(traceback.format_exception(exc.__class__, exc, exc.__traceback__))
        logger.exception("Failed to import deskframe.api.server")
        raise RuntimeError(f"deskframe server could not be loaded:\n{tb}") from exc

    from deskframe.core.config_manager import ConfigManager

    cfg = ConfigManager().load_full_config()

    if args is not None:
        overrides = {
            "server_port": getattr(args, "port", None),
            "server_bind": getattr(args, "host", None),
            "timezone": getattr(args, "timezone", None),
        }
        for key, value in overrides.items():
            if value is not None:
                cfg[key] = value
                logger.debug("Applied command line override: %s=%r", key, value)

        max_upload_mb = getattr(args, "max_upload_mb", None)
        if max_upload_mb is not None:
            cfg["max_upload_bytes"] = int(max_upload_mb) * 1024 * 1024

    cfg_level = cfg.get("log_level")
    if isinstance(cfg_level, str):
        logger.info("Applying configured log_level=%s", cfg_level)
        logging.getLogger().setLevel(getattr(logging, cfg_level.upper(), logging.INFO))

    logger.debug(
        "Resolved configuration (diagnostic): %s",
        {k: cfg.get(k) for k in ("server_bind", "server_port", "timezone", "log_level")},
    )

    # Blocks until SIGINT/SIGTERM.
    server.start_server(cfg)
