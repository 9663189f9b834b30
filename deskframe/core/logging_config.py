"""Central logging configuration for deskframe.

Quiets verbose third-party loggers (aiohttp access logs, Pillow plugin
probing) while keeping deskframe's own INFO/DEBUG output readable, and tags
every record with the current request id.
"""

import logging
import os
from typing import Optional


class CorrelationIdFilter(logging.Filter):
    """Add the current request id to all log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        """Add correlation ID to log record.

        Args:
            record: Log record to enhance

        Returns:
            True to allow record to be logged
        """
        # Imported here to avoid a cycle with the api package.
        from deskframe.api.middleware.correlation_id import get_request_id

        record.request_id = get_request_id()
        return True


def configure_logging(debug_mode: bool = False, force_debug: Optional[bool] = None) -> None:
    """Configure logger levels for deskframe.

    Args:
        debug_mode: Whether to enable debug logging for deskframe modules
        force_debug: Override debug mode setting (None to use env var detection)

    Environment Variables:
        DESKFRAME_DEBUG: Set to '1', 'true', 'yes' to force debug logging
        DESKFRAME_LOG_LEVEL: Override root log level (DEBUG, INFO, WARNING, ERROR)
    """
    env_debug = os.getenv("DESKFRAME_DEBUG", "").lower() in ("1", "true", "yes")
    env_log_level = os.getenv("DESKFRAME_LOG_LEVEL", "").upper()

    if force_debug is not None:
        final_debug = force_debug
    elif env_debug:
        final_debug = True
    else:
        final_debug = debug_mode

    root_level = logging.DEBUG if final_debug else logging.INFO
    if env_log_level in ("DEBUG", "INFO", "WARNING", "ERROR"):
        root_level = getattr(logging, env_log_level)

    # Preserve the colorized handler installed by deskframe._init_logging.
    root_logger = logging.getLogger()
    root_logger.setLevel(root_level)

    correlation_filter = CorrelationIdFilter()

    if not root_logger.handlers:
        handler = logging.StreamHandler()
        handler.setLevel(root_level)
        formatter = logging.Formatter(
            "[%(asctime)s] [%(request_id)s] %(levelname)s - %(name)s - %(message)s"
        )
        handler.setFormatter(formatter)
        handler.addFilter(correlation_filter)
        root_logger.addHandler(handler)
    else:
        for existing_handler in root_logger.handlers:
            if not any(isinstance(f, CorrelationIdFilter) for f in existing_handler.filters):
                existing_handler.addFilter(correlation_filter)

    logger_config: dict[str, int] = {
        "aiohttp.access": logging.WARNING,
        "aiohttp.server": logging.WARNING,
        "aiohttp.web": logging.INFO,
        "aiohttp.web_log": logging.WARNING,
        "asyncio": logging.WARNING,
        "multipart": logging.WARNING,
        "PIL": logging.INFO,
        "PIL.PngImagePlugin": logging.WARNING,
    }

    deskframe_level = logging.DEBUG if final_debug else logging.INFO
    for name in ("deskframe", "deskframe.api", "deskframe.domain", "deskframe.core"):
        logger_config[name] = deskframe_level

    for logger_name, level in logger_config.items():
        logging.getLogger(logger_name).setLevel(level)

    logging.getLogger(__name__).debug(
        "Logging configured: root=%s deskframe=%s",
        logging.getLevelName(root_level),
        logging.getLevelName(deskframe_level),
    )
