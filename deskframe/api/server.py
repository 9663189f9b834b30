"""deskframe.api.server - asyncio HTTP server for the frame protocol.

This module:
- builds the aiohttp application with the device, content and system routes
- owns one DisplayStateService, ContentCompiler and HealthTracker per server
- runs the producer rotation task that keeps clock/uptime frames current
- shuts down cleanly on SIGINT/SIGTERM
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import signal
from dataclasses import dataclass
from typing import Any

from deskframe.core.config_manager import (
    DEFAULT_BULK_FRAME_LIMIT,
    DEFAULT_MAX_UPLOAD_BYTES,
    DEFAULT_REFRESH_MS,
    DEFAULT_ROTATION_INTERVAL_SECONDS,
    DEFAULT_SERVER_PORT,
    DEFAULT_UPLOAD_MAX_FRAMES,
    get_config_value,
)
from deskframe.core.health_tracker import HealthTracker
from deskframe.core.logging_config import configure_logging
from deskframe.domain.compiler import ContentCompiler
from deskframe.domain.display_state import DisplayStateService
from deskframe.domain.models import DeviceSettings
from deskframe.domain.producers import ClockProducer, ProducerRotation, UptimeProducer

logger = logging.getLogger(__name__)

MAX_PORT_ATTEMPTS = 10


@dataclass
class ServerContext:
    """Objects shared by every route of one server instance."""

    state: DisplayStateService
    compiler: ContentCompiler
    rotation: ProducerRotation
    health_tracker: HealthTracker


def build_context(config: Any) -> ServerContext:
    """Create the per-server service objects from configuration."""
    health_tracker = HealthTracker()
    compiler = ContentCompiler(
        default_upload_cap=int(
            get_config_value(config, "upload_max_frames", DEFAULT_UPLOAD_MAX_FRAMES)
        )
    )
    settings = DeviceSettings(
        refresh_ms=int(get_config_value(config, "refresh_ms", DEFAULT_REFRESH_MS))
    )
    state = DisplayStateService(
        initial=compiler.boot_content(),
        settings=settings,
        bulk_frame_limit=int(
            get_config_value(config, "bulk_frame_limit", DEFAULT_BULK_FRAME_LIMIT)
        ),
        health_tracker=health_tracker,
    )
    rotation = ProducerRotation(
        producers=[
            ClockProducer(str(get_config_value(config, "timezone", "UTC"))),
            UptimeProducer(),
        ],
        compiler=compiler,
        interval=float(
            get_config_value(
                config, "rotation_interval_seconds", DEFAULT_ROTATION_INTERVAL_SECONDS
            )
        ),
        health_tracker=health_tracker,
    )
    return ServerContext(
        state=state, compiler=compiler, rotation=rotation, health_tracker=health_tracker
    )


def make_app(config: Any, context: ServerContext | None = None):  # type: ignore[no-untyped-def]
    """Create the aiohttp application with all routes wired to ``context``.

    aiohttp is imported lazily so the domain modules can be used without it.
    """
    from aiohttp import web

    from deskframe.api.middleware import correlation_id_middleware, error_middleware
    from deskframe.api.routes import (
        register_content_routes,
        register_device_routes,
        register_system_routes,
    )

    context = context or build_context(config)
    max_upload = int(get_config_value(config, "max_upload_bytes", DEFAULT_MAX_UPLOAD_BYTES))

    app = web.Application(
        middlewares=[correlation_id_middleware, error_middleware],
        client_max_size=max_upload,
    )
    app["context"] = context

    register_device_routes(app, context.state)
    register_content_routes(app, context.state, context.compiler, context.rotation)
    register_system_routes(app, context.state, context.health_tracker)

    async def _shutdown(_app: Any) -> None:
        logger.info("Application shutdown requested")

    app.on_shutdown.append(_shutdown)
    logger.debug("Web application created (max upload %d bytes)", max_upload)
    return app


async def _start_site(runner: Any, host: str, configured_port: int) -> int:
    """Start a TCP site on the configured port or the next free one."""
    from aiohttp import web

    for port_offset in range(MAX_PORT_ATTEMPTS):
        port = configured_port + port_offset
        site = web.TCPSite(runner, host=host, port=port)
        try:
            await site.start()
        except OSError as e:
            if "address already in use" not in str(e).lower():
                logger.exception("Failed to start server on %s:%d", host, port)
                raise
            logger.debug("Port %d in use, trying next port", port)
            continue
        if port != configured_port:
            logger.warning(
                "Configured port %d was in use, using port %d instead", configured_port, port
            )
        return port

    raise RuntimeError(
        f"No available port found in range {configured_port}-"
        f"{configured_port + MAX_PORT_ATTEMPTS - 1}"
    )


async def _serve(config: Any, external_stop_event: asyncio.Event | None = None) -> None:
    """Run the server and the producer rotation until signalled to stop.

    Args:
        config: Server configuration dict
        external_stop_event: Optional event to signal shutdown. If provided,
            signal handlers are not registered (caller owns signal handling).
    """
    from aiohttp import web

    stop_event = external_stop_event or asyncio.Event()
    context = build_context(config)
    app = make_app(config, context)

    runner = web.AppRunner(app)
    await runner.setup()

    host = str(get_config_value(config, "server_bind", "0.0.0.0"))  # nosec: B104
    configured_port = int(get_config_value(config, "server_port", DEFAULT_SERVER_PORT))
    port = await _start_site(runner, host, configured_port)
    logger.info("Server started on %s:%d (pid %d)", host, port, os.getpid())

    rotation_task = asyncio.create_task(context.rotation.run(context.state, stop_event))

    loop = asyncio.get_running_loop()
    if external_stop_event is None:

        def _on_signal() -> None:
            logger.info("Shutdown signal received")
            stop_event.set()

        for sig in (signal.SIGINT, signal.SIGTERM):
            with contextlib.suppress(NotImplementedError):
                loop.add_signal_handler(sig, _on_signal)
    else:
        logger.debug("Using external stop event - skipping signal handler registration")

    await stop_event.wait()
    logger.info(
        "Stop event received, shutting down after %ds",
        context.health_tracker.get_uptime_seconds(),
    )

    rotation_task.cancel()
    try:
        await rotation_task
    except asyncio.CancelledError:
        pass
    except Exception as e:
        logger.warning("Rotation task error during shutdown: %s", e)

    await runner.cleanup()
    logger.info("Server shutdown complete")


def start_server(config: Any) -> None:
    """Run the server, blocking until SIGINT/SIGTERM.

    Args:
        config: dict with optional keys:
            - server_bind: host to bind (str)
            - server_port: port (int)
            - timezone: IANA zone for the clock producer
            - refresh_ms: single-frame hold handed to devices
            - max_upload_bytes: largest accepted request body
            - bulk_frame_limit: frames per bulk response
            - upload_max_frames: default resample cap for uploads
            - rotation_interval_seconds: producer tick interval
            - debug_logging: enable debug logging for deskframe (bool)
    """
    configure_logging(debug_mode=bool(get_config_value(config, "debug_logging", False)))

    try:
        asyncio.run(_serve(config))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
