"""Status and health endpoints."""

from __future__ import annotations

import logging
from typing import Any

logger = logging.getLogger(__name__)


def register_system_routes(app: Any, state: Any, health_tracker: Any) -> None:
    """Register status and health routes.

    Args:
        app: aiohttp web application
        state: DisplayStateService
        health_tracker: HealthTracker instance
    """
    from aiohttp import web

    async def health_check(_request: Any) -> Any:
        """Health check endpoint; 503 while degraded."""
        snapshot = await state.snapshot()
        status = health_tracker.get_health_status(snapshot.frame_count, snapshot.mode.value)
        body = {
            "status": status.status,
            "server_status": {"uptime_s": status.uptime_seconds, "pid": status.pid},
            "display_status": {
                "mode": status.mode,
                "frame_count": status.frame_count,
                "last_publish_age_s": status.last_publish_age_seconds,
                "last_publish_kind": health_tracker.last_publish_kind,
                "device_polls": status.device_polls,
            },
            "background_tasks": status.background_tasks,
        }
        http_status = 200 if status.status == "ok" else 503
        return web.json_response(body, status=http_status)

    async def status(_request: Any) -> Any:
        snapshot = await state.snapshot()
        return web.json_response(snapshot.to_dict())

    app.router.add_get("/api/health", health_check)
    app.router.add_get("/api/status", status)

    logger.debug("System routes registered")
