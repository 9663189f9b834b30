"""Device protocol endpoints: single-frame polling and bulk sequence fetch."""

from __future__ import annotations

import logging
from typing import Any

logger = logging.getLogger(__name__)

_NO_CACHE = {"Cache-Control": "no-store"}


def register_device_routes(app: Any, state: Any) -> None:
    """Register the endpoints polled by display clients.

    Args:
        app: aiohttp web application
        state: DisplayStateService holding the current content
    """
    from aiohttp import web

    async def frame_current(_request: Any) -> Any:
        """Current frame with the isGifMode hint and device settings."""
        payload = await state.current_frame_payload()
        return web.json_response(payload, headers=_NO_CACHE)

    async def frame_next(_request: Any) -> Any:
        """Advance the rotation index, then return that frame."""
        payload = await state.step_frame_payload(1)
        return web.json_response(payload, headers=_NO_CACHE)

    async def frame_sequence(_request: Any) -> Any:
        """Full animation for local playback, or frameCount 0 when not animating."""
        payload = await state.sequence_payload()
        logger.debug(
            "Sequence fetch: isGifMode=%s frameCount=%d",
            payload["isGifMode"],
            payload["frameCount"],
        )
        return web.json_response(payload, headers=_NO_CACHE)

    app.router.add_get("/frame/current", frame_current)
    app.router.add_get("/frame/next", frame_next)
    app.router.add_get("/frame/sequence", frame_sequence)
    app.router.add_get("/api/gif/full", frame_sequence)

    logger.debug("Device routes registered")
