"""Content endpoints: uploads, generated text, playback control and device settings.

Compilation errors are surfaced synchronously to the caller as JSON 4xx
responses; nothing reaches the display state unless it compiled cleanly.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from deskframe.core.exceptions import ContentValidationError
from deskframe.domain.models import (
    CustomRequest,
    MarqueeRequest,
    PlaybackMode,
    SettingsUpdate,
    TextRequest,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def _format_validation_error(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(p) for p in error.get("loc", ())) or "body"
        parts.append(f"{location}: {error.get('msg')}")
    return "; ".join(parts)


async def parse_body(request: Any, model: type[ModelT]) -> ModelT:
    """Decode a JSON body into ``model``.

    Raises:
        ContentValidationError: If the body is not JSON or fails validation
    """
    try:
        data = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ContentValidationError(f"invalid json: {exc}") from exc
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise ContentValidationError(_format_validation_error(exc)) from exc


def _parse_max_frames(raw: Any) -> int | None:
    if raw is None or raw == "":
        return None
    try:
        return int(str(raw).strip())
    except ValueError as exc:
        raise ContentValidationError(f"maxFrames must be an integer, got {raw!r}") from exc


def register_content_routes(app: Any, state: Any, compiler: Any, rotation: Any) -> None:
    """Register content and control routes.

    Args:
        app: aiohttp web application
        state: DisplayStateService receiving compiled content
        compiler: ContentCompiler used for every content request
        rotation: ProducerRotation whose latest output is restored on reset
    """
    from aiohttp import web

    async def upload(request: Any) -> Any:
        """Compile an uploaded image or animation (multipart field ``file``)."""
        form = await request.post()
        field = form.get("file")
        if field is None or not hasattr(field, "file"):
            raise ContentValidationError("multipart field 'file' is required")

        data = field.file.read()
        max_frames = _parse_max_frames(form.get("maxFrames"))

        # Decode and rasterize off the event loop.
        content = await asyncio.to_thread(
            compiler.compile_upload, data, max_frames, field.filename
        )
        await state.publish(content)

        body = content.summary()
        if content.mode is PlaybackMode.POLLING:
            element = content.frames[0].elements[0]
            body.update(
                {"bitmap": list(element.bitmap), "width": element.width, "height": element.height}
            )
        return web.json_response(body)

    async def custom_text(request: Any) -> Any:
        req = await parse_body(request, TextRequest)
        content = compiler.compile_text(req)
        await state.publish(content)
        return web.json_response(content.summary())

    async def custom_marquee(request: Any) -> Any:
        req = await parse_body(request, MarqueeRequest)
        content = await asyncio.to_thread(compiler.compile_marquee, req)
        await state.publish(content)
        return web.json_response(content.summary())

    async def custom(request: Any) -> Any:
        req = await parse_body(request, CustomRequest)
        content = compiler.compile_custom(req)
        await state.publish(content)
        return web.json_response(content.summary())

    async def control_next(_request: Any) -> Any:
        await state.step_frame_payload(1)
        snapshot = await state.snapshot()
        return web.json_response({"success": True, "index": snapshot.index})

    async def control_prev(_request: Any) -> Any:
        await state.step_frame_payload(-1)
        snapshot = await state.snapshot()
        return web.json_response({"success": True, "index": snapshot.index})

    async def reset(_request: Any) -> Any:
        """Leave custom content and restore default settings."""
        await state.reset(rotation.latest or compiler.boot_content())
        return web.json_response({"success": True})

    async def get_settings(_request: Any) -> Any:
        settings = await state.get_settings()
        return web.json_response(settings.device_fields())

    async def post_settings(request: Any) -> Any:
        update = await parse_body(request, SettingsUpdate)
        settings = await state.update_settings(update)
        return web.json_response(settings.device_fields())

    app.router.add_post("/api/upload", upload)
    app.router.add_post("/api/custom/text", custom_text)
    app.router.add_post("/api/custom/marquee", custom_marquee)
    app.router.add_post("/api/custom", custom)
    app.router.add_post("/api/control/next", control_next)
    app.router.add_post("/api/control/prev", control_prev)
    app.router.add_post("/api/reset", reset)
    app.router.add_get("/api/settings", get_settings)
    app.router.add_post("/api/settings", post_settings)

    logger.debug("Content routes registered")
