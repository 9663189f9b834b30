"""Request correlation ID and error translation middleware.

Every request gets an id (taken from X-Request-ID / X-Correlation-ID or
generated) that is stored in a context variable for log records, echoed in
the response headers and used in the start/completion log lines.
"""

import logging
import time
import uuid
from collections.abc import Callable
from contextvars import ContextVar
from typing import Any

from aiohttp import web

from deskframe.core.exceptions import DeskFrameError

logger = logging.getLogger(__name__)

request_id_var: ContextVar[str] = ContextVar("request_id", default="")

CORRELATION_ID_KEY = web.RequestKey("correlation_id", str)


def json_error(message: str, status: int) -> web.Response:
    """JSON error body used by every endpoint: {"error": ..., "status": ...}."""
    return web.json_response({"error": message, "status": status}, status=status)


@web.middleware
async def correlation_id_middleware(
    request: web.Request, handler: Callable[[web.Request], Any]
) -> web.StreamResponse:
    """Attach a correlation ID to the request and log its start and completion.

    Args:
        request: aiohttp request object
        handler: Next handler in middleware chain

    Returns:
        Response with X-Request-ID header added
    """
    correlation_id = (
        request.headers.get("X-Request-ID")
        or request.headers.get("X-Correlation-ID")
        or uuid.uuid4().hex[:12]
    )
    token = request_id_var.set(correlation_id)
    request[CORRELATION_ID_KEY] = correlation_id

    started = time.monotonic()
    status = 500
    logger.debug("Started %s %s", request.method, request.path)
    try:
        response = await handler(request)
        status = response.status
        response.headers["X-Request-ID"] = correlation_id
        return response
    except web.HTTPException as exc:
        status = exc.status
        exc.headers["X-Request-ID"] = correlation_id
        raise
    finally:
        # Logged before the reset so the record still carries the request id
        logger.debug(
            "Completed %s %s -> %d in %.1fms",
            request.method,
            request.path,
            status,
            (time.monotonic() - started) * 1000,
        )
        request_id_var.reset(token)


@web.middleware
async def error_middleware(
    request: web.Request, handler: Callable[[web.Request], Any]
) -> web.StreamResponse:
    """Translate deskframe errors and aiohttp HTTP errors into JSON bodies."""
    try:
        return await handler(request)
    except DeskFrameError as exc:
        logger.warning("%s %s failed: %s", request.method, request.path, exc)
        return json_error(str(exc), exc.status_code)
    except web.HTTPRequestEntityTooLarge as exc:
        logger.warning("%s %s rejected: body too large", request.method, request.path)
        return json_error("upload too large", exc.status)
    except web.HTTPException as exc:
        if exc.status < 400:
            raise
        return json_error(exc.reason, exc.status)


def get_request_id() -> str:
    """Get current request correlation ID from context.

    Returns:
        Current request correlation ID, or "no-request-id" if not set
    """
    request_id = request_id_var.get()
    return request_id if request_id else "no-request-id"
