"""Middleware components for request processing."""

from .correlation_id import (
    CORRELATION_ID_KEY,
    correlation_id_middleware,
    error_middleware,
    get_request_id,
)

__all__ = ["CORRELATION_ID_KEY", "correlation_id_middleware", "error_middleware", "get_request_id"]
