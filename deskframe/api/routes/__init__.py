"""Route modules for the deskframe server."""

from .content_routes import register_content_routes
from .device_routes import register_device_routes
from .system_routes import register_system_routes

__all__ = [
    "register_content_routes",
    "register_device_routes",
    "register_system_routes",
]
