"""HTTP layer for deskframe: aiohttp application, middleware and routes."""
