"""Fixtures running the deskframe aiohttp app in-process."""

from collections.abc import AsyncIterator
from typing import Any

import pytest
from aiohttp.test_utils import TestClient, TestServer

from deskframe.api.server import build_context, make_app


@pytest.fixture
def server_config() -> dict[str, Any]:
    return {"refresh_ms": 3000, "bulk_frame_limit": 20, "max_upload_bytes": 2 * 1024 * 1024}


@pytest.fixture
async def client(server_config: dict[str, Any]) -> AsyncIterator[TestClient]:
    context = build_context(server_config)
    app = make_app(server_config, context)
    async with TestClient(TestServer(app)) as test_client:
        yield test_client
