"""End-to-end tests: the display client playing content from a live server."""

from collections.abc import AsyncIterator, Callable

import aiohttp
import pytest
from aiohttp.test_utils import TestClient

from deskframe_client.api_client import DeviceAPIClient
from deskframe_client.config import Config
from deskframe_client.display import NullDisplay
from deskframe_client.engine import EngineState, PlaybackEngine
from deskframe_client.renderer import rotate_180

pytestmark = pytest.mark.integration


@pytest.fixture
async def device(client: TestClient) -> AsyncIterator[tuple[PlaybackEngine, NullDisplay]]:
    config = Config(
        backend_url=str(client.make_url("/")).rstrip("/"),
        display_driver="null",
        api_timeout=2.0,
    )
    source = DeviceAPIClient(config)
    display = NullDisplay(config)
    engine = PlaybackEngine(config, source, display)
    yield engine, display
    await source.close()


async def _upload(client: TestClient, data: bytes) -> None:
    form = aiohttp.FormData()
    form.add_field("file", data, filename="anim.gif")
    resp = await client.post("/api/upload", data=form)
    assert resp.status == 200


class TestDeviceProtocol:
    """The engine consuming real server responses."""

    async def test_engine_when_server_animates_then_frames_played_locally(
        self,
        client: TestClient,
        device: tuple[PlaybackEngine, NullDisplay],
        gif_factory: Callable[..., bytes],
    ) -> None:
        engine, display = device
        await _upload(client, gif_factory(frame_count=5, duration_ms=60))
        sequence = await (await client.get("/frame/sequence")).json()

        assert (await engine.step()).state is EngineState.BULK_FETCHING
        assert (await engine.step()).state is EngineState.LOCAL_PLAYBACK
        transition = await engine.step()

        assert engine.buffer.count == 5
        assert display.last == bytes(sequence["frames"][0]["elements"][0]["bitmap"])
        assert transition.wait == pytest.approx(0.06)

    async def test_engine_when_server_serves_text_then_polls_with_refresh_hold(
        self, client: TestClient, device: tuple[PlaybackEngine, NullDisplay]
    ) -> None:
        engine, display = device
        await client.post("/api/custom/text", json={"text": "HI"})

        await engine.step()
        assert (await engine.step()).state is EngineState.POLLING
        transition = await engine.step()

        assert transition.state is EngineState.POLLING
        assert transition.wait == pytest.approx(3.0)
        assert display.frames_shown == 1
        assert engine.buffer.is_empty

    async def test_engine_when_animation_published_during_polling_then_switches_to_bulk(
        self,
        client: TestClient,
        device: tuple[PlaybackEngine, NullDisplay],
        gif_factory: Callable[..., bytes],
    ) -> None:
        engine, _ = device
        await client.post("/api/custom/text", json={"text": "HI"})
        await engine.step()
        await engine.step()
        await engine.step()

        await _upload(client, gif_factory(frame_count=4))
        transition = await engine.step()

        assert transition.state is EngineState.BULK_FETCHING
        assert transition.wait == 0.0
        assert (await engine.step()).state is EngineState.LOCAL_PLAYBACK
        assert engine.buffer.count == 4

    async def test_engine_when_rotation_setting_applied_then_output_rotated(
        self,
        client: TestClient,
        device: tuple[PlaybackEngine, NullDisplay],
        gif_factory: Callable[..., bytes],
    ) -> None:
        engine, display = device
        await _upload(client, gif_factory(frame_count=3))
        await client.post("/api/settings", json={"displayRotation": 2})

        await engine.step()
        await engine.step()
        await engine.step()

        assert engine.settings is not None
        assert engine.settings.display_rotation == 2
        assert display.last == rotate_180(engine.buffer.bitmap(0))

    async def test_engine_when_server_unreachable_then_failure_recorded(self) -> None:
        config = Config(backend_url="http://127.0.0.1:9", api_timeout=0.5, display_driver="null")
        source = DeviceAPIClient(config)
        display = NullDisplay(config)
        engine = PlaybackEngine(config, source, display)
        try:
            await engine.step()
            transition = await engine.step()
        finally:
            await source.close()

        assert transition.state is EngineState.POLLING
        assert engine.consecutive_failures == 1
        assert display.frames_shown == 1
