"""Shared fixtures for deskframe server and client tests."""

from __future__ import annotations

import io
from collections.abc import Callable, Generator
from typing import Any

import pytest
from PIL import Image

from deskframe.domain.compiler import ContentCompiler
from deskframe.domain.display_state import DisplayStateService


def build_gif(frame_count: int = 10, duration_ms: int = 50, size: tuple[int, int] = (32, 16)) -> bytes:
    """Animated GIF whose consecutive frames all differ (Pillow merges identical ones)."""
    width, height = size
    frames = []
    for i in range(frame_count):
        frame = Image.new("L", size, 0)
        frame.putpixel((i % width, (i // width) % height), 255)
        frames.append(frame)
    buffer = io.BytesIO()
    frames[0].save(
        buffer,
        format="GIF",
        save_all=True,
        append_images=frames[1:],
        duration=duration_ms,
        loop=0,
        optimize=False,
    )
    return buffer.getvalue()


def build_image(
    size: tuple[int, int] = (128, 64),
    color: Any = (255, 255, 255),
    mode: str = "RGB",
    fmt: str = "PNG",
) -> bytes:
    buffer = io.BytesIO()
    Image.new(mode, size, color).save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def gif_factory() -> Callable[..., bytes]:
    return build_gif


@pytest.fixture
def image_factory() -> Callable[..., bytes]:
    return build_image


@pytest.fixture
def compiler() -> ContentCompiler:
    return ContentCompiler()


@pytest.fixture
def display_state(compiler: ContentCompiler) -> DisplayStateService:
    return DisplayStateService(initial=compiler.boot_content())


@pytest.fixture(autouse=True)
def clean_deskframe_environment(monkeypatch: pytest.MonkeyPatch) -> Generator[None, Any, None]:
    """Keep DESKFRAME_* variables from the host out of the tests."""
    import os

    for key in list(os.environ):
        if key.startswith("DESKFRAME_"):
            monkeypatch.delenv(key, raising=False)
    yield
