"""Display backends for the 128x64 panel.

PygameDisplay draws the packed bitmap through SDL (kmsdrm on the Pi, a
window elsewhere). NullDisplay keeps the last bitmap in memory for headless
runs.
"""

from __future__ import annotations

import logging
import os
import platform
from typing import Optional

import pygame

from deskframe.domain.canvas import MonoBitmap
from deskframe_client.config import Config

logger = logging.getLogger(__name__)

LIT = (255, 255, 255)
UNLIT = (0, 0, 0)


class NullDisplay:
    """Keeps the most recent bitmap without drawing it anywhere."""

    def __init__(self, config: Optional[Config] = None):
        self.last: Optional[bytes] = None
        self.frames_shown = 0

    def show(self, bitmap: bytes) -> None:
        self.last = bitmap
        self.frames_shown += 1

    def poll_quit(self) -> bool:
        return False

    def cleanup(self) -> None:
        pass


class PygameDisplay:
    """Draws panel bitmaps with pygame, scaled up for visibility."""

    def __init__(self, config: Config):
        """Initialize pygame display.

        Args:
            config: Configuration instance
        """
        self.config = config
        self.width = config.display_width
        self.height = config.display_height
        self.scale = max(1, config.display_scale)
        self._init_pygame()
        logger.info(
            "Display initialized: %dx%d panel at %dx scale", self.width, self.height, self.scale
        )

    def _init_pygame(self) -> None:
        """Initialize pygame, choosing an SDL driver for the platform."""
        if not os.environ.get("SDL_VIDEODRIVER"):
            system = platform.system()
            if system == "Linux":
                os.environ["SDL_VIDEODRIVER"] = "kmsdrm"
                logger.debug("SDL_VIDEODRIVER not set, using default for Linux: kmsdrm")
            else:
                logger.debug("SDL_VIDEODRIVER not set, letting pygame auto-detect (%s)", system)

        if "SDL_NOMOUSE" not in os.environ:
            os.environ["SDL_NOMOUSE"] = "1"

        pygame.display.init()
        size = (self.width * self.scale, self.height * self.scale)
        try:
            self.screen = pygame.display.set_mode(size)
        except pygame.error as e:
            logger.warning("Failed to open display with %s: %s", pygame.display.get_driver(), e)
            raise
        pygame.display.set_caption("DeskFrame")
        pygame.mouse.set_visible(False)

    def show(self, bitmap: bytes) -> None:
        """Draw a packed full-screen bitmap."""
        canvas = MonoBitmap(self.width, self.height, bitmap)
        self.screen.fill(UNLIT)
        for y in range(self.height):
            for x in range(self.width):
                if canvas.get_pixel(x, y):
                    self.screen.fill(
                        LIT, (x * self.scale, y * self.scale, self.scale, self.scale)
                    )
        pygame.display.flip()

    def poll_quit(self) -> bool:
        """Drain pygame events; True if the window was closed or quit was pressed."""
        quit_requested = False
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                logger.info("Received QUIT event")
                quit_requested = True
            elif event.type == pygame.KEYDOWN and event.key in (pygame.K_ESCAPE, pygame.K_q):
                logger.info("Received quit key")
                quit_requested = True
        return quit_requested

    def cleanup(self) -> None:
        """Release pygame resources."""
        pygame.quit()
        logger.debug("Display cleaned up")


def create_display(config: Config) -> NullDisplay | PygameDisplay:
    """Build the display backend named by ``config.display_driver``."""
    if config.display_driver == "null":
        return NullDisplay(config)
    return PygameDisplay(config)
