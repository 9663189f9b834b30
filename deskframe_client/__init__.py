"""DeskFrame display client.

Runs on the device attached to the 128x64 monochrome panel. It polls the
deskframe server one frame at a time, switches to downloading whole
animations into a fixed-capacity frame buffer when the server hints that
one is available, and recovers from link loss without tearing the display.

Architecture:
- engine.py: playback state machine (Connecting, Polling, BulkFetching,
  LocalPlayback, ErrorBackoff)
- api_client.py / wire.py: HTTP fetches and lenient response parsing
- frame_buffer.py: preallocated storage for downloaded animations
- renderer.py / display.py: element rendering and the pygame panel
- link.py / beacon.py: link monitoring and the status LED

Usage:
    SDL_VIDEODRIVER=kmsdrm python -m deskframe_client

Environment Variables:
    DESKFRAME_BACKEND_URL - Server URL (default: http://localhost:8080)
    DESKFRAME_DISPLAY - "pygame" or "null" (default: pygame)
"""

__version__ = "0.1.0"

from deskframe_client.config import Config

__all__ = ["Config"]
