"""
BluOS now-playing widget service.

Mirrors one BluOS device (Bluesound, NAD, ...) over its HTTP/XML API and
feeds a browser widget over WebSocket.  The device is the source of truth:
a long-poll on /Status keeps a local snapshot current, and a one-second
tick advances the displayed position in between.

  widget.py        — NodeWidget, owns everything below for one device
  sync.py          — /Status long-poll loop
  extrapolator.py  — position tick between snapshots
  commands.py      — play/pause/seek/volume requests
  state.py         — SyncState, the local view
  server.py        — aiohttp HTTP + WebSocket front
"""

from .lib.errors import InvalidOperation, NetworkError, ParseError, WidgetError
from .lib.status import PlaybackState, StatusSnapshot, decode
from .widget import NodeWidget

__version__ = "1.0.0"

__all__ = [
    "InvalidOperation",
    "NetworkError",
    "NodeWidget",
    "ParseError",
    "PlaybackState",
    "StatusSnapshot",
    "WidgetError",
    "decode",
]
