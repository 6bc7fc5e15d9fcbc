# BeoSound 5c
# Copyright (C) 2024-2026 Markus Kirsten
# SPDX-License-Identifier: GPL-3.0-or-later
#
# Attribution required — see LICENSE, Section 7(b).

"""
Command dispatcher — user intents to BluOS control requests.

  GET /Play  /Play?seek=N  /Play?url=U   play, seek, stream a URL
  GET /Pause /Pause?toggle=1             pause
  GET /Stop  /Back  /Skip                stop, previous, next
  GET /Volume?level=N|mute=0|1|abs_db=N|db=±N

Commands never change the local playback state.  The device's answer to a
command is ignored; what actually happened shows up in the next /Status
long-poll, which BluOS releases as soon as its state changes.

Transport commands freeze the position display until that next snapshot
arrives, so the widget never shows the old track still counting up after
the user pressed skip.
"""

import logging
import math
import numbers

from .extrapolator import PositionExtrapolator
from .lib.errors import InvalidOperation, NetworkError, ParseError
from .lib.transport import BluOSTransport
from .state import SyncState

logger = logging.getLogger(__name__)


class CommandDispatcher:

    def __init__(self, transport: BluOSTransport, state: SyncState,
                 extrapolator: PositionExtrapolator):
        self.transport = transport
        self.state = state
        self.extrapolator = extrapolator

    # ── Request helpers ──

    def _check_usable(self):
        if self.state.disposed:
            raise InvalidOperation("widget has been disposed")

    async def _send(self, label: str, path: str, query: dict | None = None) -> bool:
        try:
            await self.transport.send(path, query)
        except (NetworkError, ParseError) as e:
            logger.error("%s failed: %s", label, e)
            return False
        logger.info("%s", label)
        return True

    async def _transport_command(self, label: str, path: str,
                                 query: dict | None = None,
                                 position: float | None = None) -> bool:
        """Send a command that changes playback; freeze the position meanwhile.

        Only the next published snapshot lifts the freeze, whether or not
        the request got through.  *position*, if given, is shown while the
        command is pending; a snapshot arriving in the meantime replaces it.
        """
        self._check_usable()
        state = self.state
        self.extrapolator.stop()
        state.suppress_extrapolation = True
        previous = state.extrapolated_position
        if position is not None:
            state.extrapolated_position = position

        ok = await self._send(label, path, query)
        if (not ok and position is not None and not state.disposed
                and state.suppress_extrapolation):
            # No snapshot since, and the device never moved
            state.extrapolated_position = previous
        return ok

    # ── Transport ──

    async def play(self, url: str | None = None) -> bool:
        if url:
            return await self._transport_command(f"Playing URL: {url}", "/Play", {"url": url})
        return await self._transport_command("Play", "/Play")

    async def pause(self, toggle: bool = False) -> bool:
        if toggle:
            return await self._transport_command("Pause (toggle)", "/Pause", {"toggle": 1})
        return await self._transport_command("Paused", "/Pause")

    async def stop(self) -> bool:
        return await self._transport_command("Stopped", "/Stop")

    async def prev(self) -> bool:
        return await self._transport_command("Previous track", "/Back")

    async def next(self) -> bool:
        return await self._transport_command("Next track", "/Skip")

    async def play_pause(self) -> bool:
        """Pause if the last confirmed status is playing, otherwise play."""
        if self.state.is_active:
            return await self.pause()
        return await self.play()

    async def seek(self, seconds) -> bool:
        """Jump to *seconds* in the current track, clamped to its length."""
        self._check_usable()
        if (isinstance(seconds, bool) or not isinstance(seconds, numbers.Real)
                or not math.isfinite(seconds)):
            raise InvalidOperation(f"seek position must be a finite number, got {seconds!r}")
        duration = self.state.duration
        if duration is None:
            raise InvalidOperation("cannot seek: track length unknown")

        target = int(min(max(float(seconds), 0.0), duration))
        return await self._transport_command(f"Seek to {target}s", "/Play",
                                             {"seek": target}, position=float(target))

    async def seek_percent(self, percent) -> bool:
        """Seek to a fraction of the track, as a progress-bar scrub does."""
        self._check_usable()
        if (isinstance(percent, bool) or not isinstance(percent, numbers.Real)
                or not math.isfinite(percent)):
            raise InvalidOperation(f"seek percent must be a finite number, got {percent!r}")
        duration = self.state.duration
        if duration is None:
            raise InvalidOperation("cannot seek: track length unknown")
        fraction = min(max(float(percent), 0.0), 100.0) / 100
        return await self.seek(round(fraction * duration))

    # ── Volume ──

    async def set_volume(self, level) -> bool:
        self._check_usable()
        if isinstance(level, bool) or not isinstance(level, numbers.Integral):
            raise InvalidOperation(f"volume must be an integer, got {level!r}")
        if not 0 <= level <= 100:
            raise InvalidOperation(f"volume must be 0-100, got {level}")
        if self.state.last_snapshot is not None and self.state.last_snapshot.volume is None:
            raise InvalidOperation("volume is not controllable on this source")
        return await self._send(f"Volume {level}%", "/Volume", {"level": int(level)})

    async def set_mute(self, muted: bool) -> bool:
        self._check_usable()
        return await self._send("Muted" if muted else "Unmuted",
                                "/Volume", {"mute": 1 if muted else 0})

    async def set_volume_db(self, abs_db) -> bool:
        self._check_usable()
        if not isinstance(abs_db, numbers.Real) or not math.isfinite(abs_db):
            raise InvalidOperation(f"abs_db must be a finite number, got {abs_db!r}")
        return await self._send(f"Volume {abs_db} dB", "/Volume", {"abs_db": abs_db})

    async def adjust_volume_db(self, db) -> bool:
        self._check_usable()
        if not isinstance(db, numbers.Real) or not math.isfinite(db):
            raise InvalidOperation(f"db must be a finite number, got {db!r}")
        return await self._send(f"Volume {db:+} dB", "/Volume", {"db": db})
