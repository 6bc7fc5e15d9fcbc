# BeoSound 5c
# Copyright (C) 2024-2026 Markus Kirsten
# SPDX-License-Identifier: GPL-3.0-or-later
#
# Attribution required — see LICENSE, Section 7(b).

"""
NodeWidget — one BluOS device, mirrored.

Owns the pieces and wires them together:

    widget = NodeWidget("192.168.1.81")
    widget.add_listener(lambda data, reason: print(reason, data["title"]))
    await widget.start()
    await widget.commands.seek(50)
    ...
    await widget.shutdown()

Listeners are called with ``(media_data, reason)`` where reason is one of
track_change, status, tick, stale or artwork.  They run on the event loop
and must not block.
"""

import asyncio
import logging
import time

import aiohttp

from .commands import CommandDispatcher
from .extrapolator import TICK_INTERVAL, PositionExtrapolator
from .lib.artwork import ArtworkCache, css_color, fetch_artwork
from .lib.status import StatusSnapshot
from .lib.timefmt import duration_to_time, progress_percent, seconds_to_time
from .lib.transport import BLUOS_PORT, BluOSTransport
from .state import SyncState
from .sync import BACKOFF_MAX, LONG_POLL_TIMEOUT, SyncLoop

logger = logging.getLogger(__name__)


def _track_id(snapshot: StatusSnapshot | None) -> str | None:
    if snapshot is None:
        return None
    return f"{snapshot.title}|{snapshot.artist}|{snapshot.album}"


class NodeWidget:

    def __init__(self, host: str, port: int = BLUOS_PORT, *,
                 session: aiohttp.ClientSession | None = None,
                 transport: BluOSTransport | None = None,
                 timeout: int = LONG_POLL_TIMEOUT,
                 backoff_max: float = BACKOFF_MAX,
                 tick_interval: float = TICK_INTERVAL,
                 fetch_artwork_colors: bool = True,
                 clock=time.monotonic, sleep=asyncio.sleep):
        self.state = SyncState()
        self.transport = transport or BluOSTransport(host, port, session=session)
        self.extrapolator = PositionExtrapolator(
            self.state, interval=tick_interval,
            on_tick=lambda: self._notify("tick"))
        self.sync = SyncLoop(
            self.transport, self.state,
            timeout=timeout, backoff_max=backoff_max,
            on_snapshot=self._on_snapshot, on_stale=self._on_stale,
            on_recovered=lambda: self._notify("status"),
            clock=clock, sleep=sleep)
        self.commands = CommandDispatcher(self.transport, self.state, self.extrapolator)

        self.fetch_artwork_colors = fetch_artwork_colors
        self._artwork_cache = ArtworkCache()
        self._artwork_task: asyncio.Task | None = None
        self._background_color: str | None = None
        self._listeners: list = []
        self._sync_task: asyncio.Task | None = None

    @property
    def base_url(self) -> str:
        return self.transport.base_url

    # ── Lifecycle ──

    async def start(self):
        """Open the HTTP session (if needed) and start long-polling."""
        if self.state.disposed:
            raise RuntimeError("widget has been disposed")
        if self._sync_task is not None:
            return
        await self.transport.start()
        self._sync_task = asyncio.create_task(self.sync.run())
        logger.info("Widget started for %s", self.base_url)

    def dispose(self):
        """Stop everything; in-flight requests finish and are ignored."""
        if self.state.disposed:
            return
        self.state.disposed = True
        self.sync.cancel()
        self.extrapolator.stop()
        if self._artwork_task is not None:
            self._artwork_task.cancel()
            self._artwork_task = None
        logger.info("Widget for %s disposed", self.base_url)

    async def shutdown(self):
        """dispose(), then wait for the loop to go away and close the session."""
        self.dispose()
        if self._sync_task is not None:
            self._sync_task.cancel()
            try:
                await self._sync_task
            except asyncio.CancelledError:
                pass
            self._sync_task = None
        await self.transport.stop()

    # ── Listeners ──

    def add_listener(self, callback):
        self._listeners.append(callback)

    def remove_listener(self, callback):
        if callback in self._listeners:
            self._listeners.remove(callback)

    def _notify(self, reason: str):
        if self.state.disposed or not self._listeners:
            return
        data = self.media_data()
        for callback in list(self._listeners):
            try:
                callback(data, reason)
            except Exception as e:
                logger.error("Listener failed on %s: %s", reason, e)

    # ── Sync loop callbacks ──

    def _on_snapshot(self, snapshot: StatusSnapshot, previous: StatusSnapshot | None):
        self.extrapolator.resync(snapshot)

        track_changed = _track_id(snapshot) != _track_id(previous)
        if track_changed:
            logger.info("Track changed: %s — %s", snapshot.artist, snapshot.title)

        cover = snapshot.cover_url(self.base_url)
        if cover != (previous.cover_url(self.base_url) if previous else None):
            self._background_color = None
            self._start_artwork_fetch(cover)

        self._notify("track_change" if track_changed else "status")

    def _on_stale(self, error: Exception):
        logger.warning("Device %s unreachable, showing last known status", self.base_url)
        self._notify("stale")

    # ── Artwork ──

    def _start_artwork_fetch(self, url: str | None):
        if self._artwork_task is not None:
            self._artwork_task.cancel()
            self._artwork_task = None
        if not url or not self.fetch_artwork_colors or self.transport.session is None:
            return
        self._artwork_task = asyncio.create_task(self._fetch_background(url))

    async def _fetch_background(self, url: str):
        result = await fetch_artwork(self.transport.session, url, self._artwork_cache)
        if result is None or self.state.disposed:
            return
        snapshot = self.state.last_snapshot
        if snapshot is None or snapshot.cover_url(self.base_url) != url:
            return
        self._background_color = css_color(result["color"])
        self._notify("artwork")

    # ── Rendering ──

    def media_data(self) -> dict:
        """Everything the browser widget needs to draw itself."""
        state = self.state
        snap = state.last_snapshot
        position = state.display_position
        duration = state.duration
        return {
            "title": (snap and snap.title) or "—",
            "artist": (snap and snap.artist) or "—",
            "album": (snap and snap.album) or "—",
            "artwork": snap.cover_url(self.base_url) if snap else None,
            "background_color": self._background_color,
            "state": state.playback_state.value,
            "playing": state.is_active,
            "position": seconds_to_time(position),
            "duration": duration_to_time(duration),
            "position_seconds": position,
            "duration_seconds": duration,
            "progress": progress_percent(position, duration),
            "can_seek": duration is not None,
            "volume": snap.volume if snap else None,
            "muted": snap.muted if snap else False,
            "service": snap.service if snap else None,
            "quality": snap.quality if snap else None,
            "stale": state.stale,
            "timestamp": int(time.time()),
        }
