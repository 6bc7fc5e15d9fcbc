# BeoSound 5c
# Copyright (C) 2024-2026 Markus Kirsten
# SPDX-License-Identifier: GPL-3.0-or-later
#
# Attribution required — see LICENSE, Section 7(b).

"""
Position extrapolation between long-poll responses.

BluOS only reports <secs> when /Status returns, which may be 100 seconds
apart.  Clients are expected to advance the position themselves while the
state is play or stream.  The tick task is started when the device goes
active and stopped (cancelled, not paused) when it leaves, so rapid
play/pause toggling never piles up timers.
"""

import asyncio
import logging

from .lib.status import StatusSnapshot
from .state import SyncState

logger = logging.getLogger(__name__)

TICK_INTERVAL = 1.0  # seconds


class PositionExtrapolator:

    def __init__(self, state: SyncState, interval: float = TICK_INTERVAL,
                 on_tick=None):
        self.state = state
        self.interval = interval
        self._on_tick = on_tick
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self):
        """Start ticking. No-op if already running or the widget is disposed."""
        if self.running or self.state.disposed:
            return
        self._task = asyncio.create_task(self._tick_loop())
        logger.debug("Position tick started")

    def stop(self):
        if self._task is not None:
            self._task.cancel()
            self._task = None
            logger.debug("Position tick stopped")

    def tick(self) -> bool:
        """Advance the position by one interval. Returns True if it moved."""
        state = self.state
        snapshot = state.last_snapshot
        if snapshot is None or not snapshot.is_active:
            return False
        if state.suppress_extrapolation or state.extrapolated_position is None:
            return False

        pos = state.extrapolated_position + self.interval
        if snapshot.total_length_seconds is not None:
            pos = min(pos, snapshot.total_length_seconds)
        state.extrapolated_position = pos
        if self._on_tick:
            self._on_tick()
        return True

    def resync(self, snapshot: StatusSnapshot):
        """Hard reset to the device's reported position, then start/stop."""
        self.state.extrapolated_position = snapshot.position_seconds
        if snapshot.is_active:
            self.start()
        else:
            self.stop()

    async def _tick_loop(self):
        while True:
            await asyncio.sleep(self.interval)
            try:
                self.tick()
            except Exception as e:
                logger.error("Error in position tick: %s", e)
