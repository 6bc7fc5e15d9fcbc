# BeoSound 5c
# Copyright (C) 2024-2026 Markus Kirsten
# SPDX-License-Identifier: GPL-3.0-or-later
#
# Attribution required — see LICENSE, Section 7(b).

"""
Long-poll /Status loop.

Each request carries the etag of the previous response and a timeout; the
device holds it open until its status changes or the timeout passes.  The
loop then goes straight back in, with two exceptions:

  - BluOS forbids two requests for the same resource less than one second
    apart, even when the first one came back sooner.  Fast round trips are
    padded to one second.
  - On failure the loop waits 1s, 2s, 4s ... (capped) before retrying and
    keeps the last good snapshot.  It never gives up on its own; only
    cancel() stops it.
"""

import asyncio
import logging
import time

from .lib.config import MIN_POLL_TIMEOUT, RECOMMENDED_POLL_TIMEOUT
from .lib.errors import NetworkError, ParseError
from .lib.status import StatusSnapshot, decode
from .lib.transport import BluOSTransport
from .state import SyncState

logger = logging.getLogger(__name__)

LONG_POLL_TIMEOUT = 100   # seconds — recommended by the BluOS API docs
HTTP_TIMEOUT_MARGIN = 10  # on top of the long-poll timeout
MIN_REQUEST_INTERVAL = 1.0
BACKOFF_INITIAL = 1.0
BACKOFF_MAX = 30.0


class SyncLoop:

    def __init__(self, transport: BluOSTransport, state: SyncState, *,
                 timeout: int = LONG_POLL_TIMEOUT,
                 backoff_max: float = BACKOFF_MAX,
                 on_snapshot=None, on_stale=None, on_recovered=None,
                 clock=time.monotonic, sleep=asyncio.sleep):
        if timeout < MIN_POLL_TIMEOUT:
            raise ValueError(
                f"long-poll timeout must be at least {MIN_POLL_TIMEOUT}s, got {timeout}")
        if timeout < RECOMMENDED_POLL_TIMEOUT:
            logger.warning("Long-poll timeout %ss is below the recommended %ds",
                           timeout, RECOMMENDED_POLL_TIMEOUT)
        self.transport = transport
        self.state = state
        self.timeout = timeout
        self.backoff_max = backoff_max
        self._on_snapshot = on_snapshot
        self._on_stale = on_stale
        self._on_recovered = on_recovered
        self._clock = clock
        self._sleep = sleep
        self._backoff = 0.0
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self):
        """Stop after the current request; its result is thrown away."""
        self._cancelled = True

    def next_backoff(self) -> float:
        """Advance and return the failure delay: 1, 2, 4 ... backoff_max."""
        if self._backoff <= 0:
            self._backoff = BACKOFF_INITIAL
        else:
            self._backoff = min(self._backoff * 2, self.backoff_max)
        return self._backoff

    def reset_backoff(self):
        self._backoff = 0.0

    async def poll(self) -> StatusSnapshot | None:
        """Issue one /Status request and publish the result if it changed.

        Returns the decoded snapshot, or None if the poll was skipped
        (another one in flight) or discarded (loop cancelled meanwhile).
        Raises NetworkError / ParseError.
        """
        state = self.state
        if state.poll_in_flight:
            logger.debug("Status poll already in flight, skipping")
            return None

        query = {"timeout": self.timeout}
        if state.last_sync_token:
            query["etag"] = state.last_sync_token

        state.poll_in_flight = True
        try:
            text = await self.transport.send(
                "/Status", query, timeout=self.timeout + HTTP_TIMEOUT_MARGIN)
            snapshot = decode(text)
        finally:
            state.poll_in_flight = False

        if self._cancelled or state.disposed:
            logger.debug("Discarding status received after cancel")
            return None

        was_stale = state.stale
        if was_stale:
            logger.info("Device %s reachable again", self.transport.base_url)
        state.stale = False
        state.last_error = None

        changed = (state.last_snapshot is None
                   or snapshot.sync_token != state.last_sync_token)
        state.last_sync_token = snapshot.sync_token
        if changed:
            previous = state.last_snapshot
            state.publish(snapshot, self._clock())
            logger.debug("New status etag=%s state=%s secs=%s",
                         snapshot.sync_token, snapshot.state.value,
                         snapshot.position_seconds)
            if self._on_snapshot:
                self._on_snapshot(snapshot, previous)
        elif was_stale and self._on_recovered:
            # Same etag; only the stale flag changed
            self._on_recovered()
        return snapshot

    def _mark_failed(self, error: Exception):
        state = self.state
        was_stale = state.stale
        state.stale = True
        state.last_error = f"{type(error).__name__}: {error}"
        if not was_stale and self._on_stale:
            self._on_stale(error)

    async def run(self):
        """Poll until cancel() is called."""
        logger.info("Starting BluOS monitoring for %s (timeout=%ds)",
                    self.transport.base_url, self.timeout)

        while not self._cancelled:
            started = self._clock()
            try:
                await self.poll()
            except (NetworkError, ParseError) as e:
                if self._cancelled:
                    break
                self._mark_failed(e)
                delay = self.next_backoff()
                logger.warning("Status poll failed (%s: %s), retrying in %.0fs",
                               type(e).__name__, e, delay)
                await self._sleep(delay)
                continue
            except Exception as e:
                if self._cancelled:
                    break
                self._mark_failed(e)
                delay = self.next_backoff()
                logger.error("Error in BluOS monitoring: %s, retrying in %.0fs", e, delay)
                await self._sleep(delay)
                continue

            self.reset_backoff()
            elapsed = self._clock() - started
            if elapsed < MIN_REQUEST_INTERVAL and not self._cancelled:
                await self._sleep(MIN_REQUEST_INTERVAL - elapsed)

        logger.info("BluOS monitoring for %s stopped", self.transport.base_url)
