# BeoSound 5c
# Copyright (C) 2024-2026 Markus Kirsten
# SPDX-License-Identifier: GPL-3.0-or-later
#
# Attribution required — see LICENSE, Section 7(b).

"""
SyncState — the widget's local view of the device.

Each field has one writer:
  sync loop      last_snapshot, last_sync_token, received_at, stale, last_error
  extrapolator   extrapolated_position
  dispatcher     suppress_extrapolation (and the position after a seek)

Everything runs on one event loop, so no locking.
"""

from dataclasses import dataclass

from .lib.status import PlaybackState, StatusSnapshot


@dataclass
class SyncState:
    last_snapshot: StatusSnapshot | None = None
    last_sync_token: str | None = None
    extrapolated_position: float | None = None
    received_at: float | None = None
    poll_in_flight: bool = False
    suppress_extrapolation: bool = False
    stale: bool = False
    last_error: str | None = None
    disposed: bool = False

    @property
    def playback_state(self) -> PlaybackState:
        if self.last_snapshot is None:
            return PlaybackState.UNKNOWN
        return self.last_snapshot.state

    @property
    def is_active(self) -> bool:
        return self.playback_state.is_active

    @property
    def duration(self) -> float | None:
        """Track length in seconds, None when unbounded or unknown."""
        if self.last_snapshot is None:
            return None
        return self.last_snapshot.total_length_seconds

    @property
    def display_position(self) -> float | None:
        """Extrapolated position clamped to [0, duration] for display only."""
        pos = self.extrapolated_position
        if pos is None:
            return None
        pos = max(pos, 0.0)
        if self.duration is not None:
            pos = min(pos, self.duration)
        return pos

    def publish(self, snapshot: StatusSnapshot, now: float):
        """Install a fresh snapshot. Clears the suppression set by commands."""
        self.last_snapshot = snapshot
        self.received_at = now
        self.suppress_extrapolation = False
