# BeoSound 5c
# Copyright (C) 2024-2026 Markus Kirsten
# SPDX-License-Identifier: GPL-3.0-or-later
#
# Attribution required — see LICENSE, Section 7(b).

"""Position/duration formatting for the now-playing display."""

UNBOUNDED = "∞"


def seconds_to_time(secs) -> str:
    """Convert seconds to M:SS or H:MM:SS. Unknown positions show 0:00."""
    try:
        total = int(float(secs))
    except (ValueError, TypeError):
        return "0:00"
    total = max(total, 0)
    if total >= 3600:
        h = total // 3600
        m = (total % 3600) // 60
        s = total % 60
        return f"{h}:{m:02d}:{s:02d}"
    return f"{total // 60}:{total % 60:02d}"


def duration_to_time(secs) -> str:
    """Like seconds_to_time, but an absent duration is unbounded, not zero."""
    if secs is None:
        return UNBOUNDED
    return seconds_to_time(secs)


def progress_percent(position: float | None, duration: float | None) -> float:
    """Progress bar fill, 0-100. Zero when either side is unknown."""
    if position is None or not duration:
        return 0.0
    return max(0.0, min(100.0, position / duration * 100))
