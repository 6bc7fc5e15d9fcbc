"""Tests for position/duration formatting."""

import pytest

from bluos_widget.lib.timefmt import duration_to_time, progress_percent, seconds_to_time


@pytest.mark.parametrize("secs, expected", [
    (0, "0:00"),
    (13, "0:13"),
    (59.9, "0:59"),
    (200, "3:20"),
    ("75", "1:15"),
    (3600, "1:00:00"),
    (3725, "1:02:05"),
    (None, "0:00"),
    ("n/a", "0:00"),
    (-4, "0:00"),
])
def test_seconds_to_time(secs, expected) -> None:
    assert seconds_to_time(secs) == expected


def test_missing_duration_is_unbounded() -> None:
    assert duration_to_time(None) == "∞"
    assert duration_to_time(0) == "0:00"
    assert duration_to_time(245) == "4:05"


def test_progress_percent() -> None:
    assert progress_percent(50, 200) == 25
    assert progress_percent(250, 200) == 100
    assert progress_percent(None, 200) == 0
    assert progress_percent(10, None) == 0
    assert progress_percent(10, 0) == 0
