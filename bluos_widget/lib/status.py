# BeoSound 5c
# Copyright (C) 2024-2026 Markus Kirsten
# SPDX-License-Identifier: GPL-3.0-or-later
#
# Attribution required — see LICENSE, Section 7(b).

"""
BluOS /Status decoding.

A /Status response looks like:

    <status etag="4e266c9fbfba6d13d1a4d6ff4bd2e1e6">
      <canSeek>1</canSeek>
      <image>/Artwork?service=Tidal&amp;songid=...</image>
      <mute>0</mute>
      <secs>10</secs>
      <state>play</state>
      <title1>Song</title1>
      <title2>Artist</title2>
      <title3>Album</title3>
      <totlen>200</totlen>
      <volume>30</volume>
      ...
    </status>

title1/title2/title3 are used verbatim as the three display lines — BluOS
requires that, and they are not always literally name/artist/album (radio
stations put the station name in title1, for instance).
"""

import enum
import math
import urllib.parse
from dataclasses import dataclass
from xml.etree import ElementTree

from .errors import ParseError


class PlaybackState(enum.Enum):
    STOPPED = "stop"
    PLAYING = "play"
    PAUSED = "pause"
    STREAMING = "stream"
    CONNECTING = "connecting"
    UNKNOWN = "unknown"

    @classmethod
    def _missing_(cls, value):
        return cls.UNKNOWN

    @property
    def is_active(self) -> bool:
        """True while the device is producing audio (position advances)."""
        return self in (PlaybackState.PLAYING, PlaybackState.STREAMING)


@dataclass(frozen=True)
class StatusSnapshot:
    """One decoded /Status response. Replaced wholesale, never edited."""

    sync_token: str
    state: PlaybackState = PlaybackState.UNKNOWN
    title: str | None = None
    artist: str | None = None
    album: str | None = None
    cover_image_url: str | None = None
    position_seconds: float | None = None
    total_length_seconds: float | None = None
    volume: int | None = None
    muted: bool = False
    service: str | None = None
    quality: str | None = None
    can_seek: bool | None = None

    @property
    def is_active(self) -> bool:
        return self.state.is_active

    def cover_url(self, base_url: str) -> str | None:
        """Cover image URL, made absolute against the device base URL."""
        if not self.cover_image_url:
            return None
        return urllib.parse.urljoin(base_url + "/", self.cover_image_url)


def _text(root: ElementTree.Element, tag: str) -> str | None:
    el = root.find(tag)
    if el is None or el.text is None:
        return None
    text = el.text.strip()
    return text or None


def _seconds(root: ElementTree.Element, tag: str) -> float | None:
    raw = _text(root, tag)
    if raw is None:
        return None
    try:
        value = float(raw)
    except ValueError:
        raise ParseError(f"<{tag}> is not a number: {raw!r}") from None
    if not math.isfinite(value) or value < 0:
        raise ParseError(f"<{tag}> out of range: {raw!r}")
    return value


def _volume(root: ElementTree.Element) -> int | None:
    raw = _text(root, "volume")
    if raw is None:
        return None
    try:
        value = int(float(raw))
    except ValueError:
        raise ParseError(f"<volume> is not a number: {raw!r}") from None
    # -1 means fixed volume output
    if value < 0:
        return None
    if value > 100:
        raise ParseError(f"<volume> out of range: {raw!r}")
    return value


def _flag(root: ElementTree.Element, tag: str) -> bool | None:
    raw = _text(root, tag)
    if raw is None:
        return None
    return raw not in ("0", "false")


def decode(text: str) -> StatusSnapshot:
    """Parse a /Status XML body into a StatusSnapshot.

    Raises ParseError for anything that is not a well-formed ``<status>``
    document with an etag, or whose numeric fields don't parse.
    """
    if not text:
        raise ParseError("empty /Status response")
    try:
        root = ElementTree.fromstring(text)
    except ElementTree.ParseError as e:
        raise ParseError(f"malformed XML: {e}") from e

    if root.tag != "status":
        raise ParseError(f"expected <status>, got <{root.tag}>")
    etag = root.get("etag")
    if not etag:
        raise ParseError("<status> has no etag")

    raw_state = _text(root, "state")
    return StatusSnapshot(
        sync_token=etag,
        state=PlaybackState(raw_state) if raw_state else PlaybackState.UNKNOWN,
        title=_text(root, "title1"),
        artist=_text(root, "title2"),
        album=_text(root, "title3"),
        cover_image_url=_text(root, "image"),
        position_seconds=_seconds(root, "secs"),
        total_length_seconds=_seconds(root, "totlen"),
        volume=_volume(root),
        muted=bool(_flag(root, "mute")),
        service=_text(root, "service"),
        quality=_text(root, "quality"),
        can_seek=_flag(root, "canSeek"),
    )
