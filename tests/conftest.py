"""Shared fakes: a scripted BluOS transport and a manual clock."""

import asyncio

import pytest

from bluos_widget.lib.errors import NetworkError


def status_xml(etag="e1", state="play", secs=10, totlen=200, volume=30,
               mute=0, title1="Song", title2="Artist", title3="Album",
               image="/Artwork?songid=1", extra=""):
    parts = [f'<status etag="{etag}">']
    if state is not None:
        parts.append(f"<state>{state}</state>")
    if secs is not None:
        parts.append(f"<secs>{secs}</secs>")
    if totlen is not None:
        parts.append(f"<totlen>{totlen}</totlen>")
    if volume is not None:
        parts.append(f"<volume>{volume}</volume>")
    parts.append(f"<mute>{mute}</mute>")
    for tag, value in (("title1", title1), ("title2", title2),
                       ("title3", title3), ("image", image)):
        if value is not None:
            parts.append(f"<{tag}>{value}</{tag}>")
    parts.append(extra)
    parts.append("</status>")
    return "".join(parts)


class FakeClock:
    """Monotonic clock that only moves when sleep() is awaited."""

    def __init__(self, start=1000.0):
        self.now = start
        self.sleeps = []

    def __call__(self):
        return self.now

    async def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds
        await asyncio.sleep(0)


class FakeTransport:
    """Answers /Status from a script; records every request.

    Script entries are XML strings or exceptions.  When the script runs
    out, ``on_exhausted`` is called (tests use it to cancel the loop) and
    a NetworkError is raised.
    """

    base_url = "http://node.local:11000"

    def __init__(self, clock=None, responses=(), on_exhausted=None, latency=0.0):
        self.clock = clock
        self.responses = list(responses)
        self.on_exhausted = on_exhausted
        self.latency = latency
        self.requests = []
        self.fail_commands = False
        self.session = None

    async def start(self):
        pass

    async def stop(self):
        pass

    async def send(self, path, query=None, timeout=None):
        at = self.clock() if self.clock else None
        self.requests.append((path, dict(query or {}), at))
        await asyncio.sleep(0)
        if path != "/Status":
            if self.fail_commands:
                raise NetworkError(f"{path} failed: connection refused")
            return "<ok/>"
        if self.clock and self.latency:
            self.clock.now += self.latency
        if not self.responses:
            if self.on_exhausted:
                self.on_exhausted()
            raise NetworkError("script exhausted")
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    @property
    def status_requests(self):
        return [r for r in self.requests if r[0] == "/Status"]

    @property
    def commands(self):
        return [(p, q) for p, q, _ in self.requests if p != "/Status"]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def transport(clock):
    return FakeTransport(clock=clock)
