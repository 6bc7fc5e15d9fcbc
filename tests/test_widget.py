"""End-to-end scenarios through NodeWidget with a scripted device."""

import asyncio

import pytest

from bluos_widget.lib.errors import InvalidOperation, NetworkError
from bluos_widget.widget import NodeWidget

from conftest import FakeTransport, status_xml


@pytest.fixture
def widget(transport, clock):
    return NodeWidget("node.local", transport=transport, clock=clock, sleep=clock.sleep)


@pytest.fixture
def events(widget):
    received = []
    widget.add_listener(lambda data, reason: received.append((reason, data)))
    return received


async def test_ticks_after_snapshot(widget, transport) -> None:
    transport.responses = [status_xml(etag="e1", state="play", secs=10, totlen=200)]
    await widget.sync.poll()

    assert widget.state.extrapolated_position == 10
    assert widget.extrapolator.running
    for _ in range(3):
        widget.extrapolator.tick()

    data = widget.media_data()
    assert data["position_seconds"] == 13
    assert data["position"] == "0:13"
    assert data["duration"] == "3:20"
    assert data["progress"] == pytest.approx(6.5)
    widget.dispose()


async def test_seek_then_snapshot_resyncs_exactly(widget, transport) -> None:
    transport.responses = [status_xml(etag="e1", secs=10, totlen=200)]
    await widget.sync.poll()
    for _ in range(3):
        widget.extrapolator.tick()
    assert widget.state.extrapolated_position == 13

    await widget.commands.seek(50)
    assert widget.state.suppress_extrapolation
    assert not widget.extrapolator.running
    for _ in range(3):
        widget.extrapolator.tick()
    assert widget.state.extrapolated_position == 50

    transport.responses = [status_xml(etag="e2", secs=50, totlen=200)]
    await widget.sync.poll()

    assert widget.state.extrapolated_position == 50
    assert not widget.state.suppress_extrapolation
    assert widget.extrapolator.running
    widget.extrapolator.tick()
    assert widget.state.extrapolated_position == 51
    widget.dispose()


async def test_snapshot_position_wins_over_extrapolation(widget, transport) -> None:
    transport.responses = [status_xml(etag="e1", secs=10),
                           status_xml(etag="e2", secs=11.25)]
    await widget.sync.poll()
    for _ in range(5):
        widget.extrapolator.tick()

    await widget.sync.poll()

    assert widget.state.extrapolated_position == 11.25
    widget.dispose()


async def test_unbounded_track(widget, transport) -> None:
    transport.responses = [status_xml(etag="e1", state="stream", secs=None, totlen=None)]
    await widget.sync.poll()

    data = widget.media_data()
    assert data["duration"] == "∞"
    assert data["duration_seconds"] is None
    assert data["can_seek"] is False
    assert data["progress"] == 0
    with pytest.raises(InvalidOperation):
        await widget.commands.seek(10)
    widget.dispose()


async def test_display_clamps_without_touching_snapshot(widget, transport) -> None:
    transport.responses = [status_xml(etag="e1", secs=199, totlen=200)]
    await widget.sync.poll()
    for _ in range(4):
        widget.extrapolator.tick()

    assert widget.media_data()["position_seconds"] == 200
    assert widget.state.last_snapshot.position_seconds == 199
    widget.dispose()


async def test_listener_reasons(widget, transport, events) -> None:
    transport.responses = [
        status_xml(etag="e1", title1="One"),
        status_xml(etag="e1", title1="One"),
        status_xml(etag="e2", title1="One", state="pause"),
        status_xml(etag="e3", title1="Two", state="pause"),
    ]
    for _ in range(4):
        await widget.sync.poll()

    assert [reason for reason, _ in events] == ["track_change", "status", "track_change"]
    assert events[-1][1]["title"] == "Two"
    assert events[-1][1]["state"] == "pause"
    assert not widget.extrapolator.running


async def test_stale_signal(widget, transport, clock, events) -> None:
    transport.responses = [status_xml(etag="e1")]
    await widget.sync.poll()
    transport.responses = [NetworkError("host unreachable")]
    transport.on_exhausted = widget.sync.cancel

    await widget.sync.run()

    assert events[-1][0] == "stale"
    assert events[-1][1]["stale"] is True
    assert events[-1][1]["title"] == "Song"
    widget.dispose()


async def test_media_data_before_first_status(widget) -> None:
    data = widget.media_data()
    assert data["state"] == "unknown"
    assert data["title"] == "—"
    assert data["position"] == "0:00"
    assert data["duration"] == "∞"
    assert data["volume"] is None
    assert data["artwork"] is None


async def test_artwork_url_is_absolute(widget, transport) -> None:
    transport.responses = [status_xml(etag="e1", image="/Artwork?songid=7")]
    await widget.sync.poll()
    assert widget.media_data()["artwork"] == "http://node.local:11000/Artwork?songid=7"
    widget.dispose()


async def test_dispose_discards_in_flight_poll(clock) -> None:
    release = asyncio.Event()

    class SlowTransport(FakeTransport):
        async def send(self, path, query=None, timeout=None):
            await release.wait()
            return status_xml(etag="late")

    widget = NodeWidget("node.local", transport=SlowTransport(clock=clock),
                        clock=clock, sleep=clock.sleep)
    seen = []
    widget.add_listener(lambda data, reason: seen.append(reason))

    poll = asyncio.create_task(widget.sync.poll())
    await asyncio.sleep(0)
    widget.dispose()
    release.set()

    assert await poll is None
    assert widget.state.last_snapshot is None
    assert not widget.extrapolator.running
    assert seen == []


async def test_start_and_shutdown(widget, transport, clock) -> None:
    transport.responses = [status_xml(etag="e1", secs=10), status_xml(etag="e2", secs=12)]
    transport.on_exhausted = widget.sync.cancel

    await widget.start()
    await asyncio.wait_for(widget._sync_task, timeout=1)
    assert widget.state.last_sync_token == "e2"

    await widget.shutdown()
    assert widget.state.disposed
    assert not widget.extrapolator.running
    with pytest.raises(RuntimeError):
        await widget.start()


async def test_two_widgets_are_independent(clock) -> None:
    a = NodeWidget("a.local", transport=FakeTransport(clock=clock, responses=[status_xml(etag="a", secs=1)]),
                   clock=clock, sleep=clock.sleep)
    b = NodeWidget("b.local", transport=FakeTransport(clock=clock, responses=[status_xml(etag="b", secs=99)]),
                   clock=clock, sleep=clock.sleep)
    await a.sync.poll()
    await b.sync.poll()
    a.extrapolator.tick()

    assert a.state.extrapolated_position == 2
    assert b.state.extrapolated_position == 99
    a.dispose()
    b.dispose()


async def test_recovery_with_unchanged_status_clears_stale(widget, transport, events) -> None:
    transport.responses = [status_xml(etag="e1", state="pause"),
                           NetworkError("host unreachable"),
                           status_xml(etag="e1", state="pause")]
    transport.on_exhausted = widget.sync.cancel

    await widget.sync.run()

    assert [reason for reason, _ in events] == ["track_change", "stale", "status"]
    assert events[-1][1]["stale"] is False
    assert widget.media_data()["stale"] is False
    widget.dispose()
