"""Tests for Session wiring."""

from texthooker.config import Config
from texthooker.models import ConnectionState, LineType
from texthooker.session import Session


def make_session(fake_factory, url="ws://localhost:6677", url_2="", reconnect=True):
    config = Config()
    config.connection.websocket_url = url
    config.connection.websocket_url_2 = url_2
    config.connection.continuous_reconnect = reconnect
    # Retry immediately so tick() is never held back by the backoff window
    config.connection.reconnect_initial_delay = 0.0
    return Session(config, transport_factory=fake_factory)


def test_slots_from_config(fake_factory):
    session = make_session(fake_factory, url_2="ws://localhost:7000")
    assert [s.name for s in session.slots] == ["socket1", "socket2"]
    assert [s.target.value for s in session.slots] == ["ws://localhost:6677", "ws://localhost:7000"]
    assert session.auto_reconnect.value is True


def test_empty_url_slot_has_no_target(fake_factory):
    session = make_session(fake_factory)
    assert session.slots[1].target.value is None


def test_nothing_connects_before_start(fake_factory):
    session = make_session(fake_factory)
    assert fake_factory.created == []
    assert not session.started


def test_start_connects_configured_targets(fake_factory):
    session = make_session(fake_factory, url_2="ws://localhost:7000")
    session.start()
    session.start()

    assert session.started
    assert sorted(t.url for t in fake_factory.created) == [
        "ws://localhost:6677",
        "ws://localhost:7000",
    ]
    assert [s.state.value for s in session.slots] == [ConnectionState.CONNECTING] * 2


def test_lines_from_every_slot_share_one_stream(fake_factory):
    session = make_session(fake_factory, url_2="ws://localhost:7000")
    received = []
    session.lines.subscribe(received.append)
    session.start()

    for transport in fake_factory.created:
        transport.open()
        transport.receive(f'{{"sentence": "{transport.url}"}}')

    assert {e.text for e in received} == {"ws://localhost:6677", "ws://localhost:7000"}
    assert all(e.origin is LineType.SOCKET for e in received)


def test_tick_reconnects_dropped_slot(fake_factory):
    session = make_session(fake_factory)
    session.start()
    fake_factory.latest.finish_close()

    session.tick()
    assert len(fake_factory.created) == 2


def test_toggle_auto_reconnect(fake_factory):
    session = make_session(fake_factory)
    session.start()
    assert session.toggle_auto_reconnect() is False

    fake_factory.latest.finish_close()
    session.tick()
    assert len(fake_factory.created) == 1


def test_set_target_reloads(fake_factory):
    session = make_session(fake_factory)
    session.start()
    first = fake_factory.latest
    first.open()

    session.set_target(0, "ws://localhost:9000")
    assert first.close_calls == [(1000, "User Request")]
    assert fake_factory.latest.url == "ws://localhost:9000"


def test_set_target_fills_empty_slot(fake_factory):
    session = make_session(fake_factory)
    session.start()
    session.set_target(1, "ws://localhost:7000")
    assert session.slots[1].state.value == ConnectionState.CONNECTING


def test_disconnect_all_and_reconnect_all(fake_factory):
    session = make_session(fake_factory, url_2="ws://localhost:7000")
    session.start()
    for transport in fake_factory.created:
        transport.open()

    session.disconnect_all()
    assert all(t.close_calls for t in fake_factory.created)
    for transport in list(fake_factory.created):
        transport.finish_close()
    assert [s.state.value for s in session.slots] == [ConnectionState.CLOSED] * 2

    session.reconnect_all()
    assert len(fake_factory.live) == 2


def test_close_releases_every_subscription(fake_factory):
    session = make_session(fake_factory, url_2="ws://localhost:7000")
    session.start()
    session.close()
    session.close()

    assert session.reconnect_trigger.subscriber_count == 0
    assert session.auto_reconnect.subscriber_count == 0
    assert all(s.target.subscriber_count == 0 for s in session.slots)
