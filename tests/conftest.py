"""Shared test fixtures for texthooker."""

from __future__ import annotations

import pytest

from texthooker.connection import ReconnectBackoff, SocketConnection
from texthooker.models import ConnectionState, LineEvent
from texthooker.signals import EventStream, Signal


class FakeTransport:
    """In-memory transport driven by the test instead of the network."""

    def __init__(self, url: str, listener):
        self.url = url
        self.listener = listener
        self.ready_state = ConnectionState.CONNECTING
        self.close_calls: list[tuple[int, str]] = []
        self.detached = False

    def close(self, code: int = 1000, reason: str = "User Request") -> None:
        self.close_calls.append((code, reason))
        if self.ready_state in (ConnectionState.CLOSING, ConnectionState.CLOSED):
            return
        self.ready_state = ConnectionState.CLOSING

    def detach(self) -> None:
        self.detached = True
        self.listener = None

    # Test-side controls, mirroring what the network would do

    def open(self) -> None:
        self.ready_state = ConnectionState.OPEN
        if self.listener is not None:
            self.listener.on_open(self)

    def receive(self, data: str | bytes) -> None:
        if self.listener is not None:
            self.listener.on_message(self, data)

    def finish_close(self) -> None:
        """Close completes (remote close, failure, or our own close request)."""
        self.ready_state = ConnectionState.CLOSED
        if self.listener is not None:
            self.listener.on_close(self)


class FakeTransportFactory:
    """Records every transport created and the states of earlier ones at that moment."""

    def __init__(self) -> None:
        self.created: list[FakeTransport] = []
        self.snapshots: list[list[ConnectionState]] = []
        self.fail_with: Exception | None = None

    def __call__(self, url: str, listener) -> FakeTransport:
        if self.fail_with is not None:
            raise self.fail_with
        self.snapshots.append([t.ready_state for t in self.created])
        transport = FakeTransport(url, listener)
        self.created.append(transport)
        return transport

    @property
    def latest(self) -> FakeTransport:
        return self.created[-1]

    @property
    def live(self) -> list[FakeTransport]:
        return [t for t in self.created if t.ready_state.is_live]


class Harness:
    """A SocketConnection wired to plain signals and list sinks."""

    def __init__(
        self,
        target: str | None = "ws://localhost:6677",
        auto_reconnect: bool = True,
        backoff: ReconnectBackoff | None = None,
    ):
        self.factory = FakeTransportFactory()
        self.trigger: EventStream[None] = EventStream()
        self.auto_reconnect: Signal[bool] = Signal(auto_reconnect)
        self.target: Signal[str | None] = Signal(target)
        self.states: list[ConnectionState] = []
        self.lines: list[LineEvent] = []
        self.connection = SocketConnection(
            self.trigger,
            self.auto_reconnect,
            self.target,
            self.states.append,
            self.lines.append,
            transport_factory=self.factory,
            backoff=backoff,
        )

    def open_latest(self) -> FakeTransport:
        transport = self.factory.latest
        transport.open()
        return transport


@pytest.fixture
def harness() -> Harness:
    """Manager with a configured target and auto-reconnect enabled."""
    return Harness()


@pytest.fixture
def make_harness():
    """Factory for managers with custom inputs."""
    return Harness


@pytest.fixture
def fake_factory() -> FakeTransportFactory:
    """Transport factory producing FakeTransport instances."""
    return FakeTransportFactory()
