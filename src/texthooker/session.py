# src/texthooker/session.py

"""Application-wide signals and the connection managers that consume them.

A Session is what the TUI and the headless listener share: one target
signal and one state signal per configured slot, a single auto-reconnect
flag, a single reconnect trigger, and a single line stream that every
manager feeds.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import partial

import structlog

from texthooker.config import Config
from texthooker.connection import ReconnectBackoff, SocketConnection, TransportFactory
from texthooker.models import ConnectionState, LineEvent
from texthooker.signals import EventStream, Signal
from texthooker.transport import WebSocketTransport

log = structlog.get_logger()


@dataclass
class Slot:
    """One target slot: its input URL signal and its published state."""

    name: str
    target: Signal[str | None]
    state: Signal[ConnectionState]
    connection: SocketConnection | None = None


class Session:
    """Owns the shared signals and one SocketConnection per slot."""

    def __init__(self, config: Config, transport_factory: TransportFactory | None = None):
        self.config = config
        conn = config.connection
        self._transport_factory = transport_factory or partial(
            WebSocketTransport, open_timeout=conn.open_timeout
        )
        self.auto_reconnect: Signal[bool] = Signal(conn.continuous_reconnect)
        self.reconnect_trigger: EventStream[None] = EventStream()
        self.lines: EventStream[LineEvent] = EventStream()
        self.slots = [
            Slot(
                name=f"socket{i}",
                target=Signal(url or None),
                state=Signal(ConnectionState.CLOSED),
            )
            for i, url in enumerate(conn.targets, start=1)
        ]
        self._started = False

    @property
    def started(self) -> bool:
        """Whether managers have been created."""
        return self._started

    def start(self) -> None:
        """Create the managers; configured targets begin connecting immediately.

        Must run on the event loop that will own the connections.
        """
        if self._started:
            return
        self._started = True
        conn = self.config.connection
        for slot in self.slots:
            slot.connection = SocketConnection(
                self.reconnect_trigger,
                self.auto_reconnect,
                slot.target,
                slot.state.set,
                self.lines.emit,
                transport_factory=self._transport_factory,
                backoff=ReconnectBackoff(
                    initial_delay=conn.reconnect_initial_delay,
                    max_delay=conn.reconnect_max_delay,
                    multiplier=conn.reconnect_multiplier,
                ),
                name=slot.name,
            )
        log.info("session_started", slots=len(self.slots))

    def tick(self) -> None:
        """Fire the reconnect trigger (called on a timer)."""
        self.reconnect_trigger.emit(None)

    def set_target(self, index: int, url: str | None) -> None:
        """Point slot index at a new URL; the manager reconnects on its own."""
        self.slots[index].target.set(url or None)

    def toggle_auto_reconnect(self) -> bool:
        """Flip the auto-reconnect flag and return the new value."""
        self.auto_reconnect.set(not self.auto_reconnect.value)
        return self.auto_reconnect.value

    def reconnect_all(self) -> None:
        """Manual reconnect of every slot that has a target."""
        for slot in self._active_slots():
            slot.connection.reconnect()  # type: ignore[union-attr]

    def disconnect_all(self) -> None:
        """Close every live connection."""
        for slot in self._active_slots():
            slot.connection.disconnect()  # type: ignore[union-attr]

    def close(self) -> None:
        """Tear down every manager; safe to call more than once."""
        for slot in self.slots:
            if slot.connection is not None:
                slot.connection.clean_up()
        log.info("session_closed")

    def _active_slots(self) -> list[Slot]:
        return [s for s in self.slots if s.connection is not None and s.target.value]
