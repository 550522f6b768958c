# src/texthooker/connection.py

"""Reconnecting WebSocket connection manager.

SocketConnection owns at most one live transport. It watches three external
inputs (target URL, auto-reconnect flag, reconnect trigger) and publishes
two outputs (connection state, decoded line events). Every reconnect gets a
brand-new transport; superseded transports are detached so their late
callbacks can never touch the current connection.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable

import structlog

from texthooker.decoding import decode_line
from texthooker.errors import EstablishmentError
from texthooker.models import ConnectionState, LineEvent, LineType
from texthooker.signals import EventStream, Signal, Subscription
from texthooker.transport import (
    NORMAL_CLOSURE,
    USER_CLOSE_REASON,
    Transport,
    TransportListener,
    WebSocketTransport,
)

log = structlog.get_logger()

TransportFactory = Callable[[str, TransportListener], Transport]
StateSink = Callable[[ConnectionState], None]
LineSink = Callable[[LineEvent], None]

_UNSET = object()

CONNECTING = ConnectionState.CONNECTING
OPEN = ConnectionState.OPEN
CLOSING = ConnectionState.CLOSING
CLOSED = ConnectionState.CLOSED

# Transitions the manager expects to publish. Anything else is logged.
_ALLOWED_TRANSITIONS: dict[ConnectionState, frozenset[ConnectionState]] = {
    CLOSED: frozenset({CONNECTING, CLOSED}),
    CONNECTING: frozenset({OPEN, CLOSING, CLOSED}),
    OPEN: frozenset({CLOSING, CLOSED}),
    CLOSING: frozenset({CLOSED, CONNECTING}),
}


@dataclass
class ReconnectBackoff:
    """Exponential backoff window applied to automatic reconnect triggers.

    Schedule after consecutive failures: 1s → 2s → 4s → ... → max_delay.
    """

    initial_delay: float = 1.0
    max_delay: float = 30.0
    multiplier: float = 2.0
    clock: Callable[[], float] = time.monotonic
    delay: float = field(default=0.0, init=False)
    _not_before: float = field(default=0.0, init=False, repr=False)

    def ready(self) -> bool:
        """Whether an automatic attempt may start now."""
        return self.clock() >= self._not_before

    def failed(self) -> None:
        """Record a failed cycle and widen the window."""
        if self.delay <= 0:
            self.delay = self.initial_delay
        else:
            self.delay = min(self.delay * self.multiplier, self.max_delay)
        self._not_before = self.clock() + self.delay

    def reset(self) -> None:
        """Forget previous failures."""
        self.delay = 0.0
        self._not_before = 0.0


class SocketConnection:
    """State machine owning a single WebSocket connection.

    All methods are non-blocking and never raise; every failure ends in a
    published state. Meant to run on a single event loop thread.
    """

    def __init__(
        self,
        reconnect_trigger: EventStream[None],
        auto_reconnect: Signal[bool],
        target: Signal[str | None],
        state_sink: StateSink,
        line_sink: LineSink,
        *,
        transport_factory: TransportFactory = WebSocketTransport,
        backoff: ReconnectBackoff | None = None,
        name: str = "socket",
    ):
        self.name = name
        self._state_sink = state_sink
        self._line_sink = line_sink
        self._transport_factory = transport_factory
        self._backoff = backoff
        self._log = log.bind(connection=name)

        self._state = CLOSED
        self._target: object = _UNSET
        self._transport: Transport | None = None
        self._auto_reconnect = False
        self._cleaned_up = False
        self._subscriptions: list[Subscription] = []

        # Signals replay their current value, so a configured target connects here
        self._subscriptions.append(auto_reconnect.subscribe(self._on_auto_reconnect))
        self._subscriptions.append(target.subscribe(self._on_target))
        self._subscriptions.append(reconnect_trigger.subscribe(self._on_reconnect_trigger))

    @property
    def state(self) -> ConnectionState:
        """Last published state."""
        return self._state

    @property
    def current_target(self) -> str | None:
        """Target URL the manager last acted on."""
        return None if self._target is _UNSET else self._target  # type: ignore[return-value]

    @property
    def subscription_count(self) -> int:
        """Number of external subscriptions still held."""
        return sum(1 for s in self._subscriptions if not s.closed)

    # ─────────────────────────────────────────────────────────────────────
    # Public operations
    # ─────────────────────────────────────────────────────────────────────

    def connect(self) -> None:
        """Open a connection to the current target unless one is live."""
        transport = self._transport
        if transport is not None and transport.ready_state.is_live:
            self._check_drift(transport)
            return

        if transport is not None:
            # Closing or closed transport from a previous cycle
            transport.detach()
            self._transport = None

        url = self.current_target
        if not url:
            self._log.info("socket_no_target")
            self._publish(CLOSED)
            return

        self._publish(CONNECTING)
        try:
            self._transport = self._transport_factory(url, self)
        except EstablishmentError as e:
            self._log.warning("socket_establish_failed", url=url, reason=e.reason)
            self._connect_failed()
        except Exception as e:
            self._log.error("socket_establish_failed", url=url, reason=f"{type(e).__name__}: {e}")
            self._connect_failed()
        else:
            self._log.info("socket_connecting", url=url)

    def disconnect(self) -> None:
        """Gracefully close the live transport; no-op when there is none."""
        transport = self._transport
        if transport is None or not transport.ready_state.is_live:
            return
        self._log.info("socket_disconnecting", url=transport.url)
        self._publish(CLOSING)
        transport.close(NORMAL_CLOSURE, USER_CLOSE_REASON)

    def reconnect(self) -> None:
        """Operator-requested reconnect; ignores the auto-reconnect flag."""
        if self._cleaned_up:
            return
        if self._backoff is not None:
            self._backoff.reset()
        self._reload_socket()

    def clean_up(self) -> None:
        """Close the connection and release every subscription. Idempotent."""
        if self._cleaned_up:
            return
        self._cleaned_up = True
        self.disconnect()
        for subscription in self._subscriptions:
            subscription.unsubscribe()
        self._subscriptions.clear()
        self._log.debug("socket_cleaned_up")

    # ─────────────────────────────────────────────────────────────────────
    # External signal handlers
    # ─────────────────────────────────────────────────────────────────────

    def _on_target(self, value: str | None) -> None:
        url = (value or "").strip() or None
        if url == self._target:
            return
        self._log.info("socket_target_changed", url=url)
        self._target = url
        if self._backoff is not None:
            self._backoff.reset()
        self._reload_socket()

    def _on_auto_reconnect(self, enabled: bool) -> None:
        self._auto_reconnect = bool(enabled)
        self._log.debug("socket_auto_reconnect", enabled=self._auto_reconnect)

    def _on_reconnect_trigger(self, _event: object = None) -> None:
        # Disabled policy drops triggers outright, nothing is queued
        if not self._auto_reconnect:
            return
        transport = self._transport
        if transport is not None and transport.ready_state != CLOSED:
            return
        if transport is None and not self.current_target:
            return
        if self._backoff is not None and not self._backoff.ready():
            self._log.debug("socket_reconnect_backoff", delay=self._backoff.delay)
            return
        self._log.info("socket_auto_reconnect_cycle", url=self.current_target)
        self._reload_socket()

    # ─────────────────────────────────────────────────────────────────────
    # Transport callbacks
    # ─────────────────────────────────────────────────────────────────────

    def on_open(self, transport: Transport) -> None:
        if not self._is_current(transport, "open"):
            return
        if self._backoff is not None:
            self._backoff.reset()
        self._log.info("socket_open", url=transport.url)
        self._publish(transport.ready_state)

    def on_close(self, transport: Transport) -> None:
        if not self._is_current(transport, "close"):
            return
        if self._state != CLOSING:
            self._log.info("socket_dropped", url=transport.url, state=self._state.name)
            if self._backoff is not None:
                self._backoff.failed()
        else:
            self._log.info("socket_closed", url=transport.url)
        self._publish(transport.ready_state)

    def on_message(self, transport: Transport, data: str | bytes) -> None:
        if not self._is_current(transport, "message"):
            return
        if self._state != OPEN or transport.ready_state != OPEN:
            self._log.debug("socket_message_not_open", state=self._state.name)
            return
        try:
            self._line_sink(LineEvent(decode_line(data), LineType.SOCKET))
        except Exception:
            # A faulty consumer must not tear down the transport
            self._log.exception("socket_line_sink_failed", url=transport.url)

    # ─────────────────────────────────────────────────────────────────────
    # Internals
    # ─────────────────────────────────────────────────────────────────────

    def _reload_socket(self) -> None:
        self._retire_transport()
        self.connect()

    def _retire_transport(self) -> None:
        """Detach and close the current transport, leaving no reference to it."""
        transport = self._transport
        if transport is None:
            return
        transport.detach()
        self._transport = None
        if transport.ready_state.is_live:
            self._log.info("socket_disconnecting", url=transport.url)
            self._publish(CLOSING)
            transport.close(NORMAL_CLOSURE, USER_CLOSE_REASON)

    def _connect_failed(self) -> None:
        self._transport = None
        if self._backoff is not None:
            self._backoff.failed()
        self._publish(CLOSED)

    def _is_current(self, transport: Transport, event: str) -> bool:
        if transport is self._transport:
            return True
        self._log.debug("socket_stale_event", event_name=event, url=transport.url)
        return False

    def _check_drift(self, transport: Transport) -> None:
        if transport.ready_state != self._state:
            self._log.error(
                "socket_state_drift",
                manager=self._state.name,
                transport=transport.ready_state.name,
            )

    def _publish(self, state: ConnectionState) -> None:
        previous = self._state
        if state == OPEN and previous == OPEN:
            self._log.error("state_transition_refused", previous=previous.name, requested=state.name)
            return
        if state not in _ALLOWED_TRANSITIONS[previous]:
            self._log.warning(
                "state_transition_unexpected", previous=previous.name, requested=state.name
            )
        self._state = state
        self._state_sink(state)
