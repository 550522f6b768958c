# src/texthooker/signals.py

"""Minimal reactive primitives used to wire config, UI and connections.

Signal holds a current value and replays it to new subscribers; EventStream
carries discrete events with no replay. Both dispatch synchronously on the
caller's thread, which is always the event loop thread in this app.
"""

from __future__ import annotations

from typing import Callable, Generic, TypeVar


T = TypeVar("T")


class Subscription:
    """Handle returned by subscribe(); unsubscribe() is safe to call repeatedly."""

    def __init__(self, release: Callable[[], None]):
        self._release: Callable[[], None] | None = release

    @property
    def closed(self) -> bool:
        """Whether the subscription has been released."""
        return self._release is None

    def unsubscribe(self) -> None:
        """Stop receiving values."""
        release, self._release = self._release, None
        if release is not None:
            release()


class EventStream(Generic[T]):
    """Fire-and-forget event stream; subscribers only see events emitted after subscribing."""

    def __init__(self) -> None:
        self._callbacks: list[Callable[[T], None]] = []

    @property
    def subscriber_count(self) -> int:
        """Number of live subscriptions."""
        return len(self._callbacks)

    def subscribe(self, callback: Callable[[T], None]) -> Subscription:
        """Register callback and return its subscription handle."""
        self._callbacks.append(callback)

        def release() -> None:
            try:
                self._callbacks.remove(callback)
            except ValueError:
                pass

        return Subscription(release)

    def emit(self, value: T = None) -> None:  # type: ignore[assignment]
        """Deliver value to every current subscriber."""
        # Snapshot so callbacks may unsubscribe while we dispatch
        for callback in list(self._callbacks):
            callback(value)


class Signal(EventStream[T]):
    """Value holder; subscribers get the current value immediately, then every update."""

    def __init__(self, value: T):
        super().__init__()
        self._value = value

    @property
    def value(self) -> T:
        """Current value."""
        return self._value

    def subscribe(self, callback: Callable[[T], None]) -> Subscription:
        """Register callback, calling it once with the current value."""
        subscription = super().subscribe(callback)
        callback(self._value)
        return subscription

    def set(self, value: T) -> None:
        """Replace the value and notify subscribers (even if unchanged)."""
        self._value = value
        self.emit(value)

    def __repr__(self) -> str:
        return f"Signal({self._value!r})"
