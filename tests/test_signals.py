"""Tests for Signal and EventStream."""

from texthooker.signals import EventStream, Signal


class TestSignal:
    def test_subscribe_replays_current_value(self):
        signal = Signal("a")
        seen = []
        signal.subscribe(seen.append)
        assert seen == ["a"]

    def test_set_notifies_every_subscriber(self):
        signal = Signal(0)
        first, second = [], []
        signal.subscribe(first.append)
        signal.subscribe(second.append)
        signal.set(1)
        assert first == [0, 1]
        assert second == [0, 1]
        assert signal.value == 1

    def test_set_same_value_still_notifies(self):
        signal = Signal(True)
        seen = []
        signal.subscribe(seen.append)
        signal.set(True)
        assert seen == [True, True]

    def test_unsubscribe_stops_delivery(self):
        signal = Signal(0)
        seen = []
        subscription = signal.subscribe(seen.append)
        subscription.unsubscribe()
        signal.set(1)
        assert seen == [0]
        assert subscription.closed
        assert signal.subscriber_count == 0

    def test_unsubscribe_is_idempotent(self):
        signal = Signal(0)
        subscription = signal.subscribe(lambda _v: None)
        subscription.unsubscribe()
        subscription.unsubscribe()
        assert signal.subscriber_count == 0

    def test_repr(self):
        assert repr(Signal("x")) == "Signal('x')"


class TestEventStream:
    def test_no_replay(self):
        stream: EventStream[int] = EventStream()
        stream.emit(1)
        seen = []
        stream.subscribe(seen.append)
        assert seen == []
        stream.emit(2)
        assert seen == [2]

    def test_emit_without_value(self):
        stream: EventStream[None] = EventStream()
        seen = []
        stream.subscribe(seen.append)
        stream.emit()
        assert seen == [None]

    def test_callback_may_unsubscribe_during_dispatch(self):
        stream: EventStream[int] = EventStream()
        seen = []
        holder = {}

        def once(value):
            seen.append(("once", value))
            holder["sub"].unsubscribe()

        holder["sub"] = stream.subscribe(once)
        stream.subscribe(lambda v: seen.append(("always", v)))

        stream.emit(1)
        stream.emit(2)
        assert seen == [("once", 1), ("always", 1), ("always", 2)]

    def test_same_callback_twice_releases_one(self):
        stream: EventStream[int] = EventStream()
        seen = []
        first = stream.subscribe(seen.append)
        stream.subscribe(seen.append)
        first.unsubscribe()
        stream.emit(1)
        assert seen == [1]
