# src/texthooker/listener.py

"""Headless listener: print received lines to stdout until interrupted."""

from __future__ import annotations

import asyncio
import json
import signal

import click
import structlog

from texthooker import logging as console
from texthooker.config import Config
from texthooker.connection import TransportFactory
from texthooker.models import ConnectionState, LineEvent
from texthooker.session import Session, Slot
from texthooker.signals import Subscription

log = structlog.get_logger()


class Listener:
    """Runs a Session on the current event loop and echoes its output."""

    def __init__(
        self,
        config: Config,
        as_json: bool = False,
        transport_factory: TransportFactory | None = None,
    ):
        self.config = config
        self.as_json = as_json
        self.session = Session(config, transport_factory=transport_factory)
        self._shutdown_event = asyncio.Event()
        self._subscriptions: list[Subscription] = []
        self._ticker_task: asyncio.Task | None = None
        self._signals: list[signal.Signals] = []

    async def start(self) -> None:
        """Wire outputs, start connections and the reconnect ticker."""
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            try:
                loop.add_signal_handler(sig, lambda s=sig: self._handle_signal(s))
                self._signals.append(sig)
            except (NotImplementedError, RuntimeError):
                # No signal support (e.g. not on the main thread)
                pass

        self._subscriptions.append(self.session.lines.subscribe(self._on_line))
        for slot in self.session.slots:
            self._subscriptions.append(
                slot.state.subscribe(lambda state, slot=slot: self._on_state(slot, state))
            )

        active = sum(1 for s in self.session.slots if s.target.value)
        console.listening(active)
        self.session.start()
        self._ticker_task = asyncio.create_task(self._ticker())

    async def run(self) -> None:
        """Start and block until a shutdown signal arrives."""
        await self.start()
        await self._shutdown_event.wait()

    async def stop(self) -> None:
        """Stop the ticker and close every connection."""
        if self._ticker_task:
            self._ticker_task.cancel()
            try:
                await self._ticker_task
            except asyncio.CancelledError:
                pass
            self._ticker_task = None

        self.session.close()
        loop = asyncio.get_running_loop()
        for sig in self._signals:
            loop.remove_signal_handler(sig)
        self._signals.clear()
        await self._wait_closed(timeout=1.0)
        for subscription in self._subscriptions:
            subscription.unsubscribe()
        self._subscriptions.clear()
        console.listener_stopped()

    async def _wait_closed(self, timeout: float) -> None:
        """Let graceful closes reach the wire before the loop goes away."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while loop.time() < deadline and any(
            s.state.value != ConnectionState.CLOSED for s in self.session.slots
        ):
            await asyncio.sleep(0.05)

    def request_stop(self) -> None:
        """Ask run() to return."""
        self._shutdown_event.set()

    async def _ticker(self) -> None:
        """Fire the reconnect trigger every reconnect_interval seconds."""
        interval = self.config.connection.reconnect_interval
        while True:
            await asyncio.sleep(interval)
            self.session.tick()

    def _handle_signal(self, sig: signal.Signals) -> None:
        log.info("signal_received", signal=sig.name)
        console.signal_received(sig.name)
        self.request_stop()

    def _on_line(self, event: LineEvent) -> None:
        text = event.text
        if not self.config.display.preserve_whitespace:
            text = text.strip()
        if self.as_json:
            click.echo(json.dumps({"text": text, "origin": event.origin.value}, ensure_ascii=False))
        else:
            click.echo(text)

    def _on_state(self, slot: Slot, state: ConnectionState) -> None:
        # Skip the initial replay before any manager exists
        if not self.session.started:
            return
        console.state_changed(slot.name, state, slot.target.value)


async def run_listener(config: Config, as_json: bool = False) -> None:
    """Run the headless listener until SIGINT/SIGTERM."""
    listener = Listener(config, as_json=as_json)
    try:
        await listener.run()
    finally:
        await listener.stop()
