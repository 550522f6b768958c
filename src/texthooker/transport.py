# src/texthooker/transport.py

"""WebSocket transport with browser-style ready states and callbacks.

One WebSocketTransport is one connection attempt and its lifetime. It is
never reused: the connection manager builds a fresh one for every cycle.
"""

from __future__ import annotations

import asyncio
from typing import Protocol

import structlog
import websockets
from websockets.exceptions import ConnectionClosed, InvalidURI, WebSocketException
from websockets.uri import parse_uri

from texthooker.errors import EstablishmentError
from texthooker.models import ConnectionState

log = structlog.get_logger()

NORMAL_CLOSURE = 1000
INTERNAL_ERROR = 1011
USER_CLOSE_REASON = "User Request"


class TransportListener(Protocol):
    """Receives transport events; each call carries the transport it came from."""

    def on_open(self, transport: Transport) -> None: ...

    def on_message(self, transport: Transport, data: str | bytes) -> None: ...

    def on_close(self, transport: Transport) -> None: ...


class Transport(Protocol):
    """What the connection manager needs from a transport."""

    url: str
    ready_state: ConnectionState

    def close(self, code: int = NORMAL_CLOSURE, reason: str = USER_CLOSE_REASON) -> None: ...

    def detach(self) -> None: ...


class WebSocketTransport:
    """Asynchronous WebSocket connection reporting through a listener.

    Construction validates the URL and schedules the handshake on the
    running event loop; it never blocks. Failures after construction end in
    ready_state CLOSED and a single on_close callback.
    """

    def __init__(
        self,
        url: str,
        listener: TransportListener | None,
        *,
        open_timeout: float = 10.0,
        max_size: int | None = 2**20,
    ):
        try:
            parse_uri(url)
        except InvalidURI as e:
            raise EstablishmentError(url, "invalid WebSocket URL") from e

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError as e:
            raise EstablishmentError(url, "no running event loop") from e

        self.url = url
        self.ready_state = ConnectionState.CONNECTING
        self.open_timeout = open_timeout
        self.max_size = max_size
        self._listener = listener
        self._ws: websockets.ClientConnection | None = None
        self._close_request: tuple[int, str] | None = None
        self._close_task: asyncio.Task | None = None
        self._task = loop.create_task(self._run(), name=f"ws:{url}")

    def __repr__(self) -> str:
        return f"<WebSocketTransport {self.url} {self.ready_state.name}>"

    def close(self, code: int = NORMAL_CLOSURE, reason: str = USER_CLOSE_REASON) -> None:
        """Request a graceful close.

        While the handshake is pending the request is recorded and carried out
        as soon as the handshake resolves; OPEN is never reported in that case.
        """
        if self.ready_state in (ConnectionState.CLOSING, ConnectionState.CLOSED):
            return
        self._close_request = (code, reason)
        self.ready_state = ConnectionState.CLOSING
        if self._ws is not None:
            self._close_task = asyncio.get_running_loop().create_task(
                self._ws.close(code=code, reason=reason)
            )

    def detach(self) -> None:
        """Drop the listener; no callbacks are delivered afterwards."""
        self._listener = None

    async def wait_closed(self) -> None:
        """Wait until the connection task has finished."""
        await asyncio.gather(self._task, return_exceptions=True)

    async def _run(self) -> None:
        try:
            ws = await websockets.connect(
                self.url, open_timeout=self.open_timeout, max_size=self.max_size
            )
        except (OSError, TimeoutError, WebSocketException) as e:
            log.info("socket_handshake_failed", url=self.url, error=f"{type(e).__name__}: {e}")
            self._finish()
            return
        except asyncio.CancelledError:
            self._finish()
            raise

        self._ws = ws
        if self._close_request is not None:
            # Closed while connecting: finish the close without reporting OPEN
            code, reason = self._close_request
            try:
                await ws.close(code=code, reason=reason)
            finally:
                self._finish()
            return

        self.ready_state = ConnectionState.OPEN
        close_code, close_reason = NORMAL_CLOSURE, ""
        try:
            if self._listener is not None:
                self._listener.on_open(self)
            async for message in ws:
                if self._listener is not None:
                    self._listener.on_message(self, message)
        except ConnectionClosed as e:
            log.info("socket_closed_abnormally", url=self.url, code=_close_code(e))
        except Exception:
            log.exception("socket_read_loop_failed", url=self.url)
            close_code, close_reason = INTERNAL_ERROR, "Internal Error"
        finally:
            # The wire must be closed before CLOSED is reported
            try:
                await ws.close(code=close_code, reason=close_reason)
            finally:
                self._finish()

    def _finish(self) -> None:
        self.ready_state = ConnectionState.CLOSED
        self._ws = None
        if self._listener is not None:
            self._listener.on_close(self)


def _close_code(exc: ConnectionClosed) -> int | None:
    """Close code received from the peer, if any."""
    rcvd = getattr(exc, "rcvd", None)
    return rcvd.code if rcvd is not None else None
