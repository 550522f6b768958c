# src/texthooker/models.py

"""Core value types shared by the connection manager and its consumers."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum


class ConnectionState(IntEnum):
    """Connection state, numbered like WebSocket ready-state codes.

    The manager's disconnected state (no target, never attempted, or dropped)
    is published as CLOSED; DISCONNECTED is an alias for readability.
    """

    CONNECTING = 0
    OPEN = 1
    CLOSING = 2
    CLOSED = 3
    DISCONNECTED = 3

    @property
    def is_live(self) -> bool:
        """Whether a transport in this state counts as open or opening."""
        return self in (ConnectionState.CONNECTING, ConnectionState.OPEN)


class LineType(str, Enum):
    """Where a displayed line came from."""

    SOCKET = "socket"
    PASTE = "paste"
    EXTERNAL = "external"
    EDIT = "edit"
    UNDO = "undo"


@dataclass(frozen=True)
class LineEvent:
    """A line of text together with its origin."""

    text: str
    origin: LineType = LineType.SOCKET
