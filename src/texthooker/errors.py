# src/texthooker/errors.py

"""Error taxonomy for texthooker.

Only config loading lets these escape to callers. The connection manager
catches them and turns every failure into a published CLOSED state.
"""


class TexthookerError(Exception):
    """Base class for texthooker errors."""


class ConfigurationError(TexthookerError, ValueError):
    """Missing or invalid configuration (including no connection target)."""


class EstablishmentError(TexthookerError):
    """Transport could not be constructed or the handshake failed."""

    def __init__(self, url: str | None, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Cannot connect to {url!r}: {reason}")


class DecodeError(TexthookerError):
    """Inbound payload is not structured data with a recognized text field."""
