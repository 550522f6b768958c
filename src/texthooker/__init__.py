"""Terminal texthooker: display text lines streamed over a WebSocket."""

__version__ = "0.1.0"
