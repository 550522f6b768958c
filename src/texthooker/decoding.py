# src/texthooker/decoding.py

"""Turn inbound WebSocket payloads into display text.

Hook tools send either a JSON object such as {"sentence": "..."} or the
plain line itself. Anything that is not the former is shown verbatim.
"""

from __future__ import annotations

import json
from typing import Any

from texthooker.errors import DecodeError

TEXT_FIELD = "sentence"


def payload_text(data: str | bytes) -> str:
    """Return the payload as text, replacing undecodable bytes."""
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data


def parse_payload(raw: str) -> str:
    """Extract the text field from a JSON payload.

    Raises:
        DecodeError: If raw is not JSON, not an object, or lacks a
            non-empty text field.
    """
    try:
        parsed: Any = json.loads(raw)
    except (ValueError, RecursionError) as e:
        # Pathologically nested input exhausts the recursion limit
        raise DecodeError(f"not JSON: {e}") from e

    if not isinstance(parsed, dict):
        raise DecodeError(f"expected object, got {type(parsed).__name__}")

    value = parsed.get(TEXT_FIELD)
    # Falsy scalars (null, "", false, 0) count as absent
    if value in (None, "", False):
        raise DecodeError(f"missing {TEXT_FIELD!r} field")
    # Non-string values are shown as JSON text (true, 42, {"a": 1})
    return value if isinstance(value, str) else json.dumps(value, ensure_ascii=False)


def decode_line(data: str | bytes) -> str:
    """Decode one message to a line, falling back to the raw text.

    Never raises and never drops a message: "not JSON" and "JSON without
    the field" both fall back to the unmodified payload text.
    """
    raw = payload_text(data)
    try:
        return parse_payload(raw)
    except DecodeError:
        return raw
