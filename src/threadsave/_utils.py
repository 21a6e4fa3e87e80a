"""Small helpers for SQL text and stored payloads."""

from __future__ import annotations

import base64
import binascii
import re
from typing import Any

from threadsave.exceptions import UnsupportedPayloadError

_WHITESPACE = re.compile(r"\s+")

# Current time as integer epoch seconds, evaluated by SQLite
NOW_EPOCH = "CAST(strftime('%s', 'now') AS INTEGER)"


def normalize_sql(sql: str) -> str:
    """Collapse whitespace so multi-line SQL literals become one line."""
    return _WHITESPACE.sub(" ", sql).strip()


def to_bytes(value: Any) -> bytes:
    """Normalize a stored payload to bytes.

    Accepts bytes-like objects, lists of byte values (0-255) and base64
    text. Anything else raises UnsupportedPayloadError; nothing is coerced
    to empty data.
    """
    if isinstance(value, bytes):
        return value
    if isinstance(value, (bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, list) and all(isinstance(n, int) and not isinstance(n, bool) and 0 <= n <= 255 for n in value):
        return bytes(value)
    if isinstance(value, str):
        try:
            return base64.b64decode(value, validate=True)
        except binascii.Error:
            raise UnsupportedPayloadError(value) from None
    raise UnsupportedPayloadError(value)


def from_hex(value: Any) -> bytes:
    """Decode a ``hex(blob)`` column produced inside a JSON aggregate."""
    if value is None:
        return b""
    if not isinstance(value, str):
        raise UnsupportedPayloadError(value)
    try:
        return bytes.fromhex(value)
    except ValueError:
        raise UnsupportedPayloadError(value) from None
