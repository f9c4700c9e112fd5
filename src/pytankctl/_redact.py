"""Masking of command payloads before they reach DEBUG log records.

Control bodies are forwarded verbatim from callers, so they can carry
gateway keys or the caller's phone number (``requestedBy``).
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date, datetime
from typing import Any

from pydantic import BaseModel

MASK = "<redacted>"

# Matched against lower-cased keys with ``-`` and ``_`` removed.
_SECRET_MARKERS = ("password", "token", "apikey", "secret", "authorization", "cookie")
_IDENTITY_KEYS = frozenset({"requestedby", "mobilenumber"})

_MAX_DEPTH = 12


def _is_sensitive(key: str) -> bool:
    flat = key.lower().replace("-", "").replace("_", "")
    return flat in _IDENTITY_KEYS or any(marker in flat for marker in _SECRET_MARKERS)


def redact_for_log(value: Any, *, max_string: int = 512, _depth: int = 0) -> Any:
    """Return a copy of *value* that is safe to log.

    Sensitive keys are masked at any depth, long strings are cut to
    *max_string* characters and store types (``ObjectId``, datetimes) are
    rendered as text.
    """
    if _depth > _MAX_DEPTH:
        return "<max-depth>"
    if value is None or isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, str):
        return value if len(value) <= max_string else f"{value[:max_string]}…<truncated>"
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, BaseModel):
        value = value.model_dump(by_alias=True)
    if isinstance(value, Mapping):
        return {
            str(k): MASK if _is_sensitive(str(k)) else redact_for_log(v, max_string=max_string, _depth=_depth + 1)
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple, set)):
        return [redact_for_log(v, max_string=max_string, _depth=_depth + 1) for v in value]
    if isinstance(value, (bytes, bytearray)):
        return f"<{len(value)} bytes>"
    return str(value)
