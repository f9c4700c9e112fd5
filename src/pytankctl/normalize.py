"""Normalization helpers for documents read from the response store."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pytankctl.models.requests import SlaveRequest
from pytankctl.models.responses import SlaveReply, SlaveReplyData


def normalize_document(doc: Mapping[str, Any]) -> dict[str, Any]:
    """Return a shallow copy of *doc* with ``_id`` in printable form.

    Every other field is passed through unchanged, so normalizing twice is
    the same as normalizing once.
    """
    normalized = dict(doc)
    object_id = normalized.get("_id")
    if object_id is not None and not isinstance(object_id, str):
        normalized["_id"] = str(object_id)
    return normalized


def slave_reply_data(doc: Mapping[str, Any], request: SlaveRequest) -> SlaveReplyData:
    """Reconcile a raw slave reply document with the request that caused it."""
    reply = SlaveReply.model_validate(normalize_document(doc))
    return SlaveReplyData.from_reply(reply, request)
