"""Base model and coercion helpers for store documents and caller input.

Every inbound model inherits from :class:`TankCtlBaseModel` which
provides:

* A ``model_validator(mode="wrap")`` that strips placeholder values
  (``""``, ``"--"``, NaN) so the field default is used. This is what
  lets ordered ``AliasChoices`` fall through an empty legacy field to
  the next spelling.
* A read-only ``raw`` property with the original document, kept in a
  private attribute so no input key can overwrite it.

Legacy field spellings are declared once per field with
``validation_alias=AliasChoices(...)``; code past the model never looks
at alias names again.
"""

from __future__ import annotations

import math
from datetime import UTC, datetime
from typing import Annotated, Any, Self

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    ModelWrapValidatorHandler,
    PrivateAttr,
    model_validator,
)

# Placeholder strings producers write for "not available".
_SENTINELS = frozenset({"", "--", "NaN", "nan", "null"})

# Threshold to distinguish seconds from milliseconds.
_MS_THRESHOLD = 1_000_000_000_000


def safe_int(value: Any) -> int | None:
    """Coerce *value* to ``int`` the way device firmware parses numbers.

    Accepts ints, floats and numeric strings (``"12"``, ``"12.7"`` -> 12).
    Anything else yields ``None``.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        parsed = float(str(value).strip())
    except (TypeError, ValueError):
        return None
    if math.isnan(parsed) or math.isinf(parsed):
        return None
    return int(parsed)


def parse_store_timestamp(value: Any) -> datetime | None:
    """Convert a stored timestamp to an aware UTC datetime.

    Accepts datetimes (naive values are assumed UTC), epoch seconds or
    milliseconds, and ISO-8601 strings. Anything else, including
    unparseable text, yields ``None``.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    elif isinstance(value, (int, float)):
        ts = safe_int(value)
        if ts is None:
            return None
        if ts >= _MS_THRESHOLD:
            ts = ts // 1000
        try:
            return datetime.fromtimestamp(ts, tz=UTC)
        except (OverflowError, OSError, ValueError):
            return None
    else:
        return None
    return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=UTC)


StoreTimestamp = Annotated[datetime | None, BeforeValidator(parse_store_timestamp)]
"""Annotated type that coerces stored timestamps to UTC datetimes."""

LooseInt = Annotated[int | None, BeforeValidator(safe_int)]
"""Annotated type for numeric fields that may arrive as text."""


class TankCtlBaseModel(BaseModel):
    """Base for documents read from the store and for caller input."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        coerce_numbers_to_str=True,
    )

    _raw: dict[str, Any] = PrivateAttr(default_factory=dict)

    @property
    def raw(self) -> dict[str, Any]:
        """Original document or request body."""
        return self._raw

    @staticmethod
    def _clean_dict(values: dict[str, Any]) -> dict[str, Any]:
        """Drop ``None`` and placeholder values from *values*."""
        cleaned: dict[str, Any] = {}
        for key, value in values.items():
            if value is None:
                continue
            if isinstance(value, str) and value.strip() in _SENTINELS:
                continue
            if isinstance(value, float) and math.isnan(value):
                continue
            cleaned[key] = value
        return cleaned

    @model_validator(mode="wrap")
    @classmethod
    def _clean_values(cls, values: Any, handler: ModelWrapValidatorHandler[Self]) -> Self:
        """Strip placeholder values and keep the untouched payload in ``raw``."""
        if not isinstance(values, dict):
            return handler(values)
        model = handler(TankCtlBaseModel._clean_dict(values))
        model._raw = dict(values)
        return model
