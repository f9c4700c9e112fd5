"""Device reply documents and the results handed back to callers."""

from __future__ import annotations

import json
from collections.abc import Mapping
from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from pytankctl.models._base import LooseInt, StoreTimestamp, TankCtlBaseModel
from pytankctl.models.requests import SlaveRequest

# ------------------------------------------------------------------
# Store documents
# ------------------------------------------------------------------


class SlaveReplyPayload(TankCtlBaseModel):
    """Nested ``response_data`` of a slave reply.

    Firmware revisions disagree on field names; every known spelling is
    listed here.
    """

    status: str | None = None
    channel: LooseInt = None
    address_l: str | int | None = Field(
        default=None, validation_alias=AliasChoices("address_l", "addressL", "addressLow")
    )
    address_h: str | int | None = Field(
        default=None, validation_alias=AliasChoices("address_h", "addressH", "addressHigh")
    )
    sensor_no: str | int | None = Field(
        default=None, validation_alias=AliasChoices("sensor_no", "sensorNo", "sensor_index", "sensorIndex")
    )
    slave_id: str | int | None = Field(default=None, validation_alias=AliasChoices("slaveid", "slaveId", "slave_id"))


class SlaveReply(TankCtlBaseModel):
    """A ``slave_response`` document from the device responses collection."""

    id: str | None = Field(default=None, validation_alias=AliasChoices("_id", "id"))
    device_id: str | None = Field(default=None, validation_alias=AliasChoices("deviceid", "deviceId", "device_id"))
    thing_id: str | None = Field(default=None, validation_alias=AliasChoices("thingid", "thingId", "thing_id"))
    inserted_at: StoreTimestamp = None
    response_data: SlaveReplyPayload = Field(default_factory=SlaveReplyPayload)

    @field_validator("response_data", mode="before")
    @classmethod
    def _coerce_payload(cls, value: Any) -> Any:
        # Some producers store the payload as a JSON string; anything that
        # is not an object counts as an empty payload.
        if isinstance(value, SlaveReplyPayload):
            return value
        if isinstance(value, (str, bytes)):
            try:
                value = json.loads(value)
            except ValueError:
                return {}
        return dict(value) if isinstance(value, Mapping) else {}


# ------------------------------------------------------------------
# Caller-facing results
# ------------------------------------------------------------------


class _Result(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready dict using the wire field names."""
        return self.model_dump(mode="json", by_alias=True)


class SlaveReplyData(_Result):
    """Canonical reply data for a slave request.

    Each field prefers the device's reply and falls back to what the
    caller sent when the reply omits it.
    """

    status: str = "success"
    device_id: str | None = Field(default=None, serialization_alias="deviceid")
    thing_id: str | None = Field(default=None, serialization_alias="thingid")
    channel: int | None = None
    address_l: str | int | None = None
    address_h: str | int | None = None
    sensor_no: str | int | None = None
    slave_id: str | int | None = Field(default=None, serialization_alias="slaveid")
    timestamp: datetime | None = None

    @classmethod
    def from_reply(cls, reply: SlaveReply, request: SlaveRequest) -> SlaveReplyData:
        data = reply.response_data
        return cls(
            status=data.status or "success",
            device_id=reply.device_id,
            thing_id=reply.thing_id,
            channel=data.channel if data.channel is not None else request.channel,
            address_l=data.address_l if data.address_l is not None else request.address_l,
            address_h=data.address_h if data.address_h is not None else request.address_h,
            sensor_no=data.sensor_no if data.sensor_no is not None else request.sensor_no,
            slave_id=data.slave_id,
            timestamp=reply.inserted_at,
        )


class PublishResult(_Result):
    """Outcome of a fire-and-forget publish (control, setting)."""

    success: bool = True
    topic: str
    message: str = ""


class SlaveRequestResult(_Result):
    """Outcome of a slave request.

    ``data`` is ``None`` when the command was published but no reply
    showed up within the budget; that is still a success.
    """

    success: bool = True
    message: str
    data: SlaveReplyData | None = None

    @property
    def replied(self) -> bool:
        return self.data is not None


class ResponseCheck(_Result):
    """Outcome of a read-only liveness/update check."""

    responded: bool = Field(serialization_alias="success")
    message: str
