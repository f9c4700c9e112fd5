"""Typed caller input for control and slave request calls.

Inbound bodies use a mix of spellings (``deviceid`` from the mobile app,
``deviceId``/``sensorIndex`` from newer clients). The aliases below are
the only place those spellings are known.
"""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, Field, field_validator

from pytankctl._constants import DEFAULT_SLAVE_MODE
from pytankctl.models._base import LooseInt, TankCtlBaseModel, safe_int

DEVICE_ID_ALIASES = AliasChoices("deviceid", "deviceId", "device_id")


class ControlRequest(TankCtlBaseModel):
    """Free-form control command; only the device id is interpreted."""

    device_id: str = Field(validation_alias=DEVICE_ID_ALIASES)

    def command_payload(self) -> dict[str, Any]:
        """The caller's body, forwarded to the device unchanged."""
        return dict(self.raw)


class SlaveRequest(TankCtlBaseModel):
    """Modbus slave configuration request relayed to a tank sensor."""

    device_id: str = Field(validation_alias=DEVICE_ID_ALIASES)
    sensor_no: str | int = Field(validation_alias=AliasChoices("sensor_no", "sensorIndex", "sensor_index", "sensorNo"))
    mode: int = DEFAULT_SLAVE_MODE
    channel: LooseInt = None
    address_l: str | int | None = Field(default=None, validation_alias=AliasChoices("address_l", "addressLow"))
    address_h: str | int | None = Field(default=None, validation_alias=AliasChoices("address_h", "addressHigh"))
    range: LooseInt = None
    capacity: LooseInt = None
    slave_id: str | int | None = Field(default=None, validation_alias=AliasChoices("slaveid", "slaveId", "slave_id"))

    @field_validator("mode", mode="before")
    @classmethod
    def _coerce_mode(cls, value: Any) -> int:
        # 0 and unparseable values both select the default mode.
        return safe_int(value) or DEFAULT_SLAVE_MODE

    def command_payload(self) -> dict[str, Any]:
        """Payload in the exact shape the base firmware parses."""
        payload: dict[str, Any] = {
            "deviceid": self.device_id,
            "sensor_no": self.sensor_no,
            "mode": self.mode,
            "channel": self.channel,
            "address_l": self.address_l,
            "address_h": self.address_h,
            "range": self.range,
            "capacity": self.capacity,
        }
        if self.slave_id:
            payload["slaveid"] = self.slave_id
        return payload
