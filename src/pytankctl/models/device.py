"""Device hierarchy records: accounts own spaces, spaces own devices."""

from __future__ import annotations

import enum
from typing import Annotated, Any

from pydantic import AliasChoices, BeforeValidator, Field

from pytankctl._constants import DEVICE_TYPE_BASE, DEVICE_TYPE_TANK
from pytankctl.models._base import TankCtlBaseModel

# Legacy spellings of the thing id, highest priority first.
DEVICE_THING_ID_ALIASES = AliasChoices("thing_name", "thingid", "thingId", "thing_id")
SENSOR_THING_ID_ALIASES = AliasChoices("thingid", "thingId", "thing_id")


class DeviceType(enum.StrEnum):
    """Position of a device in the hierarchy.

    ``BASE`` devices own a thing id; ``TANK`` devices hang off a base in
    the same space and publish through it. Unrecognised values map to
    ``OTHER``.
    """

    BASE = DEVICE_TYPE_BASE
    TANK = DEVICE_TYPE_TANK
    OTHER = "other"

    @classmethod
    def _missing_(cls, value: object) -> DeviceType:
        return cls.OTHER


def _coerce_device_type(value: Any) -> DeviceType:
    if isinstance(value, DeviceType):
        return value
    return DeviceType(str(value).strip().lower())


class DeviceRecord(TankCtlBaseModel):
    """One entry of ``spaces[].devices[]``."""

    device_id: str | None = Field(default=None, validation_alias=AliasChoices("device_id", "deviceid", "deviceId"))
    device_type: Annotated[DeviceType, BeforeValidator(_coerce_device_type)] = DeviceType.OTHER
    parent_device_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("parent_device_id", "parentDeviceId"),
    )
    thing_id: str | None = Field(default=None, validation_alias=DEVICE_THING_ID_ALIASES)

    @property
    def is_base(self) -> bool:
        return self.device_type == DeviceType.BASE

    @property
    def is_tank(self) -> bool:
        return self.device_type == DeviceType.TANK


class Space(TankCtlBaseModel):
    """A group of devices installed at one site."""

    name: str | None = None
    devices: list[DeviceRecord] = Field(default_factory=list)

    def find_device(self, device_id: str, device_type: DeviceType | None = None) -> DeviceRecord | None:
        """Return the first device with *device_id* (and *device_type*, if given)."""
        for device in self.devices:
            if device.device_id != device_id:
                continue
            if device_type is not None and device.device_type != device_type:
                continue
            return device
        return None


class SensorMetadata(TankCtlBaseModel):
    """Fast-path mapping from a device id straight to its thing id."""

    device_id: str | None = Field(default=None, validation_alias=AliasChoices("deviceid", "device_id", "deviceId"))
    thing_id: str | None = Field(default=None, validation_alias=SENSOR_THING_ID_ALIASES)
