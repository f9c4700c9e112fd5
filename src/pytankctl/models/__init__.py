"""Data models for store documents, caller input and results."""

from pytankctl.models._base import LooseInt, StoreTimestamp, TankCtlBaseModel, parse_store_timestamp, safe_int
from pytankctl.models.device import DeviceRecord, DeviceType, SensorMetadata, Space
from pytankctl.models.requests import ControlRequest, SlaveRequest
from pytankctl.models.responses import (
    PublishResult,
    ResponseCheck,
    SlaveReply,
    SlaveReplyData,
    SlaveReplyPayload,
    SlaveRequestResult,
)

__all__ = [
    "ControlRequest",
    "DeviceRecord",
    "DeviceType",
    "LooseInt",
    "PublishResult",
    "ResponseCheck",
    "SensorMetadata",
    "SlaveReply",
    "SlaveReplyData",
    "SlaveReplyPayload",
    "SlaveRequest",
    "SlaveRequestResult",
    "Space",
    "StoreTimestamp",
    "TankCtlBaseModel",
    "parse_store_timestamp",
    "safe_int",
]
