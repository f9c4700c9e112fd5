"""pytankctl - Async command/response correlation for tank monitoring devices."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pytankctl")
except PackageNotFoundError:
    __version__ = "0+local"
from pytankctl._mqtt import MqttPublisher
from pytankctl._store import DocumentStore, MongoDocumentStore
from pytankctl._transport import HttpPublisher, Publisher
from pytankctl.config import CollectionNames, PollProfile, TankCtlConfig
from pytankctl.exceptions import (
    TankCtlConfigError,
    TankCtlDeviceNotFoundError,
    TankCtlError,
    TankCtlPublishError,
    TankCtlRequestError,
    TankCtlSettingError,
    TankCtlStoreError,
)
from pytankctl.models import (
    ControlRequest,
    DeviceType,
    PublishResult,
    ResponseCheck,
    SlaveReplyData,
    SlaveRequest,
    SlaveRequestResult,
)
from pytankctl.normalize import normalize_document
from pytankctl.poller import MatchCriteria, ResponsePoller
from pytankctl.resolver import IdentityResolver
from pytankctl.service import ControlService

__all__ = [
    "__version__",
    "CollectionNames",
    "ControlRequest",
    "ControlService",
    "DeviceType",
    "DocumentStore",
    "HttpPublisher",
    "IdentityResolver",
    "MatchCriteria",
    "MongoDocumentStore",
    "MqttPublisher",
    "PollProfile",
    "PublishResult",
    "Publisher",
    "ResponseCheck",
    "ResponsePoller",
    "SlaveReplyData",
    "SlaveRequest",
    "SlaveRequestResult",
    "TankCtlConfig",
    "TankCtlConfigError",
    "TankCtlDeviceNotFoundError",
    "TankCtlError",
    "TankCtlPublishError",
    "TankCtlRequestError",
    "TankCtlSettingError",
    "TankCtlStoreError",
    "normalize_document",
]
