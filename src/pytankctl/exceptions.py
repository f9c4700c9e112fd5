"""Custom exception hierarchy for pytankctl."""

from __future__ import annotations


class TankCtlError(Exception):
    """Base exception for all pytankctl errors."""


class TankCtlConfigError(TankCtlError):
    """Invalid or missing configuration."""


class TankCtlRequestError(TankCtlError):
    """Caller input is missing a required field or is malformed.

    Raised before any identity resolution or publish is attempted.
    """

    def __init__(self, message: str, *, field: str = "") -> None:
        self.field = field
        super().__init__(message)


class TankCtlDeviceNotFoundError(TankCtlError):
    """No thing id could be derived for a device id.

    This is a defined outcome of identity resolution, never a wrapper
    around a store failure.
    """

    def __init__(self, message: str, *, device_id: str = "") -> None:
        self.device_id = device_id
        super().__init__(message)


class TankCtlStoreError(TankCtlError):
    """Document store query failed (network, server, invalid query)."""

    def __init__(self, message: str, *, collection: str = "") -> None:
        self.collection = collection
        super().__init__(message)


class TankCtlPublishError(TankCtlError):
    """Publishing a command to the messaging fabric failed."""

    def __init__(
        self,
        message: str,
        *,
        topic: str = "",
        status_code: int | None = None,
    ) -> None:
        self.topic = topic
        self.status_code = status_code
        super().__init__(message)


class TankCtlSettingError(TankCtlPublishError):
    """Publishing a settings payload failed.

    The underlying :class:`TankCtlPublishError` is available as
    ``__cause__``.
    """
