"""Device id -> thing id resolution.

Lookup order, first hit wins:

1. ``sensor_metadata`` fast path.
2. The account hierarchy: a ``base`` device owns its thing id, a ``tank``
   device inherits the thing id of its ``base`` parent in the same space,
   any other device type may carry a thing id of its own.

A store failure in one step is logged and the next step is tried. Device
records are validated one at a time; a malformed record is skipped without
affecting its siblings. No path raises for an unknown device; callers
get ``None``.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from typing import Any

from pydantic import ValidationError

from pytankctl._store import DocumentStore
from pytankctl.config import CollectionNames
from pytankctl.exceptions import TankCtlStoreError
from pytankctl.models.device import DeviceRecord, DeviceType, SensorMetadata, Space

_logger = logging.getLogger(__name__)


class _Unresolvable(Exception):
    """Internal: stop walking candidates, the device cannot resolve."""


class IdentityResolver:
    """Resolve device ids to messaging-fabric thing ids (read-only)."""

    def __init__(self, store: DocumentStore, collections: CollectionNames | None = None) -> None:
        self._store = store
        self._collections = collections or CollectionNames()

    async def resolve(self, device_id: str | None) -> str | None:
        """Return the thing id for *device_id*, or ``None`` when none can be derived."""
        if not device_id:
            _logger.warning("resolve called without device id")
            return None

        thing_id = await self._from_sensor_metadata(device_id)
        if thing_id:
            _logger.info("Found thing id in sensor metadata: device=%s thing=%s", device_id, thing_id)
            return thing_id

        thing_id = await self._from_hierarchy(device_id)
        if thing_id:
            return thing_id

        _logger.warning("No thing id found for device %s", device_id)
        return None

    async def _from_sensor_metadata(self, device_id: str) -> str | None:
        collection = self._collections.sensor_metadata
        try:
            doc = await self._store.find_one(collection, {"deviceid": device_id})
        except TankCtlStoreError as exc:
            _logger.error("Error querying %s: %s", collection, exc)
            return None
        if doc is None:
            return None
        try:
            return SensorMetadata.model_validate(doc).thing_id
        except ValidationError:
            _logger.warning("Malformed %s document for device %s", collection, device_id, exc_info=True)
            return None

    async def _from_hierarchy(self, device_id: str) -> str | None:
        collection = self._collections.accounts
        try:
            doc = await self._store.find_one(
                collection,
                {"spaces.devices.device_id": device_id},
                projection={"spaces": 1},
            )
        except TankCtlStoreError as exc:
            _logger.error("Error querying %s: %s", collection, exc)
            return None
        if doc is None:
            return None

        try:
            for space in self._spaces(doc):
                for device in space.devices:
                    if device.device_id != device_id:
                        continue
                    thing_id = self._thing_id_for(device, space)
                    if thing_id:
                        return thing_id
        except _Unresolvable:
            return None
        return None

    @staticmethod
    def _spaces(doc: Mapping[str, Any]) -> Iterator[Space]:
        """Parse each space of an account, skipping device records that fail validation."""
        spaces = doc.get("spaces")
        if not isinstance(spaces, list):
            return
        for raw_space in spaces:
            if not isinstance(raw_space, Mapping):
                continue
            raw_devices = raw_space.get("devices")
            devices: list[DeviceRecord] = []
            for raw_device in raw_devices if isinstance(raw_devices, list) else []:
                try:
                    devices.append(DeviceRecord.model_validate(raw_device))
                except ValidationError:
                    _logger.warning("Skipping malformed device record in account %s", doc.get("_id"), exc_info=True)
            name = raw_space.get("name")
            yield Space(name=name if isinstance(name, str) else None, devices=devices)

    @staticmethod
    def _thing_id_for(device: DeviceRecord, space: Space) -> str | None:
        if device.is_tank:
            parent_id = device.parent_device_id
            if not parent_id:
                _logger.warning("Tank device %s has no parent_device_id", device.device_id)
                raise _Unresolvable
            parent = space.find_device(parent_id, DeviceType.BASE)
            if parent is None:
                _logger.warning("Parent base device %s not found for tank %s", parent_id, device.device_id)
                raise _Unresolvable
            if not parent.thing_id:
                _logger.warning("Parent base device %s of tank %s has no thing id", parent_id, device.device_id)
                raise _Unresolvable
            _logger.info("Found thing id from parent base device: %s", parent.thing_id)
            return parent.thing_id

        # base and any other type carry their own thing id
        if device.thing_id:
            _logger.info("Found thing id for %s device %s: %s", device.device_type, device.device_id, device.thing_id)
        return device.thing_id
