"""Command publication and reply correlation.

:class:`ControlService` is the entry point for every caller-facing
operation. Correlation is "publish, then poll the store for a document
matching criteria derived from the target"; no request id travels with
the command, so two overlapping slave requests for the same thing id can
observe the same reply.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any, TypeVar

from pydantic import ValidationError

from pytankctl._constants import TOPIC_CONTROL, TOPIC_SETTING, TOPIC_SLAVE_REQUEST, build_topic
from pytankctl._redact import redact_for_log
from pytankctl._store import DocumentStore
from pytankctl._transport import Publisher
from pytankctl.config import PollProfile, TankCtlConfig
from pytankctl.exceptions import (
    TankCtlDeviceNotFoundError,
    TankCtlPublishError,
    TankCtlRequestError,
    TankCtlSettingError,
    TankCtlStoreError,
)
from pytankctl.models._base import TankCtlBaseModel
from pytankctl.models.requests import ControlRequest, SlaveRequest
from pytankctl.models.responses import PublishResult, ResponseCheck, SlaveRequestResult
from pytankctl.normalize import normalize_document, slave_reply_data
from pytankctl.poller import (
    MatchCriteria,
    ResponsePoller,
    alive_reply_criteria,
    sensor_update_criteria,
    slave_reply_criteria,
)
from pytankctl.resolver import IdentityResolver

_logger = logging.getLogger(__name__)

M = TypeVar("M", bound=TankCtlBaseModel)


def _parse_request(model: type[M], body: Mapping[str, Any] | M, message: str) -> M:
    """Validate caller input, mapping pydantic errors to :class:`TankCtlRequestError`."""
    if isinstance(body, model):
        return body
    if not isinstance(body, Mapping):
        raise TankCtlRequestError("Request body must be a JSON object")
    try:
        return model.model_validate(dict(body))
    except ValidationError as exc:
        errors = exc.errors()
        field = str(errors[0]["loc"][0]) if errors and errors[0].get("loc") else ""
        raise TankCtlRequestError(message, field=field) from exc


class ControlService:
    """Publishes device commands and correlates replies from the store.

    Usage::

        service = ControlService(config, store, publisher)
        result = await service.slave_request({"deviceid": "D1", "sensor_no": 2, ...})
    """

    def __init__(
        self,
        config: TankCtlConfig,
        store: DocumentStore,
        publisher: Publisher,
        *,
        resolver: IdentityResolver | None = None,
        poller: ResponsePoller | None = None,
    ) -> None:
        self._config = config
        self._store = store
        self._publisher = publisher
        self._resolver = resolver or IdentityResolver(store, config.collections)
        self._poller = poller or ResponsePoller(store)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def resolve_thing_id(self, device_id: str) -> str:
        """Resolve *device_id* or raise :class:`TankCtlDeviceNotFoundError`."""
        thing_id = await self._resolver.resolve(device_id)
        if not thing_id:
            raise TankCtlDeviceNotFoundError(
                f"Device {device_id} not found or has no associated thing id",
                device_id=device_id,
            )
        return thing_id

    def _topic(self, kind: str, thing_id: str) -> str:
        return build_topic(self._config.topic_template, kind, thing_id, kind)

    async def _publish(self, topic: str, payload: Mapping[str, Any]) -> None:
        try:
            await self._publisher.publish(topic, payload)
        except TankCtlPublishError:
            _logger.error("Publish to %s failed", topic, exc_info=True)
            raise
        _logger.debug("Published %s payload=%s", topic, redact_for_log(payload))

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def control(
        self,
        body: Mapping[str, Any] | ControlRequest,
        *,
        requested_by: str | None = None,
    ) -> PublishResult:
        """Publish a control command without waiting for a reply.

        Raises
        ------
        TankCtlRequestError
            ``deviceid`` is missing.
        TankCtlDeviceNotFoundError
            No thing id could be derived.
        TankCtlPublishError
            The fabric rejected the message.
        """
        request = _parse_request(ControlRequest, body, "Missing deviceid in request")
        _logger.info("Control requested device=%s", request.device_id)

        thing_id = await self.resolve_thing_id(request.device_id)
        topic = self._topic(TOPIC_CONTROL, thing_id)
        payload = request.command_payload()
        if requested_by is not None:
            payload["requestedBy"] = requested_by
        payload["timestamp"] = datetime.now(UTC).isoformat()
        await self._publish(topic, payload)

        _logger.info("Control command published device=%s thing=%s", request.device_id, thing_id)
        return PublishResult(topic=topic, message="Control command published successfully")

    async def setting(self, device_id: str, payload: Mapping[str, Any]) -> PublishResult:
        """Publish a settings payload for *device_id*.

        Publish failures are re-raised as :class:`TankCtlSettingError`
        with the original error chained.
        """
        if not device_id:
            raise TankCtlRequestError("Missing device id", field="deviceid")

        thing_id = await self.resolve_thing_id(device_id)
        topic = self._topic(TOPIC_SETTING, thing_id)
        try:
            await self._publish(topic, payload)
        except TankCtlPublishError as exc:
            raise TankCtlSettingError(f"MQTT publish failed: {exc}", topic=topic) from exc

        _logger.info("Settings published for thing %s", thing_id)
        return PublishResult(topic=topic, message="Settings published successfully")

    async def slave_request(self, body: Mapping[str, Any] | SlaveRequest) -> SlaveRequestResult:
        """Publish a slave request and wait for the device's reply.

        A missing reply is not an error: the result carries ``data=None``.

        Raises
        ------
        TankCtlRequestError
            ``deviceid`` or ``sensor_no`` is missing. Nothing is published.
        TankCtlDeviceNotFoundError
            No thing id could be derived.
        TankCtlPublishError
            The fabric rejected the message. No poll is attempted.
        """
        request = _parse_request(SlaveRequest, body, "Missing deviceid or sensor_no")
        _logger.info("Slave request device=%s sensor=%s", request.device_id, request.sensor_no)

        thing_id = await self.resolve_thing_id(request.device_id)
        topic = self._topic(TOPIC_SLAVE_REQUEST, thing_id)
        await self._publish(topic, request.command_payload())
        _logger.info("Slave request published device=%s thing=%s", request.device_id, thing_id)

        profile = self._config.slave_reply
        criteria = slave_reply_criteria(thing_id, profile, self._config.collections)
        doc = await self._poller.poll(criteria, profile.budget)
        if doc is None:
            return SlaveRequestResult(message="Published but no response received")

        try:
            data = slave_reply_data(doc, request)
        except ValidationError:
            _logger.warning("Unparseable slave reply for thing %s", thing_id, exc_info=True)
            return SlaveRequestResult(message="Published but response could not be parsed")
        return SlaveRequestResult(message="Published and response received", data=data)

    # ------------------------------------------------------------------
    # Read-only checks
    # ------------------------------------------------------------------

    async def _responded(self, criteria: MatchCriteria, profile: PollProfile) -> bool:
        return await self._poller.poll(criteria, profile.budget) is not None

    async def is_base_responded(self, device_id: str) -> ResponseCheck:
        """Check for a recent liveness reply from a base device."""
        if not device_id:
            raise TankCtlRequestError("Device ID is required.", field="deviceid")

        _logger.info("Checking base response for device %s", device_id)
        profile = self._config.alive_reply
        responded = await self._responded(
            alive_reply_criteria(device_id, profile, self._config.collections),
            profile,
        )
        return ResponseCheck(
            responded=responded,
            message="Base responded successfully." if responded else "Base did not respond.",
        )

    async def is_tank_responded(self, device_id: str, sensor_no: str | int) -> ResponseCheck:
        """Check for a recent update from one tank sensor."""
        if not device_id or sensor_no is None or sensor_no == "":
            raise TankCtlRequestError("Device ID and Sensor Number are required.")

        _logger.info("Checking tank response for device %s sensor %s", device_id, sensor_no)
        profile = self._config.sensor_update
        responded = await self._responded(
            sensor_update_criteria(device_id, sensor_no, profile, self._config.collections),
            profile,
        )
        return ResponseCheck(
            responded=responded,
            message="Tank responded successfully." if responded else "Tank did not respond.",
        )

    async def recent_responses(self, thing_id: str, seconds: float = 10.0) -> list[dict[str, Any]]:
        """Every response document for *thing_id* from the last *seconds*, newest first."""
        criteria = MatchCriteria(
            collection=self._config.collections.device_responses,
            match={"thingid": thing_id},
            timestamp_field="inserted_at",
            window=seconds,
            interval=self._config.slave_reply.interval,
            label=f"recent responses thing={thing_id}",
        )
        try:
            docs = await self._poller.recent(criteria)
        except TankCtlStoreError as exc:
            _logger.error("Error getting recent device responses: %s", exc)
            return []
        return [normalize_document(doc) for doc in docs]
