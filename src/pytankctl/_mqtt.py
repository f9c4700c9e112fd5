"""Direct-to-broker publisher built on paho-mqtt."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Mapping
from typing import Any, cast

import paho.mqtt.client as mqtt

from pytankctl._redact import redact_for_log
from pytankctl.config import TankCtlConfig
from pytankctl.exceptions import TankCtlConfigError, TankCtlPublishError


def encode_payload(payload: Mapping[str, Any]) -> bytes:
    """JSON-encode a command payload the way devices expect it."""
    return json.dumps(dict(payload), separators=(",", ":"), default=str).encode("utf-8")


class MqttPublisher:
    """Threaded paho-mqtt client that publishes commands with QoS 1.

    The network loop runs on paho's own thread; :meth:`publish` waits for
    the broker acknowledgement off the event loop so other polls keep
    running.
    """

    def __init__(
        self,
        *,
        host: str,
        port: int = 8883,
        client_id: str = "pytankctl",
        keepalive: int = 60,
        tls: bool = True,
        username: str | None = None,
        password: str | None = None,
        publish_timeout: float = 10.0,
        logger: logging.Logger | None = None,
    ) -> None:
        self._host = host
        self._port = port
        self._client_id = client_id
        self._keepalive = keepalive
        self._tls = tls
        self._username = username
        self._password = password
        self._publish_timeout = publish_timeout
        self._logger = logger or logging.getLogger(__name__)
        self._client: mqtt.Client | None = None
        self._connected = False

    @classmethod
    def from_config(
        cls,
        config: TankCtlConfig,
        *,
        username: str | None = None,
        password: str | None = None,
    ) -> MqttPublisher:
        if not config.mqtt_host:
            raise TankCtlConfigError("mqtt_host is required for MqttPublisher")
        return cls(
            host=config.mqtt_host,
            port=config.mqtt_port,
            client_id=config.mqtt_client_id,
            keepalive=config.mqtt_keepalive,
            tls=config.mqtt_tls,
            username=username,
            password=password,
            publish_timeout=config.request_timeout,
        )

    @property
    def is_connected(self) -> bool:
        """Whether the broker accepted the last connection attempt."""
        return self._connected

    def start(self) -> None:
        """Connect and start the network loop."""
        self.stop()
        self._logger.debug(
            "MQTT publisher start requested host=%s port=%s client_id=%s",
            self._host,
            self._port,
            self._client_id,
        )

        client = mqtt.Client(
            callback_api_version=cast(Any, mqtt).CallbackAPIVersion.VERSION2,
            client_id=self._client_id,
            protocol=mqtt.MQTTv5,
        )
        client.enable_logger(self._logger)
        if self._username is not None:
            client.username_pw_set(self._username, self._password)
        if self._tls:
            client.tls_set()

        def on_connect(
            _c: mqtt.Client,
            _userdata: Any,
            _flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if reason_code.value != 0:
                self._logger.warning("MQTT connect failed: %s", reason_code)
                self._connected = False
                return
            self._logger.info("MQTT publisher connected to %s:%s", self._host, self._port)
            self._connected = True

        def on_disconnect(
            _client: mqtt.Client,
            _userdata: Any,
            _disconnect_flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            self._connected = False
            if self._client is not None:
                self._logger.warning("MQTT disconnected: %s", reason_code)

        client.on_connect = on_connect
        client.on_disconnect = on_disconnect

        client.connect(self._host, self._port, keepalive=self._keepalive)
        client.loop_start()
        self._client = client

    def stop(self) -> None:
        """Disconnect and stop the network loop if running."""
        client = self._client
        self._client = None
        self._connected = False
        if client is None:
            return
        try:
            client.disconnect()
        finally:
            client.loop_stop()
            self._logger.debug("MQTT network loop stopped")

    async def publish(self, topic: str, payload: Mapping[str, Any]) -> None:
        client = self._client
        if client is None:
            raise TankCtlPublishError("MQTT publisher is not started", topic=topic)

        self._logger.debug("PUBLISH topic=%s payload=%s", topic, redact_for_log(payload))
        info = client.publish(topic, encode_payload(payload), qos=1)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            raise TankCtlPublishError(
                f"Publish to {topic} rejected: {mqtt.error_string(info.rc)}",
                topic=topic,
            )

        try:
            await asyncio.to_thread(info.wait_for_publish, self._publish_timeout)
        except (RuntimeError, ValueError) as exc:
            raise TankCtlPublishError(f"Publish to {topic} failed: {exc}", topic=topic) from exc

        if not info.is_published():
            raise TankCtlPublishError(
                f"Publish to {topic} not acknowledged within {self._publish_timeout:.1f}s",
                topic=topic,
            )
