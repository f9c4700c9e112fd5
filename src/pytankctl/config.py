"""Service configuration for pytankctl."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from pytankctl._constants import DEFAULT_TOPIC_TEMPLATE
from pytankctl.exceptions import TankCtlConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class PollProfile:
    """Timing for one response shape.

    Parameters
    ----------
    interval : float
        Seconds between store queries.
    window : float
        Recency window in seconds. A document qualifies when its timestamp
        is within ``window`` seconds of the time the query is issued.
    budget : float
        Total seconds a caller waits before giving up.
    """

    interval: float
    window: float
    budget: float


@dataclasses.dataclass(frozen=True)
class CollectionNames:
    """Names of the store collections read by the service."""

    sensor_metadata: str = "sensor_metadata"
    accounts: str = "users"
    device_responses: str = "device_responses"
    readings: str = "tank_readings"


@dataclasses.dataclass(frozen=True)
class TankCtlConfig:
    """Service configuration.

    Parameters
    ----------
    mongo_uri : str
        Connection string for the response store.
    database : str
        Database holding all collections in :attr:`collections`.
    publish_url : str or None
        HTTP publish gateway. When set, :class:`HttpPublisher` posts
        commands here instead of talking to the broker directly.
    mqtt_host : str or None
        Broker host for :class:`MqttPublisher`.
    mqtt_port : int
        Broker port.
    mqtt_tls : bool
        Enable TLS on the broker connection.
    mqtt_keepalive : int
        MQTT keepalive in seconds.
    mqtt_client_id : str
        Client id presented to the broker.
    request_timeout : float
        Seconds allowed for a single publish round trip.
    topic_template : str
        Format string for fabric topics (``{thing_id}``, ``{kind}``,
        ``{purpose}``).
    collections : CollectionNames
        Store collection names.
    slave_reply : PollProfile
        Timing for slave request replies.
    alive_reply : PollProfile
        Timing for base liveness checks.
    sensor_update : PollProfile
        Timing for tank sensor update checks.
    """

    mongo_uri: str = "mongodb://localhost:27017"
    database: str = "tankctl"
    publish_url: str | None = None
    mqtt_host: str | None = None
    mqtt_port: int = 8883
    mqtt_tls: bool = True
    mqtt_keepalive: int = 60
    mqtt_client_id: str = "pytankctl"
    request_timeout: float = 10.0
    topic_template: str = DEFAULT_TOPIC_TEMPLATE
    collections: CollectionNames = dataclasses.field(default_factory=CollectionNames)
    slave_reply: PollProfile = dataclasses.field(
        default_factory=lambda: PollProfile(interval=0.5, window=15.0, budget=10.0)
    )
    alive_reply: PollProfile = dataclasses.field(
        default_factory=lambda: PollProfile(interval=1.0, window=10.0, budget=5.0)
    )
    sensor_update: PollProfile = dataclasses.field(
        default_factory=lambda: PollProfile(interval=1.0, window=10.0, budget=10.0)
    )

    def __post_init__(self) -> None:
        for name in ("slave_reply", "alive_reply", "sensor_update"):
            profile: PollProfile = getattr(self, name)
            if profile.interval <= 0 or profile.window <= 0 or profile.budget < 0:
                raise TankCtlConfigError(f"{name}: interval and window must be positive, budget non-negative")
        if "{thing_id}" not in self.topic_template:
            raise TankCtlConfigError("topic_template must reference {thing_id}")

    @classmethod
    def from_env(cls, **overrides: Any) -> TankCtlConfig:
        """Create configuration from environment variables.

        Reads ``TANKCTL_*`` variables. Explicit keyword arguments override
        environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        TankCtlConfig
            Populated configuration.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "TANKCTL_MONGO_URI": "mongo_uri",
            "TANKCTL_DATABASE": "database",
            "TANKCTL_PUBLISH_URL": "publish_url",
            "TANKCTL_MQTT_HOST": "mqtt_host",
            "TANKCTL_MQTT_CLIENT_ID": "mqtt_client_id",
            "TANKCTL_TOPIC_TEMPLATE": "topic_template",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        try:
            port_env = env.get("TANKCTL_MQTT_PORT")
            if port_env is not None and "mqtt_port" not in overrides:
                config_kwargs["mqtt_port"] = int(port_env)

            timeout_env = env.get("TANKCTL_REQUEST_TIMEOUT")
            if timeout_env is not None and "request_timeout" not in overrides:
                config_kwargs["request_timeout"] = float(timeout_env)
        except ValueError as exc:
            raise TankCtlConfigError(f"Invalid numeric environment value: {exc}") from exc

        if "mqtt_tls" not in overrides:
            config_kwargs["mqtt_tls"] = _env_bool(env.get("TANKCTL_MQTT_TLS"), True)

        # Allow overriding collection names via a nested dict
        collection_overrides = overrides.pop("collections", None)
        if isinstance(collection_overrides, dict):
            config_kwargs["collections"] = CollectionNames(**collection_overrides)
        elif isinstance(collection_overrides, CollectionNames):
            config_kwargs["collections"] = collection_overrides

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
