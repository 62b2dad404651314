"""Consumer configuration for missionloc."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from missionloc.exceptions import MissionLocConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_number(env_key: str, value: str, kind: type[int] | type[float]) -> int | float:
    try:
        return kind(value)
    except ValueError as exc:
        raise MissionLocConfigError(f"{env_key} must be {kind.__name__}, got {value!r}") from exc


@dataclasses.dataclass(frozen=True)
class ConsumerConfig:
    """Consumer configuration.

    Parameters
    ----------
    mqtt_host : str
        MQTT broker host.
    mqtt_port : int
        MQTT broker port.
    mqtt_tls : bool
        Connect with TLS using the system trust store.
    mqtt_username, mqtt_password : str or None
        Broker credentials.
    mqtt_client_id : str
        MQTT client id. Empty lets the broker-side library pick one.
    mqtt_keepalive : int
        MQTT keepalive in seconds.
    mqtt_qos : int
        QoS for the subscription and for published mission events.
    mqtt_shared_group : str or None
        When set, subscribe through ``$share/<group>/<topic>`` so several
        consumer instances split the location updates between them.
    location_update_topic : str
        Channel carrying ``ResponderLocationUpdatedEvent`` messages.
    mission_event_topic : str
        Channel receiving mission domain events.
    event_source : str
        CloudEvent ``source`` attribute of published mission events.
    repository_url : str
        Base URL of the REST cache server holding missions.
    repository_cache : str
        Cache name holding missions.
    repository_username, repository_password : str or None
        Basic-auth credentials for the cache server.
    publish_timeout : float
        Seconds to wait for the broker to confirm a mission event.
    """

    mqtt_host: str = "localhost"
    mqtt_port: int = 1883
    mqtt_tls: bool = False
    mqtt_username: str | None = None
    mqtt_password: str | None = None
    mqtt_client_id: str = ""
    mqtt_keepalive: int = 60
    mqtt_qos: int = 1
    mqtt_shared_group: str | None = None
    location_update_topic: str = "responder-location-update"
    mission_event_topic: str = "mission-event"
    event_source: str = "emergency-response/mission-service"
    repository_url: str = "http://localhost:11222"
    repository_cache: str = "mission"
    repository_username: str | None = None
    repository_password: str | None = None
    publish_timeout: float = 10.0

    def __post_init__(self) -> None:
        if self.mqtt_qos not in (0, 1, 2):
            raise MissionLocConfigError(f"mqtt_qos must be 0, 1 or 2, got {self.mqtt_qos}")
        if not 0 < self.mqtt_port < 65536:
            raise MissionLocConfigError(f"mqtt_port out of range: {self.mqtt_port}")
        if not self.location_update_topic:
            raise MissionLocConfigError("location_update_topic must be non-empty")
        if self.mqtt_keepalive <= 0:
            raise MissionLocConfigError(f"mqtt_keepalive must be positive, got {self.mqtt_keepalive}")
        if self.publish_timeout <= 0:
            raise MissionLocConfigError(f"publish_timeout must be positive, got {self.publish_timeout}")

    @property
    def subscription_topic(self) -> str:
        """Topic filter to subscribe to, including the shared-group prefix."""
        if self.mqtt_shared_group:
            return f"$share/{self.mqtt_shared_group}/{self.location_update_topic}"
        return self.location_update_topic

    @classmethod
    def from_env(cls, **overrides: Any) -> ConsumerConfig:
        """Create configuration from ``MISSIONLOC_*`` environment variables.

        Explicit keyword arguments override environment values.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "MISSIONLOC_MQTT_HOST": "mqtt_host",
            "MISSIONLOC_MQTT_USERNAME": "mqtt_username",
            "MISSIONLOC_MQTT_PASSWORD": "mqtt_password",
            "MISSIONLOC_MQTT_CLIENT_ID": "mqtt_client_id",
            "MISSIONLOC_MQTT_SHARED_GROUP": "mqtt_shared_group",
            "MISSIONLOC_LOCATION_UPDATE_TOPIC": "location_update_topic",
            "MISSIONLOC_MISSION_EVENT_TOPIC": "mission_event_topic",
            "MISSIONLOC_EVENT_SOURCE": "event_source",
            "MISSIONLOC_REPOSITORY_URL": "repository_url",
            "MISSIONLOC_REPOSITORY_CACHE": "repository_cache",
            "MISSIONLOC_REPOSITORY_USERNAME": "repository_username",
            "MISSIONLOC_REPOSITORY_PASSWORD": "repository_password",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        _ENV_NUMBER_MAP: dict[str, tuple[str, type[int] | type[float]]] = {
            "MISSIONLOC_MQTT_PORT": ("mqtt_port", int),
            "MISSIONLOC_MQTT_KEEPALIVE": ("mqtt_keepalive", int),
            "MISSIONLOC_MQTT_QOS": ("mqtt_qos", int),
            "MISSIONLOC_PUBLISH_TIMEOUT": ("publish_timeout", float),
        }
        for env_key, (field_name, kind) in _ENV_NUMBER_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = _env_number(env_key, val, kind)

        if "mqtt_tls" not in overrides:
            config_kwargs["mqtt_tls"] = _env_bool(env.get("MISSIONLOC_MQTT_TLS"), False)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
