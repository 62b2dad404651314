"""Domain event sink interface and MQTT adapter."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol

import paho.mqtt.client as mqtt

from missionloc._logsummary import summarize_for_log
from missionloc.exceptions import BusError, EventSinkError
from missionloc.models.events import CLOUDEVENTS_JSON_CONTENT_TYPE, MissionEvent, MissionEventType
from missionloc.models.mission import Mission

_logger = logging.getLogger(__name__)


class EventSink(Protocol):
    """Receiver of mission domain events."""

    async def mission_picked_up(self, mission: Mission) -> None:
        ...

    async def mission_completed(self, mission: Mission) -> None:
        ...


class MessagePublisher(Protocol):
    """The slice of the bus runtime the sink needs."""

    def publish(
        self,
        topic: str,
        payload: bytes,
        *,
        qos: int,
        content_type: str | None = None,
    ) -> mqtt.MQTTMessageInfo:
        ...


class MqttEventSink:
    """Publishes mission events as structured-mode CloudEvents over MQTT.

    Each call waits (off the event loop) until the broker confirms the
    publish, so a returned call means the event left this process.
    """

    def __init__(
        self,
        publisher: MessagePublisher,
        *,
        topic: str,
        source: str,
        qos: int = 1,
        publish_timeout: float = 10.0,
    ) -> None:
        self._publisher = publisher
        self._topic = topic
        self._source = source
        self._qos = qos
        self._publish_timeout = publish_timeout

    async def mission_picked_up(self, mission: Mission) -> None:
        await self._publish(MissionEventType.PICKED_UP, mission)

    async def mission_completed(self, mission: Mission) -> None:
        await self._publish(MissionEventType.COMPLETED, mission)

    async def _publish(self, event_type: MissionEventType, mission: Mission) -> None:
        event = MissionEvent.for_mission(event_type, mission, source=self._source)
        _logger.debug(
            "Publishing %s topic=%s id=%s data=%s",
            event_type,
            self._topic,
            event.id,
            summarize_for_log(event.data),
        )
        try:
            info = self._publisher.publish(
                self._topic,
                event.to_json_bytes(),
                qos=self._qos,
                content_type=CLOUDEVENTS_JSON_CONTENT_TYPE,
            )
        except (BusError, ValueError, RuntimeError) as exc:
            raise EventSinkError(f"Publishing {event_type} failed: {exc}", event_type=event_type) from exc

        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            raise EventSinkError(
                f"Publishing {event_type} failed: {mqtt.error_string(info.rc)}",
                event_type=event_type,
            )

        await self._wait_for_publish(info, event_type)

    async def _wait_for_publish(self, info: Any, event_type: MissionEventType) -> None:
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, info.wait_for_publish, self._publish_timeout)
        except (ValueError, RuntimeError) as exc:
            raise EventSinkError(f"Publishing {event_type} failed: {exc}", event_type=event_type) from exc
        if not info.is_published():
            raise EventSinkError(
                f"Publishing {event_type} not confirmed within {self._publish_timeout}s",
                event_type=event_type,
            )
