"""Internal MQTT runtime and CloudEvents binding helpers.

Inbound messages follow the CloudEvents MQTT protocol binding:

* binary mode (MQTT v5 only): context attributes travel as user properties,
  the data content type as the MQTT ``Content Type`` property and the
  payload is the event data;
* structured mode: the payload is a JSON-formatted CloudEvent, announced by
  the ``application/cloudevents+json`` content type (or, without
  properties, recognized by its ``specversion`` member).
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import functools
import logging
from collections.abc import Callable
from typing import Any, cast

import paho.mqtt.client as mqtt
from paho.mqtt.packettypes import PacketTypes
from paho.mqtt.properties import Properties
from pydantic import ValidationError

from missionloc.config import ConsumerConfig
from missionloc.exceptions import BusError
from missionloc.models._base import dumps_json, loads_json
from missionloc.models.envelope import EventMetadata, InboundMessage, MessageEnvelope, media_type
from missionloc.models.events import CLOUDEVENTS_JSON_CONTENT_TYPE


def _metadata(attributes: dict[str, Any]) -> EventMetadata | None:
    try:
        return EventMetadata.model_validate(attributes)
    except ValidationError:
        return None


def _parse_structured(payload: bytes, topic: str) -> MessageEnvelope | None:
    try:
        parsed = loads_json(payload)
    except ValueError:
        return None
    if not isinstance(parsed, dict) or "specversion" not in parsed:
        return None

    attributes = dict(parsed)
    data = attributes.pop("data", None)
    data_base64 = attributes.pop("data_base64", None)

    if isinstance(data_base64, str):
        try:
            data_bytes = base64.b64decode(data_base64, validate=True)
        except binascii.Error:
            return None
    elif data is None:
        data_bytes = b""
    elif isinstance(data, str):
        data_bytes = data.encode("utf-8")
    else:
        data_bytes = dumps_json(data).encode("utf-8")
        # JSON event format: absent datacontenttype with JSON data implies application/json.
        attributes.setdefault("datacontenttype", "application/json")

    metadata = _metadata(attributes)
    if metadata is None:
        return None
    return MessageEnvelope(metadata=metadata, payload=data_bytes, topic=topic)


def envelope_from_mqtt(msg: mqtt.MQTTMessage) -> MessageEnvelope:
    """Map an MQTT message onto a :class:`MessageEnvelope`.

    Messages that are not CloudEvents in either mode get ``metadata=None``.
    """
    topic = msg.topic
    payload = bytes(msg.payload)
    properties = getattr(msg, "properties", None)
    user_properties = dict(getattr(properties, "UserProperty", None) or [])
    content_type = getattr(properties, "ContentType", None)

    if "specversion" in user_properties:
        attributes: dict[str, Any] = dict(user_properties)
        if content_type:
            attributes["datacontenttype"] = content_type
        return MessageEnvelope(metadata=_metadata(attributes), payload=payload, topic=topic)

    if not content_type or media_type(content_type) == CLOUDEVENTS_JSON_CONTENT_TYPE:
        structured = _parse_structured(payload, topic)
        if structured is not None:
            return structured

    return MessageEnvelope(metadata=None, payload=payload, topic=topic)


class MqttConsumerRuntime:
    """Threaded paho-mqtt runtime that hands inbound messages to an asyncio loop.

    Messages are acknowledged manually: the broker only receives the
    PUBACK/PUBCOMP once the :class:`InboundMessage` is acked on the loop.
    """

    def __init__(
        self,
        *,
        loop: asyncio.AbstractEventLoop,
        on_message: Callable[[InboundMessage], None],
        logger: logging.Logger | None = None,
    ) -> None:
        self._loop = loop
        self._on_message = on_message
        self._logger = logger or logging.getLogger(__name__)
        self._client: mqtt.Client | None = None
        self._running = False
        self._topic: str | None = None
        self._qos = 1

    @property
    def is_running(self) -> bool:
        """Whether the MQTT runtime is actively running."""
        return self._running

    def start(self, config: ConsumerConfig) -> None:
        """Connect and subscribe using *config*."""
        self.stop()
        self._logger.debug(
            "MQTT runtime start requested host=%s port=%s topic=%s client_id=%s",
            config.mqtt_host,
            config.mqtt_port,
            config.subscription_topic,
            config.mqtt_client_id,
        )

        client = mqtt.Client(
            callback_api_version=cast(Any, mqtt).CallbackAPIVersion.VERSION2,
            client_id=config.mqtt_client_id,
            protocol=mqtt.MQTTv5,
            manual_ack=True,
        )
        client.enable_logger(self._logger)
        if config.mqtt_username:
            client.username_pw_set(config.mqtt_username, config.mqtt_password)
        if config.mqtt_tls:
            client.tls_set()

        self._topic = config.subscription_topic
        self._qos = config.mqtt_qos

        def on_connect(
            c: mqtt.Client,
            _userdata: Any,
            _flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if reason_code.value != 0:
                self._logger.warning("MQTT connect failed: %s", reason_code)
                return
            self._logger.debug("MQTT connected successfully reason=%s", reason_code)
            if self._topic:
                self._logger.info("MQTT subscribing topic=%s qos=%s", self._topic, self._qos)
                c.subscribe(self._topic, qos=self._qos)

        def on_message(c: mqtt.Client, _userdata: Any, msg: mqtt.MQTTMessage) -> None:
            ack = functools.partial(self._ack, c, msg.mid, msg.qos)
            try:
                envelope = envelope_from_mqtt(msg)
            except Exception:
                self._logger.warning("MQTT message could not be mapped topic=%s", msg.topic, exc_info=True)
                envelope = MessageEnvelope(metadata=None, payload=bytes(msg.payload), topic=msg.topic)
            self._logger.debug(
                "Received PUBLISH topic=%s mid=%s qos=%s type=%s",
                msg.topic,
                msg.mid,
                msg.qos,
                envelope.metadata.type if envelope.metadata is not None else None,
            )
            self._loop.call_soon_threadsafe(self._on_message, InboundMessage(envelope, ack))

        def on_disconnect(
            _client: mqtt.Client,
            _userdata: Any,
            _disconnect_flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if self._running:
                self._logger.warning("MQTT disconnected: %s", reason_code)

        client.on_connect = on_connect
        client.on_message = on_message
        client.on_disconnect = on_disconnect

        try:
            client.connect(config.mqtt_host, config.mqtt_port, keepalive=config.mqtt_keepalive)
        except OSError as exc:
            raise BusError(f"MQTT connect to {config.mqtt_host}:{config.mqtt_port} failed: {exc}") from exc
        client.loop_start()

        self._client = client
        self._running = True
        self._logger.debug("MQTT network loop started")

    def _ack(self, client: mqtt.Client, mid: int, qos: int) -> None:
        rc = client.ack(mid, qos)
        if rc != mqtt.MQTT_ERR_SUCCESS:
            self._logger.warning("MQTT ack failed mid=%s: %s", mid, mqtt.error_string(rc))

    def publish(
        self,
        topic: str,
        payload: bytes,
        *,
        qos: int,
        content_type: str | None = None,
    ) -> mqtt.MQTTMessageInfo:
        """Queue a publish on the running client."""
        client = self._client
        if client is None or not self._running:
            raise BusError("MQTT runtime is not running")
        properties: Properties | None = None
        if content_type:
            properties = Properties(PacketTypes.PUBLISH)
            properties.ContentType = content_type
        return client.publish(topic, payload, qos=qos, properties=properties)

    def stop(self) -> None:
        """Stop and disconnect current MQTT client if running."""
        client = self._client
        self._client = None
        was_running = self._running
        self._running = False
        self._topic = None

        if client is None:
            return
        try:
            if was_running:
                self._logger.debug("MQTT disconnect requested")
                client.disconnect()
        finally:
            client.loop_stop()
            self._logger.debug("MQTT network loop stopped")
