"""Inbound message envelope.

The bus adapter reduces whatever transport it speaks to a
:class:`MessageEnvelope`: the CloudEvent context attributes (if the message
was a CloudEvent at all) plus the raw data bytes. The pipeline only ever
sees this plain value.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict

_logger = logging.getLogger(__name__)


class EventMetadata(BaseModel):
    """CloudEvent context attributes of an inbound message.

    Extension attributes are kept as extra fields.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    id: str | None = None
    source: str | None = None
    type: str | None = None
    specversion: str | None = None
    datacontenttype: str | None = None
    subject: str | None = None
    time: str | None = None


@dataclass(frozen=True)
class MessageEnvelope:
    """Transport-neutral view of one inbound message."""

    metadata: EventMetadata | None
    payload: bytes
    topic: str = ""


AckCallback = Callable[[], Awaitable[None] | None]


class InboundMessage:
    """An envelope plus the means to acknowledge it to the bus.

    Only the first :meth:`ack` reaches the bus; later calls are ignored.
    """

    def __init__(self, envelope: MessageEnvelope, ack: AckCallback) -> None:
        self._envelope = envelope
        self._ack = ack
        self._acked = False

    @property
    def envelope(self) -> MessageEnvelope:
        return self._envelope

    @property
    def acked(self) -> bool:
        return self._acked

    async def ack(self) -> None:
        if self._acked:
            _logger.debug("Ignoring repeated ack topic=%s", self._envelope.topic)
            return
        self._acked = True
        result: Any = self._ack()
        if result is not None:
            await result

    def __repr__(self) -> str:
        metadata = self._envelope.metadata
        event_id = metadata.id if metadata is not None else None
        return f"InboundMessage(topic={self._envelope.topic!r}, id={event_id!r}, acked={self._acked})"


def media_type(content_type: str | None) -> str:
    """Lower-cased media type of *content_type* without parameters."""
    if not content_type:
        return ""
    return content_type.split(";", 1)[0].strip().lower()
