"""Envelope validation for responder location updates.

Every failure mode is normalized to a rejection: the message is not
processed but is still acknowledged by the caller. Nothing here raises.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum

from pydantic import ValidationError

from missionloc._logsummary import summarize_for_log
from missionloc.models._base import loads_json
from missionloc.models.envelope import MessageEnvelope, media_type
from missionloc.models.location import LocationUpdateEvent

RESPONDER_LOCATION_UPDATED_EVENT = "ResponderLocationUpdatedEvent"
ACCEPTED_EVENT_TYPES: frozenset[str] = frozenset({RESPONDER_LOCATION_UPDATED_EVENT})
ACCEPTED_CONTENT_TYPE = "application/json"

_logger = logging.getLogger(__name__)


class RejectionReason(StrEnum):
    NOT_A_CLOUD_EVENT = "not_a_cloud_event"
    UNSUPPORTED_CONTENT_TYPE = "unsupported_content_type"
    UNSUPPORTED_EVENT_TYPE = "unsupported_event_type"
    MALFORMED_PAYLOAD = "malformed_payload"


@dataclass(frozen=True)
class EnvelopeResult:
    """Either a decoded update or the reason it was rejected."""

    event: LocationUpdateEvent | None = None
    rejection: RejectionReason | None = None

    @property
    def accepted(self) -> bool:
        return self.event is not None


def _decode_payload(payload: bytes) -> LocationUpdateEvent | None:
    try:
        parsed = loads_json(payload)
    except (UnicodeDecodeError, ValueError):
        return None
    if not isinstance(parsed, dict):
        return None
    try:
        return LocationUpdateEvent.model_validate(parsed)
    except ValidationError:
        return None


def validate_envelope(
    envelope: MessageEnvelope,
    *,
    logger: logging.Logger | None = None,
) -> EnvelopeResult:
    """Extract a :class:`LocationUpdateEvent` from *envelope*.

    Rejections are logged at WARNING, except for event types this consumer
    does not handle, which are expected on a shared channel and logged at
    DEBUG.
    """
    log = logger or _logger

    metadata = envelope.metadata
    if metadata is None:
        log.warning("Incoming message is not a CloudEvent topic=%s", envelope.topic)
        return EnvelopeResult(rejection=RejectionReason.NOT_A_CLOUD_EVENT)

    if media_type(metadata.datacontenttype) != ACCEPTED_CONTENT_TYPE:
        log.warning(
            "CloudEvent data content type is not specified or not 'application/json'. Message is ignored "
            "id=%s datacontenttype=%s",
            metadata.id,
            metadata.datacontenttype,
        )
        return EnvelopeResult(rejection=RejectionReason.UNSUPPORTED_CONTENT_TYPE)

    if metadata.type not in ACCEPTED_EVENT_TYPES:
        log.debug("CloudEvent with type '%s' is ignored id=%s", metadata.type, metadata.id)
        return EnvelopeResult(rejection=RejectionReason.UNSUPPORTED_EVENT_TYPE)

    event = _decode_payload(envelope.payload)
    if event is None:
        log.warning("Unexpected message structure. Message is ignored id=%s", metadata.id)
        return EnvelopeResult(rejection=RejectionReason.MALFORMED_PAYLOAD)

    if log.isEnabledFor(logging.DEBUG):
        log.debug("Processing message id=%s payload=%s", metadata.id, summarize_for_log(event.to_dict()))
    return EnvelopeResult(event=event)
