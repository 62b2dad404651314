from __future__ import annotations

import json
import logging
from decimal import Decimal
from typing import Any

import pytest

from missionloc.ingestion.envelope import RejectionReason, validate_envelope
from missionloc.models.envelope import EventMetadata, MessageEnvelope

_VALID: dict[str, Any] = {
    "responderId": "64",
    "missionId": "f5a9bc5e-2f3a-4b1c-9d39-0a8c0c6f4e11",
    "incidentId": "5d9b2d3a-136f-414f-96ba-1b2a445fee5d",
    "status": "MOVING",
    "lat": 34.1701,
    "lon": -77.9482,
    "human": True,
    "continue": True,
}


def _envelope(
    payload: Any = None,
    *,
    event_type: str | None = "ResponderLocationUpdatedEvent",
    content_type: str | None = "application/json",
    raw: bytes | None = None,
) -> MessageEnvelope:
    metadata = EventMetadata(id="1", type=event_type, specversion="1.0", datacontenttype=content_type)
    body = raw if raw is not None else json.dumps(_VALID if payload is None else payload).encode()
    return MessageEnvelope(metadata=metadata, payload=body)


def _without(key: str) -> dict[str, Any]:
    return {k: v for k, v in _VALID.items() if k != key}


def test_valid_envelope_yields_typed_update() -> None:
    result = validate_envelope(_envelope())

    assert result.accepted
    assert result.rejection is None
    update = result.event
    assert update is not None
    assert update.responder_id == "64"
    assert update.lat == Decimal("34.1701")
    assert update.lon == Decimal("-77.9482")
    assert update.human is True
    assert update.continue_ is True
    assert update.mission_key == "5d9b2d3a-136f-414f-96ba-1b2a445fee5d:64"


def test_missing_metadata_is_rejected_with_warning(caplog: pytest.LogCaptureFixture) -> None:
    result = validate_envelope(MessageEnvelope(metadata=None, payload=json.dumps(_VALID).encode()))

    assert result.rejection == RejectionReason.NOT_A_CLOUD_EVENT
    assert any(r.levelno == logging.WARNING and "not a CloudEvent" in r.getMessage() for r in caplog.records)


@pytest.mark.parametrize("content_type", [None, "", "text/plain", "application/xml"])
def test_wrong_content_type_is_rejected(content_type: str | None, caplog: pytest.LogCaptureFixture) -> None:
    result = validate_envelope(_envelope(content_type=content_type))

    assert result.rejection == RejectionReason.UNSUPPORTED_CONTENT_TYPE
    assert any(r.levelno == logging.WARNING for r in caplog.records)


@pytest.mark.parametrize("content_type", ["APPLICATION/JSON", "application/json; charset=utf-8"])
def test_content_type_match_is_case_insensitive(content_type: str) -> None:
    assert validate_envelope(_envelope(content_type=content_type)).accepted


@pytest.mark.parametrize("event_type", [None, "IncidentReportedEvent", "responderlocationupdatedevent"])
def test_other_event_types_are_ignored_at_debug(event_type: str | None, caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.DEBUG)

    result = validate_envelope(_envelope(event_type=event_type))

    assert result.rejection == RejectionReason.UNSUPPORTED_EVENT_TYPE
    assert [r for r in caplog.records if r.levelno > logging.DEBUG] == []


@pytest.mark.parametrize(
    "payload",
    [
        _without("responderId"),
        _without("missionId"),
        _without("incidentId"),
        _without("status"),
        _without("lat"),
        _without("lon"),
        _without("human"),
        _without("continue"),
        {**_VALID, "responderId": "   "},
        {**_VALID, "incidentId": ""},
        {**_VALID, "status": None},
        {**_VALID, "missionId": 42},
        {**_VALID, "lat": "34.1701"},
        {**_VALID, "lon": True},
        {**_VALID, "lat": None},
        {**_VALID, "human": "true"},
        {**_VALID, "continue": 1},
        ["not", "an", "object"],
        "just a string",
    ],
)
def test_malformed_payload_is_rejected(payload: Any, caplog: pytest.LogCaptureFixture) -> None:
    result = validate_envelope(_envelope(payload))

    assert result.rejection == RejectionReason.MALFORMED_PAYLOAD
    assert result.event is None
    assert any("Unexpected message structure" in r.getMessage() for r in caplog.records)


@pytest.mark.parametrize(
    "raw",
    [
        b"",
        b"{not json",
        b"\xff\xfe\x00garbage",
        b'{"responderId":"1","missionId":"2","incidentId":"3","status":"MOVING",'
        b'"lat":NaN,"lon":1.0,"human":true,"continue":false}',
        b'{"responderId":"1","missionId":"2","incidentId":"3","status":"MOVING",'
        b'"lat":1.0,"lon":Infinity,"human":true,"continue":false}',
    ],
)
def test_unparseable_payload_is_rejected(raw: bytes) -> None:
    assert validate_envelope(_envelope(raw=raw)).rejection == RejectionReason.MALFORMED_PAYLOAD


def test_extra_payload_fields_are_ignored() -> None:
    result = validate_envelope(_envelope({**_VALID, "speed": 12.5}))

    assert result.accepted


def test_integer_coordinates_are_accepted() -> None:
    result = validate_envelope(_envelope({**_VALID, "lat": 34, "lon": -77}))

    assert result.event is not None
    assert result.event.lat == Decimal(34)


def test_validator_uses_injected_logger(caplog: pytest.LogCaptureFixture) -> None:
    logger = logging.getLogger("tests.validator")

    validate_envelope(MessageEnvelope(metadata=None, payload=b"{}"), logger=logger)

    assert [r.name for r in caplog.records] == ["tests.validator"]
