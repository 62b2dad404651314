"""Outbound mission domain events (CloudEvents 1.0, structured mode)."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from missionloc.models._base import dumps_json
from missionloc.models.mission import Mission

CLOUDEVENTS_SPEC_VERSION = "1.0"
CLOUDEVENTS_JSON_CONTENT_TYPE = "application/cloudevents+json"


class MissionEventType(StrEnum):
    PICKED_UP = "MissionPickedUpEvent"
    COMPLETED = "MissionCompletedEvent"


class MissionEvent(BaseModel):
    """A mission domain event, serialized as a structured-mode CloudEvent."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    specversion: str = CLOUDEVENTS_SPEC_VERSION
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    source: str
    type: MissionEventType
    subject: str | None = None
    time: datetime = Field(default_factory=lambda: datetime.now(UTC))
    datacontenttype: str = "application/json"
    data: dict[str, Any] = Field(default_factory=dict)

    @field_serializer("time")
    def _serialize_time(self, value: datetime) -> str:
        return value.isoformat().replace("+00:00", "Z")

    @classmethod
    def for_mission(cls, event_type: MissionEventType, mission: Mission, *, source: str) -> MissionEvent:
        return cls(source=source, type=event_type, subject=mission.key, data=mission.to_dict())

    def to_json_bytes(self) -> bytes:
        return dumps_json(self.model_dump(exclude_none=True)).encode("utf-8")
