"""Data models for missions, location updates and domain events."""

from missionloc.models._base import Coordinate, MissionLocBaseModel, StrictCoordinate, parse_decimal
from missionloc.models.envelope import EventMetadata, InboundMessage, MessageEnvelope
from missionloc.models.events import MissionEvent, MissionEventType
from missionloc.models.location import LocationUpdateEvent
from missionloc.models.mission import (
    Mission,
    MissionStatus,
    ResponderLocationSample,
    ResponderLocationStatus,
    mission_key,
)

__all__ = [
    "Coordinate",
    "EventMetadata",
    "InboundMessage",
    "LocationUpdateEvent",
    "MessageEnvelope",
    "Mission",
    "MissionEvent",
    "MissionEventType",
    "MissionLocBaseModel",
    "MissionStatus",
    "ResponderLocationSample",
    "ResponderLocationStatus",
    "StrictCoordinate",
    "mission_key",
    "parse_decimal",
]
