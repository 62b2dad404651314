"""Mission aggregate and responder location history."""

from __future__ import annotations

from decimal import Decimal
from enum import StrEnum
from typing import Any

from pydantic import ConfigDict, Field

from missionloc.models._base import Coordinate, MissionLocBaseModel, dumps_json, loads_json


class MissionStatus(StrEnum):
    """Mission lifecycle states this consumer reads or writes.

    The mission service owns the full set; values outside this enum are
    kept as plain strings on :class:`Mission` so they survive a re-persist.
    """

    CREATED = "CREATED"
    UPDATED = "UPDATED"
    COMPLETED = "COMPLETED"


class ResponderLocationStatus(StrEnum):
    """Responder status carried by a location update.

    Values without a mapped member resolve to ``UNKNOWN`` instead of raising
    ``ValueError``; an unknown status is a valid no-op, not an error.
    """

    MOVING = "MOVING"
    PICKED_UP = "PICKEDUP"
    DROPPED = "DROPPED"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def _missing_(cls, value: object) -> ResponderLocationStatus:
        if value == "PICKED_UP":
            return cls.PICKED_UP
        return cls.UNKNOWN


class ResponderLocationSample(MissionLocBaseModel):
    """One observed responder position, appended to a mission's history.

    Parameters
    ----------
    lat : Decimal
        Latitude in degrees.
    lon : Decimal
        Longitude in degrees.
    timestamp : int
        Epoch milliseconds at which the update was processed.
    """

    lat: Coordinate
    lon: Coordinate
    timestamp: int


def mission_key(incident_id: str, responder_id: str) -> str:
    """Repository key of the mission assigned to *responder_id* for *incident_id*."""
    return f"{incident_id}:{responder_id}"


class Mission(MissionLocBaseModel):
    """A responder's rescue mission for one incident.

    Mutable: the pipeline appends history and changes status in place while
    it holds the aggregate for a single update. Unknown JSON members are
    kept so that re-persisting does not drop fields owned by other services.
    """

    model_config = ConfigDict(
        frozen=False,
        extra="allow",
        validate_assignment=True,
    )

    id: str | None = None
    incident_id: str
    responder_id: str
    responder_start_lat: Coordinate | None = None
    responder_start_long: Coordinate | None = None
    incident_lat: Coordinate | None = None
    incident_long: Coordinate | None = None
    destination_lat: Coordinate | None = None
    destination_long: Coordinate | None = None
    responder_location_history: list[ResponderLocationSample] = Field(default_factory=list)
    status: MissionStatus | str = Field(default=MissionStatus.CREATED, union_mode="left_to_right")

    @property
    def key(self) -> str:
        return mission_key(self.incident_id, self.responder_id)

    def add_location(self, lat: Decimal, lon: Decimal, timestamp: int) -> ResponderLocationSample:
        """Append a location sample and return it."""
        sample = ResponderLocationSample(lat=lat, lon=lon, timestamp=timestamp)
        self.responder_location_history.append(sample)
        return sample

    def to_dict(self) -> dict[str, Any]:
        """Document dict with camelCase keys; coordinates stay ``Decimal``."""
        return self.model_dump(by_alias=True, exclude_none=True)

    def to_json(self) -> str:
        return dumps_json(self.to_dict())

    @classmethod
    def from_json(cls, text: str | bytes) -> Mission:
        return cls.model_validate(loads_json(text))
