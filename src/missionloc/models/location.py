"""Responder location update decoded from an inbound event payload."""

from __future__ import annotations

from typing import Any

from pydantic import Field, StrictBool, StrictStr, field_validator

from missionloc.models._base import MissionLocBaseModel, StrictCoordinate, dumps_json, loads_json
from missionloc.models.mission import ResponderLocationStatus, mission_key


class LocationUpdateEvent(MissionLocBaseModel):
    """A typed ``ResponderLocationUpdatedEvent`` payload.

    All fields are required. Identifiers and status must be non-blank JSON
    strings, ``lat``/``lon`` finite JSON numbers and the two flags JSON
    booleans.

    Parameters
    ----------
    responder_id : str
        Responder that reported the position.
    mission_id : str
        Mission the responder is executing.
    incident_id : str
        Incident the mission belongs to.
    status : str
        Raw responder status (``MOVING``, ``PICKEDUP``, ``DROPPED``, ...).
    lat, lon : Decimal
        Reported position.
    human : bool
        Whether the responder is a person (as opposed to a simulated one).
    continue_ : bool
        Whether the responder keeps moving after this update
        (``continue`` on the wire).
    """

    responder_id: StrictStr
    mission_id: StrictStr
    incident_id: StrictStr
    status: StrictStr
    lat: StrictCoordinate
    lon: StrictCoordinate
    human: StrictBool
    continue_: StrictBool = Field(alias="continue")

    @field_validator("responder_id", "mission_id", "incident_id", "status")
    @classmethod
    def _non_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must be non-blank")
        return value

    @property
    def mission_key(self) -> str:
        return mission_key(self.incident_id, self.responder_id)

    @property
    def location_status(self) -> ResponderLocationStatus:
        return ResponderLocationStatus(self.status)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)

    def to_json(self) -> str:
        return dumps_json(self.to_dict())

    @classmethod
    def from_json(cls, text: str | bytes) -> LocationUpdateEvent:
        """Decode a JSON payload, keeping coordinates as exact decimals."""
        return cls.model_validate(loads_json(text))
