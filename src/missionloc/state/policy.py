"""Deterministic mission transition policy.

This module contains no payload parsing and no I/O. The
ingestion boundary hands it a status string; it answers with the mission
status to set and the domain event to publish, if any.
"""

from __future__ import annotations

from dataclasses import dataclass

from missionloc.models.events import MissionEventType
from missionloc.models.mission import Mission, MissionStatus, ResponderLocationStatus


@dataclass(frozen=True)
class Transition:
    """Outcome of a responder status for a mission.

    ``None`` fields mean "leave unchanged" / "publish nothing".
    """

    mission_status: MissionStatus | None = None
    event: MissionEventType | None = None

    @property
    def is_noop(self) -> bool:
        return self.mission_status is None and self.event is None

    def apply(self, mission: Mission) -> None:
        if self.mission_status is not None:
            mission.status = self.mission_status


NO_OP = Transition()

_TRANSITIONS: dict[ResponderLocationStatus, Transition] = {
    ResponderLocationStatus.PICKED_UP: Transition(MissionStatus.UPDATED, MissionEventType.PICKED_UP),
    ResponderLocationStatus.DROPPED: Transition(MissionStatus.COMPLETED, MissionEventType.COMPLETED),
}


def decide_transition(status: str | ResponderLocationStatus) -> Transition:
    """Map a responder status to a mission transition.

    Total: any status without a mapping (``MOVING``, typos, new values)
    yields :data:`NO_OP`.
    """
    return _TRANSITIONS.get(ResponderLocationStatus(status), NO_OP)
