"""Mission update pipeline.

Sequence per inbound message::

    validate -> lookup -> append sample -> transition -> emit -> persist -> ack

Every step after validation awaits a collaborator. The whole chain sits
inside one recovery boundary: whatever fails is logged and the message is
acknowledged anyway. There is no retry and no dead-letter routing; each
message gets at most one processing attempt.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from enum import StrEnum

from missionloc.ingestion.envelope import validate_envelope
from missionloc.models.envelope import InboundMessage
from missionloc.models.events import MissionEventType
from missionloc.models.location import LocationUpdateEvent
from missionloc.models.mission import Mission
from missionloc.repository import MissionRepository
from missionloc.sink import EventSink
from missionloc.state.policy import decide_transition


def now_ms() -> int:
    """Current epoch timestamp in milliseconds."""
    return int(time.time() * 1000)


class ProcessingOutcome(StrEnum):
    REJECTED = "rejected"
    MISSION_NOT_FOUND = "mission_not_found"
    APPLIED = "applied"
    FAILED = "failed"


class UpdatePipeline:
    """Applies responder location updates to missions.

    Parameters
    ----------
    repository : MissionRepository
        Source and destination of :class:`Mission` aggregates.
    sink : EventSink
        Receiver of mission domain events.
    logger : logging.Logger or None
        Logger for every pipeline message; defaults to this module's logger.
    clock : callable
        Returns the epoch-millisecond timestamp stamped on new samples.
    """

    def __init__(
        self,
        repository: MissionRepository,
        sink: EventSink,
        *,
        logger: logging.Logger | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._repository = repository
        self._sink = sink
        self._logger = logger or logging.getLogger(__name__)
        self._clock = clock

    async def process(self, message: InboundMessage) -> ProcessingOutcome:
        """Run one message through the pipeline and acknowledge it.

        Never raises (apart from cancellation); the acknowledgment is sent
        exactly once, after the chain has finished or failed.
        """
        try:
            outcome = await self._process(message)
        except Exception as exc:
            self._logger.error("Processing failed, message is dropped: %s", exc, exc_info=True)
            outcome = ProcessingOutcome.FAILED

        try:
            await message.ack()
        except Exception:
            self._logger.error("Acknowledgment failed for %r", message, exc_info=True)
        return outcome

    async def _process(self, message: InboundMessage) -> ProcessingOutcome:
        result = validate_envelope(message.envelope, logger=self._logger)
        if result.event is None:
            return ProcessingOutcome.REJECTED
        return await self._apply(result.event)

    async def _apply(self, update: LocationUpdateEvent) -> ProcessingOutcome:
        key = update.mission_key
        mission = await self._repository.get(key)
        if mission is None:
            self._logger.warning(
                "Mission with key = %s could not be retrieved or could not be found in the repository.",
                key,
            )
            return ProcessingOutcome.MISSION_NOT_FOUND

        mission.add_location(update.lat, update.lon, self._clock())

        transition = decide_transition(update.location_status)
        if transition.is_noop:
            self._logger.debug("No mission transition for status=%s key=%s", update.status, key)
        transition.apply(mission)
        if transition.event is not None:
            await self._emit(transition.event, mission)

        await self._repository.add(mission)
        return ProcessingOutcome.APPLIED

    async def _emit(self, event_type: MissionEventType, mission: Mission) -> None:
        if event_type == MissionEventType.PICKED_UP:
            await self._sink.mission_picked_up(mission)
        elif event_type == MissionEventType.COMPLETED:
            await self._sink.mission_completed(mission)
