"""missionloc - responder location update consumer for rescue missions."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("missionloc")
except PackageNotFoundError:
    __version__ = "0+local"
from missionloc.config import ConsumerConfig
from missionloc.consumer import LocationUpdateConsumer
from missionloc.exceptions import (
    BusError,
    EventSinkError,
    MissionLocConfigError,
    MissionLocError,
    RepositoryError,
)
from missionloc.ingestion import (
    EnvelopeResult,
    ProcessingOutcome,
    RejectionReason,
    UpdatePipeline,
    validate_envelope,
)
from missionloc.models import (
    EventMetadata,
    InboundMessage,
    LocationUpdateEvent,
    MessageEnvelope,
    Mission,
    MissionEvent,
    MissionEventType,
    MissionStatus,
    ResponderLocationSample,
    ResponderLocationStatus,
)
from missionloc.repository import HttpMissionRepository, InMemoryMissionRepository, MissionRepository
from missionloc.sink import EventSink, MqttEventSink
from missionloc.state.policy import NO_OP, Transition, decide_transition

__all__ = [
    "__version__",
    "BusError",
    "ConsumerConfig",
    "EnvelopeResult",
    "EventMetadata",
    "EventSink",
    "EventSinkError",
    "HttpMissionRepository",
    "InMemoryMissionRepository",
    "InboundMessage",
    "LocationUpdateConsumer",
    "LocationUpdateEvent",
    "MessageEnvelope",
    "Mission",
    "MissionEvent",
    "MissionEventType",
    "MissionLocConfigError",
    "MissionLocError",
    "MissionRepository",
    "MissionStatus",
    "MqttEventSink",
    "NO_OP",
    "ProcessingOutcome",
    "RejectionReason",
    "RepositoryError",
    "ResponderLocationSample",
    "ResponderLocationStatus",
    "Transition",
    "UpdatePipeline",
    "decide_transition",
    "validate_envelope",
]
