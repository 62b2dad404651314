"""Ingestion layer.

This package turns inbound bus messages into validated location updates and
runs them through the mission update pipeline.
"""

from missionloc.ingestion.envelope import (
    ACCEPTED_EVENT_TYPES,
    RESPONDER_LOCATION_UPDATED_EVENT,
    EnvelopeResult,
    RejectionReason,
    validate_envelope,
)
from missionloc.ingestion.pipeline import ProcessingOutcome, UpdatePipeline

__all__ = [
    "ACCEPTED_EVENT_TYPES",
    "RESPONDER_LOCATION_UPDATED_EVENT",
    "EnvelopeResult",
    "ProcessingOutcome",
    "RejectionReason",
    "UpdatePipeline",
    "validate_envelope",
]
