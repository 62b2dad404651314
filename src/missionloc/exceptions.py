"""Custom exception hierarchy for missionloc."""

from __future__ import annotations


class MissionLocError(Exception):
    """Base exception for all missionloc errors."""


class MissionLocConfigError(MissionLocError):
    """Invalid or missing configuration."""


class BusError(MissionLocError):
    """Message-bus failure (connect, subscribe, publish)."""


class RepositoryError(MissionLocError):
    """Mission repository failure (network, non-2xx, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        key: str = "",
    ) -> None:
        self.status_code = status_code
        self.key = key
        super().__init__(message)


class EventSinkError(MissionLocError):
    """A domain event could not be handed to the downstream transport."""

    def __init__(self, message: str, *, event_type: str = "") -> None:
        self.event_type = event_type
        super().__init__(message)
