"""Exceptions for Farm Irrigation."""
from __future__ import annotations

from homeassistant.exceptions import HomeAssistantError


class FarmIrrigationError(HomeAssistantError):
    """Base error for the irrigation engine."""


class ValidationError(FarmIrrigationError):
    """A zone spec or settings patch was rejected."""


class NotFoundError(FarmIrrigationError):
    """An operation referenced an unknown id."""


class ZoneNotFoundError(NotFoundError):
    """Unknown zone id."""

    def __init__(self, zone_id: str) -> None:
        super().__init__(f"Zone not found: {zone_id}")
        self.zone_id = zone_id


class ScheduleNotFoundError(NotFoundError):
    """Unknown schedule id."""

    def __init__(self, schedule_id: str) -> None:
        super().__init__(f"Schedule not found: {schedule_id}")
        self.schedule_id = schedule_id


class InvalidTransitionError(FarmIrrigationError):
    """A schedule status change is not allowed by the state machine."""

    def __init__(self, schedule_id: str, current: str, requested: str) -> None:
        super().__init__(
            f"Schedule {schedule_id} cannot move from {current} to {requested}"
        )
        self.schedule_id = schedule_id
        self.current = current
        self.requested = requested


class ExternalUnavailableError(FarmIrrigationError):
    """The weather provider could not be reached or returned no data."""
