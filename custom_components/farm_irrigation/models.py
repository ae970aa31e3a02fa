"""Data model for the irrigation engine."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time
from enum import StrEnum
from typing import Any

from homeassistant.util import dt as dt_util

from .const import (
    DEFAULT_AUTO_SCHEDULING,
    DEFAULT_EARLY_MORNING_START,
    DEFAULT_EVENING_END,
    DEFAULT_MAX_DAILY_WATERING,
    DEFAULT_MOISTURE_THRESHOLD,
    DEFAULT_NOTIFICATIONS,
    DEFAULT_RAIN_DELAY,
    DEFAULT_WEATHER_INTEGRATION,
    RAIN_CONDITIONS,
)


class SoilType(StrEnum):
    """Soil types a zone can be planted in."""

    SANDY = "sandy"
    CLAY = "clay"
    LOAMY = "loamy"
    SILT = "silt"
    RED = "red"
    BLACK = "black"
    ALLUVIAL = "alluvial"


class IrrigationMethod(StrEnum):
    """Irrigation hardware installed in a zone."""

    DRIP = "drip"
    SPRINKLER = "sprinkler"
    FLOOD = "flood"
    MANUAL = "manual"


class Priority(StrEnum):
    """Zone priority."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Urgency(StrEnum):
    """How soon a zone needs water."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


URGENCY_RANK: dict[Urgency, int] = {Urgency.LOW: 0, Urgency.MEDIUM: 1, Urgency.HIGH: 2}
PRIORITY_RANK: dict[Priority, int] = {Priority.LOW: 0, Priority.MEDIUM: 1, Priority.HIGH: 2}


class ScheduleStatus(StrEnum):
    """Schedule entry lifecycle."""

    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ScheduleOrigin(StrEnum):
    """Who created a schedule entry."""

    AUTO = "auto"
    MANUAL = "manual"


def _format_time(value: time) -> str:
    return value.strftime("%H:%M")


def _parse_time(value: time | str) -> time:
    if isinstance(value, time):
        return value
    parts = value.split(":")
    return time(int(parts[0]), int(parts[1]))


def _parse_datetime(value: datetime | str | None) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    return dt_util.parse_datetime(value)


def _isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


@dataclass(frozen=True)
class Zone:
    """One irrigable area of the farm."""

    zone_id: str
    name: str
    crop_type: str
    area: float
    soil_type: SoilType
    irrigation_method: IrrigationMethod
    flow_rate: float
    duration: int
    priority: Priority
    current_moisture: float
    target_moisture: float
    is_active: bool
    last_watered: datetime

    def as_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable representation."""
        return {
            "zone_id": self.zone_id,
            "name": self.name,
            "crop_type": self.crop_type,
            "area": self.area,
            "soil_type": str(self.soil_type),
            "irrigation_method": str(self.irrigation_method),
            "flow_rate": self.flow_rate,
            "duration": self.duration,
            "priority": str(self.priority),
            "current_moisture": self.current_moisture,
            "target_moisture": self.target_moisture,
            "is_active": self.is_active,
            "last_watered": self.last_watered.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Zone:
        """Build a zone from stored data."""
        return cls(
            zone_id=data["zone_id"],
            name=data["name"],
            crop_type=data["crop_type"],
            area=data["area"],
            soil_type=SoilType(data["soil_type"]),
            irrigation_method=IrrigationMethod(data["irrigation_method"]),
            flow_rate=data["flow_rate"],
            duration=data["duration"],
            priority=Priority(data["priority"]),
            current_moisture=data["current_moisture"],
            target_moisture=data["target_moisture"],
            is_active=data["is_active"],
            last_watered=_parse_datetime(data["last_watered"]),
        )


@dataclass(frozen=True)
class ScheduleEntry:
    """A planned or historical irrigation event."""

    schedule_id: str
    zone_id: str
    zone_name: str
    scheduled_time: datetime
    duration: int
    status: ScheduleStatus
    reason: str
    water_amount: int
    origin: ScheduleOrigin
    created_at: datetime | None = None
    started_at: datetime | None = None
    finished_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        """Return True once the entry can no longer change."""
        return self.status in (ScheduleStatus.COMPLETED, ScheduleStatus.CANCELLED)

    def as_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable representation."""
        return {
            "schedule_id": self.schedule_id,
            "zone_id": self.zone_id,
            "zone_name": self.zone_name,
            "scheduled_time": self.scheduled_time.isoformat(),
            "duration": self.duration,
            "status": str(self.status),
            "reason": self.reason,
            "water_amount": self.water_amount,
            "origin": str(self.origin),
            "created_at": _isoformat(self.created_at),
            "started_at": _isoformat(self.started_at),
            "finished_at": _isoformat(self.finished_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ScheduleEntry:
        """Build an entry from stored data."""
        return cls(
            schedule_id=data["schedule_id"],
            zone_id=data["zone_id"],
            zone_name=data["zone_name"],
            scheduled_time=_parse_datetime(data["scheduled_time"]),
            duration=data["duration"],
            status=ScheduleStatus(data["status"]),
            reason=data["reason"],
            water_amount=data["water_amount"],
            origin=ScheduleOrigin(data["origin"]),
            created_at=_parse_datetime(data.get("created_at")),
            started_at=_parse_datetime(data.get("started_at")),
            finished_at=_parse_datetime(data.get("finished_at")),
        )


@dataclass(frozen=True)
class Settings:
    """Process-wide irrigation settings.

    Instances are immutable; an update produces a new snapshot so that a tick
    which started with the old values finishes with them.
    """

    auto_scheduling: bool = DEFAULT_AUTO_SCHEDULING
    weather_integration: bool = DEFAULT_WEATHER_INTEGRATION
    moisture_threshold: float = DEFAULT_MOISTURE_THRESHOLD
    rain_delay: float = DEFAULT_RAIN_DELAY
    max_daily_watering: int = DEFAULT_MAX_DAILY_WATERING
    early_morning_start: time = field(default_factory=lambda: _parse_time(DEFAULT_EARLY_MORNING_START))
    evening_end: time = field(default_factory=lambda: _parse_time(DEFAULT_EVENING_END))
    notifications: bool = DEFAULT_NOTIFICATIONS

    def as_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable representation."""
        return {
            "auto_scheduling": self.auto_scheduling,
            "weather_integration": self.weather_integration,
            "moisture_threshold": self.moisture_threshold,
            "rain_delay": self.rain_delay,
            "max_daily_watering": self.max_daily_watering,
            "early_morning_start": _format_time(self.early_morning_start),
            "evening_end": _format_time(self.evening_end),
            "notifications": self.notifications,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Settings:
        """Build settings from stored data, filling in defaults."""
        defaults = cls()
        return cls(
            auto_scheduling=data.get("auto_scheduling", defaults.auto_scheduling),
            weather_integration=data.get("weather_integration", defaults.weather_integration),
            moisture_threshold=data.get("moisture_threshold", defaults.moisture_threshold),
            rain_delay=data.get("rain_delay", defaults.rain_delay),
            max_daily_watering=data.get("max_daily_watering", defaults.max_daily_watering),
            early_morning_start=_parse_time(
                data.get("early_morning_start", defaults.early_morning_start)
            ),
            evening_end=_parse_time(data.get("evening_end", defaults.evening_end)),
            notifications=data.get("notifications", defaults.notifications),
        )


@dataclass(frozen=True)
class ForecastDay:
    """One day of forecast."""

    date: date
    temp_min: float | None
    temp_max: float | None
    precipitation: float  # 0-100 rain probability signal


@dataclass(frozen=True)
class WeatherSnapshot:
    """Immutable read of current conditions and the short-term forecast."""

    temperature: float | None
    humidity: float | None
    wind_speed: float | None  # km/h
    condition: str
    forecast: tuple[ForecastDay, ...] = ()
    fetched_at: datetime | None = None

    @property
    def is_raining(self) -> bool:
        """Return True if the current condition reports rain."""
        condition = self.condition.lower()
        return any(term in condition for term in RAIN_CONDITIONS)

    def as_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable representation."""
        return {
            "temperature": self.temperature,
            "humidity": self.humidity,
            "wind_speed": self.wind_speed,
            "condition": self.condition,
            "forecast": [
                {
                    "date": day.date.isoformat(),
                    "temp_min": day.temp_min,
                    "temp_max": day.temp_max,
                    "precipitation": day.precipitation,
                }
                for day in self.forecast
            ],
            "fetched_at": _isoformat(self.fetched_at),
        }


@dataclass(frozen=True)
class IrrigationNeed:
    """Outcome of a need evaluation."""

    needed: bool
    urgency: Urgency
    reason: str
    duration: int

    def as_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable representation."""
        return {
            "needed": self.needed,
            "urgency": str(self.urgency),
            "reason": self.reason,
            "duration": self.duration,
        }
