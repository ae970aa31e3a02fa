"""Calendar entity for Farm Irrigation."""
from __future__ import annotations

import logging
from datetime import datetime, timedelta

from homeassistant.components.calendar import CalendarEntity, CalendarEvent
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity_platform import AddEntitiesCallback

from .const import DOMAIN
from .entity import FarmIrrigationEntity
from .models import ScheduleEntry, ScheduleStatus

_LOGGER = logging.getLogger(__name__)


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up Farm Irrigation calendar."""
    coordinator = hass.data[DOMAIN][entry.entry_id]["coordinator"]
    async_add_entities([IrrigationScheduleCalendar(coordinator, entry)])


def entry_to_event(entry: ScheduleEntry) -> CalendarEvent:
    """Convert a schedule entry to a calendar event."""
    start = entry.started_at or entry.scheduled_time
    # Runs are simulated in seconds, so the planned duration is what is shown
    end = start + timedelta(minutes=entry.duration)
    if entry.status == ScheduleStatus.COMPLETED and entry.finished_at:
        end = max(end, entry.finished_at)

    return CalendarEvent(
        start=start,
        end=end,
        summary=f"Irrigation: {entry.zone_name} ({entry.duration} min)",
        description=(
            f"{entry.reason}\n"
            f"Status: {entry.status}\n"
            f"Water: {entry.water_amount} L\n"
            f"Origin: {entry.origin}"
        ),
        uid=entry.schedule_id,
    )


class IrrigationScheduleCalendar(FarmIrrigationEntity, CalendarEntity):
    """Calendar entity showing the irrigation schedule."""

    _attr_icon = "mdi:calendar-clock"

    def __init__(self, coordinator, entry: ConfigEntry) -> None:
        """Initialize the calendar."""
        super().__init__(coordinator, entry, "calendar", "Schedule")

    @property
    def event(self) -> CalendarEvent | None:
        """Return the running or next upcoming event."""
        active = self.manager.active_schedules()
        if active:
            return entry_to_event(active[0])
        upcoming = self.manager.next_schedule()
        return entry_to_event(upcoming) if upcoming else None

    async def async_get_events(
        self,
        hass: HomeAssistant,
        start_date: datetime,
        end_date: datetime,
    ) -> list[CalendarEvent]:
        """Return calendar events within a datetime range."""
        events = []
        for entry in self.manager.list_schedules():
            event = entry_to_event(entry)
            if event.end > start_date and event.start < end_date:
                events.append(event)
        return events
