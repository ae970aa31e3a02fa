"""Automatic schedule generation for Farm Irrigation."""
from __future__ import annotations

import logging
import random
from collections.abc import Callable
from datetime import datetime, timedelta

from homeassistant.util import dt as dt_util
from homeassistant.util.ulid import ulid_now

from ..const import (
    HIGH_URGENCY_LEAD_TIME,
    MORNING_JITTER_MINUTES,
    WATER_AMOUNT_DIVISOR,
)
from ..irrigation.evaluator import clamp_duration, evaluate_need, round_half_up
from ..irrigation.registry import ZoneRegistry
from ..models import (
    PRIORITY_RANK,
    IrrigationNeed,
    ScheduleEntry,
    ScheduleOrigin,
    ScheduleStatus,
    Settings,
    Urgency,
    WeatherSnapshot,
    Zone,
)
from .schedule_book import ScheduleBook

_LOGGER = logging.getLogger(__name__)


def estimate_water_amount(zone: Zone, duration: int) -> int:
    """Estimate liters used by a run.

    A simplified volumetric estimate; the divisor is a calibration constant,
    not a hydraulic formula.
    """
    return round_half_up(zone.flow_rate * duration * zone.area / WATER_AMOUNT_DIVISOR)


def create_entry(
    zone: Zone,
    duration: int,
    reason: str,
    scheduled_time: datetime,
    origin: ScheduleOrigin,
    settings: Settings,
    now: datetime,
) -> ScheduleEntry:
    """Build a pending schedule entry for a zone."""
    duration = clamp_duration(duration, settings)
    return ScheduleEntry(
        schedule_id=f"{origin}-{ulid_now()}",
        zone_id=zone.zone_id,
        zone_name=zone.name,
        scheduled_time=scheduled_time,
        duration=duration,
        status=ScheduleStatus.PENDING,
        reason=reason,
        water_amount=estimate_water_amount(zone, duration),
        origin=origin,
        created_at=now,
    )


class AutoScheduler:
    """Scan active zones and queue irrigation where it is needed."""

    def __init__(
        self,
        registry: ZoneRegistry,
        book: ScheduleBook,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] = dt_util.utcnow,
    ) -> None:
        """Initialize the auto-scheduler.

        Args:
            registry: Zone registry to scan
            book: Schedule book receiving new entries
            rng: Random source for morning start jitter
            clock: Returns the current time
        """
        self._registry = registry
        self._book = book
        self._rng = rng or random.Random()
        self._clock = clock

    def candidate_time(
        self,
        need: IrrigationNeed,
        settings: Settings,
        now: datetime,
    ) -> datetime:
        """Pick when a zone should be watered.

        High urgency runs shortly; everything else goes into tomorrow's
        morning window with a little jitter so zones do not all start at once.
        """
        if need.urgency == Urgency.HIGH:
            return now + HIGH_URGENCY_LEAD_TIME

        local_now = dt_util.as_local(now)
        tomorrow = local_now.date() + timedelta(days=1)
        window_start = datetime.combine(
            tomorrow, settings.early_morning_start, tzinfo=local_now.tzinfo
        )
        window_end = datetime.combine(tomorrow, settings.evening_end, tzinfo=local_now.tzinfo)

        jitter = timedelta(minutes=int(self._rng.uniform(0, MORNING_JITTER_MINUTES)))
        scheduled = window_start + jitter
        if scheduled > window_end:
            scheduled = window_start

        return dt_util.as_utc(scheduled)

    def run(
        self,
        settings: Settings,
        weather: WeatherSnapshot | None = None,
    ) -> list[ScheduleEntry]:
        """Run one scheduling pass.

        The caller holds the schedule lock for the whole pass so the conflict
        check and the insert cannot interleave with another pass.

        Returns:
            The entries that were added
        """
        if not settings.auto_scheduling:
            _LOGGER.debug("Auto scheduling disabled, skipping")
            return []

        now = self._clock()
        forecast = weather.forecast if weather else None
        zones = sorted(
            self._registry.list_zones(),
            key=lambda zone: PRIORITY_RANK[zone.priority],
            reverse=True,
        )
        new_entries: list[ScheduleEntry] = []

        for zone in zones:
            if not zone.is_active:
                continue
            try:
                need = evaluate_need(zone, settings, weather, forecast)
                if not need.needed:
                    continue

                scheduled_time = self.candidate_time(need, settings, now)
                if self._book.has_conflict(zone.zone_id, scheduled_time):
                    _LOGGER.debug(
                        "Zone %s already has a pending run near %s",
                        zone.name,
                        scheduled_time,
                    )
                    continue
                # At most one morning run per zone and day
                if need.urgency != Urgency.HIGH and self._book.has_pending_on(
                    zone.zone_id, dt_util.as_local(scheduled_time).date()
                ):
                    _LOGGER.debug(
                        "Zone %s is already queued for %s",
                        zone.name,
                        dt_util.as_local(scheduled_time).date(),
                    )
                    continue

                new_entries.append(
                    create_entry(
                        zone,
                        need.duration,
                        need.reason,
                        scheduled_time,
                        ScheduleOrigin.AUTO,
                        settings,
                        now,
                    )
                )
            except Exception as err:
                _LOGGER.error("Error scheduling zone %s: %s", zone.zone_id, err)

        if new_entries:
            self._book.add_many(new_entries)
            _LOGGER.info(
                "Generated %d automatic irrigation schedules", len(new_entries)
            )

        return new_entries
