"""Irrigation engine facade for Farm Irrigation.

The manager owns the zone registry, the schedule book and the settings
snapshot, and is the only place that mutates them. Every mutation runs under
one asyncio lock; reads go straight to the copy-on-write state and never
wait on it.
"""
from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Callable, Mapping
from datetime import datetime, timedelta
from typing import Any, Protocol

from homeassistant.core import callback
from homeassistant.util import dt as dt_util

from .const import (
    ACTIVE_PHASE_SECONDS,
    ATTR_IS_ACTIVE,
    ATTR_ZONE_ID,
    REASON_MANUAL,
    REASON_ZONE_REMOVED,
    SEVERITY_INFO,
    SEVERITY_SUCCESS,
    SEVERITY_WARNING,
)
from .exceptions import FarmIrrigationError, InvalidTransitionError, ValidationError
from .irrigation import MoistureSimulator, ZoneRegistry, evaluate_need
from .models import (
    IrrigationNeed,
    ScheduleEntry,
    ScheduleOrigin,
    ScheduleStatus,
    Settings,
    WeatherSnapshot,
    Zone,
)
from .scheduling import AutoScheduler, ScheduleBook, ScheduleExecutor
from .scheduling.auto_scheduler import create_entry
from .validation import apply_settings_patch

_LOGGER = logging.getLogger(__name__)


class Notifier(Protocol):
    """Receives user-facing notifications."""

    def notify(self, title: str, message: str, severity: str = SEVERITY_INFO) -> None:
        """Send a notification."""


class Storage(Protocol):
    """Durable key-value state."""

    async def async_load(self) -> dict[str, Any] | None:
        """Load the stored payload."""

    def async_schedule_save(self, data_func: Callable[[], dict[str, Any]]) -> None:
        """Write the payload soon."""

    async def async_save(self, data: dict[str, Any]) -> None:
        """Write the payload now."""


class IrrigationManager:
    """Run the irrigation engine for one farm."""

    def __init__(
        self,
        storage: Storage | None = None,
        notifier: Notifier | None = None,
        *,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] = dt_util.utcnow,
        active_delay: float = ACTIVE_PHASE_SECONDS,
    ) -> None:
        """Initialize the manager.

        Args:
            storage: Where state is persisted, or None to keep it in memory
            notifier: Notification sink, or None to stay silent
            rng: Random source shared by the simulator and the scheduler
            clock: Returns the current time
            active_delay: Seconds an irrigation run stays active
        """
        self._storage = storage
        self._notifier = notifier
        self._clock = clock
        self._active_delay = active_delay
        rng = rng or random.Random()

        self.registry = ZoneRegistry(rng, clock)
        self.book = ScheduleBook()
        self._simulator = MoistureSimulator(self.registry, rng, clock)
        self._scheduler = AutoScheduler(self.registry, self.book, rng, clock)
        self._executor = ScheduleExecutor(self.registry, self.book, clock)

        self._settings = Settings()
        self._weather: WeatherSnapshot | None = None
        self._rain_delay_until: datetime | None = None
        self._lock = asyncio.Lock()
        self._tasks: set[asyncio.Task] = set()
        self._listeners: list[Callable[[], None]] = []

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def settings(self) -> Settings:
        """Return the current settings snapshot."""
        return self._settings

    @property
    def weather(self) -> WeatherSnapshot | None:
        """Return the last weather snapshot."""
        return self._weather

    @property
    def rain_delay_until(self) -> datetime | None:
        """Return when the current rain delay ends."""
        return self._rain_delay_until

    @property
    def rain_delay_active(self) -> bool:
        """Return True while automatic scheduling is paused for rain."""
        return (
            self._rain_delay_until is not None
            and self._clock() < self._rain_delay_until
        )

    @property
    def running_tasks(self) -> set[asyncio.Task]:
        """Return the irrigation runs currently in their active phase."""
        return set(self._tasks)

    @property
    def is_irrigating(self) -> bool:
        """Return True if any zone is being watered."""
        return bool(self.active_schedules())

    @callback
    def set_weather(self, weather: WeatherSnapshot | None) -> None:
        """Replace the weather snapshot used by the next ticks."""
        self._weather = weather

    @callback
    def async_add_listener(self, update_callback: Callable[[], None]) -> Callable[[], None]:
        """Call back on every state change until the returned function is called."""
        self._listeners.append(update_callback)

        @callback
        def remove_listener() -> None:
            self._listeners.remove(update_callback)

        return remove_listener

    # ------------------------------------------------------------------
    # Zones
    # ------------------------------------------------------------------

    def list_zones(self) -> list[Zone]:
        """Return all zones."""
        return self.registry.list_zones()

    def get_zone(self, zone_id: str) -> Zone:
        """Return a zone or raise ZoneNotFoundError."""
        return self.registry.get(zone_id)

    def evaluate_zone(self, zone_id: str) -> IrrigationNeed:
        """Evaluate a zone against the current settings and weather."""
        weather = self._weather
        return evaluate_need(
            self.registry.get(zone_id),
            self._settings,
            weather,
            weather.forecast if weather else None,
        )

    async def async_upsert_zone(self, spec: Mapping[str, Any]) -> str:
        """Create a zone, or update it when the spec names an existing id.

        Returns:
            The zone id
        """
        spec = dict(spec)
        zone_id = spec.get(ATTR_ZONE_ID)

        async with self._lock:
            if zone_id and zone_id in self.registry:
                zone = self.registry.update(zone_id, spec)
                added = False
            else:
                zone_id = self.registry.add(spec)
                zone = self.registry.get(zone_id)
                added = True

        self._async_changed()
        if added:
            _LOGGER.info("Added irrigation zone %s", zone.name)
            self._notify("Zone added", f"Irrigation zone {zone.name} was added")
        return zone_id

    async def async_delete_zone(self, zone_id: str) -> Zone:
        """Remove a zone and cancel its pending entries.

        A run that is already active finishes without replenishing anything.
        """
        async with self._lock:
            zone = self.registry.remove(zone_id)
            cancelled = [
                self._executor.cancel(entry.schedule_id, REASON_ZONE_REMOVED)
                for entry in self.book.for_zone(zone_id)
                if entry.status == ScheduleStatus.PENDING
            ]

        self._async_changed()
        _LOGGER.info(
            "Removed irrigation zone %s, cancelled %d pending runs",
            zone.name,
            len(cancelled),
        )
        self._notify("Zone removed", f"Irrigation zone {zone.name} was removed")
        return zone

    async def async_set_zone_active(self, zone_id: str, active: bool) -> Zone:
        """Enable or disable a zone."""
        async with self._lock:
            zone = self.registry.update(zone_id, {ATTR_IS_ACTIVE: active})
        self._async_changed()
        return zone

    # ------------------------------------------------------------------
    # Schedules
    # ------------------------------------------------------------------

    def list_schedules(self) -> list[ScheduleEntry]:
        """Return all schedule entries ordered by time."""
        return self.book.list_entries()

    def active_schedules(self) -> list[ScheduleEntry]:
        """Return the entries currently irrigating."""
        return [
            entry
            for entry in self.book.list_entries()
            if entry.status == ScheduleStatus.ACTIVE
        ]

    def next_schedule(self, zone_id: str | None = None) -> ScheduleEntry | None:
        """Return the next pending entry, optionally for one zone."""
        for entry in self.book.pending():
            if zone_id is None or entry.zone_id == zone_id:
                return entry
        return None

    def last_completed(self, zone_id: str) -> ScheduleEntry | None:
        """Return the most recent completed entry for a zone."""
        completed = [
            entry
            for entry in self.book.for_zone(zone_id)
            if entry.status == ScheduleStatus.COMPLETED
        ]
        return completed[-1] if completed else None

    def water_usage(self) -> dict[str, Any]:
        """Summarize completed irrigation kept in the history."""
        completed = [
            entry
            for entry in self.book.list_entries()
            if entry.status == ScheduleStatus.COMPLETED
        ]
        return {
            "liters": sum(entry.water_amount for entry in completed),
            "minutes": sum(entry.duration for entry in completed),
            "runs": len(completed),
        }

    async def async_trigger_manual_water(
        self, zone_id: str, duration: int | None = None
    ) -> ScheduleEntry:
        """Water a zone right away.

        Without an explicit duration the recommended one is used.

        Raises:
            ZoneNotFoundError: Unknown zone
            ValidationError: The zone is inactive or already being watered
        """
        async with self._lock:
            zone = self.registry.get(zone_id)
            if not zone.is_active:
                raise ValidationError(f"Zone {zone.name} is not active")
            if any(entry.zone_id == zone_id for entry in self.active_schedules()):
                raise ValidationError(f"Zone {zone.name} is already being irrigated")

            settings = self._settings
            if duration is None:
                weather = self._weather
                duration = evaluate_need(
                    zone, settings, weather, weather.forecast if weather else None
                ).duration

            now = self._clock()
            entry = create_entry(
                zone, duration, REASON_MANUAL, now, ScheduleOrigin.MANUAL, settings, now
            )
            self.book.add(entry)
            entry = self._executor.start(entry.schedule_id)

        self._async_changed()
        self._spawn_active_phase(entry.schedule_id)
        return entry

    async def async_cancel_schedule(self, schedule_id: str) -> ScheduleEntry:
        """Cancel a pending entry.

        Raises:
            ScheduleNotFoundError: Unknown schedule
            InvalidTransitionError: The entry is no longer pending
        """
        async with self._lock:
            entry = self._executor.cancel(schedule_id)
        self._async_changed()
        _LOGGER.info("Cancelled irrigation for %s", entry.zone_name)
        return entry

    async def async_generate_schedule_now(self) -> list[ScheduleEntry]:
        """Run one auto-scheduling pass right away."""
        async with self._lock:
            entries = self._scheduler.run(self._settings, self._weather)

        if entries:
            self._async_changed()
            names = ", ".join(entry.zone_name for entry in entries)
            self._notify(
                "Irrigation scheduled",
                f"Scheduled {len(entries)} irrigation runs: {names}",
                schedule=True,
            )
        return entries

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    def get_settings(self) -> Settings:
        """Return the current settings snapshot."""
        return self._settings

    async def async_update_settings(self, patch: Mapping[str, Any]) -> Settings:
        """Validate and apply a partial settings update."""
        async with self._lock:
            self._settings = apply_settings_patch(self._settings, dict(patch))
        self._async_changed()
        return self._settings

    async def async_set_rain_delay(self, hours: float | None = None) -> datetime:
        """Pause automatic scheduling.

        Args:
            hours: Length of the delay, defaults to the rain delay setting

        Returns:
            When the delay ends
        """
        if hours is None:
            hours = self._settings.rain_delay
        self._rain_delay_until = self._clock() + timedelta(hours=hours)
        self._async_changed()
        _LOGGER.info("Rain delay set until %s", self._rain_delay_until)
        self._notify(
            "Rain delay",
            f"Automatic irrigation paused for {hours:g} hours",
            SEVERITY_WARNING,
            schedule=True,
        )
        return self._rain_delay_until

    async def async_cancel_rain_delay(self) -> None:
        """Resume automatic scheduling."""
        self._rain_delay_until = None
        self._async_changed()
        _LOGGER.info("Rain delay cancelled")

    # ------------------------------------------------------------------
    # Ticks
    # ------------------------------------------------------------------

    async def async_moisture_tick(self) -> dict[str, Zone]:
        """Advance the moisture simulation for every zone."""
        async with self._lock:
            updates = self._simulator.tick(self._weather)
        if updates:
            self._async_changed()
        return updates

    async def async_scheduler_tick(self) -> list[ScheduleEntry]:
        """Run the periodic auto-scheduling pass unless a rain delay is active."""
        if self.rain_delay_active:
            _LOGGER.debug("Rain delay active until %s, skipping", self._rain_delay_until)
            return []
        return await self.async_generate_schedule_now()

    async def async_due_check_tick(self) -> list[ScheduleEntry]:
        """Start every pending entry whose time has come.

        Returns:
            The entries that were started
        """
        started: list[ScheduleEntry] = []
        cancelled: list[ScheduleEntry] = []

        async with self._lock:
            for entry in self._executor.due():
                try:
                    result = self._executor.start(entry.schedule_id)
                except InvalidTransitionError:
                    continue
                except Exception as err:
                    _LOGGER.error(
                        "Error starting irrigation for %s: %s", entry.zone_name, err
                    )
                    cancelled.append(
                        self._executor.cancel(
                            entry.schedule_id, f"Failed to start: {err}"
                        )
                    )
                    continue

                if result.status == ScheduleStatus.ACTIVE:
                    started.append(result)
                else:
                    cancelled.append(result)

        if not started and not cancelled:
            return started

        self._async_changed()
        for entry in started:
            self._spawn_active_phase(entry.schedule_id)
        for entry in cancelled:
            self._notify(
                "Irrigation cancelled",
                f"Irrigation for {entry.zone_name} was cancelled: {entry.reason}",
                SEVERITY_WARNING,
                schedule=True,
            )
        return started

    def _spawn_active_phase(self, schedule_id: str) -> None:
        task = asyncio.get_running_loop().create_task(
            self._async_active_phase(schedule_id)
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _async_active_phase(self, schedule_id: str) -> None:
        """Keep an entry active for the run time, then complete it."""
        await asyncio.sleep(self._active_delay)

        async with self._lock:
            try:
                entry = self._executor.complete(schedule_id)
            except FarmIrrigationError as err:
                _LOGGER.error("Error completing schedule %s: %s", schedule_id, err)
                return

        self._async_changed()
        self._notify(
            "Irrigation completed",
            f"Watered {entry.zone_name} for {entry.duration} minutes "
            f"({entry.water_amount} L)",
            SEVERITY_SUCCESS,
            schedule=True,
        )

    # ------------------------------------------------------------------
    # Persistence and lifecycle
    # ------------------------------------------------------------------

    async def async_load(self) -> None:
        """Restore state from storage.

        Entries that were active when the state was saved are completed
        after the usual active phase.
        """
        if self._storage is None:
            return

        try:
            data = await self._storage.async_load()
        except Exception as err:
            _LOGGER.error("Error loading irrigation state: %s", err)
            return
        if not data:
            return

        zones: list[Zone] = []
        for item in data.get("zones", []):
            try:
                zones.append(Zone.from_dict(item))
            except (AttributeError, KeyError, TypeError, ValueError) as err:
                _LOGGER.error("Skipping invalid stored zone %s: %s", item, err)

        entries: list[ScheduleEntry] = []
        for item in data.get("schedules", []):
            try:
                entries.append(ScheduleEntry.from_dict(item))
            except (AttributeError, KeyError, TypeError, ValueError) as err:
                _LOGGER.error("Skipping invalid stored schedule %s: %s", item, err)

        try:
            settings = Settings.from_dict(data.get("settings", {}))
        except (AttributeError, KeyError, TypeError, ValueError) as err:
            _LOGGER.error("Stored settings are invalid, using defaults: %s", err)
            settings = Settings()

        rain_delay_until: datetime | None = None
        if stored_delay := data.get("rain_delay_until"):
            try:
                rain_delay_until = dt_util.parse_datetime(stored_delay)
            except (TypeError, ValueError) as err:
                _LOGGER.error("Stored rain delay is invalid, ignoring it: %s", err)

        async with self._lock:
            self.registry.restore(zones)
            self.book.restore(entries)
            self._settings = settings
            self._rain_delay_until = rain_delay_until

        _LOGGER.info(
            "Restored %d zones and %d schedule entries", len(zones), len(entries)
        )
        for entry in self.active_schedules():
            self._spawn_active_phase(entry.schedule_id)

    async def async_shutdown(self) -> None:
        """Stop running irrigation and write state to storage."""
        for task in self._tasks:
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

        if self._storage is not None:
            try:
                await self._storage.async_save(self._data_to_save())
            except Exception as err:
                _LOGGER.error("Error saving irrigation state: %s", err)

    def _data_to_save(self) -> dict[str, Any]:
        return {
            "zones": [zone.as_dict() for zone in self.registry.list_zones()],
            "schedules": [entry.as_dict() for entry in self.book.list_entries()],
            "settings": self._settings.as_dict(),
            "rain_delay_until": (
                self._rain_delay_until.isoformat() if self._rain_delay_until else None
            ),
        }

    @callback
    def _async_changed(self) -> None:
        """Persist and tell listeners that state changed."""
        if self._storage is not None:
            self._storage.async_schedule_save(self._data_to_save)

        for update_callback in list(self._listeners):
            try:
                update_callback()
            except Exception as err:
                _LOGGER.error("Error in irrigation state listener: %s", err)

    def _notify(
        self,
        title: str,
        message: str,
        severity: str = SEVERITY_INFO,
        *,
        schedule: bool = False,
    ) -> None:
        """Send a notification; failures never reach the caller.

        Schedule notifications respect the notifications setting.
        """
        if self._notifier is None:
            return
        if schedule and not self._settings.notifications:
            return
        try:
            self._notifier.notify(title, message, severity)
        except Exception as err:
            _LOGGER.error("Error sending notification: %s", err)
