"""Schedule list for Farm Irrigation."""
from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import replace
from datetime import date, datetime, timedelta
from typing import Any

from homeassistant.util import dt as dt_util

from ..const import CONFLICT_WINDOW, MAX_SCHEDULE_HISTORY
from ..exceptions import InvalidTransitionError, ScheduleNotFoundError
from ..models import ScheduleEntry, ScheduleStatus

_LOGGER = logging.getLogger(__name__)

VALID_TRANSITIONS: dict[ScheduleStatus, frozenset[ScheduleStatus]] = {
    ScheduleStatus.PENDING: frozenset({ScheduleStatus.ACTIVE, ScheduleStatus.CANCELLED}),
    ScheduleStatus.ACTIVE: frozenset({ScheduleStatus.COMPLETED}),
    ScheduleStatus.COMPLETED: frozenset(),
    ScheduleStatus.CANCELLED: frozenset(),
}


class ScheduleBook:
    """Hold every planned and historical schedule entry.

    Entries are immutable. A status change replaces the stored entry, and the
    mapping itself is copied on write so readers iterate over a stable view.
    """

    def __init__(self, max_history: int = MAX_SCHEDULE_HISTORY) -> None:
        """Initialize the schedule book.

        Args:
            max_history: Number of completed/cancelled entries to keep
        """
        self._max_history = max_history
        self._entries: dict[str, ScheduleEntry] = {}

    def __contains__(self, schedule_id: object) -> bool:
        return schedule_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, schedule_id: str) -> ScheduleEntry:
        """Return an entry or raise ScheduleNotFoundError."""
        try:
            return self._entries[schedule_id]
        except KeyError as err:
            raise ScheduleNotFoundError(schedule_id) from err

    def list_entries(self) -> list[ScheduleEntry]:
        """Return all entries ordered by scheduled time."""
        return sorted(self._entries.values(), key=lambda entry: entry.scheduled_time)

    def pending(self) -> list[ScheduleEntry]:
        """Return pending entries ordered by scheduled time."""
        return [
            entry
            for entry in self.list_entries()
            if entry.status == ScheduleStatus.PENDING
        ]

    def due(self, now: datetime) -> list[ScheduleEntry]:
        """Return pending entries whose time has come."""
        return [entry for entry in self.pending() if entry.scheduled_time <= now]

    def for_zone(self, zone_id: str) -> list[ScheduleEntry]:
        """Return every entry that references a zone."""
        return [entry for entry in self.list_entries() if entry.zone_id == zone_id]

    def has_conflict(
        self,
        zone_id: str,
        when: datetime,
        window: timedelta = CONFLICT_WINDOW,
    ) -> bool:
        """Return True if a pending entry for the zone is within the window."""
        # Linear scan; zone counts are in the dozens at most
        return any(
            entry.zone_id == zone_id
            and entry.status == ScheduleStatus.PENDING
            and abs(entry.scheduled_time - when) < window
            for entry in self._entries.values()
        )

    def has_pending_on(self, zone_id: str, day: date) -> bool:
        """Return True if the zone has a pending entry on a local date."""
        return any(
            entry.zone_id == zone_id
            and entry.status == ScheduleStatus.PENDING
            and dt_util.as_local(entry.scheduled_time).date() == day
            for entry in self._entries.values()
        )

    def add(self, entry: ScheduleEntry) -> None:
        """Add a single entry."""
        self.add_many([entry])

    def add_many(self, entries: Iterable[ScheduleEntry]) -> None:
        """Add a batch of entries in one write."""
        merged = dict(self._entries)
        for entry in entries:
            merged[entry.schedule_id] = entry
        self._entries = merged

    def transition(
        self,
        schedule_id: str,
        status: ScheduleStatus,
        **changes: Any,
    ) -> ScheduleEntry:
        """Move an entry to a new status.

        Raises:
            ScheduleNotFoundError: Unknown schedule id
            InvalidTransitionError: The state machine forbids the move
        """
        entry = self.get(schedule_id)
        if status not in VALID_TRANSITIONS[entry.status]:
            raise InvalidTransitionError(schedule_id, entry.status, status)

        updated = replace(entry, status=status, **changes)
        self._entries = {**self._entries, schedule_id: updated}
        _LOGGER.debug("Schedule %s: %s -> %s", schedule_id, entry.status, status)

        if updated.is_terminal:
            self._prune()
        return updated

    def restore(self, entries: Iterable[ScheduleEntry]) -> None:
        """Replace the content with previously stored entries."""
        self._entries = {entry.schedule_id: entry for entry in entries}
        self._prune()

    def _prune(self) -> None:
        """Drop the oldest terminal entries beyond the history limit."""
        terminal = [entry for entry in self.list_entries() if entry.is_terminal]
        excess = len(terminal) - self._max_history
        if excess <= 0:
            return
        drop = {entry.schedule_id for entry in terminal[:excess]}
        self._entries = {
            schedule_id: entry
            for schedule_id, entry in self._entries.items()
            if schedule_id not in drop
        }
