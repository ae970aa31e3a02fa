"""Schedule execution state machine for Farm Irrigation."""
from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime

from homeassistant.util import dt as dt_util

from ..const import MAX_REPLENISHMENT, MOISTURE_MAX, REASON_ZONE_REMOVED
from ..exceptions import InvalidTransitionError
from ..irrigation.registry import ZoneRegistry
from ..models import ScheduleEntry, ScheduleStatus, Zone
from .schedule_book import ScheduleBook

_LOGGER = logging.getLogger(__name__)


def replenished_moisture(zone: Zone) -> float:
    """Return a zone's moisture after a completed run."""
    increase = min(MAX_REPLENISHMENT, zone.target_moisture - zone.current_moisture + 10)
    return min(MOISTURE_MAX, zone.current_moisture + max(0, increase))


class ScheduleExecutor:
    """Drive schedule entries through pending -> active -> completed.

    Every method here is synchronous; the caller holds the engine lock so
    that a status check and the transition that follows it are one step.
    """

    def __init__(
        self,
        registry: ZoneRegistry,
        book: ScheduleBook,
        clock: Callable[[], datetime] = dt_util.utcnow,
    ) -> None:
        """Initialize the executor."""
        self._registry = registry
        self._book = book
        self._clock = clock

    def due(self) -> list[ScheduleEntry]:
        """Return pending entries that should start now."""
        return self._book.due(self._clock())

    def start(self, schedule_id: str) -> ScheduleEntry:
        """Start a pending entry.

        An entry whose zone has been removed is cancelled instead, and the
        cancelled entry is returned.

        Raises:
            InvalidTransitionError: The entry is not pending
        """
        entry = self._book.get(schedule_id)
        if entry.status != ScheduleStatus.PENDING:
            raise InvalidTransitionError(schedule_id, entry.status, ScheduleStatus.ACTIVE)

        now = self._clock()
        if entry.zone_id not in self._registry:
            _LOGGER.warning(
                "Zone %s for schedule %s no longer exists, cancelling",
                entry.zone_name,
                schedule_id,
            )
            return self._book.transition(
                schedule_id,
                ScheduleStatus.CANCELLED,
                reason=REASON_ZONE_REMOVED,
                finished_at=now,
            )

        _LOGGER.info(
            "Starting irrigation for %s (%d min)", entry.zone_name, entry.duration
        )
        return self._book.transition(
            schedule_id, ScheduleStatus.ACTIVE, started_at=now
        )

    def complete(self, schedule_id: str) -> ScheduleEntry:
        """Finish an active entry and replenish its zone."""
        entry = self._book.get(schedule_id)
        if entry.status != ScheduleStatus.ACTIVE:
            raise InvalidTransitionError(
                schedule_id, entry.status, ScheduleStatus.COMPLETED
            )

        now = self._clock()
        zone = self._registry.find(entry.zone_id)
        if zone is None:
            _LOGGER.warning(
                "Zone %s was removed while irrigating, nothing to replenish",
                entry.zone_name,
            )
        else:
            self._registry.apply(
                {
                    zone.zone_id: replace(
                        zone,
                        current_moisture=replenished_moisture(zone),
                        last_watered=now,
                    )
                }
            )

        _LOGGER.info(
            "Completed irrigation for %s (%d min)", entry.zone_name, entry.duration
        )
        return self._book.transition(
            schedule_id, ScheduleStatus.COMPLETED, finished_at=now
        )

    def cancel(self, schedule_id: str, reason: str | None = None) -> ScheduleEntry:
        """Cancel a pending entry.

        Raises:
            ScheduleNotFoundError: Unknown schedule id
            InvalidTransitionError: The entry is not pending
        """
        changes: dict[str, object] = {"finished_at": self._clock()}
        if reason:
            changes["reason"] = reason
        return self._book.transition(schedule_id, ScheduleStatus.CANCELLED, **changes)
