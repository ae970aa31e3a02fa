"""Zone registry for Farm Irrigation."""
from __future__ import annotations

import logging
import random
from collections.abc import Callable, Iterable, Mapping
from datetime import datetime
from typing import Any

from homeassistant.util import dt as dt_util
from homeassistant.util.ulid import ulid_now

from ..const import (
    ATTR_ZONE_ID,
    INITIAL_LAST_WATERED_AGE,
    INITIAL_MOISTURE_MAX,
    INITIAL_MOISTURE_MIN,
)
from ..exceptions import ValidationError, ZoneNotFoundError
from ..models import Zone
from ..validation import validate_zone_spec

_LOGGER = logging.getLogger(__name__)


class ZoneRegistry:
    """Own the set of irrigation zones.

    Zones are immutable and the mapping is replaced wholesale on every write,
    so a reader holding the result of ``list_zones`` never sees a zone (or a
    batch of zones) half way through an update.
    """

    def __init__(
        self,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] = dt_util.utcnow,
    ) -> None:
        """Initialize the registry.

        Args:
            rng: Random source for initial moisture estimates
            clock: Returns the current time
        """
        self._rng = rng or random.Random()
        self._clock = clock
        self._zones: dict[str, Zone] = {}

    def __contains__(self, zone_id: object) -> bool:
        return zone_id in self._zones

    def __len__(self) -> int:
        return len(self._zones)

    def add(self, spec: Mapping[str, Any]) -> str:
        """Validate a zone spec, register it and return its id."""
        data = validate_zone_spec(dict(spec))
        zone_id = data.get(ATTR_ZONE_ID) or ulid_now()
        if zone_id in self._zones:
            raise ValidationError(f"Zone {zone_id} already exists")

        moisture = data.get("current_moisture")
        if moisture is None:
            moisture = round(
                self._rng.uniform(INITIAL_MOISTURE_MIN, INITIAL_MOISTURE_MAX), 1
            )

        last_watered = data.get("last_watered")
        if last_watered is None:
            # In the past so the zone is evaluated right away
            last_watered = self._clock() - INITIAL_LAST_WATERED_AGE

        zone = self._build(zone_id, data, moisture, last_watered)
        self._zones = {**self._zones, zone_id: zone}
        _LOGGER.debug("Added zone %s (%s)", zone.name, zone_id)
        return zone_id

    def update(self, zone_id: str, patch: Mapping[str, Any]) -> Zone:
        """Apply a partial update to a zone."""
        existing = self.get(zone_id)
        merged = {**existing.as_dict(), **patch, ATTR_ZONE_ID: zone_id}
        data = validate_zone_spec(merged)
        zone = self._build(
            zone_id, data, data["current_moisture"], data["last_watered"]
        )
        self._zones = {**self._zones, zone_id: zone}
        return zone

    def remove(self, zone_id: str) -> Zone:
        """Remove a zone and return it."""
        zones = dict(self._zones)
        try:
            zone = zones.pop(zone_id)
        except KeyError as err:
            raise ZoneNotFoundError(zone_id) from err
        self._zones = zones
        _LOGGER.debug("Removed zone %s (%s)", zone.name, zone_id)
        return zone

    def get(self, zone_id: str) -> Zone:
        """Return a zone or raise ZoneNotFoundError."""
        try:
            return self._zones[zone_id]
        except KeyError as err:
            raise ZoneNotFoundError(zone_id) from err

    def find(self, zone_id: str) -> Zone | None:
        """Return a zone or None."""
        return self._zones.get(zone_id)

    def list_zones(self) -> list[Zone]:
        """Return a snapshot of all zones."""
        return list(self._zones.values())

    def apply(self, updates: Mapping[str, Zone]) -> None:
        """Swap in a batch of updated zones at once.

        Zones removed since the batch was computed are not brought back.
        """
        zones = dict(self._zones)
        for zone_id, zone in updates.items():
            if zone_id in zones:
                zones[zone_id] = zone
        self._zones = zones

    def restore(self, zones: Iterable[Zone]) -> None:
        """Replace the registry content with previously stored zones."""
        self._zones = {zone.zone_id: zone for zone in zones}

    @staticmethod
    def _build(
        zone_id: str,
        data: dict[str, Any],
        moisture: float,
        last_watered: datetime,
    ) -> Zone:
        if last_watered.tzinfo is None:
            last_watered = dt_util.as_utc(last_watered)
        return Zone(
            zone_id=zone_id,
            name=data["name"],
            crop_type=data["crop_type"],
            area=data["area"],
            soil_type=data["soil_type"],
            irrigation_method=data["irrigation_method"],
            flow_rate=data["flow_rate"],
            duration=data["duration"],
            priority=data["priority"],
            current_moisture=moisture,
            target_moisture=data["target_moisture"],
            is_active=data["is_active"],
            last_watered=last_watered,
        )
