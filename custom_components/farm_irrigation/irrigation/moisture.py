"""Soil moisture simulation for Farm Irrigation."""
from __future__ import annotations

import logging
import random
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime

from homeassistant.util import dt as dt_util

from ..const import (
    BASE_DECAY_MAX,
    BASE_DECAY_MIN,
    DRY_AIR_HUMIDITY,
    HOT_TEMPERATURE,
    MOISTURE_MAX,
    MOISTURE_MIN,
    RAIN_REPLENISHMENT,
    RECENT_WATERING_BONUS,
    RECENT_WATERING_WINDOW,
    SOIL_DRAINAGE,
    WINDY_SPEED,
)
from ..models import WeatherSnapshot, Zone
from .registry import ZoneRegistry

_LOGGER = logging.getLogger(__name__)


def clamp_moisture(value: float) -> float:
    """Keep a moisture estimate inside the simulated bounds."""
    return max(MOISTURE_MIN, min(MOISTURE_MAX, value))


class MoistureSimulator:
    """Approximate soil moisture drift for every zone.

    The model is deliberately rough: a randomized base loss scaled by soil
    drainage, nudged by current weather, and overridden right after a
    watering so that a freshly irrigated zone reads as saturated.
    """

    def __init__(
        self,
        registry: ZoneRegistry,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] = dt_util.utcnow,
    ) -> None:
        """Initialize the simulator."""
        self._registry = registry
        self._rng = rng or random.Random()
        self._clock = clock

    def simulate(
        self,
        zone: Zone,
        weather: WeatherSnapshot | None,
        now: datetime,
    ) -> float:
        """Return the next moisture estimate for a zone."""
        moisture = zone.current_moisture

        if weather is not None:
            if weather.temperature is not None and weather.temperature > HOT_TEMPERATURE:
                moisture -= 1
            if weather.humidity is not None and weather.humidity < DRY_AIR_HUMIDITY:
                moisture -= 1
            if weather.wind_speed is not None and weather.wind_speed > WINDY_SPEED:
                moisture -= 0.5
            if weather.is_raining:
                moisture += RAIN_REPLENISHMENT

        base_decay = self._rng.uniform(BASE_DECAY_MIN, BASE_DECAY_MAX)
        moisture -= base_decay * SOIL_DRAINAGE.get(str(zone.soil_type), 1.0)

        if now - zone.last_watered < RECENT_WATERING_WINDOW:
            moisture = max(moisture, zone.target_moisture + RECENT_WATERING_BONUS)

        return float(round(clamp_moisture(moisture)))

    def tick(self, weather: WeatherSnapshot | None = None) -> dict[str, Zone]:
        """Recompute moisture for all zones and apply the batch.

        Inactive zones dry out too. A zone that fails to simulate keeps its
        previous value.

        Returns:
            Dict of zone_id -> updated zone
        """
        now = self._clock()
        updates: dict[str, Zone] = {}

        for zone in self._registry.list_zones():
            try:
                moisture = self.simulate(zone, weather, now)
            except Exception as err:
                _LOGGER.error(
                    "Error simulating moisture for zone %s: %s", zone.zone_id, err
                )
                continue
            if moisture != zone.current_moisture:
                updates[zone.zone_id] = replace(zone, current_moisture=moisture)

        self._registry.apply(updates)
        _LOGGER.debug("Moisture tick updated %d zones", len(updates))
        return updates
