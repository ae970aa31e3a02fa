"""Sensor entities for Farm Irrigation."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from homeassistant.components.sensor import (
    SensorDeviceClass,
    SensorEntity,
    SensorStateClass,
)
from homeassistant.config_entries import ConfigEntry
from homeassistant.const import PERCENTAGE, UnitOfTime, UnitOfVolume
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity_platform import AddEntitiesCallback

from .const import DOMAIN
from .entity import FarmIrrigationEntity, ZoneEntity, async_add_zone_entities
from .models import Zone

_LOGGER = logging.getLogger(__name__)


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up Farm Irrigation sensors."""
    coordinator = hass.data[DOMAIN][entry.entry_id]["coordinator"]

    async_add_entities(
        [
            NextIrrigationSensor(coordinator, entry),
            WaterUsageSensor(coordinator, entry),
        ]
    )

    def _zone_sensors(zone: Zone) -> list[SensorEntity]:
        return [
            ZoneMoistureSensor(coordinator, entry, zone),
            ZoneRecommendedDurationSensor(coordinator, entry, zone),
            ZoneLastWateredSensor(coordinator, entry, zone),
        ]

    async_add_zone_entities(coordinator, entry, async_add_entities, _zone_sensors)


class NextIrrigationSensor(FarmIrrigationEntity, SensorEntity):
    """Sensor for the next pending irrigation run."""

    _attr_device_class = SensorDeviceClass.TIMESTAMP
    _attr_icon = "mdi:calendar-clock"

    def __init__(self, coordinator, entry: ConfigEntry) -> None:
        """Initialize the sensor."""
        super().__init__(coordinator, entry, "next_irrigation", "Next irrigation")

    @property
    def native_value(self) -> datetime | None:
        """Return when the next run starts."""
        entry = self.manager.next_schedule()
        return entry.scheduled_time if entry else None

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        """Return additional attributes."""
        entry = self.manager.next_schedule()
        pending = self.manager.book.pending()
        return {
            "zone": entry.zone_name if entry else None,
            "duration": entry.duration if entry else None,
            "reason": entry.reason if entry else None,
            "pending_runs": len(pending),
            "rain_delay_until": (
                self.manager.rain_delay_until.isoformat()
                if self.manager.rain_delay_active
                else None
            ),
        }


class WaterUsageSensor(FarmIrrigationEntity, SensorEntity):
    """Sensor for water used by completed runs."""

    _attr_device_class = SensorDeviceClass.WATER
    _attr_native_unit_of_measurement = UnitOfVolume.LITERS
    _attr_state_class = SensorStateClass.TOTAL
    _attr_icon = "mdi:water"

    def __init__(self, coordinator, entry: ConfigEntry) -> None:
        """Initialize the sensor."""
        super().__init__(coordinator, entry, "water_usage", "Water usage")

    @property
    def native_value(self) -> int:
        """Return liters used."""
        return self.manager.water_usage()["liters"]

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        """Return additional attributes."""
        usage = self.manager.water_usage()
        return {"minutes": usage["minutes"], "runs": usage["runs"]}


class ZoneMoistureSensor(ZoneEntity, SensorEntity):
    """Sensor for a zone's estimated soil moisture."""

    _attr_device_class = SensorDeviceClass.MOISTURE
    _attr_native_unit_of_measurement = PERCENTAGE
    _attr_state_class = SensorStateClass.MEASUREMENT
    _attr_icon = "mdi:water-percent"

    def __init__(self, coordinator, entry: ConfigEntry, zone: Zone) -> None:
        """Initialize the sensor."""
        super().__init__(coordinator, entry, zone, "moisture", "Soil moisture")

    @property
    def native_value(self) -> float | None:
        """Return the moisture level."""
        zone = self.zone
        return zone.current_moisture if zone else None

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        """Return additional attributes."""
        zone = self.zone
        if zone is None:
            return {}
        return {
            "target_moisture": zone.target_moisture,
            "soil_type": str(zone.soil_type),
            "crop_type": zone.crop_type,
        }


class ZoneRecommendedDurationSensor(ZoneEntity, SensorEntity):
    """Sensor for the duration the evaluator recommends."""

    _attr_device_class = SensorDeviceClass.DURATION
    _attr_native_unit_of_measurement = UnitOfTime.MINUTES
    _attr_icon = "mdi:timer-outline"

    def __init__(self, coordinator, entry: ConfigEntry, zone: Zone) -> None:
        """Initialize the sensor."""
        super().__init__(
            coordinator, entry, zone, "recommended_duration", "Recommended duration"
        )

    @property
    def native_value(self) -> int | None:
        """Return the recommended duration."""
        if self.zone is None:
            return None
        return self.manager.evaluate_zone(self._zone_id).duration

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        """Return the full evaluation."""
        if self.zone is None:
            return {}
        return self.manager.evaluate_zone(self._zone_id).as_dict()


class ZoneLastWateredSensor(ZoneEntity, SensorEntity):
    """Sensor for when a zone was last watered."""

    _attr_device_class = SensorDeviceClass.TIMESTAMP
    _attr_icon = "mdi:history"

    def __init__(self, coordinator, entry: ConfigEntry, zone: Zone) -> None:
        """Initialize the sensor."""
        super().__init__(coordinator, entry, zone, "last_watered", "Last watered")

    @property
    def native_value(self) -> datetime | None:
        """Return the last watering time."""
        zone = self.zone
        return zone.last_watered if zone else None

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        """Return details of the last completed run."""
        entry = self.manager.last_completed(self._zone_id)
        if entry is None:
            return {}
        return {
            "duration": entry.duration,
            "water_amount": entry.water_amount,
            "reason": entry.reason,
        }
