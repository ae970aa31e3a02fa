"""Binary sensor entities for Farm Irrigation."""
from __future__ import annotations

import logging
from typing import Any

from homeassistant.components.binary_sensor import (
    BinarySensorDeviceClass,
    BinarySensorEntity,
)
from homeassistant.config_entries import ConfigEntry
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
    """Set up Farm Irrigation binary sensors."""
    coordinator = hass.data[DOMAIN][entry.entry_id]["coordinator"]

    async_add_entities([IrrigatingSensor(coordinator, entry)])

    def _zone_sensors(zone: Zone) -> list[BinarySensorEntity]:
        return [ZoneNeedsWaterSensor(coordinator, entry, zone)]

    async_add_zone_entities(coordinator, entry, async_add_entities, _zone_sensors)


class IrrigatingSensor(FarmIrrigationEntity, BinarySensorEntity):
    """On while any zone is being watered."""

    _attr_device_class = BinarySensorDeviceClass.RUNNING
    _attr_icon = "mdi:sprinkler-variant"

    def __init__(self, coordinator, entry: ConfigEntry) -> None:
        """Initialize the binary sensor."""
        super().__init__(coordinator, entry, "irrigating", "Irrigating")

    @property
    def is_on(self) -> bool:
        """Return True if irrigation is running."""
        return self.manager.is_irrigating

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        """Return the zones being watered."""
        return {
            "zones": [entry.zone_name for entry in self.manager.active_schedules()],
        }


class ZoneNeedsWaterSensor(ZoneEntity, BinarySensorEntity):
    """On when the evaluator says a zone needs water."""

    _attr_device_class = BinarySensorDeviceClass.PROBLEM
    _attr_icon = "mdi:water-alert"

    def __init__(self, coordinator, entry: ConfigEntry, zone: Zone) -> None:
        """Initialize the binary sensor."""
        super().__init__(coordinator, entry, zone, "needs_water", "Needs water")

    @property
    def is_on(self) -> bool | None:
        """Return True if the zone needs water."""
        if self.zone is None:
            return None
        return self.manager.evaluate_zone(self._zone_id).needed

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        """Return urgency and reason."""
        if self.zone is None:
            return {}
        need = self.manager.evaluate_zone(self._zone_id)
        return {"urgency": str(need.urgency), "reason": need.reason}
