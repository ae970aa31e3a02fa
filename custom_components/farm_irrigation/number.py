"""Number entities for Farm Irrigation."""
from __future__ import annotations

import logging

from homeassistant.components.number import NumberEntity, NumberMode
from homeassistant.config_entries import ConfigEntry
from homeassistant.const import PERCENTAGE, EntityCategory, UnitOfTime
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity_platform import AddEntitiesCallback

from .const import (
    DOMAIN,
    MAX_DAILY_WATERING_LIMIT,
    MIN_DURATION,
    MOISTURE_THRESHOLD_MAX,
    MOISTURE_THRESHOLD_MIN,
    RAIN_DELAY_LIMIT,
)
from .entity import FarmIrrigationEntity

_LOGGER = logging.getLogger(__name__)


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up Farm Irrigation number entities."""
    coordinator = hass.data[DOMAIN][entry.entry_id]["coordinator"]

    async_add_entities(
        [
            MoistureThresholdNumber(coordinator, entry),
            MaxDailyWateringNumber(coordinator, entry),
            RainDelayHoursNumber(coordinator, entry),
        ]
    )


class SettingNumber(FarmIrrigationEntity, NumberEntity):
    """Number bound to a numeric setting."""

    _attr_entity_category = EntityCategory.CONFIG
    _attr_mode = NumberMode.BOX
    _setting: str
    _cast: type = float

    @property
    def native_value(self) -> float:
        """Return the setting value."""
        return getattr(self.manager.settings, self._setting)

    async def async_set_native_value(self, value: float) -> None:
        """Update the setting."""
        await self.manager.async_update_settings({self._setting: self._cast(value)})


class MoistureThresholdNumber(SettingNumber):
    """Moisture below which a zone needs water."""

    _setting = "moisture_threshold"
    _attr_native_min_value = MOISTURE_THRESHOLD_MIN
    _attr_native_max_value = MOISTURE_THRESHOLD_MAX
    _attr_native_step = 1
    _attr_native_unit_of_measurement = PERCENTAGE
    _attr_icon = "mdi:water-percent-alert"

    def __init__(self, coordinator, entry: ConfigEntry) -> None:
        """Initialize the number entity."""
        super().__init__(coordinator, entry, "moisture_threshold", "Moisture threshold")


class MaxDailyWateringNumber(SettingNumber):
    """Longest run any zone gets."""

    _setting = "max_daily_watering"
    _cast = int
    _attr_native_min_value = MIN_DURATION
    _attr_native_max_value = MAX_DAILY_WATERING_LIMIT
    _attr_native_step = 5
    _attr_native_unit_of_measurement = UnitOfTime.MINUTES
    _attr_icon = "mdi:timer-cog"

    def __init__(self, coordinator, entry: ConfigEntry) -> None:
        """Initialize the number entity."""
        super().__init__(coordinator, entry, "max_daily_watering", "Max daily watering")


class RainDelayHoursNumber(SettingNumber):
    """Length of a rain delay."""

    _setting = "rain_delay"
    _attr_native_min_value = 0
    _attr_native_max_value = RAIN_DELAY_LIMIT
    _attr_native_step = 1
    _attr_native_unit_of_measurement = UnitOfTime.HOURS
    _attr_icon = "mdi:weather-rainy"

    def __init__(self, coordinator, entry: ConfigEntry) -> None:
        """Initialize the number entity."""
        super().__init__(coordinator, entry, "rain_delay_hours", "Rain delay hours")
