"""Switch entities for Farm Irrigation."""
from __future__ import annotations

import logging
from typing import Any

from homeassistant.components.switch import SwitchEntity
from homeassistant.config_entries import ConfigEntry
from homeassistant.const import EntityCategory
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
    """Set up Farm Irrigation switches."""
    coordinator = hass.data[DOMAIN][entry.entry_id]["coordinator"]

    async_add_entities(
        [
            SettingSwitch(
                coordinator, entry, "auto_scheduling", "Auto scheduling",
                "mdi:calendar-check",
            ),
            SettingSwitch(
                coordinator, entry, "weather_integration", "Weather integration",
                "mdi:weather-partly-cloudy",
            ),
            SettingSwitch(
                coordinator, entry, "notifications", "Notifications", "mdi:bell",
            ),
            RainDelaySwitch(coordinator, entry),
        ]
    )

    def _zone_switches(zone: Zone) -> list[SwitchEntity]:
        return [ZoneActiveSwitch(coordinator, entry, zone)]

    async_add_zone_entities(coordinator, entry, async_add_entities, _zone_switches)


class SettingSwitch(FarmIrrigationEntity, SwitchEntity):
    """Switch bound to a boolean setting."""

    _attr_entity_category = EntityCategory.CONFIG

    def __init__(
        self,
        coordinator,
        entry: ConfigEntry,
        setting: str,
        name: str,
        icon: str,
    ) -> None:
        """Initialize the switch."""
        super().__init__(coordinator, entry, setting, name)
        self._setting = setting
        self._attr_icon = icon

    @property
    def is_on(self) -> bool:
        """Return the setting value."""
        return getattr(self.manager.settings, self._setting)

    async def async_turn_on(self, **kwargs: Any) -> None:
        """Enable the setting."""
        await self.manager.async_update_settings({self._setting: True})

    async def async_turn_off(self, **kwargs: Any) -> None:
        """Disable the setting."""
        await self.manager.async_update_settings({self._setting: False})


class RainDelaySwitch(FarmIrrigationEntity, SwitchEntity):
    """Switch for rain delay."""

    _attr_icon = "mdi:weather-rainy"

    def __init__(self, coordinator, entry: ConfigEntry) -> None:
        """Initialize the switch."""
        super().__init__(coordinator, entry, "rain_delay", "Rain delay")

    @property
    def is_on(self) -> bool:
        """Return True while the rain delay is active."""
        return self.manager.rain_delay_active

    async def async_turn_on(self, **kwargs: Any) -> None:
        """Start a rain delay of the configured length."""
        await self.manager.async_set_rain_delay()

    async def async_turn_off(self, **kwargs: Any) -> None:
        """Cancel the rain delay."""
        await self.manager.async_cancel_rain_delay()

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        """Return additional attributes."""
        until = self.manager.rain_delay_until
        return {
            "delay_until": until.isoformat() if until and self.is_on else None,
            "delay_hours": self.manager.settings.rain_delay,
        }


class ZoneActiveSwitch(ZoneEntity, SwitchEntity):
    """Switch to include or exclude a zone from irrigation."""

    _attr_icon = "mdi:sprinkler"

    def __init__(self, coordinator, entry: ConfigEntry, zone: Zone) -> None:
        """Initialize the switch."""
        super().__init__(coordinator, entry, zone, "active", "Active")

    @property
    def is_on(self) -> bool | None:
        """Return True if the zone is active."""
        zone = self.zone
        return zone.is_active if zone else None

    async def async_turn_on(self, **kwargs: Any) -> None:
        """Activate the zone."""
        await self.manager.async_set_zone_active(self._zone_id, True)

    async def async_turn_off(self, **kwargs: Any) -> None:
        """Deactivate the zone."""
        await self.manager.async_set_zone_active(self._zone_id, False)

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        """Return the zone configuration."""
        zone = self.zone
        if zone is None:
            return {}
        next_entry = self.manager.next_schedule(self._zone_id)
        return {
            "priority": str(zone.priority),
            "irrigation_method": str(zone.irrigation_method),
            "area": zone.area,
            "flow_rate": zone.flow_rate,
            "duration": zone.duration,
            "next_run": next_entry.scheduled_time.isoformat() if next_entry else None,
        }
