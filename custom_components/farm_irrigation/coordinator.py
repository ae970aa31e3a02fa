"""Data update coordinator for Farm Irrigation."""
from __future__ import annotations

import logging

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant, callback
from homeassistant.helpers import device_registry as dr
from homeassistant.helpers.update_coordinator import DataUpdateCoordinator
from homeassistant.util import dt as dt_util

from .const import DOMAIN, WEATHER_UPDATE_INTERVAL
from .exceptions import ExternalUnavailableError
from .manager import IrrigationManager
from .models import WeatherSnapshot
from .weather import WeatherProvider

_LOGGER = logging.getLogger(__name__)


class FarmIrrigationCoordinator(DataUpdateCoordinator[WeatherSnapshot | None]):
    """Refresh weather and fan engine changes out to entities.

    The coordinator's data is the latest weather snapshot. Weather is fetched
    here, outside the engine lock, and handed to the manager as an immutable
    snapshot; a failed fetch means no weather for that cycle rather than a
    failed update.
    """

    def __init__(
        self,
        hass: HomeAssistant,
        entry: ConfigEntry,
        manager: IrrigationManager,
        weather_provider: WeatherProvider,
    ) -> None:
        """Initialize the coordinator."""
        super().__init__(
            hass,
            _LOGGER,
            name=DOMAIN,
            update_interval=WEATHER_UPDATE_INTERVAL,
        )
        self.entry = entry
        self.manager = manager
        self.weather_provider = weather_provider
        self._known_zones: set[str] = set()

    async def _async_update_data(self) -> WeatherSnapshot | None:
        """Fetch weather from the configured provider."""
        try:
            snapshot = await self.weather_provider.async_fetch_snapshot(dt_util.utcnow())
        except ExternalUnavailableError as err:
            _LOGGER.warning("Weather unavailable, continuing without it: %s", err)
            snapshot = None
        except Exception as err:
            _LOGGER.error("Error fetching weather: %s", err)
            snapshot = None

        self.manager.set_weather(snapshot)
        return snapshot

    @callback
    def async_handle_engine_update(self) -> None:
        """Push an engine state change to entities.

        Devices of zones that no longer exist are removed together with
        their entities.
        """
        zone_ids = {zone.zone_id for zone in self.manager.list_zones()}
        removed = self._known_zones - zone_ids
        self._known_zones = zone_ids

        if removed:
            device_registry = dr.async_get(self.hass)
            for zone_id in removed:
                device = device_registry.async_get_device(identifiers={(DOMAIN, zone_id)})
                if device is not None:
                    device_registry.async_update_device(
                        device.id, remove_config_entry_id=self.entry.entry_id
                    )
                    _LOGGER.debug("Removed device for zone %s", zone_id)

        self.async_update_listeners()

    @callback
    def async_track_zones(self) -> None:
        """Remember the zones present right after setup."""
        self._known_zones = {zone.zone_id for zone in self.manager.list_zones()}

