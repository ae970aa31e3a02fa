"""Weather providers for Farm Irrigation."""
from __future__ import annotations

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.helpers.aiohttp_client import async_get_clientsession

from ..const import CONF_LOCATION_LAT, CONF_LOCATION_LON, CONF_WEATHER_ENTITY
from .entity import EntityWeatherProvider
from .open_meteo import OpenMeteoProvider
from .provider import WeatherProvider

__all__ = [
    "EntityWeatherProvider",
    "OpenMeteoProvider",
    "WeatherProvider",
    "create_weather_provider",
]


def create_weather_provider(hass: HomeAssistant, entry: ConfigEntry) -> WeatherProvider:
    """Pick the provider configured for an entry.

    A configured weather entity wins; otherwise Open-Meteo is queried at the
    entry's coordinates, falling back to Home Assistant's home location.
    """
    config = entry.options or entry.data
    if entity_id := config.get(CONF_WEATHER_ENTITY):
        return EntityWeatherProvider(hass, entity_id)

    return OpenMeteoProvider(
        async_get_clientsession(hass),
        config.get(CONF_LOCATION_LAT, hass.config.latitude),
        config.get(CONF_LOCATION_LON, hass.config.longitude),
    )
