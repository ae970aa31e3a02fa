"""Weather from a Home Assistant weather entity."""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Mapping
from typing import Any

from async_timeout import timeout as async_timeout
from homeassistant.const import (
    STATE_UNAVAILABLE,
    STATE_UNKNOWN,
    UnitOfSpeed,
    UnitOfTemperature,
)
from homeassistant.core import HomeAssistant
from homeassistant.exceptions import HomeAssistantError
from homeassistant.util import dt as dt_util
from homeassistant.util.unit_conversion import SpeedConverter, TemperatureConverter

from ..const import WEATHER_TIMEOUT
from ..exceptions import ExternalUnavailableError
from ..models import ForecastDay
from .provider import WeatherProvider

_LOGGER = logging.getLogger(__name__)

WEATHER_DOMAIN = "weather"
SERVICE_GET_FORECASTS = "get_forecasts"


def _to_float(value: Any) -> float | None:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _celsius(value: Any, unit: str | None) -> float | None:
    temperature = _to_float(value)
    if temperature is None or not unit or unit == UnitOfTemperature.CELSIUS:
        return temperature
    return TemperatureConverter.convert(temperature, unit, UnitOfTemperature.CELSIUS)


def _kmh(value: Any, unit: str | None) -> float | None:
    speed = _to_float(value)
    if speed is None or not unit or unit == UnitOfSpeed.KILOMETERS_PER_HOUR:
        return speed
    return SpeedConverter.convert(speed, unit, UnitOfSpeed.KILOMETERS_PER_HOUR)


def current_from_state(condition: str, attributes: Mapping[str, Any]) -> dict[str, Any]:
    """Convert a weather entity state to current conditions in °C and km/h."""
    return {
        "temperature": _celsius(
            attributes.get("temperature"), attributes.get("temperature_unit")
        ),
        "humidity": _to_float(attributes.get("humidity")),
        "wind_speed": _kmh(
            attributes.get("wind_speed"), attributes.get("wind_speed_unit")
        ),
        "condition": condition,
    }


def forecast_from_entries(
    entries: Iterable[Mapping[str, Any]],
    temperature_unit: str | None = None,
) -> list[ForecastDay]:
    """Convert ``weather.get_forecasts`` daily entries to forecast days.

    The rain signal is the precipitation probability; entries without one
    count as dry. Entries without a parsable date are skipped.
    """
    days: list[ForecastDay] = []
    for entry in entries:
        moment = dt_util.parse_datetime(str(entry.get("datetime", "")))
        if moment is None:
            _LOGGER.debug("Skipping forecast entry without a date: %s", entry)
            continue
        days.append(
            ForecastDay(
                date=dt_util.as_local(moment).date(),
                temp_min=_celsius(entry.get("templow"), temperature_unit),
                temp_max=_celsius(entry.get("temperature"), temperature_unit),
                precipitation=_to_float(entry.get("precipitation_probability")) or 0.0,
            )
        )
    return sorted(days, key=lambda day: day.date)


class EntityWeatherProvider(WeatherProvider):
    """Read weather from an entity of the ``weather`` domain."""

    def __init__(self, hass: HomeAssistant, entity_id: str) -> None:
        """Initialize the provider."""
        self._hass = hass
        self._entity_id = entity_id
        self.name = entity_id

    def _state(self):
        state = self._hass.states.get(self._entity_id)
        if state is None or state.state in (STATE_UNKNOWN, STATE_UNAVAILABLE):
            raise ExternalUnavailableError(
                f"Weather entity {self._entity_id} is not available"
            )
        return state

    async def async_get_current(self) -> dict[str, Any]:
        """Return current conditions from the entity state."""
        state = self._state()
        return current_from_state(state.state, state.attributes)

    async def async_get_forecast(self) -> list[ForecastDay]:
        """Return the daily forecast through ``weather.get_forecasts``."""
        state = self._state()
        try:
            async with async_timeout(WEATHER_TIMEOUT):
                response = await self._hass.services.async_call(
                    WEATHER_DOMAIN,
                    SERVICE_GET_FORECASTS,
                    {"entity_id": self._entity_id, "type": "daily"},
                    blocking=True,
                    return_response=True,
                )
        except asyncio.TimeoutError as err:
            raise ExternalUnavailableError(
                f"Forecast request timed out: {self._entity_id}"
            ) from err
        except HomeAssistantError as err:
            raise ExternalUnavailableError(f"Forecast request failed: {err}") from err

        entries = (response or {}).get(self._entity_id, {}).get("forecast") or []
        return forecast_from_entries(entries, state.attributes.get("temperature_unit"))
