"""Weather provider interface for Farm Irrigation."""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

from ..exceptions import ExternalUnavailableError
from ..models import ForecastDay, WeatherSnapshot

_LOGGER = logging.getLogger(__name__)


class WeatherProvider(ABC):
    """Source of current conditions and a daily forecast.

    Current conditions are returned as a dict with ``temperature`` (°C),
    ``humidity`` (%), ``wind_speed`` (km/h) and ``condition`` keys; missing
    readings are None.
    """

    name: str = "weather"

    @abstractmethod
    async def async_get_current(self) -> dict[str, Any]:
        """Return current conditions.

        Raises:
            ExternalUnavailableError: Provider unreachable or returned nothing
        """

    @abstractmethod
    async def async_get_forecast(self) -> list[ForecastDay]:
        """Return forecast days in ascending date order.

        Raises:
            ExternalUnavailableError: Provider unreachable or returned nothing
        """

    async def async_fetch_snapshot(self, now: datetime) -> WeatherSnapshot:
        """Fetch both reads and combine them into one snapshot.

        Either read may fail on its own; the other is still used. Only when
        both fail is the snapshot unavailable.
        """
        current: dict[str, Any] | None = None
        forecast: list[ForecastDay] = []

        try:
            current = await self.async_get_current()
        except ExternalUnavailableError as err:
            _LOGGER.warning("Current weather unavailable from %s: %s", self.name, err)

        try:
            forecast = await self.async_get_forecast()
        except ExternalUnavailableError as err:
            _LOGGER.warning("Forecast unavailable from %s: %s", self.name, err)
            if current is None:
                raise

        current = current or {}
        return WeatherSnapshot(
            temperature=current.get("temperature"),
            humidity=current.get("humidity"),
            wind_speed=current.get("wind_speed"),
            condition=current.get("condition") or "",
            forecast=tuple(sorted(forecast, key=lambda day: day.date)),
            fetched_at=now,
        )

