"""Irrigation need evaluation for Farm Irrigation.

Decides whether a zone needs water, how urgently and for how long. The
decision is made in a fixed order:

1. Soil moisture deficit against the configured threshold
2. Current weather (heat, dry air, wind)
3. Rain in the short-term forecast
4. Crop, soil and irrigation method multipliers
5. Clamp to the daily watering limit

Everything here is a pure function of its inputs.
"""
from __future__ import annotations

import math
from collections.abc import Sequence

from ..const import (
    CROP_WATER_NEEDS,
    DEFICIT_HIGH,
    DEFICIT_MEDIUM,
    EXTREME_TEMPERATURE,
    FORECAST_DAYS,
    FORECAST_RAIN_SIGNAL,
    LOW_HUMIDITY,
    LOW_URGENCY_MIN_DURATION,
    METHOD_EFFICIENCY,
    MIN_DURATION,
    RAIN_EXPECTED_MIN_DURATION,
    REASON_RAIN_EXPECTED,
    REASON_ROUTINE,
    SOIL_RETENTION,
    STRONG_WIND,
)
from ..models import (
    URGENCY_RANK,
    ForecastDay,
    IrrigationNeed,
    Settings,
    Urgency,
    WeatherSnapshot,
    Zone,
)


def round_half_up(value: float) -> int:
    """Round half up to a whole number."""
    return int(math.floor(value + 0.5))


def clamp_duration(duration: float, settings: Settings) -> int:
    """Keep a duration within [MIN_DURATION, max_daily_watering]."""
    return max(MIN_DURATION, min(round_half_up(duration), settings.max_daily_watering))


def _at_least(urgency: Urgency, floor: Urgency) -> Urgency:
    return urgency if URGENCY_RANK[urgency] >= URGENCY_RANK[floor] else floor


def rain_expected(forecast: Sequence[ForecastDay] | None) -> bool:
    """Return True if any of the next forecast days signals rain."""
    if not forecast:
        return False
    return any(
        day.precipitation > FORECAST_RAIN_SIGNAL for day in list(forecast)[:FORECAST_DAYS]
    )


def evaluate_need(
    zone: Zone,
    settings: Settings,
    weather: WeatherSnapshot | None = None,
    forecast: Sequence[ForecastDay] | None = None,
) -> IrrigationNeed:
    """Evaluate whether a zone needs irrigation.

    Args:
        zone: Zone to evaluate
        settings: Settings snapshot
        weather: Current conditions, or None when unavailable
        forecast: Forecast days in ascending order, or None

    Returns:
        IrrigationNeed with the decision, urgency, reason and duration
    """
    needed = False
    urgency = Urgency.LOW
    reason = ""
    duration: float = zone.duration
    max_daily = settings.max_daily_watering
    moisture = zone.current_moisture

    if moisture < settings.moisture_threshold:
        needed = True
        deficit = settings.moisture_threshold - moisture
        if deficit > DEFICIT_HIGH:
            urgency = Urgency.HIGH
            reason = f"Critical soil moisture ({moisture:g}%)"
            duration = min(zone.duration * 1.5, max_daily)
        elif deficit >= DEFICIT_MEDIUM:
            urgency = Urgency.MEDIUM
            reason = f"Low soil moisture ({moisture:g}%)"
            duration = zone.duration
        else:
            urgency = Urgency.LOW
            reason = f"Soil moisture below target ({moisture:g}%)"
            duration = max(zone.duration * 0.7, LOW_URGENCY_MIN_DURATION)

    if settings.weather_integration and weather is not None:
        temperature = weather.temperature
        if temperature is not None and temperature > EXTREME_TEMPERATURE:
            if not needed:
                needed = True
                urgency = Urgency.MEDIUM
                reason = f"High temperature ({temperature:g}°C)"
            else:
                urgency = _at_least(urgency, Urgency.MEDIUM)
                duration = min(duration * 1.2, max_daily)
                reason += " + high temperature"

        humidity = weather.humidity
        if humidity is not None and humidity < LOW_HUMIDITY:
            if not needed:
                needed = True
                urgency = Urgency.LOW
                reason = f"Low humidity ({humidity:g}%)"
            else:
                duration = min(duration * 1.1, max_daily)
                reason += " + low humidity"

        wind_speed = weather.wind_speed
        if needed and wind_speed is not None and wind_speed > STRONG_WIND:
            duration = min(duration * 1.1, max_daily)
            reason += " + strong wind"

    # High urgency is never called off by a forecast
    if settings.weather_integration and urgency != Urgency.HIGH and rain_expected(forecast):
        if needed:
            duration = max(duration * 0.7, RAIN_EXPECTED_MIN_DURATION)
            reason += " (rain expected)"
        else:
            needed = False
            reason = REASON_RAIN_EXPECTED

    duration = round_half_up(duration * CROP_WATER_NEEDS.get(zone.crop_type.lower(), 1.0))
    duration = round_half_up(duration * SOIL_RETENTION.get(str(zone.soil_type), 1.0))
    duration = round_half_up(
        duration * METHOD_EFFICIENCY.get(str(zone.irrigation_method), 1.0)
    )

    return IrrigationNeed(
        needed=needed,
        urgency=urgency,
        reason=reason or REASON_ROUTINE,
        duration=clamp_duration(duration, settings),
    )
