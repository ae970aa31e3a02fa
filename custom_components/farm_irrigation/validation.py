"""Voluptuous schemas for zone specs and settings patches."""
from __future__ import annotations

from typing import Any

import voluptuous as vol
from voluptuous.humanize import humanize_error

from homeassistant.helpers import config_validation as cv

from .const import (
    ATTR_AREA,
    ATTR_CROP_TYPE,
    ATTR_CURRENT_MOISTURE,
    ATTR_DURATION,
    ATTR_FLOW_RATE,
    ATTR_IRRIGATION_METHOD,
    ATTR_IS_ACTIVE,
    ATTR_LAST_WATERED,
    ATTR_NAME,
    ATTR_PRIORITY,
    ATTR_SOIL_TYPE,
    ATTR_TARGET_MOISTURE,
    ATTR_ZONE_ID,
    DEFAULT_AREA,
    DEFAULT_DURATION,
    DEFAULT_FLOW_RATE,
    DEFAULT_IRRIGATION_METHOD,
    DEFAULT_PRIORITY,
    DEFAULT_SOIL_TYPE,
    DEFAULT_TARGET_MOISTURE,
    MAX_DAILY_WATERING_LIMIT,
    MIN_DURATION,
    MOISTURE_THRESHOLD_MAX,
    MOISTURE_THRESHOLD_MIN,
    RAIN_DELAY_LIMIT,
    TARGET_MOISTURE_MAX,
    TARGET_MOISTURE_MIN,
)
from .exceptions import ValidationError
from .models import IrrigationMethod, Priority, Settings, SoilType

_POSITIVE_FLOAT = vol.All(vol.Coerce(float), vol.Range(min=0, min_included=False))
_NON_EMPTY = vol.All(cv.string, vol.Length(min=1))


def whole_minutes(value: Any) -> int:
    """Accept a whole number of minutes, rejecting fractions."""
    minutes = vol.Coerce(float)(value)
    if not minutes.is_integer():
        raise vol.Invalid(f"expected a whole number of minutes, got {value}")
    return int(minutes)


ZONE_SCHEMA = vol.Schema(
    {
        vol.Optional(ATTR_ZONE_ID): cv.string,
        vol.Required(ATTR_NAME): _NON_EMPTY,
        vol.Required(ATTR_CROP_TYPE): _NON_EMPTY,
        vol.Optional(ATTR_AREA, default=DEFAULT_AREA): _POSITIVE_FLOAT,
        vol.Optional(ATTR_SOIL_TYPE, default=DEFAULT_SOIL_TYPE): vol.Coerce(SoilType),
        vol.Optional(
            ATTR_IRRIGATION_METHOD, default=DEFAULT_IRRIGATION_METHOD
        ): vol.Coerce(IrrigationMethod),
        vol.Optional(ATTR_FLOW_RATE, default=DEFAULT_FLOW_RATE): _POSITIVE_FLOAT,
        vol.Optional(ATTR_DURATION, default=DEFAULT_DURATION): vol.All(
            whole_minutes, vol.Range(min=1)
        ),
        vol.Optional(ATTR_PRIORITY, default=DEFAULT_PRIORITY): vol.Coerce(Priority),
        vol.Optional(ATTR_CURRENT_MOISTURE): vol.All(
            vol.Coerce(float), vol.Range(min=0, max=100)
        ),
        vol.Optional(ATTR_TARGET_MOISTURE, default=DEFAULT_TARGET_MOISTURE): vol.All(
            vol.Coerce(float), vol.Range(min=TARGET_MOISTURE_MIN, max=TARGET_MOISTURE_MAX)
        ),
        vol.Optional(ATTR_IS_ACTIVE, default=True): cv.boolean,
        vol.Optional(ATTR_LAST_WATERED): cv.datetime,
    }
)

SETTINGS_PATCH_SCHEMA = vol.Schema(
    {
        vol.Optional("auto_scheduling"): cv.boolean,
        vol.Optional("weather_integration"): cv.boolean,
        vol.Optional("moisture_threshold"): vol.All(
            vol.Coerce(float),
            vol.Range(min=MOISTURE_THRESHOLD_MIN, max=MOISTURE_THRESHOLD_MAX),
        ),
        vol.Optional("rain_delay"): vol.All(
            vol.Coerce(float), vol.Range(min=0, max=RAIN_DELAY_LIMIT)
        ),
        vol.Optional("max_daily_watering"): vol.All(
            whole_minutes, vol.Range(min=MIN_DURATION, max=MAX_DAILY_WATERING_LIMIT)
        ),
        vol.Optional("early_morning_start"): cv.time,
        vol.Optional("evening_end"): cv.time,
        vol.Optional("notifications"): cv.boolean,
    }
)


def validate_zone_spec(spec: dict[str, Any]) -> dict[str, Any]:
    """Validate a full zone spec and return it with defaults applied."""
    try:
        return ZONE_SCHEMA(dict(spec))
    except vol.Invalid as err:
        raise ValidationError(f"Invalid zone: {humanize_error(spec, err)}") from err


def apply_settings_patch(settings: Settings, patch: dict[str, Any]) -> Settings:
    """Validate a settings patch and return the resulting snapshot."""
    try:
        changes = SETTINGS_PATCH_SCHEMA(dict(patch))
    except vol.Invalid as err:
        raise ValidationError(f"Invalid settings: {humanize_error(patch, err)}") from err

    merged = {**settings.as_dict(), **changes}
    updated = Settings.from_dict(merged)
    if updated.early_morning_start >= updated.evening_end:
        raise ValidationError("Morning start must be earlier than evening end")
    return updated
