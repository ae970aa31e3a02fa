"""Config flow for Farm Irrigation integration."""
from __future__ import annotations

import logging
from typing import Any

import voluptuous as vol

from homeassistant import config_entries
from homeassistant.const import CONF_NAME
from homeassistant.core import callback
from homeassistant.data_entry_flow import FlowResult
from homeassistant.helpers import config_validation as cv
from homeassistant.helpers import selector

from .const import (
    CONF_LOCATION_LAT,
    CONF_LOCATION_LON,
    CONF_WEATHER_ENTITY,
    DOMAIN,
    NAME,
)

_LOGGER = logging.getLogger(__name__)

WEATHER_SELECTOR = selector.EntitySelector(
    selector.EntitySelectorConfig(domain="weather")
)


def _location_schema(latitude: float, longitude: float) -> dict[Any, Any]:
    return {
        vol.Optional(CONF_LOCATION_LAT, default=latitude): cv.latitude,
        vol.Optional(CONF_LOCATION_LON, default=longitude): cv.longitude,
    }


class FarmIrrigationConfigFlow(config_entries.ConfigFlow, domain=DOMAIN):
    """Handle a config flow for Farm Irrigation."""

    VERSION = 1

    async def async_step_user(
        self, user_input: dict[str, Any] | None = None
    ) -> FlowResult:
        """Name the farm and pick where weather comes from."""
        errors: dict[str, str] = {}

        if user_input is not None:
            weather_entity = user_input.get(CONF_WEATHER_ENTITY)
            if weather_entity and self.hass.states.get(weather_entity) is None:
                errors[CONF_WEATHER_ENTITY] = "entity_not_found"
            else:
                await self.async_set_unique_id(
                    f"{DOMAIN}_{user_input[CONF_NAME].strip().lower()}"
                )
                self._abort_if_unique_id_configured()
                _LOGGER.info("Creating farm irrigation entry %s", user_input[CONF_NAME])
                return self.async_create_entry(
                    title=user_input[CONF_NAME], data=user_input
                )

        data_schema = vol.Schema(
            {
                vol.Required(CONF_NAME, default=NAME): cv.string,
                vol.Optional(CONF_WEATHER_ENTITY): WEATHER_SELECTOR,
                **_location_schema(
                    self.hass.config.latitude, self.hass.config.longitude
                ),
            }
        )

        return self.async_show_form(
            step_id="user", data_schema=data_schema, errors=errors
        )

    @staticmethod
    @callback
    def async_get_options_flow(
        config_entry: config_entries.ConfigEntry,
    ) -> FarmIrrigationOptionsFlow:
        """Get the options flow for this handler."""
        return FarmIrrigationOptionsFlow()


class FarmIrrigationOptionsFlow(config_entries.OptionsFlow):
    """Handle options flow for Farm Irrigation."""

    async def async_step_init(
        self, user_input: dict[str, Any] | None = None
    ) -> FlowResult:
        """Change the weather source."""
        if user_input is not None:
            return self.async_create_entry(title="", data=user_input)

        data = {**dict(self.config_entry.data), **dict(self.config_entry.options)}
        weather_entity = data.get(CONF_WEATHER_ENTITY)

        data_schema = vol.Schema(
            {
                vol.Optional(
                    CONF_WEATHER_ENTITY,
                    description={"suggested_value": weather_entity},
                ): WEATHER_SELECTOR,
                **_location_schema(
                    data.get(CONF_LOCATION_LAT, self.hass.config.latitude),
                    data.get(CONF_LOCATION_LON, self.hass.config.longitude),
                ),
            }
        )

        return self.async_show_form(step_id="init", data_schema=data_schema)
