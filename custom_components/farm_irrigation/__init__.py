"""Farm Irrigation - moisture-driven irrigation scheduling for Home Assistant."""
from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta
from typing import Any

import voluptuous as vol

from homeassistant.components import websocket_api
from homeassistant.config_entries import ConfigEntry
from homeassistant.const import Platform
from homeassistant.core import (
    HomeAssistant,
    ServiceCall,
    ServiceResponse,
    SupportsResponse,
    callback,
)
from homeassistant.exceptions import ServiceValidationError
from homeassistant.helpers import config_validation as cv
from homeassistant.helpers import device_registry as dr
from homeassistant.helpers.event import async_track_time_interval

from .const import (
    ATTR_ACTIVE,
    ATTR_AREA,
    ATTR_CROP_TYPE,
    ATTR_CURRENT_MOISTURE,
    ATTR_DURATION,
    ATTR_FLOW_RATE,
    ATTR_HOURS,
    ATTR_IRRIGATION_METHOD,
    ATTR_IS_ACTIVE,
    ATTR_NAME,
    ATTR_PRIORITY,
    ATTR_SCHEDULE_ID,
    ATTR_SOIL_TYPE,
    ATTR_TARGET_MOISTURE,
    ATTR_ZONE_ID,
    AUTO_SCHEDULE_INTERVAL,
    DOMAIN,
    DUE_CHECK_INTERVAL,
    MOISTURE_TICK_INTERVAL,
    NAME,
    RAIN_DELAY_LIMIT,
    SERVICE_CANCEL_RAIN_DELAY,
    SERVICE_CANCEL_SCHEDULE,
    SERVICE_DELETE_ZONE,
    SERVICE_GENERATE_SCHEDULE,
    SERVICE_SET_RAIN_DELAY,
    SERVICE_SET_ZONE_ACTIVE,
    SERVICE_TRIGGER_MANUAL_WATER,
    SERVICE_UPDATE_SETTINGS,
    SERVICE_UPSERT_ZONE,
)
from .coordinator import FarmIrrigationCoordinator
from .manager import IrrigationManager
from .notify import IrrigationNotifier
from .storage import IrrigationStorage
from .validation import SETTINGS_PATCH_SCHEMA, whole_minutes
from .weather import create_weather_provider

_LOGGER = logging.getLogger(__name__)

PLATFORMS_TO_SETUP: list[Platform] = [
    Platform.SENSOR,
    Platform.SWITCH,
    Platform.BINARY_SENSOR,
    Platform.NUMBER,
    Platform.CALENDAR,
]

ATTR_CONFIG_ENTRY_ID = "config_entry_id"

_ENTRY_TARGET = {vol.Optional(ATTR_CONFIG_ENTRY_ID): cv.string}

UPSERT_ZONE_SCHEMA = vol.Schema(
    {
        **_ENTRY_TARGET,
        vol.Optional(ATTR_ZONE_ID): cv.string,
        vol.Optional(ATTR_NAME): cv.string,
        vol.Optional(ATTR_CROP_TYPE): cv.string,
        vol.Optional(ATTR_AREA): vol.Coerce(float),
        vol.Optional(ATTR_SOIL_TYPE): cv.string,
        vol.Optional(ATTR_IRRIGATION_METHOD): cv.string,
        vol.Optional(ATTR_FLOW_RATE): vol.Coerce(float),
        vol.Optional(ATTR_DURATION): whole_minutes,
        vol.Optional(ATTR_PRIORITY): cv.string,
        vol.Optional(ATTR_CURRENT_MOISTURE): vol.Coerce(float),
        vol.Optional(ATTR_TARGET_MOISTURE): vol.Coerce(float),
        vol.Optional(ATTR_IS_ACTIVE): cv.boolean,
    }
)
ZONE_ID_SCHEMA = vol.Schema({**_ENTRY_TARGET, vol.Required(ATTR_ZONE_ID): cv.string})
SET_ZONE_ACTIVE_SCHEMA = ZONE_ID_SCHEMA.extend({vol.Required(ATTR_ACTIVE): cv.boolean})
MANUAL_WATER_SCHEMA = ZONE_ID_SCHEMA.extend(
    {vol.Optional(ATTR_DURATION): vol.All(whole_minutes, vol.Range(min=1))}
)
CANCEL_SCHEDULE_SCHEMA = vol.Schema(
    {**_ENTRY_TARGET, vol.Required(ATTR_SCHEDULE_ID): cv.string}
)
UPDATE_SETTINGS_SCHEMA = SETTINGS_PATCH_SCHEMA.extend(_ENTRY_TARGET)
RAIN_DELAY_SCHEMA = vol.Schema(
    {
        **_ENTRY_TARGET,
        vol.Optional(ATTR_HOURS): vol.All(
            vol.Coerce(float), vol.Range(min=0, max=RAIN_DELAY_LIMIT)
        ),
    }
)
ENTRY_ONLY_SCHEMA = vol.Schema(_ENTRY_TARGET)


async def async_setup(hass: HomeAssistant, config: dict) -> bool:
    """Set up the Farm Irrigation component."""
    hass.data.setdefault(DOMAIN, {})

    websocket_api.async_register_command(hass, websocket_list_zones)
    websocket_api.async_register_command(hass, websocket_list_schedules)
    websocket_api.async_register_command(hass, websocket_get_settings)

    async_register_services(hass)
    return True


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Set up Farm Irrigation from a config entry."""
    hass.data.setdefault(DOMAIN, {})

    manager = IrrigationManager(
        storage=IrrigationStorage(hass, entry.entry_id),
        notifier=IrrigationNotifier(hass),
    )
    await manager.async_load()

    coordinator = FarmIrrigationCoordinator(
        hass=hass,
        entry=entry,
        manager=manager,
        weather_provider=create_weather_provider(hass, entry),
    )
    coordinator.async_track_zones()

    hass.data[DOMAIN][entry.entry_id] = {
        "manager": manager,
        "coordinator": coordinator,
    }

    device_registry = dr.async_get(hass)
    device_registry.async_get_or_create(
        config_entry_id=entry.entry_id,
        identifiers={(DOMAIN, entry.entry_id)},
        name=entry.title or NAME,
        manufacturer=NAME,
        model="Irrigation Controller",
    )

    # Weather failures are absorbed by the coordinator, so this never fails
    await coordinator.async_config_entry_first_refresh()

    await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS_TO_SETUP)

    entry.async_on_unload(
        manager.async_add_listener(coordinator.async_handle_engine_update)
    )
    _async_start_ticks(hass, entry, manager)
    entry.async_on_unload(entry.add_update_listener(async_update_options))

    _LOGGER.info(
        "Farm Irrigation setup complete with %d zones", len(manager.list_zones())
    )
    return True


@callback
def _async_start_ticks(
    hass: HomeAssistant, entry: ConfigEntry, manager: IrrigationManager
) -> None:
    """Start the periodic engine ticks for an entry."""
    ticks: list[tuple[str, Callable[[], Awaitable[Any]], timedelta]] = [
        ("moisture", manager.async_moisture_tick, MOISTURE_TICK_INTERVAL),
        ("auto-schedule", manager.async_scheduler_tick, AUTO_SCHEDULE_INTERVAL),
        ("due-check", manager.async_due_check_tick, DUE_CHECK_INTERVAL),
    ]

    for name, action, interval in ticks:

        async def _async_tick(
            now: datetime,
            name: str = name,
            action: Callable[[], Awaitable[Any]] = action,
        ) -> None:
            try:
                await action()
            except Exception as err:
                _LOGGER.error("Error in %s tick: %s", name, err)

        entry.async_on_unload(async_track_time_interval(hass, _async_tick, interval))


async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Unload a config entry."""
    unload_ok = await hass.config_entries.async_unload_platforms(entry, PLATFORMS_TO_SETUP)

    if unload_ok:
        data = hass.data[DOMAIN].pop(entry.entry_id)
        await data["manager"].async_shutdown()

    return unload_ok


async def async_remove_entry(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Delete stored state when an entry is removed."""
    await IrrigationStorage(hass, entry.entry_id).async_remove()


async def async_update_options(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Handle options update."""
    await hass.config_entries.async_reload(entry.entry_id)


def _get_manager(hass: HomeAssistant, call: ServiceCall) -> IrrigationManager:
    """Return the manager a service call targets."""
    entries: dict[str, dict[str, Any]] = hass.data.get(DOMAIN, {})
    entry_id = call.data.get(ATTR_CONFIG_ENTRY_ID)

    if entry_id:
        if entry_id not in entries:
            raise ServiceValidationError(f"Unknown config entry: {entry_id}")
        return entries[entry_id]["manager"]

    if len(entries) != 1:
        raise ServiceValidationError(
            f"{len(entries)} farms are configured, specify {ATTR_CONFIG_ENTRY_ID}"
        )
    return next(iter(entries.values()))["manager"]


def _call_data(call: ServiceCall) -> dict[str, Any]:
    return {
        key: value for key, value in call.data.items() if key != ATTR_CONFIG_ENTRY_ID
    }


@callback
def async_register_services(hass: HomeAssistant) -> None:
    """Register services for Farm Irrigation."""

    async def handle_upsert_zone(call: ServiceCall) -> ServiceResponse:
        """Handle upsert_zone service call."""
        zone_id = await _get_manager(hass, call).async_upsert_zone(_call_data(call))
        return {ATTR_ZONE_ID: zone_id}

    async def handle_delete_zone(call: ServiceCall) -> None:
        """Handle delete_zone service call."""
        await _get_manager(hass, call).async_delete_zone(call.data[ATTR_ZONE_ID])

    async def handle_set_zone_active(call: ServiceCall) -> None:
        """Handle set_zone_active service call."""
        await _get_manager(hass, call).async_set_zone_active(
            call.data[ATTR_ZONE_ID], call.data[ATTR_ACTIVE]
        )

    async def handle_trigger_manual_water(call: ServiceCall) -> ServiceResponse:
        """Handle trigger_manual_water service call."""
        entry = await _get_manager(hass, call).async_trigger_manual_water(
            call.data[ATTR_ZONE_ID], call.data.get(ATTR_DURATION)
        )
        return entry.as_dict()

    async def handle_cancel_schedule(call: ServiceCall) -> None:
        """Handle cancel_schedule service call."""
        await _get_manager(hass, call).async_cancel_schedule(call.data[ATTR_SCHEDULE_ID])

    async def handle_update_settings(call: ServiceCall) -> ServiceResponse:
        """Handle update_settings service call."""
        settings = await _get_manager(hass, call).async_update_settings(_call_data(call))
        return settings.as_dict()

    async def handle_generate_schedule(call: ServiceCall) -> ServiceResponse:
        """Handle generate_schedule service call."""
        entries = await _get_manager(hass, call).async_generate_schedule_now()
        return {"schedules": [entry.as_dict() for entry in entries]}

    async def handle_set_rain_delay(call: ServiceCall) -> None:
        """Handle set_rain_delay service call."""
        await _get_manager(hass, call).async_set_rain_delay(call.data.get(ATTR_HOURS))

    async def handle_cancel_rain_delay(call: ServiceCall) -> None:
        """Handle cancel_rain_delay service call."""
        await _get_manager(hass, call).async_cancel_rain_delay()

    hass.services.async_register(
        DOMAIN, SERVICE_UPSERT_ZONE, handle_upsert_zone,
        schema=UPSERT_ZONE_SCHEMA, supports_response=SupportsResponse.OPTIONAL,
    )
    hass.services.async_register(
        DOMAIN, SERVICE_DELETE_ZONE, handle_delete_zone, schema=ZONE_ID_SCHEMA
    )
    hass.services.async_register(
        DOMAIN, SERVICE_SET_ZONE_ACTIVE, handle_set_zone_active,
        schema=SET_ZONE_ACTIVE_SCHEMA,
    )
    hass.services.async_register(
        DOMAIN, SERVICE_TRIGGER_MANUAL_WATER, handle_trigger_manual_water,
        schema=MANUAL_WATER_SCHEMA, supports_response=SupportsResponse.OPTIONAL,
    )
    hass.services.async_register(
        DOMAIN, SERVICE_CANCEL_SCHEDULE, handle_cancel_schedule,
        schema=CANCEL_SCHEDULE_SCHEMA,
    )
    hass.services.async_register(
        DOMAIN, SERVICE_UPDATE_SETTINGS, handle_update_settings,
        schema=UPDATE_SETTINGS_SCHEMA, supports_response=SupportsResponse.OPTIONAL,
    )
    hass.services.async_register(
        DOMAIN, SERVICE_GENERATE_SCHEDULE, handle_generate_schedule,
        schema=ENTRY_ONLY_SCHEMA, supports_response=SupportsResponse.OPTIONAL,
    )
    hass.services.async_register(
        DOMAIN, SERVICE_SET_RAIN_DELAY, handle_set_rain_delay, schema=RAIN_DELAY_SCHEMA
    )
    hass.services.async_register(
        DOMAIN, SERVICE_CANCEL_RAIN_DELAY, handle_cancel_rain_delay,
        schema=ENTRY_ONLY_SCHEMA,
    )


def _managers(hass: HomeAssistant) -> list[tuple[str, IrrigationManager]]:
    return [
        (entry_id, data["manager"])
        for entry_id, data in hass.data.get(DOMAIN, {}).items()
        if isinstance(data, dict) and "manager" in data
    ]


# WebSocket API handlers
@websocket_api.websocket_command(
    {
        vol.Required("type"): f"{DOMAIN}/list_zones",
    }
)
@callback
def websocket_list_zones(
    hass: HomeAssistant,
    connection: websocket_api.ActiveConnection,
    msg: dict[str, Any],
) -> None:
    """Handle list_zones websocket command."""
    result: dict[str, list[dict[str, Any]]] = {"entries": []}

    for entry_id, manager in _managers(hass):
        zones = []
        for zone in manager.list_zones():
            zones.append(
                {
                    **zone.as_dict(),
                    "need": manager.evaluate_zone(zone.zone_id).as_dict(),
                }
            )
        result["entries"].append({"entry_id": entry_id, "zones": zones})

    connection.send_result(msg["id"], result)


@websocket_api.websocket_command(
    {
        vol.Required("type"): f"{DOMAIN}/list_schedules",
    }
)
@callback
def websocket_list_schedules(
    hass: HomeAssistant,
    connection: websocket_api.ActiveConnection,
    msg: dict[str, Any],
) -> None:
    """Handle list_schedules websocket command."""
    result: dict[str, list[dict[str, Any]]] = {"entries": []}

    for entry_id, manager in _managers(hass):
        result["entries"].append(
            {
                "entry_id": entry_id,
                "schedules": [entry.as_dict() for entry in manager.list_schedules()],
                "water_usage": manager.water_usage(),
            }
        )

    connection.send_result(msg["id"], result)


@websocket_api.websocket_command(
    {
        vol.Required("type"): f"{DOMAIN}/get_settings",
    }
)
@callback
def websocket_get_settings(
    hass: HomeAssistant,
    connection: websocket_api.ActiveConnection,
    msg: dict[str, Any],
) -> None:
    """Handle get_settings websocket command."""
    result: dict[str, list[dict[str, Any]]] = {"entries": []}

    for entry_id, manager in _managers(hass):
        weather = manager.weather
        rain_delay_until = manager.rain_delay_until
        result["entries"].append(
            {
                "entry_id": entry_id,
                "settings": manager.get_settings().as_dict(),
                "rain_delay_until": (
                    rain_delay_until.isoformat() if manager.rain_delay_active else None
                ),
                "weather": weather.as_dict() if weather else None,
            }
        )

    connection.send_result(msg["id"], result)
