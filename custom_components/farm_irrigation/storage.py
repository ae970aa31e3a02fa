"""Durable state for Farm Irrigation."""
from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from homeassistant.core import HomeAssistant, callback
from homeassistant.helpers.storage import Store

from .const import SAVE_DELAY, STORAGE_KEY, STORAGE_VERSION

_LOGGER = logging.getLogger(__name__)


class IrrigationStorage:
    """Persist zones, schedules, settings and the rain delay.

    The payload is a plain dict produced by the manager; this class only
    knows where it lives and how often it is written.
    """

    def __init__(self, hass: HomeAssistant, entry_id: str) -> None:
        """Initialize the store for one config entry."""
        self._store: Store[dict[str, Any]] = Store(
            hass, STORAGE_VERSION, f"{STORAGE_KEY}.{entry_id}"
        )

    async def async_load(self) -> dict[str, Any] | None:
        """Load the stored payload, or None on first start."""
        return await self._store.async_load()

    @callback
    def async_schedule_save(self, data_func: Callable[[], dict[str, Any]]) -> None:
        """Write the payload after a short delay, coalescing bursts."""
        self._store.async_delay_save(data_func, SAVE_DELAY)

    async def async_save(self, data: dict[str, Any]) -> None:
        """Write the payload now."""
        await self._store.async_save(data)

    async def async_remove(self) -> None:
        """Delete the stored payload."""
        await self._store.async_remove()
