"""Notification sink for Farm Irrigation."""
from __future__ import annotations

import logging

from homeassistant.components import persistent_notification
from homeassistant.core import HomeAssistant, callback
from homeassistant.util import slugify

from .const import DOMAIN, EVENT_NOTIFICATION, SEVERITY_INFO

_LOGGER = logging.getLogger(__name__)


class IrrigationNotifier:
    """Publish engine notifications to Home Assistant.

    Each notification becomes a persistent notification in the UI and a
    ``farm_irrigation_notification`` event, so automations can forward it to
    SMS, email or a mobile app.
    """

    def __init__(self, hass: HomeAssistant) -> None:
        """Initialize the notifier."""
        self._hass = hass

    @callback
    def notify(self, title: str, message: str, severity: str = SEVERITY_INFO) -> None:
        """Send a notification."""
        _LOGGER.debug("Notification [%s] %s: %s", severity, title, message)
        persistent_notification.async_create(
            self._hass,
            message,
            title=title,
            notification_id=f"{DOMAIN}_{slugify(title)}",
        )
        self._hass.bus.async_fire(
            EVENT_NOTIFICATION,
            {"title": title, "message": message, "severity": severity},
        )
