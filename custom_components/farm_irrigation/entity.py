"""Base entities for Farm Irrigation."""
from __future__ import annotations

from collections.abc import Callable, Iterable

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import callback
from homeassistant.helpers.entity import DeviceInfo, Entity
from homeassistant.helpers.entity_platform import AddEntitiesCallback
from homeassistant.helpers.update_coordinator import CoordinatorEntity

from .const import DOMAIN, NAME
from .coordinator import FarmIrrigationCoordinator
from .manager import IrrigationManager
from .models import Zone


class FarmIrrigationEntity(CoordinatorEntity[FarmIrrigationCoordinator]):
    """Entity attached to the irrigation controller device."""

    _attr_has_entity_name = True

    def __init__(
        self,
        coordinator: FarmIrrigationCoordinator,
        entry: ConfigEntry,
        key: str,
        name: str,
    ) -> None:
        """Initialize the entity."""
        super().__init__(coordinator)
        self._entry = entry
        self._attr_name = name
        self._attr_unique_id = f"{entry.entry_id}_{key}"

    @property
    def manager(self) -> IrrigationManager:
        """Return the irrigation engine."""
        return self.coordinator.manager

    @property
    def device_info(self) -> DeviceInfo:
        """Return device info."""
        return DeviceInfo(
            identifiers={(DOMAIN, self._entry.entry_id)},
            name=self._entry.title or NAME,
            manufacturer=NAME,
            model="Irrigation Controller",
        )


class ZoneEntity(CoordinatorEntity[FarmIrrigationCoordinator]):
    """Entity attached to one irrigation zone."""

    _attr_has_entity_name = True

    def __init__(
        self,
        coordinator: FarmIrrigationCoordinator,
        entry: ConfigEntry,
        zone: Zone,
        key: str,
        name: str,
    ) -> None:
        """Initialize the entity."""
        super().__init__(coordinator)
        self._entry = entry
        self._zone_id = zone.zone_id
        self._zone_name = zone.name
        self._attr_name = name
        self._attr_unique_id = f"{entry.entry_id}_{zone.zone_id}_{key}"

    @property
    def manager(self) -> IrrigationManager:
        """Return the irrigation engine."""
        return self.coordinator.manager

    @property
    def zone(self) -> Zone | None:
        """Return the zone, or None once it has been removed."""
        return self.manager.registry.find(self._zone_id)

    @property
    def available(self) -> bool:
        """Return True while the zone exists."""
        return super().available and self.zone is not None

    @property
    def device_info(self) -> DeviceInfo:
        """Return device info."""
        zone = self.zone
        return DeviceInfo(
            identifiers={(DOMAIN, self._zone_id)},
            name=zone.name if zone else self._zone_name,
            manufacturer=NAME,
            model=f"{zone.crop_type} zone" if zone else "Irrigation zone",
            via_device=(DOMAIN, self._entry.entry_id),
        )


@callback
def async_add_zone_entities(
    coordinator: FarmIrrigationCoordinator,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
    factory: Callable[[Zone], Iterable[Entity]],
) -> None:
    """Add entities for every zone, now and whenever a zone is created."""
    known: set[str] = set()

    @callback
    def _add_new_zones() -> None:
        zones = coordinator.manager.list_zones()
        known.intersection_update(zone.zone_id for zone in zones)
        new_entities: list[Entity] = []
        for zone in zones:
            if zone.zone_id in known:
                continue
            known.add(zone.zone_id)
            new_entities.extend(factory(zone))
        if new_entities:
            async_add_entities(new_entities)

    _add_new_zones()
    entry.async_on_unload(coordinator.async_add_listener(_add_new_zones))
