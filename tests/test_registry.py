"""Tests for the zone registry and zone validation."""
from dataclasses import replace
from datetime import timedelta

import pytest

from custom_components.farm_irrigation.exceptions import ValidationError, ZoneNotFoundError
from custom_components.farm_irrigation.irrigation.registry import ZoneRegistry
from custom_components.farm_irrigation.models import (
    IrrigationMethod,
    Priority,
    SoilType,
    Zone,
)

from .helpers import make_zone


@pytest.fixture
def registry(rng, clock) -> ZoneRegistry:
    return ZoneRegistry(rng, clock)


def test_add_then_list_preserves_supplied_fields(registry, zone_spec):
    zone_id = registry.add({**zone_spec, "current_moisture": 42.5})

    [zone] = registry.list_zones()
    assert zone.zone_id == zone_id
    assert zone.name == "North field"
    assert zone.crop_type == "Wheat"
    assert zone.area == 2.5
    assert zone.soil_type == SoilType.CLAY
    assert zone.irrigation_method == IrrigationMethod.SPRINKLER
    assert zone.flow_rate == 120.0
    assert zone.duration == 25
    assert zone.priority == Priority.HIGH
    assert zone.current_moisture == 42.5
    assert zone.target_moisture == 65
    assert zone.is_active is True


def test_add_assigns_initial_moisture_and_last_watered(registry, clock, zone_spec):
    zone = registry.get(registry.add(zone_spec))

    assert 50 <= zone.current_moisture <= 70
    assert zone.last_watered == clock() - timedelta(hours=24)


def test_add_applies_defaults(registry):
    zone = registry.get(registry.add({"name": "Plot", "crop_type": "rice"}))

    assert zone.area == 1.0
    assert zone.soil_type == SoilType.LOAMY
    assert zone.irrigation_method == IrrigationMethod.DRIP
    assert zone.duration == 30
    assert zone.priority == Priority.MEDIUM
    assert zone.target_moisture == 60


@pytest.mark.parametrize(
    "patch",
    [
        {"area": 0},
        {"area": -1},
        {"flow_rate": 0},
        {"duration": 0},
        {"target_moisture": 29},
        {"target_moisture": 91},
        {"soil_type": "gravel"},
        {"irrigation_method": "drone"},
        {"priority": "urgent"},
        {"name": ""},
    ],
)
def test_add_rejects_invalid_spec(registry, zone_spec, patch):
    with pytest.raises(ValidationError):
        registry.add({**zone_spec, **patch})

    assert len(registry) == 0


def test_add_requires_name(registry, zone_spec):
    del zone_spec["name"]

    with pytest.raises(ValidationError):
        registry.add(zone_spec)


def test_add_rejects_duplicate_id(registry, zone_spec):
    zone_id = registry.add(zone_spec)

    with pytest.raises(ValidationError):
        registry.add({**zone_spec, "zone_id": zone_id})


def test_update_merges_patch(registry, zone_spec):
    zone_id = registry.add(zone_spec)
    before = registry.get(zone_id)

    updated = registry.update(zone_id, {"duration": 40, "is_active": False})

    assert updated.duration == 40
    assert updated.is_active is False
    assert updated.name == before.name
    assert updated.current_moisture == before.current_moisture
    assert updated.last_watered == before.last_watered
    assert registry.get(zone_id) == updated


def test_update_validates_and_keeps_old_zone(registry, zone_spec):
    zone_id = registry.add(zone_spec)
    before = registry.get(zone_id)

    with pytest.raises(ValidationError):
        registry.update(zone_id, {"flow_rate": -5})

    assert registry.get(zone_id) == before


def test_unknown_zone_raises_not_found(registry):
    with pytest.raises(ZoneNotFoundError):
        registry.get("missing")
    with pytest.raises(ZoneNotFoundError):
        registry.update("missing", {"duration": 10})
    with pytest.raises(ZoneNotFoundError):
        registry.remove("missing")
    assert registry.find("missing") is None


def test_remove(registry, zone_spec):
    zone_id = registry.add(zone_spec)

    removed = registry.remove(zone_id)

    assert removed.zone_id == zone_id
    assert zone_id not in registry
    assert registry.list_zones() == []


def test_apply_does_not_resurrect_removed_zones(registry):
    registry.restore([make_zone(zone_id="a"), make_zone(zone_id="b")])
    updates = {
        zone.zone_id: replace(zone, current_moisture=33.0)
        for zone in registry.list_zones()
    }
    registry.remove("b")

    registry.apply(updates)

    assert [zone.zone_id for zone in registry.list_zones()] == ["a"]
    assert registry.get("a").current_moisture == 33.0


def test_list_is_a_stable_snapshot(registry):
    registry.restore([make_zone(zone_id="a")])
    snapshot = registry.list_zones()

    registry.apply({"a": replace(snapshot[0], current_moisture=12.0)})

    assert snapshot[0].current_moisture == 60.0


def test_zone_dict_round_trip():
    zone = make_zone(current_moisture=47.0)

    assert Zone.from_dict(zone.as_dict()) == zone


@pytest.mark.parametrize("duration", [12.5, "7.25", "soon"])
def test_fractional_duration_is_rejected(registry, zone_spec, duration):
    with pytest.raises(ValidationError):
        registry.add({**zone_spec, "duration": duration})

    assert len(registry) == 0


def test_whole_duration_round_trips(registry, zone_spec):
    zone_id = registry.add({**zone_spec, "duration": "40"})
    registry.update(zone_id, {"duration": 12.0})

    [zone] = registry.list_zones()
    assert zone.duration == 12
    assert isinstance(zone.duration, int)
