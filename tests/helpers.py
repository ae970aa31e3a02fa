"""Helpers shared by Farm Irrigation tests."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

from custom_components.farm_irrigation.models import (
    IrrigationMethod,
    Priority,
    SoilType,
    Zone,
)

NOW = datetime(2026, 6, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Controllable replacement for dt_util.utcnow."""

    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now += delta


def make_zone(**overrides) -> Zone:
    """Build a zone with neutral factors (wheat, loamy, drip)."""
    data = {
        "zone_id": "zone-1",
        "name": "North field",
        "crop_type": "wheat",
        "area": 1.0,
        "soil_type": SoilType.LOAMY,
        "irrigation_method": IrrigationMethod.DRIP,
        "flow_rate": 100.0,
        "duration": 30,
        "priority": Priority.MEDIUM,
        "current_moisture": 60.0,
        "target_moisture": 60.0,
        "is_active": True,
        "last_watered": NOW - timedelta(hours=24),
    }
    data.update(overrides)
    return Zone(**data)


