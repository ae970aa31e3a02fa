"""Shared fixtures for Farm Irrigation tests."""
from __future__ import annotations

import random

import pytest

from custom_components.farm_irrigation.models import Settings

from .helpers import FakeClock


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def rng() -> random.Random:
    return random.Random(42)


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def zone_spec() -> dict:
    return {
        "name": "North field",
        "crop_type": "Wheat",
        "area": 2.5,
        "soil_type": "clay",
        "irrigation_method": "sprinkler",
        "flow_rate": 120.0,
        "duration": 25,
        "priority": "high",
        "target_moisture": 65,
    }
