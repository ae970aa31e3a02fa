"""Tests for automatic schedule generation."""
import random
from datetime import datetime, time, timedelta, timezone
from unittest.mock import Mock, patch

import pytest

from custom_components.farm_irrigation.irrigation.registry import ZoneRegistry
from custom_components.farm_irrigation.models import (
    IrrigationMethod,
    IrrigationNeed,
    Priority,
    ScheduleOrigin,
    ScheduleStatus,
    Settings,
    SoilType,
    Urgency,
)
from custom_components.farm_irrigation.scheduling.auto_scheduler import (
    AutoScheduler,
    create_entry,
    estimate_water_amount,
)
from custom_components.farm_irrigation.scheduling.schedule_book import ScheduleBook

from .helpers import NOW, make_zone

TOMORROW_MORNING = datetime(2026, 6, 2, 6, 0, tzinfo=timezone.utc)


@pytest.fixture
def jitter_rng() -> Mock:
    rng = Mock(spec=random.Random)
    rng.uniform.return_value = 45.0
    return rng


@pytest.fixture
def registry(jitter_rng, clock) -> ZoneRegistry:
    return ZoneRegistry(jitter_rng, clock)


@pytest.fixture
def book() -> ScheduleBook:
    return ScheduleBook()


@pytest.fixture
def scheduler(registry, book, jitter_rng, clock) -> AutoScheduler:
    return AutoScheduler(registry, book, jitter_rng, clock)


def test_high_urgency_runs_in_thirty_minutes(scheduler, settings):
    need = IrrigationNeed(needed=True, urgency=Urgency.HIGH, reason="", duration=30)

    assert scheduler.candidate_time(need, settings, NOW) == NOW + timedelta(minutes=30)


def test_other_urgencies_go_to_tomorrow_morning(scheduler, settings):
    need = IrrigationNeed(needed=True, urgency=Urgency.MEDIUM, reason="", duration=30)

    scheduled = scheduler.candidate_time(need, settings, NOW)

    assert scheduled == TOMORROW_MORNING + timedelta(minutes=45)


def test_morning_jitter_never_passes_evening_end(scheduler):
    settings = Settings(early_morning_start=time(6, 0), evening_end=time(6, 30))
    need = IrrigationNeed(needed=True, urgency=Urgency.LOW, reason="", duration=30)

    assert scheduler.candidate_time(need, settings, NOW) == TOMORROW_MORNING


def test_run_schedules_zones_that_need_water(scheduler, registry, book, settings):
    registry.restore(
        [
            make_zone(zone_id="dry", current_moisture=20),
            make_zone(zone_id="moist", current_moisture=70),
        ]
    )

    entries = scheduler.run(settings)

    assert [entry.zone_id for entry in entries] == ["dry"]
    [entry] = entries
    assert entry.status == ScheduleStatus.PENDING
    assert entry.origin == ScheduleOrigin.AUTO
    assert entry.schedule_id.startswith("auto-")
    assert entry.scheduled_time == TOMORROW_MORNING + timedelta(minutes=45)
    assert entry.duration == 30
    assert entry.water_amount == 300
    assert entry.reason == "Low soil moisture (20%)"
    assert entry.created_at == NOW
    assert book.pending() == [entry]


def test_run_skips_inactive_zones(scheduler, registry, settings):
    registry.restore([make_zone(current_moisture=5, is_active=False)])

    assert scheduler.run(settings) == []


def test_run_does_nothing_when_auto_scheduling_is_off(scheduler, registry, book):
    registry.restore([make_zone(current_moisture=5)])

    assert scheduler.run(Settings(auto_scheduling=False)) == []
    assert len(book) == 0


def test_run_visits_high_priority_first(scheduler, registry, settings):
    registry.restore(
        [
            make_zone(zone_id="low", priority=Priority.LOW, current_moisture=20),
            make_zone(zone_id="high", priority=Priority.HIGH, current_moisture=20),
            make_zone(zone_id="medium", priority=Priority.MEDIUM, current_moisture=20),
        ]
    )

    entries = scheduler.run(settings)

    assert [entry.zone_id for entry in entries] == ["high", "medium", "low"]


def test_second_run_is_blocked_by_pending_entry(scheduler, registry, book, settings):
    registry.restore([make_zone(current_moisture=5)])

    first = scheduler.run(settings)
    second = scheduler.run(settings)

    assert len(first) == 1
    assert second == []
    assert len(book.pending()) == 1


def test_entry_outside_conflict_window_does_not_block(
    scheduler, registry, book, settings
):
    zone = make_zone(current_moisture=5)
    registry.restore([zone])
    book.add(
        create_entry(
            zone, 30, "earlier", NOW - timedelta(hours=1), ScheduleOrigin.AUTO, settings, NOW
        )
    )

    assert len(scheduler.run(settings)) == 1


def test_terminal_entries_do_not_block(scheduler, registry, book, settings):
    zone = make_zone(current_moisture=5)
    registry.restore([zone])
    entry = create_entry(
        zone, 30, "done", NOW + timedelta(minutes=30), ScheduleOrigin.AUTO, settings, NOW
    )
    book.add(entry)
    book.transition(entry.schedule_id, ScheduleStatus.CANCELLED)

    assert len(scheduler.run(settings)) == 1


def test_no_two_pending_entries_within_an_hour(registry, book, clock, settings):
    scheduler = AutoScheduler(registry, book, random.Random(3), clock)
    registry.restore(
        [make_zone(zone_id=f"z{index}", current_moisture=15 + index) for index in range(6)]
    )

    for _ in range(24):
        scheduler.run(settings)
        clock.advance(timedelta(minutes=20))

    pending = book.pending()
    for index, entry in enumerate(pending):
        for other in pending[index + 1:]:
            if entry.zone_id == other.zone_id:
                assert abs(entry.scheduled_time - other.scheduled_time) >= timedelta(hours=1)


def test_failing_zone_does_not_abort_run(scheduler, registry, settings):
    registry.restore(
        [
            make_zone(zone_id="a", current_moisture=20),
            make_zone(zone_id="b", current_moisture=20),
        ]
    )
    need = IrrigationNeed(needed=True, urgency=Urgency.MEDIUM, reason="dry", duration=30)

    with patch(
        "custom_components.farm_irrigation.scheduling.auto_scheduler.evaluate_need",
        side_effect=[RuntimeError("boom"), need],
    ):
        entries = scheduler.run(settings)

    assert [entry.zone_id for entry in entries] == ["b"]


def test_water_amount_estimate():
    zone = make_zone(
        flow_rate=120.0,
        area=2.5,
        soil_type=SoilType.CLAY,
        irrigation_method=IrrigationMethod.SPRINKLER,
    )

    assert estimate_water_amount(zone, 25) == 750
    assert estimate_water_amount(make_zone(flow_rate=3.0, area=0.5), 7) == 1


def test_create_entry_clamps_duration(settings):
    zone = make_zone()

    entry = create_entry(zone, 500, "long", NOW, ScheduleOrigin.MANUAL, settings, NOW)

    assert entry.duration == 60
    assert entry.schedule_id.startswith("manual-")
    assert entry.zone_name == zone.name


def test_hourly_passes_queue_one_morning_run_per_zone(registry, book, clock, settings):
    rng = Mock(spec=random.Random)
    rng.uniform.side_effect = [0.0, 110.0, 55.0]
    scheduler = AutoScheduler(registry, book, rng, clock)
    registry.restore([make_zone(current_moisture=20)])

    for _ in range(3):
        scheduler.run(settings)
        clock.advance(timedelta(hours=1))

    [entry] = book.pending()
    assert entry.scheduled_time == TOMORROW_MORNING


def test_morning_run_does_not_block_urgent_run(scheduler, registry, book, settings):
    zone = make_zone(current_moisture=5)
    registry.restore([zone])
    book.add(
        create_entry(
            zone, 30, "morning", NOW + timedelta(hours=6), ScheduleOrigin.AUTO, settings, NOW
        )
    )

    [entry] = scheduler.run(settings)

    assert entry.scheduled_time == NOW + timedelta(minutes=30)
