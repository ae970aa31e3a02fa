"""Tests for the irrigation manager."""
import asyncio
import random
from datetime import timedelta
from unittest.mock import AsyncMock, Mock

import pytest

from custom_components.farm_irrigation.const import SEVERITY_SUCCESS, SEVERITY_WARNING
from custom_components.farm_irrigation.exceptions import (
    InvalidTransitionError,
    ValidationError,
    ZoneNotFoundError,
)
from custom_components.farm_irrigation.manager import IrrigationManager
from custom_components.farm_irrigation.models import (
    ScheduleOrigin,
    ScheduleStatus,
    WeatherSnapshot,
)
from custom_components.farm_irrigation.scheduling.auto_scheduler import create_entry

from .helpers import NOW, make_zone


@pytest.fixture
def storage() -> Mock:
    storage = Mock()
    storage.async_load = AsyncMock(return_value=None)
    storage.async_save = AsyncMock()
    return storage


@pytest.fixture
def notifier() -> Mock:
    return Mock()


@pytest.fixture
def manager(storage, notifier, rng, clock) -> IrrigationManager:
    return IrrigationManager(storage, notifier, rng=rng, clock=clock, active_delay=0)


async def _finish_runs(manager: IrrigationManager) -> None:
    await asyncio.gather(*manager.running_tasks)


def _notified_titles(notifier: Mock) -> list[str]:
    return [call.args[0] for call in notifier.notify.call_args_list]


@pytest.mark.asyncio
async def test_upsert_adds_then_updates(manager, notifier, zone_spec):
    zone_id = await manager.async_upsert_zone(zone_spec)

    assert [zone.zone_id for zone in manager.list_zones()] == [zone_id]
    notifier.notify.assert_called_once()
    assert _notified_titles(notifier) == ["Zone added"]

    same_id = await manager.async_upsert_zone({"zone_id": zone_id, "duration": 45})

    assert same_id == zone_id
    assert manager.get_zone(zone_id).duration == 45
    assert manager.get_zone(zone_id).name == zone_spec["name"]
    assert len(manager.list_zones()) == 1


@pytest.mark.asyncio
async def test_upsert_rejects_invalid_spec(manager, zone_spec):
    with pytest.raises(ValidationError):
        await manager.async_upsert_zone({**zone_spec, "area": -2})

    assert manager.list_zones() == []


@pytest.mark.asyncio
async def test_changes_schedule_save_and_call_listeners(manager, storage, zone_spec):
    listener = Mock()
    remove = manager.async_add_listener(listener)

    await manager.async_upsert_zone(zone_spec)

    listener.assert_called_once()
    storage.async_schedule_save.assert_called_once()

    remove()
    await manager.async_update_settings({"notifications": False})
    listener.assert_called_once()


@pytest.mark.asyncio
async def test_failing_listener_does_not_break_mutation(manager, zone_spec):
    manager.async_add_listener(Mock(side_effect=RuntimeError("boom")))

    zone_id = await manager.async_upsert_zone(zone_spec)

    assert manager.get_zone(zone_id)


@pytest.mark.asyncio
async def test_manual_water_runs_to_completion(manager, notifier):
    manager.registry.restore([make_zone(current_moisture=30, target_moisture=60)])

    entry = await manager.async_trigger_manual_water("zone-1", 20)

    assert entry.status == ScheduleStatus.ACTIVE
    assert entry.origin == ScheduleOrigin.MANUAL
    assert entry.duration == 20
    assert entry.reason == "Manual activation"
    assert manager.is_irrigating

    await _finish_runs(manager)

    completed = manager.book.get(entry.schedule_id)
    assert completed.status == ScheduleStatus.COMPLETED
    assert manager.get_zone("zone-1").current_moisture == 60
    assert manager.get_zone("zone-1").last_watered == NOW
    assert manager.last_completed("zone-1") == completed
    assert not manager.is_irrigating
    notifier.notify.assert_called_with(
        "Irrigation completed",
        "Watered North field for 20 minutes (200 L)",
        SEVERITY_SUCCESS,
    )
    assert manager.water_usage() == {"liters": 200, "minutes": 20, "runs": 1}


@pytest.mark.asyncio
async def test_manual_water_defaults_to_recommended_duration(manager):
    manager.registry.restore([make_zone(current_moisture=20)])

    entry = await manager.async_trigger_manual_water("zone-1")

    assert entry.duration == manager.evaluate_zone("zone-1").duration
    await _finish_runs(manager)


@pytest.mark.asyncio
async def test_manual_water_rejects_inactive_zone(manager):
    manager.registry.restore([make_zone(is_active=False)])

    with pytest.raises(ValidationError):
        await manager.async_trigger_manual_water("zone-1")

    assert manager.list_schedules() == []


@pytest.mark.asyncio
async def test_manual_water_rejects_zone_already_running(manager):
    manager.registry.restore([make_zone()])
    await manager.async_trigger_manual_water("zone-1", 10)

    with pytest.raises(ValidationError):
        await manager.async_trigger_manual_water("zone-1", 10)

    await _finish_runs(manager)


@pytest.mark.asyncio
async def test_manual_water_unknown_zone(manager):
    with pytest.raises(ZoneNotFoundError):
        await manager.async_trigger_manual_water("missing")


@pytest.mark.asyncio
async def test_due_check_starts_due_entries(manager, clock, settings):
    zone = make_zone()
    manager.registry.restore([zone])
    later = create_entry(
        zone, 30, "later", NOW + timedelta(hours=3), ScheduleOrigin.AUTO, settings, NOW
    )
    due = create_entry(zone, 30, "due", NOW, ScheduleOrigin.AUTO, settings, NOW)
    manager.book.add_many([later, due])

    started = await manager.async_due_check_tick()

    assert [entry.schedule_id for entry in started] == [due.schedule_id]
    assert manager.book.get(later.schedule_id).status == ScheduleStatus.PENDING
    await _finish_runs(manager)
    assert manager.book.get(due.schedule_id).status == ScheduleStatus.COMPLETED


@pytest.mark.asyncio
async def test_due_check_cancels_entries_whose_zone_vanished(manager, notifier, settings):
    zone = make_zone()
    manager.registry.restore([zone])
    entry = create_entry(zone, 30, "due", NOW, ScheduleOrigin.AUTO, settings, NOW)
    manager.book.add(entry)
    manager.registry.remove("zone-1")

    assert await manager.async_due_check_tick() == []

    cancelled = manager.book.get(entry.schedule_id)
    assert cancelled.status == ScheduleStatus.CANCELLED
    assert cancelled.reason == "zone removed"
    assert _notified_titles(notifier) == ["Irrigation cancelled"]
    assert notifier.notify.call_args.args[2] == SEVERITY_WARNING


@pytest.mark.asyncio
async def test_delete_zone_cancels_its_pending_entries(manager, clock, settings):
    old = make_zone(name="Old", current_moisture=20)
    other = make_zone(zone_id="zone-2", name="Other")
    manager.registry.restore([old, other])
    stale = create_entry(
        old, 30, "dry", NOW + timedelta(hours=18), ScheduleOrigin.AUTO, settings, NOW
    )
    kept = create_entry(
        other, 30, "dry", NOW + timedelta(hours=20), ScheduleOrigin.AUTO, settings, NOW
    )
    manager.book.add_many([stale, kept])

    await manager.async_delete_zone("zone-1")

    cancelled = manager.book.get(stale.schedule_id)
    assert cancelled.status == ScheduleStatus.CANCELLED
    assert cancelled.reason == "zone removed"
    assert manager.next_schedule() == kept

    await manager.async_upsert_zone(
        {"zone_id": "zone-1", "name": "New", "crop_type": "wheat", "current_moisture": 80}
    )
    clock.advance(timedelta(days=2))
    started = await manager.async_due_check_tick()

    assert [entry.schedule_id for entry in started] == [kept.schedule_id]
    assert manager.book.get(stale.schedule_id).status == ScheduleStatus.CANCELLED
    await _finish_runs(manager)
    assert manager.get_zone("zone-1").current_moisture == 80


@pytest.mark.asyncio
async def test_due_check_cancels_entry_that_fails_to_start(manager, settings):
    zone = make_zone()
    manager.registry.restore([zone])
    first = create_entry(zone, 30, "first", NOW, ScheduleOrigin.AUTO, settings, NOW)
    second = create_entry(
        zone, 30, "second", NOW - timedelta(minutes=1), ScheduleOrigin.AUTO, settings, NOW
    )
    manager.book.add_many([first, second])
    real_start = manager._executor.start

    def flaky_start(schedule_id):
        if schedule_id == second.schedule_id:
            raise RuntimeError("valve stuck")
        return real_start(schedule_id)

    manager._executor.start = flaky_start

    started = await manager.async_due_check_tick()

    assert [entry.schedule_id for entry in started] == [first.schedule_id]
    failed = manager.book.get(second.schedule_id)
    assert failed.status == ScheduleStatus.CANCELLED
    assert failed.reason == "Failed to start: valve stuck"
    await _finish_runs(manager)


@pytest.mark.asyncio
async def test_due_check_without_due_entries_changes_nothing(manager, storage):
    assert await manager.async_due_check_tick() == []
    storage.async_schedule_save.assert_not_called()


@pytest.mark.asyncio
async def test_cancel_schedule(manager, settings):
    zone = make_zone()
    manager.registry.restore([zone])
    entry = create_entry(
        zone, 30, "later", NOW + timedelta(hours=1), ScheduleOrigin.AUTO, settings, NOW
    )
    manager.book.add(entry)

    cancelled = await manager.async_cancel_schedule(entry.schedule_id)

    assert cancelled.status == ScheduleStatus.CANCELLED
    with pytest.raises(InvalidTransitionError):
        await manager.async_cancel_schedule(entry.schedule_id)
    assert manager.next_schedule() is None


@pytest.mark.asyncio
async def test_generate_schedule_now(manager, notifier):
    manager.registry.restore(
        [make_zone(zone_id="a", current_moisture=5), make_zone(zone_id="b")]
    )

    entries = await manager.async_generate_schedule_now()

    assert [entry.zone_id for entry in entries] == ["a"]
    assert manager.next_schedule("a") == entries[0]
    assert manager.next_schedule("b") is None
    assert _notified_titles(notifier) == ["Irrigation scheduled"]


@pytest.mark.asyncio
async def test_schedule_notifications_respect_setting(manager, notifier):
    manager.registry.restore([make_zone(current_moisture=5)])
    await manager.async_update_settings({"notifications": False})

    entries = await manager.async_generate_schedule_now()

    assert len(entries) == 1
    notifier.notify.assert_not_called()


@pytest.mark.asyncio
async def test_notifier_failure_is_swallowed(manager, notifier, zone_spec):
    notifier.notify.side_effect = RuntimeError("notification service down")

    zone_id = await manager.async_upsert_zone(zone_spec)

    assert manager.get_zone(zone_id)


@pytest.mark.asyncio
async def test_rain_delay_pauses_scheduler_tick(manager, clock):
    manager.registry.restore([make_zone(current_moisture=5)])

    until = await manager.async_set_rain_delay(2)

    assert until == NOW + timedelta(hours=2)
    assert manager.rain_delay_active
    assert await manager.async_scheduler_tick() == []

    clock.advance(timedelta(hours=2))
    assert not manager.rain_delay_active
    assert len(await manager.async_scheduler_tick()) == 1


@pytest.mark.asyncio
async def test_rain_delay_defaults_to_setting_and_can_be_cancelled(manager):
    until = await manager.async_set_rain_delay()

    assert until == NOW + timedelta(hours=24)

    await manager.async_cancel_rain_delay()
    assert manager.rain_delay_until is None
    assert not manager.rain_delay_active


@pytest.mark.asyncio
async def test_generate_now_ignores_rain_delay(manager):
    manager.registry.restore([make_zone(current_moisture=5)])
    await manager.async_set_rain_delay(5)

    assert len(await manager.async_generate_schedule_now()) == 1


@pytest.mark.asyncio
async def test_update_settings(manager):
    settings = await manager.async_update_settings(
        {"moisture_threshold": 50, "max_daily_watering": 90}
    )

    assert settings.moisture_threshold == 50
    assert settings.max_daily_watering == 90
    assert manager.get_settings() is settings


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "patch",
    [
        {"moisture_threshold": 5},
        {"max_daily_watering": 0},
        {"early_morning_start": "21:00"},
        {"unknown": True},
    ],
)
async def test_update_settings_rejects_invalid_patch(manager, patch):
    before = manager.settings

    with pytest.raises(ValidationError):
        await manager.async_update_settings(patch)

    assert manager.settings is before


@pytest.mark.asyncio
async def test_moisture_tick_uses_weather(manager):
    manager.registry.restore([make_zone(current_moisture=60)])
    manager.set_weather(
        WeatherSnapshot(temperature=20, humidity=60, wind_speed=0, condition="Heavy rain")
    )

    updates = await manager.async_moisture_tick()

    # +10 for rain, minus a 2-5 point decay
    assert 65 <= updates["zone-1"].current_moisture <= 68


@pytest.mark.asyncio
async def test_save_and_load_round_trip(manager, storage, clock, rng, notifier):
    manager.registry.restore([make_zone(current_moisture=42)])
    await manager.async_generate_schedule_now()
    await manager.async_update_settings({"moisture_threshold": 45})
    await manager.async_set_rain_delay(3)

    await manager.async_shutdown()
    payload = storage.async_save.call_args.args[0]

    restored_storage = Mock()
    restored_storage.async_load = AsyncMock(return_value=payload)
    restored = IrrigationManager(restored_storage, notifier, rng=rng, clock=clock)
    await restored.async_load()

    assert restored.list_zones() == manager.list_zones()
    assert restored.list_schedules() == manager.list_schedules()
    assert restored.settings == manager.settings
    assert restored.rain_delay_until == NOW + timedelta(hours=3)


@pytest.mark.asyncio
async def test_load_resumes_active_entries(storage, notifier, rng, clock, settings):
    zone = make_zone(current_moisture=30)
    entry = create_entry(zone, 30, "running", NOW, ScheduleOrigin.AUTO, settings, NOW)
    active = {**entry.as_dict(), "status": "active", "started_at": NOW.isoformat()}
    storage.async_load.return_value = {"zones": [zone.as_dict()], "schedules": [active]}
    manager = IrrigationManager(storage, notifier, rng=rng, clock=clock, active_delay=0)

    await manager.async_load()
    assert len(manager.running_tasks) == 1
    await _finish_runs(manager)

    assert manager.book.get(entry.schedule_id).status == ScheduleStatus.COMPLETED


@pytest.mark.asyncio
async def test_load_skips_invalid_records_and_keeps_the_rest(
    storage, notifier, rng, clock, settings
):
    good = make_zone(zone_id="good", current_moisture=45)
    entry = create_entry(
        good, 30, "dry", NOW + timedelta(hours=2), ScheduleOrigin.AUTO, settings, NOW
    )
    storage.async_load.return_value = {
        "zones": [good.as_dict(), {"name": "broken"}, {**good.as_dict(), "soil_type": "lava"}],
        "schedules": [{"schedule_id": "auto-broken"}, entry.as_dict()],
        "settings": {"moisture_threshold": 50},
        "rain_delay_until": "not a date",
    }
    manager = IrrigationManager(storage, notifier, rng=rng, clock=clock)

    await manager.async_load()

    assert manager.list_zones() == [good]
    assert manager.list_schedules() == [entry]
    assert manager.settings.moisture_threshold == 50
    assert manager.rain_delay_until is None

    await manager.async_update_settings({"notifications": False})
    data_func = storage.async_schedule_save.call_args.args[0]
    persisted = data_func()
    assert [zone["zone_id"] for zone in persisted["zones"]] == ["good"]
    assert [item["schedule_id"] for item in persisted["schedules"]] == [entry.schedule_id]


@pytest.mark.asyncio
async def test_shutdown_cancels_running_phases(storage, notifier, rng, clock):
    manager = IrrigationManager(storage, notifier, rng=rng, clock=clock, active_delay=60)
    manager.registry.restore([make_zone()])
    entry = await manager.async_trigger_manual_water("zone-1", 10)

    await manager.async_shutdown()

    assert manager.running_tasks == set()
    assert manager.book.get(entry.schedule_id).status == ScheduleStatus.ACTIVE
    storage.async_save.assert_awaited_once()


@pytest.mark.asyncio
async def test_fractional_max_daily_watering_is_rejected(manager):
    with pytest.raises(ValidationError):
        await manager.async_update_settings({"max_daily_watering": 45.5})

    assert manager.settings.max_daily_watering == 60


@pytest.mark.asyncio
async def test_overdue_entry_cancelled_before_due_check_never_starts(
    manager, clock, settings
):
    zone = make_zone()
    manager.registry.restore([zone])
    entry = create_entry(zone, 30, "due", NOW, ScheduleOrigin.AUTO, settings, NOW)
    manager.book.add(entry)
    clock.advance(timedelta(minutes=5))

    cancelled, started = await asyncio.gather(
        manager.async_cancel_schedule(entry.schedule_id),
        manager.async_due_check_tick(),
    )

    assert cancelled.status == ScheduleStatus.CANCELLED
    assert started == []
    assert manager.running_tasks == set()
    assert manager.book.get(entry.schedule_id).status == ScheduleStatus.CANCELLED


@pytest.mark.asyncio
async def test_concurrent_generation_queues_one_entry_per_zone(manager):
    manager.registry.restore(
        [
            make_zone(zone_id="a", current_moisture=5),
            make_zone(zone_id="b", current_moisture=20),
        ]
    )

    first, second = await asyncio.gather(
        manager.async_generate_schedule_now(),
        manager.async_generate_schedule_now(),
    )

    assert len(first) + len(second) == 2
    assert sorted(entry.zone_id for entry in manager.book.pending()) == ["a", "b"]


@pytest.mark.asyncio
async def test_moisture_tick_does_not_undo_replenishment(storage, notifier, clock):
    rng = Mock(spec=random.Random)
    rng.uniform.return_value = 4.0
    manager = IrrigationManager(storage, notifier, rng=rng, clock=clock, active_delay=0)
    manager.registry.restore([make_zone(current_moisture=30, target_moisture=60)])
    entry = await manager.async_trigger_manual_water("zone-1", 10)

    await asyncio.gather(_finish_runs(manager), manager.async_moisture_tick())

    zone = manager.get_zone("zone-1")
    assert manager.book.get(entry.schedule_id).status == ScheduleStatus.COMPLETED
    assert zone.last_watered == NOW
    # Tick first: 30 - 4 = 26, then +30. Replenish first: 60, then recency floor 70.
    assert zone.current_moisture in (56.0, 70.0)

    await manager.async_moisture_tick()
    assert manager.get_zone("zone-1").current_moisture >= 70
