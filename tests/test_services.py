"""Service-level tests: full integration setup, then service calls.

Time is frozen at Sunday 2025-01-05 18:00 UTC, which is Sunday morning in the
test instance's configured time zone. Expected fire instants are derived from
that zone so the assertions read as local wall-clock times.
"""

from collections.abc import Generator
from datetime import UTC, datetime, timedelta
from typing import Any
from unittest.mock import MagicMock, patch
from zoneinfo import ZoneInfo

from freezegun import freeze_time
from homeassistant.const import EVENT_HOMEASSISTANT_STOP
from homeassistant.core import HomeAssistant
from homeassistant.exceptions import HomeAssistantError
from homeassistant.setup import async_setup_component
import pytest
import voluptuous as vol

from custom_components.habit_trigger import const
from custom_components.habit_trigger.data_builders import build_event, build_habit_event
from custom_components.habit_trigger.runtime import HabitTriggerRuntime, get_runtime

TRACKER = "custom_components.habit_trigger.notification_helper.async_track_point_in_utc_time"
FROZEN_NOW = "2025-01-05 18:00:00"


@pytest.fixture(autouse=True)
def mock_tracker() -> Generator[MagicMock]:
    """Keep reminders out of the real scheduler."""
    with patch(TRACKER, side_effect=lambda *args: MagicMock()) as tracker:
        yield tracker


def _local(hass: HomeAssistant, *args: int) -> datetime:
    return datetime(*args, tzinfo=ZoneInfo(hass.config.time_zone))


def _fire_iso(local_boundary: datetime) -> str:
    return (local_boundary - const.REMINDER_LEAD_TIME).astimezone(UTC).isoformat()


async def _setup(hass: HomeAssistant, conf: dict[str, Any] | None = None) -> HabitTriggerRuntime:
    assert await async_setup_component(hass, const.DOMAIN, {const.DOMAIN: conf or {}})
    await hass.async_block_till_done()
    return get_runtime(hass)


async def _call(
    hass: HomeAssistant, service: str, data: dict[str, Any], response: bool = True
) -> Any:
    return await hass.services.async_call(
        const.DOMAIN, service, data, blocking=True, return_response=response
    )


async def _add_run_with_habit(hass: HomeAssistant, position: str = "before") -> dict[str, Any]:
    """Add a Monday 09:00-09:30 run and attach a habit to it."""
    await _call(
        hass,
        const.SERVICE_ADD_EVENT,
        {
            const.FIELD_EVENT_ID: "run",
            const.FIELD_TITLE: "Run",
            const.FIELD_START_TIME: _local(hass, 2025, 1, 6, 9, 0).isoformat(),
            const.FIELD_END_TIME: _local(hass, 2025, 1, 6, 9, 30).isoformat(),
            const.FIELD_WEEKDAYS: ["mon"],
        },
    )
    return await _call(
        hass,
        const.SERVICE_ADD_HABIT,
        {
            const.FIELD_EVENT_ID: "stretch",
            const.FIELD_TITLE: "Stretch",
            const.FIELD_ANCHOR_EVENT_ID: "run",
            const.FIELD_ATTACH_POSITION: position,
        },
    )


async def test_get_runtime_before_setup_raises(hass: HomeAssistant) -> None:
    with pytest.raises(HomeAssistantError):
        get_runtime(hass)


async def test_setup_registers_services(hass: HomeAssistant) -> None:
    await _setup(hass)
    for service in const.SERVICES:
        assert hass.services.has_service(const.DOMAIN, service)


@freeze_time(FROZEN_NOW, tz_offset=0)
async def test_add_event_returns_id(hass: HomeAssistant) -> None:
    runtime = await _setup(hass)
    response = await _call(
        hass,
        const.SERVICE_ADD_EVENT,
        {
            const.FIELD_TITLE: "Breakfast",
            const.FIELD_START_TIME: _local(hass, 2025, 1, 6, 8, 0).isoformat(),
            const.FIELD_WEEKDAYS: [2, "tue"],
        },
    )

    event_id = response[const.FIELD_EVENT_ID]
    stored = runtime.storage.get_events()[event_id]
    assert stored[const.DATA_EVENT_WEEKDAYS] == [2, 3]
    assert stored[const.DATA_EVENT_IS_HABIT] is False


@freeze_time(FROZEN_NOW, tz_offset=0)
async def test_add_event_invalid_input_raises(hass: HomeAssistant) -> None:
    await _setup(hass)
    with pytest.raises(HomeAssistantError):
        await _call(
            hass,
            const.SERVICE_ADD_EVENT,
            {
                const.FIELD_TITLE: "Backwards",
                const.FIELD_START_TIME: _local(hass, 2025, 1, 6, 9, 0).isoformat(),
                const.FIELD_END_TIME: _local(hass, 2025, 1, 6, 8, 0).isoformat(),
            },
        )
    with pytest.raises(HomeAssistantError):
        await _call(
            hass,
            const.SERVICE_ADD_EVENT,
            {
                const.FIELD_TITLE: "Someday",
                const.FIELD_START_TIME: _local(hass, 2025, 1, 6, 9, 0).isoformat(),
                const.FIELD_WEEKDAYS: ["funday"],
            },
        )


@freeze_time(FROZEN_NOW, tz_offset=0)
async def test_add_habit_schedules_reminder(hass: HomeAssistant) -> None:
    runtime = await _setup(hass)
    response = await _add_run_with_habit(hass, "before")

    assert response == {
        const.FIELD_HABIT_ID: "stretch",
        const.FIELD_EVENT_ID: "stretch",
        "fire_at": _fire_iso(_local(hass, 2025, 1, 6, 9, 0)),
    }
    assert set(runtime.delivery.pending) == {"habit-reminder-stretch"}


@freeze_time(FROZEN_NOW, tz_offset=0)
async def test_add_habit_after_uses_anchor_end(hass: HomeAssistant) -> None:
    await _setup(hass)
    response = await _add_run_with_habit(hass, "after")
    assert response["fire_at"] == _fire_iso(_local(hass, 2025, 1, 6, 9, 30))


@freeze_time(FROZEN_NOW, tz_offset=0)
async def test_add_habit_unknown_anchor_raises(hass: HomeAssistant) -> None:
    await _setup(hass)
    with pytest.raises(HomeAssistantError):
        await _call(
            hass,
            const.SERVICE_ADD_HABIT,
            {const.FIELD_TITLE: "Stretch", const.FIELD_ANCHOR_EVENT_ID: "missing"},
        )


@freeze_time(FROZEN_NOW, tz_offset=0)
async def test_complete_and_clear_habit(hass: HomeAssistant) -> None:
    runtime = await _setup(hass)
    await _add_run_with_habit(hass)

    completed = await _call(
        hass,
        const.SERVICE_COMPLETE_HABIT,
        {
            const.FIELD_HABIT_ID: "stretch",
            const.FIELD_COMPLETED_AT: _local(hass, 2025, 1, 5, 7, 30).isoformat(),
        },
    )
    assert completed["fire_at"] == _fire_iso(_local(hass, 2025, 1, 6, 7, 30))
    assert runtime.habit_store.get("stretch").last_completed_at is not None

    cleared = await _call(
        hass, const.SERVICE_CLEAR_HABIT_COMPLETION, {const.FIELD_HABIT_ID: "stretch"}
    )
    assert cleared["fire_at"] == _fire_iso(_local(hass, 2025, 1, 6, 9, 0))
    assert len(runtime.delivery.pending) == 1


@freeze_time(FROZEN_NOW, tz_offset=0)
async def test_complete_unknown_or_plain_event_raises(hass: HomeAssistant) -> None:
    await _setup(hass)
    await _add_run_with_habit(hass)

    with pytest.raises(HomeAssistantError):
        await _call(hass, const.SERVICE_COMPLETE_HABIT, {const.FIELD_HABIT_ID: "missing"})
    with pytest.raises(HomeAssistantError):
        await _call(hass, const.SERVICE_SCHEDULE_REMINDER, {const.FIELD_HABIT_ID: "run"})


@freeze_time(FROZEN_NOW, tz_offset=0)
async def test_schedule_and_cancel_reminder(hass: HomeAssistant) -> None:
    runtime = await _setup(hass)
    await _add_run_with_habit(hass)

    await _call(
        hass, const.SERVICE_CANCEL_REMINDER, {const.FIELD_HABIT_ID: "stretch"}, False
    )
    assert runtime.delivery.pending == {}

    response = await _call(
        hass,
        const.SERVICE_SCHEDULE_REMINDER,
        {
            const.FIELD_HABIT_ID: "stretch",
            const.FIELD_TITLE: "Heads up",
            const.FIELD_MESSAGE: "Stretch now",
        },
    )
    pending = runtime.delivery.pending["habit-reminder-stretch"]
    assert response["fire_at"] == pending.fire_at.isoformat()
    assert (pending.title, pending.body) == ("Heads up", "Stretch now")


@freeze_time(FROZEN_NOW, tz_offset=0)
async def test_reschedule_reminders(hass: HomeAssistant) -> None:
    await _setup(hass)
    await _add_run_with_habit(hass)

    response = await _call(hass, const.SERVICE_RESCHEDULE_REMINDERS, {})
    assert response == {
        "reminders": [
            {
                const.FIELD_HABIT_ID: "stretch",
                "fire_at": _fire_iso(_local(hass, 2025, 1, 6, 9, 0)),
            }
        ]
    }


@freeze_time(FROZEN_NOW, tz_offset=0)
async def test_delete_anchor_cancels_attached_reminders(hass: HomeAssistant) -> None:
    runtime = await _setup(hass)
    await _add_run_with_habit(hass)

    await _call(hass, const.SERVICE_DELETE_EVENT, {const.FIELD_EVENT_ID: "run"}, False)
    assert runtime.delivery.pending == {}
    assert runtime.event_store.get("run") is None

    # Habit survives without its anchor; rescheduling it is a no-op
    response = await _call(
        hass, const.SERVICE_SCHEDULE_REMINDER, {const.FIELD_HABIT_ID: "stretch"}
    )
    assert response["fire_at"] is None

    with pytest.raises(HomeAssistantError):
        await _call(hass, const.SERVICE_DELETE_EVENT, {const.FIELD_EVENT_ID: "run"}, False)


@freeze_time(FROZEN_NOW, tz_offset=0)
async def test_startup_reschedules_stored_habits(
    hass: HomeAssistant, hass_storage: dict[str, Any]
) -> None:
    tz = ZoneInfo(hass.config.time_zone)
    anchor = build_event(
        {
            const.DATA_EVENT_ID: "run",
            const.DATA_EVENT_TITLE: "Run",
            const.DATA_EVENT_START_TIME: datetime(2024, 12, 2, 9, 0, tzinfo=tz),
            const.DATA_EVENT_WEEKDAYS: ["mon"],
        }
    )
    habit = build_habit_event("Stretch", anchor, "before", event_id="stretch")
    hass_storage[const.STORAGE_KEY] = {
        "version": const.STORAGE_VERSION,
        "key": const.STORAGE_KEY,
        "data": {
            const.DATA_EVENTS: {"run": anchor, "stretch": habit},
            const.DATA_HABITS: {},
        },
    }

    runtime = await _setup(hass)

    pending = runtime.delivery.pending["habit-reminder-stretch"]
    assert pending.fire_at == _local(hass, 2025, 1, 6, 9, 0) - timedelta(minutes=10)


@freeze_time(FROZEN_NOW, tz_offset=0)
async def test_stop_cancels_pending_reminders(hass: HomeAssistant) -> None:
    runtime = await _setup(hass, {const.CONF_NOTIFY_SERVICE: "notify.phone"})
    await _add_run_with_habit(hass)
    assert runtime.delivery.pending

    hass.bus.async_fire(EVENT_HOMEASSISTANT_STOP)
    await hass.async_block_till_done()

    assert runtime.delivery.pending == {}


@freeze_time(FROZEN_NOW, tz_offset=0)
async def test_add_event_rejects_existing_anchor_id(hass: HomeAssistant) -> None:
    runtime = await _setup(hass)
    await _add_run_with_habit(hass)
    fire_before = runtime.delivery.pending["habit-reminder-stretch"].fire_at

    with pytest.raises(HomeAssistantError):
        await _call(
            hass,
            const.SERVICE_ADD_EVENT,
            {
                const.FIELD_EVENT_ID: "run",
                const.FIELD_TITLE: "Run",
                const.FIELD_START_TIME: _local(hass, 2025, 1, 7, 7, 0).isoformat(),
                const.FIELD_WEEKDAYS: ["tue"],
            },
        )

    assert runtime.event_store.get("run").start_time == _local(hass, 2025, 1, 6, 9, 0)
    assert runtime.delivery.pending["habit-reminder-stretch"].fire_at == fire_before


@freeze_time(FROZEN_NOW, tz_offset=0)
async def test_add_event_rejects_existing_habit_id(hass: HomeAssistant) -> None:
    runtime = await _setup(hass)
    await _add_run_with_habit(hass)

    with pytest.raises(HomeAssistantError):
        await _call(
            hass,
            const.SERVICE_ADD_EVENT,
            {
                const.FIELD_EVENT_ID: "stretch",
                const.FIELD_TITLE: "Stretch",
                const.FIELD_START_TIME: _local(hass, 2025, 1, 6, 8, 0).isoformat(),
            },
        )
    with pytest.raises(HomeAssistantError):
        await _call(
            hass,
            const.SERVICE_ADD_HABIT,
            {
                const.FIELD_EVENT_ID: "stretch",
                const.FIELD_TITLE: "Stretch again",
                const.FIELD_ANCHOR_EVENT_ID: "run",
            },
        )

    assert runtime.storage.get_events()["stretch"][const.DATA_EVENT_IS_HABIT] is True
    assert runtime.event_store.get("stretch").title == "Stretch"
    assert set(runtime.delivery.pending) == {"habit-reminder-stretch"}


@freeze_time(FROZEN_NOW, tz_offset=0)
async def test_update_anchor_reschedules_attached_habits(hass: HomeAssistant) -> None:
    runtime = await _setup(hass)
    await _add_run_with_habit(hass, "before")

    response = await _call(
        hass,
        const.SERVICE_UPDATE_EVENT,
        {
            const.FIELD_EVENT_ID: "run",
            const.FIELD_START_TIME: _local(hass, 2025, 1, 7, 7, 0).isoformat(),
            const.FIELD_END_TIME: _local(hass, 2025, 1, 7, 7, 30).isoformat(),
            const.FIELD_WEEKDAYS: ["tue"],
        },
    )

    expected = _fire_iso(_local(hass, 2025, 1, 7, 7, 0))
    assert response == {
        const.FIELD_EVENT_ID: "run",
        "reminders": [{const.FIELD_HABIT_ID: "stretch", "fire_at": expected}],
    }
    pending = runtime.delivery.pending["habit-reminder-stretch"]
    assert pending.fire_at.isoformat() == expected
    assert runtime.event_store.get("run").title == "Run"


@freeze_time(FROZEN_NOW, tz_offset=0)
async def test_update_habit_reschedules_itself(hass: HomeAssistant) -> None:
    runtime = await _setup(hass)
    await _add_run_with_habit(hass, "before")

    response = await _call(
        hass,
        const.SERVICE_UPDATE_EVENT,
        {
            const.FIELD_EVENT_ID: "stretch",
            const.FIELD_TITLE: "Cool down",
            const.FIELD_ATTACH_POSITION: "after",
        },
    )

    expected = _fire_iso(_local(hass, 2025, 1, 6, 9, 30))
    assert response["reminders"] == [
        {const.FIELD_HABIT_ID: "stretch", "fire_at": expected}
    ]
    stored = runtime.storage.get_events()["stretch"]
    assert stored[const.DATA_EVENT_ATTACH_POSITION] == "after"
    assert stored[const.DATA_EVENT_ANCHOR_EVENT_ID] == "run"
    assert stored[const.DATA_EVENT_IS_HABIT] is True
    assert runtime.delivery.pending["habit-reminder-stretch"].title == "Cool down"


@freeze_time(FROZEN_NOW, tz_offset=0)
async def test_update_event_rejects_invalid_changes(hass: HomeAssistant) -> None:
    runtime = await _setup(hass)
    await _add_run_with_habit(hass)

    invalid_calls = [
        {const.FIELD_EVENT_ID: "stretch", const.FIELD_IS_HABIT: False},
        {const.FIELD_EVENT_ID: "run", const.FIELD_IS_HABIT: True},
        {const.FIELD_EVENT_ID: "run", const.FIELD_ATTACH_POSITION: "before"},
        {const.FIELD_EVENT_ID: "missing", const.FIELD_TITLE: "Nothing"},
        {
            const.FIELD_EVENT_ID: "run",
            const.FIELD_END_TIME: _local(hass, 2025, 1, 6, 8, 0).isoformat(),
        },
    ]
    for data in invalid_calls:
        with pytest.raises(HomeAssistantError):
            await _call(hass, const.SERVICE_UPDATE_EVENT, data)

    assert runtime.storage.get_events()["run"][const.DATA_EVENT_IS_HABIT] is False
    assert runtime.storage.get_events()["stretch"][const.DATA_EVENT_IS_HABIT] is True


@freeze_time(FROZEN_NOW, tz_offset=0)
async def test_list_events(hass: HomeAssistant) -> None:
    await _setup(hass)
    await _add_run_with_habit(hass, "before")

    response = await _call(hass, const.SERVICE_LIST_EVENTS, {})

    assert [event[const.FIELD_EVENT_ID] for event in response["events"]] == ["run"]
    run = response["events"][0]
    assert run[const.FIELD_WEEKDAYS] == ["Monday"]
    assert run["weekday_labels"] == "-M-----"
    assert const.FIELD_ATTACH_POSITION not in run

    (stretch,) = response["habits"]
    assert stretch[const.FIELD_ANCHOR_EVENT_ID] == "run"
    assert stretch[const.FIELD_ATTACH_POSITION] == "before"
    assert stretch["pending_reminder"] == _fire_iso(_local(hass, 2025, 1, 6, 9, 0))


@freeze_time(FROZEN_NOW, tz_offset=0)
async def test_list_events_for_day_and_weekday(hass: HomeAssistant) -> None:
    await _setup(hass)
    await _add_run_with_habit(hass, "before")

    by_day = await _call(hass, const.SERVICE_LIST_EVENTS, {const.FIELD_DAY: "2025-01-06"})
    assert [e[const.FIELD_EVENT_ID] for e in by_day["events"]] == ["stretch", "run"]

    monday = await _call(hass, const.SERVICE_LIST_EVENTS, {const.FIELD_WEEKDAY: "mon"})
    assert {e[const.FIELD_EVENT_ID] for e in monday["events"]} == {"run", "stretch"}

    sunday = await _call(hass, const.SERVICE_LIST_EVENTS, {const.FIELD_WEEKDAY: 1})
    assert sunday == {"events": []}

    with pytest.raises(HomeAssistantError):
        await _call(hass, const.SERVICE_LIST_EVENTS, {const.FIELD_WEEKDAY: "funday"})
    with pytest.raises(vol.Invalid):
        await _call(
            hass,
            const.SERVICE_LIST_EVENTS,
            {const.FIELD_DAY: "2025-01-06", const.FIELD_WEEKDAY: "mon"},
        )
