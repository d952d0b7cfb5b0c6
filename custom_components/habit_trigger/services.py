# File: services.py
"""Defines custom services for the Habit Trigger integration.

These services allow events, habits and reminders to be managed from scripts
and automations. Every mutation that affects a habit reschedules its
reminder: editing an anchor reschedules every habit attached to it.
"""

from __future__ import annotations

from typing import Any

import voluptuous as vol
from homeassistant.core import HomeAssistant, ServiceCall, ServiceResponse, SupportsResponse
from homeassistant.exceptions import HomeAssistantError
from homeassistant.helpers import config_validation as cv

from . import const
from .data_builders import EntityValidationError, build_event, build_habit_event
from .managers import ReminderManager
from .models import HabitEvent, ScheduleItem, Weekday
from .runtime import HabitTriggerRuntime, get_runtime

# --- Service Schemas ---
WEEKDAYS_VALIDATOR = vol.All(cv.ensure_list, [vol.Any(int, cv.string)])

ADD_EVENT_SCHEMA = vol.Schema(
    {
        vol.Optional(const.FIELD_EVENT_ID): cv.string,
        vol.Required(const.FIELD_TITLE): cv.string,
        vol.Required(const.FIELD_START_TIME): cv.datetime,
        vol.Optional(const.FIELD_END_TIME): vol.Any(cv.datetime, None),
        vol.Optional(const.FIELD_WEEKDAYS, default=[]): WEEKDAYS_VALIDATOR,
    }
)

ADD_HABIT_SCHEMA = vol.Schema(
    {
        vol.Optional(const.FIELD_EVENT_ID): cv.string,
        vol.Required(const.FIELD_TITLE): cv.string,
        vol.Required(const.FIELD_ANCHOR_EVENT_ID): cv.string,
        vol.Optional(
            const.FIELD_ATTACH_POSITION, default=const.ATTACH_POSITION_AFTER
        ): vol.In(const.ATTACH_POSITION_OPTIONS),
    }
)

UPDATE_EVENT_SCHEMA = vol.Schema(
    {
        vol.Required(const.FIELD_EVENT_ID): cv.string,
        vol.Optional(const.FIELD_TITLE): cv.string,
        vol.Optional(const.FIELD_START_TIME): cv.datetime,
        vol.Optional(const.FIELD_END_TIME): vol.Any(cv.datetime, None),
        vol.Optional(const.FIELD_WEEKDAYS): WEEKDAYS_VALIDATOR,
        vol.Optional(const.FIELD_IS_HABIT): cv.boolean,
        vol.Optional(const.FIELD_ATTACH_POSITION): vol.In(
            const.ATTACH_POSITION_OPTIONS
        ),
    }
)

DELETE_EVENT_SCHEMA = vol.Schema({vol.Required(const.FIELD_EVENT_ID): cv.string})

LIST_EVENTS_SCHEMA = vol.Schema(
    {
        vol.Exclusive(const.FIELD_DAY, "filter"): cv.date,
        vol.Exclusive(const.FIELD_WEEKDAY, "filter"): vol.Any(int, cv.string),
    }
)

COMPLETE_HABIT_SCHEMA = vol.Schema(
    {
        vol.Required(const.FIELD_HABIT_ID): cv.string,
        vol.Optional(const.FIELD_COMPLETED_AT): cv.datetime,
    }
)

CLEAR_HABIT_COMPLETION_SCHEMA = vol.Schema(
    {vol.Required(const.FIELD_HABIT_ID): cv.string}
)

SCHEDULE_REMINDER_SCHEMA = vol.Schema(
    {
        vol.Required(const.FIELD_HABIT_ID): cv.string,
        vol.Optional(const.FIELD_TITLE): cv.string,
        vol.Optional(const.FIELD_MESSAGE): cv.string,
    }
)

CANCEL_REMINDER_SCHEMA = vol.Schema({vol.Required(const.FIELD_HABIT_ID): cv.string})

RESCHEDULE_REMINDERS_SCHEMA = vol.Schema({})


def _fire_response(habit_id: str, fire_at: Any) -> dict[str, Any]:
    return {
        const.FIELD_HABIT_ID: habit_id,
        const.RESPONSE_FIRE_AT: fire_at.isoformat() if fire_at else None,
    }


def _require_habit_event(runtime: HabitTriggerRuntime, habit_id: str) -> HabitEvent:
    item = runtime.event_store.get(habit_id)
    if item is None:
        raise HomeAssistantError(const.ERROR_EVENT_NOT_FOUND_FMT.format(habit_id))
    if not isinstance(item, HabitEvent):
        raise HomeAssistantError(const.ERROR_NOT_A_HABIT_FMT.format(habit_id))
    return item


def _require_new_event_id(runtime: HabitTriggerRuntime, event_id: str | None) -> None:
    if event_id and runtime.event_store.get_data(event_id) is not None:
        raise HomeAssistantError(const.ERROR_EVENT_EXISTS_FMT.format(event_id))


def _validation_error(err: EntityValidationError) -> HomeAssistantError:
    return HomeAssistantError(
        const.ERROR_INVALID_INPUT_FMT.format(err.field, err.translation_key)
    )


def _item_response(runtime: HabitTriggerRuntime, item: ScheduleItem) -> dict[str, Any]:
    """Serialize an event for service responses."""
    days = Weekday.sunday_first()
    response: dict[str, Any] = {
        const.FIELD_EVENT_ID: item.event_id,
        const.FIELD_TITLE: item.title,
        const.FIELD_START_TIME: item.start_time.isoformat() if item.start_time else None,
        const.FIELD_END_TIME: item.end_time.isoformat() if item.end_time else None,
        const.FIELD_WEEKDAYS: [day.full_name for day in days if day in item.weekdays],
        # e.g. "-M-W---" for Monday and Wednesday
        const.RESPONSE_WEEKDAY_LABELS: "".join(
            day.short_label if day in item.weekdays else const.WEEKDAY_LABEL_UNSET
            for day in days
        ),
    }

    match item:
        case HabitEvent():
            pending = runtime.delivery.pending.get(
                ReminderManager.reminder_identifier(item.event_id)
            )
            response[const.FIELD_ANCHOR_EVENT_ID] = item.anchor_event_id
            response[const.FIELD_ATTACH_POSITION] = item.position.value
            response[const.RESPONSE_PENDING_REMINDER] = (
                pending.fire_at.isoformat() if pending else None
            )
    return response


async def _async_reschedule_affected(
    runtime: HabitTriggerRuntime, item: ScheduleItem
) -> list[dict[str, Any]]:
    """Reschedule a habit, or every habit attached to an anchor."""
    match item:
        case HabitEvent():
            habit_ids = [item.event_id]
        case _:
            habit_ids = [
                habit.event_id
                for habit in runtime.event_store.habits_attached_to(item.event_id)
            ]

    results = []
    for habit_id in habit_ids:
        fire_at = await runtime.reminders.async_reschedule(habit_id)
        results.append(_fire_response(habit_id, fire_at))
    return results


def async_setup_services(hass: HomeAssistant) -> None:
    """Register Habit Trigger services."""

    async def handle_add_event(call: ServiceCall) -> ServiceResponse:
        """Handle adding a plain event."""
        runtime = get_runtime(hass)
        _require_new_event_id(runtime, call.data.get(const.FIELD_EVENT_ID))
        user_input = {
            const.DATA_EVENT_TITLE: call.data[const.FIELD_TITLE],
            const.DATA_EVENT_START_TIME: call.data[const.FIELD_START_TIME],
            const.DATA_EVENT_END_TIME: call.data.get(const.FIELD_END_TIME),
            const.DATA_EVENT_WEEKDAYS: call.data[const.FIELD_WEEKDAYS],
            const.DATA_EVENT_IS_HABIT: False,
        }
        if const.FIELD_EVENT_ID in call.data:
            user_input[const.DATA_EVENT_ID] = call.data[const.FIELD_EVENT_ID]

        try:
            event = build_event(user_input)
        except EntityValidationError as err:
            const.LOGGER.warning("WARNING: Add Event: invalid %s", err.field)
            raise _validation_error(err) from err

        runtime.event_store.add(event)
        const.LOGGER.info("INFO: Added event '%s'", event[const.DATA_EVENT_TITLE])
        return {const.FIELD_EVENT_ID: event[const.DATA_EVENT_ID]}

    async def handle_add_habit(call: ServiceCall) -> ServiceResponse:
        """Handle attaching a new habit to an anchor event."""
        runtime = get_runtime(hass)
        _require_new_event_id(runtime, call.data.get(const.FIELD_EVENT_ID))
        anchor_id = call.data[const.FIELD_ANCHOR_EVENT_ID]
        anchor = runtime.event_store.get_data(anchor_id)
        if anchor is None:
            raise HomeAssistantError(const.ERROR_EVENT_NOT_FOUND_FMT.format(anchor_id))

        try:
            habit_event = build_habit_event(
                call.data[const.FIELD_TITLE],
                anchor,
                call.data[const.FIELD_ATTACH_POSITION],
                event_id=call.data.get(const.FIELD_EVENT_ID),
            )
        except EntityValidationError as err:
            const.LOGGER.warning("WARNING: Add Habit: invalid %s", err.field)
            raise _validation_error(err) from err

        runtime.event_store.add(habit_event)
        habit_id = habit_event[const.DATA_EVENT_ID]
        fire_at = await runtime.reminders.async_reschedule(habit_id)
        response = _fire_response(habit_id, fire_at)
        response[const.FIELD_EVENT_ID] = habit_id
        return response

    async def handle_update_event(call: ServiceCall) -> ServiceResponse:
        """Handle editing an event; reschedules every affected habit reminder."""
        runtime = get_runtime(hass)
        event_id = call.data[const.FIELD_EVENT_ID]
        existing = runtime.event_store.get_data(event_id)
        if existing is None:
            raise HomeAssistantError(const.ERROR_EVENT_NOT_FOUND_FMT.format(event_id))

        is_habit = bool(existing.get(const.DATA_EVENT_IS_HABIT))
        if (
            const.FIELD_IS_HABIT in call.data
            and call.data[const.FIELD_IS_HABIT] != is_habit
        ):
            raise HomeAssistantError(const.ERROR_HABIT_FLAG_CHANGE_FMT.format(event_id))
        if const.FIELD_ATTACH_POSITION in call.data and not is_habit:
            raise HomeAssistantError(
                const.ERROR_NOT_HABIT_FIELD_FMT.format(const.FIELD_ATTACH_POSITION)
            )

        field_map = {
            const.FIELD_TITLE: const.DATA_EVENT_TITLE,
            const.FIELD_START_TIME: const.DATA_EVENT_START_TIME,
            const.FIELD_END_TIME: const.DATA_EVENT_END_TIME,
            const.FIELD_WEEKDAYS: const.DATA_EVENT_WEEKDAYS,
            const.FIELD_ATTACH_POSITION: const.DATA_EVENT_ATTACH_POSITION,
        }
        user_input = {
            data_key: call.data[field]
            for field, data_key in field_map.items()
            if field in call.data
        }

        try:
            event = build_event(user_input, existing)
        except EntityValidationError as err:
            const.LOGGER.warning("WARNING: Update Event: invalid %s", err.field)
            raise _validation_error(err) from err

        runtime.event_store.update(event)
        item = runtime.event_store.get(event_id)
        reminders = await _async_reschedule_affected(runtime, item)
        const.LOGGER.info(
            "INFO: Updated event %s (%s habit reminder(s) rescheduled)",
            event_id,
            len(reminders),
        )
        return {const.FIELD_EVENT_ID: event_id, const.RESPONSE_REMINDERS: reminders}

    async def handle_delete_event(call: ServiceCall) -> None:
        """Handle deleting an event; cancels affected reminders."""
        runtime = get_runtime(hass)
        event_id = call.data[const.FIELD_EVENT_ID]
        attached = [
            habit.event_id for habit in runtime.event_store.habits_attached_to(event_id)
        ]
        if not runtime.event_store.delete(event_id):
            raise HomeAssistantError(const.ERROR_EVENT_NOT_FOUND_FMT.format(event_id))

        runtime.habit_store.delete(event_id)
        await runtime.reminders.async_handle_event_deleted(event_id, attached)
        const.LOGGER.info(
            "INFO: Deleted event %s (%s attached habit reminder(s) cancelled)",
            event_id,
            len(attached),
        )

    async def handle_list_events(call: ServiceCall) -> ServiceResponse:
        """Handle listing events, optionally for one day or one weekday."""
        runtime = get_runtime(hass)
        store = runtime.event_store

        if const.FIELD_DAY in call.data:
            items = store.events_for_day(call.data[const.FIELD_DAY])
            return {const.RESPONSE_EVENTS: [_item_response(runtime, i) for i in items]}

        if const.FIELD_WEEKDAY in call.data:
            try:
                weekday = Weekday.parse(call.data[const.FIELD_WEEKDAY])
            except ValueError as err:
                raise HomeAssistantError(
                    const.ERROR_INVALID_INPUT_FMT.format(
                        const.FIELD_WEEKDAY, const.TRANS_KEY_INVALID_WEEKDAY
                    )
                ) from err
            items = store.events_for_weekday(weekday)
            return {const.RESPONSE_EVENTS: [_item_response(runtime, i) for i in items]}

        return {
            const.RESPONSE_EVENTS: [
                _item_response(runtime, i) for i in store.plain_events()
            ],
            const.RESPONSE_HABITS: [
                _item_response(runtime, i) for i in store.habit_events()
            ],
        }

    async def handle_complete_habit(call: ServiceCall) -> ServiceResponse:
        """Handle marking a habit completed and rescheduling its reminder."""
        runtime = get_runtime(hass)
        habit_id = call.data[const.FIELD_HABIT_ID]
        _require_habit_event(runtime, habit_id)

        runtime.habit_store.mark_completed(habit_id, call.data.get(const.FIELD_COMPLETED_AT))
        fire_at = await runtime.reminders.async_reschedule(habit_id)
        return _fire_response(habit_id, fire_at)

    async def handle_clear_habit_completion(call: ServiceCall) -> ServiceResponse:
        """Handle clearing a habit's completion and rescheduling from its anchor."""
        runtime = get_runtime(hass)
        habit_id = call.data[const.FIELD_HABIT_ID]
        _require_habit_event(runtime, habit_id)

        runtime.habit_store.clear_completion(habit_id)
        fire_at = await runtime.reminders.async_reschedule(habit_id)
        return _fire_response(habit_id, fire_at)

    async def handle_schedule_reminder(call: ServiceCall) -> ServiceResponse:
        """Handle (re)scheduling a single habit reminder."""
        runtime = get_runtime(hass)
        habit_id = call.data[const.FIELD_HABIT_ID]
        _require_habit_event(runtime, habit_id)

        fire_at = await runtime.reminders.async_reschedule(
            habit_id,
            title=call.data.get(const.FIELD_TITLE),
            body=call.data.get(const.FIELD_MESSAGE),
        )
        return _fire_response(habit_id, fire_at)

    async def handle_cancel_reminder(call: ServiceCall) -> None:
        """Handle cancelling a habit reminder."""
        runtime = get_runtime(hass)
        await runtime.reminders.async_cancel_reminder(call.data[const.FIELD_HABIT_ID])

    async def handle_reschedule_reminders(call: ServiceCall) -> ServiceResponse:
        """Handle rescheduling every habit reminder."""
        runtime = get_runtime(hass)
        results = await runtime.reminders.async_reschedule_all()
        return {
            const.RESPONSE_REMINDERS: [
                _fire_response(habit_id, fire_at) for habit_id, fire_at in results.items()
            ]
        }

    optional = SupportsResponse.OPTIONAL
    registrations = [
        (const.SERVICE_ADD_EVENT, handle_add_event, ADD_EVENT_SCHEMA, optional),
        (const.SERVICE_ADD_HABIT, handle_add_habit, ADD_HABIT_SCHEMA, optional),
        (const.SERVICE_UPDATE_EVENT, handle_update_event, UPDATE_EVENT_SCHEMA, optional),
        (
            const.SERVICE_DELETE_EVENT,
            handle_delete_event,
            DELETE_EVENT_SCHEMA,
            SupportsResponse.NONE,
        ),
        (
            const.SERVICE_LIST_EVENTS,
            handle_list_events,
            LIST_EVENTS_SCHEMA,
            SupportsResponse.ONLY,
        ),
        (const.SERVICE_COMPLETE_HABIT, handle_complete_habit, COMPLETE_HABIT_SCHEMA, optional),
        (
            const.SERVICE_CLEAR_HABIT_COMPLETION,
            handle_clear_habit_completion,
            CLEAR_HABIT_COMPLETION_SCHEMA,
            optional,
        ),
        (
            const.SERVICE_SCHEDULE_REMINDER,
            handle_schedule_reminder,
            SCHEDULE_REMINDER_SCHEMA,
            optional,
        ),
        (
            const.SERVICE_CANCEL_REMINDER,
            handle_cancel_reminder,
            CANCEL_REMINDER_SCHEMA,
            SupportsResponse.NONE,
        ),
        (
            const.SERVICE_RESCHEDULE_REMINDERS,
            handle_reschedule_reminders,
            RESCHEDULE_REMINDERS_SCHEMA,
            optional,
        ),
    ]

    for service, handler, schema, supports_response in registrations:
        hass.services.async_register(
            const.DOMAIN,
            service,
            handler,
            schema=schema,
            supports_response=supports_response,
        )

    const.LOGGER.info("INFO: Habit Trigger services have been registered")
