# File: const.py
"""Constants for the Habit Trigger integration.

This file centralizes configuration keys, defaults, storage keys, service
names and fields, and the fixed scheduling constants used by the reminder
engine, for consistency across the integration.
"""

from datetime import timedelta
import logging

# ------------------------------------------------------------------------------------------------
# General / Integration Information
# ------------------------------------------------------------------------------------------------
# Integration Name
HABIT_TRIGGER_TITLE = "Habit Trigger"

# Integration Domain
DOMAIN = "habit_trigger"

# Logger
LOGGER = logging.getLogger(__package__)

# Runtime data key in hass.data[DOMAIN]
RUNTIME = "runtime"

# Storage and Versioning
STORAGE_KEY = "habit_trigger_data"
STORAGE_VERSION = 1
STORAGE_SAVE_DELAY_SECONDS = 5

# ------------------------------------------------------------------------------------------------
# Configuration Keys (YAML)
# ------------------------------------------------------------------------------------------------
CONF_NOTIFY_SERVICE = "notify_service"

# ------------------------------------------------------------------------------------------------
# Reminder Engine
# ------------------------------------------------------------------------------------------------
# Fixed lead applied before every computed boundary (not configurable per habit)
REMINDER_LEAD_TIME = timedelta(minutes=10)

# Forward scan horizon for weekday matching. Any non-empty weekday set recurs
# within 7 days; 14 is an intentionally generous bound.
OCCURRENCE_LOOKAHEAD_DAYS = 14

# Stable per-habit reminder key: prefix + habit id
REMINDER_ID_PREFIX = "habit-reminder-"

# Offset used when placing a new habit event next to its anchor on the timeline
HABIT_PLACEMENT_OFFSET = timedelta(minutes=1)

# Attach positions
ATTACH_POSITION_BEFORE = "before"
ATTACH_POSITION_AFTER = "after"
ATTACH_POSITION_OPTIONS = [ATTACH_POSITION_BEFORE, ATTACH_POSITION_AFTER]

# ------------------------------------------------------------------------------------------------
# Stored Data Keys
# ------------------------------------------------------------------------------------------------
DATA_EVENTS = "events"
DATA_HABITS = "habits"

DATA_EVENT_ID = "event_id"
DATA_EVENT_TITLE = "title"
DATA_EVENT_START_TIME = "start_time"
DATA_EVENT_END_TIME = "end_time"
DATA_EVENT_WEEKDAYS = "weekdays"
DATA_EVENT_IS_HABIT = "is_habit"
DATA_EVENT_ANCHOR_EVENT_ID = "anchor_event_id"
DATA_EVENT_ATTACH_POSITION = "attach_position"

DATA_HABIT_ID = "habit_id"
DATA_HABIT_LAST_COMPLETED_AT = "last_completed_at"

# ------------------------------------------------------------------------------------------------
# Services
# ------------------------------------------------------------------------------------------------
SERVICE_ADD_EVENT = "add_event"
SERVICE_ADD_HABIT = "add_habit"
SERVICE_UPDATE_EVENT = "update_event"
SERVICE_DELETE_EVENT = "delete_event"
SERVICE_LIST_EVENTS = "list_events"
SERVICE_COMPLETE_HABIT = "complete_habit"
SERVICE_CLEAR_HABIT_COMPLETION = "clear_habit_completion"
SERVICE_SCHEDULE_REMINDER = "schedule_reminder"
SERVICE_CANCEL_REMINDER = "cancel_reminder"
SERVICE_RESCHEDULE_REMINDERS = "reschedule_reminders"

SERVICES = [
    SERVICE_ADD_EVENT,
    SERVICE_ADD_HABIT,
    SERVICE_UPDATE_EVENT,
    SERVICE_DELETE_EVENT,
    SERVICE_LIST_EVENTS,
    SERVICE_COMPLETE_HABIT,
    SERVICE_CLEAR_HABIT_COMPLETION,
    SERVICE_SCHEDULE_REMINDER,
    SERVICE_CANCEL_REMINDER,
    SERVICE_RESCHEDULE_REMINDERS,
]

# Service Fields
FIELD_EVENT_ID = "event_id"
FIELD_HABIT_ID = "habit_id"
FIELD_ANCHOR_EVENT_ID = "anchor_event_id"
FIELD_TITLE = "title"
FIELD_START_TIME = "start_time"
FIELD_END_TIME = "end_time"
FIELD_WEEKDAYS = "weekdays"
FIELD_ATTACH_POSITION = "attach_position"
FIELD_COMPLETED_AT = "completed_at"
FIELD_MESSAGE = "message"
FIELD_IS_HABIT = "is_habit"
FIELD_DAY = "day"
FIELD_WEEKDAY = "weekday"

# Service Responses
RESPONSE_EVENTS = "events"
RESPONSE_HABITS = "habits"
RESPONSE_REMINDERS = "reminders"
RESPONSE_FIRE_AT = "fire_at"
RESPONSE_WEEKDAY_LABELS = "weekday_labels"
RESPONSE_PENDING_REMINDER = "pending_reminder"
WEEKDAY_LABEL_UNSET = "-"

# ------------------------------------------------------------------------------------------------
# Notifications
# ------------------------------------------------------------------------------------------------
NOTIFY_DOMAIN = "notify"
NOTIFY_TITLE = "title"
NOTIFY_MESSAGE = "message"
NOTIFY_DATA = "data"
NOTIFY_TAG = "tag"

DISPLAY_DOT = "."

DEFAULT_REMINDER_MESSAGE = "Time for your habit: {title}"

# ------------------------------------------------------------------------------------------------
# Validation / Errors
# ------------------------------------------------------------------------------------------------
TRANS_KEY_INVALID_TITLE = "invalid_title"
TRANS_KEY_INVALID_END_TIME = "end_time_before_start"
TRANS_KEY_INVALID_START_TIME = "invalid_start_time"
TRANS_KEY_INVALID_WEEKDAY = "invalid_weekday"
TRANS_KEY_INVALID_ATTACH_POSITION = "invalid_attach_position"
TRANS_KEY_INVALID_ANCHOR = "invalid_anchor"

ERROR_EVENT_NOT_FOUND_FMT = "Event '{}' not found"
ERROR_NOT_A_HABIT_FMT = "Event '{}' is not a habit"
ERROR_EVENT_EXISTS_FMT = "Event '{}' already exists"
ERROR_HABIT_FLAG_CHANGE_FMT = "Event '{}' cannot switch between habit and plain event"
ERROR_NOT_HABIT_FIELD_FMT = "'{}' only applies to habit events"
ERROR_INVALID_INPUT_FMT = "Invalid value for '{}': {}"
MSG_NOT_SET_UP = "Habit Trigger is not set up"
