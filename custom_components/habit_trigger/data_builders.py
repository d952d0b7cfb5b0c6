"""Record building, validation and model conversion helpers.

This module is the SINGLE SOURCE OF TRUTH for:
- Event and habit record field defaults
- Business logic validation
- Complete record structure building
- Stored record → model conversion (models.py)

### Build Functions
Each record type has a `build_<record>()` function that:
- Takes user input (service call data) with DATA_* keys
- Generates event_id (UUID) for new events
- Normalizes datetimes to ISO strings and weekdays to platform numbers
- Returns a complete record ready for storage

### Validation Functions
`validate_event_data()` returns a dict of errors (empty if valid);
`build_event()` raises EntityValidationError on the first error.

### Conversion Functions
`event_data_to_item()` and `habit_data_to_model()` turn stored records into
the frozen models read by the schedule engine.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
import uuid

from . import const
from .models import AttachPosition, Habit, HabitEvent, PlainEvent, ScheduleItem, Weekday
from .type_defs import EventData, HabitData
from .utils.dt_utils import dt_parse

# ==============================================================================
# HELPER FUNCTIONS FOR FIELD NORMALIZATION
# ==============================================================================


def _normalize_list_field(value: Any) -> list[Any]:
    """Normalize a field that should be a list.

    Handles cases where the value might be:
    - Already a list → return as-is
    - None → return empty list
    - A single scalar or string → wrap in a list
    """
    if value is None:
        return []
    if isinstance(value, list):
        return value
    if isinstance(value, (str, int)):
        return [value]
    return list(value)


def _iso_or_none(value: Any) -> str | None:
    parsed = dt_parse(value)
    return parsed.isoformat() if parsed else None


def parse_weekdays(value: Any) -> list[int]:
    """Normalize weekday input to sorted, de-duplicated platform numbers.

    Raises:
        ValueError: an entry does not name a weekday
    """
    days = {Weekday.parse(item) for item in _normalize_list_field(value)}
    return [day.platform_number for day in sorted(days)]


def parse_attach_position(raw: Any) -> AttachPosition | None:
    """Return the attach position for a stored value, or None if unset/unknown."""
    if raw is None:
        return None
    try:
        return AttachPosition(str(raw).lower())
    except ValueError:
        return None


# ==============================================================================
# EXCEPTIONS
# ==============================================================================


class EntityValidationError(Exception):
    """Validation error with field-specific information.

    Raised when business logic validation fails in record creation or update.
    The service layer converts it into a HomeAssistantError.

    Attributes:
        field: The DATA_* constant identifying the field that failed
        translation_key: The TRANS_KEY_* constant for the error message
        placeholders: Optional dict for translation string placeholders

    Example:
        raise EntityValidationError(
            field=const.DATA_EVENT_TITLE,
            translation_key=const.TRANS_KEY_INVALID_TITLE,
        )
    """

    def __init__(
        self,
        field: str,
        translation_key: str,
        placeholders: dict[str, str] | None = None,
    ) -> None:
        """Initialize EntityValidationError."""
        self.field = field
        self.translation_key = translation_key
        self.placeholders = placeholders or {}
        super().__init__(translation_key)


# ==============================================================================
# EVENTS
# ==============================================================================


def validate_event_data(data: dict[str, Any]) -> dict[str, str]:
    """Validate event business rules.

    Works with DATA_* keys (canonical storage format).

    Returns:
        Dict of errors: {field: translation_key}
        Empty dict means validation passed.

    Validation Rules:
        1. Title not blank
        2. Start time present and parseable
        3. End time, if present, parseable and not before start time
        4. Weekdays are valid platform numbers or names
        5. Attach position, if present, is before/after
    """
    errors: dict[str, str] = {}

    # === 1. Title ===
    title = data.get(const.DATA_EVENT_TITLE, "")
    if not isinstance(title, str) or not title.strip():
        errors[const.DATA_EVENT_TITLE] = const.TRANS_KEY_INVALID_TITLE
        return errors

    # === 2. Start time ===
    start = dt_parse(data.get(const.DATA_EVENT_START_TIME))
    if start is None:
        errors[const.DATA_EVENT_START_TIME] = const.TRANS_KEY_INVALID_START_TIME
        return errors

    # === 3. End time ===
    raw_end = data.get(const.DATA_EVENT_END_TIME)
    if raw_end is not None:
        end = dt_parse(raw_end)
        if end is None or end < start:
            errors[const.DATA_EVENT_END_TIME] = const.TRANS_KEY_INVALID_END_TIME
            return errors

    # === 4. Weekdays ===
    try:
        parse_weekdays(data.get(const.DATA_EVENT_WEEKDAYS))
    except ValueError:
        errors[const.DATA_EVENT_WEEKDAYS] = const.TRANS_KEY_INVALID_WEEKDAY
        return errors

    # === 5. Attach position ===
    raw_position = data.get(const.DATA_EVENT_ATTACH_POSITION)
    if raw_position is not None and parse_attach_position(raw_position) is None:
        errors[const.DATA_EVENT_ATTACH_POSITION] = (
            const.TRANS_KEY_INVALID_ATTACH_POSITION
        )

    return errors


def build_event(
    user_input: dict[str, Any],
    existing: EventData | None = None,
) -> EventData:
    """Build event data for create or update operations.

    One function handles both create (existing=None) and update
    (existing=EventData); on update, fields missing from user_input keep
    their existing values.

    Raises:
        EntityValidationError: the merged record fails validation
    """
    merged: dict[str, Any] = dict(existing or {})
    merged.update(user_input)

    errors = validate_event_data(merged)
    if errors:
        field, translation_key = next(iter(errors.items()))
        raise EntityValidationError(field=field, translation_key=translation_key)

    is_habit = bool(merged.get(const.DATA_EVENT_IS_HABIT, False))
    event: EventData = {
        const.DATA_EVENT_ID: str(merged.get(const.DATA_EVENT_ID) or uuid.uuid4()),
        const.DATA_EVENT_TITLE: merged[const.DATA_EVENT_TITLE].strip(),
        const.DATA_EVENT_START_TIME: _iso_or_none(merged[const.DATA_EVENT_START_TIME]),
        const.DATA_EVENT_END_TIME: _iso_or_none(merged.get(const.DATA_EVENT_END_TIME)),
        const.DATA_EVENT_WEEKDAYS: parse_weekdays(merged.get(const.DATA_EVENT_WEEKDAYS)),
        const.DATA_EVENT_IS_HABIT: is_habit,
    }  # type: ignore[typeddict-item]

    if is_habit:
        position = parse_attach_position(merged.get(const.DATA_EVENT_ATTACH_POSITION))
        event[const.DATA_EVENT_ANCHOR_EVENT_ID] = merged.get(
            const.DATA_EVENT_ANCHOR_EVENT_ID
        )
        event[const.DATA_EVENT_ATTACH_POSITION] = position.value if position else None

    return event


def build_habit_event(
    title: str,
    anchor: EventData,
    position: str = const.ATTACH_POSITION_AFTER,
    event_id: str | None = None,
) -> EventData:
    """Build a habit event attached to an anchor event.

    The habit mirrors the anchor's weekdays and is placed one minute before
    the anchor's start (before) or one minute after its end, falling back to
    its start (after).

    Raises:
        EntityValidationError: unknown position, or the anchor is itself a habit
    """
    attach = parse_attach_position(position)
    if attach is None:
        raise EntityValidationError(
            field=const.DATA_EVENT_ATTACH_POSITION,
            translation_key=const.TRANS_KEY_INVALID_ATTACH_POSITION,
            placeholders={"value": str(position)},
        )
    if anchor.get(const.DATA_EVENT_IS_HABIT):
        raise EntityValidationError(
            field=const.DATA_EVENT_ANCHOR_EVENT_ID,
            translation_key=const.TRANS_KEY_INVALID_ANCHOR,
            placeholders={"value": anchor[const.DATA_EVENT_ID]},
        )

    anchor_start = dt_parse(anchor[const.DATA_EVENT_START_TIME])
    if attach is AttachPosition.BEFORE:
        start = anchor_start - const.HABIT_PLACEMENT_OFFSET
    else:
        anchor_end = dt_parse(anchor.get(const.DATA_EVENT_END_TIME)) or anchor_start
        start = anchor_end + const.HABIT_PLACEMENT_OFFSET

    user_input: dict[str, Any] = {
        const.DATA_EVENT_TITLE: title,
        const.DATA_EVENT_START_TIME: start,
        const.DATA_EVENT_END_TIME: None,
        const.DATA_EVENT_WEEKDAYS: list(anchor[const.DATA_EVENT_WEEKDAYS]),
        const.DATA_EVENT_IS_HABIT: True,
        const.DATA_EVENT_ANCHOR_EVENT_ID: anchor[const.DATA_EVENT_ID],
        const.DATA_EVENT_ATTACH_POSITION: attach.value,
    }
    if event_id:
        user_input[const.DATA_EVENT_ID] = event_id
    return build_event(user_input)


# ==============================================================================
# HABITS
# ==============================================================================


def build_habit(habit_id: str, last_completed_at: datetime | None = None) -> HabitData:
    """Build habit completion metadata."""
    return {
        const.DATA_HABIT_ID: habit_id,
        const.DATA_HABIT_LAST_COMPLETED_AT: (
            last_completed_at.isoformat() if last_completed_at else None
        ),
    }


# ==============================================================================
# MODEL CONVERSION
# ==============================================================================


def event_data_to_item(data: EventData) -> ScheduleItem:
    """Convert a stored event record to a PlainEvent or HabitEvent.

    Unknown stored weekday numbers are dropped. A habit without a valid
    attach position gets the HabitEvent default (after).
    """
    valid_numbers = {day.platform_number for day in Weekday}
    weekdays = frozenset(
        Weekday(number)
        for number in data.get(const.DATA_EVENT_WEEKDAYS) or []
        if number in valid_numbers
    )
    common: dict[str, Any] = {
        "event_id": data[const.DATA_EVENT_ID],
        "title": data.get(const.DATA_EVENT_TITLE, ""),
        "start_time": dt_parse(data.get(const.DATA_EVENT_START_TIME)),
        "end_time": dt_parse(data.get(const.DATA_EVENT_END_TIME)),
        "weekdays": weekdays,
    }

    if not data.get(const.DATA_EVENT_IS_HABIT):
        return PlainEvent(**common)

    position = parse_attach_position(data.get(const.DATA_EVENT_ATTACH_POSITION))
    if position is not None:
        common["position"] = position
    return HabitEvent(
        anchor_event_id=data.get(const.DATA_EVENT_ANCHOR_EVENT_ID), **common
    )


def habit_data_to_model(data: HabitData) -> Habit:
    """Convert stored habit metadata to a Habit model."""
    return Habit(
        habit_id=data[const.DATA_HABIT_ID],
        last_completed_at=dt_parse(data.get(const.DATA_HABIT_LAST_COMPLETED_AT)),
    )
