"""Type definitions for Habit Trigger stored data structures.

Stored records are plain JSON-compatible dicts (ISO strings, platform weekday
numbers) described here with TypedDict. The scheduling engine never reads
these directly: data_builders converts them into the frozen models defined
in models.py.

IMPORTANT: This file must NOT import from managers, services or any module
that imports them. Only typing machinery.

NOTE: TypedDict is STATIC ANALYSIS ONLY. Runtime checks live in
data_builders.py.
"""

from typing import NotRequired, TypedDict

# =============================================================================
# Type Aliases (for readability)
# =============================================================================

EventId = str  # UUID string
HabitId = str  # Same value as the owning habit event's EventId
ISODatetime = str  # ISO 8601 datetime string "2026-01-18T12:30:00+00:00"


# =============================================================================
# Stored Records
# =============================================================================


class EventData(TypedDict):
    """Stored record for an event or a habit event.

    Habit metadata is only meaningful when `is_habit` is true.
    """

    event_id: EventId
    title: str
    start_time: ISODatetime
    end_time: ISODatetime | None
    weekdays: list[int]  # Platform numbering, Sunday=1..Saturday=7
    is_habit: bool
    anchor_event_id: NotRequired[EventId | None]
    attach_position: NotRequired[str | None]  # ATTACH_POSITION_* or unset


class HabitData(TypedDict):
    """Stored completion metadata for a habit (1:1 with its habit event)."""

    habit_id: HabitId
    last_completed_at: ISODatetime | None


class StorageData(TypedDict):
    """Top-level persisted structure."""

    events: dict[EventId, EventData]
    habits: dict[HabitId, HabitData]


# =============================================================================
# Collection Type Aliases
# =============================================================================

EventsCollection = dict[EventId, EventData]
HabitsCollection = dict[HabitId, HabitData]
