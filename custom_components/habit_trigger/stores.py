# File: stores.py
"""In-memory registries for events and habits.

The stores wrap the persisted buckets owned by the storage manager and are
passed explicitly into the reminder manager. Every mutation calls the
`on_change` callback so the storage manager can schedule a delayed save.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING

from . import const
from .data_builders import build_habit, event_data_to_item, habit_data_to_model
from .models import AttachPosition, Habit, HabitEvent, PlainEvent, ScheduleItem
from .utils.dt_utils import as_local, as_utc, dt_now_utc

if TYPE_CHECKING:
    from collections.abc import Callable

    from .models import Weekday
    from .type_defs import EventData, EventsCollection, HabitsCollection


def _start_title_key(item: ScheduleItem) -> tuple[bool, datetime, str]:
    if item.start_time is None:
        return (True, datetime.min, item.title.casefold())
    return (False, as_utc(item.start_time), item.title.casefold())


class EventStore:
    """Registry of events and habit events keyed by event_id."""

    def __init__(
        self,
        events: EventsCollection,
        on_change: Callable[[], None] | None = None,
    ) -> None:
        self._events = events
        self._on_change = on_change

    def _changed(self) -> None:
        if self._on_change is not None:
            self._on_change()

    # -------- CRUD --------
    def add(self, event: EventData) -> None:
        self._events[event[const.DATA_EVENT_ID]] = event
        self._changed()

    def update(self, event: EventData) -> bool:
        """Replace an existing event. Unknown ids are ignored."""
        event_id = event[const.DATA_EVENT_ID]
        if event_id not in self._events:
            return False
        self._events[event_id] = event
        self._changed()
        return True

    def delete(self, event_id: str) -> bool:
        if self._events.pop(event_id, None) is None:
            return False
        self._changed()
        return True

    def get_data(self, event_id: str) -> EventData | None:
        return self._events.get(event_id)

    def get(self, event_id: str) -> ScheduleItem | None:
        data = self._events.get(event_id)
        return event_data_to_item(data) if data else None

    def items(self) -> list[ScheduleItem]:
        return [event_data_to_item(data) for data in self._events.values()]

    # -------- Views --------
    def plain_events(self) -> list[PlainEvent]:
        """Non-habit events by start time, then title."""
        plain = [item for item in self.items() if isinstance(item, PlainEvent)]
        return sorted(plain, key=_start_title_key)

    def habit_events(self) -> list[HabitEvent]:
        """Habit events by anchor title, then position (before first), then title."""

        def sort_key(habit: HabitEvent) -> tuple[str, int, str]:
            anchor = self.get(habit.anchor_event_id) if habit.anchor_event_id else None
            anchor_title = anchor.title if anchor else "Unknown event"
            return (
                anchor_title.casefold(),
                0 if habit.position is AttachPosition.BEFORE else 1,
                habit.title.casefold(),
            )

        habits = [item for item in self.items() if isinstance(item, HabitEvent)]
        return sorted(habits, key=sort_key)

    def habits_attached_to(self, anchor_id: str) -> list[HabitEvent]:
        """Habit events anchored to an event, before first."""
        attached = [
            item
            for item in self.items()
            if isinstance(item, HabitEvent) and item.anchor_event_id == anchor_id
        ]
        return sorted(attached, key=lambda h: h.position is not AttachPosition.BEFORE)

    def events_for_day(self, day: date) -> list[ScheduleItem]:
        """Events whose start time falls on a local calendar date."""
        matching = [
            item
            for item in self.items()
            if item.start_time is not None and as_local(item.start_time).date() == day
        ]
        return sorted(matching, key=_start_title_key)

    def events_for_weekday(self, weekday: Weekday) -> list[ScheduleItem]:
        """Events recurring on a weekday."""
        matching = [item for item in self.items() if weekday in item.weekdays]
        return sorted(matching, key=_start_title_key)


class HabitStore:
    """Registry of habit completion metadata keyed by habit_id."""

    def __init__(
        self,
        habits: HabitsCollection,
        on_change: Callable[[], None] | None = None,
    ) -> None:
        self._habits = habits
        self._on_change = on_change

    def _changed(self) -> None:
        if self._on_change is not None:
            self._on_change()

    def get(self, habit_id: str) -> Habit | None:
        data = self._habits.get(habit_id)
        return habit_data_to_model(data) if data else None

    def mark_completed(self, habit_id: str, at: datetime | None = None) -> Habit:
        """Record a completion, creating the habit on first completion."""
        completed_at = as_utc(at) if at is not None else dt_now_utc()
        self._habits[habit_id] = build_habit(habit_id, completed_at)
        self._changed()
        const.LOGGER.debug("Habit %s marked completed", habit_id)
        return habit_data_to_model(self._habits[habit_id])

    def clear_completion(self, habit_id: str) -> None:
        if habit_id not in self._habits:
            return
        self._habits[habit_id] = build_habit(habit_id)
        self._changed()

    def delete(self, habit_id: str) -> None:
        if self._habits.pop(habit_id, None) is not None:
            self._changed()
