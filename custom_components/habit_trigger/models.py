# File: models.py
"""Domain models for the Habit Trigger reminder engine.

- Weekday: 7-value enumeration in platform numbering (Sunday=1..Saturday=7)
- AttachPosition: where a habit sits relative to its anchor event
- ScheduleItem: tagged variant, either a PlainEvent or a HabitEvent
- Habit: completion metadata owned by the habit store

All models are frozen; the engine only reads them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import IntEnum, StrEnum
from typing import TypeAlias

from dateutil.rrule import FR, MO, SA, SU, TH, TU, WE, weekday

from . import const

# Indexed by Python's date.weekday() (Monday=0)
_RRULE_WEEKDAYS: tuple[weekday, ...] = (MO, TU, WE, TH, FR, SA, SU)


class Weekday(IntEnum):
    """Day of week using the platform numbering, Sunday first."""

    SUNDAY = 1
    MONDAY = 2
    TUESDAY = 3
    WEDNESDAY = 4
    THURSDAY = 5
    FRIDAY = 6
    SATURDAY = 7

    @classmethod
    def from_platform(cls, number: int) -> Weekday:
        """Return the weekday for a platform number (1..7).

        Raises:
            ValueError: number is outside 1..7
        """
        return cls(number)

    @classmethod
    def from_date(cls, day: date) -> Weekday:
        """Return the weekday of a calendar date."""
        # isoweekday: Monday=1..Sunday=7
        return cls(day.isoweekday() % 7 + 1)

    @classmethod
    def sunday_first(cls) -> list[Weekday]:
        """Return all weekdays in canonical order."""
        return sorted(cls)

    @classmethod
    def parse(cls, value: int | str | Weekday) -> Weekday:
        """Parse a platform number, an English day name or a 3-letter abbreviation.

        Raises:
            ValueError: value does not name a weekday
        """
        if isinstance(value, Weekday):
            return value
        if isinstance(value, int):
            return cls.from_platform(value)
        text = str(value).strip()
        if text.isdigit():
            return cls.from_platform(int(text))
        lowered = text.lower()
        for day in cls:
            if lowered in (day.name.lower(), day.name.lower()[:3]):
                return day
        raise ValueError(f"'{value}' is not a valid weekday")

    @property
    def platform_number(self) -> int:
        """Platform weekday number (Sunday=1)."""
        return int(self.value)

    @property
    def python_weekday(self) -> int:
        """Python/dateutil weekday number (Monday=0)."""
        return (self.value - 2) % 7

    @property
    def rrule_weekday(self) -> weekday:
        """dateutil rrule weekday constant."""
        return _RRULE_WEEKDAYS[self.python_weekday]

    @property
    def short_label(self) -> str:
        """Single-letter label (S M T W T F S)."""
        return self.name[0]

    @property
    def full_name(self) -> str:
        """Capitalized English name."""
        return self.name.capitalize()


class AttachPosition(StrEnum):
    """Habit placement relative to its anchor event."""

    BEFORE = const.ATTACH_POSITION_BEFORE
    AFTER = const.ATTACH_POSITION_AFTER


@dataclass(frozen=True, kw_only=True)
class RecurringEvent:
    """Weekly recurring schedule.

    start_time/end_time are only read for their local time-of-day, except that
    start_time's calendar date is the occurrence hint when `weekdays` is empty.
    """

    event_id: str
    title: str
    start_time: datetime | None
    end_time: datetime | None = None
    weekdays: frozenset[Weekday] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        object.__setattr__(self, "weekdays", frozenset(self.weekdays))


@dataclass(frozen=True, kw_only=True)
class PlainEvent(RecurringEvent):
    """An ordinary event; may serve as a habit's anchor."""


@dataclass(frozen=True, kw_only=True)
class HabitEvent(RecurringEvent):
    """An event representing a habit attached to an anchor event."""

    anchor_event_id: str | None = None
    position: AttachPosition = AttachPosition.AFTER


ScheduleItem: TypeAlias = PlainEvent | HabitEvent


@dataclass(frozen=True, kw_only=True)
class Habit:
    """Completion metadata; habit_id equals the habit event's event_id."""

    habit_id: str
    last_completed_at: datetime | None = None
