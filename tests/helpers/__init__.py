"""Test helpers for Habit Trigger tests.

- FakeReminderDelivery: in-memory ReminderDelivery recording every call
- make_anchor / make_habit_event: model factories with sensible defaults
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo

from custom_components.habit_trigger.models import (
    AttachPosition,
    HabitEvent,
    PlainEvent,
    Weekday,
)

UTC_TZ = ZoneInfo("UTC")


class FakeReminderDelivery:
    """Delivery collaborator keeping pending reminders in a dict."""

    def __init__(self) -> None:
        self.pending: dict[str, tuple[datetime, str, str | None]] = {}
        self.calls: list[tuple[str, str]] = []
        self.install_error: Exception | None = None
        self.cancel_error: Exception | None = None

    async def async_install(
        self, identifier: str, fire_at: datetime, title: str, body: str | None
    ) -> None:
        self.calls.append(("install", identifier))
        # Yield so concurrent schedules for one key can interleave
        await asyncio.sleep(0)
        if self.install_error is not None:
            raise self.install_error
        self.pending[identifier] = (fire_at, title, body)

    async def async_cancel(self, identifier: str) -> None:
        self.calls.append(("cancel", identifier))
        await asyncio.sleep(0)
        if self.cancel_error is not None:
            raise self.cancel_error
        self.pending.pop(identifier, None)


def utc(year: int, month: int, day: int, hour: int = 0, minute: int = 0) -> datetime:
    """Create a UTC datetime for testing."""
    return datetime(year, month, day, hour, minute, tzinfo=UTC_TZ)


def make_anchor(
    weekdays: set[Weekday] | None = None,
    start_time: datetime | None = None,
    end_time: datetime | None = None,
    event_id: str = "anchor-1",
    title: str = "Morning run",
) -> PlainEvent:
    """Create an anchor event (defaults: Mondays 09:00-09:30)."""
    return PlainEvent(
        event_id=event_id,
        title=title,
        start_time=start_time if start_time is not None else utc(2024, 12, 2, 9),
        end_time=end_time,
        weekdays=frozenset(weekdays if weekdays is not None else {Weekday.MONDAY}),
    )


def make_habit_event(
    position: AttachPosition | None = None,
    event_id: str = "habit-1",
    anchor_event_id: str = "anchor-1",
    **kwargs: Any,
) -> HabitEvent:
    """Create a habit event; omitting position uses the constructor default."""
    fields: dict[str, Any] = {
        "event_id": event_id,
        "title": "Stretch",
        "start_time": utc(2024, 12, 2, 8, 59),
        "anchor_event_id": anchor_event_id,
    }
    fields.update(kwargs)
    if position is not None:
        fields["position"] = position
    return HabitEvent(**fields)
