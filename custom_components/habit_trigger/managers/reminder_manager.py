# File: managers/reminder_manager.py
"""Reminder Manager for Habit Trigger integration.

Owns the lifecycle of habit reminders:
- Computes the next fire instant via the schedule engine
- Replaces any pending reminder for the same habit (at most one per habit)
- Cancels reminders when habits are completed elsewhere or events are deleted

The delivery subsystem is an injected collaborator implementing
ReminderDelivery (HassReminderDelivery in production, a fake in tests).
Delivery failures are logged and swallowed: scheduling is best-effort and a
later reschedule is the only recovery path.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Protocol

from .. import const
from ..engines.schedule_engine import compute_next_fire_date
from ..models import Habit, HabitEvent
from ..utils.dt_utils import dt_now_utc

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

    from ..models import RecurringEvent, ScheduleItem
    from ..stores import EventStore, HabitStore


class ReminderDelivery(Protocol):
    """Host notification-delivery subsystem."""

    async def async_install(
        self, identifier: str, fire_at: datetime, title: str, body: str | None
    ) -> None:
        """Install a one-shot reminder, replacing any with the same identifier."""

    async def async_cancel(self, identifier: str) -> None:
        """Remove a pending reminder; unknown identifiers are ignored."""


class ReminderManager:
    """Schedule and cancel habit reminders keyed by habit id.

    Uses stores for:
    - Looking up habit events and their anchors (async_reschedule*)
    - Reading completion metadata
    """

    def __init__(
        self,
        delivery: ReminderDelivery,
        event_store: EventStore | None = None,
        habit_store: HabitStore | None = None,
        now_func: Callable[[], datetime] = dt_now_utc,
    ) -> None:
        self._delivery = delivery
        self._event_store = event_store
        self._habit_store = habit_store
        self._now = now_func
        # Serializes cancel-then-install per reminder identifier
        self._locks: dict[str, asyncio.Lock] = {}

    @staticmethod
    def reminder_identifier(habit_id: str) -> str:
        """Stable delivery identifier for a habit's reminder."""
        return f"{const.REMINDER_ID_PREFIX}{habit_id}"

    def _lock_for(self, identifier: str) -> asyncio.Lock:
        return self._locks.setdefault(identifier, asyncio.Lock())

    # =========================================================================
    # Core lifecycle
    # =========================================================================

    async def async_schedule_next_reminder(
        self,
        habit: Habit,
        habit_event: ScheduleItem,
        anchor_event: RecurringEvent,
        title: str | None = None,
        body: str | None = None,
    ) -> datetime | None:
        """Compute and install the next reminder for a habit.

        No-op (returns None) if `habit_event` is not a habit or no fire
        instant can be computed; an existing reminder is left untouched in
        that case.

        Returns:
            The installed fire instant (UTC), or None.
        """
        match habit_event:
            case HabitEvent():
                pass
            case _:
                const.LOGGER.debug(
                    "Event %s is not a habit, no reminder scheduled",
                    habit_event.event_id,
                )
                return None

        fire_at = compute_next_fire_date(habit, habit_event, anchor_event, self._now())
        if fire_at is None:
            const.LOGGER.debug("No fire date for habit %s", habit.habit_id)
            return None

        identifier = self.reminder_identifier(habit.habit_id)
        reminder_title = title or habit_event.title
        reminder_body = (
            body
            if body is not None
            else const.DEFAULT_REMINDER_MESSAGE.format(title=habit_event.title)
        )

        async with self._lock_for(identifier):
            try:
                await self._delivery.async_cancel(identifier)
                await self._delivery.async_install(
                    identifier, fire_at, reminder_title, reminder_body
                )
            except Exception as err:  # pylint: disable=broad-exception-caught
                # Previous reminder is already cancelled at this point
                const.LOGGER.warning(
                    "WARNING: Failed to install reminder '%s' at %s: %s",
                    identifier,
                    fire_at.isoformat(),
                    err,
                )
                return None

        const.LOGGER.debug(
            "Reminder '%s' scheduled for %s", identifier, fire_at.isoformat()
        )
        return fire_at

    async def async_cancel_reminder(self, habit_id: str) -> None:
        """Remove any pending reminder for a habit. Idempotent."""
        identifier = self.reminder_identifier(habit_id)
        async with self._lock_for(identifier):
            try:
                await self._delivery.async_cancel(identifier)
            except Exception as err:  # pylint: disable=broad-exception-caught
                const.LOGGER.warning(
                    "WARNING: Failed to cancel reminder '%s': %s", identifier, err
                )
                return
        const.LOGGER.debug("Reminder '%s' cancelled", identifier)

    # =========================================================================
    # Store-driven helpers
    # =========================================================================

    async def async_reschedule(
        self, habit_id: str, title: str | None = None, body: str | None = None
    ) -> datetime | None:
        """Reschedule a habit using the current store contents.

        A habit whose anchor no longer resolves has its reminder cancelled.
        """
        if self._event_store is None or self._habit_store is None:
            raise RuntimeError("ReminderManager was created without stores")

        habit_event = self._event_store.get(habit_id)
        if not isinstance(habit_event, HabitEvent):
            const.LOGGER.debug("Event %s is not a habit, skipping reschedule", habit_id)
            return None

        anchor = (
            self._event_store.get(habit_event.anchor_event_id)
            if habit_event.anchor_event_id
            else None
        )
        if anchor is None:
            const.LOGGER.debug(
                "Habit %s has no resolvable anchor, cancelling its reminder", habit_id
            )
            await self.async_cancel_reminder(habit_id)
            return None

        habit = self._habit_store.get(habit_id) or Habit(habit_id=habit_id)
        return await self.async_schedule_next_reminder(
            habit, habit_event, anchor, title=title, body=body
        )

    async def async_reschedule_all(self) -> dict[str, datetime | None]:
        """Reschedule every habit event. Returns fire instants by habit id."""
        if self._event_store is None:
            raise RuntimeError("ReminderManager was created without stores")

        results: dict[str, datetime | None] = {}
        for habit_event in self._event_store.habit_events():
            results[habit_event.event_id] = await self.async_reschedule(
                habit_event.event_id
            )
        const.LOGGER.info(
            "INFO: Rescheduled %s habit reminder(s), %s pending",
            len(results),
            sum(1 for fire_at in results.values() if fire_at is not None),
        )
        return results

    async def async_handle_event_deleted(
        self, event_id: str, attached_habit_ids: list[str] | None = None
    ) -> None:
        """Cancel reminders affected by an event deletion.

        Args:
            event_id: The deleted event (its own reminder, if a habit, is cancelled)
            attached_habit_ids: Habits that were anchored to the deleted event
        """
        for habit_id in [event_id, *(attached_habit_ids or [])]:
            await self.async_cancel_reminder(habit_id)
            self._release_lock(self.reminder_identifier(habit_id))

    def _release_lock(self, identifier: str) -> None:
        """Forget an idle per-habit lock once its reminder is gone."""
        lock = self._locks.get(identifier)
        if lock is not None and not lock.locked():
            del self._locks[identifier]
