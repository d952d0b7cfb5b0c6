"""Schedule Engine for Habit Trigger.

Computes the single next moment a habit reminder should fire:
- `resolve_next_occurrence`: next calendar date (today or later) on which a
  weekday set recurs, using a bounded `dateutil.rrule` scan
- `compute_next_fire_date`: completion-driven or anchor-driven fire instant,
  always REMINDER_LEAD_TIME before the chosen boundary

All calendar-day math happens in the local timezone (dt_utils default unless
overridden). Returned instants are UTC.

IMPORTANT: This module is pure. It must NOT import from managers, services or
anything that touches Home Assistant state.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import TYPE_CHECKING

from dateutil.rrule import DAILY, rrule

from .. import const
from ..models import AttachPosition, HabitEvent, RecurringEvent
from ..utils.dt_utils import (
    as_local,
    as_utc,
    combine_local,
    dt_now_utc,
    get_default_timezone,
    time_of_day,
)

if TYPE_CHECKING:
    from collections.abc import Collection
    from zoneinfo import ZoneInfo

    from ..models import Habit, Weekday


def first_matching_date(
    weekdays: Collection[Weekday],
    start: date,
    horizon_days: int = const.OCCURRENCE_LOOKAHEAD_DAYS,
) -> date | None:
    """Return the earliest date in [start, start + horizon_days] whose weekday is in the set.

    Weekday membership is translated to rrule weekdays here, at the boundary.
    """
    if not weekdays:
        return None

    dtstart = datetime.combine(start, time.min)
    rule = rrule(
        DAILY,
        dtstart=dtstart,
        until=dtstart + timedelta(days=horizon_days),
        byweekday=[day.rrule_weekday for day in weekdays],
    )
    match = rule.after(dtstart, inc=True)
    return match.date() if match else None


def resolve_next_occurrence(
    weekdays: Collection[Weekday],
    reference_time: datetime,
    anchor_date_hint: date | None = None,
    tz: ZoneInfo | None = None,
) -> date:
    """Return the next date (today included) on which the weekday set recurs.

    Args:
        weekdays: Recurrence set. Empty means a one-off event.
        reference_time: "Now"; its local calendar day is "today".
        anchor_date_hint: Calendar date of a one-off event.
        tz: Optional timezone override.

    Returns:
        - Empty set: the hint if it is today or later, otherwise tomorrow.
        - Otherwise: the first matching date within the lookahead horizon,
          falling back to today when nothing matches.
    """
    today = as_local(reference_time, tz).date()

    if not weekdays:
        if anchor_date_hint is not None and anchor_date_hint >= today:
            return anchor_date_hint
        return today + timedelta(days=1)

    match = first_matching_date(weekdays, today)
    if match is None:
        const.LOGGER.debug(
            "No weekday match within %s days of %s, using today",
            const.OCCURRENCE_LOOKAHEAD_DAYS,
            today,
        )
        return today
    return match


def anchor_boundary(anchor: RecurringEvent, position: AttachPosition) -> datetime | None:
    """Return the anchor time whose time-of-day the reminder is built from.

    Before uses the start; After uses the end, falling back to the start.
    """
    if position is AttachPosition.BEFORE:
        return anchor.start_time
    return anchor.end_time or anchor.start_time


def compute_next_fire_date(
    habit: Habit,
    habit_event: HabitEvent,
    anchor_event: RecurringEvent,
    now: datetime | None = None,
    tz: ZoneInfo | None = None,
) -> datetime | None:
    """Compute the next reminder fire instant for a habit.

    Rules, first match wins:
    1. Habit has a completion: completion time-of-day applied to tomorrow
       (relative to `now`), minus the lead. No "already passed" check.
    2. Otherwise the anchor's next occurrence at its start (Before) or end
       (After) time-of-day, rolled forward if not strictly after `now`, minus
       the lead.
    3. No usable anchor time: None.

    Returns:
        Fire instant as UTC datetime, or None if nothing should be scheduled.
    """
    tz_info = tz or get_default_timezone()
    local_now = as_local(now or dt_now_utc(), tz_info)

    if habit.last_completed_at is not None:
        completed_tod = time_of_day(habit.last_completed_at, tz_info)
        tomorrow = local_now.date() + timedelta(days=1)
        target = combine_local(tomorrow, completed_tod, tz_info)
        fire_at = as_utc(target) - const.REMINDER_LEAD_TIME
        const.LOGGER.debug(
            "Habit %s: completion-driven reminder at %s (completed at %s)",
            habit.habit_id,
            fire_at.isoformat(),
            habit.last_completed_at.isoformat(),
        )
        return fire_at

    return _next_fire_date_for_anchor(
        anchor_event, habit_event.position, local_now, tz_info
    )


def _next_fire_date_for_anchor(
    anchor: RecurringEvent,
    position: AttachPosition,
    local_now: datetime,
    tz: ZoneInfo,
) -> datetime | None:
    """Fire instant REMINDER_LEAD_TIME before the anchor's next boundary."""
    base = anchor_boundary(anchor, position)
    if base is None:
        const.LOGGER.debug(
            "Anchor %s has no start time, cannot compute reminder", anchor.event_id
        )
        return None

    hint = as_local(anchor.start_time, tz).date() if anchor.start_time else None
    target_date = resolve_next_occurrence(anchor.weekdays, local_now, hint, tz)

    boundary_tod = time_of_day(base, tz)
    candidate = combine_local(target_date, boundary_tod, tz)

    # Same-zone comparison would ignore fold in the repeated DST hour
    if as_utc(candidate) <= as_utc(local_now):
        candidate = _roll_forward(anchor, candidate, tz)

    fire_at = as_utc(candidate) - const.REMINDER_LEAD_TIME
    const.LOGGER.debug(
        "Anchor %s (%s): reminder at %s for boundary %s",
        anchor.event_id,
        position,
        fire_at.isoformat(),
        candidate.isoformat(),
    )
    return fire_at


def _roll_forward(anchor: RecurringEvent, candidate: datetime, tz: ZoneInfo) -> datetime:
    """Move a passed candidate to the next occurrence, keeping its time-of-day."""
    candidate_tod = time_of_day(candidate, tz)
    candidate_day = candidate.date()

    if not anchor.weekdays:
        return combine_local(candidate_day + timedelta(days=1), candidate_tod, tz)

    next_day = first_matching_date(
        anchor.weekdays,
        candidate_day + timedelta(days=1),
        horizon_days=const.OCCURRENCE_LOOKAHEAD_DAYS - 1,
    )
    if next_day is None:
        return candidate
    return combine_local(next_day, candidate_tod, tz)
