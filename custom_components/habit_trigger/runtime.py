# File: runtime.py
"""Runtime objects shared by the integration setup and its services."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from homeassistant.exceptions import HomeAssistantError

from . import const

if TYPE_CHECKING:
    from homeassistant.core import HomeAssistant

    from .managers import ReminderManager
    from .notification_helper import HassReminderDelivery
    from .storage_manager import HabitTriggerStorageManager
    from .stores import EventStore, HabitStore


@dataclass
class HabitTriggerRuntime:
    """Everything wired together by async_setup."""

    storage: HabitTriggerStorageManager
    event_store: EventStore
    habit_store: HabitStore
    delivery: HassReminderDelivery
    reminders: ReminderManager


def get_runtime(hass: HomeAssistant) -> HabitTriggerRuntime:
    """Return the integration runtime.

    Raises:
        HomeAssistantError: the integration has not been set up
    """
    runtime = hass.data.get(const.DOMAIN, {}).get(const.RUNTIME)
    if runtime is None:
        raise HomeAssistantError(const.MSG_NOT_SET_UP)
    return runtime
