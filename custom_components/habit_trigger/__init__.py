# File: __init__.py
"""Initialization file for the Habit Trigger integration.

Handles setting up the integration from YAML, loading stored events and
habits, wiring the reminder manager to Home Assistant's scheduler and notify
services, and registering services.

Key Features:
- Storage management for persistent events and habit completions.
- One pending reminder per habit, recomputed at startup.
- Services for scripts and automations.
"""

from __future__ import annotations

from typing import Any

import voluptuous as vol
from homeassistant.const import EVENT_HOMEASSISTANT_STOP
from homeassistant.core import Event, HomeAssistant, callback
from homeassistant.helpers import config_validation as cv
from homeassistant.helpers.typing import ConfigType
from homeassistant.util import dt as dt_util

from . import const
from .managers import ReminderManager
from .notification_helper import HassReminderDelivery
from .runtime import HabitTriggerRuntime
from .services import async_setup_services
from .storage_manager import HabitTriggerStorageManager
from .stores import EventStore, HabitStore
from .utils.dt_utils import set_default_timezone

CONFIG_SCHEMA = vol.Schema(
    {
        const.DOMAIN: vol.Schema(
            {vol.Optional(const.CONF_NOTIFY_SERVICE): cv.string},
        )
    },
    extra=vol.ALLOW_EXTRA,
)


async def async_setup(hass: HomeAssistant, config: ConfigType) -> bool:
    """Set up Habit Trigger from configuration.yaml."""
    conf: dict[str, Any] = config.get(const.DOMAIN) or {}

    time_zone = dt_util.get_time_zone(hass.config.time_zone)
    if time_zone is not None:
        set_default_timezone(time_zone)

    storage = HabitTriggerStorageManager(hass)
    await storage.async_initialize()

    event_store = EventStore(storage.get_events(), storage.async_request_save)
    habit_store = HabitStore(storage.get_habits(), storage.async_request_save)
    delivery = HassReminderDelivery(hass, conf.get(const.CONF_NOTIFY_SERVICE))
    reminders = ReminderManager(delivery, event_store, habit_store)

    hass.data.setdefault(const.DOMAIN, {})[const.RUNTIME] = HabitTriggerRuntime(
        storage=storage,
        event_store=event_store,
        habit_store=habit_store,
        delivery=delivery,
        reminders=reminders,
    )

    async_setup_services(hass)

    @callback
    def _async_on_stop(_event: Event) -> None:
        delivery.async_cancel_all()

    hass.bus.async_listen_once(EVENT_HOMEASSISTANT_STOP, _async_on_stop)

    await reminders.async_reschedule_all()
    const.LOGGER.info("INFO: %s set up", const.HABIT_TRIGGER_TITLE)
    return True
