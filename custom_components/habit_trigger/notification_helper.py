# File: notification_helper.py
"""Delivers habit reminders using Home Assistant's scheduler and notify services.

- async_send_notification: one-off notify service call with graceful handling
  of missing services
- HassReminderDelivery: ReminderDelivery implementation keeping one
  point-in-time timer per reminder identifier. When a timer fires the reminder
  is sent through the configured notify service, or as a persistent
  notification when none is configured.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from homeassistant.components import persistent_notification
from homeassistant.core import HomeAssistant
from homeassistant.helpers.event import async_track_point_in_utc_time

from . import const
from .utils.dt_utils import as_utc

if TYPE_CHECKING:
    from datetime import datetime

    from homeassistant.core import CALLBACK_TYPE


async def async_send_notification(
    hass: HomeAssistant,
    notify_service: str,
    title: str,
    message: str,
    extra_data: dict[str, Any] | None = None,
) -> None:
    """Send a notification using the specified notify service.

    Gracefully handles missing notification services (common when the mobile
    app isn't configured yet). If the service doesn't exist, logs a warning
    and returns without raising an exception.
    """

    # Parse service name into domain and service components
    if const.DISPLAY_DOT not in notify_service:
        domain = const.NOTIFY_DOMAIN
        service = notify_service
    else:
        domain, service = notify_service.split(".", 1)

    if not hass.services.has_service(domain, service):
        const.LOGGER.warning(
            "Notification service '%s.%s' not available - skipping reminder. "
            "Configure the '%s' integration to enable reminders.",
            domain,
            service,
            domain,
        )
        return

    payload: dict[str, Any] = {const.NOTIFY_TITLE: title, const.NOTIFY_MESSAGE: message}
    if extra_data:
        payload[const.NOTIFY_DATA] = dict(extra_data)

    try:
        await hass.services.async_call(domain, service, payload, blocking=True)
        const.LOGGER.debug("DEBUG: Reminder sent via '%s.%s'", domain, service)

    except Exception as err:  # pylint: disable=broad-exception-caught
        # Called from a timer callback
        const.LOGGER.error(
            "ERROR: Unexpected error sending reminder via '%s.%s': %s. Payload: %s",
            domain,
            service,
            err,
            payload,
        )


@dataclass
class PendingReminder:
    """A reminder waiting for its timer."""

    fire_at: datetime
    title: str
    body: str | None
    unsub: CALLBACK_TYPE


class HassReminderDelivery:
    """One-shot reminders backed by async_track_point_in_utc_time."""

    def __init__(self, hass: HomeAssistant, notify_service: str | None = None) -> None:
        self.hass = hass
        self._notify_service = notify_service
        self._pending: dict[str, PendingReminder] = {}

    @property
    def pending(self) -> dict[str, PendingReminder]:
        """Pending reminders by identifier (read-only view for callers)."""
        return dict(self._pending)

    async def async_install(
        self, identifier: str, fire_at: datetime, title: str, body: str | None
    ) -> None:
        """Install a reminder, replacing any pending one with the same identifier."""
        self._remove(identifier)

        async def _async_fire(_now: datetime) -> None:
            reminder = self._pending.pop(identifier, None)
            if reminder is None:
                return
            await self._async_deliver(identifier, reminder)

        unsub = async_track_point_in_utc_time(self.hass, _async_fire, as_utc(fire_at))
        self._pending[identifier] = PendingReminder(
            fire_at=fire_at, title=title, body=body, unsub=unsub
        )

    async def async_cancel(self, identifier: str) -> None:
        """Remove a pending reminder; unknown identifiers are ignored."""
        self._remove(identifier)

    def async_cancel_all(self) -> None:
        """Remove every pending reminder (integration shutdown)."""
        for identifier in list(self._pending):
            self._remove(identifier)

    def _remove(self, identifier: str) -> None:
        reminder = self._pending.pop(identifier, None)
        if reminder is not None:
            reminder.unsub()

    async def _async_deliver(self, identifier: str, reminder: PendingReminder) -> None:
        message = reminder.body or reminder.title
        if self._notify_service:
            await async_send_notification(
                self.hass,
                self._notify_service,
                reminder.title,
                message,
                extra_data={const.NOTIFY_TAG: identifier},
            )
            return

        persistent_notification.async_create(
            self.hass, message, title=reminder.title, notification_id=identifier
        )
        const.LOGGER.debug("DEBUG: Reminder '%s' sent as persistent notification", identifier)
