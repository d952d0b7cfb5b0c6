# File: storage_manager.py
"""Handles persistent data storage for the Habit Trigger integration.

Uses Home Assistant's Storage helper to save and load events and habit
completion metadata, ensuring they are preserved across restarts. Pending
reminders are not stored: they are recomputed at startup.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from homeassistant.core import callback
from homeassistant.helpers.storage import Store

from . import const

if TYPE_CHECKING:
    from homeassistant.core import HomeAssistant

    from .type_defs import EventsCollection, HabitsCollection, StorageData


class HabitTriggerStorageManager:
    """Manages loading, saving, and accessing data from Home Assistant's storage."""

    def __init__(
        self, hass: HomeAssistant, storage_key: str = const.STORAGE_KEY
    ) -> None:
        """Initialize the storage manager.

        Args:
            hass: Home Assistant core object.
            storage_key: Key to identify storage location (default: const.STORAGE_KEY).
        """
        self.hass = hass
        self._storage_key = storage_key
        self._store: Store[StorageData] = Store(hass, const.STORAGE_VERSION, storage_key)
        self._data: StorageData = self.get_default_structure()

    @staticmethod
    def get_default_structure() -> StorageData:
        """Return the empty data structure for fresh installations."""
        return {const.DATA_EVENTS: {}, const.DATA_HABITS: {}}

    async def async_initialize(self) -> None:
        """Load data from storage during startup.

        If no data exists, initializes with an empty structure.
        """
        existing_data = await self._store.async_load()

        if existing_data is None:
            const.LOGGER.info("INFO: No existing storage found. Initializing new data")
            self._data = self.get_default_structure()
            return

        self._data = existing_data
        # Buckets added after the first release may be missing
        for key, default in self.get_default_structure().items():
            self._data.setdefault(key, default)  # type: ignore[misc]
        const.LOGGER.debug(
            "DEBUG: Loaded existing data from storage: %s",
            {
                "events": len(self._data[const.DATA_EVENTS]),
                "habits": len(self._data[const.DATA_HABITS]),
            },
        )

    @property
    def data(self) -> StorageData:
        """Retrieve the in-memory data cache."""
        return self._data

    def get_events(self) -> EventsCollection:
        """Retrieve the events bucket."""
        return self._data[const.DATA_EVENTS]

    def get_habits(self) -> HabitsCollection:
        """Retrieve the habits bucket."""
        return self._data[const.DATA_HABITS]

    @callback
    def async_request_save(self) -> None:
        """Schedule a delayed save of the current data."""
        self._store.async_delay_save(self._data_to_save, const.STORAGE_SAVE_DELAY_SECONDS)

    @callback
    def _data_to_save(self) -> Any:
        return self._data
