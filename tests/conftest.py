"""Shared fixtures for Habit Trigger tests."""

from collections.abc import Generator
from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo

import pytest

from custom_components.habit_trigger.managers import ReminderManager
from custom_components.habit_trigger.stores import EventStore, HabitStore
from custom_components.habit_trigger.utils import dt_utils
from tests.helpers import FakeReminderDelivery

# pylint: disable=invalid-name
pytest_plugins = "pytest_homeassistant_custom_component"
# pylint: enable=invalid-name

UTC_TZ = ZoneInfo("UTC")


@pytest.fixture(autouse=True)
def auto_enable_custom_integrations(enable_custom_integrations: Any) -> Any:
    """Enable custom integrations in tests."""
    # pylint: disable=unused-argument
    yield


@pytest.fixture(autouse=True)
def reset_default_timezone() -> Generator[None]:
    """Run every test with UTC calendar math unless it sets its own zone."""
    dt_utils.set_default_timezone(UTC_TZ)
    yield
    dt_utils.set_default_timezone(UTC_TZ)


@pytest.fixture
def fake_delivery() -> FakeReminderDelivery:
    """Return an in-memory delivery collaborator."""
    return FakeReminderDelivery()


@pytest.fixture
def event_store() -> EventStore:
    """Return an empty event store."""
    return EventStore({})


@pytest.fixture
def habit_store() -> HabitStore:
    """Return an empty habit store."""
    return HabitStore({})


@pytest.fixture
def frozen_now() -> datetime:
    """Sunday 2025-01-05 10:00 UTC."""
    return datetime(2025, 1, 5, 10, 0, tzinfo=UTC_TZ)


@pytest.fixture
def reminder_manager(
    fake_delivery: FakeReminderDelivery,  # pylint: disable=redefined-outer-name
    event_store: EventStore,  # pylint: disable=redefined-outer-name
    habit_store: HabitStore,  # pylint: disable=redefined-outer-name
    frozen_now: datetime,  # pylint: disable=redefined-outer-name
) -> ReminderManager:
    """Return a reminder manager wired to fakes and a fixed clock."""
    return ReminderManager(
        fake_delivery, event_store, habit_store, now_func=lambda: frozen_now
    )
