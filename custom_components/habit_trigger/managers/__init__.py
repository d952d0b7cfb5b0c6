"""Manager modules for Habit Trigger integration.

Managers orchestrate workflows between the pure engines, the stores and the
Home Assistant delivery layer.
"""

from .reminder_manager import ReminderDelivery, ReminderManager

__all__ = [
    "ReminderDelivery",
    "ReminderManager",
]
