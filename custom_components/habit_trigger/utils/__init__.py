"""Pure Python utilities for Habit Trigger.

This module contains pure Python functions with ZERO Home Assistant dependencies.
All functions here can be unit tested without Home Assistant mocking.

⚠️ UTILS PURITY: NO `homeassistant.*` imports allowed in this module.

Submodules:
    - dt_utils: Date/time parsing, timezone conversion, time-of-day helpers

Usage:
    from . import dt_utils
    from .dt_utils import combine_local
"""

from . import dt_utils

__all__ = ["dt_utils"]
