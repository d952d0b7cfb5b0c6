"""Engine modules for Habit Trigger integration.

Contains pure computation engines:
- schedule_engine: Next-occurrence resolution and reminder fire-date calculation
"""

# Use relative imports within package to avoid mypy module resolution issues
from .schedule_engine import (
    anchor_boundary,
    compute_next_fire_date,
    first_matching_date,
    resolve_next_occurrence,
)

__all__ = [
    "anchor_boundary",
    "compute_next_fire_date",
    "first_matching_date",
    "resolve_next_occurrence",
]
