"""Utility modules."""

from .rewards import (
    calculate_bounty_range,
    calculate_xp_gain,
    day_bucket,
    roll_bounty,
    week_bucket,
)

__all__ = [
    "calculate_bounty_range",
    "calculate_xp_gain",
    "day_bucket",
    "roll_bounty",
    "week_bucket",
]
