"""Duel reward formulas and day bucketing."""

import random
from datetime import datetime, timezone

SECONDS_PER_DAY = 24 * 60 * 60

# Bounty floor/ceiling and the share of the loser's experience they scale with
BOUNTY_MIN_FLOOR = 100
BOUNTY_MAX_FLOOR = 200
BOUNTY_MIN_SHARE = 0.10
BOUNTY_MAX_SHARE = 0.15


def day_bucket(now: datetime | None = None) -> int:
    """Get the UTC day number since the epoch.

    Counters keyed by this value reset at midnight UTC.

    Args:
        now: Moment to bucket (default: current time)

    Returns:
        Whole days elapsed since 1970-01-01 UTC
    """
    if now is None:
        now = datetime.now(timezone.utc)
    return int(now.timestamp() // SECONDS_PER_DAY)


def week_bucket(now: datetime | None = None) -> int:
    """Get the week number since the epoch (weeks start on Thursday, like the epoch)."""
    return day_bucket(now) // 7


def calculate_bounty_range(loser_xp: int) -> tuple[int, int]:
    """Calculate the bounty bounds for beating a player.

    Args:
        loser_xp: Total experience of the defeated player

    Returns:
        Inclusive (min, max) bounty
    """
    low = max(BOUNTY_MIN_FLOOR, int(loser_xp * BOUNTY_MIN_SHARE))
    high = max(BOUNTY_MAX_FLOOR, int(loser_xp * BOUNTY_MAX_SHARE))
    return low, high


def roll_bounty(loser_xp: int, rng: random.Random | None = None) -> int:
    """Draw a bounty uniformly from calculate_bounty_range."""
    rng = rng or random.Random()
    low, high = calculate_bounty_range(loser_xp)
    return rng.randint(low, high)


def calculate_xp_gain(xp_today: int, daily_cap: int = 100, per_win: int = 10) -> int:
    """Calculate experience for a duel win under the daily cap.

    Args:
        xp_today: Duel experience already earned in the current day bucket
        daily_cap: Maximum duel experience per day
        per_win: Experience for a single win

    Returns:
        Experience to credit (0 once the cap is reached)
    """
    return max(0, min(per_win, daily_cap - xp_today))
