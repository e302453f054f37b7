"""Tests for duel reward formulas and day bucketing."""

import random
from datetime import datetime, timedelta, timezone

import pytest

from duel_arena.utils.rewards import (
    calculate_bounty_range,
    calculate_xp_gain,
    day_bucket,
    roll_bounty,
    week_bucket,
)


class TestBountyRange:
    """Tests for bounty bounds."""

    def test_floors_for_new_players(self):
        assert calculate_bounty_range(0) == (100, 200)

    def test_floors_hold_below_threshold(self):
        # 10% of 999 = 99, 15% = 149
        assert calculate_bounty_range(999) == (100, 200)

    def test_scales_with_experience(self):
        assert calculate_bounty_range(10000) == (1000, 1500)

    def test_shares_are_floored(self):
        assert calculate_bounty_range(2005) == (200, 300)

    def test_roll_stays_in_range(self):
        rng = random.Random(5)
        for xp in (0, 1500, 40000):
            low, high = calculate_bounty_range(xp)
            for _ in range(200):
                assert low <= roll_bounty(xp, rng) <= high


class TestXpGain:
    """Tests for the daily experience cap."""

    @pytest.mark.parametrize(
        "xp_today,expected",
        [(0, 10), (50, 10), (90, 10), (95, 5), (99, 1), (100, 0), (130, 0)],
    )
    def test_capped_at_daily_limit(self, xp_today, expected):
        assert calculate_xp_gain(xp_today) == expected

    def test_custom_cap(self):
        assert calculate_xp_gain(18, daily_cap=20, per_win=5) == 2


class TestBuckets:
    """Tests for UTC day and week buckets."""

    def test_epoch_is_day_zero(self):
        assert day_bucket(datetime(1970, 1, 1, tzinfo=timezone.utc)) == 0

    def test_resets_at_utc_midnight(self):
        late = datetime(2026, 3, 14, 23, 59, 59, tzinfo=timezone.utc)
        assert day_bucket(late + timedelta(seconds=1)) == day_bucket(late) + 1

    def test_same_day_same_bucket(self):
        morning = datetime(2026, 3, 14, 0, 0, tzinfo=timezone.utc)
        assert day_bucket(morning) == day_bucket(morning + timedelta(hours=23))

    def test_other_timezones_bucket_by_utc(self):
        tokyo = timezone(timedelta(hours=9))
        assert day_bucket(datetime(2026, 3, 15, 8, 0, tzinfo=tokyo)) == day_bucket(
            datetime(2026, 3, 14, 23, 0, tzinfo=timezone.utc)
        )

    def test_week_groups_seven_days(self):
        start = datetime(1970, 1, 1, tzinfo=timezone.utc)
        assert week_bucket(start + timedelta(days=6)) == 0
        assert week_bucket(start + timedelta(days=7)) == 1
