"""
Tests for tier progress and reward availability
"""
from datetime import datetime

import pytest

from loyalty_api.domain.loyalty import (
    Reward,
    check_reward_availability,
    get_tier_info,
    tier_for_points,
    tier_progress,
)

NOW = datetime(2025, 10, 20, 12, 0)


def reward(**overrides):
    values = dict(id=1, name="$5 Off", points_required=500)
    values.update(overrides)
    return Reward(**values)


class TestTierProgress:

    def test_bronze_progress(self):
        progress = tier_progress("Bronze", 250)
        assert progress.next_tier == "Silver"
        assert progress.points_to_next == 750
        assert progress.progress_to_next == 25.0

    def test_points_beyond_next_floor_clamped(self):
        progress = tier_progress("Bronze", 1500)
        assert progress.points_to_next == 0
        assert progress.progress_to_next == 100.0

    def test_top_tier(self):
        progress = tier_progress("Platinum", 25000)
        assert progress.next_tier is None
        assert progress.points_to_next == 0
        assert progress.progress_to_next == 100.0

    def test_unknown_tier_counts_as_bronze(self):
        assert tier_progress("Diamond", 0).tier == "Bronze"
        assert get_tier_info("gold").name == "Gold"

    @pytest.mark.parametrize("points,tier", [(0, "Bronze"), (999, "Bronze"), (1000, "Silver"), (10000, "Platinum")])
    def test_tier_for_points(self, points, tier):
        assert tier_for_points(points).name == tier


class TestRewardAvailability:

    def test_available(self):
        assert check_reward_availability(reward(), "Bronze", 500, now=NOW) == (True, None)

    def test_inactive(self):
        assert check_reward_availability(reward(is_active=False), "Gold", 9999, now=NOW) == (False, "Reward is not active")

    def test_window(self):
        future = reward(valid_from=datetime(2025, 11, 1))
        expired = reward(valid_until=datetime(2025, 10, 1))
        assert check_reward_availability(future, "Gold", 9999, now=NOW)[1] == "Reward is not yet available"
        assert check_reward_availability(expired, "Gold", 9999, now=NOW)[1] == "Reward has expired"

    def test_sold_out_counts_quantity(self):
        limited = reward(max_redemptions=10, current_redemptions=9)
        assert check_reward_availability(limited, "Gold", 9999, quantity=1, now=NOW)[0] is True
        assert check_reward_availability(limited, "Gold", 9999, quantity=2, now=NOW) == (False, "Reward is sold out")

    def test_tier_restriction(self):
        gold_only = reward(tier_restriction="Gold")
        assert check_reward_availability(gold_only, "Silver", 9999, now=NOW)[0] is False
        assert check_reward_availability(gold_only, "Platinum", 9999, now=NOW)[0] is True

    def test_points_scale_with_quantity(self):
        assert check_reward_availability(reward(), "Bronze", 900, quantity=2, now=NOW) == (False, "Insufficient points")
