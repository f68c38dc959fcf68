"""
tests/test_leveling.py — XP & Level Math Tests
===============================================
"""

from __future__ import annotations

import pytest

from warren.engine.leveling import (
    LevelTransition,
    MemberLevelState,
    apply_xp,
    level_from_total_xp,
    resolve_boost_multiplier,
    total_xp,
    xp_for_next_level,
)


class TestThresholds:
    def test_xp_for_next_level(self):
        assert xp_for_next_level(0) == 3000
        assert xp_for_next_level(4) == 15000
        assert xp_for_next_level(2, xp_per_level=100) == 300

    def test_negative_level_rejected(self):
        with pytest.raises(ValueError):
            xp_for_next_level(-1)

    def test_total_xp(self):
        # 3000 + 6000 to reach level 2, plus progress
        assert total_xp(2, 500) == 9500
        assert total_xp(0, 0) == 0

    def test_level_from_total_xp(self):
        assert level_from_total_xp(0) == (0, 0)
        assert level_from_total_xp(2999) == (0, 2999)
        assert level_from_total_xp(3000) == (1, 0)
        assert level_from_total_xp(9500) == (2, 500)

    def test_level_from_negative_total_rejected(self):
        with pytest.raises(ValueError):
            level_from_total_xp(-5)


class TestApplyXp:
    def test_gain_without_level_change(self):
        result = apply_xp(0, 0, 150)
        assert (result.level, result.xp) == (0, 150)
        assert result.transition is LevelTransition.NONE

    def test_level_up_carries_overflow(self):
        result = apply_xp(2950, 0, 150)
        assert (result.level, result.xp) == (1, 100)
        assert result.previous_level == 0
        assert result.transition is LevelTransition.LEVEL_UP

    def test_large_gain_crosses_several_levels(self):
        result = apply_xp(0, 0, 9500)
        assert (result.level, result.xp) == (2, 500)

    def test_direct_set_levels_down(self):
        result = apply_xp(100, 5, 3000, direct_set=True)
        assert (result.level, result.xp) == (1, 0)
        assert result.transition is LevelTransition.LEVEL_DOWN

    def test_direct_set_same_level(self):
        result = apply_xp(0, 1, 3500, direct_set=True)
        assert result.level == 1
        assert result.transition is LevelTransition.NONE

    def test_state_property(self):
        state = apply_xp(2950, 0, 150).state
        assert state == MemberLevelState(1, LevelTransition.LEVEL_UP)


class TestMemberLevelState:
    def test_defaults_to_no_transition(self):
        assert MemberLevelState(3).transition is LevelTransition.NONE

    def test_negative_level_rejected(self):
        with pytest.raises(ValueError):
            MemberLevelState(-1)


class TestBoostMultiplier:
    BOOSTS = {"x2": ["20"], "x3": ["30"], "x5": ["50"]}

    def test_no_boost(self):
        assert resolve_boost_multiplier(["1"], self.BOOSTS) == 1

    def test_highest_tier_wins(self):
        assert resolve_boost_multiplier(["20", "30"], self.BOOSTS) == 3
        assert resolve_boost_multiplier(["20", "30", "50"], self.BOOSTS) == 5

    def test_server_booster_counts_as_x2(self):
        assert resolve_boost_multiplier(["99"], self.BOOSTS, premium_role_id="99") == 2
        assert resolve_boost_multiplier(["99", "50"], self.BOOSTS, premium_role_id="99") == 5

    def test_missing_config(self):
        assert resolve_boost_multiplier(["20"], None) == 1
        assert resolve_boost_multiplier(["20"], {"x2": []}) == 1

    def test_int_role_ids_in_config(self):
        assert resolve_boost_multiplier(["30"], {"x3": [30]}) == 3
