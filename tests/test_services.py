"""
tests/test_services.py — Plugin Config & Level Service Tests
=============================================================
Runs the service layer against the in-memory SQLite engine.
"""

from __future__ import annotations

import asyncio
import logging

import pytest

from warren.engine.leveling import LevelTransition
from warren.services import level_service, plugin_service
from warren.services.plugin_service import DatabaseRewardConfigProvider
from warren.services.role_sync import RewardRoleRule

BOT_ID = 900
GUILD_ID = 100


def run_async(coro):
    return asyncio.get_event_loop_policy().new_event_loop().run_until_complete(coro)


# ===========================================================================
# plugin_service
# ===========================================================================
class TestPluginConfig:
    def test_missing_row_returns_default_and_warns(self, db_engine, caplog):
        with caplog.at_level(logging.WARNING, logger="warren.services.plugin_service"):
            config = plugin_service.get_plugin_config(db_engine, BOT_ID, GUILD_ID, "levels")

        assert config["enabled"] is True
        assert config["reward_roles"] == []
        assert config["boost_roles"] == {"x2": [], "x3": [], "x5": []}
        assert any("using default config" in r.getMessage() for r in caplog.records)

    def test_default_is_not_saved(self, db_engine):
        plugin_service.get_plugin_config(db_engine, BOT_ID, GUILD_ID, "levels")
        assert plugin_service.get_reward_rules(db_engine, BOT_ID, GUILD_ID) is None

    def test_unknown_plugin_raises(self, db_engine):
        with pytest.raises(KeyError):
            plugin_service.get_plugin_config(db_engine, BOT_ID, GUILD_ID, "tickets")

    def test_stored_config_merged_over_default(self, db_engine):
        plugin_service.update_plugin_config(
            db_engine, BOT_ID, GUILD_ID, "levels", {"enabled": False, "id": "legacy"}
        )
        config = plugin_service.get_plugin_config(db_engine, BOT_ID, GUILD_ID, "levels")
        assert config["enabled"] is False
        assert config["reward_roles"] == []
        assert "id" not in config

    def test_configs_are_scoped_per_guild(self, db_engine):
        plugin_service.set_levels_enabled(db_engine, BOT_ID, GUILD_ID, False)
        other = plugin_service.get_plugin_config(db_engine, BOT_ID, 555, "levels")
        assert other["enabled"] is True


class TestRewardRules:
    def test_set_reward_role_appends_in_order(self, db_engine):
        plugin_service.set_reward_role(db_engine, BOT_ID, GUILD_ID, "10", 5)
        plugin_service.set_reward_role(db_engine, BOT_ID, GUILD_ID, "20", 1)
        config = plugin_service.get_reward_rules(db_engine, BOT_ID, GUILD_ID)
        assert config.rules == (RewardRoleRule("10", 5), RewardRoleRule("20", 1))
        assert config.channel_id is None

    def test_set_reward_role_moves_existing(self, db_engine):
        plugin_service.set_reward_role(db_engine, BOT_ID, GUILD_ID, "10", 5)
        plugin_service.set_reward_role(db_engine, BOT_ID, GUILD_ID, "10", 8)
        config = plugin_service.get_reward_rules(db_engine, BOT_ID, GUILD_ID)
        assert config.rules == (RewardRoleRule("10", 8),)

    def test_negative_level_rejected(self, db_engine):
        with pytest.raises(ValueError):
            plugin_service.set_reward_role(db_engine, BOT_ID, GUILD_ID, "10", -1)

    def test_remove_reward_roles(self, db_engine):
        for role_id, level in (("10", 1), ("20", 2), ("30", 3)):
            plugin_service.set_reward_role(db_engine, BOT_ID, GUILD_ID, role_id, level)

        removed = plugin_service.remove_reward_roles(db_engine, BOT_ID, GUILD_ID, ["10", "30", "99"])

        assert removed == 2
        config = plugin_service.get_reward_rules(db_engine, BOT_ID, GUILD_ID)
        assert [r.role_id for r in config.rules] == ["20"]

    def test_channel_round_trip(self, db_engine):
        plugin_service.set_reward_role(db_engine, BOT_ID, GUILD_ID, "10", 1)
        plugin_service.set_level_channel(db_engine, BOT_ID, GUILD_ID, "777")
        assert plugin_service.get_reward_rules(db_engine, BOT_ID, GUILD_ID).channel_id == "777"

        plugin_service.set_level_channel(db_engine, BOT_ID, GUILD_ID, None)
        assert plugin_service.get_reward_rules(db_engine, BOT_ID, GUILD_ID).channel_id is None

    def test_malformed_entries_skipped(self, db_engine):
        plugin_service.update_plugin_config(db_engine, BOT_ID, GUILD_ID, "levels", {
            "reward_roles": [
                {"role_id": "10", "level": 2},
                {"role_id": "", "level": 1},
                {"level": 3},
                {"role_id": "11", "level": "high"},
                {"role_id": 12, "level": "4"},
            ],
        })
        config = plugin_service.get_reward_rules(db_engine, BOT_ID, GUILD_ID)
        assert config.rules == (RewardRoleRule("10", 2), RewardRoleRule("12", 4))

    def test_provider_reads_through_run_db(self, db_engine):
        plugin_service.set_reward_role(db_engine, BOT_ID, GUILD_ID, "10", 1)
        provider = DatabaseRewardConfigProvider(db_engine)

        config = run_async(provider.get_reward_rules(str(BOT_ID), str(GUILD_ID)))

        assert config.rules == (RewardRoleRule("10", 1),)


# ===========================================================================
# level_service
# ===========================================================================
class TestLevelService:
    def test_unknown_member_is_zero(self, db_engine):
        assert level_service.get_member_level(db_engine, BOT_ID, GUILD_ID, 1) == (0, 0)

    def test_record_message_xp(self, db_engine):
        result = level_service.record_message_xp(db_engine, BOT_ID, GUILD_ID, 1)
        assert (result.xp, result.level) == (150, 0)
        assert result.transition is LevelTransition.NONE
        assert level_service.get_member_level(db_engine, BOT_ID, GUILD_ID, 1) == (150, 0)

    def test_multiplier_and_level_up(self, db_engine):
        for _ in range(3):
            level_service.record_message_xp(db_engine, BOT_ID, GUILD_ID, 1, multiplier=5)
        # 3 × 750 = 2250, one more crosses 3000
        result = level_service.record_message_xp(db_engine, BOT_ID, GUILD_ID, 1, multiplier=5)
        assert result.transition is LevelTransition.LEVEL_UP
        assert (result.level, result.xp) == (1, 0)

    def test_set_member_xp_levels_down(self, db_engine):
        level_service.set_member_xp(db_engine, BOT_ID, GUILD_ID, 1, 20_000)
        result = level_service.set_member_xp(db_engine, BOT_ID, GUILD_ID, 1, 3_500)
        assert result.transition is LevelTransition.LEVEL_DOWN
        assert (result.level, result.xp) == (1, 500)

    def test_set_member_xp_rejects_negative(self, db_engine):
        with pytest.raises(ValueError):
            level_service.set_member_xp(db_engine, BOT_ID, GUILD_ID, 1, -1)

    def test_leaderboard_order_and_paging(self, db_engine):
        level_service.set_member_xp(db_engine, BOT_ID, GUILD_ID, 1, 100)
        level_service.set_member_xp(db_engine, BOT_ID, GUILD_ID, 2, 10_000)
        level_service.set_member_xp(db_engine, BOT_ID, GUILD_ID, 3, 4_000)
        level_service.set_member_xp(db_engine, BOT_ID, 555, 4, 99_999)

        board = level_service.get_leaderboard(db_engine, BOT_ID, GUILD_ID)
        assert [e["user_id"] for e in board] == ["2", "3", "1"]
        assert [e["rank"] for e in board] == [1, 2, 3]

        page = level_service.get_leaderboard(db_engine, BOT_ID, GUILD_ID, limit=1, offset=1)
        assert page == [{"rank": 2, "user_id": "3", "level": 1, "xp": 1000}]

        assert level_service.count_members(db_engine, BOT_ID, GUILD_ID) == 3

    def test_member_rank(self, db_engine):
        level_service.set_member_xp(db_engine, BOT_ID, GUILD_ID, 1, 100)
        level_service.set_member_xp(db_engine, BOT_ID, GUILD_ID, 2, 10_000)
        assert level_service.get_member_rank(db_engine, BOT_ID, GUILD_ID, 2) == 1
        assert level_service.get_member_rank(db_engine, BOT_ID, GUILD_ID, 1) == 2
        assert level_service.get_member_rank(db_engine, BOT_ID, GUILD_ID, 3) is None
