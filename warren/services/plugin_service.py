"""
warren.services.plugin_service — Plugin Configuration CRUD
===========================================================

Typed read/write access to the ``plugin_configs`` table, callable by both
the bot and the dashboard API.

Missing rows read as the plugin's default config (not saved); a stored row
is merged over the default so older documents pick up new keys.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Iterable
from typing import Any

from sqlalchemy import Engine
from sqlalchemy.orm import Session

from warren.constants import PLUGIN_LEVELS
from warren.database.engine import run_db
from warren.database.models import PluginConfig
from warren.services.role_sync import RewardConfig, RewardRoleRule

logger = logging.getLogger(__name__)

DEFAULT_CONFIGS: dict[str, dict[str, Any]] = {
    PLUGIN_LEVELS: {
        "enabled": True,
        "reward_roles": [],
        "channel_id": None,
        "boost_roles": {"x2": [], "x3": [], "x5": []},
    },
}


def get_default_config(plugin_name: str) -> dict[str, Any]:
    """Fresh copy of *plugin_name*'s default.  Unknown names raise KeyError."""
    return copy.deepcopy(DEFAULT_CONFIGS[plugin_name])


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
def get_plugin_config(
    engine: Engine, bot_id: int, guild_id: int, plugin_name: str
) -> dict[str, Any]:
    """Stored config merged over the default."""
    config = get_default_config(plugin_name)
    with Session(engine) as session:
        row = session.get(PluginConfig, (int(bot_id), int(guild_id), plugin_name))
        if row is None:
            logger.warning(
                "Plugin %s not found for guild %s, using default config",
                plugin_name, guild_id,
            )
            return config
        config.update(copy.deepcopy(row.config or {}))
    return config


def _parse_rules(raw: Any, guild_id: int) -> tuple[RewardRoleRule, ...]:
    rules: list[RewardRoleRule] = []
    for entry in raw or []:
        try:
            role_id = str(entry["role_id"]).strip()
            level = int(entry["level"])
        except (KeyError, TypeError, ValueError):
            logger.warning("Skipping malformed reward role %r in guild %s", entry, guild_id)
            continue
        if not role_id or level < 0:
            logger.warning("Skipping malformed reward role %r in guild %s", entry, guild_id)
            continue
        rules.append(RewardRoleRule(role_id=role_id, level=level))
    return tuple(rules)


def get_reward_rules(
    engine: Engine, bot_id: int, guild_id: int
) -> RewardConfig | None:
    """The guild's reward rules in configured order, or None if there are none."""
    config = get_plugin_config(engine, bot_id, guild_id, PLUGIN_LEVELS)
    rules = _parse_rules(config.get("reward_roles"), guild_id)
    if not rules:
        return None
    channel_id = config.get("channel_id")
    return RewardConfig(
        rules=rules,
        channel_id=str(channel_id) if channel_id else None,
    )


class DatabaseRewardConfigProvider:
    """Async adapter used by :class:`~warren.services.role_sync.RoleSynchronizer`."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    async def get_reward_rules(self, app_id: str, guild_id: str) -> RewardConfig | None:
        return await run_db(get_reward_rules, self.engine, int(app_id), int(guild_id))


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------
def update_plugin_config(
    engine: Engine,
    bot_id: int,
    guild_id: int,
    plugin_name: str,
    config: dict[str, Any],
) -> dict[str, Any]:
    """Insert or replace a plugin's config.  Returns the stored document."""
    get_default_config(plugin_name)  # validates the name
    stored = copy.deepcopy(config)
    stored.pop("id", None)
    with Session(engine) as session:
        row = session.get(PluginConfig, (int(bot_id), int(guild_id), plugin_name))
        if row is None:
            row = PluginConfig(
                bot_id=int(bot_id),
                guild_id=int(guild_id),
                plugin_name=plugin_name,
                config=stored,
            )
            session.add(row)
        else:
            # Reassign (never mutate in place) so the JSON column is flagged dirty
            row.config = stored
        session.commit()
    logger.info("Updated %s config for guild %s", plugin_name, guild_id)
    return stored


def _update_levels(engine: Engine, bot_id: int, guild_id: int, mutate) -> dict[str, Any]:
    config = get_plugin_config(engine, bot_id, guild_id, PLUGIN_LEVELS)
    mutate(config)
    return update_plugin_config(engine, bot_id, guild_id, PLUGIN_LEVELS, config)


def set_reward_role(
    engine: Engine, bot_id: int, guild_id: int, role_id: str, level: int
) -> dict[str, Any]:
    """Add a reward rule, or move an existing role to a new threshold."""
    if level < 0:
        raise ValueError("Reward level must be >= 0")
    role_id = str(role_id)

    def mutate(config: dict[str, Any]) -> None:
        rules = list(config.get("reward_roles") or [])
        for rule in rules:
            if str(rule.get("role_id")) == role_id:
                rule["level"] = level
                break
        else:
            rules.append({"role_id": role_id, "level": level})
        config["reward_roles"] = rules

    return _update_levels(engine, bot_id, guild_id, mutate)


def remove_reward_roles(
    engine: Engine, bot_id: int, guild_id: int, role_ids: Iterable[str]
) -> int:
    """Delete every rule for *role_ids*.  Returns how many were removed."""
    doomed = {str(r) for r in role_ids}
    removed = 0

    def mutate(config: dict[str, Any]) -> None:
        nonlocal removed
        rules = list(config.get("reward_roles") or [])
        kept = [r for r in rules if str(r.get("role_id")) not in doomed]
        removed = len(rules) - len(kept)
        config["reward_roles"] = kept

    _update_levels(engine, bot_id, guild_id, mutate)
    return removed


def set_level_channel(
    engine: Engine, bot_id: int, guild_id: int, channel_id: str | None
) -> dict[str, Any]:
    """Set (or clear with None) the level-change announcement channel."""
    def mutate(config: dict[str, Any]) -> None:
        config["channel_id"] = str(channel_id) if channel_id else None

    return _update_levels(engine, bot_id, guild_id, mutate)


def set_levels_enabled(
    engine: Engine, bot_id: int, guild_id: int, enabled: bool
) -> dict[str, Any]:
    def mutate(config: dict[str, Any]) -> None:
        config["enabled"] = bool(enabled)

    return _update_levels(engine, bot_id, guild_id, mutate)
