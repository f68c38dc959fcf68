"""
warren.config — YAML Configuration Loader
==========================================

Reads ``config.yaml`` for **infrastructure-only** settings (Discord
identity, admin role, XP tuning).  Per-guild feature configuration such
as reward roles lives in the ``plugin_configs`` table and is edited from
Discord (``/rewards``) or the dashboard API.

Usage::

    from warren.config import load_config

    cfg = load_config()          # reads ./config.yaml by default
    print(cfg.community_name)    # "Rabbit Hole"
    print(cfg.xp_per_message)    # 150
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import yaml

from warren.constants import (
    DEFAULT_DASHBOARD_PORT,
    DEFAULT_MESSAGE_COOLDOWN_SECONDS,
    DEFAULT_XP_PER_LEVEL,
    DEFAULT_XP_PER_MESSAGE,
)


# ---------------------------------------------------------------------------
# Typed settings object
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class WarrenConfig:
    """Immutable configuration loaded from ``config.yaml``."""

    # Identity
    community_name: str

    # Discord
    bot_prefix: str
    guild_id: int  # Primary guild snowflake (0 = serve every guild)

    # Admin
    admin_role_id: int  # Discord role allowed to run /rewards and /level set

    # Leveling tuning
    message_cooldown_seconds: int = DEFAULT_MESSAGE_COOLDOWN_SECONDS
    xp_per_message: int = DEFAULT_XP_PER_MESSAGE
    xp_per_level: int = DEFAULT_XP_PER_LEVEL

    # Dashboard API (python -m warren.api)
    dashboard_port: int = DEFAULT_DASHBOARD_PORT


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path = "config.yaml") -> WarrenConfig:
    """Read *path* and return a :class:`WarrenConfig` instance.

    Parameters
    ----------
    path:
        Filesystem path to the YAML configuration file.
        Defaults to ``config.yaml`` in the current working directory.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    KeyError
        If a required key is missing from the YAML file.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    return WarrenConfig(
        community_name=raw["community_name"],
        bot_prefix=raw["bot_prefix"],
        guild_id=int(raw.get("guild_id") or 0),
        admin_role_id=int(raw["admin_role_id"]),
        message_cooldown_seconds=int(
            raw.get("message_cooldown_seconds", DEFAULT_MESSAGE_COOLDOWN_SECONDS)
        ),
        xp_per_message=int(raw.get("xp_per_message", DEFAULT_XP_PER_MESSAGE)),
        xp_per_level=int(raw.get("xp_per_level", DEFAULT_XP_PER_LEVEL)),
        dashboard_port=int(raw.get("dashboard_port", DEFAULT_DASHBOARD_PORT)),
    )
