"""
warren.constants — Shared Constants
====================================

Single source of truth for leveling defaults, plugin names and the
presentation bits shared by cogs, services and the dashboard API.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Leveling defaults (overridable in config.yaml)
# ---------------------------------------------------------------------------
DEFAULT_XP_PER_LEVEL = 3_000
DEFAULT_XP_PER_MESSAGE = 150
DEFAULT_MESSAGE_COOLDOWN_SECONDS = 60

DEFAULT_DASHBOARD_PORT = 8000

# Boost tiers, highest first.  Keys match the ``boost_roles`` config shape.
BOOST_TIERS: tuple[tuple[str, int], ...] = (
    ("x5", 5),
    ("x3", 3),
    ("x2", 2),
)

# ---------------------------------------------------------------------------
# Plugin names (rows in ``plugin_configs``)
# ---------------------------------------------------------------------------
PLUGIN_LEVELS = "levels"

# ---------------------------------------------------------------------------
# Interaction namespaces (first token of a component custom_id)
# ---------------------------------------------------------------------------
NAMESPACE_LEVELS = "levels"
NAMESPACE_REWARDS = "rewards"

# ---------------------------------------------------------------------------
# Presentation
# ---------------------------------------------------------------------------
RANK_BADGES: list[str] = ["\U0001f947", "\U0001f948", "\U0001f949"]  # 🥇🥈🥉

LEADERBOARD_PAGE_SIZE = 10

# Generic reply for a handler that blew up.  Never leaks error detail.
INTERACTION_FAILED_MESSAGE = "An error occurred while processing your request."
