"""
warren.services.embeds — Discord embed builders
================================================

Embed construction lives here so cogs only supply data.
"""

from __future__ import annotations

import discord

from warren.constants import RANK_BADGES
from warren.engine.leveling import total_xp, xp_for_next_level
from warren.services.role_sync import RewardConfig


def _progress_bar(current: int, needed: int, width: int = 12) -> str:
    filled = min(width, int(width * current / needed)) if needed else width
    return "█" * filled + "░" * (width - filled)


def build_level_embed(
    display_name: str,
    avatar_url: str,
    *,
    level: int,
    xp: int,
    rank: int | None,
    xp_per_level: int,
) -> discord.Embed:
    """Level card for ``/level show``."""
    needed = xp_for_next_level(level, xp_per_level)
    embed = discord.Embed(
        title=f"{display_name}",
        description=(
            f"**Level {level}** — {xp:,} / {needed:,} XP\n"
            f"`{_progress_bar(xp, needed)}`"
        ),
        color=discord.Color.blurple(),
    )
    embed.set_thumbnail(url=avatar_url)
    embed.add_field(name="Rank", value=f"#{rank}" if rank else "Unranked")
    embed.add_field(name="Total XP", value=f"{total_xp(level, xp, xp_per_level):,}")
    return embed


def build_leaderboard_embed(
    guild_name: str,
    entries: list[dict],
    *,
    page: int,
    total_pages: int,
) -> discord.Embed:
    embed = discord.Embed(
        title=f"\U0001f3c6 {guild_name} Leaderboard",
        color=discord.Color.gold(),
    )
    if not entries:
        embed.description = "Nobody has earned XP yet."
        return embed

    lines = []
    for entry in entries:
        rank = entry["rank"]
        badge = RANK_BADGES[rank - 1] if rank <= len(RANK_BADGES) else f"**{rank}.**"
        lines.append(
            f"{badge} <@{entry['user_id']}> — Level {entry['level']} "
            f"({entry['xp']:,} XP)"
        )
    embed.description = "\n".join(lines)
    embed.set_footer(text=f"Page {page + 1}/{max(total_pages, 1)}")
    return embed


def build_rewards_embed(config: RewardConfig | None) -> discord.Embed:
    embed = discord.Embed(title="\U0001f381 Level Reward Roles", color=discord.Color.green())
    if config is None:
        embed.description = "No reward roles configured. Use `/rewards add`."
        return embed
    rules = sorted(config.rules, key=lambda r: r.level)
    embed.description = "\n".join(
        f"Level **{rule.level}** → <@&{rule.role_id}>" for rule in rules
    )
    embed.add_field(
        name="Announcements",
        value=f"<#{config.channel_id}>" if config.channel_id else "Disabled",
    )
    return embed
