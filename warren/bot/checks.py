"""
warren.bot.checks — Shared permission checks
=============================================
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import discord
from discord import app_commands

if TYPE_CHECKING:
    from warren.config import WarrenConfig


def member_is_admin(member: object, cfg: WarrenConfig) -> bool:
    """Configured admin role, or Manage Roles in the guild."""
    if not isinstance(member, discord.Member):
        return False
    if any(role.id == cfg.admin_role_id for role in member.roles):
        return True
    return member.guild_permissions.manage_roles


def is_admin():
    """App-command check wrapping :func:`member_is_admin`."""
    async def predicate(interaction: discord.Interaction) -> bool:
        return member_is_admin(interaction.user, interaction.client.cfg)  # type: ignore[attr-defined]
    return app_commands.check(predicate)
