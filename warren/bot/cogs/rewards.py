"""
warren.bot.cogs.rewards — Reward Role Administration
=====================================================

Admin-only ``/rewards`` command group that edits the ``levels`` plugin
config: reward role thresholds, the announcement channel and the XP
switch.  ``/rewards prune`` sends a role select menu whose submission is
routed back here through the ``rewards`` interaction namespace.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord
from discord import app_commands
from discord.ext import commands

from warren.bot.checks import is_admin, member_is_admin
from warren.bot.router import InteractionIdentifier, build_custom_id, static_view
from warren.constants import NAMESPACE_REWARDS
from warren.database.engine import run_db
from warren.services import plugin_service
from warren.services.embeds import build_rewards_embed

if TYPE_CHECKING:
    from warren.bot.core import WarrenBot

logger = logging.getLogger(__name__)


class Rewards(commands.Cog, name="Rewards"):
    """Slash commands for managing level reward roles."""

    rewards = app_commands.Group(
        name="rewards",
        description="Configure level reward roles.",
        guild_only=True,
    )

    def __init__(self, bot: WarrenBot) -> None:
        self.bot = bot

    def _ids(self, interaction: discord.Interaction) -> tuple[int, int]:
        assert interaction.guild is not None
        return int(self.bot.app_id), interaction.guild.id

    @rewards.command(name="add", description="Award a role at a level.")
    @app_commands.describe(role="Role to award", level="Level that earns the role")
    @is_admin()
    async def add(
        self,
        interaction: discord.Interaction,
        role: discord.Role,
        level: app_commands.Range[int, 0],
    ) -> None:
        bot_id, guild_id = self._ids(interaction)
        await run_db(
            plugin_service.set_reward_role,
            self.bot.engine, bot_id, guild_id, str(role.id), level,
        )
        logger.info("Reward role %s set to level %d in guild %s", role.id, level, guild_id)
        await interaction.response.send_message(
            f"✅ {role.mention} is now awarded at level **{level}**.", ephemeral=True
        )

    @rewards.command(name="remove", description="Stop awarding a role.")
    @app_commands.describe(role="Role to remove from the rewards")
    @is_admin()
    async def remove(self, interaction: discord.Interaction, role: discord.Role) -> None:
        bot_id, guild_id = self._ids(interaction)
        removed = await run_db(
            plugin_service.remove_reward_roles,
            self.bot.engine, bot_id, guild_id, [str(role.id)],
        )
        if removed:
            await interaction.response.send_message(
                f"\U0001f5d1️ {role.mention} is no longer a reward role.", ephemeral=True
            )
        else:
            await interaction.response.send_message(
                f"{role.mention} is not a reward role.", ephemeral=True
            )

    @rewards.command(name="list", description="Show the reward roles.")
    async def list_rewards(self, interaction: discord.Interaction) -> None:
        bot_id, guild_id = self._ids(interaction)
        config = await run_db(
            plugin_service.get_reward_rules, self.bot.engine, bot_id, guild_id
        )
        await interaction.response.send_message(
            embed=build_rewards_embed(config), ephemeral=True
        )

    @rewards.command(name="channel", description="Set the level announcement channel.")
    @app_commands.describe(channel="Channel for announcements (omit to disable)")
    @is_admin()
    async def channel(
        self,
        interaction: discord.Interaction,
        channel: discord.TextChannel | None = None,
    ) -> None:
        bot_id, guild_id = self._ids(interaction)
        await run_db(
            plugin_service.set_level_channel,
            self.bot.engine, bot_id, guild_id,
            str(channel.id) if channel else None,
        )
        if channel:
            text = f"\U0001f4e3 Level announcements will be posted in {channel.mention}."
        else:
            text = "\U0001f507 Level announcements disabled."
        await interaction.response.send_message(text, ephemeral=True)

    @rewards.command(name="toggle", description="Enable or disable message XP.")
    @is_admin()
    async def toggle(self, interaction: discord.Interaction, enabled: bool) -> None:
        bot_id, guild_id = self._ids(interaction)
        await run_db(
            plugin_service.set_levels_enabled,
            self.bot.engine, bot_id, guild_id, enabled,
        )
        logger.info("Levels %s in guild %s", "enabled" if enabled else "disabled", guild_id)
        await interaction.response.send_message(
            f"Message XP is now **{'on' if enabled else 'off'}**.", ephemeral=True
        )

    @rewards.command(name="prune", description="Remove several reward roles at once.")
    @is_admin()
    async def prune(self, interaction: discord.Interaction) -> None:
        select = discord.ui.RoleSelect(
            custom_id=build_custom_id(NAMESPACE_REWARDS, "remove"),
            placeholder="Reward roles to remove",
            min_values=1,
            max_values=25,
        )
        await interaction.response.send_message(
            "Pick the roles to stop awarding:", view=static_view(select), ephemeral=True
        )

    # -------------------------------------------------------------------
    # Component handler (namespace "rewards")
    # -------------------------------------------------------------------
    async def handle_component(
        self, interaction: discord.Interaction, identifier: InteractionIdentifier
    ) -> None:
        if interaction.guild is None:
            return
        if identifier.action != "remove":
            logger.warning("Unhandled rewards action: %s", identifier.raw)
            await interaction.response.defer()
            return

        if not member_is_admin(interaction.user, self.bot.cfg):
            await interaction.response.send_message(
                "You do not have permission to do that.", ephemeral=True
            )
            return

        role_ids = [str(v) for v in (interaction.data or {}).get("values", [])]
        bot_id, guild_id = self._ids(interaction)
        removed = await run_db(
            plugin_service.remove_reward_roles,
            self.bot.engine, bot_id, guild_id, role_ids,
        )
        logger.info("Pruned %d reward roles in guild %s", removed, guild_id)
        await interaction.response.edit_message(
            content=f"Removed {removed} reward role(s).", view=None
        )


async def setup(bot: WarrenBot) -> None:
    cog = Rewards(bot)
    bot.router.register(NAMESPACE_REWARDS, cog.handle_component)
    await bot.add_cog(cog)
