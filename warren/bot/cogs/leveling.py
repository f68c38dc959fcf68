"""
warren.bot.cogs.leveling — Message XP, Level Cards & Leaderboard
=================================================================

Pipeline for every guild message:
1. Gate checks (bot, DM, thread, per-member cooldown, plugin enabled).
2. Resolve the member's boost multiplier from the ``levels`` config.
3. Commit the XP via ``level_service.record_message_xp`` (background thread).
4. On a level change, hand the new state to the role synchronizer.

Commands:
- /level show [member] — level card with a refresh button
- /level set <member> <xp> — admin: overwrite lifetime XP
- /leaderboard — paged guild ranking

Interaction namespace ``levels``:
- ``levels:refresh:<user_id>`` — re-render a level card
- ``levels:page:<n>`` — show leaderboard page *n* (0-based)
"""

from __future__ import annotations

import logging
import math
import time
from typing import TYPE_CHECKING

import discord
from discord import app_commands
from discord.ext import commands, tasks

from warren.bot.checks import is_admin
from warren.bot.router import InteractionIdentifier, build_custom_id, static_view
from warren.constants import LEADERBOARD_PAGE_SIZE, NAMESPACE_LEVELS, PLUGIN_LEVELS
from warren.database.engine import run_db
from warren.engine.leveling import LevelResult, LevelTransition, resolve_boost_multiplier
from warren.services import level_service
from warren.services.embeds import build_leaderboard_embed, build_level_embed
from warren.services.plugin_service import get_plugin_config

if TYPE_CHECKING:
    from warren.bot.core import WarrenBot

logger = logging.getLogger(__name__)


class Leveling(commands.Cog, name="Leveling"):
    """Awards XP for messages and keeps reward roles in step."""

    level = app_commands.Group(
        name="level", description="Show or change member levels.", guild_only=True
    )

    def __init__(self, bot: WarrenBot) -> None:
        self.bot = bot
        # (guild_id, user_id) → timestamp of the last XP award
        self._cooldowns: dict[tuple[int, int], float] = {}

    async def cog_load(self) -> None:
        self._cleanup_cooldowns.start()

    async def cog_unload(self) -> None:
        self._cleanup_cooldowns.cancel()

    @tasks.loop(minutes=5)
    async def _cleanup_cooldowns(self) -> None:
        """Prune expired entries from the cooldown dict."""
        cutoff = time.time() - self.bot.cfg.message_cooldown_seconds
        before = len(self._cooldowns)
        self._cooldowns = {k: v for k, v in self._cooldowns.items() if v > cutoff}
        pruned = before - len(self._cooldowns)
        if pruned:
            logger.debug("Pruned %d expired cooldown entries", pruned)

    # -------------------------------------------------------------------
    # Message XP
    # -------------------------------------------------------------------
    @commands.Cog.listener()
    async def on_message(self, message: discord.Message) -> None:
        try:
            await self._handle_message(message)
        except Exception:
            logger.exception(
                "Error processing message %s from user %s",
                message.id, message.author.id,
            )

    def _on_cooldown(self, guild_id: int, user_id: int) -> bool:
        now = time.time()
        key = (guild_id, user_id)
        if now - self._cooldowns.get(key, 0.0) < self.bot.cfg.message_cooldown_seconds:
            return True
        self._cooldowns[key] = now
        return False

    async def _handle_message(self, message: discord.Message) -> LevelResult | None:
        """Inner message handler (separated for error isolation)."""
        if message.author.bot:
            return None
        if message.guild is None or not isinstance(message.author, discord.Member):
            return None
        if isinstance(message.channel, discord.Thread):
            return None
        if not self.bot.serves_guild(message.guild.id):
            return None
        if self._on_cooldown(message.guild.id, message.author.id):
            logger.debug("Cooldown active for %s", message.author.id)
            return None

        app_id = self.bot.app_id
        config = await run_db(
            get_plugin_config, self.bot.engine, int(app_id), message.guild.id, PLUGIN_LEVELS
        )
        if not config.get("enabled"):
            return None

        premium = message.guild.premium_subscriber_role
        multiplier = resolve_boost_multiplier(
            (str(role.id) for role in message.author.roles),
            config.get("boost_roles"),
            str(premium.id) if premium else None,
        )

        result = await run_db(
            level_service.record_message_xp,
            self.bot.engine,
            int(app_id),
            message.guild.id,
            message.author.id,
            multiplier=multiplier,
            xp_per_message=self.bot.cfg.xp_per_message,
            xp_per_level=self.bot.cfg.xp_per_level,
        )

        if result.transition is not LevelTransition.NONE:
            await self.bot.synchronizer.synchronize(
                app_id, str(message.guild.id), str(message.author.id), result.state
            )
        return result

    # -------------------------------------------------------------------
    # /level show, /level set
    # -------------------------------------------------------------------
    async def _level_card(
        self, guild: discord.Guild, member: discord.abc.User
    ) -> discord.Embed:
        app_id = int(self.bot.app_id)
        xp, lvl = await run_db(
            level_service.get_member_level, self.bot.engine, app_id, guild.id, member.id
        )
        rank = await run_db(
            level_service.get_member_rank, self.bot.engine, app_id, guild.id, member.id
        )
        return build_level_embed(
            member.display_name,
            member.display_avatar.url,
            level=lvl,
            xp=xp,
            rank=rank,
            xp_per_level=self.bot.cfg.xp_per_level,
        )

    @level.command(name="show", description="Show a member's level.")
    @app_commands.describe(member="Member to show (defaults to you)")
    async def level_show(
        self, interaction: discord.Interaction, member: discord.Member | None = None
    ) -> None:
        assert interaction.guild is not None
        target = member or interaction.user
        embed = await self._level_card(interaction.guild, target)
        refresh = discord.ui.Button(
            label="Refresh",
            emoji="\U0001f504",
            style=discord.ButtonStyle.secondary,
            custom_id=build_custom_id(NAMESPACE_LEVELS, "refresh", target.id),
        )
        await interaction.response.send_message(embed=embed, view=static_view(refresh))

    @level.command(name="set", description="Set a member's total XP.")
    @app_commands.describe(member="Member to change", xp="New lifetime XP")
    @is_admin()
    async def level_set(
        self,
        interaction: discord.Interaction,
        member: discord.Member,
        xp: app_commands.Range[int, 0],
    ) -> None:
        assert interaction.guild is not None
        await interaction.response.defer(ephemeral=True)
        app_id = self.bot.app_id
        config = await run_db(
            get_plugin_config, self.bot.engine, int(app_id), interaction.guild.id, PLUGIN_LEVELS
        )
        if not config.get("enabled"):
            await interaction.followup.send(
                "The XP system is currently disabled on this server.", ephemeral=True
            )
            return

        result = await run_db(
            level_service.set_member_xp,
            self.bot.engine,
            int(app_id),
            interaction.guild.id,
            member.id,
            xp,
            xp_per_level=self.bot.cfg.xp_per_level,
        )
        logger.info(
            "%s set XP of %s to %d (level %d → %d)",
            interaction.user.id, member.id, xp, result.previous_level, result.level,
        )
        await self.bot.synchronizer.synchronize(
            app_id, str(interaction.guild.id), str(member.id), result.state
        )
        await interaction.followup.send(
            f"✅ {member.mention} now has {xp:,} XP (level {result.level}).",
            ephemeral=True,
        )

    # -------------------------------------------------------------------
    # /leaderboard
    # -------------------------------------------------------------------
    async def _leaderboard_page(
        self, guild: discord.Guild, page: int
    ) -> tuple[discord.Embed, discord.ui.View]:
        app_id = int(self.bot.app_id)
        total = await run_db(level_service.count_members, self.bot.engine, app_id, guild.id)
        total_pages = max(1, math.ceil(total / LEADERBOARD_PAGE_SIZE))
        page = min(max(page, 0), total_pages - 1)
        entries = await run_db(
            level_service.get_leaderboard,
            self.bot.engine,
            app_id,
            guild.id,
            limit=LEADERBOARD_PAGE_SIZE,
            offset=page * LEADERBOARD_PAGE_SIZE,
        )
        embed = build_leaderboard_embed(
            guild.name, entries, page=page, total_pages=total_pages
        )
        view = static_view(
            discord.ui.Button(
                label="Previous",
                style=discord.ButtonStyle.secondary,
                custom_id=build_custom_id(NAMESPACE_LEVELS, "page", page - 1),
                disabled=page == 0,
            ),
            discord.ui.Button(
                label="Next",
                style=discord.ButtonStyle.secondary,
                custom_id=build_custom_id(NAMESPACE_LEVELS, "page", page + 1),
                disabled=page >= total_pages - 1,
            ),
        )
        return embed, view

    @app_commands.command(name="leaderboard", description="Top members by level.")
    @app_commands.guild_only()
    async def leaderboard(self, interaction: discord.Interaction) -> None:
        assert interaction.guild is not None
        embed, view = await self._leaderboard_page(interaction.guild, 0)
        await interaction.response.send_message(embed=embed, view=view)

    # -------------------------------------------------------------------
    # Component handler (namespace "levels")
    # -------------------------------------------------------------------
    async def handle_component(
        self, interaction: discord.Interaction, identifier: InteractionIdentifier
    ) -> None:
        guild = interaction.guild
        if guild is None:
            return

        if identifier.action == "refresh":
            member = guild.get_member(int(identifier.params[0]))
            if member is None:
                member = await guild.fetch_member(int(identifier.params[0]))
            embed = await self._level_card(guild, member)
            await interaction.response.edit_message(embed=embed)
        elif identifier.action == "page":
            embed, view = await self._leaderboard_page(guild, int(identifier.params[0]))
            await interaction.response.edit_message(embed=embed, view=view)
        else:
            logger.warning("Unhandled levels action: %s", identifier.raw)
            await interaction.response.defer()


async def setup(bot: WarrenBot) -> None:
    cog = Leveling(bot)
    bot.router.register(NAMESPACE_LEVELS, cog.handle_component)
    await bot.add_cog(cog)
