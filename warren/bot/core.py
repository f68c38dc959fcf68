"""
warren.bot.core — Bot Instance & Cog Loader
============================================

Defines :class:`WarrenBot`, a ``commands.Bot`` subclass that:

1. Carries the shared config (``bot.cfg``), DB engine (``bot.engine``),
   interaction router and role synchronizer so every Cog reaches them via
   ``self.bot``.
2. Loads every Cog listed in :data:`EXTENSIONS`; each Cog registers its
   interaction namespaces while loading, then the router is frozen.
3. Syncs the slash-command tree on startup (guild-scoped for dev, global
   otherwise — controlled by the ``DEV_GUILD_ID`` env var).
4. Forwards every button / select / modal interaction to the router.
"""

from __future__ import annotations

import logging
import os

import discord
from discord import app_commands
from discord.ext import commands
from sqlalchemy import Engine

from warren.bot.router import InteractionRouter
from warren.config import WarrenConfig
from warren.constants import INTERACTION_FAILED_MESSAGE
from warren.services.gateway import DiscordMembershipGateway
from warren.services.plugin_service import DatabaseRewardConfigProvider
from warren.services.role_sync import RoleSynchronizer

logger = logging.getLogger(__name__)

# Cog modules to load on startup.
EXTENSIONS: list[str] = [
    "warren.bot.cogs.leveling",
    "warren.bot.cogs.rewards",
]


class WarrenBot(commands.Bot):
    """Custom Bot subclass that carries project-wide state.

    Parameters
    ----------
    cfg:
        The parsed :class:`WarrenConfig` from ``config.yaml``.
    engine:
        A SQLAlchemy :class:`Engine`.
    """

    def __init__(self, cfg: WarrenConfig, engine: Engine) -> None:
        intents = discord.Intents.default()
        intents.message_content = False   # XP only needs the message event
        intents.members = True            # Privileged: fetch_member for role sync
        intents.presences = False

        super().__init__(
            command_prefix=cfg.bot_prefix,
            intents=intents,
            description=cfg.community_name,
        )

        self.cfg = cfg
        self.engine = engine
        self.router = InteractionRouter()
        self.gateway = DiscordMembershipGateway(self)
        self.synchronizer = RoleSynchronizer(
            DatabaseRewardConfigProvider(engine), self.gateway
        )
        self.tree.error(self.on_app_command_error)

    # -----------------------------------------------------------------------
    # Lifecycle hooks
    # -----------------------------------------------------------------------
    async def setup_hook(self) -> None:
        """Load every Cog, then seal the interaction router.

        A Cog that fails to load is logged and skipped — one broken Cog
        shouldn't take down the whole bot.
        """
        for ext in EXTENSIONS:
            try:
                await self.load_extension(ext)
                logger.info("Loaded extension: %s", ext)
            except Exception as exc:
                logger.error("Failed to load extension %s: %s", ext, exc)
        self.router.freeze()

    async def on_ready(self) -> None:
        assert self.user is not None  # guaranteed after on_ready
        logger.info("Logged in as %s (ID: %s)", self.user.name, self.user.id)

        dev_guild_id = os.getenv("DEV_GUILD_ID")
        if dev_guild_id:
            guild = discord.Object(id=int(dev_guild_id))
            self.tree.copy_global_to(guild=guild)
            synced = await self.tree.sync(guild=guild)
            logger.info("Synced %d commands to dev guild %s", len(synced), dev_guild_id)
        else:
            synced = await self.tree.sync()
            logger.info("Synced %d commands globally", len(synced))

    async def on_interaction(self, interaction: discord.Interaction) -> None:
        """Hand component and modal interactions to the router.

        Slash commands are dispatched by the command tree; the router
        answers ``IGNORED`` for them.
        """
        try:
            await self.router.dispatch(interaction)
        except Exception:
            logger.exception("Unhandled error routing interaction %s", interaction.id)

    # -----------------------------------------------------------------------
    # Helpers
    # -----------------------------------------------------------------------
    @property
    def app_id(self) -> str:
        return str(self.application_id or (self.user.id if self.user else 0))

    def serves_guild(self, guild_id: int) -> bool:
        """True unless a primary guild is configured and this isn't it."""
        return not self.cfg.guild_id or self.cfg.guild_id == guild_id

    async def on_app_command_error(
        self,
        interaction: discord.Interaction,
        error: app_commands.AppCommandError,
    ) -> None:
        if isinstance(error, app_commands.CheckFailure):
            message = "You do not have permission to use this command."
        else:
            logger.exception(
                "App command error in /%s",
                interaction.command.qualified_name if interaction.command else "?",
                exc_info=error,
            )
            message = INTERACTION_FAILED_MESSAGE
        try:
            if interaction.response.is_done():
                await interaction.followup.send(message, ephemeral=True)
            else:
                await interaction.response.send_message(message, ephemeral=True)
        except Exception as exc:
            logger.warning("Failed sending error response for command: %s", exc)
