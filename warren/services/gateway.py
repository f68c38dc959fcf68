"""
warren.services.gateway — Discord Membership Gateway
=====================================================

discord.py implementation of the role synchronizer's
:class:`~warren.services.role_sync.MembershipGateway`.  Every method raises
on failure (``discord.HTTPException``, ``LookupError``); containing those
failures is the synchronizer's job.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING

import discord
from discord.abc import Messageable

if TYPE_CHECKING:
    from discord.ext import commands

logger = logging.getLogger(__name__)

AUDIT_REASON = "Warren: level reward roles"


class DiscordMembershipGateway:
    """Reads and mutates guild member roles through the bot's client."""

    def __init__(self, bot: commands.Bot) -> None:
        self.bot = bot

    async def _guild(self, guild_id: str) -> discord.Guild:
        guild = self.bot.get_guild(int(guild_id))
        if guild is None:
            guild = await self.bot.fetch_guild(int(guild_id))
        return guild

    async def _member(self, guild_id: str, member_id: str) -> discord.Member:
        guild = await self._guild(guild_id)
        # Always fetch: the member cache may lag behind our own role edits
        return await guild.fetch_member(int(member_id))

    async def get_member_roles(self, guild_id: str, member_id: str) -> set[str]:
        member = await self._member(guild_id, member_id)
        return {str(role.id) for role in member.roles}

    async def add_roles(
        self, guild_id: str, member_id: str, role_ids: Iterable[str]
    ) -> None:
        member = await self._member(guild_id, member_id)
        await member.add_roles(
            *(discord.Object(id=int(r)) for r in role_ids), reason=AUDIT_REASON
        )

    async def remove_roles(
        self, guild_id: str, member_id: str, role_ids: Iterable[str]
    ) -> None:
        member = await self._member(guild_id, member_id)
        await member.remove_roles(
            *(discord.Object(id=int(r)) for r in role_ids), reason=AUDIT_REASON
        )

    async def send_message(self, channel_id: str, text: str) -> None:
        channel = self.bot.get_channel(int(channel_id))
        if channel is None:
            channel = await self.bot.fetch_channel(int(channel_id))
        if not isinstance(channel, Messageable):
            raise LookupError(f"Channel {channel_id} cannot receive messages")
        await channel.send(
            text, allowed_mentions=discord.AllowedMentions(users=True, roles=False)
        )

    async def get_role_name(self, guild_id: str, role_id: str) -> str | None:
        guild = await self._guild(guild_id)
        role = guild.get_role(int(role_id))
        if role is None:
            roles = await guild.fetch_roles()
            role = next((r for r in roles if r.id == int(role_id)), None)
        return role.name if role else None
