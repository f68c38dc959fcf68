"""
warren.database.models — SQLAlchemy 2.0 Data Models
====================================================

Tables:
- plugin_configs — Per-bot, per-guild JSON configuration for each plugin
- member_levels  — XP progress and level of a member in a guild
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Index, Integer, String, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all Warren ORM models."""


# ---------------------------------------------------------------------------
# PluginConfig — one JSON document per (bot, guild, plugin)
# ---------------------------------------------------------------------------
class PluginConfig(Base):
    """Feature configuration owned by guild administrators.

    The ``levels`` plugin document looks like::

        {
            "enabled": true,
            "reward_roles": [{"role_id": "123", "level": 5}],
            "channel_id": "456",
            "boost_roles": {"x2": [], "x3": [], "x5": []}
        }
    """
    __tablename__ = "plugin_configs"

    bot_id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    guild_id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    plugin_name: Mapped[str] = mapped_column(String(50), primary_key=True)
    config: Mapped[dict] = mapped_column(JSONB, default=dict)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return (
            f"<PluginConfig guild={self.guild_id} plugin={self.plugin_name!r}>"
        )


# ---------------------------------------------------------------------------
# MemberLevel — leveling state per member per guild
# ---------------------------------------------------------------------------
class MemberLevel(Base):
    """XP is the progress inside the current level, not a lifetime total."""
    __tablename__ = "member_levels"

    bot_id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    guild_id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    user_id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    xp: Mapped[int] = mapped_column(Integer, default=0)
    level: Mapped[int] = mapped_column(Integer, default=0)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        Index("ix_member_levels_guild_rank", "bot_id", "guild_id", "level", "xp"),
    )

    def __repr__(self) -> str:
        return (
            f"<MemberLevel guild={self.guild_id} user={self.user_id} "
            f"lvl={self.level} xp={self.xp}>"
        )
