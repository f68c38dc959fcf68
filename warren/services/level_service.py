"""
warren.services.level_service — XP Persistence & Leaderboards
==============================================================

Shared service module callable by both bot and dashboard.  Commits a
member's new XP/level and hands back a :class:`LevelResult` so the caller
can run the role synchronizer **after** the write is durable.
"""

from __future__ import annotations

import logging

from sqlalchemy import Engine, and_, func, or_, select
from sqlalchemy.orm import Session

from warren.constants import DEFAULT_XP_PER_LEVEL, DEFAULT_XP_PER_MESSAGE
from warren.database.models import MemberLevel
from warren.engine.leveling import LevelResult, LevelTransition, apply_xp

logger = logging.getLogger(__name__)


def _get_or_create(
    session: Session, bot_id: int, guild_id: int, user_id: int
) -> MemberLevel:
    row = session.get(MemberLevel, (bot_id, guild_id, user_id))
    if row is None:
        row = MemberLevel(bot_id=bot_id, guild_id=guild_id, user_id=user_id, xp=0, level=0)
        session.add(row)
        session.flush()
    return row


def get_member_level(
    engine: Engine, bot_id: int, guild_id: int, user_id: int
) -> tuple[int, int]:
    """Return ``(xp, level)``; unknown members are ``(0, 0)``."""
    with Session(engine) as session:
        row = session.get(MemberLevel, (bot_id, guild_id, user_id))
        if row is None:
            return 0, 0
        return row.xp, row.level


def record_message_xp(
    engine: Engine,
    bot_id: int,
    guild_id: int,
    user_id: int,
    *,
    multiplier: int = 1,
    xp_per_message: int = DEFAULT_XP_PER_MESSAGE,
    xp_per_level: int = DEFAULT_XP_PER_LEVEL,
) -> LevelResult:
    """Award one message's worth of XP (times *multiplier*) and commit."""
    with Session(engine) as session:
        row = _get_or_create(session, bot_id, guild_id, user_id)
        result = apply_xp(
            row.xp, row.level, xp_per_message * multiplier, xp_per_level=xp_per_level
        )
        row.xp = result.xp
        row.level = result.level
        session.commit()

    if result.transition is not LevelTransition.NONE:
        logger.info(
            "Member %s in guild %s: level %d → %d",
            user_id, guild_id, result.previous_level, result.level,
        )
    return result


def set_member_xp(
    engine: Engine,
    bot_id: int,
    guild_id: int,
    user_id: int,
    total_xp: int,
    *,
    xp_per_level: int = DEFAULT_XP_PER_LEVEL,
) -> LevelResult:
    """Overwrite a member's lifetime XP (admin command).  May level down."""
    if total_xp < 0:
        raise ValueError("XP cannot be negative")
    with Session(engine) as session:
        row = _get_or_create(session, bot_id, guild_id, user_id)
        result = apply_xp(
            row.xp, row.level, total_xp, direct_set=True, xp_per_level=xp_per_level
        )
        row.xp = result.xp
        row.level = result.level
        session.commit()
    return result


def get_leaderboard(
    engine: Engine,
    bot_id: int,
    guild_id: int,
    *,
    limit: int = 10,
    offset: int = 0,
) -> list[dict]:
    """Members ordered by level, then XP, both descending."""
    with Session(engine) as session:
        rows = session.scalars(
            select(MemberLevel)
            .where(MemberLevel.bot_id == bot_id, MemberLevel.guild_id == guild_id)
            .order_by(MemberLevel.level.desc(), MemberLevel.xp.desc(), MemberLevel.user_id)
            .limit(limit)
            .offset(offset)
        ).all()
        return [
            {
                "rank": offset + i + 1,
                "user_id": str(r.user_id),
                "level": r.level,
                "xp": r.xp,
            }
            for i, r in enumerate(rows)
        ]


def count_members(engine: Engine, bot_id: int, guild_id: int) -> int:
    with Session(engine) as session:
        return session.scalar(
            select(func.count())
            .select_from(MemberLevel)
            .where(MemberLevel.bot_id == bot_id, MemberLevel.guild_id == guild_id)
        ) or 0


def get_member_rank(
    engine: Engine, bot_id: int, guild_id: int, user_id: int
) -> int | None:
    """1-based rank in the guild, or None if the member has no row."""
    with Session(engine) as session:
        row = session.get(MemberLevel, (bot_id, guild_id, user_id))
        if row is None:
            return None
        above = session.scalar(
            select(func.count())
            .select_from(MemberLevel)
            .where(
                MemberLevel.bot_id == bot_id,
                MemberLevel.guild_id == guild_id,
                or_(
                    MemberLevel.level > row.level,
                    and_(MemberLevel.level == row.level, MemberLevel.xp > row.xp),
                ),
            )
        ) or 0
        return above + 1
