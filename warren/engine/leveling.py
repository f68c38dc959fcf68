"""
warren.engine.leveling — XP & Level Math
=========================================

Pure calculation module.  No Discord I/O, no DB I/O.

Members store ``(level, xp)`` where ``xp`` is the progress inside the
current level.  Reaching ``level`` + 1 costs ``(level + 1) * xp_per_level``,
and any overflow carries into the next level.
"""

from __future__ import annotations

import enum
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from warren.constants import BOOST_TIERS, DEFAULT_XP_PER_LEVEL

__all__ = [
    "LevelResult",
    "LevelTransition",
    "MemberLevelState",
    "apply_xp",
    "level_from_total_xp",
    "resolve_boost_multiplier",
    "total_xp",
    "xp_for_next_level",
]


class LevelTransition(enum.StrEnum):
    """Whether the event that produced a level state changed the level."""
    NONE = "NONE"
    LEVEL_UP = "LEVEL_UP"
    LEVEL_DOWN = "LEVEL_DOWN"


@dataclass(frozen=True, slots=True)
class MemberLevelState:
    """What the role synchronizer needs to know about a member."""

    level: int
    transition: LevelTransition = LevelTransition.NONE

    def __post_init__(self) -> None:
        if self.level < 0:
            raise ValueError(f"level must be >= 0, got {self.level}")


@dataclass(frozen=True, slots=True)
class LevelResult:
    """Output of :func:`apply_xp`."""

    xp: int
    level: int
    previous_level: int
    transition: LevelTransition

    @property
    def state(self) -> MemberLevelState:
        return MemberLevelState(level=self.level, transition=self.transition)


# ---------------------------------------------------------------------------
# Level thresholds
# ---------------------------------------------------------------------------
def xp_for_next_level(level: int, xp_per_level: int = DEFAULT_XP_PER_LEVEL) -> int:
    """XP needed to go from *level* to *level* + 1."""
    if level < 0:
        raise ValueError(f"Invalid level value: {level}")
    return (level + 1) * xp_per_level


def total_xp(level: int, xp: int, xp_per_level: int = DEFAULT_XP_PER_LEVEL) -> int:
    """Lifetime XP represented by a stored ``(level, xp)`` pair."""
    return sum(xp_for_next_level(lvl, xp_per_level) for lvl in range(level)) + xp


def level_from_total_xp(
    total: int, xp_per_level: int = DEFAULT_XP_PER_LEVEL
) -> tuple[int, int]:
    """Split lifetime XP into ``(level, progress)``."""
    if total < 0:
        raise ValueError(f"XP cannot be negative: {total}")
    level, xp = 0, total
    while xp >= xp_for_next_level(level, xp_per_level):
        xp -= xp_for_next_level(level, xp_per_level)
        level += 1
    return level, xp


def _transition(previous: int, current: int) -> LevelTransition:
    if current > previous:
        return LevelTransition.LEVEL_UP
    if current < previous:
        return LevelTransition.LEVEL_DOWN
    return LevelTransition.NONE


def apply_xp(
    xp: int,
    level: int,
    gained: int,
    *,
    direct_set: bool = False,
    xp_per_level: int = DEFAULT_XP_PER_LEVEL,
) -> LevelResult:
    """Add *gained* XP to a member, or overwrite their total with *direct_set*.

    With ``direct_set=True`` *gained* is the member's new **lifetime** XP and
    the level is recomputed from zero, which is the only way a member can
    level down.
    """
    if direct_set:
        new_level, new_xp = level_from_total_xp(gained, xp_per_level)
    else:
        new_level, new_xp = level, xp + gained
        while new_xp >= xp_for_next_level(new_level, xp_per_level):
            new_xp -= xp_for_next_level(new_level, xp_per_level)
            new_level += 1

    return LevelResult(
        xp=new_xp,
        level=new_level,
        previous_level=level,
        transition=_transition(level, new_level),
    )


# ---------------------------------------------------------------------------
# Boost multiplier
# ---------------------------------------------------------------------------
def resolve_boost_multiplier(
    member_role_ids: Iterable[str],
    boost_roles: Mapping[str, Iterable[str]] | None,
    premium_role_id: str | None = None,
) -> int:
    """Highest boost tier wins; the server-booster role counts as x2."""
    held = set(member_role_ids)
    boost_roles = boost_roles or {}
    for tier, multiplier in BOOST_TIERS:
        if held.intersection(str(r) for r in boost_roles.get(tier, ())):
            return multiplier
        if tier == "x2" and premium_role_id and premium_role_id in held:
            return multiplier
    return 1
