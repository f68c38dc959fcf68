"""
warren.api.routes.levels — Leaderboard & levels plugin endpoints
=================================================================

- ``GET  /bots/{bot_id}/guilds/{guild_id}/leaderboard``    (public)
- ``GET  /bots/{bot_id}/guilds/{guild_id}/plugins/levels`` (admin)
- ``PUT  /bots/{bot_id}/guilds/{guild_id}/plugins/levels`` (admin)

Writes go through :mod:`warren.services.plugin_service`, the same code the
``/rewards`` slash commands use, so the bot sees dashboard edits on the
next message without a restart.
"""

from __future__ import annotations

import logging
from typing import Annotated

import jwt
from fastapi import APIRouter, Depends, Header, HTTPException, Query, status
from jwt.exceptions import InvalidTokenError
from pydantic import BaseModel, Field, field_validator
from sqlalchemy import Engine

from warren.api.deps import JWT_ALGORITHM, get_engine, jwt_secret
from warren.constants import PLUGIN_LEVELS
from warren.services import level_service, plugin_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bots/{bot_id}/guilds/{guild_id}", tags=["levels"])


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------
def require_guild_admin(
    bot_id: int,
    guild_id: int,
    authorization: Annotated[str | None, Header()] = None,
) -> dict:
    """Bearer token signed with ``JWT_SECRET`` that grants admin on this guild.

    Claims: ``is_admin`` (true), ``bot_id`` and ``guild_ids`` naming the
    bot and guild in the path.  401 for a missing or bad token, 403 when
    the token is valid but not an admin token for this guild.
    """
    scheme, _, token = (authorization or "").partition(" ")
    if scheme != "Bearer" or not token:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Missing bearer token")
    try:
        claims = jwt.decode(token, jwt_secret(), algorithms=[JWT_ALGORITHM])
    except InvalidTokenError:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Invalid token")

    if not claims.get("is_admin"):
        raise HTTPException(status.HTTP_403_FORBIDDEN, "Not an admin")
    guild_ids = {str(g) for g in claims.get("guild_ids") or ()}
    if str(claims.get("bot_id")) != str(bot_id) or str(guild_id) not in guild_ids:
        raise HTTPException(status.HTTP_403_FORBIDDEN, "Token does not cover this guild")
    return claims


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class RewardRole(BaseModel):
    role_id: str
    level: int = Field(ge=0)

    @field_validator("role_id", mode="before")
    @classmethod
    def _role_id_str(cls, v):
        v = str(v).strip()
        if not v:
            raise ValueError("role_id must not be empty")
        return v


class BoostRoles(BaseModel):
    x2: list[str] = Field(default_factory=list)
    x3: list[str] = Field(default_factory=list)
    x5: list[str] = Field(default_factory=list)


class LevelsConfig(BaseModel):
    enabled: bool = True
    reward_roles: list[RewardRole] = Field(default_factory=list)
    channel_id: str | None = None
    boost_roles: BoostRoles = Field(default_factory=BoostRoles)


# ---------------------------------------------------------------------------
# GET /leaderboard
# ---------------------------------------------------------------------------
@router.get("/leaderboard")
def get_leaderboard(
    bot_id: int,
    guild_id: int,
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
    engine: Engine = Depends(get_engine),
):
    """Members ordered by level then XP."""
    return {
        "total": level_service.count_members(engine, bot_id, guild_id),
        "limit": limit,
        "offset": offset,
        "entries": level_service.get_leaderboard(
            engine, bot_id, guild_id, limit=limit, offset=offset
        ),
    }


# ---------------------------------------------------------------------------
# /plugins/levels
# ---------------------------------------------------------------------------
@router.get("/plugins/levels")
def get_levels_config(
    bot_id: int,
    guild_id: int,
    engine: Engine = Depends(get_engine),
    admin: dict = Depends(require_guild_admin),
):
    return plugin_service.get_plugin_config(engine, bot_id, guild_id, PLUGIN_LEVELS)


@router.put("/plugins/levels")
def put_levels_config(
    bot_id: int,
    guild_id: int,
    body: LevelsConfig,
    engine: Engine = Depends(get_engine),
    admin: dict = Depends(require_guild_admin),
):
    """Replace the guild's levels config."""
    stored = plugin_service.update_plugin_config(
        engine, bot_id, guild_id, PLUGIN_LEVELS, body.model_dump()
    )
    logger.info(
        "Admin %s replaced levels config for guild %s (%d reward roles)",
        admin.get("sub"), guild_id, len(body.reward_roles),
    )
    return stored
