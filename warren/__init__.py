"""
Warren — Community Automation for Discord
==========================================
Levels members up as they chat, keeps their reward roles in step with
their level, and routes button / menu interactions to feature handlers.

Package layout::

    warren/
    ├── config.py          # YAML → typed Python config
    ├── constants.py       # Leveling defaults, plugin names
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + async helper
    │   └── models.py      # ORM models (plugin configs, member levels)
    ├── engine/
    │   └── leveling.py    # Pure XP / level math + boost multipliers
    ├── services/
    │   ├── plugin_service.py  # Per-guild plugin config (reward roles)
    │   ├── level_service.py   # XP persistence + leaderboard
    │   ├── gateway.py         # discord.py-backed membership gateway
    │   ├── role_sync.py       # Reward-role synchronizer
    │   └── embeds.py          # Embed builders
    ├── bot/
    │   ├── core.py        # Bot subclass, cog loader, interaction hook
    │   ├── router.py      # custom_id → handler router
    │   ├── checks.py      # Admin permission check
    │   └── cogs/
    │       ├── leveling.py  # on_message XP, /level, /leaderboard
    │       └── rewards.py   # /rewards admin configuration
    └── api/
        ├── __main__.py    # python -m warren.api (uvicorn)
        ├── main.py        # FastAPI app, lifespan engine
        ├── deps.py        # Engine + JWT secret dependencies
        └── routes/        # Leaderboard + levels plugin endpoints
"""

__version__ = "0.1.0"
