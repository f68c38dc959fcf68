"""
warren.api.main — Dashboard API
================================

Serves the guild leaderboard and the ``levels`` plugin config to the web
dashboard.  Edits land in the same ``plugin_configs`` rows the bot reads,
so they apply from the next message on.

Run with ``python -m warren.api`` (port from ``config.yaml``) or::

    uvicorn warren.api.main:app --port 8000
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from warren import __version__
from warren.api.deps import jwt_secret
from warren.api.routes.levels import router as levels_router
from warren.database.engine import create_db_engine, init_db

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    jwt_secret()  # refuse to start without a usable signing secret
    engine = create_db_engine()
    init_db(engine)
    app.state.engine = engine
    logger.info("Dashboard API ready (database %s)", engine.url.database)
    yield
    engine.dispose()
    logger.info("Dashboard API stopped")


def health() -> dict:
    return {"status": "ok"}


def create_app() -> FastAPI:
    app = FastAPI(title="Warren Dashboard API", version=__version__, lifespan=lifespan)

    # The dashboard is a single frontend origin.
    frontend_url = os.getenv("FRONTEND_URL", "").strip().rstrip("/")
    if frontend_url:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=[frontend_url],
            allow_credentials=True,
            allow_methods=["GET", "PUT", "OPTIONS"],
            allow_headers=["Content-Type", "Authorization"],
        )

    app.add_api_route("/api/health", health, methods=["GET"])
    app.include_router(levels_router, prefix="/api")
    return app


load_dotenv()
app = create_app()
