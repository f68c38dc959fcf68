"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

import os

# ---------------------------------------------------------------------------
# Ensure a valid JWT_SECRET is always set for test runs.
# warren.api.deps reads and caches it on first use.
# ---------------------------------------------------------------------------
_TEST_JWT_SECRET = "test-secret-for-pytest-only-" + "x" * 40  # > 32 chars
os.environ.setdefault("JWT_SECRET", _TEST_JWT_SECRET)

import pytest  # noqa: E402
from sqlalchemy import Engine, create_engine  # noqa: E402

# ---------------------------------------------------------------------------
# Make JSONB columns work in SQLite for testing.
# SQLite doesn't support JSONB natively, but SQLAlchemy's JSON type works.
# We register a custom type compiler so SQLite renders JSONB as TEXT.
# ---------------------------------------------------------------------------
from sqlalchemy.dialects.postgresql import JSONB as PG_JSONB  # noqa: E402

from warren.database.models import Base  # noqa: E402

_jsonb_sqlite_registered = False


def _register_jsonb_sqlite_compat():
    """Register SQLite compilation for PG JSONB type (idempotent).

    Also maps BigInteger → INTEGER for SQLite.
    """
    global _jsonb_sqlite_registered
    if _jsonb_sqlite_registered:
        return
    from sqlalchemy import BigInteger
    from sqlalchemy.ext.compiler import compiles

    @compiles(PG_JSONB, "sqlite")
    def _compile_jsonb_as_text(type_, compiler, **kw):
        return "TEXT"

    @compiles(BigInteger, "sqlite")
    def _compile_bigint_as_integer(type_, compiler, **kw):
        return "INTEGER"

    _jsonb_sqlite_registered = True


_register_jsonb_sqlite_compat()


@pytest.fixture
def db_engine() -> Engine:
    """Create an in-memory SQLite engine with all Warren tables.

    JSONB columns are transparently mapped to TEXT for SQLite compatibility.
    Uses StaticPool so all threads share the same in-memory database
    (required by ``asyncio.to_thread`` used in ``run_db``).
    """
    from sqlalchemy.pool import StaticPool

    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return engine


BOT_ID = 900
GUILD_ID = 100


def make_admin_token(
    *,
    sub: str = "99999",
    is_admin: bool = True,
    bot_id: int = BOT_ID,
    guild_ids: tuple[int, ...] = (GUILD_ID,),
    secret: str | None = None,
) -> str:
    """Dashboard JWT scoped to *bot_id* and *guild_ids*."""
    import jwt

    from warren.api.deps import JWT_ALGORITHM, jwt_secret

    return jwt.encode(
        {
            "sub": sub,
            "is_admin": is_admin,
            "bot_id": str(bot_id),
            "guild_ids": [str(g) for g in guild_ids],
        },
        secret or jwt_secret(),
        algorithm=JWT_ALGORITHM,
    )


@pytest.fixture
def admin_token():
    """Admin JWT for guild 100 of bot 900."""
    return make_admin_token()


@pytest.fixture
def client(db_engine):
    """FastAPI TestClient bound to the in-memory engine (lifespan not run)."""
    from fastapi.testclient import TestClient

    from warren.api.deps import get_engine
    from warren.api.main import app

    app.dependency_overrides[get_engine] = lambda: db_engine
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()
