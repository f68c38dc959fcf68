"""
tests/test_jwt_startup.py — Dashboard Secret & Startup Tests
=============================================================
The API refuses to start with a missing, placeholder or short
``JWT_SECRET``, and builds its engine in the lifespan when it does start.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from warren.api import deps
from warren.api import main as api_main
from warren.services import level_service

STRONG = "k" * 48


class TestValidateJwtSecret:
    def test_missing(self):
        with pytest.raises(RuntimeError, match="not set"):
            deps.validate_jwt_secret({})

    def test_blank(self):
        with pytest.raises(RuntimeError, match="not set"):
            deps.validate_jwt_secret({"JWT_SECRET": "   "})

    @pytest.mark.parametrize("value", ["change-me", "CHANGEME", "secret", "warren"])
    def test_placeholder(self, value):
        with pytest.raises(RuntimeError, match="placeholder"):
            deps.validate_jwt_secret({"JWT_SECRET": value})

    def test_too_short(self):
        with pytest.raises(RuntimeError, match=r"at least 32 characters \(got 31\)"):
            deps.validate_jwt_secret({"JWT_SECRET": "a" * 31})

    def test_strong_secret_returned_stripped(self):
        assert deps.validate_jwt_secret({"JWT_SECRET": f" {STRONG}\n"}) == STRONG


class TestLifespan:
    @pytest.fixture(autouse=True)
    def _fresh_secret_cache(self):
        deps.jwt_secret.cache_clear()
        yield
        deps.jwt_secret.cache_clear()

    def test_refuses_to_start_without_secret(self, monkeypatch):
        monkeypatch.delenv("JWT_SECRET", raising=False)
        create_engine = lambda: pytest.fail("engine built before the secret check")  # noqa: E731
        monkeypatch.setattr(api_main, "create_db_engine", create_engine)

        with pytest.raises(RuntimeError, match="JWT_SECRET"):
            with TestClient(api_main.create_app()):
                pass

    def test_startup_builds_engine_and_tables(self, monkeypatch, db_engine):
        monkeypatch.setenv("JWT_SECRET", STRONG)
        monkeypatch.setattr(api_main, "create_db_engine", lambda: db_engine)
        level_service.set_member_xp(db_engine, 900, 100, 1, 100)

        with TestClient(api_main.create_app()) as client:
            resp = client.get("/api/bots/900/guilds/100/leaderboard")

        assert resp.status_code == 200
        assert resp.json()["total"] == 1
