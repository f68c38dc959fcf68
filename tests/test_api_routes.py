"""
tests/test_api_routes.py — FastAPI Route Integration Tests
===========================================================
Auth guards, leaderboard shape and levels config validation using the
FastAPI TestClient against the in-memory engine.
"""

from __future__ import annotations

from conftest import make_admin_token

from warren.services import level_service, plugin_service

BASE = "/api/bots/900/guilds/100"


def _auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


class TestHealthEndpoint:
    def test_health_returns_ok(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}


class TestLeaderboard:
    def test_empty_guild(self, client):
        resp = client.get(f"{BASE}/leaderboard")
        assert resp.status_code == 200
        body = resp.json()
        assert body["total"] == 0
        assert body["entries"] == []

    def test_entries_and_paging(self, client, db_engine):
        level_service.set_member_xp(db_engine, 900, 100, 1, 100)
        level_service.set_member_xp(db_engine, 900, 100, 2, 5_000)

        resp = client.get(f"{BASE}/leaderboard", params={"limit": 1, "offset": 0})

        body = resp.json()
        assert body["total"] == 2
        assert body["entries"] == [{"rank": 1, "user_id": "2", "level": 1, "xp": 2000}]

    def test_limit_out_of_range(self, client):
        assert client.get(f"{BASE}/leaderboard", params={"limit": 0}).status_code == 422
        assert client.get(f"{BASE}/leaderboard", params={"limit": 500}).status_code == 422


class TestLevelsConfigAuth:
    def test_missing_token(self, client):
        assert client.get(f"{BASE}/plugins/levels").status_code == 401

    def test_invalid_token(self, client):
        resp = client.get(f"{BASE}/plugins/levels", headers=_auth("not-a-jwt"))
        assert resp.status_code == 401

    def test_wrong_scheme(self, client, admin_token):
        resp = client.get(f"{BASE}/plugins/levels", headers={"Authorization": admin_token})
        assert resp.status_code == 401

    def test_token_signed_with_other_secret(self, client):
        token = make_admin_token(secret="another-secret-that-is-long-enough-" + "y" * 20)
        resp = client.get(f"{BASE}/plugins/levels", headers=_auth(token))
        assert resp.status_code == 401

    def test_non_admin_forbidden(self, client):
        token = make_admin_token(sub="67890", is_admin=False)
        resp = client.put(f"{BASE}/plugins/levels", json={}, headers=_auth(token))
        assert resp.status_code == 403

    def test_admin_of_other_guild_forbidden(self, client, db_engine):
        token = make_admin_token(guild_ids=(101,))
        resp = client.put(f"{BASE}/plugins/levels", json={"enabled": False}, headers=_auth(token))
        assert resp.status_code == 403
        assert resp.json()["detail"] == "Token does not cover this guild"
        assert plugin_service.get_plugin_config(db_engine, 900, 100, "levels")["enabled"] is True

    def test_admin_of_other_bot_forbidden(self, client):
        token = make_admin_token(bot_id=901)
        resp = client.get(f"{BASE}/plugins/levels", headers=_auth(token))
        assert resp.status_code == 403

    def test_token_may_cover_several_guilds(self, client):
        token = make_admin_token(guild_ids=(99, 100))
        resp = client.get(f"{BASE}/plugins/levels", headers=_auth(token))
        assert resp.status_code == 200


class TestLevelsConfig:
    def test_get_returns_default(self, client, admin_token):
        resp = client.get(f"{BASE}/plugins/levels", headers=_auth(admin_token))
        assert resp.status_code == 200
        assert resp.json() == {
            "enabled": True,
            "reward_roles": [],
            "channel_id": None,
            "boost_roles": {"x2": [], "x3": [], "x5": []},
        }

    def test_put_replaces_config(self, client, admin_token, db_engine):
        payload = {
            "enabled": True,
            "reward_roles": [{"role_id": "10", "level": 5}, {"role_id": 20, "level": 0}],
            "channel_id": "777",
            "boost_roles": {"x3": ["30"]},
        }
        resp = client.put(f"{BASE}/plugins/levels", json=payload, headers=_auth(admin_token))

        assert resp.status_code == 200
        assert resp.json()["reward_roles"][1] == {"role_id": "20", "level": 0}
        assert resp.json()["boost_roles"] == {"x2": [], "x3": ["30"], "x5": []}

        config = plugin_service.get_reward_rules(db_engine, 900, 100)
        assert [r.role_id for r in config.rules] == ["10", "20"]
        assert config.channel_id == "777"

    def test_put_rejects_negative_level(self, client, admin_token):
        payload = {"reward_roles": [{"role_id": "10", "level": -1}]}
        resp = client.put(f"{BASE}/plugins/levels", json=payload, headers=_auth(admin_token))
        assert resp.status_code == 422

    def test_put_rejects_blank_role(self, client, admin_token):
        payload = {"reward_roles": [{"role_id": "  ", "level": 1}]}
        resp = client.put(f"{BASE}/plugins/levels", json=payload, headers=_auth(admin_token))
        assert resp.status_code == 422
