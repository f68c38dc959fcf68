"""
warren.api.deps — Shared API dependencies
==========================================

The engine is created once in the app lifespan and kept on
``app.state``; routes receive it through :func:`get_engine`.  The token
signing secret is read from ``JWT_SECRET`` on first use and cached.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from functools import lru_cache

from fastapi import Request
from sqlalchemy import Engine

JWT_ALGORITHM = "HS256"
MIN_SECRET_LENGTH = 32

# Values copied from .env.example or tutorials; never accepted.
PLACEHOLDER_SECRETS = frozenset({"change-me", "changeme", "secret", "dev", "warren"})


def validate_jwt_secret(env: Mapping[str, str]) -> str:
    """Return ``JWT_SECRET`` from *env* or raise ``RuntimeError`` explaining why not."""
    secret = (env.get("JWT_SECRET") or "").strip()
    if not secret:
        raise RuntimeError(
            "JWT_SECRET is not set; the dashboard API cannot verify admin tokens."
        )
    if secret.lower() in PLACEHOLDER_SECRETS:
        raise RuntimeError("JWT_SECRET is a placeholder value; generate a random one.")
    if len(secret) < MIN_SECRET_LENGTH:
        raise RuntimeError(
            f"JWT_SECRET must be at least {MIN_SECRET_LENGTH} characters "
            f"(got {len(secret)})."
        )
    return secret


@lru_cache(maxsize=1)
def jwt_secret() -> str:
    return validate_jwt_secret(os.environ)


def get_engine(request: Request) -> Engine:
    return request.app.state.engine
