"""
Auth security helpers.
"""

from __future__ import annotations

import secrets

BEARER_PREFIX = "Bearer "


def expected_authorization(token: str) -> str:
    return f"{BEARER_PREFIX}{token}"


def is_authorized(authorization: str | None, *, token: str) -> bool:
    """
    True when the Authorization header is exactly `Bearer <token>`.

    An empty configured token never matches, so a production deploy without
    AUTH_TOKEN rejects every write instead of accepting "Bearer ".
    """
    if not token or authorization is None:
        return False
    return secrets.compare_digest(
        authorization.encode("utf-8"),
        expected_authorization(token).encode("utf-8"),
    )
