"""
Auth dependencies for mutating FastAPI routes.
"""

from __future__ import annotations

import logging

from fastapi import Header, HTTPException, Request, status

from core.settings import Settings

from . import security

logger = logging.getLogger(__name__)


async def require_write_access(
    request: Request,
    authorization: str | None = Header(default=None),
) -> None:
    settings: Settings = request.app.state.settings
    if not settings.auth_required:
        return None

    if security.is_authorized(authorization, token=settings.auth_token):
        return None

    logger.warning(
        "write_access_denied method=%s path=%s header_present=%s",
        request.method,
        request.url.path,
        authorization is not None,
    )
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Unauthorized")
