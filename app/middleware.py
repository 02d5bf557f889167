"""Route guard applied before any page handler runs."""
from __future__ import annotations

import json
import logging

from fastapi import Request
from fastapi.responses import RedirectResponse
from starlette.middleware.base import BaseHTTPMiddleware

from app.auth import TOKEN_COOKIE, USER_COOKIE, dashboard_for_role

logger = logging.getLogger(__name__)

PUBLIC_PATHS = ("/login", "/forgot-password", "/reset-password")
UNGUARDED_PREFIXES = ("/static", "/health", "/favicon.ico")
FALLBACK_ROLE = "influencer"


def _matches(path: str, prefixes: tuple[str, ...]) -> bool:
    return any(path == prefix or path.startswith(prefix + "/") for prefix in prefixes)


def is_public_path(path: str) -> bool:
    return _matches(path, PUBLIC_PATHS)


def role_from_cookie(raw: str | None) -> str:
    """Role stored in the ``user`` cookie, ``influencer`` when unreadable."""
    if not raw:
        return FALLBACK_ROLE
    try:
        data = json.loads(raw)
    except ValueError:
        logger.warning("Unreadable user cookie, assuming %s role", FALLBACK_ROLE)
        return FALLBACK_ROLE
    if not isinstance(data, dict):
        return FALLBACK_ROLE
    return data.get("role") or FALLBACK_ROLE


def resolve_redirect(path: str, token: str | None, user_cookie: str | None) -> str | None:
    """Where to send a request instead of serving ``path``, or ``None`` to let it through."""
    if _matches(path, UNGUARDED_PREFIXES):
        return None

    public = is_public_path(path)
    if not token:
        return None if public else "/login"

    if public or path == "/":
        return dashboard_for_role(role_from_cookie(user_cookie))
    return None


class RouteGuardMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        target = resolve_redirect(
            request.url.path,
            request.cookies.get(TOKEN_COOKIE),
            request.cookies.get(USER_COOKIE),
        )
        if target is not None and target != request.url.path:
            logger.debug("Route guard: %s -> %s", request.url.path, target)
            return RedirectResponse(url=target, status_code=303)
        return await call_next(request)
