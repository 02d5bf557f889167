"""Cookie-backed session context.

The session is two HTTP-only cookies: ``token`` (the backend bearer
credential) and ``user`` (JSON ``{id, name, email, role}``). No session
state is kept on the server; the context is rebuilt from the cookies on
every request and handed explicitly to the gateway.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass

from fastapi import Request, Response
from pydantic import ValidationError

from app.config import get_settings
from app.gateway.client import ApiClient
from app.schemas import SessionUser

logger = logging.getLogger(__name__)

TOKEN_COOKIE = "token"
USER_COOKIE = "user"

ROLE_DASHBOARDS = {
    "admin": "/admin/dashboard",
    "manager": "/manager/dashboard",
    "influencer": "/influencer/dashboard",
}


def dashboard_for_role(role: str | None) -> str:
    """Landing page for a role; unknown roles go back to the login page."""
    return ROLE_DASHBOARDS.get(role or "", "/login")


def parse_user_cookie(raw: str | None) -> SessionUser | None:
    if not raw:
        return None
    try:
        return SessionUser.model_validate_json(raw)
    except ValidationError:
        logger.warning("Ignoring malformed user cookie")
        return None


@dataclass
class SessionContext:
    """Credentials of the caller, passed into every backend call."""

    token: str | None
    user: SessionUser | None

    @classmethod
    def from_request(cls, request: Request) -> "SessionContext":
        return cls(
            token=request.cookies.get(TOKEN_COOKIE) or None,
            user=parse_user_cookie(request.cookies.get(USER_COOKIE)),
        )

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    @property
    def role(self) -> str | None:
        return self.user.role if self.user else None

    def has_role(self, *roles: str) -> bool:
        return self.role in roles

    def client(self) -> ApiClient:
        return ApiClient(token=self.token)


def _set_cookie(response: Response, key: str, value: str) -> None:
    settings = get_settings()
    response.set_cookie(
        key=key,
        value=value,
        httponly=True,
        path="/",
        secure=settings.is_production,
        samesite="lax",
        max_age=settings.session_max_age,
    )


def set_session_cookies(response: Response, token: str, user: dict | SessionUser) -> None:
    """Write both session cookies after a successful login."""
    _set_cookie(response, TOKEN_COOKIE, token)
    write_user_cookie(response, user)


def write_user_cookie(response: Response, user: dict | SessionUser) -> None:
    session_user = user if isinstance(user, SessionUser) else SessionUser.model_validate(user)
    _set_cookie(response, USER_COOKIE, json.dumps(session_user.model_dump(), separators=(",", ":")))


def clear_session_cookies(response: Response) -> None:
    response.delete_cookie(TOKEN_COOKIE, path="/")
    response.delete_cookie(USER_COOKIE, path="/")
