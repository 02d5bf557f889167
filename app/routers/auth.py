"""Authentication routes and session management."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Form, HTTPException, Request
from fastapi.responses import RedirectResponse

from app.auth import SessionContext, clear_session_cookies, dashboard_for_role, set_session_cookies
from app.dependencies import get_api_client, get_session_context, templates
from app.gateway import auth as auth_api
from app.gateway.client import ApiClient, ApiResult

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Auth"])


@router.get("/login")
def login_page(request: Request):
    return templates.TemplateResponse("auth/login.html", {"request": request})


@router.post("/login")
def login(
    request: Request,
    email: str = Form(default=""),
    password: str = Form(default=""),
    client: ApiClient = Depends(get_api_client),
):
    """Authenticate against the backend and open the cookie session."""
    result = auth_api.login(client, email.strip(), password)
    if not result.success:
        logger.info("Login rejected (status %s)", result.status_code)
        return templates.TemplateResponse(
            "auth/login.html",
            {"request": request, "error": result.message, "email": email},
            status_code=401,
        )

    user = result.data["user"]
    response = RedirectResponse(url=dashboard_for_role(user["role"]), status_code=303)
    set_session_cookies(response, result.data["token"], user)
    logger.info("User %s signed in as %s", user["id"], user["role"])
    return response


@router.api_route("/logout", methods=["GET", "POST"])
def logout():
    """Clear both session cookies."""
    response = RedirectResponse(url="/login", status_code=303)
    clear_session_cookies(response)
    return response


@router.get("/forgot-password")
def forgot_password_page(request: Request):
    return templates.TemplateResponse("auth/forgot_password.html", {"request": request})


@router.post("/forgot-password")
def forgot_password(
    request: Request,
    email: str = Form(default=""),
    client: ApiClient = Depends(get_api_client),
):
    email = email.strip()
    if not email:
        return templates.TemplateResponse(
            "auth/forgot_password.html",
            {"request": request, "error": "Email is required."},
            status_code=400,
        )
    result = auth_api.request_password_reset(client, email)
    context = {"request": request, "email": email}
    if result.success:
        context["success"] = result.message
    else:
        context["error"] = result.message
    return templates.TemplateResponse("auth/forgot_password.html", context)


@router.get("/reset-password")
def reset_password_page(request: Request, client: ApiClient = Depends(get_api_client)):
    token = request.query_params.get("token", "")
    result = auth_api.verify_reset_token(client, token)
    return templates.TemplateResponse(
        "auth/reset_password.html",
        {
            "request": request,
            "token": token,
            "token_valid": result.success,
            "error": None if result.success else result.message,
        },
    )


@router.post("/reset-password")
def reset_password(
    request: Request,
    token: str = Form(default=""),
    password: str = Form(default=""),
    confirm_password: str = Form(default=""),
    client: ApiClient = Depends(get_api_client),
):
    context = {"request": request, "token": token, "token_valid": True}
    if password != confirm_password:
        context["error"] = "Passwords do not match."
        return templates.TemplateResponse("auth/reset_password.html", context, status_code=400)

    result = auth_api.reset_password(client, token, password)
    if not result.success:
        context["error"] = result.message
        return templates.TemplateResponse("auth/reset_password.html", context, status_code=400)

    context["success"] = result.message
    context["token_valid"] = False
    return templates.TemplateResponse("auth/reset_password.html", context)


def get_current_user(session: SessionContext = Depends(get_session_context)) -> SessionContext:
    """Dependency returning the signed-in session."""
    if not session.is_authenticated:
        raise HTTPException(status_code=401, detail="Not authenticated")
    if session.user is None:
        raise HTTPException(status_code=401, detail="Invalid session")
    return session


def _require_role(session: SessionContext, role: str) -> SessionContext:
    if not session.has_role(role):
        raise HTTPException(status_code=403, detail=f"{role.capitalize()} access required")
    return session


def get_admin_user(session: SessionContext = Depends(get_current_user)) -> SessionContext:
    """Dependency to ensure user is admin."""
    return _require_role(session, "admin")


def get_manager_user(session: SessionContext = Depends(get_current_user)) -> SessionContext:
    return _require_role(session, "manager")


def get_influencer_user(session: SessionContext = Depends(get_current_user)) -> SessionContext:
    return _require_role(session, "influencer")


def ensure_session_valid(*results: ApiResult) -> None:
    """Turn a backend 401 into a sign-out of the cookie session."""
    for result in results:
        if result.status_code == 401:
            raise HTTPException(status_code=401, detail=result.message or "Session expired")
