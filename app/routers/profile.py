"""User profile routes."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Form, Request
from pydantic import ValidationError

from app.auth import SessionContext, write_user_cookie
from app.dependencies import get_api_client, redirect_with, templates
from app.gateway import users as users_api
from app.gateway.client import ApiClient
from app.routers.auth import ensure_session_valid, get_current_user, get_manager_user
from app.schemas import (
    REMINDER_THRESHOLDS,
    REPORT_FREQUENCIES,
    NotificationSettingsForm,
    PasswordChangeForm,
    first_error,
)

router = APIRouter(tags=["Profile"])

SETTINGS_PAGES = ("/profile", "/manager/settings")


def _back(next_page: str | None) -> str:
    return next_page if next_page in SETTINGS_PAGES else "/profile"


def _render_profile(request: Request, session: SessionContext, client: ApiClient, page: str):
    settings = users_api.get_user_settings(client)
    ensure_session_valid(settings)
    notifications = settings.get("notifications") if settings.success else None
    return templates.TemplateResponse(
        "profile/profile.html",
        {
            "request": request,
            "user": session.user,
            "page": page,
            "notifications": notifications if isinstance(notifications, dict) else {},
            "settings_error": None if settings.success else settings.message,
            "report_frequencies": [value for value in REPORT_FREQUENCIES if value != "biweekly"],
            "reminder_thresholds": REMINDER_THRESHOLDS,
        },
    )


@router.get("/profile")
def view_profile(
    request: Request,
    client: ApiClient = Depends(get_api_client),
    session: SessionContext = Depends(get_current_user),
):
    """View current user profile."""
    return _render_profile(request, session, client, "/profile")


@router.get("/manager/settings")
def manager_settings(
    request: Request,
    client: ApiClient = Depends(get_api_client),
    session: SessionContext = Depends(get_manager_user),
):
    return _render_profile(request, session, client, "/manager/settings")


@router.post("/profile/update")
def update_profile(
    name: str = Form(default=""),
    email: str = Form(default=""),
    next: str = Form(default="/profile"),
    client: ApiClient = Depends(get_api_client),
    session: SessionContext = Depends(get_current_user),
):
    """Update name and email; the ``user`` cookie follows when the backend echoes the user."""
    back = _back(next)
    name, email = name.strip(), email.strip()
    if not name or not email:
        return redirect_with(back, error="Nome e email são obrigatórios.")

    result = users_api.update_profile(client, name, email)
    ensure_session_valid(result)
    if not result.success:
        return redirect_with(back, error=result.message)

    if result.data is None:
        return redirect_with(back, error=result.message)
    response = redirect_with(back, success=result.message)
    write_user_cookie(response, result.data)
    return response


@router.post("/profile/change-password")
def change_password(
    current_password: str = Form(default=""),
    new_password: str = Form(default=""),
    confirm_password: str = Form(default=""),
    next: str = Form(default="/profile"),
    client: ApiClient = Depends(get_api_client),
    session: SessionContext = Depends(get_current_user),
):
    """Change current user's password."""
    back = _back(next)
    try:
        form = PasswordChangeForm(
            current_password=current_password,
            new_password=new_password,
            confirm_password=confirm_password,
        )
    except ValidationError as exc:
        return redirect_with(back, error=first_error(exc))

    result = users_api.update_password(client, form.current_password, form.new_password)
    ensure_session_valid(result)
    if not result.success:
        return redirect_with(back, error=result.message)
    return redirect_with(back, success=result.message)


@router.post("/profile/notifications")
def update_notifications(
    welcome: str | None = Form(default=None),
    report: str | None = Form(default=None),
    reminder: str | None = Form(default=None),
    report_frequency: str = Form(default=""),
    reminder_threshold: str = Form(default=""),
    next: str = Form(default="/profile"),
    client: ApiClient = Depends(get_api_client),
    session: SessionContext = Depends(get_current_user),
):
    back = _back(next)
    try:
        form = NotificationSettingsForm(
            welcome=welcome is not None,
            report=report is not None,
            reminder=reminder is not None,
            report_frequency=report_frequency or None,
            reminder_threshold=reminder_threshold or None,
        )
    except ValidationError as exc:
        return redirect_with(back, error=first_error(exc))

    result = users_api.update_user_settings(client, form.to_api())
    ensure_session_valid(result)
    if not result.success:
        return redirect_with(back, error=result.message)
    return redirect_with(back, success="Configurações de notificação atualizadas.")
