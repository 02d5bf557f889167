"""Manager routes: influencers, their notification settings and coupons."""
from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from app.auth import SessionContext
from app.core.optimistic import OptimisticUpdate
from app.dependencies import get_api_client, redirect_with, templates
from app.gateway import coupons as coupons_api
from app.gateway import manager as manager_api
from app.gateway.client import ApiClient
from app.routers.auth import ensure_session_valid, get_manager_user
from app.schemas import (
    REMINDER_THRESHOLDS,
    REPORT_FREQUENCIES,
    InfluencerForm,
    NotificationSettingsForm,
    first_error,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/manager", tags=["Manager"])

COUPON_IN_USE_MESSAGE = "Este cupom já está em uso. Escolha outro código."


def _influencer_id(influencer: dict[str, Any]) -> Any:
    return influencer.get("id") or influencer.get("_id")


def _coupon_available(client: ApiClient, code: str | None) -> str | None:
    """Error text when ``code`` is taken or cannot be checked, else ``None``."""
    if not code:
        return None
    check = manager_api.check_coupon_availability(client, code)
    ensure_session_valid(check)
    if not check.success:
        return check.message
    if not check.data["available"]:
        return COUPON_IN_USE_MESSAGE
    return None


def _render_influencers(
    request: Request,
    session: SessionContext,
    client: ApiClient,
    status_code: int = 200,
    **extra: Any,
):
    result = manager_api.list_influencers(client)
    ensure_session_valid(result)
    influencers = result.data if result.success and isinstance(result.data, list) else []
    context = {
        "request": request,
        "user": session.user,
        "influencers": influencers,
        "load_error": None if result.success else result.message,
        "editing": None,
        "notifications_for": None,
        "coupons_for": None,
        "coupons": [],
        "report_frequencies": [value for value in REPORT_FREQUENCIES if value != "bi-weekly"],
        "reminder_thresholds": REMINDER_THRESHOLDS,
    }
    context.update(extra)
    return templates.TemplateResponse("manager/influencers.html", context, status_code=status_code)


@router.get("/influencers")
def list_influencers(
    request: Request,
    edit: str | None = None,
    notifications: str | None = None,
    client: ApiClient = Depends(get_api_client),
    session: SessionContext = Depends(get_manager_user),
):
    """Influencer list; ``?edit=`` or ``?notifications=`` opens a panel for one influencer."""
    extra: dict[str, Any] = {}
    if edit:
        found = manager_api.get_influencer(client, edit)
        ensure_session_valid(found)
        if found.success and isinstance(found.data, dict):
            extra["editing"] = found.data
        else:
            extra["panel_error"] = found.message
    if notifications:
        found = manager_api.get_influencer(client, notifications)
        ensure_session_valid(found)
        if found.success and isinstance(found.data, dict):
            extra["notifications_for"] = found.data
        else:
            extra["panel_error"] = found.message
    return _render_influencers(request, session, client, **extra)


@router.post("/influencers")
def create_influencer(
    name: str = Form(default=""),
    email: str = Form(default=""),
    phone: str = Form(default=""),
    instagram: str = Form(default=""),
    coupon: str = Form(default=""),
    client: ApiClient = Depends(get_api_client),
    session: SessionContext = Depends(get_manager_user),
):
    try:
        form = InfluencerForm(name=name, email=email, whatsapp_number=phone, instagram=instagram, coupon=coupon)
    except ValidationError as exc:
        return redirect_with("/manager/influencers", error=first_error(exc))
    if not form.coupon:
        return redirect_with("/manager/influencers", error="Informe o cupom do influencer.")

    coupon_error = _coupon_available(client, form.coupon)
    if coupon_error:
        return redirect_with("/manager/influencers", error=coupon_error)

    result = manager_api.create_influencer(client, form.to_api(creating=True))
    ensure_session_valid(result)
    if not result.success:
        return redirect_with("/manager/influencers", error=result.message)
    logger.info("Manager %s created influencer %s", session.user.id, form.email)
    return redirect_with(
        "/manager/influencers",
        success=f"{form.name} foi adicionado como influencer com o cupom {form.coupon}.",
    )


@router.post("/influencers/{influencer_id}/edit")
def update_influencer(
    influencer_id: str,
    name: str = Form(default=""),
    email: str = Form(default=""),
    phone: str = Form(default=""),
    instagram: str = Form(default=""),
    coupon: str = Form(default=""),
    client: ApiClient = Depends(get_api_client),
    session: SessionContext = Depends(get_manager_user),
):
    back = f"/manager/influencers?edit={influencer_id}"
    try:
        form = InfluencerForm(name=name, email=email, whatsapp_number=phone, instagram=instagram, coupon=coupon)
    except ValidationError as exc:
        return redirect_with(back, error=first_error(exc))

    result = manager_api.update_influencer(client, influencer_id, form.to_api(creating=False))
    ensure_session_valid(result)
    if not result.success:
        return redirect_with(back, error=result.message)
    return redirect_with("/manager/influencers", success=f"As informações de {form.name} foram atualizadas.")


@router.post("/influencers/{influencer_id}/delete")
def delete_influencer(
    influencer_id: str,
    client: ApiClient = Depends(get_api_client),
    session: SessionContext = Depends(get_manager_user),
):
    result = manager_api.delete_influencer(client, influencer_id)
    ensure_session_valid(result)
    if not result.success:
        return redirect_with("/manager/influencers", error=result.message)
    return redirect_with("/manager/influencers", success=result.message)


@router.post("/influencers/{influencer_id}/notifications")
def save_notifications(
    influencer_id: str,
    welcome: str | None = Form(default=None),
    report: str | None = Form(default=None),
    reminder: str | None = Form(default=None),
    report_frequency: str = Form(default=""),
    reminder_threshold: str = Form(default=""),
    client: ApiClient = Depends(get_api_client),
    session: SessionContext = Depends(get_manager_user),
):
    back = f"/manager/influencers?notifications={influencer_id}"
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

    result = manager_api.save_notification_settings(client, influencer_id, form.to_api())
    ensure_session_valid(result)
    if not result.success:
        return redirect_with(back, error=result.message)
    return redirect_with("/manager/influencers", success=result.message)


# ---------------------------------------------------------------------------
# Coupons
# ---------------------------------------------------------------------------


def _render_coupons(
    request: Request,
    session: SessionContext,
    client: ApiClient,
    influencer_id: str,
    coupons: list[dict[str, Any]] | None = None,
    status_code: int = 200,
    **extra: Any,
):
    """Influencer page with the coupon panel open; fetches coupons unless given."""
    if coupons is None:
        result = coupons_api.list_influencer_coupons(client, influencer_id)
        ensure_session_valid(result)
        coupons = result.data if result.success and isinstance(result.data, list) else []
        if not result.success:
            extra.setdefault("error", result.message)
    found = manager_api.get_influencer(client, influencer_id)
    influencer = {"id": influencer_id}
    if found.success and isinstance(found.data, dict):
        influencer.update(found.data)
    return _render_influencers(
        request,
        session,
        client,
        status_code=status_code,
        coupons_for=influencer,
        coupons=coupons,
        **extra,
    )


@router.get("/influencers/{influencer_id}/coupons")
def list_coupons(
    request: Request,
    influencer_id: str,
    client: ApiClient = Depends(get_api_client),
    session: SessionContext = Depends(get_manager_user),
):
    return _render_coupons(request, session, client, influencer_id)


@router.post("/influencers/{influencer_id}/coupons")
def create_coupon(
    request: Request,
    influencer_id: str,
    code: str = Form(default=""),
    client: ApiClient = Depends(get_api_client),
    session: SessionContext = Depends(get_manager_user),
):
    code = code.strip().upper()
    coupon_error = _coupon_available(client, code)
    if coupon_error:
        return _render_coupons(request, session, client, influencer_id, status_code=400, error=coupon_error)

    result = coupons_api.create_coupon(client, code, influencer_id)
    ensure_session_valid(result)
    if not result.success:
        return _render_coupons(request, session, client, influencer_id, status_code=400, error=result.message)
    return _render_coupons(request, session, client, influencer_id, success=f'Cupom "{code}" criado.')


@router.post("/influencers/{influencer_id}/coupons/{coupon_id}/toggle")
def toggle_coupon(
    request: Request,
    influencer_id: str,
    coupon_id: str,
    client: ApiClient = Depends(get_api_client),
    session: SessionContext = Depends(get_manager_user),
):
    """Flip a coupon's active flag optimistically, rolling back on failure."""
    listing = coupons_api.list_influencer_coupons(client, influencer_id)
    ensure_session_valid(listing)
    if not listing.success:
        return _render_coupons(request, session, client, influencer_id, coupons=[], error=listing.message)

    coupons = listing.data if isinstance(listing.data, list) else []
    current = next((coupon for coupon in coupons if coupon.get("_id") == coupon_id), None)
    if current is None:
        return _render_coupons(request, session, client, influencer_id, coupons=coupons, error="Cupom não encontrado.")

    target = not bool(current.get("isActive"))
    update = OptimisticUpdate(coupons)
    update.apply(coupon_id, isActive=target)
    result = coupons_api.set_coupon_active(client, coupon_id, target)
    ensure_session_valid(result)
    coupons = update.resolve(result)

    if not result.success:
        logger.warning("Coupon %s toggle rolled back: %s", coupon_id, result.message)
        return _render_coupons(
            request,
            session,
            client,
            influencer_id,
            coupons=coupons,
            status_code=502,
            error="Não foi possível atualizar o status do cupom.",
        )
    state = "ativado" if target else "desativado"
    return _render_coupons(
        request,
        session,
        client,
        influencer_id,
        coupons=coupons,
        success=f'Cupom "{current.get("code")}" {state}.',
    )


@router.post("/influencers/{influencer_id}/coupons/{coupon_id}/delete")
def delete_coupon(
    request: Request,
    influencer_id: str,
    coupon_id: str,
    client: ApiClient = Depends(get_api_client),
    session: SessionContext = Depends(get_manager_user),
):
    result = coupons_api.delete_coupon(client, coupon_id)
    ensure_session_valid(result)
    if not result.success:
        return _render_coupons(request, session, client, influencer_id, status_code=400, error=result.message)
    return _render_coupons(request, session, client, influencer_id, success=result.message)


@router.get("/coupons/check")
def check_coupon(
    code: str = "",
    client: ApiClient = Depends(get_api_client),
    session: SessionContext = Depends(get_manager_user),
):
    """JSON availability probe used while typing a coupon code."""
    code = code.strip().upper()
    if not code:
        return JSONResponse({"available": False, "message": "Informe o código do cupom"})
    result = manager_api.check_coupon_availability(client, code)
    if not result.success:
        return JSONResponse({"available": False, "message": result.message}, status_code=502)
    return JSONResponse(result.data)
