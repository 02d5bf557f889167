"""WhatsApp connection panel and message templates for managers.

The page renders the panel once, already mounted. After that the browser
script posts the panel snapshot to the JSON endpoints below, and each
endpoint applies one transition and answers with the new snapshot.
"""
from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import JSONResponse

from app.auth import SessionContext
from app.config import get_settings
from app.core.connection import ConnectionPanel
from app.core.messages import MESSAGE_TYPES, resolve_templates
from app.dependencies import get_api_client, redirect_with, templates
from app.gateway import users as users_api
from app.gateway.client import ApiClient, ApiResult
from app.routers.auth import ensure_session_valid, get_manager_user
from app.schemas import PanelRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/manager/whatsapp", tags=["WhatsApp"])


def _panel_response(panel: ConnectionPanel, result: ApiResult | None = None, applied: bool = True) -> JSONResponse:
    body: dict[str, Any] = {"panel": panel.snapshot(), "applied": applied}
    if result is not None:
        body["success"] = result.success
        body["message"] = result.message
    return JSONResponse(body)


@router.get("")
def whatsapp_page(
    request: Request,
    client: ApiClient = Depends(get_api_client),
    session: SessionContext = Depends(get_manager_user),
):
    panel = ConnectionPanel()
    panel.mount(client)
    settings = users_api.get_user_settings(client)
    ensure_session_valid(settings)
    saved = settings.get("messageTemplates") if settings.success else None
    return templates.TemplateResponse(
        "manager/whatsapp.html",
        {
            "request": request,
            "user": session.user,
            "panel": panel.snapshot(),
            "message_templates": resolve_templates(saved),
            "active_tab": request.query_params.get("tab") if request.query_params.get("tab") in MESSAGE_TYPES else "welcome",
            "poll_interval_ms": get_settings().whatsapp_poll_interval_seconds * 1000,
        },
    )


@router.post("/panel/mount")
def panel_mount(
    client: ApiClient = Depends(get_api_client),
    session: SessionContext = Depends(get_manager_user),
):
    panel = ConnectionPanel()
    panel.mount(client)
    return _panel_response(panel)


@router.post("/panel/connect")
def panel_connect(
    payload: PanelRequest,
    client: ApiClient = Depends(get_api_client),
    session: SessionContext = Depends(get_manager_user),
):
    panel = ConnectionPanel.from_snapshot(payload.snapshot)
    result = panel.connect(client)
    return _panel_response(panel, result)


@router.post("/panel/poll")
def panel_poll(
    payload: PanelRequest,
    client: ApiClient = Depends(get_api_client),
    session: SessionContext = Depends(get_manager_user),
):
    """One poll tick; a stale generation comes back unchanged with ``applied: false``."""
    panel = ConnectionPanel.from_snapshot(payload.snapshot)
    generation = payload.generation if payload.generation is not None else panel.generation
    applied = panel.poll_tick(client, generation)
    return _panel_response(panel, applied=applied)


@router.post("/panel/cancel")
def panel_cancel(
    payload: PanelRequest,
    session: SessionContext = Depends(get_manager_user),
):
    panel = ConnectionPanel.from_snapshot(payload.snapshot)
    panel.cancel()
    return _panel_response(panel)


@router.post("/panel/disconnect")
def panel_disconnect(
    payload: PanelRequest,
    client: ApiClient = Depends(get_api_client),
    session: SessionContext = Depends(get_manager_user),
):
    panel = ConnectionPanel.from_snapshot(payload.snapshot)
    result = panel.disconnect(client)
    logger.info("WhatsApp disconnect for %s: %s", session.user.id, result.message)
    return _panel_response(panel, result)


@router.post("/templates/{message_type}")
def save_template(
    message_type: str,
    content: str = Form(default=""),
    client: ApiClient = Depends(get_api_client),
    session: SessionContext = Depends(get_manager_user),
):
    back = f"/manager/whatsapp?tab={message_type}"
    if not content.strip():
        return redirect_with(back, error="A mensagem não pode ficar vazia.")
    result = users_api.update_message_template(client, message_type, content)
    ensure_session_valid(result)
    if not result.success:
        return redirect_with(back, error=result.message or "Não foi possível salvar a mensagem.")
    return redirect_with(back, success="Mensagem salva com sucesso.")
