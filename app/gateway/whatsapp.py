"""WhatsApp instance endpoints and the provider disconnect call."""
from __future__ import annotations

import logging

from app.config import get_settings
from app.gateway.client import ApiClient, ApiResult

logger = logging.getLogger(__name__)


def _normalize(result: ApiResult, *keys: str) -> ApiResult:
    payload = result.data if isinstance(result.data, dict) else {}
    result.data = {key: payload.get(key) or None for key in keys}
    return result


def _require_success_flag(result: ApiResult, fallback: str) -> ApiResult:
    """Some endpoints answer 200 with ``success: false``; treat that, or a body without the flag, as a failure."""
    if result.success and not isinstance(result.data, dict):
        return ApiResult(success=False, message=fallback, data=result.data, status_code=result.status_code)
    if result.success and not result.data.get("success"):
        return ApiResult(
            success=False,
            message=result.data.get("message") or fallback,
            data=result.data,
            status_code=result.status_code,
        )
    return result


def connection_status(client: ApiClient) -> ApiResult:
    """Locally cached status: ``{"hasToken": bool, "token": str | None}``."""
    result = client.get("/api/whatsapp/status", fallback_message="Falha ao buscar status")
    if result.success:
        payload = result.data if isinstance(result.data, dict) else {}
        result.data = {"hasToken": bool(payload.get("hasToken")), "token": payload.get("token") or None}
    return result


def initiate_connection(client: ApiClient) -> ApiResult:
    """Create an instance for the user; returns its credential and a QR code."""
    result = client.post("/api/whatsapp/initiate", fallback_message="Falha ao iniciar conexão")
    if result.success:
        payload = result.data if isinstance(result.data, dict) else {}
        result.data = {
            "hasToken": bool(payload.get("hasToken")),
            "token": payload.get("token") or None,
            "qrCode": payload.get("qrCode") or None,
        }
    return result


def reconnect(client: ApiClient) -> ApiResult:
    """Request a fresh QR code for the user's existing instance."""
    fallback = "Falha ao obter QR code para reconexão"
    result = _require_success_flag(client.post("/api/whatsapp/connect", json={}, fallback_message=fallback), fallback)
    if result.success:
        _normalize(result, "qrCode", "token")
    return result


def detailed_status(client: ApiClient) -> ApiResult:
    """Live provider status: ``{"status", "loggedIn", "qrCode"}``."""
    fallback = "Falha ao buscar status detalhado"
    result = _require_success_flag(client.get("/api/whatsapp/detailed-status", fallback_message=fallback), fallback)
    if result.success:
        payload = result.data
        result.data = {
            "status": payload.get("status") or None,
            "loggedIn": payload.get("loggedIn"),
            "qrCode": payload.get("qrCode") or None,
        }
    return result


def disconnect(client: ApiClient) -> ApiResult:
    """Disconnect the user's instance at the provider.

    Best effort: once the instance credential is known and the provider call
    has been attempted, the result is a success whatever the provider said.
    """
    if not client.is_authenticated:
        return ApiResult.unauthorized()

    status = connection_status(client)
    if not status.success:
        return ApiResult(success=False, message=status.message or "Erro ao processar a desconexão")

    instance_token = status.data.get("token")
    if not status.data.get("hasToken") or not instance_token:
        logger.info("No WhatsApp instance to disconnect")
        return ApiResult(success=True, message="Não há instância WhatsApp para desconectar")

    provider_url = f"{get_settings().whatsapp_provider_url}/instance/disconnect"
    provider = client.post(
        provider_url,
        json={},
        headers={"token": instance_token},
        auth=False,
        fallback_message="Falha na desconexão do provedor",
    )
    if provider.success:
        logger.info("Provider disconnect accepted (status %s)", provider.status_code)
    else:
        logger.warning("Provider disconnect failed, continuing: %s", provider.message)

    refreshed = client.get("/api/whatsapp/status", fallback_message="Falha ao buscar status")
    logger.debug("Status refresh after disconnect returned %s", refreshed.status_code)

    return ApiResult(success=True, message="Instância WhatsApp desconectada com sucesso")
