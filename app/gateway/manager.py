"""Endpoints scoped to the signed-in manager and their influencers."""
from __future__ import annotations

from typing import Any, Mapping

from app.gateway.client import ApiClient, ApiResult


def manager_sales(client: ApiClient, period: str | None = None) -> ApiResult:
    return client.get("/api/manager/sales", params={"period": period}, fallback_message="Falha ao buscar dados de vendas")


def list_influencers(client: ApiClient) -> ApiResult:
    return client.get("/api/manager/influencers", fallback_message="Falha ao buscar influencers")


def create_influencer(client: ApiClient, influencer: Mapping[str, Any]) -> ApiResult:
    result = client.post("/api/manager/influencers", json=dict(influencer), fallback_message="Falha ao criar influencer")
    if result.success:
        result.message = "Influencer criado com sucesso"
    return result


def update_influencer(client: ApiClient, influencer_id: str, changes: Mapping[str, Any]) -> ApiResult:
    result = client.put(
        f"/api/manager/influencers/{influencer_id}",
        json=dict(changes),
        fallback_message="Falha ao atualizar influencer",
    )
    if result.success:
        result.message = "Influencer atualizado com sucesso"
    return result


def delete_influencer(client: ApiClient, influencer_id: str) -> ApiResult:
    result = client.delete(f"/api/manager/influencers/{influencer_id}", fallback_message="Falha ao remover influencer")
    if result.success:
        result.message = "Influencer removido com sucesso"
    return result


def get_influencer(client: ApiClient, influencer_id: str) -> ApiResult:
    return client.get(
        f"/api/manager/influencers/{influencer_id}",
        fallback_message="Falha ao buscar detalhes do influencer",
    )


def save_notification_settings(client: ApiClient, influencer_id: str, settings: Mapping[str, Any]) -> ApiResult:
    result = client.put(
        f"/api/manager/influencers/{influencer_id}/notifications",
        json=dict(settings),
        fallback_message="Falha ao salvar configurações de notificação",
    )
    if result.success:
        result.message = "Configurações de notificação salvas"
    return result


def check_coupon_availability(client: ApiClient, code: str) -> ApiResult:
    result = client.get(
        "/api/commissions/check",
        params={"code": code},
        fallback_message="Falha ao verificar disponibilidade do cupom",
    )
    if result.success:
        result.data = {"available": bool(result.get("available"))}
    return result
