"""Commission tiers, sales and payment generation."""
from __future__ import annotations

from typing import Any, Iterable, Mapping

from app.gateway.client import ApiClient, ApiResult

TIER_PARTITIONS = ("influencer", "manager")


def create_tier(client: ApiClient, tier: Mapping[str, Any]) -> ApiResult:
    return client.post("/api/commissions/tiers", json=dict(tier), fallback_message="Falha ao criar faixa de comissão")


def list_tiers(client: ApiClient, applies_to: str | None = None, is_active: bool | None = None) -> ApiResult:
    """Fetch tiers, optionally for one partition; ``data`` is a list."""
    return client.get(
        "/api/commissions/tiers",
        params={"appliesTo": applies_to, "isActive": is_active},
        fallback_message="Falha ao obter faixas de comissão",
    )


def update_tier(client: ApiClient, tier_id: str, changes: Mapping[str, Any]) -> ApiResult:
    return client.put(
        f"/api/commissions/tiers/{tier_id}",
        json=dict(changes),
        fallback_message="Falha ao atualizar faixa de comissão",
    )


def delete_tier(client: ApiClient, tier_id: str) -> ApiResult:
    return client.delete(f"/api/commissions/tiers/{tier_id}", fallback_message="Falha ao desativar faixa de comissão")


def save_tiers_bulk(client: ApiClient, applies_to: str, tiers: Iterable[Mapping[str, Any]]) -> ApiResult:
    """Replace every tier of a partition; each tier is tagged with ``appliesTo``."""
    formatted = [{**tier, "appliesTo": applies_to} for tier in tiers]
    return client.post(
        "/api/commissions/tiers/bulk",
        json={"tiers": formatted},
        fallback_message="Falha ao salvar faixas de comissão",
    )


def list_sales(
    client: ApiClient,
    start_date: str | None = None,
    end_date: str | None = None,
    influencer_id: str | None = None,
    manager_id: str | None = None,
    page: int | None = None,
    limit: int | None = None,
) -> ApiResult:
    """Paginated sales; ``data`` becomes ``{"sales": [...], "pagination": {...}}``."""
    result = client.get(
        "/api/commissions/sales",
        params={
            "startDate": start_date,
            "endDate": end_date,
            "influencerId": influencer_id,
            "managerId": manager_id,
            "page": page,
            "limit": limit,
        },
        fallback_message="Falha ao obter vendas",
    )
    if result.success:
        payload = result.data if isinstance(result.data, dict) else {}
        result.data = {
            "sales": payload.get("sales") or [],
            "pagination": {
                "page": payload.get("page", 1),
                "pages": payload.get("pages", 1),
                "total": payload.get("total", 0),
            },
        }
    return result


def process_commissions(client: ApiClient) -> ApiResult:
    return client.post("/api/commissions/process", fallback_message="Falha ao processar comissões")


def generate_payments(client: ApiClient, start_date: str, end_date: str) -> ApiResult:
    return client.post(
        "/api/commissions/generate-payments",
        json={"startDate": start_date, "endDate": end_date},
        fallback_message="Falha ao gerar pagamentos",
    )
