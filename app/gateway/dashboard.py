"""Dashboard aggregates computed by the backend."""
from __future__ import annotations

from typing import Any

from app.gateway.client import ApiClient, ApiResult

CHART_PERIODS = ("week", "month", "year")
RANKING_PERIODS = ("month", "year", "all")
OVERVIEW_PERIODS = ("month", "quarter", "year")
USER_TYPES = ("all", "manager", "influencer")
TIMELINE_PERIODS = ("year", "all")


def _pick(value: str | None, allowed: tuple[str, ...], default: str) -> str:
    return value if value in allowed else default


def _ranking_rows(payload: Any, id_key: str) -> list[dict[str, Any]]:
    """Rankings come either as a bare list or under ``ranking``."""
    if isinstance(payload, dict):
        payload = payload.get("ranking")
    rows = payload if isinstance(payload, list) else []
    return [
        {
            "id": row.get(id_key) or row.get("_id") or row.get("id"),
            "name": row.get("name"),
            "email": row.get("email"),
            "coupon": row.get("couponCode"),
            "influencer_count": row.get("influencerCount") or 0,
            "sales": row.get("totalSales") or row.get("sales") or 0,
            "commissions": row.get("totalCommission") or row.get("totalCommissions") or row.get("commission") or 0,
            "trend": row.get("trend") or 0,
        }
        for row in rows
        if isinstance(row, dict)
    ]


def admin_stats(client: ApiClient) -> ApiResult:
    return client.get("/api/dashboard/admin", fallback_message="Falha ao obter estatísticas do dashboard")


def manager_stats(client: ApiClient) -> ApiResult:
    return client.get("/api/dashboard/manager", fallback_message="Falha ao obter estatísticas do dashboard")


def influencer_stats(client: ApiClient) -> ApiResult:
    return client.get("/api/dashboard/influencer", fallback_message="Falha ao obter estatísticas do dashboard")


def sales_chart(client: ApiClient, period: str = "month", user_id: str | None = None) -> ApiResult:
    return client.get(
        "/api/dashboard/sales-chart",
        params={"period": _pick(period, CHART_PERIODS, "month"), "userId": user_id},
        fallback_message="Falha ao obter dados do gráfico",
    )


def influencer_ranking(client: ApiClient, limit: int = 10, period: str = "month") -> ApiResult:
    result = client.get(
        "/api/dashboard/influencer-ranking",
        params={"limit": limit, "period": _pick(period, RANKING_PERIODS, "month")},
        fallback_message="Falha ao obter ranking de influenciadores",
    )
    if result.success:
        result.data = _ranking_rows(result.data, "influencerId")
    return result


def manager_ranking(client: ApiClient, limit: int = 10, period: str = "month") -> ApiResult:
    result = client.get(
        "/api/dashboard/manager-ranking",
        params={"limit": limit, "period": _pick(period, RANKING_PERIODS, "month")},
        fallback_message="Falha ao obter ranking de gestores",
    )
    if result.success:
        result.data = _ranking_rows(result.data, "managerId")
    return result


def performance_overview(client: ApiClient, period: str = "month", user_type: str = "all") -> ApiResult:
    return client.get(
        "/api/dashboard/performance-overview",
        params={
            "period": _pick(period, OVERVIEW_PERIODS, "month"),
            "userType": _pick(user_type, USER_TYPES, "all"),
        },
        fallback_message="Falha ao obter estatísticas de desempenho",
    )


def performance_timeline(client: ApiClient, period: str = "year") -> ApiResult:
    return client.get(
        "/api/dashboard/performance-timeline",
        params={"period": _pick(period, TIMELINE_PERIODS, "year")},
        fallback_message="Falha ao obter dados da timeline",
    )


def pending_commissions(client: ApiClient) -> ApiResult:
    return client.get(
        "/api/dashboard/pending-commissions",
        fallback_message="Falha ao obter resumo de comissões pendentes",
    )
