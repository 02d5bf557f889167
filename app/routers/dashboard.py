"""Dashboard routes."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse

from app.auth import SessionContext, dashboard_for_role
from app.dependencies import get_api_client, get_session_context, templates
from app.gateway import dashboard as dashboard_api
from app.gateway import manager as manager_api
from app.gateway.client import ApiClient
from app.routers.auth import (
    ensure_session_valid,
    get_admin_user,
    get_influencer_user,
    get_manager_user,
)

router = APIRouter(tags=["Dashboard"])

CHART_PERIOD_LABELS = {"month": "Mensal", "week": "Semanal"}


def chart_rows(data) -> list[dict]:
    return [row for row in data if isinstance(row, dict)] if isinstance(data, list) else []


def chart_peak(rows: list[dict], *keys: str) -> float:
    """Largest value across the plotted series, used to scale the bars."""
    peak = 0.0
    for row in rows:
        for key in keys:
            try:
                peak = max(peak, float(row.get(key) or 0))
            except (TypeError, ValueError):
                continue
    return peak or 1.0


@router.get("/")
def root(session: SessionContext = Depends(get_session_context)) -> RedirectResponse:
    if not session.is_authenticated:
        return RedirectResponse(url="/login", status_code=303)
    return RedirectResponse(url=dashboard_for_role(session.role), status_code=303)


@router.get("/admin/dashboard")
def admin_dashboard(
    request: Request,
    period: str = "month",
    client: ApiClient = Depends(get_api_client),
    session: SessionContext = Depends(get_admin_user),
):
    stats = dashboard_api.admin_stats(client)
    chart = dashboard_api.sales_chart(client, period=period)
    influencers = dashboard_api.influencer_ranking(client, limit=5, period="month")
    managers = dashboard_api.manager_ranking(client, limit=5, period="month")
    pending = dashboard_api.pending_commissions(client)
    ensure_session_valid(stats, chart, influencers, managers, pending)

    rows = chart_rows(chart.data) if chart.success else []
    return templates.TemplateResponse(
        "admin/dashboard.html",
        {
            "request": request,
            "user": session.user,
            "period": period if period in CHART_PERIOD_LABELS else "month",
            "period_labels": CHART_PERIOD_LABELS,
            "stats": stats.data if stats.success else {},
            "stats_error": None if stats.success else stats.message,
            "chart_rows": rows,
            "chart_peak": chart_peak(rows, "influencers", "managers"),
            "chart_error": None if chart.success else chart.message or "Falha ao carregar dados do gráfico",
            "top_influencers": influencers.data if influencers.success else [],
            "influencers_error": None if influencers.success else influencers.message,
            "top_managers": managers.data if managers.success else [],
            "managers_error": None if managers.success else managers.message,
            "pending": pending.data if pending.success else {},
            "pending_error": None if pending.success else pending.message,
        },
    )


@router.get("/manager/dashboard")
def manager_dashboard(
    request: Request,
    period: str = "weekly",
    client: ApiClient = Depends(get_api_client),
    session: SessionContext = Depends(get_manager_user),
):
    stats = dashboard_api.manager_stats(client)
    sales = manager_api.manager_sales(client)
    influencers = manager_api.list_influencers(client)
    ensure_session_valid(stats, sales, influencers)

    sales_data = sales.data if sales.success and isinstance(sales.data, dict) else {}
    period = period if period in ("weekly", "monthly") else "weekly"
    series = chart_rows(sales_data.get(period))
    return templates.TemplateResponse(
        "manager/dashboard.html",
        {
            "request": request,
            "user": session.user,
            "stats": stats.data if stats.success else {},
            "stats_error": None if stats.success else stats.message,
            "period": period,
            "sales": sales_data,
            "series": series,
            "series_peak": chart_peak(series, "sales", "commission"),
            "sales_error": None if sales.success else sales.message,
            "influencers": influencers.data if influencers.success and isinstance(influencers.data, list) else [],
            "influencers_error": None if influencers.success else influencers.message,
        },
    )


@router.get("/influencer/dashboard")
def influencer_dashboard(
    request: Request,
    period: str = "month",
    client: ApiClient = Depends(get_api_client),
    session: SessionContext = Depends(get_influencer_user),
):
    stats = dashboard_api.influencer_stats(client)
    chart = dashboard_api.sales_chart(client, period=period, user_id=session.user.id)
    ensure_session_valid(stats, chart)

    rows = chart_rows(chart.data) if chart.success else []
    return templates.TemplateResponse(
        "influencer/dashboard.html",
        {
            "request": request,
            "user": session.user,
            "period": period if period in CHART_PERIOD_LABELS else "month",
            "period_labels": CHART_PERIOD_LABELS,
            "stats": stats.data if stats.success else {},
            "stats_error": None if stats.success else stats.message,
            "chart_rows": rows,
            "chart_peak": chart_peak(rows, "influencers", "sales"),
            "chart_error": None if chart.success else chart.message,
        },
    )
