"""Admin routes: users, commission tiers, payments, sales and performance."""
from __future__ import annotations

import logging
from datetime import date, datetime
from typing import List

from fastapi import APIRouter, Depends, Form, Query, Request
from fastapi.responses import JSONResponse, Response
from pydantic import ValidationError

from app.auth import SessionContext
from app.core.submission import tier_submissions
from app.core.tier_editor import PARTITIONS, TierEditor, TierValidationError
from app.dependencies import get_api_client, redirect_with, templates
from app.exporting import export_payments_workbook, export_sales_workbook
from app.gateway import commissions as commissions_api
from app.gateway import dashboard as dashboard_api
from app.gateway import payments as payments_api
from app.gateway import users as users_api
from app.gateway.client import ApiClient
from app.routers.auth import ensure_session_valid, get_admin_user
from app.routers.dashboard import chart_peak, chart_rows
from app.schemas import UserForm, first_error

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"])

USERS_PAGE_SIZE = 10
PAYMENTS_PAGE_SIZE = 20
SALES_PAGE_SIZE = 20
EXPORT_LIMIT = 5000
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
SAVE_IN_PROGRESS_MESSAGE = "Já existe um salvamento em andamento para estas faixas. Aguarde."
PERFORMANCE_PERIOD_LABELS = {"month": "Este mês", "quarter": "Este trimestre", "year": "Este ano"}
PERFORMANCE_USER_TYPE_LABELS = {"all": "Todos", "manager": "Gestores", "influencer": "Influencers"}


def _iso_date(value: str | None) -> str | None:
    """Validate a YYYY-MM-DD form value; blank gives ``None``."""
    if not value or not value.strip():
        return None
    return date.fromisoformat(value.strip()).isoformat()


def _xlsx_response(content: bytes, prefix: str) -> Response:
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    filename = f"{prefix}_{timestamp}.xlsx"
    return Response(
        content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


@router.get("/users")
def list_users(
    request: Request,
    role: str | None = None,
    search: str | None = None,
    page: int = Query(default=1, ge=1),
    edit: str | None = None,
    client: ApiClient = Depends(get_api_client),
    admin: SessionContext = Depends(get_admin_user),
):
    """List users with filters; ``?edit=<id>`` opens the edit form."""
    result = users_api.list_users(client, role=role, search=search, page=page, limit=USERS_PAGE_SIZE)
    managers = users_api.list_managers(client)
    ensure_session_valid(result, managers)

    editing = None
    if edit:
        found = users_api.get_user(client, edit)
        if found.success and isinstance(found.data, dict):
            editing = found.data

    listing = result.data if result.success else {"users": [], "total": 0, "pages": 1}
    return templates.TemplateResponse(
        "admin/users.html",
        {
            "request": request,
            "user": admin.user,
            "users": listing["users"],
            "total": listing["total"],
            "pages": listing["pages"],
            "page": page,
            "role": role or "",
            "search": search or "",
            "managers": managers.data if managers.success else [],
            "editing": editing,
            "load_error": None if result.success else result.message,
        },
    )


def _user_form(
    name: str,
    email: str,
    role: str,
    password: str,
    whatsapp_number: str,
    manager_id: str,
    coupon_code: str,
    is_active: str | None,
) -> UserForm:
    return UserForm(
        name=name,
        email=email,
        role=role,
        password=password,
        whatsapp_number=whatsapp_number,
        manager_id=manager_id,
        coupon_code=coupon_code,
        is_active=is_active is not None,
    )


@router.post("/users")
def create_user(
    name: str = Form(default=""),
    email: str = Form(default=""),
    role: str = Form(default=""),
    password: str = Form(default=""),
    whatsapp_number: str = Form(default=""),
    manager_id: str = Form(default=""),
    coupon_code: str = Form(default=""),
    is_active: str | None = Form(default=None),
    client: ApiClient = Depends(get_api_client),
    admin: SessionContext = Depends(get_admin_user),
):
    """Create a user through the backend (admin only)."""
    if not role:
        return redirect_with("/admin/users", error="Tipo de usuário é obrigatório.")
    if not password:
        return redirect_with("/admin/users", error="Senha é obrigatória para criar usuário.")
    try:
        form = _user_form(name, email, role, password, whatsapp_number, manager_id, coupon_code, is_active)
    except ValidationError as exc:
        return redirect_with("/admin/users", error=first_error(exc))

    result = users_api.create_user(client, form.to_api())
    ensure_session_valid(result)
    if not result.success:
        return redirect_with("/admin/users", error=result.message or "Falha ao salvar usuário")
    logger.info("Admin %s created %s user %s", admin.user.id, form.role, form.email)
    return redirect_with("/admin/users", success=f"{form.name} foi criado com sucesso.")


@router.post("/users/{user_id}/edit")
def update_user(
    user_id: str,
    name: str = Form(default=""),
    email: str = Form(default=""),
    role: str = Form(default=""),
    password: str = Form(default=""),
    whatsapp_number: str = Form(default=""),
    manager_id: str = Form(default=""),
    coupon_code: str = Form(default=""),
    is_active: str | None = Form(default=None),
    client: ApiClient = Depends(get_api_client),
    admin: SessionContext = Depends(get_admin_user),
):
    try:
        form = _user_form(name, email, role, password, whatsapp_number, manager_id, coupon_code, is_active)
    except ValidationError as exc:
        return redirect_with(f"/admin/users?edit={user_id}", error=first_error(exc))

    result = users_api.update_user(client, user_id, form.to_api())
    ensure_session_valid(result)
    if not result.success:
        return redirect_with(f"/admin/users?edit={user_id}", error=result.message or "Falha ao salvar usuário")
    return redirect_with("/admin/users", success=f"{form.name} foi atualizado com sucesso.")


@router.post("/users/{user_id}/delete")
def delete_user(
    user_id: str,
    client: ApiClient = Depends(get_api_client),
    admin: SessionContext = Depends(get_admin_user),
):
    """Delete a user (admin only)."""
    if user_id == admin.user.id:
        return redirect_with("/admin/users", error="Você não pode excluir sua própria conta.")
    result = users_api.delete_user(client, user_id)
    ensure_session_valid(result)
    if not result.success:
        return redirect_with("/admin/users", error=result.message)
    return redirect_with("/admin/users", success=result.message)


@router.post("/users/{user_id}/deactivate")
def deactivate_user(
    user_id: str,
    client: ApiClient = Depends(get_api_client),
    admin: SessionContext = Depends(get_admin_user),
):
    result = users_api.deactivate_user(client, user_id)
    ensure_session_valid(result)
    if not result.success:
        return redirect_with("/admin/users", error=result.message)
    return redirect_with("/admin/users", success=result.message)


@router.get("/users/check-coupon")
def check_coupon(
    code: str = "",
    client: ApiClient = Depends(get_api_client),
    admin: SessionContext = Depends(get_admin_user),
):
    """JSON probe used by the user form while typing a coupon code."""
    code = code.strip().upper()
    if not code:
        return JSONResponse({"available": False, "message": "Informe o código do cupom"})
    result = users_api.check_coupon_availability(client, code)
    if not result.success:
        return JSONResponse({"available": False, "message": result.message}, status_code=502)
    return JSONResponse(result.data)


# ---------------------------------------------------------------------------
# Commission tiers
# ---------------------------------------------------------------------------


def _render_tiers(request: Request, admin: SessionContext, editor: TierEditor, status_code: int = 200, **extra):
    context = {
        "request": request,
        "user": admin.user,
        "applies_to": editor.applies_to,
        "partitions": PARTITIONS,
        "rows": editor.rows(),
        "error": editor.error,
        "new_min_value": editor.new_min_value,
    }
    context.update(extra)
    return templates.TemplateResponse("admin/commissions.html", context, status_code=status_code)


@router.get("/commissions")
def commission_tiers(
    request: Request,
    applies_to: str = "influencer",
    client: ApiClient = Depends(get_api_client),
    admin: SessionContext = Depends(get_admin_user),
):
    """Tier editor for one partition, loaded fresh from the backend."""
    if applies_to not in PARTITIONS:
        applies_to = "influencer"
    editor = TierEditor(applies_to=applies_to)
    result = editor.load(client)
    ensure_session_valid(result)
    return _render_tiers(request, admin, editor)


@router.post("/commissions")
def edit_commission_tiers(
    request: Request,
    applies_to: str = Form(default="influencer"),
    action: str = Form(default="save"),
    new_min_value: str = Form(default=""),
    min_sales_value: List[str] = Form(default=[]),
    max_sales_value: List[str] = Form(default=[]),
    commission_percentage: List[str] = Form(default=[]),
    client: ApiClient = Depends(get_api_client),
    admin: SessionContext = Depends(get_admin_user),
):
    """Apply one editor action to the posted rows.

    ``action`` is ``add``, ``remove-<index>``, ``save`` or ``reload``.
    """
    if applies_to not in PARTITIONS:
        return redirect_with("/admin/commissions", error="Tipo de faixa inválido.")

    if action == "reload":
        return redirect_with(f"/admin/commissions?applies_to={applies_to}")

    editor = TierEditor.from_form(applies_to, min_sales_value, max_sales_value, commission_percentage)

    if action == "add":
        try:
            editor.add_tier(new_min_value)
        except TierValidationError as exc:
            editor.error = str(exc)
            return _render_tiers(request, admin, editor, status_code=400)
        return _render_tiers(request, admin, editor)

    if action.startswith("remove-"):
        index = action.removeprefix("remove-")
        try:
            editor.remove_tier(int(index) if index.isdigit() else -1)
        except TierValidationError as exc:
            editor.error = str(exc)
            return _render_tiers(request, admin, editor, status_code=400)
        return _render_tiers(request, admin, editor)

    with tier_submissions.hold((admin.token, applies_to)) as acquired:
        if not acquired:
            logger.warning("Rejected concurrent %s tier save", applies_to)
            editor.error = SAVE_IN_PROGRESS_MESSAGE
            return _render_tiers(request, admin, editor, status_code=409)
        result = editor.submit(client)

    ensure_session_valid(result)
    if not result.success:
        return _render_tiers(request, admin, editor, status_code=400)
    logger.info("Saved %d %s commission tiers", len(editor.tiers), applies_to)
    return _render_tiers(request, admin, editor, success="Faixas de comissão salvas com sucesso.")


# ---------------------------------------------------------------------------
# Payments
# ---------------------------------------------------------------------------


def _payment_filters(status: str | None, start_date: str | None, end_date: str | None) -> dict:
    return {
        "status": status if status in payments_api.PAYMENT_STATUSES else None,
        "start_date": _iso_date(start_date),
        "end_date": _iso_date(end_date),
    }


@router.get("/payments")
def list_payments(
    request: Request,
    status: str | None = None,
    start_date: str | None = None,
    end_date: str | None = None,
    page: int = Query(default=1, ge=1),
    client: ApiClient = Depends(get_api_client),
    admin: SessionContext = Depends(get_admin_user),
):
    try:
        filters = _payment_filters(status, start_date, end_date)
    except ValueError:
        return redirect_with("/admin/payments", error="Datas devem usar o formato AAAA-MM-DD.")

    result = payments_api.list_payments(client, page=page, limit=PAYMENTS_PAGE_SIZE, **filters)
    summary = payments_api.pending_payments_summary(client)
    ensure_session_valid(result, summary)

    listing = result.data if result.success else {"payments": [], "pagination": {"page": 1, "pages": 1, "total": 0}}
    return templates.TemplateResponse(
        "admin/payments.html",
        {
            "request": request,
            "user": admin.user,
            "payments": listing["payments"],
            "pagination": listing["pagination"],
            "page": page,
            "filters": {key: value or "" for key, value in filters.items()},
            "statuses": payments_api.PAYMENT_STATUSES,
            "summary": summary.data if summary.success else {},
            "load_error": None if result.success else result.message,
        },
    )


@router.post("/payments/{payment_id}/status")
def update_payment_status(
    payment_id: str,
    status: str = Form(...),
    transaction_id: str = Form(default=""),
    client: ApiClient = Depends(get_api_client),
    admin: SessionContext = Depends(get_admin_user),
):
    result = payments_api.update_payment_status(client, payment_id, status, transaction_id.strip() or None)
    ensure_session_valid(result)
    if not result.success:
        return redirect_with("/admin/payments", error=result.message)
    return redirect_with("/admin/payments", success="Status do pagamento atualizado.")


@router.post("/payments/mark-paid")
def mark_payments_paid(
    payment_ids: List[str] = Form(default=[]),
    transaction_id: str = Form(default=""),
    client: ApiClient = Depends(get_api_client),
    admin: SessionContext = Depends(get_admin_user),
):
    """Batch-mark the selected payments as paid."""
    result = payments_api.mark_payments_paid(client, payment_ids, transaction_id.strip() or None)
    ensure_session_valid(result)
    if not result.success:
        return redirect_with("/admin/payments", error=result.message)
    logger.info("Admin %s marked %d payments as paid", admin.user.id, len(payment_ids))
    return redirect_with("/admin/payments", success=result.message or "Pagamentos marcados como pagos.")


@router.post("/payments/generate")
def generate_payments(
    start_date: str = Form(default=""),
    end_date: str = Form(default=""),
    client: ApiClient = Depends(get_api_client),
    admin: SessionContext = Depends(get_admin_user),
):
    try:
        start, end = _iso_date(start_date), _iso_date(end_date)
    except ValueError:
        return redirect_with("/admin/payments", error="Datas devem usar o formato AAAA-MM-DD.")
    if not start or not end:
        return redirect_with("/admin/payments", error="Informe o período para gerar os pagamentos.")
    if start > end:
        return redirect_with("/admin/payments", error="A data inicial deve ser anterior à data final.")

    result = commissions_api.generate_payments(client, start, end)
    ensure_session_valid(result)
    if not result.success:
        return redirect_with("/admin/payments", error=result.message)
    return redirect_with("/admin/payments", success=result.message or "Pagamentos gerados com sucesso.")


@router.get("/payments/export-xlsx")
def export_payments_xlsx(
    status: str | None = None,
    start_date: str | None = None,
    end_date: str | None = None,
    client: ApiClient = Depends(get_api_client),
    admin: SessionContext = Depends(get_admin_user),
) -> Response:
    try:
        filters = _payment_filters(status, start_date, end_date)
    except ValueError:
        return redirect_with("/admin/payments", error="Datas devem usar o formato AAAA-MM-DD.")
    result = payments_api.list_payments(client, page=1, limit=EXPORT_LIMIT, **filters)
    ensure_session_valid(result)
    if not result.success:
        return redirect_with("/admin/payments", error=result.message)
    return _xlsx_response(export_payments_workbook(result.data["payments"]), "commission_payments")


# ---------------------------------------------------------------------------
# Sales
# ---------------------------------------------------------------------------


def _sales_filters(
    start_date: str | None, end_date: str | None, influencer_id: str | None, manager_id: str | None
) -> dict:
    return {
        "start_date": _iso_date(start_date),
        "end_date": _iso_date(end_date),
        "influencer_id": influencer_id or None,
        "manager_id": manager_id or None,
    }


@router.get("/sales")
def list_sales(
    request: Request,
    start_date: str | None = None,
    end_date: str | None = None,
    influencer_id: str | None = None,
    manager_id: str | None = None,
    page: int = Query(default=1, ge=1),
    client: ApiClient = Depends(get_api_client),
    admin: SessionContext = Depends(get_admin_user),
):
    try:
        filters = _sales_filters(start_date, end_date, influencer_id, manager_id)
    except ValueError:
        return redirect_with("/admin/sales", error="Datas devem usar o formato AAAA-MM-DD.")

    result = commissions_api.list_sales(client, page=page, limit=SALES_PAGE_SIZE, **filters)
    managers = users_api.list_managers(client)
    ensure_session_valid(result, managers)

    listing = result.data if result.success else {"sales": [], "pagination": {"page": 1, "pages": 1, "total": 0}}
    return templates.TemplateResponse(
        "admin/sales.html",
        {
            "request": request,
            "user": admin.user,
            "sales": listing["sales"],
            "pagination": listing["pagination"],
            "page": page,
            "filters": {key: value or "" for key, value in filters.items()},
            "managers": managers.data if managers.success else [],
            "load_error": None if result.success else result.message,
        },
    )


@router.post("/sales/process")
def process_commissions(
    client: ApiClient = Depends(get_api_client),
    admin: SessionContext = Depends(get_admin_user),
):
    """Ask the backend to compute commissions for unprocessed sales."""
    result = commissions_api.process_commissions(client)
    ensure_session_valid(result)
    if not result.success:
        return redirect_with("/admin/sales", error=result.message)
    return redirect_with("/admin/sales", success=result.message or "Comissões processadas com sucesso.")


@router.get("/sales/export-xlsx")
def export_sales_xlsx(
    start_date: str | None = None,
    end_date: str | None = None,
    influencer_id: str | None = None,
    manager_id: str | None = None,
    client: ApiClient = Depends(get_api_client),
    admin: SessionContext = Depends(get_admin_user),
) -> Response:
    try:
        filters = _sales_filters(start_date, end_date, influencer_id, manager_id)
    except ValueError:
        return redirect_with("/admin/sales", error="Datas devem usar o formato AAAA-MM-DD.")
    result = commissions_api.list_sales(client, page=1, limit=EXPORT_LIMIT, **filters)
    ensure_session_valid(result)
    if not result.success:
        return redirect_with("/admin/sales", error=result.message)
    return _xlsx_response(export_sales_workbook(result.data["sales"]), "sales")


# ---------------------------------------------------------------------------
# Performance
# ---------------------------------------------------------------------------


@router.get("/performance")
def performance(
    request: Request,
    period: str = "month",
    user_type: str = "all",
    client: ApiClient = Depends(get_api_client),
    admin: SessionContext = Depends(get_admin_user),
):
    overview = dashboard_api.performance_overview(client, period=period, user_type=user_type)
    timeline = dashboard_api.performance_timeline(client, period="year")
    managers = dashboard_api.manager_ranking(client, limit=10, period="month")
    influencers = dashboard_api.influencer_ranking(client, limit=10, period="month")
    ensure_session_valid(overview, timeline, managers, influencers)

    timeline_rows = chart_rows(timeline.data) if timeline.success else []
    return templates.TemplateResponse(
        "admin/performance.html",
        {
            "request": request,
            "user": admin.user,
            "period": period if period in dashboard_api.OVERVIEW_PERIODS else "month",
            "user_type": user_type if user_type in dashboard_api.USER_TYPES else "all",
            "periods": PERFORMANCE_PERIOD_LABELS,
            "user_types": PERFORMANCE_USER_TYPE_LABELS,
            "stats": overview.data if overview.success and isinstance(overview.data, dict) else {},
            "stats_error": None if overview.success else overview.message,
            "timeline": timeline_rows,
            "timeline_peak": chart_peak(timeline_rows, "managerSales", "influencersSales"),
            "timeline_error": None if timeline.success else timeline.message,
            "managers": managers.data if managers.success else [],
            "influencers": influencers.data if influencers.success else [],
            "ranking_error": None if managers.success and influencers.success else (managers.message or influencers.message),
        },
    )
