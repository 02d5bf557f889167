"""Commission payment records."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Iterable, Mapping

from app.gateway.client import ApiClient, ApiResult

PAYMENT_STATUSES = ("pending", "paid", "failed")


def list_payments(
    client: ApiClient,
    status: str | None = None,
    start_date: str | None = None,
    end_date: str | None = None,
    user_id: str | None = None,
    page: int | None = None,
    limit: int | None = None,
) -> ApiResult:
    """``data`` becomes ``{"payments": [...], "pagination": {...}}``."""
    result = client.get(
        "/api/commissions/payments",
        params={
            "status": status,
            "startDate": start_date,
            "endDate": end_date,
            "userId": user_id,
            "page": page,
            "limit": limit,
        },
        fallback_message="Falha ao obter pagamentos",
    )
    if result.success:
        payload = result.data if isinstance(result.data, dict) else {}
        result.data = {
            "payments": payload.get("payments") or [],
            "pagination": payload.get("pagination") or {"page": 1, "pages": 1, "total": 0},
        }
    return result


def get_payment(client: ApiClient, payment_id: str) -> ApiResult:
    return client.get(f"/api/commissions/payments/{payment_id}", fallback_message="Falha ao obter detalhes do pagamento")


def pending_payments_summary(client: ApiClient) -> ApiResult:
    return client.get("/api/commissions/payments/summary", fallback_message="Falha ao obter resumo de pagamentos")


def update_payment(client: ApiClient, payment_id: str, changes: Mapping[str, Any]) -> ApiResult:
    return client.put(
        f"/api/commissions/payments/{payment_id}",
        json=dict(changes),
        fallback_message="Falha ao atualizar pagamento",
    )


def update_payment_status(
    client: ApiClient, payment_id: str, status: str, transaction_id: str | None = None
) -> ApiResult:
    if status not in PAYMENT_STATUSES:
        return ApiResult(success=False, message="Status de pagamento inválido")
    body: dict[str, Any] = {"status": status}
    if transaction_id:
        body["transactionId"] = transaction_id
    return client.put(
        f"/api/commissions/payments/{payment_id}/status",
        json=body,
        fallback_message="Falha ao atualizar status do pagamento",
    )


def payments_report(client: ApiClient, start_date: str, end_date: str, status: str | None = None) -> ApiResult:
    return client.get(
        "/api/commissions/payments/report",
        params={"startDate": start_date, "endDate": end_date, "status": status},
        fallback_message="Falha ao gerar relatório de pagamentos",
    )


def mark_payments_paid(client: ApiClient, payment_ids: Iterable[str], transaction_id: str | None = None) -> ApiResult:
    ids = [payment_id for payment_id in payment_ids if payment_id]
    if not ids:
        return ApiResult(success=False, message="Selecione ao menos um pagamento")
    body: dict[str, Any] = {
        "paymentIds": ids,
        "status": "paid",
        "paymentDate": datetime.now(timezone.utc).isoformat(),
    }
    if transaction_id:
        body["transactionId"] = transaction_id
    return client.put(
        "/api/commissions/payments/batch-update",
        json=body,
        fallback_message="Falha ao atualizar pagamentos",
    )
