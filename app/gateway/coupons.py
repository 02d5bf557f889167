"""Influencer coupon codes."""
from __future__ import annotations

from app.gateway.client import ApiClient, ApiResult


def list_influencer_coupons(client: ApiClient, influencer_id: str) -> ApiResult:
    return client.get(f"/api/coupons/influencer/{influencer_id}", fallback_message="Falha ao buscar cupons")


def create_coupon(client: ApiClient, code: str, influencer_id: str) -> ApiResult:
    code = (code or "").strip().upper()
    if not code:
        return ApiResult(success=False, message="Informe o código do cupom")
    return client.post(
        "/api/coupons",
        json={"code": code, "influencerId": influencer_id},
        fallback_message="Falha ao criar cupom",
    )


def set_coupon_active(client: ApiClient, coupon_id: str, is_active: bool) -> ApiResult:
    return client.put(
        f"/api/coupons/{coupon_id}",
        json={"isActive": is_active},
        fallback_message="Falha ao atualizar cupom",
    )


def delete_coupon(client: ApiClient, coupon_id: str) -> ApiResult:
    result = client.delete(f"/api/coupons/{coupon_id}", fallback_message="Falha ao excluir cupom")
    if result.success:
        result.message = "Cupom excluído"
    return result
