"""User administration and the signed-in user's own account."""
from __future__ import annotations

from typing import Any, Mapping

from app.gateway import auth
from app.gateway.client import ApiClient, ApiResult

MESSAGE_TYPES = ("welcome", "report", "reminder")


def list_users(
    client: ApiClient,
    role: str | None = None,
    search: str | None = None,
    status: str | None = None,
    page: int | None = None,
    limit: int | None = None,
) -> ApiResult:
    """``data`` becomes ``{"users": [...], "total": n, "pages": n}``."""
    result = client.get(
        "/api/users",
        params={"role": role, "search": search, "status": status, "page": page, "limit": limit},
        fallback_message="Falha ao buscar usuários",
    )
    if result.success:
        payload = result.data if isinstance(result.data, dict) else {}
        result.data = {
            "users": payload.get("users") or [],
            "total": payload.get("total", 0),
            "pages": payload.get("pages", 1),
        }
    return result


def create_user(client: ApiClient, user_data: Mapping[str, Any]) -> ApiResult:
    return client.post("/api/users", json=dict(user_data), fallback_message="Falha ao criar usuário")


def update_user(client: ApiClient, user_id: str, changes: Mapping[str, Any]) -> ApiResult:
    return client.put(f"/api/users/{user_id}", json=dict(changes), fallback_message="Falha ao atualizar usuário")


def delete_user(client: ApiClient, user_id: str) -> ApiResult:
    result = client.delete(f"/api/users/{user_id}", fallback_message="Falha ao excluir usuário")
    if result.success and not result.message:
        result.message = "Usuário excluído com sucesso"
    return result


def get_user(client: ApiClient, user_id: str) -> ApiResult:
    return client.get(f"/api/users/{user_id}", fallback_message="Falha ao buscar usuário")


def list_managers(client: ApiClient) -> ApiResult:
    result = client.get("/api/users", params={"role": "manager"}, fallback_message="Falha ao buscar gestores")
    if result.success and isinstance(result.data, dict):
        result.data = result.data.get("users") or []
    return result


def create_manager(client: ApiClient, manager_data: Mapping[str, Any]) -> ApiResult:
    return auth.register_user(client, {**manager_data, "role": "manager"})


def create_influencer(client: ApiClient, influencer_data: Mapping[str, Any]) -> ApiResult:
    return auth.register_user(client, {**influencer_data, "role": "influencer"})


def deactivate_user(client: ApiClient, user_id: str) -> ApiResult:
    result = client.patch(f"/api/users/{user_id}/deactivate", fallback_message="Falha ao desativar usuário")
    if result.success:
        result.message = "Usuário desativado com sucesso"
    return result


def manager_influencers(client: ApiClient, manager_id: str) -> ApiResult:
    return client.get(f"/api/users/{manager_id}/influencers", fallback_message="Falha ao buscar influenciadores do gestor")


def check_coupon_availability(client: ApiClient, code: str) -> ApiResult:
    result = client.get(
        "/api/coupons/check",
        params={"code": code},
        fallback_message="Falha ao verificar disponibilidade do cupom",
    )
    if result.success:
        result.data = {"available": bool(result.get("available"))}
    return result


def update_password(client: ApiClient, current_password: str, new_password: str) -> ApiResult:
    result = client.put(
        "/api/users/me/password",
        json={"currentPassword": current_password, "newPassword": new_password},
        fallback_message="Falha ao atualizar senha",
    )
    if result.success:
        result.message = "Senha atualizada com sucesso."
    return result


def update_profile(client: ApiClient, name: str, email: str) -> ApiResult:
    """Update name and email.

    When the backend echoes the full user, ``data`` is the session-shaped
    ``{id, name, email, role}`` so the caller can refresh the ``user`` cookie.
    Otherwise ``data`` is ``None``.
    """
    result = client.put(
        "/api/users/me/profile",
        json={"name": name, "email": email},
        fallback_message="Falha ao atualizar perfil",
    )
    if not result.success:
        return result

    payload = result.data if isinstance(result.data, dict) else {}
    if all(payload.get(key) for key in ("_id", "name", "email", "role")):
        result.data = {
            "id": payload["_id"],
            "name": payload["name"],
            "email": payload["email"],
            "role": payload["role"],
        }
        result.message = "Perfil atualizado com sucesso."
    else:
        result.data = None
        result.message = "Perfil atualizado no servidor, mas falha ao atualizar dados da sessão."
    return result


def get_user_settings(client: ApiClient) -> ApiResult:
    return client.get("/api/users/me/settings", fallback_message="Falha ao buscar configurações")


def update_user_settings(client: ApiClient, notifications: Mapping[str, Any]) -> ApiResult:
    return client.put(
        "/api/users/me/settings",
        json={"notifications": dict(notifications)},
        fallback_message="Falha ao atualizar configurações",
    )


def update_message_template(client: ApiClient, message_type: str, content: str) -> ApiResult:
    if message_type not in MESSAGE_TYPES:
        return ApiResult(success=False, message="Tipo de mensagem inválido")
    return client.put(
        "/api/users/me/message-template",
        json={"type": message_type, "content": content},
        fallback_message="Falha ao atualizar template da mensagem",
    )
