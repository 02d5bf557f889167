"""Authentication endpoints: login, registration and password reset."""
from __future__ import annotations

import logging
from typing import Any

from app.gateway.client import ApiClient, ApiResult, mask_token

logger = logging.getLogger(__name__)

RESET_REQUESTED_MESSAGE = "If an account with this email exists, a password reset link has been sent."
_USER_FIELDS = ("_id", "name", "email", "role", "token")


def login(client: ApiClient, email: str, password: str) -> ApiResult:
    """Authenticate against the backend.

    On success ``data`` holds ``{"token": ..., "user": {id, name, email, role}}``
    ready to be written into the session cookies.
    """
    if not email or not password:
        return ApiResult(success=False, message="Email e senha são obrigatórios")

    result = client.post(
        "/api/auth/login",
        json={"email": email, "password": password},
        auth=False,
        fallback_message="Erro no login",
    )
    if not result.success:
        if result.status_code and not (isinstance(result.data, dict) and result.data.get("message")):
            result.message = f"Erro no login: {result.status_code}"
        return result

    payload = result.data if isinstance(result.data, dict) else {}
    if not all(payload.get(key) for key in _USER_FIELDS):
        logger.error("Login response missing user fields: %s", sorted(payload))
        return ApiResult(success=False, message="Resposta de login inválida recebida do servidor.")

    user = {
        "id": payload["_id"],
        "name": payload["name"],
        "email": payload["email"],
        "role": payload["role"],
    }
    return ApiResult(success=True, data={"token": payload["token"], "user": user}, status_code=result.status_code)


def register(client: ApiClient, name: str, email: str, password: str) -> ApiResult:
    """Self-service registration; the account waits for admin approval."""
    result = client.post(
        "/api/auth/register",
        json={"name": name, "email": email, "password": password},
        auth=False,
        fallback_message="Falha no registro",
    )
    if result.success:
        result.message = "Registro realizado com sucesso! Aguarde aprovação do administrador."
    return result


def register_user(client: ApiClient, user_data: dict[str, Any]) -> ApiResult:
    """Register a user on behalf of a signed-in admin or manager."""
    return client.post(
        "/api/auth/register",
        json=user_data,
        auth=client.is_authenticated,
        fallback_message="Falha ao registrar usuário",
    )


def get_profile(client: ApiClient) -> ApiResult:
    return client.get("/api/auth/profile", fallback_message="Falha ao obter perfil")


def request_password_reset(client: ApiClient, email: str) -> ApiResult:
    """Ask for a reset link.

    Any backend answer is reported as success so the page never reveals
    whether the address has an account. Only a transport failure is an
    error.
    """
    logger.info("Password reset requested")
    result = client.post(
        "/api/auth/request-password-reset",
        json={"email": email},
        auth=False,
        fallback_message=RESET_REQUESTED_MESSAGE,
    )
    if result.status_code is None and not result.success:
        return ApiResult(
            success=False,
            message="An error occurred while requesting the password reset. Please try again later.",
        )
    message = result.get("message") if result.success else None
    return ApiResult(success=True, message=message or RESET_REQUESTED_MESSAGE)


def verify_reset_token(client: ApiClient, token: str) -> ApiResult:
    if not token:
        return ApiResult(success=False, message="Reset token is missing.")

    logger.info("Verifying reset token %s", mask_token(token))
    result = client.get(
        "/api/auth/verify-reset-token",
        params={"token": token},
        auth=False,
        fallback_message="Invalid or expired token.",
    )
    if result.status_code is None and not result.success:
        return ApiResult(success=False, message="An error occurred while verifying the token.")
    return result


def reset_password(client: ApiClient, token: str, password: str) -> ApiResult:
    if not token or not password:
        return ApiResult(success=False, message="Token and password are required.")

    logger.info("Resetting password with token %s", mask_token(token))
    result = client.post(
        "/api/auth/reset-password",
        json={"token": token, "password": password},
        auth=False,
        fallback_message="Failed to reset password.",
    )
    if result.status_code is None and not result.success:
        return ApiResult(success=False, message="An error occurred while resetting the password.")
    if result.success and not result.message:
        result.message = "Password has been reset successfully."
    return result
