"""HTTP client for the commission backend.

Every gateway function goes through :class:`ApiClient`, which attaches the
bearer token, serializes JSON bodies and normalizes every outcome into an
:class:`ApiResult`. Callers branch on ``result.success``; nothing in here
raises for HTTP or transport failures.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping

import requests

from app.config import get_settings

logger = logging.getLogger(__name__)

UNAUTHORIZED_MESSAGE = "Não autorizado. Faça login novamente."
CONNECTION_ERROR_MESSAGE = "Erro ao conectar com o servidor"


@dataclass
class ApiResult:
    """Uniform ``{success, message, data}`` shape returned by the gateway."""

    success: bool
    message: str | None = None
    data: Any = None
    status_code: int | None = None

    @classmethod
    def unauthorized(cls) -> "ApiResult":
        return cls(success=False, message=UNAUTHORIZED_MESSAGE, status_code=401)

    @classmethod
    def connection_error(cls, message: str = CONNECTION_ERROR_MESSAGE) -> "ApiResult":
        return cls(success=False, message=message)

    def get(self, key: str, default: Any = None) -> Any:
        """Read a key from a dict payload."""
        if isinstance(self.data, Mapping):
            return self.data.get(key, default)
        return default


def _clean_params(params: Mapping[str, Any] | None) -> dict[str, Any] | None:
    if not params:
        return None
    cleaned: dict[str, Any] = {}
    for key, value in params.items():
        if value is None or value == "":
            continue
        if isinstance(value, bool):
            value = "true" if value else "false"
        cleaned[key] = value
    return cleaned or None


def _error_message(payload: Any, fallback: str) -> str:
    if isinstance(payload, Mapping):
        message = payload.get("message")
        if message:
            return str(message)
    return fallback


class ApiClient:
    """Backend API client bound to one caller's session token."""

    def __init__(
        self,
        token: str | None = None,
        base_url: str | None = None,
        timeout: int | None = None,
        session: requests.Session | None = None,
    ):
        settings = get_settings()
        self.token = token
        self.base_url = (base_url or settings.api_url).rstrip("/")
        self.timeout = timeout or settings.api_timeout_seconds
        self._session = session or requests.Session()
        self._owns_session = session is None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    def _url(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.base_url}{path}"

    def request(
        self,
        method: str,
        path: str,
        *,
        fallback_message: str,
        params: Mapping[str, Any] | None = None,
        json: Any = None,
        headers: Mapping[str, str] | None = None,
        auth: bool = True,
    ) -> ApiResult:
        """Perform a call and normalize the outcome.

        With ``auth`` set, a missing token short-circuits to the
        unauthorized result and no request is sent.
        """
        request_headers: dict[str, str] = {}
        if auth:
            if not self.token:
                logger.warning("Refusing %s %s: no session token", method, path)
                return ApiResult.unauthorized()
            request_headers["Authorization"] = f"Bearer {self.token}"
        if json is not None:
            request_headers["Content-Type"] = "application/json"
        if headers:
            request_headers.update(headers)

        logger.debug("%s %s", method, path)
        try:
            response = self._session.request(
                method,
                self._url(path),
                params=_clean_params(params),
                json=json,
                headers=request_headers,
                timeout=self.timeout,
            )
        except requests.RequestException:
            logger.exception("Request %s %s failed", method, path)
            return ApiResult.connection_error()

        if response.status_code == 204:
            return ApiResult(success=True, status_code=204)

        payload: Any = None
        body = response.content
        if body:
            try:
                payload = response.json()
            except ValueError:
                if response.ok:
                    logger.error("Invalid JSON from %s %s (status %s)", method, path, response.status_code)
                    return ApiResult.connection_error()
                payload = None

        if not response.ok:
            message = _error_message(payload, fallback_message)
            logger.warning("%s %s returned %s: %s", method, path, response.status_code, message)
            return ApiResult(success=False, message=message, data=payload, status_code=response.status_code)

        message = payload.get("message") if isinstance(payload, Mapping) else None
        return ApiResult(success=True, message=message, data=payload, status_code=response.status_code)

    def get(self, path: str, **kwargs: Any) -> ApiResult:
        return self.request("GET", path, **kwargs)

    def post(self, path: str, **kwargs: Any) -> ApiResult:
        return self.request("POST", path, **kwargs)

    def put(self, path: str, **kwargs: Any) -> ApiResult:
        return self.request("PUT", path, **kwargs)

    def patch(self, path: str, **kwargs: Any) -> ApiResult:
        return self.request("PATCH", path, **kwargs)

    def delete(self, path: str, **kwargs: Any) -> ApiResult:
        return self.request("DELETE", path, **kwargs)

    def close(self) -> None:
        if self._owns_session:
            self._session.close()


def mask_token(token: str | None) -> str:
    """Abbreviate a secret for log output."""
    if not token:
        return "null"
    return f"{token[:5]}..."
