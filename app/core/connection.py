"""WhatsApp connection panel state machine.

States: ``loading -> {disconnected, connected}``,
``disconnected -> connecting`` on connect,
``connecting -> connected | disconnected`` on poll results or cancel,
``connected -> disconnected`` on disconnect.

The browser drives the poll timer and posts the panel snapshot back on every
tick. Each poll loop is tagged with a generation number, and a tick
carrying an old generation is discarded.
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Mapping

from app.gateway import whatsapp
from app.gateway.client import ApiClient, ApiResult

logger = logging.getLogger(__name__)


class ConnectionState(str, Enum):
    LOADING = "loading"
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


@dataclass
class ConnectionPanel:
    state: ConnectionState = ConnectionState.LOADING
    user_token: str | None = None
    qr_code: str | None = None
    error: str | None = None
    generation: int = 0
    polling: bool = False

    @classmethod
    def from_snapshot(cls, data: Mapping[str, Any] | None) -> "ConnectionPanel":
        data = data or {}
        try:
            state = ConnectionState(data.get("state", ConnectionState.LOADING.value))
        except ValueError:
            state = ConnectionState.LOADING
        try:
            generation = int(data.get("generation") or 0)
        except (TypeError, ValueError):
            generation = 0
        return cls(
            state=state,
            user_token=data.get("user_token") or None,
            qr_code=data.get("qr_code") or None,
            error=data.get("error") or None,
            generation=generation,
            polling=bool(data.get("polling")),
        )

    def snapshot(self) -> dict[str, Any]:
        data = asdict(self)
        data["state"] = self.state.value
        return data

    def start_polling(self) -> int:
        """Begin a new poll loop, replacing any previous one."""
        self.stop_polling()
        self.generation += 1
        self.polling = True
        logger.debug("Polling started (generation %s)", self.generation)
        return self.generation

    def stop_polling(self) -> None:
        if self.polling:
            logger.debug("Polling stopped (generation %s)", self.generation)
        self.polling = False

    def _invalidate(self) -> None:
        """Stop polling and make in-flight ticks stale."""
        self.stop_polling()
        self.generation += 1

    def mount(self, client: ApiClient) -> None:
        """Resolve the initial state from the cached and the live status."""
        self.state = ConnectionState.LOADING
        self.error = None
        self.qr_code = None

        status = whatsapp.connection_status(client)
        if not status.success:
            logger.warning("Initial WhatsApp status failed: %s", status.message)
            self.error = status.message or "Falha ao buscar status da conexão."
            self.state = ConnectionState.DISCONNECTED
            return

        token = status.data.get("token")
        if not status.data.get("hasToken") or not token:
            self.user_token = None
            self.state = ConnectionState.DISCONNECTED
            return

        self.user_token = token
        detailed = whatsapp.detailed_status(client)
        if detailed.success and detailed.data.get("status") == ConnectionState.CONNECTED.value:
            self.state = ConnectionState.CONNECTED
            return

        if not detailed.success:
            self.error = detailed.message or "Falha ao verificar status atual da conexão."
        self.state = ConnectionState.DISCONNECTED

    def connect(self, client: ApiClient) -> ApiResult:
        """Initiate (or re-initiate) the QR flow.

        Only moves to ``connecting``; a live session is detected later by
        :meth:`poll_tick`.
        """
        self.error = None
        self.qr_code = None
        self.stop_polling()

        reconnecting = bool(self.user_token)
        result = whatsapp.reconnect(client) if reconnecting else whatsapp.initiate_connection(client)

        token = qr_code = None
        if result.success:
            token = result.data.get("token") or (self.user_token if reconnecting else None)
            qr_code = result.data.get("qrCode")

        if not (result.success and token and qr_code):
            self.error = result.message or "Falha ao conectar/iniciar a instância."
            self.state = ConnectionState.DISCONNECTED
            return ApiResult(success=False, message=self.error, status_code=result.status_code)

        self.user_token = token
        self.qr_code = qr_code
        self.state = ConnectionState.CONNECTING
        self.start_polling()
        return ApiResult(success=True, message="Escaneie o QR Code com o app WhatsApp no seu celular.")

    def poll_tick(self, client: ApiClient, generation: int) -> bool:
        """Apply one detailed-status check; returns whether it was applied.

        Stale ticks (old generation, or polling already stopped) are
        ignored. A failed call is logged and leaves the state alone.
        """
        if not self.polling or generation != self.generation:
            logger.debug("Discarding stale poll tick %s (current %s)", generation, self.generation)
            return False

        result = whatsapp.detailed_status(client)
        if not result.success:
            logger.warning("Detailed status poll failed: %s", result.message)
            return False

        status = result.data.get("status")
        if status == ConnectionState.CONNECTED.value:
            self.stop_polling()
            self.state = ConnectionState.CONNECTED
            self.qr_code = None
            self.error = None
        elif status == ConnectionState.CONNECTING.value:
            self.state = ConnectionState.CONNECTING
            if result.data.get("qrCode"):
                self.qr_code = result.data["qrCode"]
        else:
            self.stop_polling()
            self.state = ConnectionState.DISCONNECTED
            self.qr_code = None
            self.error = result.message or f"Status inesperado ou erro da API: {status}"
        return True

    def cancel(self) -> None:
        """Abandon a pending QR login."""
        self._invalidate()
        self.qr_code = None
        self.state = ConnectionState.DISCONNECTED

    def disconnect(self, client: ApiClient) -> ApiResult:
        """Drop the instance; the panel always ends up disconnected."""
        self._invalidate()
        self.error = None
        self.state = ConnectionState.LOADING

        result = whatsapp.disconnect(client)
        self.state = ConnectionState.DISCONNECTED
        self.qr_code = None
        if result.success:
            self.user_token = None
        else:
            self.error = result.message or "Falha ao desconectar instância WhatsApp"
        return result

    def unmount(self) -> None:
        self._invalidate()
