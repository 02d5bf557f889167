import json
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlsplit

import pytest
import requests
from fastapi import Request
from fastapi.testclient import TestClient

from app.dependencies import get_api_client
from app.gateway.client import ApiClient
from app.main import app


class FakeResponse:
    """Just enough of ``requests.Response`` for :class:`ApiClient`."""

    def __init__(self, status_code: int = 200, payload: Any = None, content: bytes | None = None):
        self.status_code = status_code
        if content is None:
            content = b"" if payload is None else json.dumps(payload).encode()
        self.content = content

    @property
    def ok(self) -> bool:
        return self.status_code < 400

    def json(self):
        return json.loads(self.content)


@dataclass
class Call:
    method: str
    path: str
    url: str
    params: dict | None = None
    json: Any = None
    headers: dict = field(default_factory=dict)


class FakeSession:
    """Stands in for ``requests.Session``; answers by ``(method, path)``.

    Several responses registered for the same route are served in order and
    the last one repeats. Unregistered routes answer ``200 {}``.
    """

    def __init__(self):
        self.calls: list[Call] = []
        self._routes: dict[tuple[str, str], list] = {}

    def on(self, method: str, path: str, *responses) -> "FakeSession":
        self._routes.setdefault((method.upper(), path), []).extend(responses)
        return self

    def request(self, method, url, params=None, json=None, headers=None, timeout=None):
        path = urlsplit(url).path
        self.calls.append(Call(method, path, url, params, json, dict(headers or {})))
        queued = self._routes.get((method, path))
        if not queued:
            return FakeResponse(200, {})
        response = queued.pop(0) if len(queued) > 1 else queued[0]
        if isinstance(response, Exception):
            raise response
        return response

    def close(self):
        pass

    def calls_to(self, method: str, path: str) -> list[Call]:
        return [call for call in self.calls if call.method == method and call.path == path]


USERS = {
    "admin": {"id": "u-admin", "name": "Alice", "email": "alice@example.com", "role": "admin"},
    "manager": {"id": "u-manager", "name": "Marcos", "email": "marcos@example.com", "role": "manager"},
    "influencer": {"id": "u-influencer", "name": "Ines", "email": "ines@example.com", "role": "influencer"},
}


def sign_in(client: TestClient, role: str, token: str = "test-token") -> dict:
    """Put a session for ``role`` in the client's cookie jar."""
    user = USERS[role]
    client.cookies.set("token", token)
    client.cookies.set("user", json.dumps(user, separators=(",", ":")))
    return user


@pytest.fixture
def backend() -> FakeSession:
    return FakeSession()


@pytest.fixture
def api(backend) -> ApiClient:
    return ApiClient(token="test-token", base_url="http://backend.test", session=backend)


@pytest.fixture
def client(backend):
    def _client(request: Request):
        yield ApiClient(token=request.cookies.get("token") or None, session=backend)

    app.dependency_overrides[get_api_client] = _client
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.pop(get_api_client, None)


@pytest.fixture
def connection_error():
    return requests.ConnectionError("backend unreachable")
