"""Shared FastAPI dependencies."""
from __future__ import annotations

from pathlib import Path
from typing import Iterator
from urllib.parse import urlencode

from fastapi import Request
from fastapi.responses import RedirectResponse
from fastapi.templating import Jinja2Templates

from app.auth import SessionContext
from app.core.formatting import (
    format_currency,
    format_display_date,
    format_display_datetime,
    format_percentage,
)
from app.gateway.client import ApiClient

TEMPLATES_PATH = Path(__file__).parent / "templates"
templates = Jinja2Templates(directory=str(TEMPLATES_PATH))


def _format_money(value) -> str:
    """Format amounts in reais for templates."""

    return format_currency(value)


def _format_display_date(value) -> str:
    """Expose consistent dd/mm/yyyy formatting to templates."""

    return format_display_date(value)


def _format_display_datetime(value) -> str:
    """Expose consistent dd/mm/yyyy hh:mm formatting to templates."""

    return format_display_datetime(value)


templates.env.filters["money"] = _format_money
templates.env.filters["display_date"] = _format_display_date
templates.env.filters["display_datetime"] = _format_display_datetime
templates.env.filters["percent"] = format_percentage


def get_session_context(request: Request) -> SessionContext:
    return SessionContext.from_request(request)


def get_api_client(request: Request) -> Iterator[ApiClient]:
    """One backend client per request, bound to the caller's token."""
    client = SessionContext.from_request(request).client()
    try:
        yield client
    finally:
        client.close()


def redirect_with(url: str, **params: str | None) -> RedirectResponse:
    """303 back to a page, carrying ``success``/``error`` flash text in the query."""
    filtered = {key: value for key, value in params.items() if value}
    query = urlencode(filtered)
    if query:
        url = f"{url}{'&' if '?' in url else '?'}{query}"
    return RedirectResponse(url=url, status_code=303)
