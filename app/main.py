"""FastAPI entry point for the commission dashboard."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, HTTPException, Request, Response, status
from fastapi.responses import JSONResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles

from app import __version__
from app.auth import clear_session_cookies
from app.config import get_settings
from app.middleware import RouteGuardMiddleware
from app.routers import admin, auth, dashboard, manager, profile, whatsapp

settings = get_settings()
logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

STATIC_PATH = Path(__file__).parent / "static"


@asynccontextmanager
async def lifespan(_: FastAPI):
    for warning in settings.validate():
        logger.warning(warning)
    logger.info("Commission Desk %s using backend %s", __version__, settings.api_url)
    yield


app = FastAPI(title="Commission Desk", version=__version__, lifespan=lifespan)

app.add_middleware(RouteGuardMiddleware)

app.include_router(auth.router)
app.include_router(profile.router)
app.include_router(dashboard.router)
app.include_router(admin.router)
app.include_router(manager.router)
app.include_router(whatsapp.router)

app.mount("/static", StaticFiles(directory=str(STATIC_PATH)), name="static")


@app.get("/health")
def health() -> Response:
    """Simple health endpoint for load balancers and platform checks."""
    return Response(content='{"status":"ok"}', media_type="application/json")


# Custom handler: redirect unauthenticated HTML requests to /login instead of JSON 401
@app.exception_handler(HTTPException)
async def http_exception_redirect_login(request: Request, exc: HTTPException):
    """Redirect 401 HTML page requests to /login; preserve JSON for API calls.

    The redirect also clears the session cookies, so a stale or unreadable
    session cannot bounce between /login and a dashboard.
    """
    if exc.status_code != status.HTTP_401_UNAUTHORIZED:
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})

    accept = request.headers.get("accept", "")
    wants_html = "text/html" in accept or "*/*" in accept  # browsers often send */*
    if wants_html:
        response = RedirectResponse(url="/login", status_code=status.HTTP_303_SEE_OTHER)
        clear_session_cookies(response)
        return response
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})
