"""Application settings loaded from the environment.

All values come from environment variables (optionally a local ``.env``
file) and are collected in an immutable dataclass. Use :func:`get_settings`
to obtain the shared instance.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()

DEFAULT_API_URL = "http://localhost:3001"
DEFAULT_PROVIDER_URL = "https://notifiquei.uazapi.com"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw in (None, ""):
        return default
    try:
        return int(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    """Root settings container."""

    api_url: str = field(default_factory=lambda: os.getenv("API_URL", DEFAULT_API_URL).rstrip("/"))
    whatsapp_provider_url: str = field(
        default_factory=lambda: os.getenv("WHATSAPP_PROVIDER_URL", DEFAULT_PROVIDER_URL).rstrip("/")
    )
    api_timeout_seconds: int = field(default_factory=lambda: _env_int("API_TIMEOUT_SECONDS", 15))
    environment: str = field(default_factory=lambda: os.getenv("ENVIRONMENT", "development").lower())
    session_max_age_days: int = field(default_factory=lambda: _env_int("SESSION_MAX_AGE_DAYS", 7))
    whatsapp_poll_interval_seconds: int = field(
        default_factory=lambda: _env_int("WHATSAPP_POLL_INTERVAL_SECONDS", 7)
    )
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper())

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def session_max_age(self) -> int:
        """Cookie lifetime in seconds."""
        return self.session_max_age_days * 24 * 60 * 60

    def validate(self) -> list[str]:
        """Return a list of configuration warnings (empty when all is well)."""
        issues: list[str] = []

        if self.is_production and not os.getenv("API_URL"):
            issues.append(f"WARNING: API_URL not set in production, using {DEFAULT_API_URL}.")

        if self.is_production and not self.api_url.startswith("https://"):
            issues.append("WARNING: API_URL does not use HTTPS in production.")

        if self.whatsapp_poll_interval_seconds < 1:
            issues.append("WARNING: WHATSAPP_POLL_INTERVAL_SECONDS must be at least 1.")

        return issues


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the cached settings instance."""
    return Settings()
