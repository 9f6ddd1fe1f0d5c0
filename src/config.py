"""
Ticketing Admin Client - Configuration Management
=================================================
Centralized configuration with environment variable support and validation.

Usage:
    from src.config import settings

    base_url = settings.api_base_url
    timeout = settings.request_timeout_seconds
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from src.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


# Endpoints whose 401 means "bad credentials", not "session expired".
# Prefix match: anything starting with one of these is public.
PUBLIC_PATHS: tuple[str, ...] = (
    "/api/auth/login",
    "/api/auth/register",
    "/api/auth/email/resend",
    "/api/auth/password/forgot",
    "/api/auth/password/reset",
)


def _int_env(name: str) -> int | None:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer", detail=raw, setting_name=name) from e


def _float_env(name: str) -> float | None:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a number", detail=raw, setting_name=name) from e


@dataclass
class Settings:
    """Application settings with environment variable overrides."""

    # API
    api_base_url: str = "http://localhost:8000"
    request_timeout_seconds: float = 10.0
    default_language: str = "en"

    # Routes
    login_path: str = "/login"
    unauthorized_path: str = "/unauthorized"

    # Session persistence (durable tier)
    session_db_path: Path = field(default_factory=lambda: Path("data/session.db"))

    # Fault classification
    public_paths: tuple[str, ...] = PUBLIC_PATHS

    # List views
    # None keeps each resource's own page size
    default_per_page: int | None = None
    # None disables the upper clamp on per_page
    max_per_page: int | None = None

    debug_mode: bool = False

    def __post_init__(self):
        """Load overrides from environment variables."""
        self._load_env_overrides()

    def _load_env_overrides(self):
        """Load configuration from environment variables."""
        # API
        if base_url := os.environ.get("ADMIN_API_BASE_URL", "").strip():
            self.api_base_url = base_url.rstrip("/")
        if (timeout := _float_env("ADMIN_REQUEST_TIMEOUT")) is not None:
            self.request_timeout_seconds = timeout
        if language := os.environ.get("ADMIN_LANGUAGE", "").strip():
            self.default_language = language

        # Routes
        if login_path := os.environ.get("ADMIN_LOGIN_PATH", "").strip():
            self.login_path = login_path
        if unauthorized_path := os.environ.get("ADMIN_UNAUTHORIZED_PATH", "").strip():
            self.unauthorized_path = unauthorized_path

        # Session persistence
        if db_path := os.environ.get("ADMIN_SESSION_DB_PATH", "").strip():
            self.session_db_path = Path(db_path)

        # Extra public prefixes are appended, never replace the defaults
        if extra := os.environ.get("ADMIN_EXTRA_PUBLIC_PATHS", "").strip():
            additions = tuple(p.strip() for p in extra.split(",") if p.strip())
            self.public_paths = self.public_paths + tuple(p for p in additions if p not in self.public_paths)

        # List views
        if (per_page := _int_env("ADMIN_DEFAULT_PER_PAGE")) is not None:
            self.default_per_page = per_page
        if (max_per_page := _int_env("ADMIN_MAX_PER_PAGE")) is not None:
            if max_per_page < 1:
                raise ConfigurationError(
                    "ADMIN_MAX_PER_PAGE must be at least 1",
                    detail=str(max_per_page),
                    setting_name="ADMIN_MAX_PER_PAGE",
                )
            self.max_per_page = max_per_page

        if os.environ.get("DEBUG", "").lower() in ("1", "true"):
            self.debug_mode = True


# Singleton instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
        if _settings.debug_mode:
            logger.info("Settings loaded with debug mode enabled")
    return _settings


def reload_settings() -> Settings:
    """Force reload settings from environment."""
    global _settings
    _settings = Settings()
    return _settings


# Convenience alias
settings = get_settings()
