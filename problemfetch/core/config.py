"""
Application configuration and settings.

Centralises all external configuration (env-vars / .env) and
version discovery.  Redis connectivity lives in
``problemfetch.core.redis`` and FastAPI dependency injection in
``problemfetch.api.deps``.
"""

from __future__ import annotations

import importlib.metadata
import logging
from functools import lru_cache

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


# ── Package version (single source of truth from pyproject.toml) ────────


def get_version() -> str:
    """Return the installed package version.

    Falls back to ``"0.0.0-dev"`` when the package metadata
    is not available (e.g. during editable / source installs).

    Returns:
        Semantic version string.
    """
    try:
        return importlib.metadata.version("problem-fetch-api")
    except importlib.metadata.PackageNotFoundError:
        return "0.0.0-dev"


# ── Settings ────────────────────────────────────────────────────────────────


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
    )

    # General
    APP_NAME: str = "Problem Fetch API"
    API_V1_STR: str = "/api/v1"
    ROOT_PATH: str = ""
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # CORS
    CORS_ORIGINS: list[str] = ["*"]

    # Redis (cache backend + metrics counters)
    REDIS_HOST: str = "redis"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0

    # ── Fetch target ────────────────────────────────────────────────
    PROBLEM_BASE_URL: str = "https://www.acmicpc.net"
    PROBLEM_URL_TEMPLATE: str = "{origin}/problem/{identifier}"

    # ── Retry fetcher ───────────────────────────────────────────────
    FETCH_MAX_ATTEMPTS: int = 3
    FETCH_JITTER_MIN_MS: int = 500
    FETCH_JITTER_MAX_MS: int = 1500
    FETCH_COOLDOWN_SECONDS: float = 1.0
    FETCH_TIMEOUT_SECONDS: float = 10.0
    FETCH_FAST_FAIL_NOT_FOUND: bool = True

    # ── Problem cache ───────────────────────────────────────────────
    PROBLEM_CACHE_ENABLED: bool = True
    PROBLEM_CACHE_BACKEND: str = "memory"  # memory | disk | redis | none
    PROBLEM_CACHE_DIR: str = ".problem_cache"
    PROBLEM_CACHE_TTL: int | None = None  # seconds; None = never expire

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def _parse_cors(cls, v: str | list[str]) -> list[str]:
        """Accept a JSON-encoded string or a list."""
        if isinstance(v, str):
            import json

            return json.loads(v)
        return v

    @field_validator("PROBLEM_BASE_URL")
    @classmethod
    def _strip_trailing_slash(cls, v: str) -> str:
        """Store the origin without a trailing slash."""
        return v.rstrip("/")

    @field_validator("PROBLEM_CACHE_BACKEND")
    @classmethod
    def _normalise_backend(cls, v: str) -> str:
        """Lower-case and validate the cache backend name."""
        name = v.strip().lower()
        if name not in {"memory", "disk", "redis", "none"}:
            raise ValueError(
                f"Unknown PROBLEM_CACHE_BACKEND '{v}'. "
                "Expected one of: memory, disk, redis, none."
            )
        return name

    @field_validator("FETCH_MAX_ATTEMPTS")
    @classmethod
    def _at_least_one_attempt(cls, v: int) -> int:
        """A fetch needs at least one attempt."""
        if v < 1:
            raise ValueError("FETCH_MAX_ATTEMPTS must be >= 1")
        return v

    @model_validator(mode="after")
    def _check_jitter_window(self) -> Settings:
        """Reject an empty or negative jitter window."""
        if self.FETCH_JITTER_MIN_MS < 0:
            raise ValueError("FETCH_JITTER_MIN_MS must be >= 0")
        if self.FETCH_JITTER_MAX_MS < self.FETCH_JITTER_MIN_MS:
            raise ValueError("FETCH_JITTER_MAX_MS must be >= FETCH_JITTER_MIN_MS")
        return self

    # Derived values
    @property
    def REDIS_URL(self) -> str:  # noqa: N802
        """Full Redis connection URL."""
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"

    @property
    def jitter_window(self) -> tuple[float, float]:
        """Pre-request jitter window in seconds."""
        return (
            self.FETCH_JITTER_MIN_MS / 1000,
            self.FETCH_JITTER_MAX_MS / 1000,
        )


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings singleton.

    Using ``lru_cache`` ensures the .env file is read exactly
    once.  Override in tests via ``app.dependency_overrides``.
    """
    return Settings()
