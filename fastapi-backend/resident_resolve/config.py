"""
Centralized settings for the ResidentResolve backend.

Provides a lightweight wrapper around environment variables (with `.env`
support for local development) so the rest of the codebase can import a single
`get_settings()` helper when configuration is needed.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional
import os

from dotenv import dotenv_values


DEFAULT_FACILITIES = ("Emerald Hall", "Sapphire Heights", "Ruby Residency", "Diamond Dorms")


@dataclass(frozen=True)
class Settings:
    """Immutable view of application configuration."""

    # General
    environment: str
    seed_demo_users: bool

    # Database
    database_url: str

    # Auth
    jwt_secret: Optional[str]
    jwt_access_minutes: int

    # Priority classifier (generative model behind an HTTP API)
    classifier_api_key: Optional[str]
    classifier_model: str
    classifier_url: str
    classifier_timeout_seconds: float

    # Facilities shown even when they have no complaints yet
    known_facilities: tuple[str, ...]

    # Observability
    metrics_namespace: str


def _as_bool(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_lookup(key: str, env: dict[str, str], default: Optional[str] = None) -> Optional[str]:
    return os.environ.get(key) or env.get(key) or default


def _as_list(value: Optional[str]) -> tuple[str, ...]:
    if not value:
        return DEFAULT_FACILITIES
    return tuple(part.strip() for part in value.split(",") if part.strip())


@lru_cache()
def get_settings() -> Settings:
    """Load settings once per process."""

    env_path = Path(__file__).resolve().parents[2] / ".env"
    env_file = dotenv_values(str(env_path)) if env_path.exists() else {}

    model = _env_lookup("CLASSIFIER_MODEL", env_file, "gemini-3-flash-preview")

    return Settings(
        environment=_env_lookup("APP_ENV", env_file, "development"),
        seed_demo_users=_as_bool(_env_lookup("SEED_DEMO_USERS", env_file, "true"), True),
        database_url=_env_lookup("DATABASE_URL", env_file, "sqlite+aiosqlite:///./resident_resolve.db"),
        jwt_secret=_env_lookup("JWT_SECRET", env_file),
        jwt_access_minutes=int(_env_lookup("JWT_ACCESS_MINUTES", env_file, "60")),
        classifier_api_key=_env_lookup("CLASSIFIER_API_KEY", env_file) or _env_lookup("API_KEY", env_file),
        classifier_model=model,
        classifier_url=_env_lookup(
            "CLASSIFIER_URL",
            env_file,
            f"https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent",
        ),
        classifier_timeout_seconds=float(_env_lookup("CLASSIFIER_TIMEOUT_SECONDS", env_file, "8")),
        known_facilities=_as_list(_env_lookup("KNOWN_FACILITIES", env_file)),
        metrics_namespace=_env_lookup("METRICS_NAMESPACE", env_file, "resident_resolve"),
    )


__all__ = ["DEFAULT_FACILITIES", "Settings", "get_settings"]
