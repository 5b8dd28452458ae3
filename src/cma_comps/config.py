from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from .errors import ConfigurationError


DEFAULT_BASE_URL = "https://api.repliers.io/listings"
DEFAULT_PHOTO_CDN = "https://cdn.repliers.io"

DEFAULT_SOLD_DAYS = 180
MAX_SOLD_DAYS = 3650


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    v = str(raw).strip().lower()
    if v in {"1", "true", "t", "yes", "y", "on"}:
        return True
    if v in {"0", "false", "f", "no", "n", "off"}:
        return False
    return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not str(raw).strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not str(raw).strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    """Runtime configuration for the comparable search engine.

    Everything comes from the environment so the HTTP app, the CLI and the
    tests share one source of truth.
    """

    api_key: Optional[str]
    base_url: str
    photo_cdn_base: str
    http_timeout: float
    http_retries: int
    search_deadline_seconds: float
    default_sold_days: int
    search_debug: bool

    @classmethod
    def from_env(cls) -> "Settings":
        api_key = os.getenv("CMA_LISTINGS_API_KEY") or os.getenv("IDX_GRID_API_KEY")
        return cls(
            api_key=(api_key or "").strip() or None,
            base_url=os.getenv("CMA_LISTINGS_BASE_URL", DEFAULT_BASE_URL),
            photo_cdn_base=os.getenv("CMA_PHOTO_CDN_BASE", DEFAULT_PHOTO_CDN),
            http_timeout=_env_float("CMA_HTTP_TIMEOUT", 10.0),
            http_retries=max(0, _env_int("CMA_HTTP_RETRIES", 2)),
            search_deadline_seconds=_env_float("CMA_SEARCH_DEADLINE", 20.0),
            default_sold_days=min(
                MAX_SOLD_DAYS, max(1, _env_int("CMA_DEFAULT_SOLD_DAYS", DEFAULT_SOLD_DAYS))
            ),
            search_debug=_env_bool("CMA_SEARCH_DEBUG", False),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()


def reset_settings_cache() -> None:
    """Test helper to force env re-read."""

    get_settings.cache_clear()


def require_configured(settings: Settings) -> None:
    if settings.api_key:
        return
    raise ConfigurationError("Listings API not configured")
