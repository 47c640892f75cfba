"""Configuration helpers for the avatar upload client."""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Optional


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return float(raw)


@dataclass
class Settings:
    """Centralized environment-driven configuration.

    Values are read when the dataclass is instantiated so tests can tweak the
    environment and build a fresh instance.
    """

    # Base URL of the avatar generation backend (``POST {api_url}/generate``).
    api_url: Optional[str] = field(default_factory=lambda: os.getenv("API_URL"))
    supabase_url: Optional[str] = field(default_factory=lambda: os.getenv("SUPABASE_URL"))
    supabase_anon_key: Optional[str] = field(default_factory=lambda: os.getenv("SUPABASE_ANON_KEY"))
    avatar_bucket: str = field(default_factory=lambda: os.getenv("AVATAR_BUCKET", "avatars"))
    backend_timeout: float = field(default_factory=lambda: _env_float("BACKEND_TIMEOUT_SECONDS", 30.0))
    storage_timeout: int = field(default_factory=lambda: int(_env_float("STORAGE_TIMEOUT_SECONDS", 60)))
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))

    @property
    def supabase_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_anon_key)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached settings instance to avoid repeated environment reads."""

    return Settings()


settings = get_settings()
