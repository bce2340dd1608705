"""
Configuration for the chat relay.

Values come from the process environment (optionally seeded from a .env
file) and are read every time get_settings() is called, so a rotated
GEMINI_API_KEY is picked up without a restart.
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

DEFAULT_GEMINI_MODEL = "gemini-pro"
DEFAULT_GEMINI_API_BASE = "https://generativelanguage.googleapis.com"


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip()


@dataclass(frozen=True)
class Settings:
    """A snapshot of the environment taken for a single request."""

    gemini_api_key: Optional[str] = None
    gemini_model: str = DEFAULT_GEMINI_MODEL
    gemini_api_base: str = DEFAULT_GEMINI_API_BASE

    langfuse_secret_key: Optional[str] = None
    langfuse_public_key: Optional[str] = None
    langfuse_host: Optional[str] = None

    log_level: str = "INFO"

    # Client side
    relay_url: Optional[str] = None
    supabase_url: Optional[str] = None
    supabase_anon_key: Optional[str] = None
    supabase_access_token: Optional[str] = None

    @property
    def gemini_configured(self) -> bool:
        return bool(self.gemini_api_key)

    @property
    def tracing_configured(self) -> bool:
        return all([self.langfuse_secret_key, self.langfuse_public_key, self.langfuse_host])


def get_settings() -> Settings:
    """Build settings from the current environment. Never cached."""
    return Settings(
        gemini_api_key=_env("GEMINI_API_KEY"),
        gemini_model=_env("GEMINI_MODEL", DEFAULT_GEMINI_MODEL),
        gemini_api_base=_env("GEMINI_API_BASE", DEFAULT_GEMINI_API_BASE).rstrip("/"),
        langfuse_secret_key=_env("LANGFUSE_SECRET_KEY"),
        langfuse_public_key=_env("LANGFUSE_PUBLIC_KEY"),
        langfuse_host=_env("LANGFUSE_HOST"),
        log_level=_env("LOG_LEVEL", "INFO").upper(),
        relay_url=_env("RELAY_URL"),
        supabase_url=_env("SUPABASE_URL"),
        supabase_anon_key=_env("SUPABASE_ANON_KEY"),
        supabase_access_token=_env("SUPABASE_ACCESS_TOKEN"),
    )
