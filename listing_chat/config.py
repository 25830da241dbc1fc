"""Process-wide configuration for the listing chat engine.

Settings are read once from the environment (and a local ``.env``), frozen, and
passed explicitly to the pieces that need them. The API key is never logged.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv

DEFAULT_GATEWAY_URL = "https://ai.gateway.lovable.dev/v1"
DEFAULT_MODEL = "google/gemini-3-flash-preview"


class ConfigurationError(RuntimeError):
    """The service cannot talk to the completion endpoint (e.g. no API key)."""


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from None


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from None


@dataclass(frozen=True)
class Settings:
    api_key: Optional[str] = None
    gateway_url: str = DEFAULT_GATEWAY_URL
    model: str = DEFAULT_MODEL
    request_timeout: float = 30.0
    max_retries: int = 3
    retry_base_delay: float = 1.0

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def __repr__(self) -> str:
        key_state = "set" if self.api_key else "missing"
        return (
            f"Settings(api_key=<{key_state}>, gateway_url={self.gateway_url!r}, model={self.model!r}, "
            f"request_timeout={self.request_timeout}, max_retries={self.max_retries}, "
            f"retry_base_delay={self.retry_base_delay})"
        )


def load_settings() -> Settings:
    """Build Settings from the environment, loading ``.env`` first."""
    load_dotenv()
    api_key = (os.getenv("LOVABLE_API_KEY") or os.getenv("AI_API_KEY") or "").strip() or None
    return Settings(
        api_key=api_key,
        gateway_url=os.getenv("AI_GATEWAY_URL", DEFAULT_GATEWAY_URL).rstrip("/"),
        model=os.getenv("AI_MODEL", DEFAULT_MODEL),
        request_timeout=_env_float("AI_REQUEST_TIMEOUT", 30.0),
        max_retries=max(0, _env_int("AI_MAX_RETRIES", 3)),
        retry_base_delay=max(0.0, _env_float("AI_RETRY_BASE_DELAY", 1.0)),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()
