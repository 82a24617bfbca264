"""Runtime settings read from the environment (and a local .env file)."""

from __future__ import annotations

import logging
import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()

logger = logging.getLogger("uvicorn.error")


def _env(key: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(key)
    if value is None:
        return default
    return value.strip() or default


def _env_number(key: str, default: float) -> float:
    raw = _env(key)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring non-numeric %s=%r; using %s", key, raw, default)
        return default


class Settings(BaseModel):
    prompt_cache_size: int = 100
    request_cache_ttl: float = 300.0
    config_cache_size: int = 30
    request_timeout: float = 30.0
    api_base_url: str = "http://localhost:8000/api"
    max_points: int = 100
    default_theme: str = "default"

    @classmethod
    def from_env(cls) -> "Settings":
        base = cls()
        return cls(
            prompt_cache_size=int(_env_number("PROMPT_CACHE_SIZE", base.prompt_cache_size)),
            request_cache_ttl=_env_number("REQUEST_CACHE_TTL", base.request_cache_ttl),
            config_cache_size=int(_env_number("CONFIG_CACHE_SIZE", base.config_cache_size)),
            request_timeout=_env_number("REQUEST_TIMEOUT", base.request_timeout),
            api_base_url=_env("API_BASE_URL", base.api_base_url) or base.api_base_url,
            max_points=int(_env_number("MAX_POINTS", base.max_points)),
            default_theme=_env("DEFAULT_THEME", base.default_theme) or base.default_theme,
        )


def get_settings() -> Settings:
    """Public entry point used by the rest of the app."""

    return Settings.from_env()
