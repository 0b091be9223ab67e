"""
Runtime configuration.

Values come from the process environment, with a `.env` file in the project
root loaded first. Secrets are never hard-coded.

Environment variables:
- SUPABASE_URL / SUPABASE_KEY: Supabase project URL and server-side key
- JWT_SECRET: signing key for access tokens (required by the API)
- JWT_ALGORITHM: token signing algorithm (default HS256)
- ACCESS_TOKEN_TTL_HOURS: access token lifetime (default 24)
- LOG_LEVEL: root log level (default INFO)
- RESTRICT_ASSIGNEE_FILTER: refuse non-admin listings for another assignee (default false)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

env_path = Path(__file__).parent / ".env"
load_dotenv(dotenv_path=env_path)

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


@dataclass(frozen=True, slots=True)
class Settings:
    supabase_url: Optional[str]
    supabase_key: Optional[str]
    jwt_secret: Optional[str]
    jwt_algorithm: str = "HS256"
    access_token_ttl_hours: int = 24
    log_level: str = "INFO"
    restrict_assignee_filter: bool = False


@lru_cache
def get_settings() -> Settings:
    return Settings(
        supabase_url=os.getenv("SUPABASE_URL"),
        supabase_key=os.getenv("SUPABASE_KEY"),
        jwt_secret=os.getenv("JWT_SECRET"),
        jwt_algorithm=os.getenv("JWT_ALGORITHM", "HS256"),
        access_token_ttl_hours=int(os.getenv("ACCESS_TOKEN_TTL_HOURS", "24")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        restrict_assignee_filter=_env_flag("RESTRICT_ASSIGNEE_FILTER"),
    )


__all__ = ["Settings", "get_settings"]
