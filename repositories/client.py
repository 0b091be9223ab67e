"""
Supabase client initialization.

This module contains *only* the database connection setup. The client is
created on first use from SUPABASE_URL / SUPABASE_KEY (see config.py) and then
shared by every repository module through `get_supabase()`.

`execute()` is the single place where Supabase failures are translated into
PersistenceError, so repositories never leak driver exceptions.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from postgrest.exceptions import APIError
from supabase import Client, create_client  # type: ignore[import-not-found]

from config import get_settings
from domain.errors import PersistenceError

logger = logging.getLogger(__name__)

_client: Optional[Client] = None


def get_supabase() -> Client:
    """Return the shared Supabase client, creating it on first use."""

    global _client
    if _client is None:
        settings = get_settings()
        if not settings.supabase_url:
            raise RuntimeError(
                "Missing environment variable: SUPABASE_URL. "
                "Set SUPABASE_URL to your Supabase project URL."
            )
        if not settings.supabase_key:
            raise RuntimeError(
                "Missing environment variable: SUPABASE_KEY. "
                "Set SUPABASE_KEY to your Supabase API key."
            )
        _client = create_client(settings.supabase_url, settings.supabase_key)
    return _client


def execute(query: Any, action: str) -> Any:
    """
    Execute a Supabase query builder and return its response.

    Raises:
    - PersistenceError if Supabase raises APIError or returns an error payload.
    """

    try:
        response = query.execute()
    except APIError as e:
        logger.error(
            f"Supabase request failed: {action}",
            extra={"action": action, "code": getattr(e, "code", None), "error": getattr(e, "message", str(e))},
        )
        raise PersistenceError(f"Failed to {action}") from e

    error = getattr(response, "error", None)
    if error:
        logger.error(f"Supabase request failed: {action}", extra={"action": action, "error": str(error)})
        raise PersistenceError(f"Failed to {action}")
    return response


def rows_of(response: Any) -> list[dict[str, Any]]:
    return getattr(response, "data", None) or []


__all__ = ["get_supabase", "execute", "rows_of"]
