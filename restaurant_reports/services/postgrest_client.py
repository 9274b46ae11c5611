"""Shared utilities for talking to Supabase/PostgREST."""

from __future__ import annotations

from typing import Dict, Optional

from fastapi import HTTPException
from postgrest import APIError as PostgrestAPIError
from postgrest import SyncPostgrestClient

from restaurant_reports.config.settings import SUPABASE_ANON_KEY, SUPABASE_URL


def extract_bearer_token(header_value: Optional[str]) -> str:
    """Return the Bearer token from an Authorization header."""

    if not header_value:
        raise HTTPException(status_code=401, detail="Unauthorized")
    parts = header_value.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(status_code=401, detail="Unauthorized")
    token = parts[1].strip()
    if not token:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return token


def create_postgrest_client(
    access_token: str,
    *,
    api_key: Optional[str] = None,
) -> SyncPostgrestClient:
    """Instantiate a PostgREST client authenticated with the provided token."""

    resolved_api_key = api_key or SUPABASE_ANON_KEY
    if not SUPABASE_URL or not resolved_api_key:
        raise HTTPException(status_code=500, detail="Supabase is not configured.")

    headers: Dict[str, str] = {
        "apikey": resolved_api_key,
        "Accept": "application/json",
    }

    client = SyncPostgrestClient(f"{SUPABASE_URL.rstrip('/')}/rest/v1", headers=headers)
    client.auth(access_token)
    return client


def postgrest_status(exc: PostgrestAPIError) -> int:
    """Best effort extraction of an HTTP status code from the API error."""

    try:
        return int(exc.code) if exc.code else 502
    except (TypeError, ValueError):
        return 502


__all__ = [
    "create_postgrest_client",
    "extract_bearer_token",
    "postgrest_status",
]
