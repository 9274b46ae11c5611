"""Helpers for working with Supabase access tokens and caller roles."""

from __future__ import annotations

import asyncio
import base64
import json
import logging
import time
from typing import Any, Dict, Optional, Sequence

from fastapi import HTTPException
from httpx import HTTPError as HttpxError
from postgrest import APIError as PostgrestAPIError

from restaurant_reports.config.settings import REPORT_ALLOWED_ROLES
from restaurant_reports.services.postgrest_client import create_postgrest_client, postgrest_status

logger = logging.getLogger(__name__)

# PostgREST JWT failures (missing, malformed, expired, bad signature) and permission denied.
AUTH_ERROR_CODES = frozenset({"PGRST300", "PGRST301", "PGRST302", "PGRST303", "42501"})


def decode_access_token(access_token: str) -> Dict[str, Any]:
    """Return the decoded JWT payload for a Supabase access token.

    The payload is not trusted on its own: ``require_report_access`` only
    honors it after Supabase has accepted the same token.
    """

    if not access_token:
        raise HTTPException(status_code=401, detail="Unauthorized")

    try:
        payload_segment = access_token.split(".")[1]
        padding = "=" * (-len(payload_segment) % 4)
        decoded = base64.urlsafe_b64decode((payload_segment + padding).encode("ascii"))
        claims = json.loads(decoded.decode("utf-8"))
    except Exception as exc:  # pragma: no cover - malformed token
        raise HTTPException(status_code=401, detail="Unauthorized") from exc
    if not isinstance(claims, dict):
        raise HTTPException(status_code=401, detail="Unauthorized")
    return claims


def token_expired(claims: Dict[str, Any], now: Optional[float] = None) -> bool:
    expires_at = claims.get("exp")
    if expires_at is None:
        return False
    try:
        return float(expires_at) <= (time.time() if now is None else now)
    except (TypeError, ValueError):
        return True


def role_from_claims(claims: Dict[str, Any]) -> Optional[str]:
    """Role set by the project in ``app_metadata``.

    ``user_metadata`` is editable by the user and never grants a role.
    """

    metadata = claims.get("app_metadata") or {}
    role = metadata.get("role") if isinstance(metadata, dict) else None
    if isinstance(role, str) and role.strip():
        return role.strip().lower()
    return None


async def fetch_staff_role(access_token: str, user_id: str) -> Optional[str]:
    """Read the caller's staff role through PostgREST with the caller's token.

    PostgREST verifies the token signature and expiry, so a forged or stale
    token is rejected here with 401. ``None`` means the token is valid but no
    staff row is visible for the caller.
    """

    def _request() -> Optional[str]:
        with create_postgrest_client(access_token) as client:
            response = client.table("staff").select("role").eq("id", user_id).limit(1).execute()
            if not response.data:
                return None
            return response.data[0].get("role")

    try:
        role = await asyncio.to_thread(_request)
    except PostgrestAPIError as exc:
        _raise_lookup_error(exc)
    except HttpxError as exc:  # pragma: no cover - network interaction
        logger.error("Supabase unreachable during staff role lookup: %s", exc)
        raise HTTPException(status_code=503, detail="Supabase is temporarily unavailable.") from exc
    return role.strip().lower() if isinstance(role, str) and role.strip() else None


def _raise_lookup_error(exc: PostgrestAPIError) -> None:
    status_code = postgrest_status(exc)
    logger.error("staff role lookup failed (%s): %s", exc.code, exc.message)
    if status_code in (401, 403) or str(exc.code or "") in AUTH_ERROR_CODES:
        raise HTTPException(status_code=401, detail="Unauthorized") from exc
    raise HTTPException(status_code=502, detail="Supabase request failed.") from exc


async def require_report_access(
    access_token: str,
    allowed_roles: Sequence[str] = REPORT_ALLOWED_ROLES,
) -> Dict[str, Any]:
    """Return the caller claims when their role may read reports, else 401.

    The token is always presented to Supabase before any claim is used; the
    ``staff`` row wins over ``app_metadata.role``.
    """

    claims = decode_access_token(access_token)
    user_id = claims.get("sub")
    if not user_id or token_expired(claims):
        raise HTTPException(status_code=401, detail="Unauthorized")

    role = await fetch_staff_role(access_token, str(user_id)) or role_from_claims(claims)
    if role not in allowed_roles:
        logger.info("Report access denied for user %s with role %s", user_id, role)
        raise HTTPException(status_code=401, detail="Unauthorized")
    return {**claims, "role": role}


__all__ = [
    "decode_access_token",
    "fetch_staff_role",
    "require_report_access",
    "role_from_claims",
    "token_expired",
]
