"""API key authentication dependency for FastAPI."""

from __future__ import annotations

import hmac

from fastapi import HTTPException, Request


async def require_api_key(request: Request) -> None:
    """FastAPI dependency that checks the ``apikey`` header on mutating endpoints.

    Auth is disabled when no key is configured. ``X-API-Key`` is accepted as well.
    """
    expected = request.app.state.services.config.auth.api_key
    if not expected:
        return
    key = request.headers.get("apikey") or request.headers.get("X-API-Key", "")
    if not hmac.compare_digest(key, expected):
        raise HTTPException(status_code=401, detail="Invalid or missing API key")
