"""Purge router -- scheduled retention purge, authenticated by a shared secret."""

from __future__ import annotations

import asyncio
from typing import Optional

from fastapi import APIRouter, Header
from fastapi.responses import JSONResponse

from web.backend.app.middleware.auth import get_services

router = APIRouter(prefix="/api/messages/purge", tags=["purge"])


async def _run_purge(authorization: Optional[str], direct_token: Optional[str]) -> JSONResponse:
    outcome = await asyncio.to_thread(get_services().purge.handle, authorization, direct_token)
    return JSONResponse(content=outcome.to_payload(), status_code=outcome.status.http_status)


@router.get("", summary="Run the message retention purge")
async def purge_get(
    authorization: Optional[str] = Header(None),
    x_messages_purge_token: Optional[str] = Header(None),
):
    """Cron entry point.  ``x-messages-purge-token`` is read before ``Authorization``.

    503 when no secret is configured, 401 on a bad credential.
    """
    return await _run_purge(authorization, x_messages_purge_token)


@router.post("", summary="Run the message retention purge")
async def purge_post(
    authorization: Optional[str] = Header(None),
    x_messages_purge_token: Optional[str] = Header(None),
):
    return await _run_purge(authorization, x_messages_purge_token)
