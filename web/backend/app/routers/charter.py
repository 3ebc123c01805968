"""Charter router -- messaging charter status and acceptance."""

from __future__ import annotations

import asyncio

from fastapi import APIRouter, Depends

from fairway.auth.models import ActorContext
from fairway.messages.charter import CharterStatus
from web.backend.app.middleware.auth import get_current_actor, get_services
from web.backend.app.models.api import (
    AcceptCharterRequest,
    CharterAcceptedResponse,
    CharterStatusResponse,
)

router = APIRouter(prefix="/api/messages/charter", tags=["charter"])


def _status_response(status: CharterStatus) -> CharterStatusResponse:
    return CharterStatusResponse(
        charter_version=status.charter_version,
        must_accept=status.must_accept,
        accepted_version=status.accepted_version,
        accepted_at=status.accepted_at,
    )


@router.get(
    "",
    response_model=CharterStatusResponse,
    summary="Get the charter status of the current actor",
)
async def get_charter_status(actor: ActorContext = Depends(get_current_actor)):
    """Reachable before acceptance, unlike the rest of messaging."""
    status = await asyncio.to_thread(get_services().charter.status, actor)
    return _status_response(status)


@router.post(
    "",
    response_model=CharterAcceptedResponse,
    summary="Accept the current charter",
)
async def accept_charter(
    body: AcceptCharterRequest,
    actor: ActorContext = Depends(get_current_actor),
):
    """409 when ``charterVersion`` is not the workspace's current version."""
    status = await asyncio.to_thread(get_services().charter.accept, actor, body.charter_version)
    return CharterAcceptedResponse(
        charter_version=status.charter_version,
        accepted_at=status.accepted_at or "",
    )
