"""Suspensions router -- org admins suspend or restore a member's messaging access."""

from __future__ import annotations

import asyncio

from fastapi import APIRouter, Depends, HTTPException, status

from fairway.auth.models import ActorContext
from fairway.moderation.suspensions import MessagingSuspension
from web.backend.app.middleware.auth import get_current_actor, get_services
from web.backend.app.models.api import (
    ManageSuspensionRequest,
    SuspensionListResponse,
    SuspensionResponse,
)

router = APIRouter(prefix="/api/messages/suspensions", tags=["moderation"])


def _list_response(suspensions: list[MessagingSuspension]) -> SuspensionListResponse:
    return SuspensionListResponse(
        suspensions=[
            SuspensionResponse(
                id=s.id,
                org_id=s.org_id,
                user_id=s.user_id,
                reason=s.reason,
                suspended_until=s.suspended_until,
                created_at=s.created_at,
                created_by=s.created_by,
            )
            for s in suspensions
        ]
    )


@router.get(
    "",
    response_model=SuspensionListResponse,
    summary="List active messaging suspensions",
)
async def list_suspensions(actor: ActorContext = Depends(get_current_actor)):
    """Org moderation admins only."""
    suspensions = await asyncio.to_thread(get_services().suspensions.list_suspensions, actor)
    return _list_response(suspensions)


@router.post(
    "",
    response_model=SuspensionListResponse,
    summary="Suspend or restore a member",
)
async def manage_suspension(
    body: ManageSuspensionRequest,
    actor: ActorContext = Depends(get_current_actor),
):
    """``action=suspend`` needs a reason; ``suspendedUntil`` omitted means indefinite."""
    services = get_services()
    if body.action == "lift":
        suspensions = await asyncio.to_thread(services.suspensions.lift, actor, body.user_id)
        return _list_response(suspensions)

    if body.reason is None:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="reason is required to suspend a member",
        )
    suspensions = await asyncio.to_thread(
        services.suspensions.suspend,
        actor,
        body.user_id,
        body.reason,
        body.suspended_until,
    )
    return _list_response(suspensions)
