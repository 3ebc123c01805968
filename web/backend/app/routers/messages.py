"""Messages router -- thread creation, message history and sending."""

from __future__ import annotations

import asyncio
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from fairway.auth.models import ActorContext
from fairway.messages.models import Message, Thread, ThreadKind
from web.backend.app.middleware.auth import get_current_actor, get_services
from web.backend.app.models.api import (
    CreateThreadRequest,
    MessagePageResponse,
    MessageResponse,
    SendMessageRequest,
    ThreadResponse,
)

router = APIRouter(prefix="/api/messages/threads", tags=["messages"])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _thread_response(thread: Thread) -> ThreadResponse:
    """Convert a domain Thread to the Pydantic response model."""
    return ThreadResponse(
        id=thread.id,
        kind=thread.kind.value,
        workspace_org_id=thread.workspace_org_id,
        participant_ids=list(thread.participant_ids),
        group_id=thread.group_id,
        student_id=thread.student_id,
        created_by=thread.created_by,
        created_at=thread.created_at,
        frozen_at=thread.frozen_at,
        minor_protected=thread.kind.is_minor_protected,
    )


def _message_response(message: Message) -> MessageResponse:
    return MessageResponse(
        id=message.id,
        thread_id=message.thread_id,
        sender_id=message.sender_id,
        body=message.body,
        created_at=message.created_at,
        redacted_at=message.redacted_at,
    )


# ---------------------------------------------------------------------------
# Threads
# ---------------------------------------------------------------------------


@router.post(
    "",
    response_model=ThreadResponse,
    summary="Create a thread",
)
async def create_thread(
    body: CreateThreadRequest,
    actor: ActorContext = Depends(get_current_actor),
):
    """Create a thread in the actor's active workspace.  Rate limited per actor."""
    try:
        kind = ThreadKind(body.kind)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Unknown thread kind '{body.kind}'",
        )

    thread = await asyncio.to_thread(
        get_services().messages.create_thread,
        actor,
        kind=kind,
        participant_ids=body.participant_ids,
        group_id=body.group_id,
        student_id=body.student_id,
    )
    return _thread_response(thread)


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------


@router.get(
    "/{thread_id}/messages",
    response_model=MessagePageResponse,
    summary="List messages of a thread",
)
async def list_messages(
    thread_id: str,
    cursor: Optional[int] = Query(None, description="Return messages with an id below this one"),
    limit: int = Query(50, ge=1, le=100),
    actor: ActorContext = Depends(get_current_actor),
):
    """Page backwards through a thread.  Each page is in ascending id order."""
    messages, next_cursor = await asyncio.to_thread(
        get_services().messages.list_messages, actor, thread_id, cursor=cursor, limit=limit
    )
    return MessagePageResponse(
        messages=[_message_response(m) for m in messages],
        next_cursor=next_cursor,
    )


@router.post(
    "/{thread_id}/messages",
    response_model=MessageResponse,
    summary="Send a message",
)
async def send_message(
    thread_id: str,
    body: SendMessageRequest,
    actor: ActorContext = Depends(get_current_actor),
):
    """Send a message through the rate limiter and the content guard.

    Blocked content answers 422 with the flag types, rate limiting answers
    429 with ``Retry-After``.
    """
    message = await asyncio.to_thread(get_services().messages.send_message, actor, thread_id, body.body)
    return _message_response(message)
