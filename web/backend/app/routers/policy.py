"""Messaging policy router -- read and update the workspace messaging policy."""

from __future__ import annotations

import asyncio

from fastapi import APIRouter, Depends, HTTPException, status

from fairway.auth.models import ActorContext
from fairway.auth.permissions import can_manage_messaging_policy
from fairway.messages.models import GuardMode, MessagingPolicy
from fairway.messages.policy import PolicyValidationError
from fairway.moderation.audit import ModerationAuditLog
from web.backend.app.middleware.auth import get_current_actor, get_services
from web.backend.app.models.api import MessagingPolicyResponse, UpdatePolicyRequest

router = APIRouter(prefix="/api/messages/policy", tags=["messaging-policy"])


def _policy_response(policy: MessagingPolicy) -> MessagingPolicyResponse:
    return MessagingPolicyResponse(
        org_id=policy.org_id,
        guard_mode=policy.guard_mode.value,
        sensitive_words=list(policy.sensitive_words),
        retention_days=policy.retention_days,
        charter_version=policy.charter_version,
        supervision_enabled=policy.supervision_enabled,
    )


def _require_policy_manager(actor: ActorContext) -> None:
    """Raise 403 unless the actor manages messaging policy for their workspace."""
    if not can_manage_messaging_policy(actor):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Messaging policy management requires workspace admin access",
        )


@router.get(
    "",
    response_model=MessagingPolicyResponse,
    summary="Get the messaging policy",
)
async def get_policy(actor: ActorContext = Depends(get_current_actor)):
    """Return the policy of the active workspace (defaults when never saved)."""
    _require_policy_manager(actor)
    policy = await asyncio.to_thread(get_services().policies.get_policy, actor.workspace_id)
    return _policy_response(policy)


@router.patch(
    "",
    response_model=MessagingPolicyResponse,
    summary="Update the messaging policy",
)
async def update_policy(
    body: UpdatePolicyRequest,
    actor: ActorContext = Depends(get_current_actor),
):
    """Apply a partial update.  Omitted fields keep their current value."""
    _require_policy_manager(actor)
    services = get_services()

    if body.guard_mode is not None and body.guard_mode not in {m.value for m in GuardMode}:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"guardMode must be one of: {', '.join(m.value for m in GuardMode)}",
        )

    try:
        policy = await asyncio.to_thread(
            services.policies.update_policy,
            actor.workspace_id,
            guard_mode=body.guard_mode,
            sensitive_words=body.sensitive_words,
            retention_days=body.retention_days,
            charter_version=body.charter_version,
            supervision_enabled=body.supervision_enabled,
        )
    except PolicyValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(e),
        )

    await asyncio.to_thread(_record_policy_change, services.audit, actor, body)
    return _policy_response(policy)


def _record_policy_change(audit: ModerationAuditLog, actor: ActorContext, body: UpdatePolicyRequest) -> None:
    audit.record(
        workspace_org_id=actor.workspace_id,
        actor_user_id=actor.user_id,
        action="policy.updated",
        metadata={"fields": sorted(body.model_dump(exclude_none=True, by_alias=True))},
    )
