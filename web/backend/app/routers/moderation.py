"""Moderation router -- message reports, report status with thread freeze, audit trail."""

from __future__ import annotations

import asyncio
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from fairway.auth.models import ActorContext
from fairway.messages.models import MessageReport, ReportStatus
from fairway.moderation.audit import ModerationAuditRecord
from web.backend.app.middleware.auth import get_current_actor, get_services
from web.backend.app.models.api import (
    AuditRecordResponse,
    CreateReportRequest,
    ReportResponse,
    UpdateReportStatusRequest,
)

router = APIRouter(prefix="/api/messages", tags=["moderation"])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _report_response(report: MessageReport) -> ReportResponse:
    """Convert a domain MessageReport to the Pydantic response model."""
    return ReportResponse(
        id=report.id,
        workspace_org_id=report.workspace_org_id,
        thread_id=report.thread_id,
        reported_by=report.reported_by,
        reason=report.reason,
        message_id=report.message_id,
        details=report.details,
        status=report.status.value,
        freeze_applied=report.freeze_applied,
        snapshot=list(report.snapshot),
        resolved_by=report.resolved_by,
        resolved_at=report.resolved_at,
        created_at=report.created_at,
        updated_at=report.updated_at,
    )


def _audit_response(record: ModerationAuditRecord) -> AuditRecordResponse:
    return AuditRecordResponse(
        id=record.id,
        workspace_org_id=record.workspace_org_id,
        actor_user_id=record.actor_user_id,
        action=record.action,
        created_at=record.created_at,
        report_id=record.report_id,
        thread_id=record.thread_id,
        metadata=dict(record.metadata),
    )


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------


@router.post(
    "/reports",
    response_model=ReportResponse,
    summary="Report a thread or message",
)
async def create_report(
    body: CreateReportRequest,
    actor: ActorContext = Depends(get_current_actor),
):
    """Any participant who can read the thread may report it."""
    report = await asyncio.to_thread(
        get_services().moderation.create_report,
        actor,
        thread_id=body.thread_id,
        reason=body.reason,
        message_id=body.message_id,
        details=body.details,
    )
    return _report_response(report)


@router.get(
    "/reports",
    response_model=list[ReportResponse],
    summary="List reports of the workspace",
)
async def list_reports(actor: ActorContext = Depends(get_current_actor)):
    """Org moderation admins only."""
    reports = await asyncio.to_thread(get_services().moderation.list_reports, actor)
    return [_report_response(r) for r in reports]


@router.patch(
    "/reports/{report_id}/status",
    response_model=ReportResponse,
    summary="Update a report status",
)
async def update_report_status(
    report_id: str,
    body: UpdateReportStatusRequest,
    actor: ActorContext = Depends(get_current_actor),
):
    """Change the status of a report and optionally freeze or unfreeze its thread."""
    try:
        new_status = ReportStatus(body.status)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"status must be one of: {', '.join(s.value for s in ReportStatus)}",
        )

    report = await asyncio.to_thread(
        get_services().moderation.update_report_status,
        actor,
        report_id,
        new_status,
        freeze_thread=body.freeze_thread,
    )
    return _report_response(report)


# ---------------------------------------------------------------------------
# Audit trail
# ---------------------------------------------------------------------------


@router.get(
    "/moderation/audit",
    response_model=list[AuditRecordResponse],
    summary="List moderation audit records",
)
async def list_audit(
    thread_id: Optional[str] = Query(None, alias="threadId"),
    report_id: Optional[str] = Query(None, alias="reportId"),
    action: Optional[str] = Query(None),
    limit: int = Query(200, ge=1, le=1000),
    actor: ActorContext = Depends(get_current_actor),
):
    """Newest first.  Org moderation admins only."""
    records = await asyncio.to_thread(
        get_services().moderation.list_audit,
        actor,
        thread_id=thread_id,
        report_id=report_id,
        action=action,
        limit=limit,
    )
    return [_audit_response(r) for r in records]
