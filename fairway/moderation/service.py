"""Moderation workflows: message reports, thread freezes and the audit trail.

Every moderation action appends an audit record.  Reading or changing
reports and reading the audit trail is reserved to org moderation admins.
"""

from __future__ import annotations

from typing import Callable, Optional

from fairway.auth.models import ActorContext
from fairway.auth.permissions import require_org_moderation_admin
from fairway.messages.access import check_thread_access
from fairway.messages.errors import (
    MessageValidationError,
    ReportNotFoundError,
    ThreadAccessDeniedError,
    ThreadNotFoundError,
)
from fairway.messages.models import MessageReport, ReportStatus
from fairway.messages.store import MessageStore
from fairway.moderation.audit import ModerationAuditLog, ModerationAuditRecord
from fairway.utils.logger import get_logger

logger = get_logger(__name__)


class ModerationService:
    """Report lifecycle plus audit access."""

    def __init__(
        self,
        store: MessageStore,
        audit: ModerationAuditLog,
        gate: Optional[Callable[[ActorContext], None]] = None,
    ) -> None:
        self._store = store
        self._audit = audit
        self._gate = gate

    def _ensure_messaging_allowed(self, ctx: ActorContext) -> None:
        if self._gate is not None:
            self._gate(ctx)

    def create_report(
        self,
        ctx: ActorContext,
        thread_id: str,
        reason: str,
        message_id: Optional[int] = None,
        details: Optional[str] = None,
    ) -> MessageReport:
        """Any member who can read the thread may report it (or one of its messages)."""
        self._ensure_messaging_allowed(ctx)
        thread = self._store.get_thread(thread_id)
        if thread is None:
            raise ThreadNotFoundError()
        decision = check_thread_access(ctx, thread, "read")
        if not decision.ok:
            logger.warning("report denied: no thread access (thread=%s actor=%s)", thread_id, ctx.user_id)
            raise ThreadAccessDeniedError(decision.error, decision.status_code)

        reason = (reason or "").strip()
        if not 3 <= len(reason) <= 200:
            raise MessageValidationError("Reason must be between 3 and 200 characters.")

        if message_id is not None and self._store.get_message(thread.id, message_id) is None:
            raise MessageValidationError("Message not found.", 404)

        report = self._store.create_report(
            thread=thread,
            reported_by=ctx.user_id,
            reason=reason,
            message_id=message_id,
            details=(details or "").strip() or None,
        )
        self._audit.record(
            workspace_org_id=thread.workspace_org_id,
            actor_user_id=ctx.user_id,
            action="report.created",
            report_id=report.id,
            thread_id=thread.id,
            metadata={"messageId": message_id, "status": report.status.value},
        )
        logger.warning("message report created (report=%s thread=%s)", report.id, thread.id)
        return report

    def list_reports(self, ctx: ActorContext) -> list[MessageReport]:
        require_org_moderation_admin(ctx)
        self._ensure_messaging_allowed(ctx)
        reports = self._store.list_reports(ctx.workspace_id)
        self._audit.record(
            workspace_org_id=ctx.workspace_id,
            actor_user_id=ctx.user_id,
            action="reports.list_viewed",
            metadata={"count": len(reports)},
        )
        return reports

    def update_report_status(
        self,
        ctx: ActorContext,
        report_id: str,
        status: ReportStatus | str,
        freeze_thread: Optional[bool] = None,
    ) -> MessageReport:
        """Move a report through ``open -> in_review -> resolved`` and freeze/unfreeze its thread.

        ``freeze_thread=None`` keeps the current freeze state.
        """
        require_org_moderation_admin(ctx)
        self._ensure_messaging_allowed(ctx)
        report = self._store.get_report(report_id)
        if report is None or report.workspace_org_id != ctx.workspace_id:
            raise ReportNotFoundError()

        freeze = report.freeze_applied if freeze_thread is None else freeze_thread
        updated = self._store.update_report_status(
            report_id, ReportStatus(status), ctx.user_id, freeze_applied=freeze
        )
        if updated is None:
            raise ReportNotFoundError()

        if freeze != report.freeze_applied:
            self._store.set_thread_frozen(
                report.thread_id,
                freeze,
                ctx.user_id,
                reason=f"report:{report.id}" if freeze else None,
            )
            self._audit.record(
                workspace_org_id=report.workspace_org_id,
                actor_user_id=ctx.user_id,
                action="thread.frozen" if freeze else "thread.unfrozen",
                report_id=report.id,
                thread_id=report.thread_id,
            )

        self._audit.record(
            workspace_org_id=report.workspace_org_id,
            actor_user_id=ctx.user_id,
            action="report.status_updated",
            report_id=report.id,
            thread_id=report.thread_id,
            metadata={"status": updated.status.value, "freezeApplied": freeze},
        )
        return updated

    def list_audit(
        self,
        ctx: ActorContext,
        thread_id: Optional[str] = None,
        report_id: Optional[str] = None,
        action: Optional[str] = None,
        limit: int = 200,
    ) -> list[ModerationAuditRecord]:
        require_org_moderation_admin(ctx)
        return self._audit.list_records(
            ctx.workspace_id,
            thread_id=thread_id,
            report_id=report_id,
            action=action,
            limit=limit,
        )
