"""Messaging suspensions for members of an organization workspace.

An org moderation admin can suspend a member's messaging access, for a
period or indefinitely, and lift it again.  Suspensions only apply inside
org workspaces.

Storage: ``~/.fairway/suspensions/suspensions.json``.
"""

from __future__ import annotations

import json
import uuid
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from fairway.auth.models import ActorContext, WorkspaceType
from fairway.auth.permissions import require_org_moderation_admin
from fairway.messages.errors import MessageValidationError, MessagingSuspendedError
from fairway.messages.models import utcnow_iso
from fairway.moderation.audit import ModerationAuditLog
from fairway.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class MessagingSuspension:
    id: str
    org_id: str
    user_id: str
    reason: str
    suspended_until: Optional[str] = None
    created_at: str = ""
    created_by: Optional[str] = None
    lifted_at: Optional[str] = None
    lifted_by: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.created_at:
            self.created_at = utcnow_iso()

    def is_active(self, now: Optional[datetime] = None) -> bool:
        if self.lifted_at:
            return False
        if not self.suspended_until:
            return True
        try:
            until = datetime.fromisoformat(self.suspended_until)
        except ValueError:
            return False
        if until.tzinfo is None:
            until = until.replace(tzinfo=timezone.utc)
        return until > (now or datetime.now(timezone.utc))


class SuspensionStore:
    """File-based storage for messaging suspensions."""

    def __init__(self, base_dir: Optional[str | Path] = None) -> None:
        if base_dir is None:
            self._base = Path.home() / ".fairway" / "suspensions"
        else:
            self._base = Path(base_dir)
        self._base.mkdir(parents=True, exist_ok=True)
        self._suspensions_path = self._base / "suspensions.json"

    def _read_json(self, path: Path) -> list[dict]:
        if not path.exists():
            return []
        try:
            data = json.loads(path.read_text())
            return data if isinstance(data, list) else []
        except (json.JSONDecodeError, OSError):
            return []

    def _write_json(self, path: Path, data: list[dict]) -> None:
        path.write_text(json.dumps(data, indent=2, default=str))

    def list_active(self, org_id: str, now: Optional[datetime] = None) -> list[MessagingSuspension]:
        rows = [
            MessagingSuspension(**d)
            for d in self._read_json(self._suspensions_path)
            if d.get("org_id") == org_id
        ]
        active = [s for s in rows if s.is_active(now)]
        active.sort(key=lambda s: s.created_at, reverse=True)
        return active

    def get_active(self, org_id: str, user_id: str, now: Optional[datetime] = None) -> Optional[MessagingSuspension]:
        for suspension in self.list_active(org_id, now):
            if suspension.user_id == user_id:
                return suspension
        return None

    def suspend(
        self,
        org_id: str,
        user_id: str,
        reason: str,
        created_by: str,
        suspended_until: Optional[str] = None,
    ) -> MessagingSuspension:
        """Create a suspension, or replace the reason and end of the one not yet lifted."""
        rows = self._read_json(self._suspensions_path)
        for d in rows:
            if d.get("org_id") == org_id and d.get("user_id") == user_id and not d.get("lifted_at"):
                d.update(reason=reason, suspended_until=suspended_until, created_by=created_by)
                self._write_json(self._suspensions_path, rows)
                return MessagingSuspension(**d)

        suspension = MessagingSuspension(
            id=str(uuid.uuid4()),
            org_id=org_id,
            user_id=user_id,
            reason=reason,
            suspended_until=suspended_until,
            created_by=created_by,
        )
        rows.append(asdict(suspension))
        self._write_json(self._suspensions_path, rows)
        return suspension

    def lift(self, org_id: str, user_id: str, lifted_by: str) -> int:
        """Lift every open suspension of *user_id*.  Returns how many were lifted."""
        rows = self._read_json(self._suspensions_path)
        now = utcnow_iso()
        lifted = 0
        for d in rows:
            if d.get("org_id") == org_id and d.get("user_id") == user_id and not d.get("lifted_at"):
                d["lifted_at"] = now
                d["lifted_by"] = lifted_by
                lifted += 1
        if lifted:
            self._write_json(self._suspensions_path, rows)
        return lifted


class SuspensionService:
    """Admin management of suspensions plus the access check used by messaging."""

    def __init__(self, store: SuspensionStore, audit: ModerationAuditLog) -> None:
        self._store = store
        self._audit = audit

    def list_suspensions(self, ctx: ActorContext) -> list[MessagingSuspension]:
        require_org_moderation_admin(ctx)
        return self._store.list_active(ctx.workspace_id)

    def suspend(
        self,
        ctx: ActorContext,
        user_id: str,
        reason: str,
        suspended_until: Optional[datetime] = None,
    ) -> list[MessagingSuspension]:
        require_org_moderation_admin(ctx)
        if user_id == ctx.user_id:
            raise MessageValidationError("Admins cannot suspend themselves.", 409)
        reason = (reason or "").strip()
        if not 3 <= len(reason) <= 500:
            raise MessageValidationError("Reason must be between 3 and 500 characters.")
        until = None
        if suspended_until is not None:
            if suspended_until.tzinfo is None:
                suspended_until = suspended_until.replace(tzinfo=timezone.utc)
            until = suspended_until.isoformat()

        self._store.suspend(ctx.workspace_id, user_id, reason, ctx.user_id, until)
        self._audit.record(
            workspace_org_id=ctx.workspace_id,
            actor_user_id=ctx.user_id,
            action="suspension.created",
            metadata={"userId": user_id, "reason": reason, "suspendedUntil": until},
        )
        logger.warning(
            "messaging suspended (workspace=%s user=%s until=%s)", ctx.workspace_id, user_id, until or "indefinite"
        )
        return self._store.list_active(ctx.workspace_id)

    def lift(self, ctx: ActorContext, user_id: str) -> list[MessagingSuspension]:
        require_org_moderation_admin(ctx)
        if self._store.lift(ctx.workspace_id, user_id, ctx.user_id):
            self._audit.record(
                workspace_org_id=ctx.workspace_id,
                actor_user_id=ctx.user_id,
                action="suspension.lifted",
                metadata={"userId": user_id},
            )
            logger.info("messaging suspension lifted (workspace=%s user=%s)", ctx.workspace_id, user_id)
        return self._store.list_active(ctx.workspace_id)

    def require_not_suspended(self, ctx: ActorContext) -> None:
        if ctx.workspace_type != WorkspaceType.org:
            return
        suspension = self._store.get_active(ctx.workspace_id, ctx.user_id)
        if suspension is None:
            return
        self._audit.record(
            workspace_org_id=ctx.workspace_id,
            actor_user_id=ctx.user_id,
            action="suspension.access_blocked",
            metadata={"suspensionId": suspension.id, "suspendedUntil": suspension.suspended_until},
        )
        raise MessagingSuspendedError(suspension.suspended_until)
