"""Messaging charter acceptance.

Every workspace policy carries a ``charter_version``.  An actor may only
use messaging in a workspace once they accepted that exact version; raising
the version in the policy asks everyone to accept again.

Storage: ``~/.fairway/charter/acceptances.json``.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from fairway.auth.models import ActorContext
from fairway.messages.errors import CharterRequiredError, CharterVersionConflictError
from fairway.messages.models import utcnow_iso
from fairway.messages.policy import PolicyStore
from fairway.moderation.audit import ModerationAuditLog
from fairway.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class CharterStatus:
    charter_version: int
    must_accept: bool
    accepted_version: Optional[int] = None
    accepted_at: Optional[str] = None


class CharterStore:
    """File-based storage of charter acceptances, one row per user and workspace."""

    def __init__(self, base_dir: Optional[str | Path] = None) -> None:
        if base_dir is None:
            self._base = Path.home() / ".fairway" / "charter"
        else:
            self._base = Path(base_dir)
        self._base.mkdir(parents=True, exist_ok=True)
        self._acceptances_path = self._base / "acceptances.json"

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

    def get_acceptance(self, user_id: str, workspace_id: str) -> Optional[dict]:
        for d in self._read_json(self._acceptances_path):
            if d.get("user_id") == user_id and d.get("workspace_id") == workspace_id:
                return d
        return None

    def accept(self, user_id: str, workspace_id: str, charter_version: int) -> str:
        """Record the acceptance of *charter_version* and return its timestamp."""
        accepted_at = utcnow_iso()
        rows = [
            d
            for d in self._read_json(self._acceptances_path)
            if not (d.get("user_id") == user_id and d.get("workspace_id") == workspace_id)
        ]
        rows.append(
            {
                "user_id": user_id,
                "workspace_id": workspace_id,
                "charter_version": charter_version,
                "accepted_at": accepted_at,
            }
        )
        self._write_json(self._acceptances_path, rows)
        return accepted_at


class CharterService:
    """Reads and records charter acceptance against the workspace policy."""

    def __init__(self, policies: PolicyStore, store: CharterStore, audit: ModerationAuditLog) -> None:
        self._policies = policies
        self._store = store
        self._audit = audit

    def status(self, ctx: ActorContext) -> CharterStatus:
        version = self._policies.get_policy(ctx.workspace_id).charter_version
        row = self._store.get_acceptance(ctx.user_id, ctx.workspace_id)
        accepted_version = int(row["charter_version"]) if row else None
        return CharterStatus(
            charter_version=version,
            must_accept=accepted_version != version,
            accepted_version=accepted_version,
            accepted_at=row.get("accepted_at") if row else None,
        )

    def accept(self, ctx: ActorContext, charter_version: int) -> CharterStatus:
        """Accept the current charter.  A version other than the current one is a 409."""
        current = self.status(ctx)
        if charter_version != current.charter_version:
            raise CharterVersionConflictError()

        accepted_at = self._store.accept(ctx.user_id, ctx.workspace_id, current.charter_version)
        self._audit.record(
            workspace_org_id=ctx.workspace_id,
            actor_user_id=ctx.user_id,
            action="charter.accepted",
            metadata={"charterVersion": current.charter_version},
        )
        logger.info(
            "messaging charter accepted (workspace=%s actor=%s version=%d)",
            ctx.workspace_id,
            ctx.user_id,
            current.charter_version,
        )
        return CharterStatus(
            charter_version=current.charter_version,
            must_accept=False,
            accepted_version=current.charter_version,
            accepted_at=accepted_at,
        )

    def require_accepted(self, ctx: ActorContext) -> None:
        current = self.status(ctx)
        if current.must_accept:
            raise CharterRequiredError(current.charter_version)
