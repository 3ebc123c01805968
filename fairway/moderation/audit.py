"""Append-only audit trail for messaging moderation actions.

Records are stored as newline-delimited JSON in daily files under
``<data_dir>/moderation_audit/``.  Lines are only ever appended; there is no
API to update or delete a record.
"""

from __future__ import annotations

import json
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from fairway.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ModerationAuditRecord:
    """A single moderation audit record."""

    id: str
    workspace_org_id: str
    actor_user_id: str
    action: str
    created_at: str
    report_id: Optional[str] = None
    thread_id: Optional[str] = None
    metadata: dict[str, Any] = field(default_factory=dict)


class ModerationAuditLog:
    """File-based JSONL moderation audit log."""

    def __init__(self, base_dir: Optional[Path] = None) -> None:
        self._base_dir = Path(base_dir) if base_dir else Path.home() / ".fairway" / "moderation_audit"
        self._base_dir.mkdir(parents=True, exist_ok=True)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _log_file_for_date(self, dt: datetime) -> Path:
        return self._base_dir / f"{dt.strftime('%Y-%m-%d')}.jsonl"

    def _read_all_records(self) -> list[ModerationAuditRecord]:
        records: list[ModerationAuditRecord] = []
        for path in sorted(self._base_dir.glob("*.jsonl")):
            try:
                text = path.read_text(encoding="utf-8")
            except OSError:
                logger.exception("could not read audit file %s", path)
                continue
            for line in text.splitlines():
                if not line.strip():
                    continue
                try:
                    records.append(ModerationAuditRecord(**json.loads(line)))
                except (json.JSONDecodeError, TypeError):
                    logger.warning("skipping malformed audit line in %s", path)
        return records

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def record(
        self,
        workspace_org_id: str,
        actor_user_id: str,
        action: str,
        report_id: Optional[str] = None,
        thread_id: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> Optional[ModerationAuditRecord]:
        """Append one audit record.

        Best-effort: a failed write is logged and ``None`` is returned so the
        moderation action it accompanies is never blocked or rolled back.
        """
        now = datetime.now(timezone.utc)
        entry = ModerationAuditRecord(
            id=uuid.uuid4().hex,
            workspace_org_id=workspace_org_id,
            actor_user_id=actor_user_id,
            action=action,
            created_at=now.isoformat(),
            report_id=report_id,
            thread_id=thread_id,
            metadata=dict(metadata or {}),
        )
        try:
            line = json.dumps(asdict(entry), default=str)
            with self._log_file_for_date(now).open("a", encoding="utf-8") as fh:
                fh.write(line + "\n")
        except Exception:
            logger.exception(
                "moderation audit write failed (action=%s org=%s actor=%s)",
                action,
                workspace_org_id,
                actor_user_id,
            )
            return None
        return entry

    def list_records(
        self,
        workspace_org_id: str,
        *,
        thread_id: Optional[str] = None,
        report_id: Optional[str] = None,
        action: Optional[str] = None,
        limit: int = 200,
    ) -> list[ModerationAuditRecord]:
        """Return the records of one workspace, newest first."""
        records = [r for r in self._read_all_records() if r.workspace_org_id == workspace_org_id]
        if thread_id:
            records = [r for r in records if r.thread_id == thread_id]
        if report_id:
            records = [r for r in records if r.report_id == report_id]
        if action:
            records = [r for r in records if r.action == action]

        records.sort(key=lambda r: r.created_at, reverse=True)
        return records[:limit]
