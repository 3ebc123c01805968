"""File-based JSON storage for threads, messages and moderation reports.

Provides a DB-ready interface backed by simple JSON files under
``~/.fairway/messages/``.  Message ids come from an increasing counter
assigned under a lock, so they give a total order within the store.
Writes go through a temporary file and ``os.replace``; read-modify-write
cycles hold an exclusive ``fcntl`` lock so several processes can share the
directory.
"""

from __future__ import annotations

import fcntl
import json
import os
import tempfile
import threading
import uuid
from contextlib import contextmanager
from dataclasses import asdict
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Iterator, Optional

from fairway.messages.models import (
    Message,
    MessageReport,
    PurgeResult,
    ReportStatus,
    Thread,
    ThreadKind,
    utcnow_iso,
)

REDACTED_BODY = "[message removed after the retention period]"

SNAPSHOT_RADIUS = 5


class StoreCorruptedError(OSError):
    """A store file exists but does not hold a JSON list.  It is never overwritten."""


class MessageStore:
    """File-based storage for threads, messages and reports.

    Storage path: ``~/.fairway/messages/`` with:
    - ``threads.json`` -- list of thread dicts
    - ``messages.json`` -- list of message dicts, ascending ids
    - ``reports.json`` -- list of report dicts
    """

    def __init__(self, base_dir: Optional[str | Path] = None) -> None:
        if base_dir is None:
            self._base = Path.home() / ".fairway" / "messages"
        else:
            self._base = Path(base_dir)
        self._base.mkdir(parents=True, exist_ok=True)
        self._threads_path = self._base / "threads.json"
        self._messages_path = self._base / "messages.json"
        self._reports_path = self._base / "reports.json"
        self._lock_path = self._base / ".lock"
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @contextmanager
    def _locked(self) -> Iterator[None]:
        """Hold the in-process lock and an exclusive lock on ``.lock``.

        The CLI purge and the web backend are separate processes sharing
        these files.
        """
        with self._lock, open(self._lock_path, "a") as lock_file:
            fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX)
            try:
                yield
            finally:
                fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)

    def _read_json(self, path: Path) -> list[dict]:
        if not path.exists():
            return []
        try:
            data = json.loads(path.read_text())
        except json.JSONDecodeError as exc:
            raise StoreCorruptedError(f"{path} is not valid JSON") from exc
        if not isinstance(data, list):
            raise StoreCorruptedError(f"{path} does not hold a JSON list")
        return data

    def _write_json(self, path: Path, data: list[dict]) -> None:
        fd, tmp = tempfile.mkstemp(dir=self._base, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(data, f, indent=2, default=str)
            os.replace(tmp, path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    @staticmethod
    def _thread_from_dict(d: dict) -> Thread:
        return Thread(
            id=d["id"],
            kind=ThreadKind(d["kind"]),
            workspace_org_id=d["workspace_org_id"],
            participant_ids=list(d.get("participant_ids", [])),
            group_id=d.get("group_id"),
            student_id=d.get("student_id"),
            created_by=d.get("created_by", ""),
            created_at=d.get("created_at", ""),
            frozen_at=d.get("frozen_at"),
            frozen_by=d.get("frozen_by"),
            frozen_reason=d.get("frozen_reason"),
        )

    @staticmethod
    def _thread_to_dict(t: Thread) -> dict:
        d = asdict(t)
        d["kind"] = t.kind.value
        return d

    @staticmethod
    def _message_from_dict(d: dict) -> Message:
        return Message(
            id=int(d["id"]),
            thread_id=d["thread_id"],
            sender_id=d["sender_id"],
            body=d["body"],
            created_at=d.get("created_at", ""),
            redacted_at=d.get("redacted_at"),
        )

    @staticmethod
    def _report_from_dict(d: dict) -> MessageReport:
        return MessageReport(**d)

    @staticmethod
    def _report_to_dict(r: MessageReport) -> dict:
        d = asdict(r)
        d["status"] = r.status.value
        return d

    # ------------------------------------------------------------------
    # Threads
    # ------------------------------------------------------------------

    def create_thread(
        self,
        kind: ThreadKind | str,
        workspace_org_id: str,
        participant_ids: list[str],
        created_by: str = "",
        group_id: Optional[str] = None,
        student_id: Optional[str] = None,
    ) -> Thread:
        """Persist a new thread.  Participants are deduplicated, order kept."""
        thread = Thread(
            id=str(uuid.uuid4()),
            kind=ThreadKind(kind),
            workspace_org_id=workspace_org_id,
            participant_ids=list(dict.fromkeys(participant_ids)),
            group_id=group_id,
            student_id=student_id,
            created_by=created_by,
        )
        with self._locked():
            threads = self._read_json(self._threads_path)
            threads.append(self._thread_to_dict(thread))
            self._write_json(self._threads_path, threads)
        return thread

    def get_thread(self, thread_id: str) -> Optional[Thread]:
        for d in self._read_json(self._threads_path):
            if d["id"] == thread_id:
                return self._thread_from_dict(d)
        return None

    def set_thread_frozen(
        self,
        thread_id: str,
        frozen: bool,
        actor_user_id: str,
        reason: Optional[str] = None,
    ) -> Optional[Thread]:
        """Freeze or unfreeze a thread.  Returns the updated thread or None."""
        with self._locked():
            threads = self._read_json(self._threads_path)
            for d in threads:
                if d["id"] == thread_id:
                    d["frozen_at"] = utcnow_iso() if frozen else None
                    d["frozen_by"] = actor_user_id if frozen else None
                    d["frozen_reason"] = reason if frozen else None
                    self._write_json(self._threads_path, threads)
                    return self._thread_from_dict(d)
        return None

    def list_threads(self, workspace_org_id: Optional[str] = None) -> list[Thread]:
        threads = [self._thread_from_dict(d) for d in self._read_json(self._threads_path)]
        if workspace_org_id:
            threads = [t for t in threads if t.workspace_org_id == workspace_org_id]
        return threads

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    def append_message(self, thread_id: str, sender_id: str, body: str) -> Message:
        """Persist a message and return it with its server-assigned id."""
        with self._locked():
            messages = self._read_json(self._messages_path)
            next_id = max((int(d["id"]) for d in messages), default=0) + 1
            message = Message(
                id=next_id,
                thread_id=thread_id,
                sender_id=sender_id,
                body=body,
                created_at=utcnow_iso(),
            )
            messages.append(asdict(message))
            self._write_json(self._messages_path, messages)
        return message

    def get_message(self, thread_id: str, message_id: int) -> Optional[Message]:
        for d in self._read_json(self._messages_path):
            if d["thread_id"] == thread_id and int(d["id"]) == message_id:
                return self._message_from_dict(d)
        return None

    def list_messages(
        self,
        thread_id: str,
        cursor: Optional[int] = None,
        limit: int = 50,
    ) -> tuple[list[Message], Optional[int]]:
        """Return up to *limit* messages older than *cursor*, ascending, and the next cursor."""
        rows = [
            self._message_from_dict(d)
            for d in self._read_json(self._messages_path)
            if d["thread_id"] == thread_id and (cursor is None or int(d["id"]) < cursor)
        ]
        rows.sort(key=lambda m: m.id, reverse=True)
        page = rows[:limit]
        next_cursor = page[-1].id if len(rows) > limit else None
        page.reverse()
        return page, next_cursor

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------

    def build_snapshot(self, thread_id: str, message_id: Optional[int]) -> list[dict]:
        """Messages around *message_id* (or the latest ones) frozen into a report."""
        rows, _ = self.list_messages(thread_id, limit=10_000)
        if message_id is not None:
            rows = [m for m in rows if abs(m.id - message_id) <= SNAPSHOT_RADIUS]
        else:
            rows = rows[-12:]
        return [
            {"id": m.id, "senderId": m.sender_id, "createdAt": m.created_at, "body": m.body}
            for m in rows
        ]

    def create_report(
        self,
        thread: Thread,
        reported_by: str,
        reason: str,
        message_id: Optional[int] = None,
        details: Optional[str] = None,
    ) -> MessageReport:
        report = MessageReport(
            id=str(uuid.uuid4()),
            workspace_org_id=thread.workspace_org_id,
            thread_id=thread.id,
            reported_by=reported_by,
            reason=reason,
            message_id=message_id,
            details=details,
            snapshot=self.build_snapshot(thread.id, message_id),
        )
        with self._locked():
            reports = self._read_json(self._reports_path)
            reports.append(self._report_to_dict(report))
            self._write_json(self._reports_path, reports)
        return report

    def get_report(self, report_id: str) -> Optional[MessageReport]:
        for d in self._read_json(self._reports_path):
            if d["id"] == report_id:
                return self._report_from_dict(d)
        return None

    def list_reports(self, workspace_org_id: str, limit: int = 200) -> list[MessageReport]:
        reports = [
            self._report_from_dict(d)
            for d in self._read_json(self._reports_path)
            if d["workspace_org_id"] == workspace_org_id
        ]
        reports.sort(key=lambda r: r.created_at, reverse=True)
        return reports[:limit]

    def update_report_status(
        self,
        report_id: str,
        status: ReportStatus,
        actor_user_id: str,
        freeze_applied: bool,
    ) -> Optional[MessageReport]:
        """Set status and freeze flag of a report.  Returns the updated report or None."""
        status = ReportStatus(status)
        now = utcnow_iso()
        with self._locked():
            reports = self._read_json(self._reports_path)
            for d in reports:
                if d["id"] == report_id:
                    d["status"] = status.value
                    d["freeze_applied"] = freeze_applied
                    d["resolved_by"] = actor_user_id if status == ReportStatus.resolved else None
                    d["resolved_at"] = now if status == ReportStatus.resolved else None
                    d["updated_at"] = now
                    self._write_json(self._reports_path, reports)
                    return self._report_from_dict(d)
        return None

    # ------------------------------------------------------------------
    # Retention
    # ------------------------------------------------------------------

    def purge_expired(
        self,
        retention_days_for: Callable[[str], int],
        now: Optional[datetime] = None,
    ) -> PurgeResult:
        """Redact messages and delete resolved reports older than their workspace retention.

        *retention_days_for* maps a workspace org id to its retention in days.
        Already redacted messages are left untouched.
        """
        now = now or datetime.now(timezone.utc)
        redacted = 0
        deleted = 0
        cutoffs: dict[str, str] = {}

        def cutoff(org_id: str) -> str:
            if org_id not in cutoffs:
                cutoffs[org_id] = (now - timedelta(days=retention_days_for(org_id))).isoformat()
            return cutoffs[org_id]

        with self._locked():
            thread_orgs = {d["id"]: d["workspace_org_id"] for d in self._read_json(self._threads_path)}

            messages = self._read_json(self._messages_path)
            for d in messages:
                org_id = thread_orgs.get(d["thread_id"])
                if org_id is None or d.get("redacted_at"):
                    continue
                if d.get("created_at", "") < cutoff(org_id):
                    d["body"] = REDACTED_BODY
                    d["redacted_at"] = now.isoformat()
                    redacted += 1
            if redacted:
                self._write_json(self._messages_path, messages)

            reports = self._read_json(self._reports_path)
            kept = []
            for d in reports:
                expired = (
                    d.get("status") == ReportStatus.resolved.value
                    and (d.get("resolved_at") or d.get("updated_at", "")) < cutoff(d["workspace_org_id"])
                )
                if expired:
                    deleted += 1
                else:
                    kept.append(d)
            if deleted:
                self._write_json(self._reports_path, kept)

        return PurgeResult(redacted_messages=redacted, deleted_reports=deleted)
