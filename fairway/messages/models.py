"""Messaging domain models: threads, messages, content flags, policies and reports."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class ThreadKind(str, Enum):
    """Kind of a message thread.  The kind alone decides minor protection."""

    student_coach = "student_coach"
    coach_coach = "coach_coach"
    group = "group"
    group_info = "group_info"
    org_info = "org_info"
    org_coaches = "org_coaches"

    @property
    def is_minor_protected(self) -> bool:
        """True when students (possibly minors) can read the thread."""
        return {
            ThreadKind.student_coach: True,
            ThreadKind.coach_coach: False,
            ThreadKind.group: True,
            ThreadKind.group_info: True,
            ThreadKind.org_info: True,
            ThreadKind.org_coaches: False,
        }[self]


class FlagType(str, Enum):
    """Category of a content guard match."""

    email = "email"
    phone = "phone"
    url = "url"
    keyword = "keyword"


class GuardMode(str, Enum):
    """What to do with flagged content on minor threads."""

    flag = "flag"  # let it through, record for review
    block = "block"  # reject before persistence


class ReportStatus(str, Enum):
    open = "open"
    in_review = "in_review"
    resolved = "resolved"


@dataclass(frozen=True)
class ContentFlag:
    """A single unsafe-content match found by the content guard."""

    type: FlagType
    matched_text: str

    def to_dict(self) -> dict:
        return {"type": self.type.value, "matchedText": self.matched_text}


@dataclass(frozen=True)
class Message:
    """A persisted (or optimistic) message.  Ids are server-assigned and increasing."""

    id: int
    thread_id: str
    sender_id: str
    body: str
    created_at: str = ""
    redacted_at: Optional[str] = None


@dataclass
class Thread:
    """A conversation between participants inside a workspace."""

    id: str
    kind: ThreadKind
    workspace_org_id: str
    participant_ids: list[str] = field(default_factory=list)
    group_id: Optional[str] = None
    student_id: Optional[str] = None
    created_by: str = ""
    created_at: str = ""
    frozen_at: Optional[str] = None
    frozen_by: Optional[str] = None
    frozen_reason: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.created_at:
            self.created_at = utcnow_iso()
        if isinstance(self.kind, str):
            self.kind = ThreadKind(self.kind)

    @property
    def is_frozen(self) -> bool:
        return self.frozen_at is not None


@dataclass
class MessagingPolicy:
    """Per-workspace messaging configuration."""

    org_id: str
    guard_mode: GuardMode = GuardMode.flag
    sensitive_words: list[str] = field(default_factory=list)
    retention_days: int = 365
    charter_version: int = 1
    supervision_enabled: bool = True

    def __post_init__(self) -> None:
        if isinstance(self.guard_mode, str):
            self.guard_mode = GuardMode(self.guard_mode)


@dataclass
class MessageReport:
    """A report raised by a thread member for moderation review."""

    id: str
    workspace_org_id: str
    thread_id: str
    reported_by: str
    reason: str
    message_id: Optional[int] = None
    details: Optional[str] = None
    status: ReportStatus = ReportStatus.open
    freeze_applied: bool = False
    snapshot: list[dict[str, Any]] = field(default_factory=list)
    resolved_by: Optional[str] = None
    resolved_at: Optional[str] = None
    created_at: str = ""
    updated_at: str = ""

    def __post_init__(self) -> None:
        if not self.created_at:
            self.created_at = utcnow_iso()
        if not self.updated_at:
            self.updated_at = self.created_at
        if isinstance(self.status, str):
            self.status = ReportStatus(self.status)


@dataclass(frozen=True)
class PurgeResult:
    """Counts of records affected by a retention purge."""

    redacted_messages: int = 0
    deleted_reports: int = 0
