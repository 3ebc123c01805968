"""Pydantic models for API request/response serialization.

These models mirror the fairway dataclasses.  JSON bodies use camelCase
keys; snake_case names are accepted on input as well.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Threads and messages
# ---------------------------------------------------------------------------


class CreateThreadRequest(CamelModel):
    kind: str
    participant_ids: list[str] = Field(default_factory=list)
    group_id: Optional[str] = None
    student_id: Optional[str] = None


class ThreadResponse(CamelModel):
    """Mirrors fairway.messages.models.Thread."""

    id: str
    kind: str
    workspace_org_id: str
    participant_ids: list[str] = Field(default_factory=list)
    group_id: Optional[str] = None
    student_id: Optional[str] = None
    created_by: str = ""
    created_at: str = ""
    frozen_at: Optional[str] = None
    minor_protected: bool = False


class SendMessageRequest(CamelModel):
    body: str


class MessageResponse(CamelModel):
    """Mirrors fairway.messages.models.Message."""

    id: int
    thread_id: str
    sender_id: str
    body: str
    created_at: str = ""
    redacted_at: Optional[str] = None


class MessagePageResponse(CamelModel):
    messages: list[MessageResponse] = Field(default_factory=list)
    next_cursor: Optional[int] = None


# ---------------------------------------------------------------------------
# Messaging policy
# ---------------------------------------------------------------------------


class MessagingPolicyResponse(CamelModel):
    """Mirrors fairway.messages.models.MessagingPolicy."""

    org_id: str
    guard_mode: str
    sensitive_words: list[str] = Field(default_factory=list)
    retention_days: int
    charter_version: int
    supervision_enabled: bool


class UpdatePolicyRequest(CamelModel):
    guard_mode: Optional[str] = None
    sensitive_words: Optional[list[str]] = None
    retention_days: Optional[int] = None
    charter_version: Optional[int] = None
    supervision_enabled: Optional[bool] = None


# ---------------------------------------------------------------------------
# Charter and suspensions
# ---------------------------------------------------------------------------


class CharterStatusResponse(CamelModel):
    charter_version: int
    must_accept: bool
    accepted_version: Optional[int] = None
    accepted_at: Optional[str] = None


class AcceptCharterRequest(CamelModel):
    charter_version: int = Field(ge=1)


class CharterAcceptedResponse(CamelModel):
    ok: bool = True
    charter_version: int
    accepted_at: str


class ManageSuspensionRequest(CamelModel):
    action: Literal["suspend", "lift"]
    user_id: str
    reason: Optional[str] = None
    suspended_until: Optional[datetime] = None


class SuspensionResponse(CamelModel):
    """Mirrors fairway.moderation.suspensions.MessagingSuspension."""

    id: str
    org_id: str
    user_id: str
    reason: str
    suspended_until: Optional[str] = None
    created_at: str = ""
    created_by: Optional[str] = None


class SuspensionListResponse(CamelModel):
    suspensions: list[SuspensionResponse] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Reports and audit
# ---------------------------------------------------------------------------


class CreateReportRequest(CamelModel):
    thread_id: str
    reason: str
    message_id: Optional[int] = None
    details: Optional[str] = None


class UpdateReportStatusRequest(CamelModel):
    status: str
    freeze_thread: Optional[bool] = None


class ReportResponse(CamelModel):
    """Mirrors fairway.messages.models.MessageReport."""

    id: str
    workspace_org_id: str
    thread_id: str
    reported_by: str
    reason: str
    message_id: Optional[int] = None
    details: Optional[str] = None
    status: str
    freeze_applied: bool = False
    snapshot: list[dict[str, Any]] = Field(default_factory=list)
    resolved_by: Optional[str] = None
    resolved_at: Optional[str] = None
    created_at: str = ""
    updated_at: str = ""


class AuditRecordResponse(CamelModel):
    """Mirrors fairway.moderation.audit.ModerationAuditRecord."""

    id: str
    workspace_org_id: str
    actor_user_id: str
    action: str
    created_at: str
    report_id: Optional[str] = None
    thread_id: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)
