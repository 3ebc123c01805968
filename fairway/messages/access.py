"""Thread visibility and write rules for the current actor."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from fairway.auth.models import ActorContext, ProfileRole
from fairway.auth.permissions import is_coach_like_role
from fairway.messages.models import Thread, ThreadKind

ThreadAccessIntent = Literal["read", "write"]

_BROADCAST_KINDS = {ThreadKind.group_info, ThreadKind.org_info}
_STUDENT_WRITABLE_KINDS = {ThreadKind.student_coach, ThreadKind.group}


def is_minor_thread(kind: ThreadKind | str) -> bool:
    """Whether content on threads of this kind can reach minors.

    Raises ``ValueError`` for a kind that is not a :class:`ThreadKind`.
    """
    return ThreadKind(kind).is_minor_protected


@dataclass(frozen=True)
class ThreadAccessDecision:
    ok: bool
    status_code: int = 200
    error: str = ""


def _deny(status_code: int, error: str) -> ThreadAccessDecision:
    return ThreadAccessDecision(ok=False, status_code=status_code, error=error)


def check_thread_access(
    ctx: ActorContext,
    thread: Thread,
    intent: ThreadAccessIntent,
) -> ThreadAccessDecision:
    """Decide whether *ctx* may read or write *thread*."""
    if ctx.user_id not in thread.participant_ids:
        return _deny(403, "Access denied.")

    if intent == "read":
        return ThreadAccessDecision(ok=True)

    if thread.is_frozen:
        return _deny(423, "Thread frozen by moderation.")

    # parents follow their child's threads read-only
    if ctx.profile_role == ProfileRole.parent:
        return _deny(403, "Access denied: read-only access.")

    if thread.kind in _BROADCAST_KINDS and not is_coach_like_role(ctx.profile_role):
        return _deny(403, "Access denied: only coaches can post on this thread.")

    if ctx.profile_role == ProfileRole.student and thread.kind not in _STUDENT_WRITABLE_KINDS:
        return _deny(403, "Access denied.")

    return ThreadAccessDecision(ok=True)
