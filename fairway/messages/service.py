"""Message send pipeline.

messaging gate (suspension, charter) -> rate limit ->
access check -> content guard -> (blocked: reject) ->
persist -> moderation audit when flagged -> realtime push.
"""

from __future__ import annotations

from typing import Callable, Optional

from fairway.auth.models import ActorContext
from fairway.messages import content_guard
from fairway.messages.access import check_thread_access, is_minor_thread
from fairway.messages.errors import (
    MessageBlockedError,
    MessageValidationError,
    MessagingError,
    RateLimitExceededError,
    ThreadAccessDeniedError,
    ThreadNotFoundError,
)
from fairway.messages.models import Message, Thread, ThreadKind
from fairway.messages.policy import PolicyStore
from fairway.messages.rate_limit import RateLimiter
from fairway.messages.realtime import RealtimeBroker
from fairway.messages.store import MessageStore
from fairway.moderation.audit import ModerationAuditLog
from fairway.utils.logger import get_logger

logger = get_logger(__name__)

MAX_BODY_LENGTH = 2000


class MessageService:
    """Orchestrates thread creation and message delivery."""

    def __init__(
        self,
        store: MessageStore,
        policies: PolicyStore,
        rate_limiter: RateLimiter,
        audit: ModerationAuditLog,
        realtime: RealtimeBroker,
        gate: Optional[Callable[[ActorContext], None]] = None,
    ) -> None:
        self._store = store
        self._policies = policies
        self._rate_limiter = rate_limiter
        self._audit = audit
        self._realtime = realtime
        self._gate = gate

    # -- helpers -------------------------------------------------------------

    def _ensure_messaging_allowed(self, ctx: ActorContext) -> None:
        if self._gate is not None:
            self._gate(ctx)

    def _enforce_rate_limit(self, ctx: ActorContext, action: str) -> None:
        decision = self._rate_limiter.enforce(ctx.user_id, action)
        if not decision.allowed:
            raise RateLimitExceededError(action, decision.retry_after_seconds)

    def _load_thread(self, thread_id: str) -> Thread:
        thread = self._store.get_thread(thread_id)
        if thread is None:
            raise ThreadNotFoundError()
        return thread

    def get_readable_thread(self, ctx: ActorContext, thread_id: str) -> Thread:
        thread = self._load_thread(thread_id)
        decision = check_thread_access(ctx, thread, "read")
        if not decision.ok:
            raise ThreadAccessDeniedError(decision.error, decision.status_code)
        return thread

    # -- public API ----------------------------------------------------------

    def create_thread(
        self,
        ctx: ActorContext,
        kind: ThreadKind | str,
        participant_ids: list[str],
        group_id: Optional[str] = None,
        student_id: Optional[str] = None,
    ) -> Thread:
        """Create a thread in the actor's active workspace.  The creator is always a participant."""
        self._ensure_messaging_allowed(ctx)
        self._enforce_rate_limit(ctx, "thread_create")
        participants = [ctx.user_id, *participant_ids]
        if len(set(participants)) < 2:
            raise MessageValidationError("A thread needs at least two participants.", 409)
        try:
            thread = self._store.create_thread(
                kind=kind,
                workspace_org_id=ctx.workspace_id,
                participant_ids=participants,
                created_by=ctx.user_id,
                group_id=group_id,
                student_id=student_id,
            )
        except OSError as exc:
            logger.exception("thread creation failed (actor=%s)", ctx.user_id)
            raise MessagingError() from exc
        logger.info("thread created (thread=%s kind=%s actor=%s)", thread.id, thread.kind.value, ctx.user_id)
        return thread

    def list_messages(
        self,
        ctx: ActorContext,
        thread_id: str,
        cursor: Optional[int] = None,
        limit: int = 50,
    ) -> tuple[list[Message], Optional[int]]:
        self._ensure_messaging_allowed(ctx)
        self.get_readable_thread(ctx, thread_id)
        return self._store.list_messages(thread_id, cursor=cursor, limit=limit)

    def send_message(self, ctx: ActorContext, thread_id: str, body: str) -> Message:
        """Validate, screen, persist and push a message.

        Raises ``MessageValidationError``, ``MessagingSuspendedError``,
        ``CharterRequiredError``, ``RateLimitExceededError``,
        ``ThreadNotFoundError``, ``ThreadAccessDeniedError`` or
        ``MessageBlockedError`` for expected
        rejections and ``MessagingError`` when the store fails.
        """
        text = (body or "").strip()
        if not text or len(text) > MAX_BODY_LENGTH:
            raise MessageValidationError(
                f"Message body must be between 1 and {MAX_BODY_LENGTH} characters.", 422
            )

        self._ensure_messaging_allowed(ctx)
        self._enforce_rate_limit(ctx, "message_send")

        thread = self._load_thread(thread_id)
        decision = check_thread_access(ctx, thread, "write")
        if not decision.ok:
            raise ThreadAccessDeniedError(decision.error, decision.status_code)

        policy = self._policies.get_policy(thread.workspace_org_id)
        flags = content_guard.detect(text, policy.sensitive_words)
        minor = is_minor_thread(thread.kind)

        if content_guard.should_block(policy.guard_mode, minor, flags):
            flag_types = sorted({f.type.value for f in flags})
            logger.warning(
                "message blocked (thread=%s actor=%s flags=%s)", thread.id, ctx.user_id, ",".join(flag_types)
            )
            raise MessageBlockedError(flag_types)

        try:
            message = self._store.append_message(thread.id, ctx.user_id, text)
        except OSError as exc:
            logger.exception("message persistence failed (thread=%s actor=%s)", thread.id, ctx.user_id)
            raise MessagingError() from exc

        if flags:
            self._audit.record(
                workspace_org_id=thread.workspace_org_id,
                actor_user_id=ctx.user_id,
                action="message.flagged",
                thread_id=thread.id,
                metadata={
                    "messageId": message.id,
                    "guardMode": policy.guard_mode.value,
                    "minorThread": minor,
                    "flags": [f.to_dict() for f in flags],
                },
            )

        self._realtime.publish(message)
        return message
