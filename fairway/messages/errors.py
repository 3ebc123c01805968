"""Messaging exceptions.

Every error carries the HTTP status and a user-safe ``detail``; the web layer
renders them as ``{"error": detail}`` without exposing internals.
"""

from __future__ import annotations

from typing import Sequence


class MessagingError(Exception):
    """Generic operational failure."""

    status_code = 500
    default_detail = "Messaging operation failed."

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class ThreadNotFoundError(MessagingError):
    status_code = 404
    default_detail = "Thread not found."


class ReportNotFoundError(MessagingError):
    status_code = 404
    default_detail = "Report not found."


class ThreadAccessDeniedError(MessagingError):
    status_code = 403
    default_detail = "Access denied."

    def __init__(self, detail: str | None = None, status_code: int = 403) -> None:
        super().__init__(detail)
        self.status_code = status_code


class MessageBlockedError(MessagingError):
    """Flagged content on a minor thread under the ``block`` guard mode."""

    status_code = 422
    default_detail = "Message blocked: contact details and sensitive words are not allowed on this thread."

    def __init__(self, flag_types: Sequence[str], detail: str | None = None) -> None:
        super().__init__(detail)
        self.flag_types = list(flag_types)


class RateLimitExceededError(MessagingError):
    status_code = 429
    default_detail = "Too many requests. Please retry later."

    def __init__(self, action: str, retry_after_seconds: int) -> None:
        super().__init__()
        self.action = action
        self.retry_after_seconds = retry_after_seconds


class MessageValidationError(MessagingError):
    status_code = 422
    default_detail = "Invalid payload."

    def __init__(self, detail: str | None = None, status_code: int = 422) -> None:
        super().__init__(detail)
        self.status_code = status_code


class CharterRequiredError(MessagingError):
    """The actor has not accepted the current messaging charter of the workspace."""

    status_code = 428
    default_detail = "Messaging charter acceptance required."
    code = "MESSAGING_CHARTER_REQUIRED"

    def __init__(self, charter_version: int) -> None:
        super().__init__()
        self.charter_version = charter_version


class CharterVersionConflictError(MessagingError):
    status_code = 409
    default_detail = "Stale charter version. Reload and accept the current version."


class MessagingSuspendedError(MessagingError):
    status_code = 403
    default_detail = "Messaging access suspended by your organization."
    code = "MESSAGING_SUSPENDED"

    def __init__(self, suspended_until: str | None) -> None:
        super().__init__()
        self.suspended_until = suspended_until
