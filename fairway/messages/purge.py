"""Purge gateway: shared-secret trigger for the retention purge job.

States: ``unconfigured`` (no secret in the environment, nothing runs),
``unauthorized`` (missing or wrong bearer credential) and ``authorized``
(the purge runs and reports how many records it touched).
"""

from __future__ import annotations

import hmac
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Sequence

from fairway.messages.models import PurgeResult
from fairway.utils.logger import get_logger

logger = get_logger(__name__)


class PurgeStatus(str, Enum):
    unconfigured = "unconfigured"
    unauthorized = "unauthorized"
    ok = "ok"
    failed = "failed"

    @property
    def http_status(self) -> int:
        return {
            PurgeStatus.unconfigured: 503,
            PurgeStatus.unauthorized: 401,
            PurgeStatus.ok: 200,
            PurgeStatus.failed: 500,
        }[self]


@dataclass(frozen=True)
class PurgeOutcome:
    status: PurgeStatus
    result: Optional[PurgeResult] = None
    error: str = ""

    def to_payload(self) -> dict:
        if self.status == PurgeStatus.ok and self.result is not None:
            return {
                "ok": True,
                "redactedMessages": self.result.redacted_messages,
                "deletedReports": self.result.deleted_reports,
            }
        return {"error": self.error}


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Return the token of an ``Authorization`` header; a bare token is accepted."""
    if not authorization:
        return None
    scheme, _, rest = authorization.strip().partition(" ")
    if scheme.lower() == "bearer":
        return rest.strip() or None
    return authorization.strip() or None


def extract_purge_token(direct_token: Optional[str], authorization: Optional[str]) -> Optional[str]:
    """``x-messages-purge-token`` wins over ``Authorization`` when both are sent."""
    if direct_token and direct_token.strip():
        return direct_token.strip()
    return extract_bearer_token(authorization)


class PurgeGateway:
    """Authenticates purge triggers and runs the purge."""

    def __init__(self, secrets: Sequence[str], purge: Callable[[], PurgeResult]) -> None:
        self._secrets = tuple(s for s in secrets if s)
        self._purge = purge

    @property
    def configured(self) -> bool:
        return len(self._secrets) > 0

    def _token_matches(self, token: str) -> bool:
        # every secret is compared, no early exit
        matched = False
        for secret in self._secrets:
            if hmac.compare_digest(token.encode(), secret.encode()):
                matched = True
        return matched

    def handle(self, authorization: Optional[str], direct_token: Optional[str] = None) -> PurgeOutcome:
        if not self.configured:
            logger.error("purge requested but MESSAGES_PURGE_CRON_SECRET / CRON_SECRET is not configured")
            return PurgeOutcome(
                status=PurgeStatus.unconfigured,
                error="MESSAGES_PURGE_CRON_SECRET or CRON_SECRET is not configured.",
            )

        token = extract_purge_token(direct_token, authorization)
        if token is None or not self._token_matches(token):
            logger.warning("purge rejected: invalid credential")
            return PurgeOutcome(status=PurgeStatus.unauthorized, error="Unauthorized.")

        try:
            result = self._purge()
        except Exception:
            logger.exception("message purge failed")
            return PurgeOutcome(status=PurgeStatus.failed, error="Message purge failed.")

        logger.info(
            "message purge done (redacted_messages=%d deleted_reports=%d)",
            result.redacted_messages,
            result.deleted_reports,
        )
        return PurgeOutcome(status=PurgeStatus.ok, result=result)
