"""Wiring of stores and services from one :class:`~fairway.config.Settings`.

Shared by the web backend and the CLI so both run against the same data
directory layout::

    <data_dir>/auth/sessions.json
    <data_dir>/messages/{threads,messages,reports}.json
    <data_dir>/policies/policies.json
    <data_dir>/charter/acceptances.json
    <data_dir>/suspensions/suspensions.json
    <data_dir>/moderation_audit/YYYY-MM-DD.jsonl
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fairway.auth.store import SessionStore
from fairway.config import Settings, load_settings
from fairway.auth.models import ActorContext
from fairway.messages.charter import CharterService, CharterStore
from fairway.messages.policy import PolicyStore
from fairway.messages.purge import PurgeGateway
from fairway.messages.rate_limit import QuotaService, RateLimiter, build_quota_service
from fairway.messages.realtime import RealtimeBroker
from fairway.messages.service import MessageService
from fairway.messages.store import MessageStore
from fairway.moderation.audit import ModerationAuditLog
from fairway.moderation.service import ModerationService
from fairway.moderation.suspensions import SuspensionService, SuspensionStore
from fairway.utils.logger import set_log_level


@dataclass
class Services:
    settings: Settings
    sessions: SessionStore
    store: MessageStore
    policies: PolicyStore
    audit: ModerationAuditLog
    realtime: RealtimeBroker
    rate_limiter: RateLimiter
    charter: CharterService
    suspensions: SuspensionService
    messages: MessageService
    moderation: ModerationService
    purge: PurgeGateway


def build_services(
    settings: Optional[Settings] = None,
    quota: Optional[QuotaService] = None,
) -> Services:
    """Create every store and service.  *quota* overrides the configured quota backend."""
    settings = settings or load_settings()
    set_log_level(settings.log_level)

    data_dir = settings.data_dir
    store = MessageStore(data_dir / "messages")
    policies = PolicyStore(data_dir / "policies")
    audit = ModerationAuditLog(data_dir / "moderation_audit")
    realtime = RealtimeBroker()
    rate_limiter = RateLimiter(settings, quota or build_quota_service(settings))
    charter = CharterService(policies, CharterStore(data_dir / "charter"), audit)
    suspensions = SuspensionService(SuspensionStore(data_dir / "suspensions"), audit)

    def ensure_messaging_allowed(ctx: ActorContext) -> None:
        suspensions.require_not_suspended(ctx)
        charter.require_accepted(ctx)

    return Services(
        settings=settings,
        sessions=SessionStore(data_dir / "auth"),
        store=store,
        policies=policies,
        audit=audit,
        realtime=realtime,
        rate_limiter=rate_limiter,
        charter=charter,
        suspensions=suspensions,
        messages=MessageService(store, policies, rate_limiter, audit, realtime, gate=ensure_messaging_allowed),
        moderation=ModerationService(store, audit, gate=ensure_messaging_allowed),
        purge=PurgeGateway(
            settings.purge_secrets,
            lambda: store.purge_expired(policies.retention_days),
        ),
    )
