"""Per-actor rate limiting for sensitive messaging actions.

The counting itself belongs to a quota service that performs an atomic
increment-and-check per key.  :class:`RateLimiter` only picks the policy,
builds the key and turns the answer into a decision.  When the quota service
is down or answers garbage the limiter fails open.
"""

from __future__ import annotations

import math
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Optional

import httpx

from fairway.config import RateLimitPolicy, Settings
from fairway.utils.logger import get_logger

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class QuotaResult:
    """Answer of the quota service for one consume call."""

    allowed: bool
    retry_after_seconds: int = 0
    remaining: int = 0
    current_count: int = 0


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of :meth:`RateLimiter.enforce`."""

    allowed: bool
    retry_after_seconds: int = 0


class QuotaServiceError(Exception):
    """The quota service could not answer."""


class UnknownRateLimitAction(KeyError):
    """No rate-limit policy is configured for the requested action."""


# ---------------------------------------------------------------------------
# Quota services
# ---------------------------------------------------------------------------


class QuotaService(ABC):
    """Atomic increment-and-check counter keyed by limit key."""

    @abstractmethod
    def consume(self, limit_key: str, window_seconds: int, max_requests: int) -> QuotaResult:
        """Consume one unit of quota for *limit_key* and report whether it was allowed."""


class InMemoryQuotaService(QuotaService):
    """Fixed-window counters held in process memory.

    Suitable for a single worker and for tests.  Calls are serialised by a
    lock so concurrent callers sharing a key see a consistent counter.
    """

    def __init__(self, clock: Optional[Callable[[], float]] = None) -> None:
        self._clock = clock or time.monotonic
        self._lock = threading.Lock()
        # limit_key -> (window_start, count)
        self._windows: dict[str, tuple[float, int]] = {}

    def consume(self, limit_key: str, window_seconds: int, max_requests: int) -> QuotaResult:
        with self._lock:
            now = self._clock()
            start, count = self._windows.get(limit_key, (now, 0))
            if now - start >= window_seconds:
                start, count = now, 0

            if count >= max_requests:
                retry_after = max(1, math.ceil(start + window_seconds - now))
                self._windows[limit_key] = (start, count)
                return QuotaResult(
                    allowed=False,
                    retry_after_seconds=retry_after,
                    remaining=0,
                    current_count=count,
                )

            count += 1
            self._windows[limit_key] = (start, count)
            return QuotaResult(
                allowed=True,
                retry_after_seconds=0,
                remaining=max_requests - count,
                current_count=count,
            )


class HttpQuotaService(QuotaService):
    """Remote quota service reached through a ``consume_rate_limit`` RPC endpoint."""

    def __init__(self, base_url: str, timeout: float = 5.0, client: Optional[httpx.Client] = None) -> None:
        self._url = base_url.rstrip("/") + "/rpc/consume_rate_limit"
        self._client = client or httpx.Client(timeout=timeout)

    def consume(self, limit_key: str, window_seconds: int, max_requests: int) -> QuotaResult:
        try:
            resp = self._client.post(
                self._url,
                json={
                    "limit_key": limit_key,
                    "window_seconds": window_seconds,
                    "max_requests": max_requests,
                },
            )
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise QuotaServiceError(str(exc)) from exc

        row = data[0] if isinstance(data, list) and data else data
        if not isinstance(row, dict) or not isinstance(row.get("allowed"), bool):
            raise QuotaServiceError(f"Malformed quota answer: {data!r}")

        return QuotaResult(
            allowed=row["allowed"],
            retry_after_seconds=int(row.get("retry_after_seconds") or 0),
            remaining=int(row.get("remaining") or 0),
            current_count=int(row.get("current_count") or 0),
        )


def build_quota_service(settings: Settings) -> QuotaService:
    """Return the remote quota service when configured, else the in-memory one."""
    if settings.quota_service_url:
        return HttpQuotaService(settings.quota_service_url, timeout=settings.quota_timeout_seconds)
    return InMemoryQuotaService()


# ---------------------------------------------------------------------------
# Limiter
# ---------------------------------------------------------------------------


class RateLimiter:
    """Applies the static per-action policies of :class:`Settings`."""

    def __init__(self, settings: Settings, quota: QuotaService) -> None:
        self._settings = settings
        self._quota = quota

    def policy_for(self, action: str) -> RateLimitPolicy:
        try:
            return self._settings.rate_limits[action]
        except KeyError:
            raise UnknownRateLimitAction(action) from None

    def limit_key(self, actor_id: str, action: str) -> str:
        return f"{self._settings.rate_limit_namespace}:{action}:{actor_id}"

    def enforce(self, actor_id: str, action: str) -> RateLimitDecision:
        """Consume one request of *action* for *actor_id*.

        A definitive denial from the quota service is authoritative.  Any
        error while asking (transport failure, malformed answer) allows the
        request and is logged.
        """
        policy = self.policy_for(action)
        key = self.limit_key(actor_id, action)

        try:
            result = self._quota.consume(key, policy.window_seconds, policy.max_requests)
        except Exception as exc:
            logger.error(
                "rate limit check failed, allowing request (action=%s actor=%s error=%s)",
                action,
                actor_id,
                exc,
            )
            return RateLimitDecision(allowed=True, retry_after_seconds=0)

        if not isinstance(result, QuotaResult) or not isinstance(result.allowed, bool):
            logger.error(
                "rate limit check returned a malformed answer, allowing request (action=%s actor=%s)",
                action,
                actor_id,
            )
            return RateLimitDecision(allowed=True, retry_after_seconds=0)

        try:
            retry_after = max(0, int(result.retry_after_seconds or 0))
        except (TypeError, ValueError):
            retry_after = 0

        if not result.allowed:
            logger.info("rate limit exceeded (action=%s actor=%s retry_after=%ss)", action, actor_id, retry_after)

        return RateLimitDecision(allowed=result.allowed, retry_after_seconds=retry_after)
