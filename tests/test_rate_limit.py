"""Tests for the rate limiter and the quota services."""

import httpx
import pytest

from fairway.config import DEFAULT_RATE_LIMITS, RateLimitPolicy, Settings
from fairway.messages.rate_limit import (
    HttpQuotaService,
    InMemoryQuotaService,
    QuotaResult,
    QuotaService,
    QuotaServiceError,
    RateLimiter,
    UnknownRateLimitAction,
)


class _FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class _RecordingQuota(QuotaService):
    def __init__(self, result=None, error: Exception | None = None) -> None:
        self.calls: list[tuple[str, int, int]] = []
        self._result = result
        self._error = error

    def consume(self, limit_key, window_seconds, max_requests):
        self.calls.append((limit_key, window_seconds, max_requests))
        if self._error is not None:
            raise self._error
        return self._result


def test_default_policy_table():
    assert DEFAULT_RATE_LIMITS["thread_create"] == RateLimitPolicy(10, 60)
    assert DEFAULT_RATE_LIMITS["message_send"] == RateLimitPolicy(30, 60)
    assert DEFAULT_RATE_LIMITS["coach_contact_request"] == RateLimitPolicy(6, 300)
    assert DEFAULT_RATE_LIMITS["coach_contact_respond"] == RateLimitPolicy(20, 60)
    assert DEFAULT_RATE_LIMITS["link_child"] == RateLimitPolicy(6, 300)


def test_policy_table_is_read_only():
    with pytest.raises(TypeError):
        DEFAULT_RATE_LIMITS["message_send"] = RateLimitPolicy(1000, 1)


def test_limit_key_format():
    limiter = RateLimiter(Settings(), _RecordingQuota(QuotaResult(allowed=True)))
    assert limiter.limit_key("user-1", "message_send") == "messages:message_send:user-1"


def test_enforce_passes_policy_to_quota_service():
    quota = _RecordingQuota(QuotaResult(allowed=True, remaining=5, current_count=1))
    decision = RateLimiter(Settings(), quota).enforce("u1", "coach_contact_request")
    assert decision.allowed is True
    assert decision.retry_after_seconds == 0
    assert quota.calls == [("messages:coach_contact_request:u1", 300, 6)]


def test_denial_is_authoritative():
    quota = _RecordingQuota(QuotaResult(allowed=False, retry_after_seconds=42))
    decision = RateLimiter(Settings(), quota).enforce("u1", "message_send")
    assert decision.allowed is False
    assert decision.retry_after_seconds == 42


def test_negative_retry_after_is_clamped():
    quota = _RecordingQuota(QuotaResult(allowed=False, retry_after_seconds=-3))
    decision = RateLimiter(Settings(), quota).enforce("u1", "message_send")
    assert decision.allowed is False
    assert decision.retry_after_seconds == 0


def test_unknown_action_raises_without_consuming():
    quota = _RecordingQuota(QuotaResult(allowed=True))
    limiter = RateLimiter(Settings(), quota)
    with pytest.raises(UnknownRateLimitAction):
        limiter.enforce("u1", "delete_everything")
    assert quota.calls == []


def test_quota_failure_fails_open():
    quota = _RecordingQuota(error=QuotaServiceError("connection refused"))
    decision = RateLimiter(Settings(), quota).enforce("u1", "link_child")
    assert decision.allowed is True
    assert decision.retry_after_seconds == 0


def test_malformed_answer_fails_open():
    quota = _RecordingQuota(result={"allowed": "nope"})
    decision = RateLimiter(Settings(), quota).enforce("u1", "message_send")
    assert decision.allowed is True


def test_in_memory_fixed_window():
    clock = _FakeClock()
    quota = InMemoryQuotaService(clock=clock)
    results = [quota.consume("k", 60, 3) for _ in range(3)]
    assert all(r.allowed for r in results)
    assert [r.remaining for r in results] == [2, 1, 0]

    clock.now += 20
    denied = quota.consume("k", 60, 3)
    assert denied.allowed is False
    assert denied.retry_after_seconds == 40

    clock.now += 40
    assert quota.consume("k", 60, 3).allowed is True


def test_in_memory_keys_are_independent():
    quota = InMemoryQuotaService(clock=_FakeClock())
    assert quota.consume("a", 60, 1).allowed is True
    assert quota.consume("a", 60, 1).allowed is False
    assert quota.consume("b", 60, 1).allowed is True


def test_seventh_thread_creation_denied_with_custom_policy():
    settings = Settings(rate_limits={"thread_create": RateLimitPolicy(6, 60)})
    limiter = RateLimiter(settings, InMemoryQuotaService(clock=_FakeClock()))
    decisions = [limiter.enforce("coach", "thread_create") for _ in range(7)]
    assert [d.allowed for d in decisions] == [True] * 6 + [False]
    assert decisions[-1].retry_after_seconds > 0


def test_link_child_limit_is_per_actor_and_per_action():
    limiter = RateLimiter(Settings(), InMemoryQuotaService(clock=_FakeClock()))
    decisions = [limiter.enforce("parent-a", "link_child") for _ in range(7)]
    assert [d.allowed for d in decisions] == [True] * 6 + [False]
    assert 0 < decisions[-1].retry_after_seconds <= 300

    assert limiter.enforce("parent-b", "link_child").allowed is True
    assert limiter.enforce("parent-a", "message_send").allowed is True
    assert limiter.enforce("parent-a", "link_child").allowed is False


# -- HTTP quota service ---------------------------------------------------


def _http_quota(handler) -> HttpQuotaService:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return HttpQuotaService("http://quota.local/", client=client)


def test_http_quota_parses_rpc_row():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        return httpx.Response(
            200,
            json=[{"allowed": False, "retry_after_seconds": 12, "remaining": 0, "current_count": 31}],
        )

    result = _http_quota(handler).consume("messages:message_send:u1", 60, 30)
    assert seen["url"] == "http://quota.local/rpc/consume_rate_limit"
    assert result == QuotaResult(allowed=False, retry_after_seconds=12, remaining=0, current_count=31)


def test_http_quota_errors_raise_quota_service_error():
    quota = _http_quota(lambda request: httpx.Response(500, json={"message": "boom"}))
    with pytest.raises(QuotaServiceError):
        quota.consume("k", 60, 1)


def test_http_quota_malformed_answer_raises():
    quota = _http_quota(lambda request: httpx.Response(200, json=[{"count": 1}]))
    with pytest.raises(QuotaServiceError):
        quota.consume("k", 60, 1)


def test_limiter_fails_open_on_http_outage():
    quota = _http_quota(lambda request: httpx.Response(503))
    decision = RateLimiter(Settings(), quota).enforce("u1", "message_send")
    assert decision.allowed is True
