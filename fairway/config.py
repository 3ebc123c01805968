"""Process-wide configuration for the messaging core.

``Settings`` is built once at startup by :func:`load_settings` and passed
explicitly to the components that need it.  Rate-limit policies can be
overridden from a YAML file::

    rate_limits:
      message_send:
        max_requests: 60
        window_seconds: 60
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Optional

import yaml


@dataclass(frozen=True)
class RateLimitPolicy:
    """At most ``max_requests`` successes per ``window_seconds``."""

    max_requests: int
    window_seconds: int


DEFAULT_RATE_LIMITS: Mapping[str, RateLimitPolicy] = MappingProxyType(
    {
        "thread_create": RateLimitPolicy(max_requests=10, window_seconds=60),
        "message_send": RateLimitPolicy(max_requests=30, window_seconds=60),
        "coach_contact_request": RateLimitPolicy(max_requests=6, window_seconds=300),
        "coach_contact_respond": RateLimitPolicy(max_requests=20, window_seconds=60),
        "link_child": RateLimitPolicy(max_requests=6, window_seconds=300),
    }
)

PURGE_SECRET_ENV_VARS = ("MESSAGES_PURGE_CRON_SECRET", "CRON_SECRET")


@dataclass(frozen=True)
class Settings:
    """Immutable runtime configuration."""

    data_dir: Path = field(default_factory=lambda: Path.home() / ".fairway")
    purge_secrets: tuple[str, ...] = ()
    rate_limit_namespace: str = "messages"
    rate_limits: Mapping[str, RateLimitPolicy] = field(default_factory=lambda: DEFAULT_RATE_LIMITS)
    quota_service_url: str = ""
    quota_timeout_seconds: float = 5.0
    log_level: str = "INFO"

    @property
    def purge_configured(self) -> bool:
        return len(self.purge_secrets) > 0


def _load_rate_limits(data: dict) -> Mapping[str, RateLimitPolicy]:
    merged = dict(DEFAULT_RATE_LIMITS)
    for action, raw in (data.get("rate_limits") or {}).items():
        merged[action] = RateLimitPolicy(
            max_requests=int(raw["max_requests"]),
            window_seconds=int(raw["window_seconds"]),
        )
    return MappingProxyType(merged)


def load_settings(
    env: Optional[Mapping[str, str]] = None,
    config_path: str | Path | None = None,
) -> Settings:
    """Build :class:`Settings` from environment variables and an optional YAML file.

    Parameters
    ----------
    env:
        Mapping to read variables from; defaults to ``os.environ``.
    config_path:
        YAML file with overrides.  Falls back to ``FAIRWAY_CONFIG``.
    """
    env = os.environ if env is None else env

    file_data: dict = {}
    path = config_path or env.get("FAIRWAY_CONFIG", "")
    if path:
        with open(path) as f:
            file_data = yaml.safe_load(f) or {}

    secrets = tuple(
        value.strip()
        for value in (env.get(name, "") for name in PURGE_SECRET_ENV_VARS)
        if value and value.strip()
    )

    data_dir = env.get("FAIRWAY_DATA_DIR") or file_data.get("data_dir")

    return Settings(
        data_dir=Path(data_dir) if data_dir else Path.home() / ".fairway",
        purge_secrets=secrets,
        rate_limit_namespace=env.get(
            "FAIRWAY_RATE_LIMIT_NAMESPACE",
            file_data.get("rate_limit_namespace", "messages"),
        ),
        rate_limits=_load_rate_limits(file_data),
        quota_service_url=env.get("FAIRWAY_QUOTA_URL", file_data.get("quota_service_url", "")),
        quota_timeout_seconds=float(
            env.get("FAIRWAY_QUOTA_TIMEOUT", file_data.get("quota_timeout_seconds", 5.0))
        ),
        log_level=env.get("FAIRWAY_LOG_LEVEL", file_data.get("log_level", "INFO")).upper(),
    )
