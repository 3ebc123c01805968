"""Tests for settings loading."""

import tempfile
from pathlib import Path

import yaml

from fairway.config import DEFAULT_RATE_LIMITS, RateLimitPolicy, Settings, load_settings


def test_defaults_from_empty_environment():
    settings = load_settings(env={})
    assert settings.purge_secrets == ()
    assert settings.purge_configured is False
    assert settings.rate_limit_namespace == "messages"
    assert settings.rate_limits == DEFAULT_RATE_LIMITS
    assert settings.quota_service_url == ""
    assert settings.log_level == "INFO"
    assert settings.data_dir == Path.home() / ".fairway"


def test_purge_secrets_ignore_blank_values():
    settings = load_settings(env={"MESSAGES_PURGE_CRON_SECRET": "  ", "CRON_SECRET": "cron"})
    assert settings.purge_secrets == ("cron",)
    assert settings.purge_configured is True


def test_environment_overrides():
    settings = load_settings(
        env={
            "FAIRWAY_DATA_DIR": "/srv/fairway",
            "FAIRWAY_QUOTA_URL": "http://quota.local",
            "FAIRWAY_QUOTA_TIMEOUT": "2.5",
            "FAIRWAY_RATE_LIMIT_NAMESPACE": "staging",
            "FAIRWAY_LOG_LEVEL": "debug",
        }
    )
    assert settings.data_dir == Path("/srv/fairway")
    assert settings.quota_service_url == "http://quota.local"
    assert settings.quota_timeout_seconds == 2.5
    assert settings.rate_limit_namespace == "staging"
    assert settings.log_level == "DEBUG"


def test_yaml_file_overrides_rate_limits():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "fairway.yaml"
        with open(path, "w") as f:
            yaml.dump(
                {
                    "data_dir": tmpdir,
                    "rate_limits": {"message_send": {"max_requests": 5, "window_seconds": 10}},
                },
                f,
            )

        settings = load_settings(env={"FAIRWAY_CONFIG": str(path)})
        assert settings.data_dir == Path(tmpdir)
        assert settings.rate_limits["message_send"] == RateLimitPolicy(5, 10)
        assert settings.rate_limits["thread_create"] == DEFAULT_RATE_LIMITS["thread_create"]


def test_settings_default_rate_limits():
    assert Settings().rate_limits == DEFAULT_RATE_LIMITS
    assert Settings(purge_secrets=("x",)).rate_limits["link_child"] == RateLimitPolicy(6, 300)
