"""Tests for the fairway command line."""

import tempfile
from pathlib import Path

from click.testing import CliRunner

from fairway.auth.store import SessionStore
from fairway.cli import main
from fairway.config import load_settings
from fairway.container import build_services
from fairway.moderation.audit import ModerationAuditLog


def _env(tmpdir: str, **extra) -> dict:
    env = {"FAIRWAY_DATA_DIR": tmpdir, "MESSAGES_PURGE_CRON_SECRET": "", "CRON_SECRET": ""}
    env.update(extra)
    return env


def test_scan_clean_text():
    result = CliRunner().invoke(main, ["scan", "see you at the range"], env=_env("/tmp"))
    assert result.exit_code == 0
    assert "No flags." in result.output
    assert "ALLOWED" in result.output


def test_scan_blocks_on_minor_thread():
    result = CliRunner().invoke(
        main,
        ["scan", "mail me at kid@example.com", "--policy", "block", "--kind", "student_coach"],
        env=_env("/tmp"),
    )
    assert result.exit_code == 0
    assert "email" in result.output
    assert "BLOCKED" in result.output


def test_scan_flags_keyword_on_adult_thread():
    result = CliRunner().invoke(
        main,
        ["scan", "meet at the Secret spot", "-k", "secret", "--policy", "block", "--kind", "coach_coach"],
        env=_env("/tmp"),
    )
    assert result.exit_code == 0
    assert "keyword" in result.output
    assert "ALLOWED, FLAGGED" in result.output


def test_purge_requires_configured_secret():
    with tempfile.TemporaryDirectory() as tmpdir:
        result = CliRunner().invoke(main, ["purge", "--token", "x"], env=_env(tmpdir))
        assert result.exit_code == 1
        assert "unconfigured" in result.output


def test_purge_rejects_wrong_token():
    with tempfile.TemporaryDirectory() as tmpdir:
        result = CliRunner().invoke(
            main, ["purge", "--token", "wrong"], env=_env(tmpdir, CRON_SECRET="s3cret")
        )
        assert result.exit_code == 1
        assert "unauthorized" in result.output


def test_purge_runs_with_token_from_environment():
    with tempfile.TemporaryDirectory() as tmpdir:
        result = CliRunner().invoke(
            main, ["purge"], env=_env(tmpdir, CRON_SECRET="s3cret", FAIRWAY_PURGE_TOKEN="s3cret")
        )
        assert result.exit_code == 0
        assert "Purge done." in result.output


def test_audit_lists_records():
    with tempfile.TemporaryDirectory() as tmpdir:
        ModerationAuditLog(Path(tmpdir) / "moderation_audit").record("org-1", "admin-1", "report.created")

        result = CliRunner().invoke(main, ["audit", "org-1"], env=_env(tmpdir))
        assert result.exit_code == 0
        assert "report.created" in result.output

        empty = CliRunner().invoke(main, ["audit", "org-2"], env=_env(tmpdir))
        assert "No audit records found." in empty.output


def test_session_issues_valid_token():
    with tempfile.TemporaryDirectory() as tmpdir:
        result = CliRunner().invoke(
            main,
            ["session", "coach-1", "--workspace", "org-1", "--org", "--admin"],
            env=_env(tmpdir),
        )
        assert result.exit_code == 0
        token = result.output.strip().splitlines()[-1]

        actor = SessionStore(Path(tmpdir) / "auth").validate_session(token)
        assert actor is not None
        assert actor.workspace_id == "org-1"
        assert actor.org_membership_role.value == "admin"


def test_session_can_accept_charter():
    with tempfile.TemporaryDirectory() as tmpdir:
        result = CliRunner().invoke(
            main,
            ["session", "coach-1", "--workspace", "org-1", "--org", "--accept-charter"],
            env=_env(tmpdir),
        )
        assert result.exit_code == 0
        assert "Charter v1 accepted" in result.output

        token = result.output.strip().splitlines()[-1]
        actor = SessionStore(Path(tmpdir) / "auth").validate_session(token)
        status = build_services(load_settings(env=_env(tmpdir))).charter.status(actor)
        assert status.must_accept is False
