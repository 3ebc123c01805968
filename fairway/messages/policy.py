"""File-based JSON storage for per-workspace messaging policies.

A workspace without a stored policy gets the defaults (``flag`` mode, no
sensitive words, 365 days retention).  Storage: ``~/.fairway/policies/policies.json``.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional

from fairway.messages.models import GuardMode, MessagingPolicy

MAX_SENSITIVE_WORDS = 200
MIN_RETENTION_DAYS = 30
MAX_RETENTION_DAYS = 3650


def normalize_sensitive_words(words: Iterable[str]) -> list[str]:
    """Trim, lower-case and deduplicate keywords, keeping first-seen order."""
    normalized = (w.strip().lower() for w in words if w)
    return list(dict.fromkeys(w for w in normalized if w))[:MAX_SENSITIVE_WORDS]


class PolicyValidationError(ValueError):
    """An update would produce an invalid policy."""


class PolicyStore:
    """File-based storage for messaging policies.

    Storage path: ``~/.fairway/policies/`` with:
    - ``policies.json`` -- list of policy dicts keyed by ``org_id``
    """

    def __init__(self, base_dir: Optional[str | Path] = None) -> None:
        if base_dir is None:
            self._base = Path.home() / ".fairway" / "policies"
        else:
            self._base = Path(base_dir)
        self._base.mkdir(parents=True, exist_ok=True)
        self._policies_path = self._base / "policies.json"

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _read_json(self, path: Path) -> list[dict]:
        if not path.exists():
            return []
        try:
            data = json.loads(path.read_text())
            return data if isinstance(data, list) else []
        except (json.JSONDecodeError, OSError):
            return []

    def _write_json(self, path: Path, data: list[dict]) -> None:
        path.write_text(json.dumps(data, indent=2, default=str))

    @staticmethod
    def _policy_from_dict(d: dict) -> MessagingPolicy:
        try:
            return MessagingPolicy(
                org_id=d["org_id"],
                guard_mode=GuardMode(d.get("guard_mode", "flag")),
                sensitive_words=normalize_sensitive_words(d.get("sensitive_words") or []),
                retention_days=int(d.get("retention_days", 365)),
                charter_version=int(d.get("charter_version", 1)),
                supervision_enabled=bool(d.get("supervision_enabled", True)),
            )
        except (ValueError, TypeError):
            return MessagingPolicy(org_id=d["org_id"])

    @staticmethod
    def _policy_to_dict(p: MessagingPolicy) -> dict:
        return {
            "org_id": p.org_id,
            "guard_mode": p.guard_mode.value,
            "sensitive_words": p.sensitive_words,
            "retention_days": p.retention_days,
            "charter_version": p.charter_version,
            "supervision_enabled": p.supervision_enabled,
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }

    # ------------------------------------------------------------------
    # Policy access
    # ------------------------------------------------------------------

    def get_policy(self, org_id: str) -> MessagingPolicy:
        """Return the policy of *org_id*, or the defaults when none is stored."""
        for d in self._read_json(self._policies_path):
            if d.get("org_id") == org_id:
                return self._policy_from_dict(d)
        return MessagingPolicy(org_id=org_id)

    def retention_days(self, org_id: str) -> int:
        return self.get_policy(org_id).retention_days

    def update_policy(
        self,
        org_id: str,
        *,
        guard_mode: Optional[GuardMode | str] = None,
        sensitive_words: Optional[list[str]] = None,
        retention_days: Optional[int] = None,
        charter_version: Optional[int] = None,
        supervision_enabled: Optional[bool] = None,
    ) -> MessagingPolicy:
        """Apply the given changes and persist.  Omitted fields keep their value."""
        policy = self.get_policy(org_id)

        if guard_mode is not None:
            policy.guard_mode = GuardMode(guard_mode)
        if sensitive_words is not None:
            policy.sensitive_words = normalize_sensitive_words(sensitive_words)
        if retention_days is not None:
            if not MIN_RETENTION_DAYS <= retention_days <= MAX_RETENTION_DAYS:
                raise PolicyValidationError(
                    f"retention_days must be between {MIN_RETENTION_DAYS} and {MAX_RETENTION_DAYS}"
                )
            policy.retention_days = retention_days
        if charter_version is not None:
            if charter_version < 1:
                raise PolicyValidationError("charter_version must be >= 1")
            policy.charter_version = charter_version
        if supervision_enabled is not None:
            policy.supervision_enabled = supervision_enabled

        policies = [d for d in self._read_json(self._policies_path) if d.get("org_id") != org_id]
        policies.append(self._policy_to_dict(policy))
        self._write_json(self._policies_path, policies)
        return policy
