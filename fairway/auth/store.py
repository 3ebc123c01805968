"""File-based JSON storage for bearer sessions.

Stands in for the platform's auth provider: a session token resolves to the
actor context (user, active workspace, roles) the messaging core works with.
Tokens are stored hashed under ``<data_dir>/auth/sessions.json``.
"""

from __future__ import annotations

import hashlib
import json
import secrets
import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

from fairway.auth.models import ActorContext, MembershipRole, ProfileRole, Session, WorkspaceType


class SessionStore:
    """File-based storage for sessions.

    Storage path: ``~/.fairway/auth/`` with:
    - ``sessions.json`` -- list of session dicts
    """

    def __init__(self, base_dir: Optional[str | Path] = None) -> None:
        if base_dir is None:
            self._base = Path.home() / ".fairway" / "auth"
        else:
            self._base = Path(base_dir)
        self._base.mkdir(parents=True, exist_ok=True)
        self._sessions_path = self._base / "sessions.json"

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
    def _hash_token(raw_token: str) -> str:
        return hashlib.sha256(raw_token.encode()).hexdigest()

    @staticmethod
    def _actor_to_dict(a: ActorContext) -> dict:
        return {
            "user_id": a.user_id,
            "profile_role": a.profile_role.value,
            "workspace_id": a.workspace_id,
            "workspace_type": a.workspace_type.value,
            "workspace_owner_id": a.workspace_owner_id,
            "org_membership_role": a.org_membership_role.value if a.org_membership_role else None,
            "email": a.email,
        }

    @staticmethod
    def _actor_from_dict(d: dict) -> ActorContext:
        membership = d.get("org_membership_role")
        return ActorContext(
            user_id=d["user_id"],
            profile_role=ProfileRole(d.get("profile_role", "student")),
            workspace_id=d["workspace_id"],
            workspace_type=WorkspaceType(d.get("workspace_type", "personal")),
            workspace_owner_id=d.get("workspace_owner_id"),
            org_membership_role=MembershipRole(membership) if membership else None,
            email=d.get("email", ""),
        )

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def create_session(self, actor: ActorContext, expires_in_hours: int = 24) -> tuple[Session, str]:
        """Create a session for *actor*.  Returns (Session, raw_token); the raw token is shown once."""
        raw_token = secrets.token_urlsafe(48)
        now = datetime.now(timezone.utc)
        session = Session(
            id=str(uuid.uuid4()),
            token_hash=self._hash_token(raw_token),
            actor=actor,
            created_at=now.isoformat(),
            expires_at=(now + timedelta(hours=expires_in_hours)).isoformat(),
        )

        sessions = self._read_json(self._sessions_path)
        sessions.append({
            "id": session.id,
            "token_hash": session.token_hash,
            "actor": self._actor_to_dict(actor),
            "created_at": session.created_at,
            "expires_at": session.expires_at,
        })
        self._write_json(self._sessions_path, sessions)
        return session, raw_token

    def validate_session(self, raw_token: str) -> Optional[ActorContext]:
        """Return the actor bound to *raw_token*, or None if unknown or expired."""
        token_hash = self._hash_token(raw_token)
        now = datetime.now(timezone.utc).isoformat()
        for d in self._read_json(self._sessions_path):
            if d["token_hash"] == token_hash:
                if d.get("expires_at") and d["expires_at"] < now:
                    self.delete_session(raw_token)
                    return None
                return self._actor_from_dict(d["actor"])
        return None

    def delete_session(self, raw_token: str) -> bool:
        token_hash = self._hash_token(raw_token)
        sessions = self._read_json(self._sessions_path)
        original_len = len(sessions)
        sessions = [d for d in sessions if d["token_hash"] != token_hash]
        if len(sessions) < original_len:
            self._write_json(self._sessions_path, sessions)
            return True
        return False
