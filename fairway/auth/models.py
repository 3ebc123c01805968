"""Actor models: who is acting, in which workspace, with which roles."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


class ProfileRole(str, Enum):
    """Platform-wide profile role of a user."""

    owner = "owner"
    coach = "coach"
    staff = "staff"
    student = "student"
    parent = "parent"


class WorkspaceType(str, Enum):
    personal = "personal"
    org = "org"


class MembershipRole(str, Enum):
    """Role of an active member inside an organization workspace."""

    admin = "admin"
    coach = "coach"


@dataclass
class ActorContext:
    """The authenticated actor resolved for one request."""

    user_id: str
    profile_role: ProfileRole
    workspace_id: str
    workspace_type: WorkspaceType = WorkspaceType.personal
    workspace_owner_id: Optional[str] = None
    org_membership_role: Optional[MembershipRole] = None
    email: str = ""

    def __post_init__(self) -> None:
        if isinstance(self.profile_role, str):
            self.profile_role = ProfileRole(self.profile_role)
        if isinstance(self.workspace_type, str):
            self.workspace_type = WorkspaceType(self.workspace_type)
        if isinstance(self.org_membership_role, str):
            self.org_membership_role = MembershipRole(self.org_membership_role)


@dataclass
class Session:
    """A bearer session bound to an actor context."""

    id: str
    token_hash: str
    actor: ActorContext
    created_at: str = ""
    expires_at: str = ""

    def __post_init__(self) -> None:
        if not self.created_at:
            self.created_at = datetime.now(timezone.utc).isoformat()
