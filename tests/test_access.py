"""Tests for actor permissions and thread access rules."""

import pytest
from fastapi import HTTPException

from fairway.auth.models import ActorContext, MembershipRole, ProfileRole, WorkspaceType
from fairway.auth.permissions import (
    can_manage_messaging_policy,
    is_coach_like_role,
    is_org_moderation_admin,
    require_org_moderation_admin,
)
from fairway.messages.access import check_thread_access, is_minor_thread
from fairway.messages.models import Thread, ThreadKind


def _actor(user_id="coach-1", role="coach", workspace_type="org", membership="admin", owner=None):
    return ActorContext(
        user_id=user_id,
        profile_role=role,
        workspace_id="org-1",
        workspace_type=workspace_type,
        workspace_owner_id=owner,
        org_membership_role=membership,
    )


def _thread(kind="student_coach", participants=("coach-1", "student-1"), frozen=False):
    return Thread(
        id="t1",
        kind=kind,
        workspace_org_id="org-1",
        participant_ids=list(participants),
        frozen_at="2026-01-01T00:00:00+00:00" if frozen else None,
    )


# -- minor threads --------------------------------------------------------


def test_minor_thread_table():
    assert is_minor_thread("student_coach") is True
    assert is_minor_thread("group") is True
    assert is_minor_thread("group_info") is True
    assert is_minor_thread("org_info") is True
    assert is_minor_thread("coach_coach") is False
    assert is_minor_thread("org_coaches") is False


def test_every_kind_has_a_minor_decision():
    for kind in ThreadKind:
        assert isinstance(is_minor_thread(kind), bool)


def test_unknown_kind_raises():
    with pytest.raises(ValueError):
        is_minor_thread("parent_chat")


# -- moderation admin -----------------------------------------------------


def test_org_admin_is_moderation_admin():
    assert is_org_moderation_admin(_actor()) is True
    require_org_moderation_admin(_actor())


def test_org_coach_member_is_not_moderation_admin():
    actor = _actor(membership="coach")
    assert is_org_moderation_admin(actor) is False
    with pytest.raises(HTTPException) as exc_info:
        require_org_moderation_admin(actor)
    assert exc_info.value.status_code == 403


def test_personal_workspace_owner_is_not_moderation_admin():
    actor = _actor(role="owner", workspace_type="personal", membership=None, owner="coach-1")
    assert is_org_moderation_admin(actor) is False


def test_profile_owner_without_admin_membership_is_not_moderation_admin():
    assert is_org_moderation_admin(_actor(role="owner", membership=None)) is False


def test_policy_management():
    assert can_manage_messaging_policy(_actor()) is True
    assert can_manage_messaging_policy(_actor(membership="coach")) is False
    personal_owner = _actor(workspace_type="personal", membership=None, owner="coach-1")
    assert can_manage_messaging_policy(personal_owner) is True
    someone_else = _actor(workspace_type="personal", membership=None, owner="other")
    assert can_manage_messaging_policy(someone_else) is False


def test_coach_like_roles():
    assert is_coach_like_role(ProfileRole.owner)
    assert is_coach_like_role("coach")
    assert is_coach_like_role("staff")
    assert not is_coach_like_role("student")
    assert not is_coach_like_role("parent")


def test_actor_context_coerces_strings():
    actor = _actor()
    assert actor.profile_role is ProfileRole.coach
    assert actor.workspace_type is WorkspaceType.org
    assert actor.org_membership_role is MembershipRole.admin


# -- thread access --------------------------------------------------------


def test_non_participant_denied():
    decision = check_thread_access(_actor(user_id="stranger"), _thread(), "read")
    assert decision.ok is False
    assert decision.status_code == 403


def test_participant_can_read_and_write():
    assert check_thread_access(_actor(), _thread(), "read").ok
    assert check_thread_access(_actor(), _thread(), "write").ok


def test_frozen_thread_is_read_only():
    thread = _thread(frozen=True)
    assert check_thread_access(_actor(), thread, "read").ok
    decision = check_thread_access(_actor(), thread, "write")
    assert decision.ok is False
    assert decision.status_code == 423


def test_parent_is_read_only():
    parent = _actor(user_id="parent-1", role="parent", membership=None)
    thread = _thread(participants=("coach-1", "student-1", "parent-1"))
    assert check_thread_access(parent, thread, "read").ok
    assert check_thread_access(parent, thread, "write").status_code == 403


def test_student_cannot_post_on_broadcast_thread():
    student = _actor(user_id="student-1", role="student", membership=None)
    thread = _thread(kind="org_info")
    assert check_thread_access(student, thread, "read").ok
    decision = check_thread_access(student, thread, "write")
    assert decision.ok is False
    assert decision.status_code == 403


def test_student_can_post_on_coach_and_group_threads():
    student = _actor(user_id="student-1", role="student", membership=None)
    assert check_thread_access(student, _thread(kind="student_coach"), "write").ok
    assert check_thread_access(student, _thread(kind="group"), "write").ok
    assert not check_thread_access(student, _thread(kind="coach_coach"), "write").ok


def test_coach_can_post_on_broadcast_thread():
    assert check_thread_access(_actor(), _thread(kind="group_info"), "write").ok
