"""Permission checks for messaging and moderation actions."""

from __future__ import annotations

from fastapi import HTTPException, status

from fairway.auth.models import ActorContext, MembershipRole, ProfileRole, WorkspaceType

_COACH_LIKE_ROLES = {ProfileRole.owner, ProfileRole.coach, ProfileRole.staff}


def is_coach_like_role(role: ProfileRole | str) -> bool:
    """Owners, coaches and staff may publish on broadcast threads."""
    return ProfileRole(role) in _COACH_LIKE_ROLES


def is_org_moderation_admin(ctx: ActorContext) -> bool:
    """Check if the actor administers the organization workspace they are acting in.

    Parameters
    ----------
    ctx:
        The resolved actor context.

    Returns
    -------
    bool
        True only for an ``admin`` member of an ``org`` workspace.  Profile
        role, personal-workspace ownership or any other permission never
        substitutes for it.
    """
    return (
        ctx.workspace_type == WorkspaceType.org
        and ctx.org_membership_role == MembershipRole.admin
    )


def require_org_moderation_admin(ctx: ActorContext) -> None:
    """Raise ``HTTPException(403)`` unless the actor is an org moderation admin.

    Usage in a router::

        @router.get("/reports")
        async def list_reports(actor: ActorContext = Depends(get_current_actor)):
            require_org_moderation_admin(actor)
            ...
    """
    if not is_org_moderation_admin(ctx):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Organization admin access required",
        )


def can_manage_messaging_policy(ctx: ActorContext) -> bool:
    """Org workspaces: org admins.  Personal workspaces: the owner."""
    if ctx.workspace_type == WorkspaceType.org:
        return ctx.org_membership_role == MembershipRole.admin
    return ctx.workspace_owner_id == ctx.user_id
