"""
Identity/membership resolution for workspace-scoped operations.

Every chat and workspace operation attributes content to a Member, not to a
raw user, and authorizes against that member's role. This module is the one
place that maps (workspace, user) to a Member.

Key Components:
    MembershipResolver: Stateless resolver with lookup and require_* checks

Error Codes:
    NOT_AUTHENTICATED: Anonymous actor attempted a mutation
    NOT_A_MEMBER: Actor has no membership in the workspace
    ADMIN_REQUIRED: Actor is a member but not an admin

Usage:
    # Read path: None means "show nothing"
    member = MembershipResolver.resolve_member(actor, workspace_id)
    if member is None:
        return []

    # Mutation path: raises UnauthorizedError
    member = MembershipResolver.require_admin(actor, workspace_id)

Note:
    Roles are re-read from the database on every call. A role can change
    between the moment a client renders an admin button and the moment the
    request arrives, so nothing here is cached.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import UnauthorizedError
from workspaces.models import Member, MemberRole

if TYPE_CHECKING:
    import uuid

    from core.context import ActorContext


class MembershipResolver:
    """
    Stateless resolver from (workspace, user) to Member.

    All methods are classmethods and can be called directly without
    instantiation.
    """

    @classmethod
    def resolve_member(
        cls,
        actor: ActorContext,
        workspace_id: uuid.UUID,
    ) -> Member | None:
        """
        Look up the actor's membership in a workspace.

        Returns:
            The Member (with user loaded), or None for anonymous actors and
            non-members.
        """
        if not actor.is_authenticated:
            return None
        return (
            Member.objects.select_related("user")
            .filter(workspace_id=workspace_id, user_id=actor.user_id)
            .first()
        )

    @classmethod
    def require_member(
        cls,
        actor: ActorContext,
        workspace_id: uuid.UUID,
    ) -> Member:
        """
        Resolve the actor's membership or fail.

        Raises:
            UnauthorizedError: Actor is anonymous or not a member
        """
        if not actor.is_authenticated:
            raise UnauthorizedError(
                "Authentication required", error_code="NOT_AUTHENTICATED"
            )
        member = cls.resolve_member(actor, workspace_id)
        if member is None:
            raise UnauthorizedError(
                "Not a member of this workspace", error_code="NOT_A_MEMBER"
            )
        return member

    @classmethod
    def require_admin(
        cls,
        actor: ActorContext,
        workspace_id: uuid.UUID,
    ) -> Member:
        """
        Resolve the actor's membership and require the admin role.

        Raises:
            UnauthorizedError: Actor is anonymous, not a member, or not an admin
        """
        member = cls.require_member(actor, workspace_id)
        if not member.is_admin:
            raise UnauthorizedError("Admin role required", error_code="ADMIN_REQUIRED")
        return member

    @classmethod
    def admin_count(cls, workspace_id: uuid.UUID, lock: bool = False) -> int:
        """
        Count admins in a workspace.

        With lock=True the admin rows are locked for the rest of the
        surrounding transaction, so two concurrent demotions or departures
        cannot both observe a second admin and leave the workspace with none.
        """
        admins = Member.objects.filter(workspace_id=workspace_id, role=MemberRole.ADMIN)
        if lock:
            return len(list(admins.select_for_update().values_list("pk", flat=True)))
        return admins.count()
