"""
Workspace, channel and member services.

Services:
    WorkspaceService: Create/join/rename/remove workspaces, rotate join codes
    ChannelService: Admin-managed channels with per-member unread/call flags
    MemberService: Member listing, role changes and removal

Every admin-gated operation re-reads the actor's role through
MembershipResolver at call time. Removals are delegated to
chat.cascade.CascadeDeletionCoordinator.

Usage:
    from workspaces.services import WorkspaceService

    workspace = WorkspaceService.create(actor, "Acme")
    WorkspaceService.join(ActorContext.for_user(bob), workspace.id, workspace.join_code)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from django.utils import timezone

from core.exceptions import (
    InvalidStateError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from core.services import BaseService
from workspaces.authorization import MembershipResolver
from workspaces.constants import CHANNEL_CONFIG, WORKSPACE_CONFIG
from workspaces.models import (
    Channel,
    Member,
    MemberRole,
    Workspace,
    generate_join_code,
    normalize_channel_name,
)

if TYPE_CHECKING:
    import uuid

    from chat.cascade import CascadeReport
    from core.context import ActorContext


def _require_authenticated(actor: ActorContext) -> None:
    if not actor.is_authenticated:
        raise UnauthorizedError("Authentication required", error_code="NOT_AUTHENTICATED")


def _validate_name(name: str, min_length: int, max_length: int, label: str) -> str:
    name = (name or "").strip()
    if not min_length <= len(name) <= max_length:
        raise ValidationError(
            f"{label} must be between {min_length} and {max_length} characters",
            error_code="INVALID_NAME",
            details={"min_length": min_length, "max_length": max_length},
        )
    return name


class WorkspaceService(BaseService):
    """
    Service for workspace lifecycle.

    Methods:
        create: New workspace with its creator as admin and a default channel
        join: Become a member by join code
        rotate_join_code: Issue a new join code (admin)
        rename: Change the display name (admin)
        remove: Delete the workspace and everything in it (admin)
        list_for_user: Workspaces the actor belongs to
        get: Workspace if the actor is a member
        get_info: Public name and membership flag for the join screen
    """

    @classmethod
    def create(cls, actor: ActorContext, name: str) -> Workspace:
        """
        Create a workspace.

        The creator becomes its first admin and a "general" channel is
        created with it.

        Error codes:
            NOT_AUTHENTICATED, INVALID_NAME
        """
        _require_authenticated(actor)
        name = _validate_name(
            name,
            WORKSPACE_CONFIG.NAME_MIN_LENGTH,
            WORKSPACE_CONFIG.NAME_MAX_LENGTH,
            "Workspace name",
        )

        with cls.atomic():
            workspace = Workspace.objects.create(name=name, owner_id=actor.user_id)
            Member.objects.create(
                workspace=workspace,
                user_id=actor.user_id,
                role=MemberRole.ADMIN,
            )
            Channel.objects.create(
                workspace=workspace,
                name=WORKSPACE_CONFIG.DEFAULT_CHANNEL_NAME,
            )

        cls.get_logger().info(f"User {actor.user_id} created workspace {workspace.id}")
        return workspace

    @classmethod
    def join(cls, actor: ActorContext, workspace_id: uuid.UUID, join_code: str) -> Member:
        """
        Join a workspace with its join code (compared case-insensitively).

        Error codes:
            NOT_AUTHENTICATED, WORKSPACE_NOT_FOUND, ALREADY_MEMBER,
            INVALID_JOIN_CODE
        """
        _require_authenticated(actor)

        with cls.atomic():
            workspace = Workspace.objects.select_for_update().filter(pk=workspace_id).first()
            if workspace is None:
                raise NotFoundError("Workspace not found", error_code="WORKSPACE_NOT_FOUND")
            if Member.objects.filter(workspace=workspace, user_id=actor.user_id).exists():
                raise InvalidStateError(
                    "Already a member of this workspace", error_code="ALREADY_MEMBER"
                )
            if not workspace.matches_join_code(join_code):
                raise InvalidStateError("Invalid join code", error_code="INVALID_JOIN_CODE")

            member = Member.objects.create(
                workspace=workspace,
                user_id=actor.user_id,
                role=MemberRole.MEMBER,
            )

        cls.get_logger().info(f"User {actor.user_id} joined workspace {workspace_id}")
        return member

    @classmethod
    def rotate_join_code(cls, actor: ActorContext, workspace_id: uuid.UUID) -> Workspace:
        """Issue a new join code. Old codes stop working immediately."""
        with cls.atomic():
            MembershipResolver.require_admin(actor, workspace_id)
            workspace = Workspace.objects.select_for_update().get(pk=workspace_id)
            workspace.join_code = generate_join_code()
            workspace.join_code_updated_at = timezone.now()
            workspace.save(update_fields=["join_code", "join_code_updated_at", "updated_at"])

        cls.get_logger().info(f"Rotated join code of workspace {workspace_id}")
        return workspace

    @classmethod
    def rename(cls, actor: ActorContext, workspace_id: uuid.UUID, name: str) -> Workspace:
        name = _validate_name(
            name,
            WORKSPACE_CONFIG.NAME_MIN_LENGTH,
            WORKSPACE_CONFIG.NAME_MAX_LENGTH,
            "Workspace name",
        )
        with cls.atomic():
            MembershipResolver.require_admin(actor, workspace_id)
            workspace = Workspace.objects.select_for_update().get(pk=workspace_id)
            workspace.name = name
            workspace.save(update_fields=["name", "updated_at"])
        return workspace

    @classmethod
    def remove(cls, actor: ActorContext, workspace_id: uuid.UUID) -> CascadeReport:
        from chat.cascade import CascadeDeletionCoordinator

        return CascadeDeletionCoordinator.remove_workspace(actor, workspace_id)

    @classmethod
    def list_for_user(cls, actor: ActorContext) -> list[Workspace]:
        if not actor.is_authenticated:
            return []
        return list(
            Workspace.objects.filter(members__user_id=actor.user_id).order_by("created_at")
        )

    @classmethod
    def get(cls, actor: ActorContext, workspace_id: uuid.UUID) -> Workspace | None:
        """Return the workspace, or None if missing or the actor is not a member."""
        if MembershipResolver.resolve_member(actor, workspace_id) is None:
            return None
        return Workspace.objects.filter(pk=workspace_id).first()

    @classmethod
    def get_info(cls, actor: ActorContext, workspace_id: uuid.UUID) -> dict | None:
        """
        Public information shown before joining.

        Returns:
            {"name": str, "is_member": bool}, or None if the workspace does
            not exist
        """
        workspace = Workspace.objects.filter(pk=workspace_id).first()
        if workspace is None:
            return None
        return {
            "name": workspace.name,
            "is_member": MembershipResolver.resolve_member(actor, workspace_id) is not None,
        }


class ChannelService(BaseService):
    """
    Service for channels.

    Creation, renaming and removal are admin-only. Listing annotates each
    channel with the actor's unread and call-activity flags.
    """

    @classmethod
    def _clean_name(cls, name: str) -> str:
        return normalize_channel_name(
            _validate_name(
                name,
                CHANNEL_CONFIG.NAME_MIN_LENGTH,
                CHANNEL_CONFIG.NAME_MAX_LENGTH,
                "Channel name",
            )
        )

    @classmethod
    def create(cls, actor: ActorContext, workspace_id: uuid.UUID, name: str) -> Channel:
        """
        Create a channel. The name is stored normalized.

        Error codes:
            NOT_A_MEMBER, ADMIN_REQUIRED, INVALID_NAME
        """
        name = cls._clean_name(name)
        with cls.atomic():
            MembershipResolver.require_admin(actor, workspace_id)
            channel = Channel.objects.create(workspace_id=workspace_id, name=name)

        cls.get_logger().info(f"Created channel {channel.id} in workspace {workspace_id}")
        return channel

    @classmethod
    def rename(cls, actor: ActorContext, channel_id: uuid.UUID, name: str) -> Channel:
        """
        Rename a channel.

        Error codes:
            CHANNEL_NOT_FOUND, NOT_A_MEMBER, ADMIN_REQUIRED, INVALID_NAME
        """
        name = cls._clean_name(name)
        with cls.atomic():
            channel = Channel.objects.select_for_update().filter(pk=channel_id).first()
            if channel is None:
                raise NotFoundError("Channel not found", error_code="CHANNEL_NOT_FOUND")
            MembershipResolver.require_admin(actor, channel.workspace_id)
            channel.name = name
            channel.save(update_fields=["name", "updated_at"])
        return channel

    @classmethod
    def remove(cls, actor: ActorContext, channel_id: uuid.UUID) -> CascadeReport:
        from chat.cascade import CascadeDeletionCoordinator

        return CascadeDeletionCoordinator.remove_channel(actor, channel_id)

    @classmethod
    def get(cls, actor: ActorContext, channel_id: uuid.UUID) -> Channel | None:
        channel = Channel.objects.filter(pk=channel_id).first()
        if channel is None:
            return None
        if MembershipResolver.resolve_member(actor, channel.workspace_id) is None:
            return None
        return channel

    @classmethod
    def list_for_member(
        cls,
        actor: ActorContext,
        workspace_id: uuid.UUID,
        active_channel_id: uuid.UUID | None = None,
    ) -> list[Channel]:
        """
        List a workspace's channels for the actor.

        Each channel carries has_alert and is_video_active. The channel the
        actor is currently viewing (active_channel_id) never shows an alert.
        """
        from chat.services import ReadStateService

        member = MembershipResolver.resolve_member(actor, workspace_id)
        if member is None:
            return []

        channels = list(Channel.objects.filter(workspace_id=workspace_id).order_by("created_at"))
        for channel in channels:
            channel.has_alert = ReadStateService.compute_alert(
                member,
                channel_id=channel.pk,
                exclude_if_active=channel.pk == active_channel_id,
            )
            channel.is_video_active = ReadStateService.is_call_active(
                member, channel_id=channel.pk
            )
        return channels


class MemberService(BaseService):
    """
    Service for workspace members.

    Methods:
        list: Members of a workspace, oldest first
        current: The actor's own membership
        get: One member of a workspace the actor belongs to
        change_role: Promote or demote (admin)
        remove: Leave or kick (see CascadeDeletionCoordinator.remove_member)
    """

    @classmethod
    def list(cls, actor: ActorContext, workspace_id: uuid.UUID) -> list[Member]:
        if MembershipResolver.resolve_member(actor, workspace_id) is None:
            return []
        return list(
            Member.objects.filter(workspace_id=workspace_id)
            .select_related("user")
            .order_by("created_at")
        )

    @classmethod
    def current(cls, actor: ActorContext, workspace_id: uuid.UUID) -> Member | None:
        return MembershipResolver.resolve_member(actor, workspace_id)

    @classmethod
    def get(cls, actor: ActorContext, member_id: uuid.UUID) -> Member | None:
        member = Member.objects.select_related("user").filter(pk=member_id).first()
        if member is None:
            return None
        if MembershipResolver.resolve_member(actor, member.workspace_id) is None:
            return None
        return member

    @classmethod
    def change_role(cls, actor: ActorContext, member_id: uuid.UUID, role: str) -> Member:
        """
        Change a member's role.

        Demoting the workspace's only admin is refused so a workspace is
        never left without one.

        Error codes:
            INVALID_ROLE, MEMBER_NOT_FOUND, NOT_A_MEMBER, ADMIN_REQUIRED,
            LAST_ADMIN
        """
        if role not in MemberRole.values:
            raise ValidationError(f"Unknown role: {role}", error_code="INVALID_ROLE")

        with cls.atomic():
            member = (
                Member.objects.select_for_update()
                .select_related("user")
                .filter(pk=member_id)
                .first()
            )
            if member is None:
                raise NotFoundError("Member not found", error_code="MEMBER_NOT_FOUND")
            MembershipResolver.require_admin(actor, member.workspace_id)

            if member.role == role:
                return member
            if (
                member.is_admin
                and MembershipResolver.admin_count(member.workspace_id, lock=True) <= 1
            ):
                raise InvalidStateError(
                    "A workspace needs at least one admin", error_code="LAST_ADMIN"
                )

            member.role = role
            member.save(update_fields=["role", "updated_at"])

        cls.get_logger().info(f"Member {member.id} role changed to {role}")
        return member

    @classmethod
    def remove(cls, actor: ActorContext, member_id: uuid.UUID) -> CascadeReport:
        from chat.cascade import CascadeDeletionCoordinator

        return CascadeDeletionCoordinator.remove_member(actor, member_id)
