"""
ViewSets for workspace API.

URL Structure:
    /api/v1/workspaces/                                  GET, POST
    /api/v1/workspaces/{id}/                             GET, PATCH, DELETE
    /api/v1/workspaces/{id}/join/                        POST
    /api/v1/workspaces/{id}/join-code/                   POST
    /api/v1/workspaces/{id}/info/                        GET
    /api/v1/workspaces/{id}/channels/                    GET, POST
    /api/v1/workspaces/{id}/channels/{pk}/               GET, PATCH, DELETE
    /api/v1/workspaces/{id}/channels/{pk}/read/          POST
    /api/v1/workspaces/{id}/members/                     GET
    /api/v1/workspaces/{id}/members/current/             GET
    /api/v1/workspaces/{id}/members/{pk}/                GET, PATCH, DELETE

Design Decisions:
    - Plain ViewSets: every operation goes through the service layer
    - Authorization lives in the services; views only require a login
    - Application errors raised by services are rendered by
      core.views.api_exception_handler
"""

from __future__ import annotations

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema, extend_schema_view
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from chat.services import ReadStateService
from core.exceptions import NotFoundError
from core.viewset_mixins import ActorMixin, WorkspaceScopedMixin
from workspaces.authorization import MembershipResolver
from workspaces.serializers import (
    ChannelSerializer,
    ChannelWriteSerializer,
    MemberRoleSerializer,
    MemberSerializer,
    WorkspaceAdminSerializer,
    WorkspaceCreateSerializer,
    WorkspaceInfoSerializer,
    WorkspaceJoinSerializer,
    WorkspaceSerializer,
    WorkspaceUpdateSerializer,
)
from workspaces.services import ChannelService, MemberService, WorkspaceService

UUID_PATTERN = r"[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}"


@extend_schema_view(
    list=extend_schema(
        operation_id="list_workspaces",
        summary="List workspaces",
        responses=WorkspaceSerializer(many=True),
        tags=["Workspaces"],
    ),
    create=extend_schema(
        operation_id="create_workspace",
        summary="Create workspace",
        request=WorkspaceCreateSerializer,
        responses={201: WorkspaceAdminSerializer},
        tags=["Workspaces"],
    ),
    retrieve=extend_schema(
        operation_id="get_workspace",
        summary="Get workspace",
        responses=WorkspaceSerializer,
        tags=["Workspaces"],
    ),
    partial_update=extend_schema(
        operation_id="rename_workspace",
        summary="Rename workspace",
        request=WorkspaceUpdateSerializer,
        responses=WorkspaceAdminSerializer,
        tags=["Workspaces"],
    ),
    destroy=extend_schema(
        operation_id="delete_workspace",
        summary="Delete workspace",
        tags=["Workspaces"],
    ),
)
class WorkspaceViewSet(ActorMixin, viewsets.ViewSet):
    """
    ViewSet for workspace operations.

    list:
        Workspaces the current user is a member of.

    create:
        Create a workspace. The creator becomes admin and a "general"
        channel is created.

    retrieve:
        Workspace details; admins also see the join code.

    partial_update:
        Rename the workspace (admin).

    destroy:
        Delete the workspace with all channels, members, conversations,
        messages and reactions (admin).

    join:
        Join with a join code.

    join_code:
        Rotate the join code (admin).

    info:
        Name and membership flag, for the join screen.
    """

    permission_classes = [IsAuthenticated]
    lookup_value_regex = UUID_PATTERN

    def _serialize(self, workspace):
        member = MembershipResolver.resolve_member(self.actor, workspace.pk)
        serializer_class = (
            WorkspaceAdminSerializer if member and member.is_admin else WorkspaceSerializer
        )
        return serializer_class(workspace).data

    def list(self, request):
        workspaces = WorkspaceService.list_for_user(self.actor)
        return Response(WorkspaceSerializer(workspaces, many=True).data)

    def create(self, request):
        serializer = WorkspaceCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        workspace = WorkspaceService.create(self.actor, serializer.validated_data["name"])
        return Response(WorkspaceAdminSerializer(workspace).data, status=status.HTTP_201_CREATED)

    def retrieve(self, request, pk=None):
        workspace = WorkspaceService.get(self.actor, pk)
        if workspace is None:
            raise NotFoundError("Workspace not found", error_code="WORKSPACE_NOT_FOUND")
        return Response(self._serialize(workspace))

    def partial_update(self, request, pk=None):
        serializer = WorkspaceUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        workspace = WorkspaceService.rename(self.actor, pk, serializer.validated_data["name"])
        return Response(self._serialize(workspace))

    def destroy(self, request, pk=None):
        WorkspaceService.remove(self.actor, pk)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(
        operation_id="join_workspace",
        summary="Join workspace",
        request=WorkspaceJoinSerializer,
        responses={201: MemberSerializer},
        tags=["Workspaces"],
    )
    @action(detail=True, methods=["post"])
    def join(self, request, pk=None):
        serializer = WorkspaceJoinSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        member = WorkspaceService.join(self.actor, pk, serializer.validated_data["join_code"])
        return Response(MemberSerializer(member).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        operation_id="rotate_workspace_join_code",
        summary="Rotate join code",
        request=None,
        responses=WorkspaceAdminSerializer,
        tags=["Workspaces"],
    )
    @action(detail=True, methods=["post"], url_path="join-code")
    def join_code(self, request, pk=None):
        workspace = WorkspaceService.rotate_join_code(self.actor, pk)
        return Response(WorkspaceAdminSerializer(workspace).data)

    @extend_schema(
        operation_id="get_workspace_info",
        summary="Get public workspace info",
        responses=WorkspaceInfoSerializer,
        tags=["Workspaces"],
    )
    @action(detail=True, methods=["get"])
    def info(self, request, pk=None):
        info = WorkspaceService.get_info(self.actor, pk)
        if info is None:
            raise NotFoundError("Workspace not found", error_code="WORKSPACE_NOT_FOUND")
        return Response(WorkspaceInfoSerializer(info).data)


@extend_schema_view(
    list=extend_schema(
        operation_id="list_channels",
        summary="List channels",
        parameters=[
            OpenApiParameter(
                name="active",
                type=OpenApiTypes.UUID,
                description="Channel currently on screen; it never shows an alert",
            )
        ],
        responses=ChannelSerializer(many=True),
        tags=["Workspaces - Channels"],
    ),
    create=extend_schema(
        operation_id="create_channel",
        summary="Create channel",
        request=ChannelWriteSerializer,
        responses={201: ChannelSerializer},
        tags=["Workspaces - Channels"],
    ),
    retrieve=extend_schema(
        operation_id="get_channel",
        summary="Get channel",
        responses=ChannelSerializer,
        tags=["Workspaces - Channels"],
    ),
    partial_update=extend_schema(
        operation_id="rename_channel",
        summary="Rename channel",
        request=ChannelWriteSerializer,
        responses=ChannelSerializer,
        tags=["Workspaces - Channels"],
    ),
    destroy=extend_schema(
        operation_id="delete_channel",
        summary="Delete channel",
        tags=["Workspaces - Channels"],
    ),
)
class ChannelViewSet(ActorMixin, WorkspaceScopedMixin, viewsets.ViewSet):
    """
    ViewSet for channels within a workspace.

    list:
        Channels with has_alert/is_video_active for the current member.

    create / partial_update / destroy:
        Admin only. Deleting a channel deletes every message in it.

    read:
        Mark the channel as read for the current member.
    """

    permission_classes = [IsAuthenticated]

    def _get_channel(self, pk):
        return self.ensure_in_workspace(
            ChannelService.get(self.actor, pk), "CHANNEL_NOT_FOUND", "Channel"
        )

    def list(self, request, workspace_pk=None):
        channels = ChannelService.list_for_member(
            self.actor,
            self.workspace_id,
            active_channel_id=self.query_uuid("active"),
        )
        return Response(ChannelSerializer(channels, many=True).data)

    def create(self, request, workspace_pk=None):
        serializer = ChannelWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        channel = ChannelService.create(
            self.actor, self.workspace_id, serializer.validated_data["name"]
        )
        return Response(ChannelSerializer(channel).data, status=status.HTTP_201_CREATED)

    def retrieve(self, request, workspace_pk=None, pk=None):
        channel = self._get_channel(pk)
        status_flags = ReadStateService.target_status(
            self.actor, self.workspace_id, channel_id=channel.pk
        )
        if status_flags:
            channel.has_alert = status_flags["has_alert"]
            channel.is_video_active = status_flags["is_video_active"]
        return Response(ChannelSerializer(channel).data)

    def partial_update(self, request, workspace_pk=None, pk=None):
        self._get_channel(pk)
        serializer = ChannelWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        channel = ChannelService.rename(self.actor, pk, serializer.validated_data["name"])
        return Response(ChannelSerializer(channel).data)

    def destroy(self, request, workspace_pk=None, pk=None):
        self._get_channel(pk)
        ChannelService.remove(self.actor, pk)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(
        operation_id="mark_channel_read",
        summary="Mark channel as read",
        request=None,
        tags=["Workspaces - Channels"],
    )
    @action(detail=True, methods=["post"])
    def read(self, request, workspace_pk=None, pk=None):
        read = ReadStateService.mark_read(self.actor, self.workspace_id, channel_id=pk)
        return Response({"status": "read", "last_read_at": read.last_read_at})


@extend_schema_view(
    list=extend_schema(
        operation_id="list_members",
        summary="List members",
        responses=MemberSerializer(many=True),
        tags=["Workspaces - Members"],
    ),
    retrieve=extend_schema(
        operation_id="get_member",
        summary="Get member",
        responses=MemberSerializer,
        tags=["Workspaces - Members"],
    ),
    partial_update=extend_schema(
        operation_id="change_member_role",
        summary="Change member role",
        request=MemberRoleSerializer,
        responses=MemberSerializer,
        tags=["Workspaces - Members"],
    ),
    destroy=extend_schema(
        operation_id="remove_member",
        summary="Remove member or leave",
        tags=["Workspaces - Members"],
    ),
)
class MemberViewSet(ActorMixin, WorkspaceScopedMixin, viewsets.ViewSet):
    """
    ViewSet for workspace members.

    destroy:
        Removing yourself leaves the workspace; admins may remove
        non-admin members. Messages of the removed member are kept.
    """

    permission_classes = [IsAuthenticated]

    def _get_member(self, pk):
        return self.ensure_in_workspace(
            MemberService.get(self.actor, pk), "MEMBER_NOT_FOUND", "Member"
        )

    def list(self, request, workspace_pk=None):
        members = MemberService.list(self.actor, self.workspace_id)
        return Response(MemberSerializer(members, many=True).data)

    def retrieve(self, request, workspace_pk=None, pk=None):
        return Response(MemberSerializer(self._get_member(pk)).data)

    def partial_update(self, request, workspace_pk=None, pk=None):
        self._get_member(pk)
        serializer = MemberRoleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        member = MemberService.change_role(self.actor, pk, serializer.validated_data["role"])
        return Response(MemberSerializer(member).data)

    def destroy(self, request, workspace_pk=None, pk=None):
        self._get_member(pk)
        MemberService.remove(self.actor, pk)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(
        operation_id="get_current_member",
        summary="Get current member",
        responses=MemberSerializer,
        tags=["Workspaces - Members"],
    )
    @action(detail=False, methods=["get"])
    def current(self, request, workspace_pk=None):
        member = MemberService.current(self.actor, self.workspace_id)
        if member is None:
            raise NotFoundError("Not a member of this workspace", error_code="MEMBER_NOT_FOUND")
        return Response(MemberSerializer(member).data)
