"""
Serializers for workspace API.

Serializer Hierarchy:
    WorkspaceSerializer: Workspace as seen by members
    WorkspaceAdminSerializer: Adds join code details for admins
    WorkspaceCreateSerializer / WorkspaceUpdateSerializer: Write payloads
    WorkspaceJoinSerializer: Join code payload
    WorkspaceInfoSerializer: Public join-screen info

    ChannelSerializer: Channel with the requester's unread/call flags
    ChannelWriteSerializer: Create/rename payload

    MemberSerializer: Member with embedded user identity
    MemberRoleSerializer: Role change payload

Design Decisions:
    - Read and write serializers are separate; writes only validate input
      and the service layer does the rest
    - Flags computed by services (has_alert, is_video_active) are plain
      attributes on the instances and default to False when absent
"""

from rest_framework import serializers

from authentication.serializers import UserSummarySerializer
from workspaces.constants import CHANNEL_CONFIG, WORKSPACE_CONFIG
from workspaces.models import Channel, Member, MemberRole, Workspace


# =============================================================================
# Workspace Serializers
# =============================================================================


class WorkspaceSerializer(serializers.ModelSerializer):
    class Meta:
        model = Workspace
        fields = ["id", "name", "owner_id", "created_at", "updated_at"]
        read_only_fields = fields


class WorkspaceAdminSerializer(WorkspaceSerializer):
    """Workspace including its join code, returned to admins only."""

    class Meta(WorkspaceSerializer.Meta):
        fields = WorkspaceSerializer.Meta.fields + ["join_code", "join_code_updated_at"]
        read_only_fields = fields


class WorkspaceCreateSerializer(serializers.Serializer):
    name = serializers.CharField(
        min_length=WORKSPACE_CONFIG.NAME_MIN_LENGTH,
        max_length=WORKSPACE_CONFIG.NAME_MAX_LENGTH,
        help_text="Workspace display name",
    )


class WorkspaceUpdateSerializer(WorkspaceCreateSerializer):
    pass


class WorkspaceJoinSerializer(serializers.Serializer):
    join_code = serializers.CharField(
        max_length=WORKSPACE_CONFIG.JOIN_CODE_LENGTH,
        help_text="Join code (case-insensitive)",
    )


class WorkspaceInfoSerializer(serializers.Serializer):
    name = serializers.CharField(read_only=True)
    is_member = serializers.BooleanField(read_only=True)


# =============================================================================
# Channel Serializers
# =============================================================================


class ChannelSerializer(serializers.ModelSerializer):
    """
    Channel with the requesting member's state.

    has_alert: Unread messages from someone else since the last read
    is_video_active: An unfinished call is the newest message
    """

    has_alert = serializers.SerializerMethodField()
    is_video_active = serializers.SerializerMethodField()

    class Meta:
        model = Channel
        fields = [
            "id",
            "workspace_id",
            "name",
            "has_alert",
            "is_video_active",
            "created_at",
        ]
        read_only_fields = fields

    def get_has_alert(self, obj: Channel) -> bool:
        return getattr(obj, "has_alert", False)

    def get_is_video_active(self, obj: Channel) -> bool:
        return getattr(obj, "is_video_active", False)


class ChannelWriteSerializer(serializers.Serializer):
    name = serializers.CharField(
        min_length=CHANNEL_CONFIG.NAME_MIN_LENGTH,
        max_length=CHANNEL_CONFIG.NAME_MAX_LENGTH,
        help_text="Channel name (stored lowercase, spaces become hyphens)",
    )


# =============================================================================
# Member Serializers
# =============================================================================


class MemberSerializer(serializers.ModelSerializer):
    user = UserSummarySerializer(read_only=True)

    class Meta:
        model = Member
        fields = ["id", "workspace_id", "user", "role", "created_at"]
        read_only_fields = fields


class MemberRoleSerializer(serializers.Serializer):
    role = serializers.ChoiceField(choices=MemberRole.choices)
