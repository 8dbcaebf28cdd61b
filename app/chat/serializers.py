"""
Serializers for chat API.

This module provides serializers for the chat system:
- Conversation serializers (read, create)
- Message serializers (read, thread listing, create, update)
- Reaction serializers (summary, toggle)
- Draft serializers (read, address, save)

Serializer Hierarchy:
    ConversationSerializer: Conversation with counterpart and flags
    ConversationCreateSerializer: Create-or-get by other member id

    MessageSerializer: Enriched message (reactions, image URLs, thread)
    ThreadMessageSerializer: Adds channel/counterpart routing identity
    MessageCreateSerializer: Send a message or start/join a call
    MessageUpdateSerializer: Edit body or finalize a call

    ReactionSummarySerializer: Folded reaction value
    ReactionToggleSerializer / ReactionToggleResponseSerializer

    DraftSerializer: Draft with display title
    DraftAddressSerializer: Addressing tuple of a draft
    DraftSaveSerializer: Addressing tuple plus body

Design Decisions:
    - Read and write serializers are separate for clarity
    - Display data (reaction_summary, image_urls, thread_summary, flags) is
      computed by services and attached to instances; read serializers
      only format it
    - Authors who left the workspace serialize as null
"""

from __future__ import annotations

from rest_framework import serializers

from chat.constants import MESSAGE_CONFIG, REACTION_CONFIG
from chat.models import Conversation, Draft, Message, MessageType
from workspaces.serializers import MemberSerializer


# =============================================================================
# Conversation Serializers
# =============================================================================


class ConversationSerializer(serializers.ModelSerializer):
    """
    Conversation as seen by one of its two members.

    counterpart: The other member
    has_alert: Unread messages from the counterpart
    is_video_active: An unfinished call is the newest message
    """

    counterpart = serializers.SerializerMethodField()
    has_alert = serializers.SerializerMethodField()
    is_video_active = serializers.SerializerMethodField()

    class Meta:
        model = Conversation
        fields = [
            "id",
            "workspace_id",
            "counterpart",
            "has_alert",
            "is_video_active",
            "created_at",
        ]
        read_only_fields = fields

    def get_counterpart(self, obj: Conversation) -> dict | None:
        counterpart = getattr(obj, "counterpart", None)
        return MemberSerializer(counterpart).data if counterpart else None

    def get_has_alert(self, obj: Conversation) -> bool:
        return getattr(obj, "has_alert", False)

    def get_is_video_active(self, obj: Conversation) -> bool:
        return getattr(obj, "is_video_active", False)


class ConversationCreateSerializer(serializers.Serializer):
    member_id = serializers.UUIDField(help_text="Member to talk to")


# =============================================================================
# Reaction Serializers
# =============================================================================


class ReactionSummarySerializer(serializers.Serializer):
    value = serializers.CharField(read_only=True)
    count = serializers.IntegerField(read_only=True)
    member_ids = serializers.ListField(child=serializers.UUIDField(), read_only=True)


class ReactionToggleSerializer(serializers.Serializer):
    value = serializers.CharField(
        max_length=REACTION_CONFIG.MAX_VALUE_LENGTH,
        help_text="Emoji value to toggle",
    )


class ReactionToggleResponseSerializer(serializers.Serializer):
    added = serializers.BooleanField(read_only=True)
    reactions = ReactionSummarySerializer(many=True, read_only=True)


# =============================================================================
# Message Serializers
# =============================================================================


class ThreadSummarySerializer(serializers.Serializer):
    count = serializers.IntegerField(read_only=True)
    image = serializers.CharField(read_only=True, allow_null=True)
    name = serializers.CharField(read_only=True)
    timestamp = serializers.DateTimeField(read_only=True, allow_null=True)


class MessageSerializer(serializers.ModelSerializer):
    """
    Message with author identity and display data.

    reactions: Folded per value (a member appears once per value)
    image_urls: Resolved attachment URLs; unresolvable ones are omitted
    thread: Reply summary for top-level messages, null for replies
    """

    member = MemberSerializer(read_only=True, allow_null=True)
    reactions = serializers.SerializerMethodField()
    image_urls = serializers.SerializerMethodField()
    thread = serializers.SerializerMethodField()

    class Meta:
        model = Message
        fields = [
            "id",
            "workspace_id",
            "channel_id",
            "conversation_id",
            "parent_message_id",
            "member",
            "body",
            "images",
            "image_urls",
            "message_type",
            "call_duration",
            "reply_count",
            "last_reply_at",
            "participants",
            "reactions",
            "thread",
            "edited_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_reactions(self, obj: Message) -> list[dict]:
        return ReactionSummarySerializer(getattr(obj, "reaction_summary", []), many=True).data

    def get_image_urls(self, obj: Message) -> list[str]:
        return getattr(obj, "image_urls", [])

    def get_thread(self, obj: Message) -> dict | None:
        summary = getattr(obj, "thread_summary", None)
        return ThreadSummarySerializer(summary).data if summary is not None else None


class ThreadMessageSerializer(MessageSerializer):
    """Thread parent with the channel or counterpart needed to open it."""

    channel = serializers.SerializerMethodField()
    counterpart = serializers.SerializerMethodField()

    class Meta(MessageSerializer.Meta):
        fields = MessageSerializer.Meta.fields + ["channel", "counterpart"]
        read_only_fields = fields

    def get_channel(self, obj: Message) -> dict | None:
        if obj.channel_id is None or obj.channel is None:
            return None
        return {"id": obj.channel.pk, "name": obj.channel.name}

    def get_counterpart(self, obj: Message) -> dict | None:
        counterpart = getattr(obj, "counterpart", None)
        return MemberSerializer(counterpart).data if counterpart else None


class MessageCreateSerializer(serializers.Serializer):
    """
    Serializer for sending a message.

    Exactly one of channel_id/conversation_id, or only parent_message_id
    for a reply that inherits its parent's target.
    """

    body = serializers.CharField(
        max_length=MESSAGE_CONFIG.MAX_BODY_LENGTH,
        required=False,
        allow_blank=True,
        default="",
    )
    channel_id = serializers.UUIDField(required=False, allow_null=True, default=None)
    conversation_id = serializers.UUIDField(required=False, allow_null=True, default=None)
    parent_message_id = serializers.UUIDField(required=False, allow_null=True, default=None)
    images = serializers.ListField(
        child=serializers.CharField(max_length=255),
        required=False,
        default=list,
        max_length=MESSAGE_CONFIG.MAX_IMAGES_PER_MESSAGE,
        help_text="Blob ids of uploaded images",
    )
    message_type = serializers.ChoiceField(
        choices=MessageType.choices,
        required=False,
        default=MessageType.TEXT,
    )

    def validate(self, attrs: dict) -> dict:
        if attrs["message_type"] == MessageType.TEXT and not (
            attrs["body"].strip() or attrs["images"]
        ):
            raise serializers.ValidationError("A text message needs a body or images")
        return attrs


class MessageUpdateSerializer(serializers.Serializer):
    body = serializers.CharField(
        max_length=MESSAGE_CONFIG.MAX_BODY_LENGTH,
        required=False,
        allow_blank=True,
    )
    call_duration = serializers.IntegerField(
        required=False,
        min_value=0,
        help_text="Call length in milliseconds",
    )

    def validate(self, attrs: dict) -> dict:
        if not attrs:
            raise serializers.ValidationError("Provide body or call_duration")
        return attrs


# =============================================================================
# Draft Serializers
# =============================================================================


class DraftSerializer(serializers.ModelSerializer):
    """
    Draft with list metadata.

    display_title: "# channel", counterpart name, parent author or placeholder
    kind: channel, conversation, thread or unknown
    target_id: Channel id, counterpart member id or parent message id
    """

    display_title = serializers.SerializerMethodField()
    kind = serializers.SerializerMethodField()
    target_id = serializers.SerializerMethodField()

    class Meta:
        model = Draft
        fields = [
            "id",
            "workspace_id",
            "channel_id",
            "conversation_id",
            "parent_message_id",
            "body",
            "display_title",
            "kind",
            "target_id",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_display_title(self, obj: Draft) -> str | None:
        return getattr(obj, "display_title", None)

    def get_kind(self, obj: Draft) -> str | None:
        return getattr(obj, "kind", None)

    def get_target_id(self, obj: Draft) -> str | None:
        target_id = getattr(obj, "target_id", None)
        return str(target_id) if target_id else None


class DraftAddressSerializer(serializers.Serializer):
    channel_id = serializers.UUIDField(required=False, allow_null=True, default=None)
    conversation_id = serializers.UUIDField(required=False, allow_null=True, default=None)
    parent_message_id = serializers.UUIDField(required=False, allow_null=True, default=None)


class DraftSaveSerializer(DraftAddressSerializer):
    body = serializers.CharField(allow_blank=True)
