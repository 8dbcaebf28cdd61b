"""
Django admin configuration for chat models.

Provides admin interfaces for:
- Conversation viewing
- Message moderation
- Reaction and draft inspection
"""

from django.contrib import admin

from chat.models import Conversation, Draft, Message, Reaction


@admin.register(Conversation)
class ConversationAdmin(admin.ModelAdmin):
    """Admin interface for Conversation model."""

    list_display = ["id", "workspace", "member_one", "member_two", "created_at"]
    readonly_fields = ["created_at", "updated_at"]
    raw_id_fields = ["workspace", "member_one", "member_two"]
    ordering = ["-created_at"]


class ReactionInline(admin.TabularInline):
    model = Reaction
    extra = 0
    raw_id_fields = ["member", "workspace"]
    readonly_fields = ["created_at"]


@admin.register(Message)
class MessageAdmin(admin.ModelAdmin):
    """Admin interface for Message model."""

    list_display = [
        "id",
        "workspace",
        "member",
        "message_type",
        "body_preview",
        "reply_count",
        "created_at",
    ]
    list_filter = ["message_type", "created_at"]
    search_fields = ["body", "member__user__email"]
    readonly_fields = [
        "created_at",
        "updated_at",
        "edited_at",
        "reply_count",
        "last_reply_at",
        "participants",
    ]
    raw_id_fields = ["workspace", "member", "channel", "conversation", "parent_message"]
    inlines = [ReactionInline]
    ordering = ["-created_at"]

    @admin.display(description="Body Preview")
    def body_preview(self, obj: Message) -> str:
        """Return truncated body for list display."""
        max_length = 50
        if len(obj.body) > max_length:
            return obj.body[:max_length] + "..."
        return obj.body


@admin.register(Draft)
class DraftAdmin(admin.ModelAdmin):
    list_display = ["id", "workspace", "member", "channel", "conversation", "updated_at"]
    search_fields = ["body", "member__user__email"]
    raw_id_fields = ["workspace", "member", "channel", "conversation", "parent_message"]
