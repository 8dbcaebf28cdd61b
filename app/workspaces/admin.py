"""
Django admin configuration for workspace models.

Removing workspaces, channels or members from the admin would bypass the
ordered cascade in chat.cascade, so delete permissions are withheld.
"""

from django.contrib import admin

from workspaces.models import Channel, Member, Workspace


class ReadOnlyDeleteMixin:
    def has_delete_permission(self, request, obj=None):
        return False


class MemberInline(admin.TabularInline):
    model = Member
    extra = 0
    raw_id_fields = ["user"]
    readonly_fields = ["created_at"]
    can_delete = False


class ChannelInline(admin.TabularInline):
    model = Channel
    extra = 0
    readonly_fields = ["created_at"]
    can_delete = False


@admin.register(Workspace)
class WorkspaceAdmin(ReadOnlyDeleteMixin, admin.ModelAdmin):
    """Admin interface for Workspace model."""

    list_display = ["id", "name", "owner", "join_code", "created_at"]
    search_fields = ["name", "owner__email"]
    readonly_fields = ["created_at", "updated_at", "join_code_updated_at"]
    raw_id_fields = ["owner"]
    inlines = [ChannelInline, MemberInline]
    ordering = ["-created_at"]


@admin.register(Member)
class MemberAdmin(ReadOnlyDeleteMixin, admin.ModelAdmin):
    list_display = ["id", "workspace", "user", "role", "created_at"]
    list_filter = ["role"]
    search_fields = ["user__email", "workspace__name"]
    raw_id_fields = ["workspace", "user"]


@admin.register(Channel)
class ChannelAdmin(ReadOnlyDeleteMixin, admin.ModelAdmin):
    list_display = ["id", "name", "workspace", "created_at"]
    search_fields = ["name", "workspace__name"]
    raw_id_fields = ["workspace"]
