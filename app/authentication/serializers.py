"""
Serializers for authentication models.

Only read serializers live here: users are embedded as author/counterpart
identity in workspace and chat payloads and are never edited through this API.
"""

from rest_framework import serializers

from authentication.models import User


class UserSummarySerializer(serializers.ModelSerializer):
    """Public identity of a user as shown to other workspace members."""

    name = serializers.CharField(source="display_name", read_only=True)

    class Meta:
        model = User
        fields = ["id", "name", "image"]
        read_only_fields = fields
