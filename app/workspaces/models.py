"""
Workspace models.

Models:
    Workspace: Root container owning members, channels and all chat data
    Member: A user's identity inside one workspace, carrying a role
    Channel: Named public timeline inside a workspace

Design Decisions:
    - Every foreign key pointing at a workspace uses PROTECT. Removing a
      workspace, channel or member goes through chat.cascade, which deletes
      dependants explicitly and in order; a stray dependant makes the final
      delete fail loudly instead of being swept away implicitly.
    - Channel names are normalized on save (lowercase, whitespace -> "-")
    - A workspace always keeps at least one admin member; the services
      enforce this on role changes and member removal.
"""

from __future__ import annotations

import re
import secrets

from django.conf import settings
from django.db import models

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel
from workspaces.constants import CHANNEL_CONFIG, WORKSPACE_CONFIG

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_channel_name(name: str) -> str:
    """
    Normalize a channel name for storage.

    Runs of whitespace collapse into a single hyphen and the result is
    lowercased, so "Product Launch" and "product  launch" both become
    "product-launch".
    """
    return _WHITESPACE_RE.sub("-", name.strip()).lower()


def generate_join_code() -> str:
    """Return a random join code drawn from [0-9a-z]."""
    alphabet = WORKSPACE_CONFIG.JOIN_CODE_ALPHABET
    return "".join(
        secrets.choice(alphabet) for _ in range(WORKSPACE_CONFIG.JOIN_CODE_LENGTH)
    )


class MemberRole(models.TextChoices):
    """
    Role of a member within a workspace.

    ADMIN: Manages channels, members, join codes and the workspace itself
    MEMBER: Reads and writes messages, reactions and drafts
    """

    ADMIN = "admin", "Admin"
    MEMBER = "member", "Member"


class Workspace(UUIDPrimaryKeyMixin, BaseModel):
    """
    Root of all team-chat data.

    Fields:
        name: Display name
        owner: User who created the workspace
        join_code: Short code users type to join (compared case-insensitively)
        join_code_updated_at: When the join code was last rotated

    Relationships:
        members: Member rows (reverse FK)
        channels: Channel rows (reverse FK)
    """

    name = models.CharField(
        max_length=WORKSPACE_CONFIG.NAME_MAX_LENGTH,
        help_text="Workspace display name",
    )
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="owned_workspaces",
        help_text="User who created the workspace",
    )
    join_code = models.CharField(
        max_length=WORKSPACE_CONFIG.JOIN_CODE_LENGTH,
        default=generate_join_code,
        help_text="Code used to join the workspace",
    )
    join_code_updated_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the join code was last rotated",
    )

    class Meta:
        db_table = "workspaces_workspace"
        ordering = ["created_at"]

    def __str__(self) -> str:
        return f"Workspace: {self.name}"

    def matches_join_code(self, code: str) -> bool:
        """Compare a user-supplied join code, ignoring case and padding."""
        return self.join_code.lower() == (code or "").strip().lower()


class Member(UUIDPrimaryKeyMixin, BaseModel):
    """
    A user's identity scoped to one workspace.

    All chat content (messages, reactions, drafts, read markers) is
    attributed to a Member rather than to the raw user, so the same user
    shows up as a different author in each workspace.

    Fields:
        workspace: Workspace this membership belongs to
        user: The user behind the membership
        role: admin or member

    Constraints:
        - A user has at most one Member per workspace
    """

    workspace = models.ForeignKey(
        Workspace,
        on_delete=models.PROTECT,
        related_name="members",
        help_text="Workspace this member belongs to",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="memberships",
        help_text="User behind this membership",
    )
    role = models.CharField(
        max_length=10,
        choices=MemberRole.choices,
        default=MemberRole.MEMBER,
        help_text="Role within the workspace",
    )

    class Meta:
        db_table = "workspaces_member"
        ordering = ["created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["workspace", "user"],
                name="unique_member_per_workspace",
            ),
        ]
        indexes = [
            # Admin counting for last-admin checks
            models.Index(
                fields=["workspace", "role"],
                name="ws_member_role_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"Member({self.user_id} in {self.workspace_id}, {self.role})"

    @property
    def is_admin(self) -> bool:
        return self.role == MemberRole.ADMIN


class Channel(UUIDPrimaryKeyMixin, BaseModel):
    """
    Named public timeline inside a workspace.

    Fields:
        workspace: Workspace the channel belongs to
        name: Normalized name (lowercase, hyphens instead of whitespace)
    """

    workspace = models.ForeignKey(
        Workspace,
        on_delete=models.PROTECT,
        related_name="channels",
        help_text="Workspace the channel belongs to",
    )
    name = models.CharField(
        max_length=CHANNEL_CONFIG.NAME_MAX_LENGTH,
        help_text="Normalized channel name",
    )

    class Meta:
        db_table = "workspaces_channel"
        ordering = ["created_at"]
        indexes = [
            models.Index(
                fields=["workspace", "created_at"],
                name="ws_channel_workspace_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"#{self.name}"

    def save(self, *args, **kwargs):
        self.name = normalize_channel_name(self.name)
        super().save(*args, **kwargs)
