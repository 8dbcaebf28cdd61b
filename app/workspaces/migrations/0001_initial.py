import uuid

import django.db.models.deletion
import workspaces.models
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Workspace",
            fields=[
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for this record",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "name",
                    models.CharField(help_text="Workspace display name", max_length=80),
                ),
                (
                    "join_code",
                    models.CharField(
                        default=workspaces.models.generate_join_code,
                        help_text="Code used to join the workspace",
                        max_length=6,
                    ),
                ),
                (
                    "join_code_updated_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="When the join code was last rotated",
                        null=True,
                    ),
                ),
                (
                    "owner",
                    models.ForeignKey(
                        help_text="User who created the workspace",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="owned_workspaces",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "db_table": "workspaces_workspace",
                "ordering": ["created_at"],
            },
        ),
        migrations.CreateModel(
            name="Channel",
            fields=[
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for this record",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "name",
                    models.CharField(help_text="Normalized channel name", max_length=80),
                ),
                (
                    "workspace",
                    models.ForeignKey(
                        help_text="Workspace the channel belongs to",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="channels",
                        to="workspaces.workspace",
                    ),
                ),
            ],
            options={
                "db_table": "workspaces_channel",
                "ordering": ["created_at"],
                "indexes": [
                    models.Index(
                        fields=["workspace", "created_at"],
                        name="ws_channel_workspace_idx",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="Member",
            fields=[
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for this record",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "role",
                    models.CharField(
                        choices=[("admin", "Admin"), ("member", "Member")],
                        default="member",
                        help_text="Role within the workspace",
                        max_length=10,
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        help_text="User behind this membership",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="memberships",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "workspace",
                    models.ForeignKey(
                        help_text="Workspace this member belongs to",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="members",
                        to="workspaces.workspace",
                    ),
                ),
            ],
            options={
                "db_table": "workspaces_member",
                "ordering": ["created_at"],
                "indexes": [
                    models.Index(
                        fields=["workspace", "role"], name="ws_member_role_idx"
                    )
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("workspace", "user"),
                        name="unique_member_per_workspace",
                    )
                ],
            },
        ),
    ]
