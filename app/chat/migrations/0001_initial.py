import uuid

import django.db.models.deletion
from django.db import migrations, models


def _timestamps():
    return [
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
    ]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("workspaces", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Conversation",
            fields=_timestamps()
            + [
                (
                    "workspace",
                    models.ForeignKey(
                        help_text="Workspace both members belong to",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="conversations",
                        to="workspaces.workspace",
                    ),
                ),
                (
                    "member_one",
                    models.ForeignKey(
                        help_text="Member with the lower id",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="conversations_as_first",
                        to="workspaces.member",
                    ),
                ),
                (
                    "member_two",
                    models.ForeignKey(
                        help_text="Member with the higher id",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="conversations_as_second",
                        to="workspaces.member",
                    ),
                ),
            ],
            options={
                "db_table": "chat_conversation",
                "ordering": ["created_at"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("workspace", "member_one", "member_two"),
                        name="unique_conversation_pair",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            ("member_one_id__lt", models.F("member_two_id"))
                        ),
                        name="conversation_pair_canonical_order",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Message",
            fields=_timestamps()
            + [
                (
                    "body",
                    models.TextField(
                        blank=True, help_text="Message text", max_length=10000
                    ),
                ),
                (
                    "images",
                    models.JSONField(
                        blank=True,
                        default=list,
                        help_text="Blob ids of attached images",
                    ),
                ),
                (
                    "message_type",
                    models.CharField(
                        choices=[("text", "Text"), ("call", "Call")],
                        default="text",
                        help_text="Kind of message (text or call)",
                        max_length=10,
                    ),
                ),
                (
                    "call_duration",
                    models.PositiveBigIntegerField(
                        blank=True,
                        help_text="Call length in milliseconds (set when the call ends)",
                        null=True,
                    ),
                ),
                (
                    "reply_count",
                    models.PositiveIntegerField(
                        blank=True,
                        help_text="Number of replies (cached, null until the first reply)",
                        null=True,
                    ),
                ),
                (
                    "last_reply_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="Creation time of the newest reply (cached)",
                        null=True,
                    ),
                ),
                (
                    "participants",
                    models.JSONField(
                        blank=True,
                        default=list,
                        help_text="Ids of members who replied in this thread",
                    ),
                ),
                (
                    "edited_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="When the message was last updated",
                        null=True,
                    ),
                ),
                (
                    "workspace",
                    models.ForeignKey(
                        help_text="Workspace the message belongs to",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="messages",
                        to="workspaces.workspace",
                    ),
                ),
                (
                    "member",
                    models.ForeignKey(
                        blank=True,
                        help_text="Author (null once the author left the workspace)",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="messages",
                        to="workspaces.member",
                    ),
                ),
                (
                    "channel",
                    models.ForeignKey(
                        blank=True,
                        help_text="Channel this message is addressed to",
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="messages",
                        to="workspaces.channel",
                    ),
                ),
                (
                    "conversation",
                    models.ForeignKey(
                        blank=True,
                        db_constraint=False,
                        help_text="Conversation this message is addressed to",
                        null=True,
                        on_delete=django.db.models.deletion.DO_NOTHING,
                        related_name="messages",
                        to="chat.conversation",
                    ),
                ),
                (
                    "parent_message",
                    models.ForeignKey(
                        blank=True,
                        db_constraint=False,
                        help_text="Thread parent (null for top-level messages)",
                        null=True,
                        on_delete=django.db.models.deletion.DO_NOTHING,
                        related_name="replies",
                        to="chat.message",
                    ),
                ),
            ],
            options={
                "db_table": "chat_message",
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(
                        fields=["channel", "parent_message", "created_at"],
                        name="chat_msg_channel_idx",
                    ),
                    models.Index(
                        fields=["conversation", "parent_message", "created_at"],
                        name="chat_msg_conv_idx",
                    ),
                    models.Index(
                        condition=models.Q(("parent_message__isnull", False)),
                        fields=["parent_message", "created_at"],
                        name="chat_msg_parent_idx",
                    ),
                    models.Index(
                        condition=models.Q(("last_reply_at__isnull", False)),
                        fields=["workspace", "-last_reply_at"],
                        name="chat_msg_threads_idx",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Reaction",
            fields=_timestamps()
            + [
                (
                    "value",
                    models.CharField(help_text="Emoji value", max_length=32),
                ),
                (
                    "workspace",
                    models.ForeignKey(
                        help_text="Workspace the reaction belongs to",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="reactions",
                        to="workspaces.workspace",
                    ),
                ),
                (
                    "message",
                    models.ForeignKey(
                        help_text="Message being reacted to",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="reactions",
                        to="chat.message",
                    ),
                ),
                (
                    "member",
                    models.ForeignKey(
                        help_text="Member who reacted",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="reactions",
                        to="workspaces.member",
                    ),
                ),
            ],
            options={
                "db_table": "chat_reaction",
                "ordering": ["created_at", "id"],
                "indexes": [
                    models.Index(
                        fields=["message", "member", "value"],
                        name="chat_reaction_lookup_idx",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="MessageRead",
            fields=_timestamps()
            + [
                (
                    "last_read_at",
                    models.DateTimeField(
                        help_text="Everything created at or before this time has been read"
                    ),
                ),
                (
                    "workspace",
                    models.ForeignKey(
                        help_text="Workspace the target belongs to",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="message_reads",
                        to="workspaces.workspace",
                    ),
                ),
                (
                    "member",
                    models.ForeignKey(
                        help_text="Member whose watermark this is",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="message_reads",
                        to="workspaces.member",
                    ),
                ),
                (
                    "channel",
                    models.ForeignKey(
                        blank=True,
                        help_text="Channel target",
                        null=True,
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="message_reads",
                        to="workspaces.channel",
                    ),
                ),
                (
                    "conversation",
                    models.ForeignKey(
                        blank=True,
                        help_text="Conversation target",
                        null=True,
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="message_reads",
                        to="chat.conversation",
                    ),
                ),
            ],
            options={
                "db_table": "chat_message_read",
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("channel__isnull", False)),
                        fields=("member", "channel"),
                        name="unique_read_per_member_channel",
                    ),
                    models.UniqueConstraint(
                        condition=models.Q(("conversation__isnull", False)),
                        fields=("member", "conversation"),
                        name="unique_read_per_member_conv",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            models.Q(
                                ("channel__isnull", False),
                                ("conversation__isnull", True),
                            ),
                            models.Q(
                                ("channel__isnull", True),
                                ("conversation__isnull", False),
                            ),
                            _connector="OR",
                        ),
                        name="message_read_single_target",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Draft",
            fields=_timestamps()
            + [
                ("body", models.TextField(blank=True, help_text="Draft text")),
                (
                    "workspace",
                    models.ForeignKey(
                        help_text="Workspace the draft belongs to",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="drafts",
                        to="workspaces.workspace",
                    ),
                ),
                (
                    "member",
                    models.ForeignKey(
                        help_text="Member who owns the draft",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="drafts",
                        to="workspaces.member",
                    ),
                ),
                (
                    "channel",
                    models.ForeignKey(
                        blank=True,
                        db_constraint=False,
                        help_text="Channel target",
                        null=True,
                        on_delete=django.db.models.deletion.DO_NOTHING,
                        related_name="drafts",
                        to="workspaces.channel",
                    ),
                ),
                (
                    "conversation",
                    models.ForeignKey(
                        blank=True,
                        db_constraint=False,
                        help_text="Conversation target",
                        null=True,
                        on_delete=django.db.models.deletion.DO_NOTHING,
                        related_name="drafts",
                        to="chat.conversation",
                    ),
                ),
                (
                    "parent_message",
                    models.ForeignKey(
                        blank=True,
                        db_constraint=False,
                        help_text="Thread parent",
                        null=True,
                        on_delete=django.db.models.deletion.DO_NOTHING,
                        related_name="drafts",
                        to="chat.message",
                    ),
                ),
            ],
            options={
                "db_table": "chat_draft",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["member", "channel", "conversation", "parent_message"],
                        name="chat_draft_address_idx",
                    )
                ],
            },
        ),
    ]
