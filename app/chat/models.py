"""
Chat system models.

This module defines the data models for workspace messaging:
- 1:1 conversations between two members of a workspace
- Messages addressed to a channel or a conversation, optionally as thread replies
- Reactions, per-member read watermarks and per-member drafts

Models:
    Conversation: Unordered pair of two distinct members
    Message: A message, thread reply or call session bubble
    Reaction: One (message, member, value) row
    MessageRead: Last-read watermark per member per channel/conversation
    Draft: Unsent text per member per addressing tuple

Design Decisions:
    - Messages are addressed by (channel | conversation, parent_message?).
      Thread replies inside a 1:1 conversation carry the parent's
      conversation id (see chat.services.ConversationLocator).
    - Messages outlive their author: Message.member is SET_NULL so a
      departed member's history stays readable.
    - Parent and conversation references on messages, and the addressing
      references on drafts, are plain ids without a database constraint.
      Deleting a parent message directly leaves its replies pointing at a
      missing row; deleting a conversation during member removal leaves the
      other party's messages in place.
    - reply_count/last_reply_at are caches of the reply set, maintained in
      the same transaction as the reply insert.
"""

from __future__ import annotations

from django.db import models
from django.db.models import F, Q

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel
from chat.constants import MESSAGE_CONFIG, REACTION_CONFIG


class MessageType(models.TextChoices):
    """
    Kind of message.

    TEXT: User-authored text (optionally with images)
    CALL: Video call session; call_duration is set once the call ends
    """

    TEXT = "text", "Text"
    CALL = "call", "Call"


class Conversation(UUIDPrimaryKeyMixin, BaseModel):
    """
    A 1:1 conversation between two distinct members of one workspace.

    The pair is stored in canonical order (lower id first), so the unique
    constraint covers the unordered pair. Services still look the pair up
    before inserting.

    Fields:
        workspace: Workspace both members belong to
        member_one: Member with the lower id
        member_two: Member with the higher id
    """

    workspace = models.ForeignKey(
        "workspaces.Workspace",
        on_delete=models.PROTECT,
        related_name="conversations",
        help_text="Workspace both members belong to",
    )
    member_one = models.ForeignKey(
        "workspaces.Member",
        on_delete=models.PROTECT,
        related_name="conversations_as_first",
        help_text="Member with the lower id",
    )
    member_two = models.ForeignKey(
        "workspaces.Member",
        on_delete=models.PROTECT,
        related_name="conversations_as_second",
        help_text="Member with the higher id",
    )

    class Meta:
        db_table = "chat_conversation"
        ordering = ["created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["workspace", "member_one", "member_two"],
                name="unique_conversation_pair",
            ),
            models.CheckConstraint(
                condition=Q(member_one_id__lt=F("member_two_id")),
                name="conversation_pair_canonical_order",
            ),
        ]

    def __str__(self) -> str:
        return f"Conversation({self.member_one_id}, {self.member_two_id})"

    @staticmethod
    def canonical_pair(first_id, second_id) -> tuple:
        """Order two member ids the way they are stored."""
        return (first_id, second_id) if first_id < second_id else (second_id, first_id)

    def involves(self, member_id) -> bool:
        return member_id in (self.member_one_id, self.member_two_id)

    def counterpart_id(self, member_id):
        """Return the id of the other side of the pair."""
        return self.member_two_id if self.member_one_id == member_id else self.member_one_id


class Message(UUIDPrimaryKeyMixin, BaseModel):
    """
    A message in a channel or conversation, possibly a thread reply.

    Addressing:
        Exactly one of channel/conversation is the top-level target.
        parent_message marks a thread reply and may co-occur with either.

    Call Sessions:
        message_type=CALL with call_duration NULL is an unfinished call.
        While it is the newest message of its addressing tuple, starting a
        call there returns it instead of creating another one.

    Fields:
        workspace: Workspace the message belongs to
        member: Author (NULL once the author has left the workspace)
        channel: Channel target
        conversation: Conversation target
        parent_message: Thread parent
        body: Message text
        images: Blob ids of attached images
        message_type: text or call
        call_duration: Call length in milliseconds, set when the call ends
        reply_count: Cached number of replies (NULL until the first reply)
        last_reply_at: Cached creation time of the newest reply
        participants: Ids of members who replied in the thread
        edited_at: Set on every update()
    """

    workspace = models.ForeignKey(
        "workspaces.Workspace",
        on_delete=models.PROTECT,
        related_name="messages",
        help_text="Workspace the message belongs to",
    )
    member = models.ForeignKey(
        "workspaces.Member",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="messages",
        help_text="Author (null once the author left the workspace)",
    )
    channel = models.ForeignKey(
        "workspaces.Channel",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="messages",
        help_text="Channel this message is addressed to",
    )
    conversation = models.ForeignKey(
        Conversation,
        on_delete=models.DO_NOTHING,
        db_constraint=False,
        null=True,
        blank=True,
        related_name="messages",
        help_text="Conversation this message is addressed to",
    )
    parent_message = models.ForeignKey(
        "self",
        on_delete=models.DO_NOTHING,
        db_constraint=False,
        null=True,
        blank=True,
        related_name="replies",
        help_text="Thread parent (null for top-level messages)",
    )

    body = models.TextField(
        blank=True,
        max_length=MESSAGE_CONFIG.MAX_BODY_LENGTH,
        help_text="Message text",
    )
    images = models.JSONField(
        default=list,
        blank=True,
        help_text="Blob ids of attached images",
    )
    message_type = models.CharField(
        max_length=10,
        choices=MessageType.choices,
        default=MessageType.TEXT,
        help_text="Kind of message (text or call)",
    )
    call_duration = models.PositiveBigIntegerField(
        null=True,
        blank=True,
        help_text="Call length in milliseconds (set when the call ends)",
    )

    reply_count = models.PositiveIntegerField(
        null=True,
        blank=True,
        help_text="Number of replies (cached, null until the first reply)",
    )
    last_reply_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Creation time of the newest reply (cached)",
    )
    participants = models.JSONField(
        default=list,
        blank=True,
        help_text="Ids of members who replied in this thread",
    )
    edited_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the message was last updated",
    )

    class Meta:
        db_table = "chat_message"
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(
                fields=["channel", "parent_message", "created_at"],
                name="chat_msg_channel_idx",
            ),
            models.Index(
                fields=["conversation", "parent_message", "created_at"],
                name="chat_msg_conv_idx",
            ),
            models.Index(
                fields=["parent_message", "created_at"],
                name="chat_msg_parent_idx",
                condition=Q(parent_message__isnull=False),
            ),
            models.Index(
                fields=["workspace", "-last_reply_at"],
                name="chat_msg_threads_idx",
                condition=Q(last_reply_at__isnull=False),
            ),
        ]

    def __str__(self) -> str:
        preview = self.body[:50] + "..." if len(self.body) > 50 else self.body
        return f"Message({self.member_id}): {preview}"

    @property
    def is_reply(self) -> bool:
        return self.parent_message_id is not None

    @property
    def is_call(self) -> bool:
        return self.message_type == MessageType.CALL

    @property
    def is_unfinished_call(self) -> bool:
        """A call that has not been finalized with a duration."""
        return self.is_call and self.call_duration is None


class Reaction(UUIDPrimaryKeyMixin, BaseModel):
    """
    One emoji reaction placed by a member on a message.

    Storage does not enforce one row per (message, member, value); the
    aggregator merges duplicates and toggling removes every copy.
    """

    workspace = models.ForeignKey(
        "workspaces.Workspace",
        on_delete=models.PROTECT,
        related_name="reactions",
        help_text="Workspace the reaction belongs to",
    )
    message = models.ForeignKey(
        Message,
        on_delete=models.CASCADE,
        related_name="reactions",
        help_text="Message being reacted to",
    )
    member = models.ForeignKey(
        "workspaces.Member",
        on_delete=models.PROTECT,
        related_name="reactions",
        help_text="Member who reacted",
    )
    value = models.CharField(
        max_length=REACTION_CONFIG.MAX_VALUE_LENGTH,
        help_text="Emoji value",
    )

    class Meta:
        db_table = "chat_reaction"
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(
                fields=["message", "member", "value"],
                name="chat_reaction_lookup_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"Reaction({self.value} by {self.member_id} on {self.message_id})"


class MessageRead(UUIDPrimaryKeyMixin, BaseModel):
    """
    Last-read watermark of a member for one channel or conversation.

    A missing row means the member has never read the target (watermark at
    the epoch).
    """

    workspace = models.ForeignKey(
        "workspaces.Workspace",
        on_delete=models.CASCADE,
        related_name="message_reads",
        help_text="Workspace the target belongs to",
    )
    member = models.ForeignKey(
        "workspaces.Member",
        on_delete=models.CASCADE,
        related_name="message_reads",
        help_text="Member whose watermark this is",
    )
    channel = models.ForeignKey(
        "workspaces.Channel",
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="message_reads",
        help_text="Channel target",
    )
    conversation = models.ForeignKey(
        Conversation,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="message_reads",
        help_text="Conversation target",
    )
    last_read_at = models.DateTimeField(
        help_text="Everything created at or before this time has been read",
    )

    class Meta:
        db_table = "chat_message_read"
        constraints = [
            models.UniqueConstraint(
                fields=["member", "channel"],
                condition=Q(channel__isnull=False),
                name="unique_read_per_member_channel",
            ),
            models.UniqueConstraint(
                fields=["member", "conversation"],
                condition=Q(conversation__isnull=False),
                name="unique_read_per_member_conv",
            ),
            models.CheckConstraint(
                condition=(
                    Q(channel__isnull=False, conversation__isnull=True)
                    | Q(channel__isnull=True, conversation__isnull=False)
                ),
                name="message_read_single_target",
            ),
        ]

    def __str__(self) -> str:
        target = self.channel_id or self.conversation_id
        return f"MessageRead({self.member_id} -> {target} at {self.last_read_at})"


class Draft(UUIDPrimaryKeyMixin, BaseModel):
    """
    Unsent message text of one member for one addressing tuple.

    Lookups match channel, conversation and parent_message exactly,
    including NULLs, so a channel's main-timeline draft and a thread
    draft under the same channel never collide. updated_at (from
    BaseModel) records the last edit.
    """

    workspace = models.ForeignKey(
        "workspaces.Workspace",
        on_delete=models.PROTECT,
        related_name="drafts",
        help_text="Workspace the draft belongs to",
    )
    member = models.ForeignKey(
        "workspaces.Member",
        on_delete=models.PROTECT,
        related_name="drafts",
        help_text="Member who owns the draft",
    )
    channel = models.ForeignKey(
        "workspaces.Channel",
        on_delete=models.DO_NOTHING,
        db_constraint=False,
        null=True,
        blank=True,
        related_name="drafts",
        help_text="Channel target",
    )
    conversation = models.ForeignKey(
        Conversation,
        on_delete=models.DO_NOTHING,
        db_constraint=False,
        null=True,
        blank=True,
        related_name="drafts",
        help_text="Conversation target",
    )
    parent_message = models.ForeignKey(
        Message,
        on_delete=models.DO_NOTHING,
        db_constraint=False,
        null=True,
        blank=True,
        related_name="drafts",
        help_text="Thread parent",
    )
    body = models.TextField(
        blank=True,
        help_text="Draft text",
    )

    class Meta:
        db_table = "chat_draft"
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=["member", "channel", "conversation", "parent_message"],
                name="chat_draft_address_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"Draft({self.member_id})"
