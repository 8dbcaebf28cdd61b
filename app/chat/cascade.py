"""
Cascade deletion of channels, members and workspaces.

Every foreign key into a workspace is PROTECT, so removing a container means
deleting its dependants explicitly and in order. This module owns those
orders and the one intentional asymmetry between them: removing a channel or
a workspace purges its messages, removing a member keeps theirs.

Key Components:
    RetentionPolicy: What happens to messages under a removed target
    CascadeReport: Counts of what a cascade removed
    CascadeDeletionCoordinator: remove_channel / remove_member / remove_workspace

Failure model:
    - Attached images are deleted through BlobStore.delete_quietly() before
      the row deletion transaction starts; blob failures are logged and
      never abort the cascade.
    - All row deletions of one cascade run in a single transaction. Any
      failure there rolls the whole cascade back and propagates.
    - The set of messages whose images are cleaned up is a snapshot taken
      when the cascade starts. Rows written concurrently are still deleted
      with their container, but their images are not.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import TYPE_CHECKING

from django.db.models import Q

from chat.blobs import get_blob_store
from chat.models import Conversation, Draft, Message, MessageRead, Reaction
from chat.search_index import schedule_unindex
from core.exceptions import InvalidStateError, NotFoundError
from core.services import BaseService
from workspaces.authorization import MembershipResolver
from workspaces.models import Channel, Member, Workspace

if TYPE_CHECKING:
    import uuid

    from django.db.models import QuerySet

    from chat.blobs import BlobStore
    from core.context import ActorContext


def _delete(queryset: QuerySet) -> int:
    """Delete a queryset and return how many rows of its own model went."""
    _, per_model = queryset.delete()
    return per_model.get(queryset.model._meta.label, 0)


class RetentionPolicy(enum.Enum):
    """
    Fate of the messages under a removed target.

    KEEP_MESSAGES: Messages stay; their author reference becomes NULL
    PURGE_MESSAGES: Messages, their reactions and their images are deleted
    """

    KEEP_MESSAGES = "keep_messages"
    PURGE_MESSAGES = "purge_messages"


@dataclass
class CascadeReport:
    """What one cascade removed."""

    target: str
    target_id: uuid.UUID
    policy: RetentionPolicy
    messages: int = 0
    reactions: int = 0
    drafts: int = 0
    conversations: int = 0
    channels: int = 0
    members: int = 0
    blobs_deleted: int = 0
    blobs_failed: int = 0


class CascadeDeletionCoordinator(BaseService):
    """
    Removes channels, members and workspaces together with their dependants.

    Policies per target:
        channel: PURGE_MESSAGES
        member: KEEP_MESSAGES
        workspace: PURGE_MESSAGES
    """

    POLICIES = {
        "channel": RetentionPolicy.PURGE_MESSAGES,
        "member": RetentionPolicy.KEEP_MESSAGES,
        "workspace": RetentionPolicy.PURGE_MESSAGES,
    }

    # =========================================================================
    # Channel
    # =========================================================================

    @classmethod
    def remove_channel(
        cls,
        actor: ActorContext,
        channel_id: uuid.UUID,
        blob_store: BlobStore | None = None,
    ) -> CascadeReport:
        """
        Delete a channel with every message addressed to it.

        Top-level messages and thread replies are both removed, after a
        best-effort deletion of their images. Drafts and read markers for
        the channel go with it.

        Error codes:
            CHANNEL_NOT_FOUND, NOT_A_MEMBER, ADMIN_REQUIRED
        """
        channel = Channel.objects.filter(pk=channel_id).first()
        if channel is None:
            raise NotFoundError("Channel not found", error_code="CHANNEL_NOT_FOUND")
        MembershipResolver.require_admin(actor, channel.workspace_id)

        report = CascadeReport(
            target="channel", target_id=channel.pk, policy=cls.POLICIES["channel"]
        )
        messages = Message.objects.filter(channel_id=channel.pk)
        cls._delete_blobs(messages, report, blob_store)

        with cls.atomic():
            cls._retire_messages(messages, report)
            report.drafts = _delete(Draft.objects.filter(channel_id=channel.pk))
            MessageRead.objects.filter(channel_id=channel.pk).delete()
            report.channels = _delete(Channel.objects.filter(pk=channel.pk))

        cls._log(report)
        return report

    # =========================================================================
    # Member
    # =========================================================================

    @classmethod
    def remove_member(
        cls,
        actor: ActorContext,
        member_id: uuid.UUID,
        blob_store: BlobStore | None = None,
    ) -> CascadeReport:
        """
        Remove a member from a workspace ("leave" or "kick").

        Rules:
            - Any member may remove themselves
            - Only admins may remove someone else, and never another admin
            - The last admin cannot leave

        Messages authored by the member are retained with a NULL author.
        Their reactions, drafts and 1:1 conversations are deleted.

        Error codes:
            MEMBER_NOT_FOUND, NOT_A_MEMBER, ADMIN_REQUIRED,
            ADMIN_CANNOT_BE_REMOVED, LAST_ADMIN
        """
        target = Member.objects.filter(pk=member_id).first()
        if target is None:
            raise NotFoundError("Member not found", error_code="MEMBER_NOT_FOUND")

        current = MembershipResolver.require_member(actor, target.workspace_id)
        is_self = current.pk == target.pk
        if not is_self:
            MembershipResolver.require_admin(actor, target.workspace_id)
            if target.is_admin:
                raise InvalidStateError(
                    "Admins cannot be removed; they must step down first",
                    error_code="ADMIN_CANNOT_BE_REMOVED",
                )

        report = CascadeReport(
            target="member", target_id=target.pk, policy=cls.POLICIES["member"]
        )
        with cls.atomic():
            target = Member.objects.select_for_update().get(pk=target.pk)
            if (
                is_self
                and target.is_admin
                and MembershipResolver.admin_count(target.workspace_id, lock=True) <= 1
            ):
                raise InvalidStateError(
                    "The last admin cannot leave the workspace",
                    error_code="LAST_ADMIN",
                )

            conversations = Conversation.objects.filter(
                Q(member_one=target) | Q(member_two=target)
            )
            conversation_ids = list(conversations.values_list("pk", flat=True))

            report.reactions = _delete(Reaction.objects.filter(member=target))
            report.drafts = _delete(
                Draft.objects.filter(
                    Q(member=target) | Q(conversation_id__in=conversation_ids)
                )
            )
            MessageRead.objects.filter(conversation_id__in=conversation_ids).delete()
            report.conversations = _delete(conversations.filter(pk__in=conversation_ids))
            report.members = _delete(Member.objects.filter(pk=target.pk))

        cls._log(report)
        return report

    # =========================================================================
    # Workspace
    # =========================================================================

    @classmethod
    def remove_workspace(
        cls,
        actor: ActorContext,
        workspace_id: uuid.UUID,
        blob_store: BlobStore | None = None,
    ) -> CascadeReport:
        """
        Delete a workspace and everything in it.

        Order: reactions, messages (after their images), drafts, read
        markers, conversations, channels, members, then the workspace row.

        Error codes:
            WORKSPACE_NOT_FOUND, NOT_A_MEMBER, ADMIN_REQUIRED
        """
        workspace = Workspace.objects.filter(pk=workspace_id).first()
        if workspace is None:
            raise NotFoundError("Workspace not found", error_code="WORKSPACE_NOT_FOUND")
        MembershipResolver.require_admin(actor, workspace.pk)

        report = CascadeReport(
            target="workspace", target_id=workspace.pk, policy=cls.POLICIES["workspace"]
        )
        messages = Message.objects.filter(workspace_id=workspace.pk)
        cls._delete_blobs(messages, report, blob_store)

        with cls.atomic():
            report.reactions = _delete(Reaction.objects.filter(workspace_id=workspace.pk))
            cls._retire_messages(messages, report)
            report.drafts = _delete(Draft.objects.filter(workspace_id=workspace.pk))
            MessageRead.objects.filter(workspace_id=workspace.pk).delete()
            report.conversations = _delete(
                Conversation.objects.filter(workspace_id=workspace.pk)
            )
            report.channels = _delete(Channel.objects.filter(workspace_id=workspace.pk))
            report.members = _delete(Member.objects.filter(workspace_id=workspace.pk))
            Workspace.objects.filter(pk=workspace.pk).delete()

        cls._log(report)
        return report

    # =========================================================================
    # Helpers
    # =========================================================================

    @classmethod
    def _delete_blobs(
        cls,
        messages: QuerySet,
        report: CascadeReport,
        blob_store: BlobStore | None,
    ) -> None:
        """Best-effort image deletion for a snapshot of messages."""
        if report.policy is RetentionPolicy.KEEP_MESSAGES:
            return
        store = blob_store or get_blob_store()
        for message_id, images in messages.values_list("pk", "images"):
            blob_ids = [blob_id for blob_id in images or [] if blob_id]
            if not blob_ids:
                continue
            deleted = store.delete_quietly(blob_ids)
            report.blobs_deleted += deleted
            report.blobs_failed += len(blob_ids) - deleted
            if deleted < len(blob_ids):
                cls.get_logger().warning(
                    f"{len(blob_ids) - deleted} image(s) of message {message_id} "
                    "could not be deleted"
                )

    @classmethod
    def _retire_messages(cls, messages: QuerySet, report: CascadeReport) -> None:
        """Apply the report's retention policy to a message queryset."""
        if report.policy is RetentionPolicy.KEEP_MESSAGES:
            return
        message_ids = list(messages.values_list("pk", flat=True))
        report.reactions += _delete(Reaction.objects.filter(message_id__in=message_ids))
        report.messages = _delete(Message.objects.filter(pk__in=message_ids))
        for message_id in message_ids:
            schedule_unindex(message_id)

    @classmethod
    def _log(cls, report: CascadeReport) -> None:
        cls.get_logger().info(
            f"Removed {report.target} {report.target_id} ({report.policy.value}): "
            f"messages={report.messages} reactions={report.reactions} "
            f"drafts={report.drafts} conversations={report.conversations} "
            f"channels={report.channels} members={report.members} "
            f"blobs_deleted={report.blobs_deleted} blobs_failed={report.blobs_failed}"
        )
