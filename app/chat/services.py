"""
Chat system service layer.

This module provides the business logic for workspace messaging, keeping
messages, threads, unread markers, reaction tallies, call sessions and
drafts consistent with each other.

Services:
    ConversationLocator: Resolves addressing tuples (thread-in-DM inheritance)
    ConversationService: 1:1 conversation create-or-get and listing
    MessageService: Message create/update/remove/list, threads, call dedup
    ReactionService: Reaction toggle and folded summaries
    ReadStateService: Read watermarks, unread alerts and call activity
    DraftService: Per-member drafts keyed by exact addressing tuple

Design Principles:
    - Services are stateless (use class methods)
    - Every public operation takes an explicit ActorContext
    - Mutations raise core.exceptions errors; read paths return None or
      empty results for non-members
    - Each mutation runs in one transaction; rows that concurrent writers
      may touch (thread parents, call targets) are locked first

Usage:
    from chat.services import MessageService

    message, created = MessageService.create(
        actor,
        workspace.id,
        channel_id=channel.id,
        body="Hello everyone!",
    )
"""

from __future__ import annotations

from collections import defaultdict
from typing import TYPE_CHECKING

from django.db.models import (
    Case,
    Count,
    DateTimeField,
    IntegerField,
    Max,
    Q,
    Value,
    When,
)
from django.db.models.functions import Coalesce
from django.utils import timezone

from chat.blobs import get_blob_store
from chat.constants import DRAFT_CONFIG, MESSAGE_CONFIG, REACTION_CONFIG
from chat.models import (
    Conversation,
    Draft,
    Message,
    MessageRead,
    MessageType,
    Reaction,
)
from chat.search_index import schedule_index, schedule_unindex
from chat.types import Address, Cursor, MessagePage, ReactionSummary, ThreadSummary
from core.exceptions import (
    InvalidStateError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from core.services import BaseService
from workspaces.authorization import MembershipResolver
from workspaces.models import Channel, Member

if TYPE_CHECKING:
    import uuid

    from chat.blobs import BlobStore
    from core.context import ActorContext


def _author_name(member: Member | None) -> str:
    if member is None:
        return ""
    return member.user.display_name


# =============================================================================
# Conversation Locator
# =============================================================================


class ConversationLocator(BaseService):
    """
    Resolves the channel/conversation a message, draft or listing belongs to.

    Thread replies inside a 1:1 conversation arrive with only a parent id;
    they inherit the parent's conversation here. Every operation that reads
    or writes by addressing tuple goes through resolve() so they all bucket
    the same request identically.
    """

    @classmethod
    def resolve(cls, address: Address) -> Address:
        """
        Return the effective address.

        A thread parent must live in the workspace and, when the address
        also names a target, in that same target. A parent elsewhere is
        reported as missing so private conversations do not leak.

        Raises:
            ValidationError: Both a channel and a conversation were given, or
                nothing at all was given
            NotFoundError: The parent is missing or outside the named target
        """
        if address.channel_id is not None and address.conversation_id is not None:
            raise ValidationError(
                "Specify a channel or a conversation, not both",
                error_code="INVALID_ADDRESS",
            )
        if not address.is_thread:
            if address.has_target:
                return address
            raise ValidationError(
                "A channel, conversation or parent message is required",
                error_code="INVALID_ADDRESS",
            )

        parent = (
            Message.objects.filter(
                pk=address.parent_message_id,
                workspace_id=address.workspace_id,
            )
            .values("channel_id", "conversation_id")
            .first()
        )
        if parent is None:
            raise NotFoundError("Parent message not found", error_code="PARENT_NOT_FOUND")

        parent_address = address.with_target(
            channel_id=parent["channel_id"],
            conversation_id=parent["conversation_id"],
        )
        if address.is_bare_thread_reply:
            return parent_address
        if parent_address.top_level() != address.top_level():
            raise NotFoundError("Parent message not found", error_code="PARENT_NOT_FOUND")
        return address

    @classmethod
    def load_target(
        cls,
        member: Member,
        address: Address,
        lock: bool = False,
    ) -> Channel | Conversation:
        """
        Load the top-level target of a resolved address for a member.

        Args:
            member: Acting member
            address: Resolved address
            lock: Lock the target row until the transaction ends

        Raises:
            NotFoundError: Channel or conversation missing from the workspace
            UnauthorizedError: Member is not one side of the conversation
        """
        if address.channel_id is not None:
            channels = Channel.objects.filter(
                pk=address.channel_id, workspace_id=address.workspace_id
            )
            if lock:
                channels = channels.select_for_update()
            channel = channels.first()
            if channel is None:
                raise NotFoundError("Channel not found", error_code="CHANNEL_NOT_FOUND")
            return channel

        conversations = Conversation.objects.filter(
            pk=address.conversation_id, workspace_id=address.workspace_id
        )
        if lock:
            conversations = conversations.select_for_update()
        conversation = conversations.first()
        if conversation is None:
            raise NotFoundError(
                "Conversation not found", error_code="CONVERSATION_NOT_FOUND"
            )
        if not conversation.involves(member.pk):
            raise UnauthorizedError(
                "Not a participant of this conversation",
                error_code="NOT_A_PARTICIPANT",
            )
        return conversation

    @classmethod
    def can_read(cls, member: Member, address: Address) -> bool:
        """Whether a member may read messages at a resolved address."""
        if address.conversation_id is None:
            return True
        return Conversation.objects.filter(
            Q(member_one=member) | Q(member_two=member),
            pk=address.conversation_id,
        ).exists()


# =============================================================================
# Conversation Service
# =============================================================================


class ConversationService(BaseService):
    """
    Service for 1:1 conversations between workspace members.

    Methods:
        create_or_get: Return the pair's conversation, creating it if needed
        get: Fetch a conversation the actor takes part in
        list_for_member: Actor's conversations with unread/call status
    """

    @classmethod
    def create_or_get(
        cls,
        actor: ActorContext,
        workspace_id: uuid.UUID,
        member_id: uuid.UUID,
    ) -> tuple[Conversation, bool]:
        """
        Return the conversation between the actor and another member.

        The pair is looked up before inserting; the unique constraint on the
        canonical pair turns a concurrent duplicate insert into a lookup.

        Returns:
            (conversation, created)

        Error codes:
            NOT_A_MEMBER: Actor is not in the workspace
            MEMBER_NOT_FOUND: Other member is not in the workspace
            SELF_CONVERSATION: Actor and other member are the same
        """
        current = MembershipResolver.require_member(actor, workspace_id)
        other = Member.objects.filter(pk=member_id, workspace_id=workspace_id).first()
        if other is None:
            raise NotFoundError("Member not found", error_code="MEMBER_NOT_FOUND")
        if other.pk == current.pk:
            raise InvalidStateError(
                "Cannot start a conversation with yourself",
                error_code="SELF_CONVERSATION",
            )

        member_one_id, member_two_id = Conversation.canonical_pair(current.pk, other.pk)
        with cls.atomic():
            conversation, created = Conversation.objects.get_or_create(
                workspace_id=workspace_id,
                member_one_id=member_one_id,
                member_two_id=member_two_id,
            )

        if created:
            cls.get_logger().info(
                f"Created conversation {conversation.id} in workspace {workspace_id}"
            )
        return conversation, created

    @classmethod
    def get(cls, actor: ActorContext, conversation_id: uuid.UUID) -> Conversation | None:
        """Fetch a conversation, or None if missing or not visible to the actor."""
        conversation = Conversation.objects.filter(pk=conversation_id).first()
        if conversation is None:
            return None
        member = MembershipResolver.resolve_member(actor, conversation.workspace_id)
        if member is None or not conversation.involves(member.pk):
            return None
        cls._annotate(member, [conversation])
        return conversation

    @classmethod
    def list_for_member(
        cls,
        actor: ActorContext,
        workspace_id: uuid.UUID,
        active_conversation_id: uuid.UUID | None = None,
    ) -> list[Conversation]:
        """
        List the actor's conversations in a workspace.

        Each conversation is annotated with counterpart (Member), has_alert
        and is_video_active. The active conversation never shows an alert.
        """
        member = MembershipResolver.resolve_member(actor, workspace_id)
        if member is None:
            return []
        conversations = list(
            Conversation.objects.filter(
                Q(member_one=member) | Q(member_two=member),
                workspace_id=workspace_id,
            ).order_by("created_at")
        )
        cls._annotate(member, conversations, active_conversation_id)
        return conversations

    @classmethod
    def _annotate(cls, member, conversations, active_conversation_id=None) -> None:
        counterpart_ids = [c.counterpart_id(member.pk) for c in conversations]
        counterparts = Member.objects.select_related("user").in_bulk(counterpart_ids)
        for conversation in conversations:
            conversation.counterpart = counterparts.get(conversation.counterpart_id(member.pk))
            conversation.has_alert = ReadStateService.compute_alert(
                member,
                conversation_id=conversation.pk,
                exclude_if_active=conversation.pk == active_conversation_id,
            )
            conversation.is_video_active = ReadStateService.is_call_active(
                member, conversation_id=conversation.pk
            )


# =============================================================================
# Message Service
# =============================================================================


class MessageService(BaseService):
    """
    Service for message operations.

    Methods:
        create: Send a message or join the open call at an address
        update: Edit body or finalize a call
        remove: Author-only hard delete
        get: Single enriched message
        list_messages: Newest-first enriched page at an address
        list_threads: Workspace threads ordered by last reply
    """

    @classmethod
    def create(
        cls,
        actor: ActorContext,
        workspace_id: uuid.UUID,
        *,
        body: str = "",
        channel_id: uuid.UUID | None = None,
        conversation_id: uuid.UUID | None = None,
        parent_message_id: uuid.UUID | None = None,
        images: list[str] | None = None,
        message_type: str | None = None,
    ) -> tuple[Message, bool]:
        """
        Create a message at an addressing tuple.

        Implementation:
            1. Authorize the actor as a workspace member
            2. Resolve the address (bare thread reply -> parent's target; a
               named target must be the parent's own)
            3. For calls, return the newest message at the exact address if
               it is an unfinished call
            4. Insert the message
            5. For replies, bump the parent's reply_count/last_reply_at in the
               same transaction, under a row lock on the parent
            6. Purge the author's draft for the address

        Returns:
            (message, created) where created is False when an open call was
            joined instead of starting a new one

        Error codes:
            NOT_A_MEMBER, INVALID_ADDRESS, INVALID_MESSAGE_TYPE, TOO_MANY_IMAGES,
            CHANNEL_NOT_FOUND, CONVERSATION_NOT_FOUND, NOT_A_PARTICIPANT,
            PARENT_NOT_FOUND
        """
        member = MembershipResolver.require_member(actor, workspace_id)

        message_type = message_type or MessageType.TEXT
        if message_type not in MessageType.values:
            raise ValidationError(
                f"Unknown message type: {message_type}",
                error_code="INVALID_MESSAGE_TYPE",
            )
        images = [image for image in (images or []) if image]
        if len(images) > MESSAGE_CONFIG.MAX_IMAGES_PER_MESSAGE:
            raise ValidationError(
                f"A message can carry at most {MESSAGE_CONFIG.MAX_IMAGES_PER_MESSAGE} images",
                error_code="TOO_MANY_IMAGES",
            )

        address = ConversationLocator.resolve(
            Address(
                workspace_id=workspace_id,
                channel_id=channel_id,
                conversation_id=conversation_id,
                parent_message_id=parent_message_id,
            )
        )
        is_call = message_type == MessageType.CALL

        with cls.atomic():
            # Concurrent "start call" requests on one target queue on this lock
            ConversationLocator.load_target(member, address, lock=is_call)

            parent = None
            if address.is_thread:
                parent = (
                    Message.objects.select_for_update()
                    .filter(pk=address.parent_message_id, workspace_id=workspace_id)
                    .first()
                )
                if parent is None:
                    raise NotFoundError(
                        "Parent message not found", error_code="PARENT_NOT_FOUND"
                    )

            if is_call:
                latest = (
                    Message.objects.filter(workspace_id=workspace_id, **address.lookup())
                    .order_by("-created_at", "-id")
                    .first()
                )
                if latest is not None and latest.is_unfinished_call:
                    cls.get_logger().info(
                        f"Member {member.id} joined open call {latest.id}"
                    )
                    return latest, False

            message = Message.objects.create(
                workspace_id=workspace_id,
                member=member,
                channel_id=address.channel_id,
                conversation_id=address.conversation_id,
                parent_message_id=address.parent_message_id,
                body=body or "",
                images=images,
                message_type=message_type,
            )

            if parent is not None:
                cls._record_reply(parent, message)

            DraftService.purge(member, address)
            schedule_index(message, author_name=_author_name(member))

        cls.get_logger().info(
            f"Member {member.id} created {message_type} message {message.id} "
            f"in workspace {workspace_id}"
        )
        return message, True

    @classmethod
    def _record_reply(cls, parent: Message, reply: Message) -> None:
        """
        Fold a new reply into its parent's cached thread fields.

        The parent row is already locked by the caller; the counter is still
        expressed as an in-database increment so no concurrent reply can be
        lost even where row locks are not available.
        """
        updates = {
            "reply_count": Coalesce("reply_count", Value(0), output_field=IntegerField())
            + Value(1),
            "last_reply_at": Case(
                When(
                    Q(last_reply_at__isnull=True) | Q(last_reply_at__lt=reply.created_at),
                    then=Value(reply.created_at),
                ),
                default="last_reply_at",
                output_field=DateTimeField(),
            ),
        }
        replier_id = str(reply.member_id)
        if replier_id not in parent.participants:
            updates["participants"] = [*parent.participants, replier_id]
        Message.objects.filter(pk=parent.pk).update(**updates)

    @classmethod
    def _recount_replies(cls, parent_id: uuid.UUID) -> None:
        """Recompute a parent's cached thread fields from its reply set."""
        parent = Message.objects.select_for_update().filter(pk=parent_id).first()
        if parent is None:
            return
        stats = Message.objects.filter(parent_message_id=parent_id).aggregate(
            count=Count("id"), latest=Max("created_at")
        )
        Message.objects.filter(pk=parent.pk).update(
            reply_count=stats["count"] or None,
            last_reply_at=stats["latest"],
        )

    @classmethod
    def update(
        cls,
        actor: ActorContext,
        message_id: uuid.UUID,
        *,
        body: str | None = None,
        call_duration: int | None = None,
        workspace_id: uuid.UUID | None = None,
    ) -> Message:
        """
        Edit a message body or finalize a call.

        Only supplied fields are patched; edited_at is refreshed every time.
        Admins may edit messages in conversations they are not part of.

        Args:
            workspace_id: When given, messages of other workspaces are
                reported as missing

        Error codes:
            MESSAGE_NOT_FOUND, NOT_A_MEMBER, NOT_MESSAGE_AUTHOR,
            CONVERSATION_NOT_FOUND, NOT_A_CALL
        """
        with cls.atomic():
            messages = Message.objects.select_for_update(of=("self",)).filter(pk=message_id)
            if workspace_id is not None:
                messages = messages.filter(workspace_id=workspace_id)
            message = messages.select_related("member__user").first()
            if message is None:
                raise NotFoundError("Message not found", error_code="MESSAGE_NOT_FOUND")

            member = MembershipResolver.require_member(actor, message.workspace_id)
            cls._authorize_update(member, message)

            update_fields = ["edited_at", "updated_at"]
            if body is not None:
                message.body = body
                update_fields.append("body")
            if call_duration is not None:
                if not message.is_call:
                    raise ValidationError(
                        "Only call messages have a duration", error_code="NOT_A_CALL"
                    )
                message.call_duration = call_duration
                update_fields.append("call_duration")
            message.edited_at = timezone.now()
            message.save(update_fields=update_fields)

            schedule_index(message, author_name=_author_name(message.member))

        cls.get_logger().info(f"Member {member.id} updated message {message.id}")
        return message

    @classmethod
    def _authorize_update(cls, member: Member, message: Message) -> None:
        """
        Decide whether a member may update a message.

        text: author or admin
        call: author, admin, or either side of the message's conversation
        anything else: author or admin
        """
        if message.member_id == member.pk or member.is_admin:
            return

        if message.message_type == MessageType.TEXT:
            pass
        elif message.message_type == MessageType.CALL:
            if message.conversation_id is not None:
                conversation = Conversation.objects.filter(
                    pk=message.conversation_id
                ).first()
                if conversation is None:
                    raise NotFoundError(
                        "Conversation not found", error_code="CONVERSATION_NOT_FOUND"
                    )
                if conversation.involves(member.pk):
                    return

        raise UnauthorizedError(
            "Only the author or an admin can edit this message",
            error_code="NOT_MESSAGE_AUTHOR",
        )

    @classmethod
    def remove(cls, actor: ActorContext, message_id: uuid.UUID) -> None:
        """
        Hard delete a message. Only its author may do this.

        Replies are left in place; if the removed message was itself a
        reply, its parent's thread fields are recomputed. Attached images
        are deleted best-effort after commit.

        Error codes:
            MESSAGE_NOT_FOUND, NOT_A_MEMBER, NOT_MESSAGE_AUTHOR
        """
        with cls.atomic():
            message = Message.objects.select_for_update().filter(pk=message_id).first()
            if message is None:
                raise NotFoundError("Message not found", error_code="MESSAGE_NOT_FOUND")

            member = MembershipResolver.require_member(actor, message.workspace_id)
            if message.member_id != member.pk:
                raise UnauthorizedError(
                    "Only the author can delete this message",
                    error_code="NOT_MESSAGE_AUTHOR",
                )

            blob_ids = list(message.images)
            parent_id = message.parent_message_id
            message.delete()

            if parent_id is not None:
                cls._recount_replies(parent_id)

            schedule_unindex(message_id)
            if blob_ids:
                cls.on_commit(lambda: get_blob_store().delete_quietly(blob_ids))

        cls.get_logger().info(f"Member {member.id} removed message {message_id}")

    @classmethod
    def get(cls, actor: ActorContext, message_id: uuid.UUID) -> Message | None:
        """Fetch one enriched message, or None if missing or not visible."""
        message = (
            Message.objects.select_related("member__user")
            .filter(pk=message_id)
            .first()
        )
        if message is None:
            return None
        member = MembershipResolver.resolve_member(actor, message.workspace_id)
        if member is None:
            return None
        address = Address(
            workspace_id=message.workspace_id,
            channel_id=message.channel_id,
            conversation_id=message.conversation_id,
        )
        if not ConversationLocator.can_read(member, address):
            return None
        cls.enrich([message])
        return message

    @classmethod
    def list_messages(
        cls,
        actor: ActorContext,
        workspace_id: uuid.UUID,
        *,
        channel_id: uuid.UUID | None = None,
        conversation_id: uuid.UUID | None = None,
        parent_message_id: uuid.UUID | None = None,
        cursor: str | None = None,
        page_size: int = MESSAGE_CONFIG.DEFAULT_PAGE_SIZE,
    ) -> MessagePage:
        """
        List messages at an address, newest first.

        The main timeline of a channel or conversation holds top-level
        messages only; passing parent_message_id lists that thread. Rows
        are enriched with reactions, image URLs and (top-level only) a
        thread summary.

        Returns:
            MessagePage (empty for non-members)

        Error codes:
            INVALID_ADDRESS, PARENT_NOT_FOUND, INVALID_CURSOR
        """
        member = MembershipResolver.resolve_member(actor, workspace_id)
        if member is None:
            return MessagePage(items=[])

        address = ConversationLocator.resolve(
            Address(
                workspace_id=workspace_id,
                channel_id=channel_id,
                conversation_id=conversation_id,
                parent_message_id=parent_message_id,
            )
        )
        if not ConversationLocator.can_read(member, address):
            return MessagePage(items=[])

        messages = Message.objects.filter(
            workspace_id=workspace_id, **address.lookup()
        ).select_related("member__user")
        messages = cls._apply_cursor(messages, cursor, "created_at")
        rows, next_cursor = cls._paginate(
            messages.order_by("-created_at", "-id"), page_size, "created_at"
        )
        cls.enrich(rows, include_threads=not address.is_thread)
        return MessagePage(items=rows, next_cursor=next_cursor)

    @classmethod
    def list_threads(
        cls,
        actor: ActorContext,
        workspace_id: uuid.UUID,
        *,
        cursor: str | None = None,
        page_size: int = MESSAGE_CONFIG.DEFAULT_PAGE_SIZE,
    ) -> MessagePage:
        """
        List every message with at least one reply, newest reply first.

        Threads in conversations the actor is not part of are left out.
        Each row additionally carries channel (Channel or None) and
        counterpart (Member or None) for routing.
        """
        member = MembershipResolver.resolve_member(actor, workspace_id)
        if member is None:
            return MessagePage(items=[])

        visible_conversations = Conversation.objects.filter(
            Q(member_one=member) | Q(member_two=member),
            workspace_id=workspace_id,
        ).values("pk")
        messages = (
            Message.objects.filter(workspace_id=workspace_id, last_reply_at__isnull=False)
            .filter(
                Q(conversation_id__isnull=True)
                | Q(conversation_id__in=visible_conversations)
            )
            .select_related("member__user", "channel")
        )
        messages = cls._apply_cursor(messages, cursor, "last_reply_at")
        rows, next_cursor = cls._paginate(
            messages.order_by("-last_reply_at", "-id"), page_size, "last_reply_at"
        )

        conversations = Conversation.objects.in_bulk(
            {m.conversation_id for m in rows if m.conversation_id}
        )
        counterparts = Member.objects.select_related("user").in_bulk(
            {c.counterpart_id(member.pk) for c in conversations.values()}
        )
        for message in rows:
            conversation = conversations.get(message.conversation_id)
            message.counterpart = (
                counterparts.get(conversation.counterpart_id(member.pk))
                if conversation
                else None
            )

        cls.enrich(rows)
        return MessagePage(items=rows, next_cursor=next_cursor)

    @classmethod
    def _apply_cursor(cls, messages, cursor: str | None, position_field: str):
        if not cursor:
            return messages
        try:
            decoded = Cursor.decode(cursor)
        except ValueError:
            raise ValidationError("Invalid cursor", error_code="INVALID_CURSOR")
        return messages.filter(
            Q(**{f"{position_field}__lt": decoded.position})
            | Q(**{position_field: decoded.position, "id__lt": decoded.last_id})
        )

    @classmethod
    def _paginate(cls, messages, page_size: int, position_field: str):
        page_size = max(1, min(page_size, MESSAGE_CONFIG.MAX_PAGE_SIZE))
        rows = list(messages[: page_size + 1])
        next_cursor = None
        if len(rows) > page_size:
            rows = rows[:page_size]
            last = rows[-1]
            next_cursor = Cursor(
                position=getattr(last, position_field), last_id=last.pk
            ).encode()
        return rows, next_cursor

    @classmethod
    def enrich(
        cls,
        messages: list[Message],
        include_threads: bool = True,
        blob_store: BlobStore | None = None,
    ) -> list[Message]:
        """
        Attach display data to messages in place.

        Sets on each message:
            reaction_summary: list[ReactionSummary]
            image_urls: resolved URLs, unresolvable blobs omitted
            thread_summary: ThreadSummary for top-level messages, else None
        """
        if not messages:
            return messages
        store = blob_store or get_blob_store()

        reactions = defaultdict(list)
        for reaction in Reaction.objects.filter(
            message_id__in=[m.pk for m in messages]
        ).order_by("created_at", "id"):
            reactions[reaction.message_id].append(reaction)

        threads = {}
        if include_threads:
            threads = cls._thread_summaries([m.pk for m in messages if not m.is_reply])

        for message in messages:
            message.reaction_summary = ReactionService.summarize_rows(reactions[message.pk])
            message.image_urls = store.get_urls(message.images)
            if include_threads and not message.is_reply:
                message.thread_summary = threads.get(message.pk) or ThreadSummary()
            else:
                message.thread_summary = None
        return messages

    @classmethod
    def _thread_summaries(cls, parent_ids: list) -> dict:
        """Build thread summaries from the actual reply rows."""
        summaries: dict = {}
        if not parent_ids:
            return summaries
        replies = (
            Message.objects.filter(parent_message_id__in=parent_ids)
            .select_related("member__user")
            .order_by("created_at", "id")
        )
        for reply in replies:
            summary = summaries.setdefault(reply.parent_message_id, ThreadSummary())
            summary.count += 1
            summary.timestamp = reply.created_at
            user = reply.member.user if reply.member else None
            summary.name = user.display_name if user else ""
            summary.image = (user.image or None) if user else None
        return summaries


# =============================================================================
# Reaction Service
# =============================================================================


class ReactionService(BaseService):
    """
    Service for emoji reactions.

    Storage keeps one row per reaction event and does not enforce
    uniqueness; summaries fold duplicates and toggling removes every copy.
    """

    @classmethod
    def toggle(cls, actor: ActorContext, message_id: uuid.UUID, value: str) -> bool:
        """
        Toggle a reaction value on a message for the actor.

        Returns:
            True if the reaction was added, False if it was removed

        Error codes:
            INVALID_REACTION, MESSAGE_NOT_FOUND, NOT_A_MEMBER, NOT_A_PARTICIPANT
        """
        value = (value or "").strip()
        if not value or len(value) > REACTION_CONFIG.MAX_VALUE_LENGTH:
            raise ValidationError("Invalid reaction", error_code="INVALID_REACTION")

        with cls.atomic():
            message = Message.objects.select_for_update().filter(pk=message_id).first()
            if message is None:
                raise NotFoundError("Message not found", error_code="MESSAGE_NOT_FOUND")

            member = MembershipResolver.require_member(actor, message.workspace_id)
            if message.conversation_id is not None and not ConversationLocator.can_read(
                member,
                Address(
                    workspace_id=message.workspace_id,
                    conversation_id=message.conversation_id,
                ),
            ):
                raise UnauthorizedError(
                    "Not a participant of this conversation",
                    error_code="NOT_A_PARTICIPANT",
                )

            existing = Reaction.objects.filter(message=message, member=member, value=value)
            if existing.exists():
                existing.delete()
                added = False
            else:
                Reaction.objects.create(
                    workspace_id=message.workspace_id,
                    message=message,
                    member=member,
                    value=value,
                )
                added = True

        cls.get_logger().debug(
            f"Member {member.id} {'added' if added else 'removed'} {value} on {message_id}"
        )
        return added

    @classmethod
    def summarize(cls, message: Message) -> list[ReactionSummary]:
        """Fold a message's reactions by value."""
        return cls.summarize_rows(message.reactions.order_by("created_at", "id"))

    @staticmethod
    def summarize_rows(rows) -> list[ReactionSummary]:
        """
        Fold reaction rows by value.

        Values appear in the order of their first row. A member appears at
        most once per value, and count is the number of distinct members.
        """
        summaries: dict[str, ReactionSummary] = {}
        for row in rows:
            summary = summaries.get(row.value)
            if summary is None:
                summary = summaries[row.value] = ReactionSummary(value=row.value, count=0)
            if row.member_id not in summary.member_ids:
                summary.member_ids.append(row.member_id)
                summary.count += 1
        return list(summaries.values())


# =============================================================================
# Read State Service
# =============================================================================


def _target_filter(channel_id=None, conversation_id=None) -> dict:
    if (channel_id is None) == (conversation_id is None):
        raise ValidationError(
            "Specify exactly one of channel or conversation",
            error_code="INVALID_ADDRESS",
        )
    if channel_id is not None:
        return {"channel_id": channel_id}
    return {"conversation_id": conversation_id}


class ReadStateService(BaseService):
    """
    Service for read watermarks and the signals derived from them.

    Methods:
        mark_read: Move the actor's watermark for a target to now
        compute_alert: Whether a target has unread messages from others
        is_call_active: Whether the newest top-level message is an open call
        target_status: Both flags for the actor and one target
    """

    @classmethod
    def mark_read(
        cls,
        actor: ActorContext,
        workspace_id: uuid.UUID,
        *,
        channel_id: uuid.UUID | None = None,
        conversation_id: uuid.UUID | None = None,
    ) -> MessageRead:
        """
        Upsert the actor's watermark for a channel or conversation to now.

        Error codes:
            NOT_A_MEMBER, INVALID_ADDRESS, CHANNEL_NOT_FOUND,
            CONVERSATION_NOT_FOUND, NOT_A_PARTICIPANT
        """
        member = MembershipResolver.require_member(actor, workspace_id)
        target = _target_filter(channel_id, conversation_id)

        with cls.atomic():
            ConversationLocator.load_target(
                member, Address(workspace_id=workspace_id, **target)
            )
            read, _ = MessageRead.objects.update_or_create(
                member=member,
                channel_id=channel_id,
                conversation_id=conversation_id,
                defaults={
                    "workspace_id": workspace_id,
                    "last_read_at": timezone.now(),
                },
            )

        cls.get_logger().debug(f"Member {member.id} read {target} at {read.last_read_at}")
        return read

    @classmethod
    def compute_alert(
        cls,
        member: Member,
        *,
        channel_id: uuid.UUID | None = None,
        conversation_id: uuid.UUID | None = None,
        exclude_if_active: bool = False,
    ) -> bool:
        """
        Whether a target holds a message from someone else newer than the
        member's watermark.

        Any qualifying message counts, not only the newest one: the newest
        row may be the member's own late send. Without a watermark every
        message from someone else qualifies. Messages of departed authors
        count as someone else's. Thread replies in the target count too, so
        a reply raises the alert although it never shows on the main
        timeline; is_call_active looks at top-level messages only.

        Args:
            member: Member whose unread state is computed
            exclude_if_active: The member is viewing this target right now;
                always False
        """
        if exclude_if_active:
            return False
        target = _target_filter(channel_id, conversation_id)

        watermark = (
            MessageRead.objects.filter(member=member, **target)
            .values_list("last_read_at", flat=True)
            .first()
        )
        unread = Message.objects.filter(workspace_id=member.workspace_id, **target).exclude(
            member=member
        )
        if watermark is not None:
            unread = unread.filter(created_at__gt=watermark)
        return unread.exists()

    @classmethod
    def is_call_active(
        cls,
        member: Member,
        *,
        channel_id: uuid.UUID | None = None,
        conversation_id: uuid.UUID | None = None,
    ) -> bool:
        """Whether the newest top-level message of a target is an open call."""
        target = _target_filter(channel_id, conversation_id)
        latest = (
            Message.objects.filter(
                workspace_id=member.workspace_id,
                parent_message__isnull=True,
                **target,
            )
            .only("message_type", "call_duration")
            .order_by("-created_at", "-id")
            .first()
        )
        return latest is not None and latest.is_unfinished_call

    @classmethod
    def target_status(
        cls,
        actor: ActorContext,
        workspace_id: uuid.UUID,
        *,
        channel_id: uuid.UUID | None = None,
        conversation_id: uuid.UUID | None = None,
        exclude_if_active: bool = False,
    ) -> dict | None:
        """
        Unread and call flags of one target for the actor.

        Returns:
            {"has_alert": bool, "is_video_active": bool}, or None for
            non-members
        """
        member = MembershipResolver.resolve_member(actor, workspace_id)
        if member is None:
            return None
        return {
            "has_alert": cls.compute_alert(
                member,
                channel_id=channel_id,
                conversation_id=conversation_id,
                exclude_if_active=exclude_if_active,
            ),
            "is_video_active": cls.is_call_active(
                member, channel_id=channel_id, conversation_id=conversation_id
            ),
        }


# =============================================================================
# Draft Service
# =============================================================================


class DraftService(BaseService):
    """
    Service for per-member drafts.

    A draft is keyed by (member, channel, conversation, parent_message),
    every part matched exactly including NULLs, after the address has been
    resolved the same way message creation resolves it.
    """

    @classmethod
    def _address(cls, workspace_id, channel_id, conversation_id, parent_message_id):
        return ConversationLocator.resolve(
            Address(
                workspace_id=workspace_id,
                channel_id=channel_id,
                conversation_id=conversation_id,
                parent_message_id=parent_message_id,
            )
        )

    @classmethod
    def _lookup(cls, member: Member, address: Address):
        return Draft.objects.filter(
            member=member, workspace_id=address.workspace_id, **address.lookup()
        ).order_by("-updated_at", "-id")

    @classmethod
    def get(
        cls,
        actor: ActorContext,
        workspace_id: uuid.UUID,
        *,
        channel_id: uuid.UUID | None = None,
        conversation_id: uuid.UUID | None = None,
        parent_message_id: uuid.UUID | None = None,
    ) -> Draft | None:
        """Return the actor's draft for an address, or None."""
        member = MembershipResolver.resolve_member(actor, workspace_id)
        if member is None:
            return None
        address = cls._address(workspace_id, channel_id, conversation_id, parent_message_id)
        return cls._lookup(member, address).first()

    @classmethod
    def save(
        cls,
        actor: ActorContext,
        workspace_id: uuid.UUID,
        body: str,
        *,
        channel_id: uuid.UUID | None = None,
        conversation_id: uuid.UUID | None = None,
        parent_message_id: uuid.UUID | None = None,
    ) -> Draft:
        """
        Create or replace the actor's draft for an address.

        Error codes:
            NOT_A_MEMBER, INVALID_ADDRESS, PARENT_NOT_FOUND
        """
        member = MembershipResolver.require_member(actor, workspace_id)
        address = cls._address(workspace_id, channel_id, conversation_id, parent_message_id)

        with cls.atomic():
            # Serializes a member's draft writes so one address keeps one row
            Member.objects.select_for_update().filter(pk=member.pk).first()
            draft = cls._lookup(member, address).first()
            if draft is None:
                draft = Draft.objects.create(
                    workspace_id=workspace_id,
                    member=member,
                    body=body or "",
                    **address.lookup(),
                )
            else:
                draft.body = body or ""
                draft.save(update_fields=["body", "updated_at"])

        return draft

    @classmethod
    def remove(
        cls,
        actor: ActorContext,
        workspace_id: uuid.UUID,
        *,
        channel_id: uuid.UUID | None = None,
        conversation_id: uuid.UUID | None = None,
        parent_message_id: uuid.UUID | None = None,
    ) -> bool:
        """
        Delete the actor's draft for an address.

        Returns:
            True if a draft was deleted
        """
        member = MembershipResolver.require_member(actor, workspace_id)
        address = cls._address(workspace_id, channel_id, conversation_id, parent_message_id)
        with cls.atomic():
            return cls.purge(member, address) > 0

    @classmethod
    def purge(cls, member: Member, address: Address) -> int:
        """Delete a member's drafts for a resolved address. Used on send."""
        deleted, _ = cls._lookup(member, address).delete()
        return deleted

    @classmethod
    def list_for_member(cls, actor: ActorContext, workspace_id: uuid.UUID) -> list[Draft]:
        """
        List the actor's drafts in a workspace, newest first.

        Each draft is annotated with:
            display_title: channel name, else conversation counterpart name,
                else the thread parent's author name, else a placeholder
            kind: thread, channel, conversation or unknown
            target_id: channel id, counterpart member id or parent message id
        """
        member = MembershipResolver.resolve_member(actor, workspace_id)
        if member is None:
            return []

        drafts = list(
            Draft.objects.filter(member=member, workspace_id=workspace_id).order_by(
                "-created_at", "-id"
            )
        )
        channels = Channel.objects.in_bulk({d.channel_id for d in drafts if d.channel_id})
        conversations = Conversation.objects.in_bulk(
            {d.conversation_id for d in drafts if d.conversation_id}
        )
        counterparts = Member.objects.select_related("user").in_bulk(
            {c.counterpart_id(member.pk) for c in conversations.values()}
        )
        parents = Message.objects.select_related("member__user").in_bulk(
            {d.parent_message_id for d in drafts if d.parent_message_id}
        )

        for draft in drafts:
            channel = channels.get(draft.channel_id)
            conversation = conversations.get(draft.conversation_id)
            counterpart = (
                counterparts.get(conversation.counterpart_id(member.pk))
                if conversation
                else None
            )
            parent = parents.get(draft.parent_message_id)

            if channel is not None:
                draft.display_title = f"{DRAFT_CONFIG.CHANNEL_TITLE_PREFIX}{channel.name}"
            elif counterpart is not None:
                draft.display_title = counterpart.user.display_name
            elif parent is not None and parent.member is not None:
                draft.display_title = parent.member.user.display_name
            else:
                draft.display_title = DRAFT_CONFIG.UNTITLED_PLACEHOLDER

            if draft.parent_message_id is not None:
                draft.kind = DRAFT_CONFIG.KIND_THREAD
                draft.target_id = draft.parent_message_id
            elif draft.channel_id is not None:
                draft.kind = DRAFT_CONFIG.KIND_CHANNEL
                draft.target_id = draft.channel_id
            elif draft.conversation_id is not None:
                draft.kind = DRAFT_CONFIG.KIND_CONVERSATION
                draft.target_id = counterpart.pk if counterpart else None
            else:
                draft.kind = DRAFT_CONFIG.KIND_UNKNOWN
                draft.target_id = None

        return drafts
