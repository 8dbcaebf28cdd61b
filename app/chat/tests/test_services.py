"""
Tests for chat service layer business logic.

This module tests the chat services:
- ConversationLocator: Address resolution (thread-in-conversation inheritance)
- ConversationService: 1:1 conversation create-or-get and listing
- MessageService: Send, reply, edit, delete, list, threads, call sessions
- ReactionService: Toggle and folded summaries
- ReadStateService: Watermarks, unread alerts and call activity
- DraftService: Exact-address drafts and the draft list

Test Organization:
    - Each service method has its own test class
    - Each test validates ONE specific behavior
    - Tests use descriptive names following: test_<scenario>_<expected_outcome>

Testing Philosophy:
    Tests focus on observable behavior, not implementation details:
    - Returned values and database state
    - Error codes for specific failure modes
"""

import time
import uuid
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import timedelta

import pytest
from django.core.files.base import ContentFile
from django.core.files.storage import storages
from django.db import OperationalError, connection
from django.utils import timezone

from chat.models import Conversation, Draft, Message, MessageRead, MessageType, Reaction
from chat.services import (
    ConversationLocator,
    ConversationService,
    DraftService,
    MessageService,
    ReactionService,
    ReadStateService,
)
from chat.tests.factories import (
    CallMessageFactory,
    DraftFactory,
    MessageFactory,
    MessageReadFactory,
    ReactionFactory,
)
from chat.types import Address, ThreadSummary
from core.exceptions import (
    InvalidStateError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from workspaces.services import MemberService
from workspaces.tests.factories import ChannelFactory, MemberFactory, WorkspaceFactory


def send(actor, workspace, **kwargs):
    """Create a message and return it (drops the created flag)."""
    message, _ = MessageService.create(actor, workspace.id, **kwargs)
    return message


def newest_first(messages):
    return sorted(messages, key=lambda m: (m.created_at, m.id), reverse=True)


# =============================================================================
# ConversationLocator
# =============================================================================


class TestConversationLocatorResolve:
    def test_channel_address_unchanged(self, workspace, channel):
        address = Address(workspace_id=workspace.id, channel_id=channel.id)

        assert ConversationLocator.resolve(address) == address

    def test_channel_and_conversation_rejected(self, workspace, channel, conversation):
        with pytest.raises(ValidationError) as exc_info:
            ConversationLocator.resolve(
                Address(
                    workspace_id=workspace.id,
                    channel_id=channel.id,
                    conversation_id=conversation.id,
                )
            )

        assert exc_info.value.error_code == "INVALID_ADDRESS"

    def test_empty_address_rejected(self, workspace):
        with pytest.raises(ValidationError) as exc_info:
            ConversationLocator.resolve(Address(workspace_id=workspace.id))

        assert exc_info.value.error_code == "INVALID_ADDRESS"

    def test_bare_reply_inherits_parent_conversation(self, workspace, member, conversation):
        """
        A reply that names only its parent lands in the parent's conversation.

        Why it matters: Clients opening a thread inside a 1:1 conversation
        only know the parent id. Without inheritance the reply would be
        filed under no target and vanish from the conversation's thread.
        """
        parent = MessageFactory(member=member, channel=None, conversation=conversation)

        resolved = ConversationLocator.resolve(
            Address(workspace_id=workspace.id, parent_message_id=parent.id)
        )

        assert resolved.conversation_id == conversation.id
        assert resolved.channel_id is None
        assert resolved.parent_message_id == parent.id

    def test_bare_reply_inherits_parent_channel(self, workspace, member, channel):
        parent = MessageFactory(member=member, channel=channel)

        resolved = ConversationLocator.resolve(
            Address(workspace_id=workspace.id, parent_message_id=parent.id)
        )

        assert resolved.channel_id == channel.id

    def test_missing_parent(self, workspace):
        with pytest.raises(NotFoundError) as exc_info:
            ConversationLocator.resolve(
                Address(workspace_id=workspace.id, parent_message_id=uuid.uuid4())
            )

        assert exc_info.value.error_code == "PARENT_NOT_FOUND"

    def test_reply_with_parent_in_same_channel_unchanged(self, workspace, member, channel):
        parent = MessageFactory(member=member, channel=channel)
        address = Address(workspace_id=workspace.id, channel_id=channel.id, parent_message_id=parent.id)

        assert ConversationLocator.resolve(address) == address

    def test_parent_in_another_channel_not_found(self, workspace, member, channel):
        parent = MessageFactory(member=member, channel=ChannelFactory(workspace=workspace))

        with pytest.raises(NotFoundError) as exc_info:
            ConversationLocator.resolve(
                Address(workspace_id=workspace.id, channel_id=channel.id, parent_message_id=parent.id)
            )

        assert exc_info.value.error_code == "PARENT_NOT_FOUND"

    def test_conversation_parent_behind_channel_not_found(self, workspace, member, channel, conversation):
        """
        Naming a channel does not open a thread whose parent sits in a 1:1.

        Why it matters: Channel access is open to every member, so trusting
        the channel alone would let anyone write into a private thread.
        """
        parent = MessageFactory(member=member, channel=None, conversation=conversation)

        with pytest.raises(NotFoundError) as exc_info:
            ConversationLocator.resolve(
                Address(workspace_id=workspace.id, channel_id=channel.id, parent_message_id=parent.id)
            )

        assert exc_info.value.error_code == "PARENT_NOT_FOUND"


class TestConversationLocatorLoadTarget:
    def test_missing_channel(self, workspace, member):
        with pytest.raises(NotFoundError) as exc_info:
            ConversationLocator.load_target(
                member, Address(workspace_id=workspace.id, channel_id=uuid.uuid4())
            )

        assert exc_info.value.error_code == "CHANNEL_NOT_FOUND"

    def test_channel_of_other_workspace_not_found(self, workspace, member):
        foreign = ChannelFactory()

        with pytest.raises(NotFoundError):
            ConversationLocator.load_target(
                member, Address(workspace_id=workspace.id, channel_id=foreign.id)
            )

    def test_non_participant_rejected(self, workspace, admin_member, conversation):
        with pytest.raises(UnauthorizedError) as exc_info:
            ConversationLocator.load_target(
                admin_member,
                Address(workspace_id=workspace.id, conversation_id=conversation.id),
            )

        assert exc_info.value.error_code == "NOT_A_PARTICIPANT"

    def test_participant_loads_conversation(self, workspace, member, conversation):
        target = ConversationLocator.load_target(
            member, Address(workspace_id=workspace.id, conversation_id=conversation.id)
        )

        assert target == conversation


# =============================================================================
# ConversationService
# =============================================================================


class TestConversationServiceCreateOrGet:
    def test_creates_then_returns_existing(self, workspace, member, other_member, member_actor, other_actor):
        """
        Either side opening the conversation gets the same row.

        Why it matters: The pair is unordered; a second row for the same
        two members would split their history.
        """
        first, created = ConversationService.create_or_get(member_actor, workspace.id, other_member.id)
        second, created_again = ConversationService.create_or_get(other_actor, workspace.id, member.id)

        assert created is True
        assert created_again is False
        assert first.pk == second.pk
        assert Conversation.objects.count() == 1
        assert first.member_one_id < first.member_two_id

    def test_self_conversation_rejected(self, workspace, member, member_actor):
        with pytest.raises(InvalidStateError) as exc_info:
            ConversationService.create_or_get(member_actor, workspace.id, member.id)

        assert exc_info.value.error_code == "SELF_CONVERSATION"

    def test_member_of_other_workspace_not_found(self, workspace, member_actor):
        stranger = MemberFactory()

        with pytest.raises(NotFoundError) as exc_info:
            ConversationService.create_or_get(member_actor, workspace.id, stranger.id)

        assert exc_info.value.error_code == "MEMBER_NOT_FOUND"

    def test_outsider_rejected(self, workspace, member, outsider_actor):
        with pytest.raises(UnauthorizedError):
            ConversationService.create_or_get(outsider_actor, workspace.id, member.id)


class TestConversationServiceReads:
    def test_list_for_member_with_counterpart(self, workspace, member, other_member, conversation, member_actor):
        MessageFactory(member=other_member, channel=None, conversation=conversation)

        conversations = ConversationService.list_for_member(member_actor, workspace.id)

        assert conversations == [conversation]
        assert conversations[0].counterpart == other_member
        assert conversations[0].has_alert is True
        assert conversations[0].is_video_active is False

    def test_active_conversation_has_no_alert(self, workspace, other_member, conversation, member_actor):
        MessageFactory(member=other_member, channel=None, conversation=conversation)

        conversations = ConversationService.list_for_member(
            member_actor, workspace.id, active_conversation_id=conversation.id
        )

        assert conversations[0].has_alert is False

    def test_third_member_cannot_see_conversation(self, workspace, conversation, admin_actor):
        assert ConversationService.list_for_member(admin_actor, workspace.id) == []
        assert ConversationService.get(admin_actor, conversation.id) is None

    def test_get_for_participant(self, conversation, other_actor, member):
        fetched = ConversationService.get(other_actor, conversation.id)

        assert fetched == conversation
        assert fetched.counterpart == member


# =============================================================================
# MessageService.create
# =============================================================================


class TestMessageServiceCreate:
    def test_creates_channel_message(self, workspace, channel, member, member_actor):
        message, created = MessageService.create(
            member_actor, workspace.id, channel_id=channel.id, body="Hello"
        )

        assert created is True
        assert message.member == member
        assert message.channel_id == channel.id
        assert message.conversation_id is None
        assert message.message_type == MessageType.TEXT

    def test_outsider_cannot_post(self, workspace, channel, outsider_actor):
        with pytest.raises(UnauthorizedError) as exc_info:
            MessageService.create(outsider_actor, workspace.id, channel_id=channel.id, body="hi")

        assert exc_info.value.error_code == "NOT_A_MEMBER"

    def test_non_participant_cannot_post_in_conversation(self, workspace, conversation, admin_actor):
        with pytest.raises(UnauthorizedError) as exc_info:
            MessageService.create(
                admin_actor, workspace.id, conversation_id=conversation.id, body="hi"
            )

        assert exc_info.value.error_code == "NOT_A_PARTICIPANT"
        assert not Message.objects.exists()

    def test_unknown_message_type(self, workspace, channel, member_actor):
        with pytest.raises(ValidationError) as exc_info:
            MessageService.create(
                member_actor, workspace.id, channel_id=channel.id, message_type="sticker"
            )

        assert exc_info.value.error_code == "INVALID_MESSAGE_TYPE"

    def test_too_many_images(self, workspace, channel, member_actor):
        with pytest.raises(ValidationError) as exc_info:
            MessageService.create(
                member_actor,
                workspace.id,
                channel_id=channel.id,
                images=[f"img-{i}.png" for i in range(11)],
            )

        assert exc_info.value.error_code == "TOO_MANY_IMAGES"

    def test_send_purges_draft_at_same_address(self, workspace, channel, member, member_actor):
        """
        Sending clears the author's draft for that exact address only.

        Why it matters: A sent message must not reappear as a draft, but a
        half-written thread reply under the same channel must survive.
        """
        DraftFactory(member=member, channel=channel, body="typing...")
        parent = MessageFactory(member=member, channel=channel)
        thread_draft = DraftFactory(member=member, channel=channel, parent_message=parent)

        send(member_actor, workspace, channel_id=channel.id, body="done")

        assert list(Draft.objects.all()) == [thread_draft]


class TestMessageServiceReplies:
    def test_reply_updates_parent_thread_fields(self, workspace, channel, member, other_member, member_actor, other_actor):
        parent = send(member_actor, workspace, channel_id=channel.id, body="Question")

        first = send(other_actor, workspace, channel_id=channel.id, parent_message_id=parent.id, body="a")
        second = send(member_actor, workspace, channel_id=channel.id, parent_message_id=parent.id, body="b")

        parent.refresh_from_db()
        assert parent.reply_count == 2
        assert parent.last_reply_at == second.created_at
        assert parent.last_reply_at >= first.created_at
        assert parent.participants == [str(other_member.id), str(member.id)]

    def test_bare_reply_in_conversation_stays_in_conversation(self, workspace, conversation, member_actor, other_actor):
        parent = send(member_actor, workspace, conversation_id=conversation.id, body="hey")

        reply = send(other_actor, workspace, parent_message_id=parent.id, body="hi back")

        assert reply.conversation_id == conversation.id
        assert reply.channel_id is None
        assert reply.parent_message_id == parent.id

    def test_many_replies_counted(self, workspace, channel, member_actor, other_actor):
        parent = send(member_actor, workspace, channel_id=channel.id, body="Poll")

        replies = [
            send(actor, workspace, channel_id=channel.id, parent_message_id=parent.id, body=str(n))
            for n, actor in enumerate([other_actor, member_actor] * 3)
        ]

        parent.refresh_from_db()
        assert parent.reply_count == 6
        assert parent.last_reply_at == max(reply.created_at for reply in replies)
        assert len(parent.participants) == 2

    def test_outsider_of_conversation_cannot_reply_via_channel(
        self, workspace, channel, conversation, member_actor, admin_actor
    ):
        """
        A reply naming a channel is rejected when its parent is in a 1:1.

        Why it matters: The admin is not part of the conversation. Accepting
        the reply would bump the private thread's counters and list the
        admin as a participant.
        """
        parent = send(member_actor, workspace, conversation_id=conversation.id, body="private")

        with pytest.raises(NotFoundError) as exc_info:
            send(admin_actor, workspace, channel_id=channel.id, parent_message_id=parent.id, body="hi")

        assert exc_info.value.error_code == "PARENT_NOT_FOUND"
        parent.refresh_from_db()
        assert parent.reply_count is None
        assert parent.participants == []
        assert Message.objects.count() == 1

    def test_reply_in_one_channel_to_parent_in_another(self, workspace, channel, member_actor, other_actor):
        elsewhere = ChannelFactory(workspace=workspace)
        parent = send(member_actor, workspace, channel_id=elsewhere.id, body="over here")

        with pytest.raises(NotFoundError) as exc_info:
            send(other_actor, workspace, channel_id=channel.id, parent_message_id=parent.id, body="lost")

        assert exc_info.value.error_code == "PARENT_NOT_FOUND"
        parent.refresh_from_db()
        assert parent.reply_count is None

    def test_reply_to_missing_parent(self, workspace, channel, member_actor):
        with pytest.raises(NotFoundError) as exc_info:
            send(member_actor, workspace, channel_id=channel.id, parent_message_id=uuid.uuid4())

        assert exc_info.value.error_code == "PARENT_NOT_FOUND"

    def test_top_level_message_has_no_thread_fields(self, workspace, channel, member_actor):
        message = send(member_actor, workspace, channel_id=channel.id, body="hi")

        message.refresh_from_db()
        assert message.reply_count is None
        assert message.last_reply_at is None
        assert message.participants == []


@pytest.mark.django_db(transaction=True)
class TestMessageServiceRepliesConcurrent:
    """
    Replies sent from parallel connections.

    These need transaction=True so each thread commits on its own
    connection against the same parent row.
    """

    def test_concurrent_replies_all_counted(self, workspace, channel, member_actor, other_actor):
        """
        Every concurrent reply lands in the parent's counter.

        Why it matters: Several people answering at once must not lose
        replies from the count or leave last_reply_at behind the newest.
        """
        parent = send(member_actor, workspace, channel_id=channel.id, body="Who's in?")

        def reply(n):
            connection.close()  # Force new connection for thread
            # SQLite reports a locked table instead of waiting on it
            for attempt in range(50):
                try:
                    return send(
                        other_actor, workspace, channel_id=channel.id, parent_message_id=parent.id, body=str(n)
                    )
                except OperationalError:
                    if attempt == 49:
                        raise
                    time.sleep(0.01 * (attempt + 1))

        with ThreadPoolExecutor(max_workers=8) as executor:
            futures = [executor.submit(reply, n) for n in range(8)]
            replies = [future.result() for future in as_completed(futures)]

        parent.refresh_from_db()
        assert Message.objects.filter(parent_message=parent).count() == 8
        assert parent.reply_count == 8
        assert parent.last_reply_at == max(reply.created_at for reply in replies)


class TestMessageServiceCallSessions:
    def test_second_call_joins_open_call(self, workspace, conversation, member_actor, other_actor):
        """
        Starting a call where an unfinished call is newest returns that call.

        Why it matters: Two people pressing "call" at once must end up in
        one call, not two parallel ones.
        """
        call, created = MessageService.create(
            member_actor, workspace.id, conversation_id=conversation.id, message_type=MessageType.CALL
        )
        joined, joined_created = MessageService.create(
            other_actor, workspace.id, conversation_id=conversation.id, message_type=MessageType.CALL
        )

        assert created is True
        assert joined_created is False
        assert joined.pk == call.pk
        assert Message.objects.count() == 1

    def test_finished_call_starts_new_one(self, workspace, channel, member_actor):
        call = send(member_actor, workspace, channel_id=channel.id, message_type=MessageType.CALL)
        MessageService.update(member_actor, call.id, call_duration=60_000)

        again, created = MessageService.create(
            member_actor, workspace.id, channel_id=channel.id, message_type=MessageType.CALL
        )

        assert created is True
        assert again.pk != call.pk

    def test_call_behind_newer_message_is_not_joined(self, workspace, channel, member, other_member, member_actor):
        CallMessageFactory(member=other_member, channel=channel)
        send(member_actor, workspace, channel_id=channel.id, body="can't join, sorry")

        _, created = MessageService.create(
            member_actor, workspace.id, channel_id=channel.id, message_type=MessageType.CALL
        )

        assert created is True

    def test_thread_call_does_not_join_timeline_call(self, workspace, channel, member, member_actor):
        timeline_call = CallMessageFactory(member=member, channel=channel)
        parent = MessageFactory(member=member, channel=channel)

        thread_call, created = MessageService.create(
            member_actor,
            workspace.id,
            channel_id=channel.id,
            parent_message_id=parent.id,
            message_type=MessageType.CALL,
        )

        assert created is True
        assert thread_call.pk != timeline_call.pk


# =============================================================================
# MessageService.update / remove
# =============================================================================


class TestMessageServiceUpdate:
    def test_author_edits_body(self, workspace, channel, member_actor):
        message = send(member_actor, workspace, channel_id=channel.id, body="tpyo")

        updated = MessageService.update(member_actor, message.id, body="typo")

        assert updated.body == "typo"
        assert updated.edited_at is not None

    def test_other_member_cannot_edit_text(self, workspace, channel, member_actor, other_actor):
        message = send(member_actor, workspace, channel_id=channel.id, body="mine")

        with pytest.raises(UnauthorizedError) as exc_info:
            MessageService.update(other_actor, message.id, body="yours")

        assert exc_info.value.error_code == "NOT_MESSAGE_AUTHOR"

    def test_admin_edits_any_message(self, workspace, channel, member_actor, admin_actor):
        message = send(member_actor, workspace, channel_id=channel.id, body="rude")

        assert MessageService.update(admin_actor, message.id, body="[removed]").body == "[removed]"

    def test_admin_edits_conversation_message(self, workspace, conversation, member_actor, admin_actor):
        message = send(member_actor, workspace, conversation_id=conversation.id, body="rude")

        assert MessageService.update(admin_actor, message.id, body="[removed]").body == "[removed]"

    def test_message_of_other_workspace_not_found(self, workspace, channel, member_actor):
        message = send(member_actor, workspace, channel_id=channel.id, body="hi")

        with pytest.raises(NotFoundError) as exc_info:
            MessageService.update(member_actor, message.id, body="x", workspace_id=WorkspaceFactory().id)

        assert exc_info.value.error_code == "MESSAGE_NOT_FOUND"

    def test_conversation_participant_finalizes_call(self, workspace, conversation, member_actor, other_actor):
        """
        Either side of a conversation may end its call.

        Why it matters: The call ends for both people; whoever hangs up
        last records the duration.
        """
        call = send(member_actor, workspace, conversation_id=conversation.id, message_type=MessageType.CALL)

        ended = MessageService.update(other_actor, call.id, call_duration=125_000)

        assert ended.call_duration == 125_000
        assert ended.is_unfinished_call is False

    def test_channel_call_only_author_or_admin(self, workspace, channel, member_actor, other_actor):
        call = send(member_actor, workspace, channel_id=channel.id, message_type=MessageType.CALL)

        with pytest.raises(UnauthorizedError):
            MessageService.update(other_actor, call.id, call_duration=1)

    def test_duration_on_text_message_rejected(self, workspace, channel, member_actor):
        message = send(member_actor, workspace, channel_id=channel.id, body="hi")

        with pytest.raises(ValidationError) as exc_info:
            MessageService.update(member_actor, message.id, call_duration=10)

        assert exc_info.value.error_code == "NOT_A_CALL"

    def test_missing_message(self, member_actor):
        with pytest.raises(NotFoundError) as exc_info:
            MessageService.update(member_actor, uuid.uuid4(), body="x")

        assert exc_info.value.error_code == "MESSAGE_NOT_FOUND"


class TestMessageServiceRemove:
    def test_author_removes_message(self, workspace, channel, member_actor):
        message = send(member_actor, workspace, channel_id=channel.id, body="oops")

        MessageService.remove(member_actor, message.id)

        assert not Message.objects.filter(pk=message.id).exists()

    def test_admin_cannot_remove_others_message(self, workspace, channel, member_actor, admin_actor):
        message = send(member_actor, workspace, channel_id=channel.id, body="mine")

        with pytest.raises(UnauthorizedError) as exc_info:
            MessageService.remove(admin_actor, message.id)

        assert exc_info.value.error_code == "NOT_MESSAGE_AUTHOR"

    def test_removing_reply_recounts_parent(self, workspace, channel, member_actor, other_actor):
        parent = send(member_actor, workspace, channel_id=channel.id, body="q")
        first = send(other_actor, workspace, channel_id=channel.id, parent_message_id=parent.id, body="a")
        second = send(other_actor, workspace, channel_id=channel.id, parent_message_id=parent.id, body="b")

        MessageService.remove(other_actor, second.id)
        parent.refresh_from_db()
        assert parent.reply_count == 1
        assert parent.last_reply_at == first.created_at

        MessageService.remove(other_actor, first.id)
        parent.refresh_from_db()
        assert parent.reply_count is None
        assert parent.last_reply_at is None

    def test_removing_parent_leaves_replies(self, workspace, channel, member_actor, other_actor):
        parent = send(member_actor, workspace, channel_id=channel.id, body="q")
        reply = send(other_actor, workspace, channel_id=channel.id, parent_message_id=parent.id, body="a")

        MessageService.remove(member_actor, parent.id)

        assert Message.objects.filter(pk=reply.id).exists()

    def test_reactions_go_with_message(self, workspace, channel, member, member_actor):
        message = send(member_actor, workspace, channel_id=channel.id, body="hi")
        ReactionFactory(message=message, member=member)

        MessageService.remove(member_actor, message.id)

        assert not Reaction.objects.exists()

    def test_images_deleted_after_commit(self, workspace, channel, member_actor, django_capture_on_commit_callbacks):
        storage = storages["default"]
        blob_id = storage.save("photo.png", ContentFile(b"png"))
        message = send(member_actor, workspace, channel_id=channel.id, images=[blob_id])

        with django_capture_on_commit_callbacks(execute=True):
            MessageService.remove(member_actor, message.id)

        assert not storage.exists(blob_id)


# =============================================================================
# MessageService listings
# =============================================================================


class TestMessageServiceListMessages:
    def test_timeline_newest_first_without_replies(self, workspace, channel, member_actor):
        first = send(member_actor, workspace, channel_id=channel.id, body="1")
        second = send(member_actor, workspace, channel_id=channel.id, body="2")
        send(member_actor, workspace, channel_id=channel.id, parent_message_id=first.id, body="r")

        page = MessageService.list_messages(member_actor, workspace.id, channel_id=channel.id)

        assert [m.pk for m in page.items] == [m.pk for m in newest_first([first, second])]
        assert page.has_more is False

    def test_thread_listing(self, workspace, channel, member_actor, other_actor):
        parent = send(member_actor, workspace, channel_id=channel.id, body="q")
        reply = send(other_actor, workspace, parent_message_id=parent.id, body="a")

        page = MessageService.list_messages(member_actor, workspace.id, parent_message_id=parent.id)

        assert [m.pk for m in page.items] == [reply.pk]
        assert page.items[0].thread_summary is None

    def test_cursor_pagination_covers_every_message_once(self, workspace, channel, member_actor):
        sent = [send(member_actor, workspace, channel_id=channel.id, body=str(i)) for i in range(5)]

        seen, cursor = [], None
        while True:
            page = MessageService.list_messages(
                member_actor, workspace.id, channel_id=channel.id, cursor=cursor, page_size=2
            )
            seen.extend(m.pk for m in page.items)
            if not page.has_more:
                break
            cursor = page.next_cursor

        assert seen == [m.pk for m in newest_first(sent)]

    def test_invalid_cursor(self, workspace, channel, member_actor):
        with pytest.raises(ValidationError) as exc_info:
            MessageService.list_messages(
                member_actor, workspace.id, channel_id=channel.id, cursor="garbage"
            )

        assert exc_info.value.error_code == "INVALID_CURSOR"

    def test_outsider_gets_empty_page(self, workspace, channel, member_actor, outsider_actor):
        send(member_actor, workspace, channel_id=channel.id, body="secret")

        assert MessageService.list_messages(outsider_actor, workspace.id, channel_id=channel.id).items == []

    def test_non_participant_gets_empty_conversation(self, workspace, conversation, member_actor, admin_actor):
        send(member_actor, workspace, conversation_id=conversation.id, body="private")

        page = MessageService.list_messages(admin_actor, workspace.id, conversation_id=conversation.id)

        assert page.items == []

    def test_enrichment(self, workspace, channel, member, other_member, member_actor, other_actor):
        """
        Listed messages carry folded reactions, resolvable image URLs and
        a thread summary built from the actual replies.
        """
        storage = storages["default"]
        blob_id = storage.save("pic.png", ContentFile(b"png"))
        parent = send(member_actor, workspace, channel_id=channel.id, images=[blob_id, "missing.png"])
        ReactionFactory(message=parent, member=other_member, value="🎉")
        ReactionFactory(message=parent, member=other_member, value="🎉")
        ReactionFactory(message=parent, member=member, value="🎉")
        reply = send(other_actor, workspace, parent_message_id=parent.id, body="nice")

        [listed] = MessageService.list_messages(member_actor, workspace.id, channel_id=channel.id).items

        assert [(r.value, r.count) for r in listed.reaction_summary] == [("🎉", 2)]
        assert listed.image_urls == [storage.url(blob_id)]
        assert listed.thread_summary == ThreadSummary(
            count=1,
            image=other_member.user.image or None,
            name="Cal",
            timestamp=reply.created_at,
        )

    def test_message_without_replies_has_empty_thread_summary(self, workspace, channel, member_actor):
        send(member_actor, workspace, channel_id=channel.id, body="alone")

        [listed] = MessageService.list_messages(member_actor, workspace.id, channel_id=channel.id).items

        assert listed.thread_summary == ThreadSummary()


class TestMessageServiceListThreads:
    def test_threads_ordered_by_latest_reply(self, workspace, channel, member_actor, other_actor):
        older = send(member_actor, workspace, channel_id=channel.id, body="older thread")
        newer = send(member_actor, workspace, channel_id=channel.id, body="newer thread")
        send(member_actor, workspace, channel_id=channel.id, body="no replies")
        send(other_actor, workspace, parent_message_id=newer.id, body="r1")
        send(other_actor, workspace, parent_message_id=older.id, body="r2")

        page = MessageService.list_threads(member_actor, workspace.id)

        assert [m.pk for m in page.items] == [older.pk, newer.pk]
        assert page.items[0].channel == channel
        assert page.items[0].counterpart is None

    def test_conversation_threads_only_for_participants(self, workspace, conversation, other_member, member_actor, other_actor, admin_actor):
        parent = send(member_actor, workspace, conversation_id=conversation.id, body="dm")
        send(other_actor, workspace, parent_message_id=parent.id, body="reply")

        mine = MessageService.list_threads(member_actor, workspace.id)

        assert [m.pk for m in mine.items] == [parent.pk]
        assert mine.items[0].counterpart == other_member
        assert MessageService.list_threads(admin_actor, workspace.id).items == []


# =============================================================================
# ReactionService
# =============================================================================


class TestReactionServiceToggle:
    def test_toggle_adds_then_removes(self, workspace, channel, member, member_actor):
        message = MessageFactory(member=member, channel=channel)

        assert ReactionService.toggle(member_actor, message.id, "👍") is True
        assert Reaction.objects.filter(message=message).count() == 1
        assert ReactionService.toggle(member_actor, message.id, "👍") is False
        assert not Reaction.objects.filter(message=message).exists()

    def test_toggle_off_removes_duplicates(self, workspace, channel, member, member_actor):
        """
        Toggling off removes every copy of the member's reaction.

        Why it matters: Storage does not prevent duplicate rows; a single
        toggle must still take the reaction away completely.
        """
        message = MessageFactory(member=member, channel=channel)
        ReactionFactory(message=message, member=member, value="👍")
        ReactionFactory(message=message, member=member, value="👍")

        assert ReactionService.toggle(member_actor, message.id, "👍") is False
        assert not Reaction.objects.exists()

    def test_invalid_value(self, workspace, channel, member, member_actor):
        message = MessageFactory(member=member, channel=channel)

        with pytest.raises(ValidationError) as exc_info:
            ReactionService.toggle(member_actor, message.id, "   ")

        assert exc_info.value.error_code == "INVALID_REACTION"

    def test_non_participant_cannot_react_in_conversation(self, workspace, member, conversation, admin_actor):
        message = MessageFactory(member=member, channel=None, conversation=conversation)

        with pytest.raises(UnauthorizedError) as exc_info:
            ReactionService.toggle(admin_actor, message.id, "👍")

        assert exc_info.value.error_code == "NOT_A_PARTICIPANT"

    def test_missing_message(self, member_actor):
        with pytest.raises(NotFoundError):
            ReactionService.toggle(member_actor, uuid.uuid4(), "👍")


class TestReactionServiceSummarize:
    def test_folds_by_value_in_first_seen_order(self, workspace, channel, member, other_member):
        message = MessageFactory(member=member, channel=channel)
        ReactionFactory(message=message, member=member, value="❤️")
        ReactionFactory(message=message, member=other_member, value="👍")
        ReactionFactory(message=message, member=other_member, value="❤️")
        ReactionFactory(message=message, member=member, value="❤️")

        summary = ReactionService.summarize(message)

        assert [(s.value, s.count) for s in summary] == [("❤️", 2), ("👍", 1)]
        assert summary[0].member_ids == [member.id, other_member.id]


# =============================================================================
# ReadStateService
# =============================================================================


class TestReadStateServiceMarkRead:
    def test_upserts_single_watermark(self, workspace, channel, member, member_actor):
        first = ReadStateService.mark_read(member_actor, workspace.id, channel_id=channel.id)
        second = ReadStateService.mark_read(member_actor, workspace.id, channel_id=channel.id)

        assert first.pk == second.pk
        assert second.last_read_at >= first.last_read_at
        assert MessageRead.objects.filter(member=member).count() == 1

    def test_requires_exactly_one_target(self, workspace, channel, conversation, member_actor):
        with pytest.raises(ValidationError):
            ReadStateService.mark_read(
                member_actor, workspace.id, channel_id=channel.id, conversation_id=conversation.id
            )

    def test_non_participant_cannot_mark_conversation(self, workspace, conversation, admin_actor):
        with pytest.raises(UnauthorizedError):
            ReadStateService.mark_read(admin_actor, workspace.id, conversation_id=conversation.id)


class TestReadStateServiceComputeAlert:
    def test_own_messages_never_alert(self, channel, member):
        MessageFactory(member=member, channel=channel)

        assert ReadStateService.compute_alert(member, channel_id=channel.id) is False

    def test_unread_message_from_other_alerts(self, channel, member, other_member):
        MessageFactory(member=other_member, channel=channel)

        assert ReadStateService.compute_alert(member, channel_id=channel.id) is True

    def test_read_messages_do_not_alert(self, channel, member, other_member):
        MessageFactory(member=other_member, channel=channel)
        MessageReadFactory(member=member, channel=channel)

        assert ReadStateService.compute_alert(member, channel_id=channel.id) is False

    def test_own_late_reply_does_not_hide_earlier_unread(self, channel, member, other_member):
        """
        An unread message still alerts when the member's own message is newer.

        Why it matters: Replying from a notification without opening the
        channel must not silently mark everyone else's messages as read.
        """
        MessageReadFactory(member=member, channel=channel, last_read_at=timezone.now() - timedelta(hours=1))
        MessageFactory(member=other_member, channel=channel)
        MessageFactory(member=member, channel=channel)

        assert ReadStateService.compute_alert(member, channel_id=channel.id) is True

    def test_departed_authors_messages_alert(self, workspace, channel, member, other_member, other_actor):
        MessageFactory(member=other_member, channel=channel)

        MemberService.remove(other_actor, other_member.id)

        assert Message.objects.get().member is None
        assert ReadStateService.compute_alert(member, channel_id=channel.id) is True

    def test_thread_reply_from_other_alerts(self, channel, member, other_member):
        parent = MessageFactory(member=member, channel=channel)
        MessageReadFactory(member=member, channel=channel, last_read_at=timezone.now() - timedelta(minutes=5))
        MessageFactory(member=other_member, channel=channel, parent_message=parent)

        assert ReadStateService.compute_alert(member, channel_id=channel.id) is True

    def test_active_target_never_alerts(self, channel, member, other_member):
        MessageFactory(member=other_member, channel=channel)

        assert ReadStateService.compute_alert(member, channel_id=channel.id, exclude_if_active=True) is False


class TestReadStateServiceCallActivity:
    def test_open_call_is_active(self, channel, member):
        CallMessageFactory(member=member, channel=channel)

        assert ReadStateService.is_call_active(member, channel_id=channel.id) is True

    def test_call_in_thread_does_not_count(self, channel, member):
        parent = MessageFactory(member=member, channel=channel)
        CallMessageFactory(member=member, channel=channel, parent_message=parent)

        assert ReadStateService.is_call_active(member, channel_id=channel.id) is False

    def test_finished_call_is_inactive(self, channel, member):
        CallMessageFactory(member=member, channel=channel, call_duration=1000)

        assert ReadStateService.is_call_active(member, channel_id=channel.id) is False

    def test_target_status_for_outsider_is_none(self, workspace, channel, outsider_actor):
        assert ReadStateService.target_status(outsider_actor, workspace.id, channel_id=channel.id) is None

    def test_target_status(self, workspace, channel, member, other_member, member_actor):
        CallMessageFactory(member=other_member, channel=channel)

        assert ReadStateService.target_status(member_actor, workspace.id, channel_id=channel.id) == {
            "has_alert": True,
            "is_video_active": True,
        }


# =============================================================================
# DraftService
# =============================================================================


class TestDraftServiceSave:
    def test_save_then_replace(self, workspace, channel, member_actor):
        first = DraftService.save(member_actor, workspace.id, "hel", channel_id=channel.id)
        second = DraftService.save(member_actor, workspace.id, "hello", channel_id=channel.id)

        assert first.pk == second.pk
        assert Draft.objects.get().body == "hello"

    def test_thread_and_channel_drafts_are_separate(self, workspace, channel, member, member_actor):
        parent = MessageFactory(member=member, channel=channel)

        DraftService.save(member_actor, workspace.id, "main", channel_id=channel.id)
        DraftService.save(member_actor, workspace.id, "thread", channel_id=channel.id, parent_message_id=parent.id)

        assert DraftService.get(member_actor, workspace.id, channel_id=channel.id).body == "main"
        assert (
            DraftService.get(member_actor, workspace.id, channel_id=channel.id, parent_message_id=parent.id).body
            == "thread"
        )

    def test_bare_thread_draft_resolves_like_a_reply(self, workspace, member, conversation, member_actor):
        """
        A thread draft saved with only the parent id is found by the
        conversation address its reply would use.

        Why it matters: Sending the reply purges the draft by the resolved
        address; both must agree or the draft lingers after sending.
        """
        parent = MessageFactory(member=member, channel=None, conversation=conversation)

        draft = DraftService.save(member_actor, workspace.id, "wip", parent_message_id=parent.id)
        send(member_actor, workspace, parent_message_id=parent.id, body="sent")

        assert draft.conversation_id == conversation.id
        assert not Draft.objects.exists()

    def test_thread_draft_outside_parent_target_rejected(self, workspace, channel, conversation, member, admin_actor):
        parent = MessageFactory(member=member, channel=None, conversation=conversation)

        with pytest.raises(NotFoundError) as exc_info:
            DraftService.save(admin_actor, workspace.id, "x", channel_id=channel.id, parent_message_id=parent.id)

        assert exc_info.value.error_code == "PARENT_NOT_FOUND"
        assert not Draft.objects.exists()

    def test_drafts_are_per_member(self, workspace, channel, member_actor, other_actor):
        DraftService.save(member_actor, workspace.id, "mine", channel_id=channel.id)

        assert DraftService.get(other_actor, workspace.id, channel_id=channel.id) is None

    def test_outsider_cannot_save(self, workspace, channel, outsider_actor):
        with pytest.raises(UnauthorizedError):
            DraftService.save(outsider_actor, workspace.id, "x", channel_id=channel.id)


class TestDraftServiceRemove:
    def test_remove_reports_whether_deleted(self, workspace, channel, member_actor):
        DraftService.save(member_actor, workspace.id, "x", channel_id=channel.id)

        assert DraftService.remove(member_actor, workspace.id, channel_id=channel.id) is True
        assert DraftService.remove(member_actor, workspace.id, channel_id=channel.id) is False


class TestDraftServiceListForMember:
    def test_titles_and_kinds(self, workspace, channel, member, other_member, conversation, member_actor):
        parent = MessageFactory(member=other_member, channel=channel)
        DraftFactory(member=member, channel=channel, body="c")
        DraftFactory(member=member, channel=None, conversation=conversation, body="d")
        DraftFactory(member=member, channel=channel, parent_message=parent, body="t")

        drafts = {d.body: d for d in DraftService.list_for_member(member_actor, workspace.id)}

        assert drafts["c"].display_title == "# general"
        assert (drafts["c"].kind, drafts["c"].target_id) == ("channel", channel.id)
        assert drafts["d"].display_title == "Cal"
        assert (drafts["d"].kind, drafts["d"].target_id) == ("conversation", other_member.id)
        assert drafts["t"].display_title == "# general"
        assert (drafts["t"].kind, drafts["t"].target_id) == ("thread", parent.id)

    def test_newest_first(self, workspace, channel, member, member_actor):
        older = DraftFactory(member=member, channel=channel)
        newer = DraftFactory(member=member, channel=ChannelFactory(workspace=workspace))

        assert DraftService.list_for_member(member_actor, workspace.id) == [newer, older]

    def test_draft_with_missing_target_is_untitled(self, workspace, member, member_actor):
        draft = DraftFactory(member=member, channel=None)
        Draft.objects.filter(pk=draft.pk).update(parent_message_id=uuid.uuid4())

        [draft] = DraftService.list_for_member(member_actor, workspace.id)

        assert draft.display_title == "Untitled"
        assert draft.kind == "thread"

    def test_outsider_lists_nothing(self, workspace, outsider_actor):
        assert DraftService.list_for_member(outsider_actor, workspace.id) == []

    def test_other_workspace_drafts_excluded(self, workspace, member, member_actor):
        elsewhere = MemberFactory(workspace=WorkspaceFactory(), user=member.user)
        DraftFactory(member=elsewhere)

        assert DraftService.list_for_member(member_actor, workspace.id) == []
