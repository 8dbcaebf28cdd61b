"""
ViewSets for chat API.

This module provides REST API endpoints for the chat system:
- ConversationViewSet: 1:1 conversations and mark-as-read
- MessageViewSet: Messages, threads, call sessions and reactions
- DraftViewSet: Per-member drafts by addressing tuple

URL Structure (prefix /api/v1/chat/workspaces/{workspace_id}/):
    conversations/                      GET, POST
    conversations/{pk}/                 GET
    conversations/{pk}/read/            POST
    messages/                           GET, POST
    messages/threads/                   GET
    messages/{pk}/                      GET, PATCH, DELETE
    messages/{pk}/reactions/            POST
    drafts/                             GET
    drafts/current/                     GET, PUT, DELETE

Design Decisions:
    - Plain ViewSets: every operation goes through the service layer
    - Authorization lives in the services; views only require a login
    - Application errors are rendered by core.views.api_exception_handler
"""

from __future__ import annotations

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema, extend_schema_view
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from chat.models import Message
from chat.pagination import MessageKeysetPagination
from chat.serializers import (
    ConversationCreateSerializer,
    ConversationSerializer,
    DraftSaveSerializer,
    DraftSerializer,
    MessageCreateSerializer,
    MessageSerializer,
    MessageUpdateSerializer,
    ReactionToggleResponseSerializer,
    ReactionToggleSerializer,
    ThreadMessageSerializer,
)
from chat.services import (
    ConversationService,
    DraftService,
    MessageService,
    ReactionService,
    ReadStateService,
)
from core.exceptions import NotFoundError
from core.viewset_mixins import ActorMixin, WorkspaceScopedMixin

ADDRESS_PARAMETERS = [
    OpenApiParameter(name="channel", type=OpenApiTypes.UUID),
    OpenApiParameter(name="conversation", type=OpenApiTypes.UUID),
    OpenApiParameter(name="parent", type=OpenApiTypes.UUID),
]

PAGE_PARAMETERS = [
    OpenApiParameter(name="cursor", type=OpenApiTypes.STR),
    OpenApiParameter(name="page_size", type=OpenApiTypes.INT),
]


@extend_schema_view(
    list=extend_schema(
        operation_id="list_conversations",
        summary="List conversations",
        parameters=[
            OpenApiParameter(
                name="active",
                type=OpenApiTypes.UUID,
                description="Conversation currently on screen; it never shows an alert",
            )
        ],
        responses=ConversationSerializer(many=True),
        tags=["Chat - Conversations"],
    ),
    create=extend_schema(
        operation_id="create_conversation",
        summary="Create or get conversation",
        request=ConversationCreateSerializer,
        responses={200: ConversationSerializer, 201: ConversationSerializer},
        tags=["Chat - Conversations"],
    ),
    retrieve=extend_schema(
        operation_id="get_conversation",
        summary="Get conversation",
        responses=ConversationSerializer,
        tags=["Chat - Conversations"],
    ),
)
class ConversationViewSet(ActorMixin, WorkspaceScopedMixin, viewsets.ViewSet):
    """
    ViewSet for 1:1 conversations.

    list:
        The current member's conversations with counterpart and flags.

    create:
        Return the conversation with another member, creating it if needed.
        201 when created, 200 when it already existed.

    read:
        Mark the conversation as read for the current member.
    """

    permission_classes = [IsAuthenticated]

    def list(self, request, workspace_pk=None):
        conversations = ConversationService.list_for_member(
            self.actor,
            self.workspace_id,
            active_conversation_id=self.query_uuid("active"),
        )
        return Response(ConversationSerializer(conversations, many=True).data)

    def create(self, request, workspace_pk=None):
        serializer = ConversationCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        conversation, created = ConversationService.create_or_get(
            self.actor, self.workspace_id, serializer.validated_data["member_id"]
        )
        conversation = ConversationService.get(self.actor, conversation.pk)
        return Response(
            ConversationSerializer(conversation).data,
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )

    def retrieve(self, request, workspace_pk=None, pk=None):
        conversation = self.ensure_in_workspace(
            ConversationService.get(self.actor, pk),
            "CONVERSATION_NOT_FOUND",
            "Conversation",
        )
        return Response(ConversationSerializer(conversation).data)

    @extend_schema(
        operation_id="mark_conversation_read",
        summary="Mark conversation as read",
        request=None,
        tags=["Chat - Conversations"],
    )
    @action(detail=True, methods=["post"])
    def read(self, request, workspace_pk=None, pk=None):
        read = ReadStateService.mark_read(
            self.actor, self.workspace_id, conversation_id=pk
        )
        return Response({"status": "read", "last_read_at": read.last_read_at})


@extend_schema_view(
    list=extend_schema(
        operation_id="list_messages",
        summary="List messages",
        description=(
            "Newest first. Pass channel or conversation for a timeline, "
            "and parent for a thread."
        ),
        parameters=ADDRESS_PARAMETERS + PAGE_PARAMETERS,
        responses=MessageSerializer(many=True),
        tags=["Chat - Messages"],
    ),
    create=extend_schema(
        operation_id="send_message",
        summary="Send message",
        description=(
            "Starting a call where an unfinished call is already the newest "
            "message returns that call with status 200."
        ),
        request=MessageCreateSerializer,
        responses={200: MessageSerializer, 201: MessageSerializer},
        tags=["Chat - Messages"],
    ),
    retrieve=extend_schema(
        operation_id="get_message",
        summary="Get message",
        responses=MessageSerializer,
        tags=["Chat - Messages"],
    ),
    partial_update=extend_schema(
        operation_id="update_message",
        summary="Edit message or finalize call",
        request=MessageUpdateSerializer,
        responses=MessageSerializer,
        tags=["Chat - Messages"],
    ),
    destroy=extend_schema(
        operation_id="delete_message",
        summary="Delete message",
        tags=["Chat - Messages"],
    ),
)
class MessageViewSet(ActorMixin, WorkspaceScopedMixin, viewsets.ViewSet):
    """
    ViewSet for messages within a workspace.

    list:
        Messages at an addressing tuple, newest first, keyset paginated.

    create:
        Send a message, reply in a thread, or start/join a call.

    partial_update:
        Edit the body or set call_duration. Text messages: author or
        admin. Calls: additionally either side of the conversation.

    destroy:
        Hard delete. Author only.

    reactions:
        Toggle a reaction value for the current member.

    threads:
        Messages with replies, by most recent reply.
    """

    permission_classes = [IsAuthenticated]
    pagination = MessageKeysetPagination()

    def _get_message(self, pk) -> Message:
        return self.ensure_in_workspace(
            MessageService.get(self.actor, pk), "MESSAGE_NOT_FOUND", "Message"
        )

    def list(self, request, workspace_pk=None):
        page = MessageService.list_messages(
            self.actor,
            self.workspace_id,
            channel_id=self.query_uuid("channel"),
            conversation_id=self.query_uuid("conversation"),
            parent_message_id=self.query_uuid("parent"),
            cursor=self.pagination.get_cursor(request),
            page_size=self.pagination.get_page_size(request),
        )
        data = MessageSerializer(page.items, many=True).data
        return self.pagination.get_paginated_response(data, page)

    def create(self, request, workspace_pk=None):
        serializer = MessageCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        message, created = MessageService.create(
            self.actor, self.workspace_id, **serializer.validated_data
        )
        output = MessageSerializer(self._get_message(message.pk)).data
        return Response(
            output,
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )

    def retrieve(self, request, workspace_pk=None, pk=None):
        return Response(MessageSerializer(self._get_message(pk)).data)

    def partial_update(self, request, workspace_pk=None, pk=None):
        serializer = MessageUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        # Admins may edit 1:1 messages they cannot read
        message = MessageService.update(
            self.actor, pk, workspace_id=self.workspace_id, **serializer.validated_data
        )
        MessageService.enrich([message])
        return Response(MessageSerializer(message).data)

    def destroy(self, request, workspace_pk=None, pk=None):
        self._get_message(pk)
        MessageService.remove(self.actor, pk)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(
        operation_id="toggle_message_reaction",
        summary="Toggle reaction",
        request=ReactionToggleSerializer,
        responses=ReactionToggleResponseSerializer,
        tags=["Chat - Messages"],
    )
    @action(detail=True, methods=["post"])
    def reactions(self, request, workspace_pk=None, pk=None):
        message = self._get_message(pk)
        serializer = ReactionToggleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        added = ReactionService.toggle(self.actor, message.pk, serializer.validated_data["value"])
        output = ReactionToggleResponseSerializer(
            {"added": added, "reactions": ReactionService.summarize(message)}
        )
        return Response(output.data)

    @extend_schema(
        operation_id="list_threads",
        summary="List threads",
        parameters=PAGE_PARAMETERS,
        responses=ThreadMessageSerializer(many=True),
        tags=["Chat - Messages"],
    )
    @action(detail=False, methods=["get"])
    def threads(self, request, workspace_pk=None):
        page = MessageService.list_threads(
            self.actor,
            self.workspace_id,
            cursor=self.pagination.get_cursor(request),
            page_size=self.pagination.get_page_size(request),
        )
        data = ThreadMessageSerializer(page.items, many=True).data
        return self.pagination.get_paginated_response(data, page)


@extend_schema_view(
    list=extend_schema(
        operation_id="list_drafts",
        summary="List drafts",
        responses=DraftSerializer(many=True),
        tags=["Chat - Drafts"],
    ),
)
class DraftViewSet(ActorMixin, WorkspaceScopedMixin, viewsets.ViewSet):
    """
    ViewSet for the current member's drafts.

    list:
        All drafts of the current member, newest first, with titles.

    current:
        GET/PUT/DELETE the draft of one addressing tuple. GET and DELETE
        take the tuple as query parameters (channel, conversation, parent),
        PUT takes it in the body.
    """

    permission_classes = [IsAuthenticated]

    def _address_from_query(self) -> dict:
        return {
            "channel_id": self.query_uuid("channel"),
            "conversation_id": self.query_uuid("conversation"),
            "parent_message_id": self.query_uuid("parent"),
        }

    def list(self, request, workspace_pk=None):
        drafts = DraftService.list_for_member(self.actor, self.workspace_id)
        return Response(DraftSerializer(drafts, many=True).data)

    @extend_schema(
        operation_id="get_current_draft",
        summary="Get draft for an address",
        parameters=ADDRESS_PARAMETERS,
        responses=DraftSerializer,
        tags=["Chat - Drafts"],
        methods=["GET"],
    )
    @extend_schema(
        operation_id="save_current_draft",
        summary="Save draft for an address",
        request=DraftSaveSerializer,
        responses=DraftSerializer,
        tags=["Chat - Drafts"],
        methods=["PUT"],
    )
    @extend_schema(
        operation_id="delete_current_draft",
        summary="Delete draft for an address",
        parameters=ADDRESS_PARAMETERS,
        tags=["Chat - Drafts"],
        methods=["DELETE"],
    )
    @action(detail=False, methods=["get", "put", "delete"])
    def current(self, request, workspace_pk=None):
        if request.method == "PUT":
            serializer = DraftSaveSerializer(data=request.data)
            serializer.is_valid(raise_exception=True)
            data = dict(serializer.validated_data)
            body = data.pop("body")
            draft = DraftService.save(self.actor, self.workspace_id, body, **data)
            return Response(DraftSerializer(draft).data)

        address = self._address_from_query()
        if request.method == "DELETE":
            DraftService.remove(self.actor, self.workspace_id, **address)
            return Response(status=status.HTTP_204_NO_CONTENT)

        draft = DraftService.get(self.actor, self.workspace_id, **address)
        if draft is None:
            raise NotFoundError("Draft not found", error_code="DRAFT_NOT_FOUND")
        return Response(DraftSerializer(draft).data)
