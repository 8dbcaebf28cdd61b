"""
URL configuration for chat API.

URL Structure (all under /workspaces/{workspace_id}/):
    Conversations:
        conversations/                  GET, POST
        conversations/{pk}/             GET
        conversations/{pk}/read/        POST

    Messages:
        messages/                       GET, POST
        messages/threads/               GET
        messages/{pk}/                  GET, PATCH, DELETE
        messages/{pk}/reactions/        POST

    Drafts:
        drafts/                         GET
        drafts/current/                 GET, PUT, DELETE

All URLs are prefixed with /api/v1/chat/ in the main URL configuration.
"""

from django.urls import path

from chat.views import ConversationViewSet, DraftViewSet, MessageViewSet

app_name = "chat"

WORKSPACE = "workspaces/<uuid:workspace_pk>"

urlpatterns = [
    # Conversations
    path(
        f"{WORKSPACE}/conversations/",
        ConversationViewSet.as_view({"get": "list", "post": "create"}),
        name="conversation-list",
    ),
    path(
        f"{WORKSPACE}/conversations/<uuid:pk>/",
        ConversationViewSet.as_view({"get": "retrieve"}),
        name="conversation-detail",
    ),
    path(
        f"{WORKSPACE}/conversations/<uuid:pk>/read/",
        ConversationViewSet.as_view({"post": "read"}),
        name="conversation-read",
    ),
    # Messages
    path(
        f"{WORKSPACE}/messages/",
        MessageViewSet.as_view({"get": "list", "post": "create"}),
        name="message-list",
    ),
    path(
        f"{WORKSPACE}/messages/threads/",
        MessageViewSet.as_view({"get": "threads"}),
        name="message-threads",
    ),
    path(
        f"{WORKSPACE}/messages/<uuid:pk>/",
        MessageViewSet.as_view(
            {"get": "retrieve", "patch": "partial_update", "delete": "destroy"}
        ),
        name="message-detail",
    ),
    path(
        f"{WORKSPACE}/messages/<uuid:pk>/reactions/",
        MessageViewSet.as_view({"post": "reactions"}),
        name="message-reactions",
    ),
    # Drafts
    path(
        f"{WORKSPACE}/drafts/",
        DraftViewSet.as_view({"get": "list"}),
        name="draft-list",
    ),
    path(
        f"{WORKSPACE}/drafts/current/",
        DraftViewSet.as_view({"get": "current", "put": "current", "delete": "current"}),
        name="draft-current",
    ),
]
