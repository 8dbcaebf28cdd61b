"""
URL configuration for workspace API.

URL Structure:
    Workspaces:
        /workspaces/                              GET, POST
        /workspaces/{id}/                         GET, PATCH, DELETE
        /workspaces/{id}/join/                    POST
        /workspaces/{id}/join-code/               POST
        /workspaces/{id}/info/                    GET

    Channels:
        /workspaces/{id}/channels/                GET, POST
        /workspaces/{id}/channels/{pk}/           GET, PATCH, DELETE
        /workspaces/{id}/channels/{pk}/read/      POST

    Members:
        /workspaces/{id}/members/                 GET
        /workspaces/{id}/members/current/         GET
        /workspaces/{id}/members/{pk}/            GET, PATCH, DELETE

All URLs are prefixed with /api/v1/ in the main URL configuration.
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from workspaces.views import ChannelViewSet, MemberViewSet, WorkspaceViewSet

router = DefaultRouter()
router.register(r"workspaces", WorkspaceViewSet, basename="workspace")

app_name = "workspaces"

urlpatterns = [
    path("", include(router.urls)),
    # Nested routes for channels
    path(
        "workspaces/<uuid:workspace_pk>/channels/",
        ChannelViewSet.as_view({"get": "list", "post": "create"}),
        name="workspace-channel-list",
    ),
    path(
        "workspaces/<uuid:workspace_pk>/channels/<uuid:pk>/",
        ChannelViewSet.as_view(
            {"get": "retrieve", "patch": "partial_update", "delete": "destroy"}
        ),
        name="workspace-channel-detail",
    ),
    path(
        "workspaces/<uuid:workspace_pk>/channels/<uuid:pk>/read/",
        ChannelViewSet.as_view({"post": "read"}),
        name="workspace-channel-read",
    ),
    # Nested routes for members
    path(
        "workspaces/<uuid:workspace_pk>/members/",
        MemberViewSet.as_view({"get": "list"}),
        name="workspace-member-list",
    ),
    path(
        "workspaces/<uuid:workspace_pk>/members/current/",
        MemberViewSet.as_view({"get": "current"}),
        name="workspace-member-current",
    ),
    path(
        "workspaces/<uuid:workspace_pk>/members/<uuid:pk>/",
        MemberViewSet.as_view(
            {"get": "retrieve", "patch": "partial_update", "delete": "destroy"}
        ),
        name="workspace-member-detail",
    ),
]
