"""
URL configuration for the Django application.

The `urlpatterns` list routes URLs to views. This is the root URL configuration
that includes all app-specific routes.

URL Structure:
    /                              - ReDoc API documentation
    /admin/                        - Django admin interface
    /health/                       - Health check endpoint (for load balancers, Docker)
    /schema/                       - OpenAPI schema (YAML)
    /api/v1/workspaces/            - Workspace endpoints
        {id}/                      - Workspace detail/rename/delete
        {id}/join/                 - Join with a join code
        {id}/join-code/            - Rotate the join code (admin)
        {id}/info/                 - Name and membership flag
        {id}/channels/             - Channel list/create
        {id}/channels/{pk}/        - Channel detail/rename/delete
        {id}/channels/{pk}/read/   - Mark channel as read
        {id}/members/              - Member list
        {id}/members/current/      - Caller's own membership
        {id}/members/{pk}/         - Member detail/role change/removal
    /api/v1/chat/workspaces/{id}/  - Chat endpoints
        conversations/             - Conversation list/create-or-get
        conversations/{pk}/        - Conversation detail
        conversations/{pk}/read/   - Mark conversation as read
        messages/                  - Message list/send
        messages/threads/          - Thread parents with replies
        messages/{pk}/             - Message detail/edit/delete
        messages/{pk}/reactions/   - Toggle a reaction
        drafts/                    - Draft list
        drafts/current/            - Get/save/discard one draft

For more information, see:
https://docs.djangoproject.com/en/5.2/topics/http/urls/
"""

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView

from core.views import health_check

# =============================================================================
# API v1 Routes
# =============================================================================
# All routes here are prefixed with /api/v1/ automatically
api_v1_patterns = [
    # Workspaces, channels and members
    path("", include("workspaces.urls")),
    # Chat
    path("chat/", include("chat.urls")),
]

urlpatterns = [
    # Documentation
    path("", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    # Admin
    path("admin/", admin.site.urls),
    # Health check (Docker, Kubernetes, load balancers)
    path("health/", health_check, name="health_check"),
    # API v1
    path("api/v1/", include(api_v1_patterns)),
]

# =============================================================================
# Admin Site Customization
# =============================================================================
admin.site.site_header = "Workspace Chat Admin"
admin.site.site_title = "Admin Portal"
admin.site.index_title = "Welcome to the Admin Portal"
