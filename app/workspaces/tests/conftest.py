"""
Test configuration and fixtures for workspace and chat tests.

This module provides:
- A workspace with an admin, two regular members and a channel
- Actor contexts for each of them
- API client helpers for authenticated requests

Usage:
    def test_example(workspace, channel, admin_client):
        response = admin_client.get(f"/api/v1/workspaces/{workspace.id}/channels/")
        assert response.status_code == 200
"""

import pytest
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from authentication.tests.factories import UserFactory
from core.context import ActorContext
from workspaces.tests.factories import (
    AdminMemberFactory,
    ChannelFactory,
    MemberFactory,
    WorkspaceFactory,
)


# =============================================================================
# Workspace Fixtures
# =============================================================================


@pytest.fixture
def workspace(db):
    """Workspace without members; add them with the member fixtures."""
    return WorkspaceFactory()


@pytest.fixture
def admin_member(workspace):
    """The workspace's admin (also its owner)."""
    return AdminMemberFactory(workspace=workspace, user=workspace.owner)


@pytest.fixture
def member(workspace, admin_member):
    """A regular member of the workspace."""
    return MemberFactory(workspace=workspace, user=UserFactory(name="Bea"))


@pytest.fixture
def other_member(workspace, admin_member):
    """A second regular member of the workspace."""
    return MemberFactory(workspace=workspace, user=UserFactory(name="Cal"))


@pytest.fixture
def outsider(db):
    """A user with no membership in the workspace."""
    return UserFactory()


@pytest.fixture
def channel(workspace):
    return ChannelFactory(workspace=workspace, name="general")


# =============================================================================
# Actor Fixtures
# =============================================================================


@pytest.fixture
def admin_actor(admin_member):
    return ActorContext.for_user(admin_member.user)


@pytest.fixture
def member_actor(member):
    return ActorContext.for_user(member.user)


@pytest.fixture
def other_actor(other_member):
    return ActorContext.for_user(other_member.user)


@pytest.fixture
def outsider_actor(outsider):
    return ActorContext.for_user(outsider)


# =============================================================================
# API Client Fixtures
# =============================================================================


@pytest.fixture
def api_client():
    """Unauthenticated API client."""
    return APIClient()


@pytest.fixture
def authenticated_client_factory(db):
    """
    Factory to create authenticated clients for any user.

    Usage:
        def test_example(authenticated_client_factory, some_user):
            client = authenticated_client_factory(some_user)
            response = client.get("/api/v1/workspaces/")
    """

    def _make_client(user):
        client = APIClient()
        refresh = RefreshToken.for_user(user)
        client.credentials(HTTP_AUTHORIZATION=f"Bearer {refresh.access_token}")
        return client

    return _make_client


@pytest.fixture
def admin_client(authenticated_client_factory, admin_member):
    """API client authenticated as the workspace admin."""
    return authenticated_client_factory(admin_member.user)


@pytest.fixture
def member_client(authenticated_client_factory, member):
    """API client authenticated as a regular member."""
    return authenticated_client_factory(member.user)


@pytest.fixture
def other_client(authenticated_client_factory, other_member):
    """API client authenticated as the second regular member."""
    return authenticated_client_factory(other_member.user)


@pytest.fixture
def outsider_client(authenticated_client_factory, outsider):
    """API client authenticated as a user outside the workspace."""
    return authenticated_client_factory(outsider)
