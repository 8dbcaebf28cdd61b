"""
Test configuration and fixtures for chat tests.

Workspace, member, actor and client fixtures are shared with the
workspaces app. This module adds:
- A 1:1 conversation between the two regular members
- A blob store backed by in-memory storage
- A recording search index backend

Usage:
    def test_example(workspace, channel, member_actor):
        message, _ = MessageService.create(
            member_actor, workspace.id, channel_id=channel.id, body="hi"
        )
"""

import pytest
from django.core.files.base import ContentFile
from django.core.files.storage import InMemoryStorage

from chat.blobs import BlobStore
from chat.models import Conversation
from workspaces.tests.conftest import (  # noqa: F401
    admin_actor,
    admin_client,
    admin_member,
    api_client,
    authenticated_client_factory,
    channel,
    member,
    member_actor,
    member_client,
    other_actor,
    other_client,
    other_member,
    outsider,
    outsider_actor,
    outsider_client,
    workspace,
)


@pytest.fixture
def conversation(member, other_member):
    """Conversation between member and other_member."""
    member_one_id, member_two_id = Conversation.canonical_pair(member.pk, other_member.pk)
    return Conversation.objects.create(
        workspace=member.workspace,
        member_one_id=member_one_id,
        member_two_id=member_two_id,
    )


@pytest.fixture
def blob_storage():
    return InMemoryStorage()


@pytest.fixture
def blob_store(blob_storage):
    return BlobStore(storage=blob_storage)


@pytest.fixture
def stored_blob(blob_storage):
    """Factory saving a blob in the in-memory storage and returning its id."""

    def _store(name="image.png", content=b"\x89PNG"):
        return blob_storage.save(name, ContentFile(content))

    return _store


class RecordingSearchIndex:
    """Search index backend that keeps what it receives."""

    documents: list = []
    removed: list = []

    def index(self, document):
        RecordingSearchIndex.documents.append(document)

    def remove(self, message_id):
        RecordingSearchIndex.removed.append(message_id)


@pytest.fixture
def search_index(settings):
    """Route index emission to RecordingSearchIndex and return it."""
    RecordingSearchIndex.documents = []
    RecordingSearchIndex.removed = []
    settings.CHAT_SEARCH_INDEX_BACKEND = "chat.tests.conftest.RecordingSearchIndex"
    return RecordingSearchIndex
