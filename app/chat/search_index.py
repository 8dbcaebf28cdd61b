"""
Full-text index emission.

The search index is a downstream consumer: it is told about message text
changes and never read by the chat services. Documents are handed to Celery
after the surrounding transaction commits, so the index never sees a message
that was rolled back. The backend receiving them is configured with
settings.CHAT_SEARCH_INDEX_BACKEND.

Document shape (on create/edit):
    id, body, workspace_id, channel_id, author_name, updated_at,
    conversation_id, parent_message_id

Removal (on delete):
    message id only
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from django.conf import settings
from django.db import transaction
from django.utils.module_loading import import_string

if TYPE_CHECKING:
    from chat.models import Message

logger = logging.getLogger(__name__)


@runtime_checkable
class SearchIndexBackend(Protocol):
    """Interface of the downstream full-text index client."""

    def index(self, document: dict) -> None:
        """Insert or replace the document for one message."""
        ...

    def remove(self, message_id: str) -> None:
        """Drop the document of one message."""
        ...


class LoggingSearchIndex:
    """Default backend: records what would be sent to the index."""

    def index(self, document: dict) -> None:
        logger.info(f"Indexed message {document['id']} in workspace {document['workspace_id']}")

    def remove(self, message_id: str) -> None:
        logger.info(f"Removed message {message_id} from index")


def get_search_index() -> SearchIndexBackend:
    """Instantiate the configured search index backend."""
    return import_string(settings.CHAT_SEARCH_INDEX_BACKEND)()


def _str_or_none(value) -> str | None:
    return str(value) if value is not None else None


def build_document(message: Message, author_name: str = "") -> dict:
    """Build the JSON-serializable index document for a message."""
    updated_at = message.edited_at or message.updated_at or message.created_at
    return {
        "id": str(message.pk),
        "body": message.body,
        "workspace_id": str(message.workspace_id),
        "channel_id": _str_or_none(message.channel_id),
        "author_name": author_name,
        "updated_at": updated_at.isoformat() if updated_at else None,
        "conversation_id": _str_or_none(message.conversation_id),
        "parent_message_id": _str_or_none(message.parent_message_id),
    }


def schedule_index(message: Message, author_name: str = "") -> None:
    """Send the message to the index once the current transaction commits."""
    from chat.tasks import index_message

    document = build_document(message, author_name)
    transaction.on_commit(lambda: index_message.delay(document))


def schedule_unindex(message_id) -> None:
    """Remove the message from the index once the current transaction commits."""
    from chat.tasks import unindex_message

    message_id = str(message_id)
    transaction.on_commit(lambda: unindex_message.delay(message_id))
