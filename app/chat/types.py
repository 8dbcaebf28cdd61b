"""
Value types shared by chat services, serializers and views.

Types:
    Address: Addressing tuple that scopes messages, drafts and read markers
    ReactionSummary: One folded reaction value on a message
    ThreadSummary: Reply count and last replier of a top-level message
    Cursor: Opaque keyset cursor for newest-first listings
    MessagePage: One page of a listing plus the cursor for the next one
"""

from __future__ import annotations

import base64
import json
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from chat.models import Message


@dataclass(frozen=True)
class Address:
    """
    Addressing tuple {workspace, channel?, conversation?, parent_message?}.

    Exactly one of channel/conversation is the top-level target once the
    address has been resolved; parent_message marks a thread and may
    co-occur with either. lookup() is used verbatim as ORM filter kwargs so
    every component matches NULLs exactly.
    """

    workspace_id: uuid.UUID
    channel_id: uuid.UUID | None = None
    conversation_id: uuid.UUID | None = None
    parent_message_id: uuid.UUID | None = None

    @property
    def is_thread(self) -> bool:
        return self.parent_message_id is not None

    @property
    def has_target(self) -> bool:
        return self.channel_id is not None or self.conversation_id is not None

    @property
    def is_bare_thread_reply(self) -> bool:
        """Thread reply that names neither a channel nor a conversation."""
        return self.is_thread and not self.has_target

    def lookup(self) -> dict:
        return {
            "channel_id": self.channel_id,
            "conversation_id": self.conversation_id,
            "parent_message_id": self.parent_message_id,
        }

    def top_level(self) -> Address:
        """Same target without the thread parent."""
        return replace(self, parent_message_id=None)

    def with_target(self, channel_id=None, conversation_id=None) -> Address:
        return replace(self, channel_id=channel_id, conversation_id=conversation_id)


@dataclass
class ReactionSummary:
    """Reactions with one value folded together, one entry per member."""

    value: str
    count: int
    member_ids: list = field(default_factory=list)


@dataclass
class ThreadSummary:
    """Reply count and last replier identity of a top-level message."""

    count: int = 0
    image: str | None = None
    name: str = ""
    timestamp: datetime | None = None


@dataclass
class Cursor:
    """
    Cursor for keyset pagination of newest-first listings.

    position is the sort key of the last row returned (created_at for
    message pages, last_reply_at for thread pages) and last_id breaks ties.
    """

    position: datetime
    last_id: uuid.UUID

    def encode(self) -> str:
        """Encode cursor as base64 JSON string."""
        data = {"position": self.position.isoformat(), "last_id": str(self.last_id)}
        return base64.urlsafe_b64encode(json.dumps(data).encode()).decode()

    @classmethod
    def decode(cls, encoded: str) -> Cursor:
        """
        Decode cursor from base64 JSON string.

        Raises:
            ValueError: If the cursor is malformed
        """
        try:
            data = json.loads(base64.urlsafe_b64decode(encoded.encode()).decode())
            return cls(
                position=datetime.fromisoformat(data["position"]),
                last_id=uuid.UUID(data["last_id"]),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise ValueError("Invalid cursor") from exc


@dataclass
class MessagePage:
    """A page of enriched messages, newest first."""

    items: list[Message]
    next_cursor: str | None = None

    @property
    def has_more(self) -> bool:
        return self.next_cursor is not None
