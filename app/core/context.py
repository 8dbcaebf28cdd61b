"""
Explicit caller identity passed into every service operation.

Services never read the current user from the request, a thread-local or
any other ambient state. Views build an ActorContext from the authenticated
request and hand it down; tests build one directly from a user.

Usage:
    from core.context import ActorContext

    actor = ActorContext.from_request(request)
    MessageService.create(actor, workspace_id, body="hi", channel_id=channel.id)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from django.http import HttpRequest


@dataclass(frozen=True)
class ActorContext:
    """
    Identity of the caller of a service operation.

    Attributes:
        user_id: Primary key of the authenticated user, or None when the
            caller is anonymous. Anonymous actors fail every mutation with
            UnauthorizedError and receive empty results on read paths.
    """

    user_id: int | None

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None

    @classmethod
    def for_user(cls, user) -> ActorContext:
        """Build an actor for a user instance (None yields an anonymous actor)."""
        if user is None or not getattr(user, "is_authenticated", False):
            return cls(user_id=None)
        return cls(user_id=user.pk)

    @classmethod
    def from_request(cls, request: HttpRequest) -> ActorContext:
        """Build an actor from an authenticated DRF/Django request."""
        return cls.for_user(getattr(request, "user", None))

    @classmethod
    def anonymous(cls) -> ActorContext:
        return cls(user_id=None)
