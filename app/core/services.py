"""
Base service layer patterns for business logic encapsulation.

Service Layer Philosophy:
    Services encapsulate business logic separate from views and models.
    Views handle HTTP concerns, models handle data, services handle logic.
    Every public operation receives an explicit ActorContext (core.context)
    instead of reading the current user from request or thread state.

Error Pattern:
    Services raise the typed errors from core.exceptions for expected
    failures (Unauthorized, NotFound, InvalidState). Unexpected storage
    errors propagate unmodified.

Usage:
    from core.services import BaseService

    class ChannelService(BaseService):
        @classmethod
        def create(cls, actor: ActorContext, workspace_id, name: str) -> Channel:
            with cls.atomic():
                MembershipResolver.require_admin(actor, workspace_id)
                channel = Channel.objects.create(workspace_id=workspace_id, name=name)

            cls.get_logger().info(f"Created channel {channel.id}")
            return channel

Related:
    - core.exceptions: Typed domain errors raised by services
    - core.views.api_exception_handler: Maps those errors to HTTP responses
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING

from django.db import transaction

if TYPE_CHECKING:
    from collections.abc import Callable, Generator


class BaseService:
    """
    Base class for service layer classes.

    Provides common utilities for services:
    - Logging setup per service
    - Database transaction management
    - Deferred side effects that must only run after commit

    Design Notes:
        - Use @staticmethod or @classmethod (no instance state)
        - Services should be stateless
        - Raise core.exceptions errors for expected failures
    """

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """
        Get logger for this service.

        Returns a logger named after the service class for
        easy filtering in logs.

        Example:
            class MessageService(BaseService):
                @classmethod
                def remove(cls, actor, message_id):
                    cls.get_logger().info(f"Removing message {message_id}")
        """
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    @contextmanager
    def atomic(cls) -> Generator[None, None, None]:
        """
        Execute operations in a database transaction.

        All database operations within this context manager are
        wrapped in a transaction. If any operation fails, all
        changes are rolled back. Nested use creates a savepoint.

        Example:
            with cls.atomic():
                message = Message.objects.create(...)
                Message.objects.filter(pk=parent_id).update(...)
                # If the parent update fails, the reply is rolled back too
        """
        with transaction.atomic():
            yield

    @classmethod
    def on_commit(cls, func: Callable[[], None]) -> None:
        """
        Schedule a side effect to run once the surrounding transaction commits.

        Outside a transaction the callback runs immediately. Used for
        notifying downstream consumers that must never observe rows
        that are later rolled back.
        """
        transaction.on_commit(func)
