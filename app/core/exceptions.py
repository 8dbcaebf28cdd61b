"""
Base exception classes for application-wide error handling.

This module provides a standardized exception hierarchy that enables:
- Consistent error responses across the application
- Machine-readable error codes for client handling
- A stable HTTP status per error family

Exception Hierarchy:
    BaseApplicationError (base)
    ├── ValidationError - Malformed input (bad addressing, empty names)
    ├── UnauthorizedError - Caller is not a member or lacks the required role
    ├── NotFoundError - Message/channel/member/conversation/parent missing
    └── InvalidStateError - Action blocked by current state (last admin, etc.)

Usage:
    from core.exceptions import InvalidStateError, NotFoundError

    # Raise with message only
    raise NotFoundError("Message not found")

    # Raise with error code so the client can explain why the action is blocked
    raise InvalidStateError(
        "Cannot leave workspace as the last admin",
        error_code="LAST_ADMIN",
    )

    # Convert to dict for API response
    try:
        ...
    except BaseApplicationError as e:
        return Response(e.to_dict(), status=e.http_status)

Note:
    These exceptions are for domain/business logic errors.
    DRF handles API-layer exceptions (serialization, authentication, etc.).
    None of them are retried anywhere; retries are the caller's decision.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Provides a consistent interface for error handling across the application.
    All custom exceptions should inherit from this class.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable code for client-side handling
        details: Additional error context (field errors, ids, etc.)
        http_status: Status code used by core.views.api_exception_handler

    Example:
        try:
            member = MembershipResolver.require_member(actor, workspace_id)
        except UnauthorizedError as e:
            logger.warning(f"Rejected: {e.error_code}")
            return Response(e.to_dict(), status=e.http_status)
    """

    default_error_code: str = "APPLICATION_ERROR"
    http_status: int = 400

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        """
        Initialize the exception.

        Args:
            message: Human-readable error description
            error_code: Machine-readable error code (defaults to class default)
            details: Additional error context
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to dictionary for API responses.

        Returns:
            Dictionary with error, error_code, and details

        Example:
            >>> NotFoundError("Channel not found").to_dict()
            {'error': 'Channel not found', 'error_code': 'NOT_FOUND', 'details': {}}
        """
        return {
            "error": self.message,
            "error_code": self.error_code,
            "details": self.details,
        }

    def __str__(self) -> str:
        """Return the error message."""
        return self.message

    def __repr__(self) -> str:
        """Return detailed representation for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r})"
        )


class ValidationError(BaseApplicationError):
    """
    Raised when input is malformed before any state is consulted.

    Use for addressing tuples that name both a channel and a conversation,
    blank names, unknown roles and similar shape problems.

    Example:
        raise ValidationError(
            "Specify a channel or a conversation, not both",
            error_code="INVALID_ADDRESS",
        )
    """

    default_error_code = "VALIDATION_ERROR"
    http_status = 400


class UnauthorizedError(BaseApplicationError):
    """
    Raised when the caller is not a member of the workspace or lacks the role.

    Surfaced to the caller as-is; never retried.

    Example:
        raise UnauthorizedError("Admin role required", error_code="ADMIN_REQUIRED")
    """

    default_error_code = "UNAUTHORIZED"
    http_status = 403


class NotFoundError(BaseApplicationError):
    """
    Raised when a referenced row does not exist.

    Example:
        raise NotFoundError("Parent message not found", error_code="PARENT_NOT_FOUND")
    """

    default_error_code = "NOT_FOUND"
    http_status = 404


class InvalidStateError(BaseApplicationError):
    """
    Raised when the current state blocks the action.

    Always carries a specific error_code so the UI can explain why the
    action is blocked (LAST_ADMIN, ADMIN_CANNOT_BE_REMOVED, ALREADY_MEMBER...).

    Example:
        raise InvalidStateError(
            "Admin cannot be removed",
            error_code="ADMIN_CANNOT_BE_REMOVED",
        )
    """

    default_error_code = "INVALID_STATE"
    http_status = 409
