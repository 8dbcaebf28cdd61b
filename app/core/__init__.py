"""
Core Application - Infrastructure & Base Classes

Generic, reusable building blocks shared by the workspaces and chat apps.

Models (import from core.models):
    - BaseModel: Abstract model with timestamps (created_at, updated_at)

Model Mixins (import from core.model_mixins):
    - UUIDPrimaryKeyMixin: UUID as primary key

Services (import from core.services):
    - BaseService: Base class for the service layer (logger, atomic, on_commit)

Context (import from core.context):
    - ActorContext: Explicit caller identity passed to every service call

Exceptions (import from core.exceptions):
    - BaseApplicationError: Base exception with error codes
    - ValidationError: Malformed input
    - UnauthorizedError: Not a member / missing role
    - NotFoundError: Resource not found
    - InvalidStateError: Action blocked by current state

Note:
    Django models and model mixins are NOT imported here to avoid
    AppRegistryNotReady errors. Import them directly from their modules.
"""

from .context import ActorContext
from .exceptions import (
    BaseApplicationError,
    InvalidStateError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from .services import BaseService

__all__ = [
    "ActorContext",
    "BaseService",
    "BaseApplicationError",
    "ValidationError",
    "UnauthorizedError",
    "NotFoundError",
    "InvalidStateError",
]
