"""
ViewSet mixins for common DRF functionality.

This module provides generic, non-domain-specific mixins for viewsets:
- ActorMixin: Builds the ActorContext handed to services
- WorkspaceScopedMixin: Reads the workspace id of nested routes

Services never see the request. Views translate the request into an
ActorContext plus plain arguments, call a service, and let
core.views.api_exception_handler render any application error.

Usage:
    from core.viewset_mixins import ActorMixin, WorkspaceScopedMixin

    class ChannelViewSet(ActorMixin, WorkspaceScopedMixin, viewsets.ViewSet):
        def list(self, request, workspace_pk=None):
            channels = ChannelService.list_for_member(self.actor, self.workspace_id)
            return Response(ChannelSerializer(channels, many=True).data)
"""

from __future__ import annotations

import uuid

from core.context import ActorContext
from core.exceptions import NotFoundError, ValidationError


class ActorMixin:
    """Expose the caller as an ActorContext."""

    @property
    def actor(self) -> ActorContext:
        return ActorContext.from_request(self.request)


class WorkspaceScopedMixin:
    """
    Access the workspace id captured by nested URL patterns.

    Routes are declared as workspaces/<uuid:workspace_pk>/..., so the id is
    already a UUID by the time it reaches the view.
    """

    workspace_lookup_kwarg = "workspace_pk"

    @property
    def workspace_id(self):
        return self.kwargs[self.workspace_lookup_kwarg]

    def query_uuid(self, name: str) -> uuid.UUID | None:
        """
        Read an optional UUID query parameter.

        Raises:
            ValidationError: The parameter is present but not a UUID
        """
        value = self.request.query_params.get(name)
        if not value:
            return None
        try:
            return uuid.UUID(value)
        except ValueError:
            raise ValidationError(f"Invalid {name}", error_code="INVALID_PARAMETER")

    def ensure_in_workspace(self, obj, error_code: str, label: str):
        """
        Return obj if it belongs to the routed workspace.

        Raises:
            NotFoundError: obj is None or lives in another workspace
        """
        if obj is None or obj.workspace_id != self.workspace_id:
            raise NotFoundError(f"{label} not found", error_code=error_code)
        return obj
