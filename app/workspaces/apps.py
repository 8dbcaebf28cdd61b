"""
Workspaces application configuration.
"""

from django.apps import AppConfig


class WorkspacesConfig(AppConfig):
    """Configuration for the workspaces application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "workspaces"
    verbose_name = "Workspaces"
