"""
Authentication models.

Sign-in is delegated to an external identity provider. This app only keeps
the resolved identity that workspace members point at: an email-keyed user
with the display name and avatar shown next to messages, drafts and threads.

Related files:
    - managers.py: Custom user manager for email-based creation
"""

from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin
from django.db import models

from authentication.managers import UserManager


class User(AbstractBaseUser, PermissionsMixin):
    """
    Custom User model using email as the primary identifier.

    Fields:
        email: Primary identifier, unique
        name: Display name shown as message author and draft counterpart
        image: Avatar URL shown in thread summaries
        is_active: Whether the user account is active
        is_staff: Whether the user can access Django admin
        date_joined: When the user account was created
        updated_at: When the user record was last modified
    """

    email = models.EmailField(
        unique=True,
        db_index=True,
        max_length=254,
        help_text="User's email address (primary identifier)",
    )
    name = models.CharField(
        max_length=150,
        blank=True,
        default="",
        help_text="Display name shown to other workspace members",
    )
    image = models.URLField(
        max_length=500,
        blank=True,
        default="",
        help_text="Avatar URL provided by the identity provider",
    )

    is_active = models.BooleanField(
        default=True,
        help_text="Whether this user account is active. Deselect instead of deleting.",
    )
    is_staff = models.BooleanField(
        default=False,
        help_text="Whether the user can access the admin site.",
    )

    date_joined = models.DateTimeField(
        auto_now_add=True,
        help_text="When the user account was created",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="When the user record was last modified",
    )

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = []

    objects = UserManager()

    class Meta:
        verbose_name = "user"
        verbose_name_plural = "users"

    def __str__(self):
        return self.email

    @property
    def display_name(self) -> str:
        """Name if set, otherwise the local part of the email."""
        return self.name or self.email.split("@")[0]
