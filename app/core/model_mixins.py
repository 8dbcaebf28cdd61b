"""
Model mixins providing reusable functionality for Django models.

Available Mixins:
    UUIDPrimaryKeyMixin: Use UUID as primary key

Usage:
    from core.models import BaseModel
    from core.model_mixins import UUIDPrimaryKeyMixin

    class Workspace(UUIDPrimaryKeyMixin, BaseModel):
        name = models.CharField(max_length=80)

Note:
    - Always list mixins before BaseModel in inheritance
    - Mixins are abstract and don't create database tables
"""

from __future__ import annotations

import uuid

from django.db import models


class UUIDPrimaryKeyMixin(models.Model):
    """
    Use UUID as primary key instead of auto-increment integer.

    Identifiers are opaque, globally unique and immutable once assigned.
    They travel through URLs, search-index documents and draft addressing
    tuples, so they must not reveal ordering or record counts.

    Fields:
        id: UUIDField as primary key (auto-generated)

    Usage:
        channel = Channel.objects.create(workspace=workspace, name="general")
        print(channel.id)  # UUID like: 550e8400-e29b-41d4-a716-446655440000
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier for this record",
    )

    class Meta:
        abstract = True
