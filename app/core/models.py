"""
Core base model providing timestamps for all domain models.

Base Classes:
    BaseModel: Abstract model with timestamps (created_at, updated_at)

For the UUID primary key mixin, see core.model_mixins.

Usage:
    from core.models import BaseModel
    from core.model_mixins import UUIDPrimaryKeyMixin

    class PendingTransfer(UUIDPrimaryKeyMixin, BaseModel):
        amount = models.DecimalField(max_digits=12, decimal_places=2)

Note:
    Always list mixins before BaseModel in inheritance.
"""

from __future__ import annotations

from django.db import models


class BaseModel(models.Model):
    """
    Abstract base model providing creation and modification timestamps.

    Fields:
        created_at: Set when the object is first created (indexed, since
            ledger queries filter by period)
        updated_at: Updated whenever the object is saved
    """

    created_at = models.DateTimeField(
        auto_now_add=True,
        db_index=True,
        help_text="Timestamp when this record was created",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="Timestamp when this record was last modified",
    )

    class Meta:
        abstract = True
        ordering = ["-created_at"]

    def __str__(self) -> str:
        """Default string representation using primary key."""
        return f"{self.__class__.__name__}(id={self.pk})"
