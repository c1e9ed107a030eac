"""
AllotmentPolicy model: a manager's recurring award budget.

The allotment balance itself lives in the manager's
Account(account_type=allotment). This model only carries the
per-period auto-deposit configuration and the bookkeeping that keeps
the recurring deposit job idempotent.

Usage:
    from coins.models import AllotmentPolicy

    policy, _ = AllotmentPolicy.objects.get_or_create(manager=manager)
    policy.recurring_budget = Decimal("200.00")
    policy.save(update_fields=["recurring_budget", "updated_at"])
"""

from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from django.db import models
from django.db.models import Q

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel

from coins.state_machines import PeriodType


class AllotmentPolicy(UUIDPrimaryKeyMixin, BaseModel):
    """
    Recurring budget configuration for one manager.

    Fields:
        manager: The manager this budget belongs to
        recurring_budget: Amount deposited each period (0 disables it)
        period_type: monthly or quarterly
        last_applied_period_start: Start of the last period the
            recurring deposit was applied for
    """

    manager = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="allotment_policy",
        help_text="Manager whose allotment this configures",
    )
    recurring_budget = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Per-period auto-deposit amount (0 = disabled)",
    )
    period_type = models.CharField(
        max_length=20,
        choices=PeriodType.choices,
        default=PeriodType.MONTHLY,
        help_text="Budget period",
    )
    last_applied_period_start = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Period start of the most recent recurring deposit",
    )

    class Meta:
        verbose_name_plural = "allotment policies"
        constraints = [
            models.CheckConstraint(
                condition=Q(recurring_budget__gte=0),
                name="allotment_policy_budget_non_negative",
            ),
        ]

    def __str__(self) -> str:
        return f"Allotment policy for {self.manager_id}: {self.recurring_budget}/{self.period_type}"

    @property
    def is_recurring(self) -> bool:
        return self.recurring_budget > 0
