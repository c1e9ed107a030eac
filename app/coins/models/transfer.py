"""
Peer transfer models: escrow records and per-period limits.

PendingTransfer holds coins sent to someone who is not yet a Guincoin
employee. The sender's peer_transfer_sent debit is already posted when
the row is created; the row itself is the escrow. It is deleted when
the recipient claims it or the sender cancels it.

PeerTransferLimit caps how much an employee may send in a period.

Usage:
    from coins.models import PendingTransfer, PeerTransferLimit

    PendingTransfer.objects.filter(recipient_email="new@example.com")
    PeerTransferLimit.objects.active_for(employee)
"""

from __future__ import annotations

from datetime import datetime

from django.conf import settings
from django.db import models
from django.db.models import F, Q
from django.utils import timezone

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel

from coins.ledger.models import LedgerTransaction
from coins.state_machines import PeriodType


class PendingTransfer(UUIDPrimaryKeyMixin, BaseModel):
    """
    Coins in escrow for a recipient who has not signed in yet.

    Fields:
        sender: Employee who sent the coins (already debited)
        recipient_email: Normalised email of the intended recipient
        amount: Escrowed amount
        message: Optional note from the sender
        sender_transaction: The posted peer_transfer_sent debit
    """

    sender = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="pending_transfers_sent",
        help_text="Employee who sent the coins",
    )
    recipient_email = models.EmailField(
        db_index=True,
        help_text="Email of the not-yet-registered recipient",
    )
    amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        help_text="Escrowed amount",
    )
    message = models.TextField(
        blank=True,
        default="",
        help_text="Message from the sender",
    )
    sender_transaction = models.OneToOneField(
        LedgerTransaction,
        on_delete=models.PROTECT,
        related_name="pending_transfer",
        help_text="Sender's posted debit for this transfer",
    )

    class Meta:
        ordering = ["created_at"]
        constraints = [
            models.CheckConstraint(
                condition=Q(amount__gt=0),
                name="pending_transfer_amount_positive",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.amount} from {self.sender_id} to {self.recipient_email}"


class PeerTransferLimitManager(models.Manager):
    """Manager with helpers for finding the limit in force."""

    def active_for(self, employee, at: datetime | None = None):
        """Return the limit whose period contains `at` (default now), or None."""
        at = at or timezone.now()
        return (
            self.filter(employee=employee, period_start__lte=at, period_end__gte=at)
            .order_by("-period_start")
            .first()
        )


class PeerTransferLimit(UUIDPrimaryKeyMixin, BaseModel):
    """
    Maximum amount an employee may send to peers within one period.

    Fields:
        employee: Sender the limit applies to
        period_type: monthly or quarterly
        period_start / period_end: Inclusive window
        max_amount: Cap on posted + pending peer_transfer_sent amounts
    """

    employee = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="peer_transfer_limits",
        help_text="Employee this limit applies to",
    )
    period_type = models.CharField(
        max_length=20,
        choices=PeriodType.choices,
        default=PeriodType.MONTHLY,
    )
    period_start = models.DateTimeField(help_text="Start of the limit window")
    period_end = models.DateTimeField(help_text="End of the limit window")
    max_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        help_text="Maximum total sent in the window",
    )

    objects = PeerTransferLimitManager()

    class Meta:
        ordering = ["-period_start"]
        constraints = [
            models.UniqueConstraint(
                fields=["employee", "period_type", "period_start"],
                name="unique_peer_transfer_limit_period",
            ),
            models.CheckConstraint(
                condition=Q(max_amount__gte=0),
                name="peer_transfer_limit_max_non_negative",
            ),
            models.CheckConstraint(
                condition=Q(period_end__gt=F("period_start")),
                name="peer_transfer_limit_period_valid",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.employee_id}: {self.max_amount} ({self.period_start:%Y-%m-%d})"
