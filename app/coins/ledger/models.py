"""
Ledger models for Guincoin balances.

This module defines the system of record for balances:
- Account: An employee's earned balance or a manager's allotment, with a
  materialized running balance
- LedgerTransaction: A single credit or debit against one account

The materialized Account.balance always equals the signed sum of the
account's posted transactions. It is only changed by
LedgerService.post_transaction(), which updates it in the same database
transaction that flips the status to posted.

Usage:
    from coins.ledger.models import Account, LedgerTransaction

    account = Account.objects.get(owner=employee, account_type="employee")
    account.balance          # Decimal("70.00")
    account.computed_balance()  # recomputed from posted rows
"""

from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from django.db import models
from django.db.models import Q
from django.utils import timezone

from django_fsm import FSMField, transition

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel

from coins.state_machines import (
    AccountType,
    TransactionStatus,
    TransactionType,
    signed_amount,
    signed_sum_expression,
)


class Account(UUIDPrimaryKeyMixin, BaseModel):
    """
    A coin account owned by an employee.

    Every employee has one EMPLOYEE account; managers additionally have
    one ALLOTMENT account holding their award budget.

    Fields:
        id: UUID primary key (from UUIDPrimaryKeyMixin)
        owner: Employee that owns this account
        account_type: employee or allotment
        balance: Materialized posted balance, never negative
        is_active: Inactive accounts reject new postings
        created_at / updated_at: From BaseModel

    Constraints:
        - One account per (owner, account_type)
        - balance >= 0
    """

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="coin_accounts",
        help_text="Employee who owns this account",
    )
    account_type = models.CharField(
        max_length=20,
        choices=AccountType.choices,
        default=AccountType.EMPLOYEE,
        help_text="Personal balance or manager allotment",
    )
    balance = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Sum of posted transactions (maintained by the ledger)",
    )
    is_active = models.BooleanField(
        default=True,
        db_index=True,
        help_text="Whether this account accepts new postings",
    )

    class Meta:
        ordering = ["created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["owner", "account_type"],
                name="unique_coin_account_per_owner",
            ),
            models.CheckConstraint(
                condition=Q(balance__gte=0),
                name="coin_account_balance_non_negative",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.get_account_type_display()} ({self.owner_id})"

    def computed_balance(self) -> Decimal:
        """
        Recompute the balance from posted transactions.

        Used by reconciliation; the hot path reads the materialized
        balance field instead.
        """
        result = self.transactions.filter(status=TransactionStatus.POSTED).aggregate(
            total=signed_sum_expression()
        )
        return result["total"]


class LedgerTransaction(UUIDPrimaryKeyMixin, BaseModel):
    """
    A single credit or debit against one account.

    Transactions are created pending and move once, to posted or
    rejected. The amount never changes after creation and rows are
    never deleted.

    Fields:
        account: Account whose balance this transaction affects
        transaction_type: See TransactionType; direction comes from
            the CREDIT_TYPES / DEBIT_TYPES table
        amount: Positive amount (signed only for adjustments)
        description: Human-readable description
        status: pending / posted / rejected (django-fsm, protected)
        source_employee: Employee who initiated the movement
        target_employee: Employee on the other side, if any
        idempotency_key: Optional unique key for safe retries
        posted_at / rejected_at: Transition timestamps

    Constraints:
        - amount > 0, except adjustments which must be non-zero
    """

    account = models.ForeignKey(
        Account,
        on_delete=models.PROTECT,
        related_name="transactions",
        help_text="Account affected by this transaction",
    )
    transaction_type = models.CharField(
        max_length=40,
        choices=TransactionType.choices,
        db_index=True,
        help_text="Kind of transaction",
    )
    amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        help_text="Amount (positive; adjustments may be negative)",
    )
    description = models.TextField(
        blank=True,
        default="",
        help_text="Human-readable description",
    )
    status = FSMField(
        default=TransactionStatus.PENDING,
        choices=TransactionStatus.choices,
        db_index=True,
        protected=True,
        help_text="Current status (managed by FSM)",
    )
    source_employee = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="sourced_transactions",
        help_text="Employee who initiated this movement",
    )
    target_employee = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="targeted_transactions",
        help_text="Employee on the receiving side",
    )
    idempotency_key = models.CharField(
        max_length=255,
        unique=True,
        null=True,
        blank=True,
        help_text="Unique key to prevent duplicate transactions",
    )
    posted_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the transaction was posted",
    )
    rejected_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the transaction was rejected",
    )

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["account", "status"], name="coin_tx_account_status_idx"),
            models.Index(
                fields=["source_employee", "transaction_type", "created_at"],
                name="coin_tx_source_type_idx",
            ),
        ]
        constraints = [
            models.CheckConstraint(
                condition=(
                    Q(amount__gt=0)
                    | (Q(transaction_type=TransactionType.ADJUSTMENT) & ~Q(amount=0))
                ),
                name="ledger_transaction_amount_valid",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.get_transaction_type_display()}: {self.amount} ({self.status})"

    @property
    def signed_amount(self) -> Decimal:
        """Balance effect of this transaction on its account."""
        return signed_amount(self.transaction_type, self.amount)

    # ==========================================================================
    # State Transitions (django-fsm)
    # ==========================================================================

    @transition(
        field=status,
        source=TransactionStatus.PENDING,
        target=TransactionStatus.POSTED,
    )
    def post(self):
        """
        Mark the transaction as posted.

        Transition: PENDING -> POSTED

        Only LedgerService.post_transaction() calls this, in the same
        database transaction that updates the account balance.
        """
        self.posted_at = timezone.now()

    @transition(
        field=status,
        source=TransactionStatus.PENDING,
        target=TransactionStatus.REJECTED,
    )
    def reject(self):
        """
        Mark the transaction as rejected.

        Transition: PENDING -> REJECTED
        """
        self.rejected_at = timezone.now()
