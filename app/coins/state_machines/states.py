"""
State and classification enums for the coin ledger.

These are Django TextChoices for database storage and admin integration.
LedgerTransaction.status is driven by django-fsm.

LedgerTransaction States:
    pending → posted    (balance updated, terminal)
    pending → rejected  (no balance effect, terminal)

Credit/debit classification:
    CREDIT_TYPES and DEBIT_TYPES below are the only place that decides
    which direction a transaction type moves an account balance. The
    ledger poster, balance queries and reports all go through
    signed_amount() / signed_sum_expression().
"""

from __future__ import annotations

from decimal import Decimal

from django.db import models
from django.db.models import Case, DecimalField, F, Sum, Value, When
from django.db.models.functions import Coalesce


class TransactionStatus(models.TextChoices):
    """
    States for the LedgerTransaction lifecycle.

    Terminal states: POSTED, REJECTED

    State Flow:
        PENDING → POSTED
        PENDING → REJECTED
    """

    PENDING = "pending", "Pending"
    POSTED = "posted", "Posted"
    REJECTED = "rejected", "Rejected"


class TransactionType(models.TextChoices):
    """
    Kinds of ledger transactions.

    Values:
        MANAGER_AWARD: Credit to an employee funded by a manager allotment
        PEER_TRANSFER_SENT: Debit on the sender of a peer transfer
        PEER_TRANSFER_RECEIVED: Credit on the recipient of a peer transfer
        PEER_TRANSFER_REFUND: Credit returning a cancelled escrowed transfer
        WELLNESS_REWARD: Credit for a completed wellness task
        STORE_PURCHASE: Debit for a store redemption
        ADJUSTMENT: Signed admin correction
        ALLOTMENT_DEPOSIT: Credit to a manager allotment
        ALLOTMENT_DEDUCTION: Debit on a manager allotment (negative deposit)
        ALLOTMENT_AWARD: Debit on a manager allotment when awarding
    """

    MANAGER_AWARD = "manager_award", "Manager Award"
    PEER_TRANSFER_SENT = "peer_transfer_sent", "Peer Transfer Sent"
    PEER_TRANSFER_RECEIVED = "peer_transfer_received", "Peer Transfer Received"
    PEER_TRANSFER_REFUND = "peer_transfer_refund", "Peer Transfer Refund"
    WELLNESS_REWARD = "wellness_reward", "Wellness Reward"
    STORE_PURCHASE = "store_purchase", "Store Purchase"
    ADJUSTMENT = "adjustment", "Adjustment"
    ALLOTMENT_DEPOSIT = "allotment_deposit", "Allotment Deposit"
    ALLOTMENT_DEDUCTION = "allotment_deduction", "Allotment Deduction"
    ALLOTMENT_AWARD = "allotment_award", "Allotment Award"


class AccountType(models.TextChoices):
    """
    Kinds of coin accounts.

    Values:
        EMPLOYEE: Personal earned balance
        ALLOTMENT: A manager's award budget
    """

    EMPLOYEE = "employee", "Employee"
    ALLOTMENT = "allotment", "Allotment"


class PeriodType(models.TextChoices):
    """Budget and limit periods."""

    MONTHLY = "monthly", "Monthly"
    QUARTERLY = "quarterly", "Quarterly"


# =============================================================================
# Credit / Debit Classification
# =============================================================================

CREDIT_TYPES: frozenset[str] = frozenset(
    {
        TransactionType.MANAGER_AWARD,
        TransactionType.PEER_TRANSFER_RECEIVED,
        TransactionType.PEER_TRANSFER_REFUND,
        TransactionType.WELLNESS_REWARD,
        TransactionType.ALLOTMENT_DEPOSIT,
        # Signed: a negative adjustment reduces the balance
        TransactionType.ADJUSTMENT,
    }
)

DEBIT_TYPES: frozenset[str] = frozenset(
    {
        TransactionType.PEER_TRANSFER_SENT,
        TransactionType.STORE_PURCHASE,
        TransactionType.ALLOTMENT_DEDUCTION,
        TransactionType.ALLOTMENT_AWARD,
    }
)

# Types whose stored amount may be negative
SIGNED_TYPES: frozenset[str] = frozenset({TransactionType.ADJUSTMENT})


def is_credit(transaction_type: str) -> bool:
    """Return True if the type increases the owning account's balance."""
    if transaction_type in CREDIT_TYPES:
        return True
    if transaction_type in DEBIT_TYPES:
        return False
    raise ValueError(f"Unclassified transaction type: {transaction_type}")


def signed_amount(transaction_type: str, amount: Decimal) -> Decimal:
    """
    Balance effect of a transaction of this type and amount.

    Credits (including signed adjustments) keep their sign; debits are
    negated.
    """
    return amount if is_credit(transaction_type) else -amount


def signed_sum_expression():
    """
    Aggregate expression summing transaction amounts by direction.

    Usage:
        LedgerTransaction.objects.filter(account=account, status="posted")
            .aggregate(total=signed_sum_expression())
    """
    decimal_field = DecimalField(max_digits=14, decimal_places=2)
    return Coalesce(
        Sum(
            Case(
                When(transaction_type__in=list(CREDIT_TYPES), then=F("amount")),
                When(transaction_type__in=list(DEBIT_TYPES), then=-F("amount")),
                default=Value(Decimal("0")),
                output_field=decimal_field,
            )
        ),
        Value(Decimal("0")),
        output_field=decimal_field,
    )
