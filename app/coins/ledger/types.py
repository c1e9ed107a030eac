"""
Money utilities and data types for ledger operations.

Guincoin amounts are fixed-point decimals with two fractional digits.
Values arrive from chat commands, JSON bodies and the database as str,
int, float or Decimal; everything is converted to Decimal at the boundary
and converted back to a number only when handed to a collaborator.

Functions:
    to_decimal: Parse any numeric input into a Decimal (no rounding)
    to_number: Decimal (or None) to float for JSON payloads
    has_valid_scale: Whether a value fits the two-place coin scale
    validate_amount: Parse and validate a user-supplied amount

Types:
    AccountBalance: {posted, pending, total}
    TransactionPage: Paginated history
    AllotmentStatus: Manager budget view
    TransferLimitStatus: Sender limit view
    TransferOutcome: Result of a peer transfer

Usage:
    from coins.ledger.types import validate_amount, to_number

    amount = validate_amount("12.50")      # Decimal("12.50")
    validate_amount("0.001")               # raises InvalidAmount
    to_number(Decimal("12.50"))            # 12.5
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any

from .exceptions import InvalidAmount

if TYPE_CHECKING:
    from datetime import datetime

COIN_PLACES = 2
MAX_DIGITS = 12
COIN_QUANTUM = Decimal(1).scaleb(-COIN_PLACES)
ZERO = Decimal("0.00")


def to_decimal(value: Any) -> Decimal:
    """
    Convert arbitrary numeric input to Decimal without rounding.

    Floats go through str() so that 0.1 becomes Decimal("0.1") rather
    than its binary expansion.

    Raises:
        InvalidAmount: For non-numeric, NaN or infinite input
    """
    if isinstance(value, bool):
        raise InvalidAmount("Amount must be a number")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, float):
        result = Decimal(str(value))
    else:
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            raise InvalidAmount("Amount must be a number") from None

    if not result.is_finite():
        raise InvalidAmount("Amount must be a number")
    return result


def to_number(value: Decimal | None) -> float:
    """Convert a Decimal amount to a float for collaborator payloads."""
    if value is None:
        return 0.0
    return float(value)


def has_valid_scale(amount: Decimal) -> bool:
    """True if the amount has no more than COIN_PLACES fractional digits."""
    return amount.normalize().as_tuple().exponent >= -COIN_PLACES


def validate_amount(value: Any, allow_negative: bool = False) -> Decimal:
    """
    Parse and validate a user-supplied amount.

    Args:
        value: Raw amount
        allow_negative: Accept negative values (admin deductions, adjustments)

    Returns:
        The amount quantized to two places

    Raises:
        InvalidAmount: Zero, negative (unless allowed), sub-cent precision,
            or too many digits
    """
    amount = to_decimal(value)

    if amount == 0:
        raise InvalidAmount("Amount must not be zero")
    if amount < 0 and not allow_negative:
        raise InvalidAmount("Amount must be positive")
    if not has_valid_scale(amount):
        raise InvalidAmount(
            f"Amount cannot have more than {COIN_PLACES} decimal places"
        )

    if amount.adjusted() >= MAX_DIGITS - COIN_PLACES:
        raise InvalidAmount("Amount is too large")
    return amount.quantize(COIN_QUANTUM)


# =============================================================================
# Result Types
# =============================================================================


@dataclass
class AccountBalance:
    """
    Balance view of an account.

    Attributes:
        posted: Sum of posted transactions (the materialized balance)
        pending: Signed sum of pending transactions (0 unless requested)
        total: posted + pending
    """

    posted: Decimal = ZERO
    pending: Decimal = ZERO
    total: Decimal = ZERO

    def to_dict(self) -> dict[str, float]:
        return {
            "posted": to_number(self.posted),
            "pending": to_number(self.pending),
            "total": to_number(self.total),
        }


@dataclass
class TransactionPage:
    """One page of an account's transaction history, newest first."""

    transactions: list
    total: int
    limit: int
    offset: int


@dataclass
class AllotmentStatus:
    """
    A manager's award budget.

    Attributes:
        balance: Posted balance of the allotment account
        used_this_period: Posted + pending awards in the current period
        recurring_budget: Per-period auto-deposit amount (0 = disabled)
        remaining: Balance minus awards still pending
        period_start: Start of the current period
        period_end: End of the current period
    """

    balance: Decimal
    used_this_period: Decimal
    recurring_budget: Decimal
    remaining: Decimal
    period_start: datetime
    period_end: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "balance": to_number(self.balance),
            "usedThisPeriod": to_number(self.used_this_period),
            "recurringBudget": to_number(self.recurring_budget),
            "remaining": to_number(self.remaining),
            "periodStart": self.period_start.isoformat(),
            "periodEnd": self.period_end.isoformat(),
        }


@dataclass
class TransferLimitStatus:
    """Peer transfer limit usage for the current period."""

    max_amount: Decimal
    used_amount: Decimal
    remaining: Decimal
    period_start: datetime
    period_end: datetime
    period_type: str = "monthly"

    def to_dict(self) -> dict[str, Any]:
        return {
            "periodType": self.period_type,
            "maxAmount": to_number(self.max_amount),
            "usedAmount": to_number(self.used_amount),
            "remaining": to_number(self.remaining),
            "periodStart": self.period_start.isoformat(),
            "periodEnd": self.period_end.isoformat(),
        }


@dataclass
class TransferOutcome:
    """
    Result of a peer transfer.

    Attributes:
        sender_transaction: Posted peer_transfer_sent debit
        recipient_transaction: Posted peer_transfer_received credit, None
            when the coins went into escrow
        pending_transfer: Escrow record, None for completed transfers
        sender_balance: Sender's posted balance after the debit
        is_pending: True when the recipient is not yet registered
    """

    sender_transaction: Any
    sender_balance: Decimal
    recipient_transaction: Any = None
    pending_transfer: Any = None
    is_pending: bool = False
    recipient_name: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "transactionId": str(self.sender_transaction.id),
            "recipientTransactionId": (
                str(self.recipient_transaction.id)
                if self.recipient_transaction is not None
                else None
            ),
            "pendingTransferId": (
                str(self.pending_transfer.id)
                if self.pending_transfer is not None
                else None
            ),
            "amount": to_number(self.sender_transaction.amount),
            "recipientName": self.recipient_name,
            "senderBalance": to_number(self.sender_balance),
            "isPending": self.is_pending,
        }
