"""
Ledger-specific exceptions.

Exception Hierarchy:
    LedgerError (base)
    ├── InvalidAmount - Zero, negative or sub-cent amounts
    ├── AccountNotFound - Account lookup failures
    ├── InactiveAccount - Operations on inactive accounts
    ├── InsufficientBalance - Posting would make a balance negative
    ├── TransactionNotFound - Transaction lookup failures
    └── TransactionNotPending - Posting/rejecting a terminal transaction

Messages are safe to show to users: InsufficientBalance keeps the
figures in attributes and details, never in the message.

Usage:
    from coins.ledger.exceptions import InsufficientBalance, TransactionNotPending

    try:
        ledger.post_transaction(tx.id)
    except TransactionNotPending:
        # Retried request; the first attempt already posted it
        ...
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import BaseApplicationError, ConflictError, NotFoundError

if TYPE_CHECKING:
    import uuid
    from decimal import Decimal
    from typing import Any


class LedgerError(BaseApplicationError):
    """
    Base exception for all ledger operations.

    Example:
        try:
            ledger.post_transaction(tx.id)
        except LedgerError as e:
            logger.error(f"Ledger operation failed: {e}")
    """

    default_error_code: str = "LEDGER_ERROR"


class InvalidAmount(LedgerError):
    """Raised when an amount is zero, negative, or more precise than a cent."""

    default_error_code: str = "INVALID_AMOUNT"


class AccountNotFound(LedgerError):
    """Raised when a coin account cannot be found."""

    default_error_code: str = "ACCOUNT_NOT_FOUND"
    http_status = NotFoundError.http_status


class InactiveAccount(LedgerError):
    """Raised when attempting to post to an inactive account."""

    default_error_code: str = "INACTIVE_ACCOUNT"


class InsufficientBalance(LedgerError):
    """
    Raised when posting a debit would take a balance below zero.

    Attributes:
        account_id: The account with insufficient funds
        required: Amount the posting needed
        available: Posted balance at the time of the check

    Note:
        The figures are kept out of the message; chat cards and shared
        channels render the message verbatim.
    """

    default_error_code: str = "INSUFFICIENT_BALANCE"

    def __init__(
        self,
        account_id: uuid.UUID,
        required: Decimal,
        available: Decimal,
        message: str = "Insufficient balance",
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.account_id = account_id
        self.required = required
        self.available = available

        full_details = {
            "account_id": str(account_id),
            "required": str(required),
            "available": str(available),
        }
        if details:
            full_details.update(details)

        super().__init__(
            message=message,
            error_code=error_code,
            details=full_details,
        )


class TransactionNotFound(LedgerError):
    """Raised when a ledger transaction cannot be found."""

    default_error_code: str = "TRANSACTION_NOT_FOUND"
    http_status = NotFoundError.http_status


class TransactionNotPending(LedgerError):
    """
    Raised when posting or rejecting a transaction that is not pending.

    This is the double-posting guard: a retried post of an already
    posted transaction ends here instead of applying twice.
    """

    default_error_code: str = "TRANSACTION_NOT_PENDING"
    http_status = ConflictError.http_status
