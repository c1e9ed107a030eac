"""
Ledger - the system of record for Guincoin balances.

Every account carries a materialized balance that only changes when a
pending LedgerTransaction is posted. Posting locks the transaction and
account rows and must run inside the caller's transaction.atomic() block,
so multi-leg movements commit together or not at all.

Public API:
    Models:
        Account - An employee balance or manager allotment
        LedgerTransaction - A single credit or debit against one account

    Service:
        ledger - Singleton instance of LedgerService
        LedgerService - Class with all ledger operations

    Types:
        AccountBalance - {posted, pending, total}
        TransactionPage - Paginated history
        validate_amount - Parse and validate user-supplied amounts

    Exceptions:
        LedgerError - Base exception for ledger operations
        AccountNotFound - Account lookup failures
        InsufficientBalance - Posting would overdraw the account
        InactiveAccount - Operations on inactive accounts
        InvalidAmount - Zero, negative or sub-cent amounts
        TransactionNotFound - Transaction lookup failures
        TransactionNotPending - Double-posting guard

Usage:
    from django.db import transaction
    from coins.ledger import ledger, InsufficientBalance
    from coins.state_machines import TransactionType

    account = ledger.get_or_create_account(employee)

    with transaction.atomic():
        tx = ledger.create_pending_transaction(
            account_id=account.id,
            transaction_type=TransactionType.WELLNESS_REWARD,
            amount="15.00",
            description="Completed step challenge",
        )
        ledger.post_transaction(tx.id)

    ledger.get_account_balance(account.id).to_dict()
    # {"posted": 15.0, "pending": 0.0, "total": 15.0}
"""

from .exceptions import (
    AccountNotFound,
    InactiveAccount,
    InsufficientBalance,
    InvalidAmount,
    LedgerError,
    TransactionNotFound,
    TransactionNotPending,
)
from .models import Account, LedgerTransaction
from .services import LedgerService, ledger
from .types import AccountBalance, TransactionPage, validate_amount

__all__ = [
    # Models
    "Account",
    "LedgerTransaction",
    # Service
    "ledger",
    "LedgerService",
    # Types
    "AccountBalance",
    "TransactionPage",
    "validate_amount",
    # Exceptions
    "LedgerError",
    "AccountNotFound",
    "InsufficientBalance",
    "InactiveAccount",
    "InvalidAmount",
    "TransactionNotFound",
    "TransactionNotPending",
]
