"""
State machine enums and classification helpers for the coin ledger.
"""

from coins.state_machines.states import (
    CREDIT_TYPES,
    DEBIT_TYPES,
    SIGNED_TYPES,
    AccountType,
    PeriodType,
    TransactionStatus,
    TransactionType,
    is_credit,
    signed_amount,
    signed_sum_expression,
)

__all__ = [
    "AccountType",
    "PeriodType",
    "TransactionStatus",
    "TransactionType",
    "CREDIT_TYPES",
    "DEBIT_TYPES",
    "SIGNED_TYPES",
    "is_credit",
    "signed_amount",
    "signed_sum_expression",
]
