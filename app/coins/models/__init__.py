"""
Coin domain models.

This module contains all coin-related models:
- Account, LedgerTransaction: The ledger (defined in coins.ledger.models)
- AllotmentPolicy: A manager's recurring award budget
- PendingTransfer: Coins in escrow for an unregistered recipient
- PeerTransferLimit: Per-period cap on peer transfers
"""

from coins.ledger.models import Account, LedgerTransaction
from coins.models.allotment import AllotmentPolicy
from coins.models.transfer import PeerTransferLimit, PendingTransfer

__all__ = [
    "Account",
    "AllotmentPolicy",
    "LedgerTransaction",
    "PeerTransferLimit",
    "PendingTransfer",
]
