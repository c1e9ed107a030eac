"""
Coin services coordinating ledger operations.

This module provides:
- AllotmentService: Manager budgets, awards and deposits
- TransferService: Peer transfers, limits and escrow
- PendingTransferService: Claiming and cancelling escrowed transfers
- CommandService: Chat command surface
- ReportService: Reconciliation and daily reporting (read-only)

Usage:
    from coins.services import TransferService

    result = TransferService.send_transfer(sender, "bob@example.com", "30")
    if not result:
        print(result.error)
"""

from coins.services.allotment_service import AllotmentService, AwardOutcome, get_period_bounds
from coins.services.command_service import CommandResult, CommandService
from coins.services.pending_transfer_service import PendingTransferService
from coins.services.report_service import ReportService
from coins.services.transfer_service import TransferService

__all__ = [
    "AllotmentService",
    "AwardOutcome",
    "CommandResult",
    "CommandService",
    "PendingTransferService",
    "ReportService",
    "TransferService",
    "get_period_bounds",
]
