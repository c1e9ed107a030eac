"""
Pending transfer (escrow) service.

Coins sent to an unregistered email sit in a PendingTransfer row; the
sender's debit is already posted. This service turns those rows into
credits when the recipient signs in, lists them for the sender, and lets
the sender cancel them for a refund.

Each claim or cancel runs in its own atomic block that locks the escrow
row, posts the credit and deletes the row. A retried sign-in finds no
row and credits nothing.

Usage:
    from coins.services import PendingTransferService

    claimed = PendingTransferService.claim_pending_transfers(new_employee)
    # [{"pendingTransferId": "...", "transactionId": "...", "amount": 30.0, ...}]

    result = PendingTransferService.cancel_pending_transfer(transfer_id, sender)
"""

from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING

from django.db import DatabaseError, IntegrityError, OperationalError

from core.services import BaseService, ServiceResult

from coins.ledger.exceptions import LedgerError
from coins.ledger.models import LedgerTransaction
from coins.ledger.services import ledger
from coins.ledger.types import to_number
from coins.models import PendingTransfer
from coins.notifications import format_coins, notify
from coins.state_machines import AccountType, TransactionType
from employees.managers import normalize_employee_email

if TYPE_CHECKING:
    from typing import Any

    from employees.models import Employee

logger = logging.getLogger(__name__)


class PendingTransferService(BaseService):
    """Service for escrowed transfers to not-yet-registered recipients."""

    @classmethod
    def claim_pending_transfers(cls, employee: Employee) -> list[dict[str, Any]]:
        """
        Credit every pending transfer addressed to the employee's email.

        Transfers are claimed oldest first, each in its own atomic block.
        A transfer that fails to claim is logged and left for the next
        sign-in; it does not block the others.

        Returns:
            Summaries of the transfers claimed by this call
        """
        email = normalize_employee_email(employee.email)
        transfer_ids = list(
            PendingTransfer.objects.filter(recipient_email=email)
            .order_by("created_at")
            .values_list("id", flat=True)
        )
        if not transfer_ids:
            return []

        account = ledger.get_or_create_account(employee, AccountType.EMPLOYEE)
        claimed = []

        for transfer_id in transfer_ids:
            try:
                summary = cls._claim_one(transfer_id, employee, account)
            except (LedgerError, DatabaseError):
                logger.exception(
                    "Failed to claim pending transfer",
                    extra={"pending_transfer_id": str(transfer_id), "employee_id": employee.pk},
                )
                continue
            if summary is not None:
                claimed.append(summary)

        if claimed:
            logger.info(
                "Pending transfers claimed",
                extra={"employee_id": employee.pk, "claimed_count": len(claimed)},
            )
        return claimed

    @classmethod
    def list_pending_for_sender(cls, employee: Employee) -> list[PendingTransfer]:
        """Unclaimed transfers the employee has sent, newest first."""
        return list(PendingTransfer.objects.filter(sender=employee).order_by("-created_at"))

    @classmethod
    def cancel_pending_transfer(
        cls,
        transfer_id: uuid.UUID | str,
        sender: Employee,
    ) -> ServiceResult[LedgerTransaction]:
        """
        Cancel an unclaimed transfer and refund the sender.

        Posts a peer_transfer_refund credit for the escrowed amount and
        deletes the escrow row in the same atomic block.

        Returns:
            ServiceResult with the refund transaction, or NOT_FOUND,
            NOT_SENDER, TRY_AGAIN
        """
        try:
            transfer_id = uuid.UUID(str(transfer_id))
        except ValueError:
            return ServiceResult.failure("Pending transfer not found", error_code="NOT_FOUND")

        try:
            with cls.atomic():
                transfer = PendingTransfer.objects.select_for_update().filter(pk=transfer_id).first()
                if transfer is None:
                    return ServiceResult.failure(
                        "Pending transfer not found",
                        error_code="NOT_FOUND",
                    )
                if transfer.sender_id != sender.pk:
                    return ServiceResult.failure(
                        "Only the sender can cancel this transfer",
                        error_code="NOT_SENDER",
                    )

                account = ledger.get_or_create_account(sender, AccountType.EMPLOYEE)
                refund = ledger.record_posted(
                    account=account,
                    transaction_type=TransactionType.PEER_TRANSFER_REFUND,
                    amount=transfer.amount,
                    description=f"Cancelled transfer to {transfer.recipient_email}",
                    source_employee=sender,
                    idempotency_key=f"pending-transfer:refund:{transfer.id}",
                )
                recipient_email = transfer.recipient_email
                transfer.delete()
        except (OperationalError, IntegrityError, LedgerError):
            cls.get_logger().warning(
                "Pending transfer cancellation failed",
                extra={"pending_transfer_id": str(transfer_id)},
                exc_info=True,
            )
            return ServiceResult.failure(
                "Cancellation could not be completed, please try again",
                error_code="TRY_AGAIN",
            )

        cls.get_logger().info(
            "Pending transfer cancelled",
            extra={
                "pending_transfer_id": str(transfer_id),
                "sender_id": sender.pk,
                "recipient_email": recipient_email,
                "refund_transaction_id": str(refund.id),
            },
        )
        return ServiceResult.success(refund)

    # ==========================================================================
    # Internal
    # ==========================================================================

    @classmethod
    def _claim_one(cls, transfer_id, employee, account) -> dict[str, Any] | None:
        """Claim one transfer. Returns None if it was already claimed or cancelled."""
        with cls.atomic():
            transfer = PendingTransfer.objects.select_for_update().filter(pk=transfer_id).first()
            if transfer is None:
                return None

            sender = transfer.sender
            credit = ledger.record_posted(
                account=account,
                transaction_type=TransactionType.PEER_TRANSFER_RECEIVED,
                amount=transfer.amount,
                description=transfer.message or f"Transfer from {sender.display_name}",
                source_employee=sender,
                target_employee=employee,
                idempotency_key=f"pending-transfer:claim:{transfer.id}",
            )
            summary = {
                "pendingTransferId": str(transfer.id),
                "transactionId": str(credit.id),
                "amount": to_number(transfer.amount),
                "senderName": sender.display_name,
                "message": transfer.message,
            }
            transfer.delete()

            notify(
                sender.email,
                {
                    "subject": "Your Guincoin transfer was claimed",
                    "body": (
                        f"{employee.display_name} signed in and received the "
                        f"{format_coins(credit.amount)} coins you sent."
                    ),
                },
            )
        return summary
