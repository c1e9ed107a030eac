"""
Peer transfer service.

This module provides the TransferService class, which moves coins from
one employee to another.

Flow:
    1. Validate sender, amount and recipient (outside the transaction)
    2. In one atomic block:
       a. Lock the sender (and recipient) account rows in id order
       b. Re-read the sender's posted balance from the locked row
       c. Recompute the sender's limit usage for the period
       d. Branch A (registered recipient): post the sent debit and the
          received credit
          Branch B (unregistered recipient): post the sent debit and
          create a PendingTransfer escrow row
    3. Notify after commit

Checking the balance on the locked row is what prevents two concurrent
transfers from both passing a stale balance check and overdrawing the
account.

Usage:
    from coins.services import TransferService

    result = TransferService.send_transfer(
        sender=alice,
        recipient_email="bob@example.com",
        amount="30",
        message="Lunch",
    )
    if result:
        result.data.to_dict()
        # {"transactionId": "...", "isPending": False, "senderBalance": 70.0, ...}
    else:
        result.error_code  # e.g. "INSUFFICIENT_BALANCE"
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.validators import validate_email
from django.db import IntegrityError, OperationalError, transaction
from django.db.models import Sum

from core.services import BaseService, ServiceResult

from coins.ledger.exceptions import InsufficientBalance, InvalidAmount, LedgerError
from coins.ledger.models import Account, LedgerTransaction
from coins.ledger.services import ledger
from coins.ledger.types import (
    ZERO,
    TransactionPage,
    TransferLimitStatus,
    TransferOutcome,
    validate_amount,
)
from coins.models import PeerTransferLimit, PendingTransfer
from coins.notifications import format_coins, notify
from coins.services.allotment_service import get_period_bounds
from coins.state_machines import (
    AccountType,
    PeriodType,
    TransactionStatus,
    TransactionType,
)
from employees.managers import normalize_employee_email
from employees.models import Employee

if TYPE_CHECKING:
    from typing import Any


# =============================================================================
# Constants
# =============================================================================

TRY_AGAIN_MESSAGE = "Transfer could not be completed, please try again"
INSUFFICIENT_BALANCE_MESSAGE = "Insufficient balance"
NOT_REGISTERED_MESSAGE = "You are not registered in Guincoin."
SELF_TRANSFER_MESSAGE = "You cannot send coins to yourself."


class TransferService(BaseService):
    """
    Service for peer-to-peer transfers.

    Validation order (first failure wins):
        1. Sender is registered with an account  -> SENDER_NOT_FOUND
        2. Amount is positive, at most 2 places  -> INVALID_AMOUNT
        3. Recipient is valid and not the sender -> INVALID_RECIPIENT,
           SELF_TRANSFER, RECIPIENT_NOT_FOUND
        4. Posted balance covers the amount      -> INSUFFICIENT_BALANCE
        5. Period limit, if one is configured    -> TRANSFER_LIMIT_EXCEEDED

    Steps 4 and 5 run under the sender's account lock.
    """

    @classmethod
    def send_transfer(
        cls,
        sender: Employee | None,
        recipient_email: str,
        amount: Any,
        message: str | None = None,
    ) -> ServiceResult[TransferOutcome]:
        """
        Send coins to another employee, or into escrow for an
        unregistered address.

        Returns:
            ServiceResult with TransferOutcome
        """
        # 1. Sender
        if sender is None or not sender.is_active:
            return ServiceResult.failure(NOT_REGISTERED_MESSAGE, error_code="SENDER_NOT_FOUND")
        sender_account = ledger.get_account_for(sender, AccountType.EMPLOYEE)
        if sender_account is None:
            return ServiceResult.failure(NOT_REGISTERED_MESSAGE, error_code="SENDER_NOT_FOUND")

        # 2. Amount
        try:
            amount = validate_amount(amount)
        except InvalidAmount as e:
            return ServiceResult.failure(e.message, error_code="INVALID_AMOUNT")

        # 3. Recipient
        email = normalize_employee_email(recipient_email)
        try:
            validate_email(email)
        except DjangoValidationError:
            return ServiceResult.failure(
                "Recipient email is not valid",
                error_code="INVALID_RECIPIENT",
            )
        if email == normalize_employee_email(sender.email):
            return ServiceResult.failure(SELF_TRANSFER_MESSAGE, error_code="SELF_TRANSFER")

        recipient = Employee.objects.get_by_email(email)
        if recipient is not None and not recipient.is_active:
            return ServiceResult.failure("Recipient not found", error_code="RECIPIENT_NOT_FOUND")
        if recipient is None and not cls.is_eligible_recipient_email(email):
            return ServiceResult.failure(
                "Recipient email is not eligible",
                error_code="RECIPIENT_NOT_FOUND",
            )

        message = (message or "").strip()

        try:
            with cls.atomic():
                result = cls._execute(sender, sender_account, recipient, email, amount, message)
        except InsufficientBalance:
            return ServiceResult.failure(
                INSUFFICIENT_BALANCE_MESSAGE,
                error_code="INSUFFICIENT_BALANCE",
            )
        except (OperationalError, IntegrityError, LedgerError):
            cls.get_logger().warning(
                "Transfer failed on database conflict",
                extra={"sender_id": sender.pk},
                exc_info=True,
            )
            return ServiceResult.failure(TRY_AGAIN_MESSAGE, error_code="TRY_AGAIN")

        if result:
            outcome = result.data
            cls.get_logger().info(
                "Transfer completed" if not outcome.is_pending else "Transfer held in escrow",
                extra={
                    "sender_id": sender.pk,
                    "recipient_id": getattr(recipient, "pk", None),
                    "amount": str(amount),
                    "transaction_id": str(outcome.sender_transaction.id),
                    "is_pending": outcome.is_pending,
                },
            )
        else:
            cls.get_logger().warning(
                "Transfer rejected",
                extra={"sender_id": sender.pk, "error_code": result.error_code},
            )
        return result

    @classmethod
    def get_transfer_limits(
        cls,
        employee: Employee,
        now: datetime | None = None,
    ) -> TransferLimitStatus:
        """
        Get the employee's monthly limit and how much of it is used.

        Creates the current month's limit with
        GUINCOIN_DEFAULT_TRANSFER_LIMIT when none exists.
        """
        limit = PeerTransferLimit.objects.active_for(employee, now)
        if limit is None:
            period_start, period_end = get_period_bounds(PeriodType.MONTHLY, now)
            default = Decimal(str(getattr(settings, "GUINCOIN_DEFAULT_TRANSFER_LIMIT", 500)))
            try:
                with transaction.atomic():
                    limit, _ = PeerTransferLimit.objects.get_or_create(
                        employee=employee,
                        period_type=PeriodType.MONTHLY,
                        period_start=period_start,
                        defaults={"period_end": period_end, "max_amount": default},
                    )
            except IntegrityError:
                limit = PeerTransferLimit.objects.get(
                    employee=employee,
                    period_type=PeriodType.MONTHLY,
                    period_start=period_start,
                )

        used = cls.get_used_amount(employee, limit.period_start, limit.period_end)
        return TransferLimitStatus(
            max_amount=limit.max_amount,
            used_amount=used,
            remaining=max(limit.max_amount - used, ZERO),
            period_start=limit.period_start,
            period_end=limit.period_end,
            period_type=limit.period_type,
        )

    @classmethod
    def get_transfer_history(
        cls,
        employee: Employee,
        limit: int = 50,
        offset: int = 0,
    ) -> TransactionPage:
        """Transfers sent by the employee, newest first."""
        account = ledger.get_account_for(employee, AccountType.EMPLOYEE)
        if account is None:
            return TransactionPage(transactions=[], total=0, limit=limit, offset=offset)
        return ledger.get_transaction_history(
            account.id,
            limit=limit,
            offset=offset,
            transaction_type=TransactionType.PEER_TRANSFER_SENT,
        )

    @staticmethod
    def get_used_amount(employee: Employee, period_start: datetime, period_end: datetime) -> Decimal:
        """Posted + pending peer_transfer_sent amounts within the window."""
        total = LedgerTransaction.objects.filter(
            source_employee=employee,
            transaction_type=TransactionType.PEER_TRANSFER_SENT,
            status__in=[TransactionStatus.POSTED, TransactionStatus.PENDING],
            created_at__gte=period_start,
            created_at__lte=period_end,
        ).aggregate(total=Sum("amount"))["total"]
        return total or ZERO

    @staticmethod
    def is_eligible_recipient_email(email: str) -> bool:
        """Unregistered recipients must belong to the workspace domain, if one is set."""
        domain = (getattr(settings, "GUINCOIN_WORKSPACE_DOMAIN", "") or "").strip().lower()
        if not domain:
            return True
        return email.endswith(f"@{domain.lstrip('@')}")

    # ==========================================================================
    # Internal
    # ==========================================================================

    @classmethod
    def _execute(
        cls,
        sender: Employee,
        sender_account: Account,
        recipient: Employee | None,
        recipient_email: str,
        amount: Decimal,
        message: str,
    ) -> ServiceResult[TransferOutcome]:
        """Locked section of send_transfer. Must run inside atomic()."""
        recipient_account = None
        account_ids = [sender_account.id]
        if recipient is not None:
            recipient_account = ledger.get_or_create_account(recipient, AccountType.EMPLOYEE)
            account_ids.append(recipient_account.id)

        locked = ledger.lock_accounts(account_ids)
        locked_sender = locked[sender_account.id]

        if not locked_sender.is_active:
            return ServiceResult.failure(NOT_REGISTERED_MESSAGE, error_code="SENDER_NOT_FOUND")
        if recipient_account is not None and not locked[recipient_account.id].is_active:
            return ServiceResult.failure("Recipient not found", error_code="RECIPIENT_NOT_FOUND")

        # 4. Balance, read from the locked row (pending funds are not spendable)
        if locked_sender.balance < amount:
            return ServiceResult.failure(
                INSUFFICIENT_BALANCE_MESSAGE,
                error_code="INSUFFICIENT_BALANCE",
            )

        # 5. Limit, recomputed under the same lock
        limit = PeerTransferLimit.objects.active_for(sender)
        if limit is not None:
            used = cls.get_used_amount(sender, limit.period_start, limit.period_end)
            if used + amount > limit.max_amount:
                return ServiceResult.failure(
                    "Transfer limit exceeded",
                    error_code="TRANSFER_LIMIT_EXCEEDED",
                )

        if recipient is not None:
            return ServiceResult.success(
                cls._complete(sender, locked_sender, recipient, locked[recipient_account.id], amount, message)
            )
        return ServiceResult.success(
            cls._escrow(sender, locked_sender, recipient_email, amount, message)
        )

    @classmethod
    def _complete(
        cls,
        sender: Employee,
        sender_account: Account,
        recipient: Employee,
        recipient_account: Account,
        amount: Decimal,
        message: str,
    ) -> TransferOutcome:
        sent = ledger.record_posted(
            account=sender_account,
            transaction_type=TransactionType.PEER_TRANSFER_SENT,
            amount=amount,
            description=message or f"Transfer to {recipient.display_name}",
            source_employee=sender,
            target_employee=recipient,
        )
        received = ledger.record_posted(
            account=recipient_account,
            transaction_type=TransactionType.PEER_TRANSFER_RECEIVED,
            amount=amount,
            description=message or f"Transfer from {sender.display_name}",
            source_employee=sender,
            target_employee=recipient,
        )
        sender_balance = Account.objects.get(pk=sender_account.pk).balance

        coins = format_coins(amount)
        suffix = f": {message}" if message else ""
        notify(
            recipient.email,
            {
                "subject": f"You received {coins} Guincoins",
                "body": f"{sender.display_name} sent you {coins} coins{suffix}",
            },
        )
        notify(
            sender.email,
            {
                "subject": f"You sent {coins} Guincoins",
                "body": (
                    f"You sent {coins} coins to {recipient.display_name}{suffix}. "
                    f"Your balance is now {format_coins(sender_balance)}."
                ),
            },
        )

        return TransferOutcome(
            sender_transaction=sent,
            recipient_transaction=received,
            sender_balance=sender_balance,
            recipient_name=recipient.display_name,
        )

    @classmethod
    def _escrow(
        cls,
        sender: Employee,
        sender_account: Account,
        recipient_email: str,
        amount: Decimal,
        message: str,
    ) -> TransferOutcome:
        sent = ledger.record_posted(
            account=sender_account,
            transaction_type=TransactionType.PEER_TRANSFER_SENT,
            amount=amount,
            description=message or f"Transfer to {recipient_email}",
            source_employee=sender,
        )
        pending = PendingTransfer.objects.create(
            sender=sender,
            recipient_email=recipient_email,
            amount=amount,
            message=message,
            sender_transaction=sent,
        )
        sender_balance = Account.objects.get(pk=sender_account.pk).balance

        coins = format_coins(amount)
        suffix = f": {message}" if message else ""
        notify(
            recipient_email,
            {
                "subject": f"{sender.display_name} sent you {coins} Guincoins",
                "body": (
                    f"{sender.display_name} sent you {coins} coins{suffix}. "
                    "Sign in to Guincoin to claim them."
                ),
            },
        )

        return TransferOutcome(
            sender_transaction=sent,
            pending_transfer=pending,
            sender_balance=sender_balance,
            is_pending=True,
            recipient_name=recipient_email,
        )
