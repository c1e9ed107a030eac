"""
Ledger service layer for Guincoin balances.

LedgerService is the only code that changes Account.balance. Every
balance change goes through post_transaction(), which must run inside the
caller's transaction.atomic() block so that multi-leg movements (sender
debit + recipient credit) commit together or not at all.

Usage:
    from django.db import transaction
    from coins.ledger.services import ledger
    from coins.state_machines import TransactionType

    with transaction.atomic():
        accounts = ledger.lock_accounts([sender_account.id, recipient_account.id])
        sent = ledger.record_posted(
            account=accounts[sender_account.id],
            transaction_type=TransactionType.PEER_TRANSFER_SENT,
            amount=Decimal("30.00"),
            description="Lunch",
            source_employee=sender,
            target_employee=recipient,
        )
        received = ledger.record_posted(...)

    balance = ledger.get_account_balance(sender_account.id, include_pending=True)
    balance.to_dict()  # {"posted": 70.0, "pending": 0.0, "total": 70.0}
"""

from __future__ import annotations

import logging
import uuid
from decimal import Decimal
from typing import TYPE_CHECKING

from django.db import IntegrityError, connection, transaction

from coins.state_machines import (
    AccountType,
    TransactionStatus,
    TransactionType,
    signed_sum_expression,
)

from .exceptions import (
    AccountNotFound,
    InactiveAccount,
    InsufficientBalance,
    LedgerError,
    TransactionNotFound,
    TransactionNotPending,
)
from .models import Account, LedgerTransaction
from .types import ZERO, AccountBalance, TransactionPage, validate_amount

if TYPE_CHECKING:
    from employees.models import Employee

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 50
MAX_HISTORY_LIMIT = 200


class LedgerService:
    """
    Service class for ledger operations.

    Key features:
    - Materialized balances updated only by post_transaction()
    - Row locks (SELECT ... FOR UPDATE) on the transaction and account
      being posted, acquired in primary-key order for multi-account work
    - Idempotency via optional unique keys (safe to retry)
    - Double-posting guard: only pending transactions can be posted

    All methods are static - no instance state is maintained.
    """

    # ==========================================================================
    # Accounts
    # ==========================================================================

    @staticmethod
    def get_or_create_account(
        owner: Employee,
        account_type: AccountType | str = AccountType.EMPLOYEE,
    ) -> Account:
        """
        Get existing account or create a new one.

        Accounts are created once per (owner, account_type) and never
        deleted. A concurrent creator losing the unique-constraint race
        re-reads the winner's row.
        """
        account = Account.objects.filter(owner=owner, account_type=account_type).first()
        if account is not None:
            return account

        try:
            with transaction.atomic():
                return Account.objects.create(owner=owner, account_type=account_type)
        except IntegrityError:
            return Account.objects.get(owner=owner, account_type=account_type)

    @staticmethod
    def get_account(account_id: uuid.UUID) -> Account:
        """
        Get account by ID.

        Raises:
            AccountNotFound: If account doesn't exist
        """
        try:
            return Account.objects.get(id=account_id)
        except Account.DoesNotExist:
            raise AccountNotFound(
                "Account not found",
                details={"account_id": str(account_id)},
            )

    @staticmethod
    def get_account_for(
        owner: Employee,
        account_type: AccountType | str = AccountType.EMPLOYEE,
    ) -> Account | None:
        """Return the owner's account of this type, or None."""
        return Account.objects.filter(owner=owner, account_type=account_type).first()

    @staticmethod
    def lock_accounts(account_ids: list[uuid.UUID]) -> dict[uuid.UUID, Account]:
        """
        Lock accounts for update in a consistent order.

        Must be called inside transaction.atomic(). ORDER BY id ensures
        all concurrent transactions acquire locks in the same order,
        preventing circular waits.

        Raises:
            AccountNotFound: If any account doesn't exist
        """
        LedgerService._require_atomic("lock_accounts")

        wanted = set(account_ids)
        accounts = {
            acc.id: acc
            for acc in Account.objects.filter(id__in=wanted)
            .select_for_update()
            .order_by("id")
        }
        for account_id in wanted:
            if account_id not in accounts:
                raise AccountNotFound(
                    "Account not found",
                    details={"account_id": str(account_id)},
                )
        return accounts

    # ==========================================================================
    # Transactions
    # ==========================================================================

    @staticmethod
    def create_pending_transaction(
        account_id: uuid.UUID,
        transaction_type: TransactionType | str,
        amount: Decimal | int | str,
        description: str = "",
        source_employee: Employee | None = None,
        target_employee: Employee | None = None,
        idempotency_key: str | None = None,
    ) -> LedgerTransaction:
        """
        Create a transaction in pending status.

        Idempotent when an idempotency_key is given: an existing
        transaction with the same key is returned unchanged.

        Raises:
            InvalidAmount: amount <= 0 (non-zero for adjustments) or sub-cent
            AccountNotFound: If the account doesn't exist
            InactiveAccount: If the account is inactive
        """
        amount = validate_amount(
            amount,
            allow_negative=transaction_type == TransactionType.ADJUSTMENT,
        )

        # Check idempotency FIRST so a retry never re-validates against
        # a balance that already includes its own effect
        if idempotency_key:
            existing = LedgerTransaction.objects.filter(
                idempotency_key=idempotency_key
            ).first()
            if existing is not None:
                return existing

        account = LedgerService.get_account(account_id)
        if not account.is_active:
            raise InactiveAccount(
                "Account is inactive",
                details={"account_id": str(account.id)},
            )

        try:
            with transaction.atomic():
                tx = LedgerTransaction.objects.create(
                    account=account,
                    transaction_type=transaction_type,
                    amount=amount,
                    description=description or "",
                    source_employee=source_employee,
                    target_employee=target_employee,
                    idempotency_key=idempotency_key,
                )
        except IntegrityError:
            if not idempotency_key:
                raise
            # Race: another process created it with the same key
            tx = LedgerTransaction.objects.get(idempotency_key=idempotency_key)

        logger.debug(
            "Pending transaction created",
            extra={
                "transaction_id": str(tx.id),
                "account_id": str(account.id),
                "transaction_type": str(transaction_type),
            },
        )
        return tx

    @staticmethod
    def post_transaction(transaction_id: uuid.UUID) -> LedgerTransaction:
        """
        Post a pending transaction and apply it to the account balance.

        Must run inside the caller's transaction.atomic() block. Locks the
        transaction row and its account row, checks the transaction is
        still pending, applies the signed amount to the materialized
        balance and stamps posted_at.

        Returns:
            The posted LedgerTransaction

        Raises:
            LedgerError: If called outside an atomic block
            TransactionNotFound: If the transaction doesn't exist
            TransactionNotPending: If already posted or rejected
            InactiveAccount: If the account is inactive
            InsufficientBalance: If the balance would go negative
        """
        LedgerService._require_atomic("post_transaction")

        tx = LedgerService._lock_transaction(transaction_id)
        if tx.status != TransactionStatus.PENDING:
            raise TransactionNotPending(
                "Transaction is not pending",
                details={"transaction_id": str(tx.id), "status": tx.status},
            )

        account = Account.objects.select_for_update().get(pk=tx.account_id)
        if not account.is_active:
            raise InactiveAccount(
                "Account is inactive",
                details={"account_id": str(account.id)},
            )

        delta = tx.signed_amount
        new_balance = account.balance + delta
        if new_balance < 0:
            raise InsufficientBalance(
                account_id=account.id,
                required=-delta,
                available=account.balance,
            )

        account.balance = new_balance
        account.save(update_fields=["balance", "updated_at"])

        tx.post()
        tx.save(update_fields=["status", "posted_at", "updated_at"])

        logger.info(
            "Transaction posted",
            extra={
                "transaction_id": str(tx.id),
                "account_id": str(account.id),
                "transaction_type": tx.transaction_type,
                "delta": str(delta),
            },
        )
        return tx

    @staticmethod
    def reject_transaction(transaction_id: uuid.UUID, reason: str = "") -> LedgerTransaction:
        """
        Reject a pending transaction. No balance effect.

        Raises:
            TransactionNotFound: If the transaction doesn't exist
            TransactionNotPending: If already posted or rejected
        """
        with transaction.atomic():
            tx = LedgerService._lock_transaction(transaction_id)
            if tx.status != TransactionStatus.PENDING:
                raise TransactionNotPending(
                    "Transaction is not pending",
                    details={"transaction_id": str(tx.id), "status": tx.status},
                )
            tx.reject()
            tx.save(update_fields=["status", "rejected_at", "updated_at"])

        logger.info(
            "Transaction rejected",
            extra={"transaction_id": str(tx.id), "reason": reason},
        )
        return tx

    @staticmethod
    def record_posted(
        account: Account,
        transaction_type: TransactionType | str,
        amount: Decimal | int | str,
        description: str = "",
        source_employee: Employee | None = None,
        target_employee: Employee | None = None,
        idempotency_key: str | None = None,
    ) -> LedgerTransaction:
        """
        Create and post a transaction in the caller's atomic block.

        With an idempotency_key, a retry returns the transaction recorded
        by the first attempt instead of applying it again.
        """
        LedgerService._require_atomic("record_posted")

        tx = LedgerService.create_pending_transaction(
            account_id=account.id,
            transaction_type=transaction_type,
            amount=amount,
            description=description,
            source_employee=source_employee,
            target_employee=target_employee,
            idempotency_key=idempotency_key,
        )
        if tx.status != TransactionStatus.PENDING:
            return tx
        return LedgerService.post_transaction(tx.id)

    @staticmethod
    def adjust_balance(
        employee: Employee,
        amount: Decimal | int | str,
        reason: str,
        admin: Employee | None = None,
    ) -> LedgerTransaction:
        """
        Apply a signed admin correction to an employee's balance.

        Args:
            employee: Employee whose balance is corrected
            amount: Signed amount (negative deducts)
            reason: Recorded as "Admin adjustment: {reason}"
            admin: Admin performing the adjustment

        Raises:
            InvalidAmount: Zero or sub-cent amount
            InsufficientBalance: If a deduction exceeds the balance
        """
        amount = validate_amount(amount, allow_negative=True)

        with transaction.atomic():
            account = LedgerService.get_or_create_account(employee, AccountType.EMPLOYEE)
            tx = LedgerService.record_posted(
                account=account,
                transaction_type=TransactionType.ADJUSTMENT,
                amount=amount,
                description=f"Admin adjustment: {reason}",
                source_employee=admin,
                target_employee=employee,
            )

        logger.info(
            "Admin balance adjustment",
            extra={
                "employee_id": employee.pk,
                "admin_id": getattr(admin, "pk", None),
                "transaction_id": str(tx.id),
                "amount": str(amount),
            },
        )
        return tx

    # ==========================================================================
    # Queries
    # ==========================================================================

    @staticmethod
    def get_account_balance(
        account_id: uuid.UUID,
        include_pending: bool = False,
    ) -> AccountBalance:
        """
        Get balance for an account.

        posted is the materialized balance; pending is the signed sum of
        pending transactions when include_pending is set. An unknown
        account yields a zero balance.
        """
        account = Account.objects.filter(id=account_id).first()
        if account is None:
            return AccountBalance()

        posted = account.balance
        pending = ZERO
        if include_pending:
            pending = account.transactions.filter(
                status=TransactionStatus.PENDING
            ).aggregate(total=signed_sum_expression())["total"]

        return AccountBalance(posted=posted, pending=pending, total=posted + pending)

    @staticmethod
    def get_transaction_history(
        account_id: uuid.UUID,
        limit: int = DEFAULT_HISTORY_LIMIT,
        offset: int = 0,
        status: str | None = None,
        transaction_type: str | None = None,
    ) -> TransactionPage:
        """
        Get a page of the account's transactions, newest first.

        Filters are exact matches. limit is clamped to 1..MAX_HISTORY_LIMIT.
        """
        limit = max(1, min(int(limit), MAX_HISTORY_LIMIT))
        offset = max(0, int(offset))

        queryset = LedgerTransaction.objects.filter(account_id=account_id)
        if status:
            queryset = queryset.filter(status=status)
        if transaction_type:
            queryset = queryset.filter(transaction_type=transaction_type)

        total = queryset.count()
        transactions = list(
            queryset.select_related("source_employee", "target_employee").order_by(
                "-created_at"
            )[offset : offset + limit]
        )
        return TransactionPage(
            transactions=transactions,
            total=total,
            limit=limit,
            offset=offset,
        )

    @staticmethod
    def get_pending_transactions(account_id: uuid.UUID) -> list[LedgerTransaction]:
        """All pending transactions for the account, oldest first."""
        return list(
            LedgerTransaction.objects.filter(
                account_id=account_id,
                status=TransactionStatus.PENDING,
            ).order_by("created_at")
        )

    # ==========================================================================
    # Internal
    # ==========================================================================

    @staticmethod
    def _require_atomic(operation: str) -> None:
        if not connection.in_atomic_block:
            raise LedgerError(
                f"{operation} must run inside transaction.atomic()",
                error_code="NOT_IN_TRANSACTION",
            )

    @staticmethod
    def _lock_transaction(transaction_id: uuid.UUID) -> LedgerTransaction:
        try:
            return LedgerTransaction.objects.select_for_update().get(pk=transaction_id)
        except LedgerTransaction.DoesNotExist:
            raise TransactionNotFound(
                "Transaction not found",
                details={"transaction_id": str(transaction_id)},
            )


# Singleton instance for convenience
# Usage: from coins.ledger.services import ledger
ledger = LedgerService()
