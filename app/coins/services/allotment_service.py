"""
Allotment service for manager award budgets.

A manager's allotment is their Account(account_type=allotment). Admins
fund it with allotment_deposit credits (negative deposits become
allotment_deduction debits); awards debit it with allotment_award and
credit the recipient with manager_award, both in one atomic block.

Usage:
    from coins.services import AllotmentService

    status = AllotmentService.get_current_allotment(manager).data
    status.remaining  # Decimal("180.00")

    result = AllotmentService.award_coins(
        manager=manager,
        recipient_email="ana@example.com",
        amount="20",
        description="Great demo",
    )
    if not result:
        result.error_code  # e.g. "INSUFFICIENT_BUDGET"
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import TYPE_CHECKING

from django.db import DatabaseError, IntegrityError, OperationalError
from django.db.models import Sum
from django.utils import timezone

from core.services import BaseService, ServiceResult

from coins.ledger.exceptions import InsufficientBalance, InvalidAmount, LedgerError
from coins.ledger.models import Account, LedgerTransaction
from coins.ledger.services import ledger
from coins.ledger.types import (
    ZERO,
    AllotmentStatus,
    TransactionPage,
    has_valid_scale,
    to_decimal,
    validate_amount,
)
from coins.models import AllotmentPolicy
from coins.notifications import format_coins, notify
from coins.state_machines import (
    AccountType,
    PeriodType,
    TransactionStatus,
    TransactionType,
)
from employees.models import Employee

if TYPE_CHECKING:
    from typing import Any

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

INSUFFICIENT_BUDGET_MESSAGE = "Insufficient budget for this amount"
TRY_AGAIN_MESSAGE = "Award could not be completed, please try again"
DEFAULT_AWARD_DESCRIPTION = "Award from manager"

DEPOSIT_TYPES = (TransactionType.ALLOTMENT_DEPOSIT, TransactionType.ALLOTMENT_DEDUCTION)


def get_period_bounds(
    period_type: str = PeriodType.MONTHLY,
    now: datetime | None = None,
) -> tuple[datetime, datetime]:
    """
    Start and end of the calendar month or quarter containing `now`.

    The end is the last microsecond of the period, so both bounds are
    inclusive.
    """
    now = timezone.localtime(now or timezone.now())
    if period_type == PeriodType.QUARTERLY:
        first_month = 3 * ((now.month - 1) // 3) + 1
    else:
        first_month = now.month

    start = now.replace(month=first_month, day=1, hour=0, minute=0, second=0, microsecond=0)
    next_month = first_month + (3 if period_type == PeriodType.QUARTERLY else 1)
    if next_month > 12:
        next_start = start.replace(year=start.year + 1, month=next_month - 12)
    else:
        next_start = start.replace(month=next_month)
    return start, next_start - timedelta(microseconds=1)


@dataclass
class AwardOutcome:
    """
    Result of a successful award.

    Attributes:
        award_transaction: Posted manager_award credit on the recipient
        allotment_transaction: Posted allotment_award debit on the allotment
        recipient: The awarded employee
        remaining: Manager's remaining budget after the award
    """

    award_transaction: LedgerTransaction
    allotment_transaction: LedgerTransaction
    recipient: Employee
    remaining: Decimal


class AllotmentService(BaseService):
    """
    Service for manager allotments.

    Budget checks are repeated inside the atomic block that posts the
    award, against the locked allotment row. A check made earlier (for
    example by can_award) is advisory only.
    """

    # ==========================================================================
    # Queries
    # ==========================================================================

    @classmethod
    def get_current_allotment(
        cls,
        manager: Employee,
        now: datetime | None = None,
    ) -> ServiceResult[AllotmentStatus]:
        """
        Get the manager's current budget.

        Returns:
            ServiceResult with AllotmentStatus, or NOT_A_MANAGER
        """
        if not manager.is_manager:
            return ServiceResult.failure(
                "Employee is not a manager",
                error_code="NOT_A_MANAGER",
            )

        account = ledger.get_or_create_account(manager, AccountType.ALLOTMENT)
        return ServiceResult.success(cls._status_for(manager, account, now))

    @classmethod
    def can_award(cls, manager: Employee, amount: Any) -> bool:
        """True iff amount is a valid positive amount within the remaining budget."""
        try:
            amount = validate_amount(amount)
        except InvalidAmount:
            return False

        result = cls.get_current_allotment(manager)
        if not result:
            return False
        return result.data.remaining >= amount

    @classmethod
    def get_award_history(
        cls,
        manager: Employee,
        limit: int = 50,
        offset: int = 0,
    ) -> TransactionPage:
        """Awards credited by this manager, newest first."""
        queryset = LedgerTransaction.objects.filter(
            source_employee=manager,
            transaction_type=TransactionType.MANAGER_AWARD,
        )
        return cls._page(queryset, limit, offset)

    @classmethod
    def get_deposit_history(
        cls,
        manager: Employee,
        limit: int = 20,
        offset: int = 0,
    ) -> TransactionPage:
        """Deposits and deductions on the manager's allotment, newest first."""
        queryset = LedgerTransaction.objects.filter(
            account__owner=manager,
            account__account_type=AccountType.ALLOTMENT,
            transaction_type__in=DEPOSIT_TYPES,
        )
        return cls._page(queryset, limit, offset)

    # ==========================================================================
    # Mutations
    # ==========================================================================

    @classmethod
    def award_coins(
        cls,
        manager: Employee,
        recipient_email: str,
        amount: Any,
        description: str = "",
    ) -> ServiceResult[AwardOutcome]:
        """
        Award coins from the manager's allotment to an employee.

        Validation order:
            1. Manager role
            2. Positive amount with at most two decimal places
            3. Recipient is an active employee
            4. Recipient is not the manager
            5. Remaining budget, re-checked under lock

        Returns:
            ServiceResult with AwardOutcome, or a failure with one of
            NOT_A_MANAGER, INVALID_AMOUNT, RECIPIENT_NOT_FOUND, SELF_AWARD,
            INSUFFICIENT_BUDGET, TRY_AGAIN
        """
        if not manager.is_manager:
            return ServiceResult.failure(
                "Only managers can award coins",
                error_code="NOT_A_MANAGER",
            )

        try:
            amount = validate_amount(amount)
        except InvalidAmount as e:
            return ServiceResult.failure(e.message, error_code="INVALID_AMOUNT")

        recipient = Employee.objects.get_by_email(recipient_email)
        if recipient is None or not recipient.is_active:
            return ServiceResult.failure(
                "Recipient not found",
                error_code="RECIPIENT_NOT_FOUND",
            )
        if recipient.pk == manager.pk:
            return ServiceResult.failure(
                "You cannot award coins to yourself",
                error_code="SELF_AWARD",
            )

        description = (description or "").strip() or DEFAULT_AWARD_DESCRIPTION

        try:
            with cls.atomic():
                allotment = ledger.get_or_create_account(manager, AccountType.ALLOTMENT)
                recipient_account = ledger.get_or_create_account(
                    recipient, AccountType.EMPLOYEE
                )
                locked = ledger.lock_accounts([allotment.id, recipient_account.id])

                if not locked[recipient_account.id].is_active:
                    return ServiceResult.failure(
                        "Recipient not found",
                        error_code="RECIPIENT_NOT_FOUND",
                    )
                if not locked[allotment.id].is_active:
                    return ServiceResult.failure(
                        INSUFFICIENT_BUDGET_MESSAGE,
                        error_code="INSUFFICIENT_BUDGET",
                    )

                status = cls._status_for(manager, locked[allotment.id])
                if status.remaining < amount:
                    cls.get_logger().warning(
                        "Award rejected: insufficient budget",
                        extra={"manager_id": manager.pk, "recipient_id": recipient.pk},
                    )
                    return ServiceResult.failure(
                        INSUFFICIENT_BUDGET_MESSAGE,
                        error_code="INSUFFICIENT_BUDGET",
                    )

                allotment_tx = ledger.record_posted(
                    account=locked[allotment.id],
                    transaction_type=TransactionType.ALLOTMENT_AWARD,
                    amount=amount,
                    description=description,
                    source_employee=manager,
                    target_employee=recipient,
                )
                award_tx = ledger.record_posted(
                    account=locked[recipient_account.id],
                    transaction_type=TransactionType.MANAGER_AWARD,
                    amount=amount,
                    description=description,
                    source_employee=manager,
                    target_employee=recipient,
                )

                notify(
                    recipient.email,
                    {
                        "subject": f"You received {format_coins(amount)} Guincoins",
                        "body": (
                            f"{manager.display_name} awarded you "
                            f"{format_coins(amount)} coins: {description}"
                        ),
                    },
                )
        except InsufficientBalance:
            return ServiceResult.failure(
                INSUFFICIENT_BUDGET_MESSAGE,
                error_code="INSUFFICIENT_BUDGET",
            )
        except (OperationalError, IntegrityError, LedgerError):
            cls.get_logger().warning(
                "Award failed on database conflict",
                extra={"manager_id": manager.pk},
                exc_info=True,
            )
            return ServiceResult.failure(TRY_AGAIN_MESSAGE, error_code="TRY_AGAIN")

        remaining = status.remaining - amount
        cls.get_logger().info(
            "Coins awarded",
            extra={
                "manager_id": manager.pk,
                "recipient_id": recipient.pk,
                "amount": str(amount),
                "transaction_id": str(award_tx.id),
            },
        )
        return ServiceResult.success(
            AwardOutcome(
                award_transaction=award_tx,
                allotment_transaction=allotment_tx,
                recipient=recipient,
                remaining=remaining,
            )
        )

    @classmethod
    def deposit_allotment(
        cls,
        manager: Employee,
        amount: Any,
        description: str = "",
        admin: Employee | None = None,
        idempotency_key: str | None = None,
    ) -> ServiceResult[LedgerTransaction]:
        """
        Deposit into (or, with a negative amount, deduct from) an allotment.

        A deduction that would take the allotment below zero is rejected.
        With an idempotency_key, a repeated call returns the first
        transaction.
        """
        if not manager.is_manager:
            return ServiceResult.failure(
                "Employee is not a manager",
                error_code="NOT_A_MANAGER",
            )

        try:
            amount = validate_amount(amount, allow_negative=True)
        except InvalidAmount as e:
            return ServiceResult.failure(e.message, error_code="INVALID_AMOUNT")

        if amount > 0:
            transaction_type = TransactionType.ALLOTMENT_DEPOSIT
            description = description or "Allotment deposit"
        else:
            transaction_type = TransactionType.ALLOTMENT_DEDUCTION
            description = description or "Allotment deduction"

        try:
            with cls.atomic():
                account = ledger.get_or_create_account(manager, AccountType.ALLOTMENT)
                locked = ledger.lock_accounts([account.id])[account.id]
                tx = ledger.record_posted(
                    account=locked,
                    transaction_type=transaction_type,
                    amount=abs(amount),
                    description=description,
                    source_employee=admin,
                    target_employee=manager,
                    idempotency_key=idempotency_key,
                )
        except InsufficientBalance:
            return ServiceResult.failure(
                "Deduction exceeds the allotment balance",
                error_code="INSUFFICIENT_BUDGET",
            )
        except LedgerError as e:
            return cls.handle_exception(e, "Allotment deposit failed", logging.WARNING)

        cls.get_logger().info(
            "Allotment deposit posted",
            extra={
                "manager_id": manager.pk,
                "admin_id": getattr(admin, "pk", None),
                "amount": str(amount),
                "transaction_id": str(tx.id),
            },
        )
        return ServiceResult.success(tx)

    @classmethod
    def set_recurring_budget(
        cls,
        manager: Employee,
        amount: Any,
        period_type: str = PeriodType.MONTHLY,
    ) -> ServiceResult[AllotmentPolicy]:
        """
        Set the per-period auto-deposit amount. 0 disables it.

        The deposit itself is made by apply_recurring_allotments().
        """
        if not manager.is_manager:
            return ServiceResult.failure(
                "Employee is not a manager",
                error_code="NOT_A_MANAGER",
            )
        if period_type not in PeriodType.values:
            return ServiceResult.failure(
                "Unknown period type",
                error_code="VALIDATION_ERROR",
                errors={"period_type": [f"Must be one of {', '.join(PeriodType.values)}."]},
            )

        try:
            amount = to_decimal(amount)
        except InvalidAmount as e:
            return ServiceResult.failure(e.message, error_code="INVALID_AMOUNT")
        if amount < 0 or not has_valid_scale(amount):
            return ServiceResult.failure(
                "Recurring budget must be zero or a positive amount with at most 2 decimal places",
                error_code="INVALID_AMOUNT",
            )

        policy, _ = AllotmentPolicy.objects.update_or_create(
            manager=manager,
            defaults={"recurring_budget": amount, "period_type": period_type},
        )

        cls.get_logger().info(
            "Recurring budget set",
            extra={
                "manager_id": manager.pk,
                "recurring_budget": str(amount),
                "period_type": period_type,
            },
        )
        return ServiceResult.success(policy)

    @classmethod
    def apply_recurring_allotments(cls, now: datetime | None = None) -> dict[str, int]:
        """
        Deposit each recurring budget once per period.

        Each deposit carries the key
        ``allotment:recurring:{manager_id}:{period_start:%Y-%m-%d}``, so a
        re-run in the same period (or a crash between the deposit and the
        policy update) never deposits twice.

        Returns:
            Counts of applied, skipped and failed policies
        """
        counts = {"applied": 0, "skipped": 0, "failed": 0}
        policies = AllotmentPolicy.objects.filter(recurring_budget__gt=0).select_related(
            "manager"
        )

        for policy in policies:
            period_start, _ = get_period_bounds(policy.period_type, now)
            manager = policy.manager

            if (
                policy.last_applied_period_start is not None
                and policy.last_applied_period_start >= period_start
            ) or not (manager.is_manager and manager.is_active):
                counts["skipped"] += 1
                continue

            key = f"allotment:recurring:{manager.pk}:{period_start:%Y-%m-%d}"
            try:
                with cls.atomic():
                    result = cls.deposit_allotment(
                        manager,
                        policy.recurring_budget,
                        description=f"Recurring allotment for period starting {period_start:%Y-%m-%d}",
                        idempotency_key=key,
                    )
                    if result:
                        policy.last_applied_period_start = period_start
                        policy.save(update_fields=["last_applied_period_start", "updated_at"])
            except (DatabaseError, LedgerError):
                counts["failed"] += 1
                logger.exception(
                    "Recurring allotment failed",
                    extra={"manager_id": manager.pk},
                )
                continue

            if result:
                counts["applied"] += 1
            else:
                counts["failed"] += 1
                cls.get_logger().warning(
                    "Recurring allotment failed",
                    extra={"manager_id": manager.pk, "error_code": result.error_code},
                )

        logger.info("Recurring allotments processed", extra=counts)
        return counts

    # ==========================================================================
    # Internal
    # ==========================================================================

    @classmethod
    def _status_for(
        cls,
        manager: Employee,
        account: Account,
        now: datetime | None = None,
    ) -> AllotmentStatus:
        policy = AllotmentPolicy.objects.filter(manager=manager).first()
        period_type = policy.period_type if policy else PeriodType.MONTHLY
        recurring_budget = policy.recurring_budget if policy else ZERO
        period_start, period_end = get_period_bounds(period_type, now)

        awards = LedgerTransaction.objects.filter(
            account=account,
            transaction_type=TransactionType.ALLOTMENT_AWARD,
        )
        used = awards.filter(
            status__in=[TransactionStatus.POSTED, TransactionStatus.PENDING],
            created_at__gte=period_start,
            created_at__lte=period_end,
        ).aggregate(total=Sum("amount"))["total"] or ZERO
        # Posted awards have already reduced the balance
        pending = awards.filter(status=TransactionStatus.PENDING).aggregate(
            total=Sum("amount")
        )["total"] or ZERO

        return AllotmentStatus(
            balance=account.balance,
            used_this_period=used,
            recurring_budget=recurring_budget,
            remaining=max(account.balance - pending, ZERO),
            period_start=period_start,
            period_end=period_end,
        )

    @staticmethod
    def _page(queryset, limit: int, offset: int) -> TransactionPage:
        limit = max(1, min(int(limit), 200))
        offset = max(0, int(offset))
        total = queryset.count()
        transactions = list(
            queryset.select_related(
                "source_employee", "target_employee", "account__owner"
            ).order_by("-created_at")[offset : offset + limit]
        )
        return TransactionPage(transactions=transactions, total=total, limit=limit, offset=offset)
