"""
Tests for LedgerService.

This module tests account management, posting, rejection, idempotency and
balance/history queries.
"""

import uuid
from decimal import Decimal

import pytest
from django.db import transaction

from coins.ledger.exceptions import (
    AccountNotFound,
    InactiveAccount,
    InsufficientBalance,
    InvalidAmount,
    LedgerError,
    TransactionNotFound,
    TransactionNotPending,
)
from coins.ledger.models import Account, LedgerTransaction
from coins.ledger.services import LedgerService, ledger
from coins.ledger.tests.factories import LedgerTransactionFactory, post_credit
from coins.state_machines import AccountType, TransactionStatus, TransactionType


def _reload(tx):
    # FSMField(protected=True) forbids refresh_from_db() on status
    return LedgerTransaction.objects.get(pk=tx.pk)


class TestGetOrCreateAccount:
    """Tests for LedgerService.get_or_create_account()."""

    def test_returns_signal_created_account(self, employee, account):
        assert ledger.get_or_create_account(employee).id == account.id

    def test_creates_allotment_account_once(self, employee):
        first = ledger.get_or_create_account(employee, AccountType.ALLOTMENT)
        second = ledger.get_or_create_account(employee, AccountType.ALLOTMENT)

        assert first.id == second.id
        assert first.balance == Decimal("0.00")


class TestGetAccount:
    def test_returns_account_by_id(self, account):
        assert LedgerService.get_account(account.id).id == account.id

    def test_raises_account_not_found_for_unknown_id(self, db):
        with pytest.raises(AccountNotFound):
            LedgerService.get_account(uuid.uuid4())

    def test_get_account_for_returns_none_when_missing(self, employee):
        assert ledger.get_account_for(employee, AccountType.ALLOTMENT) is None


class TestLockAccounts:
    @pytest.mark.django_db(transaction=True)
    def test_requires_atomic_block(self, account):
        with pytest.raises(LedgerError) as exc_info:
            ledger.lock_accounts([account.id])

        assert exc_info.value.error_code == "NOT_IN_TRANSACTION"

    def test_returns_accounts_keyed_by_id(self, account, other_employee):
        other = ledger.get_account_for(other_employee)

        with transaction.atomic():
            locked = ledger.lock_accounts([other.id, account.id])

        assert set(locked) == {account.id, other.id}

    def test_missing_account_raises(self, account):
        with pytest.raises(AccountNotFound):
            with transaction.atomic():
                ledger.lock_accounts([account.id, uuid.uuid4()])


class TestCreatePendingTransaction:
    """Tests for LedgerService.create_pending_transaction()."""

    def test_creates_pending_row_without_touching_balance(self, funded_account):
        tx = ledger.create_pending_transaction(
            account_id=funded_account.id,
            transaction_type=TransactionType.STORE_PURCHASE,
            amount="25",
            description="Mug",
        )

        assert tx.status == TransactionStatus.PENDING
        assert tx.amount == Decimal("25.00")
        assert Account.objects.get(pk=funded_account.pk).balance == Decimal("100.00")

    @pytest.mark.parametrize("amount", ["0", "-1", "0.001", "abc"])
    def test_rejects_invalid_amounts(self, account, amount):
        with pytest.raises(InvalidAmount):
            ledger.create_pending_transaction(
                account_id=account.id,
                transaction_type=TransactionType.WELLNESS_REWARD,
                amount=amount,
            )

    def test_negative_adjustment_allowed(self, account):
        tx = ledger.create_pending_transaction(
            account_id=account.id,
            transaction_type=TransactionType.ADJUSTMENT,
            amount="-3.50",
        )

        assert tx.amount == Decimal("-3.50")

    def test_idempotency_key_returns_existing(self, account):
        first = ledger.create_pending_transaction(
            account_id=account.id,
            transaction_type=TransactionType.WELLNESS_REWARD,
            amount="5",
            idempotency_key="wellness:42",
        )
        second = ledger.create_pending_transaction(
            account_id=account.id,
            transaction_type=TransactionType.WELLNESS_REWARD,
            amount="5",
            idempotency_key="wellness:42",
        )

        assert first.id == second.id
        assert LedgerTransaction.objects.count() == 1

    def test_inactive_account_rejected(self, account):
        Account.objects.filter(pk=account.pk).update(is_active=False)

        with pytest.raises(InactiveAccount):
            ledger.create_pending_transaction(
                account_id=account.id,
                transaction_type=TransactionType.WELLNESS_REWARD,
                amount="5",
            )

    def test_unknown_account_rejected(self, db):
        with pytest.raises(AccountNotFound):
            ledger.create_pending_transaction(
                account_id=uuid.uuid4(),
                transaction_type=TransactionType.WELLNESS_REWARD,
                amount="5",
            )


class TestPostTransaction:
    """Tests for LedgerService.post_transaction()."""

    def test_credit_increases_balance(self, account):
        tx = LedgerTransactionFactory(account=account, amount=Decimal("40.00"))

        with transaction.atomic():
            posted = ledger.post_transaction(tx.id)

        assert posted.status == TransactionStatus.POSTED
        assert posted.posted_at is not None
        assert Account.objects.get(pk=account.pk).balance == Decimal("40.00")

    def test_debit_decreases_balance(self, funded_account):
        tx = LedgerTransactionFactory(
            account=funded_account,
            transaction_type=TransactionType.STORE_PURCHASE,
            amount=Decimal("30.00"),
        )

        with transaction.atomic():
            ledger.post_transaction(tx.id)

        assert Account.objects.get(pk=funded_account.pk).balance == Decimal("70.00")

    def test_overdraft_raises_and_leaves_transaction_pending(self, funded_account):
        tx = LedgerTransactionFactory(
            account=funded_account,
            transaction_type=TransactionType.STORE_PURCHASE,
            amount=Decimal("100.01"),
        )

        with pytest.raises(InsufficientBalance) as exc_info:
            with transaction.atomic():
                ledger.post_transaction(tx.id)

        assert exc_info.value.message == "Insufficient balance"
        assert "100" not in exc_info.value.message
        assert _reload(tx).status == TransactionStatus.PENDING
        assert Account.objects.get(pk=funded_account.pk).balance == Decimal("100.00")

    def test_debit_of_entire_balance_allowed(self, funded_account):
        tx = LedgerTransactionFactory(
            account=funded_account,
            transaction_type=TransactionType.STORE_PURCHASE,
            amount=Decimal("100.00"),
        )

        with transaction.atomic():
            ledger.post_transaction(tx.id)

        assert Account.objects.get(pk=funded_account.pk).balance == Decimal("0.00")

    def test_double_post_rejected(self, account):
        tx = LedgerTransactionFactory(account=account)
        with transaction.atomic():
            ledger.post_transaction(tx.id)

        with pytest.raises(TransactionNotPending):
            with transaction.atomic():
                ledger.post_transaction(tx.id)

        assert Account.objects.get(pk=account.pk).balance == Decimal("10.00")

    def test_rejected_transaction_cannot_be_posted(self, account):
        tx = LedgerTransactionFactory(account=account)
        ledger.reject_transaction(tx.id, reason="duplicate")

        with pytest.raises(TransactionNotPending):
            with transaction.atomic():
                ledger.post_transaction(tx.id)

    def test_unknown_transaction(self, db):
        with pytest.raises(TransactionNotFound):
            with transaction.atomic():
                ledger.post_transaction(uuid.uuid4())

    def test_inactive_account_cannot_post(self, account):
        tx = LedgerTransactionFactory(account=account)
        Account.objects.filter(pk=account.pk).update(is_active=False)

        with pytest.raises(InactiveAccount):
            with transaction.atomic():
                ledger.post_transaction(tx.id)

    @pytest.mark.django_db(transaction=True)
    def test_requires_atomic_block(self, account):
        tx = LedgerTransactionFactory(account=account)

        with pytest.raises(LedgerError) as exc_info:
            ledger.post_transaction(tx.id)

        assert exc_info.value.error_code == "NOT_IN_TRANSACTION"


class TestRejectTransaction:
    def test_reject_has_no_balance_effect(self, account):
        tx = LedgerTransactionFactory(account=account)

        rejected = ledger.reject_transaction(tx.id, reason="spam")

        assert rejected.status == TransactionStatus.REJECTED
        assert rejected.rejected_at is not None
        assert Account.objects.get(pk=account.pk).balance == Decimal("0.00")

    def test_posted_transaction_cannot_be_rejected(self, account):
        tx = LedgerTransactionFactory(account=account)
        with transaction.atomic():
            ledger.post_transaction(tx.id)

        with pytest.raises(TransactionNotPending):
            ledger.reject_transaction(tx.id)


class TestRecordPosted:
    def test_retry_with_key_does_not_apply_twice(self, account):
        for _ in range(2):
            with transaction.atomic():
                ledger.record_posted(
                    account=account,
                    transaction_type=TransactionType.WELLNESS_REWARD,
                    amount="15",
                    idempotency_key="wellness:7",
                )

        assert Account.objects.get(pk=account.pk).balance == Decimal("15.00")
        assert LedgerTransaction.objects.filter(idempotency_key="wellness:7").count() == 1


class TestAdjustBalance:
    """Tests for LedgerService.adjust_balance()."""

    def test_positive_adjustment(self, employee, account, admin_employee):
        tx = ledger.adjust_balance(employee, "12.5", reason="Missed award", admin=admin_employee)

        assert tx.transaction_type == TransactionType.ADJUSTMENT
        assert tx.description == "Admin adjustment: Missed award"
        assert tx.source_employee == admin_employee
        assert Account.objects.get(pk=account.pk).balance == Decimal("12.50")

    def test_negative_adjustment(self, employee, funded_account):
        ledger.adjust_balance(employee, "-40", reason="Duplicate credit")

        assert Account.objects.get(pk=funded_account.pk).balance == Decimal("60.00")

    def test_deduction_beyond_balance_rejected(self, employee, funded_account):
        with pytest.raises(InsufficientBalance):
            ledger.adjust_balance(employee, "-100.01", reason="Too much")

        assert Account.objects.get(pk=funded_account.pk).balance == Decimal("100.00")
        assert not LedgerTransaction.objects.filter(
            transaction_type=TransactionType.ADJUSTMENT
        ).exists()

    def test_zero_rejected(self, employee):
        with pytest.raises(InvalidAmount):
            ledger.adjust_balance(employee, "0", reason="Nothing")


class TestGetAccountBalance:
    """Tests for LedgerService.get_account_balance()."""

    def test_posted_only_by_default(self, funded_account):
        LedgerTransactionFactory(account=funded_account, amount=Decimal("5.00"))

        balance = ledger.get_account_balance(funded_account.id)

        assert balance.to_dict() == {"posted": 100.0, "pending": 0.0, "total": 100.0}

    def test_include_pending_uses_signed_amounts(self, funded_account):
        LedgerTransactionFactory(account=funded_account, amount=Decimal("5.00"))
        LedgerTransactionFactory(
            account=funded_account,
            transaction_type=TransactionType.STORE_PURCHASE,
            amount=Decimal("20.00"),
        )

        balance = ledger.get_account_balance(funded_account.id, include_pending=True)

        assert balance.posted == Decimal("100.00")
        assert balance.pending == Decimal("-15.00")
        assert balance.total == Decimal("85.00")

    def test_unknown_account_is_zero(self, db):
        assert ledger.get_account_balance(uuid.uuid4()).to_dict() == {
            "posted": 0.0,
            "pending": 0.0,
            "total": 0.0,
        }

    def test_balance_matches_posted_sum(self, employee, funded_account):
        ledger.adjust_balance(employee, "-7.25", reason="Fix")
        post_credit(employee, Decimal("3.10"))

        account = Account.objects.get(pk=funded_account.pk)
        assert account.balance == account.computed_balance() == Decimal("95.85")


class TestGetTransactionHistory:
    """Tests for LedgerService.get_transaction_history()."""

    def test_newest_first_with_total(self, employee, account):
        for amount in ("1", "2", "3"):
            post_credit(employee, Decimal(amount))

        page = ledger.get_transaction_history(account.id, limit=2)

        assert page.total == 3
        assert [tx.amount for tx in page.transactions] == [Decimal("3.00"), Decimal("2.00")]
        assert (page.limit, page.offset) == (2, 0)

    def test_offset(self, employee, account):
        for amount in ("1", "2", "3"):
            post_credit(employee, Decimal(amount))

        page = ledger.get_transaction_history(account.id, limit=2, offset=2)

        assert [tx.amount for tx in page.transactions] == [Decimal("1.00")]

    def test_filters_are_exact(self, employee, funded_account):
        LedgerTransactionFactory(account=funded_account)

        pending = ledger.get_transaction_history(funded_account.id, status=TransactionStatus.PENDING)
        rewards = ledger.get_transaction_history(
            funded_account.id,
            transaction_type=TransactionType.WELLNESS_REWARD,
        )
        purchases = ledger.get_transaction_history(
            funded_account.id,
            transaction_type=TransactionType.STORE_PURCHASE,
        )

        assert pending.total == 1
        assert rewards.total == 2
        assert purchases.total == 0

    def test_limit_is_clamped(self, account):
        assert ledger.get_transaction_history(account.id, limit=10_000).limit == 200
        assert ledger.get_transaction_history(account.id, limit=0).limit == 1

    def test_unknown_account_is_empty(self, db):
        page = ledger.get_transaction_history(uuid.uuid4())

        assert page.total == 0
        assert page.transactions == []


class TestGetPendingTransactions:
    def test_oldest_first(self, account):
        first = LedgerTransactionFactory(account=account)
        second = LedgerTransactionFactory(account=account)
        with transaction.atomic():
            ledger.post_transaction(LedgerTransactionFactory(account=account).id)

        pending = ledger.get_pending_transactions(account.id)

        assert [tx.id for tx in pending] == [first.id, second.id]
