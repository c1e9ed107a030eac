"""
Tests for Account and LedgerTransaction models.

Covers database constraints, the django-fsm transitions and the signed
amount classification.
"""

from decimal import Decimal

import pytest
from django.db import IntegrityError, transaction
from django_fsm import TransitionNotAllowed

from coins.ledger.models import Account, LedgerTransaction
from coins.ledger.tests.factories import AccountFactory, LedgerTransactionFactory
from coins.state_machines import (
    CREDIT_TYPES,
    DEBIT_TYPES,
    AccountType,
    TransactionStatus,
    TransactionType,
    is_credit,
    signed_amount,
)


class TestAccountConstraints:
    def test_one_account_per_owner_and_type(self, employee):
        with pytest.raises(IntegrityError):
            with transaction.atomic():
                Account.objects.create(owner=employee, account_type=AccountType.EMPLOYEE)

    def test_owner_may_hold_employee_and_allotment_accounts(self, employee):
        Account.objects.create(owner=employee, account_type=AccountType.ALLOTMENT)

        assert Account.objects.filter(owner=employee).count() == 2

    def test_balance_cannot_be_negative(self, db):
        account = AccountFactory()

        with pytest.raises(IntegrityError):
            with transaction.atomic():
                Account.objects.filter(pk=account.pk).update(balance=Decimal("-1.00"))

    def test_computed_balance_sums_posted_only(self, funded_account):
        LedgerTransactionFactory(account=funded_account, amount=Decimal("5.00"))

        assert funded_account.computed_balance() == Decimal("100.00")


class TestLedgerTransactionConstraints:
    def test_non_adjustment_amount_must_be_positive(self, db):
        with pytest.raises(IntegrityError):
            with transaction.atomic():
                LedgerTransactionFactory(amount=Decimal("-5.00"))

    def test_adjustment_may_be_negative(self, db):
        tx = LedgerTransactionFactory(
            transaction_type=TransactionType.ADJUSTMENT,
            amount=Decimal("-5.00"),
        )

        assert tx.amount == Decimal("-5.00")

    def test_adjustment_may_not_be_zero(self, db):
        with pytest.raises(IntegrityError):
            with transaction.atomic():
                LedgerTransactionFactory(
                    transaction_type=TransactionType.ADJUSTMENT,
                    amount=Decimal("0.00"),
                )

    def test_idempotency_key_is_unique(self, db):
        LedgerTransactionFactory(idempotency_key="key-1")

        with pytest.raises(IntegrityError):
            with transaction.atomic():
                LedgerTransactionFactory(idempotency_key="key-1")


class TestLedgerTransactionTransitions:
    """django-fsm transitions on LedgerTransaction.status."""

    def test_post_sets_posted_at(self, db):
        tx = LedgerTransactionFactory()

        tx.post()

        assert tx.status == TransactionStatus.POSTED
        assert tx.posted_at is not None

    def test_reject_sets_rejected_at(self, db):
        tx = LedgerTransactionFactory()

        tx.reject()

        assert tx.status == TransactionStatus.REJECTED
        assert tx.rejected_at is not None

    def test_posted_cannot_be_rejected(self, db):
        tx = LedgerTransactionFactory()
        tx.post()

        with pytest.raises(TransitionNotAllowed):
            tx.reject()

    def test_rejected_cannot_be_posted(self, db):
        tx = LedgerTransactionFactory()
        tx.reject()

        with pytest.raises(TransitionNotAllowed):
            tx.post()

    def test_status_cannot_be_assigned_directly(self, db):
        tx = LedgerTransactionFactory()

        with pytest.raises(AttributeError):
            tx.status = TransactionStatus.POSTED


class TestClassification:
    """One table decides the direction of every transaction type."""

    def test_every_type_is_classified_once(self):
        assert CREDIT_TYPES.isdisjoint(DEBIT_TYPES)
        assert CREDIT_TYPES | DEBIT_TYPES == set(TransactionType.values)

    @pytest.mark.parametrize(
        "transaction_type",
        [
            TransactionType.MANAGER_AWARD,
            TransactionType.PEER_TRANSFER_RECEIVED,
            TransactionType.PEER_TRANSFER_REFUND,
            TransactionType.WELLNESS_REWARD,
            TransactionType.ALLOTMENT_DEPOSIT,
        ],
    )
    def test_credits_keep_sign(self, transaction_type):
        assert is_credit(transaction_type)
        assert signed_amount(transaction_type, Decimal("5")) == Decimal("5")

    @pytest.mark.parametrize(
        "transaction_type",
        [
            TransactionType.PEER_TRANSFER_SENT,
            TransactionType.STORE_PURCHASE,
            TransactionType.ALLOTMENT_AWARD,
            TransactionType.ALLOTMENT_DEDUCTION,
        ],
    )
    def test_debits_are_negated(self, transaction_type):
        assert not is_credit(transaction_type)
        assert signed_amount(transaction_type, Decimal("5")) == Decimal("-5")

    def test_negative_adjustment_reduces_balance(self):
        assert signed_amount(TransactionType.ADJUSTMENT, Decimal("-5")) == Decimal("-5")

    def test_unknown_type_raises(self):
        with pytest.raises(ValueError):
            is_credit("mystery")

    def test_signed_amount_property(self, db):
        tx = LedgerTransactionFactory(transaction_type=TransactionType.STORE_PURCHASE)

        assert tx.signed_amount == Decimal("-10.00")
