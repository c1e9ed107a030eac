"""
Factory Boy factories for ledger test data.

Balances are never set directly: the materialized balance must always
equal the signed sum of posted transactions, so tests fund accounts
through the ledger with post_credit().

Usage:
    from coins.ledger.tests.factories import LedgerTransactionFactory, post_credit

    # Pending wellness reward on a fresh allotment account
    tx = LedgerTransactionFactory()

    # Give an employee 100 spendable coins
    post_credit(employee, Decimal("100"))
"""

from decimal import Decimal

import factory
from django.db import transaction

from coins.ledger.models import Account, LedgerTransaction
from coins.ledger.services import ledger
from coins.state_machines import AccountType, TransactionStatus, TransactionType
from employees.tests.factories import EmployeeFactory


class AccountFactory(factory.django.DjangoModelFactory):
    """
    Factory for Account instances.

    Employee accounts are created by signal when the employee is saved,
    so the default here is a manager's ALLOTMENT account.

    Example:
        allotment = AccountFactory()
        inactive = AccountFactory(is_active=False)
    """

    class Meta:
        model = Account
        skip_postgeneration_save = True

    owner = factory.SubFactory(EmployeeFactory, is_manager=True)
    account_type = AccountType.ALLOTMENT
    is_active = True


class LedgerTransactionFactory(factory.django.DjangoModelFactory):
    """
    Factory for pending LedgerTransaction instances.

    Example:
        tx = LedgerTransactionFactory(account=account, amount=Decimal("5.00"))
        debit = LedgerTransactionFactory(
            account=account,
            transaction_type=TransactionType.STORE_PURCHASE,
        )
    """

    class Meta:
        model = LedgerTransaction
        skip_postgeneration_save = True

    account = factory.SubFactory(AccountFactory)
    transaction_type = TransactionType.WELLNESS_REWARD
    amount = Decimal("10.00")
    description = factory.Sequence(lambda n: f"Test transaction {n}")
    status = TransactionStatus.PENDING
    idempotency_key = None


def post_credit(
    employee,
    amount,
    account_type=AccountType.EMPLOYEE,
    transaction_type=None,
) -> LedgerTransaction:
    """Post a credit to the employee's account through the ledger."""
    if transaction_type is None:
        transaction_type = (
            TransactionType.ALLOTMENT_DEPOSIT
            if account_type == AccountType.ALLOTMENT
            else TransactionType.WELLNESS_REWARD
        )
    with transaction.atomic():
        account = ledger.get_or_create_account(employee, account_type)
        return ledger.record_posted(
            account=account,
            transaction_type=transaction_type,
            amount=amount,
            description="Test funding",
        )
