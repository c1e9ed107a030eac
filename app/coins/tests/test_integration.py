"""
End-to-end ledger scenarios.

These run the services together the way the web app and chat commands
do: sign-in provisioning, transfers, escrow claims, awards and the
reconciliation check that ties them together.
"""

import threading
from decimal import Decimal

import pytest
from django.db import connection, transaction

from coins.ledger.exceptions import TransactionNotPending
from coins.ledger.models import Account, LedgerTransaction
from coins.ledger.services import ledger
from coins.ledger.tests.factories import post_credit
from coins.models import PendingTransfer
from coins.services import AllotmentService, ReportService, TransferService
from coins.state_machines import AccountType, TransactionStatus, TransactionType
from employees.services import EmployeeService
from employees.tests.factories import EmployeeFactory


def _balance(employee, account_type=AccountType.EMPLOYEE) -> Decimal:
    return Account.objects.get(owner=employee, account_type=account_type).balance


class TestLedgerScenarios:
    def test_balance_of_funded_account(self, sender):
        account = ledger.get_account_for(sender)

        balance = ledger.get_account_balance(account.id, include_pending=True)

        assert balance.to_dict() == {"posted": 100.0, "pending": 0.0, "total": 100.0}

    def test_transfer_conserves_coins(self, sender, recipient):
        post_credit(recipient, Decimal("20"))

        result = TransferService.send_transfer(sender, recipient.email, "30")

        assert result.success
        assert _balance(sender) == Decimal("70.00")
        assert _balance(recipient) == Decimal("50.00")
        assert _balance(sender) + _balance(recipient) == Decimal("120.00")
        legs = LedgerTransaction.objects.filter(
            transaction_type__in=[
                TransactionType.PEER_TRANSFER_SENT,
                TransactionType.PEER_TRANSFER_RECEIVED,
            ],
        )
        assert legs.count() == 2
        assert {tx.amount for tx in legs} == {Decimal("30.00")}
        assert {tx.status for tx in legs} == {TransactionStatus.POSTED}

    def test_escrow_then_sign_in_claims(self, sender, settings):
        settings.GUINCOIN_WORKSPACE_DOMAIN = ""

        sent = TransferService.send_transfer(sender, "new@x.com", "30")

        assert sent.data.is_pending is True
        assert _balance(sender) == Decimal("70.00")
        assert PendingTransfer.objects.get().amount == Decimal("30.00")
        assert not Account.objects.filter(owner__email="new@x.com").exists()

        signed_in = EmployeeService.provision("new@x.com", "New Hire")

        assert signed_in.success
        assert signed_in.data.created is True
        assert len(signed_in.data.claimed) == 1
        assert _balance(signed_in.data.employee) == Decimal("30.00")
        assert not PendingTransfer.objects.exists()

        again = EmployeeService.provision("new@x.com")

        assert again.data.claimed == []
        assert _balance(signed_in.data.employee) == Decimal("30.00")

    def test_award_over_remaining_budget_changes_nothing(self, unfunded_manager, recipient, admin_employee):
        AllotmentService.deposit_allotment(unfunded_manager, "20", admin=admin_employee)

        assert AllotmentService.can_award(unfunded_manager, "25") is False

        result = AllotmentService.award_coins(unfunded_manager, recipient.email, "25")

        assert result.error_code == "INSUFFICIENT_BUDGET"
        assert _balance(unfunded_manager, AccountType.ALLOTMENT) == Decimal("20.00")
        assert _balance(recipient) == Decimal("0.00")

    def test_posting_twice_applies_once(self, sender):
        account = ledger.get_account_for(sender)
        with transaction.atomic():
            pending = ledger.create_pending_transaction(
                account.id,
                TransactionType.WELLNESS_REWARD,
                "15",
            )
            ledger.post_transaction(pending.id)

        with pytest.raises(TransactionNotPending):
            with transaction.atomic():
                ledger.post_transaction(pending.id)

        assert _balance(sender) == Decimal("115.00")

    def test_mixed_activity_reconciles(self, sender, recipient, manager, settings):
        settings.GUINCOIN_WORKSPACE_DOMAIN = ""
        AllotmentService.award_coins(manager, sender.email, "40", "Launch")
        TransferService.send_transfer(sender, recipient.email, "55")
        TransferService.send_transfer(sender, "later@x.com", "25")
        TransferService.send_transfer(recipient, sender.email, "5")
        TransferService.send_transfer(sender, recipient.email, "1000")
        EmployeeService.provision("later@x.com")

        for employee in (sender, recipient):
            assert _balance(employee) >= 0
        assert _balance(sender) == Decimal("65.00")
        assert _balance(recipient) == Decimal("50.00")
        assert ReportService.reconcile_ledger()["isHealthy"] is True


@pytest.mark.django_db(transaction=True)
@pytest.mark.skipif(
    connection.vendor != "postgresql",
    reason="Row locks need PostgreSQL; SQLite serialises writers globally",
)
class TestConcurrentTransfers:
    def test_only_one_overdrawing_transfer_succeeds(self):
        sender = EmployeeFactory(email="alice@example.com", name="Alice")
        recipient = EmployeeFactory(email="bob@example.com", name="Bob")
        post_credit(sender, Decimal("100"))

        barrier = threading.Barrier(2)
        results = []

        def transfer():
            try:
                barrier.wait()
                results.append(TransferService.send_transfer(sender, recipient.email, "60"))
            finally:
                connection.close()

        threads = [threading.Thread(target=transfer) for _ in range(2)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert sorted(bool(r) for r in results) == [False, True]
        [failure] = [r for r in results if not r]
        assert failure.error_code in ("INSUFFICIENT_BALANCE", "TRY_AGAIN")
        assert _balance(sender) == Decimal("40.00")
        assert _balance(recipient) == Decimal("60.00")
