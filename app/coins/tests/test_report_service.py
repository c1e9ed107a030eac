"""
Tests for ReportService: reconciliation, snapshots and the daily report.
"""

from datetime import timedelta
from decimal import Decimal

from django.utils import timezone

from coins.ledger.models import Account
from coins.ledger.tests.factories import post_credit
from coins.services import AllotmentService, ReportService, TransferService
from coins.state_machines import AccountType


def _account(employee, account_type=AccountType.EMPLOYEE) -> Account:
    return Account.objects.get(owner=employee, account_type=account_type)


class TestReconcileLedger:
    def test_healthy_ledger(self, sender, recipient, manager):
        TransferService.send_transfer(sender, recipient.email, "30")
        AllotmentService.award_coins(manager, recipient.email, "20")

        report = ReportService.reconcile_ledger()

        assert report["isHealthy"] is True
        assert report["discrepancies"] == []
        assert report["accountsChecked"] == Account.objects.count()

    def test_empty_ledger(self, db):
        assert ReportService.reconcile_ledger() == {
            "isHealthy": True,
            "accountsChecked": 0,
            "discrepancies": [],
        }

    def test_account_without_transactions_is_healthy(self, recipient):
        assert ReportService.reconcile_ledger()["isHealthy"] is True

    def test_detects_drift(self, sender, recipient):
        account = _account(sender)
        Account.objects.filter(pk=account.pk).update(balance=Decimal("150.00"))

        report = ReportService.reconcile_ledger()

        assert report["isHealthy"] is False
        assert report["discrepancies"] == [
            {
                "accountId": str(account.id),
                "storedBalance": 150.0,
                "computedBalance": 100.0,
                "difference": 50.0,
            }
        ]

    def test_detects_drift_on_unposted_account(self, recipient):
        account = _account(recipient)
        Account.objects.filter(pk=account.pk).update(balance=Decimal("5.00"))

        [discrepancy] = ReportService.reconcile_ledger()["discrepancies"]

        assert discrepancy["computedBalance"] == 0.0
        assert discrepancy["difference"] == 5.0


class TestSnapshot:
    def test_lists_accounts_and_recent_transactions(self, sender, recipient):
        TransferService.send_transfer(sender, recipient.email, "30")

        snapshot = ReportService.snapshot()

        emails = [row["ownerEmail"] for row in snapshot["accounts"]]
        assert emails == ["alice@example.com", "bob@example.com"]
        assert snapshot["accounts"][0]["balance"] == 70.0
        assert len(snapshot["transactions"]) == 3

    def test_since_filters_transactions(self, sender):
        snapshot = ReportService.snapshot(since=timezone.now() + timedelta(minutes=1))

        assert snapshot["transactions"] == []
        assert len(snapshot["accounts"]) == 1


class TestDailyReport:
    def test_totals(self, sender, recipient, manager):
        TransferService.send_transfer(sender, recipient.email, "30")
        AllotmentService.award_coins(manager, recipient.email, "20")

        report = ReportService.daily_report()

        assert report["coinsTransferred"] == 30.0
        assert report["coinsAwarded"] == 20.0
        assert report["wellnessRewards"] == 100.0
        assert report["totalInCirculation"] == 120.0
        assert report["pendingEscrowCount"] == 0
        assert report["pendingEscrowAmount"] == 0.0
        assert report["anomalies"] == []

    def test_window_excludes_older_transactions(self, sender, recipient):
        TransferService.send_transfer(sender, recipient.email, "30")

        report = ReportService.daily_report(now=timezone.now() + timedelta(days=2))

        assert report["transactionCount"] == 0
        assert report["totalInCirculation"] == 100.0

    def test_pending_escrow(self, sender):
        TransferService.send_transfer(sender, "carol@example.com", "10")

        report = ReportService.daily_report()

        assert report["pendingEscrowCount"] == 1
        assert report["pendingEscrowAmount"] == 10.0

    def test_large_transfer_anomaly(self, sender, recipient):
        sent = TransferService.send_transfer(sender, recipient.email, "60").data.sender_transaction

        [anomaly] = ReportService.daily_report()["anomalies"]

        assert anomaly == {
            "type": "large_transfer",
            "transactionId": str(sent.id),
            "sender": "Alice",
            "recipient": "Bob",
            "amount": 60.0,
        }

    def test_large_escrowed_transfer_names_email(self, sender):
        TransferService.send_transfer(sender, "carol@example.com", "50")

        [anomaly] = ReportService.daily_report()["anomalies"]

        assert anomaly["recipient"] == "carol@example.com"

    def test_repeated_transfers_anomaly(self, sender, recipient):
        for _ in range(3):
            TransferService.send_transfer(sender, recipient.email, "5")

        [anomaly] = ReportService.daily_report()["anomalies"]

        assert anomaly == {
            "type": "repeated_transfers",
            "sender": "Alice",
            "recipient": "Bob",
            "count": 3,
        }

    def test_thresholds_come_from_settings(self, sender, recipient, settings):
        settings.GUINCOIN_LARGE_TRANSFER_THRESHOLD = 1000
        settings.GUINCOIN_REPEATED_TRANSFER_THRESHOLD = 2
        post_credit(sender, Decimal("50"))
        TransferService.send_transfer(sender, recipient.email, "60")
        TransferService.send_transfer(sender, recipient.email, "60")

        types = [a["type"] for a in ReportService.daily_report()["anomalies"]]

        assert types == ["repeated_transfers"]


class TestRenderDailyReport:
    def test_without_anomalies(self, sender):
        report = ReportService.daily_report()

        subject, body = ReportService.render_daily_report(report)

        assert subject == f"Guincoin daily report - {report['periodEnd'][:10]}"
        assert "Wellness rewards: 100.00" in body
        assert "Pending escrow: 0 transfers, 0.00 coins" in body
        assert body.endswith("No anomalies detected.")

    def test_with_anomalies(self, sender, recipient):
        for _ in range(3):
            TransferService.send_transfer(sender, recipient.email, "20")

        _, body = ReportService.render_daily_report(ReportService.daily_report())

        assert "Anomalies detected:" in body
        assert "- Repeated transfers: Alice -> Bob (3 times in 24h)" in body

    def test_large_transfer_line(self, sender, recipient):
        TransferService.send_transfer(sender, recipient.email, "75")

        _, body = ReportService.render_daily_report(ReportService.daily_report())

        assert "- Large transfer: Alice sent 75.00 to Bob" in body
