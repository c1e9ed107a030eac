"""
Reporting read surface.

Plain reads only (no select_for_update), so reports never block the
ledger's writers. Balances are recomputed with the same
signed_sum_expression() the poster's classification table drives, so a
report can never disagree with the ledger about which types are credits.

Usage:
    from coins.services import ReportService

    ReportService.reconcile_ledger()
    # {"isHealthy": True, "accountsChecked": 42, "discrepancies": []}

    report = ReportService.daily_report()
    subject, body = ReportService.render_daily_report(report)
"""

from __future__ import annotations

from collections import Counter
from datetime import datetime, timedelta
from decimal import Decimal
from typing import TYPE_CHECKING

from django.conf import settings
from django.db.models import Count, Sum
from django.utils import timezone

from core.services import BaseService

from coins.ledger.models import Account, LedgerTransaction
from coins.ledger.types import ZERO, to_number
from coins.models import PendingTransfer
from coins.state_machines import (
    AccountType,
    TransactionStatus,
    TransactionType,
    signed_sum_expression,
)

if TYPE_CHECKING:
    from typing import Any

REPORT_WINDOW = timedelta(hours=24)


class ReportService(BaseService):
    """Read-only aggregate views over accounts and transactions."""

    @classmethod
    def reconcile_ledger(cls) -> dict[str, Any]:
        """
        Compare every account's stored balance with its posted transactions.

        Returns:
            {isHealthy, accountsChecked, discrepancies: [{accountId,
            storedBalance, computedBalance, difference}]}
        """
        computed = {
            row["account_id"]: row["total"]
            for row in LedgerTransaction.objects.filter(status=TransactionStatus.POSTED)
            .values("account_id")
            .annotate(total=signed_sum_expression())
            .order_by()
        }

        discrepancies = []
        checked = 0
        for account_id, stored in Account.objects.values_list("id", "balance").iterator():
            checked += 1
            expected = computed.get(account_id, ZERO)
            if stored != expected:
                discrepancies.append(
                    {
                        "accountId": str(account_id),
                        "storedBalance": to_number(stored),
                        "computedBalance": to_number(expected),
                        "difference": to_number(stored - expected),
                    }
                )

        if discrepancies:
            cls.get_logger().error(
                "Ledger reconciliation found discrepancies",
                extra={"discrepancy_count": len(discrepancies)},
            )
        return {
            "isHealthy": not discrepancies,
            "accountsChecked": checked,
            "discrepancies": discrepancies,
        }

    @classmethod
    def snapshot(cls, since: datetime | None = None) -> dict[str, Any]:
        """All accounts with balances, plus transactions created since `since`."""
        since = since or timezone.now() - REPORT_WINDOW

        accounts = [
            {
                "accountId": str(account.id),
                "accountType": account.account_type,
                "ownerEmail": account.owner.email,
                "ownerName": account.owner.display_name,
                "balance": to_number(account.balance),
                "isActive": account.is_active,
            }
            for account in Account.objects.select_related("owner").order_by("owner__email", "account_type")
        ]
        transactions = [
            {
                "id": str(tx.id),
                "accountId": str(tx.account_id),
                "transactionType": tx.transaction_type,
                "amount": to_number(tx.amount),
                "status": tx.status,
                "sourceEmployeeId": tx.source_employee_id,
                "targetEmployeeId": tx.target_employee_id,
                "createdAt": tx.created_at.isoformat(),
                "postedAt": tx.posted_at.isoformat() if tx.posted_at else None,
            }
            for tx in LedgerTransaction.objects.filter(created_at__gte=since).order_by("-created_at")
        ]
        return {"since": since.isoformat(), "accounts": accounts, "transactions": transactions}

    @classmethod
    def daily_report(cls, now: datetime | None = None) -> dict[str, Any]:
        """
        Totals and anomalies for the 24 hours before `now`.

        Anomalies:
            large_transfer: a single peer transfer of at least
                GUINCOIN_LARGE_TRANSFER_THRESHOLD
            repeated_transfers: a sender -> recipient pair with at least
                GUINCOIN_REPEATED_TRANSFER_THRESHOLD transfers
        """
        now = now or timezone.now()
        since = now - REPORT_WINDOW
        large_threshold = Decimal(str(getattr(settings, "GUINCOIN_LARGE_TRANSFER_THRESHOLD", 50)))
        repeat_threshold = int(getattr(settings, "GUINCOIN_REPEATED_TRANSFER_THRESHOLD", 3))

        recent = list(
            LedgerTransaction.objects.filter(
                status=TransactionStatus.POSTED,
                posted_at__gte=since,
                posted_at__lt=now,
            ).select_related("source_employee", "target_employee", "pending_transfer")
        )

        def total_of(transaction_type: str) -> Decimal:
            return sum(
                (tx.amount for tx in recent if tx.transaction_type == transaction_type),
                ZERO,
            )

        sent = [tx for tx in recent if tx.transaction_type == TransactionType.PEER_TRANSFER_SENT]

        anomalies = []
        for tx in sent:
            if tx.amount >= large_threshold:
                anomalies.append(
                    {
                        "type": "large_transfer",
                        "transactionId": str(tx.id),
                        "sender": _name(tx.source_employee),
                        "recipient": _recipient_label(tx),
                        "amount": to_number(tx.amount),
                    }
                )

        pairs = Counter(
            (tx.source_employee, tx.target_employee)
            for tx in sent
            if tx.source_employee_id and tx.target_employee_id
        )
        for (source, target), count in pairs.items():
            if count >= repeat_threshold:
                anomalies.append(
                    {
                        "type": "repeated_transfers",
                        "sender": _name(source),
                        "recipient": _name(target),
                        "count": count,
                    }
                )

        circulation = Account.objects.filter(account_type=AccountType.EMPLOYEE).aggregate(
            total=Sum("balance")
        )["total"] or ZERO
        escrow = PendingTransfer.objects.aggregate(count=Count("id"), total=Sum("amount"))

        return {
            "periodStart": since.isoformat(),
            "periodEnd": now.isoformat(),
            "transactionCount": len(recent),
            "totalInCirculation": to_number(circulation),
            "coinsAwarded": to_number(total_of(TransactionType.MANAGER_AWARD)),
            "coinsTransferred": to_number(total_of(TransactionType.PEER_TRANSFER_SENT)),
            "wellnessRewards": to_number(total_of(TransactionType.WELLNESS_REWARD)),
            "pendingEscrowCount": escrow["count"],
            "pendingEscrowAmount": to_number(escrow["total"] or ZERO),
            "anomalies": anomalies,
        }

    @staticmethod
    def render_daily_report(report: dict[str, Any]) -> tuple[str, str]:
        """Render the report as a plain-text email (subject, body)."""
        date = report["periodEnd"][:10]
        lines = [
            f"Guincoin daily report for {date}",
            "",
            f"Transactions posted: {report['transactionCount']}",
            f"Total in circulation: {report['totalInCirculation']:.2f}",
            f"Coins awarded: {report['coinsAwarded']:.2f}",
            f"Coins transferred: {report['coinsTransferred']:.2f}",
            f"Wellness rewards: {report['wellnessRewards']:.2f}",
            (
                f"Pending escrow: {report['pendingEscrowCount']} transfers, "
                f"{report['pendingEscrowAmount']:.2f} coins"
            ),
            "",
        ]
        if report["anomalies"]:
            lines.append("Anomalies detected:")
            for anomaly in report["anomalies"]:
                if anomaly["type"] == "large_transfer":
                    lines.append(
                        f"- Large transfer: {anomaly['sender']} sent "
                        f"{anomaly['amount']:.2f} to {anomaly['recipient']}"
                    )
                else:
                    lines.append(
                        f"- Repeated transfers: {anomaly['sender']} -> "
                        f"{anomaly['recipient']} ({anomaly['count']} times in 24h)"
                    )
        else:
            lines.append("No anomalies detected.")

        return f"Guincoin daily report - {date}", "\n".join(lines)


def _name(employee) -> str:
    return employee.display_name if employee is not None else "Unknown"


def _recipient_label(tx: LedgerTransaction) -> str:
    if tx.target_employee is not None:
        return tx.target_employee.display_name
    pending = getattr(tx, "pending_transfer", None)
    return pending.recipient_email if pending is not None else "Unknown"
