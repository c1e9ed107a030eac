"""
Serializers for the coin API.

Amounts are rendered as JSON numbers (coerce_to_string=False), matching
the field names and types the chat and admin collaborators expect.
Request serializers accept at most two decimal places; amount sign and
zero checks stay in the services so every entry point shares them.
"""

from __future__ import annotations

from rest_framework import serializers

from coins.ledger.models import LedgerTransaction
from coins.models import AllotmentPolicy, PendingTransfer
from coins.state_machines import PeriodType, TransactionStatus, TransactionType
from employees.models import Employee


def amount_field(**kwargs) -> serializers.DecimalField:
    return serializers.DecimalField(
        max_digits=12,
        decimal_places=2,
        coerce_to_string=False,
        **kwargs,
    )


# =============================================================================
# Read Serializers
# =============================================================================


class EmployeeSummarySerializer(serializers.ModelSerializer):
    """Minimal employee representation for transaction counterparties."""

    name = serializers.CharField(source="display_name", read_only=True)

    class Meta:
        model = Employee
        fields = ["id", "email", "name"]
        read_only_fields = fields


class LedgerTransactionSerializer(serializers.ModelSerializer):
    """Ledger transaction as shown in history lists."""

    amount = amount_field(read_only=True)
    source_employee = EmployeeSummarySerializer(read_only=True, allow_null=True)
    target_employee = EmployeeSummarySerializer(read_only=True, allow_null=True)

    class Meta:
        model = LedgerTransaction
        fields = [
            "id",
            "account_id",
            "transaction_type",
            "amount",
            "description",
            "status",
            "source_employee",
            "target_employee",
            "created_at",
            "posted_at",
        ]
        read_only_fields = fields


class PendingTransferSerializer(serializers.ModelSerializer):
    """Escrowed transfer awaiting its recipient."""

    amount = amount_field(read_only=True)
    sender_transaction_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = PendingTransfer
        fields = [
            "id",
            "recipient_email",
            "amount",
            "message",
            "sender_transaction_id",
            "created_at",
        ]
        read_only_fields = fields


class AllotmentPolicySerializer(serializers.ModelSerializer):
    """Manager recurring budget configuration."""

    recurring_budget = amount_field(read_only=True)

    class Meta:
        model = AllotmentPolicy
        fields = ["manager_id", "recurring_budget", "period_type", "last_applied_period_start"]
        read_only_fields = fields


# =============================================================================
# Request Serializers
# =============================================================================


class TransactionHistoryQuerySerializer(serializers.Serializer):
    """Query parameters for paginated history endpoints."""

    limit = serializers.IntegerField(min_value=1, max_value=200, default=50)
    offset = serializers.IntegerField(min_value=0, default=0)
    status = serializers.ChoiceField(choices=TransactionStatus.choices, required=False)
    transaction_type = serializers.ChoiceField(choices=TransactionType.choices, required=False)


class SendTransferSerializer(serializers.Serializer):
    """Request body for sending coins to a peer."""

    recipient_email = serializers.EmailField(help_text="Recipient's work email")
    amount = amount_field(help_text="Amount to send (max 2 decimal places)")
    message = serializers.CharField(
        max_length=500,
        required=False,
        allow_blank=True,
        default="",
        help_text="Optional message to the recipient",
    )


class AwardSerializer(serializers.Serializer):
    """Request body for a manager award."""

    recipient_email = serializers.EmailField(help_text="Recipient's work email")
    amount = amount_field(help_text="Amount to award (max 2 decimal places)")
    description = serializers.CharField(
        max_length=500,
        required=False,
        allow_blank=True,
        default="",
    )


class AllotmentDepositSerializer(serializers.Serializer):
    """Admin deposit into (negative: deduction from) a manager allotment."""

    amount = amount_field(help_text="Signed amount; negative deducts")
    description = serializers.CharField(
        max_length=500,
        required=False,
        allow_blank=True,
        default="",
    )


class RecurringBudgetSerializer(serializers.Serializer):
    """Admin update of a manager's recurring budget."""

    amount = amount_field(min_value=0, help_text="Per-period budget; 0 disables")
    period_type = serializers.ChoiceField(choices=PeriodType.choices, default=PeriodType.MONTHLY)


class BalanceAdjustmentSerializer(serializers.Serializer):
    """Admin correction of an employee balance."""

    amount = amount_field(help_text="Signed amount; negative deducts")
    reason = serializers.CharField(max_length=500)
