"""
Django admin configuration for the coin ledger.

Transactions are immutable from the admin: corrections go through
LedgerService.adjust_balance so the stored balance and the transaction
log stay in step.
"""

from django.contrib import admin

from coins.ledger.models import Account, LedgerTransaction
from coins.models import AllotmentPolicy, PeerTransferLimit, PendingTransfer


@admin.register(Account)
class AccountAdmin(admin.ModelAdmin):
    """Accounts are read-only here except for the active flag."""

    list_display = ["owner", "account_type", "balance", "is_active", "created_at"]
    list_filter = ["account_type", "is_active"]
    search_fields = ["id", "owner__email", "owner__name"]
    readonly_fields = ["id", "owner", "account_type", "balance", "created_at", "updated_at"]
    ordering = ["owner__email", "account_type"]

    def has_add_permission(self, request) -> bool:
        """Accounts are created on sign-up and first use, not by hand."""
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        return False


@admin.register(LedgerTransaction)
class LedgerTransactionAdmin(admin.ModelAdmin):
    """
    Admin configuration for LedgerTransaction.

    Transactions cannot be added, edited or deleted through the admin.
    """

    list_display = [
        "id",
        "created_at",
        "transaction_type",
        "amount",
        "status",
        "account",
        "source_employee",
        "target_employee",
    ]
    list_filter = ["transaction_type", "status", "created_at"]
    search_fields = ["id", "idempotency_key", "description", "account__owner__email"]
    readonly_fields = [
        "id",
        "account",
        "transaction_type",
        "amount",
        "status",
        "description",
        "source_employee",
        "target_employee",
        "idempotency_key",
        "posted_at",
        "rejected_at",
        "created_at",
        "updated_at",
    ]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]

    fieldsets = (
        (
            "Transaction",
            {"fields": ("id", "transaction_type", "amount", "status", "description")},
        ),
        (
            "Parties",
            {"fields": ("account", "source_employee", "target_employee")},
        ),
        (
            "Lifecycle",
            {"fields": ("idempotency_key", "created_at", "posted_at", "rejected_at", "updated_at")},
        ),
    )

    def has_add_permission(self, request) -> bool:
        return False

    def has_change_permission(self, request, obj=None) -> bool:
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        return False


@admin.register(AllotmentPolicy)
class AllotmentPolicyAdmin(admin.ModelAdmin):
    list_display = ["manager", "recurring_budget", "period_type", "last_applied_period_start"]
    list_filter = ["period_type"]
    search_fields = ["manager__email", "manager__name"]
    readonly_fields = ["last_applied_period_start", "created_at", "updated_at"]


@admin.register(PendingTransfer)
class PendingTransferAdmin(admin.ModelAdmin):
    """Escrowed transfers; cancel through the API so the sender is refunded."""

    list_display = ["id", "sender", "recipient_email", "amount", "created_at"]
    search_fields = ["id", "sender__email", "recipient_email"]
    readonly_fields = ["id", "sender", "recipient_email", "amount", "message", "sender_transaction", "created_at"]
    ordering = ["-created_at"]

    def has_add_permission(self, request) -> bool:
        return False

    def has_change_permission(self, request, obj=None) -> bool:
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        return False


@admin.register(PeerTransferLimit)
class PeerTransferLimitAdmin(admin.ModelAdmin):
    list_display = ["employee", "period_type", "period_start", "period_end", "max_amount"]
    list_filter = ["period_type"]
    search_fields = ["employee__email"]
    ordering = ["-period_start"]
