"""
URL configuration for the coins app.

All routes are prefixed with /api/v1/coins/ when included in the main URLconf.

Usage:
    # In config/urls.py
    api_v1_patterns = [
        path("coins/", include("coins.urls")),
    ]
"""

from django.urls import path

from coins import views

app_name = "coins"

urlpatterns = [
    # Accounts
    path("accounts/balance/", views.BalanceView.as_view(), name="balance"),
    path("accounts/transactions/", views.TransactionHistoryView.as_view(), name="transactions"),
    path("accounts/pending/", views.PendingTransactionsView.as_view(), name="pending_transactions"),
    # Transfers
    path("transfers/limits/", views.TransferLimitsView.as_view(), name="transfer_limits"),
    path("transfers/send/", views.SendTransferView.as_view(), name="send_transfer"),
    path("transfers/history/", views.TransferHistoryView.as_view(), name="transfer_history"),
    path("transfers/pending/", views.PendingTransfersView.as_view(), name="pending_transfers"),
    path(
        "transfers/<uuid:transfer_id>/cancel/",
        views.CancelPendingTransferView.as_view(),
        name="cancel_pending_transfer",
    ),
    # Manager
    path("manager/allotment/", views.ManagerAllotmentView.as_view(), name="manager_allotment"),
    path("manager/award/", views.ManagerAwardView.as_view(), name="manager_award"),
    path("manager/history/", views.ManagerHistoryView.as_view(), name="manager_history"),
    # Admin
    path(
        "admin/allotments/<int:manager_id>/deposit/",
        views.AllotmentDepositView.as_view(),
        name="admin_allotment_deposit",
    ),
    path(
        "admin/allotments/<int:manager_id>/recurring/",
        views.RecurringBudgetView.as_view(),
        name="admin_recurring_budget",
    ),
    path(
        "admin/employees/<int:employee_id>/adjust/",
        views.BalanceAdjustmentView.as_view(),
        name="admin_adjust_balance",
    ),
    path("admin/ledger/reconcile/", views.LedgerReconcileView.as_view(), name="admin_reconcile"),
    path("admin/ledger/report/", views.LedgerReportView.as_view(), name="admin_report"),
]
