"""
DRF views for the coin ledger.

This module provides API views for:
- Balance and transaction history
- Peer transfers, limits and escrowed (pending) transfers
- Manager allotments and awards
- Ledger administration (deposits, budgets, adjustments, reports)

Related files:
    - services/: Business logic; views only translate HTTP to service calls
    - serializers.py: Request/response serializers
    - permissions.py: IsManager, IsLedgerAdmin
    - urls.py: URL routing

Endpoints:
    GET  /api/v1/coins/accounts/balance/           - Own balance
    GET  /api/v1/coins/accounts/transactions/      - Own history
    GET  /api/v1/coins/accounts/pending/           - Own pending transactions
    GET  /api/v1/coins/transfers/limits/           - Transfer limit usage
    POST /api/v1/coins/transfers/send/             - Send coins
    GET  /api/v1/coins/transfers/history/          - Sent transfers
    GET  /api/v1/coins/transfers/pending/          - Own escrowed transfers
    POST /api/v1/coins/transfers/{id}/cancel/      - Cancel escrowed transfer
    GET  /api/v1/coins/manager/allotment/          - Manager budget
    POST /api/v1/coins/manager/award/              - Award coins
    GET  /api/v1/coins/manager/history/            - Awards given
    POST /api/v1/coins/admin/allotments/{id}/deposit/   - Deposit allotment
    PUT  /api/v1/coins/admin/allotments/{id}/recurring/ - Set recurring budget
    POST /api/v1/coins/admin/employees/{id}/adjust/     - Adjust balance
    GET  /api/v1/coins/admin/ledger/reconcile/     - Reconcile balances
    GET  /api/v1/coins/admin/ledger/report/        - Daily report

Security:
    - All endpoints require authentication
    - Manager endpoints require IsManager, admin endpoints IsLedgerAdmin
    - Failure messages never include balances or remaining budgets
"""

from __future__ import annotations

import logging

from django.shortcuts import get_object_or_404
from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from coins.ledger.services import ledger
from coins.ledger.types import TransactionPage
from coins.permissions import IsLedgerAdmin, IsManager
from coins.serializers import (
    AllotmentDepositSerializer,
    AllotmentPolicySerializer,
    AwardSerializer,
    BalanceAdjustmentSerializer,
    LedgerTransactionSerializer,
    PendingTransferSerializer,
    RecurringBudgetSerializer,
    SendTransferSerializer,
    TransactionHistoryQuerySerializer,
)
from coins.services import (
    AllotmentService,
    PendingTransferService,
    ReportService,
    TransferService,
)
from coins.state_machines import AccountType
from employees.models import Employee

logger = logging.getLogger(__name__)

# Error codes that map to something other than 400
FAILURE_STATUS = {
    "NOT_A_MANAGER": status.HTTP_403_FORBIDDEN,
    "NOT_SENDER": status.HTTP_403_FORBIDDEN,
    "NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "TRY_AGAIN": status.HTTP_409_CONFLICT,
}


def failure_response(result) -> Response:
    """Render a failed ServiceResult with its mapped status code."""
    return Response(
        result.to_response(),
        status=FAILURE_STATUS.get(result.error_code, status.HTTP_400_BAD_REQUEST),
    )


def page_response(page: TransactionPage) -> Response:
    return Response(
        {
            "transactions": LedgerTransactionSerializer(page.transactions, many=True).data,
            "total": page.total,
            "limit": page.limit,
            "offset": page.offset,
        }
    )


def history_params(request) -> dict:
    serializer = TransactionHistoryQuerySerializer(data=request.query_params)
    serializer.is_valid(raise_exception=True)
    return serializer.validated_data


# =============================================================================
# Account Views
# =============================================================================


class BalanceView(APIView):
    """
    Get the current employee's balance.

    GET /api/v1/coins/accounts/balance/?include_pending=true

    Returns:
        {"posted": 70.0, "pending": 0.0, "total": 70.0}
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="get_coin_balance",
        summary="Get own balance",
        parameters=[
            OpenApiParameter("include_pending", bool, description="Include pending transactions"),
        ],
        tags=["Coins - Accounts"],
    )
    def get(self, request):
        include_pending = request.query_params.get("include_pending", "").lower() in ("1", "true", "yes")
        account = ledger.get_or_create_account(request.user, AccountType.EMPLOYEE)
        balance = ledger.get_account_balance(account.id, include_pending=include_pending)
        return Response(balance.to_dict())


class TransactionHistoryView(APIView):
    """
    Paginated transaction history for the current employee, newest first.

    GET /api/v1/coins/accounts/transactions/?limit=50&offset=0&status=posted
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="list_coin_transactions",
        summary="List own transactions",
        parameters=[TransactionHistoryQuerySerializer],
        tags=["Coins - Accounts"],
    )
    def get(self, request):
        params = history_params(request)
        account = ledger.get_or_create_account(request.user, AccountType.EMPLOYEE)
        page = ledger.get_transaction_history(
            account.id,
            limit=params["limit"],
            offset=params["offset"],
            status=params.get("status"),
            transaction_type=params.get("transaction_type"),
        )
        return page_response(page)


class PendingTransactionsView(APIView):
    """Pending transactions on the current employee's account, oldest first."""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="list_coin_pending_transactions",
        summary="List own pending transactions",
        responses=LedgerTransactionSerializer(many=True),
        tags=["Coins - Accounts"],
    )
    def get(self, request):
        account = ledger.get_or_create_account(request.user, AccountType.EMPLOYEE)
        transactions = ledger.get_pending_transactions(account.id)
        return Response(LedgerTransactionSerializer(transactions, many=True).data)


# =============================================================================
# Transfer Views
# =============================================================================


class TransferLimitsView(APIView):
    """
    Current monthly transfer limit and usage.

    GET /api/v1/coins/transfers/limits/
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="get_transfer_limits",
        summary="Get transfer limit usage",
        tags=["Coins - Transfers"],
    )
    def get(self, request):
        return Response(TransferService.get_transfer_limits(request.user).to_dict())


class SendTransferView(APIView):
    """
    Send coins to another employee.

    POST /api/v1/coins/transfers/send/

    Request body:
        {"recipient_email": "bob@example.com", "amount": 30, "message": "Lunch"}

    Response:
        201 Created: Transfer completed
        202 Accepted: Recipient not registered yet; coins held in escrow
        400 Bad Request: Validation or domain rejection
        409 Conflict: Concurrent update, retry
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="send_transfer",
        summary="Send coins to a peer",
        request=SendTransferSerializer,
        responses={
            201: OpenApiResponse(description="Transfer completed"),
            202: OpenApiResponse(description="Transfer held until the recipient signs in"),
            400: OpenApiResponse(description="Transfer rejected"),
            409: OpenApiResponse(description="Concurrent update, try again"),
        },
        tags=["Coins - Transfers"],
    )
    def post(self, request):
        serializer = SendTransferSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = TransferService.send_transfer(
            sender=request.user,
            recipient_email=data["recipient_email"],
            amount=data["amount"],
            message=data.get("message"),
        )
        if not result:
            return failure_response(result)

        outcome = result.data
        return Response(
            outcome.to_dict(),
            status=status.HTTP_202_ACCEPTED if outcome.is_pending else status.HTTP_201_CREATED,
        )


class TransferHistoryView(APIView):
    """Transfers sent by the current employee, newest first."""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="list_sent_transfers",
        summary="List sent transfers",
        parameters=[TransactionHistoryQuerySerializer],
        tags=["Coins - Transfers"],
    )
    def get(self, request):
        params = history_params(request)
        page = TransferService.get_transfer_history(
            request.user,
            limit=params["limit"],
            offset=params["offset"],
        )
        return page_response(page)


class PendingTransfersView(APIView):
    """Unclaimed transfers sent by the current employee, newest first."""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="list_pending_transfers",
        summary="List own escrowed transfers",
        responses=PendingTransferSerializer(many=True),
        tags=["Coins - Transfers"],
    )
    def get(self, request):
        transfers = PendingTransferService.list_pending_for_sender(request.user)
        return Response(PendingTransferSerializer(transfers, many=True).data)


class CancelPendingTransferView(APIView):
    """
    Cancel an unclaimed transfer and refund the sender.

    POST /api/v1/coins/transfers/{transfer_id}/cancel/
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="cancel_pending_transfer",
        summary="Cancel an escrowed transfer",
        request=None,
        responses={
            200: LedgerTransactionSerializer,
            403: OpenApiResponse(description="Not the sender"),
            404: OpenApiResponse(description="Transfer not found or already claimed"),
        },
        tags=["Coins - Transfers"],
    )
    def post(self, request, transfer_id):
        result = PendingTransferService.cancel_pending_transfer(transfer_id, request.user)
        if not result:
            return failure_response(result)
        return Response(LedgerTransactionSerializer(result.data).data)


# =============================================================================
# Manager Views
# =============================================================================


class ManagerAllotmentView(APIView):
    """
    The current manager's budget.

    GET /api/v1/coins/manager/allotment/

    Returns:
        {"balance", "usedThisPeriod", "recurringBudget", "remaining",
         "periodStart", "periodEnd"}
    """

    permission_classes = [IsAuthenticated, IsManager]

    @extend_schema(
        operation_id="get_manager_allotment",
        summary="Get own allotment",
        tags=["Coins - Manager"],
    )
    def get(self, request):
        result = AllotmentService.get_current_allotment(request.user)
        if not result:
            return failure_response(result)
        return Response(result.data.to_dict())


class ManagerAwardView(APIView):
    """
    Award coins from the manager's allotment.

    POST /api/v1/coins/manager/award/

    Request body:
        {"recipient_email": "ana@example.com", "amount": 20, "description": "Great demo"}
    """

    permission_classes = [IsAuthenticated, IsManager]

    @extend_schema(
        operation_id="award_coins",
        summary="Award coins",
        request=AwardSerializer,
        responses={
            201: LedgerTransactionSerializer,
            400: OpenApiResponse(description="Award rejected"),
        },
        tags=["Coins - Manager"],
    )
    def post(self, request):
        serializer = AwardSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = AllotmentService.award_coins(
            manager=request.user,
            recipient_email=data["recipient_email"],
            amount=data["amount"],
            description=data.get("description", ""),
        )
        if not result:
            return failure_response(result)

        # The caller owns the budget, so remaining may be shown here
        outcome = result.data
        payload = LedgerTransactionSerializer(outcome.award_transaction).data
        payload["remaining_budget"] = float(outcome.remaining)
        return Response(payload, status=status.HTTP_201_CREATED)


class ManagerHistoryView(APIView):
    """Awards given by the current manager, newest first."""

    permission_classes = [IsAuthenticated, IsManager]

    @extend_schema(
        operation_id="list_manager_awards",
        summary="List awards given",
        parameters=[TransactionHistoryQuerySerializer],
        tags=["Coins - Manager"],
    )
    def get(self, request):
        params = history_params(request)
        page = AllotmentService.get_award_history(
            request.user,
            limit=params["limit"],
            offset=params["offset"],
        )
        return page_response(page)


# =============================================================================
# Admin Views
# =============================================================================


class AllotmentDepositView(APIView):
    """
    Deposit into (or deduct from) a manager's allotment.

    POST /api/v1/coins/admin/allotments/{manager_id}/deposit/
    """

    permission_classes = [IsAuthenticated, IsLedgerAdmin]

    @extend_schema(
        operation_id="deposit_allotment",
        summary="Deposit allotment",
        request=AllotmentDepositSerializer,
        responses={201: LedgerTransactionSerializer},
        tags=["Coins - Admin"],
    )
    def post(self, request, manager_id):
        manager = get_object_or_404(Employee, pk=manager_id)
        serializer = AllotmentDepositSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = AllotmentService.deposit_allotment(
            manager,
            data["amount"],
            description=data.get("description", ""),
            admin=request.user,
        )
        if not result:
            return failure_response(result)
        return Response(LedgerTransactionSerializer(result.data).data, status=status.HTTP_201_CREATED)


class RecurringBudgetView(APIView):
    """
    Set a manager's recurring budget.

    PUT /api/v1/coins/admin/allotments/{manager_id}/recurring/
    """

    permission_classes = [IsAuthenticated, IsLedgerAdmin]

    @extend_schema(
        operation_id="set_recurring_budget",
        summary="Set recurring budget",
        request=RecurringBudgetSerializer,
        responses={200: AllotmentPolicySerializer},
        tags=["Coins - Admin"],
    )
    def put(self, request, manager_id):
        manager = get_object_or_404(Employee, pk=manager_id)
        serializer = RecurringBudgetSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = AllotmentService.set_recurring_budget(
            manager,
            data["amount"],
            period_type=data["period_type"],
        )
        if not result:
            return failure_response(result)
        return Response(AllotmentPolicySerializer(result.data).data)


class BalanceAdjustmentView(APIView):
    """
    Apply a signed correction to an employee balance.

    POST /api/v1/coins/admin/employees/{employee_id}/adjust/

    Ledger errors (zero amount, deduction beyond the balance) are rendered
    by the API exception handler.
    """

    permission_classes = [IsAuthenticated, IsLedgerAdmin]

    @extend_schema(
        operation_id="adjust_balance",
        summary="Adjust employee balance",
        request=BalanceAdjustmentSerializer,
        responses={201: LedgerTransactionSerializer},
        tags=["Coins - Admin"],
    )
    def post(self, request, employee_id):
        employee = get_object_or_404(Employee, pk=employee_id)
        serializer = BalanceAdjustmentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        tx = ledger.adjust_balance(
            employee,
            data["amount"],
            reason=data["reason"],
            admin=request.user,
        )
        return Response(LedgerTransactionSerializer(tx).data, status=status.HTTP_201_CREATED)


class LedgerReconcileView(APIView):
    """Compare stored balances with posted transactions."""

    permission_classes = [IsAuthenticated, IsLedgerAdmin]

    @extend_schema(
        operation_id="reconcile_ledger",
        summary="Reconcile ledger",
        tags=["Coins - Admin"],
    )
    def get(self, request):
        return Response(ReportService.reconcile_ledger())


class LedgerReportView(APIView):
    """Daily report (last 24 hours) on demand."""

    permission_classes = [IsAuthenticated, IsLedgerAdmin]

    @extend_schema(
        operation_id="get_ledger_report",
        summary="Daily ledger report",
        tags=["Coins - Admin"],
    )
    def get(self, request):
        return Response(ReportService.daily_report())
