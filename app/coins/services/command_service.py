"""
Command surface consumed by the chat integration.

Each command returns a CommandResult; the chat layer renders it into a
card or a private message. Messages are safe for shared channels: exact
balances and remaining budgets only ever appear in `data`, and the
presentation layer decides who may see it.

Usage:
    from coins.services import CommandService

    result = CommandService.dispatch("/transfer", "alice@example.com", "@bob 30 Lunch")
    result.to_dict()
    # {"success": True, "message": "Transfer completed successfully",
    #  "data": {...}, "transactionId": "..."}
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from django.conf import settings

from core.services import BaseService

from coins.ledger.services import ledger
from coins.ledger.types import to_number
from coins.services.allotment_service import INSUFFICIENT_BUDGET_MESSAGE, AllotmentService
from coins.services.transfer_service import (
    INSUFFICIENT_BALANCE_MESSAGE,
    NOT_REGISTERED_MESSAGE,
    SELF_TRANSFER_MESSAGE,
    TransferService,
)
from coins.state_machines import AccountType
from employees.models import Employee

if TYPE_CHECKING:
    from typing import Any

ARGUMENT_PATTERN = re.compile(r"^@?(\S+)\s+(\d+(?:\.\d+)?)(?:\s+(.*))?$")
COMMAND_PREFIX = re.compile(r"^/?(?:transfer|award)\s+", re.IGNORECASE)

NOT_A_MANAGER_MESSAGE = "Only managers can use the /award command."
SELF_AWARD_MESSAGE = "You cannot award coins to yourself."


@dataclass
class CommandResult:
    """
    Result of a chat command.

    Attributes:
        success: Whether the command did what was asked
        message: Text safe to show in any channel
        data: Structured details (may be private to the caller)
        transaction_id: The caller's ledger transaction, if one was posted
    """

    success: bool
    message: str
    data: dict[str, Any] | None = None
    transaction_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"success": self.success, "message": self.message}
        if self.data is not None:
            result["data"] = self.data
        if self.transaction_id:
            result["transactionId"] = self.transaction_id
        return result


class CommandService(BaseService):
    """Balance, award and transfer commands keyed by employee email."""

    @classmethod
    def dispatch(cls, command: str, user_email: str, text: str = "") -> CommandResult:
        """Route a slash command and its raw argument text."""
        name = (command or "").strip().lstrip("/").lower()

        if name == "balance":
            return cls.execute_balance(user_email)

        if name in ("award", "transfer"):
            parsed = cls.parse_arguments(text)
            if parsed is None:
                return CommandResult(
                    success=False,
                    message=f"Usage: /{name} @email amount [message]",
                )
            target, amount, remainder = parsed
            if name == "award":
                return cls.execute_award(user_email, target, amount, remainder)
            return cls.execute_transfer(user_email, target, amount, remainder)

        return CommandResult(success=False, message=f"Unknown command: /{name}")

    @staticmethod
    def parse_arguments(text: str) -> tuple[str, str, str] | None:
        """
        Split "@target amount message" into its parts.

        The amount is returned as the matched string so that no float
        conversion happens before the ledger validates it.
        """
        cleaned = COMMAND_PREFIX.sub("", (text or "").strip()).strip()
        match = ARGUMENT_PATTERN.match(cleaned)
        if not match:
            return None
        return match.group(1), match.group(2), (match.group(3) or "").strip()

    @classmethod
    def execute_balance(cls, email: str) -> CommandResult:
        employee = Employee.objects.get_by_email(email)
        if employee is None:
            return CommandResult(
                success=False,
                message=f"{NOT_REGISTERED_MESSAGE} Please sign in at the web app first.",
            )

        account = ledger.get_account_for(employee, AccountType.EMPLOYEE)
        if account is None:
            return CommandResult(
                success=False,
                message="Your account is not set up. Please sign in at the web app first.",
            )

        balance = ledger.get_account_balance(account.id, include_pending=True)
        return CommandResult(
            success=True,
            message="Balance retrieved successfully",
            data=balance.to_dict(),
        )

    @classmethod
    def execute_award(
        cls,
        manager_email: str,
        target_email: str,
        amount: Any,
        description: str = "",
    ) -> CommandResult:
        manager = Employee.objects.get_by_email(manager_email)
        if manager is None:
            return CommandResult(success=False, message=NOT_REGISTERED_MESSAGE)
        if not manager.is_manager:
            return CommandResult(success=False, message=NOT_A_MANAGER_MESSAGE)

        target_email = cls.resolve_target(target_email)
        result = AllotmentService.award_coins(manager, target_email, amount, description)
        if not result:
            messages = {
                "NOT_A_MANAGER": NOT_A_MANAGER_MESSAGE,
                "RECIPIENT_NOT_FOUND": f'Employee "{target_email}" is not registered in Guincoin.',
                "SELF_AWARD": SELF_AWARD_MESSAGE,
                "INSUFFICIENT_BUDGET": INSUFFICIENT_BUDGET_MESSAGE,
            }
            return CommandResult(
                success=False,
                message=messages.get(result.error_code, result.error),
            )

        outcome = result.data
        return CommandResult(
            success=True,
            message="Award sent successfully",
            data={
                "recipientName": outcome.recipient.display_name,
                "amount": to_number(outcome.award_transaction.amount),
                "description": outcome.award_transaction.description,
                "remainingBudget": to_number(outcome.remaining),
            },
            transaction_id=str(outcome.award_transaction.id),
        )

    @classmethod
    def execute_transfer(
        cls,
        sender_email: str,
        target_email: str,
        amount: Any,
        message: str = "",
    ) -> CommandResult:
        sender = Employee.objects.get_by_email(sender_email)
        if sender is None:
            return CommandResult(success=False, message=NOT_REGISTERED_MESSAGE)

        target_email = cls.resolve_target(target_email)
        result = TransferService.send_transfer(sender, target_email, amount, message)
        if not result:
            messages = {
                "SENDER_NOT_FOUND": NOT_REGISTERED_MESSAGE,
                "SELF_TRANSFER": SELF_TRANSFER_MESSAGE,
                "INSUFFICIENT_BALANCE": INSUFFICIENT_BALANCE_MESSAGE,
                "RECIPIENT_NOT_FOUND": "Recipient email must be from your organization.",
            }
            return CommandResult(
                success=False,
                message=messages.get(result.error_code, result.error),
            )

        outcome = result.data
        return CommandResult(
            success=True,
            message="Transfer pending" if outcome.is_pending else "Transfer completed successfully",
            data={
                "recipientName": outcome.recipient_name,
                "amount": to_number(outcome.sender_transaction.amount),
                "message": message,
                "isPending": outcome.is_pending,
            },
            transaction_id=str(outcome.sender_transaction.id),
        )

    @staticmethod
    def resolve_target(target: str) -> str:
        """Expand a bare handle ("bob") to an address in the workspace domain."""
        target = (target or "").strip().lstrip("@")
        domain = (getattr(settings, "GUINCOIN_WORKSPACE_DOMAIN", "") or "").strip().lstrip("@")
        if "@" not in target and domain:
            return f"{target}@{domain}"
        return target
