"""
Employee provisioning service.

The sign-in flow hands an authenticated email to provision(), which
resolves (or creates) the Employee, guarantees the coin account exists,
and converts any escrowed pending transfers into real credits.

Usage:
    from employees.services import EmployeeService

    result = EmployeeService.provision("new@example.com", name="New Hire")
    employee = result.data.employee
    claimed = result.data.claimed  # list of claimed transfer summaries
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from django.db import IntegrityError, transaction

from core.services import BaseService, ServiceResult
from employees.managers import normalize_employee_email
from employees.models import Employee

if TYPE_CHECKING:
    from typing import Any


@dataclass
class ProvisionResult:
    """
    Outcome of provisioning an employee.

    Attributes:
        employee: The resolved or newly created Employee
        created: True if the record was created by this call
        claimed: Summaries of pending transfers credited during this call
    """

    employee: Employee
    created: bool = False
    claimed: list[dict[str, Any]] = field(default_factory=list)


class EmployeeService(BaseService):
    """Identity-side operations the ledger depends on."""

    @classmethod
    def provision(cls, email: str, name: str = "") -> ServiceResult[ProvisionResult]:
        """
        Resolve or create the employee for an authenticated email.

        Safe to call on every sign-in: an existing employee is returned
        unchanged (apart from a missing name being filled in) and the
        claim process skips transfers that were already claimed.

        Args:
            email: Authenticated email address
            name: Display name from the identity provider

        Returns:
            ServiceResult with ProvisionResult, or failure for a blank email
        """
        from coins.ledger.services import ledger
        from coins.services.pending_transfer_service import PendingTransferService
        from coins.state_machines import AccountType

        normalized = normalize_employee_email(email)
        if not normalized:
            return ServiceResult.failure(
                "Email is required",
                error_code="VALIDATION_ERROR",
                errors={"email": ["This field is required."]},
            )

        created = False
        employee = Employee.objects.get_by_email(normalized)
        if employee is None:
            try:
                with transaction.atomic():
                    employee = Employee.objects.create_user(email=normalized, name=name)
                created = True
            except IntegrityError:
                # Concurrent sign-in created the same employee
                employee = Employee.objects.get(email=normalized)
        elif name and not employee.name:
            employee.name = name
            employee.save(update_fields=["name", "updated_at"])

        ledger.get_or_create_account(employee, AccountType.EMPLOYEE)

        claimed = PendingTransferService.claim_pending_transfers(employee)

        cls.get_logger().info(
            "Employee provisioned",
            extra={
                "employee_id": employee.pk,
                "created": created,
                "claimed_count": len(claimed),
            },
        )
        return ServiceResult.success(
            ProvisionResult(employee=employee, created=created, claimed=claimed)
        )
