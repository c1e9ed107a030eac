"""
Permission classes for the coin API.

- IsManager: Employee may award from an allotment
- IsLedgerAdmin: Employee may deposit allotments, adjust balances and
  read ledger reports

Both assume IsAuthenticated runs first in permission_classes.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rest_framework import permissions

if TYPE_CHECKING:
    from rest_framework.request import Request
    from rest_framework.views import APIView


class IsManager(permissions.BasePermission):
    """Allows access only to managers."""

    message = "Only managers can perform this action."

    def has_permission(self, request: Request, view: APIView) -> bool:
        return bool(getattr(request.user, "is_manager", False))


class IsLedgerAdmin(permissions.BasePermission):
    """
    Allows access only to ledger administrators.

    Superusers are always admins; everyone else needs Employee.is_admin.
    """

    message = "Only administrators can perform this action."

    def has_permission(self, request: Request, view: APIView) -> bool:
        user = request.user
        return bool(getattr(user, "is_admin", False) or getattr(user, "is_superuser", False))
