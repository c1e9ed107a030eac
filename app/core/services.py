"""
Base service layer patterns for business logic encapsulation.

This module provides the building blocks shared by every service:
- ServiceResult: Result wrapper for expected (domain) failures
- BaseService: Base class with logging and transaction helpers

Pattern Comparison:
    - ServiceResult: Use for expected failures (bad amount, budget exceeded,
      recipient not found). These are returned as values.
    - Exceptions: Use for unexpected failures (database unavailable, bugs).
      These propagate to the API exception handler or the Celery retry.

Usage:
    from core.services import BaseService, ServiceResult

    class AllotmentService(BaseService):
        @classmethod
        def deposit(cls, manager, amount) -> ServiceResult[LedgerTransaction]:
            if amount == 0:
                return ServiceResult.failure(
                    "Amount must not be zero",
                    error_code="INVALID_AMOUNT",
                )

            with cls.atomic():
                tx = ledger.record_posted(...)

            cls.get_logger().info("Deposited allotment", extra={...})
            return ServiceResult.success(tx)

    # In a view
    result = AllotmentService.deposit(manager, amount)
    if result.success:
        return Response(TransactionSerializer(result.data).data, status=201)
    return Response(result.to_response(), status=400)
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Generic, TypeVar

from django.db import transaction

if TYPE_CHECKING:
    from collections.abc import Generator
    from typing import Any

T = TypeVar("T")


@dataclass
class ServiceResult(Generic[T]):
    """
    Standard result wrapper for service operations.

    Attributes:
        success: Whether the operation succeeded
        data: Result data if successful (None if failed)
        error: User-facing error message if failed
        error_code: Machine-readable error code for client handling
        errors: Field-level errors for validation failures

    Usage:
        result = TransferService.send_transfer(sender, "bob@example.com", amount)
        if result:
            outcome = result.data
        else:
            logger.warning(result.error, extra={"code": result.error_code})

    Note:
        The error message is shown to end users. Never put balances,
        budgets or internal conflict reasons into it.
    """

    success: bool
    data: T | None = None
    error: str | None = None
    error_code: str | None = None
    errors: dict[str, list[str]] | None = field(default=None)

    @classmethod
    def success(cls, data: T) -> ServiceResult[T]:
        """
        Create a successful result.

        Args:
            data: The result data

        Returns:
            ServiceResult with success=True and data set
        """
        return cls(success=True, data=data)

    @classmethod
    def failure(
        cls,
        error: str,
        error_code: str | None = None,
        errors: dict[str, list[str]] | None = None,
    ) -> ServiceResult[T]:
        """
        Create a failed result.

        Args:
            error: Human-readable error message
            error_code: Machine-readable error code for client handling
            errors: Field-level errors (for validation failures)

        Example:
            return ServiceResult.failure(
                "Insufficient budget for this amount",
                error_code="INSUFFICIENT_BUDGET",
            )
        """
        return cls(
            success=False,
            error=error,
            error_code=error_code,
            errors=errors,
        )

    @classmethod
    def from_exception(cls, exc: Exception, error_code: str | None = None) -> ServiceResult[T]:
        """
        Create a failed result from an application exception.

        Uses the exception's public message when it has one
        (BaseApplicationError.message), never the repr.
        """
        message = getattr(exc, "message", None) or str(exc)
        return cls(
            success=False,
            error=message,
            error_code=error_code or getattr(exc, "error_code", None) or exc.__class__.__name__.upper(),
        )

    def to_response(self) -> dict[str, Any]:
        """
        Convert to API response format.

        Returns:
            Dict with success status and data or error details
        """
        if self.success:
            return {"success": True, "data": self.data}

        response: dict[str, Any] = {
            "success": False,
            "error": self.error,
        }
        if self.error_code:
            response["error_code"] = self.error_code
        if self.errors:
            response["errors"] = self.errors
        return response

    def __bool__(self) -> bool:
        """Allow using result in boolean context."""
        return self.success


class BaseService:
    """
    Base class for service layer classes.

    Design Notes:
        - Use @staticmethod or @classmethod (no instance state)
        - Services are stateless; all state lives in the database
        - Use ServiceResult for expected failures
        - Raise exceptions for unexpected failures
    """

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """
        Get logger for this service.

        Returns a logger named after the service class, e.g.
        ``coins.services.transfer_service.TransferService``.
        """
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    @contextmanager
    def atomic(cls) -> Generator[None, None, None]:
        """
        Execute operations in a database transaction.

        Thin wrapper around Django's transaction.atomic() that makes the
        unit-of-work boundary explicit in service code. Nested calls
        become savepoints.

        Example:
            with cls.atomic():
                sender_tx = ledger.record_posted(...)
                recipient_tx = ledger.record_posted(...)
                # Both post, or neither does
        """
        with transaction.atomic():
            yield

    @classmethod
    def handle_exception(
        cls,
        exc: Exception,
        context: str = "",
        log_level: int = logging.ERROR,
    ) -> ServiceResult:
        """
        Convert exception to ServiceResult with logging.

        Args:
            exc: The caught exception
            context: Additional context for logging
            log_level: Logging level (default ERROR)

        Returns:
            ServiceResult with error details
        """
        message = f"{context}: {exc}" if context else str(exc)
        cls.get_logger().log(log_level, message, exc_info=True)
        return ServiceResult.from_exception(exc)

