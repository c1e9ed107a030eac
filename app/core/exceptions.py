"""
Base exception classes for application-wide error handling.

Exception Hierarchy:
    BaseApplicationError (base)
    ├── ValidationError - Input validation failures
    ├── NotFoundError - Resource not found
    ├── PermissionDeniedError - Authorization failures
    └── ConflictError - State conflicts (already posted, concurrent modification)

Usage:
    from core.exceptions import ValidationError, NotFoundError

    raise ValidationError("Amount must be positive", error_code="INVALID_AMOUNT")

    try:
        ...
    except BaseApplicationError as e:
        return Response(e.to_dict(), status=e.http_status)

The DRF view layer routes every exception through api_exception_handler
(configured as REST_FRAMEWORK["EXCEPTION_HANDLER"]) so that unexpected
errors never leak internals to API clients.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

if TYPE_CHECKING:
    from typing import Any

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "An unexpected error occurred"


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Attributes:
        message: Human-readable error description (safe to show users)
        error_code: Machine-readable code for client-side handling
        details: Additional error context, logged but only exposed
            through to_dict() when the caller decides to
        http_status: Status code used by the API exception handler
    """

    default_error_code: str = "APPLICATION_ERROR"
    http_status: int = status.HTTP_400_BAD_REQUEST

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to dictionary for API response.

        Example:
            {
                "error": "Account not found",
                "error_code": "ACCOUNT_NOT_FOUND",
                "details": {"account_id": "..."}
            }
        """
        result: dict[str, Any] = {
            "error": self.message,
            "error_code": self.error_code,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        """Return string representation with error code."""
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class ValidationError(BaseApplicationError):
    """
    Raised when input validation fails.

    Use for malformed amounts, missing fields, and other service-layer
    validation. DRF serializer validation stays in the serializers.
    """

    default_error_code: str = "VALIDATION_ERROR"


class NotFoundError(BaseApplicationError):
    """Raised when a requested resource is not found."""

    default_error_code: str = "NOT_FOUND"
    http_status: int = status.HTTP_404_NOT_FOUND


class PermissionDeniedError(BaseApplicationError):
    """
    Raised when the caller lacks permission for an operation.

    Example:
        if not employee.is_manager:
            raise PermissionDeniedError(
                "Only managers can award coins",
                error_code="NOT_A_MANAGER",
            )
    """

    default_error_code: str = "PERMISSION_DENIED"
    http_status: int = status.HTTP_403_FORBIDDEN


class ConflictError(BaseApplicationError):
    """
    Raised when an operation conflicts with current resource state.

    Use for invalid state transitions (posting an already-posted
    transaction) and concurrent modification conflicts.
    """

    default_error_code: str = "CONFLICT"
    http_status: int = status.HTTP_409_CONFLICT


def api_exception_handler(exc: Exception, context: dict) -> Response:
    """
    DRF exception handler that never leaks internal failure reasons.

    - DRF's own exceptions (authentication, validation, 404) keep their
      standard rendering.
    - BaseApplicationError renders its public message and code, without
      details (details may carry balances or internal identifiers).
    - Anything else is logged with traceback and rendered as an opaque
      500 response.
    """
    response = exception_handler(exc, context)
    if response is not None:
        return response

    view = context.get("view")
    view_name = view.__class__.__name__ if view is not None else None

    if isinstance(exc, BaseApplicationError):
        logger.warning(
            f"Application error in API request: {exc}",
            extra={"view": view_name, "error_code": exc.error_code},
        )
        return Response(
            {"error": exc.message, "error_code": exc.error_code},
            status=exc.http_status,
        )

    logger.exception(
        "Unhandled error in API request",
        extra={"view": view_name},
    )
    return Response(
        {"error": GENERIC_ERROR_MESSAGE, "error_code": "INTERNAL_ERROR"},
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
