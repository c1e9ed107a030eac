"""
Core views providing infrastructure endpoints.

These views are not part of the ledger domain but are needed by
deployment infrastructure (Docker health checks, load balancers).
"""

import logging

from django.db import DatabaseError, connection
from django.http import JsonResponse

logger = logging.getLogger(__name__)


def health_check(request):
    """
    Health check endpoint for monitoring and orchestration.

    Returns:
        JsonResponse with status and database connectivity.

    HTTP Status Codes:
        200: Database reachable
        503: Database unreachable

    Example Response:
        {"status": "healthy", "database": "connected"}
    """
    health_status = {
        "status": "healthy",
        "database": "unknown",
    }

    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
        health_status["database"] = "connected"
    except DatabaseError:
        logger.exception("Health check could not reach the database")
        health_status["database"] = "disconnected"
        health_status["status"] = "unhealthy"
        return JsonResponse(health_status, status=503)

    return JsonResponse(health_status, status=200)
