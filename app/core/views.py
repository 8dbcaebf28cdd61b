"""
Core views providing infrastructure endpoints and API error rendering.

This module contains views that are not part of the business domain but are
essential for application infrastructure, plus the DRF exception handler
that turns core.exceptions errors raised by services into HTTP responses.
"""

import logging

from django.db import connection
from django.http import JsonResponse
from rest_framework.response import Response
from rest_framework.views import exception_handler

from core.exceptions import BaseApplicationError

logger = logging.getLogger(__name__)


def health_check(request):
    """
    Health check endpoint for monitoring and orchestration.

    Returns:
        JsonResponse with status and component health:
        - status: "healthy" or "unhealthy"
        - database: "connected" or "disconnected"
        - cache: "connected" or "disconnected"

    HTTP Status Codes:
        200: All systems operational
        503: Database unreachable
    """
    health_status = {
        "status": "healthy",
        "database": "unknown",
        "cache": "unknown",
    }
    is_healthy = True

    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
        health_status["database"] = "connected"
    except Exception:
        logger.exception("Health check could not reach the database")
        health_status["database"] = "disconnected"
        health_status["status"] = "unhealthy"
        is_healthy = False

    try:
        from django.core.cache import cache

        cache.set("health_check", "ok", timeout=1)
        if cache.get("health_check") == "ok":
            health_status["cache"] = "connected"
        else:
            health_status["cache"] = "disconnected"
    except Exception:
        # Cache failure degrades but does not fail the check
        health_status["cache"] = "disconnected"

    status_code = 200 if is_healthy else 503

    return JsonResponse(health_status, status=status_code)


def api_exception_handler(exc, context):
    """
    DRF exception handler aware of application errors.

    Application errors are rendered as {"error", "error_code", "details"}
    with the status carried by the exception class. Everything else falls
    through to DRF's default handler (and unknown exceptions propagate).
    """
    if isinstance(exc, BaseApplicationError):
        view = context.get("view")
        logger.info(
            f"{exc.__class__.__name__} in {view.__class__.__name__ if view else 'view'}: "
            f"{exc.error_code} - {exc.message}"
        )
        return Response(exc.to_dict(), status=exc.http_status)
    return exception_handler(exc, context)
