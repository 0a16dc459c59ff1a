"""Project-wide DRF exception handler.

Every error leaving the API uses the envelope the admin console and the
storefront already understand::

    {"success": false, "message": "<human readable reason>"}

Domain errors are translated by the views themselves; this handler covers
what DRF raises (validation, authentication, permission, throttling) and
failures of the backing store.  Constraint violations are permanent and
reported as 409; other store failures are reported as 503 so callers know
the request may be retried.
"""

from __future__ import annotations

from typing import Any, Optional

import structlog
from django.db import DatabaseError, IntegrityError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = structlog.get_logger(__name__)

STORE_UNAVAILABLE_MESSAGE = "Order store is temporarily unavailable. Please retry."
STORE_CONFLICT_MESSAGE = "The request conflicts with existing data."


def _first_message(detail: Any) -> str:
    """Flatten DRF error details into a single readable sentence."""
    if isinstance(detail, dict):
        for field, value in detail.items():
            message = _first_message(value)
            if field in ("detail", "non_field_errors"):
                return message
            return f"{field}: {message}"
        return ""
    if isinstance(detail, (list, tuple)):
        return _first_message(detail[0]) if detail else ""
    return str(detail)


def api_exception_handler(exc: Exception, context: dict) -> Optional[Response]:
    if isinstance(exc, IntegrityError):
        view = context.get("view")
        logger.warning(
            "store_conflict",
            view=type(view).__name__ if view else None,
            error=str(exc),
        )
        return Response(
            {"success": False, "message": STORE_CONFLICT_MESSAGE},
            status=status.HTTP_409_CONFLICT,
        )

    if isinstance(exc, DatabaseError):
        view = context.get("view")
        logger.error(
            "store_unavailable",
            view=type(view).__name__ if view else None,
            error=str(exc),
        )
        return Response(
            {"success": False, "message": STORE_UNAVAILABLE_MESSAGE},
            status=status.HTTP_503_SERVICE_UNAVAILABLE,
        )

    response = exception_handler(exc, context)
    if response is None:
        return None

    response.data = {"success": False, "message": _first_message(response.data)}
    return response
