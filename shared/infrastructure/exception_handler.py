"""DRF exception handler rendering every failure as an ``{"error": ...}`` envelope."""

from __future__ import annotations

from typing import Any

import structlog
from rest_framework import status  # type: ignore
from rest_framework.exceptions import ValidationError as DRFValidationError  # type: ignore
from rest_framework.response import Response  # type: ignore
from rest_framework.views import exception_handler as drf_exception_handler  # type: ignore

from shared.domain.errors import EngineError

logger = structlog.get_logger(__name__)


def _envelope(code: str, message: str, details: Any = None, retryable: bool = False) -> dict[str, Any]:
    return {
        "error": {
            "code": code,
            "message": message,
            "details": details or {},
            "retryable": retryable,
        }
    }


def engine_exception_handler(exc, context):  # type: ignore
    if isinstance(exc, EngineError):
        view = context.get("view")
        logger.info(
            "api.engine_error",
            code=exc.code,
            status=exc.status_code,
            view=type(view).__name__ if view else None,
        )
        return Response(exc.to_dict(), status=exc.status_code)

    response = drf_exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, DRFValidationError):
        response.data = _envelope("VALIDATION_ERROR", "Request validation failed", {"fields": response.data})
        return response

    detail = response.data.get("detail", "") if isinstance(response.data, dict) else response.data
    code = getattr(exc, "default_code", "http_error")
    if response.status_code == status.HTTP_404_NOT_FOUND:
        code = "NOT_FOUND"
    response.data = _envelope(str(code).upper(), str(detail))
    return response
