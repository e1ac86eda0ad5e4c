"""RFC 7807 Problem Details rendering for task API errors."""
from __future__ import annotations

from http import HTTPStatus

from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .config import settings
from .domain_errors import DomainError

PROBLEM_MEDIA_TYPE = "application/problem+json"


def problem_type(code: str) -> str:
    return f"{settings.PROBLEM_TYPE_BASE_URL}/{code.lower()}"


def validation_problem(exc: RequestValidationError) -> DomainError:
    """Fold FastAPI body/path validation failures into VALIDATION_ERROR.

    Only location, message and error type are kept; pydantic's ``input`` and
    ``ctx`` may hold arbitrary client data or exception objects.
    """
    return DomainError(
        code="VALIDATION_ERROR",
        http_status=422,
        message="Request body is malformed",
        details={
            "errors": [
                {
                    "loc": [str(part) for part in error.get("loc", ())],
                    "msg": error.get("msg"),
                    "type": error.get("type"),
                }
                for error in exc.errors()
            ]
        },
    )


def internal_problem() -> DomainError:
    return DomainError(code="INTERNAL_ERROR", http_status=500, message="Internal server error")


def build_problem_details_response(exc: DomainError, *, instance: str | None = None) -> JSONResponse:
    """Render DomainError as RFC 7807 payload with stable domain code."""
    try:
        title = HTTPStatus(exc.http_status).phrase
    except ValueError:
        title = "Domain Error"

    payload: dict[str, object] = {
        "type": problem_type(exc.code),
        "title": title,
        "status": exc.http_status,
        "detail": exc.message,
        "code": exc.code,
    }
    if instance:
        payload["instance"] = instance
    if exc.details is not None:
        payload["details"] = exc.details

    return JSONResponse(
        status_code=exc.http_status,
        content=payload,
        media_type=PROBLEM_MEDIA_TYPE,
    )
