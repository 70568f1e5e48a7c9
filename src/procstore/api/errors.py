"""Storage API error handling.

FastAPI exception handlers that answer every failure with the same envelope,
``{code, message, details, request_id}`` plus the X-Request-Id header:

- DocumentError: lifecycle failures. Validation errors carry their own code;
  incidents are logged and answered with a generic 500.
- HTTPException: Starlette HTTP exceptions, including routing 404/405
- RequestValidationError: Pydantic validation errors
- Exception: Catch-all for unhandled exceptions (fail closed, no stack traces)
"""

import logging
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException

from procstore.api.middleware.request_id import REQUEST_ID_HEADER, resolve_request_id
from procstore.services.documents.errors import DocumentError, DocumentIncident, ErrorCode

logger = logging.getLogger(__name__)

_STATUS_BY_CODE: dict[ErrorCode, int] = {
    ErrorCode.FILE_NOT_FOUND: 404,
    ErrorCode.FILES_NOT_FOUND: 404,
    ErrorCode.FILE_IS_CLOSED: 403,
}


class ErrorResponse(BaseModel):
    """Error envelope schema."""

    code: str
    message: str
    details: dict[str, Any] | None = None
    request_id: str | None = None


_CODE_BY_HTTP_STATUS: dict[int, str] = {
    400: "BAD_REQUEST",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    413: "PAYLOAD_TOO_LARGE",
    422: "UNPROCESSABLE_ENTITY",
    500: "INTERNAL_ERROR",
}


def error_code_for_status(status_code: int) -> str:
    """Envelope code for a bare HTTP status, "ERROR" when unmapped."""
    return _CODE_BY_HTTP_STATUS.get(status_code, "ERROR")


def error_response(
    request: Request,
    *,
    code: str,
    message: str,
    http_status: int,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    """Build an error envelope response.

    The request id is the one RequestIdMiddleware attached; errors raised
    outside the middleware resolve it from the header again.
    """
    request_id: str = getattr(request.state, "request_id", None) or resolve_request_id(
        request.headers.get(REQUEST_ID_HEADER)
    )
    body = ErrorResponse(code=code, message=message, details=details, request_id=request_id)

    response = JSONResponse(status_code=http_status, content=body.model_dump())
    response.headers[REQUEST_ID_HEADER] = request_id
    return response


def status_for_document_error(exc: DocumentError) -> int:
    """HTTP status for a lifecycle error; 500 for every incident."""
    if exc.is_incident:
        return 500
    return _STATUS_BY_CODE.get(exc.code, 400)


def log_incident(request_id: str | None, exc: DocumentIncident) -> None:
    """Log an incident with the context needed to investigate it."""
    logger.error(
        "Document incident: code=%s message=%s details=%s cause=%r",
        exc.code.value,
        exc.message,
        exc.details,
        exc.cause,
        extra={"request_id": request_id},
    )


async def document_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """FastAPI exception handler for DocumentError."""
    assert isinstance(exc, DocumentError)

    if isinstance(exc, DocumentIncident):
        log_incident(getattr(request.state, "request_id", None), exc)
        return error_response(
            request,
            code="INTERNAL_ERROR",
            message="An internal error occurred",
            http_status=500,
            details=None,
        )

    return error_response(
        request,
        code=exc.code.value,
        message=exc.message,
        http_status=status_for_document_error(exc),
        details=exc.details,
    )


async def http_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """FastAPI exception handler for HTTPException."""
    assert isinstance(exc, HTTPException)

    code = error_code_for_status(exc.status_code)
    message = str(exc.detail) if exc.detail else f"HTTP {exc.status_code}"

    return error_response(
        request,
        code=code,
        message=message,
        http_status=exc.status_code,
        details=None,
    )


async def request_validation_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """FastAPI exception handler for RequestValidationError.

    Reports field and message only; raw input values are not echoed back.
    """
    assert isinstance(exc, RequestValidationError)

    safe_details: list[dict[str, Any]] = []
    for error in exc.errors():
        loc = error.get("loc", ())
        safe_loc = [str(part) for part in loc if part not in ("body", "query", "path")]
        safe_details.append(
            {
                "field": ".".join(safe_loc) if safe_loc else "request",
                "message": error.get("msg", "Validation error"),
            }
        )

    return error_response(
        request,
        code="REQUEST_VALIDATION_FAILED",
        message="Request validation failed",
        http_status=422,
        details={"errors": safe_details} if safe_details else None,
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler for unhandled exceptions.

    Fails closed: returns 500 with a generic message and logs the exception.
    """
    request_id = getattr(request.state, "request_id", None)

    logger.exception(
        "Unhandled exception: %s",
        type(exc).__name__,
        extra={"request_id": request_id},
    )

    return error_response(
        request,
        code="INTERNAL_ERROR",
        message="An internal error occurred",
        http_status=500,
        details=None,
    )
