"""Unified error handling — classify failures once and render them as JSON."""

from __future__ import annotations

from dataclasses import dataclass

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from inkfolio.dao.base import InvalidCursorError
from inkfolio.services import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    OwnershipMismatchError,
    PartialConsistencyError,
    ServiceError,
    ValidationError,
)

log = structlog.get_logger(__name__)

UNAVAILABLE = (503, "Service unavailable")
INTERNAL_DETAIL = "internal error"

_CLASSES: dict[type[Exception], tuple[int, str]] = {
    NotFoundError: (404, "Not found"),
    OwnershipMismatchError: (403, "Forbidden"),
    AuthenticationError: (401, "Unauthorized"),
    ValidationError: (400, "Bad request"),
    InvalidCursorError: (400, "Bad request"),
    ConflictError: (409, "Conflict"),
    PartialConsistencyError: (503, "Partial failure"),
}


@dataclass(frozen=True)
class ErrorReport:
    status_code: int
    category: str
    detail: str

    def to_response(self) -> JSONResponse:
        return JSONResponse(
            status_code=self.status_code,
            content={"error": self.category, "detail": self.detail},
        )


def classify(exc: BaseException) -> ErrorReport:
    """Map a failure to (status, category, detail).

    The most specific registered class in the exception's MRO wins; anything
    unregistered (store failures, unexpected errors) is a 503. Only our own
    errors carry their message to the client; anything else gets a fixed
    detail so driver or library text is never echoed.
    """
    status, category = UNAVAILABLE
    for cls in type(exc).__mro__:
        if cls in _CLASSES:
            status, category = _CLASSES[cls]
            break
    if isinstance(exc, (ServiceError, InvalidCursorError)):
        detail = str(exc)
    else:
        detail = INTERNAL_DETAIL
    return ErrorReport(status_code=status, category=category, detail=detail)


async def _classified_error_handler(request: Request, exc: Exception) -> JSONResponse:
    report = classify(exc)
    if report.status_code >= 500:
        log.error(
            "request.error",
            path=request.url.path,
            category=report.category,
            error_type=type(exc).__name__,
            detail=report.detail,
            error=str(exc),
        )
    else:
        log.info("request.rejected", path=request.url.path, status_code=report.status_code)
    return report.to_response()


async def _validation_error_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    messages = []
    for err in exc.errors():
        loc = " → ".join(str(part) for part in err["loc"])
        messages.append(f"{loc}: {err['msg']}")
    return JSONResponse(
        status_code=422,
        content={"error": "Unprocessable entity", "detail": "; ".join(messages)},
    )


def register_error_handlers(app: FastAPI) -> None:
    """Register exception handlers on the app."""
    app.add_exception_handler(ServiceError, _classified_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(InvalidCursorError, _classified_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _classified_error_handler)
