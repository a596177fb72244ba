"""RFC 7807 Problem Details exception handlers.

Every error leaving the API, whether raised by a service, by request
validation or by a bug, is rendered through ``problem_response`` so the
admin front end parses a single shape.

See: https://tools.ietf.org/html/rfc7807
"""

from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any, cast

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from stationtrack.config import settings
from stationtrack.core.errors.exceptions import AppException


if TYPE_CHECKING:
    from starlette.types import ExceptionHandler


logger = structlog.get_logger()

# Leading ``loc`` entries that only name where a parameter came from
_PARAMETER_SOURCES = frozenset({"body", "query", "path", "header"})


class FieldError(BaseModel):
    """One invalid request field, named as the client sent it."""

    field: str
    message: str
    type: str | None = None


class ProblemDetail(BaseModel):
    """RFC 7807 body.

    Attributes:
        type: URI of the error code documentation
        title: Error code in title case
        status: HTTP status code
        detail: What went wrong in this occurrence
        instance: Request path
        errors: Field errors, for validation failures
        trace_id: Request ID for log correlation
    """

    type: str
    title: str
    status: int
    detail: str
    instance: str | None = None
    errors: list[FieldError] | None = None
    trace_id: str | None = None

    model_config = {"extra": "allow"}


def problem_response(
    request: Request,
    status_code: int,
    error_code: str,
    detail: str,
    title: str | None = None,
    errors: list[FieldError] | None = None,
    extra: Mapping[str, Any] | None = None,
) -> JSONResponse:
    """Build a Problem Details response for the current request.

    Keys in ``extra`` are merged in unless they collide with a standard
    member.
    """
    content: dict[str, Any] = ProblemDetail(
        type=f"{settings.api_docs_base_url}/errors/{error_code}",
        title=title or error_code.replace("_", " ").title(),
        status=status_code,
        detail=detail,
        instance=request.url.path,
        errors=errors,
        trace_id=getattr(request.state, "trace_id", None),
    ).model_dump(exclude_none=True)

    for key, value in (extra or {}).items():
        content.setdefault(key, value)

    return JSONResponse(status_code=status_code, content=content)


def field_errors_from_details(raw: Iterable[Mapping[str, Any]]) -> list[FieldError]:
    return [
        FieldError(
            field=str(item.get("field", "unknown")),
            message=str(item.get("message", "Invalid value")),
            type=item.get("type"),
        )
        for item in raw
    ]


def field_errors_from_validation(exc: RequestValidationError) -> list[FieldError]:
    """Flatten pydantic errors, dropping the parameter source from paths.

    Query parameters keep their alias, so ``?startDate=bad`` is reported
    as ``startDate``.
    """
    errors = []
    for error in exc.errors():
        parts = [str(p) for p in error.get("loc", ()) if p not in _PARAMETER_SOURCES]
        errors.append(
            FieldError(
                field=".".join(parts) or "unknown",
                message=error.get("msg", "Invalid value"),
                type=error.get("type"),
            )
        )
    return errors


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    logger.warning(
        "app_exception",
        error_code=exc.error_code,
        message=exc.message,
        status_code=exc.status_code,
        path=request.url.path,
        details=exc.details,
    )

    extra = dict(exc.details)
    raw_errors = extra.pop("errors", None)

    return problem_response(
        request,
        exc.status_code,
        exc.error_code,
        exc.message,
        errors=field_errors_from_details(raw_errors) if raw_errors else None,
        extra=extra,
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = field_errors_from_validation(exc)
    logger.warning("validation_error", path=request.url.path, error_count=len(errors))

    return problem_response(
        request,
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "validation_error",
        "Request validation failed",
        title="Validation Error",
        errors=errors,
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Hide the cause from the client; log it with the traceback."""
    logger.exception(
        "unhandled_exception",
        path=request.url.path,
        error_type=type(exc).__name__,
    )

    return problem_response(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "internal_error",
        "An unexpected error occurred",
        title="Internal Server Error",
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI app."""
    app.add_exception_handler(
        AppException, cast("ExceptionHandler", app_exception_handler)
    )
    app.add_exception_handler(
        RequestValidationError, cast("ExceptionHandler", validation_exception_handler)
    )
    app.add_exception_handler(Exception, generic_exception_handler)
