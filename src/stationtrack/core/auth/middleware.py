"""Request ID and principal middleware.

Together they establish, before any handler runs, who is calling and
under which request ID: both go into ``request.state``, the structlog
context and the audit context.
"""

import uuid
from typing import TYPE_CHECKING
from uuid import UUID

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from stationtrack.core.audit.context import clear_audit_context, set_audit_context
from stationtrack.core.auth.backend import decode_token
from stationtrack.core.logging import get_client_ip


if TYPE_CHECKING:
    from starlette.types import ASGIApp


PUBLIC_PATHS = ("/health", "/docs", "/redoc", "/openapi.json")


def principal_from_header(authorization: str | None) -> UUID | None:
    """User id from a ``Bearer`` header, or None if absent or invalid."""
    scheme, _, token = (authorization or "").partition(" ")
    if scheme != "Bearer" or not token:
        return None
    token_data = decode_token(token)
    if token_data is None or token_data.type != "access":
        return None
    return token_data.user_id


class PrincipalContextMiddleware(BaseHTTPMiddleware):
    """Expose the authenticated principal to handlers and the audit layer.

    Sets ``request.state.user_id`` when the bearer token verifies. Requests
    without one continue anonymously; route dependencies decide whether to
    reject them. The audit context is cleared when the request ends.
    """

    def __init__(self, app: "ASGIApp", exclude_paths: list[str] | None = None) -> None:
        super().__init__(app)
        self.exclude_paths = tuple(exclude_paths or PUBLIC_PATHS)

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        if request.url.path.startswith(self.exclude_paths):
            return await call_next(request)

        user_id = principal_from_header(request.headers.get("Authorization"))
        if user_id is not None:
            request.state.user_id = user_id
            structlog.contextvars.bind_contextvars(user_id=str(user_id))

        set_audit_context(
            actor_id=user_id,
            source_address=get_client_ip(request),
            request_id=getattr(request.state, "request_id", None),
        )
        try:
            return await call_next(request)
        finally:
            clear_audit_context()


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Reuse the caller's X-Request-ID or mint one, and echo it back."""

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        request.state.trace_id = request_id  # read by the error handlers

        structlog.contextvars.bind_contextvars(request_id=request_id)
        try:
            response = await call_next(request)
        finally:
            structlog.contextvars.unbind_contextvars("request_id", "user_id")

        response.headers["X-Request-ID"] = request_id
        return response
