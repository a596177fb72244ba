"""Request logging middleware and client address lookup.

``get_client_ip`` is also what the audit subsystem records as an event's
source address, so request logs and audit rows agree on who called.
"""

import ipaddress
import time
from typing import Any

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from stationtrack.core.constants import FALLBACK_SOURCE_ADDRESS


logger = structlog.get_logger()

QUIET_PATHS = ("/health/live", "/health/ready", "/docs", "/redoc", "/openapi.json")


def is_ip_address(value: str) -> bool:
    try:
        ipaddress.ip_address(value)
    except ValueError:
        return False
    return True


def get_client_ip(request: Request) -> str:
    """Extract the caller's network origin from a request.

    Precedence: first entry of X-Forwarded-For, then the transport peer
    address, then ``0.0.0.0``. The forwarded entry is client-controlled
    and is only used when it parses as an IP address.

    Args:
        request: The incoming request

    Returns:
        The client address, never empty
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if is_ip_address(first):
            return first

    if request.client and request.client.host:
        return request.client.host

    return FALLBACK_SOURCE_ADDRESS


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs one ``request_started`` and one ``request_completed`` per request.

    The completion level follows the status code: error for 5xx, warning
    for 4xx, info otherwise. Health and docs paths are not logged.
    """

    def __init__(self, app: Any, exclude_paths: list[str] | None = None) -> None:
        super().__init__(app)
        self.exclude_paths = tuple(exclude_paths or QUIET_PATHS)

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        if request.url.path.startswith(self.exclude_paths):
            return await call_next(request)

        start = time.perf_counter()
        log = logger.bind(method=request.method, path=request.url.path)

        log.info(
            "request_started",
            client_ip=get_client_ip(request),
            query=request.url.query or None,
        )

        try:
            response = await call_next(request)
        except Exception as exc:
            log.exception("request_failed", duration_ms=_elapsed_ms(start), error=str(exc))
            raise

        user_id = getattr(request.state, "user_id", None)
        fields: dict[str, Any] = {
            "status_code": response.status_code,
            "duration_ms": _elapsed_ms(start),
            "user_id": str(user_id) if user_id else None,
        }

        if response.status_code >= 500:
            log.error("request_completed", **fields)
        elif response.status_code >= 400:
            log.warning("request_completed", **fields)
        else:
            log.info("request_completed", **fields)

        return response
