"""Automatic audit capture for API routes.

Endpoints opt in with the ``audited`` decorator and are served by a
router whose ``route_class`` is ``AuditedRoute``:

    router = APIRouter(prefix="/stations", route_class=AuditedRoute)

    @router.post("")
    @audited(AuditAction.STATION_CREATED, TargetType.STATION)
    async def create_station(...): ...

``audited`` must sit below the router decorator so the marker exists
when the route is registered.

After a marked endpoint returns a 2xx response the route resolves the
target id, works out the caller's address and hands the event to the
recorder's queue. The response is returned without waiting for the
write, and nothing in this path can change it.
"""

from collections.abc import Callable, Coroutine, Sequence
from dataclasses import dataclass
from typing import Any, TypeVar

import structlog
from fastapi import Request, Response
from fastapi.routing import APIRoute

from stationtrack.core.audit.recorder import AuditRecorder, PendingAuditEvent
from stationtrack.core.audit.resolver import (
    ResolutionContext,
    TargetIdResolver,
    TargetResolver,
    default_resolver,
    parse_json,
)
from stationtrack.core.audit.vocabulary import (
    AuditAction,
    TargetType,
    normalize_action,
    normalize_target_type,
)
from stationtrack.core.logging import get_client_ip


log = structlog.get_logger()

F = TypeVar("F", bound=Callable[..., Any])

# Marker attribute checked by AuditedRoute
AUDIT_SPEC_ATTR = "__audit__"


@dataclass(frozen=True)
class AuditSpec:
    """How an endpoint is audited.

    Attributes:
        action: Validated action code
        target_type: Validated target type
        resolver: Optional callable that returns the target id
        path_params: Extra path parameter names holding the target id
    """

    action: str
    target_type: str
    resolver: TargetIdResolver | None = None
    path_params: tuple[str, ...] = ()


def audited(
    action: AuditAction | str,
    target_type: TargetType | str,
    resolver: TargetIdResolver | None = None,
    path_params: Sequence[str] = (),
) -> Callable[[F], F]:
    """Mark an endpoint for automatic audit capture.

    Custom codes are validated here, at import time, so a malformed code
    fails on startup rather than on the first request.

    Args:
        action: What the endpoint does
        target_type: Kind of resource it affects
        resolver: Optional callable taking a ResolutionContext and
            returning the target id; wins over every other source
        path_params: Endpoint-specific path parameters for the target id

    Returns:
        Decorator that returns the endpoint unchanged apart from the marker
    """
    spec = AuditSpec(
        action=normalize_action(action),
        target_type=normalize_target_type(target_type),
        resolver=resolver,
        path_params=tuple(path_params),
    )

    def decorator(endpoint: F) -> F:
        setattr(endpoint, AUDIT_SPEC_ATTR, spec)
        return endpoint

    return decorator


def is_success(status_code: int) -> bool:
    return 200 <= status_code < 300


class AuditedRoute(APIRoute):
    """APIRoute that audits endpoints marked with ``audited``."""

    target_resolver: TargetResolver = default_resolver

    def get_route_handler(self) -> Callable[[Request], Coroutine[Any, Any, Response]]:
        handler = super().get_route_handler()
        spec: AuditSpec | None = getattr(self.endpoint, AUDIT_SPEC_ATTR, None)
        if spec is None:
            return handler

        reads_body = self.body_field is not None

        async def audited_handler(request: Request) -> Response:
            response = await handler(request)
            await self.observe(request, response, spec, reads_body)
            return response

        return audited_handler

    async def observe(
        self,
        request: Request,
        response: Response,
        spec: AuditSpec,
        reads_body: bool,
    ) -> None:
        """Queue an audit event for a finished request, never raising."""
        if not is_success(response.status_code):
            return

        actor_id = getattr(request.state, "user_id", None)
        if actor_id is None:
            log.debug("audit_skipped_anonymous", action=spec.action)
            return

        try:
            recorder: AuditRecorder | None = getattr(
                request.app.state, "audit_recorder", None
            )
            if recorder is None:
                log.warning("audit_recorder_missing", action=spec.action)
                return

            request_body = parse_json(await request.body()) if reads_body else None
            context = ResolutionContext(
                path_params=request.path_params,
                request_body=request_body,
                response_body=getattr(response, "body", None),
                request=request,
            )
            target_id = self.target_resolver.resolve(
                context,
                custom=spec.resolver,
                extra_path_params=spec.path_params,
            )

            recorder.submit(
                PendingAuditEvent(
                    actor_id=actor_id,
                    action=spec.action,
                    target_type=spec.target_type,
                    target_id=target_id,
                    source_address=get_client_ip(request),
                )
            )
        except Exception:
            log.exception(
                "audit_interception_failed",
                action=spec.action,
                path=request.url.path,
            )
