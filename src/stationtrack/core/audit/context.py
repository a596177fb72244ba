"""Per-request audit context.

The principal middleware stores who is acting and from where in a
ContextVar, so business services that never see the request object can
still record audit events for the current actor.
"""

from contextvars import ContextVar
from dataclasses import dataclass
from uuid import UUID


@dataclass(frozen=True)
class AuditContext:
    """Request-level information attached to audit events.

    Attributes:
        actor_id: Authenticated principal, None for anonymous requests
        source_address: Caller's network origin
        request_id: Correlation ID for request tracing
    """

    actor_id: UUID | None = None
    source_address: str | None = None
    request_id: str | None = None


# Each async task/request gets its own isolated context
_audit_context: ContextVar[AuditContext | None] = ContextVar(
    "audit_context", default=None
)


def set_audit_context(
    actor_id: UUID | None = None,
    source_address: str | None = None,
    request_id: str | None = None,
) -> None:
    """Replace the audit context for the current request."""
    _audit_context.set(
        AuditContext(
            actor_id=actor_id,
            source_address=source_address,
            request_id=request_id,
        )
    )


def clear_audit_context() -> None:
    """Clear the audit context after request completes."""
    _audit_context.set(None)


def get_audit_context() -> AuditContext:
    """Get the current audit context, empty if none was set."""
    return _audit_context.get() or AuditContext()
