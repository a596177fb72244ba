"""Audit trail: recording, interception and queries.

The read API lives in ``stationtrack.core.audit.routes`` and is mounted by
the API router.
"""

from stationtrack.core.audit.context import (
    AuditContext,
    clear_audit_context,
    get_audit_context,
    set_audit_context,
)
from stationtrack.core.audit.dependencies import Recorder, get_audit_recorder
from stationtrack.core.audit.interception import AuditedRoute, AuditSpec, audited
from stationtrack.core.audit.models import AuditEvent
from stationtrack.core.audit.recorder import AuditRecorder, PendingAuditEvent
from stationtrack.core.audit.resolver import (
    ExtractionRule,
    ResolutionContext,
    TargetResolver,
)
from stationtrack.core.audit.vocabulary import (
    AuditAction,
    TargetType,
    custom_action,
    custom_target_type,
)


__all__ = [
    "AuditAction",
    "AuditContext",
    "AuditEvent",
    "AuditRecorder",
    "AuditSpec",
    "AuditedRoute",
    "ExtractionRule",
    "PendingAuditEvent",
    "Recorder",
    "ResolutionContext",
    "TargetResolver",
    "TargetType",
    "audited",
    "clear_audit_context",
    "custom_action",
    "custom_target_type",
    "get_audit_context",
    "set_audit_context",
]
