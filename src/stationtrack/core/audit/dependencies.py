"""FastAPI dependencies for the audit recorder."""

from typing import Annotated

from fastapi import Depends, Request

from stationtrack.core.audit.recorder import AuditRecorder


def get_audit_recorder(request: Request) -> AuditRecorder:
    """Return the application's recorder (created in ``create_app``)."""
    return request.app.state.audit_recorder


Recorder = Annotated[AuditRecorder, Depends(get_audit_recorder)]
