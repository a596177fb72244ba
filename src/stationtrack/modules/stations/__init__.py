"""Stations module: physical stations whose backups are tracked."""

from fastapi import APIRouter

from stationtrack.core.audit import AuditedRoute


# Mutations on this router are audited by route interception
router = APIRouter(prefix="/stations", tags=["stations"], route_class=AuditedRoute)

# Import routes to register them (must be after router is defined)
from stationtrack.modules.stations import routes  # noqa: F401, E402


# Module metadata
__module__ = {
    "name": "stations",
    "version": "1.0.0",
    "description": "Station registry",
    "dependencies": ["users"],
}
