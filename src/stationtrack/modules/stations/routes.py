"""Station API routes.

Mutating endpoints carry an ``audited`` marker; the module router's
``AuditedRoute`` records them after a successful response. The handlers
themselves know nothing about auditing. Each one commits before
returning, so the queued audit write only ever follows a committed change.
"""

from uuid import UUID

from fastapi import Depends, status

from stationtrack.api.dependencies import DBSession
from stationtrack.core.audit import AuditAction, TargetType, audited
from stationtrack.core.auth import CurrentUser, require_roles
from stationtrack.core.constants import ADMIN_ROLE, TECHNICIAN_ROLE
from stationtrack.core.errors import ConflictError, NotFoundError
from stationtrack.modules.stations import router
from stationtrack.modules.stations.models import Station
from stationtrack.modules.stations.repos import StationRepo
from stationtrack.modules.stations.schemas import (
    MessageResponse,
    StationCreate,
    StationData,
    StationEnvelope,
    StationResponse,
    StationUpdate,
)


station_staff = [Depends(require_roles(ADMIN_ROLE, TECHNICIAN_ROLE))]


def _envelope(station: Station, message: str | None = None) -> StationEnvelope:
    return StationEnvelope(
        message=message,
        data=StationData(station=StationResponse.model_validate(station)),
    )


async def _get_or_404(repo: StationRepo, station_id: UUID) -> Station:
    station = await repo.get_by_id(station_id)
    if station is None:
        raise NotFoundError(
            "Station not found", resource="station", resource_id=str(station_id)
        )
    return station


@router.post(
    "",
    response_model=StationEnvelope,
    status_code=status.HTTP_201_CREATED,
    summary="Register station",
    description="Register a new station.",
    dependencies=station_staff,
)
@audited(AuditAction.STATION_CREATED, TargetType.STATION)
async def create_station(
    data: StationCreate,
    repo: StationRepo,
    db: DBSession,
    current_user: CurrentUser,
) -> StationEnvelope:
    """Register a station. The new id is picked up from ``data.station.id``."""
    if await repo.get_by_device_id(data.device_id):
        raise ConflictError(
            "Device already registered", details={"device_id": data.device_id}
        )

    station = await repo.create(Station(**data.model_dump(), created_by=current_user.id))
    await db.commit()
    return _envelope(station, "Station created successfully")


@router.get(
    "/{station_id}",
    response_model=StationEnvelope,
    summary="Get station",
    dependencies=station_staff,
)
async def get_station(station_id: UUID, repo: StationRepo) -> StationEnvelope:
    """Get station by ID."""
    return _envelope(await _get_or_404(repo, station_id))


@router.put(
    "/{station_id}",
    response_model=StationEnvelope,
    summary="Update station",
    dependencies=station_staff,
)
@audited(AuditAction.STATION_UPDATED, TargetType.STATION)
async def update_station(
    station_id: UUID,
    data: StationUpdate,
    repo: StationRepo,
    db: DBSession,
) -> StationEnvelope:
    """Update station by ID."""
    station = await _get_or_404(repo, station_id)
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(station, field, value)
    station = await repo.update(station)
    await db.commit()
    return _envelope(station, "Station updated successfully")


@router.delete(
    "/{station_id}",
    response_model=MessageResponse,
    summary="Delete station",
    dependencies=[Depends(require_roles(ADMIN_ROLE))],
)
@audited(AuditAction.STATION_DELETED, TargetType.STATION)
async def delete_station(
    station_id: UUID, repo: StationRepo, db: DBSession
) -> MessageResponse:
    """Delete station by ID."""
    station = await _get_or_404(repo, station_id)
    await repo.delete(station)
    await db.commit()
    return MessageResponse(message="Station deleted successfully")
