"""Station repository for database operations."""

from typing import Annotated
from uuid import UUID

from fastapi import Depends
from sqlalchemy import select

from stationtrack.api.dependencies import DBSession
from stationtrack.modules.stations.models import Station


class StationRepository:
    """Repository for Station database operations."""

    def __init__(self, session: DBSession) -> None:
        self.session = session

    async def create(self, station: Station) -> Station:
        self.session.add(station)
        await self.session.flush()
        await self.session.refresh(station)
        return station

    async def get_by_id(self, station_id: UUID) -> Station | None:
        result = await self.session.execute(
            select(Station).where(Station.id == station_id)
        )
        return result.scalar_one_or_none()

    async def get_by_device_id(self, device_id: str) -> Station | None:
        result = await self.session.execute(
            select(Station).where(Station.device_id == device_id)
        )
        return result.scalar_one_or_none()

    async def update(self, station: Station) -> Station:
        await self.session.flush()
        await self.session.refresh(station)
        return station

    async def delete(self, station: Station) -> None:
        await self.session.delete(station)
        await self.session.flush()


# Type alias for dependency injection
StationRepo = Annotated[StationRepository, Depends(StationRepository)]
