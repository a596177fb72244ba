"""Pydantic schemas for station operations."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from stationtrack.core.constants import MAX_DEVICE_ID_LENGTH, MAX_NAME_LENGTH


class StationCreate(BaseModel):
    """Schema for registering a station."""

    name: str = Field(..., min_length=1, max_length=MAX_NAME_LENGTH)
    location: str | None = Field(None, max_length=MAX_NAME_LENGTH)
    device_id: str = Field(..., min_length=1, max_length=MAX_DEVICE_ID_LENGTH)


class StationUpdate(BaseModel):
    """Schema for updating a station. Only provided fields change."""

    name: str | None = Field(None, min_length=1, max_length=MAX_NAME_LENGTH)
    location: str | None = Field(None, max_length=MAX_NAME_LENGTH)
    status: Literal["active", "inactive"] | None = None


class StationResponse(BaseModel):
    """Schema for station response data."""

    id: UUID
    name: str
    location: str | None = None
    device_id: str
    status: str
    created_by: UUID | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class StationData(BaseModel):
    station: StationResponse


class StationEnvelope(BaseModel):
    """Response envelope: ``{"success": true, "data": {"station": {...}}}``."""

    success: bool = True
    message: str | None = None
    data: StationData


class MessageResponse(BaseModel):
    success: bool = True
    message: str
