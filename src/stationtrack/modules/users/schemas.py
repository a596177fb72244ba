"""Pydantic schemas for user operations."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from stationtrack.core.constants import MAX_NAME_LENGTH


class UserUpdate(BaseModel):
    """Schema for updating a staff account."""

    first_name: str | None = Field(None, min_length=1, max_length=MAX_NAME_LENGTH)
    last_name: str | None = Field(None, min_length=1, max_length=MAX_NAME_LENGTH)
    status: Literal["active", "inactive"] | None = None


class UserResponse(BaseModel):
    """Schema for user response data."""

    id: UUID
    first_name: str
    last_name: str
    username: str
    status: str
    role_id: UUID | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UserData(BaseModel):
    user: UserResponse


class UserEnvelope(BaseModel):
    """Response envelope: ``{"success": true, "data": {"user": {...}}}``."""

    success: bool = True
    message: str | None = None
    data: UserData
