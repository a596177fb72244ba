"""Station database model."""

from uuid import UUID

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from stationtrack.core.constants import (
    MAX_DEVICE_ID_LENGTH,
    MAX_NAME_LENGTH,
    MAX_STATUS_LENGTH,
)
from stationtrack.core.database.base import Base, TimestampMixin, UUIDMixin


class Station(Base, UUIDMixin, TimestampMixin):
    """A physical station whose backups are tracked.

    Attributes:
        name: Display name
        location: Free-form site description
        device_id: Hardware identifier, unique per station
        status: ``active`` or ``inactive``
        created_by: User who registered the station
    """

    __tablename__ = "stations"

    name: Mapped[str] = mapped_column(
        String(MAX_NAME_LENGTH),
        nullable=False,
    )
    location: Mapped[str | None] = mapped_column(
        String(MAX_NAME_LENGTH),
        nullable=True,
    )
    device_id: Mapped[str] = mapped_column(
        String(MAX_DEVICE_ID_LENGTH),
        nullable=False,
        unique=True,
    )
    status: Mapped[str] = mapped_column(
        String(MAX_STATUS_LENGTH),
        default="active",
        nullable=False,
    )
    created_by: Mapped[UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    def __repr__(self) -> str:
        return f"<Station(id={self.id}, name={self.name})>"
