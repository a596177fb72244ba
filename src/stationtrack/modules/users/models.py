"""User and role database models."""

from uuid import UUID

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stationtrack.core.constants import (
    MAX_NAME_LENGTH,
    MAX_ROLE_NAME_LENGTH,
    MAX_STATUS_LENGTH,
    MAX_USERNAME_LENGTH,
)
from stationtrack.core.database.base import Base, TimestampMixin, UUIDMixin


class Role(Base, UUIDMixin, TimestampMixin):
    """Named role granted to staff accounts (admin, technician)."""

    __tablename__ = "roles"

    name: Mapped[str] = mapped_column(
        String(MAX_ROLE_NAME_LENGTH),
        nullable=False,
        unique=True,
    )
    status: Mapped[str] = mapped_column(
        String(MAX_STATUS_LENGTH),
        default="active",
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Role(id={self.id}, name={self.name})>"


class User(Base, UUIDMixin, TimestampMixin):
    """Staff account.

    Users are the actors recorded in the audit trail. Their display
    attributes (first name, last name, username) are joined into audit
    listings and free-text search.

    Attributes:
        first_name: Given name
        last_name: Family name
        username: Unique login handle
        status: ``active`` or ``inactive``
        role_id: The role granted to this user
    """

    __tablename__ = "users"

    first_name: Mapped[str] = mapped_column(
        String(MAX_NAME_LENGTH),
        nullable=False,
    )
    last_name: Mapped[str] = mapped_column(
        String(MAX_NAME_LENGTH),
        nullable=False,
    )
    username: Mapped[str] = mapped_column(
        String(MAX_USERNAME_LENGTH),
        nullable=False,
        unique=True,
        index=True,
    )
    status: Mapped[str] = mapped_column(
        String(MAX_STATUS_LENGTH),
        default="active",
        nullable=False,
    )
    role_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("roles.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    role: Mapped[Role | None] = relationship(
        "Role",
        lazy="selectin",
    )

    @property
    def is_active(self) -> bool:
        return self.status == "active"

    @property
    def role_name(self) -> str | None:
        return self.role.name if self.role else None

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username={self.username})>"
