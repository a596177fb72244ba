"""User management routes.

Updates are audited through the recorder directly rather than by route
interception: the handler knows the actor and target up front.
"""

from uuid import UUID

from fastapi import Depends, Request

from stationtrack.api.dependencies import DBSession
from stationtrack.core.audit import AuditAction, Recorder, TargetType
from stationtrack.core.auth import CurrentUser, require_roles
from stationtrack.core.constants import ADMIN_ROLE
from stationtrack.core.errors import NotFoundError
from stationtrack.core.logging import get_client_ip
from stationtrack.modules.users import router
from stationtrack.modules.users.models import User
from stationtrack.modules.users.repos import UserRepo
from stationtrack.modules.users.schemas import (
    UserData,
    UserEnvelope,
    UserResponse,
    UserUpdate,
)


async def _get_or_404(repo: UserRepo, user_id: UUID) -> User:
    user = await repo.get_by_id(user_id)
    if user is None:
        raise NotFoundError("User not found", resource="user", resource_id=str(user_id))
    return user


@router.get(
    "/{user_id}",
    response_model=UserEnvelope,
    summary="Get user by ID",
    description="Get a staff account. Requires admin permissions.",
    dependencies=[Depends(require_roles(ADMIN_ROLE))],
)
async def get_user(user_id: UUID, repo: UserRepo) -> UserEnvelope:
    """Get user by ID."""
    user = await _get_or_404(repo, user_id)
    return UserEnvelope(data=UserData(user=UserResponse.model_validate(user)))


@router.patch(
    "/{user_id}",
    response_model=UserEnvelope,
    summary="Update user",
    description="Update a staff account's name or status. Requires admin permissions.",
    dependencies=[Depends(require_roles(ADMIN_ROLE))],
)
async def update_user(
    user_id: UUID,
    data: UserUpdate,
    request: Request,
    repo: UserRepo,
    db: DBSession,
    recorder: Recorder,
    current_user: CurrentUser,
) -> UserEnvelope:
    """Update user by ID and record who did it."""
    user = await _get_or_404(repo, user_id)

    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(user, field, value)
    user = await repo.update(user)
    await db.commit()

    await recorder.record_explicit(
        actor_id=current_user.id,
        action=AuditAction.USER_UPDATED,
        target_type=TargetType.USER,
        target_id=str(user.id),
        source_address=get_client_ip(request),
    )

    return UserEnvelope(
        message="User updated successfully",
        data=UserData(user=UserResponse.model_validate(user)),
    )
