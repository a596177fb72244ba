"""FastAPI dependencies for the authenticated principal.

This module provides dependency injection functions for:
- Extracting and validating bearer tokens
- Loading the current user
- Requiring a role on a route
"""

from collections.abc import Awaitable, Callable
from typing import Annotated, Any

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from stationtrack.api.dependencies import DBSession
from stationtrack.core.auth.backend import decode_token
from stationtrack.core.auth.schemas import TokenData
from stationtrack.core.errors import ForbiddenError, UnauthorizedError


# HTTP Bearer token security scheme
bearer_scheme = HTTPBearer(auto_error=False)


async def get_token_data(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> TokenData:
    """Extract and validate token data from the Authorization header.

    Raises:
        UnauthorizedError: If token is missing or invalid
    """
    if not credentials:
        raise UnauthorizedError(
            "Access token required",
            error_code="missing_token",
        )

    token_data = decode_token(credentials.credentials)
    if not token_data or token_data.type != "access":
        raise UnauthorizedError(
            "Invalid or expired token",
            error_code="invalid_token",
        )

    return token_data


async def get_current_user(
    token_data: Annotated[TokenData, Depends(get_token_data)],
    db: DBSession,
) -> Any:  # Returns User, but use Any to avoid circular import
    """Get the currently authenticated, active user.

    Raises:
        UnauthorizedError: If the user does not exist or is inactive
    """
    from stationtrack.modules.users.repos import UserRepository  # noqa: PLC0415

    user = await UserRepository(db).get_by_id(token_data.user_id)

    if not user:
        raise UnauthorizedError("User not found", error_code="user_not_found")

    if not user.is_active:
        raise UnauthorizedError("Account is inactive", error_code="user_inactive")

    return user


CurrentUser = Annotated[Any, Depends(get_current_user)]


def require_roles(*roles: str) -> Callable[..., Awaitable[Any]]:
    """Build a dependency that requires the current user to hold a role.

    Usage:
        @router.get("/audit-logs", dependencies=[Depends(require_roles("admin"))])

    Args:
        *roles: Role names that are allowed

    Returns:
        Dependency returning the current user
    """
    allowed = set(roles)

    async def _require_roles(user: CurrentUser) -> Any:
        if user.role_name not in allowed:
            raise ForbiddenError(
                "Insufficient permissions",
                details={"required_roles": sorted(allowed)},
            )
        return user

    return _require_roles
