"""Authenticated-principal context: token verification and role checks."""

from stationtrack.core.auth.backend import create_access_token, decode_token
from stationtrack.core.auth.dependencies import (
    CurrentUser,
    get_current_user,
    require_roles,
)
from stationtrack.core.auth.middleware import (
    PrincipalContextMiddleware,
    RequestIdMiddleware,
)
from stationtrack.core.auth.schemas import TokenData


__all__ = [
    "CurrentUser",
    "PrincipalContextMiddleware",
    "RequestIdMiddleware",
    "TokenData",
    "create_access_token",
    "decode_token",
    "get_current_user",
    "require_roles",
]
