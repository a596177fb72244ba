"""Bearer token verification.

Accounts sign in through the external identity service, which issues
HS256 tokens whose ``sub`` is the user id. This service only verifies
them. ``create_access_token`` mints compatible tokens for the seed
script and tests.
"""

from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID

from jose import JWTError, jwt

from stationtrack.config import settings
from stationtrack.core.auth.schemas import TokenData


def create_access_token(
    user_id: UUID,
    expires_delta: timedelta | None = None,
    additional_claims: dict[str, Any] | None = None,
) -> str:
    """Sign an access token for ``user_id``.

    Extra claims never override ``sub``, ``exp``, ``iat`` or ``type``.
    """
    issued_at = datetime.now(UTC)
    lifetime = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)

    claims: dict[str, Any] = dict(additional_claims or {})
    claims.update(
        sub=str(user_id),
        iat=issued_at,
        exp=issued_at + lifetime,
        type="access",
    )
    return jwt.encode(claims, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> TokenData | None:
    """Verify a token's signature and expiry.

    Returns:
        TokenData, or None for anything that does not verify
    """
    try:
        claims = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None

    subject, expires = claims.get("sub"), claims.get("exp")
    if not subject or expires is None:
        return None

    try:
        user_id = UUID(subject)
    except ValueError:
        return None

    return TokenData(
        user_id=user_id,
        exp=datetime.fromtimestamp(expires, tz=UTC),
        type=claims.get("type", "access"),
    )
