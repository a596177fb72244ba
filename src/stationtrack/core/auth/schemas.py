"""Authentication schemas for token handling."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel


class TokenData(BaseModel):
    """Data extracted from a JWT access token.

    Attributes:
        user_id: The authenticated principal's UUID
        exp: Token expiration time
        type: Token type
    """

    user_id: UUID
    exp: datetime
    type: str = "access"
