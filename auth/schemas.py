"""JWT token payload schemas."""

from datetime import datetime

from pydantic import BaseModel


class TokenPayload(BaseModel):
    """JWT token payload structure."""

    sub: str  # user_id (standard JWT claim)
    role: str | None = None  # Role name at issue time; the stored role wins
    exp: datetime  # Expiration time (standard JWT claim)
