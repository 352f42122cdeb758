"""JWT token creation and validation."""

from datetime import datetime, timedelta

from jose import jwt, JWTError

import config
from auth.schemas import TokenPayload


def create_dev_token(
    user_id: int,
    role: str,
    expires_in_hours: int = 24,
) -> str:
    """
    Create a JWT token for development login.

    Args:
        user_id: User ID
        role: Name of the user's role
        expires_in_hours: Token expiration in hours

    Returns:
        Encoded JWT token string
    """
    exp = datetime.utcnow() + timedelta(hours=expires_in_hours)

    payload = {
        "sub": str(user_id),
        "role": role,
        "exp": int(exp.timestamp()),  # JWT expects Unix timestamp
    }

    return jwt.encode(
        payload,
        config.settings.JWT_SECRET,
        algorithm=config.settings.JWT_ALGORITHM,
    )


def decode_token(token: str) -> TokenPayload:
    """
    Decode and validate a JWT token.

    Args:
        token: JWT token string

    Returns:
        TokenPayload with decoded claims

    Raises:
        JWTError: If token is invalid, expired, or missing claims
    """
    try:
        payload = jwt.decode(
            token,
            config.settings.JWT_SECRET,
            algorithms=[config.settings.JWT_ALGORITHM],
        )

        return TokenPayload(
            sub=payload["sub"],
            role=payload.get("role"),
            exp=datetime.fromtimestamp(payload["exp"]),
        )
    except KeyError as e:
        raise JWTError(f"Invalid token: missing claim {e}") from e
    except JWTError as e:
        raise JWTError(f"Invalid token: {str(e)}") from e
