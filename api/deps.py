"""FastAPI dependencies for authentication and database."""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from api.principal import Principal
from auth.jwt import decode_token
from db import get_db as get_db_session
from repos import roles_repo, users_repo

# HTTP Bearer token security scheme
security = HTTPBearer()


async def get_db() -> AsyncSession:
    """
    Dependency to get database session.
    Reuses the get_db function from db.py.
    """
    async for session in get_db_session():
        yield session


async def get_current_principal(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> Principal:
    """
    Dependency to resolve the acting principal from a JWT bearer token.

    The role is always read from the database, never trusted from the token,
    so a role change takes effect immediately.

    Args:
        credentials: HTTP Bearer token from Authorization header
        db: Database session

    Returns:
        Principal: The authenticated user's ID and role name

    Raises:
        HTTPException: 401 if the token is invalid or the user is unknown,
            403 if the user is inactive
    """
    token = credentials.credentials

    try:
        token_payload = decode_token(token)
        user_id = int(token_payload.sub)
    except (JWTError, ValueError) as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid token: {str(e)}",
        )

    user = await users_repo.get_by_id(db, user_id=user_id)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User is inactive",
        )

    role = await roles_repo.get_by_id(db, role_id=user.role_id) if user.role_id else None
    return Principal.from_user(user, role)
