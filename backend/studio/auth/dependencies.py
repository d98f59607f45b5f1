"""
FastAPI dependencies for authentication.
Provides get_current_user, get_optional_user and require_admin, built on
app-issued bearer tokens.
"""
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from studio.database import get_db
from studio.models.user import User
from studio.auth.security import decode_access_token

# HTTPBearer scheme for extracting Authorization header.
# auto_error=False so missing credentials become 401 (not 403).
security = HTTPBearer(auto_error=False)


async def _resolve_user(token: str, db: AsyncSession) -> Optional[User]:
    try:
        user_id = decode_access_token(token)
    except ValueError:
        return None

    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> User:
    """
    FastAPI dependency that verifies the bearer token and returns the User.

    Raises:
        HTTPException 401: If token is missing, invalid, expired or the user no longer exists
    """
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="You must be logged in",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = await _resolve_user(credentials.credentials, db)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return user


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> Optional[User]:
    """Like get_current_user but returns None for anonymous or invalid requests."""
    if credentials is None or not credentials.credentials:
        return None
    return await _resolve_user(credentials.credentials, db)


async def require_admin(current_user: User = Depends(get_current_user)) -> User:
    """Allow only users flagged as admin."""
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
    return current_user
