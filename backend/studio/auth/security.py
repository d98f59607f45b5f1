"""
Password hashing and app-issued access tokens.
Passwords are bcrypt hashes (passlib). Access tokens are HS256 JWTs (python-jose)
carrying the user id in the "sub" claim.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from studio.config import settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=12)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    if not password_hash:
        return False
    return pwd_context.verify(password, password_hash)


def create_access_token(user_id: int, expires_minutes: Optional[int] = None) -> str:
    """
    Create a signed access token for a user.

    Args:
        user_id: User primary key, stored as the "sub" claim
        expires_minutes: Lifetime override (defaults to settings)

    Returns:
        Encoded JWT string
    """
    expire = datetime.now(timezone.utc) + timedelta(
        minutes=expires_minutes or settings.access_token_expire_minutes
    )
    payload = {"sub": str(user_id), "exp": expire}
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> int:
    """
    Decode an access token and return the user id.

    Raises:
        ValueError: If the token is invalid, expired, or has no subject
    """
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError as e:
        raise ValueError(f"Invalid token: {str(e)}")

    subject = payload.get("sub")
    if subject is None:
        raise ValueError("Invalid token: missing subject")

    try:
        return int(subject)
    except (TypeError, ValueError):
        raise ValueError("Invalid token: malformed subject")
