"""
Account lifecycle: sign-up, email verification, login, Google sign-in,
profile pictures, history and public profiles.
"""
import asyncio
import logging
from typing import Optional, Dict, Any, List

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from studio.auth.security import hash_password, verify_password
from studio.config import settings
from studio.models.base import generate_token
from studio.models.generation import Generation, GenerationStatus
from studio.models.user import User
from studio.utils.logging import log_user_signed_up
from studio.utils.metrics import xp_credited_total

logger = logging.getLogger(__name__)

MIN_USERNAME_LENGTH = 3
MIN_PASSWORD_LENGTH = 8
HISTORY_LIMIT = 50


class AuthError(Exception):
    """Login rejected. Carries the HTTP status the route should answer with."""

    def __init__(self, message: str, status_code: int):
        self.status_code = status_code
        super().__init__(message)


class UserService:
    """Service for user accounts."""

    @staticmethod
    async def get_by_email(db: AsyncSession, email: str) -> Optional[User]:
        result = await db.execute(select(User).where(func.lower(User.email) == email.lower()))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_username(db: AsyncSession, username: str) -> Optional[User]:
        result = await db.execute(select(User).where(User.username == username))
        return result.scalar_one_or_none()

    @staticmethod
    async def signup(db: AsyncSession, username: str, email: str, password: str) -> User:
        """
        Create an unverified credentials account with the welcome bonus.

        Raises:
            ValueError: Missing fields, too-short username/password, duplicate email or username
        """
        username = (username or "").strip()
        email = (email or "").strip().lower()
        if not username or not email or not password:
            raise ValueError("All fields are required")
        if len(username) < MIN_USERNAME_LENGTH:
            raise ValueError(f"Username must be at least {MIN_USERNAME_LENGTH} characters")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

        if await UserService.get_by_email(db, email) is not None:
            raise ValueError("Email already registered")
        if await UserService.get_by_username(db, username) is not None:
            raise ValueError("Username already taken")

        # bcrypt is CPU bound; keep it off the event loop
        password_hash = await asyncio.to_thread(hash_password, password)

        user = User(
            username=username,
            email=email,
            password_hash=password_hash,
            verification_token=generate_token(32),
            email_verified=False,
            provider="credentials",
            xp=settings.welcome_bonus_xp,
        )
        db.add(user)
        await db.commit()
        await db.refresh(user)

        xp_credited_total.labels(source="welcome_bonus").inc(settings.welcome_bonus_xp)
        log_user_signed_up(logger, user_id=user.id, provider="credentials", welcome_xp=settings.welcome_bonus_xp)
        return user

    @staticmethod
    async def verify_email(db: AsyncSession, token: str) -> str:
        """
        Consume a verification token.

        Returns:
            "success" when the account was just verified, "already" when it was
            verified before, "invalid" when no account holds the token
        """
        if not token:
            return "invalid"

        result = await db.execute(select(User).where(User.verification_token == token))
        user = result.scalar_one_or_none()
        if user is None:
            return "invalid"

        if user.email_verified:
            user.verification_token = None
            await db.commit()
            return "already"

        user.email_verified = True
        user.verification_token = None
        await db.commit()

        logger.info(
            f"Email verified for user {user.id}",
            extra={"event": "email_verified", "user_id": user.id}
        )
        return "success"

    @staticmethod
    async def authenticate(db: AsyncSession, email: str, password: str) -> User:
        """
        Check email/password credentials.

        Raises:
            AuthError: 401 unknown email or wrong password, 400 OAuth-only
                account, 403 email not verified
        """
        if not email or not password:
            raise AuthError("Invalid credentials", 400)

        user = await UserService.get_by_email(db, email.strip())
        if user is None:
            raise AuthError("No user found with this email", 401)
        if not user.password_hash:
            raise AuthError("Please sign in with Google", 400)
        if not await asyncio.to_thread(verify_password, password, user.password_hash):
            raise AuthError("Invalid password", 401)
        if not user.email_verified:
            raise AuthError("Please verify your email first", 403)

        return user

    @staticmethod
    async def _unique_username(db: AsyncSession, base: str) -> str:
        """base, then base1, base2, ... until unused."""
        username = base
        counter = 1
        while await UserService.get_by_username(db, username) is not None:
            username = f"{base}{counter}"
            counter += 1
        return username

    @staticmethod
    async def get_or_create_google_user(db: AsyncSession, claims: Dict[str, Any]) -> User:
        """
        Sign in with verified Google identity claims.

        First sign-in creates a verified account (username from the email
        local part) with the welcome bonus. Later sign-ins refresh the
        profile picture.

        Raises:
            ValueError: Claims carry no email
        """
        email = (claims.get("email") or "").strip().lower()
        if not email:
            raise ValueError("Google account has no email")

        picture = claims.get("picture")
        user = await UserService.get_by_email(db, email)

        if user is not None:
            if picture and user.profile_picture != picture:
                user.profile_picture = picture
                await db.commit()
            return user

        base = email.split("@")[0] or "user"
        user = User(
            username=await UserService._unique_username(db, base),
            email=email,
            provider="google",
            provider_id=claims.get("uid") or claims.get("sub"),
            profile_picture=picture,
            email_verified=True,
            xp=settings.welcome_bonus_xp,
        )
        db.add(user)
        await db.commit()
        await db.refresh(user)

        xp_credited_total.labels(source="welcome_bonus").inc(settings.welcome_bonus_xp)
        log_user_signed_up(logger, user_id=user.id, provider="google", welcome_xp=settings.welcome_bonus_xp)
        return user

    @staticmethod
    async def get_history(db: AsyncSession, user_id: int) -> Dict[str, List[Any]]:
        """
        Last completed generations (newest first) and the distinct original
        uploads behind them.
        """
        result = await db.execute(
            select(Generation)
            .where(Generation.user_id == user_id)
            .where(Generation.status == GenerationStatus.COMPLETED)
            .order_by(Generation.created_at.desc(), Generation.id.desc())
            .limit(HISTORY_LIMIT)
        )
        generations = list(result.scalars().all())

        uploads: List[str] = []
        seen = set()
        for generation in generations:
            url = generation.original_image_url
            if url and url not in seen:
                uploads.append(url)
                seen.add(url)

        return {
            "uploads": uploads,
            "generations": [g for g in generations if g.generated_image_url],
        }

    @staticmethod
    async def set_profile_picture(db: AsyncSession, user_id: int, url: str) -> Optional[str]:
        """
        Store the new picture URL.

        Returns:
            The previous picture URL (for the caller to delete), if any
        """
        result = await db.execute(select(User).where(User.id == user_id))
        user = result.scalar_one()
        previous = user.profile_picture
        user.profile_picture = url
        await db.commit()
        return previous

    @staticmethod
    async def get_public_profile(db: AsyncSession, username: str) -> Optional[Dict[str, Any]]:
        user = await UserService.get_by_username(db, username)
        if user is None:
            return None

        result = await db.execute(
            select(func.count(Generation.id))
            .where(Generation.user_id == user.id)
            .where(Generation.status == GenerationStatus.COMPLETED)
        )
        return {
            "username": user.username,
            "profile_picture": user.profile_picture,
            "created_at": user.created_at,
            "total_generations": result.scalar() or 0,
        }
