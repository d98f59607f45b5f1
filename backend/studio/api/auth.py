"""
Authentication endpoints: sign-up, email verification, login and Google sign-in.
"""
import logging
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from studio.auth.firebase import verify_firebase_token
from studio.auth.security import create_access_token
from studio.config import settings
from studio.database import get_db
from studio.schemas.auth import (
    SignupRequest,
    SignupResponse,
    LoginRequest,
    GoogleLoginRequest,
    TokenResponse,
)
from studio.services.user_service import UserService, AuthError
from studio.tasks.email_tasks import send_verification_email_task

logger = logging.getLogger(__name__)

router = APIRouter()


def _frontend_redirect(path: str, **params) -> RedirectResponse:
    url = f"{settings.frontend_url.rstrip('/')}{path}?{urlencode(params)}"
    return RedirectResponse(url=url, status_code=status.HTTP_302_FOUND)


def _token_response(user) -> TokenResponse:
    return TokenResponse(
        access_token=create_access_token(user.id),
        user_id=user.id,
        username=user.username,
        xp=user.xp,
    )


@router.post("/signup", response_model=SignupResponse, status_code=status.HTTP_201_CREATED)
async def signup(
    request: SignupRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    Create an account and send the verification email.
    New accounts receive the welcome XP bonus.
    """
    try:
        user = await UserService.signup(
            db,
            username=request.username,
            email=request.email,
            password=request.password,
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    user_id = user.id
    try:
        send_verification_email_task.delay(user.email, user.username, user.verification_token)
    except Exception as e:
        logger.error(
            f"Failed to enqueue verification email: {e}",
            extra={"event": "email_enqueue_failed", "user_id": user_id},
            exc_info=True
        )

    return SignupResponse(
        message="Account created. Please check your email to verify your account.",
        user_id=user_id,
    )


@router.get("/verify")
async def verify_email(
    token: str = "",
    db: AsyncSession = Depends(get_db),
):
    """Consume the emailed token and redirect to the frontend login or error page."""
    outcome = await UserService.verify_email(db, token)
    if outcome == "invalid":
        return _frontend_redirect("/auth/error", error="invalid_token")
    return _frontend_redirect("/auth/login", verified=outcome)


@router.post("/login", response_model=TokenResponse)
async def login(
    request: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    """Exchange email/password for a bearer token."""
    try:
        user = await UserService.authenticate(db, request.email, request.password)
    except AuthError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))

    logger.info(f"User logged in: {user.id}", extra={"event": "user_login", "user_id": user.id})
    return _token_response(user)


@router.post("/oauth/google", response_model=TokenResponse)
async def google_login(
    request: GoogleLoginRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    Exchange a Google identity token for a bearer token.
    Creates the account on first sign-in.
    """
    try:
        claims = verify_firebase_token(request.id_token)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid token: {str(e)}",
        )
    except RuntimeError as e:
        logger.error(f"Google sign-in unavailable: {e}", extra={"event": "oauth_unavailable"})
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Google sign-in is not configured",
        )

    try:
        user = await UserService.get_or_create_google_user(db, claims)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return _token_response(user)
