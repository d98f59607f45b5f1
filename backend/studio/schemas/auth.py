"""
Pydantic schemas for authentication endpoints.
"""
from pydantic import BaseModel, Field
from typing import Optional


class SignupRequest(BaseModel):
    """Schema for credentials sign-up. Presence and length are checked by the service."""
    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class SignupResponse(BaseModel):
    message: str
    user_id: int


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class GoogleLoginRequest(BaseModel):
    id_token: str = Field(..., description="Google identity token issued to the frontend")


class TokenResponse(BaseModel):
    """Bearer token returned by login and Google sign-in."""
    access_token: str
    token_type: str = "bearer"
    user_id: int
    username: str
    xp: int
