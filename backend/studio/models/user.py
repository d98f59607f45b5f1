"""
User model with XP balance.
Users sign up with email/password or through Google OAuth.
XP is a plain integer debited per paid action and credited by purchases.
"""
from sqlalchemy import Column, String, Integer, Boolean, DateTime, CheckConstraint
from datetime import datetime

from studio.models.base import Base


class User(Base):
    """User model with XP-based access to AI generation."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(64), nullable=False, unique=True, index=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=True)  # NULL for OAuth-only accounts
    profile_picture = Column(String(500), nullable=True)

    # Email verification
    email_verified = Column(Boolean, nullable=False, default=False)
    verification_token = Column(String(64), nullable=True, index=True)

    # OAuth identity
    provider = Column(String(32), nullable=False, default="credentials")  # "credentials" or "google"
    provider_id = Column(String(255), nullable=True)

    xp = Column(Integer, nullable=False, default=0)  # XP balance
    is_admin = Column(Boolean, nullable=False, default=False)
    stripe_customer_id = Column(String(255), nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        CheckConstraint("xp >= 0", name="ck_users_xp_non_negative"),
    )

    def __repr__(self):
        return f"<User(id={self.id}, username={self.username}, xp={self.xp})>"
