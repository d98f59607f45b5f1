"""
Per-user generation preferences.
"""
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey
from datetime import datetime

from studio.models.base import Base


class UserSettings(Base):
    """Preferred model, resolution and aspect ratio for a user (one row per user)."""

    __tablename__ = "user_settings"

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    preferred_model = Column(String(100), nullable=False)
    preferred_resolution = Column(String(32), nullable=False)
    preferred_aspect_ratio = Column(String(16), nullable=False)

    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<UserSettings(user_id={self.user_id}, model={self.preferred_model})>"
