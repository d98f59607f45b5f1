"""
Outfit template model: a catalog garment users can try on their own photo.
"""
from sqlalchemy import Column, String, Integer, Boolean, DateTime, Text
from datetime import datetime

from studio.models.base import Base


class OutfitTemplate(Base):
    """Garment photo plus an optional prompt override for outfit try-on."""

    __tablename__ = "outfit_templates"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    outfit_image_url = Column(String(500), nullable=False, default="")
    category = Column(String(100), nullable=False, default="change-outfit")
    ai_prompt = Column(Text, nullable=True)  # Falls back to the stock try-on prompt

    display_order = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<OutfitTemplate(id={self.id}, name={self.name}, active={self.is_active})>"
