"""
Template model: a catalog entry pairing a reference image with a stored prompt.
"""
from sqlalchemy import Column, String, Integer, Boolean, DateTime, Text
from datetime import datetime

from studio.models.base import Base
from studio.utils.slug import slugify


class Template(Base):
    """Visual template users apply to their uploaded photo."""

    __tablename__ = "templates"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    image_url = Column(String(500), nullable=False)
    ai_prompt = Column(Text, nullable=True)  # Hidden from public listings

    is_active = Column(Boolean, nullable=False, default=True)
    coming_soon = Column(Boolean, nullable=False, default=False)
    display_order = Column(Integer, nullable=False, default=0)
    tags = Column(String(500), nullable=True)  # Comma-separated free text

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def slug(self) -> str:
        return slugify(self.title)

    @property
    def tag_list(self) -> list[str]:
        if not self.tags:
            return []
        return [tag.strip() for tag in self.tags.split(",") if tag.strip()]

    def __repr__(self):
        return f"<Template(id={self.id}, title={self.title}, active={self.is_active})>"
