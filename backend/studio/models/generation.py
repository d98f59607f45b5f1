"""
Generation model for tracking image generation attempts.
Each generation reserves XP up front and is either completed or refunded.
"""
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Text, Enum as SQLEnum, UniqueConstraint, Index
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from studio.models.base import Base


class GenerationStatus(str, enum.Enum):
    """Generation status enum."""
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class GenerationKind(str, enum.Enum):
    """What produced the generation."""
    TEMPLATE = "template"
    HAIRSTYLE = "hairstyle"
    REFINE = "refine"
    OUTFIT = "outfit"


class Generation(Base):
    """Generation model tracking AI image generation and XP consumption."""

    __tablename__ = "generations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    template_id = Column(Integer, ForeignKey("templates.id", ondelete="SET NULL"), nullable=True)
    template_title = Column(String(255), nullable=True)

    kind = Column(SQLEnum(GenerationKind), nullable=False, default=GenerationKind.TEMPLATE)
    status = Column(SQLEnum(GenerationStatus), nullable=False, default=GenerationStatus.PENDING)

    original_image_url = Column(String(500), nullable=True)
    generated_image_url = Column(String(500), nullable=True)

    xp_cost = Column(Integer, nullable=False, default=0)  # XP charged for this generation
    prompt_used = Column(Text, nullable=True)
    model_id = Column(String(100), nullable=True)
    model_name = Column(String(100), nullable=True)

    idempotency_key = Column(String(100), nullable=True)  # Client-supplied, unique per user
    error = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    completed_at = Column(DateTime, nullable=True)

    # Relationships
    user = relationship("User", backref="generations")

    __table_args__ = (
        UniqueConstraint("user_id", "idempotency_key", name="uq_generation_user_idempotency_key"),
        Index("idx_generation_user_created", "user_id", "created_at"),
    )

    def __repr__(self):
        return f"<Generation(id={self.id}, user_id={self.user_id}, kind={self.kind}, status={self.status})>"
