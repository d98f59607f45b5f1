"""
AIModel catalog of selectable generation backends.
"""
from sqlalchemy import Column, String, Integer, Boolean

from studio.models.base import Base


class AIModel(Base):
    """A generation backend users can pick, with its XP price."""

    __tablename__ = "ai_models"

    id = Column(Integer, primary_key=True, autoincrement=True)
    model_id = Column(String(100), nullable=False, unique=True)  # Upstream model name
    model_name = Column(String(100), nullable=False)  # Display name
    provider = Column(String(32), nullable=False, default="gemini")  # "gemini" or "openai"
    xp_cost = Column(Integer, nullable=False, default=1)
    is_active = Column(Boolean, nullable=False, default=True)
    display_order = Column(Integer, nullable=False, default=0)

    def __repr__(self):
        return f"<AIModel(model_id={self.model_id}, provider={self.provider}, xp_cost={self.xp_cost})>"
