"""
TemplatePromptView records that a user paid once to see a template's prompt.
"""
from sqlalchemy import Column, Integer, DateTime, ForeignKey, UniqueConstraint
from datetime import datetime

from studio.models.base import Base


class TemplatePromptView(Base):
    """One row per (user, template) unlock. The unique constraint guards double charges."""

    __tablename__ = "template_prompt_views"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    template_id = Column(Integer, ForeignKey("templates.id", ondelete="CASCADE"), nullable=False)
    xp_cost = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("user_id", "template_id", name="uq_prompt_view_user_template"),
    )

    def __repr__(self):
        return f"<TemplatePromptView(user_id={self.user_id}, template_id={self.template_id})>"
