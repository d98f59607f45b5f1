"""
Payment model for tracking Stripe transactions.
Ensures idempotency and provides audit trail for XP purchases.
"""
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Enum
from datetime import datetime
import enum

from studio.models.base import Base


class PaymentStatus(enum.Enum):
    """Status of a payment transaction."""
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class Payment(Base):
    """
    Payment model for tracking XP purchases via Stripe.

    Used for:
    - Idempotency: Prevent duplicate XP grants
    - Audit trail: Track all purchases
    """

    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    # Stripe identifier - used for idempotency
    stripe_payment_intent_id = Column(String(255), unique=True, nullable=False, index=True)

    # Payment details
    amount_cents = Column(Integer, nullable=False)  # Amount in minor units
    currency = Column(String(3), nullable=False, default="usd")
    xp_amount = Column(Integer, nullable=False)  # XP purchased

    # Status tracking
    status = Column(
        Enum(PaymentStatus),
        nullable=False,
        default=PaymentStatus.PENDING
    )

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    completed_at = Column(DateTime, nullable=True)

    package_id = Column(String(100), nullable=True)  # Stripe product ID

    def __repr__(self):
        return (
            f"<Payment(id={self.id}, user_id={self.user_id}, "
            f"xp={self.xp_amount}, status={self.status})>"
        )
