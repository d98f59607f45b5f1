"""
Pydantic schemas for payment endpoints.
"""
from pydantic import BaseModel, Field
from typing import List, Optional


class XPPackageResponse(BaseModel):
    """Response schema for an XP package."""
    id: str
    name: str
    xp: int
    price_cents: int
    price_formatted: str
    currency: str
    description: Optional[str]
    popular: bool
    price_per_xp: float
    price_id: Optional[str] = None


class PackagesListResponse(BaseModel):
    packages: List[XPPackageResponse]


class CreatePaymentIntentRequest(BaseModel):
    package_id: str = Field(..., description="Stripe product ID of the XP package")


class PaymentIntentResponse(BaseModel):
    client_secret: str
    payment_intent_id: str


class PaymentHistoryItem(BaseModel):
    id: int
    xp_amount: int
    amount_cents: int
    currency: str
    status: str
    package_id: Optional[str]
    created_at: str
    completed_at: Optional[str]


class PaymentHistoryResponse(BaseModel):
    payments: List[PaymentHistoryItem]
    total_xp_purchased: int
