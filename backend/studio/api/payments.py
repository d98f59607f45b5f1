"""
Payment API endpoints.
Handles XP package listing, Stripe payment intent creation and history.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from studio.auth.dependencies import get_current_user
from studio.database import get_db
from studio.models.payment import PaymentStatus
from studio.models.user import User
from studio.schemas.payment import (
    PackagesListResponse,
    CreatePaymentIntentRequest,
    PaymentIntentResponse,
    PaymentHistoryItem,
    PaymentHistoryResponse,
)
from studio.services.stripe_service import stripe_service

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/packages", response_model=PackagesListResponse)
async def list_packages():
    """
    Get list of available XP packages.

    No authentication required - packages are public information.
    """
    packages = stripe_service.get_packages()
    return PackagesListResponse(packages=packages)


@router.post("/payment-intent", response_model=PaymentIntentResponse)
async def create_payment_intent(
    request: CreatePaymentIntentRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Create a Stripe Payment Intent for an XP purchase.

    XP is credited by the payment_intent.succeeded webhook, never here.
    """
    user_id = current_user.id
    try:
        logger.info(
            f"Creating payment intent for user {user_id}, package {request.package_id}",
            extra={"event": "payment_intent_requested", "user_id": user_id}
        )
        result = await stripe_service.create_payment_intent(
            db=db,
            user_id=user_id,
            package_id=request.package_id,
        )
        return PaymentIntentResponse(**result)
    except ValueError as e:
        logger.error(f"Validation error creating payment intent: {e}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.error(
            f"Unexpected error creating payment intent: {str(e)}",
            extra={"event": "payment_intent_error", "user_id": user_id},
            exc_info=True
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to create payment intent: {str(e)}"
        )


@router.get("/history", response_model=PaymentHistoryResponse)
async def get_payment_history(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    limit: int = 20,
):
    """
    Get payment history for the authenticated user.

    Returns list of past payments and total XP purchased.
    """
    payments = await stripe_service.get_user_payments(
        db=db,
        user_id=current_user.id,
        limit=limit,
    )

    total_xp = sum(
        p.xp_amount
        for p in payments
        if p.status == PaymentStatus.COMPLETED
    )

    return PaymentHistoryResponse(
        payments=[
            PaymentHistoryItem(
                id=p.id,
                xp_amount=p.xp_amount,
                amount_cents=p.amount_cents,
                currency=p.currency,
                status=p.status.value,
                package_id=p.package_id,
                created_at=p.created_at.isoformat(),
                completed_at=p.completed_at.isoformat() if p.completed_at else None,
            )
            for p in payments
        ],
        total_xp_purchased=total_xp,
    )
