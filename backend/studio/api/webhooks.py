"""
Webhook endpoints for external services.
Handles Stripe payment webhooks for XP purchases.
"""
from fastapi import APIRouter, Depends, HTTPException, status, Request, Header
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
import stripe
import logging

from studio.database import get_db
from studio.config import settings
from studio.models.user import User
from studio.services.credit_service import CreditService
from studio.services.stripe_service import stripe_service
from studio.tasks.email_tasks import send_receipt_email_task
from studio.utils.logging import log_payment_completed
from studio.utils.metrics import xp_credited_total

router = APIRouter()
logger = logging.getLogger(__name__)


async def _handle_payment_succeeded(db: AsyncSession, payment_intent) -> dict:
    """
    Complete the Payment recorded for this intent and credit its XP.

    The user and XP amount come from the Payment row written when the intent
    was created. Intent metadata is only compared against it for logging.
    """
    payment_intent_id = payment_intent.get("id")
    if not payment_intent_id:
        logger.warning("Payment intent event without an id")
        return {"status": "ignored", "reason": "missing_intent_id"}

    # Returns None if this intent is unknown or was already credited
    payment = await stripe_service.mark_payment_completed_by_intent(
        db=db,
        stripe_payment_intent_id=payment_intent_id,
    )
    if payment is None:
        logger.info(f"Payment for intent {payment_intent_id} already processed or unknown")
        return {
            "status": "already_processed",
            "payment_intent_id": payment_intent_id
        }

    payment_id = payment.id
    user_id = payment.user_id
    xp_amount = payment.xp_amount
    amount = f"{payment.amount_cents / 100:.2f} {payment.currency.upper()}"

    metadata = payment_intent.get("metadata", {}) or {}
    if metadata.get("user_id") != str(user_id) or metadata.get("xp") != str(xp_amount):
        logger.warning(
            f"Payment intent {payment_intent_id} metadata does not match payment {payment_id}",
            extra={
                "event": "payment_metadata_mismatch",
                "payment_id": payment_id,
                "user_id": user_id,
                "metadata_user_id": metadata.get("user_id"),
                "metadata_xp": metadata.get("xp"),
            }
        )

    result = await db.execute(select(User.email, User.username).where(User.id == user_id))
    user = result.first()
    if user is None:
        logger.warning(f"User {user_id} not found for Stripe webhook")
        await db.rollback()
        return {"status": "ignored", "reason": "user_not_found"}
    email, username = user

    try:
        await CreditService.credit(db, user_id, xp_amount, commit=False)
        await db.commit()
    except ValueError as e:
        logger.error(f"Error crediting user {user_id}: {e}")
        await db.rollback()
        return {"status": "error", "reason": str(e)}

    new_balance = await CreditService.get_balance(db, user_id)
    xp_credited_total.labels(source="purchase").inc(xp_amount)
    log_payment_completed(
        logger,
        payment_intent_id=payment_intent_id,
        user_id=user_id,
        xp_amount=xp_amount,
        payment_id=payment_id,
    )

    try:
        send_receipt_email_task.delay(
            email,
            username,
            f"{xp_amount} XP",
            xp_amount,
            amount,
            str(payment_id),
            new_balance,
        )
    except Exception as e:
        logger.error(
            f"Failed to enqueue receipt email: {str(e)}",
            extra={"event": "receipt_enqueue_failed", "user_id": user_id, "payment_id": payment_id},
            exc_info=True
        )

    return {
        "status": "success",
        "user_id": user_id,
        "xp_added": xp_amount,
        "payment_id": str(payment_id)
    }


@router.post("/stripe")
async def stripe_webhook(
    request: Request,
    db: AsyncSession = Depends(get_db),
    stripe_signature: str = Header(None, alias="stripe-signature")
):
    """
    Stripe webhook endpoint for processing payment events.

    Handles:
    - payment_intent.succeeded: credits the purchased XP once
    - payment_intent.payment_failed: marks the pending payment failed

    Expected metadata format:
    {
        "user_id": "<user id>",
        "xp": "<integer>",
        "package_id": "<stripe product id>"
    }
    """
    if not settings.stripe_webhook_secret:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Stripe webhook secret not configured"
        )

    if not stripe_signature:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing Stripe signature"
        )

    body = await request.body()

    try:
        event = stripe.Webhook.construct_event(
            body,
            stripe_signature,
            settings.stripe_webhook_secret
        )
    except ValueError as e:
        logger.error(f"Invalid payload: {e}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid payload: {str(e)}"
        )
    except stripe.error.SignatureVerificationError as e:
        logger.error(f"Invalid signature: {e}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid signature: {str(e)}"
        )

    if event["type"] == "payment_intent.succeeded":
        return await _handle_payment_succeeded(db, event["data"]["object"])

    if event["type"] == "payment_intent.payment_failed":
        payment_intent = event["data"]["object"]
        payment_intent_id = payment_intent.get("id")
        error_message = (payment_intent.get("last_payment_error") or {}).get("message", "Unknown error")
        logger.warning(f"Payment intent {payment_intent_id} failed: {error_message}")

        payment = await stripe_service.mark_payment_failed_by_intent(db, payment_intent_id)
        if payment is not None:
            logger.info(f"Updated payment {payment.id} status to FAILED")

        return {"status": "logged", "event_type": event["type"]}

    logger.info(f"Unhandled event type: {event['type']}")
    return {"status": "ignored", "event_type": event["type"]}
