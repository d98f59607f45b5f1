"""
Generic XP deduction for client-side paid actions (prompt preview and editing).
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from studio.auth.dependencies import get_current_user
from studio.database import get_db
from studio.models.user import User
from studio.schemas.settings import XPDeductRequest, XPDeductResponse
from studio.services.credit_service import CreditService, InsufficientXPError
from studio.utils.logging import log_xp_debited, log_xp_insufficient
from studio.utils.metrics import xp_debited_total

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/deduct", response_model=XPDeductResponse)
async def deduct_xp(
    request: XPDeductRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    user_id = current_user.id
    if request.amount < 1:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid amount")

    reason = request.reason or "action"
    try:
        await CreditService.debit_or_raise(db, user_id, request.amount)
    except InsufficientXPError as e:
        log_xp_insufficient(logger, user_id=user_id, required=e.required, current=e.current)
        raise HTTPException(status_code=status.HTTP_402_PAYMENT_REQUIRED, detail=e.to_detail())

    xp_debited_total.labels(reason="client_action").inc(request.amount)
    log_xp_debited(logger, user_id=user_id, amount=request.amount, reason=reason)

    return XPDeductResponse(
        new_xp=await CreditService.get_balance(db, user_id),
        deducted=request.amount,
        reason=request.reason,
    )
