"""
Admin endpoints for credit maintenance.
All routes require an administrator (profiles.is_admin or ADMIN_USER_IDS).
"""
from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.models.profile import Profile
from app.auth.dependencies import require_admin
from app.schemas.credits import AdminGrantRequest, AdminResetRequest, CreditBalanceResponse
from app.services.credit_service import ai_ledger, automation_ledger, get_ledger

router = APIRouter()


class UserCreditsResponse(BaseModel):
    """Both ledgers of one user."""
    ai: CreditBalanceResponse
    automation: CreditBalanceResponse


@router.post("/credits/grant", response_model=CreditBalanceResponse)
async def grant_credits(
    request: AdminGrantRequest,
    db: AsyncSession = Depends(get_db),
    admin: Profile = Depends(require_admin)
):
    """
    Add bonus credits to a user's total.
    Credits already used are left untouched.
    """
    ledger = get_ledger(request.ledger)
    snapshot = await ledger.grant(
        db,
        request.user_id,
        request.amount,
        actor_id=admin.user_id,
        reason=request.reason,
    )
    return CreditBalanceResponse.from_snapshot(snapshot)


@router.post("/credits/reset", response_model=CreditBalanceResponse)
async def reset_credits(
    request: AdminResetRequest,
    db: AsyncSession = Depends(get_db),
    admin: Profile = Depends(require_admin)
):
    """Reset a user's ledger to the fresh-account state."""
    ledger = get_ledger(request.ledger)
    snapshot = await ledger.reset(db, request.user_id, actor_id=admin.user_id, reason=request.reason)
    return CreditBalanceResponse.from_snapshot(snapshot)


@router.get("/credits/{user_id}", response_model=UserCreditsResponse)
async def get_user_credits(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    admin: Profile = Depends(require_admin)
):
    """Both balances of a user."""
    ai = await ai_ledger.get_balance(db, user_id)
    automation = await automation_ledger.get_balance(db, user_id)
    return UserCreditsResponse(
        ai=CreditBalanceResponse.from_snapshot(ai),
        automation=CreditBalanceResponse.from_snapshot(automation),
    )
