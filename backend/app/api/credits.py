"""
Credit balance endpoints.
Balances are read fresh from the database on every call.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.models.profile import Profile
from app.auth.dependencies import get_current_user
from app.schemas.credits import CreditBalanceResponse
from app.services.credit_service import ai_ledger

router = APIRouter()


@router.get("/balance", response_model=CreditBalanceResponse)
async def get_balance(
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_user)
):
    """
    Get the AI credit balance of the authenticated user.
    The balance row is created on first call.
    """
    snapshot = await ai_ledger.get_balance(db, current_user.user_id)
    return CreditBalanceResponse.from_snapshot(snapshot)
