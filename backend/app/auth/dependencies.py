"""
FastAPI dependencies for authentication.

- get_current_user: verifies the Firebase JWT and returns the caller's Profile
- require_admin: get_current_user + admin check
- verify_n8n_secret: shared-secret check for the automation worker
"""
import hmac
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from app.config import settings
from app.database import get_db
from app.models.profile import Profile
from app.auth.firebase import verify_firebase_token

# HTTPBearer scheme for extracting Authorization header
security = HTTPBearer()


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> Profile:
    """
    FastAPI dependency that verifies Firebase JWT token and returns the Profile.

    The profile is created on first sight with the free plan. Credit
    balances are NOT created here; the ledger creates them lazily.

    Raises:
        HTTPException 401: If token is missing, invalid, or expired
    """
    token = credentials.credentials

    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing authentication token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        decoded_token = verify_firebase_token(token)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid token: {str(e)}",
            headers={"WWW-Authenticate": "Bearer"},
        )

    uid = decoded_token.get("uid")
    if not uid:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token: missing uid"
        )

    result = await db.execute(select(Profile).where(Profile.user_id == uid))
    profile = result.scalar_one_or_none()

    if not profile:
        profile = Profile(user_id=uid, email=decoded_token.get("email"), plan="free")
        db.add(profile)
        try:
            await db.commit()
        except IntegrityError:
            # Parallel first request created it
            await db.rollback()
            result = await db.execute(select(Profile).where(Profile.user_id == uid))
            profile = result.scalar_one()

    return profile


def is_admin(profile: Profile) -> bool:
    return bool(profile.is_admin) or profile.user_id in settings.admin_user_ids


async def require_admin(current_user: Profile = Depends(get_current_user)) -> Profile:
    """
    Raises:
        HTTPException 403: Caller is not an administrator
    """
    if not is_admin(current_user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Administrator access required"
        )
    return current_user


async def verify_n8n_secret(x_n8n_secret: Optional[str] = Header(None)) -> None:
    """
    Shared-secret check for automation worker callbacks.

    Raises:
        HTTPException 401: Secret missing, wrong, or not configured
    """
    expected = settings.n8n_shared_secret or ""
    if not expected or not x_n8n_secret or not hmac.compare_digest(x_n8n_secret, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized"
        )
