"""
Health check endpoint.
Probes the database and both ledger tables.
"""
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.database import get_db
from app.services.credit_service import LEDGERS

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("")
async def health_check(db: AsyncSession = Depends(get_db)):
    """
    Returns 200 when every ledger table answers, 503 otherwise.
    Ledger rows are counted, never read.
    """
    ledgers = {}
    healthy = True
    for name, ledger in LEDGERS.items():
        try:
            await db.execute(select(func.count()).select_from(ledger.model))
            ledgers[name] = "ok"
        except SQLAlchemyError as e:
            await db.rollback()
            healthy = False
            ledgers[name] = "unavailable"
            logger.warning(
                f"Health probe failed for {name} ledger: {e}",
                extra={"event": "health_probe_failed", "ledger": name},
            )

    body = {
        "status": "healthy" if healthy else "unhealthy",
        "environment": settings.environment,
        "ledgers": ledgers,
    }
    return JSONResponse(status_code=200 if healthy else 503, content=body)
