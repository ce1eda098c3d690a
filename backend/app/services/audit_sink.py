"""
Best-effort audit sink.

Writes change-log rows AFTER the ledger mutation has been committed, on a
session of its own bound to the caller's engine. A failed write is logged and
counted, then dropped: callers never see an exception from record(), and the
caller's session (and every object it holds) is left untouched.
"""
import logging
from decimal import Decimal
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.credit_change_log import CreditChangeLog
from app.utils.logging import log_audit_write_failed
from app.utils.metrics import audit_write_failures_total

logger = logging.getLogger(__name__)


def _jsonable(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


class AuditSink:
    """Fire-and-forget writer for the credit change log."""

    async def record(
        self,
        db: AsyncSession,
        *,
        ledger: str,
        action: str,
        user_id: str,
        amount: int = 0,
        actor_id: Optional[str] = None,
        reason: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """
        Append one change-log row in its own session and transaction.

        `db` only supplies the engine; nothing is added, committed or rolled
        back on it.

        Returns:
            True if the row was written, False if the write was dropped
        """
        try:
            async with AsyncSession(bind=db.bind, expire_on_commit=False) as session:
                session.add(CreditChangeLog(
                    ledger=ledger,
                    action=action,
                    user_id=user_id,
                    actor_id=actor_id,
                    amount=amount,
                    reason=reason,
                    context=_jsonable(context) if context else None,
                ))
                await session.commit()
            return True
        except Exception as e:
            audit_write_failures_total.labels(ledger=ledger, action=action).inc()
            log_audit_write_failed(logger, ledger=ledger, action=action, user_id=user_id, error=str(e))
            return False


audit_sink = AuditSink()
