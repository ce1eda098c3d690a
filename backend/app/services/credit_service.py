"""
Credit ledger service.

Provides atomic consume/grant operations over a per-user balance row.
Every mutation is a single conditional UPDATE ... RETURNING statement, so
concurrent requests for the same user serialize on the row lock and can
never overdraw the balance. Balances are never cached between calls.

Amounts are Decimal at the API and integer hundredths in storage.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, Optional, Type

from sqlalchemy import select, update, insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.base import utcnow
from app.models.credit_balance import CreditBalanceMixin, CreditBalance, AutomationCreditBalance
from app.services.audit_sink import AuditSink, audit_sink
from app.services.exceptions import CreditValidationError, InsufficientCredits, StoreUnavailable
from app.utils.logging import log_credits_consumed, log_credits_granted, log_insufficient_credits
from app.utils.metrics import credits_consumed_total, credits_granted_total, insufficient_credits_total

logger = logging.getLogger(__name__)

CREDIT_SCALE = 100  # storage unit = 0.01 credit
_CENT = Decimal("0.01")
_ZERO = Decimal("0.00")


def to_units(amount: Any) -> int:
    """
    Convert a credit amount to storage units (hundredths).

    Raises:
        CreditValidationError: Not a finite number or more than 2 decimal places
    """
    if isinstance(amount, bool):
        raise CreditValidationError("Credit amount must be a number")
    try:
        value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    except (InvalidOperation, ValueError):
        raise CreditValidationError(f"Invalid credit amount: {amount!r}") from None
    if not value.is_finite():
        raise CreditValidationError(f"Invalid credit amount: {amount!r}")
    scaled = value * CREDIT_SCALE
    if scaled != scaled.to_integral_value():
        raise CreditValidationError("Credit amounts support at most 2 decimal places")
    return int(scaled)


def from_units(units: Any) -> Decimal:
    """Convert storage units back to credits. Malformed values read as 0."""
    try:
        return (Decimal(int(units)) / CREDIT_SCALE).quantize(_CENT)
    except (TypeError, ValueError, InvalidOperation, OverflowError):
        return _ZERO


@dataclass(frozen=True)
class CreditSnapshot:
    """Read-only view of a balance at a point in time."""
    user_id: str
    credits_total: Decimal
    credits_used: Decimal

    @property
    def credits_remaining(self) -> Decimal:
        return max(_ZERO, self.credits_total - self.credits_used)

    @classmethod
    def from_units(cls, user_id: str, total_units: Any, used_units: Any) -> "CreditSnapshot":
        return cls(
            user_id=user_id,
            credits_total=from_units(total_units),
            credits_used=from_units(used_units),
        )


class CreditLedger:
    """
    Stateless ledger bound to one balance table.

    The instance only knows which table it operates on and where audit rows
    go; all state lives in the database.
    """

    def __init__(
        self,
        model: Type[CreditBalanceMixin],
        name: str,
        default_total: Callable[[], Decimal],
        sink: Optional[AuditSink] = None,
    ):
        self.model = model
        self.name = name
        self._default_total = default_total
        self._sink = sink or audit_sink

    def _default_units(self) -> int:
        return max(0, to_units(self._default_total()))

    @staticmethod
    def _positive_units(amount: Any) -> int:
        units = to_units(amount)
        if units <= 0:
            raise CreditValidationError("Credit amount must be positive")
        return units

    async def _read(self, db: AsyncSession, user_id: str) -> Optional[CreditSnapshot]:
        """Read the balance row, retrying once on a store error."""
        stmt = select(self.model.credits_total, self.model.credits_used).where(
            self.model.user_id == user_id
        )
        for attempt in (1, 2):
            try:
                row = (await db.execute(stmt)).one_or_none()
                break
            except SQLAlchemyError as e:
                await db.rollback()
                if attempt == 2:
                    raise StoreUnavailable(f"Failed to read {self.name} credits") from e
                logger.warning(
                    f"Retrying {self.name} credits read for user {user_id}: {e}",
                    extra={"event": "credits_read_retry", "ledger": self.name, "user_id": user_id},
                )
        if row is None:
            return None
        return CreditSnapshot.from_units(user_id, row.credits_total, row.credits_used)

    async def ensure_balance(self, db: AsyncSession, user_id: str) -> CreditSnapshot:
        """
        Get-or-create the balance row for user_id.

        Never overwrites an existing row. When two requests race to create
        the same row, the loser rolls back on the unique violation and reads
        the winner's row.

        Raises:
            StoreUnavailable: Database error other than the creation race
        """
        if not user_id:
            raise CreditValidationError("user_id is required")

        snapshot = await self._read(db, user_id)
        if snapshot is not None:
            return snapshot

        try:
            await db.execute(
                insert(self.model).values(
                    user_id=user_id,
                    credits_total=self._default_units(),
                    credits_used=0,
                )
            )
            await db.commit()
            logger.info(
                f"Created {self.name} credits row for user {user_id}",
                extra={"event": "credits_row_created", "ledger": self.name, "user_id": user_id},
            )
        except IntegrityError:
            # Concurrent request inserted the row first
            await db.rollback()
        except SQLAlchemyError as e:
            await db.rollback()
            raise StoreUnavailable(f"Failed to create {self.name} credits row") from e

        snapshot = await self._read(db, user_id)
        if snapshot is None:
            raise StoreUnavailable(f"{self.name} credits row missing after creation")
        return snapshot

    async def get_balance(self, db: AsyncSession, user_id: str) -> CreditSnapshot:
        """Current balance (row is created lazily)."""
        return await self.ensure_balance(db, user_id)

    async def consume(
        self,
        db: AsyncSession,
        user_id: str,
        amount: Any,
        context: Optional[Dict[str, Any]] = None,
    ) -> CreditSnapshot:
        """
        Atomically debit `amount` credits.

        The check and the deduction are one statement:
            UPDATE ... SET credits_used = credits_used + n
            WHERE user_id = u AND credits_total - credits_used >= n
        No row back means the balance was too low; nothing is deducted.
        Store errors are never retried here (an ambiguous failure must not
        risk a double debit).

        Raises:
            CreditValidationError: amount <= 0 or malformed
            InsufficientCredits: remaining < amount
            StoreUnavailable: Database error
        """
        units = self._positive_units(amount)
        await self.ensure_balance(db, user_id)

        model = self.model
        stmt = (
            update(model)
            .where(model.user_id == user_id)
            .where(model.credits_total - model.credits_used >= units)
            .values(credits_used=model.credits_used + units, updated_at=utcnow())
            .returning(model.credits_total, model.credits_used)
            .execution_options(synchronize_session=False)
        )
        try:
            row = (await db.execute(stmt)).one_or_none()
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            raise StoreUnavailable(f"Failed to consume {self.name} credits") from e

        required = from_units(units)
        feature = (context or {}).get("feature", "unknown")

        if row is None:
            current = await self._read(db, user_id)
            available = current.credits_remaining if current else _ZERO
            insufficient_credits_total.labels(ledger=self.name).inc()
            log_insufficient_credits(
                logger, ledger=self.name, user_id=user_id,
                required=required, available=available, feature=feature,
            )
            raise InsufficientCredits(self.name, required, available)

        snapshot = CreditSnapshot.from_units(user_id, row.credits_total, row.credits_used)
        credits_consumed_total.labels(ledger=self.name, feature=feature).inc(float(required))
        log_credits_consumed(
            logger, ledger=self.name, user_id=user_id, amount=required,
            remaining=snapshot.credits_remaining, feature=feature,
        )
        await self._sink.record(
            db, ledger=self.name, action="consume", user_id=user_id,
            amount=units, context=context,
        )
        return snapshot

    async def grant(
        self,
        db: AsyncSession,
        user_id: str,
        amount: Any,
        actor_id: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> CreditSnapshot:
        """
        Atomically add `amount` to credits_total (bonus credits).
        credits_used is never touched. Caller must already be authorized.

        Raises:
            CreditValidationError: amount <= 0 or malformed
            StoreUnavailable: Database error
        """
        units = self._positive_units(amount)
        await self.ensure_balance(db, user_id)

        model = self.model
        stmt = (
            update(model)
            .where(model.user_id == user_id)
            .values(credits_total=model.credits_total + units, updated_at=utcnow())
            .returning(model.credits_total, model.credits_used)
            .execution_options(synchronize_session=False)
        )
        try:
            row = (await db.execute(stmt)).one_or_none()
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            raise StoreUnavailable(f"Failed to grant {self.name} credits") from e
        if row is None:
            raise StoreUnavailable(f"{self.name} credits row missing during grant")

        snapshot = CreditSnapshot.from_units(user_id, row.credits_total, row.credits_used)
        granted = from_units(units)
        credits_granted_total.labels(ledger=self.name).inc(float(granted))
        log_credits_granted(
            logger, ledger=self.name, user_id=user_id, amount=granted,
            actor_id=actor_id, total=snapshot.credits_total,
        )
        await self._sink.record(
            db, ledger=self.name, action="grant", user_id=user_id,
            amount=units, actor_id=actor_id, reason=reason,
        )
        return snapshot

    async def reset(
        self,
        db: AsyncSession,
        user_id: str,
        actor_id: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> CreditSnapshot:
        """
        Administrative reset: back to the fresh-row state
        (default total, nothing used). Independent of the subscription plan.
        """
        await self.ensure_balance(db, user_id)

        model = self.model
        default_units = self._default_units()
        stmt = (
            update(model)
            .where(model.user_id == user_id)
            .values(credits_total=default_units, credits_used=0, updated_at=utcnow())
            .returning(model.credits_total, model.credits_used)
            .execution_options(synchronize_session=False)
        )
        try:
            row = (await db.execute(stmt)).one_or_none()
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            raise StoreUnavailable(f"Failed to reset {self.name} credits") from e
        if row is None:
            raise StoreUnavailable(f"{self.name} credits row missing during reset")

        logger.info(
            f"Reset {self.name} credits for user {user_id}",
            extra={"event": "credits_reset", "ledger": self.name, "user_id": user_id, "actor_id": actor_id},
        )
        await self._sink.record(
            db, ledger=self.name, action="reset", user_id=user_id,
            amount=default_units, actor_id=actor_id, reason=reason,
        )
        return CreditSnapshot.from_units(user_id, row.credits_total, row.credits_used)


ai_ledger = CreditLedger(CreditBalance, "ai", lambda: settings.default_ai_credits)
automation_ledger = CreditLedger(AutomationCreditBalance, "automation", lambda: settings.default_automation_credits)

LEDGERS = {
    ai_ledger.name: ai_ledger,
    automation_ledger.name: automation_ledger,
}


def get_ledger(name: str) -> CreditLedger:
    """Look up a ledger by name ("ai" or "automation")."""
    try:
        return LEDGERS[name]
    except KeyError:
        raise CreditValidationError(f"Unknown ledger: {name}") from None
