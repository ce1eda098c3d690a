"""
Tests for the credit ledger: atomic consume, admin grant, lazy creation
and the best-effort audit log.
"""
import asyncio
import pytest
from decimal import Decimal

from sqlalchemy import select, func, text
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.dml import Update

from app.models.credit_balance import CreditBalance, AutomationCreditBalance
from app.models.credit_change_log import CreditChangeLog
from app.services.credit_service import (
    CreditLedger,
    CreditSnapshot,
    ai_ledger,
    automation_ledger,
    from_units,
    get_ledger,
    to_units,
)
from app.services.exceptions import CreditValidationError, InsufficientCredits, StoreUnavailable
from tests.factories import seed_balance

USER_ID = "firebase-uid-ledger"


class BrokenSession:
    """Session stand-in whose every statement fails."""

    def __init__(self):
        self.executes = 0
        self.rollbacks = 0

    async def execute(self, *args, **kwargs):
        self.executes += 1
        raise OperationalError("SELECT 1", {}, Exception("connection refused"))

    async def rollback(self):
        self.rollbacks += 1


class FailingUpdateSession:
    """Wraps a real session; UPDATE statements fail, everything else passes through."""

    def __init__(self, session: AsyncSession):
        self._session = session
        self.updates = 0

    async def execute(self, statement, *args, **kwargs):
        if isinstance(statement, Update):
            self.updates += 1
            raise OperationalError(str(statement), {}, Exception("server closed the connection"))
        return await self._session.execute(statement, *args, **kwargs)

    def __getattr__(self, name):
        return getattr(self._session, name)


async def _stored(session: AsyncSession, model, user_id: str):
    session.expire_all()
    row = (await session.execute(select(model).where(model.user_id == user_id))).scalar_one()
    return from_units(row.credits_total), from_units(row.credits_used)


class TestUnits:
    """Tests for the fixed-point conversion helpers."""

    def test_to_units(self):
        assert to_units(Decimal("0.25")) == 25
        assert to_units("4") == 400
        assert to_units(1) == 100

    @pytest.mark.parametrize("value", ["0.001", "abc", "NaN", "Infinity", True, None])
    def test_to_units_rejects_malformed(self, value):
        with pytest.raises(CreditValidationError):
            to_units(value)

    @pytest.mark.parametrize("value", [None, "abc", object()])
    def test_from_units_malformed_reads_as_zero(self, value):
        assert from_units(value) == Decimal("0")

    def test_snapshot_remaining_never_negative(self):
        snapshot = CreditSnapshot.from_units(USER_ID, 100, 250)
        assert snapshot.credits_remaining == Decimal("0")

    def test_snapshot_malformed_values(self):
        snapshot = CreditSnapshot.from_units(USER_ID, None, "garbage")
        assert snapshot.credits_total == Decimal("0")
        assert snapshot.credits_used == Decimal("0")
        assert snapshot.credits_remaining == Decimal("0")


class TestEnsureBalance:
    """Tests for lazy row creation."""

    @pytest.mark.asyncio
    async def test_creates_row_with_default_total(self, db_session: AsyncSession):
        ledger = CreditLedger(CreditBalance, "ai", lambda: Decimal("3"))

        snapshot = await ledger.ensure_balance(db_session, USER_ID)

        assert snapshot.credits_total == Decimal("3")
        assert snapshot.credits_used == Decimal("0")
        assert await _stored(db_session, CreditBalance, USER_ID) == (Decimal("3"), Decimal("0"))

    @pytest.mark.asyncio
    async def test_existing_row_not_overwritten(self, db_session: AsyncSession):
        await seed_balance(db_session, CreditBalance, USER_ID, total="10", used="7.5")
        ledger = CreditLedger(CreditBalance, "ai", lambda: Decimal("3"))

        snapshot = await ledger.ensure_balance(db_session, USER_ID)

        assert snapshot.credits_total == Decimal("10")
        assert snapshot.credits_used == Decimal("7.5")

    @pytest.mark.asyncio
    async def test_concurrent_creation_yields_one_row(self, session_maker):
        ledger = CreditLedger(AutomationCreditBalance, "automation", lambda: Decimal("2"))
        sessions = [session_maker() for _ in range(5)]
        try:
            snapshots = await asyncio.gather(
                *(ledger.ensure_balance(session, USER_ID) for session in sessions)
            )
        finally:
            for session in sessions:
                await session.close()

        assert all(s.credits_total == Decimal("2") for s in snapshots)
        async with session_maker() as session:
            count = (await session.execute(
                select(func.count()).select_from(AutomationCreditBalance)
            )).scalar()
        assert count == 1

    @pytest.mark.asyncio
    async def test_missing_user_id_rejected(self, db_session: AsyncSession):
        with pytest.raises(CreditValidationError):
            await ai_ledger.ensure_balance(db_session, "")

    @pytest.mark.asyncio
    async def test_read_retried_once_then_unavailable(self):
        session = BrokenSession()

        with pytest.raises(StoreUnavailable):
            await ai_ledger.get_balance(session, USER_ID)

        assert session.executes == 2


class TestConsume:
    """Tests for atomic consumption."""

    @pytest.mark.asyncio
    async def test_consume_deducts(self, db_session: AsyncSession):
        await seed_balance(db_session, CreditBalance, USER_ID, total="1")

        snapshot = await ai_ledger.consume(db_session, USER_ID, Decimal("0.25"))

        assert snapshot.credits_used == Decimal("0.25")
        assert snapshot.credits_remaining == Decimal("0.75")
        assert await _stored(db_session, CreditBalance, USER_ID) == (Decimal("1"), Decimal("0.25"))

    @pytest.mark.asyncio
    async def test_quarter_credits_exhaust_exactly(self, db_session: AsyncSession):
        await seed_balance(db_session, AutomationCreditBalance, USER_ID, total="1")

        for expected_used in ("0.25", "0.50", "0.75", "1.00"):
            snapshot = await automation_ledger.consume(db_session, USER_ID, "0.25")
            assert snapshot.credits_used == Decimal(expected_used)

        with pytest.raises(InsufficientCredits) as exc_info:
            await automation_ledger.consume(db_session, USER_ID, "0.25")

        assert exc_info.value.available == Decimal("0")
        assert exc_info.value.shortfall == Decimal("0.25")
        assert await _stored(db_session, AutomationCreditBalance, USER_ID) == (Decimal("1"), Decimal("1"))

    @pytest.mark.asyncio
    async def test_insufficient_leaves_balance_unchanged(self, db_session: AsyncSession):
        # Quiz costs 4, only 2 left
        await seed_balance(db_session, CreditBalance, USER_ID, total="10", used="8")

        with pytest.raises(InsufficientCredits) as exc_info:
            await ai_ledger.consume(db_session, USER_ID, Decimal("4"), context={"feature": "quiz_generate"})

        assert exc_info.value.ledger == "ai"
        assert exc_info.value.required == Decimal("4")
        assert exc_info.value.available == Decimal("2")
        assert exc_info.value.shortfall == Decimal("2")
        assert await _stored(db_session, CreditBalance, USER_ID) == (Decimal("10"), Decimal("8"))

    @pytest.mark.asyncio
    async def test_unknown_user_gets_zero_row_and_is_refused(self, db_session: AsyncSession):
        with pytest.raises(InsufficientCredits):
            await ai_ledger.consume(db_session, "brand-new-user", Decimal("0.5"))

        assert await _stored(db_session, CreditBalance, "brand-new-user") == (Decimal("0"), Decimal("0"))

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", [0, -1, "0.001", "abc"])
    async def test_invalid_amount_rejected(self, db_session: AsyncSession, amount):
        await seed_balance(db_session, CreditBalance, USER_ID, total="5")

        with pytest.raises(CreditValidationError):
            await ai_ledger.consume(db_session, USER_ID, amount)

        assert await _stored(db_session, CreditBalance, USER_ID) == (Decimal("5"), Decimal("0"))

    @pytest.mark.asyncio
    async def test_concurrent_consume_never_overdraws(self, db_session: AsyncSession, session_maker):
        await seed_balance(db_session, AutomationCreditBalance, USER_ID, total="1")

        async def attempt():
            async with session_maker() as session:
                return await automation_ledger.consume(session, USER_ID, Decimal("0.75"))

        results = await asyncio.gather(attempt(), attempt(), return_exceptions=True)

        successes = [r for r in results if isinstance(r, CreditSnapshot)]
        refusals = [r for r in results if isinstance(r, InsufficientCredits)]
        assert len(successes) == 1
        assert len(refusals) == 1
        assert await _stored(db_session, AutomationCreditBalance, USER_ID) == (Decimal("1"), Decimal("0.75"))

    @pytest.mark.asyncio
    async def test_ledgers_are_isolated(self, db_session: AsyncSession):
        await seed_balance(db_session, CreditBalance, USER_ID, total="5")
        await seed_balance(db_session, AutomationCreditBalance, USER_ID, total="1")

        await automation_ledger.consume(db_session, USER_ID, Decimal("1"))

        ai = await ai_ledger.get_balance(db_session, USER_ID)
        assert ai.credits_remaining == Decimal("5")

    @pytest.mark.asyncio
    async def test_consume_store_error_not_retried(self, db_session: AsyncSession):
        await seed_balance(db_session, CreditBalance, USER_ID, total="5")
        session = FailingUpdateSession(db_session)

        with pytest.raises(StoreUnavailable):
            await ai_ledger.consume(session, USER_ID, Decimal("1"))

        assert session.updates == 1
        assert await _stored(db_session, CreditBalance, USER_ID) == (Decimal("5"), Decimal("0"))


class TestGrant:
    """Tests for administrative grants and resets."""

    @pytest.mark.asyncio
    async def test_grant_adds_to_total_only(self, db_session: AsyncSession):
        await seed_balance(db_session, CreditBalance, USER_ID, total="5", used="3")

        snapshot = await ai_ledger.grant(db_session, USER_ID, Decimal("20"), actor_id="admin-1", reason="support")

        assert snapshot.credits_total == Decimal("25")
        assert snapshot.credits_used == Decimal("3")
        assert snapshot.credits_remaining == Decimal("22")

    @pytest.mark.asyncio
    async def test_bonus_grant_on_fresh_account(self, db_session: AsyncSession):
        snapshot = await ai_ledger.grant(db_session, USER_ID, Decimal("20"))

        assert (snapshot.credits_total, snapshot.credits_used, snapshot.credits_remaining) == (
            Decimal("20"), Decimal("0"), Decimal("20")
        )

    @pytest.mark.asyncio
    async def test_grants_accumulate_around_consumes(self, db_session: AsyncSession):
        await seed_balance(db_session, CreditBalance, USER_ID, total="2")

        await ai_ledger.grant(db_session, USER_ID, Decimal("10"))
        await ai_ledger.consume(db_session, USER_ID, Decimal("4"))
        snapshot = await ai_ledger.grant(db_session, USER_ID, Decimal("5"))

        assert snapshot.credits_total == Decimal("17")
        assert snapshot.credits_used == Decimal("4")

    @pytest.mark.asyncio
    async def test_full_quiz_balance_spent_once(self, db_session: AsyncSession):
        await seed_balance(db_session, CreditBalance, USER_ID, total="4")

        snapshot = await ai_ledger.consume(db_session, USER_ID, Decimal("4"))
        assert snapshot.credits_remaining == Decimal("0")

        with pytest.raises(InsufficientCredits):
            await ai_ledger.consume(db_session, USER_ID, Decimal("4"))
        assert await _stored(db_session, CreditBalance, USER_ID) == (Decimal("4"), Decimal("4"))

    @pytest.mark.asyncio
    async def test_grant_creates_missing_row(self, db_session: AsyncSession):
        snapshot = await automation_ledger.grant(db_session, "fresh-user", "2.5")

        assert snapshot.credits_total == Decimal("2.5")
        assert snapshot.credits_used == Decimal("0")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", [0, -5, "1.234"])
    async def test_grant_invalid_amount(self, db_session: AsyncSession, amount):
        with pytest.raises(CreditValidationError):
            await ai_ledger.grant(db_session, USER_ID, amount)

    @pytest.mark.asyncio
    async def test_grant_unblocks_consume(self, db_session: AsyncSession):
        await seed_balance(db_session, CreditBalance, USER_ID, total="1", used="1")
        with pytest.raises(InsufficientCredits):
            await ai_ledger.consume(db_session, USER_ID, Decimal("0.5"))

        await ai_ledger.grant(db_session, USER_ID, Decimal("1"))
        snapshot = await ai_ledger.consume(db_session, USER_ID, Decimal("0.5"))

        assert snapshot.credits_remaining == Decimal("0.5")

    @pytest.mark.asyncio
    async def test_reset_restores_default(self, db_session: AsyncSession):
        await seed_balance(db_session, CreditBalance, USER_ID, total="30", used="12")
        ledger = CreditLedger(CreditBalance, "ai", lambda: Decimal("3"))

        snapshot = await ledger.reset(db_session, USER_ID, actor_id="admin-1")

        assert snapshot.credits_total == Decimal("3")
        assert snapshot.credits_used == Decimal("0")


class TestAudit:
    """Tests for the change log written after each mutation."""

    @pytest.mark.asyncio
    async def test_mutations_are_logged(self, db_session: AsyncSession):
        await seed_balance(db_session, CreditBalance, USER_ID, total="5")

        await ai_ledger.consume(db_session, USER_ID, Decimal("0.5"), context={"feature": "content_refine"})
        await ai_ledger.grant(db_session, USER_ID, Decimal("2"), actor_id="admin-1", reason="bonus")

        rows = (await db_session.execute(
            select(CreditChangeLog).order_by(CreditChangeLog.created_at)
        )).scalars().all()
        assert [(r.action, r.amount) for r in rows] == [("consume", 50), ("grant", 200)]
        assert rows[0].context == {"feature": "content_refine"}
        assert rows[1].actor_id == "admin-1"

    @pytest.mark.asyncio
    async def test_audit_failure_does_not_fail_consume(self, db_session: AsyncSession, test_user):
        user_id = test_user.user_id
        await seed_balance(db_session, CreditBalance, user_id, total="5")
        await db_session.execute(text("DROP TABLE credit_change_logs"))
        await db_session.commit()

        snapshot = await ai_ledger.consume(db_session, user_id, Decimal("1"))

        assert snapshot.credits_remaining == Decimal("4")
        # Objects held by the caller's session are still loaded
        assert test_user.plan == "pro"
        assert await _stored(db_session, CreditBalance, user_id) == (Decimal("5"), Decimal("1"))

    @pytest.mark.asyncio
    async def test_audit_failure_does_not_fail_grant(self, db_session: AsyncSession):
        await db_session.execute(text("DROP TABLE credit_change_logs"))
        await db_session.commit()

        snapshot = await automation_ledger.grant(db_session, USER_ID, Decimal("3"), actor_id="admin-1")

        assert snapshot.credits_total == Decimal("3")
        assert await _stored(db_session, AutomationCreditBalance, USER_ID) == (Decimal("3"), Decimal("0"))


class TestGetLedger:

    def test_known_ledgers(self):
        assert get_ledger("ai") is ai_ledger
        assert get_ledger("automation") is automation_ledger

    def test_unknown_ledger(self):
        with pytest.raises(CreditValidationError):
            get_ledger("bonus")
