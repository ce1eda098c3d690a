"""
Credit balance models.

Two ledgers share the same shape:
- user_credits: general AI credits (content refinement, quizzes, ...)
- automation_credits: auto-comment automation credits

Amounts are stored in hundredths of a credit (0.25 credit == 25) so that
fractional costs accumulate without binary float drift.
"""
from sqlalchemy import Column, String, BigInteger, DateTime, CheckConstraint

from app.models.base import Base, utcnow


class CreditBalanceMixin:
    """Columns shared by every ledger table."""

    user_id = Column(String(128), primary_key=True)
    credits_total = Column(BigInteger, nullable=False, default=0)  # hundredths
    credits_used = Column(BigInteger, nullable=False, default=0)  # hundredths

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return (
            f"<{type(self).__name__}(user_id={self.user_id}, "
            f"total={self.credits_total}, used={self.credits_used})>"
        )


class CreditBalance(CreditBalanceMixin, Base):
    """Primary AI credit balance, one row per user."""

    __tablename__ = "user_credits"

    __table_args__ = (
        CheckConstraint("credits_used >= 0", name="ck_user_credits_used_non_negative"),
        CheckConstraint("credits_total >= 0", name="ck_user_credits_total_non_negative"),
    )


class AutomationCreditBalance(CreditBalanceMixin, Base):
    """Automation credit balance, isolated from the primary ledger."""

    __tablename__ = "automation_credits"

    __table_args__ = (
        CheckConstraint("credits_used >= 0", name="ck_automation_credits_used_non_negative"),
        CheckConstraint("credits_total >= 0", name="ck_automation_credits_total_non_negative"),
    )
