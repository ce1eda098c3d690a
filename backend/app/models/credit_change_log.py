"""
Append-only change log for ledger mutations.
Written on a best-effort basis; never part of the ledger transaction.
"""
from sqlalchemy import Column, String, BigInteger, DateTime, JSON, Index

from app.models.base import Base, generate_uuid, utcnow


class CreditChangeLog(Base):
    """One row per consume / grant / reset."""

    __tablename__ = "credit_change_logs"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    ledger = Column(String(32), nullable=False)  # "ai" or "automation"
    action = Column(String(32), nullable=False)  # consume, grant, reset
    user_id = Column(String(128), nullable=False)
    actor_id = Column(String(128), nullable=True)  # admin performing a grant/reset
    amount = Column(BigInteger, nullable=False, default=0)  # hundredths
    reason = Column(String(255), nullable=True)
    context = Column(JSON, nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        Index("idx_credit_change_logs_user", "user_id", "created_at"),
    )

    def __repr__(self):
        return f"<CreditChangeLog(ledger={self.ledger}, action={self.action}, user_id={self.user_id})>"
