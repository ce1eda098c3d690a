"""
Subscription plan gates.
Eligibility only: credit balance is checked separately by the ledger.
"""
from typing import Optional

AUTO_COMMENT_PLANS = ("pro", "elite", "beta", "essential")


def normalize_plan(plan: Optional[str]) -> str:
    return (plan or "").strip().lower() or "free"


def plan_has_auto_comments(plan: Optional[str]) -> bool:
    """True when the plan includes the auto-comment automation."""
    normalized = normalize_plan(plan)
    return any(name in normalized for name in AUTO_COMMENT_PLANS)
