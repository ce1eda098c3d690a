"""
Business logic services.
"""
from app.services.credit_service import CreditLedger, CreditSnapshot, ai_ledger, automation_ledger
from app.services.automation_service import AutomationService

__all__ = [
    "CreditLedger",
    "CreditSnapshot",
    "ai_ledger",
    "automation_ledger",
    "AutomationService",
]
