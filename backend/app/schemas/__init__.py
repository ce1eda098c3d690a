"""
Pydantic schemas for API request/response validation.
"""
from app.schemas.credits import (
    CreditBalanceResponse,
    InsufficientCreditsResponse,
    AdminGrantRequest,
    AdminResetRequest,
)
from app.schemas.content import (
    RefineRequest,
    RefineResponse,
    QuizGenerateRequest,
    QuizResponse,
)
from app.schemas.automation import (
    ActivateRequest,
    ActivateResponse,
    AutoCommentLogRequest,
    AutomationStatusResponse,
)

__all__ = [
    "CreditBalanceResponse",
    "InsufficientCreditsResponse",
    "AdminGrantRequest",
    "AdminResetRequest",
    "RefineRequest",
    "RefineResponse",
    "QuizGenerateRequest",
    "QuizResponse",
    "ActivateRequest",
    "ActivateResponse",
    "AutoCommentLogRequest",
    "AutomationStatusResponse",
]
