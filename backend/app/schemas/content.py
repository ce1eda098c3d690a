"""
Pydantic schemas for credit-gated AI generation endpoints.
"""
from typing import Any, Dict

from pydantic import BaseModel, Field

from app.schemas.credits import CreditBalanceResponse


class RefineRequest(BaseModel):
    """Schema for content refinement."""
    content: str = Field(..., min_length=1, max_length=20000)
    instruction: str = Field(..., min_length=1, max_length=2000)
    language: str = Field("fr", min_length=2, max_length=5)


class RefineResponse(BaseModel):
    ok: bool = True
    content: str
    credits_consumed: float
    balance: CreditBalanceResponse


class QuizGenerateRequest(BaseModel):
    """Schema for quiz generation."""
    objective: str = Field(..., min_length=1, max_length=1000)
    target: str = Field(..., min_length=1, max_length=1000)
    nb_questions: int = Field(7, ge=3, le=15)
    language: str = Field("fr", min_length=2, max_length=5)


class QuizResponse(BaseModel):
    ok: bool = True
    quiz: Dict[str, Any]
    credits_consumed: float
    balance: CreditBalanceResponse
