"""
Credit-gated AI generation endpoints.

Each handler resolves the feature cost, consumes it, and only then calls the
completion backend. A failed consume stops the request with 402 before any
billable work; a failed completion after consume leaves the credits spent.
"""
import logging
import time

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.ext.asyncio import AsyncSession

from app.ai.base import LLMProvider
from app.ai.factory import get_llm_provider
from app.auth.dependencies import get_current_user
from app.database import get_db
from app.models.profile import Profile
from app.schemas.content import QuizGenerateRequest, QuizResponse, RefineRequest, RefineResponse
from app.schemas.credits import CreditBalanceResponse, InsufficientCreditsResponse
from app.services.cost_policy import CONTENT_REFINE, QUIZ_GENERATE, feature_cost
from app.services.credit_service import ai_ledger
from app.services.exceptions import GenerationError
from app.services.generation_service import generate_quiz, refine_content
from app.utils.logging import log_provider_failure

logger = logging.getLogger(__name__)

router = APIRouter()


def get_provider() -> LLMProvider:
    """Completion backend, resolved before any credit is consumed."""
    try:
        return get_llm_provider()
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))


@router.post("/content/refine", response_model=RefineResponse, responses={402: {"model": InsufficientCreditsResponse}})
async def refine(
    request: RefineRequest,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_user),
    provider: LLMProvider = Depends(get_provider),
):
    """
    Rewrite a piece of content following an instruction.
    Costs 0.5 AI credit.
    """
    user_id = current_user.user_id
    cost = feature_cost(CONTENT_REFINE)
    snapshot = await ai_ledger.consume(
        db, user_id, cost, context={"feature": CONTENT_REFINE}
    )

    start_time = time.time()
    try:
        refined = await run_in_threadpool(
            refine_content, provider, request.content, request.instruction, request.language
        )
    except GenerationError as e:
        log_provider_failure(
            logger, provider=provider.name, operation=CONTENT_REFINE, error=str(e),
            duration_ms=(time.time() - start_time) * 1000, user_id=user_id,
        )
        raise

    return RefineResponse(
        content=refined,
        credits_consumed=float(cost),
        balance=CreditBalanceResponse.from_snapshot(snapshot),
    )


@router.post("/quiz/generate", response_model=QuizResponse, responses={402: {"model": InsufficientCreditsResponse}})
async def quiz_generate(
    request: QuizGenerateRequest,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_user),
    provider: LLMProvider = Depends(get_provider),
):
    """
    Generate a lead-magnet quiz.
    Costs 4 AI credits.
    """
    user_id = current_user.user_id
    cost = feature_cost(QUIZ_GENERATE)
    snapshot = await ai_ledger.consume(
        db, user_id, cost,
        context={"feature": QUIZ_GENERATE, "nb_questions": request.nb_questions},
    )

    start_time = time.time()
    try:
        quiz = await run_in_threadpool(
            generate_quiz, provider, request.objective, request.target,
            request.nb_questions, request.language,
        )
    except GenerationError as e:
        log_provider_failure(
            logger, provider=provider.name, operation=QUIZ_GENERATE, error=str(e),
            duration_ms=(time.time() - start_time) * 1000, user_id=user_id,
        )
        raise

    return QuizResponse(
        quiz=quiz,
        credits_consumed=float(cost),
        balance=CreditBalanceResponse.from_snapshot(snapshot),
    )
