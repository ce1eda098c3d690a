"""
Auto-comment automation endpoints.

User endpoints (Firebase JWT): credits, activate, status.
Worker endpoints (X-N8N-Secret): pending, log, published.
"""
import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user, verify_n8n_secret
from app.database import get_db
from app.models.profile import Profile
from app.schemas.automation import (
    ActivateRequest,
    ActivateResponse,
    AutoCommentLogRequest,
    AutoCommentLogResponse,
    AutoCommentsState,
    AutomationStatusResponse,
    PendingJob,
    PendingJobsResponse,
    PublishedRequest,
)
from app.schemas.credits import CreditBalanceResponse, InsufficientCreditsResponse
from app.services.automation_service import AutomationService, MAX_DAILY_COMMENTS_PER_PLATFORM
from app.services.credit_service import automation_ledger
from app.services.n8n_service import notify_auto_comments_activated

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/credits", response_model=CreditBalanceResponse)
async def get_automation_credits(
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_user)
):
    """Automation credit balance of the authenticated user."""
    snapshot = await automation_ledger.get_balance(db, current_user.user_id)
    return CreditBalanceResponse.from_snapshot(snapshot)


@router.post("/activate", response_model=ActivateResponse, responses={402: {"model": InsufficientCreditsResponse}})
async def activate_auto_comments(
    request: ActivateRequest,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_user)
):
    """
    Activate auto-comments for a post.

    Checks plan, counts, ownership and daily cap, then reserves
    (nb_before + nb_after) x 0.25 automation credits before storing the
    activation. The n8n workflow is notified after the response.
    """
    user_id = current_user.user_id
    result = await AutomationService.activate(
        db,
        user_id=user_id,
        plan=current_user.plan,
        content_id=request.content_id,
        nb_before=request.nb_comments_before,
        nb_after=request.nb_comments_after,
    )

    background_tasks.add_task(
        notify_auto_comments_activated,
        {
            "content_id": result.content_id,
            "user_id": user_id,
            "platform": result.platform,
            "nb_comments_before": result.nb_before,
            "nb_comments_after": result.nb_after,
        },
    )

    return ActivateResponse(
        credits_consumed=float(result.credits_consumed),
        credits_remaining=float(result.snapshot.credits_remaining),
        auto_comments=AutoCommentsState(
            enabled=True,
            nb_before=result.nb_before,
            nb_after=result.nb_after,
            status=result.status.value,
        ),
        balance=CreditBalanceResponse.from_snapshot(result.snapshot),
    )


@router.get("/status", response_model=AutomationStatusResponse)
async def get_automation_status(
    content_id: str = Query(..., min_length=1),
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_user)
):
    """Poll auto-comment progress for one content item."""
    progress = await AutomationService.get_progress(db, content_id, current_user.user_id)
    return AutomationStatusResponse(**progress)


@router.get("/pending", response_model=PendingJobsResponse, dependencies=[Depends(verify_n8n_secret)])
async def list_pending_jobs(
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    """
    Work queue for the automation worker: published posts still owed
    after-comments. Before-comments are handled inline at activation.
    """
    items = await AutomationService.list_after_pending(db, limit=limit)
    jobs = [
        PendingJob(
            content_id=item.id,
            user_id=item.user_id,
            platform=item.channel or item.type or "unknown",
            nb_comments=item.nb_comments_after,
            post_text=item.content or item.title or "",
            post_title=item.title or "",
            max_daily=MAX_DAILY_COMMENTS_PER_PLATFORM,
        )
        for item in items
    ]
    return PendingJobsResponse(count=len(jobs), jobs=jobs)


@router.post("/log", response_model=AutoCommentLogResponse, dependencies=[Depends(verify_n8n_secret)])
async def log_auto_comment(
    request: AutoCommentLogRequest,
    db: AsyncSession = Depends(get_db),
):
    """Record a comment posted by the worker; batch_complete advances the status."""
    status = await AutomationService.record_action(
        db,
        content_id=request.content_id,
        user_id=request.user_id,
        platform=request.platform,
        comment_type=request.comment_type,
        success=request.success,
        comment_text=request.comment_text,
        angle=request.angle,
        target_post_id=request.target_post_id,
        target_post_url=request.target_post_url,
        error=request.error,
        batch_complete=request.batch_complete,
    )
    return AutoCommentLogResponse(auto_comments_status=status.value if status else None)


@router.post("/published", response_model=AutoCommentLogResponse, dependencies=[Depends(verify_n8n_secret)])
async def post_published(
    request: PublishedRequest,
    db: AsyncSession = Depends(get_db),
):
    """Publish callback: moves before_done items to after_pending."""
    status = await AutomationService.mark_published(db, request.content_id)
    return AutoCommentLogResponse(auto_comments_status=status.value if status else None)
