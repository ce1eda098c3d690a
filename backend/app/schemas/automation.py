"""
Pydantic schemas for auto-comment automation endpoints.
"""
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, StrictInt

from app.schemas.credits import CreditBalanceResponse
from app.services.cost_policy import MAX_COMMENTS_BEFORE, MAX_COMMENTS_AFTER


class ActivateRequest(BaseModel):
    """Schema for auto-comment activation."""
    content_id: str = Field(..., min_length=1, max_length=36)
    nb_comments_before: StrictInt = Field(..., ge=0, le=MAX_COMMENTS_BEFORE)
    nb_comments_after: StrictInt = Field(..., ge=0, le=MAX_COMMENTS_AFTER)


class AutoCommentsState(BaseModel):
    enabled: bool
    nb_before: int
    nb_after: int
    status: str


class ActivateResponse(BaseModel):
    ok: bool = True
    credits_consumed: float
    credits_remaining: float
    auto_comments: AutoCommentsState
    balance: CreditBalanceResponse


class AutoCommentLogRequest(BaseModel):
    """Schema for a comment reported by the automation worker."""
    content_id: str
    user_id: str
    platform: str = Field(..., min_length=1, max_length=32)
    comment_type: Literal["before", "after"]
    success: bool = True
    comment_text: Optional[str] = None
    angle: Optional[str] = None
    target_post_id: Optional[str] = None
    target_post_url: Optional[str] = None
    error: Optional[str] = None
    batch_complete: bool = False


class AutoCommentLogResponse(BaseModel):
    ok: bool = True
    auto_comments_status: Optional[str] = None


class PublishedRequest(BaseModel):
    """Schema for the publish callback."""
    content_id: str


class PendingJob(BaseModel):
    content_id: str
    user_id: str
    platform: str
    comment_type: Literal["after"] = "after"
    nb_comments: int
    post_text: str
    post_title: str
    max_daily: int


class PendingJobsResponse(BaseModel):
    ok: bool = True
    count: int
    jobs: List[PendingJob]


class ProgressCounts(BaseModel):
    before_done: int
    before_total: int
    after_done: int
    after_total: int


class AutomationStatusResponse(BaseModel):
    ok: bool = True
    content_id: str
    post_status: str
    auto_comments_enabled: bool
    auto_comments_status: Optional[str] = None
    nb_comments_before: int
    nb_comments_after: int
    progress: ProgressCounts
