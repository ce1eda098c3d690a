"""
Auto-comment automation service.

Activation reserves the full planned volume on the automation ledger up
front (pay once at activation, no per-comment billing and no refund on
cancel). The per-item status then advances as the external automation
worker reports progress:

    pending -> before_done -> after_pending -> completed
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import select, update, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.base import utcnow
from app.models.content_item import ContentItem, AutoCommentStatus
from app.models.auto_comment_log import AutoCommentLog
from app.services.cost_policy import (
    AUTO_COMMENTS,
    CREDIT_PER_COMMENT,
    auto_comments_cost,
    validate_auto_comment_counts,
)
from app.services.credit_service import CreditLedger, CreditSnapshot, automation_ledger, to_units
from app.services.exceptions import (
    AutoCommentsAlreadyActive,
    ContentAccessDenied,
    ContentNotFound,
    CreditValidationError,
    DailyLimitReached,
    InvalidTransition,
    PlanRequired,
    StoreUnavailable,
)
from app.services.plans import normalize_plan, plan_has_auto_comments
from app.utils.logging import log_automation_activated, log_automation_transition
from app.utils.metrics import automation_activations_total, automation_comments_logged_total

logger = logging.getLogger(__name__)

# Max auto-comments per user per day per platform (anti-spam)
MAX_DAILY_COMMENTS_PER_PLATFORM = 20

COMMENT_TYPES = ("before", "after")

# (reported batch, current status) -> next status
BATCH_TRANSITIONS = {
    ("before", AutoCommentStatus.PENDING): AutoCommentStatus.BEFORE_DONE,
    ("after", AutoCommentStatus.AFTER_PENDING): AutoCommentStatus.COMPLETED,
}


@dataclass(frozen=True)
class ActivationResult:
    """Outcome of a successful activation."""
    content_id: str
    platform: str
    nb_before: int
    nb_after: int
    credits_consumed: Decimal
    status: AutoCommentStatus
    snapshot: CreditSnapshot


def start_of_day(now: Optional[datetime] = None) -> datetime:
    """UTC midnight of the given (naive UTC) timestamp."""
    current = now or utcnow()
    return current.replace(hour=0, minute=0, second=0, microsecond=0)


class AutomationService:
    """Business logic for auto-comment activation and progress tracking."""

    @staticmethod
    async def get_daily_action_count(
        db: AsyncSession,
        user_id: str,
        platform: str,
        since: Optional[datetime] = None,
    ) -> int:
        """
        Count comments already published today on a platform.
        Reads the append-only action log, not the ledger.
        """
        since = since or start_of_day()
        result = await db.execute(
            select(func.count(AutoCommentLog.id)).where(
                AutoCommentLog.user_id == user_id,
                AutoCommentLog.platform == platform,
                AutoCommentLog.status == "published",
                AutoCommentLog.created_at >= since,
            )
        )
        return int(result.scalar() or 0)

    @staticmethod
    async def get_content_for_user(db: AsyncSession, content_id: str, user_id: str) -> ContentItem:
        """
        Fetch a content item owned by user_id.

        Raises:
            ContentNotFound: No such content item
            ContentAccessDenied: Content belongs to another user
        """
        result = await db.execute(select(ContentItem).where(ContentItem.id == content_id))
        content = result.scalar_one_or_none()
        if content is None:
            raise ContentNotFound(f"Content {content_id} not found")
        if content.user_id != user_id:
            raise ContentAccessDenied(f"Content {content_id} does not belong to user")
        return content

    @staticmethod
    async def activate(
        db: AsyncSession,
        user_id: str,
        plan: Optional[str],
        content_id: str,
        nb_before: int,
        nb_after: int,
        ledger: CreditLedger = automation_ledger,
    ) -> ActivationResult:
        """
        Activate auto-comments for a content item.

        Order matters: every check runs and the full cost is consumed
        before any automation state is written.

        Raises:
            PlanRequired: Plan does not include auto-comments
            CreditValidationError: Invalid comment counts
            ContentNotFound / ContentAccessDenied: Ownership check failed
            AutoCommentsAlreadyActive: Already activated
            DailyLimitReached: Planned before-comments exceed today's cap
            InsufficientCredits: Automation balance too low
            StoreUnavailable: Database error
        """
        if not plan_has_auto_comments(plan):
            raise PlanRequired("auto_comments", normalize_plan(plan))

        nb_before, nb_after = validate_auto_comment_counts(nb_before, nb_after)
        cost = auto_comments_cost(nb_before, nb_after)

        content = await AutomationService.get_content_for_user(db, content_id, user_id)
        if content.auto_comments_enabled:
            raise AutoCommentsAlreadyActive(f"Auto-comments already enabled for {content_id}")
        platform = content.channel or content.type or "unknown"

        if nb_before > 0:
            today = await AutomationService.get_daily_action_count(db, user_id, platform)
            if today + nb_before > MAX_DAILY_COMMENTS_PER_PLATFORM:
                raise DailyLimitReached(platform, today, MAX_DAILY_COMMENTS_PER_PLATFORM)

        snapshot = await ledger.consume(
            db,
            user_id,
            cost,
            context={
                "feature": AUTO_COMMENTS,
                "content_id": content_id,
                "nb_before": nb_before,
                "nb_after": nb_after,
                "credit_per_comment": CREDIT_PER_COMMENT,
            },
        )

        initial_status = AutoCommentStatus.PENDING if nb_before > 0 else AutoCommentStatus.BEFORE_DONE
        try:
            result = await db.execute(
                update(ContentItem)
                .where(ContentItem.id == content_id)
                .where(ContentItem.auto_comments_enabled.is_(False))
                .values(
                    auto_comments_enabled=True,
                    nb_comments_before=nb_before,
                    nb_comments_after=nb_after,
                    auto_comments_credits_consumed=to_units(cost),
                    auto_comments_status=initial_status,
                    updated_at=utcnow(),
                )
                .returning(ContentItem.id)
                .execution_options(synchronize_session=False)
            )
            activated = result.one_or_none() is not None
            await db.commit()
            await db.refresh(content)
        except SQLAlchemyError as e:
            await db.rollback()
            # Credits stay spent: the reservation is already committed
            logger.error(
                f"Failed to store auto-comment activation for {content_id}: {e}",
                extra={"event": "automation_activation_write_failed", "content_id": content_id, "user_id": user_id},
                exc_info=True,
            )
            raise StoreUnavailable("Failed to store auto-comment activation") from e

        if not activated:
            # Another request activated the same item between our check and
            # our write: give the reservation back with a compensating grant.
            await ledger.grant(
                db, user_id, cost, actor_id="system", reason=f"auto_comments_conflict:{content_id}"
            )
            raise AutoCommentsAlreadyActive(f"Auto-comments already enabled for {content_id}")

        automation_activations_total.labels(platform=platform).inc()
        log_automation_activated(
            logger,
            user_id=user_id,
            content_id=content_id,
            nb_before=nb_before,
            nb_after=nb_after,
            credits_consumed=cost,
            status=initial_status.value,
            platform=platform,
        )
        return ActivationResult(
            content_id=content_id,
            platform=platform,
            nb_before=nb_before,
            nb_after=nb_after,
            credits_consumed=cost,
            status=initial_status,
            snapshot=snapshot,
        )

    @staticmethod
    async def record_action(
        db: AsyncSession,
        *,
        content_id: str,
        user_id: str,
        platform: str,
        comment_type: str,
        success: bool,
        comment_text: Optional[str] = None,
        angle: Optional[str] = None,
        target_post_id: Optional[str] = None,
        target_post_url: Optional[str] = None,
        error: Optional[str] = None,
        batch_complete: bool = False,
    ) -> Optional[AutoCommentStatus]:
        """
        Log one comment reported by the automation worker and, when the
        batch is complete, advance the item's status.

        A completion signal for a phase that already advanced is accepted
        as a no-op so worker retries are harmless.

        Returns:
            The item's auto-comment status after the call

        Raises:
            CreditValidationError: Unknown comment_type
            ContentNotFound / ContentAccessDenied: Unknown item or wrong user
            InvalidTransition: Completion signal out of order
        """
        if comment_type not in COMMENT_TYPES:
            raise CreditValidationError(f"comment_type must be one of {COMMENT_TYPES}")

        content = await AutomationService.get_content_for_user(db, content_id, user_id)
        previous = content.auto_comments_status

        new_status = previous
        if batch_complete:
            target = BATCH_TRANSITIONS.get((comment_type, previous))
            if target is not None:
                new_status = target
            elif previous not in _done_states(comment_type):
                raise InvalidTransition(
                    f"Cannot complete '{comment_type}' batch from status {_value(previous)}"
                )

        if comment_text or target_post_id:
            db.add(AutoCommentLog(
                user_id=user_id,
                content_id=content_id,
                platform=platform,
                comment_type=comment_type,
                status="published" if success else "failed",
                comment_text=comment_text or "",
                angle=angle,
                target_post_id=target_post_id,
                target_post_url=target_post_url,
                error_message=None if success else (error or "Unknown error"),
            ))
            automation_comments_logged_total.labels(
                platform=platform,
                comment_type=comment_type,
                status="published" if success else "failed",
            ).inc()

        content.auto_comments_status = new_status
        await db.commit()

        if new_status != previous:
            log_automation_transition(logger, content_id, _value(previous), _value(new_status))
        return new_status

    @staticmethod
    async def mark_published(db: AsyncSession, content_id: str) -> Optional[AutoCommentStatus]:
        """
        Publish callback: the post went live.

        before_done -> after_pending (or completed when no after-comments
        are owed). Items without automation are just marked published.

        Raises:
            ContentNotFound: No such content item
            InvalidTransition: Before-comments still pending
        """
        result = await db.execute(select(ContentItem).where(ContentItem.id == content_id))
        content = result.scalar_one_or_none()
        if content is None:
            raise ContentNotFound(f"Content {content_id} not found")

        previous = content.auto_comments_status
        new_status = previous
        if content.auto_comments_enabled:
            if previous == AutoCommentStatus.PENDING:
                raise InvalidTransition("Before-comments are still pending")
            if previous == AutoCommentStatus.BEFORE_DONE:
                new_status = (
                    AutoCommentStatus.AFTER_PENDING
                    if content.nb_comments_after > 0
                    else AutoCommentStatus.COMPLETED
                )

        content.status = "published"
        if content.published_at is None:
            content.published_at = utcnow()
        content.auto_comments_status = new_status
        await db.commit()

        if new_status != previous:
            log_automation_transition(logger, content_id, _value(previous), _value(new_status))
        return new_status

    @staticmethod
    async def list_after_pending(db: AsyncSession, limit: int = 20) -> List[ContentItem]:
        """Published items still owed after-comments, oldest first."""
        result = await db.execute(
            select(ContentItem)
            .where(
                ContentItem.auto_comments_enabled.is_(True),
                ContentItem.auto_comments_status == AutoCommentStatus.AFTER_PENDING,
                ContentItem.nb_comments_after > 0,
            )
            .order_by(ContentItem.created_at.asc())
            .limit(limit)
        )
        return list(result.scalars().all())

    @staticmethod
    async def get_progress(db: AsyncSession, content_id: str, user_id: str) -> Dict[str, Any]:
        """Auto-comment progress for one content item."""
        content = await AutomationService.get_content_for_user(db, content_id, user_id)

        result = await db.execute(
            select(AutoCommentLog.comment_type, func.count(AutoCommentLog.id))
            .where(
                AutoCommentLog.content_id == content_id,
                AutoCommentLog.status == "published",
            )
            .group_by(AutoCommentLog.comment_type)
        )
        done = {comment_type: count for comment_type, count in result.all()}

        return {
            "content_id": content_id,
            "post_status": content.status,
            "auto_comments_enabled": content.auto_comments_enabled,
            "auto_comments_status": _value(content.auto_comments_status),
            "nb_comments_before": content.nb_comments_before,
            "nb_comments_after": content.nb_comments_after,
            "progress": {
                "before_done": done.get("before", 0),
                "before_total": content.nb_comments_before,
                "after_done": done.get("after", 0),
                "after_total": content.nb_comments_after,
            },
        }


def _done_states(comment_type: str) -> tuple:
    # States in which the given batch has already been reported complete
    if comment_type == "before":
        return (
            AutoCommentStatus.BEFORE_DONE,
            AutoCommentStatus.AFTER_PENDING,
            AutoCommentStatus.COMPLETED,
        )
    return (AutoCommentStatus.COMPLETED,)


def _value(status: Optional[AutoCommentStatus]) -> Optional[str]:
    return status.value if status is not None else None
