"""
Content item model.
Only the columns the auto-comment automation reads and writes are mapped.
"""
from sqlalchemy import Column, String, Integer, BigInteger, Boolean, DateTime, Text, Index, Enum as SQLEnum
import enum

from app.models.base import Base, generate_uuid, utcnow


class AutoCommentStatus(str, enum.Enum):
    """
    Auto-comment lifecycle of a content item.

    pending -> before_done -> after_pending -> completed
    """
    PENDING = "pending"  # before-comments owed
    BEFORE_DONE = "before_done"  # waiting for the post to be published
    AFTER_PENDING = "after_pending"  # published, after-comments owed
    COMPLETED = "completed"


class ContentItem(Base):
    """Generated content (post, email, ...) owned by a user."""

    __tablename__ = "content_items"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(128), nullable=False)
    type = Column(String(32), nullable=True)  # post, email, article, ...
    title = Column(String(255), nullable=True)
    content = Column(Text, nullable=True)
    status = Column(String(32), nullable=False, default="draft")  # draft, scheduled, published
    channel = Column(String(32), nullable=True)  # linkedin, facebook, instagram, threads, x, ...

    auto_comments_enabled = Column(Boolean, nullable=False, default=False)
    nb_comments_before = Column(Integer, nullable=False, default=0)
    nb_comments_after = Column(Integer, nullable=False, default=0)
    auto_comments_credits_consumed = Column(BigInteger, nullable=False, default=0)  # hundredths
    auto_comments_status = Column(
        SQLEnum(AutoCommentStatus, name="autocommentstatus", values_callable=lambda x: [e.value for e in x]),
        nullable=True
    )

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
    published_at = Column(DateTime, nullable=True)

    __table_args__ = (
        Index("idx_content_items_user", "user_id"),
        Index("idx_content_items_auto_status", "auto_comments_enabled", "auto_comments_status"),
    )

    def __repr__(self):
        return f"<ContentItem(id={self.id}, user_id={self.user_id}, auto_status={self.auto_comments_status})>"
