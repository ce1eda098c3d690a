"""
AutoCommentLog model: append-only log of comments posted by the automation.
Used for progress reporting and the daily per-platform anti-spam cap.
"""
from sqlalchemy import Column, String, DateTime, Text, Index

from app.models.base import Base, generate_uuid, utcnow


class AutoCommentLog(Base):
    """One comment posted (or attempted) by the automation."""

    __tablename__ = "auto_comment_logs"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(128), nullable=False)
    content_id = Column(String(36), nullable=False)
    platform = Column(String(32), nullable=False)
    comment_type = Column(String(16), nullable=False)  # before, after
    status = Column(String(16), nullable=False)  # published, failed
    comment_text = Column(Text, nullable=True)
    angle = Column(String(64), nullable=True)
    target_post_id = Column(String(255), nullable=True)
    target_post_url = Column(String(1024), nullable=True)
    error_message = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        Index("idx_auto_comment_logs_daily", "user_id", "platform", "created_at"),
        Index("idx_auto_comment_logs_content", "content_id", "comment_type"),
    )

    def __repr__(self):
        return f"<AutoCommentLog(content_id={self.content_id}, type={self.comment_type}, status={self.status})>"
