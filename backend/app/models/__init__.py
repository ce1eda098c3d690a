"""
Database models package.
"""
from app.models.base import Base
from app.models.profile import Profile
from app.models.credit_balance import CreditBalance, AutomationCreditBalance
from app.models.credit_change_log import CreditChangeLog
from app.models.content_item import ContentItem, AutoCommentStatus
from app.models.auto_comment_log import AutoCommentLog

__all__ = [
    "Base",
    "Profile",
    "CreditBalance",
    "AutomationCreditBalance",
    "CreditChangeLog",
    "ContentItem",
    "AutoCommentStatus",
    "AutoCommentLog",
]
