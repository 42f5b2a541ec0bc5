# carmarket/models/__init__.py
# Import models in dependency order
from .user import User, UserRole
from .listing import Listing, ListingStatus
from .comment import Comment
from .moderation_log import ModerationLog, REMOVED_STATUS
from .report import Report, ReportStatus

__all__ = [
    "User",
    "UserRole",
    "Listing",
    "ListingStatus",
    "Comment",
    "ModerationLog",
    "REMOVED_STATUS",
    "Report",
    "ReportStatus",
]
