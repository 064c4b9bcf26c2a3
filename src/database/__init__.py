"""
Database module for CountyFix
Document collections (reports, messages, userUpvotes, users) on SQLAlchemy
"""

from .connection import DatabaseConnection, get_db, init_db, get_session
from .models import (
    Base,
    Report,
    ReportStatus,
    Message,
    MessageType,
    UserUpvoteRecord,
    User,
    UserRole,
    utcnow,
)

__all__ = [
    "DatabaseConnection",
    "get_db",
    "init_db",
    "get_session",
    "Base",
    "Report",
    "ReportStatus",
    "Message",
    "MessageType",
    "UserUpvoteRecord",
    "User",
    "UserRole",
    "utcnow",
]
