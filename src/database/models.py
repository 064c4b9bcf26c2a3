"""
SQLAlchemy models for CountyFix
Reports, user messages, per-user upvote maps and user profiles
"""

import enum
import uuid
from datetime import datetime, timezone
from typing import Dict, Optional

from sqlalchemy import (
    Column, Integer, String, Text, Boolean,
    DateTime, Index, JSON, Enum as SQLEnum, text
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every DateTime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_doc_id() -> str:
    """Storage-assigned document id."""
    return uuid.uuid4().hex


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class ReportStatus(str, enum.Enum):
    """Lifecycle status of a report."""
    PENDING = "pending"
    APPROVED = "approved"
    COMPLETED = "completed"
    # Only stored when declined reports are retained instead of deleted
    DECLINED = "declined"


class MessageType(str, enum.Enum):
    """Kind of moderation notice sent to a report owner."""
    APPROVAL = "approval"
    DECLINE = "decline"
    GENERAL = "general"


class UserRole(str, enum.Enum):
    """Role stored on the user profile."""
    USER = "user"
    ADMIN = "admin"
    MODERATOR = "moderator"


class Report(Base):
    """
    Issue report submitted by a user.

    Carries two identities: `doc_id` is the storage id that moderation joins
    on, `id` is the submission id generated by the client, used for the image
    key and for user-facing lookups.
    """
    __tablename__ = "reports"

    doc_id = Column(String(32), primary_key=True, default=new_doc_id)
    id = Column(String(64), nullable=False, unique=True, index=True)

    # Issue details
    category = Column(String(50), nullable=False)
    description = Column(String(150), nullable=False)
    image_url = Column(String(500), nullable=False)

    # Address
    address_line1 = Column(String(200), nullable=False)
    address_line2 = Column(String(200))
    county = Column(String(50), nullable=False)
    eircode = Column(String(20), nullable=False)

    # Raw location fix: {"latitude", "longitude", "accuracy"}
    location = Column(JSON, nullable=True)

    # Ownership and workflow
    user_id = Column(String(128), nullable=False, index=True)
    status = Column(
        SQLEnum(ReportStatus, values_callable=_enum_values, native_enum=False, length=20),
        nullable=False,
        default=ReportStatus.PENDING,
    )
    assigned = Column(String(128), nullable=True)
    upvotes = Column(Integer, nullable=False, default=0)

    # Retained declines
    decline_reason = Column(Text)
    declined_at = Column(DateTime)

    timestamp = Column(DateTime, nullable=False, default=utcnow, index=True)

    __table_args__ = (
        Index("idx_report_status", status),
        Index("idx_report_assigned_status", assigned, status),
        # At most one pending report per user
        Index(
            "uq_report_user_pending",
            user_id,
            unique=True,
            sqlite_where=text("status = 'pending'"),
            postgresql_where=text("status = 'pending'"),
        ),
    )

    def __repr__(self):
        return f"<Report({self.doc_id}, id={self.id}, status={self.status.value})>"

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "docId": self.doc_id,
            "id": self.id,
            "category": self.category,
            "description": self.description,
            "imageUrl": self.image_url,
            "addressLine1": self.address_line1,
            "addressLine2": self.address_line2,
            "county": self.county,
            "eircode": self.eircode,
            "location": self.location,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "userId": self.user_id,
            "status": self.status.value,
            "assigned": self.assigned,
            "upvotes": self.upvotes or 0,
        }


class Message(Base):
    """
    Time-boxed notice to a user about one of their reports.

    Created once per moderation transition, removed on dismissal or by the
    expiry sweep.
    """
    __tablename__ = "messages"

    id = Column(String(32), primary_key=True, default=new_doc_id)
    user_id = Column(String(128), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    content = Column(Text, nullable=False)
    type = Column(
        SQLEnum(MessageType, values_callable=_enum_values, native_enum=False, length=20),
        nullable=False,
        default=MessageType.GENERAL,
    )
    # Best effort: a declined report may no longer exist
    report_id = Column(String(64))
    created_at = Column(DateTime, nullable=False, default=utcnow)
    read = Column(Boolean, nullable=False, default=False)
    expires_at = Column(DateTime, nullable=False, index=True)

    def __repr__(self):
        return f"<Message({self.id}, type={self.type.value}, user={self.user_id})>"

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return self.expires_at < (now or utcnow())

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "userId": self.user_id,
            "title": self.title,
            "content": self.content,
            "type": self.type.value,
            "reportId": self.report_id,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "read": self.read,
            "expiresAt": self.expires_at.isoformat() if self.expires_at else None,
        }


class UserUpvoteRecord(Base):
    """
    Per-user map of report id -> 0/1 upvote flag.

    Integers rather than booleans so a flag can be flipped with increment-style
    writes.
    """
    __tablename__ = "user_upvotes"

    user_id = Column(String(128), primary_key=True)
    votes = Column(JSON, nullable=False, default=dict)

    def __repr__(self):
        return f"<UserUpvoteRecord({self.user_id}, votes={len(self.votes or {})})>"

    def has_upvoted(self, report_id: str) -> bool:
        return (self.votes or {}).get(report_id) == 1

    def as_booleans(self) -> Dict[str, bool]:
        """Client view of the stored integer map."""
        return {
            report_id: value == 1
            for report_id, value in (self.votes or {}).items()
        }


class User(Base):
    """User profile, keyed by the identity provider's uid."""
    __tablename__ = "users"

    id = Column(String(128), primary_key=True)
    email = Column(String(200))
    display_name = Column(String(100))
    role = Column(
        SQLEnum(UserRole, values_callable=_enum_values, native_enum=False, length=20),
        nullable=False,
        default=UserRole.USER,
    )
    created_at = Column(DateTime, nullable=False, default=utcnow)

    def __repr__(self):
        return f"<User({self.id}, role={self.role.value})>"

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "email": self.email,
            "displayName": self.display_name,
            "role": self.role.value,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }
