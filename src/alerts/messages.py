"""
CountyFix - User Messages
Time-boxed notices sent to report owners on each moderation transition.
"""

import logging
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from src.auth.session import SessionContext
from src.core.config import settings
from src.core.constants import MESSAGE_TEMPLATES, MESSAGE_TITLES
from src.core.errors import AuthorizationError, MessageNotFoundError, StorageError
from src.database.models import Message, MessageType, Report, utcnow

logger = logging.getLogger(__name__)


class MessageService:
    """Creates, lists and expires user messages."""

    def __init__(self, db: Session, ttl_hours: Optional[int] = None):
        """
        Initialize the message service.

        Args:
            db: Database session
            ttl_hours: Lifetime of a message (default 2 hours)
        """
        self.db = db
        self.ttl = timedelta(hours=settings.message_ttl_hours if ttl_hours is None else ttl_hours)

    def create_for_report(
        self,
        report: Report,
        message_type: MessageType,
        now: Optional[datetime] = None
    ) -> Message:
        """Persist one notice to the report's owner."""
        return self.create(report.user_id, report.id, report.category, message_type, now)

    def create(
        self,
        user_id: str,
        report_id: str,
        category: str,
        message_type: MessageType,
        now: Optional[datetime] = None
    ) -> Message:
        """
        Persist one notice about a report.

        Takes plain values so it also works for reports that were just
        deleted. `expires_at` is exactly `created_at` plus the TTL.

        Raises:
            StorageError: the write failed
        """
        now = now or utcnow()
        title = MESSAGE_TITLES[message_type.value]
        content = MESSAGE_TEMPLATES[message_type.value].format(category=category)

        message = Message(
            user_id=user_id,
            title=title,
            content=content,
            type=message_type,
            report_id=report_id,
            created_at=now,
            read=False,
            expires_at=now + self.ttl,
        )
        self.db.add(message)
        self._commit(f"create {message_type.value} message for report {report_id}")

        logger.info(f"Message {message.id} ({message_type.value}) sent to {user_id}")
        return message

    def list_active(self, user_id: str, now: Optional[datetime] = None) -> List[Message]:
        """Unexpired messages for a user, latest expiry first."""
        now = now or utcnow()
        stmt = (
            select(Message)
            .where(Message.user_id == user_id, Message.expires_at > now)
            .order_by(Message.expires_at.desc())
        )
        return list(self.db.scalars(stmt))

    def _commit(self, action: str) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to {action}: {e}")
            raise StorageError(f"Failed to {action}") from e

    def _owned(self, ctx: SessionContext, message_id: str) -> Message:
        message = self.db.get(Message, message_id)
        if message is None:
            raise MessageNotFoundError(message_id)
        if message.user_id != ctx.user_id:
            raise AuthorizationError("You can only manage your own messages.")
        return message

    def mark_read(self, ctx: SessionContext, message_id: str) -> Message:
        message = self._owned(ctx, message_id)
        message.read = True
        self._commit(f"mark message {message_id} read")
        return message

    def dismiss(self, ctx: SessionContext, message_id: str) -> None:
        """Delete a message at the owner's request."""
        message = self._owned(ctx, message_id)
        self.db.delete(message)
        self._commit(f"dismiss message {message_id}")
        logger.info(f"Message {message_id} dismissed by {ctx.user_id}")

    def sweep_expired(self, now: Optional[datetime] = None) -> int:
        """
        Delete every message whose expiry has passed.

        Returns:
            Number of deleted messages
        """
        now = now or utcnow()
        try:
            result = self.db.execute(delete(Message).where(Message.expires_at < now))
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to sweep expired messages: {e}")
            raise StorageError("Failed to sweep expired messages") from e
        count = result.rowcount or 0
        logger.info(f"Deleted {count} expired messages")
        return count
