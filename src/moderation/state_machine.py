"""
Moderation state machine for reports.

    pending --approve--> approved --assign--> approved (assigned) --complete--> completed
    pending --decline--> (deleted, or retained as declined)

Each transition is admin-only, mutates the report first and then sends a
message to the owner. The two writes are sequential: a message that fails
after the status change does not roll the status back.
"""

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Generator, List, Optional, Set

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from src.alerts.messages import MessageService
from src.auth.session import SessionContext, require_admin
from src.core.config import Settings, settings as default_settings
from src.core.errors import (
    AuthorizationError,
    InvalidTransitionError,
    ReportNotFoundError,
    StorageError,
)
from src.database.models import Message, MessageType, Report, ReportStatus, utcnow

logger = logging.getLogger(__name__)

DELETED = "deleted"


class ProcessingGuard:
    """
    Report storage ids with a transition in flight.

    Stops the same action being re-entered for one report (double submit).
    It does not coordinate separate processes.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._active: Set[str] = set()

    def is_processing(self, doc_id: str) -> bool:
        with self._lock:
            return doc_id in self._active

    @contextmanager
    def hold(self, doc_id: str) -> Generator[None, None, None]:
        with self._lock:
            if doc_id in self._active:
                raise InvalidTransitionError(f"Report {doc_id} is already being processed.")
            self._active.add(doc_id)
        try:
            yield
        finally:
            with self._lock:
                self._active.discard(doc_id)


# Shared by every ModerationService in the process
_processing_guard = ProcessingGuard()


@dataclass
class TransitionResult:
    """What a transition did."""
    report_id: str
    doc_id: str
    from_status: str
    to_status: str
    message: Optional[Message] = None
    message_delivered: bool = False

    def to_dict(self) -> Dict:
        return {
            "reportId": self.report_id,
            "docId": self.doc_id,
            "fromStatus": self.from_status,
            "toStatus": self.to_status,
            "messageDelivered": self.message_delivered,
            "message": self.message.to_dict() if self.message else None,
        }


class ModerationService:
    """
    The only mutator of report status after creation.

    Usage:
        service = ModerationService(db)
        service.approve(admin_ctx, report.doc_id)
    """

    def __init__(
        self,
        db: Session,
        messages: Optional[MessageService] = None,
        guard: Optional[ProcessingGuard] = None,
        settings: Optional[Settings] = None
    ):
        self.db = db
        self.settings = settings or default_settings
        self.messages = messages or MessageService(db, ttl_hours=self.settings.message_ttl_hours)
        self.guard = guard or _processing_guard

    # ------------------------------------------------------------------
    # Queues
    # ------------------------------------------------------------------

    def list_pending(self, ctx: SessionContext) -> List[Report]:
        """Reports awaiting review, oldest first."""
        require_admin(ctx)
        stmt = (
            select(Report)
            .where(Report.status == ReportStatus.PENDING)
            .order_by(Report.timestamp.asc())
        )
        return list(self.db.scalars(stmt))

    def list_assigned(self, ctx: SessionContext) -> List[Report]:
        """Approved reports the caller has taken on."""
        require_admin(ctx)
        stmt = (
            select(Report)
            .where(Report.assigned == ctx.user_id, Report.status == ReportStatus.APPROVED)
            .order_by(Report.timestamp.asc())
        )
        return list(self.db.scalars(stmt))

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def approve(self, ctx: SessionContext, doc_id: str) -> TransitionResult:
        """pending -> approved, then an approval message to the owner."""
        require_admin(ctx)
        with self.guard.hold(doc_id):
            report = self._load(doc_id)
            self._expect(report, ReportStatus.PENDING, "approve")

            report.status = ReportStatus.APPROVED
            self._commit(f"approve report {report.id}")
            logger.info(f"Report {report.id} approved by {ctx.user_id}")

            return self._notify(
                report.user_id, report.id, report.doc_id, report.category,
                ReportStatus.PENDING.value, ReportStatus.APPROVED.value,
                MessageType.APPROVAL,
            )

    def decline(
        self,
        ctx: SessionContext,
        doc_id: str,
        reason: Optional[str] = None
    ) -> TransitionResult:
        """
        pending -> deleted, then a decline message to the owner.

        With `retain_declined_reports` on, the record is kept with status
        declined, the reason and the decline time instead of being deleted.
        """
        require_admin(ctx)
        with self.guard.hold(doc_id):
            report = self._load(doc_id)
            self._expect(report, ReportStatus.PENDING, "decline")

            # Captured before the record goes away
            owner, report_id, category = report.user_id, report.id, report.category

            if self.settings.retain_declined_reports:
                report.status = ReportStatus.DECLINED
                report.decline_reason = reason
                report.declined_at = utcnow()
                to_status = ReportStatus.DECLINED.value
            else:
                self.db.delete(report)
                to_status = DELETED

            self._commit(f"decline report {report_id}")
            logger.info(f"Report {report_id} declined by {ctx.user_id} ({to_status})")

            return self._notify(
                owner, report_id, doc_id, category,
                ReportStatus.PENDING.value, to_status,
                MessageType.DECLINE,
            )

    def assign(self, ctx: SessionContext, doc_id: str) -> TransitionResult:
        """The caller takes on an approved report. No message is sent."""
        require_admin(ctx)
        with self.guard.hold(doc_id):
            report = self._load(doc_id)
            self._expect(report, ReportStatus.APPROVED, "assign")

            if report.assigned not in (None, ctx.user_id):
                raise InvalidTransitionError(
                    f"Report {report.id} is already assigned to another administrator."
                )

            report.assigned = ctx.user_id
            self._commit(f"assign report {report.id}")
            logger.info(f"Report {report.id} assigned to {ctx.user_id}")

            return TransitionResult(
                report_id=report.id,
                doc_id=report.doc_id,
                from_status=ReportStatus.APPROVED.value,
                to_status=ReportStatus.APPROVED.value,
            )

    def complete(self, ctx: SessionContext, doc_id: str) -> TransitionResult:
        """approved -> completed, only by the assigned administrator."""
        require_admin(ctx)
        with self.guard.hold(doc_id):
            report = self._load(doc_id)
            self._expect(report, ReportStatus.APPROVED, "complete")

            if report.assigned != ctx.user_id:
                logger.warning(
                    f"{ctx.user_id} tried to complete report {report.id} assigned to {report.assigned}"
                )
                raise AuthorizationError(
                    "Only the administrator assigned to this report can complete it."
                )

            report.status = ReportStatus.COMPLETED
            self._commit(f"complete report {report.id}")
            logger.info(f"Report {report.id} completed by {ctx.user_id}")

            return self._notify(
                report.user_id, report.id, report.doc_id, report.category,
                ReportStatus.APPROVED.value, ReportStatus.COMPLETED.value,
                MessageType.GENERAL,
            )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _load(self, doc_id: str) -> Report:
        report = self.db.get(Report, doc_id)
        if report is None:
            raise ReportNotFoundError(doc_id)
        return report

    def _expect(self, report: Report, status: ReportStatus, action: str) -> None:
        if report.status != status:
            raise InvalidTransitionError(
                f"Cannot {action} report {report.id}: it is {report.status.value}, "
                f"expected {status.value}."
            )

    def _commit(self, action: str) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to {action}: {e}")
            raise StorageError(f"Failed to {action}") from e

    def _notify(
        self,
        user_id: str,
        report_id: str,
        doc_id: str,
        category: str,
        from_status: str,
        to_status: str,
        message_type: MessageType
    ) -> TransitionResult:
        result = TransitionResult(
            report_id=report_id,
            doc_id=doc_id,
            from_status=from_status,
            to_status=to_status,
        )
        try:
            result.message = self.messages.create(user_id, report_id, category, message_type)
            result.message_delivered = True
        except StorageError as e:
            # Status change stands
            logger.error(f"Report {report_id} is {to_status} but the owner was not notified: {e}")
        return result
