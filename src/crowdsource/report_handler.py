"""
Report submission workflow
Validates, screens and persists new issue reports from users
"""

import logging
import random
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from src.auth.session import SessionContext
from src.core.config import Settings, settings as default_settings
from src.core.errors import (
    DuplicateLocationError,
    ExistingPendingReportError,
    InvalidTransitionError,
    AuthorizationError,
    ReportNotFoundError,
    StorageError,
    SubmissionIdInUseError,
    VerificationRejected,
)
from src.crowdsource.counties import canonical_county
from src.crowdsource.deduplication import GeoLocation, find_nearby_pending
from src.crowdsource.validation import ReportValidator
from src.database.models import Report, ReportStatus, utcnow
from src.storage.image_store import ImageStore, report_image_key

logger = logging.getLogger(__name__)

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36[remainder])
    return "".join(reversed(digits))


def generate_submission_id() -> str:
    """Client-style submission id: base36 millisecond clock + base36 random."""
    timestamp = _to_base36(int(time.time() * 1000))
    suffix = _to_base36(random.randrange(1_000_000))
    return f"{timestamp}-{suffix}"


class ImageVerifier(Protocol):
    """Anything that can judge whether a photo matches a category."""

    def verify(self, image_bytes: bytes, category: str) -> bool:
        ...


@dataclass
class ReportDraft:
    """
    Form state of a submission in progress.

    Owned by the caller; the workflow only mutates it to reset the
    image-related fields after a failed verification.
    """
    submission_id: str = field(default_factory=generate_submission_id)
    image: Optional[bytes] = None
    category: str = ""
    description: str = ""
    address_line1: str = ""
    address_line2: Optional[str] = None
    county: str = ""
    eircode: str = ""
    location: Optional[GeoLocation] = None

    def reset_for_retry(self) -> None:
        """Clear image, category and description and start a fresh submission id."""
        self.image = None
        self.category = ""
        self.description = ""
        self.submission_id = generate_submission_id()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary (without the image bytes)."""
        return {
            "submissionId": self.submission_id,
            "hasImage": bool(self.image),
            "category": self.category,
            "description": self.description,
            "addressLine1": self.address_line1,
            "addressLine2": self.address_line2,
            "county": self.county,
            "eircode": self.eircode,
            "location": self.location.to_dict() if self.location else None,
        }


class SubmissionStatus(Enum):
    """Outcome of a submission attempt."""
    SUBMITTED = "submitted"
    REJECTED = "rejected"


@dataclass
class SubmissionOutcome:
    """
    Non-fatal result of `ReportHandler.submit`.

    A rejected outcome (photo does not match the category) is not an error:
    nothing was written and the draft is ready for another attempt.
    """
    status: SubmissionStatus
    draft: ReportDraft
    report: Optional[Report] = None
    reason: Optional[str] = None
    title: Optional[str] = None
    message: Optional[str] = None

    @property
    def submitted(self) -> bool:
        return self.status == SubmissionStatus.SUBMITTED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "reason": self.reason,
            "title": self.title,
            "message": self.message,
            "report": self.report.to_dict() if self.report else None,
            "submissionId": self.draft.submission_id,
        }


class ReportHandler:
    """
    Handles issue reports from users.

    The only writer of new report records. Steps run strictly in order:
    validation, submission id check, duplicate check, pending check, image
    verification, image upload, record creation. Upload and record creation
    are not transactional with each other.
    """

    def __init__(
        self,
        db: Session,
        image_store: ImageStore,
        verifier: ImageVerifier,
        validator: Optional[ReportValidator] = None,
        settings: Optional[Settings] = None
    ):
        """
        Initialize report handler.

        Args:
            db: Database session
            image_store: Blob store for report photos
            verifier: Image relevance verifier
            validator: Precondition checks
            settings: Application settings
        """
        self.db = db
        self.image_store = image_store
        self.verifier = verifier
        self.settings = settings or default_settings
        self.validator = validator or ReportValidator(
            max_accuracy_m=self.settings.max_location_accuracy_meters
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_pending_reports(self, user_id: str) -> List[Report]:
        """The user's reports still awaiting moderation."""
        stmt = select(Report).where(
            Report.user_id == user_id,
            Report.status == ReportStatus.PENDING,
        )
        return list(self.db.scalars(stmt))

    def submission_id_in_use(self, submission_id: str) -> bool:
        stmt = select(Report.doc_id).where(Report.id == submission_id).limit(1)
        return self.db.scalar(stmt) is not None

    def get_active_report(self, user_id: str) -> Optional[Report]:
        """The user's pending report, if any."""
        pending = self.get_pending_reports(user_id)
        return pending[0] if pending else None

    def get_report(self, doc_id: str) -> Optional[Report]:
        return self.db.get(Report, doc_id)

    def list_user_history(
        self,
        user_id: str,
        limit: int = 10,
        before: Optional[datetime] = None
    ) -> List[Report]:
        """
        The user's approved and completed reports, newest first.

        Args:
            user_id: Owner
            limit: Page size
            before: Timestamp cursor from the previous page's last report
        """
        stmt = select(Report).where(
            Report.user_id == user_id,
            Report.status.in_([ReportStatus.APPROVED, ReportStatus.COMPLETED]),
        )
        if before is not None:
            stmt = stmt.where(Report.timestamp < before)
        stmt = stmt.order_by(Report.timestamp.desc()).limit(limit)
        return list(self.db.scalars(stmt))

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def start_submission(self, ctx: SessionContext) -> ReportDraft:
        """
        Open a new submission for the user.

        Raises:
            ExistingPendingReportError: the user already has a pending report
        """
        existing = self.get_active_report(ctx.user_id)
        if existing is not None:
            raise ExistingPendingReportError(existing.id)
        return ReportDraft()

    def submit(self, ctx: SessionContext, draft: ReportDraft) -> SubmissionOutcome:
        """
        Validate, verify and persist a new report.

        Args:
            ctx: Submitting user's session
            draft: Form state

        Returns:
            SubmissionOutcome; rejected when the photo does not match the category

        Raises:
            ReportValidationError: a precondition failed (no writes)
            SubmissionIdInUseError: the submission id already names a report
            DuplicateLocationError: a pending report of the user is within range
            ExistingPendingReportError: the user already has a pending report
            VerificationError: the verdict could not be obtained
            StorageError: upload or record creation failed
        """
        self.validator.check(draft)

        if self.submission_id_in_use(draft.submission_id):
            logger.warning(f"Submission id {draft.submission_id} from {ctx.user_id} already in use")
            raise SubmissionIdInUseError(draft.submission_id)

        pending = self.get_pending_reports(ctx.user_id)

        if draft.location is not None:
            nearby = find_nearby_pending(
                draft.location, pending, radius_m=self.settings.duplicate_radius_meters
            )
            if nearby is not None:
                logger.info(f"Duplicate submission by {ctx.user_id} near report {nearby.id}")
                raise DuplicateLocationError(nearby.id)

        if pending:
            raise ExistingPendingReportError(pending[0].id)

        if not self.verifier.verify(draft.image, draft.category):
            logger.info(
                f"Submission {draft.submission_id} failed verification for {draft.category!r}"
            )
            rejection = VerificationRejected()
            draft.reset_for_retry()
            return SubmissionOutcome(
                status=SubmissionStatus.REJECTED,
                draft=draft,
                reason="verification_failed",
                title=rejection.title,
                message=rejection.message,
            )

        image_key = report_image_key(draft.submission_id)
        # Blobs of stored reports are never replaced
        image_url = self.image_store.upload(image_key, draft.image, overwrite=False)

        report = Report(
            id=draft.submission_id,
            category=draft.category,
            description=draft.description,
            image_url=image_url,
            address_line1=draft.address_line1,
            address_line2=draft.address_line2 or None,
            county=canonical_county(draft.county),
            eircode=draft.eircode,
            location=draft.location.to_dict() if draft.location else None,
            timestamp=utcnow(),
            user_id=ctx.user_id,
            status=ReportStatus.PENDING,
            assigned=None,
            upvotes=0,
        )

        self.db.add(report)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            if self.submission_id_in_use(draft.submission_id):
                logger.warning(
                    f"Report {draft.submission_id} collided with a stored report id; "
                    f"blob {image_key} left orphaned: {e.orig}"
                )
                raise SubmissionIdInUseError(draft.submission_id) from e
            logger.warning(
                f"Report {draft.submission_id} lost a race with another pending report "
                f"of {ctx.user_id}; blob {image_key} left orphaned: {e.orig}"
            )
            raise ExistingPendingReportError() from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(
                f"Failed to create report {draft.submission_id}; blob {image_key} left orphaned: {e}"
            )
            raise StorageError("Failed to save report") from e

        logger.info(
            f"New report created: {report.id} ({report.category}) in {report.county} by {ctx.user_id}"
        )

        return SubmissionOutcome(
            status=SubmissionStatus.SUBMITTED,
            draft=draft,
            report=report,
            title="Report Submitted",
            message="Your report has been submitted successfully!",
        )

    # ------------------------------------------------------------------
    # Deletion
    # ------------------------------------------------------------------

    def delete_own_report(self, ctx: SessionContext, doc_id: str) -> Report:
        """
        Delete the caller's own pending report and its photo.

        Raises:
            ReportNotFoundError: no such report
            AuthorizationError: the caller does not own the report
            InvalidTransitionError: the report is no longer pending
        """
        report = self.db.get(Report, doc_id)
        if report is None:
            raise ReportNotFoundError(doc_id)

        if report.user_id != ctx.user_id:
            logger.warning(f"User {ctx.user_id} tried to delete report {doc_id} of {report.user_id}")
            raise AuthorizationError("You can only delete your own reports.")

        if report.status != ReportStatus.PENDING:
            raise InvalidTransitionError(
                "Only reports that are still pending can be deleted."
            )

        self.db.delete(report)
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to delete report {doc_id}: {e}")
            raise StorageError("Failed to delete report") from e

        image_key = report_image_key(report.id)
        try:
            self.image_store.delete(image_key)
        except StorageError as e:
            logger.warning(f"Report {report.id} deleted but blob {image_key} orphaned: {e}")

        logger.info(f"Report {report.id} deleted by owner {ctx.user_id}")
        return report
