"""
Public feed of approved reports and per-user upvotes.

An upvote toggle touches two documents: the caller's 0/1 flag map and the
report's aggregate counter. Both writes happen in one database transaction so
they commit or fail together.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from src.auth.session import SessionContext
from src.core.errors import InvalidTransitionError, ReportNotFoundError, StorageError
from src.crowdsource.counties import same_county
from src.database.models import Report, ReportStatus, UserUpvoteRecord

logger = logging.getLogger(__name__)

SORT_UPVOTES = "upvotes"
SORT_NEWEST = "newest"


@dataclass
class FeedFilter:
    """Feed search, filter and sort options."""
    search: Optional[str] = None
    category: Optional[str] = None
    county: Optional[str] = None
    sort_by: str = SORT_UPVOTES

    def matches(self, report: Report) -> bool:
        if self.search:
            needle = self.search.lower()
            haystacks = [report.description or "", report.category or "", report.county or ""]
            if not any(needle in text.lower() for text in haystacks):
                return False

        if self.category and report.category != self.category:
            return False

        if self.county and not same_county(report.county, self.county):
            return False

        return True


def list_feed(db: Session, feed_filter: Optional[FeedFilter] = None) -> List[Report]:
    """
    Approved reports, filtered and sorted.

    Newest sorts by timestamp descending; upvotes sorts by count descending,
    newest first among equal counts.
    """
    feed_filter = feed_filter or FeedFilter()

    stmt = select(Report).where(Report.status == ReportStatus.APPROVED)
    reports = [r for r in db.scalars(stmt) if feed_filter.matches(r)]

    reports.sort(key=lambda r: r.timestamp, reverse=True)
    if feed_filter.sort_by == SORT_UPVOTES:
        # Stable sort keeps newest-first among ties
        reports.sort(key=lambda r: r.upvotes or 0, reverse=True)

    return reports


@dataclass
class UpvoteResult:
    """State after a toggle."""
    report_id: str
    doc_id: str
    upvoted: bool
    upvotes: int

    def to_dict(self) -> Dict:
        return {
            "reportId": self.report_id,
            "docId": self.doc_id,
            "upvoted": self.upvoted,
            "upvotes": self.upvotes,
        }


class UpvoteService:
    """Toggles and reads per-user upvotes."""

    def __init__(self, db: Session):
        self.db = db

    def _record(self, user_id: str) -> Optional[UserUpvoteRecord]:
        return self.db.get(UserUpvoteRecord, user_id)

    def get_user_upvotes(self, user_id: str) -> Dict[str, bool]:
        """
        The caller's upvotes as booleans.

        Always derived from the stored integer map; 1 is upvoted, anything
        else is not.
        """
        record = self._record(user_id)
        if record is None:
            return {}
        return record.as_booleans()

    def toggle(self, ctx: SessionContext, doc_id: str) -> UpvoteResult:
        """
        Flip the caller's upvote on an approved report.

        Raises:
            ReportNotFoundError: no such report
            InvalidTransitionError: the report is not in the public feed
            StorageError: the transaction failed (nothing was written)
        """
        report = self.db.get(Report, doc_id)
        if report is None:
            raise ReportNotFoundError(doc_id)
        if report.status != ReportStatus.APPROVED:
            raise InvalidTransitionError("Only approved reports can be upvoted.")

        record = self._record(ctx.user_id)
        if record is None:
            record = UserUpvoteRecord(user_id=ctx.user_id, votes={})
            self.db.add(record)

        had_upvoted = record.has_upvoted(report.id)
        delta = -1 if had_upvoted else 1

        # Reassign so the JSON column is flagged dirty
        record.votes = {**(record.votes or {}), report.id: 0 if had_upvoted else 1}
        report.upvotes = max(0, (report.upvotes or 0) + delta)

        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Upvote toggle on {report.id} by {ctx.user_id} failed: {e}")
            raise StorageError("Failed to upvote report. Please try again.") from e

        logger.info(
            f"User {ctx.user_id} {'removed upvote from' if had_upvoted else 'upvoted'} "
            f"report {report.id} (now {report.upvotes})"
        )
        return UpvoteResult(
            report_id=report.id,
            doc_id=report.doc_id,
            upvoted=not had_upvoted,
            upvotes=report.upvotes,
        )

    def recount(self, doc_id: str) -> int:
        """
        Rebuild a report's counter from the per-user flag maps.

        The flag maps are the source of truth; use this to repair a counter
        that drifted.
        """
        report = self.db.get(Report, doc_id)
        if report is None:
            raise ReportNotFoundError(doc_id)

        total = sum(
            1 for record in self.db.scalars(select(UserUpvoteRecord))
            if record.has_upvoted(report.id)
        )
        if report.upvotes != total:
            logger.info(f"Report {report.id} upvotes reconciled {report.upvotes} -> {total}")
            report.upvotes = total
            self.db.commit()
        return total
