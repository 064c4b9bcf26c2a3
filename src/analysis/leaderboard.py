"""
CountyFix - County Leaderboard
Ranks counties by the points their completed reports earned.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from src.core.config import settings
from src.core.constants import UNKNOWN_COUNTY
from src.database.models import Report, ReportStatus

logger = logging.getLogger(__name__)


@dataclass
class CountyLeaderboardEntry:
    """One row of the leaderboard."""
    county: str
    points: int
    completed_reports: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "county": self.county,
            "points": self.points,
            "completedReports": self.completed_reports,
        }


def aggregate_completed(
    reports: Iterable[Report],
    points_per_report: Optional[int] = None
) -> List[CountyLeaderboardEntry]:
    """
    Aggregate completed reports into per-county points.

    Reports with no county count under "Unknown". Anything not completed is
    ignored. Sorted by points descending, then county name ascending.

    Args:
        reports: Reports to aggregate
        points_per_report: Points for each completed report (default 10)

    Returns:
        Leaderboard entries
    """
    per_report = (
        settings.leaderboard_points_per_report if points_per_report is None else points_per_report
    )

    counts: Dict[str, int] = {}
    for report in reports:
        if report.status != ReportStatus.COMPLETED:
            continue
        county = (report.county or "").strip() or UNKNOWN_COUNTY
        counts[county] = counts.get(county, 0) + 1

    entries = [
        CountyLeaderboardEntry(county=county, points=count * per_report, completed_reports=count)
        for county, count in counts.items()
    ]
    entries.sort(key=lambda e: (-e.points, e.county))
    return entries


def compute_leaderboard(
    db: Session,
    points_per_report: Optional[int] = None
) -> List[CountyLeaderboardEntry]:
    """Leaderboard over all completed reports in the database."""
    stmt = select(Report).where(Report.status == ReportStatus.COMPLETED)
    entries = aggregate_completed(db.scalars(stmt), points_per_report)
    logger.debug(f"Leaderboard computed for {len(entries)} counties")
    return entries
