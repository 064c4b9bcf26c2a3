"""
Duplicate-location check for new submissions.

A submission is a duplicate when one of the same user's pending reports lies
within the radius (50 m by default). Reports without stored coordinates are
skipped, and a submission without valid coordinates is never a duplicate.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional

from src.core.config import settings
from src.core.geo_utils import haversine_distance_m, is_valid_coordinate
from src.database.models import Report, ReportStatus

logger = logging.getLogger(__name__)


@dataclass
class GeoLocation:
    """A device location fix."""
    latitude: float
    longitude: float
    accuracy: Optional[float] = None  # meters

    @property
    def is_valid(self) -> bool:
        return is_valid_coordinate(self.latitude, self.longitude)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["GeoLocation"]:
        """
        Build from a stored location document.

        Accepts the flat form {"latitude", "longitude", "accuracy"} and the
        device form {"coords": {...}}. Returns None when coordinates are missing.
        """
        if not data:
            return None
        coords = data.get("coords", data)
        if not isinstance(coords, dict):
            return None
        latitude = coords.get("latitude")
        longitude = coords.get("longitude")
        if latitude is None or longitude is None:
            return None
        try:
            return cls(
                latitude=float(latitude),
                longitude=float(longitude),
                accuracy=float(coords["accuracy"]) if coords.get("accuracy") is not None else None,
            )
        except (TypeError, ValueError):
            return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "accuracy": self.accuracy,
        }


def find_nearby_pending(
    location: Optional[GeoLocation],
    pending_reports: Iterable[Report],
    radius_m: Optional[float] = None
) -> Optional[Report]:
    """
    Find a pending report within `radius_m` of `location`.

    Args:
        location: The new submission's fix
        pending_reports: The submitting user's pending reports
        radius_m: Duplicate radius in meters

    Returns:
        The first report in range, or None
    """
    if location is None or not location.is_valid:
        return None

    radius_m = settings.duplicate_radius_meters if radius_m is None else radius_m

    for report in pending_reports:
        if report.status != ReportStatus.PENDING:
            continue

        stored = GeoLocation.from_dict(report.location)
        if stored is None or not stored.is_valid:
            # Known gap: cannot compare
            continue

        distance = haversine_distance_m(
            location.latitude, location.longitude,
            stored.latitude, stored.longitude
        )
        if distance <= radius_m:
            logger.info(
                f"Submission at ({location.latitude}, {location.longitude}) is "
                f"{distance:.1f}m from pending report {report.id}"
            )
            return report

    return None


def is_duplicate_location(
    location: Optional[GeoLocation],
    pending_reports: Iterable[Report],
    radius_m: Optional[float] = None
) -> bool:
    """True when any pending report lies within the radius."""
    return find_nearby_pending(location, pending_reports, radius_m) is not None
