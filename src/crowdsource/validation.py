"""
Precondition checks for report submissions
Runs before any network call or write
"""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from src.core.config import settings
from src.core.constants import ISSUE_CATEGORIES, MAX_DESCRIPTION_LENGTH
from src.core.errors import ReportValidationError
from src.crowdsource.counties import is_valid_county

if TYPE_CHECKING:
    from src.crowdsource.deduplication import GeoLocation
    from src.crowdsource.report_handler import ReportDraft

logger = logging.getLogger(__name__)


# Required draft attributes and the label shown to the user
REQUIRED_FIELDS = [
    ("image", "image"),
    ("category", "category"),
    ("description", "description"),
    ("address_line1", "address line 1"),
    ("county", "county"),
    ("eircode", "Eircode"),
]


@dataclass
class ValidationResult:
    """Outcome of the submission preconditions."""
    is_valid: bool
    field: Optional[str] = None
    title: Optional[str] = None
    message: Optional[str] = None
    missing_fields: Optional[List[str]] = None

    def __post_init__(self):
        if self.missing_fields is None:
            self.missing_fields = []

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "is_valid": self.is_valid,
            "field": self.field,
            "title": self.title,
            "message": self.message,
            "missing_fields": self.missing_fields,
        }

    def raise_for_invalid(self) -> None:
        if not self.is_valid:
            raise ReportValidationError(self.field, self.message, self.title)


def is_location_valid(
    location: Optional["GeoLocation"],
    address_line1: Optional[str] = None,
    county: Optional[str] = None,
    eircode: Optional[str] = None,
    max_accuracy_m: Optional[float] = None
) -> bool:
    """
    Judge whether a location fix is usable.

    A fix must exist, its reported accuracy must not exceed the limit
    (100 m by default), and at least one of address line 1, county or
    Eircode must be populated. A fix with no reported accuracy is accepted.
    """
    if location is None:
        return False

    limit = settings.max_location_accuracy_meters if max_accuracy_m is None else max_accuracy_m
    if location.accuracy is not None and location.accuracy > limit:
        return False

    return bool(address_line1 or county or eircode)


class ReportValidator:
    """
    Validates a report draft before submission.

    Checks, in order: required fields, category, description length,
    county, location quality.
    """

    def __init__(self, max_accuracy_m: Optional[float] = None):
        self.max_accuracy_m = (
            settings.max_location_accuracy_meters if max_accuracy_m is None else max_accuracy_m
        )

    def validate(self, draft: "ReportDraft") -> ValidationResult:
        """
        Validate a draft.

        Args:
            draft: Form state of the submission

        Returns:
            ValidationResult describing the first failing check
        """
        missing = [
            label for attr, label in REQUIRED_FIELDS
            if not self._present(getattr(draft, attr, None))
        ]
        if missing:
            return ValidationResult(
                is_valid=False,
                field="required",
                title="Missing Fields",
                message=(
                    "Please fill in all fields before submitting. Missing: "
                    + ", ".join(missing) + "."
                ),
                missing_fields=missing,
            )

        if draft.category not in ISSUE_CATEGORIES:
            return ValidationResult(
                is_valid=False,
                field="category",
                title="Invalid Category",
                message="Please select one of the listed issue categories.",
            )

        if len(draft.description) > MAX_DESCRIPTION_LENGTH:
            return ValidationResult(
                is_valid=False,
                field="description",
                title="Description Too Long",
                message=f"Descriptions are limited to {MAX_DESCRIPTION_LENGTH} characters.",
            )

        if not is_valid_county(draft.county):
            return ValidationResult(
                is_valid=False,
                field="county",
                title="Invalid County",
                message="Please select a valid Irish county.",
            )

        if not is_location_valid(
            draft.location,
            draft.address_line1,
            draft.county,
            draft.eircode,
            max_accuracy_m=self.max_accuracy_m,
        ):
            return ValidationResult(
                is_valid=False,
                field="location",
                title="Location Validation Failed",
                message=(
                    "The location data appears to be inaccurate or incomplete. "
                    "Please try refreshing your location or enter the address manually."
                ),
            )

        return ValidationResult(is_valid=True)

    def check(self, draft: "ReportDraft") -> None:
        """
        Validate a draft, raising on the first failure.

        Raises:
            ReportValidationError: naming the failing field
        """
        result = self.validate(draft)
        if not result.is_valid:
            logger.info(f"Submission {draft.submission_id} rejected: {result.field}")
        result.raise_for_invalid()

    @staticmethod
    def _present(value: Any) -> bool:
        if isinstance(value, str):
            return bool(value.strip())
        return bool(value)


def validate_report(draft: "ReportDraft", **kwargs) -> ValidationResult:
    """
    Convenience function to validate a report draft.

    Args:
        draft: Form state of the submission
        **kwargs: ReportValidator options

    Returns:
        ValidationResult
    """
    return ReportValidator(**kwargs).validate(draft)
