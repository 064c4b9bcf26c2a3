"""
CountyFix - Crowdsource Module
Handles user issue reports: validation, screening, submission and the feed.
"""

from src.crowdsource.report_handler import (
    ReportHandler,
    ReportDraft,
    SubmissionOutcome,
    SubmissionStatus,
    generate_submission_id,
)
from src.crowdsource.image_verification import ImageVerificationClient
from src.crowdsource.validation import (
    ReportValidator,
    ValidationResult,
    validate_report,
    is_location_valid,
)
from src.crowdsource.counties import (
    is_valid_county,
    normalize_county,
    canonical_county,
)
from src.crowdsource.deduplication import (
    GeoLocation,
    is_duplicate_location,
)
from src.crowdsource.feed import (
    FeedFilter,
    UpvoteService,
    list_feed,
)

__all__ = [
    # Submission
    "ReportHandler",
    "ReportDraft",
    "SubmissionOutcome",
    "SubmissionStatus",
    "generate_submission_id",
    # Verification
    "ImageVerificationClient",
    # Validation
    "ReportValidator",
    "ValidationResult",
    "validate_report",
    "is_location_valid",
    # Counties
    "is_valid_county",
    "normalize_county",
    "canonical_county",
    # Deduplication
    "GeoLocation",
    "is_duplicate_location",
    # Feed
    "FeedFilter",
    "UpvoteService",
    "list_feed",
]
