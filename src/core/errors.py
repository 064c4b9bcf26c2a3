"""
CountyFix - Error Taxonomy

Every failure a workflow step can surface falls in one of four categories:
validation, business-rule rejection, infrastructure, or authorization. Each
exception carries user-facing wording and the HTTP status the API maps it to.
"""

from typing import Any, Dict, Optional


class CountyFixError(Exception):
    """Base class for all application errors."""

    category = "error"
    status_code = 500
    default_title = "Something went wrong"

    def __init__(self, message: str, title: Optional[str] = None):
        self.message = message
        self.title = title or self.default_title
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.category,
            "title": self.title,
            "message": self.message,
        }


# =============================================================================
# Validation
# =============================================================================

class ReportValidationError(CountyFixError):
    """A submitted field is missing or invalid. Nothing was written."""

    category = "validation"
    status_code = 422
    default_title = "Validation Error"

    def __init__(self, field: str, message: str, title: Optional[str] = None):
        self.field = field
        super().__init__(message, title)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["field"] = self.field
        return data


# =============================================================================
# Business rules
# =============================================================================

class BusinessRuleRejection(CountyFixError):
    """The request is well-formed but a business rule refuses it."""

    category = "rejected"
    status_code = 409
    default_title = "Request Rejected"


class DuplicateLocationError(BusinessRuleRejection):
    default_title = "Duplicate Report"

    def __init__(self, existing_report_id: Optional[str] = None):
        self.existing_report_id = existing_report_id
        super().__init__(
            "You have already submitted a report for this location. Please wait "
            "for the previous report to be approved before submitting another "
            "one in this area."
        )


class ExistingPendingReportError(BusinessRuleRejection):
    default_title = "Report Already Pending"

    def __init__(self, existing_report_id: Optional[str] = None):
        self.existing_report_id = existing_report_id
        super().__init__(
            "You already have a report awaiting review. Please wait for it to "
            "be resolved before submitting another one."
        )


class SubmissionIdInUseError(BusinessRuleRejection):
    """The submission id already names a stored report."""

    default_title = "Submission Already Used"

    def __init__(self, submission_id: str):
        self.submission_id = submission_id
        super().__init__(
            "This submission has already been used. Please start a new report."
        )


class VerificationRejected(BusinessRuleRejection):
    """The classifier judged the photo does not match the category."""

    default_title = "Validation Failed"

    def __init__(self):
        super().__init__("Validation check failed. Please try again.")


# =============================================================================
# Infrastructure
# =============================================================================

class InfrastructureError(CountyFixError):
    """A backing service (classifier, storage, database) failed."""

    category = "infrastructure"
    status_code = 502
    default_title = "Service Unavailable"


class VerificationError(InfrastructureError):
    default_title = "Verification Failed"


class RateLimitExceeded(VerificationError):
    default_title = "Too Many Requests"


class StorageError(InfrastructureError):
    default_title = "Storage Error"


# =============================================================================
# Authorization and lookups
# =============================================================================

class AuthorizationError(CountyFixError):
    """The caller may not perform this action. Rejected before any mutation."""

    category = "authorization"
    status_code = 403
    default_title = "Not Allowed"


class ReportNotFoundError(CountyFixError):
    category = "not_found"
    status_code = 404
    default_title = "Report Not Found"

    def __init__(self, doc_id: str):
        self.doc_id = doc_id
        super().__init__(f"Report {doc_id} not found")


class MessageNotFoundError(CountyFixError):
    category = "not_found"
    status_code = 404
    default_title = "Message Not Found"

    def __init__(self, message_id: str):
        self.message_id = message_id
        super().__init__(f"Message {message_id} not found")


class InvalidTransitionError(CountyFixError):
    """A moderation transition was attempted from the wrong source state."""

    category = "conflict"
    status_code = 409
    default_title = "Invalid Transition"
