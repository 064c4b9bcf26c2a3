"""
CountyFix - Constants and Reference Data
Static values used throughout the application.
"""

from typing import List

# =============================================================================
# COUNTIES
# =============================================================================

COUNTY_PREFIX: str = "Co. "

# Canonical county names, all carrying the "Co. " prefix
IRISH_COUNTIES: List[str] = [
    "Co. Antrim", "Co. Armagh", "Co. Carlow", "Co. Cavan", "Co. Clare",
    "Co. Cork", "Co. Derry", "Co. Donegal", "Co. Down", "Co. Dublin",
    "Co. Fermanagh", "Co. Galway", "Co. Kerry", "Co. Kildare", "Co. Kilkenny",
    "Co. Laois", "Co. Leitrim", "Co. Limerick", "Co. Longford", "Co. Louth",
    "Co. Mayo", "Co. Meath", "Co. Monaghan", "Co. Offaly", "Co. Roscommon",
    "Co. Sligo", "Co. Tipperary", "Co. Tyrone", "Co. Waterford",
    "Co. Westmeath", "Co. Wexford", "Co. Wicklow",
]

# Leaderboard bucket for reports without a county
UNKNOWN_COUNTY: str = "Unknown"

# =============================================================================
# REPORTS
# =============================================================================

ISSUE_CATEGORIES: List[str] = [
    "Pothole",
    "Broken Streetlight",
    "Damaged Sidewalk",
    "Trash Overflow",
    "Flooded Area",
    "Power Outage",
    "Water Leak",
    "Graffiti/Vandalism",
    "Traffic Sign Issue",
    "Public Restroom Problem",
]

MAX_DESCRIPTION_LENGTH: int = 150

# Blob key layout for report photos
REPORT_IMAGE_KEY: str = "reports/{submission_id}.jpg"

# =============================================================================
# MESSAGES
# =============================================================================

MESSAGE_TITLES = {
    "approval": "Report Approved",
    "decline": "Report Declined",
    "general": "Report Completed",
}

MESSAGE_TEMPLATES = {
    "approval": 'Your report about "{category}" has been approved.',
    "decline": (
        'Your report about "{category}" has been declined. '
        "Please review and submit again."
    ),
    "general": 'Your report about "{category}" has been marked as completed.',
}
