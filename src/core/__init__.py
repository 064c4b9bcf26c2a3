"""
CountyFix - Core Utilities
Central configuration, logging, errors, and utility functions.
"""

from src.core.config import settings
from src.core.constants import (
    COUNTY_PREFIX,
    IRISH_COUNTIES,
    ISSUE_CATEGORIES,
    MAX_DESCRIPTION_LENGTH,
)
from src.core.geo_utils import haversine_distance_m

__all__ = [
    "settings",
    "COUNTY_PREFIX",
    "IRISH_COUNTIES",
    "ISSUE_CATEGORIES",
    "MAX_DESCRIPTION_LENGTH",
    "haversine_distance_m",
]
