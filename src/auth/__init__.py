"""
CountyFix - Auth Module
Per-request session context and user profiles.
"""

from src.auth.session import (
    SessionContext,
    SessionResolver,
    require_admin,
)
from src.auth.names import generate_display_name

__all__ = [
    "SessionContext",
    "SessionResolver",
    "require_admin",
    "generate_display_name",
]
