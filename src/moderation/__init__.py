"""
CountyFix - Moderation Module
Admin transitions of the report lifecycle.
"""

from src.moderation.state_machine import (
    ModerationService,
    ProcessingGuard,
    TransitionResult,
)

__all__ = [
    "ModerationService",
    "ProcessingGuard",
    "TransitionResult",
]
