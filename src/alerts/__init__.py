"""
CountyFix - Messages
Notices to report owners about moderation outcomes.
"""

from src.alerts.messages import MessageService

__all__ = [
    "MessageService",
]
