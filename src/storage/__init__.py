"""
CountyFix - Blob Storage
Report photos keyed by submission id.
"""

from src.storage.image_store import ImageStore, report_image_key

__all__ = [
    "ImageStore",
    "report_image_key",
]
