"""
CountyFix - Machine Learning Module
Image relevance classification for submitted photos.
"""

from src.ml.image_classifier import (
    ImageClassifier,
    parse_verdict,
    PROMPT_TEMPLATE,
)

__all__ = [
    "ImageClassifier",
    "parse_verdict",
    "PROMPT_TEMPLATE",
]
