"""Utility functions for kbsync."""

from .keywords import CATEGORY_KEYWORDS, STOPWORDS, categorize_content, extract_keywords
from .performance import Timing, timed, timer
from .similarity import cosine_similarity

__all__ = [
    "CATEGORY_KEYWORDS",
    "STOPWORDS",
    "Timing",
    "categorize_content",
    "cosine_similarity",
    "extract_keywords",
    "timed",
    "timer",
]
