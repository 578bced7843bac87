"""Keyword extraction and topic categorization heuristics.

Both functions are deterministic and intentionally simple: keywords are a
frequency ranking, categories are assigned by seed-keyword overlap. Retrieval
filters on the category names below, so the vocabulary must stay stable.
"""

import re
from collections import Counter

from ..entities.knowledge_chunk import Category

STOPWORDS = frozenset({
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for", "of", "with", "by",
    "is", "are", "was", "were", "be", "been", "being", "have", "has", "had", "do", "does", "did",
    "will", "would", "could", "should", "may", "might", "must", "can", "this", "that", "these", "those",
})

CATEGORY_KEYWORDS: dict[Category, tuple[str, ...]] = {
    Category.PROJECT_MANAGEMENT: ("project", "planning", "milestone", "deadline", "scope", "budget"),
    Category.TASK_MANAGEMENT: ("task", "assignment", "completion", "progress", "status", "priority"),
    Category.TEAM_COLLABORATION: ("team", "collaboration", "meeting", "communication", "discussion"),
    Category.PERFORMANCE: ("performance", "productivity", "efficiency", "metrics", "kpi", "results"),
    Category.RISK_ASSESSMENT: ("risk", "issue", "problem", "challenge", "mitigation", "concern"),
    # "timeline" is listed twice: a single mention is enough for the category
    Category.TIMELINE: ("schedule", "timeline", "duration", "deadline", "delivery", "timeline"),
    Category.RESOURCE_ALLOCATION: ("resource", "allocation", "capacity", "utilization", "workload"),
}

MIN_CATEGORY_MATCHES = 2
MAX_KEYWORDS = 10

_PUNCTUATION = re.compile(r"[^\w\s]")


def extract_keywords(text: str, limit: int = MAX_KEYWORDS) -> list[str]:
    """Return the most frequent non-stopword terms of ``text``.

    Tokens are lowercased, punctuation is replaced by spaces, and tokens of
    two characters or fewer are dropped. Ties keep first-seen order.
    """
    if not text:
        return []

    words = [
        word
        for word in _PUNCTUATION.sub(" ", text.lower()).split()
        if len(word) > 2 and word not in STOPWORDS
    ]
    return [word for word, _ in Counter(words).most_common(limit)]


def categorize_content(text: str) -> list[Category]:
    """Assign every category with at least two seed keywords present in ``text``.

    Seed keywords are matched as substrings of the lowercased text, so
    "projects" counts for "project".
    """
    if not text:
        return []

    lower_text = text.lower()
    categories = []
    for category, seeds in CATEGORY_KEYWORDS.items():
        match_count = sum(1 for seed in seeds if seed in lower_text)
        if match_count >= MIN_CATEGORY_MATCHES:
            categories.append(category)
    return categories
