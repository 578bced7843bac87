"""Vector similarity calculation utilities."""

import math
from collections.abc import Sequence


def cosine_similarity(vec1: Sequence[float] | None, vec2: Sequence[float] | None) -> float:
    """Calculate cosine similarity between two vectors.

    Vectors produced by different embedding models are never comparable, so a
    missing vector, a dimension mismatch or a zero-norm vector all yield 0.0
    instead of raising. Retrieval treats an exact 0.0 as "not comparable".

    Args:
        vec1: First vector
        vec2: Second vector

    Returns:
        Similarity score in [-1, 1]
    """
    if not vec1 or not vec2:
        return 0.0

    if len(vec1) != len(vec2):
        return 0.0

    dot_product = 0.0
    norm1 = 0.0
    norm2 = 0.0
    for a, b in zip(vec1, vec2):
        dot_product += a * b
        norm1 += a * a
        norm2 += b * b

    if norm1 == 0.0 or norm2 == 0.0:
        return 0.0

    similarity = dot_product / (math.sqrt(norm1) * math.sqrt(norm2))

    # Clamp to [-1, 1] to handle floating point errors
    return max(-1.0, min(1.0, similarity))
