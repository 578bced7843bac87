"""Feature-hashing embedder for tests and offline use (no external API)."""

import hashlib
import math
import re

from loguru import logger

from ..base import BaseEmbedder

_TOKEN = re.compile(r"\w+")


class HashingEmbedder(BaseEmbedder):
    """Bag-of-words embedder using the hashing trick.

    Each lowercased token is hashed (MD5, so results are stable across
    processes) into one of ``dimension`` buckets with a hash-derived sign, and
    the resulting vector is L2-normalized. Texts sharing vocabulary therefore
    score a higher cosine similarity, which is enough to exercise retrieval
    without a provider.

    WARNING: This embedder is NOT suitable for production retrieval quality.

    Attributes:
        dimension: Embedding vector dimension
    """

    def __init__(self, dimension: int = 256, model: str = "hashing-bow-v1"):
        if dimension <= 0:
            raise ValueError("dimension must be positive")
        self._dimension = dimension
        self._model = model
        logger.warning(
            "Using HashingEmbedder - NOT for production use! "
            "Configure a real embedding provider for actual deployments."
        )

    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Generate hashed bag-of-words vectors for texts.

        Raises:
            ValueError: If texts is empty
        """
        if not texts:
            raise ValueError("texts cannot be empty")

        logger.debug(f"Generating {len(texts)} hashing embeddings")
        return [self._vectorize(text) for text in texts]

    def _vectorize(self, text: str) -> list[float]:
        vec = [0.0] * self._dimension
        for token in _TOKEN.findall(text.lower()):
            digest = hashlib.md5(token.encode("utf-8")).digest()
            bucket = int.from_bytes(digest[:4], "big") % self._dimension
            sign = 1.0 if digest[4] & 1 else -1.0
            vec[bucket] += sign

        magnitude = math.sqrt(sum(x * x for x in vec))
        if magnitude > 0:
            vec = [x / magnitude for x in vec]
        return vec

    @property
    def dimension(self) -> int:
        return self._dimension

    @property
    def model_name(self) -> str:
        return self._model
