"""
Embedding & chunking engine.

``EmbeddingService`` is the single entry point the sync and retrieval layers
use for text processing: it chunks text, turns text into vectors through a
pluggable ``BaseEmbedder``, derives keywords and categories, and compares
vectors.

Example:
    >>> service = EmbeddingService(HashingEmbedder())
    >>> chunks = service.chunk_text(description, max_chunk_size=800, overlap_size=100)
    >>> vectors = await service.generate_embeddings([c.text for c in chunks])
"""

import asyncio
import logging
from collections.abc import Sequence

from ..entities.knowledge_chunk import Category, TextChunk
from ..errors import EmbeddingError
from ..splitter.sentence_window import SentenceWindowChunker
from ..utils.keywords import categorize_content, extract_keywords
from ..utils.similarity import cosine_similarity
from .base import BaseEmbedder

logger = logging.getLogger(__name__)

DEFAULT_MAX_CHUNK_SIZE = 1000
DEFAULT_OVERLAP_SIZE = 100


class EmbeddingService:
    """
    Text-to-vector engine with rate-limit aware batching.

    Attributes:
        embedder: Provider used for every embedding call
        batch_size: Texts embedded concurrently per batch in generate_embeddings
        batch_delay: Seconds to wait between batches
        max_chunk_size: Default chunk window for chunk_text
        overlap_size: Default overlap for chunk_text
    """

    def __init__(
        self,
        embedder: BaseEmbedder,
        batch_size: int = 5,
        batch_delay: float = 0.1,
        max_chunk_size: int = DEFAULT_MAX_CHUNK_SIZE,
        overlap_size: int = DEFAULT_OVERLAP_SIZE,
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        if batch_delay < 0:
            raise ValueError("batch_delay must be non-negative")

        self.embedder = embedder
        self.batch_size = batch_size
        self.batch_delay = batch_delay
        self.max_chunk_size = max_chunk_size
        self.overlap_size = overlap_size

    @property
    def model_name(self) -> str:
        return self.embedder.model_name

    async def generate_embedding(self, text: str) -> list[float]:
        """
        Generate the embedding vector for a single text.

        Raises:
            EmbeddingError: If text is empty/whitespace or the provider fails
        """
        if not text or not text.strip():
            raise EmbeddingError("Text cannot be empty")

        try:
            vectors = await self.embedder.embed([text])
        except Exception as e:
            logger.error(f"Error generating embedding: {type(e).__name__}: {e}")
            raise EmbeddingError(
                "Failed to generate embedding",
                details={"model": self.model_name, "text_length": len(text)},
                original_error=e,
            )

        if not vectors or not vectors[0]:
            raise EmbeddingError(
                "Provider returned no embedding",
                details={"model": self.model_name},
            )
        return vectors[0]

    async def generate_embeddings(self, texts: Sequence[str]) -> list[list[float]]:
        """
        Generate embeddings for many texts, batched to respect provider limits.

        Texts within a batch are embedded concurrently; batches run one after
        another with ``batch_delay`` seconds between them.

        Raises:
            EmbeddingError: If any batch fails; details name the failing batch
        """
        embeddings: list[list[float]] = []
        total = len(texts)
        total_batches = (total + self.batch_size - 1) // self.batch_size

        for batch_idx in range(0, total, self.batch_size):
            batch_num = batch_idx // self.batch_size + 1
            batch = texts[batch_idx:batch_idx + self.batch_size]

            # Every text in the batch settles before a failure is raised
            batch_results = await asyncio.gather(
                *(self.generate_embedding(text) for text in batch),
                return_exceptions=True,
            )
            failures = [r for r in batch_results if isinstance(r, BaseException)]
            for failure in failures:
                if not isinstance(failure, EmbeddingError):
                    raise failure
            if failures:
                logger.error(
                    f"Embedding batch {batch_num}/{total_batches} failed for "
                    f"{len(failures)}/{len(batch)} texts: {failures[0].message}"
                )
                raise EmbeddingError(
                    f"Batch {batch_num} embedding failed",
                    details={
                        "batch_num": batch_num,
                        "total_batches": total_batches,
                        "batch_size": len(batch),
                        "failed_count": len(failures),
                    },
                    original_error=failures[0],
                )

            embeddings.extend(batch_results)

            if batch_idx + self.batch_size < total and self.batch_delay > 0:
                await asyncio.sleep(self.batch_delay)

        return embeddings

    def chunk_text(
        self,
        text: str,
        max_chunk_size: int | None = None,
        overlap_size: int | None = None,
        preserve_sentences: bool = True,
    ) -> list[TextChunk]:
        """Split text into overlapping chunks (see SentenceWindowChunker)."""
        chunker = SentenceWindowChunker(
            max_chunk_size=max_chunk_size or self.max_chunk_size,
            overlap_size=self.overlap_size if overlap_size is None else overlap_size,
            preserve_sentences=preserve_sentences,
        )
        return chunker.split(text)

    @staticmethod
    def calculate_similarity(
        embedding1: Sequence[float] | None,
        embedding2: Sequence[float] | None,
    ) -> float:
        """Cosine similarity; 0.0 for missing or dimension-mismatched vectors."""
        return cosine_similarity(embedding1, embedding2)

    @staticmethod
    def extract_keywords(text: str) -> list[str]:
        return extract_keywords(text)

    @staticmethod
    def categorize_content(text: str) -> list[Category]:
        return categorize_content(text)
