"""Sliding-window chunker that prefers sentence boundaries."""

from loguru import logger

from ..entities.knowledge_chunk import TextChunk
from .base import BaseChunker

SENTENCE_TERMINATORS = (".", "!", "?")


class SentenceWindowChunker(BaseChunker):
    """Chunks text with a fixed-size sliding window and overlapping context.

    When ``preserve_sentences`` is set, each window's end is pulled back to
    just after the last sentence terminator inside the window, provided that
    terminator lies past the window's midpoint. Consecutive chunks share
    ``overlap_size`` characters so a match near a boundary still retrieves
    coherent text.

    Chunk text is always the exact slice ``text[start:end]``. Whitespace-only
    windows are not emitted, since they cannot be embedded.

    Attributes:
        max_chunk_size: Maximum characters per chunk
        overlap_size: Characters shared between consecutive chunks
        preserve_sentences: End chunks on sentence boundaries where possible
    """

    def __init__(
        self,
        max_chunk_size: int = 1000,
        overlap_size: int = 100,
        preserve_sentences: bool = True,
    ):
        """Initialize the chunker.

        Raises:
            ValueError: If max_chunk_size <= 0 or overlap_size not in [0, max_chunk_size)
        """
        if max_chunk_size <= 0:
            raise ValueError("max_chunk_size must be positive")
        if overlap_size < 0 or overlap_size >= max_chunk_size:
            raise ValueError("overlap_size must be in [0, max_chunk_size)")

        self.max_chunk_size = max_chunk_size
        self.overlap_size = overlap_size
        self.preserve_sentences = preserve_sentences

    def split(self, text: str) -> list[TextChunk]:
        if len(text) <= self.max_chunk_size:
            return [
                TextChunk(
                    text=text,
                    chunk_index=0,
                    start=0,
                    end=len(text),
                    has_overlap=False,
                    is_complete=True,
                    word_count=len(text.split()),
                )
            ]

        chunks: list[TextChunk] = []
        text_length = len(text)
        start = 0

        while start < text_length:
            end = min(start + self.max_chunk_size, text_length)

            if self.preserve_sentences and end < text_length:
                end = self._sentence_end(text, start, end)

            piece = text[start:end]
            if piece.strip():
                chunk_index = len(chunks)
                chunks.append(
                    TextChunk(
                        text=piece,
                        chunk_index=chunk_index,
                        start=start,
                        end=end,
                        has_overlap=chunk_index > 0,
                        is_complete=end >= text_length,
                        word_count=len(piece.split()),
                    )
                )

            if end >= text_length:
                break

            start = max(end - self.overlap_size, start + 1)

        logger.debug(
            f"Split {text_length} chars into {len(chunks)} chunks "
            f"(max={self.max_chunk_size}, overlap={self.overlap_size})"
        )
        return chunks

    def _sentence_end(self, text: str, start: int, end: int) -> int:
        """Return the boundary just after the last terminator in the window's second half."""
        last_terminator = max(text.rfind(mark, start, end) for mark in SENTENCE_TERMINATORS)
        if last_terminator > start + self.max_chunk_size * 0.5:
            return last_terminator + 1
        return end


def chunk_text(
    text: str,
    max_chunk_size: int = 1000,
    overlap_size: int = 100,
    preserve_sentences: bool = True,
) -> list[TextChunk]:
    """Convenience function for one-off chunking.

    Example:
        >>> chunks = chunk_text(long_description, max_chunk_size=800, overlap_size=100)
        >>> [c.chunk_index for c in chunks]
        [0, 1, 2]
    """
    chunker = SentenceWindowChunker(max_chunk_size, overlap_size, preserve_sentences)
    return chunker.split(text)
