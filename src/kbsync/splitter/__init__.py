"""Text splitting for source documents."""

from .base import BaseChunker
from .sentence_window import SentenceWindowChunker, chunk_text

__all__ = ["BaseChunker", "SentenceWindowChunker", "chunk_text"]
