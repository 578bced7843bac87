"""Domain entities shared by the store, sync and retrieval layers."""

from .knowledge_chunk import (
    MAX_CONTENT_LENGTH,
    MAX_TITLE_LENGTH,
    Category,
    ChunkIdentity,
    KnowledgeChunk,
    SourceType,
    TextChunk,
)
from .search_result import RetrievedDocument

__all__ = [
    "Category",
    "ChunkIdentity",
    "KnowledgeChunk",
    "MAX_CONTENT_LENGTH",
    "MAX_TITLE_LENGTH",
    "RetrievedDocument",
    "SourceType",
    "TextChunk",
]
