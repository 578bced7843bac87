"""RetrievedDocument entity representing a ranked retrieval result."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from .knowledge_chunk import KnowledgeChunk, SourceType


class RetrievedDocument(BaseModel):
    """A stored chunk returned by a similarity query.

    Attributes:
        document_id: Stored chunk id
        source_type: Type of the originating record
        source_id: Id of the originating record
        title: Chunk title
        content: Chunk text
        similarity: Cosine similarity to the query vector, in [-1, 1]
        metadata: Derived chunk metadata (keywords, categories, chunk position)
    """

    document_id: str
    source_type: SourceType
    source_id: str
    project_id: str | None = None
    title: str
    content: str
    similarity: float = Field(..., ge=-1.0, le=1.0)
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime | None = None

    model_config = {
        "frozen": True,  # Results are immutable
    }

    @classmethod
    def from_chunk(cls, chunk: KnowledgeChunk, similarity: float) -> "RetrievedDocument":
        return cls(
            document_id=chunk.id,
            source_type=chunk.source_type,
            source_id=chunk.source_id,
            project_id=chunk.project_id,
            title=chunk.title,
            content=chunk.content,
            similarity=similarity,
            metadata={
                "chunk_index": chunk.chunk_index,
                "total_chunks": chunk.total_chunks,
                "keywords": list(chunk.keywords),
                "categories": [str(c) for c in chunk.categories],
                "embedding_model": chunk.embedding_model,
                "processed_at": chunk.processed_at.isoformat(),
            },
            created_at=chunk.created_at,
        )
