"""KnowledgeChunk entity: the unit that is embedded, stored and searched."""

from datetime import datetime, timezone
from enum import StrEnum
from typing import Any, NamedTuple
from uuid import uuid4

from pydantic import BaseModel, Field

MAX_TITLE_LENGTH = 200
MAX_CONTENT_LENGTH = 5000


class SourceType(StrEnum):
    PROJECT = "project"
    TASK = "task"
    USER_ACTIVITY = "user_activity"
    REPORT = "report"
    TEAM = "team"
    COMMENT = "comment"
    ATTACHMENT = "attachment"


class Category(StrEnum):
    PROJECT_MANAGEMENT = "project_management"
    TASK_MANAGEMENT = "task_management"
    TEAM_COLLABORATION = "team_collaboration"
    PERFORMANCE = "performance"
    RISK_ASSESSMENT = "risk_assessment"
    TIMELINE = "timeline"
    RESOURCE_ALLOCATION = "resource_allocation"


class ChunkIdentity(NamedTuple):
    """Uniqueness key of a stored chunk."""
    organization_id: str
    project_id: str | None
    source_type: str
    source_id: str
    chunk_index: int


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class KnowledgeChunk(BaseModel):
    """
    A bounded piece of a source document together with its embedding.

    One record exists per identity tuple
    (organization_id, project_id, source_type, source_id, chunk_index);
    re-syncing a source document replaces its records in place.
    """
    # Identity
    organization_id: str = Field(..., min_length=1)
    project_id: str | None = None
    source_type: SourceType
    source_id: str = Field(..., min_length=1)
    chunk_index: int = Field(default=0, ge=0)

    # Payload
    title: str = Field(..., max_length=MAX_TITLE_LENGTH)
    content: str = Field(..., min_length=1, max_length=MAX_CONTENT_LENGTH)
    embedding: list[float] = Field(default_factory=list)
    embedding_model: str = Field(default="unknown")

    # Derived metadata
    keywords: list[str] = Field(default_factory=list)
    categories: list[Category] = Field(default_factory=list)
    total_chunks: int = Field(default=1, ge=1)
    original_data: dict[str, Any] = Field(default_factory=dict)
    user_id: str | None = None
    processed_at: datetime = Field(default_factory=_utcnow)

    # Lifecycle
    is_active: bool = True
    id: str = Field(default_factory=lambda: str(uuid4()))
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    model_config = {
        "frozen": False,
    }

    @property
    def identity(self) -> ChunkIdentity:
        return ChunkIdentity(
            self.organization_id,
            self.project_id,
            str(self.source_type),
            self.source_id,
            self.chunk_index,
        )


class TextChunk(BaseModel):
    """A slice of text produced by the splitter, before embedding.

    Attributes:
        text: The chunk text, exactly ``source[start:end]``
        chunk_index: Position in the chunk sequence (0-based)
        start: Offset of the first character in the source text
        end: Offset one past the last character
        has_overlap: True when the chunk shares leading context with its predecessor
        is_complete: True when the chunk reaches the end of the source text
        word_count: Whitespace-separated token count
    """

    text: str
    chunk_index: int = Field(..., ge=0)
    start: int = Field(..., ge=0)
    end: int = Field(..., ge=0)
    has_overlap: bool = False
    is_complete: bool = False
    word_count: int = 0

    model_config = {
        "frozen": True,
    }
