"""Result types returned by the sync orchestrator."""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class DocumentAction(Enum):
    """Outcome of processing a single source document."""
    CREATED = "created"
    UPDATED = "updated"
    SKIPPED = "skipped"
    EMPTY = "empty"
    FAILED = "failed"


@dataclass
class DocumentResult:
    """
    Result of processing one source document.

    Attributes:
        source_id: Id of the source record
        action: What happened to the document
        chunks: Number of chunks written
        error: Failure message when action is FAILED
        retryable: Whether the failure is transient and a re-run may succeed
    """
    source_id: str
    action: DocumentAction
    chunks: int = 0
    error: str | None = None
    retryable: bool = False

    @property
    def success(self) -> bool:
        return self.action is not DocumentAction.FAILED


@dataclass
class SyncErrorEntry:
    """A failure recorded in a sync summary. source_id is None for type-level failures."""
    source_type: str
    error: str
    source_id: str | None = None
    retryable: bool = False


@dataclass
class SourceTypeSyncResult:
    source_type: str
    total: int = 0
    processed: int = 0
    skipped: int = 0
    errors: list[SyncErrorEntry] = field(default_factory=list)


@dataclass
class SyncSummary:
    """
    Aggregate outcome of a sync pass.

    ``processed`` counts documents handled successfully, including skipped
    and empty ones; ``skipped`` is the subset left untouched because they were
    already indexed.
    """
    organization_id: str
    start_time: datetime
    end_time: datetime | None = None
    processed: int = 0
    skipped: int = 0
    errors: list[SyncErrorEntry] = field(default_factory=list)
    per_source_type: dict[str, SourceTypeSyncResult] = field(default_factory=dict)

    @property
    def duration(self) -> float:
        """Elapsed seconds; 0.0 while the pass is still running."""
        if self.end_time is None:
            return 0.0
        return (self.end_time - self.start_time).total_seconds()

    @property
    def error_count(self) -> int:
        return len(self.errors)

    def add(self, result: SourceTypeSyncResult) -> None:
        self.per_source_type[result.source_type] = result
        self.processed += result.processed
        self.skipped += result.skipped
        self.errors.extend(result.errors)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["start_time"] = self.start_time.isoformat()
        data["end_time"] = self.end_time.isoformat() if self.end_time else None
        data["duration"] = self.duration
        return data


@dataclass
class RemovalResult:
    """Chunks deactivated by a removal, per source type."""
    project_id: str | None = None
    source_id: str | None = None
    removed: dict[str, int] = field(default_factory=dict)

    @property
    def total_removed(self) -> int:
        return sum(self.removed.values())


@dataclass
class SourceTypeStatus:
    source_type: str
    indexed_chunks: int
    source_records: int

    @property
    def drift(self) -> int:
        """Live records minus indexed chunks; negative when documents span several chunks."""
        return self.source_records - self.indexed_chunks


@dataclass
class SyncStatus:
    organization_id: str
    per_source_type: dict[str, SourceTypeStatus] = field(default_factory=dict)

    @property
    def total_indexed(self) -> int:
        return sum(s.indexed_chunks for s in self.per_source_type.values())

    @property
    def total_records(self) -> int:
        return sum(s.source_records for s in self.per_source_type.values())

    def to_dict(self) -> dict[str, Any]:
        return {
            "organization_id": self.organization_id,
            "total_indexed": self.total_indexed,
            "total_records": self.total_records,
            "per_source_type": {
                name: {
                    "indexed_chunks": s.indexed_chunks,
                    "source_records": s.source_records,
                    "drift": s.drift,
                }
                for name, s in self.per_source_type.items()
            },
        }


@dataclass
class KnowledgeBaseStats:
    organization_id: str
    chunk_counts: dict[str, int] = field(default_factory=dict)
    average_chunks: dict[str, float] = field(default_factory=dict)

    @property
    def total_chunks(self) -> int:
        return sum(self.chunk_counts.values())

    def to_dict(self) -> dict[str, Any]:
        return {
            "organization_id": self.organization_id,
            "total_chunks": self.total_chunks,
            "per_source_type": {
                name: {"count": count, "avg_chunks": self.average_chunks.get(name, 0.0)}
                for name, count in self.chunk_counts.items()
            },
        }
