from abc import ABC, abstractmethod
from collections.abc import Collection
from dataclasses import dataclass

from ..entities.knowledge_chunk import KnowledgeChunk


@dataclass(frozen=True)
class KnowledgeFilter:
    """
    Coarse filter applied before any similarity computation.

    Attributes:
        organization_id: Tenant scope (required)
        project_id: Restrict to one project (None = any project)
        source_types: Restrict to these source types (None/empty = all)
        categories: Keep chunks tagged with at least one of these (None = no filter)
        include_inactive: Also return soft-deleted chunks
    """
    organization_id: str
    project_id: str | None = None
    source_types: Collection[str] | None = None
    categories: Collection[str] | None = None
    include_inactive: bool = False

    def __post_init__(self):
        if not self.organization_id:
            raise ValueError("organization_id is required")

    def matches(self, chunk: KnowledgeChunk) -> bool:
        if chunk.organization_id != self.organization_id:
            return False
        if not self.include_inactive and not chunk.is_active:
            return False
        if self.project_id and chunk.project_id != self.project_id:
            return False
        if self.source_types and str(chunk.source_type) not in {str(s) for s in self.source_types}:
            return False
        if self.categories:
            wanted = {str(c) for c in self.categories}
            if not wanted.intersection(str(c) for c in chunk.categories):
                return False
        return True


class BaseKnowledgeStore(ABC):
    """
    Abstract persistence layer for knowledge chunks.

    Every write is keyed by the identity tuple
    (organization_id, project_id, source_type, source_id, chunk_index), so
    concurrent syncs of different source documents never conflict. Concurrent
    writes to the same identity are last-write-wins.
    """

    @abstractmethod
    async def upsert(self, chunk: KnowledgeChunk) -> KnowledgeChunk:
        """Insert the chunk or replace the one with the same identity tuple.

        The stored record keeps its original ``id`` and ``created_at`` and is
        reactivated if it had been soft-deleted.
        """
        pass

    @abstractmethod
    async def has_source(
        self,
        organization_id: str,
        project_id: str | None,
        source_type: str,
        source_id: str,
    ) -> bool:
        """True if any active chunk exists for the source document."""
        pass

    @abstractmethod
    async def delete_chunks_from(
        self,
        organization_id: str,
        project_id: str | None,
        source_type: str,
        source_id: str,
        start_index: int,
    ) -> int:
        """Hard-delete the source document's chunks with chunk_index >= start_index."""
        pass

    @abstractmethod
    async def delete_by_source(
        self,
        organization_id: str | None,
        project_id: str | None,
        source_type: str,
        source_id: str | None = None,
        hard: bool = False,
    ) -> int:
        """
        Bulk-delete chunks by source.

        Args:
            organization_id: Tenant scope; None matches every organization
            project_id: Project scope; None matches every project
            source_type: Source type to delete
            source_id: Restrict to a single source document
            hard: Purge records instead of marking them inactive

        Returns:
            Number of chunks affected (already-inactive chunks are not counted
            by a soft delete)
        """
        pass

    @abstractmethod
    async def delete_organization(self, organization_id: str) -> int:
        """Purge every chunk of an organization."""
        pass

    @abstractmethod
    async def find(self, knowledge_filter: KnowledgeFilter) -> list[KnowledgeChunk]:
        """Return chunks matching the filter."""
        pass

    @abstractmethod
    async def count_by_source_type(self, organization_id: str) -> dict[str, int]:
        """Count active chunks per source type."""
        pass

    @abstractmethod
    async def average_chunks_by_source_type(self, organization_id: str) -> dict[str, float]:
        """Average ``total_chunks`` of active chunks per source type."""
        pass

    async def close(self) -> None:
        """Release storage resources."""
        return None
