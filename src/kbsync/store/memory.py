from collections import defaultdict
from datetime import datetime, timezone

from ..entities.knowledge_chunk import ChunkIdentity, KnowledgeChunk
from .base import BaseKnowledgeStore, KnowledgeFilter


class InMemoryKnowledgeStore(BaseKnowledgeStore):
    """
    Simple in-memory knowledge store keyed by identity tuple.
    Not persistent. No awaits happen inside an operation, so each call is
    atomic with respect to other coroutines on the same event loop.
    """

    def __init__(self):
        self._chunks: dict[ChunkIdentity, KnowledgeChunk] = {}

    def __len__(self) -> int:
        return len(self._chunks)

    async def upsert(self, chunk: KnowledgeChunk) -> KnowledgeChunk:
        key = chunk.identity
        existing = self._chunks.get(key)
        stored = chunk.model_copy(deep=True)
        stored.is_active = True
        stored.updated_at = datetime.now(timezone.utc)
        if existing is not None:
            stored.id = existing.id
            stored.created_at = existing.created_at
        self._chunks[key] = stored
        return stored.model_copy(deep=True)

    async def has_source(self, organization_id, project_id, source_type, source_id) -> bool:
        return any(
            chunk.is_active
            for key, chunk in self._chunks.items()
            if key[:4] == (organization_id, project_id, str(source_type), source_id)
        )

    async def delete_chunks_from(self, organization_id, project_id, source_type, source_id, start_index) -> int:
        prefix = (organization_id, project_id, str(source_type), source_id)
        doomed = [k for k in self._chunks if k[:4] == prefix and k.chunk_index >= start_index]
        for key in doomed:
            del self._chunks[key]
        return len(doomed)

    async def delete_by_source(
        self,
        organization_id,
        project_id,
        source_type,
        source_id=None,
        hard=False,
    ) -> int:
        affected = 0
        for key in list(self._chunks):
            if organization_id is not None and key.organization_id != organization_id:
                continue
            if project_id is not None and key.project_id != project_id:
                continue
            if key.source_type != str(source_type):
                continue
            if source_id is not None and key.source_id != source_id:
                continue

            if hard:
                del self._chunks[key]
                affected += 1
            elif self._chunks[key].is_active:
                self._chunks[key].is_active = False
                self._chunks[key].updated_at = datetime.now(timezone.utc)
                affected += 1
        return affected

    async def delete_organization(self, organization_id: str) -> int:
        doomed = [k for k in self._chunks if k.organization_id == organization_id]
        for key in doomed:
            del self._chunks[key]
        return len(doomed)

    async def find(self, knowledge_filter: KnowledgeFilter) -> list[KnowledgeChunk]:
        return [
            chunk.model_copy(deep=True)
            for chunk in self._chunks.values()
            if knowledge_filter.matches(chunk)
        ]

    async def count_by_source_type(self, organization_id: str) -> dict[str, int]:
        counts: dict[str, int] = defaultdict(int)
        for chunk in self._chunks.values():
            if chunk.organization_id == organization_id and chunk.is_active:
                counts[str(chunk.source_type)] += 1
        return dict(counts)

    async def average_chunks_by_source_type(self, organization_id: str) -> dict[str, float]:
        totals: dict[str, list[int]] = defaultdict(list)
        for chunk in self._chunks.values():
            if chunk.organization_id == organization_id and chunk.is_active:
                totals[str(chunk.source_type)].append(chunk.total_chunks)
        return {k: sum(v) / len(v) for k, v in totals.items()}
