"""
Retrieval service for report generation.

Answers "which stored chunks are most relevant to this query" for one
organization, and formats the answer as opaque context text for the report
generator. Similarity is recomputed over the stored embeddings on every call
(brute-force scan after a coarse metadata filter).
"""

import logging
from collections.abc import Iterable, Sequence

from ..embedding.service import EmbeddingService
from ..entities.knowledge_chunk import Category, SourceType
from ..entities.search_result import RetrievedDocument
from ..errors import RetrievalError, StoreError
from ..store.base import BaseKnowledgeStore, KnowledgeFilter
from ..sync.results import SyncSummary
from ..sync.service import KnowledgeBaseSyncService
from ..utils.performance import timed

logger = logging.getLogger(__name__)

DEFAULT_SOURCE_TYPES: tuple[SourceType, ...] = (
    SourceType.PROJECT,
    SourceType.TASK,
    SourceType.REPORT,
    SourceType.USER_ACTIVITY,
    SourceType.TEAM,
)
DEFAULT_LIMIT = 10
DEFAULT_SIMILARITY_THRESHOLD = 0.7

EMPTY_CONTEXT = "No relevant context found for this report."


def build_report_context(results: Sequence[RetrievedDocument], report_type: str = "executive") -> str:
    """
    Format retrieval results as a context block for the report generator.

    Results are grouped by source type in order of first appearance; each
    entry shows its relevance as a percentage with one decimal.
    """
    if not results:
        return EMPTY_CONTEXT

    grouped: dict[str, list[RetrievedDocument]] = {}
    for doc in results:
        grouped.setdefault(str(doc.source_type), []).append(doc)

    parts = [f"\n=== RELEVANT CONTEXT FOR {report_type.upper()} REPORT ===\n\n"]
    for source_type, docs in grouped.items():
        parts.append(f"--- {source_type.upper()} INFORMATION ---\n")
        for index, doc in enumerate(docs, start=1):
            parts.append(f"\n{index}. {doc.title} (Relevance: {doc.similarity * 100:.1f}%)\n")
            parts.append(f"{doc.content}\n")
            parts.append(f"Source: {source_type} (ID: {doc.source_id})\n")
        parts.append("\n")

    parts.append("\n=== END CONTEXT ===\n\n")
    parts.append(
        f"Use this relevant context to generate a more accurate and detailed {report_type} report. "
        "Focus on the most relevant information and provide specific insights based on the project data.\n\n"
    )
    return "".join(parts)


class RetrievalService:
    """
    Similarity search over the knowledge store.

    Attributes:
        embedding_service: Used to embed the query (once per call)
        store: Knowledge store to search
        sync_service: Optional; when set, an empty tenant triggers one
            best-effort sync before giving up
        default_limit: Maximum results when the caller gives no limit
        default_threshold: Minimum similarity when the caller gives none
    """

    def __init__(
        self,
        embedding_service: EmbeddingService,
        store: BaseKnowledgeStore,
        sync_service: KnowledgeBaseSyncService | None = None,
        default_limit: int = DEFAULT_LIMIT,
        default_threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
    ):
        self.embedding_service = embedding_service
        self.store = store
        self.sync_service = sync_service
        self.default_limit = default_limit
        self.default_threshold = default_threshold

    @timed("Knowledge retrieval")
    async def retrieve_relevant_documents(
        self,
        query: str,
        organization_id: str,
        project_id: str | None = None,
        source_types: Iterable[SourceType | str] | None = DEFAULT_SOURCE_TYPES,
        limit: int | None = None,
        similarity_threshold: float | None = None,
        categories: Iterable[Category | str] | None = None,
    ) -> list[RetrievedDocument]:
        """
        Return the stored chunks most similar to the query.

        Args:
            query: Free-text query
            organization_id: Tenant scope
            project_id: Restrict to one project
            source_types: Restrict to these source types (None or empty = all)
            limit: Maximum number of results
            similarity_threshold: Minimum cosine similarity
            categories: Keep chunks tagged with at least one of these

        Returns:
            Results sorted by similarity (highest first); ties keep store order

        Raises:
            EmbeddingError: If the query cannot be embedded
            RetrievalError: If the knowledge store cannot be read
        """
        limit = self.default_limit if limit is None else limit
        threshold = self.default_threshold if similarity_threshold is None else similarity_threshold
        source_types = [SourceType(s) for s in source_types] if source_types else None

        query_embedding = await self.embedding_service.generate_embedding(query)

        knowledge_filter = KnowledgeFilter(
            organization_id=organization_id,
            project_id=project_id,
            source_types=source_types,
            categories=[Category(c) for c in categories] if categories else None,
        )
        chunks = await self._find(knowledge_filter)

        if not chunks and self.sync_service is not None:
            logger.info(f"No indexed knowledge for {organization_id}, running a bootstrap sync")
            try:
                await self.sync_service.sync_organization(organization_id, source_types=source_types)
            except Exception as e:
                logger.error(f"Bootstrap sync failed for {organization_id}: {type(e).__name__}: {e}")
            chunks = await self._find(knowledge_filter)

        scored = []
        for chunk in chunks:
            similarity = self.embedding_service.calculate_similarity(query_embedding, chunk.embedding)
            # Exactly 0 means a dimension mismatch (model migration), not low relevance
            if similarity == 0 or similarity < threshold:
                continue
            scored.append((similarity, chunk))

        scored.sort(key=lambda item: item[0], reverse=True)
        results = [RetrievedDocument.from_chunk(chunk, similarity) for similarity, chunk in scored[:limit]]

        logger.debug(
            f"Retrieved {len(results)}/{len(chunks)} chunks for {organization_id} "
            f"(threshold={threshold}, limit={limit})"
        )
        return results

    async def _find(self, knowledge_filter: KnowledgeFilter):
        try:
            return await self.store.find(knowledge_filter)
        except StoreError as e:
            raise RetrievalError(
                "Knowledge store search failed",
                details={"organization_id": knowledge_filter.organization_id},
                original_error=e,
            )

    def build_report_context(self, results: Sequence[RetrievedDocument], report_type: str = "executive") -> str:
        return build_report_context(results, report_type)

    async def build_context_for_report(
        self,
        query: str,
        organization_id: str,
        report_type: str = "executive",
        project_id: str | None = None,
        **retrieval_options,
    ) -> str:
        """
        Retrieve and format context in one call.

        Report generation must not fail because retrieval did: any error is
        logged and the empty-context text is returned instead.
        """
        try:
            results = await self.retrieve_relevant_documents(
                query, organization_id, project_id=project_id, **retrieval_options
            )
        except Exception as e:
            logger.warning(f"Context retrieval failed for {organization_id}, continuing without context: {e}")
            return EMPTY_CONTEXT
        return build_report_context(results, report_type)

    async def regenerate_embeddings(self, organization_id: str) -> tuple[int, SyncSummary]:
        """
        Purge an organization's chunks and re-index everything.

        Used after switching embedding models, so no stale vectors of the
        old model remain.

        Returns:
            (number of purged chunks, summary of the forced re-sync)
        """
        if self.sync_service is None:
            raise RuntimeError("regenerate_embeddings requires a sync service")

        deleted = await self.store.delete_organization(organization_id)
        logger.info(f"Purged {deleted} chunks of {organization_id} for regeneration")

        summary = await self.sync_service.sync_organization(organization_id, force_update=True)
        return deleted, summary
