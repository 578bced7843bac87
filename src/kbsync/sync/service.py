"""
Knowledge base sync orchestrator.

``KnowledgeBaseSyncService`` pulls records from the host's
``SourceRepository``, maps each one to text, chunks and embeds it, and writes
the chunks to the knowledge store. Every write is keyed by the chunk identity
tuple, so a sync can be re-run (or cancelled half-way) without duplicating or
corrupting anything.

The processing flow per document:
1. Map the record to ``{title, content}`` (empty content is a no-op)
2. Skip it if it is already indexed, unless ``force_update`` is set
3. Chunk the content and embed every chunk
4. Upsert chunks 0..n-1, then delete stale chunks with index >= n

Example:
    >>> sync = KnowledgeBaseSyncService(embedding_service, store, repository)
    >>> summary = await sync.sync_organization("org-1", force_update=True)
    >>> print(f"{summary.processed} processed, {summary.error_count} errors")
"""

import asyncio
import logging
import uuid
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from typing import Any

from ..embedding.service import EmbeddingService
from ..entities.knowledge_chunk import KnowledgeChunk, SourceType
from ..errors import NotFoundError, SyncError, is_retryable
from ..sources.base import SourceRepository
from ..sources.mappers import extract_content, project_id_of, source_id_of, user_id_of
from ..store.base import BaseKnowledgeStore
from ..utils.performance import timer
from .config import SyncConfig
from .progress import CallbackProgressReporter, ProgressCallback, SyncProgress, SyncStage
from .results import (
    DocumentAction,
    DocumentResult,
    KnowledgeBaseStats,
    RemovalResult,
    SourceTypeStatus,
    SourceTypeSyncResult,
    SyncErrorEntry,
    SyncStatus,
    SyncSummary,
)

logger = logging.getLogger(__name__)

ALL_SOURCE_TYPES: tuple[SourceType, ...] = tuple(SourceType)

# Source types whose records belong to a single project
PROJECT_SOURCE_TYPES: tuple[SourceType, ...] = (
    SourceType.PROJECT,
    SourceType.TASK,
    SourceType.REPORT,
    SourceType.COMMENT,
    SourceType.ATTACHMENT,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class KnowledgeBaseSyncService:
    """
    Keeps the knowledge store consistent with the source records.

    The service holds no per-tenant state; one instance can serve every
    organization concurrently.

    Attributes:
        embedding_service: Chunking and embedding engine
        store: Knowledge store written by the sync
        repository: Host data-access layer
        config: Batch sizes, delays and chunking parameters
    """

    def __init__(
        self,
        embedding_service: EmbeddingService,
        store: BaseKnowledgeStore,
        repository: SourceRepository,
        config: SyncConfig | None = None,
    ):
        self.embedding_service = embedding_service
        self.store = store
        self.repository = repository
        self.config = config or SyncConfig()

    # ==================== Sync ====================

    async def sync_organization(
        self,
        organization_id: str,
        source_types: Iterable[SourceType | str] | None = None,
        force_update: bool = False,
        project_id: str | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> SyncSummary:
        """
        Sync every requested source type of an organization.

        Per-document and per-source-type failures are recorded in the
        returned summary; this method does not raise for them.

        Args:
            organization_id: Tenant to sync
            source_types: Source types to sync (default: all)
            force_update: Re-index documents that are already indexed
            project_id: Restrict the sync to one project
            on_progress: Optional callback for per-batch progress updates

        Returns:
            SyncSummary with counts, errors and timing
        """
        request_id = str(uuid.uuid4())[:8]
        types = list(source_types) if source_types is not None else list(ALL_SOURCE_TYPES)
        summary = SyncSummary(organization_id=organization_id, start_time=_utcnow())

        logger.info(
            f"[{request_id}] Sync started: organization={organization_id}, "
            f"source_types={[str(t) for t in types]}, project={project_id}, force_update={force_update}"
        )

        for source_type in types:
            result = await self.sync_source_type(
                organization_id,
                source_type,
                project_id=project_id,
                force_update=force_update,
                on_progress=on_progress,
            )
            summary.add(result)

        summary.end_time = _utcnow()
        logger.info(
            f"[{request_id}] Sync complete: organization={organization_id}, "
            f"processed={summary.processed}, skipped={summary.skipped}, "
            f"errors={summary.error_count}, duration={summary.duration:.2f}s"
        )
        return summary

    async def sync_source_type(
        self,
        organization_id: str,
        source_type: SourceType | str,
        project_id: str | None = None,
        force_update: bool = False,
        on_progress: ProgressCallback | None = None,
    ) -> SourceTypeSyncResult:
        """Sync all documents of one source type in rate-limited batches."""
        result = SourceTypeSyncResult(source_type=str(source_type))

        try:
            source_type = SourceType(source_type)
        except ValueError:
            logger.warning(f"Unknown source type skipped: {source_type}")
            result.errors.append(
                SyncErrorEntry(source_type=str(source_type), error=f"Unknown source type: {source_type}")
            )
            return result

        reporter = CallbackProgressReporter(on_progress) if on_progress else None

        with timer(f"Sync {source_type} for organization {organization_id}") as timing:
            if reporter:
                reporter.report(SyncProgress.create(SyncStage.RESOLVING, source_type, 0, 0))

            try:
                records = await self.repository.list_records(
                    organization_id, source_type, project_id=project_id
                )
            except Exception as e:
                error = SyncError(
                    f"Failed to load {source_type} records",
                    details={"organization_id": organization_id, "project_id": project_id},
                    original_error=e,
                )
                logger.error(str(error))
                result.errors.append(SyncErrorEntry(
                    source_type=str(source_type),
                    error=f"{error.message}: {e}",
                    retryable=is_retryable(e),
                ))
                return result

            result.total = len(records)
            batch_size = self.config.sync_batch_size
            total_batches = (result.total + batch_size - 1) // batch_size

            for batch_idx in range(0, result.total, batch_size):
                batch_num = batch_idx // batch_size + 1
                batch = records[batch_idx:batch_idx + batch_size]

                # Documents within a batch run one at a time to stay under provider rate limits
                for record in batch:
                    outcome = await self._process_safely(record, source_type, organization_id, force_update)
                    if not outcome.success:
                        result.errors.append(
                            SyncErrorEntry(
                                source_type=str(source_type),
                                source_id=outcome.source_id,
                                error=outcome.error or "unknown error",
                                retryable=outcome.retryable,
                            )
                        )
                        continue
                    result.processed += 1
                    if outcome.action is DocumentAction.SKIPPED:
                        result.skipped += 1

                if reporter:
                    reporter.report(SyncProgress.create(
                        stage=SyncStage.PROCESSING,
                        source_type=source_type,
                        current=min(batch_idx + batch_size, result.total),
                        total=result.total,
                        errors=len(result.errors),
                        batch_num=batch_num,
                        total_batches=total_batches,
                    ))

                if batch_idx + batch_size < result.total and self.config.sync_batch_delay > 0:
                    await asyncio.sleep(self.config.sync_batch_delay)

            if reporter:
                reporter.report(SyncProgress.create(
                    stage=SyncStage.COMPLETE,
                    source_type=source_type,
                    current=result.total,
                    total=result.total,
                    message=f"{source_type}: {result.processed} processed, {len(result.errors)} errors",
                    errors=len(result.errors),
                ))

        logger.debug(
            f"Synced {source_type} for {organization_id}: total={result.total}, "
            f"processed={result.processed}, skipped={result.skipped}, errors={len(result.errors)}, "
            f"elapsed={timing.elapsed_ms:.0f}ms"
        )
        return result

    async def sync_project(self, project_id: str, force_update: bool = False) -> SyncSummary:
        """
        Sync the project record and everything that belongs to it.

        Raises:
            NotFoundError: If the project does not exist
        """
        project = await self.repository.get_project(project_id)
        if project is None:
            raise NotFoundError(f"Project not found: {project_id}", details={"project_id": project_id})

        organization_id = project.get("organization_id")
        if not organization_id:
            raise NotFoundError(
                f"Project has no organization: {project_id}",
                details={"project_id": project_id},
            )

        return await self.sync_organization(
            str(organization_id),
            source_types=PROJECT_SOURCE_TYPES,
            force_update=force_update,
            project_id=project_id,
        )

    async def _process_safely(
        self,
        record: Mapping[str, Any],
        source_type: SourceType,
        organization_id: str,
        force_update: bool,
    ) -> DocumentResult:
        try:
            return await self.process_document(
                record, source_type, organization_id, force_update=force_update
            )
        except Exception as e:
            source_id = str(record.get("id", record.get("_id", "unknown")))
            logger.error(f"Failed to process {source_type}:{source_id}: {type(e).__name__}: {e}")
            return DocumentResult(
                source_id=source_id,
                action=DocumentAction.FAILED,
                error=str(e),
                retryable=is_retryable(e),
            )

    async def process_document(
        self,
        record: Mapping[str, Any],
        source_type: SourceType | str,
        organization_id: str,
        project_id: str | None = None,
        force_update: bool = False,
    ) -> DocumentResult:
        """
        Index a single source document.

        Usable directly as an on-write hook. All chunks are embedded before
        anything is written, so an embedding failure leaves the previously
        indexed chunks untouched.

        Args:
            record: Source record snapshot
            source_type: Type of the record
            organization_id: Tenant the record belongs to
            project_id: Owning project (derived from the record when omitted)
            force_update: Re-index even if the document is already indexed

        Raises:
            ValueError: If the source type is unknown or the record has no id
            EmbeddingError: If embedding any chunk fails
            StoreError: If the knowledge store rejects a write
        """
        source_type = SourceType(source_type)
        source_id = source_id_of(record)
        if project_id is None:
            project_id = project_id_of(record, source_type)

        extracted = extract_content(record, source_type)
        if extracted.is_empty:
            logger.debug(f"No content to index for {source_type}:{source_id}")
            return DocumentResult(source_id=source_id, action=DocumentAction.EMPTY)

        existed = await self.store.has_source(organization_id, project_id, source_type, source_id)
        if existed and not force_update:
            return DocumentResult(source_id=source_id, action=DocumentAction.SKIPPED)

        text_chunks = self.embedding_service.chunk_text(
            extracted.content,
            max_chunk_size=self.config.chunk_size,
            overlap_size=self.config.chunk_overlap,
        )
        embeddings = await self.embedding_service.generate_embeddings([c.text for c in text_chunks])

        processed_at = _utcnow()
        total_chunks = len(text_chunks)
        for text_chunk, embedding in zip(text_chunks, embeddings):
            await self.store.upsert(KnowledgeChunk(
                organization_id=organization_id,
                project_id=project_id,
                source_type=source_type,
                source_id=source_id,
                chunk_index=text_chunk.chunk_index,
                user_id=user_id_of(record),
                title=extracted.title,
                content=text_chunk.text,
                embedding=embedding,
                embedding_model=self.embedding_service.model_name,
                keywords=self.embedding_service.extract_keywords(text_chunk.text),
                categories=self.embedding_service.categorize_content(text_chunk.text),
                total_chunks=total_chunks,
                original_data=dict(record),
                processed_at=processed_at,
            ))

        stale = await self.store.delete_chunks_from(
            organization_id, project_id, source_type, source_id, total_chunks
        )
        if stale:
            logger.debug(f"Removed {stale} stale chunks of {source_type}:{source_id}")

        action = DocumentAction.UPDATED if existed else DocumentAction.CREATED
        return DocumentResult(source_id=source_id, action=action, chunks=total_chunks)

    # ==================== Removal ====================

    async def remove_project(self, project_id: str, organization_id: str | None = None) -> RemovalResult:
        """
        Deactivate every chunk keyed to a project.

        The organization is taken from the argument or the project record.
        When neither is available (the project was already deleted) the
        removal is keyed on the project id alone. Removing a project that has
        no chunks is a successful no-op.
        """
        if organization_id is None:
            project = await self.repository.get_project(project_id)
            if project is not None and project.get("organization_id"):
                organization_id = str(project["organization_id"])

        result = RemovalResult(project_id=project_id)
        for source_type in PROJECT_SOURCE_TYPES:
            result.removed[str(source_type)] = await self.store.delete_by_source(
                organization_id, project_id, source_type
            )

        logger.info(
            f"Removed project {project_id} from knowledge base: "
            f"{result.total_removed} chunks deactivated"
        )
        return result

    async def remove_document(
        self,
        organization_id: str,
        source_type: SourceType | str,
        source_id: str,
    ) -> RemovalResult:
        """Deactivate the chunks of one source document (no-op if none)."""
        source_type = SourceType(source_type)
        removed = await self.store.delete_by_source(
            organization_id, None, source_type, source_id=str(source_id)
        )
        logger.debug(f"Removed {source_type}:{source_id} from knowledge base ({removed} chunks)")
        return RemovalResult(source_id=str(source_id), removed={str(source_type): removed})

    # ==================== Status ====================

    async def get_sync_status(self, organization_id: str) -> SyncStatus:
        """Compare indexed chunk counts with live source record counts."""
        indexed = await self.store.count_by_source_type(organization_id)
        status = SyncStatus(organization_id=organization_id)
        for source_type in ALL_SOURCE_TYPES:
            records = await self.repository.count_records(organization_id, source_type)
            status.per_source_type[str(source_type)] = SourceTypeStatus(
                source_type=str(source_type),
                indexed_chunks=indexed.get(str(source_type), 0),
                source_records=records,
            )
        return status

    async def get_knowledge_base_stats(self, organization_id: str) -> KnowledgeBaseStats:
        """Active chunk counts and average chunks per document, per source type."""
        return KnowledgeBaseStats(
            organization_id=organization_id,
            chunk_counts=await self.store.count_by_source_type(organization_id),
            average_chunks=await self.store.average_chunks_by_source_type(organization_id),
        )
