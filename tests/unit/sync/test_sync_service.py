"""Tests for KnowledgeBaseSyncService."""

from unittest.mock import AsyncMock

import pytest

from kbsync.embedding import EmbeddingService
from kbsync.entities.knowledge_chunk import SourceType
from kbsync.errors import EmbeddingError, NotFoundError, RateLimitError
from kbsync.sources import SOURCE_MAPPERS, ExtractedContent
from kbsync.store import KnowledgeFilter
from kbsync.sync import (
    DocumentAction,
    KnowledgeBaseSyncService,
    SyncConfig,
    SyncStage,
)
from tests.utils.builders import project_record, task_record, team_record
from tests.utils.embedders import ConcurrencyTrackingEmbedder, FailingEmbedder


async def active_chunks(store, organization_id="org-1", **kwargs):
    return await store.find(KnowledgeFilter(organization_id=organization_id, **kwargs))


class TestSyncOrganization:

    @pytest.mark.asyncio
    async def test_indexes_every_document(self, sync_service, memory_store):
        summary = await sync_service.sync_organization("org-1")

        assert summary.processed == 4
        assert summary.skipped == 0
        assert summary.errors == []
        assert set(summary.per_source_type) == {str(t) for t in SourceType}
        assert summary.per_source_type["task"].processed == 2
        assert summary.end_time is not None
        assert summary.duration >= 0

        chunks = await active_chunks(memory_store)
        assert sorted(f"{c.source_type}:{c.source_id}" for c in chunks) == [
            "project:p1", "task:t1", "task:t2", "team:team-1",
        ]

    @pytest.mark.asyncio
    async def test_chunk_metadata(self, sync_service, memory_store):
        await sync_service.sync_organization("org-1", source_types=[SourceType.PROJECT])

        [chunk] = await active_chunks(memory_store)
        assert chunk.project_id == "p1"
        assert chunk.title == "Project: Alpha Launch"
        assert chunk.content.startswith("Project Name: Alpha Launch")
        assert chunk.embedding_model == "hashing-bow-v1"
        assert len(chunk.embedding) == 64
        assert chunk.total_chunks == 1
        assert chunk.user_id == "user-1"
        assert chunk.original_data["name"] == "Alpha Launch"
        assert "alpha" in chunk.keywords

    @pytest.mark.asyncio
    async def test_tenant_isolation(self, sync_service, memory_store):
        await sync_service.sync_organization("org-2")

        assert await active_chunks(memory_store) == []
        assert [c.source_id for c in await active_chunks(memory_store, "org-2")] == ["p9"]

    @pytest.mark.asyncio
    async def test_idempotent(self, sync_service, memory_store):
        await sync_service.sync_organization("org-1")
        ids_before = sorted(c.id for c in await active_chunks(memory_store))

        summary = await sync_service.sync_organization("org-1")

        assert summary.processed == 4
        assert summary.skipped == 4
        assert len(memory_store) == 4
        assert sorted(c.id for c in await active_chunks(memory_store)) == ids_before

    @pytest.mark.asyncio
    async def test_force_update_replaces_in_place(self, sync_service, source_repository, memory_store):
        await sync_service.sync_organization("org-1")
        ids_before = sorted(c.id for c in await active_chunks(memory_store))
        source_repository.add(SourceType.TASK, task_record("t1", name="Kickoff v2"))

        summary = await sync_service.sync_organization("org-1", force_update=True)

        assert summary.skipped == 0
        assert len(memory_store) == 4
        assert sorted(c.id for c in await active_chunks(memory_store)) == ids_before
        titles = {c.source_id: c.title for c in await active_chunks(memory_store)}
        assert titles["t1"] == "Task: Kickoff v2"

    @pytest.mark.asyncio
    async def test_full_replace_when_document_shrinks(self, sync_service, source_repository, memory_store):
        source_repository.add(SourceType.PROJECT, project_record(description="word " * 700))
        await sync_service.sync_organization("org-1", source_types=[SourceType.PROJECT])

        long_chunks = await active_chunks(memory_store)
        assert len(long_chunks) > 3
        assert all(c.total_chunks == len(long_chunks) for c in long_chunks)

        source_repository.add(SourceType.PROJECT, project_record(description="short again"))
        await sync_service.sync_organization("org-1", source_types=[SourceType.PROJECT], force_update=True)

        chunks = await memory_store.find(KnowledgeFilter(organization_id="org-1", include_inactive=True))
        assert [(c.chunk_index, c.total_chunks) for c in chunks] == [(0, 1)]
        assert "short again" in chunks[0].content

    @pytest.mark.asyncio
    async def test_document_failure_is_isolated(self, memory_store, source_repository):
        source_repository.add(SourceType.TASK, task_record("t2", description="EXPLODE"))
        sync_service = KnowledgeBaseSyncService(
            EmbeddingService(FailingEmbedder(), batch_delay=0.0),
            memory_store,
            source_repository,
            config=SyncConfig(sync_batch_delay=0.0),
        )

        summary = await sync_service.sync_organization("org-1")

        assert summary.processed == 3
        assert len(summary.errors) == 1
        error = summary.errors[0]
        assert (error.source_type, error.source_id) == ("task", "t2")
        assert "embedding failed" in error.error
        assert not await memory_store.has_source("org-1", "p1", SourceType.TASK, "t2")
        assert await memory_store.has_source("org-1", "p1", SourceType.TASK, "t1")

    @pytest.mark.asyncio
    async def test_rate_limited_document_is_marked_retryable(self, memory_store, source_repository):
        source_repository.add(SourceType.TASK, task_record("t2", description="EXPLODE"))
        embedder = FailingEmbedder(error=RateLimitError(retry_after=30))
        sync_service = KnowledgeBaseSyncService(
            EmbeddingService(embedder, batch_delay=0.0),
            memory_store,
            source_repository,
            config=SyncConfig(sync_batch_delay=0.0),
        )

        summary = await sync_service.sync_organization("org-1", source_types=[SourceType.TASK])

        [error] = summary.errors
        assert error.source_id == "t2"
        assert error.retryable is True
        assert summary.to_dict()["errors"][0]["retryable"] is True

    @pytest.mark.asyncio
    async def test_unknown_source_type_recorded(self, sync_service):
        summary = await sync_service.sync_organization("org-1", source_types=["project", "invoice"])

        assert summary.processed == 1
        assert [(e.source_type, e.source_id) for e in summary.errors] == [("invoice", None)]
        assert "Unknown source type" in summary.errors[0].error

    @pytest.mark.asyncio
    async def test_repository_failure_recorded(self, sync_service, source_repository, mocker):
        original = source_repository.list_records

        async def flaky(organization_id, source_type, project_id=None):
            if source_type == SourceType.TASK:
                raise ConnectionError("database unreachable")
            return await original(organization_id, source_type, project_id=project_id)

        mocker.patch.object(source_repository, "list_records", new=flaky)

        summary = await sync_service.sync_organization("org-1")

        assert summary.processed == 2
        assert [(e.source_type, e.source_id, e.error) for e in summary.errors] == [
            ("task", None, "Failed to load task records: database unreachable"),
        ]
        assert summary.errors[0].retryable is False

    @pytest.mark.asyncio
    async def test_batches_with_delay(self, embedding_service, memory_store, source_repository, mocker):
        sleep = mocker.patch("kbsync.sync.service.asyncio.sleep", new_callable=AsyncMock)
        for i in range(3, 6):
            source_repository.add(SourceType.TASK, task_record(f"t{i}", name=f"Task {i}"))
        sync_service = KnowledgeBaseSyncService(
            embedding_service, memory_store, source_repository,
            config=SyncConfig(sync_batch_size=2, sync_batch_delay=0.25),
        )

        summary = await sync_service.sync_organization("org-1", source_types=[SourceType.TASK])

        assert summary.processed == 5
        # 5 tasks in batches of 2 -> 3 batches, 2 pauses
        assert sleep.await_count == 2
        sleep.assert_awaited_with(0.25)

    @pytest.mark.asyncio
    async def test_documents_in_a_batch_run_one_at_a_time(self, memory_store, source_repository):
        for i in range(10):
            source_repository.add(SourceType.TEAM, team_record(f"team-{i + 2}", name=f"Team {i}"))
        embedder = ConcurrencyTrackingEmbedder()
        sync_service = KnowledgeBaseSyncService(
            EmbeddingService(embedder, batch_delay=0.0), memory_store, source_repository,
            config=SyncConfig(sync_batch_size=10, sync_batch_delay=0.0),
        )

        summary = await sync_service.sync_organization("org-1", source_types=[SourceType.TEAM])

        assert summary.processed == 11
        assert embedder.peak == 1

    @pytest.mark.asyncio
    async def test_progress_callback(self, embedding_service, memory_store, source_repository):
        updates = []
        sync_service = KnowledgeBaseSyncService(
            embedding_service, memory_store, source_repository,
            config=SyncConfig(sync_batch_size=1, sync_batch_delay=0.0),
        )

        await sync_service.sync_organization("org-1", source_types=[SourceType.TASK], on_progress=updates.append)

        assert [u.stage for u in updates] == [
            SyncStage.RESOLVING, SyncStage.PROCESSING, SyncStage.PROCESSING, SyncStage.COMPLETE,
        ]
        processing = [u for u in updates if u.stage is SyncStage.PROCESSING]
        assert [(u.current, u.total, u.batch_num, u.total_batches) for u in processing] == [(1, 2, 1, 2), (2, 2, 2, 2)]
        assert updates[-1].percent == 1.0
        assert all(u.source_type == "task" for u in updates)

    @pytest.mark.asyncio
    async def test_project_scope(self, sync_service, source_repository, memory_store):
        source_repository.add(SourceType.PROJECT, project_record("p2", name="Beta"))
        source_repository.add(SourceType.TASK, task_record("t7", project_id="p2"))

        await sync_service.sync_organization("org-1", project_id="p2")

        chunks = await active_chunks(memory_store)
        assert sorted(c.source_id for c in chunks) == ["p2", "t7"]


class TestProcessDocument:

    @pytest.mark.asyncio
    async def test_actions(self, sync_service):
        record = task_record()

        created = await sync_service.process_document(record, SourceType.TASK, "org-1")
        skipped = await sync_service.process_document(record, SourceType.TASK, "org-1")
        updated = await sync_service.process_document(record, "task", "org-1", force_update=True)

        assert (created.action, created.chunks) == (DocumentAction.CREATED, 1)
        assert skipped.action is DocumentAction.SKIPPED
        assert updated.action is DocumentAction.UPDATED
        assert all(r.success for r in (created, skipped, updated))

    @pytest.mark.asyncio
    async def test_empty_content_is_a_noop(self, sync_service, memory_store, mocker):
        mocker.patch.dict(SOURCE_MAPPERS, {SourceType.TASK: lambda record: ExtractedContent("Task: x", "   ")})

        result = await sync_service.process_document(task_record(), SourceType.TASK, "org-1")

        assert result.action is DocumentAction.EMPTY
        assert result.success
        assert len(memory_store) == 0

    @pytest.mark.asyncio
    async def test_blank_comment_is_not_indexed(self, sync_service, memory_store):
        record = {"id": "c1", "content": "", "author": "u3", "parent_type": "Project", "parent_id": "p1"}

        result = await sync_service.process_document(record, SourceType.COMMENT, "org-1")

        assert result.action is DocumentAction.EMPTY
        assert result.success
        assert len(memory_store) == 0

    @pytest.mark.asyncio
    async def test_embedding_failure_keeps_previous_chunks(self, sync_service, memory_store, source_repository):
        await sync_service.process_document(task_record(), SourceType.TASK, "org-1")
        failing = KnowledgeBaseSyncService(
            EmbeddingService(FailingEmbedder(), batch_delay=0.0), memory_store, source_repository,
        )

        with pytest.raises(EmbeddingError):
            await failing.process_document(
                task_record(description="EXPLODE"), SourceType.TASK, "org-1", force_update=True
            )

        [chunk] = await active_chunks(memory_store)
        assert "prepare agenda" in chunk.content

    @pytest.mark.asyncio
    async def test_explicit_project_override(self, sync_service, memory_store):
        await sync_service.process_document(task_record(), SourceType.TASK, "org-1", project_id="p-override")
        [chunk] = await active_chunks(memory_store)
        assert chunk.project_id == "p-override"


class TestSyncProject:

    @pytest.mark.asyncio
    async def test_missing_project(self, sync_service):
        with pytest.raises(NotFoundError, match="Project not found"):
            await sync_service.sync_project("nope")

    @pytest.mark.asyncio
    async def test_syncs_project_scoped_types_only(self, sync_service, memory_store):
        summary = await sync_service.sync_project("p1")

        assert summary.organization_id == "org-1"
        assert set(summary.per_source_type) == {"project", "task", "report", "comment", "attachment"}
        chunks = await active_chunks(memory_store)
        assert sorted(c.source_id for c in chunks) == ["p1", "t1", "t2"]


class TestRemoval:

    @pytest.mark.asyncio
    async def test_remove_project(self, sync_service, memory_store):
        await sync_service.sync_organization("org-1")

        result = await sync_service.remove_project("p1")

        assert result.removed["project"] == 1
        assert result.removed["task"] == 2
        assert result.total_removed == 3
        remaining = await active_chunks(memory_store)
        assert [c.source_id for c in remaining] == ["team-1"]

    @pytest.mark.asyncio
    async def test_remove_project_after_record_deleted(self, sync_service, source_repository, memory_store):
        await sync_service.sync_organization("org-1")
        source_repository.remove(SourceType.PROJECT, "p1")

        result = await sync_service.remove_project("p1")

        assert result.total_removed == 3
        assert [c.source_id for c in await active_chunks(memory_store)] == ["team-1"]

    @pytest.mark.asyncio
    async def test_remove_unknown_project_is_noop(self, sync_service):
        result = await sync_service.remove_project("ghost", organization_id="org-1")
        assert result.total_removed == 0

    @pytest.mark.asyncio
    async def test_remove_document(self, sync_service, memory_store):
        await sync_service.sync_organization("org-1")

        result = await sync_service.remove_document("org-1", SourceType.TASK, "t1")
        again = await sync_service.remove_document("org-1", "task", "t1")

        assert result.removed == {"task": 1}
        assert again.total_removed == 0
        assert not await memory_store.has_source("org-1", "p1", SourceType.TASK, "t1")


class TestStatus:

    @pytest.mark.asyncio
    async def test_sync_status(self, sync_service):
        before = await sync_service.get_sync_status("org-1")
        assert before.per_source_type["task"].indexed_chunks == 0
        assert before.per_source_type["task"].drift == 2

        await sync_service.sync_organization("org-1")
        after = await sync_service.get_sync_status("org-1")

        assert after.per_source_type["task"].indexed_chunks == 2
        assert after.per_source_type["task"].source_records == 2
        assert after.per_source_type["task"].drift == 0
        assert after.total_indexed == 4
        assert after.to_dict()["per_source_type"]["team"] == {
            "indexed_chunks": 1, "source_records": 1, "drift": 0,
        }

    @pytest.mark.asyncio
    async def test_knowledge_base_stats(self, sync_service):
        await sync_service.sync_organization("org-1")

        stats = await sync_service.get_knowledge_base_stats("org-1")

        assert stats.chunk_counts == {"project": 1, "task": 2, "team": 1}
        assert stats.total_chunks == 4
        assert stats.average_chunks["task"] == 1.0
        assert stats.to_dict()["per_source_type"]["task"] == {"count": 2, "avg_chunks": 1.0}
