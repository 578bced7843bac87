"""Pytest configuration and global fixtures for kbsync tests."""

from pathlib import Path

import pytest

from kbsync.embedding import EmbeddingService, HashingEmbedder
from kbsync.entities.knowledge_chunk import SourceType
from kbsync.sources import InMemorySourceRepository
from kbsync.store import InMemoryKnowledgeStore, SQLKnowledgeStore
from kbsync.sync import KnowledgeBaseSyncService, SyncConfig
from tests.utils.builders import project_record, task_record, team_record

# ==================== Component Fixtures ====================

@pytest.fixture
def hashing_embedder():
    return HashingEmbedder(dimension=64)


@pytest.fixture
def embedding_service(hashing_embedder):
    return EmbeddingService(hashing_embedder, batch_delay=0.0)


@pytest.fixture
def memory_store():
    return InMemoryKnowledgeStore()


@pytest.fixture(params=["memory", "sql"])
def knowledge_store(request):
    """Run store contract tests against every implementation."""
    if request.param == "memory":
        yield InMemoryKnowledgeStore()
    else:
        store = SQLKnowledgeStore("sqlite://")
        yield store
        store._engine.dispose()


@pytest.fixture
def source_repository():
    """Two organizations; org-1 owns project p1 with two tasks and a team."""
    repo = InMemorySourceRepository()
    repo.add(SourceType.PROJECT, project_record())
    repo.add(SourceType.TASK, task_record("t1", name="Kickoff"))
    repo.add(SourceType.TASK, task_record("t2", name="Retro", description="collect feedback"))
    repo.add(SourceType.TEAM, team_record())
    repo.add(SourceType.PROJECT, project_record("p9", organization_id="org-2", name="Other"))
    return repo


@pytest.fixture
def sync_config():
    return SyncConfig(sync_batch_delay=0.0)


@pytest.fixture
def sync_service(embedding_service, memory_store, source_repository, sync_config):
    return KnowledgeBaseSyncService(embedding_service, memory_store, source_repository, config=sync_config)


# ==================== Pytest Configuration ====================

def pytest_configure(config):
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "e2e: End-to-end tests")


def pytest_collection_modifyitems(config, items):
    for item in items:
        rel_path = Path(item.fspath).relative_to(Path(__file__).parent)
        if "unit" in rel_path.parts:
            item.add_marker(pytest.mark.unit)
        elif "integration" in rel_path.parts:
            item.add_marker(pytest.mark.integration)
        elif "e2e" in rel_path.parts:
            item.add_marker(pytest.mark.e2e)
