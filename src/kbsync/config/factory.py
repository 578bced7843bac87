"""Wiring of the engine components from Settings."""

import logging
from dataclasses import dataclass

from ..embedding.factory import EmbedderFactory
from ..embedding.service import EmbeddingService
from ..errors import ConfigurationError
from ..retrieval.service import RetrievalService
from ..sources.base import SourceRepository
from ..sources.memory import InMemorySourceRepository
from ..store.base import BaseKnowledgeStore
from ..store.sql import SQLKnowledgeStore
from ..sync.config import SyncConfig
from ..sync.service import KnowledgeBaseSyncService
from .settings import Settings

logger = logging.getLogger(__name__)


@dataclass
class Engine:
    """The assembled components, sharing one embedder and one store."""
    embedding_service: EmbeddingService
    store: BaseKnowledgeStore
    repository: SourceRepository
    sync_service: KnowledgeBaseSyncService
    retrieval_service: RetrievalService

    async def aclose(self) -> None:
        await self.embedding_service.embedder.aclose()
        await self.store.close()


def create_embedding_service(settings: Settings) -> EmbeddingService:
    provider = settings.EMBEDDING_PROVIDER.lower()
    if provider == "openai":
        if not settings.EMBEDDING_API_KEY:
            raise ConfigurationError(
                "EMBEDDING_API_KEY is required for the openai embedding provider",
                details={"provider": provider},
            )
        params = {
            "base_url": settings.EMBEDDING_BASE_URL,
            "api_key": settings.EMBEDDING_API_KEY,
            "model": settings.EMBEDDING_MODEL,
        }
    else:
        params = {}

    try:
        embedder = EmbedderFactory.create(provider, **params)
    except ValueError as e:
        raise ConfigurationError(str(e), details={"provider": provider}, original_error=e)

    return EmbeddingService(
        embedder,
        batch_size=settings.EMBEDDING_BATCH_SIZE,
        batch_delay=settings.EMBEDDING_BATCH_DELAY,
    )


def build_engine(
    settings: Settings,
    repository: SourceRepository | None = None,
    store: BaseKnowledgeStore | None = None,
) -> Engine:
    """
    Assemble embedder, store, sync and retrieval services.

    Args:
        settings: Application settings
        repository: Host data-access layer (an empty in-memory one if omitted)
        store: Knowledge store (a SQLKnowledgeStore on DATABASE_URL if omitted)

    Raises:
        ConfigurationError: If the embedding provider is unknown or misconfigured
    """
    embedding_service = create_embedding_service(settings)
    store = store if store is not None else SQLKnowledgeStore(settings.DATABASE_URL)
    repository = repository if repository is not None else InMemorySourceRepository()

    sync_service = KnowledgeBaseSyncService(
        embedding_service, store, repository, config=SyncConfig.from_settings(settings)
    )
    retrieval_service = RetrievalService(
        embedding_service,
        store,
        sync_service=sync_service,
        default_limit=settings.RETRIEVAL_LIMIT,
        default_threshold=settings.SIMILARITY_THRESHOLD,
    )

    logger.info(
        f"Engine built: env={settings.ENV}, embedder={embedding_service.model_name}, "
        f"store={type(store).__name__}"
    )
    return Engine(embedding_service, store, repository, sync_service, retrieval_service)
