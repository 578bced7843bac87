"""Tests for EmbeddingService."""

from unittest.mock import AsyncMock

import pytest

from kbsync.embedding import EmbeddingService, HashingEmbedder
from kbsync.entities.knowledge_chunk import Category
from kbsync.errors import EmbeddingError
from tests.utils.embedders import FailingEmbedder, VocabularyEmbedder


class TestGenerateEmbedding:

    @pytest.mark.asyncio
    async def test_returns_provider_vector(self):
        service = EmbeddingService(VocabularyEmbedder(["alpha", "beta"]))
        assert await service.generate_embedding("alpha alpha beta") == [2.0, 1.0]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["", "   ", "\n\t"])
    async def test_empty_input_rejected(self, text):
        embedder = VocabularyEmbedder(["alpha"])
        service = EmbeddingService(embedder)

        with pytest.raises(EmbeddingError, match="Text cannot be empty"):
            await service.generate_embedding(text)
        assert embedder.calls == []

    @pytest.mark.asyncio
    async def test_provider_failure_wrapped(self):
        service = EmbeddingService(FailingEmbedder())

        with pytest.raises(EmbeddingError) as exc_info:
            await service.generate_embedding("EXPLODE now")

        assert isinstance(exc_info.value.original_error, RuntimeError)
        assert exc_info.value.details["model"] == "failing-test"

    @pytest.mark.asyncio
    async def test_empty_provider_result(self):
        embedder = VocabularyEmbedder(["alpha"])
        embedder.embed = AsyncMock(return_value=[])
        service = EmbeddingService(embedder)

        with pytest.raises(EmbeddingError, match="no embedding"):
            await service.generate_embedding("alpha")


class TestGenerateEmbeddings:

    @pytest.mark.asyncio
    async def test_batches_preserve_order(self):
        embedder = VocabularyEmbedder(["one", "two", "three"])
        service = EmbeddingService(embedder, batch_size=2, batch_delay=0.0)

        vectors = await service.generate_embeddings(["one", "two", "three"])

        assert vectors == [[1.0, 0.0, 0.0], [0.0, 1.0, 0.0], [0.0, 0.0, 1.0]]
        assert len(embedder.calls) == 3

    @pytest.mark.asyncio
    async def test_delay_between_batches_only(self, mocker):
        sleep = mocker.patch("kbsync.embedding.service.asyncio.sleep", new_callable=AsyncMock)
        service = EmbeddingService(VocabularyEmbedder(["x"]), batch_size=2, batch_delay=0.5)

        await service.generate_embeddings(["x"] * 5)

        # 3 batches -> 2 pauses
        assert sleep.await_count == 2
        sleep.assert_awaited_with(0.5)

    @pytest.mark.asyncio
    async def test_failing_batch_named_in_details(self):
        service = EmbeddingService(FailingEmbedder(), batch_size=2, batch_delay=0.0)

        with pytest.raises(EmbeddingError, match="Batch 2 embedding failed") as exc_info:
            await service.generate_embeddings(["ok", "ok", "EXPLODE", "ok"])

        assert exc_info.value.details == {"batch_num": 2, "total_batches": 2, "batch_size": 2, "failed_count": 1}

    @pytest.mark.asyncio
    async def test_every_failure_in_a_batch_is_collected(self, mocker):
        embedder = VocabularyEmbedder(["ok"])
        service = EmbeddingService(embedder, batch_size=3, batch_delay=0.0)
        original_embed = embedder.embed

        async def embed(texts):
            if texts == ["EXPLODE"]:
                raise RuntimeError("provider unavailable")
            return await original_embed(texts)

        mocker.patch.object(embedder, "embed", new=embed)

        with pytest.raises(EmbeddingError) as exc_info:
            await service.generate_embeddings(["EXPLODE", "ok", "EXPLODE"])

        assert exc_info.value.details["failed_count"] == 2
        assert isinstance(exc_info.value.original_error, EmbeddingError)
        # The healthy sibling still ran to completion
        assert embedder.calls == [["ok"]]

    @pytest.mark.asyncio
    async def test_empty_list(self):
        service = EmbeddingService(VocabularyEmbedder(["x"]))
        assert await service.generate_embeddings([]) == []

    def test_invalid_batch_size(self):
        with pytest.raises(ValueError, match="batch_size"):
            EmbeddingService(VocabularyEmbedder(["x"]), batch_size=0)


class TestTextHelpers:

    def test_chunk_text_uses_defaults(self):
        service = EmbeddingService(HashingEmbedder(dimension=8), max_chunk_size=50, overlap_size=5)
        chunks = service.chunk_text("a" * 120)
        assert [(c.start, c.end) for c in chunks] == [(0, 50), (45, 95), (90, 120)]

    def test_chunk_text_overrides(self):
        service = EmbeddingService(HashingEmbedder(dimension=8))
        chunks = service.chunk_text("b" * 120, max_chunk_size=60, overlap_size=0)
        assert [(c.start, c.end) for c in chunks] == [(0, 60), (60, 120)]

    def test_similarity_and_metadata_helpers(self):
        assert EmbeddingService.calculate_similarity([1.0, 0.0], [1.0, 0.0]) == 1.0
        assert EmbeddingService.calculate_similarity([1.0, 0.0], [1.0, 0.0, 0.0]) == 0.0
        assert EmbeddingService.extract_keywords("Budget budget review") == ["budget", "review"]
        assert EmbeddingService.categorize_content("Team meeting notes") == [Category.TEAM_COLLABORATION]

    def test_model_name_from_embedder(self):
        service = EmbeddingService(HashingEmbedder(dimension=8, model="hash-x"))
        assert service.model_name == "hash-x"
