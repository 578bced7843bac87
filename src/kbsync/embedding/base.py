"""Base embedder interface."""

from abc import ABC, abstractmethod


class BaseEmbedder(ABC):
    """Abstract base class for embedding generation.

    Embedders convert text strings into vector representations. The provider
    (and therefore the vector dimensionality) can be swapped; every stored
    chunk records ``model_name`` so vectors from different models are never
    compared.
    """

    @abstractmethod
    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Generate embeddings for a list of texts.

        Args:
            texts: List of text strings to embed

        Returns:
            List of embedding vectors (same order as input)
        """
        pass

    @property
    @abstractmethod
    def dimension(self) -> int:
        """Return the embedding dimension."""
        pass

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Return the model identifier stored alongside each vector."""
        pass

    async def aclose(self) -> None:
        """Release provider resources (HTTP clients, model handles)."""
        return None
