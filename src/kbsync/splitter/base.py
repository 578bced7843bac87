"""Base chunker interface."""

from abc import ABC, abstractmethod

from ..entities.knowledge_chunk import TextChunk


class BaseChunker(ABC):
    """Abstract base class for text chunking.

    Chunkers split the extracted text of a source document into ordered
    pieces suitable for embedding and retrieval.
    """

    @abstractmethod
    def split(self, text: str) -> list[TextChunk]:
        """Split text into chunks.

        Args:
            text: Text to chunk

        Returns:
            Ordered list of chunks with their offsets in ``text``
        """
        pass
