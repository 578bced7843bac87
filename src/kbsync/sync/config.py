"""
Sync configuration.

This module defines the knobs of the sync orchestrator: how many source
documents are processed per batch, how long to pause between batches to stay
under provider rate limits, and how indexed text is chunked.
"""

from dataclasses import dataclass

from ..entities.knowledge_chunk import MAX_CONTENT_LENGTH


@dataclass
class SyncConfig:
    """
    Configuration for knowledge base synchronization.

    Attributes:
        sync_batch_size: Number of source documents processed (one after
            another) before pausing for sync_batch_delay.
            Default: 10

        sync_batch_delay: Seconds to wait between batches. Keeps the
            embedding provider under its rate limit during large syncs.
            Default: 1.0

        chunk_size: Chunk window (characters) for indexed content. Must not
            exceed the stored content limit.
            Default: 800

        chunk_overlap: Characters shared by consecutive chunks.
            Default: 100

    Example:
        >>> config = SyncConfig(sync_batch_size=20, sync_batch_delay=0.0)
    """

    sync_batch_size: int = 10
    sync_batch_delay: float = 1.0
    chunk_size: int = 800
    chunk_overlap: int = 100

    def __post_init__(self):
        """Validate configuration values."""
        if self.sync_batch_size < 1:
            raise ValueError("sync_batch_size must be at least 1")
        if self.sync_batch_delay < 0:
            raise ValueError("sync_batch_delay must be non-negative")
        if not 1 <= self.chunk_size <= MAX_CONTENT_LENGTH:
            raise ValueError(f"chunk_size must be between 1 and {MAX_CONTENT_LENGTH}")
        if not 0 <= self.chunk_overlap < self.chunk_size:
            raise ValueError("chunk_overlap must be non-negative and smaller than chunk_size")

    @classmethod
    def from_settings(cls, settings) -> "SyncConfig":
        return cls(
            sync_batch_size=settings.SYNC_BATCH_SIZE,
            sync_batch_delay=settings.SYNC_BATCH_DELAY,
            chunk_size=settings.CHUNK_SIZE,
            chunk_overlap=settings.CHUNK_OVERLAP,
        )
