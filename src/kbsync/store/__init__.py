"""Knowledge store: persistence for indexed chunks."""

from .base import BaseKnowledgeStore, KnowledgeFilter
from .memory import InMemoryKnowledgeStore
from .sql import KnowledgeChunkRecord, SQLKnowledgeStore

__all__ = [
    "BaseKnowledgeStore",
    "InMemoryKnowledgeStore",
    "KnowledgeChunkRecord",
    "KnowledgeFilter",
    "SQLKnowledgeStore",
]
