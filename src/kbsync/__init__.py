"""
kbsync - Knowledge base synchronization and retrieval engine.

This package turns heterogeneous domain records (projects, tasks, activity,
teams, comments, attachments, reports) into a searchable vector index, keeps
the index consistent as the records change, and answers similarity queries
with context text ready for report generation.
"""

__version__ = "0.1.0"

# Embedding & chunking
from .embedding import BaseEmbedder, EmbedderFactory, EmbeddingService, HashingEmbedder, OpenAIEmbedder

# Core entities
from .entities import Category, KnowledgeChunk, RetrievedDocument, SourceType, TextChunk

# Errors
from .errors import EmbeddingError, KBSyncError, NotFoundError, RetrievalError, StoreError, SyncError

# Retrieval
from .retrieval import RetrievalService, build_report_context

# Sources
from .sources import InMemorySourceRepository, SourceRepository, extract_content
from .splitter import BaseChunker, SentenceWindowChunker, chunk_text

# Storage
from .store import BaseKnowledgeStore, InMemoryKnowledgeStore, KnowledgeFilter, SQLKnowledgeStore

# Sync
from .sync import KnowledgeBaseSyncService, SyncConfig, SyncProgress, SyncSummary

# Utilities
from .utils import categorize_content, cosine_similarity, extract_keywords

__all__ = [
    # Version
    "__version__",
    # Entities
    "Category",
    "KnowledgeChunk",
    "RetrievedDocument",
    "SourceType",
    "TextChunk",
    # Components
    "BaseChunker",
    "BaseEmbedder",
    "BaseKnowledgeStore",
    "EmbedderFactory",
    "EmbeddingService",
    "HashingEmbedder",
    "InMemoryKnowledgeStore",
    "InMemorySourceRepository",
    "KnowledgeFilter",
    "OpenAIEmbedder",
    "SQLKnowledgeStore",
    "SentenceWindowChunker",
    "SourceRepository",
    # Services
    "KnowledgeBaseSyncService",
    "RetrievalService",
    "SyncConfig",
    "SyncProgress",
    "SyncSummary",
    # Functions
    "build_report_context",
    "categorize_content",
    "chunk_text",
    "cosine_similarity",
    "extract_content",
    "extract_keywords",
    # Errors
    "EmbeddingError",
    "KBSyncError",
    "NotFoundError",
    "RetrievalError",
    "StoreError",
    "SyncError",
]
