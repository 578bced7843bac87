"""Knowledge base synchronization.

This module keeps the knowledge store consistent with the host's source
records: batched, rate-limited, idempotent indexing with per-document failure
isolation and progress reporting.
"""

from .config import SyncConfig
from .progress import (
    CallbackProgressReporter,
    LoggingProgressReporter,
    ProgressCallback,
    SyncProgress,
    SyncStage,
)
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
from .service import ALL_SOURCE_TYPES, PROJECT_SOURCE_TYPES, KnowledgeBaseSyncService

__all__ = [
    "ALL_SOURCE_TYPES",
    "CallbackProgressReporter",
    "DocumentAction",
    "DocumentResult",
    "KnowledgeBaseStats",
    "KnowledgeBaseSyncService",
    "LoggingProgressReporter",
    "PROJECT_SOURCE_TYPES",
    "ProgressCallback",
    "RemovalResult",
    "SourceTypeStatus",
    "SourceTypeSyncResult",
    "SyncConfig",
    "SyncErrorEntry",
    "SyncProgress",
    "SyncStage",
    "SyncStatus",
    "SyncSummary",
]
