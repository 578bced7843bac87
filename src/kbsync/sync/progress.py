"""
Progress tracking for knowledge base synchronization.

Long syncs (a whole organization, thousands of records) report progress per
batch so applications can show a progress bar or write log lines.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Protocol


class SyncStage(Enum):
    """Stages of a sync pass."""
    RESOLVING = "resolving"
    PROCESSING = "processing"
    COMPLETE = "complete"


@dataclass
class SyncProgress:
    """
    Progress information for one source type of a sync pass.

    Attributes:
        stage: Current stage
        source_type: Source type being synced
        current: Number of documents processed so far
        total: Total number of documents of this source type
        percent: Completion percentage (0.0 to 1.0)
        message: Human-readable progress message
        errors: Number of failed documents so far
        batch_num: Current batch number (1-indexed)
        total_batches: Total number of batches

    Example:
        >>> progress = SyncProgress.create(SyncStage.PROCESSING, "task", 20, 40)
        >>> print(f"{progress.percent:.0%} - {progress.message}")
        50% - task: 20/40
    """

    stage: SyncStage
    source_type: str
    current: int
    total: int
    percent: float
    message: str
    errors: int = 0
    batch_num: int = 0
    total_batches: int = 0

    @classmethod
    def create(
        cls,
        stage: SyncStage,
        source_type: str,
        current: int,
        total: int,
        message: str = "",
        errors: int = 0,
        batch_num: int = 0,
        total_batches: int = 0
    ) -> "SyncProgress":
        """Create a SyncProgress instance with auto-calculated percent."""
        percent = current / total if total > 0 else 0.0
        return cls(
            stage=stage,
            source_type=str(source_type),
            current=current,
            total=total,
            percent=percent,
            message=message or f"{source_type}: {current}/{total}",
            errors=errors,
            batch_num=batch_num,
            total_batches=total_batches
        )


# Type alias for progress callback functions
ProgressCallback = Callable[[SyncProgress], None]


class ProgressReporter(Protocol):
    """Protocol for progress reporting implementations."""

    def report(self, progress: SyncProgress) -> None:
        ...


class LoggingProgressReporter:
    """
    Progress reporter that logs to Python logging.

    Example:
        >>> reporter = LoggingProgressReporter()
        >>> reporter.report(progress)
        # Logs: "processing task: 20/40 (50.0%)"
    """

    def __init__(self, logger_name: str = "kbsync.sync"):
        self.logger = logging.getLogger(logger_name)

    def report(self, progress: SyncProgress) -> None:
        self.logger.info(
            f"{progress.stage.value} {progress.source_type}: {progress.current}/{progress.total} "
            f"({progress.percent:.1%})"
            + (f" [errors: {progress.errors}]" if progress.errors else "")
        )


class CallbackProgressReporter:
    """Progress reporter that calls a user-provided callback."""

    def __init__(self, callback: ProgressCallback):
        self.callback = callback

    def report(self, progress: SyncProgress) -> None:
        self.callback(progress)
