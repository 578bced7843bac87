"""
Timing helpers for sync passes and retrieval calls.

``timer`` wraps a block and ``timed`` wraps a coroutine function. Both log
through loguru once the work finishes, and record whether it raised, so a
slow failure reads differently from a slow success in the log.
"""

import time
from contextlib import contextmanager
from dataclasses import dataclass
from functools import wraps
from typing import Any, Callable, Iterator

from loguru import logger

SLOW_OPERATION_MS = 1000


@dataclass
class Timing:
    """Outcome of a timed block, filled in when the block exits."""
    operation: str
    elapsed_ms: float = 0.0
    failed: bool = False

    def should_log(self, threshold_ms: float) -> bool:
        return self.failed or self.elapsed_ms >= threshold_ms

    def describe(self) -> str:
        outcome = "failed after" if self.failed else "took"
        if self.elapsed_ms > SLOW_OPERATION_MS:
            return f"{self.operation} {outcome} {self.elapsed_ms / 1000:.2f}s"
        return f"{self.operation} {outcome} {self.elapsed_ms:.2f}ms"


def _log(timing: Timing, level: str) -> None:
    logger.log("WARNING" if timing.failed else level.upper(), timing.describe())


@contextmanager
def timer(operation: str, log_level: str | None = "INFO", threshold_ms: float = 0) -> Iterator[Timing]:
    """Time a block of code.

    Args:
        operation: Description of the operation being timed
        log_level: Loguru level name, or None to only record the timing
        threshold_ms: Only log if the block takes at least this long (failures
            always log, at WARNING)

    Yields:
        A ``Timing`` whose ``elapsed_ms`` and ``failed`` are set on exit

    Example:
        >>> with timer("Sync task for org-1") as timing:
        ...     await sync.sync_source_type("org-1", SourceType.TASK)
        >>> timing.elapsed_ms
    """
    timing = Timing(operation)
    start = time.perf_counter()
    try:
        yield timing
    except BaseException:
        timing.failed = True
        raise
    finally:
        timing.elapsed_ms = (time.perf_counter() - start) * 1000
        if log_level and timing.should_log(threshold_ms):
            _log(timing, log_level)


def timed(operation: str | None = None, threshold_ms: float = 100):
    """Decorator timing every call of a coroutine function.

    Calls slower than ``SLOW_OPERATION_MS`` log at INFO, the rest at DEBUG;
    failures always log at WARNING.

    Example:
        >>> @timed("Query embedding", threshold_ms=50)
        ... async def embed_query(text):
        ...     return await embedder.embed([text])
    """
    def decorator(func: Callable) -> Callable:
        op_name = operation or f"{func.__module__}.{func.__name__}"

        @wraps(func)
        async def wrapper(*args, **kwargs) -> Any:
            try:
                with timer(op_name, log_level=None) as timing:
                    return await func(*args, **kwargs)
            finally:
                if timing.should_log(threshold_ms):
                    _log(timing, "INFO" if timing.elapsed_ms > SLOW_OPERATION_MS else "DEBUG")

        return wrapper
    return decorator
