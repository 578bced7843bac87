"""Tests for the timing helpers."""

import asyncio

import pytest
from loguru import logger

from kbsync.utils.performance import SLOW_OPERATION_MS, Timing, timed, timer


@pytest.fixture
def log_lines():
    lines: list[str] = []
    handler_id = logger.add(lambda message: lines.append(message.rstrip("\n")), format="{level} {message}")
    yield lines
    logger.remove(handler_id)


class TestTiming:

    def test_describe_success(self):
        assert Timing("Load tasks", elapsed_ms=12.345).describe() == "Load tasks took 12.35ms"

    def test_describe_slow_failure_in_seconds(self):
        timing = Timing("Load tasks", elapsed_ms=SLOW_OPERATION_MS * 2.5, failed=True)
        assert timing.describe() == "Load tasks failed after 2.50s"

    def test_failures_ignore_threshold(self):
        assert not Timing("x", elapsed_ms=1).should_log(100)
        assert Timing("x", elapsed_ms=1, failed=True).should_log(100)


class TestTimer:

    def test_records_elapsed_and_logs(self, log_lines):
        with timer("Test operation") as timing:
            sum(range(1000))

        assert timing.elapsed_ms > 0
        assert not timing.failed
        assert log_lines == [f"INFO {timing.describe()}"]

    def test_below_threshold_is_silent(self, log_lines):
        with timer("Fast operation", threshold_ms=10_000):
            pass

        assert log_lines == []

    def test_failure_logged_as_warning(self, log_lines):
        with pytest.raises(ValueError):
            with timer("Failing operation", log_level="DEBUG", threshold_ms=10_000) as timing:
                raise ValueError("Test error")

        assert timing.failed
        assert len(log_lines) == 1
        assert log_lines[0].startswith("WARNING Failing operation failed after")

    def test_log_level_is_case_insensitive(self, log_lines):
        with timer("Debug operation", log_level="debug"):
            pass

        assert log_lines[0].startswith("DEBUG Debug operation took")

    def test_record_only(self, log_lines):
        with timer("Quiet operation", log_level=None) as timing:
            pass

        assert log_lines == []
        assert timing.elapsed_ms >= 0

    @pytest.mark.asyncio
    async def test_around_awaits(self):
        with timer("Async operation") as timing:
            await asyncio.sleep(0)

        assert timing.elapsed_ms >= 0


class TestTimed:

    @pytest.mark.asyncio
    async def test_returns_result_and_logs_at_debug(self, log_lines):
        @timed(operation="Custom Operation", threshold_ms=0)
        async def my_function(x, y=1):
            return x + y

        assert await my_function(41) == 42
        assert len(log_lines) == 1
        assert log_lines[0].startswith("DEBUG Custom Operation took")

    @pytest.mark.asyncio
    async def test_fast_calls_are_silent(self, log_lines):
        @timed()
        async def fast_function():
            return "result"

        assert await fast_function() == "result"
        assert log_lines == []

    @pytest.mark.asyncio
    async def test_failure_propagates_and_logs(self, log_lines):
        @timed()
        async def failing():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError, match="boom"):
            await failing()

        assert len(log_lines) == 1
        assert log_lines[0].startswith("WARNING ")
        assert "failing failed after" in log_lines[0]

    def test_preserves_metadata(self):
        @timed()
        async def documented():
            """Docstring."""

        assert documented.__name__ == "documented"
        assert documented.__doc__ == "Docstring."
