"""Tests for BestEffortRunner."""

from __future__ import annotations

import asyncio

import pytest

from parley.core.tasks import BestEffortRunner


class TestBestEffortRunner:
    """Tests for the fire-and-forget runner."""

    @pytest.mark.asyncio
    async def test_submit_runs_in_background(self):
        """Submitted work completes after drain()."""
        runner = BestEffortRunner()
        done: list[str] = []

        async def work() -> None:
            await asyncio.sleep(0)
            done.append("x")

        runner.submit(work(), label="test")
        assert runner.pending == 1
        await runner.drain()

        assert done == ["x"]
        assert runner.pending == 0

    @pytest.mark.asyncio
    async def test_failures_are_swallowed_and_counted(self):
        """A failing task is logged and counted, never raised."""
        runner = BestEffortRunner()

        async def broken() -> None:
            raise RuntimeError("disk full")

        runner.submit(broken(), label="training-data")
        await runner.drain()

        assert runner.failures == 1

    @pytest.mark.asyncio
    async def test_run_inline_returns_none_on_failure(self):
        """run() awaits inline and returns None instead of raising."""
        runner = BestEffortRunner()

        async def broken() -> None:
            raise ValueError("bad")

        async def fine() -> int:
            return 3

        assert await runner.run(broken()) is None
        assert await runner.run(fine()) == 3
        assert runner.failures == 1

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self):
        """Cancelling a submitted task is not treated as a failure."""
        runner = BestEffortRunner()

        task = runner.submit(asyncio.sleep(10), label="slow")
        await asyncio.sleep(0)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert runner.failures == 0
