"""Best-effort background operations.

Some side effects (training-data collection, notifications) must never fail
the request that triggered them. They are submitted to a BestEffortRunner,
which runs them as background tasks, logs their failures and swallows them.
Anything not routed through here propagates its errors normally.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Optional

logger = logging.getLogger(__name__)


class BestEffortRunner:
    """Fire-and-forget task runner that keeps references until completion.

    The event loop only holds weak references to tasks, so the runner keeps
    each one in ``_tasks`` until it finishes.

    Example:
        >>> runner = BestEffortRunner()
        >>> runner.submit(collector.collect(...), label="training-data")
        >>> await runner.drain()  # e.g. at shutdown or in tests
    """

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[Any]] = set()
        self.failures = 0

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def submit(self, awaitable: Awaitable[Any], label: str = "background") -> asyncio.Task[Any]:
        """Schedule ``awaitable`` without waiting for it."""
        task = asyncio.ensure_future(self._guard(awaitable, label))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def run(self, awaitable: Awaitable[Any], label: str = "background") -> Optional[Any]:
        """Await ``awaitable`` inline, returning None instead of raising."""
        return await self._guard(awaitable, label)

    async def drain(self) -> None:
        """Wait for every submitted task to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    async def _guard(self, awaitable: Awaitable[Any], label: str) -> Optional[Any]:
        try:
            return await awaitable
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            self.failures += 1
            logger.warning("Best-effort operation '%s' failed: %s", label, exc, exc_info=True)
            return None


__all__ = ["BestEffortRunner"]
