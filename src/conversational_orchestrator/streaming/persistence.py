"""
Fire-and-forget persistence with ordering.

The stream bridge must not wait on storage, yet its writes have to reach the
database in the order the events arrived. 'PersistenceQueue.submit' returns
immediately; each operation runs in a background task that first waits for the
previously submitted one. A failing operation is logged and does not stop the
operations queued after it.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

from loguru import logger

from conversational_orchestrator.utils.tasks import BackgroundTasks

Operation = Callable[[], Awaitable[Any]]


class PersistenceQueue:
    def __init__(self, tasks: BackgroundTasks) -> None:
        self._tasks = tasks
        self._tail: asyncio.Task[None] | None = None

    def submit(self, operation: Operation, description: str) -> asyncio.Task[None]:
        previous = self._tail
        self._tail = self._tasks.spawn(self._run(operation, description, previous), name=f"persist {description}")
        return self._tail

    async def _run(self, operation: Operation, description: str, previous: asyncio.Task[None] | None) -> None:
        if previous is not None:
            await asyncio.wait({previous})
        try:
            await operation()
        except Exception:
            logger.exception(f"Failed to persist {description}")

    async def join(self) -> None:
        """Wait until every operation submitted so far has run."""
        if self._tail is not None:
            await asyncio.wait({self._tail})
