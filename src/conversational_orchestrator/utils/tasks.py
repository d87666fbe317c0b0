"""
Detached background work.

'BackgroundTasks' owns every task the orchestrator launches without awaiting:
the event loop only keeps weak references to tasks, so the registry holds them
until they finish. Failures never travel back to the caller; a done-callback
routes them to the log instead.
"""

import asyncio
from collections.abc import Coroutine
from typing import Any

from loguru import logger


class BackgroundTasks:
    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[Any]] = set()

    def __len__(self) -> int:
        return len(self._tasks)

    def spawn(self, coroutine: Coroutine[Any, Any, Any], name: str | None = None) -> asyncio.Task[Any]:
        """Schedule 'coroutine' on the running loop and return its task."""
        task = asyncio.create_task(coroutine, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.debug(f"Background task {task.get_name()!r} was cancelled")
            return
        exception = task.exception()
        if exception is not None:
            logger.opt(exception=exception).error(f"Background task {task.get_name()!r} failed")

    async def wait_until_idle(self) -> None:
        """Wait for every task, including tasks spawned while waiting.

        Cancelling the wait leaves the tasks themselves running.
        """
        while self._tasks:
            await asyncio.wait(list(self._tasks))

    async def cancel_all(self) -> None:
        """Cancel every task and wait until they have all unwound."""
        for task in list(self._tasks):
            task.cancel()
        await self.wait_until_idle()
