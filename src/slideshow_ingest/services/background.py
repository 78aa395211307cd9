"""Fire-and-forget task launching with observable failures."""

import asyncio
import logging
from collections.abc import Coroutine
from dataclasses import dataclass, field
from typing import Any

_logger = logging.getLogger(__name__)


@dataclass
class BackgroundDispatcher:
    """Runs coroutines detached from the caller.

    Launched tasks are referenced until they finish so they are not garbage
    collected mid-flight. Failures are logged and never reach the caller.
    """

    _tasks: set[asyncio.Task[Any]] = field(default_factory=set, init=False)

    def launch(self, coro: Coroutine[Any, Any, Any], name: str) -> asyncio.Task[Any]:
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._finished)
        return task

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for every launched task, including ones launched meanwhile."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _finished(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            _logger.error(
                "Background task failed",
                exc_info=error,
                extra={"task": task.get_name()},
            )
