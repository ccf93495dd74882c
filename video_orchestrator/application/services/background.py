"""Fire-and-forget task runner that keeps every task accounted for."""

import asyncio
from collections.abc import Coroutine
from typing import Any

from video_orchestrator.commons.telemetry import get_logger


class BackgroundTaskRunner:
    """Owns tasks nobody awaits.

    Holds strong references so tasks are not garbage collected mid-flight,
    logs their failures, and drains them on shutdown.
    """

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[Any]] = set()
        self._logger = get_logger(__name__)

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def submit(self, coro: Coroutine[Any, Any, Any], *, name: str) -> asyncio.Task[Any]:
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            self._logger.info(
                "Background task cancelled", extra={"task": task.get_name()}
            )
            return
        error = task.exception()
        if error is not None:
            self._logger.error(
                "Background task failed",
                exc_info=error,
                extra={"task": task.get_name()},
            )

    async def shutdown(self, grace_seconds: float) -> None:
        """Wait up to ``grace_seconds`` for running tasks, then cancel the rest."""
        if not self._tasks:
            return
        tasks = set(self._tasks)
        self._logger.info(
            "Draining background tasks",
            extra={"count": len(tasks), "grace_seconds": grace_seconds},
        )
        _, still_running = await asyncio.wait(tasks, timeout=grace_seconds)
        for task in still_running:
            task.cancel()
        if still_running:
            await asyncio.gather(*still_running, return_exceptions=True)
            self._logger.warning(
                "Cancelled background tasks at shutdown",
                extra={"count": len(still_running)},
            )
