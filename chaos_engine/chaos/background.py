"""
Background work tracking for failure injectors.

CPU burn and resource holders outlive the request that started them.
They are tracked here per cycle generation so that a cycle reset can
cancel everything the finished cycle left running.
"""

import asyncio
import threading
from collections.abc import Callable, Coroutine
from typing import Any

from chaos_engine.logging import get_logger

logger = get_logger(__name__)


class BackgroundWorkSet:
    """
    Set of asyncio tasks keyed by cycle generation.

    Blocking work runs in worker threads and receives the generation's
    cancel event, which it must poll.
    """

    def __init__(self, generation: int = 1):
        self._generation = generation
        self._tasks: dict[asyncio.Task[Any], int] = {}
        self._cancel_event = threading.Event()
        self._spawned_total = 0
        self._cancelled_total = 0
        self._dropped_total = 0

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def active_count(self) -> int:
        """Number of tracked tasks that have not finished yet."""
        return len(self._tasks)

    def spawn(
        self,
        coro: Coroutine[Any, Any, Any],
        generation: int | None = None,
        name: str | None = None,
    ) -> asyncio.Task[Any] | None:
        """
        Start a coroutine as tracked background work.

        Args:
            coro: Coroutine to run
            generation: Cycle generation the work belongs to (default: current)
            name: Optional task name

        Returns:
            The task, or None if the work belongs to a generation that was
            already cancelled
        """
        if generation is not None and generation != self._generation:
            coro.close()
            self._dropped_total += 1
            logger.debug(
                "Dropped background work %s from stale generation %d (current %d)",
                name or "task",
                generation,
                self._generation,
            )
            return None

        task = asyncio.create_task(coro, name=name)
        self._tasks[task] = self._generation
        self._spawned_total += 1
        task.add_done_callback(self._on_done)
        return task

    def spawn_thread(
        self,
        func: Callable[..., Any],
        *args: Any,
        generation: int | None = None,
        name: str | None = None,
    ) -> asyncio.Task[Any] | None:
        """
        Run a blocking callable in a worker thread as tracked work.

        The callable is invoked as func(*args, cancel_event).
        """
        return self.spawn(
            asyncio.to_thread(func, *args, self._cancel_event),
            generation=generation,
            name=name,
        )

    def _on_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.pop(task, None)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("Background task %s failed: %s", task.get_name(), exc)

    async def cancel_generation(self, next_generation: int) -> int:
        """
        Cancel all work of the current generation and open the next one.

        Args:
            next_generation: Generation that new work will belong to

        Returns:
            Number of tasks that were still running
        """
        tasks = list(self._tasks)
        self._cancel_event.set()
        self._generation = next_generation
        self._cancel_event = threading.Event()

        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        self._cancelled_total += len(tasks)
        if tasks:
            logger.info(
                "Cancelled %d background task(s); now on generation %d",
                len(tasks),
                next_generation,
            )
        return len(tasks)

    def get_stats(self) -> dict[str, int]:
        """Get background work statistics."""
        return {
            "generation": self._generation,
            "active": len(self._tasks),
            "spawned_total": self._spawned_total,
            "cancelled_total": self._cancelled_total,
            "dropped_total": self._dropped_total,
        }
