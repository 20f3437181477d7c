"""Fire-and-forget execution of best-effort side effects.

Direct messages, audit-channel posts and export cleanup must never change
the outcome a command reports. They are scheduled here: a failure is written
to the log and goes nowhere else.
"""

import asyncio
from typing import Any, Awaitable, Optional, Set

import structlog

logger = structlog.get_logger("background")


class BackgroundTasks:
    """Owns the tasks it spawns so they are not garbage collected mid-flight."""

    def __init__(self) -> None:
        self._tasks: Set[asyncio.Task] = set()

    def __len__(self) -> int:
        return len(self._tasks)

    def spawn(self, coro: Awaitable[Any], name: str, **log_context: Any) -> asyncio.Task:
        """Schedule ``coro``; its failure is logged under ``name`` and swallowed."""
        task = asyncio.ensure_future(self._guard(coro, name, log_context))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    @staticmethod
    async def _guard(coro: Awaitable[Any], name: str, log_context: dict) -> Optional[Any]:
        try:
            return await coro
        except asyncio.CancelledError:
            logger.debug("background_task_cancelled", task=name, **log_context)
            raise
        except Exception as e:
            logger.warning(
                "background_task_failed",
                task=name,
                error=str(e),
                error_type=type(e).__name__,
                **log_context,
            )
            return None

    async def drain(self, timeout: Optional[float] = None) -> None:
        """Wait for outstanding tasks; cancel whatever is still running after ``timeout``."""
        if not self._tasks:
            return
        pending = set(self._tasks)
        done, still_running = await asyncio.wait(pending, timeout=timeout)
        for task in still_running:
            task.cancel()
        if still_running:
            await asyncio.gather(*still_running, return_exceptions=True)
