"""Countdown timer for the answering phase.

One ``CountdownTimer`` owns at most one live asyncio task. Starting it again
cancels the previous task first, and ``cancel`` is safe to call on every
exit path (answered, expired, abandoned).
"""

import asyncio
import inspect
import logging
import time
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


async def _call(callback: Optional[Callable[..., Any]], *args) -> None:
    if callback is None:
        return
    result = callback(*args)
    if inspect.isawaitable(result):
        await result


def _current_task() -> Optional[asyncio.Task]:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None


class CountdownTimer:
    """Ticks once per interval and fires an expiry callback after a short grace delay."""

    def __init__(self, name: str = "question", interval: float = 1.0, grace: float = 0.5):
        self.name = name
        self.interval = interval
        self.grace = grace
        self._task: Optional[asyncio.Task] = None
        self._remaining = 0
        self._duration = 0
        self._started_at: Optional[float] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def remaining(self) -> int:
        return self._remaining

    def start(
        self,
        duration: int,
        on_tick: Optional[Callable[[int], Any]] = None,
        on_expire: Optional[Callable[[], Any]] = None,
    ) -> asyncio.Task:
        """Start counting down from duration. Must be called from a running event loop."""
        if self.is_running:
            logger.warning(f"Timer {self.name}: replacing live countdown")
            self.cancel()

        self._duration = duration
        self._remaining = duration
        self._started_at = time.time()
        self._task = asyncio.get_running_loop().create_task(self._run(on_tick, on_expire))
        logger.debug(f"Timer {self.name}: started, duration {duration}")
        return self._task

    async def _run(self, on_tick, on_expire) -> None:
        try:
            while self._remaining > 0:
                await asyncio.sleep(self.interval)
                self._remaining -= 1
                await _call(on_tick, self._remaining)

            await asyncio.sleep(self.grace)
            elapsed = time.time() - (self._started_at or time.time())
            logger.info(f"Timer {self.name}: expired after {elapsed:.1f}s")
            await _call(on_expire)
        except asyncio.CancelledError:
            logger.debug(f"Timer {self.name}: cancelled with {self._remaining} left")
            raise
        except Exception as e:
            logger.error(f"Timer {self.name}: callback failed: {e}")
            raise

    def cancel(self) -> bool:
        """Cancel the live countdown. Returns True if a task was actually cancelled."""
        if not self.is_running:
            return False
        if self._task is _current_task():
            # Called from our own expiry callback; the task is already finishing
            return False
        self._task.cancel()
        logger.debug(f"Timer {self.name}: cancel requested")
        return True

    async def wait_cancelled(self) -> None:
        """Cancel and wait until the task has fully unwound."""
        task = self._task
        if self.cancel() and task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass
