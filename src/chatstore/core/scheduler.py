"""Debounced, coalesced save scheduling.

The store does no locking of its own; callers serialize writes per entity.
``SaveScheduler`` does that for them: rapid saves of the same entity collapse
into one write after a quiet period, and saves of one entity never overlap.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable

from chatstore.core.config import SAVE_DELAY_MS

logger = logging.getLogger(__name__)

SaveFactory = Callable[[], Awaitable[object]]


class SaveScheduler:
    """Coalesces saves per key within a debounce window."""

    def __init__(self, delay_ms: int | None = None):
        self.delay = (SAVE_DELAY_MS if delay_ms is None else delay_ms) / 1000
        self._pending: dict[str, SaveFactory] = {}
        self._timers: dict[str, asyncio.Task] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    @property
    def pending_keys(self) -> list[str]:
        """Keys with a save waiting for its debounce window to close."""
        return sorted(self._pending)

    def _lock_for(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    def schedule(self, key: str, save: SaveFactory) -> None:
        """
        Schedule a save for an entity, replacing any pending one.

        The window restarts on every call, so only the last save scheduled
        during a burst runs. A save that already started is left alone.

        Args:
            key: Entity key, e.g. ``chats/{id}``
            save: Zero-argument coroutine function performing the write
        """
        self._pending[key] = save
        timer = self._timers.pop(key, None)
        if timer is not None:
            timer.cancel()
        self._timers[key] = asyncio.create_task(self._run_later(key))

    async def _run_later(self, key: str) -> None:
        await asyncio.sleep(self.delay)
        if self._timers.get(key) is asyncio.current_task():
            del self._timers[key]
        try:
            await self._run(key)
        except Exception:
            logger.exception("Scheduled save failed for %s", key)

    async def _run(self, key: str) -> None:
        async with self._lock_for(key):
            save = self._pending.pop(key, None)
            if save is None:
                return
            await save()

    def cancel(self, key: str) -> bool:
        """
        Drop a pending save that has not started.

        Returns:
            True if a save was dropped
        """
        timer = self._timers.pop(key, None)
        if timer is not None:
            timer.cancel()
        return self._pending.pop(key, None) is not None

    async def flush(self) -> None:
        """
        Run every pending save now and wait for all of them.

        Raises:
            Exception: The first error raised by a save, after all have run
        """
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()

        results = await asyncio.gather(
            *(self._run(key) for key in list(self._pending)), return_exceptions=True
        )
        errors = [r for r in results if isinstance(r, BaseException)]
        for error in errors:
            logger.error("Save failed during flush: %s", error)
        if errors:
            raise errors[0]
