"""Spaced FIFO queue for image requests."""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional, TypeVar

from ..config import Config

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RequestQueue:
    """
    Serialize requests and keep a minimum gap between them.

    Each request starts no sooner than `spacing` seconds after the previous
    one finished, whether that one succeeded or failed. asyncio.Lock wakes
    waiters in arrival order, so requests run in enqueue order.

    Usage:
        queue = RequestQueue(spacing=3.0)
        url = await queue.enqueue(lambda: provider.generate_image(prompt, seed))
    """

    def __init__(self, spacing: float = Config.IMAGE_QUEUE_SPACING,
                 clock: Callable[[], float] = time.monotonic):
        self.spacing = max(0.0, spacing)
        self._clock = clock
        self._lock: Optional[asyncio.Lock] = None  # Lazy init inside the running loop
        self._last_finished: Optional[float] = None
        self._pending = 0

    def _get_lock(self) -> asyncio.Lock:
        if self._lock is None:
            self._lock = asyncio.Lock()
        return self._lock

    @property
    def pending(self) -> int:
        """Requests waiting or running."""
        return self._pending

    async def enqueue(self, task_factory: Callable[[], Awaitable[T]]) -> T:
        """
        Run `task_factory()` once its turn comes and return its result.

        A failure is re-raised to this caller only; the queue keeps moving.
        """
        self._pending += 1
        try:
            async with self._get_lock():
                if self._last_finished is not None:
                    wait = self._last_finished + self.spacing - self._clock()
                    if wait > 0:
                        logger.debug("Queue spacing: waiting %.2fs", wait)
                        await asyncio.sleep(wait)
                try:
                    return await task_factory()
                finally:
                    self._last_finished = self._clock()
        finally:
            self._pending -= 1
