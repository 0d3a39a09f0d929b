"""Serialization of editor mutations.

Editor mutations and stream-triggered reloads run one at a time, in arrival
order. Each one computes its next snapshot from the state the previous one
left behind.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class MutationQueue:
    """FIFO executor for coroutine factories.

    ``asyncio.Lock`` wakes waiters in the order they started waiting, which
    gives first-come, first-served execution.
    """

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._pending = 0

    @property
    def pending(self) -> int:
        """Mutations submitted and not yet finished (running one included)."""
        return self._pending

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    async def run(self, label: str, operation: Callable[[], Awaitable[T]]) -> T:
        """Run ``operation`` once every earlier submission has finished.

        Args:
            label: Name used in log messages.
            operation: Zero-argument coroutine factory.

        Returns:
            Whatever the operation returns; its exception propagates.
        """
        self._pending += 1
        try:
            async with self._lock:
                logger.debug("Running mutation: %s", label)
                return await operation()
        finally:
            self._pending -= 1
