"""
Bounded execution context for data-layer work.

Every lookup and transition runs inside a slot from this gate, so a burst of
submissions can't open more concurrent sessions than the connection pool is
sized for. Request handling code awaits the result and never blocks on it.
"""

import asyncio
import logging
from contextlib import asynccontextmanager

logger = logging.getLogger(__name__)


class DatabaseExecutionContext:
    """
    Concurrency gate in front of the database.

    Example:
        async with execution_context.slot():
            async with session_factory() as session:
                ...
    """

    def __init__(self, max_concurrency: int):
        """
        Args:
            max_concurrency: Maximum number of data-layer tasks in flight
        """
        if max_concurrency < 1:
            raise ValueError(f"max_concurrency must be at least 1, got {max_concurrency}")
        self._max_concurrency = max_concurrency
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self._in_flight = 0

    @property
    def max_concurrency(self) -> int:
        return self._max_concurrency

    @property
    def in_flight(self) -> int:
        """Number of tasks currently holding a slot"""
        return self._in_flight

    @asynccontextmanager
    async def slot(self):
        """Hold one slot for the duration of the block"""
        async with self._semaphore:
            self._in_flight += 1
            if self._in_flight == self._max_concurrency:
                logger.debug(f"⏳ Database execution context saturated ({self._max_concurrency} in flight)")
            try:
                yield
            finally:
                self._in_flight -= 1
