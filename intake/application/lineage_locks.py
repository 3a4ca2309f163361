"""
Per-lineage serialization for lifecycle transitions.

Two submissions for the same (applicant, program admin name) must not
interleave between loading the lineage and committing, or both could end up
ACTIVE. Transitions for different lineages never wait on each other.
Locks are dropped once nobody holds or waits for them.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Dict

from intake.domain.value_objects import LineageKey

logger = logging.getLogger(__name__)


class LineageLocks:
    """Registry of asyncio locks keyed by lineage"""

    def __init__(self):
        self._locks: Dict[LineageKey, asyncio.Lock] = {}
        self._holders: Dict[LineageKey, int] = {}

    @asynccontextmanager
    async def hold(self, lineage: LineageKey):
        """
        Hold the lineage lock for the duration of the block.

        Example:
            async with lineage_locks.hold(LineageKey(applicant_id, "housing")):
                ...
        """
        lock = self._locks.setdefault(lineage, asyncio.Lock())
        self._holders[lineage] = self._holders.get(lineage, 0) + 1
        if lock.locked():
            logger.debug(f"⏳ Waiting for lineage {lineage} ({len(self)} lineage(s) in use)")
        try:
            async with lock:
                yield
        finally:
            self._holders[lineage] -= 1
            if self._holders[lineage] == 0:
                del self._holders[lineage]
                del self._locks[lineage]

    def is_held(self, lineage: LineageKey) -> bool:
        lock = self._locks.get(lineage)
        return lock is not None and lock.locked()

    def __len__(self) -> int:
        return len(self._locks)
